# mentorship_hub/directory.py
from typing import Optional
from sqlalchemy.orm import Session

from .models import User, Subject, LearnerProfile, MentorProfile


class DirectoryService:
    """Read-only view of the identity directory and the subject catalog."""

    def __init__(self, db: Session):
        self.db = db

    def get_subject(self, subject_id: int) -> Optional[Subject]:
        return self.db.query(Subject).filter(Subject.id == subject_id, Subject.is_active.is_(True)).first()

    def get_user(self, account_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == account_id).first()

    def get_learner_profile(self, account_id: int) -> Optional[LearnerProfile]:
        return self.db.query(LearnerProfile).filter(LearnerProfile.user_id == account_id).first()

    def get_learner_by_id(self, learner_id: int) -> Optional[LearnerProfile]:
        return self.db.query(LearnerProfile).filter(LearnerProfile.id == learner_id).first()

    def get_mentor_profile(self, account_id: int) -> Optional[MentorProfile]:
        return self.db.query(MentorProfile).filter(MentorProfile.user_id == account_id).first()

    def get_mentor_by_id(self, mentor_id: int) -> Optional[MentorProfile]:
        return self.db.query(MentorProfile).filter(MentorProfile.id == mentor_id).first()

    @staticmethod
    def resolve_display_name(profile) -> str:
        if profile is None:
            return "Former member"
        if profile.name:
            return profile.name
        if profile.user is not None and profile.user.full_name:
            return profile.user.full_name
        return f"Member {profile.id}"
