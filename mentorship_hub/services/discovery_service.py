# mentorship_hub/services/discovery_service.py
import logging
from typing import Any, Dict, List
from sqlalchemy.orm import Session

from ..models import LearnerProfile, MentorProfile, StrongSubject
from ..constants import ErrorMessages
from ..core import eligibility
from ..exceptions import InvalidStateError
from ..utils.validation_utils import ValidationUtils

logger = logging.getLogger(__name__)


class DiscoveryService:
    def __init__(self, db: Session):
        self.db = db
        self.validator = ValidationUtils(db)

    def find_peer_mentors(self, learner_account_id: int, subject_id: int) -> List[Dict[str, Any]]:
        """
        Learners in the caller's branch who list the subject and can take another mentee.

        Ordered by confidence in the subject, then by most recent activity.
        """
        learner = self.validator.get_learner_or_404(learner_account_id)
        self.validator.validate_complete_profile(learner)
        if eligibility.is_fourth_year(learner):
            raise InvalidStateError(ErrorMessages.FOURTH_YEAR)
        subject = self.validator.get_subject_or_404(subject_id)

        rows = self.db.query(LearnerProfile, StrongSubject).join(
            StrongSubject, StrongSubject.learner_id == LearnerProfile.id
        ).filter(
            StrongSubject.subject_id == subject.id,
            LearnerProfile.branch == learner.branch,
            LearnerProfile.id != learner.id,
            LearnerProfile.is_active.is_(True),
            LearnerProfile.profile_completed.is_(True),
            LearnerProfile.accepting_new_mentees.is_(True),
        ).order_by(
            StrongSubject.confidence_level.desc(), LearnerProfile.last_active_at.desc()
        ).all()

        # Capacity depends on the edge rows, so it is filtered after loading
        mentors = [
            {
                "learner": candidate,
                "confidence_level": strong.confidence_level,
                "active_mentees": eligibility.active_mentee_count(candidate),
            }
            for candidate, strong in rows
            if eligibility.can_accept_mentee(candidate)
        ]
        logger.info(f"Found {len(mentors)} peer mentors for subject {subject.id} in branch {learner.branch}")
        return mentors

    def available_official_mentors(self) -> List[MentorProfile]:
        return self.db.query(MentorProfile).filter(
            MentorProfile.is_active.is_(True)
        ).order_by(MentorProfile.experience_years.desc(), MentorProfile.id.asc()).all()
