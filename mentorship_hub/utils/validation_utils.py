# mentorship_hub/utils/validation_utils.py
import re
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from ..models import Subject, LearnerProfile, MentorProfile
from ..config import get_settings
from ..constants import BusinessRules, ErrorMessages
from ..core import eligibility
from ..exceptions import NotFoundError, InvalidStateError, ValidationError
from ..directory import DirectoryService

_TIME_RE = re.compile(BusinessRules.TIME_PATTERN)


class ValidationUtils:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()
        self.directory = DirectoryService(db)

    def get_learner_or_404(self, account_id: int) -> LearnerProfile:
        learner = self.directory.get_learner_profile(account_id)
        if not learner:
            raise NotFoundError(ErrorMessages.LEARNER_NOT_FOUND)
        return learner

    def get_learner_by_id_or_404(self, learner_id: int, message: str = ErrorMessages.LEARNER_NOT_FOUND) -> LearnerProfile:
        learner = self.directory.get_learner_by_id(learner_id)
        if not learner or not learner.is_active:
            raise NotFoundError(message)
        return learner

    def get_mentor_or_404(self, account_id: int) -> MentorProfile:
        mentor = self.directory.get_mentor_profile(account_id)
        if not mentor:
            raise NotFoundError(ErrorMessages.MENTOR_NOT_FOUND)
        return mentor

    def get_mentor_by_id_or_404(self, mentor_id: int) -> MentorProfile:
        mentor = self.directory.get_mentor_by_id(mentor_id)
        if not mentor:
            raise NotFoundError(ErrorMessages.MENTOR_NOT_FOUND)
        return mentor

    def get_subject_or_404(self, subject_id: int) -> Subject:
        subject = self.directory.get_subject(subject_id)
        if not subject:
            raise NotFoundError(ErrorMessages.SUBJECT_NOT_FOUND)
        return subject

    def validate_complete_profile(self, learner: LearnerProfile):
        if not learner.profile_completed:
            raise InvalidStateError(ErrorMessages.PROFILE_INCOMPLETE)

    def validate_can_access_mentoring(self, learner: LearnerProfile):
        if learner.current_semester <= 1:
            raise InvalidStateError(ErrorMessages.FIRST_SEMESTER)

    def validate_message(self, message: Optional[str]) -> Optional[str]:
        if message is None:
            return None
        message = message.strip()
        limit = self.settings.MAX_MESSAGE_LENGTH
        if len(message) > limit:
            raise ValidationError(ErrorMessages.MESSAGE_TOO_LONG.format(limit=limit))
        return message or None

    @staticmethod
    def validate_branch(branch: str):
        if branch not in BusinessRules.BRANCHES:
            raise ValidationError(f"Invalid branch. Must be one of: {', '.join(BusinessRules.BRANCHES)}")

    @staticmethod
    def validate_year_semester(year: int, semester: int):
        if year not in BusinessRules.YEAR_SEMESTERS:
            raise ValidationError("Year must be between 1 and 4")
        if not isinstance(semester, int) or semester < BusinessRules.MIN_SEMESTER or semester > BusinessRules.MAX_SEMESTER:
            raise ValidationError("Semester must be between 1 and 8")
        if not eligibility.is_semester_consistent(year, semester):
            allowed = " or ".join(str(s) for s in eligibility.semesters_for_year(year))
            raise ValidationError(f"Year {year} students must be in semester {allowed}")

    @staticmethod
    def validate_confidence(confidence: int):
        if confidence < BusinessRules.MIN_CONFIDENCE or confidence > BusinessRules.MAX_CONFIDENCE:
            raise ValidationError("Confidence level must be between 1 and 5")

    @staticmethod
    def validate_max_mentees(max_mentees: int):
        if isinstance(max_mentees, bool) or not isinstance(max_mentees, int) \
                or max_mentees < BusinessRules.MIN_MENTEES or max_mentees > BusinessRules.MAX_MENTEES:
            raise ValidationError("maxMentees must be an integer between 1 and 20")

    @staticmethod
    def validate_teaching_mode(mode: str):
        if mode not in BusinessRules.TEACHING_MODES:
            raise ValidationError("preferredTeachingMode must be 'online', 'offline', or 'both'")

    @staticmethod
    def validate_time_slots(slots: List[Dict[str, Any]]) -> List[Dict[str, str]]:
        """Validates day names and HH:MM (24-hour) bounds; returns normalised slots."""
        cleaned = []
        for slot in slots:
            day = slot.get("day")
            start, end = slot.get("start_time"), slot.get("end_time")
            if day not in BusinessRules.DAYS:
                raise ValidationError("Invalid day in available time slots")
            if not start or not end:
                raise ValidationError("Start time and end time are required for each time slot")
            if not _TIME_RE.match(start) or not _TIME_RE.match(end):
                raise ValidationError("Time format should be HH:MM (24-hour format)")
            start_h, start_m = (int(part) for part in start.split(":"))
            end_h, end_m = (int(part) for part in end.split(":"))
            if (end_h, end_m) <= (start_h, start_m):
                raise ValidationError("End time must be after start time")
            cleaned.append({"day": day, "start_time": start, "end_time": end})
        return cleaned
