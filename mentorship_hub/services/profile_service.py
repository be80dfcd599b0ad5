# mentorship_hub/services/profile_service.py
from typing import Dict, Any, List
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..models import LearnerProfile, MentorProfile, StrongSubject, RelationshipEdge, RelationshipRequest, UserRole
from ..constants import BusinessRules, ErrorMessages
from ..core import eligibility
from ..core.clock import utcnow
from ..directory import DirectoryService
from ..utils.validation_utils import ValidationUtils
from ..exceptions import (
    ConcurrentModificationError, ConflictError, InvalidStateError, NotFoundError, ProfileAlreadyExistsError,
    ValidationError,
)
import logging

logger = logging.getLogger(__name__)

class ProfileService:
    def __init__(self, db: Session):
        self.db = db
        self.validator = ValidationUtils(db)
        self.directory = DirectoryService(db)

    def register_learner(self, account_id: int, data: Dict[str, Any]) -> LearnerProfile:
        """Creates the learner profile for an account and assigns the student role"""
        user = self.directory.get_user(account_id)
        if not user:
            raise NotFoundError("User not found")
        if self.directory.get_learner_profile(account_id) or self.directory.get_mentor_profile(account_id):
            raise ProfileAlreadyExistsError(ErrorMessages.DUPLICATE_PROFILE)

        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Name is required")
        self.validator.validate_branch(data.get("branch"))
        self.validator.validate_year_semester(data.get("year"), data.get("current_semester"))

        learner = LearnerProfile(
            user_id=account_id,
            name=name,
            phone=data.get("phone"),
            branch=data["branch"],
            year=data["year"],
            current_semester=data["current_semester"],
            accepting_new_mentees=True,
            max_mentees=BusinessRules.DEFAULT_MAX_MENTEES,
            teaching_mode="both",
            time_slots=[],
        )
        learner.profile_completed = eligibility.compute_profile_completed(learner)
        user.role = UserRole.STUDENT.value
        self.db.add(learner)
        self._commit(f"creating learner profile for user {account_id}")
        self.db.refresh(learner)
        logger.info(f"Learner {learner.id} ({learner.name}) created for user {account_id}")
        return learner

    def set_strong_subjects(self, account_id: int, entries: List[Dict[str, Any]]) -> LearnerProfile:
        """Replaces the subjects a learner offers to mentor.

        Each subject must be from the learner's branch and from a semester
        they have already completed.
        """
        learner = self.validator.get_learner_or_404(account_id)
        self.validator.validate_can_access_mentoring(learner)

        seen = set()
        prepared = []
        for entry in entries:
            subject_id = entry.get("subject_id")
            if subject_id in seen:
                raise ValidationError("Duplicate subjects are not allowed in strong subjects")
            seen.add(subject_id)

            subject = self.validator.get_subject_or_404(subject_id)
            if subject.branch != learner.branch:
                raise ValidationError(f"Subject '{subject.name}' does not belong to your branch")
            if subject.semester >= learner.current_semester:
                raise ValidationError(f"Subject '{subject.name}' must be from a previous semester")
            confidence = entry.get("confidence_level") or BusinessRules.DEFAULT_CONFIDENCE
            self.validator.validate_confidence(confidence)
            prepared.append((subject, confidence))

        # Keep rows for subjects that stay listed; delete-orphan removes the rest
        existing = {strong.subject_id: strong for strong in learner.strong_subjects}
        updated = []
        for subject, confidence in prepared:
            strong = existing.get(subject.id)
            if strong is None:
                strong = StrongSubject(subject_id=subject.id, origin_semester=subject.semester)
            strong.confidence_level = confidence
            updated.append(strong)
        learner.strong_subjects = updated
        learner.profile_completed = eligibility.compute_profile_completed(learner)
        learner.last_active_at = utcnow()
        self._commit(f"updating strong subjects for learner {learner.id}")
        self.db.refresh(learner)
        logger.info(f"Learner {learner.id} now mentors {len(prepared)} subjects")
        return learner

    def update_mentor_preferences(self, account_id: int, data: Dict[str, Any]) -> LearnerProfile:
        learner = self.validator.get_learner_or_404(account_id)

        if data.get("max_mentees") is not None:
            max_mentees = data["max_mentees"]
            self.validator.validate_max_mentees(max_mentees)
            active = eligibility.active_mentee_count(learner)
            if max_mentees < active:
                raise InvalidStateError(
                    f"Cannot set maxMentees ({max_mentees}) lower than current active mentees ({active})"
                )
            learner.max_mentees = max_mentees
        if data.get("teaching_mode") is not None:
            self.validator.validate_teaching_mode(data["teaching_mode"])
            learner.teaching_mode = data["teaching_mode"]
        if data.get("time_slots") is not None:
            learner.time_slots = self.validator.validate_time_slots(data["time_slots"])
        if data.get("accepting_new_mentees") is not None:
            learner.accepting_new_mentees = bool(data["accepting_new_mentees"])

        learner.profile_completed = eligibility.compute_profile_completed(learner)
        learner.last_active_at = utcnow()
        self._commit(f"updating mentor preferences for learner {learner.id}")
        self.db.refresh(learner)
        logger.info(f"Learner {learner.id} updated mentor preferences")
        return learner

    def register_mentor(self, account_id: int, data: Dict[str, Any]) -> MentorProfile:
        """Creates a professional mentor profile and assigns the mentor role"""
        user = self.directory.get_user(account_id)
        if not user:
            raise NotFoundError("User not found")
        if self.directory.get_mentor_profile(account_id) or self.directory.get_learner_profile(account_id):
            raise ProfileAlreadyExistsError(ErrorMessages.DUPLICATE_PROFILE)

        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Name is required")
        bio = data.get("bio")
        if bio and len(bio) > BusinessRules.MAX_BIO_LENGTH:
            raise ValidationError(f"Bio cannot exceed {BusinessRules.MAX_BIO_LENGTH} characters")
        experience_years = data.get("experience_years") or 0
        if experience_years < 0:
            raise ValidationError("Experience years cannot be negative")

        mentor = MentorProfile(
            user_id=account_id,
            name=name,
            phone=data.get("phone"),
            designation=data.get("designation"),
            skills=[skill.strip() for skill in data.get("skills") or [] if skill and skill.strip()],
            experience_years=experience_years,
            bio=bio,
            time_slots=self.validator.validate_time_slots(data.get("time_slots") or []),
            is_active=True,
        )
        user.role = UserRole.MENTOR.value
        self.db.add(mentor)
        self._commit(f"creating mentor profile for user {account_id}")
        self.db.refresh(mentor)
        logger.info(f"Mentor {mentor.id} ({mentor.name}) created for user {account_id}")
        return mentor

    def delete_learner(self, account_id: int) -> None:
        """Deletes the learner profile with every row it owns and resets the role.

        Rows on other profiles that point at this learner keep existing with a
        cleared counterpart; reconciliation deactivates them.
        """
        learner = self.validator.get_learner_or_404(account_id)
        learner_id = learner.id
        active_mentees = eligibility.active_mentee_count(learner)

        for model in (RelationshipEdge, RelationshipRequest):
            self.db.query(model).filter(model.counterpart_learner_id == learner_id).update(
                {model.counterpart_learner_id: None}, synchronize_session=False
            )
        user = learner.user
        if user is not None:
            user.role = None
        self.db.delete(learner)
        self._commit(f"deleting learner {learner_id}")
        self.db.expire_all()
        logger.info(f"Learner {learner_id} deleted (had {active_mentees} active mentees); counterpart rows orphaned")

    def _commit(self, action: str):
        try:
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            logger.warning(f"Concurrent modification while {action}: {e}")
            raise ConcurrentModificationError(ErrorMessages.CONCURRENT_MODIFICATION)
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Database integrity error while {action}: {e}")
            raise ConflictError("Database constraint violation - the profile may already exist")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while {action}: {e}")
            raise ConflictError("Database error occurred, please retry")
