# mentorship_hub/core/rating_gate.py
from datetime import datetime, timedelta
from typing import Optional

from ..constants import BusinessRules, ErrorMessages
from ..exceptions import ConflictError, InvalidStateError, ValidationError
from .clock import as_utc, utcnow


def relationship_age(edge, now: Optional[datetime] = None) -> timedelta:
    return as_utc(now or utcnow()) - as_utc(edge.connected_at)


def days_since_connection(edge, now: Optional[datetime] = None) -> int:
    return relationship_age(edge, now).days


def is_ratable(edge, min_age_days: int, now: Optional[datetime] = None) -> bool:
    """Active, not yet rated, and connected for at least ``min_age_days``."""
    return (
        edge.is_active
        and not edge.is_rated
        and relationship_age(edge, now) >= timedelta(days=min_age_days)
    )


def check_ratable(edge, min_age_days: int, now: Optional[datetime] = None) -> None:
    """Raises the taxonomy error explaining why ``edge`` cannot be rated right now."""
    if not edge.is_active:
        raise InvalidStateError(ErrorMessages.EDGE_INACTIVE)
    if edge.is_rated:
        raise ConflictError(ErrorMessages.ALREADY_RATED)
    if relationship_age(edge, now) < timedelta(days=min_age_days):
        raise InvalidStateError(ErrorMessages.TOO_EARLY_TO_RATE.format(days=min_age_days))


def validate_rating_input(score, feedback: Optional[str]) -> str:
    """Returns the normalised feedback text."""
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError("Rating must be an integer between 1 and 5")
    if score < BusinessRules.MIN_SCORE or score > BusinessRules.MAX_SCORE:
        raise ValidationError("Rating must be an integer between 1 and 5")
    feedback = (feedback or "").strip()
    if len(feedback) > BusinessRules.MAX_FEEDBACK_LENGTH:
        raise ValidationError(f"Feedback cannot exceed {BusinessRules.MAX_FEEDBACK_LENGTH} characters")
    return feedback
