# mentorship_hub/services/__init__.py
from .mentorship_service import MentorshipService
from .profile_service import ProfileService
from .discovery_service import DiscoveryService
from .rating_service import RatingService
from .notification_service import NotificationService
from .reconciliation_service import ReconciliationService

__all__ = [
    "MentorshipService", "ProfileService", "DiscoveryService", "RatingService", "NotificationService",
    "ReconciliationService",
]
