# mentorship_hub/services/notification_service.py
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional
from sqlalchemy.orm import Session

from ..models import NotificationEvent, NotificationPriority
from ..config import get_settings
from ..constants import RedirectUrls
from ..core.clock import utcnow

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    PEER_REQUEST_RECEIVED = "peer_request_received"
    PEER_REQUEST_ACCEPTED = "peer_request_accepted"
    PEER_REQUEST_REJECTED = "peer_request_rejected"
    OFFICIAL_REQUEST_RECEIVED = "official_request_received"
    OFFICIAL_REQUEST_ACCEPTED = "official_request_accepted"
    OFFICIAL_REQUEST_REJECTED = "official_request_rejected"
    CONNECTION_ESTABLISHED = "connection_established"
    CONNECTION_ENDED = "connection_ended"
    MENTEE_REMOVED = "mentee_removed"
    RATING_RECEIVED = "rating_received"


def _for_subject(payload: Dict[str, Any]) -> str:
    subject_name = payload.get("subject_name")
    return f" for {subject_name}" if subject_name else ""


# kind -> (title, message builder, default redirect, priority)
NOTIFICATION_TEMPLATES = {
    NotificationKind.PEER_REQUEST_RECEIVED: (
        "New Mentorship Request",
        lambda p: f"{p['actor_name']} has sent you a mentorship request{_for_subject(p)}",
        RedirectUrls.REQUESTS, NotificationPriority.HIGH),
    NotificationKind.PEER_REQUEST_ACCEPTED: (
        "Mentorship Request Accepted",
        lambda p: f"{p['actor_name']} has accepted your mentorship request{_for_subject(p)}",
        RedirectUrls.MENTORS, NotificationPriority.HIGH),
    NotificationKind.PEER_REQUEST_REJECTED: (
        "Mentorship Request Declined",
        lambda p: f"{p['actor_name']} has declined your mentorship request{_for_subject(p)}",
        RedirectUrls.REQUESTS, NotificationPriority.MEDIUM),
    NotificationKind.OFFICIAL_REQUEST_RECEIVED: (
        "New Professional Mentorship Request",
        lambda p: f"{p['actor_name']} has sent you a professional mentorship request",
        RedirectUrls.MENTOR_REQUESTS, NotificationPriority.HIGH),
    NotificationKind.OFFICIAL_REQUEST_ACCEPTED: (
        "Professional Mentorship Request Accepted",
        lambda p: f"{p['actor_name']} has accepted your professional mentorship request",
        RedirectUrls.OFFICIAL_MENTORS, NotificationPriority.HIGH),
    NotificationKind.OFFICIAL_REQUEST_REJECTED: (
        "Professional Mentorship Request Declined",
        lambda p: f"{p['actor_name']} has declined your professional mentorship request",
        RedirectUrls.REQUESTS, NotificationPriority.MEDIUM),
    NotificationKind.CONNECTION_ESTABLISHED: (
        "New Connection",
        lambda p: f"You are now connected with {p['actor_name']}{_for_subject(p)}",
        RedirectUrls.DASHBOARD, NotificationPriority.HIGH),
    NotificationKind.CONNECTION_ENDED: (
        "Mentorship Ended",
        lambda p: f"Your mentorship with {p['actor_name']} has been ended",
        RedirectUrls.DASHBOARD, NotificationPriority.MEDIUM),
    NotificationKind.MENTEE_REMOVED: (
        "Removed by Mentor",
        lambda p: f"{p['actor_name']} has removed you from their mentee list",
        RedirectUrls.DASHBOARD, NotificationPriority.LOW),
    NotificationKind.RATING_RECEIVED: (
        "New Rating Received",
        lambda p: f"{p['actor_name']} has rated you {p.get('score')}/5 stars",
        RedirectUrls.RATINGS, NotificationPriority.MEDIUM),
}


class NotificationService:
    """Enqueues notification events into the outbox.

    Emission is best-effort: the ledger change it reports has already been
    committed, so a failure here is logged and never raised.
    """

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def emit(self, event_kind: NotificationKind, recipient_account_id: int, payload: Dict[str, Any],
             sender_account_id: Optional[int] = None) -> Optional[NotificationEvent]:
        if not self.settings.NOTIFICATIONS_ENABLED:
            return None
        try:
            kind = NotificationKind(event_kind)
            title, build_message, redirect_url, priority = NOTIFICATION_TEMPLATES[kind]
            message = build_message(payload)
            event = NotificationEvent(
                recipient_user_id=recipient_account_id,
                sender_user_id=sender_account_id,
                event_kind=kind.value,
                title=title,
                message=message[:500],
                payload={
                    **payload,
                    "message": message,
                    "redirect_url": payload.get("redirect_url") or redirect_url,
                },
                priority=priority.value,
            )
            self.db.add(event)
            self.db.commit()
            logger.info(f"Queued {kind.value} notification for user {recipient_account_id}")
            return event
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Failed to queue {event_kind} notification for user {recipient_account_id}: {e}")
            return None

    def dispatch_pending(self, transport: Callable[[NotificationEvent], None], limit: int = 100) -> int:
        """Hands undelivered events to ``transport``. Returns how many were delivered."""
        events = self.db.query(NotificationEvent).filter(
            NotificationEvent.dispatched_at.is_(None)
        ).order_by(NotificationEvent.created_at.asc(), NotificationEvent.id.asc()).limit(limit).all()

        delivered = 0
        for event in events:
            try:
                transport(event)
                event.dispatched_at = utcnow()
                delivered += 1
            except Exception as e:
                event.delivery_attempts += 1
                logger.warning(f"Delivery of notification {event.id} failed (attempt {event.delivery_attempts}): {e}")
        self.db.commit()
        return delivered

    def list_for_user(self, account_id: int, unread_only: bool = False):
        query = self.db.query(NotificationEvent).filter(NotificationEvent.recipient_user_id == account_id)
        if unread_only:
            query = query.filter(NotificationEvent.is_read.is_(False))
        return query.order_by(NotificationEvent.created_at.desc()).all()
