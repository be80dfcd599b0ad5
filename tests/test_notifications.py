"""Tests for the notification outbox."""

import pytest

from mentorship_hub.config import get_settings
from mentorship_hub.models import NotificationEvent
from mentorship_hub.services.mentorship_service import MentorshipService
from mentorship_hub.services.notification_service import NotificationKind, NotificationService


@pytest.fixture
def recipient(make_user):
    return make_user(full_name="Lina")


class TestEmit:
    def test_event_carries_message_and_redirect(self, db, recipient, make_user):
        sender = make_user(full_name="Asha")
        event = NotificationService(db).emit(
            NotificationKind.PEER_REQUEST_RECEIVED, recipient.id,
            {"actor_name": "Asha", "subject_name": "Data Structures", "request_id": 7},
            sender_account_id=sender.id,
        )

        assert event.title == "New Mentorship Request"
        assert event.message == "Asha has sent you a mentorship request for Data Structures"
        assert event.priority == "high"
        assert event.sender_user_id == sender.id
        assert event.payload["redirect_url"] == "/dashboard/requests"
        assert event.payload["request_id"] == 7
        assert event.dispatched_at is None

    def test_explicit_redirect_wins(self, db, recipient):
        event = NotificationService(db).emit(
            NotificationKind.CONNECTION_ENDED, recipient.id, {"actor_name": "Bo", "redirect_url": "/custom"}
        )
        assert event.payload["redirect_url"] == "/custom"

    def test_disabled_outbox_writes_nothing(self, db, recipient, monkeypatch):
        monkeypatch.setattr(get_settings(), "NOTIFICATIONS_ENABLED", False)
        assert NotificationService(db).emit(NotificationKind.RATING_RECEIVED, recipient.id, {"actor_name": "Bo"}) is None
        assert db.query(NotificationEvent).count() == 0

    def test_bad_payload_is_logged_not_raised(self, db, recipient, caplog):
        assert NotificationService(db).emit(NotificationKind.PEER_REQUEST_ACCEPTED, recipient.id, {}) is None
        assert "Failed to queue" in caplog.text
        assert db.query(NotificationEvent).count() == 0


class TestDispatch:
    def _queue(self, db, recipient, count=2):
        service = NotificationService(db)
        for n in range(count):
            service.emit(NotificationKind.CONNECTION_ESTABLISHED, recipient.id, {"actor_name": f"Peer {n}"})
        return service

    def test_delivered_events_are_marked(self, db, recipient):
        service = self._queue(db, recipient)
        sent = []

        assert service.dispatch_pending(sent.append) == 2
        assert [event.payload["actor_name"] for event in sent] == ["Peer 0", "Peer 1"]
        assert all(event.dispatched_at is not None for event in sent)
        assert service.dispatch_pending(sent.append) == 0

    def test_failed_delivery_stays_pending(self, db, recipient):
        service = self._queue(db, recipient, count=1)

        def transport(event):
            raise ConnectionError("push gateway unavailable")

        assert service.dispatch_pending(transport) == 0
        event = db.query(NotificationEvent).one()
        assert event.delivery_attempts == 1
        assert event.dispatched_at is None

    def test_list_for_user(self, db, recipient, make_user):
        service = self._queue(db, recipient)
        other = make_user()
        service.emit(NotificationKind.MENTEE_REMOVED, other.id, {"actor_name": "Rina"})

        assert len(service.list_for_user(recipient.id)) == 2
        db.query(NotificationEvent).filter_by(recipient_user_id=recipient.id).first().is_read = True
        db.commit()
        assert len(service.list_for_user(recipient.id, unread_only=True)) == 1


class TestLifecycleNotifications:
    def test_failing_notifier_does_not_undo_the_request(self, db, make_subject, make_learner):
        subject = make_subject("Microprocessors", semester=3)
        mentor = make_learner("Kofi", semester=5, strong=[subject])
        mentee = make_learner("Lea", semester=4, strong=[make_subject("Statistics", semester=2)])

        class BrokenNotifier:
            def emit(self, *args, **kwargs):
                raise RuntimeError("outbox down")

        service = MentorshipService(db, notifier=BrokenNotifier())
        fragment = service.create_peer_request(mentee.user_id, mentor.id, subject.id)
        assert fragment.request.id is not None
        assert fragment.counterpart_request.id is not None

    def test_request_and_accept_notify_both_parties(self, db, make_subject, make_learner):
        subject = make_subject("Microprocessors", semester=3)
        mentor = make_learner("Kofi", semester=5, strong=[subject])
        mentee = make_learner("Lea", semester=4, strong=[make_subject("Statistics", semester=2)])
        service = MentorshipService(db)

        created = service.create_peer_request(mentee.user_id, mentor.id, subject.id)
        service.respond_to_peer_request(mentor.user_id, created.counterpart_request.id, "accepted")

        to_mentor = [e.event_kind for e in NotificationService(db).list_for_user(mentor.user_id)]
        to_mentee = [e.event_kind for e in NotificationService(db).list_for_user(mentee.user_id)]
        assert sorted(to_mentor) == ["connection_established", "peer_request_received"]
        assert sorted(to_mentee) == ["connection_established", "peer_request_accepted"]
