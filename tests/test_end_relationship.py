"""Tests for ending relationships: deactivate vs remove, mirrors, and who may end what."""

import pytest

from mentorship_hub.core.ledger import EdgeKind
from mentorship_hub.exceptions import InvalidStateError, NotFoundError, ValidationError
from mentorship_hub.models import NotificationEvent, RelationshipEdge
from mentorship_hub.services.mentorship_service import MentorshipService


@pytest.fixture
def service(db):
    return MentorshipService(db)


@pytest.fixture
def peer_pair(service, make_subject, make_learner):
    """Accepted peer mentorship: mentor M teaches mentee S."""
    subject = make_subject("Digital Logic", semester=2)
    mentor = make_learner("Maya", semester=4, strong=[subject])
    mentee = make_learner("Sam", semester=3, strong=[make_subject("Physics", semester=1)])
    created = service.create_peer_request(mentee.user_id, mentor.id, subject.id)
    accepted = service.respond_to_peer_request(mentor.user_id, created.counterpart_request.id, "accepted")
    return {
        "mentor": mentor, "mentee": mentee,
        "mentee_edge": accepted.edge, "mentor_edge": accepted.counterpart_edge,
    }


@pytest.fixture
def official_pair(service, make_subject, make_learner, make_mentor):
    learner = make_learner("Tomas", semester=6, strong=[make_subject("Networks", semester=5)])
    mentor = make_mentor("Dr. Uma Patel")
    created = service.create_official_request(learner.user_id, mentor.id)
    accepted = service.respond_to_official_request(mentor.user_id, created.request.id, "accepted")
    return {"learner": learner, "mentor": mentor, "learner_edge": accepted.counterpart_edge, "mentor_edge": accepted.edge}


def _latest_event(db, user_id):
    return db.query(NotificationEvent).filter_by(recipient_user_id=user_id).order_by(NotificationEvent.id.desc()).first()


class TestPeerEnd:
    """Both sides of a peer edge move together."""

    def test_deactivate_by_mentee_ends_both_sides(self, db, service, peer_pair):
        mentee, mentor = peer_pair["mentee"], peer_pair["mentor"]
        fragment = service.end_relationship(mentee.user_id, peer_pair["mentor_edge"].id, "deactivate")

        db.expire_all()
        assert not peer_pair["mentor_edge"].is_active
        assert not peer_pair["mentee_edge"].is_active
        assert peer_pair["mentor_edge"].ended_at is not None
        assert fragment.counterpart_edge.id == peer_pair["mentee_edge"].id
        assert service.get_current_mentees(mentor.user_id) == []
        assert _latest_event(db, mentor.user_id).event_kind == "connection_ended"

    def test_mentor_removing_mentee_notifies_mentee_removed(self, db, service, peer_pair):
        mentee, mentor = peer_pair["mentee"], peer_pair["mentor"]
        service.end_relationship(mentor.user_id, peer_pair["mentee_edge"].id, "deactivate")
        assert _latest_event(db, mentee.user_id).event_kind == "mentee_removed"

    def test_deactivate_twice_is_invalid_state(self, service, peer_pair):
        mentee = peer_pair["mentee"]
        service.end_relationship(mentee.user_id, peer_pair["mentor_edge"].id, "deactivate")
        with pytest.raises(InvalidStateError):
            service.end_relationship(mentee.user_id, peer_pair["mentor_edge"].id, "deactivate")

    def test_remove_completely_deletes_own_row_and_deactivates_mirror(self, db, service, peer_pair):
        mentor = peer_pair["mentor"]
        mentee_edge_id, mentor_edge_id = peer_pair["mentee_edge"].id, peer_pair["mentor_edge"].id
        fragment = service.end_relationship(mentor.user_id, mentee_edge_id, "remove_completely")

        assert fragment.edge is None
        assert db.get(RelationshipEdge, mentee_edge_id) is None
        mirror = db.get(RelationshipEdge, mentor_edge_id)
        assert mirror is not None and not mirror.is_active

    def test_freed_capacity_allows_new_request(self, service, peer_pair, make_learner):
        mentor, mentee = peer_pair["mentor"], peer_pair["mentee"]
        subject_id = peer_pair["mentee_edge"].subject_id
        service.end_relationship(mentee.user_id, peer_pair["mentor_edge"].id, "deactivate")
        # The mentee no longer has an active mentor for the subject
        again = service.create_peer_request(mentee.user_id, mentor.id, subject_id)
        assert again.request is not None

    def test_cannot_end_someone_elses_edge(self, service, peer_pair, make_learner):
        stranger = make_learner("Vera", semester=4)
        with pytest.raises(NotFoundError):
            service.end_relationship(stranger.user_id, peer_pair["mentor_edge"].id, "deactivate")

    def test_unknown_mode(self, service, peer_pair):
        with pytest.raises(ValidationError):
            service.end_relationship(peer_pair["mentee"].user_id, peer_pair["mentor_edge"].id, "pause")


class TestOfficialEnd:
    def test_learner_deactivates_both_rows(self, db, service, official_pair):
        learner, mentor = official_pair["learner"], official_pair["mentor"]
        service.end_relationship(learner.user_id, official_pair["learner_edge"].id, "deactivate")

        db.expire_all()
        assert not official_pair["learner_edge"].is_active
        assert not official_pair["mentor_edge"].is_active
        assert _latest_event(db, mentor.user_id).event_kind == "connection_ended"

    def test_mentor_removes_mentee(self, db, service, official_pair):
        learner, mentor = official_pair["learner"], official_pair["mentor"]
        mentor_edge_id = official_pair["mentor_edge"].id
        service.end_relationship(mentor.user_id, mentor_edge_id, "remove_completely")

        assert db.get(RelationshipEdge, mentor_edge_id) is None
        db.expire_all()
        assert not official_pair["learner_edge"].is_active
        assert _latest_event(db, learner.user_id).event_kind == "mentee_removed"

    def test_mentor_cannot_act_on_the_learner_row(self, db, service, official_pair):
        mentor = official_pair["mentor"]
        learner_edge_id = official_pair["learner_edge"].id

        with pytest.raises(NotFoundError):
            service.end_relationship(mentor.user_id, learner_edge_id, "remove_completely")
        with pytest.raises(NotFoundError):
            service.end_relationship(mentor.user_id, learner_edge_id, "deactivate")

        db.expire_all()
        assert official_pair["learner_edge"].is_active
        assert official_pair["mentor_edge"].is_active


@pytest.mark.usefixtures("legacy_official_mode")
class TestLegacyOfficialEnd:
    """Without a mentor-side row the mentor acts on the learner's edge."""

    def test_mentor_can_only_remove_completely(self, db, service, official_pair):
        mentor = official_pair["mentor"]
        learner_edge_id = official_pair["learner_edge"].id
        assert official_pair["mentor_edge"] is None

        with pytest.raises(InvalidStateError):
            service.end_relationship(mentor.user_id, learner_edge_id, "deactivate")

        service.end_relationship(mentor.user_id, learner_edge_id, "remove_completely")
        assert db.query(RelationshipEdge).filter_by(kind=EdgeKind.OFFICIAL_MENTOR.value).count() == 0
