"""Tests for the reconciliation pass over asymmetric ledger rows."""

import pytest
from sqlalchemy.exc import OperationalError

from mentorship_hub.core.clock import utcnow
from mentorship_hub.core.ledger import EdgeKind, RequestStatus
from mentorship_hub.models import RelationshipEdge
from mentorship_hub.services.mentorship_service import MentorshipService
from mentorship_hub.services.profile_service import ProfileService
from mentorship_hub.services.reconciliation_service import OrphanKind, ReconciliationService
from mentorship_hub.utils.ledger_utils import LedgerUtils


@pytest.fixture
def service(db):
    return MentorshipService(db)


@pytest.fixture
def peer_pair(service, make_subject, make_learner):
    subject = make_subject("Computer Networks", semester=3)
    mentor = make_learner("Rina", semester=5, strong=[subject])
    mentee = make_learner("Pablo", semester=4, strong=[make_subject("Algorithms", semester=2)])
    created = service.create_peer_request(mentee.user_id, mentor.id, subject.id)
    accepted = service.respond_to_peer_request(mentor.user_id, created.counterpart_request.id, "accepted")
    return {
        "mentor": mentor, "mentee": mentee,
        "mentee_edge": accepted.edge, "mentor_edge": accepted.counterpart_edge,
    }


class TestFindAndRepair:
    def test_consistent_ledger_has_no_orphans(self, db, peer_pair):
        assert ReconciliationService(db).find_orphans() == []

    def test_deleted_learner_leaves_counterpart_gone(self, db, service, peer_pair):
        mentor, mentee = peer_pair["mentor"], peer_pair["mentee"]
        mentee_edge_id = peer_pair["mentee_edge"].id
        ProfileService(db).delete_learner(mentee.user_id)

        reconciler = ReconciliationService(db)
        orphans = reconciler.find_orphans()
        assert [(orphan.kind, orphan.row.id) for orphan in orphans] == [(OrphanKind.COUNTERPART_GONE, mentee_edge_id)]

        report = reconciler.repair(orphans)
        assert len(report.repaired) == 1
        assert service.get_current_mentees(mentor.user_id) == []
        assert reconciler.find_orphans() == []

    def test_missing_mirror_is_rebuilt(self, db, service, peer_pair):
        mentee = peer_pair["mentee"]
        db.delete(peer_pair["mentor_edge"])
        db.commit()

        reconciler = ReconciliationService(db)
        orphans = reconciler.find_orphans()
        assert [orphan.kind for orphan in orphans] == [OrphanKind.MISSING_MIRROR]

        reconciler.repair(orphans)
        mentors = service.get_current_mentors(mentee.user_id)
        assert len(mentors) == 1
        assert mentors[0].kind == EdgeKind.PEER_MENTOR
        assert mentors[0].subject_id == peer_pair["mentee_edge"].subject_id
        assert reconciler.find_orphans() == []

    def test_answer_on_one_side_is_copied_to_the_other(self, db, service, make_subject, make_learner):
        subject = make_subject("Operating Systems", semester=3)
        mentor = make_learner("Sven", semester=5, strong=[subject])
        mentee = make_learner("Tara", semester=4, strong=[make_subject("Maths IV", semester=2)])
        created = service.create_peer_request(mentee.user_id, mentor.id, subject.id)
        outgoing, incoming = created.request, created.counterpart_request

        # The accept reached the mentor's ledger only
        answered_at = utcnow()
        incoming.status = RequestStatus.ACCEPTED.value
        incoming.responded_at = answered_at
        LedgerUtils(db).add_edge(EdgeKind.PEER_MENTEE, mentor.id, mentee.id, subject.id, answered_at)
        db.commit()

        reconciler = ReconciliationService(db)
        orphans = reconciler.find_orphans()
        assert [orphan.kind for orphan in orphans] == [OrphanKind.MISSING_MIRROR, OrphanKind.ONE_SIDED_REQUEST]
        assert orphans[1].row.id == outgoing.id
        assert orphans[1].mirror.id == incoming.id

        report = reconciler.repair(orphans)
        assert report.failed == []
        db.expire_all()
        assert outgoing.status == RequestStatus.ACCEPTED.value
        assert outgoing.responded_at == incoming.responded_at
        assert [edge.counterpart_id for edge in service.get_current_mentors(mentee.user_id)] == [mentor.id]
        assert reconciler.find_orphans() == []

    def test_activity_mismatch_deactivates_the_active_side(self, db, peer_pair):
        peer_pair["mentor_edge"].is_active = False
        db.commit()

        reconciler = ReconciliationService(db)
        orphans = reconciler.find_orphans()
        assert len(orphans) == 1
        assert orphans[0].kind == OrphanKind.ACTIVITY_MISMATCH
        assert orphans[0].mirror.id == peer_pair["mentor_edge"].id

        reconciler.repair(orphans)
        db.expire_all()
        assert not peer_pair["mentee_edge"].is_active
        assert peer_pair["mentee_edge"].ended_at is not None

    def test_failed_repair_is_reported(self, db, monkeypatch, peer_pair):
        db.delete(peer_pair["mentor_edge"])
        db.commit()
        reconciler = ReconciliationService(db)
        orphans = reconciler.find_orphans()

        def failing_commit():
            raise OperationalError("UPDATE learner_profiles ...", {}, Exception("database is locked"))

        monkeypatch.setattr(db, "commit", failing_commit)
        report = reconciler.repair(orphans)
        monkeypatch.undo()

        assert report.repaired == []
        assert [orphan.kind for orphan in report.failed] == [OrphanKind.MISSING_MIRROR]
        assert db.query(RelationshipEdge).count() == 1


@pytest.mark.usefixtures("legacy_official_mode")
class TestLegacyLayout:
    def test_learner_only_official_edges_are_not_orphans(self, db, service, make_learner, make_mentor):
        learner = make_learner("Quinn", semester=6)
        mentor = make_mentor("Dr. Ravi Nair")
        created = service.create_official_request(learner.user_id, mentor.id)
        service.respond_to_official_request(mentor.user_id, created.request.id, "accepted")

        assert ReconciliationService(db).find_orphans() == []
