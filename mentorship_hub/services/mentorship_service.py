# mentorship_hub/services/mentorship_service.py
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
from datetime import datetime
from sqlalchemy.orm import Session

from ..models import LearnerProfile, MentorProfile, RelationshipEdge, RelationshipRequest, Subject
from ..config import get_settings
from ..constants import ErrorMessages
from ..core import eligibility
from ..core.clock import utcnow
from ..core.ledger import Decision, EdgeKind, EndMode, ProfileKind, RequestKind, RequestStatus
from ..core.mirrored_write import MirroredWrite
from ..directory import DirectoryService
from ..exceptions import (
    CapacityExceededError, ConcurrentModificationError, ConflictError, InvalidStateError, NotFoundError,
    ValidationError,
)
from ..utils.ledger_utils import LedgerUtils
from ..utils.validation_utils import ValidationUtils
from .notification_service import NotificationKind, NotificationService

logger = logging.getLogger(__name__)


@dataclass
class LedgerFragment:
    """Rows changed by one lifecycle operation, actor's side first."""
    request: Optional[RelationshipRequest] = None
    counterpart_request: Optional[RelationshipRequest] = None
    edge: Optional[RelationshipEdge] = None
    counterpart_edge: Optional[RelationshipEdge] = None


def _parse_choice(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {label} '{value}'. Must be one of: {allowed}")


class MentorshipService:
    def __init__(self, db: Session, notifier: Optional[NotificationService] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.settings = get_settings()
        self.validator = ValidationUtils(db)
        self.ledger = LedgerUtils(db)
        self.directory = DirectoryService(db)
        self.notifier = notifier or NotificationService(db)
        self.clock = clock

    def _writer(self, description: str) -> MirroredWrite:
        return MirroredWrite(self.db, description, retries=self.settings.MIRROR_WRITE_RETRIES)

    # ------------------------------------------------------------------ peer requests

    def create_peer_request(self, requester_account_id: int, target_learner_id: int, subject_id: int,
                            message: Optional[str] = None) -> LedgerFragment:
        """Creates a pending peer request on both the requester's and the target's ledger"""
        requester = self.validator.get_learner_or_404(requester_account_id)
        self.validator.validate_complete_profile(requester)
        self.validator.validate_can_access_mentoring(requester)
        if eligibility.is_fourth_year(requester):
            raise InvalidStateError(ErrorMessages.FOURTH_YEAR)
        message = self.validator.validate_message(message)
        if target_learner_id == requester.id:
            raise ValidationError(ErrorMessages.SELF_REQUEST)

        subject = self.validator.get_subject_or_404(subject_id)
        target = self.validator.get_learner_by_id_or_404(target_learner_id, ErrorMessages.TARGET_NOT_FOUND)

        # Requester-side rules first, so an existing mentor reports as such even when the target is full
        if target.branch != requester.branch:
            raise ConflictError(ErrorMessages.BRANCH_MISMATCH)
        if eligibility.has_active_mentor_for_subject(requester, subject.id):
            raise ConflictError(ErrorMessages.ALREADY_MENTORED)
        if self.ledger.find_pending_request(RequestKind.PEER_OUTGOING, requester.id, target.id, subject.id):
            raise ConflictError(ErrorMessages.DUPLICATE_REQUEST)
        if not eligibility.can_mentor_subject(target, subject.id):
            raise InvalidStateError(ErrorMessages.NOT_STRONG_SUBJECT)
        if not target.accepting_new_mentees:
            raise InvalidStateError(ErrorMessages.NOT_ACCEPTING)
        if not eligibility.has_capacity(target):
            raise CapacityExceededError(ErrorMessages.CAPACITY_EXCEEDED)

        requester_id, target_id = requester.id, target.id
        now = self.clock()
        fragment = LedgerFragment()

        def primary():
            outgoing = self.ledger.add_request(
                RequestKind.PEER_OUTGOING, requester_id, target_id, subject.id, message, now)
            self.ledger.touch(requester)
            fragment.request = outgoing
            return outgoing

        def mirror(outgoing):
            target_row = self.directory.get_learner_by_id(target_id)
            fragment.counterpart_request = self.ledger.add_request(
                RequestKind.PEER_INCOMING, target_id, requester_id, subject.id, message, now)
            self.ledger.touch(target_row)

        def compensate(outgoing):
            self.db.delete(outgoing)
            self.ledger.touch(requester)

        self._writer(f"Peer request {requester_id}->{target_id} (subject {subject.id})").run(
            primary, mirror, compensate)
        logger.info(f"Learner {requester_id} requested learner {target_id} as mentor for subject {subject.id}")

        self._notify(NotificationKind.PEER_REQUEST_RECEIVED, target, requester, subject,
                     request_id=fragment.counterpart_request.id)
        return fragment

    def respond_to_peer_request(self, responder_account_id: int, request_id: int, decision) -> LedgerFragment:
        """Accepts or rejects a pending incoming peer request"""
        decision = _parse_choice(Decision, decision, "decision")
        responder = self.validator.get_learner_or_404(responder_account_id)

        incoming = self.ledger.get_owned_request(ProfileKind.LEARNER, responder.id, request_id, RequestKind.PEER_INCOMING)
        if not incoming:
            raise NotFoundError(ErrorMessages.REQUEST_NOT_FOUND)
        if incoming.status != RequestStatus.PENDING:
            raise ConflictError(ErrorMessages.ALREADY_RESPONDED)
        if incoming.counterpart_learner_id is None:
            raise NotFoundError(ErrorMessages.REQUESTER_GONE)
        requester = self.validator.get_learner_by_id_or_404(incoming.counterpart_learner_id, ErrorMessages.REQUESTER_GONE)

        accepted = decision == Decision.ACCEPTED
        subject_id = incoming.subject_id
        if accepted:
            # Re-check at accept time: the mentor may have filled up since the request was made
            if not eligibility.has_capacity(responder):
                raise CapacityExceededError(ErrorMessages.CAPACITY_EXCEEDED)
            if eligibility.has_active_mentor_for_subject(requester, subject_id):
                raise ConflictError(ErrorMessages.REQUESTER_ALREADY_MENTORED)

        responder_id, requester_id = responder.id, requester.id
        now = self.clock()
        fragment = LedgerFragment()

        def primary():
            incoming.status = decision.value
            incoming.responded_at = now
            fragment.request = incoming
            if accepted:
                fragment.edge = self.ledger.add_edge(incoming.variant.edge_kind, responder_id, requester_id, subject_id, now)
            self.ledger.touch(responder)
            return fragment

        def mirror(_):
            requester_row = self.directory.get_learner_by_id(requester_id)
            if requester_row is None:
                raise NotFoundError(ErrorMessages.REQUESTER_GONE)
            # The requester row may have gained a mentor since the pre-check, e.g. on a retry
            if accepted and eligibility.has_active_mentor_for_subject(requester_row, subject_id):
                raise ConflictError(ErrorMessages.REQUESTER_ALREADY_MENTORED)
            outgoing = self.ledger.find_pending_request(RequestKind.PEER_OUTGOING, requester_id, responder_id, subject_id)
            if outgoing is not None:
                outgoing.status = decision.value
                outgoing.responded_at = now
            else:
                logger.warning(f"No pending outgoing row on learner {requester_id} for request {request_id}")
            fragment.counterpart_request = outgoing
            if accepted:
                fragment.counterpart_edge = self.ledger.add_edge(
                    EdgeKind.PEER_MENTOR, requester_id, responder_id, subject_id, now)
            self.ledger.touch(requester_row)

        def compensate(_):
            incoming.status = RequestStatus.PENDING.value
            incoming.responded_at = None
            if fragment.edge is not None:
                self.db.delete(fragment.edge)
                fragment.edge = None
            self.ledger.touch(responder)

        try:
            self._writer(f"Peer request {request_id} {decision.value}").run(primary, mirror, compensate)
        except ConcurrentModificationError:
            # Another accept may have landed first; report it as the capacity failure it is
            self.db.expire_all()
            if accepted and not eligibility.has_capacity(responder):
                raise CapacityExceededError(ErrorMessages.CAPACITY_EXCEEDED)
            raise
        logger.info(f"Learner {responder_id} {decision.value} peer request {request_id} from learner {requester_id}")

        subject = self.directory.get_subject(subject_id) if subject_id else None
        kind = NotificationKind.PEER_REQUEST_ACCEPTED if accepted else NotificationKind.PEER_REQUEST_REJECTED
        self._notify(kind, requester, responder, subject, request_id=request_id)
        if accepted:
            mentorship_id = fragment.edge.id
            self._notify(NotificationKind.CONNECTION_ESTABLISHED, requester, responder, subject, mentorship_id=mentorship_id)
            self._notify(NotificationKind.CONNECTION_ESTABLISHED, responder, requester, subject, mentorship_id=mentorship_id)
        return fragment

    # ------------------------------------------------------------------ official requests

    def create_official_request(self, learner_account_id: int, mentor_profile_id: int,
                                message: Optional[str] = None) -> LedgerFragment:
        """Requests a professional mentor. Fourth-year students are allowed here."""
        learner = self.validator.get_learner_or_404(learner_account_id)
        self.validator.validate_complete_profile(learner)
        message = self.validator.validate_message(message)
        mentor = self.validator.get_mentor_by_id_or_404(mentor_profile_id)
        if not mentor.is_active:
            raise InvalidStateError(ErrorMessages.MENTOR_INACTIVE)
        if self.ledger.find_pending_request(RequestKind.OFFICIAL_OUTGOING, learner.id, mentor.id):
            raise ConflictError(ErrorMessages.DUPLICATE_OFFICIAL_REQUEST)
        if self.ledger.find_active_edge(EdgeKind.OFFICIAL_MENTOR, learner.id, mentor.id):
            raise ConflictError(ErrorMessages.ALREADY_CONNECTED)

        learner_id, mentor_id = learner.id, mentor.id
        now = self.clock()
        fragment = LedgerFragment()

        def primary():
            fragment.request = self.ledger.add_request(
                RequestKind.OFFICIAL_OUTGOING, learner_id, mentor_id, None, message, now)
            self.ledger.touch(learner)
            return fragment.request

        def mirror(_):
            mentor_row = self.directory.get_mentor_by_id(mentor_id)
            fragment.counterpart_request = self.ledger.add_request(
                RequestKind.OFFICIAL_INCOMING, mentor_id, learner_id, None, message, now)
            self.ledger.touch(mentor_row)

        def compensate(outgoing):
            self.db.delete(outgoing)
            self.ledger.touch(learner)

        mirrored = self.settings.OFFICIAL_MENTOR_MIRROR
        self._writer(f"Official request {learner_id}->{mentor_id}").run(
            primary, mirror if mirrored else None, compensate)
        logger.info(f"Learner {learner_id} requested official mentor {mentor_id}")

        request_id = (fragment.counterpart_request or fragment.request).id
        self._notify(NotificationKind.OFFICIAL_REQUEST_RECEIVED, mentor, learner, None, request_id=request_id)
        return fragment

    def respond_to_official_request(self, mentor_account_id: int, request_id: int, decision) -> LedgerFragment:
        """The account holding the mentor profile accepts or rejects an official request.

        ``request_id`` may name the mentor's own incoming row or the learner's outgoing row.
        """
        decision = _parse_choice(Decision, decision, "decision")
        mentor = self.validator.get_mentor_or_404(mentor_account_id)

        addressed = self.ledger.get_official_request_for_mentor(mentor.id, request_id)
        if not addressed:
            raise NotFoundError(ErrorMessages.REQUEST_NOT_FOUND)
        if addressed.status != RequestStatus.PENDING:
            raise ConflictError(ErrorMessages.ALREADY_RESPONDED)
        learner_id = addressed.owner_learner_id if addressed.kind == RequestKind.OFFICIAL_OUTGOING \
            else addressed.counterpart_learner_id
        if learner_id is None:
            raise NotFoundError(ErrorMessages.REQUESTER_GONE)
        learner = self.validator.get_learner_by_id_or_404(learner_id, ErrorMessages.REQUESTER_GONE)

        accepted = decision == Decision.ACCEPTED
        if accepted and self.ledger.find_active_edge(EdgeKind.OFFICIAL_MENTOR, learner.id, mentor.id):
            raise ConflictError(ErrorMessages.ALREADY_CONNECTED)

        mentor_id = mentor.id
        mirrored = self.settings.OFFICIAL_MENTOR_MIRROR
        now = self.clock()
        fragment = LedgerFragment()

        # The learner's ledger is authoritative for official mentorships; the mentor side is the mirror
        def primary():
            outgoing = self.ledger.find_pending_request(RequestKind.OFFICIAL_OUTGOING, learner_id, mentor_id)
            if outgoing is not None:
                outgoing.status = decision.value
                outgoing.responded_at = now
            fragment.counterpart_request = outgoing
            if accepted:
                fragment.counterpart_edge = self.ledger.add_edge(
                    EdgeKind.OFFICIAL_MENTOR, learner_id, mentor_id, None, now)
            self.ledger.touch(learner)
            return fragment

        def mirror(_):
            mentor_row = self.directory.get_mentor_by_id(mentor_id)
            incoming = self.ledger.find_pending_request(RequestKind.OFFICIAL_INCOMING, mentor_id, learner_id)
            if incoming is not None:
                incoming.status = decision.value
                incoming.responded_at = now
            fragment.request = incoming
            if accepted:
                fragment.edge = self.ledger.add_edge(EdgeKind.OFFICIAL_MENTEE, mentor_id, learner_id, None, now)
            self.ledger.touch(mentor_row)

        def compensate(_):
            if fragment.counterpart_request is not None:
                fragment.counterpart_request.status = RequestStatus.PENDING.value
                fragment.counterpart_request.responded_at = None
            if fragment.counterpart_edge is not None:
                self.db.delete(fragment.counterpart_edge)
                fragment.counterpart_edge = None
            self.ledger.touch(learner)

        self._writer(f"Official request {request_id} {decision.value}").run(
            primary, mirror if mirrored else None, compensate)
        if not mirrored:
            fragment.request = fragment.counterpart_request
        logger.info(f"Mentor {mentor_id} {decision.value} official request {request_id} from learner {learner_id}")

        kind = NotificationKind.OFFICIAL_REQUEST_ACCEPTED if accepted else NotificationKind.OFFICIAL_REQUEST_REJECTED
        self._notify(kind, learner, mentor, None, request_id=request_id)
        if accepted:
            mentorship_id = fragment.counterpart_edge.id
            self._notify(NotificationKind.CONNECTION_ESTABLISHED, learner, mentor, None, mentorship_id=mentorship_id)
            self._notify(NotificationKind.CONNECTION_ESTABLISHED, mentor, learner, None, mentorship_id=mentorship_id)
        return fragment

    # ------------------------------------------------------------------ ending relationships

    def end_relationship(self, actor_account_id: int, edge_id: int, mode=EndMode.DEACTIVATE) -> LedgerFragment:
        """Deactivates or removes an edge owned by (or, for legacy official rows, addressed to) the actor"""
        mode = _parse_choice(EndMode, mode, "mode")
        edge, actor = self._locate_edge_for_actor(actor_account_id, edge_id)
        owns_row = edge.owner is actor
        variant = edge.variant
        mirrored = not variant.official or self.settings.OFFICIAL_MENTOR_MIRROR

        if mode == EndMode.DEACTIVATE:
            if not owns_row:
                raise InvalidStateError(ErrorMessages.OFFICIAL_DEACTIVATE_UNAVAILABLE)
            if not edge.is_active:
                raise InvalidStateError(ErrorMessages.EDGE_INACTIVE)

        # Captured up front: the row may be deleted by the primary write
        kind = EdgeKind(edge.kind)
        owner_id, counterpart_id, subject_id = edge.owner_id, edge.counterpart_id, edge.subject_id
        owner_profile = edge.owner
        counterpart_profile = edge.counterpart
        snapshot = {
            "connected_at": edge.connected_at, "last_interaction": edge.last_interaction,
            "rating_score": edge.rating_score, "rating_feedback": edge.rating_feedback, "rated_at": edge.rated_at,
            "was_active": edge.is_active,
        }
        now = self.clock()
        fragment = LedgerFragment(edge=edge)

        def primary():
            if mode == EndMode.DEACTIVATE:
                edge.is_active = False
                edge.ended_at = now
            else:
                self.db.delete(edge)
                fragment.edge = None
            self.ledger.touch(owner_profile)
            return fragment

        def mirror(_):
            mirror_edge = None
            if counterpart_id is not None and owner_id is not None:
                mirror_edge = self.ledger.find_active_edge(variant.mirror, counterpart_id, owner_id, subject_id)
            if mirror_edge is None:
                if snapshot["was_active"] and counterpart_id is not None:
                    logger.warning(f"No active mirror for edge {edge_id} ({kind.value}); left for reconciliation")
                return
            mirror_edge.is_active = False
            mirror_edge.ended_at = now
            self.ledger.touch(mirror_edge.owner)
            fragment.counterpart_edge = mirror_edge

        def compensate(_):
            if mode == EndMode.DEACTIVATE:
                edge.is_active = True
                edge.ended_at = None
            else:
                restored = self.ledger.add_edge(kind, owner_id, counterpart_id, subject_id, snapshot["connected_at"])
                restored.last_interaction = snapshot["last_interaction"]
                restored.rating_score = snapshot["rating_score"]
                restored.rating_feedback = snapshot["rating_feedback"]
                restored.rated_at = snapshot["rated_at"]
                restored.is_active = snapshot["was_active"]
            self.ledger.touch(owner_profile)

        self._writer(f"End edge {edge_id} ({mode.value})").run(
            primary, mirror if (mirrored and owns_row) else None, compensate)
        logger.info(f"Edge {edge_id} ({kind.value}) ended with mode {mode.value} by account {actor_account_id}")

        # The person on the other side of the relationship from the actor
        other = counterpart_profile if owns_row else owner_profile
        if other is not None:
            actor_mentors_other = variant.mentoring_side if owns_row else True
            note = NotificationKind.MENTEE_REMOVED if actor_mentors_other else NotificationKind.CONNECTION_ENDED
            subject = self.directory.get_subject(subject_id) if subject_id else None
            self._notify(note, other, actor, subject, mentorship_id=edge_id)
        return fragment

    def _locate_edge_for_actor(self, account_id: int, edge_id: int) -> Tuple[RelationshipEdge, object]:
        learner = self.directory.get_learner_profile(account_id)
        mentor = self.directory.get_mentor_profile(account_id)
        if learner is None and mentor is None:
            raise NotFoundError(ErrorMessages.LEARNER_NOT_FOUND)
        if learner is not None:
            edge = self.ledger.get_owned_edge(ProfileKind.LEARNER, learner.id, edge_id)
            if edge is not None:
                return edge, learner
        if mentor is not None:
            edge = self.ledger.get_owned_edge(ProfileKind.MENTOR, mentor.id, edge_id)
            if edge is None and not self.settings.OFFICIAL_MENTOR_MIRROR:
                # Legacy layout keeps official edges on the learner side only
                edge = self.ledger.get_official_edge_for_mentor(mentor.id, edge_id)
            if edge is not None:
                return edge, mentor
        raise NotFoundError(ErrorMessages.EDGE_NOT_FOUND)

    # ------------------------------------------------------------------ reads

    def get_incoming_requests(self, account_id: int, status: Optional[RequestStatus] = None) -> List[RelationshipRequest]:
        learner = self.validator.get_learner_or_404(account_id)
        return self.ledger.requests_owned_by(ProfileKind.LEARNER, learner.id, RequestKind.PEER_INCOMING, status)

    def get_outgoing_requests(self, account_id: int, status: Optional[RequestStatus] = None) -> List[RelationshipRequest]:
        learner = self.validator.get_learner_or_404(account_id)
        return self.ledger.requests_owned_by(ProfileKind.LEARNER, learner.id, RequestKind.PEER_OUTGOING, status)

    def get_current_mentors(self, account_id: int) -> List[RelationshipEdge]:
        learner = self.validator.get_learner_or_404(account_id)
        return self.ledger.edges_owned_by(ProfileKind.LEARNER, learner.id, [EdgeKind.PEER_MENTOR], active_only=True)

    def get_current_mentees(self, account_id: int) -> List[RelationshipEdge]:
        learner = self.validator.get_learner_or_404(account_id)
        return self.ledger.edges_owned_by(ProfileKind.LEARNER, learner.id, [EdgeKind.PEER_MENTEE], active_only=True)

    def get_official_requests(self, account_id: int) -> List[RelationshipRequest]:
        """Official requests visible to the account: sent ones for a learner, received ones for a mentor."""
        learner = self.directory.get_learner_profile(account_id)
        if learner is not None:
            return self.ledger.requests_owned_by(ProfileKind.LEARNER, learner.id, RequestKind.OFFICIAL_OUTGOING)
        mentor = self.validator.get_mentor_or_404(account_id)
        if self.settings.OFFICIAL_MENTOR_MIRROR:
            return self.ledger.requests_owned_by(ProfileKind.MENTOR, mentor.id, RequestKind.OFFICIAL_INCOMING)
        # Legacy layout: only learners hold the rows
        return self.ledger.requests_pointing_at(ProfileKind.MENTOR, mentor.id, RequestKind.OFFICIAL_OUTGOING)

    def get_current_official_mentors(self, account_id: int) -> List[RelationshipEdge]:
        learner = self.validator.get_learner_or_404(account_id)
        return self.ledger.edges_owned_by(ProfileKind.LEARNER, learner.id, [EdgeKind.OFFICIAL_MENTOR], active_only=True)

    def get_official_mentees(self, account_id: int) -> List[RelationshipEdge]:
        mentor = self.validator.get_mentor_or_404(account_id)
        if self.settings.OFFICIAL_MENTOR_MIRROR:
            return self.ledger.edges_owned_by(ProfileKind.MENTOR, mentor.id, [EdgeKind.OFFICIAL_MENTEE], active_only=True)
        edges = self.ledger.edges_pointing_at(ProfileKind.MENTOR, mentor.id, [EdgeKind.OFFICIAL_MENTOR])
        return [edge for edge in edges if edge.is_active]

    # ------------------------------------------------------------------ notifications

    def _notify(self, kind: NotificationKind, recipient, actor, subject: Optional[Subject], **ids):
        """Best-effort: the ledger change is already committed."""
        try:
            payload = {
                "actor_name": DirectoryService.resolve_display_name(actor),
                "subject_id": subject.id if subject else None,
                "subject_name": subject.name if subject else None,
                **ids,
            }
            self.notifier.emit(kind, recipient.user_id, payload, sender_account_id=actor.user_id)
        except Exception as e:
            logger.warning(f"Could not emit {kind.value} notification: {e}")
