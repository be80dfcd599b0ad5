# mentorship_hub/utils/ledger_utils.py
from datetime import datetime
from typing import Iterable, List, Optional
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..models import RelationshipEdge, RelationshipRequest
from ..core.clock import utcnow
from ..core.ledger import (
    EdgeKind, RequestKind, RequestStatus, ProfileKind, owner_columns, counterpart_columns
)


def _owner_clause(model, kind: ProfileKind, profile_id: int):
    if kind == ProfileKind.LEARNER:
        return model.owner_learner_id == profile_id
    return model.owner_mentor_id == profile_id


def _counterpart_clause(model, kind: ProfileKind, profile_id: int):
    if kind == ProfileKind.LEARNER:
        return model.counterpart_learner_id == profile_id
    return model.counterpart_mentor_id == profile_id


def _subject_clause(model, subject_id: Optional[int]):
    if subject_id is None:
        return model.subject_id.is_(None)
    return model.subject_id == subject_id


class LedgerUtils:
    """Row-level access to the relationship ledger."""

    def __init__(self, db: Session):
        self.db = db

    # --- edges ---

    def add_edge(self, kind: EdgeKind, owner_id: int, counterpart_id: int,
                 subject_id: Optional[int] = None, connected_at: Optional[datetime] = None) -> RelationshipEdge:
        variant = kind.variant
        now = connected_at or utcnow()
        edge = RelationshipEdge(
            kind=kind.value,
            subject_id=subject_id if variant.requires_subject else None,
            connected_at=now,
            last_interaction=now,
            is_active=True,
            **owner_columns(variant.owner, owner_id),
            **counterpart_columns(variant.counterpart, counterpart_id),
        )
        self.db.add(edge)
        return edge

    def get_owned_edge(self, owner_kind: ProfileKind, owner_id: int, edge_id: int) -> Optional[RelationshipEdge]:
        return self.db.query(RelationshipEdge).filter(
            RelationshipEdge.id == edge_id,
            _owner_clause(RelationshipEdge, owner_kind, owner_id),
        ).first()

    def edges_owned_by(self, owner_kind: ProfileKind, owner_id: int,
                       kinds: Iterable[EdgeKind], active_only: bool = False) -> List[RelationshipEdge]:
        query = self.db.query(RelationshipEdge).filter(
            _owner_clause(RelationshipEdge, owner_kind, owner_id),
            RelationshipEdge.kind.in_([kind.value for kind in kinds]),
        )
        if active_only:
            query = query.filter(RelationshipEdge.is_active.is_(True))
        return query.order_by(RelationshipEdge.connected_at.desc()).all()

    def edges_pointing_at(self, counterpart_kind: ProfileKind, counterpart_id: int,
                          kinds: Iterable[EdgeKind]) -> List[RelationshipEdge]:
        return self.db.query(RelationshipEdge).filter(
            _counterpart_clause(RelationshipEdge, counterpart_kind, counterpart_id),
            RelationshipEdge.kind.in_([kind.value for kind in kinds]),
        ).order_by(RelationshipEdge.connected_at.desc()).all()

    def find_mirror_edge(self, edge: RelationshipEdge) -> Optional[RelationshipEdge]:
        """The counterpart's row for the same relationship, active rows first."""
        variant = edge.variant
        if edge.counterpart_id is None or edge.owner_id is None:
            return None
        return self.db.query(RelationshipEdge).filter(
            RelationshipEdge.kind == variant.mirror.value,
            _owner_clause(RelationshipEdge, variant.counterpart, edge.counterpart_id),
            _counterpart_clause(RelationshipEdge, variant.owner, edge.owner_id),
            _subject_clause(RelationshipEdge, edge.subject_id),
        ).order_by(RelationshipEdge.is_active.desc(), RelationshipEdge.connected_at.desc()).first()

    def find_active_edge(self, kind: EdgeKind, owner_id: int, counterpart_id: int,
                         subject_id: Optional[int] = None) -> Optional[RelationshipEdge]:
        variant = kind.variant
        return self.db.query(RelationshipEdge).filter(
            RelationshipEdge.kind == kind.value,
            _owner_clause(RelationshipEdge, variant.owner, owner_id),
            _counterpart_clause(RelationshipEdge, variant.counterpart, counterpart_id),
            _subject_clause(RelationshipEdge, subject_id if variant.requires_subject else None),
            RelationshipEdge.is_active.is_(True),
        ).first()

    # --- requests ---

    def add_request(self, kind: RequestKind, owner_id: int, counterpart_id: int,
                    subject_id: Optional[int] = None, message: Optional[str] = None,
                    requested_at: Optional[datetime] = None) -> RelationshipRequest:
        variant = kind.variant
        request = RelationshipRequest(
            kind=kind.value,
            subject_id=subject_id if variant.requires_subject else None,
            message=message,
            status=RequestStatus.PENDING.value,
            requested_at=requested_at or utcnow(),
            **owner_columns(variant.owner, owner_id),
            **counterpart_columns(variant.counterpart, counterpart_id),
        )
        self.db.add(request)
        return request

    def get_owned_request(self, owner_kind: ProfileKind, owner_id: int, request_id: int,
                          kind: RequestKind) -> Optional[RelationshipRequest]:
        return self.db.query(RelationshipRequest).filter(
            RelationshipRequest.id == request_id,
            RelationshipRequest.kind == kind.value,
            _owner_clause(RelationshipRequest, owner_kind, owner_id),
        ).first()

    def requests_owned_by(self, owner_kind: ProfileKind, owner_id: int, kind: RequestKind,
                          status: Optional[RequestStatus] = None) -> List[RelationshipRequest]:
        query = self.db.query(RelationshipRequest).filter(
            _owner_clause(RelationshipRequest, owner_kind, owner_id),
            RelationshipRequest.kind == kind.value,
        )
        if status is not None:
            query = query.filter(RelationshipRequest.status == status.value)
        return query.order_by(RelationshipRequest.requested_at.desc()).all()

    def requests_pointing_at(self, counterpart_kind: ProfileKind, counterpart_id: int, kind: RequestKind,
                             status: Optional[RequestStatus] = None) -> List[RelationshipRequest]:
        query = self.db.query(RelationshipRequest).filter(
            _counterpart_clause(RelationshipRequest, counterpart_kind, counterpart_id),
            RelationshipRequest.kind == kind.value,
        )
        if status is not None:
            query = query.filter(RelationshipRequest.status == status.value)
        return query.order_by(RelationshipRequest.requested_at.desc()).all()

    def find_pending_request(self, kind: RequestKind, owner_id: int, counterpart_id: int,
                             subject_id: Optional[int] = None) -> Optional[RelationshipRequest]:
        variant = kind.variant
        return self.db.query(RelationshipRequest).filter(
            RelationshipRequest.kind == kind.value,
            _owner_clause(RelationshipRequest, variant.owner, owner_id),
            _counterpart_clause(RelationshipRequest, variant.counterpart, counterpart_id),
            _subject_clause(RelationshipRequest, subject_id if variant.requires_subject else None),
            RelationshipRequest.status == RequestStatus.PENDING.value,
        ).order_by(RelationshipRequest.requested_at.asc()).first()

    def get_official_request_for_mentor(self, mentor_id: int, request_id: int) -> Optional[RelationshipRequest]:
        """A request row addressed to the mentor: its own incoming row, or a learner's outgoing row."""
        return self.db.query(RelationshipRequest).filter(
            RelationshipRequest.id == request_id,
            or_(
                and_(RelationshipRequest.kind == RequestKind.OFFICIAL_INCOMING.value,
                     RelationshipRequest.owner_mentor_id == mentor_id),
                and_(RelationshipRequest.kind == RequestKind.OFFICIAL_OUTGOING.value,
                     RelationshipRequest.counterpart_mentor_id == mentor_id),
            ),
        ).first()

    def get_official_edge_for_mentor(self, mentor_id: int, edge_id: int) -> Optional[RelationshipEdge]:
        """A learner-owned official edge pointing at the mentor (the only row in the legacy layout)."""
        return self.db.query(RelationshipEdge).filter(
            RelationshipEdge.id == edge_id,
            RelationshipEdge.kind == EdgeKind.OFFICIAL_MENTOR.value,
            RelationshipEdge.counterpart_mentor_id == mentor_id,
        ).first()

    def find_pending_mirror_request(self, request: RelationshipRequest) -> Optional[RelationshipRequest]:
        """The other side's pending row, matched by counterpart + subject; ids differ per side."""
        if request.counterpart_id is None or request.owner_id is None:
            return None
        mirror_kind = request.variant.mirror
        return self.find_pending_request(mirror_kind, request.counterpart_id, request.owner_id, request.subject_id)

    def find_settled_mirror_request(self, request: RelationshipRequest) -> Optional[RelationshipRequest]:
        """The other side's answered row for the same exchange, if one side was answered and the other was not."""
        if request.counterpart_id is None or request.owner_id is None:
            return None
        mirror_kind = request.variant.mirror
        variant = mirror_kind.variant
        # Both sides are written with the same requested_at, so older exchanges drop out
        return self.db.query(RelationshipRequest).filter(
            RelationshipRequest.kind == mirror_kind.value,
            _owner_clause(RelationshipRequest, variant.owner, request.counterpart_id),
            _counterpart_clause(RelationshipRequest, variant.counterpart, request.owner_id),
            _subject_clause(RelationshipRequest, request.subject_id if variant.requires_subject else None),
            RelationshipRequest.status != RequestStatus.PENDING.value,
            RelationshipRequest.requested_at >= request.requested_at,
        ).order_by(RelationshipRequest.requested_at.asc()).first()

    # --- optimistic versioning ---

    def touch(self, profile) -> None:
        """Marks the owning profile dirty so the flush bumps and checks its revision."""
        profile.ledger_updated_at = utcnow()
