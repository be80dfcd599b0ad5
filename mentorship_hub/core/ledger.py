# mentorship_hub/core/ledger.py
"""
Relationship ledger vocabulary.

Every relationship row is a ``RelationshipEdge`` and every proposal is a
``RelationshipRequest``; the kind tag on the row selects its variant, which
says who owns the row, what the counterpart is, whether a subject is
required and which kind the mirrored row on the other side has.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Decision(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class EndMode(str, Enum):
    DEACTIVATE = "deactivate"
    REMOVE_COMPLETELY = "remove_completely"


class ProfileKind(str, Enum):
    LEARNER = "learner"
    MENTOR = "mentor"


class EdgeKind(str, Enum):
    PEER_MENTOR = "peer_mentor"          # learner's row pointing at the learner who mentors them
    PEER_MENTEE = "peer_mentee"          # learner's row pointing at the learner they mentor
    OFFICIAL_MENTOR = "official_mentor"  # learner's row pointing at a professional mentor
    OFFICIAL_MENTEE = "official_mentee"  # professional mentor's row pointing at a learner

    @property
    def variant(self) -> "EdgeVariant":
        return EDGE_VARIANTS[self]


class RequestKind(str, Enum):
    PEER_OUTGOING = "peer_outgoing"
    PEER_INCOMING = "peer_incoming"
    OFFICIAL_OUTGOING = "official_outgoing"
    OFFICIAL_INCOMING = "official_incoming"

    @property
    def variant(self) -> "RequestVariant":
        return REQUEST_VARIANTS[self]


@dataclass(frozen=True)
class EdgeVariant:
    owner: ProfileKind
    counterpart: ProfileKind
    requires_subject: bool
    mirror: EdgeKind
    official: bool
    mentoring_side: bool  # the owner mentors the counterpart


@dataclass(frozen=True)
class RequestVariant:
    owner: ProfileKind
    counterpart: ProfileKind
    requires_subject: bool
    mirror: RequestKind
    official: bool
    incoming: bool
    edge_kind: EdgeKind  # edge the owner receives when the request is accepted


EDGE_VARIANTS = {
    EdgeKind.PEER_MENTOR: EdgeVariant(
        ProfileKind.LEARNER, ProfileKind.LEARNER, True, EdgeKind.PEER_MENTEE, False, False),
    EdgeKind.PEER_MENTEE: EdgeVariant(
        ProfileKind.LEARNER, ProfileKind.LEARNER, True, EdgeKind.PEER_MENTOR, False, True),
    EdgeKind.OFFICIAL_MENTOR: EdgeVariant(
        ProfileKind.LEARNER, ProfileKind.MENTOR, False, EdgeKind.OFFICIAL_MENTEE, True, False),
    EdgeKind.OFFICIAL_MENTEE: EdgeVariant(
        ProfileKind.MENTOR, ProfileKind.LEARNER, False, EdgeKind.OFFICIAL_MENTOR, True, True),
}

REQUEST_VARIANTS = {
    RequestKind.PEER_OUTGOING: RequestVariant(
        ProfileKind.LEARNER, ProfileKind.LEARNER, True, RequestKind.PEER_INCOMING,
        False, False, EdgeKind.PEER_MENTOR),
    RequestKind.PEER_INCOMING: RequestVariant(
        ProfileKind.LEARNER, ProfileKind.LEARNER, True, RequestKind.PEER_OUTGOING,
        False, True, EdgeKind.PEER_MENTEE),
    RequestKind.OFFICIAL_OUTGOING: RequestVariant(
        ProfileKind.LEARNER, ProfileKind.MENTOR, False, RequestKind.OFFICIAL_INCOMING,
        True, False, EdgeKind.OFFICIAL_MENTOR),
    RequestKind.OFFICIAL_INCOMING: RequestVariant(
        ProfileKind.MENTOR, ProfileKind.LEARNER, False, RequestKind.OFFICIAL_OUTGOING,
        True, True, EdgeKind.OFFICIAL_MENTEE),
}


def owner_columns(kind: ProfileKind, profile_id: Optional[int]) -> dict:
    """Column values that place ``profile_id`` in the owner slot of a ledger row."""
    if kind == ProfileKind.LEARNER:
        return {"owner_learner_id": profile_id}
    return {"owner_mentor_id": profile_id}


def counterpart_columns(kind: ProfileKind, profile_id: Optional[int]) -> dict:
    """Column values that place ``profile_id`` in the counterpart slot of a ledger row."""
    if kind == ProfileKind.LEARNER:
        return {"counterpart_learner_id": profile_id}
    return {"counterpart_mentor_id": profile_id}
