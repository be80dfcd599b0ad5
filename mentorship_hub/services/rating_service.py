# mentorship_hub/services/rating_service.py
import logging
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import RelationshipEdge
from ..config import get_settings
from ..constants import ErrorMessages
from ..core import rating_gate
from ..core.clock import utcnow
from ..core.ledger import EdgeKind, ProfileKind
from ..directory import DirectoryService
from ..exceptions import ConcurrentModificationError, NotFoundError
from ..utils.ledger_utils import LedgerUtils
from .notification_service import NotificationKind, NotificationService

logger = logging.getLogger(__name__)

LEARNER_RATABLE_KINDS = (EdgeKind.PEER_MENTOR, EdgeKind.PEER_MENTEE, EdgeKind.OFFICIAL_MENTOR)
MENTOR_RATABLE_KINDS = (EdgeKind.OFFICIAL_MENTEE,)


def _average(edges: List[RelationshipEdge]) -> float:
    if not edges:
        return 0
    return sum(edge.rating_score for edge in edges) / len(edges)


class RatingService:
    def __init__(self, db: Session, notifier: Optional[NotificationService] = None, clock=utcnow):
        self.db = db
        self.settings = get_settings()
        self.ledger = LedgerUtils(db)
        self.directory = DirectoryService(db)
        self.notifier = notifier or NotificationService(db)
        self.clock = clock

    def _locate_rater_edge(self, rater_account_id: int, edge_id: int):
        learner = self.directory.get_learner_profile(rater_account_id)
        if learner is not None:
            edge = self.ledger.get_owned_edge(ProfileKind.LEARNER, learner.id, edge_id)
            if edge is not None and edge.kind in LEARNER_RATABLE_KINDS:
                return edge, learner
        mentor = self.directory.get_mentor_profile(rater_account_id)
        if mentor is not None:
            edge = self.ledger.get_owned_edge(ProfileKind.MENTOR, mentor.id, edge_id)
            if edge is not None and edge.kind in MENTOR_RATABLE_KINDS:
                return edge, mentor
        raise NotFoundError(ErrorMessages.EDGE_NOT_FOUND)

    def rate(self, rater_account_id: int, edge_id: int, score: int, feedback: Optional[str] = None) -> RelationshipEdge:
        """Sets the one-time rating on an edge owned by the rater."""
        edge, rater = self._locate_rater_edge(rater_account_id, edge_id)
        now = self.clock()
        feedback = rating_gate.validate_rating_input(score, feedback)
        rating_gate.check_ratable(edge, self.settings.RATING_MIN_AGE_DAYS, now)

        edge.rating_score = score
        edge.rating_feedback = feedback
        edge.rated_at = now
        edge.last_interaction = now
        self.ledger.touch(rater)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Rating edge {edge_id} failed: {e}")
            raise ConcurrentModificationError(ErrorMessages.CONCURRENT_MODIFICATION)
        self.db.refresh(edge)
        logger.info(f"Account {rater_account_id} rated edge {edge_id} ({edge.kind}) with {score}/5")

        counterpart = edge.counterpart
        if counterpart is not None:
            self.notifier.emit(
                NotificationKind.RATING_RECEIVED,
                counterpart.user_id,
                {
                    "actor_name": DirectoryService.resolve_display_name(rater),
                    "score": score,
                    "mentorship_id": edge.id,
                },
                sender_account_id=rater_account_id,
            )
        return edge

    def pending_ratable(self, account_id: int) -> List[Dict[str, Any]]:
        """Active, unrated edges old enough to be rated, with their age in days."""
        now = self.clock()
        edges = self._owned_ratable_edges(account_id)
        return [
            {"edge": edge, "days_since_connection": rating_gate.days_since_connection(edge, now)}
            for edge in edges
            if rating_gate.is_ratable(edge, self.settings.RATING_MIN_AGE_DAYS, now)
        ]

    def given_ratings(self, account_id: int) -> List[RelationshipEdge]:
        return [edge for edge in self._owned_ratable_edges(account_id) if edge.is_rated]

    def received_ratings(self, account_id: int) -> Dict[str, List[RelationshipEdge]]:
        """Ratings mentees left for this account, as a peer mentor and as an official mentor."""
        received = {"student_mentor": [], "official_mentor": []}
        learner = self.directory.get_learner_profile(account_id)
        if learner is not None:
            edges = self.ledger.edges_pointing_at(ProfileKind.LEARNER, learner.id, [EdgeKind.PEER_MENTOR])
            received["student_mentor"] = [edge for edge in edges if edge.is_rated]
        mentor = self.directory.get_mentor_profile(account_id)
        if mentor is not None:
            edges = self.ledger.edges_pointing_at(ProfileKind.MENTOR, mentor.id, [EdgeKind.OFFICIAL_MENTOR])
            received["official_mentor"] = [edge for edge in edges if edge.is_rated]
        return received

    def average_rating(self, account_id: int) -> Dict[str, Dict[str, float]]:
        received = self.received_ratings(account_id)
        student, official = received["student_mentor"], received["official_mentor"]
        return {
            "average": {
                "student_mentor": _average(student),
                "official_mentor": _average(official),
                "overall": _average(student + official),
            },
            "total": {
                "student_mentor": len(student),
                "official_mentor": len(official),
                "overall": len(student) + len(official),
            },
        }

    def _owned_ratable_edges(self, account_id: int) -> List[RelationshipEdge]:
        edges = []
        learner = self.directory.get_learner_profile(account_id)
        if learner is not None:
            edges.extend(self.ledger.edges_owned_by(ProfileKind.LEARNER, learner.id, LEARNER_RATABLE_KINDS))
        mentor = self.directory.get_mentor_profile(account_id)
        if mentor is not None:
            edges.extend(self.ledger.edges_owned_by(ProfileKind.MENTOR, mentor.id, MENTOR_RATABLE_KINDS))
        if learner is None and mentor is None:
            raise NotFoundError(ErrorMessages.LEARNER_NOT_FOUND)
        return edges
