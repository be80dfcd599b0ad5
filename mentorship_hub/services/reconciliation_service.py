# mentorship_hub/services/reconciliation_service.py
"""
Finds and repairs ledger rows whose mirror is missing or disagrees.

Asymmetry is left behind by a ``PartialCommitError``, by deleting a learner
(counterpart references are cleared, not cascaded) and by rows written
before the official mirror was enabled.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import RelationshipEdge, RelationshipRequest
from ..config import get_settings
from ..core.clock import utcnow
from ..core.ledger import RequestStatus
from ..utils.ledger_utils import LedgerUtils

logger = logging.getLogger(__name__)


class OrphanKind(str, Enum):
    MISSING_MIRROR = "missing_mirror"
    ACTIVITY_MISMATCH = "activity_mismatch"
    COUNTERPART_GONE = "counterpart_gone"
    ONE_SIDED_REQUEST = "one_sided_request"


@dataclass
class Orphan:
    kind: OrphanKind
    row: Union[RelationshipEdge, RelationshipRequest]
    mirror: Optional[Union[RelationshipEdge, RelationshipRequest]] = None

    def describe(self) -> str:
        return f"{self.kind.value}: {self.row!r}"


@dataclass
class RepairReport:
    repaired: List[Orphan] = field(default_factory=list)
    failed: List[Orphan] = field(default_factory=list)


class ReconciliationService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()
        self.ledger = LedgerUtils(db)

    def _is_mirrored(self, row) -> bool:
        return not row.variant.official or self.settings.OFFICIAL_MENTOR_MIRROR

    def find_orphans(self) -> List[Orphan]:
        orphans = []

        for edge in self.db.query(RelationshipEdge).order_by(RelationshipEdge.id).all():
            if edge.counterpart_id is None:
                if edge.is_active:
                    orphans.append(Orphan(OrphanKind.COUNTERPART_GONE, edge))
                continue
            if not self._is_mirrored(edge) or not edge.is_active:
                continue
            mirror = self.ledger.find_mirror_edge(edge)
            if mirror is None:
                orphans.append(Orphan(OrphanKind.MISSING_MIRROR, edge))
            elif not mirror.is_active:
                # Deactivation is terminal; the active side is the stale one
                orphans.append(Orphan(OrphanKind.ACTIVITY_MISMATCH, edge, mirror))

        pending = self.db.query(RelationshipRequest).filter(
            RelationshipRequest.status == RequestStatus.PENDING.value
        ).order_by(RelationshipRequest.id).all()
        for request in pending:
            if request.counterpart_id is None:
                orphans.append(Orphan(OrphanKind.ONE_SIDED_REQUEST, request))
            elif self._is_mirrored(request) and self.ledger.find_pending_mirror_request(request) is None:
                # An answered mirror means the response only reached one side
                settled = self.ledger.find_settled_mirror_request(request)
                orphans.append(Orphan(OrphanKind.ONE_SIDED_REQUEST, request, settled))

        logger.info(f"Reconciliation scan found {len(orphans)} orphaned ledger rows")
        return orphans

    def repair(self, orphans: List[Orphan]) -> RepairReport:
        report = RepairReport()
        for orphan in orphans:
            try:
                self._repair_one(orphan)
                self.db.commit()
                report.repaired.append(orphan)
                logger.info(f"Repaired {orphan.describe()}")
            except SQLAlchemyError as e:
                self.db.rollback()
                report.failed.append(orphan)
                logger.error(f"Could not repair {orphan.describe()}: {e}")
        return report

    def _repair_one(self, orphan: Orphan):
        now = utcnow()
        row = orphan.row

        if orphan.kind == OrphanKind.ONE_SIDED_REQUEST:
            if orphan.mirror is not None:
                row.status = orphan.mirror.status
                row.responded_at = orphan.mirror.responded_at or now
            else:
                row.status = RequestStatus.REJECTED.value
                row.responded_at = now
            self.ledger.touch(row.owner)
            return

        if orphan.kind == OrphanKind.MISSING_MIRROR and row.owner is not None and row.counterpart is not None:
            variant = row.variant
            rebuilt = self.ledger.add_edge(variant.mirror, row.counterpart_id, row.owner_id, row.subject_id, row.connected_at)
            rebuilt.last_interaction = row.last_interaction
            self.ledger.touch(row.counterpart)
            return

        row.is_active = False
        row.ended_at = now
        self.ledger.touch(row.owner)


if __name__ == "__main__":
    from ..database import SessionLocal

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    db = SessionLocal()
    try:
        service = ReconciliationService(db)
        result = service.repair(service.find_orphans())
        logger.info(f"Reconciliation finished: {len(result.repaired)} repaired, {len(result.failed)} failed")
    finally:
        db.close()
