# mentorship_hub/core/mirrored_write.py
"""
Two-sided ledger writes without a cross-row transaction.

The owning side is committed first, the mirrored side second. A mirror that
keeps failing is undone by a compensating write; if even that fails the
ledger is left asymmetric and ``PartialCommitError`` tells the caller so the
reconciliation pass can pick it up.
"""
import logging
from typing import Callable, Generic, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..constants import ErrorMessages
from ..exceptions import BusinessLogicError, ConcurrentModificationError, PartialCommitError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MirroredWrite(Generic[T]):
    def __init__(self, db: Session, description: str, retries: int = 2):
        self.db = db
        self.description = description
        self.retries = max(0, retries)

    def run(
        self,
        primary: Callable[[], T],
        mirror: Optional[Callable[[T], None]] = None,
        compensate: Optional[Callable[[T], None]] = None,
    ) -> T:
        result = self._commit_primary(primary)
        if mirror is None:
            return result

        last_error = None
        for attempt in range(1, self.retries + 2):
            try:
                mirror(result)
                self.db.commit()
                return result
            except SQLAlchemyError as e:
                # Includes StaleDataError: the mirrored ledger moved under us. mirror() re-reads on retry.
                self.db.rollback()
                last_error = e
                logger.warning(f"{self.description}: mirror write attempt {attempt} failed: {e}")
            except Exception as e:
                self.db.rollback()
                last_error = e
                logger.error(f"{self.description}: mirror write aborted: {e}", exc_info=True)
                break

        try:
            if compensate is None:
                raise RuntimeError("no compensation available")
            compensate(result)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.critical(
                f"{self.description}: PARTIAL COMMIT - primary side committed, mirror and compensation failed "
                f"(mirror error: {last_error}; compensation error: {e})"
            )
            raise PartialCommitError(
                f"{self.description} was only saved on one side; it will be repaired by reconciliation"
            ) from e

        logger.error(f"{self.description}: mirror write failed, primary side compensated")
        if isinstance(last_error, BusinessLogicError):
            raise last_error
        raise ConcurrentModificationError(ErrorMessages.CONCURRENT_MODIFICATION) from last_error

    def _commit_primary(self, primary: Callable[[], T]) -> T:
        try:
            result = primary()
            self.db.commit()
            return result
        except BusinessLogicError:
            self.db.rollback()
            raise
        except (StaleDataError, IntegrityError) as e:
            self.db.rollback()
            logger.warning(f"{self.description}: concurrent modification on primary write: {e}")
            raise ConcurrentModificationError(ErrorMessages.CONCURRENT_MODIFICATION)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{self.description}: database error on primary write: {e}")
            raise ConcurrentModificationError("The change could not be saved, please retry")
