# mentorship_hub/exceptions.py
class BusinessLogicError(Exception):
    """Base exception for business logic errors.

    Every subclass carries a stable machine-readable ``kind`` and the HTTP
    status the routers map it to.
    """
    kind = "business_error"
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        return {"kind": self.kind, "message": self.message}

class NotFoundError(BusinessLogicError):
    """Raised when a profile, subject, request or edge is not found"""
    kind = "not_found"
    status_code = 404

class UnauthorizedError(BusinessLogicError):
    """Raised when user lacks authorization"""
    kind = "unauthorized"
    status_code = 403

class ConflictError(BusinessLogicError):
    """Raised on duplicates: request already pending or answered, edge already rated, mentor already assigned"""
    kind = "conflict"
    status_code = 409

class ConcurrentModificationError(ConflictError):
    """Raised when a ledger revision changed between read and write"""
    pass

class CapacityExceededError(ConflictError):
    """Raised when mentor/mentee capacity is exceeded"""
    kind = "capacity_exceeded"

class InvalidStateError(BusinessLogicError):
    """Raised when the current state does not allow the action"""
    kind = "invalid_state"
    status_code = 422

class ValidationError(BusinessLogicError):
    """Raised for malformed input values"""
    kind = "validation"
    status_code = 400

class PartialCommitError(BusinessLogicError):
    """Raised when the mirrored side of a ledger change could not be written
    after the primary side committed. The ledger is asymmetric until
    reconciliation repairs it."""
    kind = "partial_commit"
    status_code = 500

class ProfileAlreadyExistsError(ConflictError):
    """Raised when trying to create duplicate profile"""
    pass
