"""
Typed failures raised by the ledger engine.

Every failure the engine can produce is one of these classes.
The API layer turns them into HTTP responses in one place
(see main.py); services never return error codes.

    LedgerError
    ├── NotFoundError (404)
    ├── ForbiddenError (403)
    ├── InvalidRequestError (400)
    ├── PolicyViolationError (409)
    ├── ConflictError (409)
    ├── InvalidStateError (409)
    ├── InsufficientFundsError (422)
    └── IndeterminateError (503)
"""

from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """
    Base class for all engine failures.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status the API layer responds with
        error_code: Machine-readable error code
        details: Extra context for the caller
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }


class NotFoundError(LedgerError):
    """An account, user or ledger entry does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"


class ForbiddenError(LedgerError):
    """The operator may not act on the account, or the account is inactive."""

    status_code = 403
    error_code = "FORBIDDEN"


class InvalidRequestError(LedgerError):
    """Missing field, non-positive amount or unsupported type."""

    status_code = 400
    error_code = "INVALID_REQUEST"


class PolicyViolationError(LedgerError):
    """The change would break an ownership rule."""

    status_code = 409
    error_code = "POLICY_VIOLATION"


class ConflictError(LedgerError):
    """A unique value is already taken."""

    status_code = 409
    error_code = "CONFLICT"


class InvalidStateError(LedgerError):
    """
    The requested write would leave a record in an invalid state:
    a negative balance, a disallowed status transition or a change
    to an immutable ledger entry.
    """

    status_code = 409
    error_code = "INVALID_STATE"


class InsufficientFundsError(LedgerError):
    """The debit would drive the balance below zero."""

    status_code = 422
    error_code = "INSUFFICIENT_FUNDS"

    def __init__(self, balance: Decimal, requested: Decimal) -> None:
        super().__init__(
            "Insufficient funds",
            details={"balance": str(balance), "requested": str(requested)},
        )
        self.balance = balance
        self.requested = requested


class IndeterminateError(LedgerError):
    """
    The data store failed inside the atomic unit.

    The caller must not assume the operation did or did not apply;
    look up the transaction group id, then retry with the same id.
    """

    status_code = 503
    error_code = "INDETERMINATE"
