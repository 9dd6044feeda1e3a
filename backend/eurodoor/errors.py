"""
Workflow error taxonomy.

Every service operation either returns the updated record or raises one of
these. The transaction is always rolled back before the error reaches the
caller (see services/concurrency.py), so a failed transition never leaves a
record half-updated.

    WorkflowError
    +-- NotFoundError            (404) id does not resolve
    +-- InvalidStateError        (409) transition not legal from current state
    +-- InsufficientStockError   (409) debit exceeds available quantity
    +-- InvalidInputError        (400) missing/malformed field, negative cost
    |   +-- InvalidPaymentCodeError
    +-- UnauthorizedError        (403) actor role/status check failed
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for domain errors raised by the service layer."""

    status_code = 400
    code = "WORKFLOW_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(WorkflowError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidStateError(WorkflowError):
    status_code = 409
    code = "INVALID_STATE"


class InsufficientStockError(WorkflowError):
    status_code = 409
    code = "INSUFFICIENT_STOCK"


class InvalidInputError(WorkflowError):
    """400-level input problem."""
    status_code = 400
    code = "INVALID_INPUT"


class InvalidPaymentCodeError(InvalidInputError):
    code = "INVALID_PAYMENT_CODE"


class UnauthorizedError(WorkflowError):
    status_code = 403
    code = "UNAUTHORIZED"


class ImmutableRecordError(WorkflowError):
    """Raised when an append-only record is updated or deleted."""
    status_code = 500
    code = "IMMUTABLE_RECORD"
