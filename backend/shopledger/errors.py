# Overview: Typed failures raised by the ledger, mutation, metrics and recommendation services.

"""
Error taxonomy (authoritative)

- Services raise these; they never return sentinel values for failures.
- Multi-row operations roll back before the error leaves the service.
- http_status is only read by the request layer.
"""


class LedgerError(Exception):
    """Base class for ledger failures."""
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "details": self.details}


class NotFound(LedgerError):
    """Missing product, supplier, category, sale or purchase id."""
    http_status = 404


class ConstraintViolation(LedgerError):
    """Uniqueness, foreign-key or append-only violation."""
    http_status = 409


class InvalidQuantity(LedgerError):
    """Quantity <= 0 where a positive quantity is required."""


class InsufficientStock(LedgerError):
    """A sale would drive current stock below zero."""
    http_status = 409


class InvalidAmount(LedgerError):
    """Negative or malformed money."""


class DegenerateMargin(LedgerError):
    """Profit margin requested for a product with a zero selling price."""


class InvalidState(LedgerError):
    """Purchase lifecycle transition not allowed from the current status."""
    http_status = 409
