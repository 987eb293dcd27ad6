# Overview: ORM-level guard that keeps ledger rows append-only.

"""
Append-only enforcement.

StockMovement is the ledger's source of truth; sales and purchase lines are
financial records. Once flushed, none of them may be updated or deleted
through the ORM. A before_flush listener inspects the pending unit of work
and aborts the flush with ConstraintViolation before any SQL is emitted.

Bulk Core statements (e.g. table.delete() used by test cleanup and
`flask system reset-db`) are not ORM flushes and are not intercepted.
"""

from sqlalchemy import event
from sqlalchemy.orm import Session

from .errors import ConstraintViolation


def _append_only_models() -> tuple:
    # Inline import avoids a models <-> immutability cycle at import time.
    from .models import PurchaseItem, SaleItem, Sale, StockMovement
    return (StockMovement, Sale, SaleItem, PurchaseItem)


def _reject_ledger_rewrites(session, flush_context, instances):
    protected = _append_only_models()

    for obj in list(session.deleted):
        if isinstance(obj, protected):
            raise ConstraintViolation(
                f"{type(obj).__name__} rows are append-only and cannot be deleted",
                details={"entity": type(obj).__name__, "id": obj.id},
            )

    for obj in list(session.dirty):
        if not isinstance(obj, protected):
            continue
        if session.is_modified(obj, include_collections=False):
            raise ConstraintViolation(
                f"{type(obj).__name__} rows are append-only and cannot be modified",
                details={"entity": type(obj).__name__, "id": obj.id},
            )


def register_immutability_listeners() -> None:
    """Install the guard once per process (safe to call repeatedly)."""
    if not event.contains(Session, "before_flush", _reject_ledger_rewrites):
        event.listen(Session, "before_flush", _reject_ledger_rewrites)
