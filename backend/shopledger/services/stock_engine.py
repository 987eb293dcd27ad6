# Overview: Stock mutation engine; the only writer of Product.current_stock.

from __future__ import annotations

from ..errors import ConstraintViolation, InsufficientStock, InvalidQuantity, InvalidState
from ..models import (
    PAYMENT_METHODS,
    PURCHASE_STATUSES,
    STATUS_CANCELLED,
    STATUS_PENDING,
    STATUS_RECEIVED,
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_IN,
    MOVEMENT_OUT,
    Product,
    Purchase,
    PurchaseItem,
    Sale,
    SaleItem,
)
from ..money import check_minor_units
from ..time_utils import utcnow
from .concurrency import run_with_retry
from .ledger_store import LedgerStore, adjustment_note
from .schemas import LineItemInput, PurchaseInput, SaleInput

"""
Stock Mutation Invariants (authoritative)

Atomicity:
- record_sale, record_purchase, receive_purchase and adjust_stock each run in
  ONE transaction: header, items, stock updates and movements commit together
  or not at all. Any failure rolls the session back before the error escapes.

Sales:
- Never oversell: a line that would take current_stock below zero raises
  InsufficientStock. Repeated lines for one product accumulate.
- unit price defaults to the product's selling price; subtotal to qty * unit.

Purchases:
- Only RECEIVED purchases post stock. PENDING waits for receive_purchase;
  CANCELLED never posts.
- Posting overwrites buying_price_cents with the line's unit price (last price wins).

Adjustments:
- new_stock = max(0, current_stock + delta). The movement records abs(delta);
  notes carry the signed delta and, when clamped, the applied change.
- |delta| and line quantities are capped at MAX_QUANTITY.
"""

MAX_QUANTITY = 1_000_000_000


def _require_quantity(value, field: str = "quantity") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQuantity(f"{field} must be an integer", details={"field": field})
    if value <= 0:
        raise InvalidQuantity(f"{field} must be > 0", details={"field": field, "value": value})
    if value > MAX_QUANTITY:
        raise InvalidQuantity(f"{field} must be <= {MAX_QUANTITY}", details={"field": field, "value": value})
    return value


def _validate_items(items) -> list[LineItemInput]:
    items = list(items or [])
    if not items:
        raise InvalidQuantity("At least one item is required")
    for item in items:
        _require_quantity(item.quantity)
    return items


class StockMutationEngine:
    """Sell, purchase and adjust; every public method is all-or-nothing."""

    def __init__(self, session, store: LedgerStore | None = None):
        self.session = session
        self.store = store or LedgerStore(session)

    def _price_line(self, item: LineItemInput, default_unit_cents: int) -> tuple[int, int]:
        unit = default_unit_cents if item.unit_price_cents is None else item.unit_price_cents
        unit = check_minor_units(unit, field="unit_price_cents")
        if item.subtotal_cents is None:
            subtotal = unit * item.quantity
        else:
            subtotal = item.subtotal_cents
        return unit, check_minor_units(subtotal, field="subtotal_cents")

    # ------------------------------------------------------------------
    # sales
    # ------------------------------------------------------------------

    def record_sale(self, sale: SaleInput, items) -> Sale:
        items = _validate_items(items)
        if sale.payment_method not in PAYMENT_METHODS:
            raise ConstraintViolation(
                f"payment_method must be one of {', '.join(PAYMENT_METHODS)}",
                details={"payment_method": sale.payment_method},
            )

        def _op():
            priced = []
            for item in items:
                product = self.store.get_product(item.product_id, lock=True)
                unit, subtotal = self._price_line(item, product.selling_price_cents)
                priced.append((product, item.quantity, unit, subtotal))

            if sale.total_amount_cents is None:
                total = sum(subtotal for _, _, _, subtotal in priced)
            else:
                total = sale.total_amount_cents
            total = check_minor_units(total, field="total_amount_cents")

            header = Sale(
                total_amount_cents=total,
                payment_method=sale.payment_method,
                customer_name=(sale.customer_name or "").strip() or None,
            )
            self.session.add(header)
            self.session.flush()  # header.id is the movement reference

            for product, quantity, unit, subtotal in priced:
                self._decrement(product, quantity)
                self.session.add(
                    SaleItem(
                        sale_id=header.id,
                        product_id=product.id,
                        quantity=quantity,
                        unit_price_cents=unit,
                        subtotal_cents=subtotal,
                    )
                )
                self.store.append_movement(
                    product.id,
                    MOVEMENT_OUT,
                    quantity,
                    reference_id=header.id,
                    notes=f"Sale #{header.id}",
                )

            self.store.commit()
            return header

        return run_with_retry(self.session, _op)

    def _decrement(self, product: Product, quantity: int) -> None:
        if product.current_stock - quantity < 0:
            raise InsufficientStock(
                f"Insufficient stock for {product.name}",
                details={
                    "product_id": product.id,
                    "requested": quantity,
                    "available": product.current_stock,
                },
            )
        product.current_stock = product.current_stock - quantity

    # ------------------------------------------------------------------
    # purchases
    # ------------------------------------------------------------------

    def record_purchase(self, purchase: PurchaseInput, items) -> Purchase:
        items = _validate_items(items)
        if purchase.status not in PURCHASE_STATUSES:
            raise ConstraintViolation(
                f"status must be one of {', '.join(PURCHASE_STATUSES)}",
                details={"status": purchase.status},
            )

        def _op():
            if purchase.supplier_id is not None:
                self.store.get_supplier(purchase.supplier_id)

            priced = []
            for item in items:
                product = self.store.get_product(item.product_id, lock=True)
                unit, subtotal = self._price_line(item, product.buying_price_cents)
                priced.append((product, item.quantity, unit, subtotal))

            if purchase.total_amount_cents is None:
                total = sum(subtotal for _, _, _, subtotal in priced)
            else:
                total = purchase.total_amount_cents
            total = check_minor_units(total, field="total_amount_cents")

            header = Purchase(
                supplier_id=purchase.supplier_id,
                total_amount_cents=total,
                status=purchase.status,
            )
            self.session.add(header)
            self.session.flush()

            lines = []
            for product, quantity, unit, subtotal in priced:
                line = PurchaseItem(
                    purchase_id=header.id,
                    product_id=product.id,
                    quantity=quantity,
                    unit_price_cents=unit,
                    subtotal_cents=subtotal,
                )
                self.session.add(line)
                lines.append(line)

            if header.status == STATUS_RECEIVED:
                self._post_receipt(header, lines)

            self.store.commit()
            return header

        return run_with_retry(self.session, _op)

    def _post_receipt(self, purchase: Purchase, lines: list[PurchaseItem]) -> None:
        for line in lines:
            product = self.store.get_product(line.product_id, lock=True)
            product.current_stock = product.current_stock + line.quantity
            product.buying_price_cents = line.unit_price_cents
            self.store.append_movement(
                product.id,
                MOVEMENT_IN,
                line.quantity,
                reference_id=purchase.id,
                notes=f"Purchase #{purchase.id} received",
            )
        purchase.received_at = utcnow()

    def receive_purchase(self, purchase_id: int) -> Purchase:
        """PENDING -> RECEIVED, posting stock exactly as a received purchase would."""
        def _op():
            purchase = self.store.get_purchase(purchase_id, lock=True)
            if purchase.status != STATUS_PENDING:
                raise InvalidState(
                    f"Cannot receive {purchase.status} purchase. Only PENDING purchases can be received.",
                    details={"purchase_id": purchase_id, "status": purchase.status},
                )
            self._post_receipt(purchase, list(purchase.items))
            purchase.status = STATUS_RECEIVED
            self.store.commit()
            return purchase

        return run_with_retry(self.session, _op)

    def cancel_purchase(self, purchase_id: int) -> Purchase:
        def _op():
            purchase = self.store.get_purchase(purchase_id, lock=True)
            if purchase.status != STATUS_PENDING:
                raise InvalidState(
                    f"Cannot cancel {purchase.status} purchase. Only PENDING purchases can be cancelled.",
                    details={"purchase_id": purchase_id, "status": purchase.status},
                )
            purchase.status = STATUS_CANCELLED
            self.store.commit()
            return purchase

        return run_with_retry(self.session, _op)

    # ------------------------------------------------------------------
    # adjustments
    # ------------------------------------------------------------------

    def adjust_stock(self, product_id: int, delta: int, reason: str | None = None) -> Product:
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise InvalidQuantity("delta must be a non-zero integer", details={"delta": delta})
        if abs(delta) > MAX_QUANTITY:
            raise InvalidQuantity(f"delta must be within +/-{MAX_QUANTITY}", details={"delta": delta})

        def _op():
            product = self.store.get_product(product_id, lock=True)
            new_stock = max(0, product.current_stock + delta)
            applied = new_stock - product.current_stock

            self.store.append_movement(
                product.id,
                MOVEMENT_ADJUSTMENT,
                abs(delta),
                notes=adjustment_note(delta, reason, applied),
            )
            product.current_stock = new_stock
            self.store.commit()
            return product

        return run_with_retry(self.session, _op)
