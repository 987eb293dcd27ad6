# Overview: Ledger store; durable CRUD for products, suppliers, documents and the movement log.

from __future__ import annotations

import re

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..errors import ConstraintViolation, InvalidQuantity, NotFound
from ..models import (
    Category,
    Product,
    Purchase,
    PurchaseItem,
    Sale,
    SaleItem,
    StockMovement,
    Supplier,
    MOVEMENT_IN,
    MOVEMENT_OUT,
    MOVEMENT_TYPES,
)
from ..money import check_minor_units
from .concurrency import lock_for_update, run_with_retry
from .schemas import ProductCreate, ProductUpdate, SupplierCreate, SupplierUpdate

"""
Ledger Store Invariants (authoritative)

Products:
- current_stock == signed sum of the product's stock_movements, always >= 0.
- A product created with opening stock gets an IN movement in the same transaction.
- sku is unique when present; blank sku is stored as NULL.
- update_product never touches current_stock (see ProductUpdate).

Movements:
- Append-only; quantity is the unsigned magnitude and must be > 0.
- ADJUSTMENT sign lives in notes: "<signed delta> - <reason>", plus
  " (applied <signed change>)" as the final text when the stock clamp at zero
  engaged. Reasons are shortened to make room for it and never carry the marker.
- append_movement flushes inside the caller's transaction and never commits.

Transactions:
- Standalone writes (create/update/delete) commit on success and roll back on failure.
- IntegrityError from the database is surfaced as ConstraintViolation.
"""

DEFAULT_HISTORY_LIMIT = 50

NOTES_MAX_LENGTH = 255

_LEADING_DELTA = re.compile(r"^\s*([+-]?\d+)")
_APPLIED_DELTA = re.compile(r" \(applied ([+-]?\d+)\)\Z")
_APPLIED_MARKER = re.compile(r"\(\s*applied", re.IGNORECASE)


def _signed(value: int) -> str:
    return f"{'+' if value > 0 else ''}{value}"


def adjustment_note(delta: int, reason: str | None, applied: int | None = None) -> str:
    """Encode a signed adjustment in movement notes ("+5 - recount", "-100 - damaged (applied -30)").

    The reason is shortened so the clamp suffix always fits, and any
    "(applied" text inside it is rewritten so only the suffix is read back.
    """
    prefix = f"{_signed(delta)} - "
    suffix = ""
    if applied is not None and applied != delta:
        suffix = f" (applied {_signed(applied)})"

    text = _APPLIED_MARKER.sub("[applied", reason or "manual adjustment")
    room = NOTES_MAX_LENGTH - len(prefix) - len(suffix)
    return prefix + text[:room].rstrip() + suffix


def signed_quantity(movement: StockMovement) -> int:
    """Signed effect of a movement on current_stock."""
    if movement.movement_type == MOVEMENT_IN:
        return movement.quantity
    if movement.movement_type == MOVEMENT_OUT:
        return -movement.quantity

    notes = movement.notes or ""
    applied = _APPLIED_DELTA.search(notes)
    if applied:
        return int(applied.group(1))
    leading = _LEADING_DELTA.match(notes)
    if leading and int(leading.group(1)) < 0:
        return -movement.quantity
    return movement.quantity


def _clean_text(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _require_count(value, field: str, *, positive: bool = False) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQuantity(f"{field} must be an integer", details={"field": field})
    if positive and value <= 0:
        raise InvalidQuantity(f"{field} must be > 0", details={"field": field, "value": value})
    if value < 0:
        raise InvalidQuantity(f"{field} must be >= 0", details={"field": field, "value": value})
    return value


class LedgerStore:
    """
    Transactional storage for the stock ledger.

    The session is injected; the store never opens its own connection.
    """

    def __init__(self, session):
        self.session = session

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConstraintViolation(
                "Database constraint violated",
                details={"reason": str(getattr(exc, "orig", exc))},
            )

    def _ensure_category(self, category_id) -> None:
        if category_id is None:
            return
        if self.session.get(Category, category_id) is None:
            raise ConstraintViolation(
                f"Category {category_id} does not exist",
                details={"category_id": category_id},
            )

    def _ensure_supplier(self, supplier_id) -> None:
        if supplier_id is None:
            return
        if self.session.get(Supplier, supplier_id) is None:
            raise ConstraintViolation(
                f"Supplier {supplier_id} does not exist",
                details={"supplier_id": supplier_id},
            )

    def _ensure_sku_free(self, sku: str | None, exclude_id: int | None = None) -> None:
        if sku is None:
            return
        query = self.session.query(Product.id).filter(Product.sku == sku)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        if query.first() is not None:
            raise ConstraintViolation("SKU already exists.", details={"sku": sku})

    # ------------------------------------------------------------------
    # categories
    # ------------------------------------------------------------------

    def create_category(self, name: str, description: str | None = None) -> Category:
        name = _clean_text(name)
        if not name:
            raise ConstraintViolation("Category name is required")

        def _op():
            category = Category(name=name, description=_clean_text(description))
            self.session.add(category)
            self.commit()
            return category

        return run_with_retry(self.session, _op)

    def list_categories(self) -> list[Category]:
        return self.session.query(Category).order_by(Category.name.asc(), Category.id.asc()).all()

    # ------------------------------------------------------------------
    # suppliers
    # ------------------------------------------------------------------

    def create_supplier(self, data: SupplierCreate) -> Supplier:
        name = _clean_text(data.name)
        if not name:
            raise ConstraintViolation("Supplier name is required")

        def _op():
            supplier = Supplier(
                name=name,
                contact_person=_clean_text(data.contact_person),
                phone=_clean_text(data.phone),
                email=_clean_text(data.email),
                address=_clean_text(data.address),
            )
            self.session.add(supplier)
            self.commit()
            return supplier

        return run_with_retry(self.session, _op)

    def get_supplier(self, supplier_id: int) -> Supplier:
        supplier = self.session.get(Supplier, supplier_id)
        if supplier is None:
            raise NotFound(f"Supplier {supplier_id} not found", details={"supplier_id": supplier_id})
        return supplier

    def list_suppliers(self) -> list[Supplier]:
        return self.session.query(Supplier).order_by(Supplier.name.asc(), Supplier.id.asc()).all()

    def update_supplier(self, supplier_id: int, update: SupplierUpdate) -> Supplier:
        changes = update.changes()
        if "name" in changes and not _clean_text(changes["name"]):
            raise ConstraintViolation("Supplier name is required")

        def _op():
            supplier = self.get_supplier(supplier_id)
            for key, value in changes.items():
                setattr(supplier, key, _clean_text(value))
            self.commit()
            return supplier

        return run_with_retry(self.session, _op)

    def delete_supplier(self, supplier_id: int) -> None:
        def _op():
            supplier = self.get_supplier(supplier_id)
            in_use = (
                self.session.query(Product.id).filter(Product.supplier_id == supplier_id).first()
                or self.session.query(Purchase.id).filter(Purchase.supplier_id == supplier_id).first()
            )
            if in_use:
                raise ConstraintViolation(
                    "Supplier is referenced by products or purchases",
                    details={"supplier_id": supplier_id},
                )
            self.session.delete(supplier)
            self.commit()

        run_with_retry(self.session, _op)

    def search_suppliers(self, term: str) -> list[Supplier]:
        needle = (term or "").strip().lower()
        return (
            self.session.query(Supplier)
            .filter(
                or_(
                    func.lower(Supplier.name).contains(needle, autoescape=True),
                    func.lower(Supplier.contact_person).contains(needle, autoescape=True),
                    func.lower(Supplier.email).contains(needle, autoescape=True),
                )
            )
            .order_by(Supplier.name.asc(), Supplier.id.asc())
            .all()
        )

    # ------------------------------------------------------------------
    # products
    # ------------------------------------------------------------------

    def create_product(self, data: ProductCreate) -> Product:
        name = _clean_text(data.name)
        if not name:
            raise ConstraintViolation("Product name is required")
        sku = _clean_text(data.sku)
        buying = check_minor_units(data.buying_price_cents, field="buying_price_cents")
        selling = check_minor_units(data.selling_price_cents, field="selling_price_cents")
        opening_stock = _require_count(data.current_stock, "current_stock")
        minimum = _require_count(data.minimum_stock_level, "minimum_stock_level")
        unit = _clean_text(data.unit_of_measurement) or "pcs"

        def _op():
            self._ensure_sku_free(sku)
            self._ensure_category(data.category_id)
            self._ensure_supplier(data.supplier_id)

            product = Product(
                name=name,
                sku=sku,
                description=_clean_text(data.description),
                category_id=data.category_id,
                supplier_id=data.supplier_id,
                buying_price_cents=buying,
                selling_price_cents=selling,
                current_stock=opening_stock,
                minimum_stock_level=minimum,
                unit_of_measurement=unit,
            )
            self.session.add(product)
            self.session.flush()  # ensure product.id exists before the opening movement

            if opening_stock > 0:
                self.append_movement(product.id, MOVEMENT_IN, opening_stock, notes="Opening stock")

            self.commit()
            return product

        return run_with_retry(self.session, _op)

    def get_product(self, product_id: int, *, lock: bool = False) -> Product:
        query = self.session.query(Product).filter(Product.id == product_id)
        if lock:
            query = lock_for_update(query)
        product = query.first()
        if product is None:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
        return product

    def list_products(self) -> list[Product]:
        return self.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()

    def update_product(self, product_id: int, update: ProductUpdate) -> Product:
        changes = update.changes()

        if "name" in changes:
            changes["name"] = _clean_text(changes["name"])
            if not changes["name"]:
                raise ConstraintViolation("Product name is required")
        for key in ("sku", "description"):
            if key in changes:
                changes[key] = _clean_text(changes[key])
        for key in ("buying_price_cents", "selling_price_cents"):
            if key in changes:
                changes[key] = check_minor_units(changes[key], field=key)
        if "minimum_stock_level" in changes:
            _require_count(changes["minimum_stock_level"], "minimum_stock_level")
        if "unit_of_measurement" in changes:
            changes["unit_of_measurement"] = _clean_text(changes["unit_of_measurement"]) or "pcs"

        def _op():
            product = self.get_product(product_id, lock=True)
            if "sku" in changes and changes["sku"] != product.sku:
                self._ensure_sku_free(changes["sku"], exclude_id=product.id)
            if "category_id" in changes:
                self._ensure_category(changes["category_id"])
            if "supplier_id" in changes:
                self._ensure_supplier(changes["supplier_id"])

            for key, value in changes.items():
                setattr(product, key, value)
            self.commit()
            return product

        return run_with_retry(self.session, _op)

    def delete_product(self, product_id: int) -> None:
        """
        Hard-delete a product that has no ledger history.

        Products with movements or sale/purchase lines are part of the
        immutable record and cannot be removed.
        """
        def _op():
            product = self.get_product(product_id)
            has_history = (
                self.session.query(StockMovement.id).filter(StockMovement.product_id == product_id).first()
                or self.session.query(SaleItem.id).filter(SaleItem.product_id == product_id).first()
                or self.session.query(PurchaseItem.id).filter(PurchaseItem.product_id == product_id).first()
            )
            if has_history:
                raise ConstraintViolation(
                    "Product has stock history and cannot be deleted",
                    details={"product_id": product_id},
                )
            self.session.delete(product)
            self.commit()

        run_with_retry(self.session, _op)

    def search_products(self, term: str) -> list[Product]:
        """Case-insensitive substring match over name, sku and description (unpaginated)."""
        needle = (term or "").strip().lower()
        return (
            self.session.query(Product)
            .filter(
                or_(
                    func.lower(Product.name).contains(needle, autoescape=True),
                    func.lower(Product.sku).contains(needle, autoescape=True),
                    func.lower(Product.description).contains(needle, autoescape=True),
                )
            )
            .order_by(Product.name.asc(), Product.id.asc())
            .all()
        )

    def list_low_stock(self) -> list[Product]:
        return (
            self.session.query(Product)
            .filter(Product.current_stock <= Product.minimum_stock_level)
            .order_by(Product.name.asc(), Product.id.asc())
            .all()
        )

    # ------------------------------------------------------------------
    # movements
    # ------------------------------------------------------------------

    def append_movement(
        self,
        product_id: int,
        movement_type: str,
        quantity: int,
        reference_id: int | None = None,
        notes: str | None = None,
    ) -> StockMovement:
        """Append one ledger row inside the caller's transaction."""
        if movement_type not in MOVEMENT_TYPES:
            raise ConstraintViolation(
                f"movement_type must be one of {', '.join(MOVEMENT_TYPES)}",
                details={"movement_type": movement_type},
            )
        _require_count(quantity, "quantity", positive=True)
        if self.session.get(Product, product_id) is None:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})

        movement = StockMovement(
            product_id=product_id,
            movement_type=movement_type,
            quantity=quantity,
            reference_id=reference_id,
            notes=notes[:255] if notes else notes,
        )
        self.session.add(movement)
        self.session.flush()
        return movement

    def get_movement_history(self, product_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> list[StockMovement]:
        _require_count(limit, "limit", positive=True)
        self.get_product(product_id)
        return (
            self.session.query(StockMovement)
            .filter(StockMovement.product_id == product_id)
            .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .limit(limit)
            .all()
        )

    def stock_from_movements(self, product_id: int) -> int:
        """Replay the ledger for one product."""
        movements = (
            self.session.query(StockMovement)
            .filter(StockMovement.product_id == product_id)
            .order_by(StockMovement.id.asc())
            .all()
        )
        return sum(signed_quantity(m) for m in movements)

    # ------------------------------------------------------------------
    # sales and purchases (read side)
    # ------------------------------------------------------------------

    def get_sale(self, sale_id: int) -> Sale:
        sale = self.session.get(Sale, sale_id)
        if sale is None:
            raise NotFound(f"Sale {sale_id} not found", details={"sale_id": sale_id})
        return sale

    def list_sales(self) -> list[Sale]:
        return self.session.query(Sale).order_by(Sale.sale_date.desc(), Sale.id.desc()).all()

    def get_purchase(self, purchase_id: int, *, lock: bool = False) -> Purchase:
        query = self.session.query(Purchase).filter(Purchase.id == purchase_id)
        if lock:
            query = lock_for_update(query)
        purchase = query.first()
        if purchase is None:
            raise NotFound(f"Purchase {purchase_id} not found", details={"purchase_id": purchase_id})
        return purchase

    def list_purchases(self) -> list[Purchase]:
        return self.session.query(Purchase).order_by(Purchase.purchase_date.desc(), Purchase.id.desc()).all()
