# Overview: Typed inputs for ledger writes; money is already in cents here.

from __future__ import annotations

from dataclasses import dataclass, fields


class _Unset:
    """Marker for update fields the caller did not provide."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


@dataclass(frozen=True)
class _UpdateBase:
    def changes(self) -> dict:
        """Only the fields that were explicitly set (None is a real value)."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not UNSET}


@dataclass(frozen=True)
class ProductCreate:
    name: str
    sku: str | None = None
    description: str | None = None
    category_id: int | None = None
    supplier_id: int | None = None
    buying_price_cents: int = 0
    selling_price_cents: int = 0
    current_stock: int = 0
    minimum_stock_level: int = 5
    unit_of_measurement: str = "pcs"


@dataclass(frozen=True)
class ProductUpdate(_UpdateBase):
    """
    Mutable product fields. current_stock is deliberately absent: it only
    changes through StockMutationEngine.
    """
    name: object = UNSET
    sku: object = UNSET
    description: object = UNSET
    category_id: object = UNSET
    supplier_id: object = UNSET
    buying_price_cents: object = UNSET
    selling_price_cents: object = UNSET
    minimum_stock_level: object = UNSET
    unit_of_measurement: object = UNSET


@dataclass(frozen=True)
class SupplierCreate:
    name: str
    contact_person: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None


@dataclass(frozen=True)
class SupplierUpdate(_UpdateBase):
    name: object = UNSET
    contact_person: object = UNSET
    phone: object = UNSET
    email: object = UNSET
    address: object = UNSET


@dataclass(frozen=True)
class LineItemInput:
    """One sale or purchase line. Prices default from the product when omitted."""
    product_id: int
    quantity: int
    unit_price_cents: int | None = None
    subtotal_cents: int | None = None


@dataclass(frozen=True)
class SaleInput:
    payment_method: str = "CASH"
    customer_name: str | None = None
    total_amount_cents: int | None = None


@dataclass(frozen=True)
class PurchaseInput:
    supplier_id: int | None = None
    status: str = "RECEIVED"
    total_amount_cents: int | None = None
