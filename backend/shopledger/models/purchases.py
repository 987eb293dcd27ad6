from __future__ import annotations

from ..extensions import db
from ..money import to_decimal
from ..time_utils import to_utc_z, utcnow

STATUS_PENDING = "PENDING"
STATUS_RECEIVED = "RECEIVED"
STATUS_CANCELLED = "CANCELLED"
PURCHASE_STATUSES = (STATUS_PENDING, STATUS_RECEIVED, STATUS_CANCELLED)


class Purchase(db.Model):
    """
    Stock inflow document.

    Lifecycle:
    - RECEIVED: items have posted IN movements and stock/buying price updates.
    - PENDING: recorded, nothing posted yet; may be received or cancelled.
    - CANCELLED: terminal, nothing posted.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.CheckConstraint("total_amount_cents >= 0", name="ck_purchases_total_non_negative"),
        db.Index("ix_purchases_status_date", "status", "purchase_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    total_amount_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_RECEIVED)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))
    items = db.relationship(
        "PurchaseItem",
        backref="purchase",
        lazy=True,
        order_by="PurchaseItem.id",
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "purchase_date": to_utc_z(self.purchase_date),
            "total_amount": str(to_decimal(self.total_amount_cents)),
            "total_amount_cents": self.total_amount_cents,
            "status": self.status,
            "received_at": to_utc_z(self.received_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseItem(db.Model):
    __tablename__ = "purchase_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchase_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "product_sku": self.product.sku if self.product else None,
            "quantity": self.quantity,
            "unit_price": str(to_decimal(self.unit_price_cents)),
            "unit_price_cents": self.unit_price_cents,
            "subtotal": str(to_decimal(self.subtotal_cents)),
            "subtotal_cents": self.subtotal_cents,
        }
