from __future__ import annotations

from ..extensions import db
from ..money import to_decimal
from ..time_utils import to_utc_z, utcnow

PAYMENT_METHODS = ("CASH", "CARD", "MOBILE_MONEY")


class Sale(db.Model):
    """
    Checkout record. Created once with its items, never edited or deleted
    (financial record).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("total_amount_cents >= 0", name="ck_sales_total_non_negative"),
        db.Index("ix_sales_sale_date", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    # All amounts in cents
    total_amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False, default="CASH")
    customer_name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        order_by="SaleItem.id",
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "sale_date": to_utc_z(self.sale_date),
            "total_amount": str(to_decimal(self.total_amount_cents)),
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "customer_name": self.customer_name,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "product_sku": self.product.sku if self.product else None,
            "quantity": self.quantity,
            "unit_price": str(to_decimal(self.unit_price_cents)),
            "unit_price_cents": self.unit_price_cents,
            "subtotal": str(to_decimal(self.subtotal_cents)),
            "subtotal_cents": self.subtotal_cents,
        }
