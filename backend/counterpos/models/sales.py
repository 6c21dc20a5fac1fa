from __future__ import annotations

from ..extensions import db
from counterpos.time_utils import to_utc_z, utcnow


class Sale(db.Model):
    """
    A completed checkout.

    Line items are denormalized snapshots (product_id, product_name,
    quantity, unit_price_cents, total_cents) frozen at checkout time, so a
    receipt keeps showing the price that was charged even after the product
    is repriced, archived or deleted. cashier_id/cashier_name are snapshots
    for the same reason.

    Amounts are in cents; tax_rate_bps and percentage discounts are in basis
    points (1% = 100). For a fixed discount discount_value is in cents.
    Sales are never edited; the only mutation is clearing them all.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_created_at", "created_at"),
        db.Index("ix_sales_cashier_id", "cashier_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    items = db.Column(db.JSON, nullable=False, default=list)

    subtotal_cents = db.Column(db.Integer, nullable=False)

    # "percentage", "fixed" or NULL
    discount_type = db.Column(db.String(16), nullable=True)
    discount_value = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)

    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)

    total_cents = db.Column(db.Integer, nullable=False)

    cashier_id = db.Column(db.Integer, nullable=False)
    cashier_name = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Sale id={self.id} total_cents={self.total_cents} cashier={self.cashier_name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "items": [dict(item) for item in (self.items or [])],
            "subtotal_cents": self.subtotal_cents,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "discount_cents": self.discount_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "cashier_id": self.cashier_id,
            "cashier_name": self.cashier_name,
            "created_at": to_utc_z(self.created_at),
        }
