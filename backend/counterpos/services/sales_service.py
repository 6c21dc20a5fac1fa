"""
Sales Service - checkout and sale history

WHY: Checkout is the one place where two record types change together
(product stock and the sale itself). checkout() runs both in a single
transaction, so a failure anywhere leaves neither a sale without stock
movement nor stock movement without a sale.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from ..models import Sale, User
from ..validation import ValidationError, NotFoundError, parse_non_negative_int
from counterpos.time_utils import utcnow
from .concurrency import run_with_retry
from .inventory_service import apply_sale, merge_cart_items
from . import settings_service

DISCOUNT_TYPES = ("percentage", "fixed")
BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class SaleTotals:
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    total_cents: int


def _round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_totals(
    subtotal_cents: int,
    discount_type: str | None,
    discount_value: int,
    tax_rate_bps: int,
) -> SaleTotals:
    """
    Discount, tax and total for a cart subtotal.

    - percentage: discount_value is in basis points of the subtotal
    - fixed: discount_value is in cents
    - tax is charged on the discounted base, never below zero
    - total = max(0, subtotal - discount + tax)
    """
    if discount_type == "percentage":
        discount_cents = _round_cents(Decimal(subtotal_cents) * discount_value / BPS_DENOMINATOR)
    elif discount_type == "fixed":
        discount_cents = discount_value
    else:
        discount_cents = 0

    taxable = max(0, subtotal_cents - discount_cents)
    tax_cents = _round_cents(Decimal(taxable) * tax_rate_bps / BPS_DENOMINATOR)
    total_cents = max(0, subtotal_cents - discount_cents + tax_cents)

    return SaleTotals(
        subtotal_cents=subtotal_cents,
        discount_cents=discount_cents,
        tax_cents=tax_cents,
        total_cents=total_cents,
    )


def _validate_discount(discount_type, discount_value) -> tuple[str | None, int]:
    if discount_type in (None, "", "none"):
        return None, 0
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError("discount_type must be 'percentage', 'fixed' or null")
    value = parse_non_negative_int(discount_value if discount_value is not None else 0, "discount_value")
    if discount_type == "percentage" and value > BPS_DENOMINATOR:
        raise ValidationError("percentage discount_value cannot exceed 10000 (100%)")
    return discount_type, value


def checkout(
    *,
    items: list[dict],
    cashier: User,
    discount_type: str | None = None,
    discount_value: int | None = None,
    tax_rate_bps: int | None = None,
) -> Sale:
    """
    Sell a cart: decrement stock, snapshot the lines, record the Sale.

    tax_rate_bps defaults to the store setting.

    Raises:
        ValidationError: malformed cart or discount
        NotFoundError: unknown product
        PreconditionFailedError: archived product or insufficient stock
    """
    cart = merge_cart_items(items)
    discount_type, discount_value = _validate_discount(discount_type, discount_value)
    if tax_rate_bps is not None:
        tax_rate_bps = parse_non_negative_int(tax_rate_bps, "tax_rate_bps")

    cashier_id = cashier.id
    cashier_name = cashier.username
    rate = tax_rate_bps if tax_rate_bps is not None else settings_service.current_tax_rate_bps()

    def _op() -> Sale:
        try:
            sold = apply_sale(cart)

            lines = []
            subtotal = 0
            for product, quantity in sold:
                line_total = product.price_cents * quantity
                subtotal += line_total
                lines.append({
                    "product_id": product.id,
                    "product_name": product.name,
                    "quantity": quantity,
                    "unit_price_cents": product.price_cents,
                    "total_cents": line_total,
                })

            totals = compute_totals(subtotal, discount_type, discount_value, rate)

            sale = Sale(
                items=lines,
                subtotal_cents=totals.subtotal_cents,
                discount_type=discount_type,
                discount_value=discount_value,
                discount_cents=totals.discount_cents,
                tax_rate_bps=rate,
                tax_cents=totals.tax_cents,
                total_cents=totals.total_cents,
                cashier_id=cashier_id,
                cashier_name=cashier_name,
                created_at=utcnow(),
            )
            db.session.add(sale)
            db.session.commit()
            return sale
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def list_sales(start: datetime | None = None, end: datetime | None = None) -> list[Sale]:
    """Sales newest first, optionally within [start, end]."""
    query = db.session.query(Sale)
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at <= end)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()


def list_sales_by_cashier(cashier_id: int) -> list[Sale]:
    return (
        db.session.query(Sale)
        .filter(Sale.cashier_id == cashier_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )


def clear_sales() -> int:
    """Delete every sale (administrative reset). Returns the count removed."""
    deleted = db.session.query(Sale).delete()
    db.session.commit()
    return deleted
