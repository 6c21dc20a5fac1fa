# Overview: Stock bookkeeping for checkout; decrements and auto-archives products.

"""
Inventory ledger rules applied when a cart is sold.

apply_sale() mutates Product rows inside the caller's transaction and never
commits: sales_service.checkout() owns the unit of work so that the stock
decrements and the Sale row land (or roll back) together.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError, PreconditionFailedError, ValidationError, parse_positive_int
from counterpos.time_utils import utcnow
from .concurrency import lock_for_update


def merge_cart_items(items: list[dict]) -> list[tuple[int, int]]:
    """
    Normalize [{"product_id": .., "quantity": ..}, ...] to ordered
    (product_id, quantity) pairs, summing repeated products.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    merged: dict[int, int] = {}
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{i}] must be an object")
        product_id = parse_positive_int(item.get("product_id"), f"items[{i}].product_id")
        quantity = parse_positive_int(item.get("quantity"), f"items[{i}].quantity")
        merged[product_id] = merged.get(product_id, 0) + quantity

    return list(merged.items())


def apply_stock_change(product: Product, new_stock: int) -> None:
    """Set stock, refresh updated_at, and archive when the shelf is empty."""
    product.stock = new_stock
    product.updated_at = utcnow()
    if new_stock <= 0:
        product.is_active = False


def apply_sale(items: list[tuple[int, int]]) -> list[tuple[Product, int]]:
    """
    Decrement stock for each (product_id, quantity) line.

    Each product row is locked before it is read. Products reaching zero
    are auto-archived in the same write.

    Returns the (product, quantity) pairs, in cart order, for snapshotting.

    Raises:
        NotFoundError: unknown product id
        PreconditionFailedError: product archived or not enough stock
    """
    sold: list[tuple[Product, int]] = []

    for product_id, quantity in items:
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise NotFoundError(f"Product {product_id} not found")

        if not product.is_active:
            raise PreconditionFailedError(f"{product.name} is archived and cannot be sold")

        if product.stock < quantity:
            raise PreconditionFailedError(
                f"Insufficient stock for {product.name}: requested {quantity}, available {product.stock}"
            )

        apply_stock_change(product, product.stock - quantity)
        sold.append((product, quantity))

    return sold
