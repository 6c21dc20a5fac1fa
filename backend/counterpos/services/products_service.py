# backend/counterpos/services/products_service.py
"""
Products Service

Lifecycle: create -> (edit | sell)* -> archive <-> restore -> permanent delete.

AUTO-ARCHIVE: whenever an edit leaves stock <= 0 the product is archived in
the same write, whatever is_active value the edit carried. Restoring
requires stock > 0; the restore call may carry the replenished stock.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from werkzeug.datastructures import FileStorage

from ..extensions import db
from ..models import Product
from ..validation import ConflictError, NotFoundError, PreconditionFailedError, parse_non_negative_int
from counterpos.time_utils import utcnow
from . import storage_service

PRODUCT_MUTABLE_FIELDS = {
    "name", "barcode", "price_cents", "stock",
    "primary_category", "sub_category", "technical_tags",
    "image_url", "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _require_unique_barcode(barcode: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product).filter(Product.barcode == barcode)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError("Product with this barcode already exists")


def _commit_product(fresh_upload: str | None) -> None:
    """Commit, or roll back and drop an upload the failed write would have orphaned."""
    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        storage_service.delete_reference(fresh_upload)
        if isinstance(e, IntegrityError):
            raise ConflictError("Product with this barcode already exists") from e
        raise


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found")
    return p


def get_product_by_barcode(barcode: str) -> Product:
    p = db.session.query(Product).filter_by(barcode=barcode).first()
    if not p:
        raise NotFoundError("Product not found")
    return p


def list_products(*, include_archived: bool = True) -> list[Product]:
    query = db.session.query(Product)
    if not include_archived:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def create_product(*, patch: dict, image: FileStorage | None = None) -> Product:
    """
    Create product from a validated patch dict.

    An uploaded image wins over a supplied image_url.

    Raises:
        ConflictError: barcode already used
        ValidationError: bad upload
    """
    _require_unique_barcode(patch["barcode"])

    image_url = patch.get("image_url")
    fresh_upload = None
    if image is not None:
        image_url = fresh_upload = storage_service.save_upload(image)

    now = utcnow()
    p = Product(price_cents=0, stock=0, is_active=True, created_at=now, updated_at=now)
    apply_product_patch(p, patch)
    p.image_url = image_url

    if p.stock <= 0:
        p.is_active = False

    db.session.add(p)
    _commit_product(fresh_upload)
    return p


def update_product(*, product_id: int, patch: dict, image: FileStorage | None = None) -> Product:
    """
    Partial update. Only provided fields change.

    - resulting stock <= 0 forces is_active=False
    - a new upload replaces the image; the previous local file is deleted
      after the new one is attached
    - image_url=None clears the image and deletes the previous local file

    Raises:
        NotFoundError, ConflictError, ValidationError
    """
    p = get_product(product_id)
    previous_image = p.image_url

    if "barcode" in patch and patch["barcode"] != p.barcode:
        _require_unique_barcode(patch["barcode"], exclude_id=p.id)

    apply_product_patch(p, patch)

    replaced_image = False
    fresh_upload = None
    if image is not None:
        p.image_url = fresh_upload = storage_service.save_upload(image)
        replaced_image = True
    elif "image_url" in patch and patch["image_url"] != previous_image:
        replaced_image = True

    if p.stock <= 0:
        p.is_active = False

    p.updated_at = utcnow()
    _commit_product(fresh_upload)

    if replaced_image and previous_image != p.image_url:
        storage_service.delete_reference(previous_image)

    return p


def archive_product(product_id: int) -> Product:
    """Soft-delete: keep the row for receipts and history."""
    p = get_product(product_id)
    p.is_active = False
    p.updated_at = utcnow()
    db.session.commit()
    return p


def restore_product(product_id: int, stock: int | None = None) -> Product:
    """
    Reactivate an archived product.

    If stock is given it is applied first, so replenishing and restoring
    can happen in one call.

    Raises PreconditionFailedError when the resulting stock is <= 0.
    """
    p = get_product(product_id)

    new_stock = p.stock if stock is None else parse_non_negative_int(stock, "stock")
    if new_stock <= 0:
        raise PreconditionFailedError(
            "Cannot restore a product with zero stock. Add stock before restoring."
        )

    p.stock = new_stock
    p.is_active = True
    p.updated_at = utcnow()
    db.session.commit()
    return p


def permanently_delete_product(product_id: int) -> None:
    """Remove the row and its locally hosted image."""
    p = get_product(product_id)
    image_url = p.image_url

    db.session.delete(p)
    db.session.commit()

    storage_service.delete_reference(image_url)
