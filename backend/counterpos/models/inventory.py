from __future__ import annotations

from ..extensions import db
from counterpos.time_utils import to_utc_z, utcnow

LOCAL_IMAGE_PREFIX = "/product-image/"


class Product(db.Model):
    """
    Product master data.

    STOCK RULES:
    - stock never goes below zero (checkout rejects carts that would)
    - any update that leaves stock at zero also archives the product
      (is_active=False) in the same write
    - an archived product can only be restored once it has stock again

    image_url is either external (http(s)/data URL) or a locally hosted
    upload under /product-image/. Only local images are removed from disk.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=False, unique=True, index=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)

    primary_category = db.Column(db.String(128), nullable=True)
    sub_category = db.Column(db.String(128), nullable=True)
    technical_tags = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Product id={self.id} barcode={self.barcode!r} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "barcode": self.barcode,
            "price_cents": self.price_cents,
            "stock": self.stock,
            "primary_category": self.primary_category,
            "sub_category": self.sub_category,
            "technical_tags": self.technical_tags,
            "image_url": self.image_url,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
