# Overview: Full-store backup export and restore (tables plus stored images).

"""
Backup format (JSON):

    {
      "users": [...],         # User.to_backup_dict(), includes password_hash
      "products": [...],      # Product.to_dict()
      "sales": [...],         # Sale.to_dict()
      "settings": {...},      # StoreSettings.to_dict()
      "images": [{"filename": ..., "data": <base64>}, ...],
      "exported_at": "...Z"
    }

Session token hashes are never exported; restored accounts come back
offline and must log in again.

import_backup() validates everything it can before deleting anything, then
replaces all four tables in one transaction. Images are written after the
commit; a bad image is logged and skipped.
"""

from __future__ import annotations

import base64
import binascii
import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, Sale, StoreSettings, User, SETTINGS_ID
from ..validation import ValidationError, USER_ROLES
from counterpos.time_utils import parse_iso_datetime, to_utc_z, utcnow
from . import storage_service

logger = logging.getLogger(__name__)

MISSING_HASH_MESSAGE = "Backup is missing passwordHash for one or more users. Import aborted."

SETTINGS_FIELDS = (
    "is_setup_complete",
    "store_name",
    "store_logo_url",
    "store_email",
    "store_phone",
    "store_address",
    "store_description",
    "currency",
    "tax_rate_bps",
    "categories",
    "technical_tags",
)


def export_backup() -> dict:
    """Snapshot every table and every stored image."""
    images = []
    try:
        names = storage_service.list_images()
    except OSError as e:
        logger.warning("[BACKUP] Could not list stored images, exporting without them: %s", e)
        names = []

    for name in names:
        try:
            data = storage_service.read_image(name)
        except OSError as e:
            logger.warning("[BACKUP] Skipping unreadable image %s: %s", name, e)
            continue
        images.append({
            "filename": name,
            "data": base64.b64encode(data).decode("ascii"),
        })

    settings = db.session.get(StoreSettings, SETTINGS_ID)

    payload = {
        "users": [u.to_backup_dict() for u in db.session.query(User).order_by(User.id).all()],
        "products": [p.to_dict() for p in db.session.query(Product).order_by(Product.id).all()],
        "sales": [s.to_dict() for s in db.session.query(Sale).order_by(Sale.id).all()],
        "settings": settings.to_dict() if settings else None,
        "images": images,
        "exported_at": to_utc_z(utcnow()),
    }
    logger.info(
        "[BACKUP] Exported %d users, %d products, %d sales, %d images",
        len(payload["users"]), len(payload["products"]), len(payload["sales"]), len(images),
    )
    return payload


def _list_section(data: dict, key: str) -> list:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ValidationError(f"Backup field '{key}' must be a list")
    for i, row in enumerate(value):
        if not isinstance(row, dict):
            raise ValidationError(f"Backup {key}[{i}] must be an object")
    return value


def _timestamp(value):
    try:
        return parse_iso_datetime(value) if isinstance(value, str) else None
    except ValueError:
        raise ValidationError(f"Invalid timestamp in backup: {value!r}")


def _validate(data) -> tuple[list, list, list, dict | None, list]:
    if not isinstance(data, dict):
        raise ValidationError("Backup must be a JSON object")

    users = _list_section(data, "users")
    products = _list_section(data, "products")
    sales = _list_section(data, "sales")
    images = _list_section(data, "images")

    settings = data.get("settings")
    if settings is not None and not isinstance(settings, dict):
        raise ValidationError("Backup field 'settings' must be an object")

    if any(not row.get("password_hash") for row in users):
        raise ValidationError(MISSING_HASH_MESSAGE)

    for row in users:
        if row.get("role", "cashier") not in USER_ROLES:
            raise ValidationError(f"Invalid role in backup for user {row.get('username')!r}")

    return users, products, sales, settings, images


def _restore_user(row: dict) -> User:
    return User(
        id=row.get("id"),
        username=row["username"],
        password_hash=row["password_hash"],
        role=row.get("role", "cashier"),
        is_active=bool(row.get("is_active", True)),
        created_at=_timestamp(row.get("created_at")) or utcnow(),
        last_login_at=_timestamp(row.get("last_login_at")),
        session_token_hash=None,
    )


def _restore_product(row: dict) -> Product:
    now = utcnow()
    return Product(
        id=row.get("id"),
        name=row["name"],
        barcode=row["barcode"],
        price_cents=int(row.get("price_cents") or 0),
        stock=int(row.get("stock") or 0),
        primary_category=row.get("primary_category"),
        sub_category=row.get("sub_category"),
        technical_tags=row.get("technical_tags"),
        image_url=row.get("image_url"),
        is_active=bool(row.get("is_active", True)),
        created_at=_timestamp(row.get("created_at")) or now,
        updated_at=_timestamp(row.get("updated_at")) or now,
    )


def _restore_sale(row: dict) -> Sale:
    return Sale(
        id=row.get("id"),
        items=list(row.get("items") or []),
        subtotal_cents=int(row.get("subtotal_cents") or 0),
        discount_type=row.get("discount_type"),
        discount_value=int(row.get("discount_value") or 0),
        discount_cents=int(row.get("discount_cents") or 0),
        tax_rate_bps=int(row.get("tax_rate_bps") or 0),
        tax_cents=int(row.get("tax_cents") or 0),
        total_cents=int(row.get("total_cents") or 0),
        cashier_id=int(row.get("cashier_id") or 0),
        cashier_name=row.get("cashier_name") or "",
        created_at=_timestamp(row.get("created_at")) or utcnow(),
    )


def _restore_settings(row: dict | None) -> StoreSettings:
    settings = StoreSettings(id=SETTINGS_ID, store_name="Store", currency="PHP")
    for field in SETTINGS_FIELDS:
        if row and field in row and row[field] is not None:
            setattr(settings, field, row[field])
    return settings


def _restore_images(images: list) -> int:
    written = 0
    for entry in images:
        name = entry.get("filename")
        try:
            data = base64.b64decode(entry.get("data") or "", validate=True)
            storage_service.write_image(name or "", data)
            written += 1
        except (binascii.Error, ValueError, OSError) as e:
            logger.warning("[BACKUP] Skipping image %r: %s", name, e)
    return written


def import_backup(data: dict) -> dict:
    """
    Replace the whole store with a backup.

    Raises ValidationError before touching anything when the payload is
    malformed or a user lacks a password hash. Returns per-section counts.
    """
    users, products, sales, settings, images = _validate(data)

    try:
        db.session.query(Sale).delete()
        db.session.query(Product).delete()
        db.session.query(User).delete()
        db.session.query(StoreSettings).delete()

        db.session.add_all(_restore_user(row) for row in users)
        db.session.add_all(_restore_product(row) for row in products)
        db.session.add_all(_restore_sale(row) for row in sales)
        db.session.add(_restore_settings(settings))
        db.session.commit()
    except KeyError as e:
        db.session.rollback()
        raise ValidationError(f"Backup record is missing field {e.args[0]!r}")
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("Backup contains duplicate usernames, barcodes or ids")
    except ValidationError:
        db.session.rollback()
        raise
    except (TypeError, ValueError) as e:
        db.session.rollback()
        raise ValidationError(f"Backup contains an invalid value: {e}")
    except Exception:
        db.session.rollback()
        raise

    removed = storage_service.clear_images()
    written = _restore_images(images)

    counts = {
        "users": len(users),
        "products": len(products),
        "sales": len(sales),
        "images": written,
    }
    logger.info("[BACKUP] Imported %s (%d old images removed)", counts, removed)
    return counts
