# Overview: Service-layer operations for store settings; singleton row, logo and reset.

from __future__ import annotations

import logging

from flask import current_app
from werkzeug.datastructures import FileStorage

from ..extensions import db
from ..models import Product, Sale, StoreSettings, User, SETTINGS_ID
from ..validation import ValidationError, parse_non_negative_int
from . import storage_service

logger = logging.getLogger(__name__)

TEXT_FIELDS = (
    "store_name",
    "store_logo_url",
    "store_email",
    "store_phone",
    "store_address",
    "store_description",
    "currency",
)
LIST_FIELDS = ("categories", "technical_tags")

# 100% in basis points
MAX_TAX_RATE_BPS = 10_000


def _default_currency() -> str:
    return current_app.config.get("DEFAULT_CURRENCY", "PHP")


def _new_default_settings() -> StoreSettings:
    return StoreSettings(
        id=SETTINGS_ID,
        is_setup_complete=False,
        store_name="Store",
        currency=_default_currency(),
    )


def get_settings() -> StoreSettings:
    """Return the settings row, creating it with defaults on first read."""
    settings = db.session.get(StoreSettings, SETTINGS_ID)
    if settings is None:
        settings = _new_default_settings()
        db.session.add(settings)
        db.session.commit()
    return settings


def _clean_list(field: str, value) -> list[str] | None:
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{field} must be a list of strings")
    seen: list[str] = []
    for v in value:
        v = v.strip()
        if v and v not in seen:
            seen.append(v)
    return seen


def save_settings(data: dict) -> StoreSettings:
    """
    Apply a partial update. Unknown keys are rejected; keys that are absent
    are left alone.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    allowed = set(TEXT_FIELDS) | set(LIST_FIELDS) | {"is_setup_complete", "tax_rate_bps"}
    unknown = sorted(k for k in data if k not in allowed)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    settings = get_settings()

    if "is_setup_complete" in data:
        if not isinstance(data["is_setup_complete"], bool):
            raise ValidationError("is_setup_complete must be a boolean")
        settings.is_setup_complete = data["is_setup_complete"]

    for field in TEXT_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{field} must be a string")
        value = value.strip() if value else None
        if field == "store_name":
            value = value or "Store"
        elif field == "currency":
            value = (value or _default_currency()).upper()
        setattr(settings, field, value)

    if "tax_rate_bps" in data:
        rate = data["tax_rate_bps"]
        if rate is not None:
            rate = parse_non_negative_int(rate, "tax_rate_bps")
            if rate > MAX_TAX_RATE_BPS:
                raise ValidationError(f"tax_rate_bps cannot exceed {MAX_TAX_RATE_BPS}")
        settings.tax_rate_bps = rate

    for field in LIST_FIELDS:
        if field in data:
            setattr(settings, field, _clean_list(field, data[field]))

    db.session.commit()
    return settings


def update_logo(file: FileStorage) -> StoreSettings:
    """Store a new logo and delete the previous local one."""
    new_url = storage_service.save_upload(
        file,
        prefix="store-logo-",
        allowed_extensions=storage_service.LOGO_EXTENSIONS,
    )

    settings = get_settings()
    previous = settings.store_logo_url
    settings.store_logo_url = new_url
    db.session.commit()

    if previous != new_url:
        storage_service.delete_reference(previous)
    return settings


def current_tax_rate_bps() -> int:
    return get_settings().tax_rate_bps or 0


def reset_database() -> None:
    """
    Wipe sales, products, users, settings and stored images, then
    recreate default settings. The next visitor lands in the setup wizard.
    """
    try:
        db.session.query(Sale).delete()
        db.session.query(Product).delete()
        db.session.query(User).delete()
        db.session.query(StoreSettings).delete()
        db.session.add(_new_default_settings())
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    removed = storage_service.clear_images()
    logger.warning("Database reset; %d stored images removed", removed)
