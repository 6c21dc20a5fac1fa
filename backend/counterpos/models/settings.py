from __future__ import annotations

from ..extensions import db

# Well-known primary key of the one settings row
SETTINGS_ID = "app-settings"


class StoreSettings(db.Model):
    """
    Store-wide settings (singleton row keyed by SETTINGS_ID).

    Created with defaults on first read. Holds the setup-wizard flag, the
    store's display details printed on receipts, the currency, the default
    tax rate applied at checkout, and the category/tag vocabularies offered
    by the product form.
    """
    __tablename__ = "store_settings"

    id = db.Column(db.String(32), primary_key=True, default=SETTINGS_ID)

    is_setup_complete = db.Column(db.Boolean, nullable=False, default=False)

    store_name = db.Column(db.String(255), nullable=False, default="Store")
    store_logo_url = db.Column(db.Text, nullable=True)
    store_email = db.Column(db.String(255), nullable=True)
    store_phone = db.Column(db.String(64), nullable=True)
    store_address = db.Column(db.String(255), nullable=True)
    store_description = db.Column(db.Text, nullable=True)

    currency = db.Column(db.String(8), nullable=False, default="PHP")
    tax_rate_bps = db.Column(db.Integer, nullable=True)

    categories = db.Column(db.JSON, nullable=True)
    technical_tags = db.Column(db.JSON, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "is_setup_complete": self.is_setup_complete,
            "store_name": self.store_name,
            "store_logo_url": self.store_logo_url,
            "store_email": self.store_email,
            "store_phone": self.store_phone,
            "store_address": self.store_address,
            "store_description": self.store_description,
            "currency": self.currency,
            "tax_rate_bps": self.tax_rate_bps,
            "categories": list(self.categories or []),
            "technical_tags": list(self.technical_tags or []),
        }
