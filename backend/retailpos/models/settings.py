from __future__ import annotations

from sqlalchemy.orm import validates

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import ValidationError, coerce_int, require_choice, require_non_empty, validate_email
from .enums import LANGUAGES


# The settings table holds exactly one row, always under this key.
SETTINGS_ID = 1


class StoreSettings(db.Model):
    """
    Store-wide configuration (single row).

    The primary key is pinned to SETTINGS_ID by a CHECK constraint, so a
    second row is rejected by the database. Use settings_service.get_settings()
    rather than querying this model directly.
    """
    __tablename__ = "settings"
    __table_args__ = (
        db.CheckConstraint(f"id = {SETTINGS_ID}", name="ck_settings_singleton"),
    )

    id = db.Column(db.Integer, primary_key=True, default=SETTINGS_ID, autoincrement=False)

    store_name = db.Column(db.String(255), nullable=False, default="My Store")
    currency_code = db.Column(db.String(10), nullable=False, default="AED")
    currency_symbol = db.Column(db.String(10), nullable=False, default="د.إ")

    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(255), nullable=True)
    state = db.Column(db.String(255), nullable=True)
    postal_code = db.Column(db.String(255), nullable=True)
    country = db.Column(db.String(255), nullable=True)
    website = db.Column(db.String(255), nullable=True)

    # Percent, 0-100
    tax_rate = db.Column(db.Float, nullable=True, default=0)
    logo_url = db.Column(db.String(255), nullable=True)
    language = db.Column(db.String(10), nullable=False, default="ar")

    invoice_prefix = db.Column(db.String(20), nullable=True, default="INV")
    invoice_suffix = db.Column(db.String(20), nullable=True, default="")
    invoice_next_number = db.Column(db.Integer, nullable=True, default=1001)
    invoice_show_logo = db.Column(db.Boolean, nullable=True, default=True)
    invoice_show_tax_number = db.Column(db.Boolean, nullable=True, default=True)
    invoice_show_signature = db.Column(db.Boolean, nullable=True, default=True)
    invoice_footer_text = db.Column(db.Text, nullable=True, default="Thank you for your business!")
    invoice_terms_and_conditions = db.Column(
        db.Text,
        nullable=True,
        default="All sales are final. Returns accepted within 30 days with receipt.",
    )

    receipt_show_logo = db.Column(db.Boolean, nullable=True, default=True)
    receipt_show_tax_details = db.Column(db.Boolean, nullable=True, default=True)
    receipt_print_automatically = db.Column(db.Boolean, nullable=True, default=False)
    receipt_footer_text = db.Column(db.Text, nullable=True, default="Thank you for shopping with us!")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    @validates("id")
    def _validate_id(self, key, value):
        if value != SETTINGS_ID:
            raise ValidationError(f"settings id must be {SETTINGS_ID}", field=key, constraint="singleton")
        return value

    @validates("store_name", "currency_code", "currency_symbol")
    def _validate_required_text(self, key, value):
        return require_non_empty(key, value)

    @validates("email")
    def _validate_email(self, key, value):
        return validate_email(key, value)

    @validates("language")
    def _validate_language(self, key, value):
        return require_choice(key, value, LANGUAGES)

    @validates("tax_rate")
    def _validate_tax_rate(self, key, value):
        if value is None:
            return None
        try:
            rate = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be a number", field=key, constraint="type")
        if rate < 0 or rate > 100:
            raise ValidationError(f"{key} must be between 0 and 100", field=key, constraint="range")
        return rate

    @validates("invoice_next_number")
    def _validate_next_number(self, key, value):
        return coerce_int(key, value, minimum=1, nullable=True)

    def to_dict(self) -> dict:
        return {
            "store_name": self.store_name,
            "currency_code": self.currency_code,
            "currency_symbol": self.currency_symbol,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
            "website": self.website,
            "tax_rate": self.tax_rate,
            "logo_url": self.logo_url,
            "language": self.language,
            "invoice_prefix": self.invoice_prefix,
            "invoice_suffix": self.invoice_suffix,
            "invoice_next_number": self.invoice_next_number,
            "invoice_show_logo": self.invoice_show_logo,
            "invoice_show_tax_number": self.invoice_show_tax_number,
            "invoice_show_signature": self.invoice_show_signature,
            "invoice_footer_text": self.invoice_footer_text,
            "invoice_terms_and_conditions": self.invoice_terms_and_conditions,
            "receipt_show_logo": self.receipt_show_logo,
            "receipt_show_tax_details": self.receipt_show_tax_details,
            "receipt_print_automatically": self.receipt_print_automatically,
            "receipt_footer_text": self.receipt_footer_text,
            "updated_at": to_utc_z(self.updated_at),
        }
