# Overview: Store settings singleton access, updates, and receipt numbering.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import SETTINGS_ID, StoreSettings
from ..validation import ModelValidationPolicy, apply_patch, validate_payload
from .concurrency import lock_for_update, run_with_retry


SETTINGS_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "store_name", "currency_code", "currency_symbol",
        "email", "phone", "address", "city", "state", "postal_code", "country", "website",
        "tax_rate", "logo_url", "language",
        "invoice_prefix", "invoice_suffix", "invoice_next_number",
        "invoice_show_logo", "invoice_show_tax_number", "invoice_show_signature",
        "invoice_footer_text", "invoice_terms_and_conditions",
        "receipt_show_logo", "receipt_show_tax_details", "receipt_print_automatically",
        "receipt_footer_text",
    }),
)


def get_settings() -> StoreSettings:
    """Return the settings row, creating it with defaults on first use."""
    settings = db.session.get(StoreSettings, SETTINGS_ID)
    if settings is not None:
        return settings

    settings = StoreSettings(id=SETTINGS_ID)
    db.session.add(settings)
    try:
        db.session.commit()
    except IntegrityError:
        # Another request created it first
        db.session.rollback()
        settings = db.session.get(StoreSettings, SETTINGS_ID)
        if settings is None:
            raise
        return settings

    current_app.logger.info("Created default store settings")
    return settings


def update_settings(**fields) -> StoreSettings:
    patch = validate_payload(model=StoreSettings, payload=fields, policy=SETTINGS_UPDATE_POLICY, partial=True)
    settings = get_settings()
    apply_patch(settings, patch)
    db.session.commit()
    current_app.logger.info("Updated store settings: %s", ", ".join(sorted(patch)) or "(no changes)")
    return settings


def format_receipt_number(prefix: str | None, number: int, suffix: str | None) -> str:
    prefix = prefix or ""
    suffix = suffix or ""
    if prefix:
        return f"{prefix}-{number}{suffix}"
    return f"{number}{suffix}"


def reserve_receipt_number() -> str:
    """
    Take the next invoice number and advance the counter. Caller commits.

    Runs inside the caller's transaction so the number is only consumed
    when the sale that uses it commits.
    """
    get_settings()
    settings = lock_for_update(
        db.session.query(StoreSettings).filter(StoreSettings.id == SETTINGS_ID)
    ).one()
    number = settings.invoice_next_number or 1
    settings.invoice_next_number = number + 1
    db.session.flush()
    return format_receipt_number(settings.invoice_prefix, number, settings.invoice_suffix)


def next_receipt_number() -> str:
    def _op():
        receipt_number = reserve_receipt_number()
        db.session.commit()
        return receipt_number

    return run_with_retry(_op)
