# Overview: Printable invoice data and AED currency formatting (no rendering).

from __future__ import annotations

import uuid
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from ..time_utils import to_utc_z
from ..validation import quantize_amount
from .sales_service import get_sale, list_sales
from .settings_service import get_settings


ARABIC_DIGITS = str.maketrans("0123456789", "٠١٢٣٤٥٦٧٨٩")

DEFAULT_SYMBOL = "د.إ"
DEFAULT_CODE = "AED"
CURRENCY_NAMES = {"ar": "درهم إماراتي", "en": "UAE Dirham"}


def to_arabic_digits(value) -> str:
    return str(value).translate(ARABIC_DIGITS)


def _to_decimal(amount) -> Decimal:
    if amount is None or isinstance(amount, bool):
        return Decimal("0")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except InvalidOperation:
        return Decimal("0")
    return value if value.is_finite() else Decimal("0")


def format_currency(
    amount,
    language: str = "ar",
    *,
    symbol: str | None = None,
    code: str | None = None,
    show_symbol: bool = True,
    arabic_digits: bool = False,
    show_currency_name: bool = False,
    precision: int = 2,
) -> str:
    """
    Arabic:  "12.50 د.إ"   (amount then symbol, optional Arabic-Indic digits)
    English: "AED 12.50"   (code then amount)

    Missing or non-numeric amounts format as zero.
    """
    exponent = Decimal(1).scaleb(-precision)
    text = f"{_to_decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP):.{precision}f}"

    if language == "ar":
        if arabic_digits:
            text = to_arabic_digits(text)
        if show_symbol:
            text = f"{text} {symbol or DEFAULT_SYMBOL}"
        if show_currency_name:
            text += f" ({CURRENCY_NAMES['ar']})"
        return text

    if show_symbol:
        text = f"{code or DEFAULT_CODE} {text}"
    if show_currency_name:
        text += f" ({CURRENCY_NAMES['en']})"
    return text


def invoice_tax(subtotal, discount, tax_rate) -> Decimal:
    """(subtotal - discount) * rate / 100, for invoices whose stored tax is missing."""
    taxable = _to_decimal(subtotal) - _to_decimal(discount)
    return quantize_amount(taxable * _to_decimal(tax_rate) / Decimal("100"))


def build_invoice(sale_id: uuid.UUID, *, language: str | None = None, arabic_digits: bool = False) -> dict:
    """Everything an invoice template needs, already formatted for display."""
    sale = get_sale(sale_id)
    settings = get_settings()
    language = language or settings.language

    def money(value) -> str:
        return format_currency(
            value,
            language,
            symbol=settings.currency_symbol,
            code=settings.currency_code,
            arabic_digits=arabic_digits,
        )

    lines = []
    for index, item in enumerate(sale.items, start=1):
        lines.append({
            "line": index,
            "product_id": item.product_id,
            "name": item.product.name,
            "name_ar": item.product.name_ar,
            "quantity": item.quantity,
            "unit_price": money(item.unit_price),
            "discount": money(item.discount),
            "subtotal": money(item.subtotal),
        })

    tax_amount = sale.tax_amount
    if tax_amount is None:
        tax_amount = invoice_tax(sale.subtotal, sale.discount_amount, settings.tax_rate)

    store = {
        "name": settings.store_name,
        "address": ", ".join(p for p in (settings.address, settings.city, settings.country) if p),
        "phone": settings.phone,
        "email": settings.email,
        "website": settings.website,
        "logo_url": settings.logo_url if settings.invoice_show_logo else None,
    }

    return {
        "invoice_number": sale.receipt_number,
        "sale_id": str(sale.id),
        "date": to_utc_z(sale.sale_date),
        "status": sale.status,
        "payment_method": sale.payment_method,
        "payment_status": sale.payment_status,
        "language": language,
        "store": store,
        "customer": sale.customer.to_dict() if sale.customer else None,
        "cashier": (sale.user.full_name or sale.user.username) if sale.user else None,
        "lines": lines,
        "totals": {
            "subtotal": money(sale.subtotal),
            "discount": money(sale.discount_amount),
            "tax": money(tax_amount),
            "total": money(sale.total_amount),
        },
        "tax_percent": settings.tax_rate or 0,
        "show_tax_number": bool(settings.invoice_show_tax_number),
        "show_signature": bool(settings.invoice_show_signature),
        "footer_text": settings.invoice_footer_text,
        "terms_and_conditions": settings.invoice_terms_and_conditions,
        "notes": sale.notes,
    }


def invoice_rows(*, language: str | None = None, limit: int = 50) -> list[dict]:
    """Compact rows for the invoice list screen, newest first."""
    settings = get_settings()
    language = language or settings.language
    rows = []
    for sale in list_sales(limit=limit):
        rows.append({
            "sale_id": str(sale.id),
            "invoice_number": sale.receipt_number,
            "date": to_utc_z(sale.sale_date),
            "customer": sale.customer.name if sale.customer else None,
            "items": len(sale.items),
            "total": format_currency(
                sale.total_amount, language, symbol=settings.currency_symbol, code=settings.currency_code
            ),
            "status": sale.status,
            "payment_status": sale.payment_status,
        })
    return rows
