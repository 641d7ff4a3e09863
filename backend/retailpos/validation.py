from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .time_utils import coerce_date, coerce_datetime


# Numeric(10, 2): 8 integer digits, 2 fractional
MAX_AMOUNT = Decimal("99999999.99")
CENTS = Decimal("0.01")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem, tagged with the failing field and constraint."""

    def __init__(self, message: str, *, field: str | None = None, constraint: str | None = None):
        super().__init__(message)
        self.field = field
        self.constraint = constraint

    def to_dict(self) -> dict:
        return {"error": str(self), "field": self.field, "constraint": self.constraint}


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate inventory row)."""


def quantize_amount(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def coerce_decimal(field: str, value: Any, *, minimum: Decimal | int | None = 0, nullable: bool = False) -> Decimal | None:
    """
    Normalize a money amount to a 2 dp Decimal.

    Floats are converted through str() so 2.49 stays 2.49. Booleans are
    rejected even though they are ints.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if nullable:
            return None
        raise ValidationError(f"{field} is required", field=field, constraint="required")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a decimal number", field=field, constraint="decimal")

    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, (int, float)):
            amount = Decimal(str(value))
        elif isinstance(value, str):
            amount = Decimal(value.strip())
        else:
            raise InvalidOperation
    except InvalidOperation:
        raise ValidationError(f"{field} must be a decimal number", field=field, constraint="decimal")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a decimal number", field=field, constraint="decimal")

    amount = quantize_amount(amount)
    if minimum is not None and amount < Decimal(minimum):
        raise ValidationError(f"{field} must be >= {minimum}", field=field, constraint="min")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}", field=field, constraint="max")
    return amount


def coerce_int(field: str, value: Any, *, minimum: int | None = None, nullable: bool = False) -> int | None:
    """Strict integer parsing: rejects floats, decimals and scientific notation."""
    if value is None:
        if nullable:
            return None
        raise ValidationError(f"{field} is required", field=field, constraint="required")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", field=field, constraint="type")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be a plain integer", field=field, constraint="type")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer", field=field, constraint="type")
    else:
        raise ValidationError(f"{field} must be an integer", field=field, constraint="type")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}", field=field, constraint="min")
    return result


def require_non_empty(field: str, value: Any) -> str:
    if value is None:
        raise ValidationError(f"{field} is required", field=field, constraint="required")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} cannot be empty", field=field, constraint="not_empty")
    return text


def require_choice(field: str, value: Any, choices: Iterable[str]) -> str:
    allowed = tuple(choices)
    if value not in allowed:
        raise ValidationError(
            f"{field} must be one of: {', '.join(allowed)}",
            field=field,
            constraint="enum",
        )
    return value


def validate_email(field: str, value: Any, *, nullable: bool = True) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if nullable:
            return None
        raise ValidationError(f"{field} is required", field=field, constraint="required")
    text = str(value).strip()
    if not EMAIL_RE.match(text):
        raise ValidationError(f"{field} must be a valid email address", field=field, constraint="email")
    return text


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what callers are allowed to set
    - required_on_create: fields required when creating
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.column_attrs}


def _coerce_value(key: str, column, value: Any):
    coltype = column.type

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false", "1", "0"}:
            return value.strip().lower() in {"true", "1"}
        raise ValidationError(f"{key} must be a boolean", field=key, constraint="type")

    if isinstance(coltype, Integer):
        return coerce_int(key, value)

    if isinstance(coltype, Numeric):
        if coltype.asdecimal:
            return coerce_decimal(key, value, minimum=None)
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be a number", field=key, constraint="type")

    if isinstance(coltype, Date):
        try:
            return coerce_date(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be an ISO-8601 date", field=key, constraint="type")

    if isinstance(coltype, DateTime):
        try:
            return coerce_datetime(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be an ISO-8601 datetime", field=key, constraint="type")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes a field dict against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    Range/enum rules are left to the model's @validates hooks, which run
    when the patch is applied.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid payload", constraint="type")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) is None)
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                field=missing[0],
                constraint="required",
            )

    columns = _columns_by_key(model)

    for key in payload:
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}", field=key, constraint="writable")
        if key not in columns:
            raise ValidationError(f"Unknown field: {key}", field=key, constraint="unknown")

    patch: dict = {}
    for key, raw in payload.items():
        column = columns[key].columns[0]

        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null", field=key, constraint="required")
            patch[key] = None
            continue

        value = _coerce_value(key, column, raw)

        if isinstance(column.type, (String, Text)) and not column.nullable and value == "":
            raise ValidationError(f"{key} cannot be blank", field=key, constraint="not_empty")

        if isinstance(column.type, String) and column.type.length and isinstance(value, str):
            if len(value) > column.type.length:
                raise ValidationError(
                    f"{key} exceeds max length {column.type.length}",
                    field=key,
                    constraint="max_length",
                )

        patch[key] = value

    return patch


def apply_patch(instance, patch: dict) -> None:
    for key, value in patch.items():
        setattr(instance, key, value)
