"""
Typed references to other entities.

Notifications and inventory transactions point at "something else" through
a (kind, id) column pair. Instead of passing that pair around loosely, the
rest of the code works with one of the frozen reference classes below and
converts at the model boundary:

    notification.related = ProductRef(12)
    txn.reference = SaleRef(sale.id)

Each consumer declares which kinds it can store, because the id columns
have different SQL types (notifications.related_id is INTEGER,
inventory_transactions.reference_id is a UUID).
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import ClassVar, Union

from .validation import ValidationError


@dataclass(frozen=True)
class ProductRef:
    kind: ClassVar[str] = "product"
    id: int


@dataclass(frozen=True)
class InventoryRef:
    kind: ClassVar[str] = "inventory"
    id: int


@dataclass(frozen=True)
class SaleRef:
    kind: ClassVar[str] = "sale"
    id: uuid.UUID


Reference = Union[ProductRef, InventoryRef, SaleRef]

REFERENCE_TYPES: dict[str, type] = {
    cls.kind: cls for cls in (ProductRef, InventoryRef, SaleRef)
}


def _coerce_id(ref_cls: type, raw):
    if ref_cls in (ProductRef, InventoryRef):
        return int(raw)
    if isinstance(raw, uuid.UUID):
        return raw
    return uuid.UUID(str(raw))


def reference_to_columns(ref: Reference | None, *, field: str, allowed: tuple[type, ...]) -> tuple[str | None, object]:
    """Split a reference into (kind, id) for storage, enforcing the consumer's allowed kinds."""
    if ref is None:
        return None, None
    if not isinstance(ref, allowed):
        names = ", ".join(cls.kind for cls in allowed)
        raise ValidationError(
            f"{field} must reference one of: {names}",
            field=field,
            constraint="reference_kind",
        )
    return ref.kind, ref.id


def reference_from_columns(kind: str | None, raw_id, *, field: str) -> Reference | None:
    """
    Rebuild a reference from stored columns. Half-filled pairs read as None.

    Kinds match case-insensitively; older rows hold "Sale" / "Product".
    """
    if kind is None or raw_id is None:
        return None
    ref_cls = REFERENCE_TYPES.get(str(kind).lower())
    if ref_cls is None:
        raise ValidationError(
            f"{field} has unknown reference kind {kind!r}",
            field=field,
            constraint="reference_kind",
        )
    try:
        return ref_cls(_coerce_id(ref_cls, raw_id))
    except (TypeError, ValueError):
        raise ValidationError(
            f"{field} has malformed {ref_cls.kind} id {raw_id!r}",
            field=field,
            constraint="reference_id",
        )


def parse_reference(value: dict | None, *, field: str = "reference") -> Reference | None:
    """Accept {"kind": "sale", "id": "..."} mappings (CLI / JSON input)."""
    if value is None:
        return None
    if not isinstance(value, dict) or "kind" not in value or "id" not in value:
        raise ValidationError(f"{field} must be an object with kind and id", field=field, constraint="type")
    return reference_from_columns(value["kind"], value["id"], field=field)


def reference_to_dict(ref: Reference | None) -> dict | None:
    if ref is None:
        return None
    return {"kind": ref.kind, "id": str(ref.id) if isinstance(ref.id, uuid.UUID) else ref.id}
