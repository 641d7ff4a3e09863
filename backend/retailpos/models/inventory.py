from __future__ import annotations

import uuid
from datetime import date, timedelta

from sqlalchemy.orm import validates

from ..extensions import db
from ..references import SaleRef, reference_from_columns, reference_to_columns, reference_to_dict
from ..time_utils import coerce_date, to_utc_z, utcnow
from ..validation import ValidationError, coerce_int, require_choice
from .append_only import append_only
from .enums import TRANSACTION_TYPES, in_check
from .policies import policy_fk, policy_relationship_kwargs


# Types whose direction is implied: stock in / stock out.
INBOUND_TYPES = ("purchase", "return")
OUTBOUND_TYPES = ("sale",)


def signed_quantity(txn_type: str, quantity: int) -> int:
    """
    Stock delta for a movement.

    purchase/return always add, sale always subtracts, adjustment/transfer
    carry their own sign. Applying it to an already-signed delta is a no-op,
    so stored rows satisfy new_quantity == previous_quantity + signed_quantity(type, quantity).
    """
    require_choice("type", txn_type, TRANSACTION_TYPES)
    if txn_type in INBOUND_TYPES:
        return abs(quantity)
    if txn_type in OUTBOUND_TYPES:
        return -abs(quantity)
    return quantity


class Inventory(db.Model):
    """
    Stock of one product at one location.

    The in-memory name `min_stock_level` is stored in the `min_quantity`
    column. Quantity only changes through InventoryTransaction rows written
    by the inventory service; the row itself is refused by the database
    while it still has transaction history (RESTRICT).
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        db.CheckConstraint("min_quantity >= 0", name="ck_inventory_min_quantity_non_negative"),
        db.Index("inventory_product_id_idx", "product_id"),
        db.Index("inventory_expiry_date_idx", "expiry_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, policy_fk("inventory.product_id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    location = db.Column(db.String(100), nullable=True)
    min_stock_level = db.Column("min_quantity", db.Integer, nullable=False, default=0)
    expiry_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    product = db.relationship("Product", back_populates="inventory_items")
    transactions = db.relationship(
        "InventoryTransaction",
        back_populates="inventory",
        order_by="InventoryTransaction.created_at.desc()",
        **policy_relationship_kwargs("inventory_transactions.inventory_id"),
    )

    @validates("quantity", "min_stock_level")
    def _validate_counts(self, key, value):
        return coerce_int(key, value, minimum=0)

    @validates("expiry_date")
    def _validate_expiry_date(self, key, value):
        try:
            return coerce_date(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be an ISO-8601 date", field=key, constraint="type")

    @property
    def is_low_stock(self) -> bool:
        return (self.quantity or 0) <= (self.min_stock_level or 0)

    def expiry_state(self, today: date, warning_days: int) -> str | None:
        """'expired', 'near_expiry' (within warning_days) or None."""
        if self.expiry_date is None:
            return None
        if self.expiry_date <= today:
            return "expired"
        if self.expiry_date <= today + timedelta(days=warning_days):
            return "near_expiry"
        return None

    def __repr__(self) -> str:
        return f"<Inventory id={self.id} product_id={self.product_id} quantity={self.quantity} location={self.location!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "location": self.location,
            "min_stock_level": self.min_stock_level,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "is_low_stock": self.is_low_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


@append_only()
class InventoryTransaction(db.Model):
    """
    Stock movement ledger, insert-only.

    `quantity` is the signed delta actually applied to the inventory row.
    The balance CHECK keeps previous/new quantities honest in the database
    as well as in the service layer.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.CheckConstraint(in_check("type", TRANSACTION_TYPES), name="ck_inventory_transactions_type"),
        db.CheckConstraint("quantity <> 0", name="ck_inventory_transactions_quantity_non_zero"),
        db.CheckConstraint(
            "new_quantity = previous_quantity + quantity",
            name="ck_inventory_transactions_balance",
        ),
        db.Index("inventory_transactions_inventory_id_idx", "inventory_id"),
        db.Index("inventory_transactions_user_id_idx", "user_id"),
        db.Index("inventory_transactions_reference_id_idx", "reference_id"),
    )

    REFERENCE_KINDS = (SaleRef,)

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    inventory_id = db.Column(db.Integer, policy_fk("inventory_transactions.inventory_id"), nullable=False)
    user_id = db.Column(db.Uuid, policy_fk("inventory_transactions.user_id"), nullable=False)

    type = db.Column(db.String(20), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    reference_id = db.Column(db.Uuid, nullable=True)
    reference_type = db.Column(db.String(32), nullable=True)

    previous_quantity = db.Column(db.Integer, nullable=False)
    new_quantity = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    inventory = db.relationship("Inventory", back_populates="transactions")
    user = db.relationship("User")

    @validates("type")
    def _validate_type(self, key, value):
        return require_choice(key, value, TRANSACTION_TYPES)

    @validates("quantity")
    def _validate_quantity(self, key, value):
        quantity = coerce_int(key, value)
        if quantity == 0:
            raise ValidationError(f"{key} must not be zero", field=key, constraint="non_zero")
        return quantity

    @property
    def reference(self):
        return reference_from_columns(self.reference_type, self.reference_id, field="reference")

    @reference.setter
    def reference(self, ref) -> None:
        self.reference_type, self.reference_id = reference_to_columns(
            ref, field="reference", allowed=self.REFERENCE_KINDS
        )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id) if self.id else None,
            "inventory_id": self.inventory_id,
            "user_id": str(self.user_id) if self.user_id else None,
            "type": self.type,
            "quantity": self.quantity,
            "reason": self.reason,
            "reference": reference_to_dict(self.reference),
            "previous_quantity": self.previous_quantity,
            "new_quantity": self.new_quantity,
            "created_at": to_utc_z(self.created_at),
        }
