# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/retailpos/services/inventory_service.py

from __future__ import annotations

import uuid
from datetime import date

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Inventory, InventoryTransaction, Product, User, signed_quantity
from ..references import SaleRef
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    apply_patch,
    coerce_int,
    require_choice,
    validate_payload,
)
from . import notification_service
from .concurrency import lock_for_update, run_with_retry
"""
Inventory invariants (authoritative)

- One Inventory row per product.
- Inventory.quantity never goes negative (CHECK + validator + the checks below).
- Quantity changes only through record_movement(), which writes an
  InventoryTransaction in the same DB transaction:
      new_quantity = previous_quantity + signed_quantity(type, quantity)
  and stores the signed delta as the transaction quantity.
- Transactions are append-only; an Inventory row with history cannot be deleted.
- Alerts (low stock, expiry) are raised after the stock change is committed
  and never roll it back.
"""


class InventoryError(ConflictError):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


INVENTORY_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"location", "min_stock_level", "expiry_date"}),
)

ADJUST_DIRECTIONS = ("add", "subtract")


def get_inventory(inventory_id: int) -> Inventory:
    inventory = db.session.get(Inventory, inventory_id)
    if inventory is None:
        raise LookupError("Inventory item not found")
    return inventory


def list_inventory() -> list[Inventory]:
    return db.session.query(Inventory).order_by(Inventory.id).all()


def _raise_alerts(inventory: Inventory, *, today: date | None = None) -> None:
    try:
        notification_service.check_inventory_alerts(inventory, today=today)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create stock alerts for inventory %s", inventory.id)


def create_inventory(
    *,
    product_id: int,
    quantity: int = 0,
    location: str | None = None,
    min_stock_level: int = 0,
    expiry_date=None,
    today: date | None = None,
) -> Inventory:
    """Create the stock row for a product. Opening stock is not a movement and writes no transaction."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise ValidationError("Product not found", field="product_id", constraint="exists")

    existing = db.session.query(Inventory.id).filter(Inventory.product_id == product_id).first()
    if existing is not None:
        raise ConflictError("Inventory already exists for this product")

    inventory = Inventory(
        product_id=product_id,
        quantity=quantity,
        location=location,
        min_stock_level=min_stock_level,
        expiry_date=expiry_date,
    )
    db.session.add(inventory)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise

    current_app.logger.info("Created inventory %s for product %s (qty=%s)", inventory.id, product_id, inventory.quantity)
    _raise_alerts(inventory, today=today)
    return inventory


def update_inventory(inventory_id: int, *, today: date | None = None, **fields) -> Inventory:
    """Update location / min level / expiry. Quantity is not writable here; use adjust_inventory()."""
    inventory = get_inventory(inventory_id)
    if "quantity" in fields:
        raise ValidationError(
            "quantity cannot be updated directly; record an adjustment instead",
            field="quantity",
            constraint="writable",
        )

    patch = validate_payload(model=Inventory, payload=fields, policy=INVENTORY_UPDATE_POLICY, partial=True)
    apply_patch(inventory, patch)
    db.session.commit()

    if "expiry_date" in patch or "min_stock_level" in patch:
        _raise_alerts(inventory, today=today)
    return inventory


def _record_movement_inner(
    *,
    inventory: Inventory,
    user_id: uuid.UUID,
    txn_type: str,
    quantity: int,
    reason: str | None,
    reference: SaleRef | None,
) -> InventoryTransaction:
    """Core movement logic without locking, retry or commit."""
    quantity = coerce_int("quantity", quantity)
    if quantity == 0:
        raise ValidationError("Quantity must be a non-zero value", field="quantity", constraint="non_zero")

    delta = signed_quantity(txn_type, quantity)
    previous = inventory.quantity
    new = previous + delta
    if new < 0:
        raise InventoryError(
            "Insufficient inventory",
            {"inventory_id": inventory.id, "available": previous, "requested": -delta},
        )

    inventory.quantity = new
    txn = InventoryTransaction(
        inventory_id=inventory.id,
        user_id=user_id,
        type=txn_type,
        quantity=delta,
        reason=reason,
        previous_quantity=previous,
        new_quantity=new,
    )
    txn.reference = reference
    db.session.add(txn)
    db.session.flush()
    return txn


def record_movement(
    *,
    inventory_id: int,
    user_id: uuid.UUID,
    txn_type: str,
    quantity: int,
    reason: str | None = None,
    reference: SaleRef | None = None,
    today: date | None = None,
) -> InventoryTransaction:
    """
    Apply a stock movement and write its ledger row atomically.

    Raises ConflictError (and writes nothing) when the movement would take
    stock below zero.
    """
    if db.session.get(User, user_id) is None:
        raise ValidationError("User not found", field="user_id", constraint="exists")

    def _op():
        inventory = lock_for_update(db.session.query(Inventory).filter(Inventory.id == inventory_id)).first()
        if inventory is None:
            raise LookupError("Inventory item not found")

        txn = _record_movement_inner(
            inventory=inventory,
            user_id=user_id,
            txn_type=txn_type,
            quantity=quantity,
            reason=reason,
            reference=reference,
        )
        db.session.commit()
        return inventory, txn

    try:
        inventory, txn = run_with_retry(_op)
    except (ValidationError, ConflictError, LookupError):
        db.session.rollback()
        raise

    current_app.logger.info(
        "Inventory %s %s %+d: %s -> %s",
        inventory.id, txn.type, txn.quantity, txn.previous_quantity, txn.new_quantity,
    )
    if inventory.is_low_stock:
        _raise_alerts(inventory, today=today)
    return txn


def adjust_inventory(
    inventory_id: int,
    *,
    user_id: uuid.UUID,
    quantity: int,
    direction: str,
    reason: str | None = None,
    today: date | None = None,
) -> InventoryTransaction:
    """Manual stock correction: add or subtract a positive quantity."""
    require_choice("direction", direction, ADJUST_DIRECTIONS)
    amount = coerce_int("quantity", quantity)
    if amount == 0:
        raise ValidationError("Quantity must be a non-zero value", field="quantity", constraint="non_zero")
    delta = abs(amount) if direction == "add" else -abs(amount)
    return record_movement(
        inventory_id=inventory_id,
        user_id=user_id,
        txn_type="adjustment",
        quantity=delta,
        reason=reason or "Manual adjustment",
        today=today,
    )


def delete_inventory(inventory_id: int) -> None:
    """
    Delete a stock row that has no history.

    The application check gives a clear error; the RESTRICT foreign key on
    inventory_transactions.inventory_id is the final guard.
    """
    inventory = get_inventory(inventory_id)
    history = (
        db.session.query(InventoryTransaction.id)
        .filter(InventoryTransaction.inventory_id == inventory_id)
        .count()
    )
    if history:
        raise InventoryError(
            "Cannot delete inventory with transaction history",
            {"inventory_id": inventory_id, "transactions": history},
        )

    db.session.delete(inventory)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise
    current_app.logger.info("Deleted inventory %s", inventory_id)


def list_transactions(inventory_id: int, *, limit: int = 200) -> list[InventoryTransaction]:
    get_inventory(inventory_id)
    return (
        db.session.query(InventoryTransaction)
        .filter(InventoryTransaction.inventory_id == inventory_id)
        .order_by(InventoryTransaction.created_at.desc())
        .limit(limit)
        .all()
    )


def low_stock_items() -> list[Inventory]:
    return (
        db.session.query(Inventory)
        .filter(Inventory.quantity <= Inventory.min_stock_level)
        .order_by(Inventory.quantity, Inventory.id)
        .all()
    )
