# Overview: Service-layer operations for notifications; stock alerts fan out to admins and managers.

from __future__ import annotations

import uuid
from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Inventory, Notification, Product, User
from ..references import ProductRef
from ..time_utils import utcnow

# Roles that receive stock alerts
ALERT_ROLES = ("admin", "manager")


def _alert_recipients() -> list[User]:
    return (
        db.session.query(User)
        .filter(User.role.in_(ALERT_ROLES), User.is_active.is_(True))
        .order_by(User.username)
        .all()
    )


def _has_unread(user_id: uuid.UUID, notification_type: str, ref: ProductRef) -> bool:
    return (
        db.session.query(Notification.id)
        .filter(
            Notification.user_id == user_id,
            Notification.type == notification_type,
            Notification.related_type == ref.kind,
            Notification.related_id == ref.id,
            Notification.is_read.is_(False),
        )
        .first()
        is not None
    )


def _fan_out(*, notification_type: str, title: str, message: str, ref: ProductRef) -> list[Notification]:
    """
    One notification per alert recipient.

    Recipients who still have an unread notification of the same type for the
    same product are skipped so repeated scans do not pile up duplicates.
    Caller commits.
    """
    recipients = _alert_recipients()
    if not recipients:
        current_app.logger.warning("No admin/manager users to notify about %s", notification_type)
        return []

    created = []
    for user in recipients:
        if _has_unread(user.id, notification_type, ref):
            continue
        notification = Notification(
            user_id=user.id,
            type=notification_type,
            title=title,
            message=message,
        )
        notification.related = ref
        db.session.add(notification)
        created.append(notification)
    db.session.flush()
    return created


def notify_low_stock(inventory: Inventory) -> list[Notification]:
    product = inventory.product or db.session.get(Product, inventory.product_id)
    created = _fan_out(
        notification_type="low_stock",
        title="Low Stock Alert",
        message=(
            f"Product {product.name} is running low on stock. "
            f"Current quantity: {inventory.quantity}, Minimum required: {inventory.min_stock_level}"
        ),
        ref=ProductRef(product.id),
    )
    if created:
        current_app.logger.info("Created %s low stock notifications for product %s", len(created), product.name)
    return created


def notify_expiry(inventory: Inventory, kind: str) -> list[Notification]:
    """kind is 'expired' or 'near'."""
    if kind not in ("expired", "near"):
        raise ValueError("kind must be 'expired' or 'near'")

    product = inventory.product or db.session.get(Product, inventory.product_id)
    date_str = inventory.expiry_date.isoformat()
    if kind == "expired":
        notification_type = "expiry_alert"
        title = "Expired Item Alert"
        message = f"Product {product.name} has expired on {date_str}."
    else:
        notification_type = "near_expiry"
        title = "Near Expiry Alert"
        message = f"Product {product.name} will expire on {date_str}."

    created = _fan_out(
        notification_type=notification_type,
        title=title,
        message=message,
        ref=ProductRef(product.id),
    )
    if created:
        current_app.logger.info("Created %s %s notifications for product %s", len(created), notification_type, product.name)
    return created


def check_inventory_alerts(inventory: Inventory, *, today: date | None = None) -> list[Notification]:
    """Low-stock and expiry checks for one inventory row. Caller commits."""
    created: list[Notification] = []
    if current_app.config.get("LOW_STOCK_NOTIFY", True) and inventory.is_low_stock:
        created.extend(notify_low_stock(inventory))

    today = today or utcnow().date()
    state = inventory.expiry_state(today, current_app.config.get("EXPIRY_WARNING_DAYS", 7))
    if state == "expired":
        created.extend(notify_expiry(inventory, "expired"))
    elif state == "near_expiry":
        created.extend(notify_expiry(inventory, "near"))
    return created


def scan_expiring(*, today: date | None = None) -> list[Notification]:
    """Check every inventory row with an expiry date and commit the resulting notifications."""
    today = today or utcnow().date()
    warning_days = current_app.config.get("EXPIRY_WARNING_DAYS", 7)

    created: list[Notification] = []
    rows = (
        db.session.query(Inventory)
        .filter(Inventory.expiry_date.isnot(None))
        .order_by(Inventory.expiry_date)
        .all()
    )
    for inventory in rows:
        state = inventory.expiry_state(today, warning_days)
        if state == "expired":
            created.extend(notify_expiry(inventory, "expired"))
        elif state == "near_expiry":
            created.extend(notify_expiry(inventory, "near"))

    db.session.commit()
    return created


def list_for_user(user_id: uuid.UUID, *, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    query = db.session.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def unread_count(user_id: uuid.UUID) -> int:
    return (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def mark_read(notification_id: int, user_id: uuid.UUID) -> Notification:
    notification = (
        db.session.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if notification is None:
        raise LookupError("Notification not found")
    notification.is_read = True
    db.session.commit()
    return notification


def mark_all_read(user_id: uuid.UUID) -> int:
    updated = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True, Notification.updated_at: utcnow()}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def delete_notification(notification_id: int, user_id: uuid.UUID) -> None:
    notification = (
        db.session.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if notification is None:
        raise LookupError("Notification not found")
    db.session.delete(notification)
    db.session.commit()
