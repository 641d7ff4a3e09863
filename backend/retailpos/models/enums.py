# Overview: Allowed values for enumerated string columns and their CHECK expressions.

from __future__ import annotations

USER_ROLES = ("admin", "manager", "cashier", "storekeeper", "accountant", "staff")

SALE_STATUSES = ("pending", "completed", "cancelled")
PAYMENT_METHODS = ("cash", "credit_card", "debit_card", "mobile_payment", "other")
PAYMENT_STATUSES = ("pending", "paid", "partially_paid", "refunded")

TRANSACTION_TYPES = ("purchase", "sale", "adjustment", "return", "transfer")

LOGIN_STATUSES = ("success", "failed")

NOTIFICATION_TYPES = (
    "low_stock",
    "new_order",
    "payment_received",
    "system_update",
    "customer_return",
    "expiry_alert",
    "near_expiry",
)

LANGUAGES = ("ar", "en")


def in_check(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"
