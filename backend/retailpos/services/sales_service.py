"""
Sales service - checkout, cancellation and totals.

A sale and everything it causes (line items, stock decrements, ledger rows,
receipt number) commit together or not at all. Totals are computed here,
not in the database:

    line subtotal = quantity * unit_price - line discount
    subtotal      = sum(line subtotals)
    tax           = (subtotal - discount) * tax_rate / 100
    total         = subtotal - discount + tax

All amounts are Decimal, rounded half-up to 2 dp.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from flask import current_app
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import Customer, Inventory, Product, Sale, SaleItem, User
from ..references import SaleRef
from ..validation import (
    ValidationError,
    coerce_decimal,
    coerce_int,
    quantize_amount,
    require_choice,
)
from ..models.enums import PAYMENT_METHODS, PAYMENT_STATUSES
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import InventoryError, _raise_alerts, _record_movement_inner
from .settings_service import get_settings, reserve_receipt_number


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def line_subtotal(quantity: int, unit_price, discount=0) -> Decimal:
    qty = coerce_int("quantity", quantity, minimum=1)
    price = coerce_decimal("unit_price", unit_price)
    disc = coerce_decimal("discount", discount)
    result = quantize_amount(Decimal(qty) * price - disc)
    if result < 0:
        raise ValidationError("discount exceeds line amount", field="discount", constraint="max")
    return result


def compute_totals(line_subtotals, discount=0, tax_rate=0) -> dict[str, Decimal]:
    subtotal = quantize_amount(sum((Decimal(x) for x in line_subtotals), Decimal("0")))
    discount_amount = coerce_decimal("discount_amount", discount)
    if discount_amount > subtotal:
        raise ValidationError("discount exceeds sale subtotal", field="discount_amount", constraint="max")

    rate = Decimal(str(tax_rate or 0))
    taxable = subtotal - discount_amount
    tax_amount = quantize_amount(taxable * rate / Decimal("100"))
    total_amount = quantize_amount(taxable + tax_amount)
    return {
        "subtotal": subtotal,
        "discount_amount": discount_amount,
        "tax_amount": tax_amount,
        "total_amount": total_amount,
    }


def _inventory_for_product(product_id: int) -> Inventory | None:
    return lock_for_update(
        db.session.query(Inventory).filter(Inventory.product_id == product_id)
    ).first()


def create_sale(
    *,
    user_id: uuid.UUID,
    items: list[dict],
    payment_method: str = "cash",
    payment_status: str = "paid",
    discount=0,
    customer_id: uuid.UUID | None = None,
    notes: str | None = None,
    tax_rate=None,
) -> Sale:
    """
    Record a completed sale.

    items: [{"product_id": 1, "quantity": 2, "unit_price": optional, "discount": optional}, ...]
    unit_price defaults to the product's current price; tax_rate defaults to
    the store setting.
    """
    if not items:
        raise SaleError("Sale must include at least one item")
    require_choice("payment_method", payment_method, PAYMENT_METHODS)
    require_choice("payment_status", payment_status, PAYMENT_STATUSES)

    def _op():
        if db.session.get(User, user_id) is None:
            raise SaleError("User not found", {"user_id": str(user_id)})
        if customer_id is not None and db.session.get(Customer, customer_id) is None:
            raise SaleError("Customer not found", {"customer_id": str(customer_id)})

        # Settings row must exist before the sale is staged; get_settings() may commit.
        settings = get_settings()
        rate = tax_rate if tax_rate is not None else (settings.tax_rate or 0)

        prepared = []
        requested: dict[int, int] = {}
        for raw in items:
            product_id = coerce_int("product_id", raw.get("product_id"))
            quantity = coerce_int("quantity", raw.get("quantity"), minimum=1)
            product = db.session.get(Product, product_id)
            if product is None:
                raise SaleError(f"Product with ID {product_id} not found", {"product_id": product_id})

            unit_price = raw.get("unit_price")
            unit_price = product.price if unit_price is None else unit_price
            line_discount = raw.get("discount") or 0
            prepared.append((product, quantity, unit_price, line_discount))
            requested[product_id] = requested.get(product_id, 0) + quantity

        inventories: dict[int, Inventory] = {}
        for product_id, quantity in requested.items():
            inventory = _inventory_for_product(product_id)
            if inventory is None or inventory.quantity < quantity:
                product = db.session.get(Product, product_id)
                raise SaleError(
                    f"Insufficient inventory for product: {product.name}",
                    {
                        "product_id": product_id,
                        "available": inventory.quantity if inventory else 0,
                        "requested": quantity,
                    },
                )
            inventories[product_id] = inventory

        sale = Sale(
            user_id=user_id,
            customer_id=customer_id,
            payment_method=payment_method,
            payment_status=payment_status,
            status="completed",
            notes=notes,
        )
        db.session.add(sale)

        for product, quantity, unit_price, line_discount in prepared:
            item = SaleItem(product=product, quantity=quantity, unit_price=unit_price, discount=line_discount)
            item.compute_subtotal()
            sale.items.append(item)

        totals = compute_totals([item.subtotal for item in sale.items], discount, rate)
        sale.subtotal = totals["subtotal"]
        sale.discount_amount = totals["discount_amount"]
        sale.tax_amount = totals["tax_amount"]
        sale.total_amount = totals["total_amount"]
        sale.receipt_number = reserve_receipt_number()
        db.session.flush()

        for item in sale.items:
            _record_movement_inner(
                inventory=inventories[item.product_id],
                user_id=user_id,
                txn_type="sale",
                quantity=item.quantity,
                reason=f"Sale {sale.receipt_number}",
                reference=SaleRef(sale.id),
            )

        db.session.commit()
        return sale, list(inventories.values())

    try:
        sale, touched = run_with_retry(_op)
    except (SaleError, ValidationError, InventoryError):
        db.session.rollback()
        raise

    current_app.logger.info(
        "Sale %s recorded: %s items, total %s", sale.receipt_number, len(sale.items), sale.total_amount
    )
    for inventory in touched:
        if inventory.is_low_stock:
            _raise_alerts(inventory)
    return sale


def cancel_sale(sale_id: uuid.UUID, *, user_id: uuid.UUID, reason: str | None = None) -> Sale:
    """Cancel a completed sale and put its stock back through 'return' movements."""

    def _op():
        sale = lock_for_update(db.session.query(Sale).filter(Sale.id == sale_id)).first()
        if sale is None:
            raise SaleError("Sale not found")
        if sale.status == "cancelled":
            raise SaleError("Sale already cancelled")
        if sale.status != "completed":
            raise SaleError(f"Cannot cancel sale with status {sale.status}")

        for item in sale.items:
            inventory = _inventory_for_product(item.product_id)
            if inventory is None:
                current_app.logger.warning(
                    "Sale %s: no inventory row for product %s, stock not restored", sale.id, item.product_id
                )
                continue
            _record_movement_inner(
                inventory=inventory,
                user_id=user_id,
                txn_type="return",
                quantity=item.quantity,
                reason=reason or f"Cancelled sale {sale.receipt_number}",
                reference=SaleRef(sale.id),
            )

        sale.status = "cancelled"
        if sale.payment_status in ("paid", "partially_paid"):
            sale.payment_status = "refunded"
        db.session.commit()
        return sale

    try:
        sale = run_with_retry(_op)
    except (SaleError, ValidationError):
        db.session.rollback()
        raise

    current_app.logger.info("Sale %s cancelled by %s", sale.receipt_number, user_id)
    return sale


def update_payment(sale_id: uuid.UUID, *, payment_status: str | None = None, payment_method: str | None = None) -> Sale:
    """Only payment fields are editable after checkout."""
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise SaleError("Sale not found")
    if payment_status is not None:
        sale.payment_status = payment_status
    if payment_method is not None:
        sale.payment_method = payment_method
    db.session.commit()
    return sale


def get_sale(sale_id: uuid.UUID) -> Sale:
    """Sale with its customer, items and each item's product loaded."""
    sale = (
        db.session.query(Sale)
        .options(
            joinedload(Sale.items).joinedload(SaleItem.product),
            joinedload(Sale.customer),
            joinedload(Sale.user),
        )
        .filter(Sale.id == sale_id)
        .first()
    )
    if sale is None:
        raise SaleError("Sale not found")
    return sale


def list_sales(*, status: str | None = None, limit: int = 100) -> list[Sale]:
    query = db.session.query(Sale).filter(Sale.deleted_at.is_(None))
    if status is not None:
        query = query.filter(Sale.status == status)
    return query.order_by(Sale.sale_date.desc()).limit(limit).all()
