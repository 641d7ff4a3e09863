from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy.orm import validates

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import ValidationError, coerce_decimal, coerce_int, quantize_amount, require_choice
from .catalog import money_str
from .enums import PAYMENT_METHODS, PAYMENT_STATUSES, SALE_STATUSES, in_check
from .policies import policy_fk, policy_relationship_kwargs


class Sale(db.Model):
    """
    A completed (or pending / cancelled) checkout.

    total_amount = subtotal - discount_amount + tax_amount is maintained by
    the sales service; the database only guards ranges and enum values.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("receipt_number", name="uq_sales_receipt_number"),
        db.CheckConstraint(in_check("status", SALE_STATUSES), name="ck_sales_status"),
        db.CheckConstraint(in_check("payment_method", PAYMENT_METHODS), name="ck_sales_payment_method"),
        db.CheckConstraint(in_check("payment_status", PAYMENT_STATUSES), name="ck_sales_payment_status"),
        db.Index("sales_sale_date_idx", "sale_date"),
        db.Index("sales_customer_id_idx", "customer_id"),
        db.Index("sales_user_id_idx", "user_id"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    customer_id = db.Column(db.Uuid, policy_fk("sales.customer_id"), nullable=True)
    user_id = db.Column(db.Uuid, policy_fk("sales.user_id"), nullable=False)

    subtotal = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    payment_method = db.Column(db.String(20), nullable=False, default="cash")
    payment_status = db.Column(db.String(20), nullable=False, default="paid")
    status = db.Column(db.String(20), nullable=False, default="completed")

    notes = db.Column(db.Text, nullable=True)
    receipt_number = db.Column(db.String(50), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    customer = db.relationship("Customer", back_populates="sales")
    user = db.relationship("User")
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.created_at",
        **policy_relationship_kwargs("sale_items.sale_id"),
    )

    @validates("subtotal", "tax_amount", "discount_amount", "total_amount")
    def _validate_amounts(self, key, value):
        return coerce_decimal(key, value, minimum=0)

    @validates("status")
    def _validate_status(self, key, value):
        return require_choice(key, value, SALE_STATUSES)

    @validates("payment_method")
    def _validate_payment_method(self, key, value):
        return require_choice(key, value, PAYMENT_METHODS)

    @validates("payment_status")
    def _validate_payment_status(self, key, value):
        return require_choice(key, value, PAYMENT_STATUSES)

    def __repr__(self) -> str:
        return f"<Sale id={self.id} receipt={self.receipt_number!r} total={self.total_amount} status={self.status!r}>"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": str(self.id) if self.id else None,
            "sale_date": to_utc_z(self.sale_date),
            "customer_id": str(self.customer_id) if self.customer_id else None,
            "user_id": str(self.user_id) if self.user_id else None,
            "subtotal": money_str(self.subtotal),
            "tax_amount": money_str(self.tax_amount),
            "discount_amount": money_str(self.discount_amount),
            "total_amount": money_str(self.total_amount),
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "status": self.status,
            "notes": self.notes,
            "receipt_number": self.receipt_number,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint("unit_price >= 0", name="ck_sale_items_unit_price_non_negative"),
        db.CheckConstraint("discount >= 0", name="ck_sale_items_discount_non_negative"),
        db.CheckConstraint("subtotal >= 0", name="ck_sale_items_subtotal_non_negative"),
        db.Index("sale_items_sale_id_idx", "sale_id"),
        db.Index("sale_items_product_id_idx", "product_id"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    sale_id = db.Column(db.Uuid, policy_fk("sale_items.sale_id"), nullable=False)
    product_id = db.Column(db.Integer, policy_fk("sale_items.product_id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product", back_populates="sale_items")

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return coerce_int(key, value, minimum=1)

    @validates("unit_price", "discount", "subtotal")
    def _validate_amounts(self, key, value):
        return coerce_decimal(key, value, minimum=0)

    def compute_subtotal(self) -> Decimal:
        """quantity * unit_price - discount, 2 dp half-up. Sets and returns subtotal."""
        gross = Decimal(self.quantity or 0) * Decimal(self.unit_price or 0)
        net = quantize_amount(gross - Decimal(self.discount or 0))
        if net < 0:
            raise ValidationError("discount exceeds line amount", field="discount", constraint="max")
        self.subtotal = net
        return net

    def to_dict(self) -> dict:
        return {
            "id": str(self.id) if self.id else None,
            "sale_id": str(self.sale_id) if self.sale_id else None,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "discount": money_str(self.discount),
            "subtotal": money_str(self.subtotal),
            "notes": self.notes,
        }
