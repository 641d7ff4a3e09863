from __future__ import annotations

import uuid

from sqlalchemy import false
from sqlalchemy.orm import validates

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import coerce_decimal, coerce_int, require_non_empty, validate_email
from .policies import policy_relationship_kwargs


def money_str(value) -> str | None:
    return None if value is None else f"{value:.2f}"


class Product(db.Model):
    """
    Product master data.

    price/cost are Numeric(10, 2); the validators quantize to cents (half-up)
    and reject negatives before anything is flushed. `stock` is the catalog
    figure shown on product screens; per-location stock lives in Inventory.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("cost IS NULL OR cost >= 0", name="ck_products_cost_non_negative"),
        db.Index("products_barcode_idx", "barcode"),
        db.Index("products_category_idx", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    name_ar = db.Column(db.String(255), nullable=True)
    description_ar = db.Column(db.Text, nullable=True)

    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    cost = db.Column(db.Numeric(10, 2), nullable=True)
    stock = db.Column(db.Integer, nullable=False, default=0)
    category = db.Column(db.String(100), nullable=True)

    barcode = db.Column(db.String(50), nullable=True)
    is_generated_barcode = db.Column(db.Boolean, nullable=False, default=False, server_default=false())
    serial_number = db.Column(db.String(100), nullable=True)
    unit_id = db.Column(db.Integer, nullable=True)
    is_online = db.Column(db.Boolean, nullable=False, default=False, server_default=false())
    image_url = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    inventory_items = db.relationship(
        "Inventory",
        back_populates="product",
        **policy_relationship_kwargs("inventory.product_id"),
    )
    sale_items = db.relationship(
        "SaleItem",
        back_populates="product",
        **policy_relationship_kwargs("sale_items.product_id"),
    )

    @validates("name")
    def _validate_name(self, key, value):
        return require_non_empty(key, value)

    @validates("price")
    def _validate_price(self, key, value):
        return coerce_decimal(key, value, minimum=0)

    @validates("cost")
    def _validate_cost(self, key, value):
        return coerce_decimal(key, value, minimum=0, nullable=True)

    @validates("stock")
    def _validate_stock(self, key, value):
        return coerce_int(key, value, minimum=0)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} price={self.price}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "name_ar": self.name_ar,
            "description_ar": self.description_ar,
            "price": money_str(self.price),
            "cost": money_str(self.cost),
            "stock": self.stock,
            "category": self.category,
            "barcode": self.barcode,
            "is_generated_barcode": self.is_generated_barcode,
            "serial_number": self.serial_number,
            "unit_id": self.unit_id,
            "is_online": self.is_online,
            "image_url": self.image_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    # Sales outlive the customer record (customer_id is nulled)
    sales = db.relationship(
        "Sale",
        back_populates="customer",
        **policy_relationship_kwargs("sales.customer_id"),
    )

    @validates("name")
    def _validate_name(self, key, value):
        return require_non_empty(key, value)

    @validates("email")
    def _validate_email(self, key, value):
        return validate_email(key, value)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id) if self.id else None,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
