# backend/retailpos/services/products_service.py
"""
Products service

Barcodes are not unique in the schema; uniqueness is checked here so that
legacy duplicates do not block migrations. A barcode typed in by hand is
never flagged as generated.
"""
from __future__ import annotations

import secrets

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..validation import ConflictError, ModelValidationPolicy, apply_patch, validate_payload

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "description", "name_ar", "description_ar",
        "price", "cost", "stock", "category",
        "barcode", "is_generated_barcode", "serial_number", "unit_id",
        "is_online", "image_url",
    }),
    required_on_create=frozenset({"name", "price"}),
)

BARCODE_ATTEMPTS = 10


def barcode_exists(barcode: str, *, exclude_id: int | None = None) -> bool:
    query = db.session.query(Product.id).filter(Product.barcode == barcode)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None


def generate_unique_barcode() -> str:
    """Random 12-digit code not used by any product."""
    for _ in range(BARCODE_ATTEMPTS):
        candidate = str(100000000000 + secrets.randbelow(900000000000))
        if not barcode_exists(candidate):
            return candidate
    raise ConflictError("Could not generate a unique barcode after multiple attempts")


def list_products(*, q: str | None = None, barcode: str | None = None, is_online: bool | None = None) -> list[Product]:
    """Case-insensitive search over English and Arabic name/description."""
    query = db.session.query(Product)
    text = (q or "").strip()
    if text:
        pattern = f"%{text}%"
        query = query.filter(db.or_(
            Product.name.ilike(pattern),
            Product.description.ilike(pattern),
            Product.name_ar.ilike(pattern),
            Product.description_ar.ilike(pattern),
        ))
    if barcode:
        query = query.filter(Product.barcode == barcode)
    if is_online is not None:
        query = query.filter(Product.is_online.is_(bool(is_online)))
    return query.order_by(Product.name, Product.id).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise LookupError("Product not found")
    return product


def create_product(payload: dict, *, generate_barcode: bool = False) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)

    if patch.get("barcode"):
        if barcode_exists(patch["barcode"]):
            raise ConflictError("Barcode already exists")
        patch.setdefault("is_generated_barcode", False)
    elif generate_barcode:
        patch["barcode"] = generate_unique_barcode()
        patch["is_generated_barcode"] = True

    product = Product()
    apply_patch(product, patch)
    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise
    current_app.logger.info("Created product %s (%s)", product.id, product.name)
    return product


def update_product(product_id: int, payload: dict) -> Product:
    product = get_product(product_id)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)

    if "barcode" in patch and patch["barcode"] != product.barcode:
        if patch["barcode"] and barcode_exists(patch["barcode"], exclude_id=product.id):
            raise ConflictError("Barcode already exists")
        # Manually changed barcodes are no longer "generated"
        patch.setdefault("is_generated_barcode", False)

    apply_patch(product, patch)
    db.session.commit()
    return product


def delete_product(product_id: int) -> None:
    """
    Delete a product and its inventory rows.

    Refused by the database when the product appears on sales or when its
    inventory has movement history.
    """
    product = get_product(product_id)
    db.session.delete(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise
    current_app.logger.info("Deleted product %s", product_id)
