# Overview: Baseline data seeders (admin user, demo products, opening inventory).

"""
Seeders are re-runnable:

- up() reads what already exists and inserts only the set difference on the
  natural key (username, product name, inventory product_id).
- down() removes only rows whose natural key matches what up() would insert
  for the current data, leaving hand-made rows alone. Rows that are
  referenced by sales or stock history are kept and reported as skipped.

Seeders run in name order; undo runs in reverse.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable

from flask import current_app

from ..extensions import db
from ..models import Inventory, InventoryTransaction, Product, Sale, SaleItem, User
from .auth_service import hash_password


class SeedError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class SeedResult:
    name: str
    inserted: int = 0
    deleted: int = 0
    skipped: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Seeder:
    name: str
    up: Callable[[], SeedResult]
    down: Callable[[], SeedResult]


ADMIN_USERNAME = "admin"

DEFAULT_PRODUCTS = [
    {"name": "Rice", "description": "Premium quality basmati rice", "price": Decimal("5.99"), "stock": 100, "category": "Grains"},
    {"name": "Milk", "description": "Fresh whole milk", "price": Decimal("2.49"), "stock": 50, "category": "Dairy"},
    {"name": "Bread", "description": "Whole wheat bread", "price": Decimal("3.29"), "stock": 30, "category": "Bakery"},
    {"name": "Eggs", "description": "Farm fresh eggs", "price": Decimal("4.99"), "stock": 40, "category": "Dairy"},
    {"name": "Chicken", "description": "Boneless chicken breast", "price": Decimal("8.99"), "stock": 25, "category": "Meat"},
]

# (quantity, location, min_quantity) by product name
DEFAULT_INVENTORY = {
    "Rice": (120, "A1", 10),
    "Milk": (80, "A2", 8),
    "Bread": (60, "B1", 6),
    "Eggs": (100, "B2", 12),
    "Chicken": (40, "C1", 5),
}
FALLBACK_INVENTORY = (50, "Z1", 2)


# --- users -------------------------------------------------------------------

def seed_users_up() -> SeedResult:
    result = SeedResult("20230601000000-default-users")
    if db.session.query(User.id).filter(User.username == ADMIN_USERNAME).first() is not None:
        result.skipped.append(ADMIN_USERNAME)
        return result

    db.session.add(User(
        username=ADMIN_USERNAME,
        email="admin@example.com",
        password_hash=hash_password(current_app.config["DEFAULT_ADMIN_PASSWORD"]),
        full_name="System Administrator",
        role="admin",
        is_active=True,
    ))
    db.session.commit()
    result.inserted = 1
    return result


def seed_users_down() -> SeedResult:
    result = SeedResult("20230601000000-default-users")
    user = db.session.query(User).filter(User.username == ADMIN_USERNAME).first()
    if user is None:
        return result

    has_sales = db.session.query(Sale.id).filter(Sale.user_id == user.id).first() is not None
    has_moves = db.session.query(InventoryTransaction.id).filter(InventoryTransaction.user_id == user.id).first() is not None
    if has_sales or has_moves:
        current_app.logger.warning("Keeping user %s: referenced by sales or stock history", ADMIN_USERNAME)
        result.skipped.append(ADMIN_USERNAME)
        return result

    db.session.delete(user)
    db.session.commit()
    result.deleted = 1
    return result


# --- products ----------------------------------------------------------------

def seed_products_up() -> SeedResult:
    result = SeedResult("20230601000001-default-products")
    names = [p["name"] for p in DEFAULT_PRODUCTS]
    existing = {
        name for (name,) in db.session.query(Product.name).filter(Product.name.in_(names)).all()
    }

    for row in DEFAULT_PRODUCTS:
        if row["name"] in existing:
            result.skipped.append(row["name"])
            continue
        db.session.add(Product(**row))
        result.inserted += 1

    db.session.commit()
    return result


def seed_products_down() -> SeedResult:
    result = SeedResult("20230601000001-default-products")
    names = [p["name"] for p in DEFAULT_PRODUCTS]
    products = db.session.query(Product).filter(Product.name.in_(names)).order_by(Product.id).all()

    for product in products:
        sold = db.session.query(SaleItem.id).filter(SaleItem.product_id == product.id).first() is not None
        moved = (
            db.session.query(InventoryTransaction.id)
            .join(Inventory, InventoryTransaction.inventory_id == Inventory.id)
            .filter(Inventory.product_id == product.id)
            .first()
            is not None
        )
        if sold or moved:
            current_app.logger.warning("Keeping product %s: referenced by sales or stock history", product.name)
            result.skipped.append(product.name)
            continue
        db.session.delete(product)
        result.deleted += 1

    db.session.commit()
    return result


# --- inventory ---------------------------------------------------------------

def seed_inventory_up() -> SeedResult:
    result = SeedResult("20230601000002-default-inventory")
    products = db.session.query(Product.id, Product.name).order_by(Product.id).all()
    if not products:
        return result

    existing = {pid for (pid,) in db.session.query(Inventory.product_id).all()}

    for product_id, name in products:
        if product_id in existing:
            result.skipped.append(name)
            continue
        quantity, location, min_quantity = DEFAULT_INVENTORY.get(name, FALLBACK_INVENTORY)
        db.session.add(Inventory(
            product_id=product_id,
            quantity=quantity,
            location=location,
            min_stock_level=min_quantity,
        ))
        result.inserted += 1

    db.session.commit()
    return result


def seed_inventory_down() -> SeedResult:
    result = SeedResult("20230601000002-default-inventory")
    product_ids = [pid for (pid,) in db.session.query(Product.id).all()]
    if not product_ids:
        return result

    rows = db.session.query(Inventory).filter(Inventory.product_id.in_(product_ids)).order_by(Inventory.id).all()
    for inventory in rows:
        has_history = (
            db.session.query(InventoryTransaction.id)
            .filter(InventoryTransaction.inventory_id == inventory.id)
            .first()
            is not None
        )
        if has_history:
            current_app.logger.warning("Keeping inventory %s: it has transaction history", inventory.id)
            result.skipped.append(str(inventory.id))
            continue
        db.session.delete(inventory)
        result.deleted += 1

    db.session.commit()
    return result


SEEDERS = [
    Seeder("20230601000000-default-users", seed_users_up, seed_users_down),
    Seeder("20230601000001-default-products", seed_products_up, seed_products_down),
    Seeder("20230601000002-default-inventory", seed_inventory_up, seed_inventory_down),
]


def _select(names: list[str] | None) -> list[Seeder]:
    if not names:
        return list(SEEDERS)
    known = {s.name: s for s in SEEDERS}
    unknown = [n for n in names if n not in known]
    if unknown:
        raise SeedError(f"Unknown seeder(s): {', '.join(unknown)}", {"known": sorted(known)})
    return [s for s in SEEDERS if s.name in names]


def run_seeders(names: list[str] | None = None) -> list[SeedResult]:
    results = []
    for seeder in _select(names):
        try:
            result = seeder.up()
        except Exception:
            db.session.rollback()
            raise
        current_app.logger.info(
            "Seeder %s up: inserted=%s skipped=%s", seeder.name, result.inserted, len(result.skipped)
        )
        results.append(result)
    return results


def undo_seeders(names: list[str] | None = None) -> list[SeedResult]:
    results = []
    for seeder in reversed(_select(names)):
        try:
            result = seeder.down()
        except Exception:
            db.session.rollback()
            raise
        current_app.logger.info(
            "Seeder %s down: deleted=%s skipped=%s", seeder.name, result.deleted, len(result.skipped)
        )
        results.append(result)
    return results
