from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from retailpos.models import Inventory, Product
from retailpos.services import products_service, sales_service
from retailpos.validation import ConflictError, ValidationError


def test_create_product(db_session):
    product = products_service.create_product({"name": "Dates", "price": "12.5", "category": "Snacks"})
    assert product.price == Decimal("12.50")
    assert product.barcode is None
    assert product.is_generated_barcode is False


def test_create_product_requires_name_and_price(db_session):
    with pytest.raises(ValidationError) as exc:
        products_service.create_product({"name": "Dates"})
    assert exc.value.field == "price"


def test_create_product_rejects_unknown_field(db_session):
    with pytest.raises(ValidationError) as exc:
        products_service.create_product({"name": "Dates", "price": 1, "id": 5})
    assert exc.value.constraint == "writable"


def test_generated_barcode(db_session):
    product = products_service.create_product({"name": "Dates", "price": 1}, generate_barcode=True)
    assert len(product.barcode) == 12
    assert product.barcode.isdigit()
    assert product.is_generated_barcode is True


def test_manual_barcode_wins_over_generation(db_session):
    product = products_service.create_product(
        {"name": "Dates", "price": 1, "barcode": "6291000000017"}, generate_barcode=True,
    )
    assert product.barcode == "6291000000017"
    assert product.is_generated_barcode is False


def test_duplicate_barcode(db_session):
    products_service.create_product({"name": "Dates", "price": 1, "barcode": "111"})
    with pytest.raises(ConflictError):
        products_service.create_product({"name": "Figs", "price": 1, "barcode": "111"})


def test_update_product_barcode_clears_generated_flag(db_session):
    product = products_service.create_product({"name": "Dates", "price": 1}, generate_barcode=True)
    updated = products_service.update_product(product.id, {"barcode": "222", "price": "2.00"})

    assert updated.barcode == "222"
    assert updated.is_generated_barcode is False
    assert updated.price == Decimal("2.00")


def test_update_product_rejects_taken_barcode(db_session):
    products_service.create_product({"name": "Dates", "price": 1, "barcode": "111"})
    other = products_service.create_product({"name": "Figs", "price": 1})
    with pytest.raises(ConflictError):
        products_service.update_product(other.id, {"barcode": "111"})


def test_list_products_search(db_session, make_product):
    make_product("Rice", name_ar="أرز")
    make_product("Milk", description="Fresh whole milk", is_online=True)
    make_product("Bread")

    assert [p.name for p in products_service.list_products(q="MILK")] == ["Milk"]
    assert [p.name for p in products_service.list_products(q="أرز")] == ["Rice"]
    assert [p.name for p in products_service.list_products(is_online=True)] == ["Milk"]
    assert [p.name for p in products_service.list_products()] == ["Bread", "Milk", "Rice"]


def test_delete_product_removes_inventory(db_session, make_product, make_inventory):
    product = make_product()
    make_inventory(product)

    products_service.delete_product(product.id)
    assert db_session.query(Inventory).count() == 0


def test_sold_product_cannot_be_deleted(db_session, cashier, make_product, make_inventory):
    product = make_product()
    make_inventory(product, quantity=5)
    sales_service.create_sale(user_id=cashier.id, items=[{"product_id": product.id, "quantity": 1}])

    with pytest.raises(IntegrityError):
        products_service.delete_product(product.id)
    assert db_session.get(Product, product.id) is not None


def test_get_missing_product(db_session):
    with pytest.raises(LookupError):
        products_service.get_product(12345)
