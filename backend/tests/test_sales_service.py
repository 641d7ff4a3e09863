from decimal import Decimal

import pytest

from retailpos.models import Inventory, InventoryTransaction, Sale, SaleItem, StoreSettings
from retailpos.references import SaleRef
from retailpos.services import sales_service, settings_service
from retailpos.services.sales_service import SaleError
from retailpos.validation import ValidationError


@pytest.fixture
def shelf(make_product, make_inventory):
    rice = make_product("Rice", "5.99")
    milk = make_product("Milk", "2.49")
    make_inventory(rice, quantity=10, min_stock_level=2)
    make_inventory(milk, quantity=5, min_stock_level=1)
    return rice, milk


def _stock(db_session, product):
    db_session.expire_all()
    return db_session.query(Inventory).filter_by(product_id=product.id).one().quantity


def test_line_subtotal():
    assert sales_service.line_subtotal(3, "2.49") == Decimal("7.47")
    assert sales_service.line_subtotal(2, Decimal("5.99"), "1.98") == Decimal("10.00")

    with pytest.raises(ValidationError):
        sales_service.line_subtotal(1, "1.00", "1.01")


def test_compute_totals_rounds_half_up():
    totals = sales_service.compute_totals([Decimal("11.98"), Decimal("2.49")], discount="1.00", tax_rate=5)
    assert totals == {
        "subtotal": Decimal("14.47"),
        "discount_amount": Decimal("1.00"),
        "tax_amount": Decimal("0.67"),
        "total_amount": Decimal("14.14"),
    }


def test_compute_totals_rejects_discount_above_subtotal():
    with pytest.raises(ValidationError) as exc:
        sales_service.compute_totals([Decimal("5.00")], discount="5.01")
    assert exc.value.field == "discount_amount"


def test_create_sale(db_session, cashier, customer, shelf):
    rice, milk = shelf
    sale = sales_service.create_sale(
        user_id=cashier.id,
        customer_id=customer.id,
        items=[{"product_id": rice.id, "quantity": 2}, {"product_id": milk.id, "quantity": 1}],
        payment_method="credit_card",
    )

    assert sale.receipt_number == "INV-1001"
    assert sale.status == "completed"
    assert sale.payment_status == "paid"
    assert sale.subtotal == Decimal("14.47")
    assert sale.total_amount == Decimal("14.47")
    assert sorted(item.subtotal for item in sale.items) == [Decimal("2.49"), Decimal("11.98")]

    assert _stock(db_session, rice) == 8
    assert _stock(db_session, milk) == 4


def test_sale_items_keep_price_at_time_of_sale(db_session, cashier, shelf):
    rice, _ = shelf
    sale = sales_service.create_sale(
        user_id=cashier.id,
        items=[{"product_id": rice.id, "quantity": 1, "unit_price": "4.50", "discount": "0.50"}],
    )
    item = db_session.query(SaleItem).filter_by(sale_id=sale.id).one()
    assert item.unit_price == Decimal("4.50")
    assert item.subtotal == Decimal("4.00")


def test_sale_uses_store_tax_rate(db_session, cashier, shelf):
    settings_service.update_settings(tax_rate=5)
    rice, _ = shelf
    sale = sales_service.create_sale(user_id=cashier.id, items=[{"product_id": rice.id, "quantity": 2}])

    assert sale.tax_amount == Decimal("0.60")
    assert sale.total_amount == Decimal("12.58")


def test_sale_writes_ledger_rows_referencing_the_sale(db_session, cashier, shelf):
    rice, _ = shelf
    sale = sales_service.create_sale(user_id=cashier.id, items=[{"product_id": rice.id, "quantity": 3}])

    txn = db_session.query(InventoryTransaction).one()
    assert txn.type == "sale"
    assert txn.quantity == -3
    assert (txn.previous_quantity, txn.new_quantity) == (10, 7)
    assert txn.reason == "Sale INV-1001"
    assert txn.reference == SaleRef(sale.id)
    assert txn.user_id == cashier.id


def test_receipt_numbers_are_sequential(db_session, cashier, shelf):
    rice, _ = shelf
    first = sales_service.create_sale(user_id=cashier.id, items=[{"product_id": rice.id, "quantity": 1}])
    second = sales_service.create_sale(user_id=cashier.id, items=[{"product_id": rice.id, "quantity": 1}])

    assert (first.receipt_number, second.receipt_number) == ("INV-1001", "INV-1002")
    assert db_session.get(StoreSettings, 1).invoice_next_number == 1003


def test_sale_requires_items(db_session, cashier):
    with pytest.raises(SaleError):
        sales_service.create_sale(user_id=cashier.id, items=[])


def test_insufficient_stock_writes_nothing(db_session, cashier, shelf):
    rice, milk = shelf
    with pytest.raises(SaleError) as exc:
        sales_service.create_sale(
            user_id=cashier.id,
            items=[{"product_id": rice.id, "quantity": 1}, {"product_id": milk.id, "quantity": 6}],
        )
    assert str(exc.value) == "Insufficient inventory for product: Milk"
    assert exc.value.details["available"] == 5

    assert db_session.query(Sale).count() == 0
    assert db_session.query(InventoryTransaction).count() == 0
    assert _stock(db_session, rice) == 10


def test_repeated_product_lines_are_checked_together(db_session, cashier, shelf):
    _, milk = shelf
    with pytest.raises(SaleError):
        sales_service.create_sale(
            user_id=cashier.id,
            items=[{"product_id": milk.id, "quantity": 3}, {"product_id": milk.id, "quantity": 3}],
        )


def test_failed_sale_does_not_consume_receipt_number(db_session, cashier, shelf):
    rice, _ = shelf
    with pytest.raises(ValidationError):
        sales_service.create_sale(
            user_id=cashier.id, items=[{"product_id": rice.id, "quantity": 1}], discount="10.00",
        )

    db_session.expire_all()
    assert db_session.query(Sale).count() == 0
    assert settings_service.get_settings().invoice_next_number == 1001
    assert _stock(db_session, rice) == 10


def test_sale_rejects_unknown_product(db_session, cashier, shelf):
    with pytest.raises(SaleError) as exc:
        sales_service.create_sale(user_id=cashier.id, items=[{"product_id": 999, "quantity": 1}])
    assert exc.value.details == {"product_id": 999}


def test_sale_rejects_unknown_payment_method(db_session, cashier, shelf):
    rice, _ = shelf
    with pytest.raises(ValidationError):
        sales_service.create_sale(
            user_id=cashier.id, items=[{"product_id": rice.id, "quantity": 1}], payment_method="cheque",
        )


def test_cancel_sale_restores_stock(db_session, cashier, shelf):
    rice, _ = shelf
    sale = sales_service.create_sale(user_id=cashier.id, items=[{"product_id": rice.id, "quantity": 4}])

    cancelled = sales_service.cancel_sale(sale.id, user_id=cashier.id)

    assert cancelled.status == "cancelled"
    assert cancelled.payment_status == "refunded"
    assert _stock(db_session, rice) == 10

    returns = db_session.query(InventoryTransaction).filter_by(type="return").all()
    assert len(returns) == 1
    assert returns[0].quantity == 4
    assert returns[0].reference == SaleRef(sale.id)


def test_cancel_sale_twice(db_session, cashier, shelf):
    rice, _ = shelf
    sale = sales_service.create_sale(user_id=cashier.id, items=[{"product_id": rice.id, "quantity": 1}])
    sales_service.cancel_sale(sale.id, user_id=cashier.id)

    with pytest.raises(SaleError):
        sales_service.cancel_sale(sale.id, user_id=cashier.id)


def test_update_payment(db_session, cashier, shelf):
    rice, _ = shelf
    sale = sales_service.create_sale(
        user_id=cashier.id, items=[{"product_id": rice.id, "quantity": 1}], payment_status="pending",
    )
    updated = sales_service.update_payment(sale.id, payment_status="paid", payment_method="mobile_payment")
    assert (updated.payment_status, updated.payment_method) == ("paid", "mobile_payment")


def test_get_sale_loads_items_and_customer(db_session, cashier, customer, shelf):
    rice, milk = shelf
    sale = sales_service.create_sale(
        user_id=cashier.id,
        customer_id=customer.id,
        items=[{"product_id": rice.id, "quantity": 1}, {"product_id": milk.id, "quantity": 2}],
    )
    db_session.expire_all()

    loaded = sales_service.get_sale(sale.id)
    assert loaded.customer.name == "Layla Hassan"
    assert {item.product.name for item in loaded.items} == {"Rice", "Milk"}
    assert len(loaded.to_dict(include_items=True)["items"]) == 2


def test_list_sales_by_status(db_session, cashier, shelf):
    rice, _ = shelf
    kept = sales_service.create_sale(user_id=cashier.id, items=[{"product_id": rice.id, "quantity": 1}])
    dropped = sales_service.create_sale(user_id=cashier.id, items=[{"product_id": rice.id, "quantity": 1}])
    sales_service.cancel_sale(dropped.id, user_id=cashier.id)

    assert [s.id for s in sales_service.list_sales(status="completed")] == [kept.id]
    assert len(sales_service.list_sales()) == 2
