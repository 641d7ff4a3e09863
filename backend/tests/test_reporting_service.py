from datetime import datetime
from decimal import Decimal

import pytest

from retailpos.services import reporting_service, sales_service
from retailpos.services.reporting_service import ReportError


@pytest.fixture
def shop(make_product, make_inventory):
    rice = make_product("Rice", "5.99", category="Grains")
    milk = make_product("Milk", "3.50", category="Dairy")
    soap = make_product("Soap", "2.00")
    make_inventory(rice, quantity=50, min_stock_level=5, location="A1")
    make_inventory(milk, quantity=4, min_stock_level=5, location="C1")
    make_inventory(soap, quantity=20, min_stock_level=2, location="D4")
    return rice, milk, soap


@pytest.fixture
def march_sales(db_session, cashier, customer, shop):
    rice, milk, soap = shop

    def sale(items, when, **kwargs):
        kwargs.setdefault("tax_rate", 0)
        created = sales_service.create_sale(user_id=cashier.id, items=items, **kwargs)
        created.sale_date = when
        db_session.commit()
        return created

    sale(
        [{"product_id": rice.id, "quantity": 2}, {"product_id": milk.id, "quantity": 1}],
        datetime(2025, 3, 1, 10, 0),
        customer_id=customer.id,
    )
    sale([{"product_id": rice.id, "quantity": 1}], datetime(2025, 3, 1, 18, 0))
    sale(
        [{"product_id": soap.id, "quantity": 3}],
        datetime(2025, 3, 3, 9, 0),
        customer_id=customer.id,
        discount="1.00",
        tax_rate=5,
    )
    cancelled = sale([{"product_id": milk.id, "quantity": 2}], datetime(2025, 3, 5, 12, 0))
    sales_service.cancel_sale(cancelled.id, user_id=cashier.id)
    sale([{"product_id": rice.id, "quantity": 1}], datetime(2025, 4, 2, 10, 0))
    return shop


def test_sales_report_by_day(march_sales):
    report = reporting_service.sales_report(start="2025-03-01", end="2025-03-31")

    assert report["summary"] == {"sales_count": 3, "items_sold": 7, "total_revenue": Decimal("26.72")}
    assert report["rows"] == [
        {"period": "2025-03-01", "sales_count": 2, "items_sold": 4, "revenue": Decimal("21.47")},
        {"period": "2025-03-03", "sales_count": 1, "items_sold": 3, "revenue": Decimal("5.25")},
    ]


def test_end_date_is_included_whole(march_sales):
    report = reporting_service.sales_report(start="2025-03-01", end="2025-03-01")
    assert report["summary"]["sales_count"] == 2


@pytest.mark.parametrize(
    "group_by, end, periods",
    [
        ("week", "2025-03-31", ["2025-W09", "2025-W10"]),
        ("month", "2025-04-30", ["2025-03", "2025-04"]),
    ],
)
def test_sales_report_groupings(march_sales, group_by, end, periods):
    report = reporting_service.sales_report(start="2025-03-01", end=end, group_by=group_by)
    assert [row["period"] for row in report["rows"]] == periods


def test_revenue_report_breaks_out_tax_and_discount(march_sales):
    report = reporting_service.revenue_report(start="2025-03-01", end="2025-03-31", group_by="month")

    assert report["rows"] == [
        {
            "period": "2025-03",
            "sales_count": 3,
            "subtotal": Decimal("27.47"),
            "discount": Decimal("1.00"),
            "tax": Decimal("0.25"),
            "revenue": Decimal("26.72"),
        }
    ]
    assert report["summary"]["total_tax"] == Decimal("0.25")
    assert report["summary"]["total_discount"] == Decimal("1.00")


def test_top_selling_products(march_sales):
    report = reporting_service.top_selling_products(start="2025-03-01", end="2025-03-31")

    assert [(r["name"], r["quantity"], r["revenue"]) for r in report["rows"]] == [
        ("Rice", 3, Decimal("17.97")),
        ("Soap", 3, Decimal("6.00")),
        ("Milk", 1, Decimal("3.50")),
    ]
    assert report["rows"][1]["category"] == "Uncategorized"


def test_top_selling_products_limit(march_sales):
    report = reporting_service.top_selling_products(start="2025-03-01", end="2025-03-31", limit=1)
    assert [r["name"] for r in report["rows"]] == ["Rice"]


def test_sales_by_category(march_sales):
    report = reporting_service.sales_by_category(start="2025-03-01", end="2025-03-31")

    assert [(r["category"], r["quantity"], r["revenue"]) for r in report["rows"]] == [
        ("Grains", 3, Decimal("17.97")),
        ("Uncategorized", 3, Decimal("6.00")),
        ("Dairy", 1, Decimal("3.50")),
    ]


def test_customers_report_skips_anonymous_sales(march_sales, customer):
    report = reporting_service.customers_report(start="2025-03-01", end="2025-03-31")

    assert report["summary"] == {"total_customers": 1, "total_visits": 2, "total_revenue": Decimal("20.73")}
    [row] = report["customers"]
    assert row["name"] == "Layla Hassan"
    assert row["customer_id"] == str(customer.id)
    assert row["last_purchase"] == datetime(2025, 3, 3, 9, 0)


def test_inventory_status(march_sales):
    report = reporting_service.inventory_status()

    assert report["summary"] == {"total_products": 3, "total_items": 66, "low_stock_items": 1}
    assert [c["category"] for c in report["categories"]] == ["Dairy", "Grains", "Uncategorized"]
    dairy = report["categories"][0]
    assert dairy["low_stock_count"] == 1
    assert dairy["items"][0]["quantity"] == 3


def test_empty_window(march_sales):
    report = reporting_service.sales_report(start="2024-01-01", end="2024-01-31")
    assert report["rows"] == []
    assert report["summary"]["total_revenue"] == Decimal("0.00")


@pytest.mark.parametrize(
    "start, end, message",
    [
        (None, "2025-03-31", "required"),
        ("2025-13-01", "2025-03-31", "Invalid date"),
        ("2025-03-31", "2025-03-01", "after end date"),
    ],
)
def test_bad_ranges(db_session, start, end, message):
    with pytest.raises(ReportError, match=message):
        reporting_service.sales_report(start=start, end=end)


def test_bad_grouping_and_limit(db_session):
    with pytest.raises(ReportError, match="group_by"):
        reporting_service.revenue_report(start="2025-03-01", end="2025-03-31", group_by="year")
    with pytest.raises(ReportError, match="limit"):
        reporting_service.top_selling_products(start="2025-03-01", end="2025-03-31", limit=0)
