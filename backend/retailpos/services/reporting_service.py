# Overview: Read-side summaries over sales, sale items and stock levels.

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import Customer, Inventory, Product, Sale, SaleItem
from ..time_utils import coerce_date
from ..validation import quantize_amount


UNCATEGORIZED = "Uncategorized"
GROUPINGS = ("day", "week", "month")

ZERO = Decimal("0.00")


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def _parse_range(start, end) -> tuple[date, date, datetime, datetime]:
    """
    Both ends are dates and both are included: the query window is
    [start 00:00, end + 1 day 00:00).
    """
    if start is None or end is None:
        raise ReportError("Start date and end date are required")
    try:
        start_date = coerce_date(start)
        end_date = coerce_date(end)
    except (TypeError, ValueError):
        raise ReportError("Invalid date format")
    if start_date is None or end_date is None:
        raise ReportError("Start date and end date are required")
    if start_date > end_date:
        raise ReportError("Start date must not be after end date")

    start_dt = datetime(start_date.year, start_date.month, start_date.day)
    end_dt = datetime(end_date.year, end_date.month, end_date.day) + timedelta(days=1)
    return start_date, end_date, start_dt, end_dt


def _period(moment: datetime, group_by: str) -> str:
    if group_by == "day":
        return moment.strftime("%Y-%m-%d")
    if group_by == "week":
        year, week, _ = moment.isocalendar()
        return f"{year}-W{week:02d}"
    return moment.strftime("%Y-%m")


def _completed_sales(start_dt: datetime, end_dt: datetime):
    return db.session.query(Sale).filter(
        Sale.status == "completed",
        Sale.deleted_at.is_(None),
        Sale.sale_date >= start_dt,
        Sale.sale_date < end_dt,
    )


def _money(value) -> Decimal:
    return quantize_amount(Decimal(str(value))) if value is not None else ZERO


def sales_report(*, start, end, group_by: str = "day") -> dict:
    """Completed sales in the window, bucketed by day, ISO week or month."""
    if group_by not in GROUPINGS:
        raise ReportError("group_by must be day, week, or month")
    start_date, end_date, start_dt, end_dt = _parse_range(start, end)

    sales = (
        _completed_sales(start_dt, end_dt)
        .options(joinedload(Sale.items))
        .order_by(Sale.sale_date.asc())
        .all()
    )

    periods: dict[str, dict] = {}
    for sale in sales:
        key = _period(sale.sale_date, group_by)
        row = periods.setdefault(key, {"period": key, "sales_count": 0, "items_sold": 0, "revenue": ZERO})
        row["sales_count"] += 1
        row["items_sold"] += sum(item.quantity for item in sale.items)
        row["revenue"] += _money(sale.total_amount)

    rows = [periods[key] for key in sorted(periods)]
    return {
        "start": start_date.isoformat(),
        "end": end_date.isoformat(),
        "group_by": group_by,
        "summary": {
            "sales_count": len(sales),
            "items_sold": sum(row["items_sold"] for row in rows),
            "total_revenue": sum((row["revenue"] for row in rows), ZERO),
        },
        "rows": rows,
    }


def revenue_report(*, start, end, group_by: str = "day") -> dict:
    """Subtotal, discount, tax and revenue per period for completed sales."""
    if group_by not in GROUPINGS:
        raise ReportError("group_by must be day, week, or month")
    start_date, end_date, start_dt, end_dt = _parse_range(start, end)

    sales = _completed_sales(start_dt, end_dt).order_by(Sale.sale_date.asc()).all()

    periods: dict[str, dict] = {}
    for sale in sales:
        key = _period(sale.sale_date, group_by)
        row = periods.setdefault(
            key,
            {"period": key, "sales_count": 0, "subtotal": ZERO, "discount": ZERO, "tax": ZERO, "revenue": ZERO},
        )
        row["sales_count"] += 1
        row["subtotal"] += _money(sale.subtotal)
        row["discount"] += _money(sale.discount_amount)
        row["tax"] += _money(sale.tax_amount)
        row["revenue"] += _money(sale.total_amount)

    rows = [periods[key] for key in sorted(periods)]
    return {
        "start": start_date.isoformat(),
        "end": end_date.isoformat(),
        "group_by": group_by,
        "summary": {
            "sales_count": len(sales),
            "total_revenue": sum((row["revenue"] for row in rows), ZERO),
            "total_tax": sum((row["tax"] for row in rows), ZERO),
            "total_discount": sum((row["discount"] for row in rows), ZERO),
        },
        "rows": rows,
    }


def _item_totals_query(start_dt: datetime, end_dt: datetime, *columns):
    return db.session.query(
        *columns,
        func.coalesce(func.sum(SaleItem.quantity), 0).label("quantity"),
        func.coalesce(func.sum(SaleItem.subtotal), 0).label("revenue"),
    ).join(Sale, SaleItem.sale_id == Sale.id).join(
        Product, SaleItem.product_id == Product.id
    ).filter(
        Sale.status == "completed",
        Sale.deleted_at.is_(None),
        Sale.sale_date >= start_dt,
        Sale.sale_date < end_dt,
    )


def top_selling_products(*, start, end, limit: int = 10) -> dict:
    """Products ranked by units sold (ties broken by revenue, then name)."""
    if limit < 1:
        raise ReportError("limit must be at least 1")
    start_date, end_date, start_dt, end_dt = _parse_range(start, end)

    rows = _item_totals_query(
        start_dt, end_dt, Product.id.label("product_id"), Product.name, Product.category, Product.price,
    ).group_by(Product.id, Product.name, Product.category, Product.price).order_by(
        func.sum(SaleItem.quantity).desc(),
        func.sum(SaleItem.subtotal).desc(),
        Product.name.asc(),
    ).limit(limit).all()

    return {
        "start": start_date.isoformat(),
        "end": end_date.isoformat(),
        "rows": [
            {
                "product_id": row.product_id,
                "name": row.name,
                "category": row.category or UNCATEGORIZED,
                "price": _money(row.price),
                "quantity": int(row.quantity or 0),
                "revenue": _money(row.revenue),
            }
            for row in rows
        ],
    }


def sales_by_category(*, start, end) -> dict:
    start_date, end_date, start_dt, end_dt = _parse_range(start, end)

    rows = _item_totals_query(start_dt, end_dt, Product.category).group_by(Product.category).all()

    # NULL and "" categories fold into one bucket.
    buckets: dict[str, dict] = {}
    for row in rows:
        name = row.category or UNCATEGORIZED
        bucket = buckets.setdefault(name, {"category": name, "quantity": 0, "revenue": ZERO})
        bucket["quantity"] += int(row.quantity or 0)
        bucket["revenue"] += _money(row.revenue)

    return {
        "start": start_date.isoformat(),
        "end": end_date.isoformat(),
        "rows": sorted(buckets.values(), key=lambda b: (-b["revenue"], b["category"])),
    }


def customers_report(*, start, end, limit: int | None = None) -> dict:
    """Visits and spend per customer; anonymous sales are left out."""
    start_date, end_date, start_dt, end_dt = _parse_range(start, end)

    rows = db.session.query(
        Customer.id,
        Customer.name,
        Customer.email,
        Customer.phone,
        func.count(Sale.id).label("sale_count"),
        func.coalesce(func.sum(Sale.total_amount), 0).label("total_spent"),
        func.max(Sale.sale_date).label("last_purchase"),
    ).join(Sale, Sale.customer_id == Customer.id).filter(
        Sale.status == "completed",
        Sale.deleted_at.is_(None),
        Sale.sale_date >= start_dt,
        Sale.sale_date < end_dt,
    ).group_by(Customer.id, Customer.name, Customer.email, Customer.phone).all()

    customers = sorted(
        (
            {
                "customer_id": str(row.id),
                "name": row.name,
                "email": row.email,
                "phone": row.phone,
                "sale_count": int(row.sale_count),
                "total_spent": _money(row.total_spent),
                "last_purchase": row.last_purchase,
            }
            for row in rows
        ),
        key=lambda c: (-c["total_spent"], c["name"]),
    )

    summary = {
        "total_customers": len(customers),
        "total_visits": sum(c["sale_count"] for c in customers),
        "total_revenue": sum((c["total_spent"] for c in customers), ZERO),
    }
    if limit is not None:
        customers = customers[:limit]
    return {"start": start_date.isoformat(), "end": end_date.isoformat(), "summary": summary, "customers": customers}


def inventory_status() -> dict:
    """Stock levels grouped by product category, with low-stock counts."""
    inventory = (
        db.session.query(Inventory)
        .options(joinedload(Inventory.product))
        .join(Product, Inventory.product_id == Product.id)
        .order_by(Product.name.asc())
        .all()
    )

    categories: dict[str, dict] = {}
    for inv in inventory:
        name = inv.product.category or UNCATEGORIZED
        category = categories.setdefault(
            name, {"category": name, "product_count": 0, "total_quantity": 0, "low_stock_count": 0, "items": []}
        )
        category["product_count"] += 1
        category["total_quantity"] += inv.quantity
        if inv.is_low_stock:
            category["low_stock_count"] += 1
        category["items"].append(
            {
                "inventory_id": inv.id,
                "product_id": inv.product_id,
                "product_name": inv.product.name,
                "quantity": inv.quantity,
                "min_stock_level": inv.min_stock_level,
                "location": inv.location,
                "is_low_stock": inv.is_low_stock,
            }
        )

    return {
        "summary": {
            "total_products": len(inventory),
            "total_items": sum(inv.quantity for inv in inventory),
            "low_stock_items": sum(1 for inv in inventory if inv.is_low_stock),
        },
        "categories": [categories[key] for key in sorted(categories)],
    }
