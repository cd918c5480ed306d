# bakery/services/reporting_service.py
"""
Report aggregation.

Every report is computed from live rows over a time window. Windows are
either a rolling period (1d, 7d, 30d, 90d, 1y, ending now) or a calendar
range (today, this_week, this_month, this_quarter, all_time). Unknown
periods fall back to 7d and unknown report types to overview.

Revenue counts customer orders that are not CANCELLED or RETURNED. Money is
returned in cents.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import (
    Customer,
    Delivery,
    Inventory,
    Order,
    OrderItem,
    Product,
    Production,
    PurchaseOrder,
    Supplier,
    Warehouse,
    CUSTOMER_TYPES,
    DELIVERY_STATUSES,
    ORDER_STATUSES,
    PRODUCTION_STATUSES,
)
from ..time_utils import to_utc_z, utcnow
from . import resource_service as rs

ROLLING_PERIODS = {
    "1d": timedelta(days=1),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "1y": timedelta(days=365),
}
PERIODS = tuple(ROLLING_PERIODS) + rs.DATE_RANGES
DEFAULT_PERIOD = "7d"

REPORT_TYPES = ("overview", "sales", "inventory", "customers", "production", "delivery", "financial")
DEFAULT_REPORT_TYPE = "overview"
DEFAULT_FORMAT = "json"

EXCLUDED_FROM_REVENUE = ("CANCELLED", "RETURNED")
EXPIRY_WINDOW_DAYS = 7


def normalize_period(period) -> str:
    return period if isinstance(period, str) and period in PERIODS else DEFAULT_PERIOD


def normalize_report_type(report_type) -> str:
    if not isinstance(report_type, str):
        return DEFAULT_REPORT_TYPE
    value = report_type.strip().lower()
    return value if value in REPORT_TYPES else DEFAULT_REPORT_TYPE


def normalize_format(fmt) -> str:
    if not isinstance(fmt, str) or not fmt.strip():
        return DEFAULT_FORMAT
    return fmt.strip().lower()


def period_bounds(period: str | None, now: datetime | None = None) -> tuple[datetime | None, datetime | None]:
    now = now or utcnow()
    period = normalize_period(period)
    if period in ROLLING_PERIODS:
        return now - ROLLING_PERIODS[period], now
    return rs.date_range_bounds(period, now)


def _within(query, column, start, end):
    """Filter column to the half-open window [start, end)."""
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column < end)
    return query


def _revenue_orders(start, end):
    query = db.session.query(Order).filter(Order.status.notin_(EXCLUDED_FROM_REVENUE))
    return _within(query, Order.order_date, start, end)


def _count_by(column, allowed, query) -> dict[str, int]:
    counts = {value: 0 for value in allowed}
    for value, count in query.with_entities(column, func.count()).group_by(column):
        counts[value] = count
    return counts


def _low_stock_rows():
    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)
    limit = func.coalesce(func.nullif(Product.min_stock_level, 0), threshold)
    return (
        db.session.query(Inventory)
        .join(Product, Product.id == Inventory.product_id)
        .filter(Inventory.quantity < limit)
    )


def _daily_sales(start, end) -> list[dict]:
    buckets: dict[str, dict] = defaultdict(lambda: {"revenue_cents": 0, "orders": 0})
    rows = _revenue_orders(start, end).with_entities(Order.order_date, Order.total_cents)
    for order_date, total in rows:
        bucket = buckets[order_date.date().isoformat()]
        bucket["revenue_cents"] += total
        bucket["orders"] += 1
    return [{"date": day, **values} for day, values in sorted(buckets.items())]


def _top_products(start, end, limit: int = 5) -> list[dict]:
    revenue = func.sum(OrderItem.total_price_cents)
    query = (
        db.session.query(Product.id, Product.name, Product.sku, func.sum(OrderItem.quantity), revenue)
        .join(OrderItem, OrderItem.product_id == Product.id)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.status.notin_(EXCLUDED_FROM_REVENUE))
    )
    query = _within(query, Order.order_date, start, end)
    rows = query.group_by(Product.id, Product.name, Product.sku).order_by(revenue.desc()).limit(limit)
    return [
        {"product_id": pid, "name": name, "sku": sku, "quantity": int(qty or 0), "revenue_cents": int(rev or 0)}
        for pid, name, sku, qty, rev in rows
    ]


# -- Report builders --

def overview_report(start, end) -> dict:
    orders = _revenue_orders(start, end)
    delivered = _within(
        db.session.query(func.count(Delivery.id)).filter(Delivery.status == "DELIVERED"),
        Delivery.actual_date, start, end,
    ).scalar()
    return {
        "total_revenue_cents": int(orders.with_entities(func.coalesce(func.sum(Order.total_cents), 0)).scalar()),
        "total_orders": orders.count(),
        "total_products": db.session.query(func.count(Product.id)).filter(Product.is_active.is_(True)).scalar(),
        "total_customers": db.session.query(func.count(Customer.id)).filter(Customer.is_active.is_(True)).scalar(),
        "active_suppliers": db.session.query(func.count(Supplier.id)).filter(Supplier.is_active.is_(True)).scalar(),
        "low_stock_items": _low_stock_rows().count(),
        "pending_orders": db.session.query(func.count(Order.id))
        .filter(Order.status.in_(("PENDING", "CONFIRMED"))).scalar(),
        "completed_deliveries": delivered,
        "daily_sales": _daily_sales(start, end),
        "top_products": _top_products(start, end),
    }


def sales_report(start, end) -> dict:
    data = overview_report(start, end)
    all_orders = _within(db.session.query(Order), Order.order_date, start, end)
    data["orders_by_status"] = _count_by(Order.status, ORDER_STATUSES, all_orders)
    data["average_order_value_cents"] = (
        data["total_revenue_cents"] // data["total_orders"] if data["total_orders"] else 0
    )
    return data


def inventory_report(start, end) -> dict:
    now = utcnow()
    totals = (
        db.session.query(
            func.coalesce(func.sum(Inventory.quantity), 0),
            func.coalesce(func.sum(Inventory.quantity * func.coalesce(Product.cost_price_cents, 0)), 0),
        )
        .join(Product, Product.id == Inventory.product_id)
        .one()
    )
    expiring = (
        db.session.query(func.count(Inventory.id))
        .filter(
            Inventory.expiry_date.isnot(None),
            Inventory.expiry_date <= now + timedelta(days=EXPIRY_WINDOW_DAYS),
            Inventory.quantity > 0,
        )
        .scalar()
    )
    per_warehouse = (
        db.session.query(Warehouse.id, Warehouse.name, func.coalesce(func.sum(Inventory.quantity), 0))
        .outerjoin(Inventory, Inventory.warehouse_id == Warehouse.id)
        .group_by(Warehouse.id, Warehouse.name)
        .order_by(Warehouse.name.asc())
    )
    return {
        "total_units": int(totals[0]),
        "inventory_value_cents": int(totals[1]),
        "low_stock_items": [row.to_dict() for row in _low_stock_rows().order_by(Inventory.quantity.asc()).limit(50)],
        "expiring_items": expiring,
        "stock_by_warehouse": [
            {"warehouse_id": wid, "name": name, "quantity": int(qty)} for wid, name, qty in per_warehouse
        ],
    }


def customers_report(start, end) -> dict:
    revenue = func.sum(Order.total_cents)
    top = (
        db.session.query(Customer.id, Customer.first_name, Customer.last_name, Customer.email, revenue, func.count(Order.id))
        .join(Order, Order.customer_id == Customer.id)
        .filter(Order.status.notin_(EXCLUDED_FROM_REVENUE))
    )
    top = _within(top, Order.order_date, start, end)
    top = top.group_by(Customer.id, Customer.first_name, Customer.last_name, Customer.email).order_by(revenue.desc()).limit(10)
    new_customers = _within(db.session.query(func.count(Customer.id)), Customer.created_at, start, end).scalar()
    return {
        "total_customers": db.session.query(func.count(Customer.id)).scalar(),
        "customers_by_type": _count_by(Customer.customer_type, CUSTOMER_TYPES, db.session.query(Customer)),
        "new_customers": new_customers,
        "top_customers": [
            {
                "customer_id": cid,
                "name": f"{first} {last}".strip(),
                "email": email,
                "revenue_cents": int(rev or 0),
                "orders": count,
            }
            for cid, first, last, email, rev, count in top
        ],
    }


def production_report(start, end) -> dict:
    batches = _within(db.session.query(Production), Production.planned_date, start, end)
    by_status = _count_by(Production.status, PRODUCTION_STATUSES, batches)
    planned, actual = batches.with_entities(
        func.coalesce(func.sum(Production.planned_qty), 0),
        func.coalesce(func.sum(Production.actual_qty), 0),
    ).one()
    total = sum(by_status.values())
    return {
        "total_batches": total,
        "batches_by_status": by_status,
        "planned_quantity": int(planned),
        "actual_quantity": int(actual),
        "completion_rate": round(100 * by_status["COMPLETED"] / total, 2) if total else 0.0,
    }


def delivery_report(start, end) -> dict:
    deliveries = _within(db.session.query(Delivery), Delivery.scheduled_date, start, end)
    by_status = _count_by(Delivery.status, DELIVERY_STATUSES, deliveries)
    delivered = deliveries.filter(Delivery.status == "DELIVERED").with_entities(
        Delivery.scheduled_date, Delivery.actual_date
    ).all()
    on_time = sum(
        1 for scheduled, actual in delivered
        if actual is not None and actual.date() <= scheduled.date()
    )
    return {
        "total_deliveries": sum(by_status.values()),
        "deliveries_by_status": by_status,
        "on_time_rate": round(100 * on_time / len(delivered), 2) if delivered else 0.0,
        "failed_deliveries": by_status["FAILED"],
    }


def financial_report(start, end) -> dict:
    line_query = (
        db.session.query(
            Product.category,
            func.coalesce(func.sum(OrderItem.total_price_cents), 0),
            func.coalesce(func.sum(OrderItem.quantity * func.coalesce(Product.cost_price_cents, 0)), 0),
        )
        .join(OrderItem, OrderItem.product_id == Product.id)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.status.notin_(EXCLUDED_FROM_REVENUE))
    )
    line_query = _within(line_query, Order.order_date, start, end).group_by(Product.category)
    by_category = {}
    cost = 0
    for category, line_revenue, line_cost in line_query:
        by_category[category or "OTHER"] = int(line_revenue)
        cost += int(line_cost)

    revenue = int(
        _revenue_orders(start, end).with_entities(func.coalesce(func.sum(Order.total_cents), 0)).scalar()
    )
    spend = _within(
        db.session.query(func.coalesce(func.sum(PurchaseOrder.total_cents), 0))
        .filter(PurchaseOrder.status.notin_(("DRAFT", "CANCELLED"))),
        PurchaseOrder.order_date, start, end,
    ).scalar()
    gross = revenue - cost
    return {
        "revenue_cents": revenue,
        "cost_of_goods_cents": cost,
        "gross_profit_cents": gross,
        "margin_percent": round(100 * gross / revenue, 2) if revenue else 0.0,
        "revenue_by_category": by_category,
        "purchase_spend_cents": int(spend),
    }


REPORT_BUILDERS = {
    "overview": overview_report,
    "sales": sales_report,
    "inventory": inventory_report,
    "customers": customers_report,
    "production": production_report,
    "delivery": delivery_report,
    "financial": financial_report,
}


def build_report(report_type: str | None, period: str | None, *, now: datetime | None = None) -> dict:
    report_type = normalize_report_type(report_type)
    period = normalize_period(period)
    start, end = period_bounds(period, now)
    return {
        "type": report_type,
        "period": period,
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "data": REPORT_BUILDERS[report_type](start, end),
    }


def generate_report(report_type: str | None, period: str | None, *, fmt: str | None = None, generated_by: str | None = None) -> dict:
    """build_report plus a metadata block, for saved/exported reports."""
    report = build_report(report_type, period)
    report["metadata"] = {
        "generatedAt": to_utc_z(utcnow()),
        "generatedBy": generated_by,
        "period": report["period"],
        "reportType": report["type"],
        "format": normalize_format(fmt),
    }
    return report
