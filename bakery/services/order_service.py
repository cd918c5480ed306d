# bakery/services/order_service.py
"""
Customer orders.

Totals are computed from the lines: each line is quantity x unit price (the
product's effective price unless supplied), tax uses each product's
tax_rate_bps. Explicit subtotal/tax/total values in the payload win.
"""
from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFound, ValidationError
from ..extensions import db
from ..models import Customer, Order, OrderItem, Product, ORDER_STATUSES, PAYMENT_STATUSES, CUSTOMER_TYPES
from ..validation import ModelValidationPolicy, validate_payload, enforce_money, require_int, require_items
from . import lifecycle_service
from . import resource_service as rs
from .document_service import next_document_number

ORDER_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_id", "payment_status", "order_date", "delivery_date", "notes",
        "subtotal_cents", "tax_cents", "total_cents",
    },
    required_on_create={"customer_id"},
    enums={"payment_status": PAYMENT_STATUSES},
)

TOTAL_FIELDS = ("subtotal_cents", "tax_cents", "total_cents")
UNDELETABLE_ORDER_STATUSES = {"DELIVERED", "CANCELLED"}


def _build_items(raw_items: list[dict]) -> tuple[list[OrderItem], int]:
    """Returns the lines and the tax owed on them."""
    items = []
    tax = 0
    for index, raw in enumerate(raw_items, start=1):
        product_id = require_int(raw.get("product_id"), f"items[{index}].product_id")
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found")
        quantity = require_int(raw.get("quantity"), f"items[{index}].quantity", minimum=1)
        if raw.get("unit_price_cents") is None:
            unit_price = product.effective_price_cents
        else:
            unit_price = require_int(raw["unit_price_cents"], f"items[{index}].unit_price_cents", minimum=0)
            enforce_money({"unit_price_cents": unit_price}, "unit_price_cents")
        line_total = quantity * unit_price
        tax += line_total * (product.tax_rate_bps or 0) // 10_000
        items.append(OrderItem(
            product_id=product_id,
            quantity=quantity,
            unit_price_cents=unit_price,
            total_price_cents=line_total,
        ))
    return items, tax


def _apply_totals(order: Order, tax: int, patch: dict) -> None:
    order.subtotal_cents = sum(item.total_price_cents for item in order.items)
    order.tax_cents = tax
    order.total_cents = order.subtotal_cents + order.tax_cents
    for field in TOTAL_FIELDS:
        if field in patch and patch[field] is not None:
            setattr(order, field, patch[field])


def _require_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFound("Customer not found")
    return customer


def list_orders(
    *,
    search: str | None = None,
    status: str | None = None,
    payment_status: str | None = None,
    customer_type: str | None = None,
    customer_id: int | None = None,
    date_range: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> rs.Page:
    query = db.session.query(Order).join(Customer, Customer.id == Order.customer_id)
    query = rs.apply_search(
        query,
        [Order.order_number, Customer.first_name, Customer.last_name, Customer.email],
        search,
    )
    query = rs.apply_enum_filter(query, Order.status, status, ORDER_STATUSES, "status")
    query = rs.apply_enum_filter(query, Order.payment_status, payment_status, PAYMENT_STATUSES, "payment_status")
    query = rs.apply_enum_filter(query, Customer.customer_type, customer_type, CUSTOMER_TYPES, "customer_type")
    if customer_id is not None:
        query = query.filter(Order.customer_id == customer_id)
    query = rs.apply_date_range(query, Order.order_date, date_range)
    query = query.order_by(Order.order_date.desc(), Order.id.desc())
    return rs.paginate(query, page, limit)


def get_order(order_id: int) -> Order:
    return rs.get_or_404(Order, order_id, "Order")


def create_order(payload: dict, *, user_id: int | None = None) -> Order:
    payload = dict(payload or {})
    raw_items = require_items(payload)
    payload.pop("items")
    status = payload.pop("status", None)
    patch = validate_payload(model=Order, payload=payload, policy=ORDER_POLICY, partial=False)
    enforce_money(patch, *TOTAL_FIELDS)

    customer = _require_customer(patch["customer_id"])
    if not customer.is_active:
        raise ValidationError("Customer is inactive")

    order = Order(
        order_number=next_document_number("ORDER"),
        status="PENDING",
        created_by_user_id=user_id,
        **{k: v for k, v in patch.items() if k not in TOTAL_FIELDS},
    )
    order.items, tax = _build_items(raw_items)
    _apply_totals(order, tax, patch)
    db.session.add(order)
    if status is not None:
        lifecycle_service.transition("order", order, status)
    db.session.flush()
    current_app.logger.info("Order %s created for customer %s", order.order_number, customer.id)
    return order


def update_order(order_id: int, payload: dict) -> Order:
    payload = dict(payload or {})
    raw_items = payload.pop("items", None)
    status = payload.pop("status", None)
    order = get_order(order_id)
    patch = validate_payload(model=Order, payload=payload, policy=ORDER_POLICY, partial=True)
    enforce_money(patch, *TOTAL_FIELDS)
    if "customer_id" in patch:
        _require_customer(patch["customer_id"])

    rs.apply_patch(order, {k: v for k, v in patch.items() if k not in TOTAL_FIELDS})
    if raw_items is not None:
        if lifecycle_service.is_terminal("order", order.status):
            raise ConflictError(f"Cannot change items of an order in {order.status} status")
        new_items, tax = _build_items(require_items({"items": raw_items}))
        rs.replace_children(order, "items", new_items)
        _apply_totals(order, tax, patch)
    else:
        rs.apply_patch(order, {k: v for k, v in patch.items() if k in TOTAL_FIELDS})

    if status is not None:
        lifecycle_service.transition("order", order, status)
    db.session.flush()
    return order


def set_order_status(order_id: int, status) -> Order:
    order = get_order(order_id)
    previous = lifecycle_service.transition("order", order, status)
    db.session.flush()
    current_app.logger.info("Order %s status %s -> %s", order.order_number, previous, order.status)
    return order


def delete_order(order_id: int) -> None:
    order = get_order(order_id)
    if order.status in UNDELETABLE_ORDER_STATUSES:
        raise ConflictError(f"Cannot delete an order in {order.status} status")
    if order.deliveries:
        raise ConflictError("Cannot delete an order with scheduled deliveries")
    db.session.delete(order)
    db.session.flush()
