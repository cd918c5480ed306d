# bakery/services/pos_service.py
"""
Point of Sale

Totals:
    line total = unit price x quantity - line discount
    subtotal   = sum of line totals
    tax        = subtotal x POS_TAX_RATE_BPS / 10000
    total      = subtotal + tax - order discount (never below zero)

Payments accumulate into paid_cents. Once paid >= total the order is
COMPLETED, change is paid - total, and stock is drawn from inventory in the
same transaction. Offline orders skip the stock step until
sync_offline_orders runs.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta

from flask import current_app

from ..errors import ApiError, ConflictError, NotFound, ValidationError
from ..extensions import db
from ..models import (
    Customer,
    PosOrder,
    PosOrderItem,
    PosPayment,
    PosReceipt,
    PosSession,
    Product,
    PAYMENT_METHODS,
    POS_ORDER_STATUSES,
    RECEIPT_TYPES,
)
from ..time_utils import utcnow
from ..validation import enforce_money, require_int, require_items
from . import lifecycle_service
from . import resource_service as rs
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_document_number
from .inventory_service import deduct_for_sale

DUPLICATE_WINDOW_MINUTES = 5


def _tax_rate_bps() -> int:
    return int(current_app.config.get("POS_TAX_RATE_BPS", 800))


def _build_item(raw: dict, label: str) -> PosOrderItem:
    product_id = require_int(raw.get("product_id"), f"{label}.product_id")
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found")
    if not product.is_active:
        raise ValidationError(f"Product {product.sku} is not available for sale")
    quantity = require_int(raw.get("quantity"), f"{label}.quantity", minimum=1)
    if raw.get("unit_price_cents") is None:
        unit_price = product.effective_price_cents
    else:
        unit_price = require_int(raw["unit_price_cents"], f"{label}.unit_price_cents", minimum=0)
    discount = require_int(raw.get("discount_cents", 0), f"{label}.discount_cents", minimum=0)
    enforce_money({"unit_price_cents": unit_price, "discount_cents": discount}, "unit_price_cents", "discount_cents")
    if discount > unit_price * quantity:
        raise ValidationError(f"{label}.discount_cents cannot exceed the line amount")
    return PosOrderItem(
        product_id=product_id,
        quantity=quantity,
        unit_price_cents=unit_price,
        discount_cents=discount,
        total_price_cents=unit_price * quantity - discount,
        notes=(raw.get("notes") or None),
    )


def recalculate_totals(order: PosOrder) -> None:
    order.subtotal_cents = sum(item.total_price_cents for item in order.items)
    order.tax_cents = order.subtotal_cents * _tax_rate_bps() // 10_000
    order.total_cents = max(0, order.subtotal_cents + order.tax_cents - (order.discount_cents or 0))
    order.change_cents = max(0, (order.paid_cents or 0) - order.total_cents)


def _require_open(order: PosOrder) -> None:
    if order.status != "IN_PROGRESS":
        raise ConflictError(f"Cannot modify a POS order in {order.status} status")


def _draw_stock(order: PosOrder, user_id: int | None) -> None:
    for item in order.items:
        deduct_for_sale(
            product_id=item.product_id,
            quantity=item.quantity,
            user_id=user_id,
            reference=order.order_number,
        )


# -- Orders --

def list_pos_orders(
    *,
    search: str | None = None,
    status: str | None = None,
    cashier_id: int | None = None,
    customer_id: int | None = None,
    date_range: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> rs.Page:
    query = db.session.query(PosOrder)
    query = rs.apply_search(query, [PosOrder.order_number, PosOrder.notes], search)
    query = rs.apply_enum_filter(query, PosOrder.status, status, POS_ORDER_STATUSES, "status")
    if cashier_id is not None:
        query = query.filter(PosOrder.cashier_id == cashier_id)
    if customer_id is not None:
        query = query.filter(PosOrder.customer_id == customer_id)
    query = rs.apply_date_range(query, PosOrder.created_at, date_range)
    query = query.order_by(PosOrder.created_at.desc(), PosOrder.id.desc())
    return rs.paginate(query, page, limit)


def get_pos_order(order_id: int) -> PosOrder:
    return rs.get_or_404(PosOrder, order_id, "POS order")


def get_pos_order_by_number(order_number: str) -> PosOrder:
    order = db.session.query(PosOrder).filter_by(order_number=order_number).first()
    if order is None:
        raise NotFound("POS order not found")
    return order


def create_pos_order(payload: dict, *, cashier_id: int) -> PosOrder:
    payload = dict(payload or {})
    raw_items = require_items(payload)

    customer_id = payload.get("customer_id")
    if customer_id is not None:
        customer_id = require_int(customer_id, "customer_id")
        if db.session.get(Customer, customer_id) is None:
            raise NotFound("Customer not found")

    discount = require_int(payload.get("discount_cents", 0), "discount_cents", minimum=0)
    enforce_money({"discount_cents": discount}, "discount_cents")
    is_offline = payload.get("is_offline", False)
    if not isinstance(is_offline, bool):
        raise ValidationError("is_offline must be a boolean", fields=["is_offline"])

    order = PosOrder(
        order_number=next_document_number("POS_ORDER"),
        customer_id=customer_id,
        cashier_id=cashier_id,
        status="IN_PROGRESS",
        discount_cents=discount,
        paid_cents=0,
        is_offline=is_offline,
        notes=(payload.get("notes") or None),
    )
    order.items = [_build_item(raw, f"items[{i}]") for i, raw in enumerate(raw_items, start=1)]
    recalculate_totals(order)
    db.session.add(order)
    db.session.flush()
    return order


def add_pos_item(order_id: int, payload: dict) -> PosOrderItem:
    order = rs.get_or_404(PosOrder, order_id, "POS order", lock=True)
    _require_open(order)
    item = _build_item(payload or {}, "item")
    order.items.append(item)
    recalculate_totals(order)
    db.session.flush()
    return item


def _get_item(item_id: int) -> PosOrderItem:
    item = db.session.get(PosOrderItem, item_id)
    if item is None:
        raise NotFound("Order item not found")
    return item


def update_pos_item(item_id: int, payload: dict) -> PosOrderItem:
    item = _get_item(item_id)
    order = rs.get_or_404(PosOrder, item.order_id, "POS order", lock=True)
    _require_open(order)
    merged = {
        "product_id": item.product_id,
        "quantity": payload.get("quantity", item.quantity),
        "unit_price_cents": payload.get("unit_price_cents", item.unit_price_cents),
        "discount_cents": payload.get("discount_cents", item.discount_cents),
        "notes": payload.get("notes", item.notes),
    }
    fresh = _build_item(merged, "item")
    for attr in ("quantity", "unit_price_cents", "discount_cents", "total_price_cents", "notes"):
        setattr(item, attr, getattr(fresh, attr))
    recalculate_totals(order)
    db.session.flush()
    return item


def remove_pos_item(item_id: int) -> PosOrder:
    item = _get_item(item_id)
    order = rs.get_or_404(PosOrder, item.order_id, "POS order", lock=True)
    _require_open(order)
    order.items.remove(item)
    recalculate_totals(order)
    db.session.flush()
    return order


def set_pos_order_status(order_id: int, status, *, user_id: int | None = None) -> PosOrder:
    """
    Manual status change. Completing by hand draws stock exactly as a
    payment-driven completion does.
    """
    def _op() -> PosOrder:
        order = rs.get_or_404(PosOrder, order_id, "POS order", lock=True)
        previous = lifecycle_service.transition("pos_order", order, status)
        if previous != "COMPLETED" and order.status == "COMPLETED" and not order.is_offline:
            _draw_stock(order, user_id)
        db.session.flush()
        current_app.logger.info("POS order %s status %s -> %s", order.order_number, previous, order.status)
        return order

    return run_in_transaction(_op)


def delete_pos_order(order_id: int) -> None:
    order = get_pos_order(order_id)
    if order.status != "IN_PROGRESS" or order.payments:
        raise ConflictError("Only unpaid in-progress POS orders can be deleted")
    db.session.delete(order)
    db.session.flush()


# -- Payments & receipts --

def add_payment(order_id: int, payload: dict, *, user_id: int | None = None) -> PosPayment:
    payload = payload or {}
    method = str(payload.get("method") or "").strip().upper()
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"method must be one of: {', '.join(PAYMENT_METHODS)}", fields=["method"])
    amount = require_int(payload.get("amount_cents"), "amount_cents", minimum=1)
    enforce_money({"amount_cents": amount}, "amount_cents")

    def _op() -> PosPayment:
        order = rs.get_or_404(PosOrder, order_id, "POS order", lock=True)
        _require_open(order)
        payment = PosPayment(
            method=method,
            amount_cents=amount,
            reference=(payload.get("reference") or None),
            notes=(payload.get("notes") or None),
            status="PAID",
        )
        order.payments.append(payment)
        order.paid_cents = sum(p.amount_cents for p in order.payments)
        order.change_cents = max(0, order.paid_cents - order.total_cents)
        if order.paid_cents >= order.total_cents:
            lifecycle_service.transition("pos_order", order, "COMPLETED")
            if not order.is_offline:
                _draw_stock(order, user_id)
        db.session.flush()
        current_app.logger.info(
            "POS payment %s %s on %s (paid %s of %s)",
            method, amount, order.order_number, order.paid_cents, order.total_cents,
        )
        return payment

    return run_in_transaction(_op)


def _receipt_content(order: PosOrder) -> str:
    lines = [f"Order: {order.order_number}", f"Date: {order.created_at:%Y-%m-%d %H:%M}", ""]
    for item in order.items:
        name = item.product.name if item.product else f"Product {item.product_id}"
        lines.append(f"{name} x{item.quantity}  {item.total_price_cents / 100:.2f}")
    lines += [
        "",
        f"Subtotal: {order.subtotal_cents / 100:.2f}",
        f"Tax: {order.tax_cents / 100:.2f}",
        f"Discount: {order.discount_cents / 100:.2f}",
        f"Total: {order.total_cents / 100:.2f}",
        f"Paid: {order.paid_cents / 100:.2f}",
        f"Change: {order.change_cents / 100:.2f}",
    ]
    return "\n".join(lines)


def generate_receipt(order_id: int, *, receipt_type: str = "RECEIPT", content: str | None = None) -> PosReceipt:
    receipt_type = (receipt_type or "RECEIPT").strip().upper()
    if receipt_type not in RECEIPT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(RECEIPT_TYPES)}", fields=["type"])
    order = get_pos_order(order_id)
    receipt = PosReceipt(
        receipt_number=next_document_number("RECEIPT"),
        type=receipt_type,
        content=content or _receipt_content(order),
    )
    order.receipts.append(receipt)
    db.session.flush()
    return receipt


# -- Sessions --

def get_active_session(cashier_id: int) -> PosSession | None:
    return (
        db.session.query(PosSession)
        .filter_by(cashier_id=cashier_id, is_active=True)
        .order_by(PosSession.start_time.desc())
        .first()
    )


def start_session(cashier_id: int, *, starting_cash_cents=0, notes: str | None = None) -> PosSession:
    """Open a shift; any shift the cashier left open is closed first."""
    starting_cash = require_int(starting_cash_cents, "starting_cash_cents", minimum=0)
    now = utcnow()
    open_sessions = lock_for_update(
        db.session.query(PosSession).filter_by(cashier_id=cashier_id, is_active=True)
    ).all()
    for stale in open_sessions:
        stale.is_active = False
        stale.end_time = now
    session = PosSession(
        cashier_id=cashier_id,
        start_time=now,
        starting_cash_cents=starting_cash,
        is_active=True,
        notes=notes,
    )
    db.session.add(session)
    db.session.flush()
    return session


def end_session(session_id: int, *, ending_cash_cents, notes: str | None = None, cashier_id: int | None = None) -> PosSession:
    ending_cash = require_int(ending_cash_cents, "ending_cash_cents", minimum=0)
    session = rs.get_or_404(PosSession, session_id, "Session", lock=True)
    if cashier_id is not None and session.cashier_id != cashier_id:
        raise NotFound("Session not found")
    if not session.is_active:
        raise ConflictError("Session already ended")

    now = utcnow()
    orders = (
        db.session.query(PosOrder)
        .filter(
            PosOrder.cashier_id == session.cashier_id,
            PosOrder.created_at >= session.start_time,
            PosOrder.created_at <= now,
        )
        .all()
    )
    session.total_sales_cents = sum(order.total_cents for order in orders)
    session.total_transactions = len(orders)
    session.ending_cash_cents = ending_cash
    session.end_time = now
    session.is_active = False
    if notes:
        session.notes = notes
    db.session.flush()
    return session


def session_history(*, cashier_id: int | None = None, page: int = 1, limit: int = 10) -> rs.Page:
    query = db.session.query(PosSession)
    if cashier_id is not None:
        query = query.filter(PosSession.cashier_id == cashier_id)
    return rs.paginate(query.order_by(PosSession.start_time.desc(), PosSession.id.desc()), page, limit)


# -- Utilities --

def sync_offline_orders(*, user_id: int | None = None) -> dict:
    """
    Draw stock for completed offline orders not yet synced.

    Each order is its own transaction: one order failing (e.g. stock ran
    out meanwhile) is reported and does not block the rest.
    """
    pending_ids = [
        row.id
        for row in db.session.query(PosOrder.id)
        .filter(PosOrder.is_offline.is_(True), PosOrder.synced_at.is_(None), PosOrder.status == "COMPLETED")
        .order_by(PosOrder.id.asc())
    ]
    synced = 0
    errors: list[str] = []
    for order_id in pending_ids:
        def _op(order_id=order_id) -> None:
            order = rs.get_or_404(PosOrder, order_id, "POS order", lock=True)
            if order.synced_at is not None:
                return
            _draw_stock(order, user_id)
            order.synced_at = utcnow()
            db.session.flush()

        try:
            run_in_transaction(_op)
            synced += 1
        except ApiError as exc:
            order_number = db.session.get(PosOrder, order_id).order_number
            errors.append(f"Failed to sync order {order_number}: {exc.message}")
            current_app.logger.warning("Offline sync failed for POS order %s: %s", order_number, exc.message)
    return {"synced": synced, "errors": errors}


def check_duplicate_orders(*, customer_id: int | None = None, window_minutes=DUPLICATE_WINDOW_MINUTES) -> list[PosOrder]:
    """Orders created in the last window_minutes, optionally for one customer."""
    minutes = require_int(window_minutes, "window_minutes", minimum=1)
    query = db.session.query(PosOrder).filter(PosOrder.created_at >= utcnow() - timedelta(minutes=minutes))
    if customer_id is not None:
        query = query.filter(PosOrder.customer_id == customer_id)
    return query.order_by(PosOrder.created_at.desc()).all()


def daily_report(day: datetime | None = None) -> dict:
    day = day or utcnow()
    start = day.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    orders = (
        db.session.query(PosOrder)
        .filter(PosOrder.status == "COMPLETED", PosOrder.created_at >= start, PosOrder.created_at < end)
        .all()
    )

    by_method: dict[str, int] = defaultdict(int)
    by_product: dict[int, dict] = {}
    transactions = 0
    for order in orders:
        for payment in order.payments:
            transactions += 1
            by_method[payment.method] += payment.amount_cents
        for item in order.items:
            entry = by_product.setdefault(item.product_id, {
                "product": {
                    "id": item.product_id,
                    "name": item.product.name if item.product else None,
                    "sku": item.product.sku if item.product else None,
                },
                "quantity": 0,
                "revenue_cents": 0,
            })
            entry["quantity"] += item.quantity
            entry["revenue_cents"] += item.total_price_cents

    top_products = sorted(by_product.values(), key=lambda e: e["revenue_cents"], reverse=True)[:10]
    return {
        "date": start.date().isoformat(),
        "total_sales_cents": sum(order.total_cents for order in orders),
        "total_orders": len(orders),
        "total_transactions": transactions,
        "payment_method_breakdown": dict(by_method),
        "top_products": top_products,
    }
