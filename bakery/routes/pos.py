# bakery/routes/pos.py
"""
Point of Sale routes.

SECURITY: every route requires USE_POS except the daily report, which
requires VIEW_POS_REPORTS. The cashier is always the authenticated user.
"""
from flask import Blueprint, request, g

from ..decorators import require_auth, require_permission
from ..errors import ValidationError
from ..services import pos_service
from ..services.concurrency import commit_session
from ..services.resource_service import get_or_404, parse_int_arg, parse_pagination
from ..models import PosOrder
from ..time_utils import parse_iso_datetime
from ..validation import request_json, require_int

pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


# -- Orders --

@pos_bp.get("/orders")
@require_auth
@require_permission("USE_POS")
def list_pos_orders():
    page, limit = parse_pagination(request.args)
    result = pos_service.list_pos_orders(
        search=request.args.get("search"),
        status=request.args.get("status"),
        cashier_id=parse_int_arg(request.args.get("cashier_id"), "cashier_id"),
        customer_id=parse_int_arg(request.args.get("customer_id"), "customer_id"),
        date_range=request.args.get("date_range"),
        page=page,
        limit=limit,
    )
    return result.to_dict("orders", serializer=lambda o: o.to_dict(include_children=False))


@pos_bp.post("/orders")
@require_auth
@require_permission("USE_POS")
def create_pos_order():
    """
    Body: { items: [{product_id, quantity, unit_price_cents?, discount_cents?, notes?}],
            customer_id?, discount_cents?, notes?, is_offline? }
    """
    order = pos_service.create_pos_order(request_json(), cashier_id=g.current_user.id)
    commit_session()
    return {"message": "POS order created successfully", "order": order.to_dict()}, 201


@pos_bp.get("/orders/<int:order_id>")
@require_auth
@require_permission("USE_POS")
def get_pos_order(order_id: int):
    return {"order": pos_service.get_pos_order(order_id).to_dict()}


@pos_bp.get("/orders/number/<order_number>")
@require_auth
@require_permission("USE_POS")
def get_pos_order_by_number(order_number: str):
    return {"order": pos_service.get_pos_order_by_number(order_number).to_dict()}


@pos_bp.patch("/orders/<int:order_id>/status")
@require_auth
@require_permission("USE_POS")
def set_pos_order_status(order_id: int):
    payload = request_json()
    order = pos_service.set_pos_order_status(order_id, payload.get("status"), user_id=g.current_user.id)
    return {"message": "POS order status updated successfully", "order": order.to_dict()}


@pos_bp.delete("/orders/<int:order_id>")
@require_auth
@require_permission("USE_POS")
def delete_pos_order(order_id: int):
    pos_service.delete_pos_order(order_id)
    commit_session()
    return {"message": "POS order deleted successfully"}


@pos_bp.post("/orders/<int:order_id>/items")
@require_auth
@require_permission("USE_POS")
def add_pos_item(order_id: int):
    item = pos_service.add_pos_item(order_id, request_json())
    commit_session()
    return {"message": "Item added successfully", "item": item.to_dict(), "order": item.order.to_dict()}, 201


@pos_bp.put("/items/<int:item_id>")
@require_auth
@require_permission("USE_POS")
def update_pos_item(item_id: int):
    item = pos_service.update_pos_item(item_id, request_json())
    commit_session()
    return {"message": "Item updated successfully", "item": item.to_dict(), "order": item.order.to_dict()}


@pos_bp.delete("/items/<int:item_id>")
@require_auth
@require_permission("USE_POS")
def remove_pos_item(item_id: int):
    order = pos_service.remove_pos_item(item_id)
    commit_session()
    return {"message": "Item removed successfully", "order": order.to_dict()}


# -- Payments & receipts --

@pos_bp.get("/payments")
@require_auth
@require_permission("USE_POS")
def list_payments():
    order_id = require_int(request.args.get("order_id"), "order_id")
    order = get_or_404(PosOrder, order_id, "POS order")
    return {"payments": [p.to_dict() for p in order.payments]}


@pos_bp.post("/payments")
@require_auth
@require_permission("USE_POS")
def add_payment():
    """
    Body: { order_id, method: CASH|CARD|UPI|WALLET, amount_cents, reference?, notes? }

    The order completes (and stock is drawn) once payments cover the total.
    """
    payload = request_json()
    order_id = require_int(payload.get("order_id"), "order_id")
    payment = pos_service.add_payment(order_id, payload, user_id=g.current_user.id)
    return {
        "message": "Payment added successfully",
        "payment": payment.to_dict(),
        "order": payment.order.to_dict(),
    }, 201


@pos_bp.get("/receipts")
@require_auth
@require_permission("USE_POS")
def list_receipts():
    order_id = require_int(request.args.get("order_id"), "order_id")
    order = get_or_404(PosOrder, order_id, "POS order")
    return {"receipts": [r.to_dict() for r in order.receipts]}


@pos_bp.post("/receipts")
@require_auth
@require_permission("USE_POS")
def generate_receipt():
    payload = request_json()
    order_id = require_int(payload.get("order_id"), "order_id")
    receipt = pos_service.generate_receipt(
        order_id, receipt_type=payload.get("type") or "RECEIPT", content=payload.get("content")
    )
    commit_session()
    return {"message": "Receipt generated successfully", "receipt": receipt.to_dict()}, 201


# -- Sessions --

@pos_bp.post("/session")
@require_auth
@require_permission("USE_POS")
def start_session():
    payload = request_json()
    session = pos_service.start_session(
        g.current_user.id,
        starting_cash_cents=payload.get("starting_cash_cents", 0),
        notes=payload.get("notes"),
    )
    commit_session()
    return {"message": "Session started successfully", "session": session.to_dict()}, 201


@pos_bp.put("/session")
@require_auth
@require_permission("USE_POS")
def end_session():
    payload = request_json()
    session_id = require_int(payload.get("session_id"), "session_id")
    session = pos_service.end_session(
        session_id,
        ending_cash_cents=payload.get("ending_cash_cents"),
        notes=payload.get("notes"),
        cashier_id=g.current_user.id,
    )
    commit_session()
    return {"message": "Session ended successfully", "session": session.to_dict()}


@pos_bp.get("/session/active")
@require_auth
@require_permission("USE_POS")
def active_session():
    session = pos_service.get_active_session(g.current_user.id)
    return {"session": session.to_dict() if session else None}


@pos_bp.get("/sessions")
@require_auth
@require_permission("VIEW_POS_REPORTS")
def session_history():
    page, limit = parse_pagination(request.args)
    result = pos_service.session_history(
        cashier_id=parse_int_arg(request.args.get("cashier_id"), "cashier_id"), page=page, limit=limit
    )
    return result.to_dict("sessions")


# -- Utilities & reports --

@pos_bp.post("/utils")
@require_auth
@require_permission("USE_POS")
def pos_utils():
    """
    Body: { "action": "sync" } or
          { "action": "check-duplicates", "customer_id"?, "window_minutes"? }
    """
    payload = request_json()
    action = payload.get("action")
    if action == "sync":
        result = pos_service.sync_offline_orders(user_id=g.current_user.id)
        return {"message": f"Synced {result['synced']} offline orders", **result}
    if action == "check-duplicates":
        customer_id = payload.get("customer_id")
        orders = pos_service.check_duplicate_orders(
            customer_id=require_int(customer_id, "customer_id") if customer_id is not None else None,
            window_minutes=payload.get("window_minutes", pos_service.DUPLICATE_WINDOW_MINUTES),
        )
        return {
            "hasDuplicates": bool(orders),
            "orders": [o.to_dict(include_children=False) for o in orders],
        }
    raise ValidationError("action must be one of: sync, check-duplicates", fields=["action"])


@pos_bp.get("/reports/daily")
@require_auth
@require_permission("VIEW_POS_REPORTS")
def daily_report():
    try:
        day = parse_iso_datetime(request.args.get("date"))
    except ValueError:
        raise ValidationError("date must be an ISO-8601 date")
    return {"report": pos_service.daily_report(day)}
