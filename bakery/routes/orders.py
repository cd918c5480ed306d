# bakery/routes/orders.py
"""
Customer order and delivery routes.

DELIVERY_TEAM reads orders and deliveries and may move delivery status;
everything else is manager territory.
"""
from flask import Blueprint, request, g

from ..decorators import require_auth, require_permission
from ..services import delivery_service, order_service
from ..services.concurrency import commit_session
from ..validation import request_json
from ..services.resource_service import parse_int_arg, parse_pagination

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")
deliveries_bp = Blueprint("deliveries", __name__, url_prefix="/api/deliveries")


@orders_bp.get("")
@require_auth
@require_permission("VIEW_ORDERS")
def list_orders():
    """
    Query params: search, status, payment_status, customer_type,
    customer_id, date_range, page, limit.
    """
    page, limit = parse_pagination(request.args)
    result = order_service.list_orders(
        search=request.args.get("search"),
        status=request.args.get("status"),
        payment_status=request.args.get("payment_status"),
        customer_type=request.args.get("customer_type"),
        customer_id=parse_int_arg(request.args.get("customer_id"), "customer_id"),
        date_range=request.args.get("date_range"),
        page=page,
        limit=limit,
    )
    return result.to_dict("orders")


@orders_bp.get("/<int:order_id>")
@require_auth
@require_permission("VIEW_ORDERS")
def get_order(order_id: int):
    return {"order": order_service.get_order(order_id).to_dict()}


@orders_bp.post("")
@require_auth
@require_permission("MANAGE_ORDERS")
def create_order():
    order = order_service.create_order(request_json(), user_id=g.current_user.id)
    commit_session()
    return {"message": "Order created successfully", "order": order.to_dict()}, 201


@orders_bp.put("/<int:order_id>")
@require_auth
@require_permission("MANAGE_ORDERS")
def update_order(order_id: int):
    order = order_service.update_order(order_id, request_json())
    commit_session()
    return {"message": "Order updated successfully", "order": order.to_dict()}


@orders_bp.patch("/<int:order_id>/status")
@require_auth
@require_permission("UPDATE_ORDER_STATUS")
def set_order_status(order_id: int):
    payload = request_json()
    order = order_service.set_order_status(order_id, payload.get("status"))
    commit_session()
    return {"message": "Order status updated successfully", "order": order.to_dict()}


@orders_bp.delete("/<int:order_id>")
@require_auth
@require_permission("DELETE_ORDERS")
def delete_order(order_id: int):
    order_service.delete_order(order_id)
    commit_session()
    return {"message": "Order deleted successfully"}


# -- Deliveries --

@deliveries_bp.get("")
@require_auth
@require_permission("VIEW_DELIVERIES")
def list_deliveries():
    page, limit = parse_pagination(request.args)
    result = delivery_service.list_deliveries(
        search=request.args.get("search"),
        status=request.args.get("status"),
        city=request.args.get("city"),
        order_id=parse_int_arg(request.args.get("order_id"), "order_id"),
        date_range=request.args.get("date_range"),
        page=page,
        limit=limit,
    )
    return result.to_dict("deliveries")


@deliveries_bp.get("/<int:delivery_id>")
@require_auth
@require_permission("VIEW_DELIVERIES")
def get_delivery(delivery_id: int):
    return {"delivery": delivery_service.get_delivery(delivery_id).to_dict()}


@deliveries_bp.post("")
@require_auth
@require_permission("MANAGE_DELIVERIES")
def create_delivery():
    delivery = delivery_service.create_delivery(request_json())
    commit_session()
    return {"message": "Delivery created successfully", "delivery": delivery.to_dict()}, 201


@deliveries_bp.put("/<int:delivery_id>")
@require_auth
@require_permission("MANAGE_DELIVERIES")
def update_delivery(delivery_id: int):
    delivery = delivery_service.update_delivery(delivery_id, request_json())
    commit_session()
    return {"message": "Delivery updated successfully", "delivery": delivery.to_dict()}


@deliveries_bp.patch("/<int:delivery_id>/status")
@require_auth
@require_permission("UPDATE_DELIVERY_STATUS")
def set_delivery_status(delivery_id: int):
    payload = request_json()
    delivery = delivery_service.set_delivery_status(
        delivery_id, payload.get("status"), notes=payload.get("notes")
    )
    commit_session()
    return {"message": "Delivery status updated successfully", "delivery": delivery.to_dict()}


@deliveries_bp.delete("/<int:delivery_id>")
@require_auth
@require_permission("DELETE_DELIVERIES")
def delete_delivery(delivery_id: int):
    delivery_service.delete_delivery(delivery_id)
    commit_session()
    return {"message": "Delivery deleted successfully"}
