# bakery/routes/purchasing.py
"""
Supplier and purchase order routes.

Receiving a PO line requires RECEIVE_PURCHASE_ORDERS and commits inside the
service together with the stock it adds.
"""
from flask import Blueprint, request, g

from ..decorators import require_auth, require_permission
from ..services import purchasing_service
from ..services.concurrency import commit_session
from ..validation import request_json
from ..services.resource_service import parse_bool_arg, parse_int_arg, parse_pagination

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")
purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@suppliers_bp.get("")
@require_auth
@require_permission("VIEW_SUPPLIERS")
def list_suppliers():
    page, limit = parse_pagination(request.args)
    result = purchasing_service.list_suppliers(
        search=request.args.get("search"),
        is_active=parse_bool_arg(request.args.get("is_active"), "is_active"),
        page=page,
        limit=limit,
    )
    return result.to_dict("suppliers")


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@require_permission("VIEW_SUPPLIERS")
def get_supplier(supplier_id: int):
    return {"supplier": purchasing_service.get_supplier(supplier_id).to_dict()}


@suppliers_bp.post("")
@require_auth
@require_permission("MANAGE_SUPPLIERS")
def create_supplier():
    supplier = purchasing_service.create_supplier(request_json())
    commit_session()
    return {"message": "Supplier created successfully", "supplier": supplier.to_dict()}, 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_permission("MANAGE_SUPPLIERS")
def update_supplier(supplier_id: int):
    supplier = purchasing_service.update_supplier(supplier_id, request_json())
    commit_session()
    return {"message": "Supplier updated successfully", "supplier": supplier.to_dict()}


@suppliers_bp.patch("/<int:supplier_id>/status")
@require_auth
@require_permission("MANAGE_SUPPLIERS")
def set_supplier_status(supplier_id: int):
    payload = request_json()
    supplier = purchasing_service.set_supplier_active(supplier_id, payload.get("is_active"))
    commit_session()
    return {"message": "Supplier status updated successfully", "supplier": supplier.to_dict()}


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_permission("DELETE_SUPPLIERS")
def delete_supplier(supplier_id: int):
    purchasing_service.delete_supplier(supplier_id)
    commit_session()
    return {"message": "Supplier deleted successfully"}


# -- Purchase orders --

@purchase_orders_bp.get("")
@require_auth
@require_permission("VIEW_PURCHASE_ORDERS")
def list_purchase_orders():
    page, limit = parse_pagination(request.args)
    result = purchasing_service.list_purchase_orders(
        search=request.args.get("search"),
        status=request.args.get("status"),
        supplier_id=parse_int_arg(request.args.get("supplier_id"), "supplier_id"),
        date_range=request.args.get("date_range"),
        page=page,
        limit=limit,
    )
    return result.to_dict("purchase_orders")


@purchase_orders_bp.get("/<int:po_id>")
@require_auth
@require_permission("VIEW_PURCHASE_ORDERS")
def get_purchase_order(po_id: int):
    return {"purchase_order": purchasing_service.get_purchase_order(po_id).to_dict()}


@purchase_orders_bp.post("")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def create_purchase_order():
    po = purchasing_service.create_purchase_order(
        request_json(), user_id=g.current_user.id
    )
    commit_session()
    return {"message": "Purchase order created successfully", "purchase_order": po.to_dict()}, 201


@purchase_orders_bp.put("/<int:po_id>")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def update_purchase_order(po_id: int):
    po = purchasing_service.update_purchase_order(po_id, request_json())
    commit_session()
    return {"message": "Purchase order updated successfully", "purchase_order": po.to_dict()}


@purchase_orders_bp.patch("/<int:po_id>/status")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def set_purchase_order_status(po_id: int):
    payload = request_json()
    po = purchasing_service.set_purchase_order_status(po_id, payload.get("status"))
    commit_session()
    return {"message": "Purchase order status updated successfully", "purchase_order": po.to_dict()}


@purchase_orders_bp.post("/items/<int:item_id>/receive")
@require_auth
@require_permission("RECEIVE_PURCHASE_ORDERS")
def receive_purchase_order_item(item_id: int):
    """
    Body: { "quantity": int, "warehouse_id": int }
    """
    payload = request_json()
    item = purchasing_service.receive_item(
        item_id,
        quantity=payload.get("quantity"),
        warehouse_id=payload.get("warehouse_id"),
        user_id=g.current_user.id,
    )
    return {
        "message": "Items received successfully",
        "item": item.to_dict(),
        "purchase_order": item.purchase_order.to_dict(),
    }


@purchase_orders_bp.delete("/<int:po_id>")
@require_auth
@require_permission("DELETE_PURCHASE_ORDERS")
def delete_purchase_order(po_id: int):
    purchasing_service.delete_purchase_order(po_id)
    commit_session()
    return {"message": "Purchase order deleted successfully"}
