# bakery/routes/inventory.py
"""
Inventory routes: stock rows, adjustments, transfers, movement log.

Create, update, adjust and transfer commit inside the service (one
transaction each); delete commits here.
"""
from flask import Blueprint, request, g

from ..decorators import require_auth, require_permission
from ..services import inventory_service
from ..services.concurrency import commit_session
from ..validation import request_json
from ..services.resource_service import parse_bool_arg, parse_int_arg, parse_pagination

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_inventory():
    """
    Query params: search, warehouse_id, product_id, low_stock,
    expiring (with days, default 7), page, limit.
    """
    page, limit = parse_pagination(request.args)
    expiring_days = None
    if parse_bool_arg(request.args.get("expiring"), "expiring"):
        expiring_days = parse_int_arg(request.args.get("days"), "days", default=7, minimum=0)
    result = inventory_service.list_inventory(
        search=request.args.get("search"),
        warehouse_id=parse_int_arg(request.args.get("warehouse_id"), "warehouse_id"),
        product_id=parse_int_arg(request.args.get("product_id"), "product_id"),
        low_stock=bool(parse_bool_arg(request.args.get("low_stock"), "low_stock")),
        expiring_within_days=expiring_days,
        page=page,
        limit=limit,
    )
    return result.to_dict("inventory")


@inventory_bp.get("/<int:inventory_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_inventory(inventory_id: int):
    return {"inventory": inventory_service.get_inventory(inventory_id).to_dict()}


@inventory_bp.get("/<int:inventory_id>/movements")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_movements(inventory_id: int):
    page, limit = parse_pagination(request.args)
    return inventory_service.list_movements(inventory_id, page=page, limit=limit).to_dict("movements")


@inventory_bp.post("")
@require_auth
@require_permission("MANAGE_INVENTORY")
def create_inventory():
    inventory = inventory_service.create_inventory(
        request_json(), user_id=g.current_user.id
    )
    return {"message": "Inventory created successfully", "inventory": inventory.to_dict()}, 201


@inventory_bp.put("/<int:inventory_id>")
@require_auth
@require_permission("MANAGE_INVENTORY")
def update_inventory(inventory_id: int):
    inventory = inventory_service.update_inventory(
        inventory_id, request_json(), user_id=g.current_user.id
    )
    return {"message": "Inventory updated successfully", "inventory": inventory.to_dict()}


@inventory_bp.post("/<int:inventory_id>/adjust")
@require_auth
@require_permission("ADJUST_INVENTORY")
def adjust_inventory(inventory_id: int):
    """
    Body: { "type": "add" | "remove" | "set", "quantity": int, "reason"?, "notes"? }
    """
    payload = request_json()
    inventory, movement = inventory_service.adjust_inventory(
        inventory_id,
        adjust_type=payload.get("type"),
        quantity=payload.get("quantity"),
        reason=payload.get("reason"),
        notes=payload.get("notes"),
        user_id=g.current_user.id,
    )
    return {
        "message": "Inventory adjusted successfully",
        "inventory": inventory.to_dict(),
        "movement": movement.to_dict(),
    }


@inventory_bp.post("/<int:inventory_id>/transfer")
@require_auth
@require_permission("TRANSFER_INVENTORY")
def transfer_inventory(inventory_id: int):
    """
    Body: { "to_warehouse_id": int, "quantity": int, "reason"?, "notes"? }
    """
    payload = request_json()
    source, destination = inventory_service.transfer_stock(
        inventory_id,
        to_warehouse_id=payload.get("to_warehouse_id"),
        quantity=payload.get("quantity"),
        reason=payload.get("reason"),
        notes=payload.get("notes"),
        user_id=g.current_user.id,
    )
    return {
        "message": "Stock transferred successfully",
        "source": source.to_dict(),
        "destination": destination.to_dict(),
    }


@inventory_bp.delete("/<int:inventory_id>")
@require_auth
@require_permission("DELETE_INVENTORY")
def delete_inventory(inventory_id: int):
    inventory_service.delete_inventory(inventory_id)
    commit_session()
    return {"message": "Inventory deleted successfully"}
