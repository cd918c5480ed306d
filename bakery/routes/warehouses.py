# bakery/routes/warehouses.py
from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..services import warehouse_service
from ..services.concurrency import commit_session
from ..validation import request_json
from ..services.resource_service import parse_bool_arg, parse_pagination

warehouses_bp = Blueprint("warehouses", __name__, url_prefix="/api/warehouses")


@warehouses_bp.get("")
@require_auth
@require_permission("VIEW_WAREHOUSES")
def list_warehouses():
    page, limit = parse_pagination(request.args)
    result = warehouse_service.list_warehouses(
        search=request.args.get("search"),
        is_active=parse_bool_arg(request.args.get("is_active"), "is_active"),
        page=page,
        limit=limit,
    )
    return result.to_dict("warehouses")


@warehouses_bp.get("/<int:warehouse_id>")
@require_auth
@require_permission("VIEW_WAREHOUSES")
def get_warehouse(warehouse_id: int):
    return {"warehouse": warehouse_service.get_warehouse(warehouse_id).to_dict()}


@warehouses_bp.post("")
@require_auth
@require_permission("MANAGE_WAREHOUSES")
def create_warehouse():
    warehouse = warehouse_service.create_warehouse(request_json())
    commit_session()
    return {"message": "Warehouse created successfully", "warehouse": warehouse.to_dict()}, 201


@warehouses_bp.put("/<int:warehouse_id>")
@require_auth
@require_permission("MANAGE_WAREHOUSES")
def update_warehouse(warehouse_id: int):
    warehouse = warehouse_service.update_warehouse(warehouse_id, request_json())
    commit_session()
    return {"message": "Warehouse updated successfully", "warehouse": warehouse.to_dict()}


@warehouses_bp.patch("/<int:warehouse_id>/status")
@require_auth
@require_permission("MANAGE_WAREHOUSES")
def set_warehouse_status(warehouse_id: int):
    payload = request_json()
    warehouse = warehouse_service.set_warehouse_active(warehouse_id, payload.get("is_active"))
    commit_session()
    return {"message": "Warehouse status updated successfully", "warehouse": warehouse.to_dict()}


@warehouses_bp.delete("/<int:warehouse_id>")
@require_auth
@require_permission("DELETE_WAREHOUSES")
def delete_warehouse(warehouse_id: int):
    warehouse_service.delete_warehouse(warehouse_id)
    commit_session()
    return {"message": "Warehouse deleted successfully"}
