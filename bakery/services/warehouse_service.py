# bakery/services/warehouse_service.py
from __future__ import annotations

from ..errors import ValidationError
from ..extensions import db
from ..models import Inventory, Warehouse
from ..validation import ModelValidationPolicy, validate_payload, enforce_non_negative
from . import resource_service as rs

WAREHOUSE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "location", "address", "city", "state", "zip_code", "capacity", "is_active"},
    required_on_create={"name"},
)


def list_warehouses(
    *,
    search: str | None = None,
    is_active: bool | None = None,
    page: int = 1,
    limit: int = 10,
) -> rs.Page:
    query = db.session.query(Warehouse)
    query = rs.apply_search(query, [Warehouse.name, Warehouse.location, Warehouse.city], search)
    if is_active is not None:
        query = query.filter(Warehouse.is_active.is_(is_active))
    return rs.paginate(query.order_by(Warehouse.name.asc(), Warehouse.id.asc()), page, limit)


def get_warehouse(warehouse_id: int) -> Warehouse:
    return rs.get_or_404(Warehouse, warehouse_id, "Warehouse")


def create_warehouse(payload: dict) -> Warehouse:
    patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=False)
    enforce_non_negative(patch, "capacity")
    warehouse = Warehouse(**patch)
    db.session.add(warehouse)
    db.session.flush()
    return warehouse


def update_warehouse(warehouse_id: int, payload: dict) -> Warehouse:
    warehouse = get_warehouse(warehouse_id)
    patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=True)
    enforce_non_negative(patch, "capacity")
    rs.apply_patch(warehouse, patch)
    db.session.flush()
    return warehouse


def set_warehouse_active(warehouse_id: int, is_active) -> Warehouse:
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be a boolean", fields=["is_active"])
    warehouse = get_warehouse(warehouse_id)
    warehouse.is_active = is_active
    db.session.flush()
    return warehouse


def delete_warehouse(warehouse_id: int) -> None:
    warehouse = get_warehouse(warehouse_id)
    rs.ensure_no_dependents(
        db.session.query(Inventory.id).filter(Inventory.warehouse_id == warehouse.id),
        "Cannot delete warehouse with existing inventory. Move or remove the stock first.",
    )
    db.session.delete(warehouse)
    db.session.flush()
