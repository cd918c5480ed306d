# bakery/routes/customers.py
"""
Customer and customer address routes.

Status and type changes require MANAGE_CUSTOMER_STATUS (ADMIN only).
"""
from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..services import customer_service
from ..services.concurrency import commit_session
from ..validation import request_json
from ..services.resource_service import parse_bool_arg, parse_pagination

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def list_customers():
    page, limit = parse_pagination(request.args)
    result = customer_service.list_customers(
        search=request.args.get("search"),
        customer_type=request.args.get("customer_type"),
        is_active=parse_bool_arg(request.args.get("is_active"), "is_active"),
        date_range=request.args.get("date_range"),
        page=page,
        limit=limit,
    )
    return result.to_dict("customers")


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def get_customer(customer_id: int):
    customer = customer_service.get_customer(customer_id)
    return {"customer": customer.to_dict(include_locations=True)}


@customers_bp.post("")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def create_customer():
    customer = customer_service.create_customer(request_json())
    commit_session()
    return {"message": "Customer created successfully", "customer": customer.to_dict()}, 201


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def update_customer(customer_id: int):
    customer = customer_service.update_customer(customer_id, request_json())
    commit_session()
    return {"message": "Customer updated successfully", "customer": customer.to_dict()}


@customers_bp.patch("/<int:customer_id>/status")
@require_auth
@require_permission("MANAGE_CUSTOMER_STATUS")
def set_customer_status(customer_id: int):
    payload = request_json()
    customer = customer_service.set_customer_active(customer_id, payload.get("is_active"))
    commit_session()
    return {"message": "Customer status updated successfully", "customer": customer.to_dict()}


@customers_bp.patch("/<int:customer_id>/type")
@require_auth
@require_permission("MANAGE_CUSTOMER_STATUS")
def set_customer_type(customer_id: int):
    payload = request_json()
    customer = customer_service.set_customer_type(customer_id, payload.get("customer_type"))
    commit_session()
    return {"message": "Customer type updated successfully", "customer": customer.to_dict()}


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("DELETE_CUSTOMERS")
def delete_customer(customer_id: int):
    customer_service.delete_customer(customer_id)
    commit_session()
    return {"message": "Customer deleted successfully"}


# -- Addresses --

@customers_bp.get("/<int:customer_id>/addresses")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def list_addresses(customer_id: int):
    return {"addresses": [loc.to_dict() for loc in customer_service.list_locations(customer_id)]}


@customers_bp.post("/<int:customer_id>/addresses")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def add_address(customer_id: int):
    location = customer_service.add_location(customer_id, request_json())
    commit_session()
    return {"message": "Address added successfully", "address": location.to_dict()}, 201


@customers_bp.put("/<int:customer_id>/addresses/<int:address_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def update_address(customer_id: int, address_id: int):
    location = customer_service.update_location(customer_id, address_id, request_json())
    commit_session()
    return {"message": "Address updated successfully", "address": location.to_dict()}


@customers_bp.delete("/<int:customer_id>/addresses/<int:address_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def delete_address(customer_id: int, address_id: int):
    customer_service.delete_location(customer_id, address_id)
    commit_session()
    return {"message": "Address deleted successfully"}
