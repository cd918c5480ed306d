# bakery/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_PRODUCTS
- Create/update require MANAGE_PRODUCTS
- Delete requires DELETE_PRODUCTS (ADMIN only)
"""
from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..services import product_service
from ..services.concurrency import commit_session
from ..validation import request_json
from ..services.resource_service import parse_bool_arg, parse_pagination

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products():
    """
    Query params: search, category, is_active, low_stock, page, limit.
    """
    page, limit = parse_pagination(request.args)
    result = product_service.list_products(
        search=request.args.get("search"),
        category=request.args.get("category"),
        is_active=parse_bool_arg(request.args.get("is_active"), "is_active"),
        low_stock=bool(parse_bool_arg(request.args.get("low_stock"), "low_stock")),
        page=page,
        limit=limit,
    )
    return result.to_dict("products")


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product(product_id: int):
    return {"product": product_service.get_product(product_id).to_dict()}


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product():
    payload = request_json()
    product = product_service.create_product(payload)
    commit_session()
    return {"message": "Product created successfully", "product": product.to_dict()}, 201


@products_bp.post("/bulk")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def bulk_create_products():
    """All-or-nothing import of a JSON list of products."""
    payload = request_json()
    rows = payload.get("products") if isinstance(payload, dict) else payload
    products = product_service.bulk_create_products(rows)
    commit_session()
    return {
        "message": f"{len(products)} products created successfully",
        "products": [p.to_dict() for p in products],
    }, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product(product_id: int):
    payload = request_json()
    product = product_service.update_product(product_id, payload)
    commit_session()
    return {"message": "Product updated successfully", "product": product.to_dict()}


@products_bp.patch("/<int:product_id>/status")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def set_product_status(product_id: int):
    payload = request_json()
    product = product_service.set_product_active(product_id, payload.get("is_active"))
    commit_session()
    return {"message": "Product status updated successfully", "product": product.to_dict()}


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("DELETE_PRODUCTS")
def delete_product(product_id: int):
    product_service.delete_product(product_id)
    commit_session()
    return {"message": "Product deleted successfully"}
