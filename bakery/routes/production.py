# bakery/routes/production.py
"""
Recipe and production batch routes.

PRODUCTION_TEAM may read and move batch status (UPDATE_PRODUCTION_STATUS)
but cannot create or edit batches.
"""
from flask import Blueprint, request, g

from ..decorators import require_auth, require_permission
from ..services import production_service
from ..services.concurrency import commit_session
from ..validation import request_json
from ..services.resource_service import parse_bool_arg, parse_int_arg, parse_pagination

recipes_bp = Blueprint("recipes", __name__, url_prefix="/api/recipes")
productions_bp = Blueprint("productions", __name__, url_prefix="/api/productions")


@recipes_bp.get("")
@require_auth
@require_permission("VIEW_RECIPES")
def list_recipes():
    page, limit = parse_pagination(request.args)
    result = production_service.list_recipes(
        search=request.args.get("search"),
        is_active=parse_bool_arg(request.args.get("is_active"), "is_active"),
        page=page,
        limit=limit,
    )
    return result.to_dict("recipes")


@recipes_bp.get("/<int:recipe_id>")
@require_auth
@require_permission("VIEW_RECIPES")
def get_recipe(recipe_id: int):
    return {"recipe": production_service.get_recipe(recipe_id).to_dict()}


@recipes_bp.post("")
@require_auth
@require_permission("MANAGE_RECIPES")
def create_recipe():
    recipe = production_service.create_recipe(request_json())
    commit_session()
    return {"message": "Recipe created successfully", "recipe": recipe.to_dict()}, 201


@recipes_bp.put("/<int:recipe_id>")
@require_auth
@require_permission("MANAGE_RECIPES")
def update_recipe(recipe_id: int):
    recipe = production_service.update_recipe(recipe_id, request_json())
    commit_session()
    return {"message": "Recipe updated successfully", "recipe": recipe.to_dict()}


@recipes_bp.delete("/<int:recipe_id>")
@require_auth
@require_permission("DELETE_RECIPES")
def delete_recipe(recipe_id: int):
    production_service.delete_recipe(recipe_id)
    commit_session()
    return {"message": "Recipe deleted successfully"}


# -- Production batches --

@productions_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTION")
def list_productions():
    page, limit = parse_pagination(request.args)
    result = production_service.list_productions(
        search=request.args.get("search"),
        status=request.args.get("status"),
        recipe_id=parse_int_arg(request.args.get("recipe_id"), "recipe_id"),
        date_range=request.args.get("date_range"),
        page=page,
        limit=limit,
    )
    return result.to_dict("productions")


@productions_bp.get("/<int:production_id>")
@require_auth
@require_permission("VIEW_PRODUCTION")
def get_production(production_id: int):
    return {"production": production_service.get_production(production_id).to_dict()}


@productions_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTION")
def create_production():
    production = production_service.create_production(
        request_json(), user_id=g.current_user.id
    )
    commit_session()
    return {"message": "Production batch created successfully", "production": production.to_dict()}, 201


@productions_bp.put("/<int:production_id>")
@require_auth
@require_permission("MANAGE_PRODUCTION")
def update_production(production_id: int):
    production = production_service.update_production(production_id, request_json())
    commit_session()
    return {"message": "Production batch updated successfully", "production": production.to_dict()}


@productions_bp.patch("/<int:production_id>/status")
@require_auth
@require_permission("UPDATE_PRODUCTION_STATUS")
def set_production_status(production_id: int):
    """
    Body: { "status": str, "actual_qty"?: int }
    """
    payload = request_json()
    production = production_service.set_production_status(
        production_id, payload.get("status"), actual_qty=payload.get("actual_qty")
    )
    commit_session()
    return {"message": "Production status updated successfully", "production": production.to_dict()}


@productions_bp.delete("/<int:production_id>")
@require_auth
@require_permission("DELETE_PRODUCTION")
def delete_production(production_id: int):
    production_service.delete_production(production_id)
    commit_session()
    return {"message": "Production batch deleted successfully"}
