# bakery/services/production_service.py
"""
Recipes and production batches.

A recipe owns its ingredient lines; a production batch references a recipe
and owns the per-product output lines. Both child collections are replaced
wholesale on update.
"""
from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFound, ValidationError
from ..extensions import db
from ..models import Product, Production, ProductionItem, Recipe, RecipeItem, PRODUCTION_STATUSES
from ..validation import ModelValidationPolicy, validate_payload, enforce_non_negative, enforce_positive, require_int
from . import lifecycle_service
from . import resource_service as rs
from .document_service import next_document_number

RECIPE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "servings", "prep_time_minutes", "cook_time_minutes", "instructions", "is_active",
    },
    required_on_create={"name", "servings"},
)

PRODUCTION_POLICY = ModelValidationPolicy(
    writable_fields={"recipe_id", "planned_qty", "actual_qty", "planned_date", "notes"},
    required_on_create={"recipe_id", "planned_qty", "planned_date"},
)

UNDELETABLE_PRODUCTION_STATUSES = {"IN_PROGRESS", "COMPLETED"}


def _require_product(product_id: int) -> None:
    if db.session.get(Product, product_id) is None:
        raise NotFound(f"Product {product_id} not found")


def _build_recipe_items(raw_items) -> list[RecipeItem]:
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")
    items = []
    for index, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError("Each entry in items must be an object")
        product_id = require_int(raw.get("product_id"), f"items[{index}].product_id")
        _require_product(product_id)
        items.append(RecipeItem(
            product_id=product_id,
            quantity=require_int(raw.get("quantity"), f"items[{index}].quantity", minimum=1),
            unit=(raw.get("unit") or None),
        ))
    return items


def _build_production_items(raw_items) -> list[ProductionItem]:
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")
    items = []
    for index, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError("Each entry in items must be an object")
        product_id = require_int(raw.get("product_id"), f"items[{index}].product_id")
        _require_product(product_id)
        actual = raw.get("actual_qty")
        items.append(ProductionItem(
            product_id=product_id,
            planned_qty=require_int(raw.get("planned_qty"), f"items[{index}].planned_qty", minimum=1),
            actual_qty=None if actual is None else require_int(actual, f"items[{index}].actual_qty", minimum=0),
        ))
    return items


# -- Recipes --

def _enforce_recipe_rules(patch: dict) -> None:
    enforce_positive(patch, "servings")
    enforce_non_negative(patch, "prep_time_minutes", "cook_time_minutes")


def list_recipes(
    *,
    search: str | None = None,
    is_active: bool | None = None,
    page: int = 1,
    limit: int = 10,
) -> rs.Page:
    query = db.session.query(Recipe)
    query = rs.apply_search(query, [Recipe.name, Recipe.description], search)
    if is_active is not None:
        query = query.filter(Recipe.is_active.is_(is_active))
    return rs.paginate(query.order_by(Recipe.name.asc(), Recipe.id.asc()), page, limit)


def get_recipe(recipe_id: int) -> Recipe:
    return rs.get_or_404(Recipe, recipe_id, "Recipe")


def create_recipe(payload: dict) -> Recipe:
    payload = dict(payload or {})
    raw_items = payload.pop("items", None)
    patch = validate_payload(model=Recipe, payload=payload, policy=RECIPE_POLICY, partial=False)
    _enforce_recipe_rules(patch)
    recipe = Recipe(**patch)
    recipe.items = _build_recipe_items(raw_items)
    db.session.add(recipe)
    db.session.flush()
    return recipe


def update_recipe(recipe_id: int, payload: dict) -> Recipe:
    payload = dict(payload or {})
    raw_items = payload.pop("items", None)
    recipe = get_recipe(recipe_id)
    patch = validate_payload(model=Recipe, payload=payload, policy=RECIPE_POLICY, partial=True)
    _enforce_recipe_rules(patch)
    rs.apply_patch(recipe, patch)
    if raw_items is not None:
        rs.replace_children(recipe, "items", _build_recipe_items(raw_items))
    db.session.flush()
    return recipe


def delete_recipe(recipe_id: int) -> None:
    recipe = get_recipe(recipe_id)
    rs.ensure_no_dependents(
        db.session.query(Production.id).filter(Production.recipe_id == recipe.id),
        "Cannot delete recipe used by production batches. Deactivate it instead.",
    )
    db.session.delete(recipe)
    db.session.flush()


# -- Production batches --

def list_productions(
    *,
    search: str | None = None,
    status: str | None = None,
    recipe_id: int | None = None,
    date_range: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> rs.Page:
    query = db.session.query(Production).join(Recipe, Recipe.id == Production.recipe_id)
    query = rs.apply_search(query, [Production.batch_number, Recipe.name, Production.notes], search)
    query = rs.apply_enum_filter(query, Production.status, status, PRODUCTION_STATUSES, "status")
    if recipe_id is not None:
        query = query.filter(Production.recipe_id == recipe_id)
    query = rs.apply_date_range(query, Production.planned_date, date_range)
    query = query.order_by(Production.planned_date.desc(), Production.id.desc())
    return rs.paginate(query, page, limit)


def get_production(production_id: int) -> Production:
    return rs.get_or_404(Production, production_id, "Production batch")


def create_production(payload: dict, *, user_id: int | None = None) -> Production:
    payload = dict(payload or {})
    raw_items = payload.pop("items", None)
    patch = validate_payload(model=Production, payload=payload, policy=PRODUCTION_POLICY, partial=False)
    enforce_positive(patch, "planned_qty")
    enforce_non_negative(patch, "actual_qty")

    recipe = get_recipe(patch["recipe_id"])
    if not recipe.is_active:
        raise ValidationError("Recipe is inactive")

    production = Production(
        batch_number=next_document_number("PRODUCTION"),
        status="PLANNED",
        created_by_user_id=user_id,
        **patch,
    )
    production.items = _build_production_items(raw_items)
    db.session.add(production)
    db.session.flush()
    return production


def update_production(production_id: int, payload: dict) -> Production:
    payload = dict(payload or {})
    raw_items = payload.pop("items", None)
    status = payload.pop("status", None)
    production = get_production(production_id)
    patch = validate_payload(model=Production, payload=payload, policy=PRODUCTION_POLICY, partial=True)
    enforce_positive(patch, "planned_qty")
    enforce_non_negative(patch, "actual_qty")
    if "recipe_id" in patch:
        get_recipe(patch["recipe_id"])
    rs.apply_patch(production, patch)
    if raw_items is not None:
        rs.replace_children(production, "items", _build_production_items(raw_items))
    if status is not None:
        lifecycle_service.transition("production", production, status, actual_qty=patch.get("actual_qty"))
    db.session.flush()
    return production


def set_production_status(production_id: int, status, *, actual_qty=None) -> Production:
    production = get_production(production_id)
    qty = None if actual_qty is None else require_int(actual_qty, "actual_qty", minimum=0)
    previous = lifecycle_service.transition("production", production, status, actual_qty=qty)
    db.session.flush()
    current_app.logger.info(
        "Production %s status %s -> %s", production.batch_number, previous, production.status
    )
    return production


def delete_production(production_id: int) -> None:
    production = get_production(production_id)
    if production.status in UNDELETABLE_PRODUCTION_STATUSES:
        raise ConflictError(f"Cannot delete a production batch in {production.status} status")
    db.session.delete(production)
    db.session.flush()
