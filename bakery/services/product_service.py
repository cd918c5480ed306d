# bakery/services/product_service.py
"""
Product catalog service.

SKU is the unique business key. Deletion is refused while anything still
references the product (stock, order lines, recipes, purchase lines); the
usual path is to deactivate instead.
"""
from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import (
    Inventory,
    OrderItem,
    PosOrderItem,
    Product,
    ProductionItem,
    PurchaseOrderItem,
    RecipeItem,
    PRODUCT_CATEGORIES,
    UNIT_TYPES,
)
from ..validation import ModelValidationPolicy, validate_payload, enforce_money, enforce_non_negative
from ..errors import ValidationError
from . import resource_service as rs

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku", "name", "description", "barcode", "category", "unit_type",
        "base_price_cents", "selling_price_cents", "cost_price_cents", "tax_rate_bps",
        "min_stock_level", "max_stock_level", "shelf_life_days", "is_active",
    },
    required_on_create={"sku", "name", "base_price_cents"},
    enums={"category": PRODUCT_CATEGORIES, "unit_type": UNIT_TYPES},
)


def _enforce_rules(patch: dict, product: Product | None = None) -> None:
    enforce_money(patch, "base_price_cents", "selling_price_cents", "cost_price_cents")
    enforce_non_negative(patch, "min_stock_level", "max_stock_level", "shelf_life_days", "tax_rate_bps")
    if "sku" in patch:
        patch["sku"] = patch["sku"].upper()

    min_level = patch.get("min_stock_level", product.min_stock_level if product else 0)
    max_level = patch.get("max_stock_level", product.max_stock_level if product else None)
    if max_level is not None and min_level is not None and max_level < min_level:
        raise ValidationError("max_stock_level must be >= min_stock_level")


def stock_totals_subquery():
    return (
        db.session.query(
            Inventory.product_id.label("product_id"),
            func.coalesce(func.sum(Inventory.quantity), 0).label("total_qty"),
        )
        .group_by(Inventory.product_id)
        .subquery()
    )


def list_products(
    *,
    search: str | None = None,
    category: str | None = None,
    is_active: bool | None = None,
    low_stock: bool = False,
    page: int = 1,
    limit: int = 10,
) -> rs.Page:
    query = db.session.query(Product)
    query = rs.apply_search(query, [Product.name, Product.sku, Product.description, Product.barcode], search)
    query = rs.apply_enum_filter(query, Product.category, category, PRODUCT_CATEGORIES, "category")
    if is_active is not None:
        query = query.filter(Product.is_active.is_(is_active))
    if low_stock:
        totals = stock_totals_subquery()
        query = query.outerjoin(totals, totals.c.product_id == Product.id).filter(
            func.coalesce(totals.c.total_qty, 0) < Product.min_stock_level
        )
    query = query.order_by(Product.name.asc(), Product.id.asc())
    return rs.paginate(query, page, limit)


def get_product(product_id: int) -> Product:
    return rs.get_or_404(Product, product_id, "Product")


def create_product(payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    _enforce_rules(patch)
    rs.ensure_unique(Product, Product.sku, patch["sku"], label="SKU")

    product = Product(**patch)
    db.session.add(product)
    db.session.flush()
    return product


def bulk_create_products(payloads: list) -> list[Product]:
    """All-or-nothing: one bad row rejects the batch (the caller rolls back)."""
    if not isinstance(payloads, list) or not payloads:
        raise ValidationError("products must be a non-empty list")
    seen: set[str] = set()
    created = []
    for index, payload in enumerate(payloads):
        try:
            product = create_product(payload)
        except ValidationError as exc:
            raise ValidationError(f"Row {index + 1}: {exc.message}") from exc
        if product.sku in seen:
            raise ValidationError(f"Row {index + 1}: duplicate SKU {product.sku} in batch")
        seen.add(product.sku)
        created.append(product)
    return created


def update_product(product_id: int, payload: dict) -> Product:
    product = get_product(product_id)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    _enforce_rules(patch, product)
    if "sku" in patch:
        rs.ensure_unique(Product, Product.sku, patch["sku"], exclude_id=product.id, label="SKU")
    rs.apply_patch(product, patch)
    db.session.flush()
    return product


def set_product_active(product_id: int, is_active) -> Product:
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be a boolean", fields=["is_active"])
    product = get_product(product_id)
    product.is_active = is_active
    db.session.flush()
    return product


def delete_product(product_id: int) -> None:
    product = get_product(product_id)
    for model, label in (
        (Inventory, "inventory records"),
        (OrderItem, "orders"),
        (PosOrderItem, "POS orders"),
        (RecipeItem, "recipes"),
        (ProductionItem, "production batches"),
        (PurchaseOrderItem, "purchase orders"),
    ):
        rs.ensure_no_dependents(
            db.session.query(model.id).filter(model.product_id == product.id),
            f"Cannot delete product referenced by {label}. Deactivate it instead.",
        )
    db.session.delete(product)
    db.session.flush()


def list_public_products(*, category: str | None = None, search: str | None = None) -> list[Product]:
    query = db.session.query(Product).filter(Product.is_active.is_(True))
    query = rs.apply_enum_filter(query, Product.category, category, PRODUCT_CATEGORIES, "category")
    query = rs.apply_search(query, [Product.name, Product.description], search)
    return query.order_by(Product.category.asc(), Product.name.asc()).all()
