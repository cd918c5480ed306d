from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


PRODUCTION_STATUSES = ("PLANNED", "IN_PROGRESS", "ON_HOLD", "COMPLETED", "CANCELLED")


class Recipe(db.Model):
    __tablename__ = "recipes"
    __table_args__ = (
        db.CheckConstraint("servings > 0", name="ck_recipes_servings_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    servings = db.Column(db.Integer, nullable=False, default=1)
    prep_time_minutes = db.Column(db.Integer, nullable=True)
    cook_time_minutes = db.Column(db.Integer, nullable=True)
    instructions = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "RecipeItem",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeItem.id",
    )

    def __repr__(self) -> str:
        return f"<Recipe id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "servings": self.servings,
            "prep_time_minutes": self.prep_time_minutes,
            "cook_time_minutes": self.cook_time_minutes,
            "instructions": self.instructions,
            "is_active": self.is_active,
            "items": [item.to_dict() for item in self.items],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class RecipeItem(db.Model):
    """Ingredient line: quantity of a product (usually an INGREDIENT) per recipe."""
    __tablename__ = "recipe_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_recipe_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit = db.Column(db.String(16), nullable=True)

    recipe = db.relationship("Recipe", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit": self.unit,
        }


class Production(db.Model):
    """
    Production batch.

    LIFECYCLE: PLANNED -> IN_PROGRESS -> COMPLETED, with ON_HOLD and
    CANCELLED side exits (see lifecycle_service.PRODUCTION_TRANSITIONS).
    """
    __tablename__ = "productions"
    __table_args__ = (
        db.CheckConstraint("planned_qty > 0", name="ck_productions_planned_positive"),
        db.Index("ix_productions_status_planned", "status", "planned_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    batch_number = db.Column(db.String(32), nullable=False, unique=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id"), nullable=False, index=True)

    planned_qty = db.Column(db.Integer, nullable=False)
    actual_qty = db.Column(db.Integer, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="PLANNED")

    planned_date = db.Column(db.DateTime, nullable=False)
    start_date = db.Column(db.DateTime, nullable=True)
    end_date = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    recipe = db.relationship("Recipe", backref=db.backref("productions", lazy=True))
    items = db.relationship(
        "ProductionItem",
        back_populates="production",
        cascade="all, delete-orphan",
        order_by="ProductionItem.id",
    )

    def __repr__(self) -> str:
        return f"<Production id={self.id} batch={self.batch_number} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "batch_number": self.batch_number,
            "recipe_id": self.recipe_id,
            "recipe_name": self.recipe.name if self.recipe else None,
            "planned_qty": self.planned_qty,
            "actual_qty": self.actual_qty,
            "status": self.status,
            "planned_date": to_utc_z(self.planned_date),
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "notes": self.notes,
            "items": [item.to_dict() for item in self.items],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductionItem(db.Model):
    __tablename__ = "production_items"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    production_id = db.Column(
        db.Integer, db.ForeignKey("productions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    planned_qty = db.Column(db.Integer, nullable=False)
    actual_qty = db.Column(db.Integer, nullable=True)

    production = db.relationship("Production", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "planned_qty": self.planned_qty,
            "actual_qty": self.actual_qty,
        }
