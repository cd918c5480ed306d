from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


PRODUCT_CATEGORIES = ("BREAD", "PASTRY", "CAKE", "COOKIE", "BEVERAGE", "INGREDIENT", "OTHER")
UNIT_TYPES = ("PIECE", "KG", "GRAM", "LITER", "ML", "DOZEN", "BOX")


class Product(db.Model):
    """
    Product master data.

    SKU is globally unique. Prices are authoritative in cents; the API never
    stores floats. Stock thresholds drive the low-stock filters and reports.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_active", "category", "is_active"),
        db.CheckConstraint("min_stock_level >= 0", name="ck_products_min_stock_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    barcode = db.Column(db.String(64), nullable=True, index=True)

    category = db.Column(db.String(16), nullable=False, default="OTHER")
    unit_type = db.Column(db.String(16), nullable=False, default="PIECE")

    base_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=True)
    cost_price_cents = db.Column(db.Integer, nullable=True)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    min_stock_level = db.Column(db.Integer, nullable=False, default=0)
    max_stock_level = db.Column(db.Integer, nullable=True)
    shelf_life_days = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r}>"

    @property
    def effective_price_cents(self) -> int:
        if self.selling_price_cents is not None:
            return self.selling_price_cents
        return self.base_price_cents or 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "barcode": self.barcode,
            "category": self.category,
            "unit_type": self.unit_type,
            "base_price_cents": self.base_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "cost_price_cents": self.cost_price_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "min_stock_level": self.min_stock_level,
            "max_stock_level": self.max_stock_level,
            "shelf_life_days": self.shelf_life_days,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "unit_type": self.unit_type,
            "price_cents": self.effective_price_cents,
        }
