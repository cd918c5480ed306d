from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


MOVEMENT_TYPES = (
    "STOCK_IN",
    "ADD",
    "REMOVE",
    "SET",
    "TRANSFER_OUT",
    "TRANSFER_IN",
    "PURCHASE_RECEIPT",
    "POS_SALE",
)


class Warehouse(db.Model):
    __tablename__ = "warehouses"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    location = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(100), nullable=True)
    zip_code = db.Column(db.String(20), nullable=True)
    capacity = db.Column(db.Integer, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Warehouse id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "capacity": self.capacity,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Inventory(db.Model):
    """
    Stock of one product in one warehouse.

    INVARIANTS (enforced by check constraints and by inventory_service):
    - one row per (product, warehouse)
    - quantity >= 0
    - 0 <= reserved_qty <= quantity

    available = quantity - reserved_qty is what transfers and sales may draw on.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse_id", name="uq_inventory_product_warehouse"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_nonneg"),
        db.CheckConstraint(
            "reserved_qty >= 0 AND reserved_qty <= quantity",
            name="ck_inventory_reserved_bounds",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    reserved_qty = db.Column(db.Integer, nullable=False, default=0)

    location = db.Column(db.String(64), nullable=True)
    batch_number = db.Column(db.String(64), nullable=True)
    expiry_date = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    product = db.relationship("Product", backref=db.backref("inventory_items", lazy=True))
    warehouse = db.relationship("Warehouse", backref=db.backref("inventory_items", lazy=True))
    movements = db.relationship(
        "InventoryMovement",
        back_populates="inventory",
        cascade="all, delete-orphan",
        order_by="InventoryMovement.id",
    )

    def __repr__(self) -> str:
        return (
            f"<Inventory id={self.id} product_id={self.product_id} "
            f"warehouse_id={self.warehouse_id} qty={self.quantity} reserved={self.reserved_qty}>"
        )

    @property
    def available_qty(self) -> int:
        return (self.quantity or 0) - (self.reserved_qty or 0)

    def to_dict(self, include_relations: bool = True) -> dict:
        data = {
            "id": self.id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "quantity": self.quantity,
            "reserved_qty": self.reserved_qty,
            "available_qty": self.available_qty,
            "location": self.location,
            "batch_number": self.batch_number,
            "expiry_date": to_utc_z(self.expiry_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_relations:
            data["product"] = (
                {"id": self.product.id, "sku": self.product.sku, "name": self.product.name}
                if self.product else None
            )
            data["warehouse"] = (
                {"id": self.warehouse.id, "name": self.warehouse.name}
                if self.warehouse else None
            )
        return data


class InventoryMovement(db.Model):
    """
    Append-only stock log.

    quantity is signed: TRANSFER_OUT and REMOVE are negative. Rows are never
    updated; they are removed only together with their inventory record.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.Index("ix_inventory_movements_inventory_occurred", "inventory_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(
        db.Integer, db.ForeignKey("inventory.id", ondelete="CASCADE"), nullable=False, index=True
    )
    movement_type = db.Column(db.String(32), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    reference = db.Column(db.String(64), nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    occurred_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    inventory = db.relationship("Inventory", back_populates="movements")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "reason": self.reason,
            "notes": self.notes,
            "reference": self.reference,
            "user_id": self.user_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class ImmutableMovementError(RuntimeError):
    pass


@event.listens_for(InventoryMovement, "before_update")
def _reject_movement_update(mapper, connection, target):
    raise ImmutableMovementError(f"Inventory movement {target.id} is append-only")
