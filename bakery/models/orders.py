from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


ORDER_STATUSES = (
    "PENDING",
    "CONFIRMED",
    "IN_PRODUCTION",
    "READY_FOR_DELIVERY",
    "OUT_FOR_DELIVERY",
    "DELIVERED",
    "CANCELLED",
    "RETURNED",
)
PAYMENT_STATUSES = ("PENDING", "PAID", "FAILED", "REFUNDED")
DELIVERY_STATUSES = ("SCHEDULED", "IN_TRANSIT", "DELIVERED", "FAILED", "RETURNED")


class Order(db.Model):
    """
    Customer order.

    LIFECYCLE: see lifecycle_service.ORDER_TRANSITIONS. Items are owned by the
    order and replaced wholesale on update.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_order_date", "status", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, unique=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    status = db.Column(db.String(24), nullable=False, default="PENDING")
    payment_status = db.Column(db.String(16), nullable=False, default="PENDING")

    order_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    delivery_date = db.Column(db.DateTime, nullable=True)
    delivered_at = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "customer": (
                {
                    "id": self.customer.id,
                    "name": self.customer.full_name,
                    "email": self.customer.email,
                    "customer_type": self.customer.customer_type,
                }
                if self.customer else None
            ),
            "status": self.status,
            "payment_status": self.payment_status,
            "order_date": to_utc_z(self.order_date),
            "delivery_date": to_utc_z(self.delivery_date),
            "delivered_at": to_utc_z(self.delivered_at),
            "notes": self.notes,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "items": [item.to_dict() for item in self.items],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
        }


class Delivery(db.Model):
    __tablename__ = "deliveries"
    __table_args__ = (
        db.Index("ix_deliveries_status_scheduled", "status", "scheduled_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    delivery_number = db.Column(db.String(32), nullable=False, unique=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="SCHEDULED")
    scheduled_date = db.Column(db.DateTime, nullable=False)
    actual_date = db.Column(db.DateTime, nullable=True)

    delivery_address = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(100), nullable=True)
    zip_code = db.Column(db.String(20), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    driver_name = db.Column(db.String(120), nullable=True)
    vehicle_number = db.Column(db.String(32), nullable=True)
    tracking_number = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    order = db.relationship("Order", backref=db.backref("deliveries", lazy=True))
    customer = db.relationship("Customer")

    def __repr__(self) -> str:
        return f"<Delivery id={self.id} number={self.delivery_number} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "delivery_number": self.delivery_number,
            "order_id": self.order_id,
            "order_number": self.order.order_number if self.order else None,
            "customer_id": self.customer_id,
            "customer_name": self.customer.full_name if self.customer else None,
            "status": self.status,
            "scheduled_date": to_utc_z(self.scheduled_date),
            "actual_date": to_utc_z(self.actual_date),
            "delivery_address": self.delivery_address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "phone": self.phone,
            "driver_name": self.driver_name,
            "vehicle_number": self.vehicle_number,
            "tracking_number": self.tracking_number,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
