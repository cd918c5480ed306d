from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


POS_ORDER_STATUSES = ("IN_PROGRESS", "COMPLETED", "CANCELLED", "REFUNDED")
PAYMENT_METHODS = ("CASH", "CARD", "UPI", "WALLET")
RECEIPT_TYPES = ("RECEIPT", "INVOICE")


class PosSession(db.Model):
    """
    Cashier shift.

    A cashier has at most one active session; starting a new one closes the
    previous. Totals are computed when the session ends.
    """
    __tablename__ = "pos_sessions"
    __table_args__ = (
        db.Index("ix_pos_sessions_cashier_active", "cashier_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    start_time = db.Column(db.DateTime, nullable=False, default=utcnow)
    end_time = db.Column(db.DateTime, nullable=True)
    starting_cash_cents = db.Column(db.Integer, nullable=False, default=0)
    ending_cash_cents = db.Column(db.Integer, nullable=True)
    total_sales_cents = db.Column(db.Integer, nullable=False, default=0)
    total_transactions = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)

    cashier = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cashier_id": self.cashier_id,
            "cashier_name": self.cashier.full_name if self.cashier else None,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time),
            "starting_cash_cents": self.starting_cash_cents,
            "ending_cash_cents": self.ending_cash_cents,
            "total_sales_cents": self.total_sales_cents,
            "total_transactions": self.total_transactions,
            "is_active": self.is_active,
            "notes": self.notes,
        }


class PosOrder(db.Model):
    __tablename__ = "pos_orders"
    __table_args__ = (
        db.Index("ix_pos_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, unique=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="IN_PROGRESS")

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    is_offline = db.Column(db.Boolean, nullable=False, default=False)
    synced_at = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer")
    cashier = db.relationship("User")
    items = db.relationship(
        "PosOrderItem", back_populates="order", cascade="all, delete-orphan", order_by="PosOrderItem.id"
    )
    payments = db.relationship(
        "PosPayment", back_populates="order", cascade="all, delete-orphan", order_by="PosPayment.id"
    )
    receipts = db.relationship(
        "PosReceipt", back_populates="order", cascade="all, delete-orphan", order_by="PosReceipt.id"
    )

    def __repr__(self) -> str:
        return f"<PosOrder id={self.id} number={self.order_number} status={self.status}>"

    def to_dict(self, include_children: bool = True) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "cashier_id": self.cashier_id,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "change_cents": self.change_cents,
            "is_offline": self.is_offline,
            "synced_at": to_utc_z(self.synced_at),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_children:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [payment.to_dict() for payment in self.payments]
            data["receipts"] = [receipt.to_dict() for receipt in self.receipts]
        return data


class PosOrderItem(db.Model):
    __tablename__ = "pos_order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_pos_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("pos_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_price_cents = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.String(255), nullable=True)

    order = db.relationship("PosOrder", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "total_price_cents": self.total_price_cents,
            "notes": self.notes,
        }


class PosPayment(db.Model):
    __tablename__ = "pos_payments"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("pos_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    method = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    reference = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="PAID")
    notes = db.Column(db.String(255), nullable=True)
    processed_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    order = db.relationship("PosOrder", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "reference": self.reference,
            "status": self.status,
            "notes": self.notes,
            "processed_at": to_utc_z(self.processed_at),
        }


class PosReceipt(db.Model):
    __tablename__ = "pos_receipts"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("pos_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    receipt_number = db.Column(db.String(32), nullable=False, unique=True)
    type = db.Column(db.String(16), nullable=False, default="RECEIPT")
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    order = db.relationship("PosOrder", back_populates="receipts")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "receipt_number": self.receipt_number,
            "type": self.type,
            "content": self.content,
            "created_at": to_utc_z(self.created_at),
        }
