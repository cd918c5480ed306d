# bakery/services/delivery_service.py
from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import Customer, Delivery, Order, DELIVERY_STATUSES
from ..validation import ModelValidationPolicy, validate_payload
from . import lifecycle_service
from . import resource_service as rs
from .document_service import next_document_number

DELIVERY_POLICY = ModelValidationPolicy(
    writable_fields={
        "order_id", "scheduled_date", "delivery_address", "city", "state", "zip_code", "phone",
        "driver_name", "vehicle_number", "tracking_number", "notes",
    },
    required_on_create={"order_id", "scheduled_date", "delivery_address"},
)


def list_deliveries(
    *,
    search: str | None = None,
    status: str | None = None,
    city: str | None = None,
    order_id: int | None = None,
    date_range: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> rs.Page:
    query = (
        db.session.query(Delivery)
        .join(Order, Order.id == Delivery.order_id)
        .join(Customer, Customer.id == Delivery.customer_id)
    )
    query = rs.apply_search(
        query,
        [
            Delivery.delivery_number, Delivery.tracking_number, Delivery.driver_name,
            Order.order_number, Customer.first_name, Customer.last_name,
        ],
        search,
    )
    query = rs.apply_enum_filter(query, Delivery.status, status, DELIVERY_STATUSES, "status")
    if city:
        query = query.filter(Delivery.city.ilike(city.strip()))
    if order_id is not None:
        query = query.filter(Delivery.order_id == order_id)
    query = rs.apply_date_range(query, Delivery.scheduled_date, date_range)
    query = query.order_by(Delivery.scheduled_date.desc(), Delivery.id.desc())
    return rs.paginate(query, page, limit)


def get_delivery(delivery_id: int) -> Delivery:
    return rs.get_or_404(Delivery, delivery_id, "Delivery")


def create_delivery(payload: dict) -> Delivery:
    payload = dict(payload or {})
    status = payload.pop("status", None)
    patch = validate_payload(model=Delivery, payload=payload, policy=DELIVERY_POLICY, partial=False)
    order = rs.get_or_404(Order, patch["order_id"], "Order")
    if order.status in {"CANCELLED", "RETURNED"}:
        raise ValidationError(f"Cannot schedule a delivery for an order in {order.status} status")

    delivery = Delivery(
        delivery_number=next_document_number("DELIVERY"),
        customer_id=order.customer_id,
        status="SCHEDULED",
        **patch,
    )
    if delivery.phone is None and order.customer is not None:
        delivery.phone = order.customer.phone
    db.session.add(delivery)
    if status is not None:
        lifecycle_service.transition("delivery", delivery, status)
    db.session.flush()
    return delivery


def update_delivery(delivery_id: int, payload: dict) -> Delivery:
    payload = dict(payload or {})
    status = payload.pop("status", None)
    delivery = get_delivery(delivery_id)
    patch = validate_payload(model=Delivery, payload=payload, policy=DELIVERY_POLICY, partial=True)
    if "order_id" in patch and patch["order_id"] != delivery.order_id:
        order = rs.get_or_404(Order, patch["order_id"], "Order")
        patch["customer_id"] = order.customer_id
    rs.apply_patch(delivery, patch)
    if status is not None:
        lifecycle_service.transition("delivery", delivery, status)
    db.session.flush()
    return delivery


def set_delivery_status(delivery_id: int, status, *, notes: str | None = None) -> Delivery:
    delivery = get_delivery(delivery_id)
    previous = lifecycle_service.transition("delivery", delivery, status)
    if notes:
        delivery.notes = notes
    db.session.flush()
    current_app.logger.info("Delivery %s status %s -> %s", delivery.delivery_number, previous, delivery.status)
    return delivery


def delete_delivery(delivery_id: int) -> None:
    delivery = get_delivery(delivery_id)
    if delivery.status == "DELIVERED":
        raise ConflictError("Cannot delete a delivered delivery")
    db.session.delete(delivery)
    db.session.flush()
