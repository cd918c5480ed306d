# bakery/services/notification_service.py
"""
Outbound notifications and message templates.

Sending through an SMS/email provider is not done here: a notification row
is created PENDING and an operator (or an external worker) moves it to SENT
or FAILED through set_notification_status.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import Notification, Order, NOTIFICATION_STATUSES, NOTIFICATION_TYPES
from ..validation import ModelValidationPolicy, validate_payload, require_items
from . import lifecycle_service
from . import resource_service as rs

NOTIFICATION_POLICY = ModelValidationPolicy(
    writable_fields={"type", "recipient", "subject", "message"},
    required_on_create={"type", "recipient", "message"},
    enums={"type": NOTIFICATION_TYPES},
)


@dataclass(frozen=True)
class NotificationTemplate:
    id: str
    name: str
    type: str
    message: str
    subject: str | None = None
    variables: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "subject": self.subject,
            "message": self.message,
            "variables": list(self.variables),
        }


NOTIFICATION_TEMPLATES: tuple[NotificationTemplate, ...] = (
    NotificationTemplate(
        id="order_confirmation",
        name="Order Confirmation",
        type="SMS",
        message=(
            "Hi {customerName}, your order {orderNumber} has been confirmed. "
            "Total: {totalAmount}. Delivery scheduled for {deliveryDate}. Thank you!"
        ),
        variables=("customerName", "orderNumber", "totalAmount", "deliveryDate"),
    ),
    NotificationTemplate(
        id="order_confirmation_email",
        name="Order Confirmation Email",
        type="EMAIL",
        subject="Order Confirmation - {orderNumber}",
        message=(
            "Dear {customerName},\n\nYour order {orderNumber} has been confirmed.\n\n"
            "Order Details:\nTotal Amount: {totalAmount}\nDelivery Date: {deliveryDate}\n\n"
            "Thank you for choosing us!\n\nBest regards,\nBakery Team"
        ),
        variables=("customerName", "orderNumber", "totalAmount", "deliveryDate"),
    ),
    NotificationTemplate(
        id="delivery_ready",
        name="Delivery Ready",
        type="SMS",
        message=(
            "Hi {customerName}, your order {orderNumber} is ready for delivery. "
            "Driver: {driverName}, Vehicle: {vehicleNumber}. Expected delivery time: {expectedTime}."
        ),
        variables=("customerName", "orderNumber", "driverName", "vehicleNumber", "expectedTime"),
    ),
    NotificationTemplate(
        id="delivery_out",
        name="Out for Delivery",
        type="SMS",
        message="Hi {customerName}, your order {orderNumber} is out for delivery. Track your order: {trackingLink}.",
        variables=("customerName", "orderNumber", "trackingLink"),
    ),
    NotificationTemplate(
        id="delivery_delivered",
        name="Delivery Completed",
        type="SMS",
        message=(
            "Hi {customerName}, your order {orderNumber} has been delivered successfully. "
            "Thank you for your business!"
        ),
        variables=("customerName", "orderNumber"),
    ),
    NotificationTemplate(
        id="delivery_failed",
        name="Delivery Failed",
        type="SMS",
        message=(
            "Hi {customerName}, we were unable to deliver your order {orderNumber}. "
            "Reason: {reason}. Please contact us to reschedule."
        ),
        variables=("customerName", "orderNumber", "reason"),
    ),
    NotificationTemplate(
        id="payment_reminder",
        name="Payment Reminder",
        type="SMS",
        message=(
            "Hi {customerName}, payment for order {orderNumber} is pending. Amount: {amount}. "
            "Please complete payment to confirm your order."
        ),
        variables=("customerName", "orderNumber", "amount"),
    ),
    NotificationTemplate(
        id="promotional_offer",
        name="Promotional Offer",
        type="SMS",
        message=(
            "Hi {customerName}, special offer just for you! {offerDescription}. "
            "Valid until {validUntil}. Use code: {promoCode}"
        ),
        variables=("customerName", "offerDescription", "validUntil", "promoCode"),
    ),
)

_TEMPLATES_BY_ID = {template.id: template for template in NOTIFICATION_TEMPLATES}


class _KeepMissing(dict):
    def __missing__(self, key):
        return "{" + key + "}"


def get_template(template_id: str) -> NotificationTemplate:
    template = _TEMPLATES_BY_ID.get(template_id)
    if template is None:
        raise NotFound("Notification template not found")
    return template


def render_template(template: NotificationTemplate, variables: dict | None) -> dict:
    """Substitute {name} placeholders; ones without a value are left as-is."""
    if variables is not None and not isinstance(variables, dict):
        raise ValidationError("variables must be an object")
    values = _KeepMissing({k: str(v) for k, v in (variables or {}).items() if v not in (None, "")})
    return {
        "type": template.type,
        "subject": template.subject.format_map(values) if template.subject else None,
        "message": template.message.format_map(values),
    }


def order_variables(order: Order) -> dict:
    customer = order.customer
    return {
        "customerName": customer.first_name if customer else "",
        "orderNumber": order.order_number,
        "totalAmount": f"{(order.total_cents or 0) / 100:.2f}",
        "amount": f"{(order.total_cents or 0) / 100:.2f}",
        "deliveryDate": order.delivery_date.strftime("%Y-%m-%d") if order.delivery_date else "TBD",
    }


# -- CRUD --

def list_notifications(
    *,
    search: str | None = None,
    type: str | None = None,
    status: str | None = None,
    recipient: str | None = None,
    date_range: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> rs.Page:
    query = db.session.query(Notification)
    query = rs.apply_search(
        query, [Notification.recipient, Notification.subject, Notification.message], search
    )
    query = rs.apply_enum_filter(query, Notification.type, type, NOTIFICATION_TYPES, "type")
    query = rs.apply_enum_filter(query, Notification.status, status, NOTIFICATION_STATUSES, "status")
    if recipient:
        query = query.filter(Notification.recipient == recipient.strip())
    query = rs.apply_date_range(query, Notification.created_at, date_range)
    query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
    return rs.paginate(query, page, limit)


def get_notification(notification_id: int) -> Notification:
    return rs.get_or_404(Notification, notification_id, "Notification")


def create_notification(payload: dict) -> Notification:
    payload = dict(payload or {})
    template_id = payload.pop("template_id", None)
    variables = payload.pop("variables", None)
    if template_id:
        rendered = render_template(get_template(template_id), variables)
        for key, value in rendered.items():
            payload.setdefault(key, value)

    patch = validate_payload(model=Notification, payload=payload, policy=NOTIFICATION_POLICY, partial=False)
    notification = Notification(status="PENDING", **patch)
    db.session.add(notification)
    db.session.flush()
    return notification


def bulk_create_notifications(payloads) -> list[Notification]:
    """All-or-nothing: the first invalid entry aborts the batch with its index."""
    payloads = require_items({"notifications": payloads}, key="notifications")
    created = []
    for index, payload in enumerate(payloads, start=1):
        try:
            created.append(create_notification(payload))
        except ValidationError as exc:
            raise ValidationError(f"notifications[{index}]: {exc.message}", index=index) from exc
    return created


def update_notification(notification_id: int, payload: dict) -> Notification:
    payload = dict(payload or {})
    status = payload.pop("status", None)
    notification = get_notification(notification_id)
    patch = validate_payload(model=Notification, payload=payload, policy=NOTIFICATION_POLICY, partial=True)
    rs.apply_patch(notification, patch)
    if status is not None:
        lifecycle_service.transition("notification", notification, status)
    db.session.flush()
    return notification


def set_notification_status(notification_id: int, status, *, error_message: str | None = None) -> Notification:
    notification = get_notification(notification_id)
    previous = lifecycle_service.transition("notification", notification, status)
    notification.error_message = error_message if notification.status == "FAILED" else None
    db.session.flush()
    current_app.logger.info(
        "Notification %s status %s -> %s", notification.id, previous, notification.status
    )
    return notification


def delete_notification(notification_id: int) -> None:
    notification = get_notification(notification_id)
    db.session.delete(notification)
    db.session.flush()


def notify_order(order_id: int, template_id: str, *, recipient: str | None = None, extra: dict | None = None) -> Notification:
    """Render an order-related template for the order's customer and queue it."""
    order = rs.get_or_404(Order, order_id, "Order")
    template = get_template(template_id)
    variables = order_variables(order)
    variables.update(extra or {})
    if recipient is None and order.customer is not None:
        recipient = order.customer.email if template.type == "EMAIL" else (order.customer.phone or order.customer.email)
    if not recipient:
        raise ValidationError("Customer has no contact details for this notification type")
    rendered = render_template(template, variables)
    return create_notification({**rendered, "recipient": recipient})
