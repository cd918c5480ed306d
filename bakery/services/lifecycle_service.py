# Overview: Status transition tables and the one validator every status change goes through.

"""
Status lifecycles

Each stateful entity has an explicit table: current status -> statuses it may
move to. Asking for the current status again is always allowed (a no-op
edit). Terminal statuses have no other outgoing edge.

ORDER:
    PENDING -> CONFIRMED -> IN_PRODUCTION -> READY_FOR_DELIVERY
            -> OUT_FOR_DELIVERY -> DELIVERED
    Forward skips are allowed; any open order may be CANCELLED;
    only an order out for delivery may be RETURNED.

DELIVERY:
    SCHEDULED -> IN_TRANSIT -> DELIVERED
    FAILED deliveries may be rescheduled; RETURNED closes them.

PRODUCTION:
    PLANNED -> IN_PROGRESS -> COMPLETED, with ON_HOLD and CANCELLED exits.
"""

from __future__ import annotations

from ..errors import InvalidTransition, ValidationError
from ..models import (
    ORDER_STATUSES,
    DELIVERY_STATUSES,
    PRODUCTION_STATUSES,
    PURCHASE_ORDER_STATUSES,
    NOTIFICATION_STATUSES,
    POS_ORDER_STATUSES,
)
from ..time_utils import utcnow


ORDER_TRANSITIONS: dict[str, frozenset[str]] = {
    "PENDING": frozenset({
        "CONFIRMED", "IN_PRODUCTION", "READY_FOR_DELIVERY", "OUT_FOR_DELIVERY", "DELIVERED", "CANCELLED",
    }),
    "CONFIRMED": frozenset({
        "IN_PRODUCTION", "READY_FOR_DELIVERY", "OUT_FOR_DELIVERY", "DELIVERED", "CANCELLED",
    }),
    "IN_PRODUCTION": frozenset({"READY_FOR_DELIVERY", "OUT_FOR_DELIVERY", "DELIVERED", "CANCELLED"}),
    "READY_FOR_DELIVERY": frozenset({"OUT_FOR_DELIVERY", "DELIVERED", "CANCELLED"}),
    "OUT_FOR_DELIVERY": frozenset({"DELIVERED", "RETURNED", "CANCELLED"}),
    "DELIVERED": frozenset(),
    "CANCELLED": frozenset(),
    "RETURNED": frozenset(),
}

DELIVERY_TRANSITIONS: dict[str, frozenset[str]] = {
    "SCHEDULED": frozenset({"IN_TRANSIT", "DELIVERED", "FAILED", "RETURNED"}),
    "IN_TRANSIT": frozenset({"DELIVERED", "FAILED", "RETURNED"}),
    "FAILED": frozenset({"SCHEDULED", "IN_TRANSIT", "RETURNED"}),
    "DELIVERED": frozenset(),
    "RETURNED": frozenset(),
}

PRODUCTION_TRANSITIONS: dict[str, frozenset[str]] = {
    "PLANNED": frozenset({"IN_PROGRESS", "ON_HOLD", "CANCELLED"}),
    "IN_PROGRESS": frozenset({"COMPLETED", "ON_HOLD", "CANCELLED"}),
    "ON_HOLD": frozenset({"IN_PROGRESS", "CANCELLED"}),
    "COMPLETED": frozenset(),
    "CANCELLED": frozenset(),
}

PURCHASE_ORDER_TRANSITIONS: dict[str, frozenset[str]] = {
    "DRAFT": frozenset({"SENT", "CANCELLED"}),
    "SENT": frozenset({"CONFIRMED", "CANCELLED"}),
    "CONFIRMED": frozenset({"PARTIALLY_RECEIVED", "RECEIVED", "CANCELLED"}),
    "PARTIALLY_RECEIVED": frozenset({"RECEIVED"}),
    "RECEIVED": frozenset(),
    "CANCELLED": frozenset(),
}

NOTIFICATION_TRANSITIONS: dict[str, frozenset[str]] = {
    "PENDING": frozenset({"SENT", "FAILED"}),
    "FAILED": frozenset({"PENDING", "SENT"}),
    "SENT": frozenset(),
}

POS_ORDER_TRANSITIONS: dict[str, frozenset[str]] = {
    "IN_PROGRESS": frozenset({"COMPLETED", "CANCELLED"}),
    "COMPLETED": frozenset({"REFUNDED"}),
    "CANCELLED": frozenset(),
    "REFUNDED": frozenset(),
}

TRANSITION_TABLES: dict[str, tuple[tuple[str, ...], dict[str, frozenset[str]]]] = {
    "order": (ORDER_STATUSES, ORDER_TRANSITIONS),
    "delivery": (DELIVERY_STATUSES, DELIVERY_TRANSITIONS),
    "production": (PRODUCTION_STATUSES, PRODUCTION_TRANSITIONS),
    "purchase_order": (PURCHASE_ORDER_STATUSES, PURCHASE_ORDER_TRANSITIONS),
    "notification": (NOTIFICATION_STATUSES, NOTIFICATION_TRANSITIONS),
    "pos_order": (POS_ORDER_STATUSES, POS_ORDER_TRANSITIONS),
}


def allowed_next(entity: str, current: str) -> frozenset[str]:
    _, table = TRANSITION_TABLES[entity]
    return table.get(current, frozenset())


def is_terminal(entity: str, status: str) -> bool:
    return not allowed_next(entity, status)


def normalize_status(entity: str, requested) -> str:
    statuses, _ = TRANSITION_TABLES[entity]
    if not isinstance(requested, str) or not requested.strip():
        raise ValidationError("status is required", fields=["status"])
    value = requested.strip().upper()
    if value not in statuses:
        raise ValidationError(f"status must be one of: {', '.join(statuses)}", fields=["status"])
    return value


def validate_transition(entity: str, current: str, requested) -> str:
    """
    Return the normalized requested status, or raise.

    ValidationError: requested is not a status of this entity.
    InvalidTransition: requested is not adjacent to current.
    """
    target = normalize_status(entity, requested)
    if target == current:
        return target
    if target not in allowed_next(entity, current):
        raise InvalidTransition(entity, current, target)
    return target


def apply_status_side_effects(entity: str, obj, new_status: str, *, actual_qty: int | None = None) -> None:
    """Timestamps and quantities stamped when a status is entered."""
    now = utcnow()
    if entity == "order" and new_status == "DELIVERED" and obj.delivered_at is None:
        obj.delivered_at = now
    elif entity == "delivery" and new_status == "DELIVERED" and obj.actual_date is None:
        obj.actual_date = now
    elif entity == "production":
        if new_status == "IN_PROGRESS" and obj.start_date is None:
            obj.start_date = now
        elif new_status == "COMPLETED":
            obj.end_date = obj.end_date or now
            if actual_qty is not None:
                obj.actual_qty = actual_qty
    elif entity == "purchase_order" and new_status == "RECEIVED" and obj.received_date is None:
        obj.received_date = now
    elif entity == "notification" and new_status == "SENT" and obj.sent_at is None:
        obj.sent_at = now


def transition(entity: str, obj, requested, **side_effect_args) -> str:
    """Validate, assign, and stamp side effects. Returns the previous status."""
    previous = obj.status
    target = validate_transition(entity, previous, requested)
    obj.status = target
    if target != previous:
        apply_status_side_effects(entity, obj, target, **side_effect_args)
    return previous
