# bakery/services/customer_service.py
"""
Customers and their delivery locations.

Email is the unique key (stored lowercased). At most one location per
customer is the default; marking a location default clears the flag on the
others in the same unit of work.
"""
from __future__ import annotations

import re

from ..errors import ConflictError, NotFound, ValidationError
from ..extensions import db
from ..models import Customer, CustomerLocation, Order, PosOrder, Delivery, CUSTOMER_TYPES
from ..validation import ModelValidationPolicy, validate_payload
from . import resource_service as rs
from .auth_service import normalize_email

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "email", "first_name", "last_name", "phone", "address", "city", "state", "zip_code",
        "customer_type", "is_active",
    },
    required_on_create={"email", "first_name", "last_name"},
    enums={"customer_type": CUSTOMER_TYPES},
)

LOCATION_POLICY = ModelValidationPolicy(
    writable_fields={"label", "address", "city", "state", "zip_code", "is_default"},
    required_on_create={"address", "city", "zip_code"},
)

PHONE_DIGITS_RE = re.compile(r"\D")


def _normalize(patch: dict) -> None:
    if "email" in patch:
        patch["email"] = normalize_email(patch["email"])


def list_customers(
    *,
    search: str | None = None,
    customer_type: str | None = None,
    is_active: bool | None = None,
    date_range: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> rs.Page:
    query = db.session.query(Customer)
    query = rs.apply_search(
        query,
        [Customer.first_name, Customer.last_name, Customer.email, Customer.phone],
        search,
    )
    query = rs.apply_enum_filter(query, Customer.customer_type, customer_type, CUSTOMER_TYPES, "customer_type")
    if is_active is not None:
        query = query.filter(Customer.is_active.is_(is_active))
    query = rs.apply_date_range(query, Customer.created_at, date_range)
    query = query.order_by(Customer.created_at.desc(), Customer.id.desc())
    return rs.paginate(query, page, limit)


def get_customer(customer_id: int) -> Customer:
    return rs.get_or_404(Customer, customer_id, "Customer")


def create_customer(payload: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    _normalize(patch)
    rs.ensure_unique(Customer, Customer.email, patch["email"], label="email")

    customer = Customer(**patch)
    db.session.add(customer)
    db.session.flush()
    return customer


def update_customer(customer_id: int, payload: dict) -> Customer:
    customer = get_customer(customer_id)
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    _normalize(patch)
    if "email" in patch:
        rs.ensure_unique(Customer, Customer.email, patch["email"], exclude_id=customer.id, label="email")
    rs.apply_patch(customer, patch)
    db.session.flush()
    return customer


def set_customer_active(customer_id: int, is_active) -> Customer:
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be a boolean", fields=["is_active"])
    customer = get_customer(customer_id)
    customer.is_active = is_active
    db.session.flush()
    return customer


def set_customer_type(customer_id: int, customer_type) -> Customer:
    if not isinstance(customer_type, str) or customer_type.upper() not in CUSTOMER_TYPES:
        raise ValidationError(f"customer_type must be one of: {', '.join(CUSTOMER_TYPES)}", fields=["customer_type"])
    customer = get_customer(customer_id)
    customer.customer_type = customer_type.upper()
    db.session.flush()
    return customer


def delete_customer(customer_id: int) -> None:
    customer = get_customer(customer_id)
    rs.ensure_no_dependents(
        db.session.query(Order.id).filter(Order.customer_id == customer.id),
        "Cannot delete customer with existing orders. Deactivate the customer instead.",
    )
    rs.ensure_no_dependents(
        db.session.query(PosOrder.id).filter(PosOrder.customer_id == customer.id),
        "Cannot delete customer with existing POS orders. Deactivate the customer instead.",
    )
    rs.ensure_no_dependents(
        db.session.query(Delivery.id).filter(Delivery.customer_id == customer.id),
        "Cannot delete customer with existing deliveries.",
    )
    db.session.delete(customer)
    db.session.flush()


# -- Locations --

def list_locations(customer_id: int) -> list[CustomerLocation]:
    customer = get_customer(customer_id)
    return list(customer.locations)


def _get_location(customer_id: int, location_id: int) -> CustomerLocation:
    location = (
        db.session.query(CustomerLocation)
        .filter_by(id=location_id, customer_id=customer_id)
        .first()
    )
    if location is None:
        raise NotFound("Address not found")
    return location


def _clear_default(customer: Customer, keep: CustomerLocation | None = None) -> None:
    for loc in customer.locations:
        if loc is not keep:
            loc.is_default = False


def add_location(customer_id: int, payload: dict) -> CustomerLocation:
    customer = get_customer(customer_id)
    patch = validate_payload(model=CustomerLocation, payload=payload, policy=LOCATION_POLICY, partial=False)
    location = CustomerLocation(customer=customer, **patch)
    # First address becomes the default automatically
    if not [loc for loc in customer.locations if loc is not location and loc.is_default]:
        location.is_default = True
    if location.is_default:
        _clear_default(customer, keep=location)
    db.session.add(location)
    db.session.flush()
    return location


def update_location(customer_id: int, location_id: int, payload: dict) -> CustomerLocation:
    location = _get_location(customer_id, location_id)
    patch = validate_payload(model=CustomerLocation, payload=payload, policy=LOCATION_POLICY, partial=True)
    rs.apply_patch(location, patch)
    if patch.get("is_default"):
        _clear_default(location.customer, keep=location)
    db.session.flush()
    return location


def delete_location(customer_id: int, location_id: int) -> None:
    location = _get_location(customer_id, location_id)
    customer = location.customer
    was_default = location.is_default
    customer.locations.remove(location)
    db.session.flush()
    if was_default and customer.locations:
        customer.locations[0].is_default = True
        db.session.flush()


# -- Self-registration (public) --

def register_customer(payload: dict) -> Customer:
    """
    Public sign-up: creates the customer plus a default delivery location,
    and a second (billing) location when it differs from shipping.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    required = ["customer_type", "name", "email", "phone", "address", "city", "zip_code"]
    missing = [f for f in required if not str(payload.get(f) or "").strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

    customer_type = str(payload["customer_type"]).strip().upper()
    if customer_type == "B2C":
        customer_type = "INDIVIDUAL"
    if customer_type not in CUSTOMER_TYPES:
        raise ValidationError(f"customer_type must be one of: {', '.join(CUSTOMER_TYPES)}")

    email = normalize_email(payload["email"])
    phone = str(payload["phone"]).strip()
    if len(PHONE_DIGITS_RE.sub("", phone)) != 10:
        raise ValidationError("Invalid phone number format", fields=["phone"])

    existing = (
        db.session.query(Customer.id)
        .filter((Customer.email == email) | (Customer.phone == phone))
        .first()
    )
    if existing is not None:
        raise ConflictError("Customer with this email or phone number already exists")

    name_parts = str(payload["name"]).strip().split()
    customer = Customer(
        first_name=name_parts[0],
        last_name=" ".join(name_parts[1:]),
        email=email,
        phone=phone,
        customer_type=customer_type,
        address=str(payload["address"]).strip(),
        city=str(payload["city"]).strip(),
        state=(payload.get("state") or None),
        zip_code=str(payload["zip_code"]).strip(),
        is_active=True,
    )
    db.session.add(customer)
    customer.locations.append(CustomerLocation(
        label="Shipping",
        address=customer.address,
        city=customer.city,
        state=customer.state,
        zip_code=customer.zip_code,
        is_default=True,
    ))

    same_as_shipping = payload.get("same_as_shipping", True)
    billing = {k: payload.get(f"billing_{k}") for k in ("address", "city", "zip_code")}
    if not same_as_shipping and all(billing.values()):
        customer.locations.append(CustomerLocation(label="Billing", is_default=False, **billing))

    db.session.flush()
    return customer
