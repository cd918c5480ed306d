# bakery/services/purchasing_service.py
"""
Suppliers and purchase orders.

LIFECYCLE (purchase orders): DRAFT -> SENT -> CONFIRMED -> PARTIALLY_RECEIVED
-> RECEIVED, CANCELLED from any open state. Lines can be replaced only while
DRAFT. Receiving a line adds stock to a warehouse and advances the PO to
PARTIALLY_RECEIVED or RECEIVED.
"""
from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFound, ValidationError
from ..extensions import db
from ..models import Product, PurchaseOrder, PurchaseOrderItem, Supplier, PURCHASE_ORDER_STATUSES
from ..validation import ModelValidationPolicy, validate_payload, enforce_money, require_int, require_items
from . import lifecycle_service
from . import resource_service as rs
from .auth_service import normalize_email
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_document_number
from .inventory_service import receive_stock

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "contact_person", "email", "phone", "address", "city", "state", "zip_code",
        "payment_terms", "is_active",
    },
    required_on_create={"name", "email"},
)

PURCHASE_ORDER_POLICY = ModelValidationPolicy(
    writable_fields={"supplier_id", "expected_date", "notes", "order_date"},
    required_on_create={"supplier_id"},
)

DELETABLE_PO_STATUSES = {"DRAFT", "CANCELLED"}


# -- Suppliers --

def list_suppliers(
    *,
    search: str | None = None,
    is_active: bool | None = None,
    page: int = 1,
    limit: int = 10,
) -> rs.Page:
    query = db.session.query(Supplier)
    query = rs.apply_search(query, [Supplier.name, Supplier.contact_person, Supplier.email], search)
    if is_active is not None:
        query = query.filter(Supplier.is_active.is_(is_active))
    return rs.paginate(query.order_by(Supplier.name.asc(), Supplier.id.asc()), page, limit)


def get_supplier(supplier_id: int) -> Supplier:
    return rs.get_or_404(Supplier, supplier_id, "Supplier")


def create_supplier(payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
    patch["email"] = normalize_email(patch["email"])
    rs.ensure_unique(Supplier, Supplier.email, patch["email"], label="email")
    supplier = Supplier(**patch)
    db.session.add(supplier)
    db.session.flush()
    return supplier


def update_supplier(supplier_id: int, payload: dict) -> Supplier:
    supplier = get_supplier(supplier_id)
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
    if "email" in patch:
        patch["email"] = normalize_email(patch["email"])
        rs.ensure_unique(Supplier, Supplier.email, patch["email"], exclude_id=supplier.id, label="email")
    rs.apply_patch(supplier, patch)
    db.session.flush()
    return supplier


def set_supplier_active(supplier_id: int, is_active) -> Supplier:
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be a boolean", fields=["is_active"])
    supplier = get_supplier(supplier_id)
    supplier.is_active = is_active
    db.session.flush()
    return supplier


def delete_supplier(supplier_id: int) -> None:
    supplier = get_supplier(supplier_id)
    rs.ensure_no_dependents(
        db.session.query(PurchaseOrder.id).filter(PurchaseOrder.supplier_id == supplier.id),
        "Cannot delete supplier with existing purchase orders. Deactivate the supplier instead.",
    )
    db.session.delete(supplier)
    db.session.flush()


# -- Purchase orders --

def _build_items(raw_items: list[dict]) -> list[PurchaseOrderItem]:
    items = []
    for index, raw in enumerate(raw_items, start=1):
        product_id = require_int(raw.get("product_id"), f"items[{index}].product_id")
        if db.session.get(Product, product_id) is None:
            raise NotFound(f"Product {product_id} not found")
        quantity = require_int(raw.get("quantity"), f"items[{index}].quantity", minimum=1)
        unit_price = require_int(raw.get("unit_price_cents"), f"items[{index}].unit_price_cents", minimum=0)
        enforce_money({"unit_price_cents": unit_price}, "unit_price_cents")
        items.append(PurchaseOrderItem(
            product_id=product_id,
            quantity=quantity,
            unit_price_cents=unit_price,
            total_price_cents=quantity * unit_price,
            received_qty=0,
        ))
    return items


def _recalculate_total(po: PurchaseOrder) -> None:
    po.total_cents = sum(item.total_price_cents for item in po.items)


def list_purchase_orders(
    *,
    search: str | None = None,
    status: str | None = None,
    supplier_id: int | None = None,
    date_range: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> rs.Page:
    query = db.session.query(PurchaseOrder).join(Supplier, Supplier.id == PurchaseOrder.supplier_id)
    query = rs.apply_search(query, [PurchaseOrder.po_number, Supplier.name], search)
    query = rs.apply_enum_filter(query, PurchaseOrder.status, status, PURCHASE_ORDER_STATUSES, "status")
    if supplier_id is not None:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)
    query = rs.apply_date_range(query, PurchaseOrder.order_date, date_range)
    query = query.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc())
    return rs.paginate(query, page, limit)


def get_purchase_order(po_id: int) -> PurchaseOrder:
    return rs.get_or_404(PurchaseOrder, po_id, "Purchase order")


def create_purchase_order(payload: dict, *, user_id: int | None = None) -> PurchaseOrder:
    payload = dict(payload or {})
    raw_items = require_items(payload)
    payload.pop("items")
    patch = validate_payload(model=PurchaseOrder, payload=payload, policy=PURCHASE_ORDER_POLICY, partial=False)

    supplier = get_supplier(patch["supplier_id"])
    if not supplier.is_active:
        raise ValidationError("Supplier is inactive")

    po = PurchaseOrder(
        po_number=next_document_number("PURCHASE_ORDER"),
        status="DRAFT",
        created_by_user_id=user_id,
        **patch,
    )
    po.items = _build_items(raw_items)
    _recalculate_total(po)
    db.session.add(po)
    db.session.flush()
    return po


def update_purchase_order(po_id: int, payload: dict) -> PurchaseOrder:
    payload = dict(payload or {})
    raw_items = payload.pop("items", None)
    status = payload.pop("status", None)
    po = get_purchase_order(po_id)
    patch = validate_payload(model=PurchaseOrder, payload=payload, policy=PURCHASE_ORDER_POLICY, partial=True)
    if "supplier_id" in patch:
        get_supplier(patch["supplier_id"])
    rs.apply_patch(po, patch)

    if raw_items is not None:
        if po.status != "DRAFT":
            raise ConflictError(f"Cannot change items of a purchase order in {po.status} status")
        rs.replace_children(po, "items", _build_items(require_items({"items": raw_items})))
        _recalculate_total(po)

    if status is not None:
        lifecycle_service.transition("purchase_order", po, status)

    db.session.flush()
    return po


def set_purchase_order_status(po_id: int, status) -> PurchaseOrder:
    po = get_purchase_order(po_id)
    previous = lifecycle_service.transition("purchase_order", po, status)
    db.session.flush()
    current_app.logger.info("Purchase order %s status %s -> %s", po.po_number, previous, po.status)
    return po


def receive_item(item_id: int, *, quantity, warehouse_id, user_id: int | None = None) -> PurchaseOrderItem:
    """
    Receive part or all of a PO line into a warehouse, as one transaction.

    Only CONFIRMED or PARTIALLY_RECEIVED purchase orders accept receipts.
    """
    amount = require_int(quantity, "quantity", minimum=1)
    target_warehouse = require_int(warehouse_id, "warehouse_id")

    def _op() -> PurchaseOrderItem:
        item = lock_for_update(
            db.session.query(PurchaseOrderItem).filter(PurchaseOrderItem.id == item_id)
        ).first()
        if item is None:
            raise NotFound("Purchase order item not found")
        po = lock_for_update(db.session.query(PurchaseOrder).filter(PurchaseOrder.id == item.purchase_order_id)).first()
        if po.status not in {"CONFIRMED", "PARTIALLY_RECEIVED"}:
            raise ConflictError(f"Cannot receive items for a purchase order in {po.status} status")
        if amount > item.outstanding_qty:
            raise ValidationError(f"Cannot receive {amount}; only {item.outstanding_qty} outstanding")

        item.received_qty += amount
        receive_stock(
            product_id=item.product_id,
            warehouse_id=target_warehouse,
            quantity=amount,
            user_id=user_id,
            reference=po.po_number,
        )

        fully_received = all(line.outstanding_qty == 0 for line in po.items)
        lifecycle_service.transition("purchase_order", po, "RECEIVED" if fully_received else "PARTIALLY_RECEIVED")
        db.session.flush()
        return item

    return run_in_transaction(_op)


def delete_purchase_order(po_id: int) -> None:
    po = get_purchase_order(po_id)
    if po.status not in DELETABLE_PO_STATUSES:
        raise ConflictError(f"Cannot delete a purchase order in {po.status} status")
    db.session.delete(po)
    db.session.flush()
