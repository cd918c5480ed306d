# bakery/services/inventory_service.py
"""
Warehouse stock and its movement log.

WHY: Every quantity change on an Inventory row is paired with an
InventoryMovement row carrying the signed delta, so the log always explains
the current quantity:

    inventory.quantity == sum(m.quantity for m in inventory.movements)

RULES:
1. quantity >= 0 and 0 <= reserved_qty <= quantity, always
2. Only quantity - reserved_qty (available) may leave via transfer or sale
3. Mutations lock the rows they change (SELECT ... FOR UPDATE) and commit
   as a single transaction (concurrency.run_in_transaction)
"""
from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy import func

from ..errors import ConflictError, InsufficientStock, NotFound, ValidationError
from ..extensions import db
from ..models import Inventory, InventoryMovement, Product, Warehouse
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload, enforce_non_negative, require_int
from . import resource_service as rs
from .concurrency import lock_for_update, run_in_transaction

ADJUST_TYPES = ("add", "remove", "set")

INVENTORY_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id", "warehouse_id", "quantity", "reserved_qty", "location", "batch_number", "expiry_date",
    },
    required_on_create={"product_id", "warehouse_id", "quantity"},
)

INVENTORY_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"quantity", "reserved_qty", "location", "batch_number", "expiry_date"},
)


def _record_movement(
    inventory: Inventory,
    movement_type: str,
    delta: int,
    *,
    user_id: int | None = None,
    reason: str | None = None,
    notes: str | None = None,
    reference: str | None = None,
) -> InventoryMovement:
    movement = InventoryMovement(
        inventory=inventory,
        movement_type=movement_type,
        quantity=delta,
        reason=reason,
        notes=notes,
        reference=reference,
        user_id=user_id,
        occurred_at=utcnow(),
    )
    db.session.add(movement)
    return movement


def _check_reserved(quantity: int, reserved_qty: int) -> None:
    if reserved_qty < 0:
        raise ValidationError("reserved_qty must be >= 0")
    if reserved_qty > quantity:
        raise ValidationError("reserved_qty cannot exceed quantity")


def _lock_inventory(inventory_id: int) -> Inventory:
    inventory = lock_for_update(db.session.query(Inventory).filter(Inventory.id == inventory_id)).first()
    if inventory is None:
        raise NotFound("Inventory item not found")
    return inventory


def _lock_or_create(product_id: int, warehouse_id: int, **defaults) -> tuple[Inventory, bool]:
    inventory = lock_for_update(
        db.session.query(Inventory).filter_by(product_id=product_id, warehouse_id=warehouse_id)
    ).first()
    if inventory is not None:
        return inventory, False
    inventory = Inventory(product_id=product_id, warehouse_id=warehouse_id, quantity=0, reserved_qty=0, **defaults)
    db.session.add(inventory)
    db.session.flush()
    return inventory, True


# -- Queries --

def list_inventory(
    *,
    search: str | None = None,
    warehouse_id: int | None = None,
    product_id: int | None = None,
    low_stock: bool = False,
    expiring_within_days: int | None = None,
    page: int = 1,
    limit: int = 10,
) -> rs.Page:
    query = db.session.query(Inventory).join(Product, Product.id == Inventory.product_id)
    query = rs.apply_search(query, [Product.name, Product.sku, Inventory.batch_number, Inventory.location], search)
    if warehouse_id is not None:
        query = query.filter(Inventory.warehouse_id == warehouse_id)
    if product_id is not None:
        query = query.filter(Inventory.product_id == product_id)
    if low_stock:
        query = query.filter(Inventory.quantity < Product.min_stock_level)
    if expiring_within_days is not None:
        cutoff = utcnow() + timedelta(days=expiring_within_days)
        query = query.filter(Inventory.expiry_date.isnot(None), Inventory.expiry_date <= cutoff)
    query = query.order_by(Product.name.asc(), Inventory.id.asc())
    return rs.paginate(query, page, limit)


def get_inventory(inventory_id: int) -> Inventory:
    return rs.get_or_404(Inventory, inventory_id, "Inventory item")


def list_movements(inventory_id: int, *, page: int = 1, limit: int = 10) -> rs.Page:
    get_inventory(inventory_id)
    query = (
        db.session.query(InventoryMovement)
        .filter(InventoryMovement.inventory_id == inventory_id)
        .order_by(InventoryMovement.occurred_at.desc(), InventoryMovement.id.desc())
    )
    return rs.paginate(query, page, limit)


def total_quantity(product_id: int) -> int:
    return int(
        db.session.query(func.coalesce(func.sum(Inventory.quantity), 0))
        .filter(Inventory.product_id == product_id)
        .scalar()
    )


# -- Mutations --

def create_inventory(payload: dict, *, user_id: int | None = None) -> Inventory:
    """
    Add stock for a (product, warehouse) pair.

    If the pair already has a row the quantity is merged into it (the unique
    constraint allows only one); metadata fields overwrite when supplied.
    """
    patch = validate_payload(model=Inventory, payload=payload, policy=INVENTORY_POLICY, partial=False)
    enforce_non_negative(patch, "quantity", "reserved_qty")

    def _op() -> Inventory:
        rs.get_or_404(Product, patch["product_id"], "Product")
        warehouse = rs.get_or_404(Warehouse, patch["warehouse_id"], "Warehouse")
        if not warehouse.is_active:
            raise ValidationError("Warehouse is inactive")

        meta = {k: patch[k] for k in ("location", "batch_number", "expiry_date") if k in patch}
        inventory, _ = _lock_or_create(patch["product_id"], patch["warehouse_id"])
        for key, value in meta.items():
            setattr(inventory, key, value)

        inventory.quantity += patch["quantity"]
        if "reserved_qty" in patch:
            inventory.reserved_qty = patch["reserved_qty"]
        _check_reserved(inventory.quantity, inventory.reserved_qty)

        if patch["quantity"]:
            _record_movement(inventory, "STOCK_IN", patch["quantity"], user_id=user_id, reason="Initial stock")
        db.session.flush()
        return inventory

    inventory = run_in_transaction(_op)
    current_app.logger.info(
        "Stock in: inventory=%s product=%s warehouse=%s +%s",
        inventory.id, inventory.product_id, inventory.warehouse_id, patch["quantity"],
    )
    return inventory


def update_inventory(inventory_id: int, payload: dict, *, user_id: int | None = None) -> Inventory:
    """Edit metadata; a quantity change is logged as a SET movement with the delta."""
    patch = validate_payload(model=Inventory, payload=payload, policy=INVENTORY_UPDATE_POLICY, partial=True)
    enforce_non_negative(patch, "quantity", "reserved_qty")

    def _op() -> Inventory:
        inventory = _lock_inventory(inventory_id)
        old_qty = inventory.quantity
        new_qty = patch.get("quantity", old_qty)
        _check_reserved(new_qty, patch.get("reserved_qty", inventory.reserved_qty))
        rs.apply_patch(inventory, patch)
        if new_qty != old_qty:
            _record_movement(inventory, "SET", new_qty - old_qty, user_id=user_id, reason="Inventory record updated")
        db.session.flush()
        return inventory

    return run_in_transaction(_op)


def adjust_inventory(
    inventory_id: int,
    *,
    adjust_type,
    quantity,
    reason: str | None = None,
    notes: str | None = None,
    user_id: int | None = None,
) -> tuple[Inventory, InventoryMovement]:
    """
    add:    quantity += n
    remove: quantity -= n, floored at reserved_qty (never negative)
    set:    quantity = n (must stay >= reserved_qty)

    The movement carries the applied signed delta and the type in upper case.
    """
    if not isinstance(adjust_type, str) or adjust_type.lower() not in ADJUST_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(ADJUST_TYPES)}", fields=["type"])
    adjust_type = adjust_type.lower()
    amount = require_int(quantity, "quantity", minimum=0 if adjust_type == "set" else 1)

    def _op():
        inventory = _lock_inventory(inventory_id)
        old_qty = inventory.quantity
        if adjust_type == "add":
            new_qty = old_qty + amount
        elif adjust_type == "remove":
            new_qty = max(inventory.reserved_qty, old_qty - amount)
        else:
            if amount < inventory.reserved_qty:
                raise ValidationError(
                    f"Cannot set quantity below reserved quantity ({inventory.reserved_qty})"
                )
            new_qty = amount

        inventory.quantity = new_qty
        movement = _record_movement(
            inventory, adjust_type.upper(), new_qty - old_qty,
            user_id=user_id, reason=reason or f"Stock {adjust_type}", notes=notes,
        )
        db.session.flush()
        return inventory, movement

    inventory, movement = run_in_transaction(_op)
    current_app.logger.info(
        "Inventory adjusted: inventory=%s type=%s delta=%s by user=%s",
        inventory.id, movement.movement_type, movement.quantity, user_id,
    )
    return inventory, movement


def transfer_stock(
    inventory_id: int,
    *,
    to_warehouse_id,
    quantity,
    reason: str | None = None,
    notes: str | None = None,
    user_id: int | None = None,
) -> tuple[Inventory, Inventory]:
    """
    Move available stock from one inventory row to the same product in
    another warehouse.

    All four writes (source decrement, destination increment, TRANSFER_OUT,
    TRANSFER_IN) commit together or not at all. The source row is locked
    before availability is read, so concurrent transfers from the same row
    serialize and cannot oversell.

    Raises:
        NotFound: source row or destination warehouse missing
        ValidationError: bad quantity, inactive or same warehouse
        InsufficientStock: quantity > available (nothing is written)
    """
    amount = require_int(quantity, "quantity", minimum=1)
    destination_id = require_int(to_warehouse_id, "to_warehouse_id")

    def _op() -> tuple[Inventory, Inventory]:
        source = _lock_inventory(inventory_id)

        destination_wh = db.session.get(Warehouse, destination_id)
        if destination_wh is None:
            raise NotFound("Destination warehouse not found")
        if not destination_wh.is_active:
            raise ValidationError("Destination warehouse is inactive")
        if destination_wh.id == source.warehouse_id:
            raise ValidationError("Cannot transfer to the same warehouse")

        available = source.available_qty
        if available < amount:
            raise InsufficientStock(available=available, requested=amount)

        destination, created = _lock_or_create(
            source.product_id,
            destination_wh.id,
            batch_number=source.batch_number,
            expiry_date=source.expiry_date,
        )

        source.quantity -= amount
        destination.quantity += amount

        text = reason or f"Transfer to {destination_wh.name}"
        _record_movement(source, "TRANSFER_OUT", -amount, user_id=user_id, reason=text, notes=notes)
        _record_movement(
            destination, "TRANSFER_IN", amount,
            user_id=user_id, reason=reason or "Transfer in", notes=notes,
            reference=f"inventory:{source.id}",
        )
        db.session.flush()
        return source, destination

    source, destination = run_in_transaction(_op)
    current_app.logger.info(
        "Stock transfer: product=%s qty=%s from inventory=%s (wh %s) to inventory=%s (wh %s) by user=%s",
        source.product_id, amount, source.id, source.warehouse_id,
        destination.id, destination.warehouse_id, user_id,
    )
    return source, destination


def receive_stock(
    *,
    product_id: int,
    warehouse_id: int,
    quantity: int,
    user_id: int | None = None,
    reference: str | None = None,
) -> Inventory:
    """Add received goods to a warehouse. Caller owns the transaction."""
    warehouse = rs.get_or_404(Warehouse, warehouse_id, "Warehouse")
    if not warehouse.is_active:
        raise ValidationError("Warehouse is inactive")
    inventory, _ = _lock_or_create(product_id, warehouse_id)
    inventory.quantity += quantity
    _record_movement(
        inventory, "PURCHASE_RECEIPT", quantity,
        user_id=user_id, reason="Purchase order receipt", reference=reference,
    )
    db.session.flush()
    return inventory


def deduct_for_sale(*, product_id: int, quantity: int, user_id: int | None, reference: str) -> None:
    """
    Draw sold units from the warehouses holding the most available stock.

    Caller owns the transaction. Raises InsufficientStock if all warehouses
    together cannot cover the quantity.
    """
    rows = (
        lock_for_update(db.session.query(Inventory).filter(Inventory.product_id == product_id))
        .order_by((Inventory.quantity - Inventory.reserved_qty).desc(), Inventory.id.asc())
        .all()
    )
    available = sum(row.available_qty for row in rows)
    if available < quantity:
        raise InsufficientStock(available=available, requested=quantity)

    remaining = quantity
    for row in rows:
        if remaining == 0:
            break
        take = min(row.available_qty, remaining)
        if take <= 0:
            continue
        row.quantity -= take
        remaining -= take
        _record_movement(row, "POS_SALE", -take, user_id=user_id, reason="POS sale", reference=reference)
    db.session.flush()


def delete_inventory(inventory_id: int) -> None:
    """Delete the row and its movement log. Reserved stock blocks deletion."""
    inventory = get_inventory(inventory_id)
    if inventory.reserved_qty:
        raise ConflictError("Cannot delete inventory with reserved stock")
    db.session.delete(inventory)
    db.session.flush()
