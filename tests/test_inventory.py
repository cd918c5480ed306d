"""
Inventory and warehouse tests.

Verifies:
- Every quantity change writes a movement; the log sums to the quantity
- Adjust add/remove/set semantics, with reserved stock as the floor
- Transfer conserves the product total and writes both movements
- Transfer beyond available stock is 400 and writes nothing
- A failure partway through a transfer leaves no partial effect
- Integer query args are validated, not silently defaulted
- Warehouse delete is refused while stock exists, allowed once it is gone
"""

from datetime import timedelta

import pytest

from bakery.models import Inventory, InventoryMovement, Warehouse
from bakery.models.inventory import ImmutableMovementError
from bakery.services import inventory_service
from bakery.time_utils import utcnow


def movement_total(session, inventory_id: int) -> int:
    return sum(
        m.quantity
        for m in session.query(InventoryMovement).filter_by(inventory_id=inventory_id)
    )


def product_total(session, product_id: int) -> int:
    return sum(row.quantity for row in session.query(Inventory).filter_by(product_id=product_id))


# =============================================================================
# STOCK IN
# =============================================================================


class TestCreateInventory:

    def test_create_records_stock_in(self, client, db_session, manager_headers, product, warehouse):
        resp = client.post(
            "/api/inventory",
            headers=manager_headers,
            json={"product_id": product.id, "warehouse_id": warehouse.id, "quantity": 30, "batch_number": "B-1"},
        )
        assert resp.status_code == 201
        inv = resp.get_json()["inventory"]
        assert inv["quantity"] == 30
        assert inv["available_qty"] == 30
        assert inv["product"]["sku"] == "BRD-001"

        movements = db_session.query(InventoryMovement).filter_by(inventory_id=inv["id"]).all()
        assert [(m.movement_type, m.quantity) for m in movements] == [("STOCK_IN", 30)]

    def test_create_merges_into_existing_row(self, client, db_session, manager_headers, stock, product, warehouse):
        resp = client.post(
            "/api/inventory",
            headers=manager_headers,
            json={"product_id": product.id, "warehouse_id": warehouse.id, "quantity": 5},
        )
        assert resp.status_code == 201
        assert resp.get_json()["inventory"]["id"] == stock.id
        assert db_session.query(Inventory).count() == 1
        db_session.refresh(stock)
        assert stock.quantity == 55
        assert movement_total(db_session, stock.id) == 55

    def test_inactive_warehouse_rejected(self, client, db_session, manager_headers, product, warehouse):
        warehouse.is_active = False
        db_session.commit()
        resp = client.post(
            "/api/inventory",
            headers=manager_headers,
            json={"product_id": product.id, "warehouse_id": warehouse.id, "quantity": 5},
        )
        assert resp.status_code == 400

    def test_reserved_cannot_exceed_quantity(self, client, manager_headers, product, warehouse):
        resp = client.post(
            "/api/inventory",
            headers=manager_headers,
            json={"product_id": product.id, "warehouse_id": warehouse.id, "quantity": 5, "reserved_qty": 6},
        )
        assert resp.status_code == 400

    def test_negative_quantity_rejected(self, client, manager_headers, product, warehouse):
        resp = client.post(
            "/api/inventory",
            headers=manager_headers,
            json={"product_id": product.id, "warehouse_id": warehouse.id, "quantity": -1},
        )
        assert resp.status_code == 400


# =============================================================================
# ADJUST
# =============================================================================


class TestAdjust:

    def adjust(self, client, headers, inventory_id, **body):
        return client.post(f"/api/inventory/{inventory_id}/adjust", headers=headers, json=body)

    def test_add(self, client, db_session, manager_headers, stock):
        resp = self.adjust(client, manager_headers, stock.id, type="add", quantity=7, reason="Fresh bake")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["inventory"]["quantity"] == 57
        assert body["movement"]["movement_type"] == "ADD"
        assert body["movement"]["quantity"] == 7
        assert movement_total(db_session, stock.id) == 57

    def test_remove_floors_at_reserved(self, client, db_session, manager_headers, stock):
        stock.reserved_qty = 10
        db_session.commit()
        resp = self.adjust(client, manager_headers, stock.id, type="remove", quantity=100)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["inventory"]["quantity"] == 10
        assert body["movement"]["quantity"] == -40

    def test_set(self, client, db_session, manager_headers, stock):
        resp = self.adjust(client, manager_headers, stock.id, type="SET", quantity=12)
        assert resp.status_code == 200
        assert resp.get_json()["movement"]["quantity"] == -38
        assert movement_total(db_session, stock.id) == 12

    def test_set_below_reserved(self, client, db_session, manager_headers, stock):
        stock.reserved_qty = 20
        db_session.commit()
        resp = self.adjust(client, manager_headers, stock.id, type="set", quantity=5)
        assert resp.status_code == 400
        db_session.refresh(stock)
        assert stock.quantity == 50

    @pytest.mark.parametrize("body", [
        {"type": "multiply", "quantity": 2},
        {"type": "add", "quantity": 0},
        {"type": "add", "quantity": 2.5},
        {"type": "add"},
    ])
    def test_invalid_adjustments(self, client, manager_headers, stock, body):
        resp = self.adjust(client, manager_headers, stock.id, **body)
        assert resp.status_code == 400

    def test_movement_log_endpoint(self, client, manager_headers, stock):
        self.adjust(client, manager_headers, stock.id, type="add", quantity=1)
        body = client.get(f"/api/inventory/{stock.id}/movements", headers=manager_headers).get_json()
        assert body["pagination"]["total"] == 2
        assert {m["movement_type"] for m in body["movements"]} == {"STOCK_IN", "ADD"}

    def test_update_quantity_logs_set(self, client, db_session, manager_headers, stock):
        resp = client.put(f"/api/inventory/{stock.id}", headers=manager_headers, json={"quantity": 45})
        assert resp.status_code == 200
        assert movement_total(db_session, stock.id) == 45


# =============================================================================
# TRANSFER
# =============================================================================


class TestTransfer:

    def transfer(self, client, headers, inventory_id, **body):
        return client.post(f"/api/inventory/{inventory_id}/transfer", headers=headers, json=body)

    def test_transfer_conserves_total(self, client, db_session, manager_headers, stock, second_warehouse, product):
        resp = self.transfer(client, manager_headers, stock.id, to_warehouse_id=second_warehouse.id, quantity=20)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["source"]["quantity"] == 30
        assert body["destination"]["quantity"] == 20
        assert body["destination"]["warehouse_id"] == second_warehouse.id

        assert product_total(db_session, product.id) == 50
        destination_id = body["destination"]["id"]
        out = db_session.query(InventoryMovement).filter_by(inventory_id=stock.id, movement_type="TRANSFER_OUT").one()
        into = db_session.query(InventoryMovement).filter_by(inventory_id=destination_id, movement_type="TRANSFER_IN").one()
        assert out.quantity == -20
        assert into.quantity == 20
        assert movement_total(db_session, stock.id) == 30
        assert movement_total(db_session, destination_id) == 20

    def test_transfer_into_existing_row(self, client, db_session, manager_headers, stock, second_warehouse, product):
        existing = inventory_service.create_inventory(
            {"product_id": product.id, "warehouse_id": second_warehouse.id, "quantity": 4}
        )
        resp = self.transfer(client, manager_headers, stock.id, to_warehouse_id=second_warehouse.id, quantity=6)
        assert resp.status_code == 200
        assert resp.get_json()["destination"]["id"] == existing.id
        assert resp.get_json()["destination"]["quantity"] == 10

    def test_insufficient_stock_writes_nothing(self, client, db_session, manager_headers, stock, second_warehouse):
        stock.reserved_qty = 45
        db_session.commit()
        before = db_session.query(InventoryMovement).count()

        resp = self.transfer(client, manager_headers, stock.id, to_warehouse_id=second_warehouse.id, quantity=6)
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["available"] == 5
        assert body["requested"] == 6

        db_session.refresh(stock)
        assert stock.quantity == 50
        assert db_session.query(Inventory).count() == 1
        assert db_session.query(InventoryMovement).count() == before

    def test_same_warehouse(self, client, manager_headers, stock, warehouse):
        resp = self.transfer(client, manager_headers, stock.id, to_warehouse_id=warehouse.id, quantity=1)
        assert resp.status_code == 400

    def test_missing_destination(self, client, manager_headers, stock):
        resp = self.transfer(client, manager_headers, stock.id, to_warehouse_id=9999, quantity=1)
        assert resp.status_code == 404

    def test_inactive_destination(self, client, db_session, manager_headers, stock, second_warehouse):
        second_warehouse.is_active = False
        db_session.commit()
        resp = self.transfer(client, manager_headers, stock.id, to_warehouse_id=second_warehouse.id, quantity=1)
        assert resp.status_code == 400

    @pytest.mark.parametrize("quantity", [0, -3, "ten", None])
    def test_bad_quantity(self, client, manager_headers, stock, second_warehouse, quantity):
        resp = self.transfer(client, manager_headers, stock.id, to_warehouse_id=second_warehouse.id, quantity=quantity)
        assert resp.status_code == 400

    def test_failure_after_source_decrement_rolls_back(
        self, client, db_session, manager_headers, stock, second_warehouse, product, monkeypatch
    ):
        real_record = inventory_service._record_movement
        calls = []

        def record_then_fail(*args, **kwargs):
            calls.append(args[1])
            if len(calls) == 2:
                raise RuntimeError("movement log unavailable")
            return real_record(*args, **kwargs)

        monkeypatch.setattr(inventory_service, "_record_movement", record_then_fail)
        movements_before = db_session.query(InventoryMovement).count()

        resp = self.transfer(client, manager_headers, stock.id, to_warehouse_id=second_warehouse.id, quantity=10)
        assert resp.status_code == 500
        assert resp.get_json() == {"message": "Internal server error"}
        assert calls == ["TRANSFER_OUT", "TRANSFER_IN"]

        db_session.expire_all()
        assert db_session.get(Inventory, stock.id).quantity == 50
        assert db_session.query(Inventory).count() == 1
        assert db_session.query(InventoryMovement).count() == movements_before
        assert product_total(db_session, product.id) == 50

    def test_non_object_body(self, client, manager_headers, stock):
        resp = client.post(f"/api/inventory/{stock.id}/transfer", headers=manager_headers, json=[1])
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Invalid JSON payload"


# =============================================================================
# DELETE
# =============================================================================


class TestDeletion:

    def test_movements_are_append_only(self, db_session, stock):
        movement = db_session.query(InventoryMovement).filter_by(inventory_id=stock.id).first()
        movement.quantity = 999
        with pytest.raises(ImmutableMovementError):
            db_session.flush()
        db_session.rollback()

    def test_delete_inventory_removes_its_log(self, client, db_session, admin_headers, stock):
        resp = client.delete(f"/api/inventory/{stock.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.query(InventoryMovement).count() == 0

    def test_delete_inventory_with_reserved_stock(self, client, db_session, admin_headers, stock):
        stock.reserved_qty = 1
        db_session.commit()
        resp = client.delete(f"/api/inventory/{stock.id}", headers=admin_headers)
        assert resp.status_code == 409

    def test_warehouse_delete_conflict_then_success(self, client, db_session, admin_headers, stock, warehouse):
        resp = client.delete(f"/api/warehouses/{warehouse.id}", headers=admin_headers)
        assert resp.status_code == 409
        assert resp.get_json()["message"].startswith("Cannot delete warehouse with existing inventory")
        assert db_session.get(Warehouse, warehouse.id) is not None

        assert client.delete(f"/api/inventory/{stock.id}", headers=admin_headers).status_code == 200
        resp = client.delete(f"/api/warehouses/{warehouse.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.get(Warehouse, warehouse.id) is None


class TestWarehouses:

    def test_create_and_list(self, client, manager_headers):
        resp = client.post("/api/warehouses", headers=manager_headers, json={"name": "Cold Store", "capacity": 200})
        assert resp.status_code == 201
        body = client.get("/api/warehouses", headers=manager_headers).get_json()
        assert [w["name"] for w in body["warehouses"]] == ["Cold Store"]

    def test_name_required(self, client, manager_headers):
        resp = client.post("/api/warehouses", headers=manager_headers, json={"capacity": 200})
        assert resp.status_code == 400


class TestListing:

    @pytest.fixture
    def expiring_stock(self, db_session, product, warehouse):
        return inventory_service.create_inventory({
            "product_id": product.id,
            "warehouse_id": warehouse.id,
            "quantity": 12,
            "expiry_date": (utcnow() + timedelta(days=3)).isoformat(),
        })

    def test_expiring_window(self, client, manager_headers, expiring_stock):
        body = client.get("/api/inventory?expiring=true", headers=manager_headers).get_json()
        assert [row["id"] for row in body["inventory"]] == [expiring_stock.id]

        body = client.get("/api/inventory?expiring=true&days=1", headers=manager_headers).get_json()
        assert body["inventory"] == []

    @pytest.mark.parametrize("query", ["expiring=true&days=abc", "expiring=true&days=-1", "warehouse_id=main"])
    def test_bad_integer_args(self, client, manager_headers, db_session, query):
        resp = client.get(f"/api/inventory?{query}", headers=manager_headers)
        assert resp.status_code == 400
