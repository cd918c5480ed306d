"""
Supplier and purchase order tests.

Verifies:
- Supplier email is unique and normalized
- Purchase orders take the PO sequence and total their lines
- Lines can only be replaced while DRAFT
- Receiving adds stock with a PURCHASE_RECEIPT movement and advances status
- Over-receipt and receipt before confirmation are refused
"""

import pytest

from bakery.models import Inventory, InventoryMovement, PurchaseOrder, Supplier


@pytest.fixture
def supplier(client, manager_headers):
    resp = client.post("/api/suppliers", headers=manager_headers, json={
        "name": "Mill & Grain Co",
        "email": "Sales@MillGrain.example",
        "contact_person": "Ana Ruiz",
        "payment_terms": "NET30",
    })
    assert resp.status_code == 201
    return resp.get_json()["supplier"]


@pytest.fixture
def purchase_order(client, manager_headers, supplier, product, taxed_product):
    resp = client.post("/api/purchase-orders", headers=manager_headers, json={
        "supplier_id": supplier["id"],
        "items": [
            {"product_id": product.id, "quantity": 10, "unit_price_cents": 200},
            {"product_id": taxed_product.id, "quantity": 2, "unit_price_cents": 900},
        ],
    })
    assert resp.status_code == 201
    return resp.get_json()["purchase_order"]


def set_status(client, headers, po_id, status):
    return client.patch(f"/api/purchase-orders/{po_id}/status", headers=headers, json={"status": status})


def confirm(client, headers, po_id):
    assert set_status(client, headers, po_id, "SENT").status_code == 200
    assert set_status(client, headers, po_id, "CONFIRMED").status_code == 200


def receive(client, headers, item_id, quantity, warehouse_id):
    return client.post(
        f"/api/purchase-orders/items/{item_id}/receive",
        headers=headers,
        json={"quantity": quantity, "warehouse_id": warehouse_id},
    )


class TestSuppliers:

    def test_email_normalized(self, supplier):
        assert supplier["email"] == "sales@millgrain.example"

    def test_duplicate_email(self, client, db_session, manager_headers, supplier):
        resp = client.post("/api/suppliers", headers=manager_headers, json={
            "name": "Other Mill", "email": "SALES@millgrain.example",
        })
        assert resp.status_code == 409
        assert resp.get_json()["field"] == "email"
        assert db_session.query(Supplier).count() == 1

    def test_name_and_email_required(self, client, manager_headers):
        resp = client.post("/api/suppliers", headers=manager_headers, json={"contact_person": "x"})
        assert resp.status_code == 400
        assert resp.get_json()["fields"] == ["email", "name"]

    def test_list_and_search(self, client, manager_headers, supplier):
        body = client.get("/api/suppliers?search=mill", headers=manager_headers).get_json()
        assert [s["id"] for s in body["suppliers"]] == [supplier["id"]]

    def test_inactive_supplier_cannot_take_orders(self, client, manager_headers, supplier, product):
        resp = client.patch(
            f"/api/suppliers/{supplier['id']}/status", headers=manager_headers, json={"is_active": False}
        )
        assert resp.status_code == 200
        resp = client.post("/api/purchase-orders", headers=manager_headers, json={
            "supplier_id": supplier["id"],
            "items": [{"product_id": product.id, "quantity": 1, "unit_price_cents": 1}],
        })
        assert resp.status_code == 400

    def test_supplier_with_orders_cannot_be_deleted(self, client, admin_headers, supplier, purchase_order):
        resp = client.delete(f"/api/suppliers/{supplier['id']}", headers=admin_headers)
        assert resp.status_code == 409


class TestPurchaseOrders:

    def test_create(self, purchase_order, supplier):
        assert purchase_order["po_number"] == "PO-000001"
        assert purchase_order["status"] == "DRAFT"
        assert purchase_order["supplier_name"] == supplier["name"]
        assert purchase_order["total_cents"] == 10 * 200 + 2 * 900
        assert [i["outstanding_qty"] for i in purchase_order["items"]] == [10, 2]

    @pytest.mark.parametrize("line", [
        {"quantity": 0, "unit_price_cents": 1},
        {"quantity": 1},
        {"quantity": 1, "unit_price_cents": -5},
    ])
    def test_bad_lines(self, client, db_session, manager_headers, supplier, product, line):
        resp = client.post("/api/purchase-orders", headers=manager_headers, json={
            "supplier_id": supplier["id"], "items": [{"product_id": product.id, **line}],
        })
        assert resp.status_code == 400
        assert db_session.query(PurchaseOrder).count() == 0

    def test_replace_items_while_draft(self, client, manager_headers, purchase_order, product):
        resp = client.put(f"/api/purchase-orders/{purchase_order['id']}", headers=manager_headers, json={
            "items": [{"product_id": product.id, "quantity": 3, "unit_price_cents": 250}],
        })
        assert resp.status_code == 200
        assert resp.get_json()["purchase_order"]["total_cents"] == 750

    def test_items_locked_after_sending(self, client, manager_headers, purchase_order, product):
        set_status(client, manager_headers, purchase_order["id"], "SENT")
        resp = client.put(f"/api/purchase-orders/{purchase_order['id']}", headers=manager_headers, json={
            "items": [{"product_id": product.id, "quantity": 3, "unit_price_cents": 250}],
        })
        assert resp.status_code == 409

    def test_cannot_confirm_a_draft(self, client, manager_headers, purchase_order):
        resp = set_status(client, manager_headers, purchase_order["id"], "CONFIRMED")
        assert resp.status_code == 409
        assert resp.get_json()["currentStatus"] == "DRAFT"

    def test_only_draft_or_cancelled_can_be_deleted(self, client, manager_headers, admin_headers, purchase_order):
        set_status(client, manager_headers, purchase_order["id"], "SENT")
        assert client.delete(f"/api/purchase-orders/{purchase_order['id']}", headers=admin_headers).status_code == 409
        set_status(client, manager_headers, purchase_order["id"], "CANCELLED")
        assert client.delete(f"/api/purchase-orders/{purchase_order['id']}", headers=admin_headers).status_code == 200


class TestReceiving:

    def test_partial_then_full_receipt(self, client, db_session, manager_headers, purchase_order, warehouse, product):
        confirm(client, manager_headers, purchase_order["id"])
        bread_line, cake_line = purchase_order["items"]

        resp = receive(client, manager_headers, bread_line["id"], 4, warehouse.id)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["item"]["received_qty"] == 4
        assert body["item"]["outstanding_qty"] == 6
        assert body["purchase_order"]["status"] == "PARTIALLY_RECEIVED"

        inventory = db_session.query(Inventory).filter_by(product_id=product.id, warehouse_id=warehouse.id).one()
        assert inventory.quantity == 4
        movement = db_session.query(InventoryMovement).filter_by(inventory_id=inventory.id).one()
        assert movement.movement_type == "PURCHASE_RECEIPT"
        assert movement.reference == "PO-000001"

        receive(client, manager_headers, bread_line["id"], 6, warehouse.id)
        resp = receive(client, manager_headers, cake_line["id"], 2, warehouse.id)
        body = resp.get_json()["purchase_order"]
        assert body["status"] == "RECEIVED"
        assert body["received_date"] is not None
        db_session.refresh(inventory)
        assert inventory.quantity == 10

    def test_over_receipt(self, client, db_session, manager_headers, purchase_order, warehouse):
        confirm(client, manager_headers, purchase_order["id"])
        line = purchase_order["items"][1]
        resp = receive(client, manager_headers, line["id"], 3, warehouse.id)
        assert resp.status_code == 400
        assert db_session.query(Inventory).count() == 0

    def test_receipt_before_confirmation(self, client, db_session, manager_headers, purchase_order, warehouse):
        resp = receive(client, manager_headers, purchase_order["items"][0]["id"], 1, warehouse.id)
        assert resp.status_code == 409
        assert db_session.query(InventoryMovement).count() == 0

    def test_receipt_into_inactive_warehouse(self, client, db_session, manager_headers, purchase_order, warehouse):
        confirm(client, manager_headers, purchase_order["id"])
        warehouse.is_active = False
        db_session.commit()
        resp = receive(client, manager_headers, purchase_order["items"][0]["id"], 1, warehouse.id)
        assert resp.status_code == 400
        item_id = purchase_order["items"][0]["id"]
        po = db_session.get(PurchaseOrder, purchase_order["id"])
        db_session.refresh(po)
        assert po.status == "CONFIRMED"
        assert next(i for i in po.items if i.id == item_id).received_qty == 0

    def test_unknown_item(self, client, manager_headers, warehouse, db_session):
        assert receive(client, manager_headers, 99999, 1, warehouse.id).status_code == 404

    def test_cashier_cannot_receive(self, client, cashier_headers, purchase_order, warehouse):
        resp = receive(client, cashier_headers, purchase_order["items"][0]["id"], 1, warehouse.id)
        assert resp.status_code == 403
