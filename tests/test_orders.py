"""
Customer order and delivery tests.

Verifies:
- Order numbers come from the ORD sequence
- Totals derive from lines and per-product tax
- Status changes follow the order table; terminal statuses are 409
- Deliveries take the DEL sequence, inherit the customer and stamp actual_date
- Orders with deliveries cannot be deleted
"""

import pytest

from bakery.models import Order


def create_order(client, headers, customer, items, **extra):
    return client.post(
        "/api/orders",
        headers=headers,
        json={"customer_id": customer.id, "items": items, **extra},
    )


class TestCreateOrder:

    def test_totals_and_number(self, client, manager_headers, customer, product, taxed_product):
        resp = create_order(client, manager_headers, customer, [
            {"product_id": product.id, "quantity": 4},
            {"product_id": taxed_product.id, "quantity": 1},
        ])
        assert resp.status_code == 201
        order = resp.get_json()["order"]
        assert order["order_number"] == "ORD-000001"
        assert order["status"] == "PENDING"
        assert order["subtotal_cents"] == 4 * 500 + 2000
        assert order["tax_cents"] == 200
        assert order["total_cents"] == 4200
        assert order["customer"]["email"] == customer.email
        assert [i["unit_price_cents"] for i in order["items"]] == [500, 2000]

    def test_numbers_increase(self, client, manager_headers, customer, product):
        numbers = [
            create_order(client, manager_headers, customer, [{"product_id": product.id, "quantity": 1}])
            .get_json()["order"]["order_number"]
            for _ in range(3)
        ]
        assert numbers == ["ORD-000001", "ORD-000002", "ORD-000003"]

    def test_explicit_unit_price(self, client, manager_headers, customer, product):
        resp = create_order(client, manager_headers, customer, [
            {"product_id": product.id, "quantity": 2, "unit_price_cents": 450},
        ])
        assert resp.get_json()["order"]["subtotal_cents"] == 900

    def test_initial_status(self, client, manager_headers, customer, product):
        resp = create_order(
            client, manager_headers, customer, [{"product_id": product.id, "quantity": 1}], status="CONFIRMED"
        )
        assert resp.get_json()["order"]["status"] == "CONFIRMED"

    @pytest.mark.parametrize("line", [
        {"quantity": None},
        {"quantity": 0},
        {"quantity": 1.5},
        {"quantity": 1, "unit_price_cents": -1},
    ])
    def test_bad_line(self, client, db_session, manager_headers, customer, product, line):
        resp = create_order(client, manager_headers, customer, [{"product_id": product.id, **line}])
        assert resp.status_code == 400
        assert db_session.query(Order).count() == 0

    @pytest.mark.parametrize("items", [[], "bread", ["bread"]])
    def test_bad_items(self, client, manager_headers, customer, items):
        resp = create_order(client, manager_headers, customer, items)
        assert resp.status_code == 400

    def test_unknown_product(self, client, db_session, manager_headers, customer):
        resp = create_order(client, manager_headers, customer, [{"product_id": 999, "quantity": 1}])
        assert resp.status_code == 404
        assert db_session.query(Order).count() == 0

    def test_inactive_customer(self, client, db_session, manager_headers, customer, product):
        customer.is_active = False
        db_session.commit()
        resp = create_order(client, manager_headers, customer, [{"product_id": product.id, "quantity": 1}])
        assert resp.status_code == 400


class TestOrderStatus:

    @pytest.fixture
    def order(self, client, manager_headers, customer, product):
        resp = create_order(client, manager_headers, customer, [{"product_id": product.id, "quantity": 2}])
        return resp.get_json()["order"]

    def set_status(self, client, headers, order_id, status):
        return client.patch(f"/api/orders/{order_id}/status", headers=headers, json={"status": status})

    def test_happy_path(self, client, manager_headers, order):
        for status in ("CONFIRMED", "IN_PRODUCTION", "READY_FOR_DELIVERY", "OUT_FOR_DELIVERY", "DELIVERED"):
            resp = self.set_status(client, manager_headers, order["id"], status)
            assert resp.status_code == 200, status
        body = resp.get_json()["order"]
        assert body["status"] == "DELIVERED"
        assert body["delivered_at"] is not None

    def test_terminal_is_conflict(self, client, db_session, manager_headers, order):
        assert self.set_status(client, manager_headers, order["id"], "CANCELLED").status_code == 200
        resp = self.set_status(client, manager_headers, order["id"], "CONFIRMED")
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["currentStatus"] == "CANCELLED"
        assert body["requestedStatus"] == "CONFIRMED"
        assert db_session.get(Order, order["id"]).status == "CANCELLED"

    def test_unknown_status(self, client, manager_headers, order):
        resp = self.set_status(client, manager_headers, order["id"], "BAKED")
        assert resp.status_code == 400

    def test_delivery_team_cannot_change_order_status(self, client, delivery_headers, order):
        resp = self.set_status(client, delivery_headers, order["id"], "CONFIRMED")
        assert resp.status_code == 403

    def test_list_filters_by_status(self, client, manager_headers, order):
        self.set_status(client, manager_headers, order["id"], "CONFIRMED")
        body = client.get("/api/orders?status=confirmed", headers=manager_headers).get_json()
        assert [o["id"] for o in body["orders"]] == [order["id"]]
        body = client.get("/api/orders?status=PENDING", headers=manager_headers).get_json()
        assert body["orders"] == []

    def test_items_frozen_once_terminal(self, client, manager_headers, order, product):
        self.set_status(client, manager_headers, order["id"], "CANCELLED")
        resp = client.put(
            f"/api/orders/{order['id']}",
            headers=manager_headers,
            json={"items": [{"product_id": product.id, "quantity": 9}]},
        )
        assert resp.status_code == 409

    def test_delete_cancelled_order_refused(self, client, admin_headers, manager_headers, order):
        self.set_status(client, manager_headers, order["id"], "CANCELLED")
        resp = client.delete(f"/api/orders/{order['id']}", headers=admin_headers)
        assert resp.status_code == 409


class TestDeliveries:

    @pytest.fixture
    def order(self, client, manager_headers, customer, product):
        resp = create_order(client, manager_headers, customer, [{"product_id": product.id, "quantity": 2}])
        return resp.get_json()["order"]

    @pytest.fixture
    def delivery(self, client, manager_headers, order):
        resp = client.post("/api/deliveries", headers=manager_headers, json={
            "order_id": order["id"],
            "scheduled_date": "2026-10-20T09:00:00Z",
            "delivery_address": "12 Baker Street",
            "driver_name": "Sam",
        })
        assert resp.status_code == 201
        return resp.get_json()["delivery"]

    def test_create(self, delivery, customer):
        assert delivery["delivery_number"] == "DEL-000001"
        assert delivery["status"] == "SCHEDULED"
        assert delivery["customer_id"] == customer.id
        assert delivery["phone"] == customer.phone
        assert delivery["scheduled_date"] == "2026-10-20T09:00:00Z"

    def test_missing_fields(self, client, manager_headers, order):
        resp = client.post("/api/deliveries", headers=manager_headers, json={"order_id": order["id"]})
        assert resp.status_code == 400
        assert resp.get_json()["fields"] == ["delivery_address", "scheduled_date"]

    def test_bad_date(self, client, manager_headers, order):
        resp = client.post("/api/deliveries", headers=manager_headers, json={
            "order_id": order["id"], "scheduled_date": "next tuesday", "delivery_address": "x",
        })
        assert resp.status_code == 400

    def test_cancelled_order_cannot_be_scheduled(self, client, manager_headers, order):
        client.patch(f"/api/orders/{order['id']}/status", headers=manager_headers, json={"status": "CANCELLED"})
        resp = client.post("/api/deliveries", headers=manager_headers, json={
            "order_id": order["id"], "scheduled_date": "2026-10-20T09:00:00Z", "delivery_address": "x",
        })
        assert resp.status_code == 400

    def test_driver_completes_delivery(self, client, delivery_headers, delivery):
        url = f"/api/deliveries/{delivery['id']}/status"
        assert client.patch(url, headers=delivery_headers, json={"status": "IN_TRANSIT"}).status_code == 200
        resp = client.patch(url, headers=delivery_headers, json={"status": "DELIVERED", "notes": "Left at door"})
        assert resp.status_code == 200
        body = resp.get_json()["delivery"]
        assert body["actual_date"] is not None
        assert body["notes"] == "Left at door"

        resp = client.patch(url, headers=delivery_headers, json={"status": "FAILED"})
        assert resp.status_code == 409

    def test_failed_then_rescheduled(self, client, delivery_headers, delivery):
        url = f"/api/deliveries/{delivery['id']}/status"
        assert client.patch(url, headers=delivery_headers, json={"status": "FAILED"}).status_code == 200
        assert client.patch(url, headers=delivery_headers, json={"status": "SCHEDULED"}).status_code == 200

    def test_order_with_delivery_cannot_be_deleted(self, client, admin_headers, order, delivery):
        resp = client.delete(f"/api/orders/{order['id']}", headers=admin_headers)
        assert resp.status_code == 409

    def test_delivered_cannot_be_deleted(self, client, admin_headers, delivery_headers, delivery):
        client.patch(f"/api/deliveries/{delivery['id']}/status", headers=delivery_headers, json={"status": "DELIVERED"})
        resp = client.delete(f"/api/deliveries/{delivery['id']}", headers=admin_headers)
        assert resp.status_code == 409

    def test_driver_can_list(self, client, delivery_headers, delivery):
        body = client.get("/api/deliveries", headers=delivery_headers).get_json()
        assert body["pagination"]["total"] == 1
