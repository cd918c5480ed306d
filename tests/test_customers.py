"""
Customer tests.

Verifies:
- Create validates required fields and normalizes email
- Email is unique across customers
- Status and type changes need MANAGE_CUSTOMER_STATUS (ADMIN only)
- Exactly one address is the default
- Customers with orders cannot be deleted
"""

import pytest

from bakery.models import Customer, CustomerLocation


class TestCustomers:

    def test_create(self, client, manager_headers):
        resp = client.post("/api/customers", headers=manager_headers, json={
            "email": "Sam@Example.com", "first_name": "Sam", "last_name": "Lee", "customer_type": "b2b",
        })
        assert resp.status_code == 201
        customer = resp.get_json()["customer"]
        assert customer["email"] == "sam@example.com"
        assert customer["customer_type"] == "B2B"
        assert customer["is_active"] is True

    def test_missing_fields(self, client, manager_headers):
        resp = client.post("/api/customers", headers=manager_headers, json={"first_name": "Sam"})
        assert resp.status_code == 400
        assert resp.get_json()["fields"] == ["email", "last_name"]

    def test_duplicate_email(self, client, db_session, manager_headers, customer):
        resp = client.post("/api/customers", headers=manager_headers, json={
            "email": "JANE.DOE@example.com", "first_name": "J", "last_name": "D",
        })
        assert resp.status_code == 409
        assert db_session.query(Customer).count() == 1

    def test_search_and_type_filter(self, client, manager_headers, customer):
        body = client.get("/api/customers?search=jane", headers=manager_headers).get_json()
        assert [c["id"] for c in body["customers"]] == [customer.id]
        body = client.get("/api/customers?customer_type=B2B", headers=manager_headers).get_json()
        assert body["customers"] == []

    def test_cashier_can_look_up_customers(self, client, cashier_headers, customer):
        assert client.get(f"/api/customers/{customer.id}", headers=cashier_headers).status_code == 200

    def test_update(self, client, manager_headers, customer):
        resp = client.put(f"/api/customers/{customer.id}", headers=manager_headers, json={"city": "Shelbyville"})
        assert resp.status_code == 200
        assert resp.get_json()["customer"]["city"] == "Shelbyville"


class TestStatusAndType:

    def test_manager_cannot_change_status(self, client, manager_headers, customer):
        resp = client.patch(f"/api/customers/{customer.id}/status", headers=manager_headers, json={"is_active": False})
        assert resp.status_code == 403
        assert resp.get_json()["requiredPermission"] == "MANAGE_CUSTOMER_STATUS"

    def test_admin_changes_status_and_type(self, client, admin_headers, customer):
        resp = client.patch(f"/api/customers/{customer.id}/status", headers=admin_headers, json={"is_active": False})
        assert resp.get_json()["customer"]["is_active"] is False

        resp = client.patch(f"/api/customers/{customer.id}/type", headers=admin_headers, json={"customer_type": "community"})
        assert resp.get_json()["customer"]["customer_type"] == "COMMUNITY"

    def test_bad_type(self, client, admin_headers, customer):
        resp = client.patch(f"/api/customers/{customer.id}/type", headers=admin_headers, json={"customer_type": "VIP"})
        assert resp.status_code == 400


class TestAddresses:

    def add(self, client, headers, customer_id, **body):
        payload = {"address": "1 Main St", "city": "Springfield", "zip_code": "12345", **body}
        return client.post(f"/api/customers/{customer_id}/addresses", headers=headers, json=payload)

    def test_first_address_is_default(self, client, manager_headers, customer):
        resp = self.add(client, manager_headers, customer.id, label="Home")
        assert resp.status_code == 201
        assert resp.get_json()["address"]["is_default"] is True

        resp = self.add(client, manager_headers, customer.id, label="Work")
        assert resp.get_json()["address"]["is_default"] is False

    def test_new_default_replaces_old(self, client, db_session, manager_headers, customer):
        first = self.add(client, manager_headers, customer.id).get_json()["address"]
        second = self.add(client, manager_headers, customer.id, is_default=True).get_json()["address"]

        addresses = client.get(f"/api/customers/{customer.id}/addresses", headers=manager_headers).get_json()["addresses"]
        defaults = {a["id"]: a["is_default"] for a in addresses}
        assert defaults == {first["id"]: False, second["id"]: True}

    def test_deleting_default_promotes_another(self, client, db_session, manager_headers, customer):
        first = self.add(client, manager_headers, customer.id).get_json()["address"]
        second = self.add(client, manager_headers, customer.id).get_json()["address"]

        resp = client.delete(f"/api/customers/{customer.id}/addresses/{first['id']}", headers=manager_headers)
        assert resp.status_code == 200
        assert db_session.get(CustomerLocation, second["id"]).is_default is True

    def test_address_of_other_customer(self, client, manager_headers, customer, db_session):
        other = Customer(email="other@example.com", first_name="O", last_name="T")
        db_session.add(other)
        db_session.commit()
        address = self.add(client, manager_headers, other.id).get_json()["address"]

        resp = client.put(
            f"/api/customers/{customer.id}/addresses/{address['id']}", headers=manager_headers, json={"city": "X"}
        )
        assert resp.status_code == 404

    @pytest.mark.parametrize("missing", ["address", "city", "zip_code"])
    def test_required_address_fields(self, client, manager_headers, customer, missing):
        payload = {"address": "1 Main St", "city": "Springfield", "zip_code": "12345"}
        del payload[missing]
        resp = client.post(f"/api/customers/{customer.id}/addresses", headers=manager_headers, json=payload)
        assert resp.status_code == 400


class TestDeleteCustomer:

    def test_with_orders(self, client, manager_headers, admin_headers, customer, product):
        client.post("/api/orders", headers=manager_headers, json={
            "customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}],
        })
        resp = client.delete(f"/api/customers/{customer.id}", headers=admin_headers)
        assert resp.status_code == 409

    def test_without_orders(self, client, db_session, admin_headers, customer):
        assert client.delete(f"/api/customers/{customer.id}", headers=admin_headers).status_code == 200
        assert db_session.get(Customer, customer.id) is None
