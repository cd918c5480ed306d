"""
Staff user administration tests.

Verifies:
- Managers create staff accounts; only ADMIN can grant ADMIN
- Nobody can change their own role or deactivate themselves
- Administrator accounts are out of a manager's reach
- Deactivated staff cannot log in
"""

import pytest

from bakery.models import User
from conftest import DEFAULT_PASSWORD

NEW_CASHIER = {
    "email": "New.Cashier@Test.Local",
    "first_name": "Nia",
    "last_name": "Park",
    "role": "cashier",
    "password": "Counter42",
}


class TestCreateUser:

    def test_manager_creates_cashier(self, client, db_session, manager_headers):
        resp = client.post("/api/users", headers=manager_headers, json=NEW_CASHIER)
        assert resp.status_code == 201
        user = resp.get_json()["user"]
        assert user["email"] == "new.cashier@test.local"
        assert user["role"] == "CASHIER"
        assert "password_hash" not in user

        resp = client.post("/api/auth/login", json={"email": "new.cashier@test.local", "password": "Counter42"})
        assert resp.status_code == 200

    def test_default_role(self, client, manager_headers):
        payload = {k: v for k, v in NEW_CASHIER.items() if k != "role"}
        resp = client.post("/api/users", headers=manager_headers, json=payload)
        assert resp.get_json()["user"]["role"] == "STORE_MANAGER"

    def test_manager_cannot_create_admin(self, client, db_session, manager_headers):
        resp = client.post("/api/users", headers=manager_headers, json={**NEW_CASHIER, "role": "ADMIN"})
        assert resp.status_code == 403
        assert db_session.query(User).filter_by(email="new.cashier@test.local").count() == 0

    def test_admin_can_create_admin(self, client, admin_headers):
        resp = client.post("/api/users", headers=admin_headers, json={**NEW_CASHIER, "role": "ADMIN"})
        assert resp.status_code == 201

    @pytest.mark.parametrize("password", [None, "short", "lettersonly", "12345678"])
    def test_password_rules(self, client, manager_headers, password):
        resp = client.post("/api/users", headers=manager_headers, json={**NEW_CASHIER, "password": password})
        assert resp.status_code == 400

    def test_duplicate_email(self, client, manager_headers, cashier_user):
        resp = client.post(
            "/api/users", headers=manager_headers, json={**NEW_CASHIER, "email": "CASHIER@test.local"}
        )
        assert resp.status_code == 409

    def test_cashier_cannot_list_users(self, client, cashier_headers):
        assert client.get("/api/users", headers=cashier_headers).status_code == 403


class TestRoleAndStatus:

    def test_change_role(self, client, manager_headers, cashier_user):
        resp = client.patch(
            f"/api/users/{cashier_user.id}/role", headers=manager_headers, json={"role": "DELIVERY_TEAM"}
        )
        assert resp.status_code == 200
        assert resp.get_json()["user"]["role"] == "DELIVERY_TEAM"

    def test_unknown_role(self, client, manager_headers, cashier_user):
        resp = client.patch(f"/api/users/{cashier_user.id}/role", headers=manager_headers, json={"role": "BAKER"})
        assert resp.status_code == 400

    def test_manager_cannot_promote_to_admin(self, client, manager_headers, cashier_user):
        resp = client.patch(f"/api/users/{cashier_user.id}/role", headers=manager_headers, json={"role": "ADMIN"})
        assert resp.status_code == 403

    def test_cannot_change_own_role(self, client, admin_headers, admin_user):
        resp = client.patch(f"/api/users/{admin_user.id}/role", headers=admin_headers, json={"role": "CASHIER"})
        assert resp.status_code == 409

    def test_cannot_deactivate_self(self, client, manager_headers, manager_user):
        resp = client.patch(f"/api/users/{manager_user.id}/status", headers=manager_headers, json={"is_active": False})
        assert resp.status_code == 409

    def test_manager_cannot_touch_admin(self, client, manager_headers, admin_user):
        resp = client.patch(f"/api/users/{admin_user.id}/status", headers=manager_headers, json={"is_active": False})
        assert resp.status_code == 403
        resp = client.patch(f"/api/users/{admin_user.id}/role", headers=manager_headers, json={"role": "CASHIER"})
        assert resp.status_code == 403

    def test_deactivated_user_cannot_login(self, client, manager_headers, cashier_user):
        resp = client.patch(f"/api/users/{cashier_user.id}/status", headers=manager_headers, json={"is_active": False})
        assert resp.status_code == 200

        resp = client.post("/api/auth/login", json={"email": cashier_user.email, "password": DEFAULT_PASSWORD})
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Account is deactivated"

    def test_list_filters(self, client, manager_headers, cashier_user, delivery_user):
        body = client.get("/api/users?role=cashier", headers=manager_headers).get_json()
        assert [u["email"] for u in body["users"]] == [cashier_user.email]
