"""
Role gate tests.

Verifies:
- Unauthenticated requests to protected endpoints return 401
- Denied requests return 403 with the caller's role and the missing code
- A denied mutation leaves the database untouched
- DELETE_* codes belong to ADMIN only
- Every code a role holds is a defined permission
"""

import pytest

from bakery.models import Product, Warehouse
from bakery.permissions import ROLE_PERMISSIONS, ROLES, get_all_permission_codes, roles_with_permission
from bakery.services import permission_service


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/customers"),
            ("GET", "/api/warehouses"),
            ("GET", "/api/inventory"),
            ("POST", "/api/inventory/1/transfer"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/purchase-orders"),
            ("GET", "/api/recipes"),
            ("GET", "/api/productions"),
            ("GET", "/api/orders"),
            ("PATCH", "/api/orders/1/status"),
            ("GET", "/api/deliveries"),
            ("GET", "/api/notifications"),
            ("GET", "/api/users"),
            ("POST", "/api/pos/orders"),
            ("GET", "/api/reports"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["message"] == "Token required"


# =============================================================================
# CASHIER DENIED BACK-OFFICE OPERATIONS (403)
# =============================================================================


class TestCashierDenied:
    """Cashier role is limited to the catalog, customers and the till."""

    @pytest.mark.parametrize(
        "method,path,code",
        [
            ("POST", "/api/products", "MANAGE_PRODUCTS"),
            ("GET", "/api/inventory", "VIEW_INVENTORY"),
            ("GET", "/api/orders", "VIEW_ORDERS"),
            ("GET", "/api/users", "VIEW_USERS"),
            ("GET", "/api/reports", "VIEW_REPORTS"),
            ("GET", "/api/pos/reports/daily", "VIEW_POS_REPORTS"),
        ],
    )
    def test_denied(self, client, cashier_headers, method, path, code):
        resp = getattr(client, method.lower())(path, headers=cashier_headers, json={})
        assert resp.status_code == 403
        body = resp.get_json()
        assert body["message"] == "Insufficient permissions"
        assert body["userRole"] == "CASHIER"
        assert body["requiredPermission"] == code

    def test_denied_create_writes_nothing(self, client, db_session, cashier_headers):
        resp = client.post(
            "/api/products",
            headers=cashier_headers,
            json={"sku": "SNEAK-1", "name": "Sneaky", "base_price_cents": 100},
        )
        assert resp.status_code == 403
        assert db_session.query(Product).count() == 0

    def test_can_browse_products(self, client, cashier_headers, product):
        resp = client.get("/api/products", headers=cashier_headers)
        assert resp.status_code == 200


class TestTeamBoundaries:

    def test_production_cannot_touch_orders(self, client, production_headers):
        resp = client.get("/api/orders", headers=production_headers)
        assert resp.status_code == 403

    def test_production_can_view_inventory(self, client, production_headers, stock):
        resp = client.get("/api/inventory", headers=production_headers)
        assert resp.status_code == 200

    def test_production_cannot_adjust_inventory(self, client, db_session, production_headers, stock):
        resp = client.post(
            f"/api/inventory/{stock.id}/adjust",
            headers=production_headers,
            json={"type": "add", "quantity": 5},
        )
        assert resp.status_code == 403
        db_session.refresh(stock)
        assert stock.quantity == 50

    def test_delivery_team_cannot_create_products(self, client, delivery_headers):
        resp = client.post("/api/products", headers=delivery_headers, json={})
        assert resp.status_code == 403

    def test_manager_cannot_delete_warehouse(self, client, db_session, manager_headers, warehouse):
        resp = client.delete(f"/api/warehouses/{warehouse.id}", headers=manager_headers)
        assert resp.status_code == 403
        assert resp.get_json()["requiredPermission"] == "DELETE_WAREHOUSES"
        assert db_session.get(Warehouse, warehouse.id) is not None

    def test_admin_can_delete_warehouse(self, client, db_session, admin_headers, warehouse):
        resp = client.delete(f"/api/warehouses/{warehouse.id}", headers=admin_headers)
        assert resp.status_code == 200


# =============================================================================
# ROLE TABLE
# =============================================================================


class TestRoleTable:

    def test_every_role_has_an_entry(self):
        assert set(ROLE_PERMISSIONS) == set(ROLES)

    def test_role_codes_are_defined(self):
        defined = set(get_all_permission_codes())
        for role, codes in ROLE_PERMISSIONS.items():
            assert codes <= defined, f"{role} holds undefined codes: {codes - defined}"

    def test_admin_holds_everything(self):
        assert ROLE_PERMISSIONS["ADMIN"] == frozenset(get_all_permission_codes())

    def test_delete_codes_are_admin_only(self):
        for code in get_all_permission_codes():
            if code.startswith("DELETE_"):
                assert roles_with_permission(code) == ["ADMIN"], code

    def test_unknown_role_has_nothing(self):
        assert permission_service.get_role_permissions("BAKER") == frozenset()
        assert permission_service.get_role_permissions(None) == frozenset()
        assert not permission_service.role_has_permission("BAKER", "VIEW_PRODUCTS")
