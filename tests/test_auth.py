"""
Authentication tests.

Verifies:
- Login returns a token, the user and the role's permission codes
- Missing fields are 400; bad credentials and deactivated accounts are 401
- Tampered or garbage tokens are rejected with 401
- /me reflects the caller
- Public customer self-registration creates a customer with a default address
"""

from datetime import timedelta

import pytest

from bakery.services import token_service
from bakery.services.auth_service import hash_password, normalize_email, validate_password_strength
from bakery.errors import ValidationError

from conftest import DEFAULT_PASSWORD, auth_headers, make_user


# =============================================================================
# LOGIN
# =============================================================================


class TestLogin:

    def test_login_returns_token_and_permissions(self, client, cashier_user):
        resp = client.post("/api/auth/login", json={"email": cashier_user.email, "password": DEFAULT_PASSWORD})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["token"]
        assert body["user"]["email"] == "cashier@test.local"
        assert body["user"]["role"] == "CASHIER"
        assert "password_hash" not in body["user"]
        assert body["permissions"] == ["USE_POS", "VIEW_CUSTOMERS", "VIEW_PRODUCTS"]

    def test_login_is_case_insensitive_on_email(self, client, cashier_user):
        resp = client.post("/api/auth/login", json={"email": "  CASHIER@Test.Local ", "password": DEFAULT_PASSWORD})
        assert resp.status_code == 200

    def test_login_stamps_last_login(self, client, db_session, cashier_user):
        assert cashier_user.last_login_at is None
        client.post("/api/auth/login", json={"email": cashier_user.email, "password": DEFAULT_PASSWORD})
        db_session.refresh(cashier_user)
        assert cashier_user.last_login_at is not None

    @pytest.mark.parametrize("payload", [
        {},
        {"email": "cashier@test.local"},
        {"password": DEFAULT_PASSWORD},
        {"email": "", "password": ""},
    ])
    def test_missing_fields_is_400(self, client, cashier_user, payload):
        resp = client.post("/api/auth/login", json=payload)
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Email and password are required"

    def test_wrong_password_is_401(self, client, cashier_user):
        resp = client.post("/api/auth/login", json={"email": cashier_user.email, "password": "wrong123"})
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Invalid credentials"

    def test_unknown_email_gets_same_message(self, client, db_session):
        resp = client.post("/api/auth/login", json={"email": "ghost@test.local", "password": DEFAULT_PASSWORD})
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Invalid credentials"

    def test_deactivated_account_cannot_login(self, client, db_session):
        make_user(db_session, "CASHIER", "gone@test.local", is_active=False)
        resp = client.post("/api/auth/login", json={"email": "gone@test.local", "password": DEFAULT_PASSWORD})
        assert resp.status_code == 401


# =============================================================================
# TOKENS
# =============================================================================


class TestTokens:

    def test_missing_header(self, client, db_session):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Token required"

    def test_non_bearer_header(self, client, db_session):
        resp = client.get("/api/auth/me", headers={"Authorization": "Basic abc"})
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Token required"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-jwt"))
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Invalid or expired token"

    def test_token_signed_with_other_secret(self, client, cashier_user):
        forged = token_service.issue_token(cashier_user, secret="someone-elses-secret")
        resp = client.get("/api/auth/me", headers=auth_headers(forged))
        assert resp.status_code == 401

    def test_expired_token(self, client, app, cashier_user):
        expired = token_service.issue_token(
            cashier_user, secret=app.config["JWT_SECRET"], expires_in=timedelta(seconds=-5)
        )
        resp = client.get("/api/auth/me", headers=auth_headers(expired))
        assert resp.status_code == 401

    def test_decode_round_trip(self, app, cashier_user):
        token = token_service.issue_token(cashier_user, secret="s3cret")
        identity = token_service.decode_token(token, secret="s3cret")
        assert identity.id == cashier_user.id
        assert identity.role == "CASHIER"
        assert identity.email == cashier_user.email

    def test_me_returns_caller(self, client, manager_headers, manager_user):
        resp = client.get("/api/auth/me", headers=manager_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["id"] == manager_user.id
        assert "MANAGE_USERS" in body["permissions"]
        assert "DELETE_PRODUCTS" not in body["permissions"]


# =============================================================================
# PASSWORDS AND EMAILS
# =============================================================================


class TestCredentialRules:

    @pytest.mark.parametrize("password", ["abc12", "abcdefgh", "12345678", ""])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(ValidationError):
            validate_password_strength(password)

    def test_hash_is_not_plaintext(self, app):
        hashed = hash_password("Bread4Life")
        assert hashed != "Bread4Life"
        assert hashed.startswith("$2")

    def test_normalize_email(self):
        assert normalize_email("  Jane@Example.COM ") == "jane@example.com"
        with pytest.raises(ValidationError):
            normalize_email("not-an-email")


# =============================================================================
# CUSTOMER SELF-REGISTRATION
# =============================================================================


REGISTRATION = {
    "customer_type": "B2C",
    "name": "Sam Baker Jones",
    "email": "Sam@Example.com",
    "phone": "(555) 222-3333",
    "address": "1 Flour Lane",
    "city": "Springfield",
    "zip_code": "12345",
}


class TestRegistration:

    def test_register_creates_customer_with_default_location(self, client, db_session):
        resp = client.post("/api/auth/register", json=REGISTRATION)
        assert resp.status_code == 201
        customer = resp.get_json()["customer"]
        assert customer["email"] == "sam@example.com"
        assert customer["customer_type"] == "INDIVIDUAL"
        assert customer["first_name"] == "Sam"
        assert customer["last_name"] == "Baker Jones"
        defaults = [loc for loc in customer["locations"] if loc["is_default"]]
        assert len(defaults) == 1
        assert defaults[0]["address"] == "1 Flour Lane"

    def test_register_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/register", json={"name": "Sam"})
        assert resp.status_code == 400
        assert resp.get_json()["message"].startswith("Missing required fields:")

    def test_register_bad_phone(self, client, db_session):
        resp = client.post("/api/auth/register", json={**REGISTRATION, "phone": "12345"})
        assert resp.status_code == 400

    def test_register_duplicate_email(self, client, db_session):
        assert client.post("/api/auth/register", json=REGISTRATION).status_code == 201
        resp = client.post("/api/auth/register", json={**REGISTRATION, "phone": "5559990000"})
        assert resp.status_code == 409
