# bakery/routes/auth.py
"""
Authentication routes.

- POST /login: staff email + password -> bearer token
- POST /register: public customer sign-up (creates a Customer, not a User;
  staff accounts come from /api/users or the CLI)
- GET /me: the caller's account and effective permissions
"""
from flask import Blueprint, g

from ..decorators import require_auth
from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import User
from ..services import auth_service, customer_service, permission_service
from ..services.concurrency import commit_session
from ..validation import request_json

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and issue a token.

    Returns 400 when email or password is missing, 401 on bad credentials
    or a deactivated account.
    """
    data = request_json()
    email = data.get("email")
    password = data.get("password")
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = auth_service.authenticate(email, password)
    token = auth_service.issue_token_for(user)
    commit_session()

    return {
        "message": "Login successful",
        "token": token,
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_role_permissions(user.role)),
    }


@auth_bp.post("/register")
def register_route():
    customer = customer_service.register_customer(request_json())
    commit_session()
    return {
        "message": "Customer registered successfully",
        "customer": customer.to_dict(include_locations=True),
    }, 201


@auth_bp.get("/me")
@require_auth
def me_route():
    user = db.session.get(User, g.current_user.id)
    if user is None:
        raise NotFound("User not found")
    return {
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_role_permissions(user.role)),
    }
