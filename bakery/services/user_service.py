# bakery/services/user_service.py
"""
Staff account administration.

Only an ADMIN may create ADMIN accounts or promote someone to ADMIN; store
managers administer every other role. Accounts are deactivated, never
deleted, and nobody can deactivate or demote themselves.
"""
from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, Forbidden, ValidationError
from ..extensions import db
from ..models import User, USER_ROLES
from ..validation import ModelValidationPolicy, validate_payload
from . import resource_service as rs
from .auth_service import hash_password, normalize_email

USER_POLICY = ModelValidationPolicy(
    writable_fields={"email", "first_name", "last_name", "phone", "role", "is_active"},
    required_on_create={"email", "first_name", "last_name"},
    enums={"role": USER_ROLES},
)

DEFAULT_ROLE = "STORE_MANAGER"


def _check_role_grant(actor_role: str | None, role: str) -> None:
    if role == "ADMIN" and actor_role != "ADMIN":
        raise Forbidden("Only administrators can grant the ADMIN role", userRole=actor_role)


def list_users(
    *,
    search: str | None = None,
    role: str | None = None,
    is_active: bool | None = None,
    page: int = 1,
    limit: int = 10,
) -> rs.Page:
    query = db.session.query(User)
    query = rs.apply_search(query, [User.email, User.first_name, User.last_name], search)
    query = rs.apply_enum_filter(query, User.role, role, USER_ROLES, "role")
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    return rs.paginate(query.order_by(User.created_at.desc(), User.id.desc()), page, limit)


def get_user(user_id: int) -> User:
    return rs.get_or_404(User, user_id, "User")


def create_user(payload: dict, *, actor_role: str | None = None) -> User:
    payload = dict(payload or {})
    password = payload.pop("password", None)
    if not password:
        raise ValidationError("Missing required fields: password", fields=["password"])

    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=False)
    patch["email"] = normalize_email(patch["email"])
    patch.setdefault("role", DEFAULT_ROLE)
    _check_role_grant(actor_role, patch["role"])
    rs.ensure_unique(User, User.email, patch["email"], label="email")

    user = User(password_hash=hash_password(password), **patch)
    db.session.add(user)
    db.session.flush()
    current_app.logger.info("User %s created with role %s", user.email, user.role)
    return user


def set_user_role(user_id: int, role, *, actor_id: int | None = None, actor_role: str | None = None) -> User:
    if not isinstance(role, str) or role.strip().upper() not in USER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}", fields=["role"])
    role = role.strip().upper()
    user = get_user(user_id)
    if user.id == actor_id and role != user.role:
        raise ConflictError("You cannot change your own role")
    _check_role_grant(actor_role, role)
    if user.role == "ADMIN" and actor_role != "ADMIN":
        raise Forbidden("Only administrators can change an administrator's role", userRole=actor_role)
    previous = user.role
    user.role = role
    db.session.flush()
    current_app.logger.info("User %s role %s -> %s", user.email, previous, role)
    return user


def set_user_active(user_id: int, is_active, *, actor_id: int | None = None, actor_role: str | None = None) -> User:
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be a boolean", fields=["is_active"])
    user = get_user(user_id)
    if user.id == actor_id and not is_active:
        raise ConflictError("You cannot deactivate your own account")
    if user.role == "ADMIN" and actor_role != "ADMIN":
        raise Forbidden("Only administrators can change an administrator's status", userRole=actor_role)
    user.is_active = is_active
    db.session.flush()
    current_app.logger.info("User %s %s", user.email, "activated" if is_active else "deactivated")
    return user
