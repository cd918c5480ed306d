# bakery/routes/users.py
"""
Staff user administration.

SECURITY: VIEW_USERS to list, MANAGE_USERS to create or change role/status.
Granting ADMIN is additionally restricted to ADMIN callers in user_service.
"""
from flask import Blueprint, request, g

from ..decorators import require_auth, require_permission
from ..services import user_service
from ..services.concurrency import commit_session
from ..validation import request_json
from ..services.resource_service import parse_bool_arg, parse_pagination

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission("VIEW_USERS")
def list_users():
    page, limit = parse_pagination(request.args)
    result = user_service.list_users(
        search=request.args.get("search"),
        role=request.args.get("role"),
        is_active=parse_bool_arg(request.args.get("is_active"), "is_active"),
        page=page,
        limit=limit,
    )
    return result.to_dict("users")


@users_bp.get("/<int:user_id>")
@require_auth
@require_permission("VIEW_USERS")
def get_user(user_id: int):
    return {"user": user_service.get_user(user_id).to_dict()}


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user():
    user = user_service.create_user(request_json(), actor_role=g.current_user.role)
    commit_session()
    return {"message": "User created successfully", "user": user.to_dict()}, 201


@users_bp.patch("/<int:user_id>/role")
@require_auth
@require_permission("MANAGE_USERS")
def set_user_role(user_id: int):
    payload = request_json()
    user = user_service.set_user_role(
        user_id, payload.get("role"), actor_id=g.current_user.id, actor_role=g.current_user.role
    )
    commit_session()
    return {"message": "User role updated successfully", "user": user.to_dict()}


@users_bp.patch("/<int:user_id>/status")
@require_auth
@require_permission("MANAGE_USERS")
def set_user_status(user_id: int):
    payload = request_json()
    user = user_service.set_user_active(
        user_id, payload.get("is_active"), actor_id=g.current_user.id, actor_role=g.current_user.role
    )
    commit_session()
    return {"message": "User status updated successfully", "user": user.to_dict()}
