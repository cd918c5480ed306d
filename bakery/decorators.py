# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import auth_service, permission_service
from .services.permission_service import PermissionDeniedError
from .services.token_service import InvalidTokenError


def _is_authenticated() -> bool:
    return hasattr(g, "current_user")


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user to the decoded TokenIdentity (id, role, email).
    No database lookup happens here; the token alone is the credential.

    Returns 401 if:
    - No Authorization header
    - Invalid, tampered, or expired token
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"message": "Token required"}), 401

        token = auth_header.split(" ", 1)[1].strip()

        try:
            g.current_user = auth_service.identity_from_token(token)
        except InvalidTokenError:
            return jsonify({"message": "Invalid or expired token"}), 401

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """
    Require a specific permission from the role table.

    On denial the wrapped handler never runs, so nothing is mutated.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"message": "Token required"}), 401

            role = g.current_user.role
            try:
                permission_service.require_permission(role, permission_code, resource=request.path)
            except PermissionDeniedError:
                return jsonify({
                    "message": "Insufficient permissions",
                    "userRole": role,
                    "requiredPermission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
