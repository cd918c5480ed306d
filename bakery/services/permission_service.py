# Overview: The single role gate; every protected endpoint asks it through require_permission.

"""
Permission checks against the static role table.

DESIGN PRINCIPLES:
- Fail closed: unknown roles and unknown codes are denied
- One table (bakery.permissions.ROLE_PERMISSIONS), no per-endpoint role lists
- Denials are logged at WARNING with the caller's role
"""

from flask import current_app

from ..permissions import ROLE_PERMISSIONS, validate_permission_code


class PermissionDeniedError(Exception):
    """Raised when a role lacks the required permission."""

    def __init__(self, role: str | None, permission_code: str):
        super().__init__(f"Role {role} lacks permission {permission_code}")
        self.role = role
        self.permission_code = permission_code


def get_role_permissions(role: str | None) -> frozenset[str]:
    return ROLE_PERMISSIONS.get(role or "", frozenset())


def role_has_permission(role: str | None, permission_code: str) -> bool:
    if not validate_permission_code(permission_code):
        return False
    return permission_code in get_role_permissions(role)


def require_permission(role: str | None, permission_code: str, *, resource: str | None = None) -> None:
    """Raise PermissionDeniedError unless the role holds the permission."""
    if role_has_permission(role, permission_code):
        return
    current_app.logger.warning(
        "Permission denied: role=%s permission=%s resource=%s", role, permission_code, resource
    )
    raise PermissionDeniedError(role, permission_code)
