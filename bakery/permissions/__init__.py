# Overview: Permission system package.
# Re-exports all public APIs for a single import point.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    CATALOG_PERMISSIONS,
    CUSTOMER_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    PURCHASING_PERMISSIONS,
    PRODUCTION_PERMISSIONS,
    ORDER_PERMISSIONS,
    DELIVERY_PERMISSIONS,
    POS_PERMISSIONS,
    COMMUNICATION_PERMISSIONS,
    USER_PERMISSIONS,
    REPORT_PERMISSIONS,
)
from .roles import ROLES, ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    validate_permission_code,
    roles_with_permission,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "CATALOG_PERMISSIONS",
    "CUSTOMER_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "PURCHASING_PERMISSIONS",
    "PRODUCTION_PERMISSIONS",
    "ORDER_PERMISSIONS",
    "DELIVERY_PERMISSIONS",
    "POS_PERMISSIONS",
    "COMMUNICATION_PERMISSIONS",
    "USER_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "ROLES",
    "ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "validate_permission_code",
    "roles_with_permission",
]
