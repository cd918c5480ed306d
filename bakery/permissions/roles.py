# Overview: Static role -> permission table consulted by the role gate.

from .definitions import PERMISSION_DEFINITIONS


ROLES = (
    "ADMIN",
    "STORE_MANAGER",
    "MANAGER",
    "PRODUCTION_TEAM",
    "DELIVERY_TEAM",
    "CASHIER",
)

_ALL_CODES = frozenset(perm[0] for perm in PERMISSION_DEFINITIONS)

# Managers run the shop but cannot hard-delete or change a customer's
# status/type. Granting the ADMIN role is checked separately in user_service.
_MANAGER_CODES = frozenset(
    code for code in _ALL_CODES
    if not code.startswith("DELETE_") and code != "MANAGE_CUSTOMER_STATUS"
)

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "ADMIN": _ALL_CODES,
    "STORE_MANAGER": _MANAGER_CODES,
    "MANAGER": _MANAGER_CODES,
    "PRODUCTION_TEAM": frozenset({
        "VIEW_PRODUCTS",
        "VIEW_INVENTORY",
        "VIEW_WAREHOUSES",
        "VIEW_RECIPES",
        "VIEW_PRODUCTION",
        "UPDATE_PRODUCTION_STATUS",
    }),
    "DELIVERY_TEAM": frozenset({
        "VIEW_ORDERS",
        "VIEW_DELIVERIES",
        "UPDATE_DELIVERY_STATUS",
    }),
    "CASHIER": frozenset({
        "VIEW_PRODUCTS",
        "VIEW_CUSTOMERS",
        "USE_POS",
    }),
}
