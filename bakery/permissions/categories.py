# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    CATALOG = "CATALOG"
    CUSTOMERS = "CUSTOMERS"
    INVENTORY = "INVENTORY"
    PURCHASING = "PURCHASING"
    PRODUCTION = "PRODUCTION"
    ORDERS = "ORDERS"
    DELIVERIES = "DELIVERIES"
    POS = "POS"
    COMMUNICATIONS = "COMMUNICATIONS"
    USERS = "USERS"
    REPORTS = "REPORTS"
