# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- CATALOG --

CATALOG_PERMISSIONS = [
    ("VIEW_PRODUCTS", "View Products", "View the product catalog", PermissionCategory.CATALOG),
    ("MANAGE_PRODUCTS", "Manage Products", "Create and edit products, toggle active flag", PermissionCategory.CATALOG),
    ("DELETE_PRODUCTS", "Delete Products", "Hard-delete products with no dependents", PermissionCategory.CATALOG),
]


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    ("VIEW_CUSTOMERS", "View Customers", "View customers and their locations", PermissionCategory.CUSTOMERS),
    ("MANAGE_CUSTOMERS", "Manage Customers", "Create and edit customers and locations", PermissionCategory.CUSTOMERS),
    (
        "MANAGE_CUSTOMER_STATUS",
        "Manage Customer Status",
        "Activate/deactivate customers and change customer type",
        PermissionCategory.CUSTOMERS,
    ),
    ("DELETE_CUSTOMERS", "Delete Customers", "Hard-delete customers with no orders", PermissionCategory.CUSTOMERS),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    ("VIEW_INVENTORY", "View Inventory", "View stock levels and movement history", PermissionCategory.INVENTORY),
    ("MANAGE_INVENTORY", "Manage Inventory", "Create and edit inventory records", PermissionCategory.INVENTORY),
    ("ADJUST_INVENTORY", "Adjust Inventory", "Add, remove or set stock quantities", PermissionCategory.INVENTORY),
    ("TRANSFER_INVENTORY", "Transfer Inventory", "Move stock between warehouses", PermissionCategory.INVENTORY),
    ("DELETE_INVENTORY", "Delete Inventory", "Delete inventory records", PermissionCategory.INVENTORY),
    ("VIEW_WAREHOUSES", "View Warehouses", "View warehouse list", PermissionCategory.INVENTORY),
    ("MANAGE_WAREHOUSES", "Manage Warehouses", "Create and edit warehouses", PermissionCategory.INVENTORY),
    ("DELETE_WAREHOUSES", "Delete Warehouses", "Delete warehouses holding no stock", PermissionCategory.INVENTORY),
]


# -- PURCHASING --

PURCHASING_PERMISSIONS = [
    ("VIEW_SUPPLIERS", "View Suppliers", "View supplier list", PermissionCategory.PURCHASING),
    ("MANAGE_SUPPLIERS", "Manage Suppliers", "Create and edit suppliers", PermissionCategory.PURCHASING),
    ("DELETE_SUPPLIERS", "Delete Suppliers", "Delete suppliers with no purchase orders", PermissionCategory.PURCHASING),
    ("VIEW_PURCHASE_ORDERS", "View Purchase Orders", "View purchase orders", PermissionCategory.PURCHASING),
    (
        "MANAGE_PURCHASE_ORDERS",
        "Manage Purchase Orders",
        "Create, edit and advance purchase orders",
        PermissionCategory.PURCHASING,
    ),
    (
        "RECEIVE_PURCHASE_ORDERS",
        "Receive Purchase Orders",
        "Receive purchase order lines into stock",
        PermissionCategory.PURCHASING,
    ),
    (
        "DELETE_PURCHASE_ORDERS",
        "Delete Purchase Orders",
        "Delete draft or cancelled purchase orders",
        PermissionCategory.PURCHASING,
    ),
]


# -- PRODUCTION --

PRODUCTION_PERMISSIONS = [
    ("VIEW_RECIPES", "View Recipes", "View recipes and ingredients", PermissionCategory.PRODUCTION),
    ("MANAGE_RECIPES", "Manage Recipes", "Create and edit recipes", PermissionCategory.PRODUCTION),
    ("DELETE_RECIPES", "Delete Recipes", "Delete recipes not used by a batch", PermissionCategory.PRODUCTION),
    ("VIEW_PRODUCTION", "View Production", "View production batches", PermissionCategory.PRODUCTION),
    ("MANAGE_PRODUCTION", "Manage Production", "Plan and edit production batches", PermissionCategory.PRODUCTION),
    (
        "UPDATE_PRODUCTION_STATUS",
        "Update Production Status",
        "Move production batches through their lifecycle",
        PermissionCategory.PRODUCTION,
    ),
    ("DELETE_PRODUCTION", "Delete Production", "Delete planned or cancelled batches", PermissionCategory.PRODUCTION),
]


# -- ORDERS --

ORDER_PERMISSIONS = [
    ("VIEW_ORDERS", "View Orders", "View customer orders", PermissionCategory.ORDERS),
    ("MANAGE_ORDERS", "Manage Orders", "Create and edit customer orders", PermissionCategory.ORDERS),
    ("UPDATE_ORDER_STATUS", "Update Order Status", "Move orders through their lifecycle", PermissionCategory.ORDERS),
    ("DELETE_ORDERS", "Delete Orders", "Delete orders that are not delivered or cancelled", PermissionCategory.ORDERS),
]


# -- DELIVERIES --

DELIVERY_PERMISSIONS = [
    ("VIEW_DELIVERIES", "View Deliveries", "View scheduled deliveries", PermissionCategory.DELIVERIES),
    ("MANAGE_DELIVERIES", "Manage Deliveries", "Schedule and edit deliveries", PermissionCategory.DELIVERIES),
    (
        "UPDATE_DELIVERY_STATUS",
        "Update Delivery Status",
        "Mark deliveries in transit, delivered, failed or returned",
        PermissionCategory.DELIVERIES,
    ),
    ("DELETE_DELIVERIES", "Delete Deliveries", "Delete undelivered deliveries", PermissionCategory.DELIVERIES),
]


# -- POS --

POS_PERMISSIONS = [
    ("USE_POS", "Use POS", "Open sessions, ring up orders and take payments", PermissionCategory.POS),
    ("VIEW_POS_REPORTS", "View POS Reports", "View daily POS summaries", PermissionCategory.POS),
]


# -- COMMUNICATIONS --

COMMUNICATION_PERMISSIONS = [
    ("VIEW_NOTIFICATIONS", "View Notifications", "View outbound notifications", PermissionCategory.COMMUNICATIONS),
    (
        "MANAGE_NOTIFICATIONS",
        "Manage Notifications",
        "Queue notifications and update delivery status",
        PermissionCategory.COMMUNICATIONS,
    ),
    ("DELETE_NOTIFICATIONS", "Delete Notifications", "Delete notifications", PermissionCategory.COMMUNICATIONS),
]


# -- USERS --

USER_PERMISSIONS = [
    ("VIEW_USERS", "View Users", "View staff accounts", PermissionCategory.USERS),
    ("MANAGE_USERS", "Manage Users", "Create staff accounts, change roles, activate/deactivate", PermissionCategory.USERS),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    ("VIEW_REPORTS", "View Reports", "View business reports and dashboards", PermissionCategory.REPORTS),
]


PERMISSION_DEFINITIONS = (
    CATALOG_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + PURCHASING_PERMISSIONS
    + PRODUCTION_PERMISSIONS
    + ORDER_PERMISSIONS
    + DELIVERY_PERMISSIONS
    + POS_PERMISSIONS
    + COMMUNICATION_PERMISSIONS
    + USER_PERMISSIONS
    + REPORT_PERMISSIONS
)
