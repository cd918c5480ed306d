from .auth import User, USER_ROLES
from .customers import Customer, CustomerLocation, CUSTOMER_TYPES
from .catalog import Product, PRODUCT_CATEGORIES, UNIT_TYPES
from .inventory import Warehouse, Inventory, InventoryMovement, ImmutableMovementError, MOVEMENT_TYPES
from .orders import Order, OrderItem, Delivery, ORDER_STATUSES, PAYMENT_STATUSES, DELIVERY_STATUSES
from .production import Recipe, RecipeItem, Production, ProductionItem, PRODUCTION_STATUSES
from .purchasing import Supplier, PurchaseOrder, PurchaseOrderItem, PURCHASE_ORDER_STATUSES
from .communications import Notification, NOTIFICATION_TYPES, NOTIFICATION_STATUSES
from .pos import PosSession, PosOrder, PosOrderItem, PosPayment, PosReceipt, POS_ORDER_STATUSES, PAYMENT_METHODS, RECEIPT_TYPES
from .documents import DocumentSequence

__all__ = [
    'User', 'USER_ROLES',
    'Customer', 'CustomerLocation', 'CUSTOMER_TYPES',
    'Product', 'PRODUCT_CATEGORIES', 'UNIT_TYPES',
    'Warehouse', 'Inventory', 'InventoryMovement', 'ImmutableMovementError', 'MOVEMENT_TYPES',
    'Order', 'OrderItem', 'Delivery', 'ORDER_STATUSES', 'PAYMENT_STATUSES', 'DELIVERY_STATUSES',
    'Recipe', 'RecipeItem', 'Production', 'ProductionItem', 'PRODUCTION_STATUSES',
    'Supplier', 'PurchaseOrder', 'PurchaseOrderItem', 'PURCHASE_ORDER_STATUSES',
    'Notification', 'NOTIFICATION_TYPES', 'NOTIFICATION_STATUSES',
    'PosSession', 'PosOrder', 'PosOrderItem', 'PosPayment', 'PosReceipt',
    'POS_ORDER_STATUSES', 'PAYMENT_METHODS', 'RECEIPT_TYPES',
    'DocumentSequence',
]
