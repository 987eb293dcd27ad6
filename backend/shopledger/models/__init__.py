from .inventory import (
    Category,
    Supplier,
    Product,
    StockMovement,
    MOVEMENT_IN,
    MOVEMENT_OUT,
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_TYPES,
)
from .sales import Sale, SaleItem, PAYMENT_METHODS
from .purchases import (
    Purchase,
    PurchaseItem,
    PURCHASE_STATUSES,
    STATUS_PENDING,
    STATUS_RECEIVED,
    STATUS_CANCELLED,
)

__all__ = [
    'Category', 'Supplier', 'Product', 'StockMovement',
    'MOVEMENT_IN', 'MOVEMENT_OUT', 'MOVEMENT_ADJUSTMENT', 'MOVEMENT_TYPES',
    'Sale', 'SaleItem', 'PAYMENT_METHODS',
    'Purchase', 'PurchaseItem', 'PURCHASE_STATUSES',
    'STATUS_PENDING', 'STATUS_RECEIVED', 'STATUS_CANCELLED',
]
