from bikeshop_backend.models.product import Category, Product
from bikeshop_backend.models.alert import (
    Alert,
    AlertType,
    AlertPriority,
    PRIORITY_RANK,
    SYSTEM_RESOLVER,
)
from bikeshop_backend.models.stock_movement import StockMovement, MovementType, stock_delta

__all__ = [
    "Category",
    "Product",
    # Stock alerting
    "Alert",
    "AlertType",
    "AlertPriority",
    "PRIORITY_RANK",
    "SYSTEM_RESOLVER",
    # Inventory movements
    "StockMovement",
    "MovementType",
    "stock_delta",
]
