"""
Inventory module

Stock snapshots per product plus an append-only movement history.
Every stock change emits a stock-update notification.
"""

from .schemas import MovementType, StockLevels, Product, ProductCreate, StockMovement, StockAdjustment

__all__ = [
    "MovementType",
    "StockLevels",
    "Product",
    "ProductCreate",
    "StockMovement",
    "StockAdjustment",
]
