"""
PATH: inventory/services/__init__.py

Inventory services export surface.
Keep imports explicit (no wildcard exports).
"""

from .exceptions import (
    InsufficientInventoryError,
    InventoryError,
    ReservationStateError,
    StockAdjustmentError,
    UnavailableItem,
)

__all__ = [
    "InventoryError",
    "InsufficientInventoryError",
    "StockAdjustmentError",
    "ReservationStateError",
    "UnavailableItem",
]
