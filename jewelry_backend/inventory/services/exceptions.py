# inventory/services/exceptions.py

"""
INVENTORY DOMAIN ERRORS

Rules:
- Services raise these; callers decide presentation.
- InsufficientInventoryError always carries the full list of unavailable
  items (every shortfall in the request, not just the first).
"""

from __future__ import annotations

from dataclasses import dataclass


ITEM_NOT_FOUND = "Item not found"
INSUFFICIENT_INVENTORY = "Insufficient inventory"


@dataclass(frozen=True)
class UnavailableItem:
    item_id: str
    error: str
    requested: int
    available: int = 0
    item_name: str | None = None
    sku: str | None = None

    def as_dict(self) -> dict:
        data = {
            "item_id": self.item_id,
            "error": self.error,
            "requested": self.requested,
            "available": self.available,
        }
        if self.item_name is not None:
            data["item_name"] = self.item_name
        if self.sku is not None:
            data["sku"] = self.sku
        return data


class InventoryError(Exception):
    """Base class for inventory ledger failures."""


class InsufficientInventoryError(InventoryError):
    def __init__(self, unavailable_items, message: str = "Some items are not available in sufficient quantities"):
        self.unavailable_items = list(unavailable_items or [])
        self.message = message
        super().__init__(message)

    def as_list(self) -> list[dict]:
        return [u.as_dict() for u in self.unavailable_items]

    def __str__(self):
        parts = [
            f"{u.item_name or u.item_id}: {u.error} (requested {u.requested}, available {u.available})"
            for u in self.unavailable_items
        ]
        return f"{self.message}: {'; '.join(parts)}" if parts else self.message


class StockAdjustmentError(InventoryError):
    """Manual adjustment rejected (bad delta, would go negative, inactive item)."""


class ReservationStateError(InventoryError):
    """Reservation requested for an invoice that already holds one."""
