# inventory/apps.py

"""
INVENTORY APP CONFIG

Jewelry stock items + the append-only movement ledger.

Golden Rule:
- InventoryItem.quantity is changed ONLY by inventory.services.ledger
  (reserve / restore / adjust), each change paired with an InventoryMovement.
"""

from django.apps import AppConfig


class InventoryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"
    verbose_name = "Inventory"
