# inventory/models/inventory_item.py

"""
INVENTORY ITEM (ONE STOCKED JEWELRY PIECE / SKU)

GUARANTEES:
- sku is unique
- quantity is never negative (DB check constraint + PositiveIntegerField)
- quantity is mutated ONLY via inventory.services.ledger after creation
  (ledger writes use conditional queryset updates, never save())
- Non-deletable once referenced by InventoryMovement (PROTECT)

Pricing inputs:
- weight (grams) feeds the gold formula
- unit_price is the static fallback when dynamic pricing is disabled
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class InventoryItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True, default="")

    quantity = models.PositiveIntegerField(
        default=0,
        help_text="On-hand units (ledger-managed after creation)",
    )

    weight = models.DecimalField(
        max_digits=10,
        decimal_places=3,
        default=Decimal("0.000"),
        help_text="Weight in grams (per unit)",
    )
    gold_purity = models.DecimalField(
        max_digits=6,
        decimal_places=3,
        null=True,
        blank=True,
        help_text="Karat, e.g. 18.000",
    )

    # Static fallback price; nullable because dynamically priced pieces may never set it.
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    cost_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    minimum_stock = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active", "quantity"], name="inventory_i_is_acti_5b1f0c_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gte=0),
                name="chk_inventoryitem_quantity_gte_zero",
            ),
        ]

    def clean(self):
        if self.weight is not None and self.weight < Decimal("0"):
            raise ValidationError({"weight": "weight cannot be negative"})

        if self.unit_price is not None and self.unit_price < Decimal("0.00"):
            raise ValidationError({"unit_price": "unit_price cannot be negative"})

        if self.cost_price is not None and self.cost_price < Decimal("0.00"):
            raise ValidationError({"cost_price": "cost_price cannot be negative"})

    def save(self, *args, **kwargs):
        update_fields = kwargs.get("update_fields")
        if not self._state.adding and (update_fields is None or "quantity" in update_fields):
            original = (
                InventoryItem.objects.filter(pk=self.pk)
                .values_list("quantity", flat=True)
                .first()
            )
            if original is not None and int(self.quantity) != int(original):
                raise ValidationError(
                    {"quantity": "quantity is ledger-managed; use inventory.services.ledger.adjust()"}
                )

        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def is_low_stock(self) -> bool:
        return int(self.quantity or 0) < int(self.minimum_stock or 0)

    def __str__(self):
        return f"{self.name} ({self.sku})"
