# invoices/models/invoice_item.py

"""
INVOICE ITEM (PRICED LINE SNAPSHOT)

- Name / sku / weight / purity are copied from the inventory item at pricing
  time so the invoice stays readable if the catalog changes.
- Rows are never edited; update_invoice replaces the whole set.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from pricing.types import MODE_DYNAMIC, MODE_STATIC

from .invoice import Invoice


class InvoiceItem(models.Model):
    PRICING_MODE_CHOICES = [
        (MODE_DYNAMIC, "Dynamic (gold formula)"),
        (MODE_STATIC, "Static (stored unit price)"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="items",
    )

    inventory_item = models.ForeignKey(
        "inventory.InventoryItem",
        on_delete=models.PROTECT,
        related_name="invoice_items",
    )

    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=64, blank=True, default="")

    quantity = models.PositiveIntegerField()
    weight = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    gold_purity = models.DecimalField(max_digits=6, decimal_places=3, null=True, blank=True)

    pricing_mode = models.CharField(max_length=16, choices=PRICING_MODE_CHOICES)

    base_gold_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    labor_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    profit_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    total_price = models.DecimalField(max_digits=12, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["invoice", "inventory_item"], name="invoices_in_invoice_0b6d3e_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("InvoiceItem rows are immutable; replace the invoice's item set instead")
        if int(self.quantity or 0) <= 0:
            raise ValidationError({"quantity": "quantity must be greater than zero"})
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} x{self.quantity} | {self.total_price}"
