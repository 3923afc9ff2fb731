# inventory/models/inventory_movement.py

"""
INVENTORY LEDGER ENTRY (APPEND-ONLY)

GUARANTEES:
- Created ONCE, never edited, never deleted
- quantity is signed: negative = stock out, positive = stock in
- Direction validated against movement_type
- SALE / RETURN movements must reference an invoice

For every item, the sum of its movement quantities equals the change of
InventoryItem.quantity since creation.
"""

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .inventory_item import InventoryItem


class InventoryMovement(models.Model):
    class MovementType(models.TextChoices):
        SALE = "sale", "Sale"
        RETURN = "return", "Return"
        ADJUSTMENT = "adjustment", "Adjustment"

    class ReferenceType(models.TextChoices):
        INVOICE = "invoice", "Invoice"
        INVOICE_CANCELLATION = "invoice_cancellation", "Invoice Cancellation"
        MANUAL_ADJUSTMENT = "manual_adjustment", "Manual Adjustment"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    inventory_item = models.ForeignKey(
        InventoryItem,
        on_delete=models.PROTECT,
        related_name="movements",
    )

    movement_type = models.CharField(max_length=16, choices=MovementType.choices)
    quantity = models.IntegerField(help_text="Signed delta applied to the item")

    reference_type = models.CharField(
        max_length=32,
        choices=ReferenceType.choices,
        blank=True,
        default="",
    )
    reference_id = models.CharField(max_length=64, blank=True, default="", db_index=True)

    notes = models.TextField(blank=True, default="")

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_movements",
    )

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["inventory_item", "created_at"], name="inventory_i_invento_8c2d4e_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="inventory_i_referen_3a7f91_idx"),
            models.Index(fields=["movement_type"], name="inventory_i_movemen_d41e27_idx"),
        ]

    def clean(self):
        if self.quantity == 0:
            raise ValidationError({"quantity": "quantity cannot be zero"})

        if self.movement_type == self.MovementType.SALE and self.quantity > 0:
            raise ValidationError({"quantity": "sale movements must be negative"})

        if self.movement_type == self.MovementType.RETURN and self.quantity < 0:
            raise ValidationError({"quantity": "return movements must be positive"})

        if (
            self.movement_type in {self.MovementType.SALE, self.MovementType.RETURN}
            and not self.reference_id
        ):
            raise ValidationError("SALE / RETURN must reference an invoice")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("InventoryMovement records are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "InventoryMovement records are immutable and cannot be deleted"
        )

    def __str__(self):
        item_name = getattr(self.inventory_item, "name", "Item")
        return f"{item_name} | {self.movement_type} | {self.quantity:+d}"
