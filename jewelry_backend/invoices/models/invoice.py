# invoices/models/invoice.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from pricing.types import PricingRates

User = settings.AUTH_USER_MODEL


class Invoice(models.Model):
    """
    Customer invoice for jewelry pieces.

    GUARANTEES:
    - invoice_number is unique (INV-YYYYMM-NNNN)
    - cancelled is terminal
    - inventory_reserved is the reservation state flag; it is flipped ONLY by
      inventory.services.ledger (reserve / restore) with conditional updates
    - Pricing snapshot (gold price + percentages) records what the lines were
      priced with; update_invoice falls back to it when no new pricing is given
    """

    STATUS_DRAFT = "draft"
    STATUS_ISSUED = "issued"
    STATUS_PAID = "paid"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_ISSUED, "Issued"),
        (STATUS_PAID, "Paid"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice_number = models.CharField(max_length=32, unique=True)

    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="invoices",
    )

    issue_date = models.DateField()
    due_date = models.DateField()

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_DRAFT,
    )

    # Pricing snapshot (gold_price_per_gram == 0 means static pricing)
    gold_price_per_gram = models.DecimalField(
        max_digits=12, decimal_places=4, default=Decimal("0.0000")
    )
    labor_percentage = models.DecimalField(
        max_digits=7, decimal_places=3, default=Decimal("0.000")
    )
    profit_percentage = models.DecimalField(
        max_digits=7, decimal_places=3, default=Decimal("0.000")
    )
    tax_percentage = models.DecimalField(
        max_digits=7, decimal_places=3, default=Decimal("0.000")
    )

    subtotal = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    tax_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Tax embedded in line prices (sum of line tax).",
    )
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    notes = models.TextField(blank=True, default="")
    internal_notes = models.TextField(blank=True, default="")

    inventory_reserved = models.BooleanField(default=False)

    issued_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="invoices_in_status_7c41a2_idx"),
            models.Index(fields=["issue_date"], name="invoices_in_issue_d_52be0f_idx"),
            models.Index(fields=["customer", "issue_date"], name="invoices_in_custome_e93c17_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(discount_amount__gte=0),
                name="chk_invoice_discount_gte_zero",
            ),
        ]

    @property
    def is_cancelled(self) -> bool:
        return self.status == self.STATUS_CANCELLED

    @property
    def is_overdue(self) -> bool:
        if self.status in (self.STATUS_PAID, self.STATUS_CANCELLED):
            return False
        return bool(self.due_date) and self.due_date < timezone.localdate()

    @property
    def pricing_rates(self) -> PricingRates:
        return PricingRates.of(
            price_per_gram=self.gold_price_per_gram or Decimal("0"),
            labor_percentage=self.labor_percentage or Decimal("0"),
            profit_percentage=self.profit_percentage or Decimal("0"),
            tax_percentage=self.tax_percentage or Decimal("0"),
        )

    def __str__(self):
        return f"{self.invoice_number} | {self.status} | {self.total_amount}"
