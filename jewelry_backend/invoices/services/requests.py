# invoices/services/requests.py

"""
TYPED INVOICE REQUESTS

Parsed (already validated) form of the raw request mapping.
Built by invoices.serializers.invoice_request; the orchestrator never reads
raw dicts past that point.

None means "not supplied": on create the default applies, on update the
invoice keeps its current value.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from pricing.types import ZERO, PricingDefaults, PricingRates


@dataclass(frozen=True)
class GoldPricing:
    gold_price_per_gram: Decimal | None = None
    labor_percentage: Decimal | None = None
    profit_percentage: Decimal | None = None
    tax_percentage: Decimal | None = None

    def resolve(self, defaults: PricingDefaults) -> PricingRates:
        """Fill the gaps: gold price defaults to 0 (static), percentages to the business defaults."""
        return PricingRates(
            price_per_gram=self.gold_price_per_gram if self.gold_price_per_gram is not None else ZERO,
            labor_percentage=(
                self.labor_percentage if self.labor_percentage is not None else defaults.labor_percentage
            ),
            profit_percentage=(
                self.profit_percentage if self.profit_percentage is not None else defaults.profit_percentage
            ),
            tax_percentage=self.tax_percentage if self.tax_percentage is not None else defaults.tax_percentage,
        )


@dataclass(frozen=True)
class InvoiceLineRequest:
    inventory_item_id: uuid.UUID
    quantity: int
    weight: Decimal | None = None
    name: str | None = None
    unit_price: Decimal | None = None
    gold_purity: Decimal | None = None


@dataclass(frozen=True)
class InvoiceRequest:
    customer_id: uuid.UUID | None = None
    items: tuple[InvoiceLineRequest, ...] | None = None
    issue_date: date | None = None
    due_date: date | None = None
    invoice_number: str | None = None
    status: str | None = None
    discount_amount: Decimal | None = None
    notes: str | None = None
    internal_notes: str | None = None
    gold_pricing: GoldPricing | None = None

    @property
    def reprices(self) -> bool:
        return self.items is not None or self.gold_pricing is not None
