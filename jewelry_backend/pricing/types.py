# pricing/types.py

"""
PRICING VALUE OBJECTS

Typed inputs/outputs of the pricing engine.

Hard rules:
- All money / weight / percentage values are Decimal (never float).
- Floats are converted through str() so 34.155 stays 34.155 (and rounds half-up to 34.16).
- Quantities are whole integer units.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from pricing.exceptions import PricingError

ZERO = Decimal("0")

MODE_DYNAMIC = "dynamic"
MODE_STATIC = "static"


def to_decimal(value, *, field_name: str = "value") -> Decimal:
    """
    Strict Decimal coercion.

    - Decimal: returned as-is
    - int / float / numeric str: converted via str()
    - bool, None, "", non-numeric: PricingError
    """
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise PricingError(f"{field_name} must be a finite number", {field_name: str(value)})
        return value

    if value is None or value == "" or isinstance(value, bool):
        raise PricingError(f"{field_name} is required", {field_name: value})

    try:
        dec = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise PricingError(f"{field_name} must be numeric", {field_name: value}) from exc

    if not dec.is_finite():
        raise PricingError(f"{field_name} must be a finite number", {field_name: value})
    return dec


def to_quantity(value, *, field_name: str = "quantity") -> int:
    """
    Quantity normalizer.
    HARD RULE: quantities are integer units in this system.
    """
    if isinstance(value, bool):
        raise PricingError(f"{field_name} must be a whole integer unit", {field_name: value})

    if isinstance(value, int):
        return value

    dec = to_decimal(value, field_name=field_name)
    if dec != dec.to_integral_value():
        raise PricingError(f"{field_name} must be a whole integer unit", {field_name: value})
    return int(dec)


@dataclass(frozen=True)
class PricingRates:
    """
    Invoice-level pricing snapshot.

    price_per_gram == 0 means dynamic pricing is disabled and every line
    falls back to its stored static unit price.
    """

    price_per_gram: Decimal
    labor_percentage: Decimal
    profit_percentage: Decimal
    tax_percentage: Decimal

    @classmethod
    def of(cls, *, price_per_gram, labor_percentage, profit_percentage, tax_percentage) -> "PricingRates":
        return cls(
            price_per_gram=to_decimal(price_per_gram, field_name="price_per_gram"),
            labor_percentage=to_decimal(labor_percentage, field_name="labor_percentage"),
            profit_percentage=to_decimal(profit_percentage, field_name="profit_percentage"),
            tax_percentage=to_decimal(tax_percentage, field_name="tax_percentage"),
        )

    @property
    def is_dynamic(self) -> bool:
        return self.price_per_gram != ZERO

    def as_dict(self) -> dict:
        return {
            "price_per_gram": str(self.price_per_gram),
            "labor_percentage": str(self.labor_percentage),
            "profit_percentage": str(self.profit_percentage),
            "tax_percentage": str(self.tax_percentage),
        }


@dataclass(frozen=True)
class PricingParams:
    """Inputs of the dynamic formula for one line."""

    weight: Decimal
    price_per_gram: Decimal
    labor_percentage: Decimal = ZERO
    profit_percentage: Decimal = ZERO
    tax_percentage: Decimal = ZERO
    quantity: int = 1

    @classmethod
    def of(
        cls,
        *,
        weight,
        price_per_gram,
        labor_percentage=ZERO,
        profit_percentage=ZERO,
        tax_percentage=ZERO,
        quantity=1,
    ) -> "PricingParams":
        return cls(
            weight=to_decimal(weight, field_name="weight"),
            price_per_gram=to_decimal(price_per_gram, field_name="price_per_gram"),
            labor_percentage=to_decimal(labor_percentage, field_name="labor_percentage"),
            profit_percentage=to_decimal(profit_percentage, field_name="profit_percentage"),
            tax_percentage=to_decimal(tax_percentage, field_name="tax_percentage"),
            quantity=to_quantity(quantity),
        )

    @classmethod
    def for_line(cls, *, weight, quantity, rates: PricingRates) -> "PricingParams":
        return cls.of(
            weight=weight,
            price_per_gram=rates.price_per_gram,
            labor_percentage=rates.labor_percentage,
            profit_percentage=rates.profit_percentage,
            tax_percentage=rates.tax_percentage,
            quantity=quantity,
        )

    def as_dict(self) -> dict:
        return {
            "weight": str(self.weight),
            "price_per_gram": str(self.price_per_gram),
            "labor_percentage": str(self.labor_percentage),
            "profit_percentage": str(self.profit_percentage),
            "tax_percentage": str(self.tax_percentage),
            "quantity": self.quantity,
        }


@dataclass(frozen=True)
class UnitComponents:
    """Per-unit components, each rounded on its own (display only)."""

    base_gold_cost: Decimal
    labor_cost: Decimal
    profit: Decimal
    tax: Decimal


@dataclass(frozen=True)
class PriceBreakdown:
    """
    Priced line.

    base_gold_cost / labor_cost / profit / tax are rounded at batch scale
    (unit value * quantity, then rounded). unit_price / total_price are
    rounded from the unrounded running values. The two views can differ by
    one cent; both are kept exactly as computed.
    """

    mode: str
    quantity: int
    base_gold_cost: Decimal
    labor_cost: Decimal
    profit: Decimal
    tax: Decimal
    unit_price: Decimal
    total_price: Decimal
    per_unit: UnitComponents | None = None
    params: PricingParams | None = field(default=None, compare=False)

    @property
    def is_dynamic(self) -> bool:
        return self.mode == MODE_DYNAMIC

    def as_dict(self) -> dict:
        out = {
            "mode": self.mode,
            "quantity": self.quantity,
            "base_gold_cost": str(self.base_gold_cost),
            "labor_cost": str(self.labor_cost),
            "profit": str(self.profit),
            "tax": str(self.tax),
            "unit_price": str(self.unit_price),
            "total_price": str(self.total_price),
        }
        if self.per_unit is not None:
            out["per_unit"] = {
                "base_gold_cost": str(self.per_unit.base_gold_cost),
                "labor_cost": str(self.per_unit.labor_cost),
                "profit": str(self.per_unit.profit),
                "tax": str(self.per_unit.tax),
            }
        return out


@dataclass(frozen=True)
class PricingDefaults:
    """
    Business defaults for the percentage markups.

    Built once from settings.PRICING_DEFAULTS and injected into the invoice
    orchestrator; services never read settings for these on their own.
    """

    labor_percentage: Decimal = Decimal("10.00")
    profit_percentage: Decimal = Decimal("15.00")
    tax_percentage: Decimal = Decimal("9.00")

    @classmethod
    def from_settings(cls) -> "PricingDefaults":
        from django.conf import settings

        raw = getattr(settings, "PRICING_DEFAULTS", None) or {}
        base = cls()
        return cls(
            labor_percentage=to_decimal(
                raw.get("LABOR_PERCENTAGE", base.labor_percentage),
                field_name="labor_percentage",
            ),
            profit_percentage=to_decimal(
                raw.get("PROFIT_PERCENTAGE", base.profit_percentage),
                field_name="profit_percentage",
            ),
            tax_percentage=to_decimal(
                raw.get("TAX_PERCENTAGE", base.tax_percentage),
                field_name="tax_percentage",
            ),
        )
