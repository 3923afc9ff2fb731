# pricing/engine.py

"""
GOLD PRICING ENGINE (PURE COMPUTATION)

Purpose:
- Price one jewelry line from weight x gold price per gram plus percentage markups.
- Provide the explicit static fallback (stored unit price) when dynamic pricing is off.
- Validate pricing input without raising (field -> message map).

Formula (unit level, nothing rounded until the end):
    base_unit   = weight * price_per_gram
    labor_unit  = base_unit * labor% / 100
    subtotal1   = base_unit + labor_unit
    profit_unit = subtotal1 * profit% / 100
    subtotal2   = subtotal1 + profit_unit
    tax_unit    = subtotal2 * tax% / 100
    unit_price  = subtotal2 + tax_unit
    total_price = unit_price * quantity

ROUNDING CONTRACT (compatibility, not an approximation choice):
- Components are rounded at batch scale: round(component_unit * quantity).
- unit_price and total_price are rounded from the unrounded running values,
  NEVER rebuilt by summing rounded components.
- 2 decimal places, ROUND_HALF_UP, each field independently.

Hard rules:
- No I/O, no state, no DB.
- Invalid input raises PricingError; it is never clamped or defaulted.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal

from pricing.exceptions import PricingError
from pricing.types import (
    MODE_DYNAMIC,
    MODE_STATIC,
    ZERO,
    PriceBreakdown,
    PricingParams,
    PricingRates,
    UnitComponents,
    to_decimal,
    to_quantity,
)

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
HUNDRED = Decimal("100")

MAX_LABOR_PERCENTAGE = Decimal("1000")
MAX_PROFIT_PERCENTAGE = Decimal("1000")
MAX_TAX_PERCENTAGE = Decimal("100")


def _money(v: Decimal) -> Decimal:
    return v.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _is_zero(raw) -> bool:
    try:
        return to_decimal(raw) == ZERO
    except PricingError:
        return False


# ============================================================
# VALIDATION (NON-RAISING)
# ============================================================

def _raw_value(params, key: str, *aliases: str):
    if isinstance(params, PricingParams):
        return getattr(params, key)
    for k in (key, *aliases):
        if k in params:
            return params[k]
    return None


def _has_value(params, key: str, *aliases: str) -> bool:
    if isinstance(params, PricingParams):
        return True
    return any(k in params and params[k] not in (None, "") for k in (key, *aliases))


def _positive_error(raw, message: str) -> str | None:
    try:
        value = to_decimal(raw)
    except PricingError:
        return message
    if value <= ZERO:
        return message
    return None


def _percentage_error(raw, label: str, ceiling: Decimal) -> str | None:
    try:
        value = to_decimal(raw)
    except PricingError:
        return f"{label} percentage must be numeric"
    if value < ZERO:
        return f"{label} percentage cannot be negative"
    if value > ceiling:
        return f"{label} percentage seems unusually high (>{ceiling}%)"
    return None


def validate_pricing_params(params) -> dict[str, str]:
    """
    Return a field -> message map; empty means valid.

    Accepts a PricingParams or a plain mapping. Each field is judged on its
    own, so an invalid weight is reported even when everything else is broken
    too. Percentages are optional in a mapping (missing means 0).
    Never raises, never mutates.
    """
    if not isinstance(params, (PricingParams, Mapping)):
        return {"params": "Pricing parameters must be a mapping"}

    errors: dict[str, str] = {}

    msg = _positive_error(_raw_value(params, "weight"), "Weight must be greater than zero")
    if msg:
        errors["weight"] = msg

    msg = _positive_error(
        _raw_value(params, "price_per_gram", "gold_price_per_gram"),
        "Gold price per gram must be greater than zero",
    )
    if msg:
        errors["price_per_gram"] = msg

    raw_qty = _raw_value(params, "quantity")
    try:
        qty = to_quantity(raw_qty)
    except PricingError:
        errors["quantity"] = "Quantity must be a whole number greater than zero"
    else:
        if qty <= 0:
            errors["quantity"] = "Quantity must be greater than zero"

    for key, label, ceiling in (
        ("labor_percentage", "Labor", MAX_LABOR_PERCENTAGE),
        ("profit_percentage", "Profit", MAX_PROFIT_PERCENTAGE),
        ("tax_percentage", "Tax", MAX_TAX_PERCENTAGE),
    ):
        if not _has_value(params, key):
            continue
        msg = _percentage_error(_raw_value(params, key), label, ceiling)
        if msg:
            errors[key] = msg

    return errors


def _snapshot(params) -> dict:
    if isinstance(params, PricingParams):
        return params.as_dict()
    return {k: params[k] for k in params} if isinstance(params, Mapping) else {"params": params}


def _coerce_params(params) -> PricingParams:
    errors = validate_pricing_params(params)
    if errors:
        logger.warning(
            "Rejected pricing parameters",
            extra={"pricing_params": _snapshot(params), "pricing_errors": errors},
        )
        raise PricingError("Invalid pricing parameters", params=_snapshot(params), errors=errors)

    if isinstance(params, PricingParams):
        return params

    return PricingParams.of(
        weight=_raw_value(params, "weight"),
        price_per_gram=_raw_value(params, "price_per_gram", "gold_price_per_gram"),
        labor_percentage=params.get("labor_percentage") or ZERO,
        profit_percentage=params.get("profit_percentage") or ZERO,
        tax_percentage=params.get("tax_percentage") or ZERO,
        quantity=_raw_value(params, "quantity"),
    )


# ============================================================
# DYNAMIC PRICING
# ============================================================

def calculate_item_price(params) -> PriceBreakdown:
    """
    Price one line with the gold formula.

    Raises PricingError (with the parameter snapshot) on invalid input.
    """
    p = _coerce_params(params)
    qty = Decimal(p.quantity)

    base_unit = p.weight * p.price_per_gram
    labor_unit = base_unit * p.labor_percentage / HUNDRED
    subtotal1 = base_unit + labor_unit
    profit_unit = subtotal1 * p.profit_percentage / HUNDRED
    subtotal2 = subtotal1 + profit_unit
    tax_unit = subtotal2 * p.tax_percentage / HUNDRED
    unit_price = subtotal2 + tax_unit
    total_price = unit_price * qty

    if unit_price < ZERO or total_price < ZERO:
        raise PricingError(
            "Calculated price cannot be negative",
            params=p.as_dict(),
            errors={"unit_price": str(unit_price), "total_price": str(total_price)},
        )

    breakdown = PriceBreakdown(
        mode=MODE_DYNAMIC,
        quantity=p.quantity,
        base_gold_cost=_money(base_unit * qty),
        labor_cost=_money(labor_unit * qty),
        profit=_money(profit_unit * qty),
        tax=_money(tax_unit * qty),
        unit_price=_money(unit_price),
        total_price=_money(total_price),
        per_unit=UnitComponents(
            base_gold_cost=_money(base_unit),
            labor_cost=_money(labor_unit),
            profit=_money(profit_unit),
            tax=_money(tax_unit),
        ),
        params=p,
    )

    logger.debug(
        "Gold pricing calculation",
        extra={"pricing_params": p.as_dict(), "breakdown": breakdown.as_dict()},
    )
    return breakdown


# ============================================================
# STATIC FALLBACK
# ============================================================

def static_price(unit_price, quantity) -> PriceBreakdown:
    """
    Static fallback branch (dynamic pricing disabled for the line).

    All cost components are zero; unit_price is the stored item price and
    total_price = unit_price * quantity. A missing stored price is an error,
    not a silent zero.
    """
    if unit_price is None:
        raise PricingError(
            "Item has no stored unit price and dynamic pricing is disabled",
            params={"unit_price": None, "quantity": quantity},
            errors={"unit_price": "A stored unit price is required when gold price is 0"},
        )

    snapshot = {"unit_price": unit_price, "quantity": quantity}
    try:
        price = to_decimal(unit_price, field_name="unit_price")
    except PricingError as exc:
        raise PricingError(
            "Invalid static pricing parameters", params=snapshot, errors={"unit_price": exc.message}
        ) from exc
    try:
        qty = to_quantity(quantity)
    except PricingError as exc:
        raise PricingError(
            "Invalid static pricing parameters", params=snapshot, errors={"quantity": exc.message}
        ) from exc

    errors = {}
    if price < ZERO:
        errors["unit_price"] = "Unit price cannot be negative"
    if qty <= 0:
        errors["quantity"] = "Quantity must be greater than zero"
    if errors:
        raise PricingError(
            "Invalid static pricing parameters",
            params={"unit_price": str(price), "quantity": qty},
            errors=errors,
        )

    return PriceBreakdown(
        mode=MODE_STATIC,
        quantity=qty,
        base_gold_cost=Decimal("0.00"),
        labor_cost=Decimal("0.00"),
        profit=Decimal("0.00"),
        tax=Decimal("0.00"),
        unit_price=_money(price),
        total_price=_money(price * Decimal(qty)),
    )


def price_line(*, weight, quantity, rates: PricingRates, static_unit_price=None) -> PriceBreakdown:
    """
    Pick the pricing branch for one invoice line.

    - rates.price_per_gram == 0  -> static fallback (stored unit price)
    - line has no weight (None/0) -> static fallback
    - otherwise                   -> dynamic gold formula
    """
    if not rates.is_dynamic or weight in (None, "") or _is_zero(weight):
        return static_price(static_unit_price, quantity)

    return calculate_item_price(
        {
            "weight": weight,
            "price_per_gram": rates.price_per_gram,
            "labor_percentage": rates.labor_percentage,
            "profit_percentage": rates.profit_percentage,
            "tax_percentage": rates.tax_percentage,
            "quantity": quantity,
        }
    )


# ============================================================
# DISPLAY
# ============================================================

def get_price_breakdown(params) -> dict:
    """
    Display-oriented decomposition (per-unit components + totals).
    Read-only; derived from calculate_item_price.
    """
    calc = calculate_item_price(params)
    p = calc.params
    unit = calc.per_unit

    return {
        "components": [
            {
                "name": "Base Gold Cost",
                "amount": unit.base_gold_cost,
                "description": f"Weight ({p.weight}g) x Gold Price ({p.price_per_gram} per gram)",
            },
            {
                "name": "Labor Cost",
                "amount": unit.labor_cost,
                "description": f"{p.labor_percentage}% of base gold cost",
            },
            {
                "name": "Profit",
                "amount": unit.profit,
                "description": f"{p.profit_percentage}% of subtotal",
            },
            {
                "name": "Tax",
                "amount": unit.tax,
                "description": f"{p.tax_percentage}% of subtotal with profit",
            },
        ],
        "unit_price": calc.unit_price,
        "quantity": calc.quantity,
        "total_price": calc.total_price,
    }
