# pricing/tests/test_engine.py

from __future__ import annotations

from decimal import Decimal

from django.test import SimpleTestCase, override_settings

from pricing.engine import (
    calculate_item_price,
    get_price_breakdown,
    price_line,
    static_price,
    validate_pricing_params,
)
from pricing.exceptions import PricingError
from pricing.types import PricingDefaults, PricingParams, PricingRates


class GoldFormulaTests(SimpleTestCase):
    """
    GUARANTEES:
    - Formula order: labor on base, profit on base+labor, tax on base+labor+profit
    - Components rounded at batch scale, unit/total rounded from unrounded values
    - ROUND_HALF_UP to 2dp
    """

    def test_reference_calculation(self):
        result = calculate_item_price(
            PricingParams.of(
                weight=5.0,
                price_per_gram=60.0,
                labor_percentage=10,
                profit_percentage=15,
                tax_percentage=9,
                quantity=1,
            )
        )

        self.assertEqual(result.base_gold_cost, Decimal("300.00"))
        self.assertEqual(result.labor_cost, Decimal("30.00"))
        self.assertEqual(result.profit, Decimal("49.50"))
        self.assertEqual(result.tax, Decimal("34.16"))
        self.assertEqual(result.unit_price, Decimal("413.66"))
        self.assertEqual(result.total_price, Decimal("413.66"))
        self.assertTrue(result.is_dynamic)

    def test_mapping_input_matches_typed_input(self):
        typed = calculate_item_price(
            PricingParams.of(
                weight="5", price_per_gram="60", labor_percentage="10",
                profit_percentage="15", tax_percentage="9", quantity=2,
            )
        )
        mapped = calculate_item_price(
            {
                "weight": "5",
                "price_per_gram": "60",
                "labor_percentage": "10",
                "profit_percentage": "15",
                "tax_percentage": "9",
                "quantity": 2,
            }
        )
        self.assertEqual(typed, mapped)
        self.assertEqual(mapped.total_price, Decimal("827.31"))

    def test_components_rounded_at_batch_scale(self):
        # base per unit 0.335 -> 0.34 rounded alone, but 3 x 0.335 = 1.005 -> 1.01
        result = calculate_item_price(
            PricingParams.of(weight=1, price_per_gram="0.335", quantity=3)
        )

        self.assertEqual(result.base_gold_cost, Decimal("1.01"))
        self.assertEqual(result.per_unit.base_gold_cost, Decimal("0.34"))
        self.assertEqual(result.unit_price, Decimal("0.34"))
        self.assertEqual(result.total_price, Decimal("1.01"))
        # The per-unit view and the batch view differ by one cent and both are kept.
        self.assertNotEqual(result.unit_price * result.quantity, result.total_price)

    def test_zero_percentages_price_gold_only(self):
        result = calculate_item_price(
            PricingParams.of(weight="2.5", price_per_gram="80", quantity=1)
        )
        self.assertEqual(result.labor_cost, Decimal("0.00"))
        self.assertEqual(result.profit, Decimal("0.00"))
        self.assertEqual(result.tax, Decimal("0.00"))
        self.assertEqual(result.total_price, Decimal("200.00"))

    def test_invalid_params_raise_with_snapshot(self):
        with self.assertRaises(PricingError) as ctx:
            calculate_item_price({"weight": 0, "price_per_gram": 60, "quantity": 1})

        self.assertIn("weight", ctx.exception.errors)
        self.assertEqual(ctx.exception.params["weight"], 0)

    def test_negative_percentage_is_not_clamped(self):
        with self.assertRaises(PricingError) as ctx:
            calculate_item_price(
                {"weight": 1, "price_per_gram": 60, "quantity": 1, "labor_percentage": -5}
            )
        self.assertIn("labor_percentage", ctx.exception.errors)


class StaticFallbackTests(SimpleTestCase):
    def test_static_price(self):
        result = static_price(Decimal("100"), 3)

        self.assertEqual(result.base_gold_cost, Decimal("0.00"))
        self.assertEqual(result.labor_cost, Decimal("0.00"))
        self.assertEqual(result.profit, Decimal("0.00"))
        self.assertEqual(result.tax, Decimal("0.00"))
        self.assertEqual(result.unit_price, Decimal("100.00"))
        self.assertEqual(result.total_price, Decimal("300.00"))
        self.assertFalse(result.is_dynamic)

    def test_price_line_uses_static_branch_when_gold_price_is_zero(self):
        rates = PricingRates.of(
            price_per_gram=0, labor_percentage=10, profit_percentage=15, tax_percentage=9
        )
        result = price_line(weight="5", quantity=3, rates=rates, static_unit_price="100")

        self.assertEqual(result.mode, "static")
        self.assertEqual(result.total_price, Decimal("300.00"))

    def test_price_line_uses_formula_when_gold_price_set(self):
        rates = PricingRates.of(
            price_per_gram=60, labor_percentage=10, profit_percentage=15, tax_percentage=9
        )
        result = price_line(weight="5", quantity=1, rates=rates, static_unit_price="100")

        self.assertEqual(result.mode, "dynamic")
        self.assertEqual(result.total_price, Decimal("413.66"))

    def test_price_line_without_weight_uses_static_branch(self):
        rates = PricingRates.of(
            price_per_gram=60, labor_percentage=10, profit_percentage=15, tax_percentage=9
        )
        result = price_line(weight=0, quantity=2, rates=rates, static_unit_price="250")

        self.assertEqual(result.mode, "static")
        self.assertEqual(result.total_price, Decimal("500.00"))

    def test_missing_static_price_is_an_error(self):
        with self.assertRaises(PricingError) as ctx:
            static_price(None, 2)
        self.assertIn("unit_price", ctx.exception.errors)


class ValidatePricingParamsTests(SimpleTestCase):
    def test_zero_weight_reported_without_raising(self):
        errors = validate_pricing_params(
            {"weight": 0, "price_per_gram": 60, "quantity": 1}
        )
        self.assertEqual(set(errors), {"weight"})

    def test_weight_error_independent_of_other_fields(self):
        errors = validate_pricing_params(
            {"weight": 0, "price_per_gram": "abc", "quantity": -1, "tax_percentage": -1}
        )
        self.assertIn("weight", errors)
        self.assertIn("price_per_gram", errors)
        self.assertIn("quantity", errors)
        self.assertIn("tax_percentage", errors)

    def test_valid_params_return_empty_map(self):
        params = PricingParams.of(
            weight=1, price_per_gram=50, labor_percentage=0,
            profit_percentage=0, tax_percentage=0, quantity=1,
        )
        self.assertEqual(validate_pricing_params(params), {})

    def test_implausible_percentages(self):
        errors = validate_pricing_params(
            {
                "weight": 1,
                "price_per_gram": 50,
                "quantity": 1,
                "labor_percentage": 1500,
                "tax_percentage": 150,
            }
        )
        self.assertIn("labor_percentage", errors)
        self.assertIn("tax_percentage", errors)
        self.assertNotIn("profit_percentage", errors)

    def test_fractional_quantity_rejected(self):
        errors = validate_pricing_params({"weight": 1, "price_per_gram": 50, "quantity": "1.5"})
        self.assertIn("quantity", errors)


class PriceBreakdownDisplayTests(SimpleTestCase):
    def test_named_components(self):
        data = get_price_breakdown(
            {
                "weight": "5",
                "price_per_gram": "60",
                "labor_percentage": "10",
                "profit_percentage": "15",
                "tax_percentage": "9",
                "quantity": 2,
            }
        )

        names = [c["name"] for c in data["components"]]
        self.assertEqual(names, ["Base Gold Cost", "Labor Cost", "Profit", "Tax"])
        self.assertEqual(data["components"][0]["amount"], Decimal("300.00"))
        self.assertEqual(data["components"][3]["amount"], Decimal("34.16"))
        self.assertEqual(data["unit_price"], Decimal("413.66"))
        self.assertEqual(data["quantity"], 2)
        self.assertEqual(data["total_price"], Decimal("827.31"))


class PricingDefaultsTests(SimpleTestCase):
    @override_settings(
        PRICING_DEFAULTS={
            "LABOR_PERCENTAGE": "12.5",
            "PROFIT_PERCENTAGE": "20",
            "TAX_PERCENTAGE": "7",
        }
    )
    def test_from_settings(self):
        defaults = PricingDefaults.from_settings()
        self.assertEqual(defaults.labor_percentage, Decimal("12.5"))
        self.assertEqual(defaults.profit_percentage, Decimal("20"))
        self.assertEqual(defaults.tax_percentage, Decimal("7"))

    @override_settings(PRICING_DEFAULTS={})
    def test_hardcoded_fallback(self):
        self.assertEqual(PricingDefaults.from_settings(), PricingDefaults())
