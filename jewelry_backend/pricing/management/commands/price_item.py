# pricing/management/commands/price_item.py

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from pricing.engine import get_price_breakdown, validate_pricing_params
from pricing.exceptions import PricingError
from pricing.types import PricingDefaults


class Command(BaseCommand):
    help = "Print the gold pricing breakdown for one item (percentages default to settings.PRICING_DEFAULTS)."

    def add_arguments(self, parser):
        parser.add_argument("--weight", required=True, help="Weight in grams")
        parser.add_argument("--price-per-gram", dest="price_per_gram", required=True, help="Gold price per gram")
        parser.add_argument("--labor", dest="labor_percentage", help="Labor percentage")
        parser.add_argument("--profit", dest="profit_percentage", help="Profit percentage")
        parser.add_argument("--tax", dest="tax_percentage", help="Tax percentage")
        parser.add_argument("--quantity", default="1", help="Quantity (whole units)")

    def handle(self, *args, **options):
        defaults = PricingDefaults.from_settings()

        params = {
            "weight": options["weight"],
            "price_per_gram": options["price_per_gram"],
            "labor_percentage": options.get("labor_percentage") or defaults.labor_percentage,
            "profit_percentage": options.get("profit_percentage") or defaults.profit_percentage,
            "tax_percentage": options.get("tax_percentage") or defaults.tax_percentage,
            "quantity": options["quantity"],
        }

        errors = validate_pricing_params(params)
        if errors:
            for field, message in errors.items():
                self.stderr.write(self.style.ERROR(f"[FAIL] {field}: {message}"))
            raise CommandError("Invalid pricing parameters")

        try:
            data = get_price_breakdown(params)
        except PricingError as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(self.style.MIGRATE_HEADING("Gold Pricing Breakdown (per unit)"))
        for component in data["components"]:
            self.stdout.write(f"  {component['name']:<16} {component['amount']:>12}   {component['description']}")

        self.stdout.write("")
        self.stdout.write(f"  {'Unit price':<16} {data['unit_price']:>12}")
        self.stdout.write(f"  {'Quantity':<16} {data['quantity']:>12}")
        self.stdout.write(self.style.SUCCESS(f"  {'Total price':<16} {data['total_price']:>12}"))
