# inventory/management/commands/low_stock_report.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from inventory.services.ledger import get_low_stock_items


class Command(BaseCommand):
    help = "List active inventory items below their minimum stock (lowest quantity first)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any item is below minimum stock.",
        )

    def handle(self, *args, **options):
        strict = bool(options.get("strict"))
        items = list(get_low_stock_items())

        self.stdout.write(self.style.MIGRATE_HEADING("Low Stock Report"))

        if not items:
            self.stdout.write(self.style.SUCCESS("[OK] No items below minimum stock"))
            return None

        for item in items:
            shortfall = int(item.minimum_stock) - int(item.quantity)
            self.stdout.write(
                f"  {item.sku:<16} {item.name:<40} on hand={item.quantity} "
                f"minimum={item.minimum_stock} short={shortfall}"
            )

        self.stdout.write("")
        self.stderr.write(self.style.WARNING(f"[WARN] {len(items)} item(s) below minimum stock"))

        if strict:
            raise SystemExit(1)
        return None
