# invoices/management/commands/verify_reservations.py

from __future__ import annotations

from collections import defaultdict

from django.core.management.base import BaseCommand

from inventory.services.ledger import outstanding_reservations
from invoices.models import Invoice


class Command(BaseCommand):
    help = "Verify invoice lines against the inventory movement log (reservation integrity)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any error is found.",
        )

    def handle(self, *args, **options):
        strict = bool(options.get("strict"))

        self.stdout.write(self.style.MIGRATE_HEADING("Invoice → Inventory Reservation Check"))

        errors = 0
        checked = 0

        invoices = Invoice.objects.prefetch_related("items").order_by("created_at")

        for invoice in invoices.iterator(chunk_size=200):
            checked += 1
            held = outstanding_reservations(invoice)

            if invoice.status == Invoice.STATUS_CANCELLED or not invoice.inventory_reserved:
                expected = {}
            else:
                expected = defaultdict(int)
                for line in invoice.items.all():
                    expected[str(line.inventory_item_id)] += int(line.quantity)
                expected = dict(expected)

            if held != expected:
                errors += 1
                self.stderr.write(
                    self.style.ERROR(
                        f"[FAIL] {invoice.invoice_number} ({invoice.status}, reserved={invoice.inventory_reserved})"
                    )
                )
                self.stderr.write(f"  expected={expected}")
                self.stderr.write(f"  held    ={held}")

            if invoice.status == Invoice.STATUS_CANCELLED and invoice.inventory_reserved:
                errors += 1
                self.stderr.write(
                    self.style.ERROR(f"[FAIL] {invoice.invoice_number} is cancelled but still flagged reserved")
                )

        self.stdout.write(f"Invoices checked: {checked}")
        self.stdout.write("")
        if errors == 0:
            self.stdout.write(self.style.SUCCESS("✅ RESERVATIONS CONSISTENT"))
        else:
            self.stderr.write(self.style.ERROR(f"❌ RESERVATION CHECK FOUND ISSUES: {errors} problem(s)"))

        return self._exit(strict and errors > 0)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None
