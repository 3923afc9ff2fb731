# invoices/tests/test_invoice_lifecycle.py

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from customers.models import Customer
from inventory.models import InventoryItem
from inventory.services.exceptions import InsufficientInventoryError
from invoices import signals
from invoices.models import Invoice
from invoices.services import invoice_lifecycle
from invoices.services.exceptions import InvalidInvoiceTransitionError
from invoices.services.invoice_numbering import next_invoice_number
from invoices.services.invoice_orchestrator import InvoiceOrchestrator


class TransitionRulesTests(SimpleTestCase):
    def test_allowed_transitions(self):
        self.assertTrue(invoice_lifecycle.can_transition(from_status="draft", to_status="issued"))
        self.assertTrue(invoice_lifecycle.can_transition(from_status="issued", to_status="paid"))
        self.assertTrue(invoice_lifecycle.can_transition(from_status="paid", to_status="cancelled"))

    def test_forbidden_transitions(self):
        self.assertFalse(invoice_lifecycle.can_transition(from_status="draft", to_status="paid"))
        self.assertFalse(invoice_lifecycle.can_transition(from_status="paid", to_status="issued"))
        self.assertFalse(invoice_lifecycle.can_transition(from_status="cancelled", to_status="draft"))
        self.assertFalse(invoice_lifecycle.can_transition(from_status="issued", to_status="issued"))


class StatusWorkflowTests(TestCase):
    """
    GUARANTEES:
    - draft -> issued -> paid, each stamping its timestamp
    - illegal moves raise and change nothing
    - status changes never touch stock
    """

    def setUp(self):
        self.customer = Customer.objects.create(name="Ali")
        self.item = InventoryItem.objects.create(
            sku="PEND-1", name="Pendant", quantity=5, unit_price=Decimal("80.00")
        )
        self.orchestrator = InvoiceOrchestrator()
        self.invoice = self.orchestrator.create_invoice(
            {
                "customer_id": str(self.customer.pk),
                "items": [{"inventory_item_id": str(self.item.pk), "quantity": 1}],
            }
        )

    def test_issue_then_pay(self):
        self.orchestrator.issue_invoice(self.invoice)
        self.assertEqual(self.invoice.status, Invoice.STATUS_ISSUED)
        self.assertIsNotNone(self.invoice.issued_at)

        self.orchestrator.mark_paid(self.invoice)
        self.assertEqual(self.invoice.status, Invoice.STATUS_PAID)
        self.assertIsNotNone(self.invoice.paid_at)
        self.assertFalse(self.invoice.is_overdue)

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 4)

    def test_draft_cannot_be_paid(self):
        with self.assertRaises(InvalidInvoiceTransitionError):
            self.orchestrator.mark_paid(self.invoice)

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.STATUS_DRAFT)
        self.assertIsNone(self.invoice.paid_at)

    def test_cancelled_is_terminal(self):
        self.orchestrator.cancel_invoice(self.invoice)

        with self.assertRaises(InvalidInvoiceTransitionError):
            self.orchestrator.issue_invoice(self.invoice)
        self.assertTrue(self.invoice.is_cancelled)

    def test_overdue_flag(self):
        self.invoice.due_date = timezone.localdate() - timedelta(days=1)
        self.assertTrue(self.invoice.is_overdue)


class InvoiceItemImmutabilityTests(TestCase):
    def test_lines_are_write_once(self):
        customer = Customer.objects.create(name="Neda")
        item = InventoryItem.objects.create(
            sku="BR-1", name="Bracelet", quantity=3, unit_price=Decimal("10.00")
        )
        invoice = InvoiceOrchestrator().create_invoice(
            {
                "customer_id": str(customer.pk),
                "items": [{"inventory_item_id": str(item.pk), "quantity": 2}],
            }
        )
        line = invoice.items.get()

        line.quantity = 1
        with self.assertRaises(ValidationError):
            line.save()


# ============================================================
# NUMBERING
# ============================================================


class InvoiceNumberingTests(TestCase):
    def setUp(self):
        self.customer = Customer.objects.create(name="Numbering")

    def _invoice(self, number):
        today = timezone.localdate()
        return Invoice.objects.create(
            invoice_number=number,
            customer=self.customer,
            issue_date=today,
            due_date=today,
        )

    def test_first_number_of_the_month(self):
        self.assertEqual(next_invoice_number(on=date(2026, 1, 15)), "INV-202601-0001")

    def test_sequence_continues_and_ignores_foreign_numbers(self):
        self._invoice("INV-202601-0007")
        self._invoice("INV-202601-0002")
        self._invoice("INV-202601-SPECIAL")
        self._invoice("INV-202512-0040")

        self.assertEqual(next_invoice_number(on=date(2026, 1, 31)), "INV-202601-0008")
        self.assertEqual(next_invoice_number(on=date(2026, 2, 1)), "INV-202602-0001")

    def test_sequence_grows_past_four_digits(self):
        self._invoice("INV-202601-9999")
        self._invoice("INV-202601-0500")

        self.assertEqual(next_invoice_number(on=date(2026, 1, 20)), "INV-202601-10000")

    @override_settings(INVOICE_NUMBER_PREFIX="GLD")
    def test_prefix_from_settings_or_argument(self):
        on = date(2026, 5, 1)
        self.assertEqual(next_invoice_number(on=on), "GLD-202605-0001")
        self.assertEqual(next_invoice_number(on=on, prefix="SHOP"), "SHOP-202605-0001")


# ============================================================
# SIGNALS
# ============================================================


class InvoiceSignalTests(TestCase):
    """
    GUARANTEES:
    - Signals fire only after commit, with a plain snapshot payload
    - Rolled-back operations send nothing
    - invoice_cancelled fires once, carrying the reason
    """

    def setUp(self):
        self.customer = Customer.objects.create(name="Signals")
        self.item = InventoryItem.objects.create(
            sku="SIG-1", name="Signet ring", quantity=3, unit_price=Decimal("120.00")
        )
        self.orchestrator = InvoiceOrchestrator()
        self.received = []

        for sig in (signals.invoice_created, signals.invoice_updated, signals.invoice_cancelled):
            sig.connect(self._record, dispatch_uid=f"test-{id(sig)}")
            self.addCleanup(sig.disconnect, dispatch_uid=f"test-{id(sig)}")

    def _record(self, signal, sender, **payload):
        self.received.append((signal, payload))

    def _data(self, qty):
        return {
            "customer_id": str(self.customer.pk),
            "items": [{"inventory_item_id": str(self.item.pk), "quantity": qty}],
        }

    def test_created_payload(self):
        with self.captureOnCommitCallbacks(execute=True):
            invoice = self.orchestrator.create_invoice(self._data(2))

        self.assertEqual(len(self.received), 1)
        signal, payload = self.received[0]
        self.assertIs(signal, signals.invoice_created)
        self.assertEqual(payload["invoice_id"], str(invoice.pk))
        self.assertEqual(payload["invoice_number"], invoice.invoice_number)
        self.assertEqual(payload["customer_id"], str(self.customer.pk))
        self.assertEqual(payload["total_amount"], Decimal("240.00"))
        self.assertEqual(
            payload["lines"],
            [{"item_id": str(self.item.pk), "quantity": 2, "total_price": Decimal("240.00")}],
        )

    def test_nothing_sent_for_failed_create(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(InsufficientInventoryError):
                self.orchestrator.create_invoice(self._data(4))

        self.assertEqual(callbacks, [])
        self.assertEqual(self.received, [])

    def test_update_and_single_cancel(self):
        with self.captureOnCommitCallbacks(execute=True):
            invoice = self.orchestrator.create_invoice(self._data(1))
        with self.captureOnCommitCallbacks(execute=True):
            self.orchestrator.update_invoice(invoice, self._data(3))
        with self.captureOnCommitCallbacks(execute=True):
            self.orchestrator.cancel_invoice(invoice, "Customer request")
            self.orchestrator.cancel_invoice(invoice, "Second click")

        sent = [s for s, _ in self.received]
        self.assertEqual(
            sent, [signals.invoice_created, signals.invoice_updated, signals.invoice_cancelled]
        )
        self.assertEqual(self.received[1][1]["total_amount"], Decimal("360.00"))
        self.assertEqual(self.received[2][1]["reason"], "Customer request")
        self.assertEqual(self.received[2][1]["status"], Invoice.STATUS_CANCELLED)

