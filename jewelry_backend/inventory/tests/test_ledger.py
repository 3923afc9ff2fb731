# inventory/tests/test_ledger.py

import threading
import uuid
from datetime import timedelta
from decimal import Decimal
from unittest import mock, skipUnless

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import connection, transaction
from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from customers.models import Customer
from inventory.models import InventoryItem, InventoryMovement
from inventory.services import ledger
from inventory.services.exceptions import (
    INSUFFICIENT_INVENTORY,
    ITEM_NOT_FOUND,
    InsufficientInventoryError,
    ReservationStateError,
    StockAdjustmentError,
)
from inventory.services.ledger import LineRequest
from invoices.models import Invoice, InvoiceItem

User = get_user_model()


def _item(sku, quantity, **kwargs):
    defaults = {
        "name": f"Piece {sku}",
        "weight": Decimal("5.000"),
        "unit_price": Decimal("100.00"),
    }
    defaults.update(kwargs)
    return InventoryItem.objects.create(sku=sku, quantity=quantity, **defaults)


def _invoice(customer, lines):
    """Static-priced invoice with the given (item, quantity) lines; no reservation yet."""
    today = timezone.localdate()
    invoice = Invoice.objects.create(
        invoice_number=f"TEST-{uuid.uuid4().hex[:10].upper()}",
        customer=customer,
        issue_date=today,
        due_date=today + timedelta(days=30),
    )
    for item, qty in lines:
        InvoiceItem.objects.create(
            invoice=invoice,
            inventory_item=item,
            name=item.name,
            sku=item.sku,
            quantity=qty,
            pricing_mode="static",
            unit_price=item.unit_price,
            total_price=item.unit_price * qty,
        )
    return invoice


class ReserveRestoreTests(TestCase):
    """
    GUARANTEES:
    - reserve N then restore N returns quantity to where it started
    - every change has exactly one movement (sale -N / return +N)
    - restore is idempotent; double reserve is rejected
    - any shortfall means nothing is written
    """

    def setUp(self):
        self.user = User.objects.create_user(username="clerk", password="pass")
        self.customer = Customer.objects.create(name="Sara")
        self.ring = _item("RING-1", 10)
        self.chain = _item("CHAIN-1", 2)

    def test_reserve_then_restore_round_trip(self):
        invoice = _invoice(self.customer, [(self.ring, 3)])

        sale_mvs = ledger.reserve(invoice, user=self.user)

        self.ring.refresh_from_db()
        self.assertEqual(self.ring.quantity, 7)
        self.assertEqual(len(sale_mvs), 1)
        self.assertEqual(sale_mvs[0].movement_type, InventoryMovement.MovementType.SALE)
        self.assertEqual(sale_mvs[0].quantity, -3)
        self.assertEqual(sale_mvs[0].reference_type, InventoryMovement.ReferenceType.INVOICE)
        self.assertEqual(sale_mvs[0].reference_id, str(invoice.pk))
        self.assertEqual(sale_mvs[0].performed_by, self.user)
        self.assertTrue(Invoice.objects.get(pk=invoice.pk).inventory_reserved)

        return_mvs = ledger.restore(invoice, user=self.user)

        self.ring.refresh_from_db()
        self.assertEqual(self.ring.quantity, 10)
        self.assertEqual(len(return_mvs), 1)
        self.assertEqual(return_mvs[0].movement_type, InventoryMovement.MovementType.RETURN)
        self.assertEqual(return_mvs[0].quantity, 3)
        self.assertEqual(
            return_mvs[0].reference_type, InventoryMovement.ReferenceType.INVOICE_CANCELLATION
        )
        self.assertEqual(ledger.movement_balance(self.ring), 0)
        self.assertFalse(Invoice.objects.get(pk=invoice.pk).inventory_reserved)

    def test_restore_twice_restores_once(self):
        invoice = _invoice(self.customer, [(self.ring, 4)])
        ledger.reserve(invoice)

        first = ledger.restore(invoice)
        second = ledger.restore(invoice)

        self.ring.refresh_from_db()
        self.assertEqual(self.ring.quantity, 10)
        self.assertEqual(len(first), 1)
        self.assertEqual(second, [])
        self.assertEqual(
            InventoryMovement.objects.filter(
                movement_type=InventoryMovement.MovementType.RETURN
            ).count(),
            1,
        )

    def test_restore_without_reservation_is_noop(self):
        invoice = _invoice(self.customer, [(self.ring, 4)])

        self.assertEqual(ledger.restore(invoice), [])

        self.ring.refresh_from_db()
        self.assertEqual(self.ring.quantity, 10)
        self.assertFalse(InventoryMovement.objects.exists())

    def test_reserve_twice_is_rejected(self):
        invoice = _invoice(self.customer, [(self.ring, 2)])
        ledger.reserve(invoice)

        with self.assertRaises(ReservationStateError):
            ledger.reserve(invoice)

        self.ring.refresh_from_db()
        self.assertEqual(self.ring.quantity, 8)

    def test_multi_item_shortfall_writes_nothing(self):
        invoice = _invoice(self.customer, [(self.ring, 3), (self.chain, 5)])

        with self.assertRaises(InsufficientInventoryError) as ctx:
            ledger.reserve(invoice)

        unavailable = ctx.exception.unavailable_items
        self.assertEqual(len(unavailable), 1)
        self.assertEqual(unavailable[0].item_id, str(self.chain.pk))
        self.assertEqual(unavailable[0].error, INSUFFICIENT_INVENTORY)
        self.assertEqual(unavailable[0].requested, 5)
        self.assertEqual(unavailable[0].available, 2)
        self.assertEqual(unavailable[0].sku, "CHAIN-1")

        self.ring.refresh_from_db()
        self.chain.refresh_from_db()
        self.assertEqual(self.ring.quantity, 10)
        self.assertEqual(self.chain.quantity, 2)
        self.assertFalse(InventoryMovement.objects.exists())
        self.assertFalse(Invoice.objects.get(pk=invoice.pk).inventory_reserved)

    def test_lines_for_same_item_are_checked_together(self):
        invoice = _invoice(self.customer, [(self.chain, 1), (self.chain, 2)])

        with self.assertRaises(InsufficientInventoryError) as ctx:
            ledger.reserve(invoice)

        self.assertEqual(ctx.exception.unavailable_items[0].requested, 3)
        self.chain.refresh_from_db()
        self.assertEqual(self.chain.quantity, 2)

    def test_outstanding_reservations_follow_movements(self):
        invoice = _invoice(self.customer, [(self.ring, 2), (self.chain, 1), (self.ring, 1)])

        ledger.reserve(invoice)
        self.assertEqual(
            ledger.outstanding_reservations(invoice),
            {str(self.ring.pk): 3, str(self.chain.pk): 1},
        )

        ledger.restore(invoice)
        self.assertEqual(ledger.outstanding_reservations(invoice), {})


class CheckAvailabilityTests(TestCase):
    def setUp(self):
        self.ring = _item("RING-2", 4)
        self.retired = _item("OLD-1", 9, is_active=False)

    def test_everything_available(self):
        self.assertEqual(
            ledger.check_availability([LineRequest(item_id=str(self.ring.pk), quantity=4)]),
            [],
        )

    def test_every_problem_is_reported(self):
        missing = str(uuid.uuid4())
        result = ledger.check_availability(
            [
                {"inventory_item_id": str(self.ring.pk), "quantity": 5},
                {"inventory_item_id": missing, "quantity": 1},
                {"inventory_item_id": "not-a-uuid", "quantity": 1},
                (self.retired.pk, 1),
            ]
        )

        by_id = {u.item_id: u for u in result}
        self.assertEqual(len(result), 4)
        self.assertEqual(by_id[str(self.ring.pk)].error, INSUFFICIENT_INVENTORY)
        self.assertEqual(by_id[str(self.ring.pk)].available, 4)
        self.assertEqual(by_id[str(self.ring.pk)].item_name, self.ring.name)
        self.assertEqual(by_id[missing].error, ITEM_NOT_FOUND)
        self.assertEqual(by_id[missing].available, 0)
        self.assertEqual(by_id["not-a-uuid"].error, ITEM_NOT_FOUND)
        self.assertEqual(by_id[str(self.retired.pk)].error, ITEM_NOT_FOUND)

    def test_check_does_not_write(self):
        ledger.check_availability([LineRequest(item_id=str(self.ring.pk), quantity=99)])

        self.ring.refresh_from_db()
        self.assertEqual(self.ring.quantity, 4)
        self.assertFalse(InventoryMovement.objects.exists())


class GuardedUpdateTests(TestCase):
    """
    The conditional decrement (quantity >= n) is the last line of defence:
    even when the availability read is stale, stock never goes negative.
    """

    def setUp(self):
        self.customer = Customer.objects.create(name="Reza")
        self.bangle = _item("BANGLE-1", 10)

    def test_sequential_reservations_of_six_and_eight(self):
        first = _invoice(self.customer, [(self.bangle, 6)])
        second = _invoice(self.customer, [(self.bangle, 8)])

        ledger.reserve(first)
        with self.assertRaises(InsufficientInventoryError):
            ledger.reserve(second)

        self.bangle.refresh_from_db()
        self.assertEqual(self.bangle.quantity, 4)

    def test_stale_availability_read_cannot_oversell(self):
        first = _invoice(self.customer, [(self.bangle, 6)])
        second = _invoice(self.customer, [(self.bangle, 8)])
        ledger.reserve(first)

        # Simulate a check that ran before the first reservation landed.
        stale_item = InventoryItem.objects.get(pk=self.bangle.pk)
        stale_item.quantity = 10

        with mock.patch.object(
            ledger, "_check", return_value=([], {str(self.bangle.pk): stale_item})
        ):
            with self.assertRaises(InsufficientInventoryError) as ctx:
                ledger.reserve(second)

        self.assertEqual(ctx.exception.unavailable_items[0].available, 4)

        self.bangle.refresh_from_db()
        self.assertEqual(self.bangle.quantity, 4)
        self.assertFalse(
            InventoryMovement.objects.filter(reference_id=str(second.pk)).exists()
        )
        self.assertFalse(Invoice.objects.get(pk=second.pk).inventory_reserved)


@skipUnless(connection.vendor == "postgresql", "row locks require PostgreSQL")
class ConcurrentReservationTests(TransactionTestCase):
    def setUp(self):
        customer = Customer.objects.create(name="Concurrent")
        self.item = _item("CONC-1", 10)
        self.first = _invoice(customer, [(self.item, 6)])
        self.second = _invoice(customer, [(self.item, 8)])

    def test_six_and_eight_against_ten(self):
        first_locked = threading.Event()
        outcomes = {}

        def reserve_first():
            try:
                with transaction.atomic():
                    ledger.reserve(Invoice.objects.get(pk=self.first.pk))
                    first_locked.set()
                    # hold the row lock while the second reservation queues up
                    threading.Event().wait(0.3)
                outcomes["first"] = "ok"
            except InsufficientInventoryError:
                outcomes["first"] = "insufficient"
            finally:
                first_locked.set()
                connection.close()

        def reserve_second():
            first_locked.wait(5)
            try:
                ledger.reserve(Invoice.objects.get(pk=self.second.pk))
                outcomes["second"] = "ok"
            except InsufficientInventoryError:
                outcomes["second"] = "insufficient"
            finally:
                connection.close()

        threads = [threading.Thread(target=reserve_first), threading.Thread(target=reserve_second)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(10)

        self.assertEqual(outcomes, {"first": "ok", "second": "insufficient"})
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 4)
        self.assertEqual(ledger.movement_balance(self.item), -6)


class AdjustTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="manager", password="pass")
        self.item = _item("EAR-1", 5)

    def test_adjust_up_and_down(self):
        result = ledger.adjust(self.item, 4, user=self.user, notes="Recount")

        self.assertEqual(result.quantity_delta, 4)
        self.assertEqual(result.item.quantity, 9)
        self.assertEqual(self.item.quantity, 9)
        self.assertEqual(result.movement.movement_type, InventoryMovement.MovementType.ADJUSTMENT)
        self.assertEqual(
            result.movement.reference_type, InventoryMovement.ReferenceType.MANUAL_ADJUSTMENT
        )
        self.assertEqual(result.movement.notes, "Recount")

        ledger.adjust(self.item, "-9")

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 0)
        self.assertEqual(ledger.movement_balance(self.item), -5)

    def test_cannot_go_below_zero(self):
        with self.assertRaises(StockAdjustmentError):
            ledger.adjust(self.item, -6)

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 5)
        self.assertFalse(InventoryMovement.objects.exists())

    def test_invalid_deltas(self):
        for bad in (0, None, "", True, "abc"):
            with self.subTest(delta=bad):
                with self.assertRaises(StockAdjustmentError):
                    ledger.adjust(self.item, bad)


class LowStockTests(TestCase):
    def test_strictly_below_minimum_ordered_by_quantity_then_name(self):
        _item("A", 1, name="Bracelet", minimum_stock=3)
        _item("B", 1, name="Anklet", minimum_stock=2)
        _item("C", 0, name="Pendant", minimum_stock=1)
        _item("D", 2, name="Brooch", minimum_stock=2)  # at minimum: not low
        _item("E", 0, name="Retired", minimum_stock=5, is_active=False)

        names = [i.name for i in ledger.get_low_stock_items()]

        self.assertEqual(names, ["Pendant", "Anklet", "Bracelet"])


class MovementQueryTests(TestCase):
    def setUp(self):
        self.item = _item("NECK-1", 50)
        base = timezone.now()
        for minutes in range(5):
            InventoryMovement.objects.create(
                inventory_item=self.item,
                movement_type=InventoryMovement.MovementType.ADJUSTMENT,
                quantity=minutes + 1,
                reference_type=InventoryMovement.ReferenceType.MANUAL_ADJUSTMENT,
                created_at=base + timedelta(minutes=minutes),
            )

    def test_newest_first_with_limit(self):
        movements = ledger.get_inventory_movements(self.item.pk, limit=3)

        self.assertEqual([m.quantity for m in movements], [5, 4, 3])

    def test_default_limit_and_unknown_item(self):
        self.assertEqual(len(ledger.get_inventory_movements(str(self.item.pk))), 5)
        self.assertEqual(ledger.get_inventory_movements(uuid.uuid4()), [])
        self.assertEqual(ledger.get_inventory_movements("bogus"), [])


class LedgerImmutabilityTests(TestCase):
    def setUp(self):
        self.item = _item("RING-9", 3)

    def test_movements_cannot_be_edited_or_deleted(self):
        movement = ledger.adjust(self.item, 1).movement

        movement.notes = "changed"
        with self.assertRaises(ValidationError):
            movement.save()
        with self.assertRaises(ValidationError):
            movement.delete()

    def test_sale_movement_requires_negative_quantity_and_reference(self):
        with self.assertRaises(ValidationError):
            InventoryMovement.objects.create(
                inventory_item=self.item,
                movement_type=InventoryMovement.MovementType.SALE,
                quantity=2,
                reference_id="x",
            )
        with self.assertRaises(ValidationError):
            InventoryMovement.objects.create(
                inventory_item=self.item,
                movement_type=InventoryMovement.MovementType.SALE,
                quantity=-2,
            )

    def test_item_quantity_is_not_editable_directly(self):
        self.item.quantity = 100
        with self.assertRaises(ValidationError):
            self.item.save()

        self.item.refresh_from_db()
        self.item.name = "Renamed ring"
        self.item.save()
        self.assertEqual(InventoryItem.objects.get(pk=self.item.pk).name, "Renamed ring")
