# invoices/services/invoice_orchestrator.py

"""
INVOICE ORCHESTRATOR (APPLICATION SERVICE)

Purpose:
- Validate, price, reserve and persist invoices inside ONE DB transaction.
- Update = restore old reservation -> reprice -> reserve new lines (atomic).
- Cancel  = conditional status flip -> restore ONCE.

Hard rules:
- Quantities are integer units; money is Decimal, 2dp ROUND_HALF_UP.
- Availability is checked for ALL lines before any write; the ledger's guarded
  update is the final authority on quantity.
- Any failure rolls back every write (quantities, movements, invoice rows).
- Pricing defaults are injected (PricingDefaults); nothing here reads
  settings on its own except through from_settings().

Totals:
- subtotal     = sum(line.total_price)
- tax_amount   = sum(line.tax_amount)   (tax is already inside line prices)
- total_amount = subtotal - discount_amount

Expected failures (logged, re-raised as-is):
- InvoiceValidationError, InvalidInvoiceTransitionError (invoices.services.exceptions)
- InsufficientInventoryError (inventory.services.exceptions)
- PricingError (pricing.exceptions)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from customers.models import Customer
from inventory.models import InventoryItem
from inventory.services import ledger as inventory_ledger
from inventory.services.exceptions import InsufficientInventoryError
from inventory.services.ledger import LineRequest
from invoices import signals
from invoices.models import Invoice, InvoiceItem
from invoices.serializers.invoice_request import parse_invoice_request
from invoices.services import invoice_lifecycle
from invoices.services.exceptions import InvoiceValidationError
from invoices.services.invoice_numbering import next_invoice_number
from invoices.services.requests import GoldPricing, InvoiceLineRequest, InvoiceRequest
from invoices.services.results import InvoiceOutcome, capture
from pricing import engine as pricing_engine
from pricing.exceptions import PricingError
from pricing.types import MODE_STATIC, ZERO, PriceBreakdown, PricingDefaults, PricingRates

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
DEFAULT_DUE_DAYS = 30
NUMBERING_ATTEMPTS = 3


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedLine:
    request: InvoiceLineRequest
    item: InventoryItem
    name: str
    weight: Decimal | None
    breakdown: PriceBreakdown


class InvoiceOrchestrator:
    """
    Invoice application service.

    Collaborators are injectable for tests; by default the inventory ledger
    and pricing engine modules are used.
    """

    def __init__(
        self,
        defaults: PricingDefaults | None = None,
        *,
        ledger=None,
        engine=None,
        due_days: int = DEFAULT_DUE_DAYS,
    ):
        self.defaults = defaults or PricingDefaults()
        self.ledger = ledger or inventory_ledger
        self.engine = engine or pricing_engine
        self.due_days = int(due_days)

    @classmethod
    def from_settings(cls) -> "InvoiceOrchestrator":
        return cls(
            PricingDefaults.from_settings(),
            due_days=getattr(settings, "INVOICE_DUE_DAYS", DEFAULT_DUE_DAYS),
        )

    # ============================================================
    # VALIDATION (NO SIDE EFFECTS)
    # ============================================================

    def validate_invoice_data(self, data, *, invoice: Invoice | None = None) -> dict[str, str]:
        """
        Field path -> message; empty means valid.
        Pass `invoice` to validate an update of that invoice (all fields optional).
        """
        errors, _ = self._validate(data, invoice=invoice)
        return errors

    def _validate(self, data, *, invoice: Invoice | None = None) -> tuple[dict[str, str], InvoiceRequest | None]:
        errors, request = parse_invoice_request(data, partial=invoice is not None)
        if request is None:
            errors.update(self._existence_errors(data, skip=errors))
            return errors, None

        if request.customer_id is not None and not Customer.objects.filter(pk=request.customer_id).exists():
            errors["customer_id"] = "Valid customer is required"

        if request.items is not None:
            wanted = {line.inventory_item_id for line in request.items}
            known = set(InventoryItem.objects.filter(pk__in=wanted).values_list("pk", flat=True))
            for index, line in enumerate(request.items):
                if line.inventory_item_id not in known:
                    errors[f"items.{index}.inventory_item_id"] = "Invalid inventory item"

        if request.invoice_number:
            taken = Invoice.objects.filter(invoice_number=request.invoice_number)
            if invoice is not None:
                taken = taken.exclude(pk=invoice.pk)
            if taken.exists():
                errors["invoice_number"] = "Invoice number already exists"

        if invoice is not None and request.due_date and not request.issue_date:
            if request.due_date < invoice.issue_date:
                errors["due_date"] = "Due date cannot be before issue date"

        if request.gold_pricing is not None:
            message = self._gold_pricing_error(request.gold_pricing)
            if message:
                errors["gold_pricing"] = message

        return errors, (request if not errors else None)

    def _existence_errors(self, data, *, skip: dict) -> dict[str, str]:
        """
        Best-effort existence checks on the raw payload so one round trip
        reports structural AND reference problems together.
        """
        if not isinstance(data, dict):
            return {}

        out: dict[str, str] = {}
        customer_id = data.get("customer_id")
        if customer_id and "customer_id" not in skip:
            if not Customer.objects.filter(pk=customer_id).exists():
                out["customer_id"] = "Valid customer is required"

        items = data.get("items")
        if isinstance(items, list):
            for index, line in enumerate(items):
                key = f"items.{index}.inventory_item_id"
                if key in skip or not isinstance(line, dict):
                    continue
                item_id = line.get("inventory_item_id")
                if item_id and not InventoryItem.objects.filter(pk=item_id).exists():
                    out[key] = "Invalid inventory item"
        return out

    def _gold_pricing_error(self, pricing: GoldPricing) -> str | None:
        rates = pricing.resolve(self.defaults)

        for label, value in (
            ("Gold price per gram", rates.price_per_gram),
            ("Labor percentage", rates.labor_percentage),
            ("Profit percentage", rates.profit_percentage),
            ("Tax percentage", rates.tax_percentage),
        ):
            if value < ZERO:
                return f"Invalid pricing parameters: {label} cannot be negative"

        # gold price 0 is the static fallback; only a live formula gets the full check
        if rates.is_dynamic:
            problems = self.engine.validate_pricing_params(
                {
                    "weight": 1,
                    "price_per_gram": rates.price_per_gram,
                    "quantity": 1,
                    "labor_percentage": rates.labor_percentage,
                    "profit_percentage": rates.profit_percentage,
                    "tax_percentage": rates.tax_percentage,
                }
            )
            if problems:
                return "Invalid pricing parameters: " + ", ".join(problems.values())
        return None

    # ============================================================
    # PRICING
    # ============================================================

    def _resolve_rates(self, pricing: GoldPricing | None, *, fallback: PricingRates | None) -> PricingRates:
        if pricing is not None:
            return pricing.resolve(self.defaults)
        if fallback is not None:
            return fallback
        return GoldPricing().resolve(self.defaults)

    def _load_items(self, lines) -> dict:
        ids = {line.inventory_item_id for line in lines}
        items = InventoryItem.objects.in_bulk(list(ids))
        missing = {
            f"items.{i}.inventory_item_id": "Invalid inventory item"
            for i, line in enumerate(lines)
            if line.inventory_item_id not in items
        }
        if missing:
            raise InvoiceValidationError(missing)
        return items

    def _price_lines(self, lines, items: dict, rates: PricingRates) -> list[PricedLine]:
        priced: list[PricedLine] = []

        for index, line in enumerate(lines):
            item = items[line.inventory_item_id]
            name = line.name or item.name
            weight = line.weight if line.weight is not None else item.weight
            static_unit_price = line.unit_price if line.unit_price is not None else item.unit_price

            try:
                breakdown = self.engine.price_line(
                    weight=weight,
                    quantity=line.quantity,
                    rates=rates,
                    static_unit_price=static_unit_price,
                )
            except PricingError as exc:
                raise PricingError(
                    f"Pricing calculation failed for item '{name}': {exc.message}",
                    params=exc.params,
                    errors={f"items.{index}.{k}": v for k, v in exc.errors.items()} or {f"items.{index}": exc.message},
                ) from exc

            logger.info(
                "Invoice line priced",
                extra={
                    "inventory_item_id": str(item.pk),
                    "item_name": name,
                    "pricing_mode": breakdown.mode,
                    "unit_price": str(breakdown.unit_price),
                    "total_price": str(breakdown.total_price),
                },
            )
            priced.append(PricedLine(request=line, item=item, name=name, weight=weight, breakdown=breakdown))

        return priced

    def _ensure_available(self, lines):
        unavailable = self.ledger.check_availability(
            [LineRequest(item_id=str(line.inventory_item_id), quantity=line.quantity) for line in lines]
        )
        if unavailable:
            raise InsufficientInventoryError(unavailable)

    # ============================================================
    # PERSISTENCE HELPERS
    # ============================================================

    def _write_items(self, invoice: Invoice, priced: list[PricedLine]):
        for p in priced:
            b = p.breakdown
            InvoiceItem.objects.create(
                invoice=invoice,
                inventory_item=p.item,
                name=p.name,
                sku=p.item.sku,
                quantity=b.quantity,
                weight=p.weight,
                gold_purity=(
                    p.request.gold_purity if p.request.gold_purity is not None else p.item.gold_purity
                ),
                pricing_mode=b.mode,
                base_gold_cost=b.base_gold_cost,
                labor_cost=b.labor_cost,
                profit_amount=b.profit,
                tax_amount=b.tax,
                unit_price=b.unit_price,
                total_price=b.total_price,
            )

    def _apply_totals(self, invoice: Invoice, *, lines_total: Decimal, lines_tax: Decimal):
        subtotal = _money(lines_total)
        discount = _money(invoice.discount_amount)
        if discount > subtotal:
            raise InvoiceValidationError(
                {"discount_amount": f"Discount ({discount}) cannot exceed the invoice subtotal ({subtotal})"}
            )

        invoice.subtotal = subtotal
        invoice.tax_amount = _money(lines_tax)
        invoice.total_amount = _money(subtotal - discount)

    @staticmethod
    def _sum_priced(priced: list[PricedLine]) -> tuple[Decimal, Decimal]:
        total = sum((p.breakdown.total_price for p in priced), Decimal("0.00"))
        tax = sum((p.breakdown.tax for p in priced), Decimal("0.00"))
        return total, tax

    @staticmethod
    def _apply_rates(invoice: Invoice, rates: PricingRates):
        invoice.gold_price_per_gram = rates.price_per_gram
        invoice.labor_percentage = rates.labor_percentage
        invoice.profit_percentage = rates.profit_percentage
        invoice.tax_percentage = rates.tax_percentage

    def _create_header(self, request: InvoiceRequest, rates: PricingRates, user) -> Invoice:
        issue_date = request.issue_date or timezone.localdate()
        due_date = request.due_date or issue_date + timedelta(days=self.due_days)

        fields = dict(
            customer_id=request.customer_id,
            issue_date=issue_date,
            due_date=due_date,
            status=request.status or Invoice.STATUS_DRAFT,
            discount_amount=_money(request.discount_amount),
            notes=request.notes or "",
            internal_notes=request.internal_notes or "",
            created_by=user,
        )
        if fields["status"] == Invoice.STATUS_ISSUED:
            fields["issued_at"] = timezone.now()

        if request.invoice_number:
            invoice = Invoice(invoice_number=request.invoice_number, **fields)
            self._apply_rates(invoice, rates)
            invoice.save()
            return invoice

        for attempt in range(1, NUMBERING_ATTEMPTS + 1):
            invoice = Invoice(invoice_number=next_invoice_number(), **fields)
            self._apply_rates(invoice, rates)
            try:
                with transaction.atomic():
                    invoice.save()
                return invoice
            except IntegrityError:
                if attempt == NUMBERING_ATTEMPTS:
                    raise
                logger.warning(
                    "Invoice number collision; retrying",
                    extra={"invoice_number": invoice.invoice_number, "attempt": attempt},
                )

    @staticmethod
    def _lines_from_invoice(invoice: Invoice) -> tuple[InvoiceLineRequest, ...]:
        # Repricing without new lines: keep each line's item, quantity, weight
        # and, for static lines, the price it was sold at.
        return tuple(
            InvoiceLineRequest(
                inventory_item_id=row.inventory_item_id,
                quantity=row.quantity,
                weight=row.weight,
                name=row.name,
                unit_price=row.unit_price if row.pricing_mode == MODE_STATIC else None,
                gold_purity=row.gold_purity,
            )
            for row in invoice.items.order_by("created_at", "id")
        )

    # ============================================================
    # CREATE
    # ============================================================

    def create_invoice(self, data, user=None) -> Invoice:
        """
        Validate -> price -> check availability -> persist -> reserve (atomic).
        """
        try:
            with transaction.atomic():
                errors, request = self._validate(data)
                if errors:
                    raise InvoiceValidationError(errors)

                rates = self._resolve_rates(request.gold_pricing, fallback=None)
                items = self._load_items(request.items)
                priced = self._price_lines(request.items, items, rates)

                self._ensure_available(request.items)

                invoice = self._create_header(request, rates, user)
                self._write_items(invoice, priced)

                lines_total, lines_tax = self._sum_priced(priced)
                self._apply_totals(invoice, lines_total=lines_total, lines_tax=lines_tax)
                invoice.save(update_fields=["subtotal", "tax_amount", "total_amount", "updated_at"])

                self.ledger.reserve(invoice, user=user)

                signals.send_on_commit(signals.invoice_created, invoice)

        except InsufficientInventoryError as exc:
            logger.error(
                "Invoice creation failed due to insufficient inventory",
                extra={"unavailable_items": exc.as_list()},
            )
            raise
        except (InvoiceValidationError, PricingError) as exc:
            logger.warning(
                "Invoice creation rejected",
                extra={"errors": getattr(exc, "errors", {}), "error": str(exc)},
            )
            raise

        logger.info(
            "Invoice created",
            extra={
                "invoice_id": str(invoice.pk),
                "invoice_number": invoice.invoice_number,
                "total_amount": str(invoice.total_amount),
                "pricing": rates.as_dict(),
            },
        )
        return invoice

    # ============================================================
    # UPDATE
    # ============================================================

    def update_invoice(self, invoice: Invoice, data, user=None) -> Invoice:
        """
        Update header fields and (optionally) lines.

        When lines or gold pricing are supplied the old reservation is restored,
        the lines are repriced (pricing falls back to the invoice snapshot),
        and the new set is reserved, all in one transaction. A failure keeps
        the old reservation and lines exactly as they were.
        """
        try:
            with transaction.atomic():
                locked = Invoice.objects.select_for_update().get(pk=invoice.pk)
                invoice_lifecycle.ensure_editable(locked)

                errors, request = self._validate(data, invoice=locked)
                if errors:
                    raise InvoiceValidationError(errors)

                if request.customer_id is not None:
                    locked.customer_id = request.customer_id
                if request.issue_date is not None:
                    locked.issue_date = request.issue_date
                if request.due_date is not None:
                    locked.due_date = request.due_date
                if request.invoice_number:
                    locked.invoice_number = request.invoice_number
                if request.discount_amount is not None:
                    locked.discount_amount = _money(request.discount_amount)
                if request.notes is not None:
                    locked.notes = request.notes
                if request.internal_notes is not None:
                    locked.internal_notes = request.internal_notes

                if locked.due_date < locked.issue_date:
                    raise InvoiceValidationError({"due_date": "Due date cannot be before issue date"})

                update_fields = [
                    "customer",
                    "issue_date",
                    "due_date",
                    "invoice_number",
                    "discount_amount",
                    "notes",
                    "internal_notes",
                    "subtotal",
                    "tax_amount",
                    "total_amount",
                    "updated_at",
                ]

                if request.reprices:
                    rates = self._resolve_rates(request.gold_pricing, fallback=locked.pricing_rates)
                    lines = request.items if request.items is not None else self._lines_from_invoice(locked)

                    self.ledger.restore(locked, user=user)

                    items = self._load_items(lines)
                    priced = self._price_lines(lines, items, rates)
                    self._ensure_available(lines)

                    locked.items.all().delete()
                    self._write_items(locked, priced)
                    self._apply_rates(locked, rates)
                    update_fields += [
                        "gold_price_per_gram",
                        "labor_percentage",
                        "profit_percentage",
                        "tax_percentage",
                    ]
                    lines_total, lines_tax = self._sum_priced(priced)
                else:
                    rows = list(locked.items.values_list("total_price", "tax_amount"))
                    lines_total = sum((r[0] for r in rows), Decimal("0.00"))
                    lines_tax = sum((r[1] for r in rows), Decimal("0.00"))

                self._apply_totals(locked, lines_total=lines_total, lines_tax=lines_tax)
                locked.save(update_fields=update_fields)

                if request.reprices:
                    self.ledger.reserve(locked, user=user)

                signals.send_on_commit(signals.invoice_updated, locked)

        except InsufficientInventoryError as exc:
            logger.error(
                "Invoice update failed due to insufficient inventory",
                extra={"invoice_id": str(invoice.pk), "unavailable_items": exc.as_list()},
            )
            raise
        except (InvoiceValidationError, PricingError) as exc:
            logger.warning(
                "Invoice update rejected",
                extra={
                    "invoice_id": str(invoice.pk),
                    "errors": getattr(exc, "errors", {}),
                    "error": str(exc),
                },
            )
            raise

        logger.info(
            "Invoice updated",
            extra={
                "invoice_id": str(locked.pk),
                "invoice_number": locked.invoice_number,
                "items_updated": request.items is not None,
                "pricing_updated": request.gold_pricing is not None,
                "total_amount": str(locked.total_amount),
            },
        )
        invoice.refresh_from_db()
        return invoice

    # ============================================================
    # CANCEL
    # ============================================================

    def cancel_invoice(self, invoice: Invoice, reason: str = "", user=None) -> Invoice:
        """
        Cancel once. Only the call that flips the status restores stock and
        sends invoice_cancelled; repeated calls return the invoice unchanged.
        """
        reason = (reason or "").strip()

        with transaction.atomic():
            now = timezone.now()
            flipped = (
                Invoice.objects.filter(pk=invoice.pk)
                .exclude(status=Invoice.STATUS_CANCELLED)
                .update(
                    status=Invoice.STATUS_CANCELLED,
                    cancelled_at=now,
                    cancellation_reason=reason,
                    updated_at=now,
                )
            )

            if flipped:
                current = Invoice.objects.get(pk=invoice.pk)
                self.ledger.restore(current, user=user)

                stamp = f"Cancelled on {timezone.localtime(now):%Y-%m-%d %H:%M:%S}: {reason}"
                current.internal_notes = (
                    f"{current.internal_notes}\n{stamp}" if current.internal_notes else stamp
                )
                current.save(update_fields=["internal_notes", "updated_at"])

                signals.send_on_commit(signals.invoice_cancelled, current, reason=reason)

        if flipped:
            logger.info(
                "Invoice cancelled",
                extra={"invoice_id": str(invoice.pk), "reason": reason},
            )
        else:
            logger.info("Cancel skipped: invoice already cancelled", extra={"invoice_id": str(invoice.pk)})

        invoice.refresh_from_db()
        return invoice

    # ============================================================
    # STATUS WORKFLOW
    # ============================================================

    def _transition(self, invoice: Invoice, target_status: str) -> Invoice:
        with transaction.atomic():
            locked = Invoice.objects.select_for_update().get(pk=invoice.pk)
            invoice_lifecycle.validate_transition(invoice=locked, target_status=target_status)

            locked.status = target_status
            update_fields = ["status", "updated_at"]

            stamp_field = invoice_lifecycle.STATUS_TIMESTAMPS.get(target_status)
            if stamp_field:
                setattr(locked, stamp_field, timezone.now())
                update_fields.append(stamp_field)

            locked.save(update_fields=update_fields)

        logger.info(
            "Invoice status changed",
            extra={"invoice_id": str(invoice.pk), "status": target_status},
        )
        invoice.refresh_from_db()
        return invoice

    def issue_invoice(self, invoice: Invoice) -> Invoice:
        return self._transition(invoice, Invoice.STATUS_ISSUED)

    def mark_paid(self, invoice: Invoice) -> Invoice:
        return self._transition(invoice, Invoice.STATUS_PAID)

    # ============================================================
    # QUERIES
    # ============================================================

    def check_inventory_availability(self, items):
        """
        Availability for request-shaped lines ({"inventory_item_id", "quantity"}).
        Returns the ledger's list of UnavailableItem (empty = all available).
        """
        return self.ledger.check_availability(items)

    # ============================================================
    # RESULT-TYPED SURFACE
    # ============================================================

    def try_create_invoice(self, data, user=None) -> InvoiceOutcome:
        return capture(self.create_invoice, data, user=user)

    def try_update_invoice(self, invoice: Invoice, data, user=None) -> InvoiceOutcome:
        return capture(self.update_invoice, invoice, data, user=user)

    def try_cancel_invoice(self, invoice: Invoice, reason: str = "", user=None) -> InvoiceOutcome:
        return capture(self.cancel_invoice, invoice, reason, user=user)
