# inventory/services/ledger.py

"""
INVENTORY LEDGER SERVICE

Purpose:
- Batch availability checks (read-only, every shortfall reported).
- Reserve stock for an invoice (decrement + SALE movement, all-or-nothing).
- Restore stock for an invoice (increment + RETURN movement, idempotent).
- Manual adjustments with an ADJUSTMENT movement.
- Low stock + movement history queries.

Concurrency:
- Item rows are locked with select_for_update() in pk order (deadlock-safe).
- Every decrement is a guarded conditional update:
      UPDATE ... SET quantity = quantity - n WHERE id = ? AND quantity >= n
  so a stale read can never oversell, even on SQLite where row locks are a no-op.

Reservation state:
- invoice.inventory_reserved is flipped with a conditional update BEFORE any
  quantity is touched. restore() on an invoice that holds no reservation is a
  no-op; reserve() on one that already holds a reservation raises.

HARD RULES:
- InventoryItem.quantity is never written anywhere else.
- Every quantity change writes exactly one InventoryMovement.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from inventory.models import InventoryItem, InventoryMovement
from inventory.services.exceptions import (
    INSUFFICIENT_INVENTORY,
    ITEM_NOT_FOUND,
    InsufficientInventoryError,
    InventoryError,
    ReservationStateError,
    StockAdjustmentError,
    UnavailableItem,
)

logger = logging.getLogger(__name__)

DEFAULT_MOVEMENT_LIMIT = 50


@dataclass(frozen=True)
class LineRequest:
    item_id: str
    quantity: int


@dataclass(frozen=True)
class AdjustmentResult:
    item: InventoryItem
    movement: InventoryMovement
    quantity_delta: int


# ============================================================
# HELPERS
# ============================================================

def _to_int_qty(value) -> int:
    """
    Quantity normalizer.
    HARD RULE: quantities are integer units in this system.
    """
    if isinstance(value, bool):
        raise InventoryError("quantity must be a whole integer unit")

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        s = value.strip()
        if s.isdigit():
            return int(s)

    raise InventoryError("quantity must be a whole integer unit")


def _parse_item_id(value) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def _line_parts(line) -> tuple:
    if isinstance(line, LineRequest):
        return line.item_id, line.quantity
    if isinstance(line, Mapping):
        item_id = line.get("item_id", line.get("inventory_item_id"))
        return item_id, line.get("quantity")
    item_id, qty = line
    return item_id, qty


def _aggregate(lines: Iterable) -> dict[str, int]:
    """
    Sum quantities per item (first-seen order kept).
    Two lines for the same piece must be checked against one stock figure.
    """
    requested: dict[str, int] = {}
    for line in lines:
        item_id, raw_qty = _line_parts(line)
        qty = _to_int_qty(raw_qty)
        if qty <= 0:
            raise InventoryError("quantity must be greater than zero")
        key = str(item_id)
        requested[key] = requested.get(key, 0) + qty
    return requested


def _check(requested: dict[str, int], *, lock: bool) -> tuple[list[UnavailableItem], dict[str, InventoryItem]]:
    ids = [pk for pk in (_parse_item_id(k) for k in requested) if pk is not None]

    qs = InventoryItem.objects.filter(pk__in=ids, is_active=True).order_by("pk")
    if lock:
        qs = qs.select_for_update()

    found = {str(item.pk): item for item in qs}

    unavailable: list[UnavailableItem] = []
    for key, qty in requested.items():
        parsed = _parse_item_id(key)
        item = found.get(str(parsed)) if parsed is not None else None

        if item is None:
            unavailable.append(
                UnavailableItem(item_id=key, error=ITEM_NOT_FOUND, requested=qty, available=0)
            )
            continue

        available = int(item.quantity or 0)
        if available < qty:
            unavailable.append(
                UnavailableItem(
                    item_id=key,
                    error=INSUFFICIENT_INVENTORY,
                    requested=qty,
                    available=available,
                    item_name=item.name,
                    sku=item.sku,
                )
            )

    return unavailable, found


def lines_for_invoice(invoice) -> list[LineRequest]:
    rows = invoice.items.order_by("inventory_item_id").values_list("inventory_item_id", "quantity")
    return [LineRequest(item_id=str(item_id), quantity=int(qty)) for item_id, qty in rows]


def _invoice_label(invoice) -> str:
    return getattr(invoice, "invoice_number", "") or str(invoice.pk)


# ============================================================
# AVAILABILITY (READ-ONLY)
# ============================================================

def check_availability(lines: Iterable) -> list[UnavailableItem]:
    """
    Report every line that cannot be satisfied. Empty list means the whole
    request can be reserved right now.

    Lines: LineRequest, {"item_id"/"inventory_item_id", "quantity"} mappings,
    or (item_id, quantity) pairs. Unknown ids, malformed ids and inactive
    items are all reported as "Item not found".
    """
    requested = _aggregate(lines)
    if not requested:
        return []

    unavailable, _ = _check(requested, lock=False)
    return unavailable


# ============================================================
# RESERVATION
# ============================================================

@transaction.atomic
def reserve(invoice, *, user=None) -> list[InventoryMovement]:
    """
    Reserve stock for every line of the invoice (all-or-nothing).

    Raises:
    - ReservationStateError if the invoice already holds a reservation
    - InsufficientInventoryError listing every shortfall (nothing written)
    """
    invoice_model = invoice.__class__
    label = _invoice_label(invoice)

    flipped = invoice_model._default_manager.filter(
        pk=invoice.pk, inventory_reserved=False
    ).update(inventory_reserved=True)
    if flipped != 1:
        raise ReservationStateError(f"Invoice {label} already holds an inventory reservation")

    requested = _aggregate(lines_for_invoice(invoice))

    unavailable, items = _check(requested, lock=True)
    if unavailable:
        logger.warning(
            "Reservation rejected: insufficient inventory",
            extra={
                "invoice_id": str(invoice.pk),
                "unavailable_items": [u.as_dict() for u in unavailable],
            },
        )
        raise InsufficientInventoryError(unavailable)

    now = timezone.now()
    movements: list[InventoryMovement] = []

    for key in sorted(requested):
        qty = requested[key]
        item = items[key]

        updated = InventoryItem.objects.filter(pk=item.pk, quantity__gte=qty).update(
            quantity=F("quantity") - qty,
            updated_at=now,
        )
        if updated != 1:
            # Stock moved between the check and the write.
            current = (
                InventoryItem.objects.filter(pk=item.pk)
                .values_list("quantity", flat=True)
                .first()
            )
            shortfall = UnavailableItem(
                item_id=key,
                error=INSUFFICIENT_INVENTORY,
                requested=qty,
                available=int(current or 0),
                item_name=item.name,
                sku=item.sku,
            )
            logger.warning(
                "Reservation rejected by guarded update",
                extra={"invoice_id": str(invoice.pk), "unavailable_items": [shortfall.as_dict()]},
            )
            raise InsufficientInventoryError([shortfall])

        movements.append(
            InventoryMovement.objects.create(
                inventory_item=item,
                movement_type=InventoryMovement.MovementType.SALE,
                quantity=-qty,
                reference_type=InventoryMovement.ReferenceType.INVOICE,
                reference_id=str(invoice.pk),
                notes=f"Sale via Invoice #{label}",
                performed_by=user,
            )
        )

    invoice.inventory_reserved = True

    logger.info(
        "Inventory reserved",
        extra={
            "invoice_id": str(invoice.pk),
            "lines": {k: requested[k] for k in sorted(requested)},
        },
    )
    return movements


@transaction.atomic
def restore(invoice, *, user=None) -> list[InventoryMovement]:
    """
    Return the invoice's reserved stock (idempotent).

    Only the call that flips inventory_reserved True -> False touches stock;
    every later call returns [] without writing anything.
    """
    invoice_model = invoice.__class__
    label = _invoice_label(invoice)

    flipped = invoice_model._default_manager.filter(
        pk=invoice.pk, inventory_reserved=True
    ).update(inventory_reserved=False)
    invoice.inventory_reserved = False

    if flipped != 1:
        logger.info("Restore skipped: no active reservation", extra={"invoice_id": str(invoice.pk)})
        return []

    requested = _aggregate(lines_for_invoice(invoice))

    ids = [_parse_item_id(k) for k in requested]
    items = {
        str(item.pk): item
        for item in InventoryItem.objects.select_for_update().filter(pk__in=ids).order_by("pk")
    }

    now = timezone.now()
    movements: list[InventoryMovement] = []

    for key in sorted(requested):
        qty = requested[key]
        item = items.get(key)
        if item is None:
            raise InventoryError(f"Inventory item {key} referenced by invoice {label} no longer exists")

        InventoryItem.objects.filter(pk=item.pk).update(
            quantity=F("quantity") + qty,
            updated_at=now,
        )

        movements.append(
            InventoryMovement.objects.create(
                inventory_item=item,
                movement_type=InventoryMovement.MovementType.RETURN,
                quantity=qty,
                reference_type=InventoryMovement.ReferenceType.INVOICE_CANCELLATION,
                reference_id=str(invoice.pk),
                notes=f"Return from Invoice #{label}",
                performed_by=user,
            )
        )

    logger.info(
        "Inventory restored",
        extra={
            "invoice_id": str(invoice.pk),
            "lines": {k: requested[k] for k in sorted(requested)},
        },
    )
    return movements


# ============================================================
# MANUAL ADJUSTMENTS
# ============================================================

def _to_int_delta(value) -> int:
    if value is None or value == "":
        raise StockAdjustmentError("quantity_delta is required")

    if isinstance(value, bool):
        raise StockAdjustmentError("quantity_delta must be an integer")

    try:
        delta = int(value)
    except (TypeError, ValueError):
        raise StockAdjustmentError("quantity_delta must be an integer")

    if delta == 0:
        raise StockAdjustmentError("quantity_delta cannot be 0")

    return delta


@transaction.atomic
def adjust(item: InventoryItem, quantity_delta, *, user=None, notes: str = "") -> AdjustmentResult:
    """
    Adjust an item up or down with an immutable audit movement.

    quantity_delta:
      +N -> adds to on-hand
      -N -> removes from on-hand (never below zero)
    """
    if item is None:
        raise StockAdjustmentError("item is required")

    delta = _to_int_delta(quantity_delta)

    locked = InventoryItem.objects.select_for_update().filter(pk=item.pk).first()
    if locked is None:
        raise StockAdjustmentError("Inventory item not found")

    current = int(locked.quantity or 0)
    if delta < 0 and abs(delta) > current:
        raise StockAdjustmentError(
            f"Cannot reduce stock below zero. On hand: {current}, Requested OUT: {abs(delta)}"
        )

    qs = InventoryItem.objects.filter(pk=locked.pk)
    if delta < 0:
        qs = qs.filter(quantity__gte=abs(delta))

    if qs.update(quantity=F("quantity") + delta, updated_at=timezone.now()) != 1:
        raise StockAdjustmentError("Stock changed during adjustment; retry")

    movement = InventoryMovement.objects.create(
        inventory_item=locked,
        movement_type=InventoryMovement.MovementType.ADJUSTMENT,
        quantity=delta,
        reference_type=InventoryMovement.ReferenceType.MANUAL_ADJUSTMENT,
        reference_id=str(locked.pk),
        notes=notes or "",
        performed_by=user,
    )

    locked.refresh_from_db(fields=["quantity", "updated_at"])
    item.quantity = locked.quantity

    logger.info(
        "Inventory adjusted",
        extra={"item_id": str(locked.pk), "delta": delta, "quantity": locked.quantity},
    )
    return AdjustmentResult(item=locked, movement=movement, quantity_delta=delta)


# ============================================================
# QUERIES
# ============================================================

def get_low_stock_items():
    """Active items strictly below their minimum stock, lowest quantity first."""
    return (
        InventoryItem.objects.filter(is_active=True, quantity__lt=F("minimum_stock"))
        .order_by("quantity", "name")
    )


def get_inventory_movements(item_id, limit: int = DEFAULT_MOVEMENT_LIMIT) -> list[InventoryMovement]:
    """Movement history for one item, newest first."""
    pk = _parse_item_id(item_id)
    if pk is None:
        return []

    return list(
        InventoryMovement.objects.filter(inventory_item_id=pk)
        .select_related("inventory_item", "performed_by")
        .order_by("-created_at")[: max(int(limit), 0)]
    )


def outstanding_reservations(invoice) -> dict[str, int]:
    """
    Quantity per item still held by the invoice, from the movement log alone:
    -(sum of SALE + RETURN movements referencing the invoice). Zero entries
    are dropped.
    """
    rows = (
        InventoryMovement.objects.filter(
            reference_id=str(invoice.pk),
            reference_type__in=[
                InventoryMovement.ReferenceType.INVOICE,
                InventoryMovement.ReferenceType.INVOICE_CANCELLATION,
            ],
        )
        .values("inventory_item_id")
        .annotate(total=Sum("quantity"))
    )
    out: dict[str, int] = {}
    for r in rows:
        held = -int(r["total"] or 0)
        if held:
            out[str(r["inventory_item_id"])] = held
    return out


def movement_balance(item: InventoryItem) -> int:
    """Sum of all movement quantities for the item."""
    total = InventoryMovement.objects.filter(inventory_item=item).aggregate(total=Sum("quantity"))["total"]
    return int(total or 0)
