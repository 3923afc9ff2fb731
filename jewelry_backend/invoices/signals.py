"""
Invoice Signals
Integration boundary for accounting / notifications.

- Sent only after the surrounding transaction commits (never for rolled-back work).
- Payload is a plain snapshot taken when the change was made:
    invoice_id, invoice_number, customer_id, status, subtotal, discount_amount,
    tax_amount, total_amount, lines=[{item_id, quantity, total_price}]
- invoice_cancelled additionally carries `reason`.
"""

import logging

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

invoice_created = Signal()
invoice_updated = Signal()
invoice_cancelled = Signal()


def invoice_payload(invoice) -> dict:
    lines = [
        {
            "item_id": str(item_id),
            "quantity": int(qty),
            "total_price": total_price,
        }
        for item_id, qty, total_price in invoice.items.order_by("created_at", "id").values_list(
            "inventory_item_id", "quantity", "total_price"
        )
    ]
    return {
        "invoice_id": str(invoice.pk),
        "invoice_number": invoice.invoice_number,
        "customer_id": str(invoice.customer_id),
        "status": invoice.status,
        "subtotal": invoice.subtotal,
        "discount_amount": invoice.discount_amount,
        "tax_amount": invoice.tax_amount,
        "total_amount": invoice.total_amount,
        "lines": lines,
    }


def send_on_commit(signal: Signal, invoice, **extra):
    payload = {**invoice_payload(invoice), **extra}
    sender = invoice.__class__

    def _send():
        logger.debug("Dispatching invoice signal", extra={"invoice_id": payload["invoice_id"]})
        signal.send(sender=sender, **payload)

    transaction.on_commit(_send, robust=True)
