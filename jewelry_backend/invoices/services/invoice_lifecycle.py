"""
INVOICE LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed lifecycle transitions
for Invoice entities.

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
- Single source of truth
"""

from invoices.models import Invoice
from invoices.services.exceptions import InvalidInvoiceTransitionError

# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Invoice.STATUS_CANCELLED,
}

ALLOWED_TRANSITIONS = {
    Invoice.STATUS_DRAFT: {
        Invoice.STATUS_ISSUED,
        Invoice.STATUS_CANCELLED,
    },
    Invoice.STATUS_ISSUED: {
        Invoice.STATUS_PAID,
        Invoice.STATUS_CANCELLED,
    },
    Invoice.STATUS_PAID: {
        Invoice.STATUS_CANCELLED,
    },
}

# Timestamp stamped on the invoice when it enters the status.
STATUS_TIMESTAMPS = {
    Invoice.STATUS_ISSUED: "issued_at",
    Invoice.STATUS_PAID: "paid_at",
    Invoice.STATUS_CANCELLED: "cancelled_at",
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, invoice: Invoice, target_status: str):
    if not can_transition(
        from_status=invoice.status,
        to_status=target_status,
    ):
        raise InvalidInvoiceTransitionError(
            f"Invoice {invoice.invoice_number} cannot transition from "
            f"'{invoice.status}' to '{target_status}'"
        )


def ensure_editable(invoice: Invoice):
    if invoice.status in TERMINAL_STATES:
        raise InvalidInvoiceTransitionError(
            f"Invoice {invoice.invoice_number} is '{invoice.status}' and cannot be modified"
        )
