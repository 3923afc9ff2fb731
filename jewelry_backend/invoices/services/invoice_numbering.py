# invoices/services/invoice_numbering.py

"""
INVOICE NUMBERS: <PREFIX>-YYYYMM-NNNN

- Sequence restarts every month (month of creation, not of issue_date).
- NNNN is zero-padded to 4 digits and simply grows past 9999.
- Hand-entered numbers that do not follow the pattern are ignored when
  computing the next sequence.

Concurrency: two creators can compute the same number; the unique
constraint on invoice_number rejects the loser and the orchestrator retries.
"""

from __future__ import annotations

import re
from datetime import date

from django.conf import settings
from django.db.models.functions import Length
from django.utils import timezone

from invoices.models import Invoice

SEQUENCE_WIDTH = 4


def _prefix(prefix: str | None) -> str:
    return (prefix or getattr(settings, "INVOICE_NUMBER_PREFIX", "") or "INV").strip()


def next_invoice_number(*, on: date | None = None, prefix: str | None = None) -> str:
    on = on or timezone.localdate()
    stem = f"{_prefix(prefix)}-{on:%Y%m}-"

    last = (
        Invoice.objects.filter(invoice_number__regex=rf"^{re.escape(stem)}[0-9]+$")
        .order_by(Length("invoice_number").desc(), "-invoice_number")
        .values_list("invoice_number", flat=True)
        .first()
    )

    next_seq = int(last[len(stem):]) + 1 if last else 1
    return f"{stem}{next_seq:0{SEQUENCE_WIDTH}d}"
