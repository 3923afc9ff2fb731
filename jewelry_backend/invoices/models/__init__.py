"""
PATH: invoices/models/__init__.py

Invoice models export surface.
"""

from .invoice import Invoice
from .invoice_item import InvoiceItem

__all__ = [
    "Invoice",
    "InvoiceItem",
]
