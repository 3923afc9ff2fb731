"""
PATH: invoices/serializers/__init__.py
"""

from .invoice_request import (
    InvoiceRequestSerializer,
    InvoiceUpdateSerializer,
    flatten_errors,
    parse_invoice_request,
)

__all__ = [
    "InvoiceRequestSerializer",
    "InvoiceUpdateSerializer",
    "flatten_errors",
    "parse_invoice_request",
]
