# invoices/services/exceptions.py

"""
INVOICE SERVICE ERRORS

Centralized domain errors for invoice services.
Inventory shortfalls raise inventory.services.exceptions.InsufficientInventoryError
and pricing failures raise pricing.exceptions.PricingError; neither is wrapped.
"""

from __future__ import annotations


class InvoiceError(Exception):
    """Base exception for all invoice service failures."""


class InvoiceValidationError(InvoiceError):
    """Request data rejected; `errors` maps field path -> message."""

    def __init__(self, errors: dict, message: str = "Invoice data is invalid"):
        self.errors = dict(errors or {})
        self.message = message
        super().__init__(message)

    def __str__(self):
        if not self.errors:
            return self.message
        details = "; ".join(f"{k}: {v}" for k, v in self.errors.items())
        return f"{self.message}: {details}"


class InvalidInvoiceTransitionError(InvoiceError):
    """Raised when a status change is not allowed from the current status."""
