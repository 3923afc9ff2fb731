# invoices/services/results.py

"""
TAGGED OUTCOMES FOR INVOICE OPERATIONS

For callers that prefer values over exceptions (batch jobs, bulk imports):

    outcome = orchestrator.try_create_invoice(data)
    match outcome:
        case Ok(invoice=invoice): ...
        case InsufficientInventory(unavailable_items=items): ...
        case InvalidPricing(errors=errors) | InvalidData(errors=errors): ...

unwrap(outcome) turns it back into "return invoice or raise".
Only the expected business failures are captured; anything else (database
errors, bugs) propagates unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from inventory.services.exceptions import InsufficientInventoryError, UnavailableItem
from invoices.services.exceptions import InvoiceError
from pricing.exceptions import PricingError


@dataclass(frozen=True)
class Ok:
    invoice: object

    ok = True


@dataclass(frozen=True)
class InsufficientInventory:
    unavailable_items: tuple[UnavailableItem, ...]
    error: InsufficientInventoryError = field(repr=False, compare=False)

    ok = False


@dataclass(frozen=True)
class InvalidPricing:
    errors: dict
    message: str
    error: PricingError = field(repr=False, compare=False)

    ok = False


@dataclass(frozen=True)
class InvalidData:
    errors: dict
    message: str
    error: InvoiceError = field(repr=False, compare=False)

    ok = False


InvoiceOutcome = Ok | InsufficientInventory | InvalidPricing | InvalidData


def capture(fn, *args, **kwargs) -> InvoiceOutcome:
    try:
        return Ok(invoice=fn(*args, **kwargs))
    except InsufficientInventoryError as exc:
        return InsufficientInventory(unavailable_items=tuple(exc.unavailable_items), error=exc)
    except PricingError as exc:
        return InvalidPricing(errors=dict(exc.errors), message=exc.message, error=exc)
    except InvoiceError as exc:
        return InvalidData(
            errors=dict(getattr(exc, "errors", {}) or {}),
            message=str(exc),
            error=exc,
        )


def unwrap(outcome: InvoiceOutcome):
    """Return the invoice of an Ok outcome; re-raise the captured error otherwise."""
    if isinstance(outcome, Ok):
        return outcome.invoice
    raise outcome.error
