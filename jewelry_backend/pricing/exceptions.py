# pricing/exceptions.py

"""
PRICING ERRORS

Raised only for out-of-domain numeric input (non-positive weight / price /
quantity, negative or implausible percentages, missing static price).
Never raised for I/O problems: the engine has no I/O.
"""


class PricingError(Exception):
    """
    Carries the offending parameter snapshot so callers can build
    a user-facing message without re-deriving what went wrong.
    """

    def __init__(self, message: str, params: dict | None = None, errors: dict | None = None):
        super().__init__(message)
        self.message = message
        self.params = dict(params or {})
        self.errors = dict(errors or {})

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        detail = ", ".join(f"{k}: {v}" for k, v in self.errors.items())
        return f"{self.message} ({detail})"
