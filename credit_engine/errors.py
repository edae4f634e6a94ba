"""
errors.py
---------
Exception taxonomy for the credit engine.

Validation errors abort the whole computation; no partial schedule or
ledger is ever returned. Business-edge states (EBITDA <= 0, zero debt
service, negative free cash flow) are data, not errors.
"""


class CreditEngineError(ValueError):
    """Base class for all credit engine input errors."""


class InvalidAssumptions(CreditEngineError):
    """A required assumption is missing, non-numeric or out of domain."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class InvalidInput(CreditEngineError):
    """Solver, returns or classifier input that cannot be computed on."""
