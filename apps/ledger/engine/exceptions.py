"""
Domain exceptions for the ledger engine.

The engine raises these for input that cannot be reconciled or settlements
that cannot be recorded. They carry a user-facing message and are converted
to HTTP responses by the views, never by the engine itself.

Exception Hierarchy:
    LedgerError (base)
    ├── InvalidSplitInput
    ├── InvalidPayerInput
    └── SettlementError
        ├── NoOutstandingBalance
        ├── OverSettlement
        └── InvalidAmount
"""


class LedgerError(Exception):
    """Base exception for all ledger engine errors."""
    pass


class InvalidSplitInput(LedgerError):
    """
    Raised when split inputs don't reconcile to the transaction total.

    Example:
        raise InvalidSplitInput("Percentages must add up to 100%")
    """
    pass


class InvalidPayerInput(LedgerError):
    """Raised when payer contributions don't add up to the total."""
    pass


class SettlementError(LedgerError):
    """Base exception for settlement validation failures."""
    pass


class NoOutstandingBalance(SettlementError):
    """Raised when there is nothing left to settle between two parties."""
    pass


class OverSettlement(SettlementError):
    """
    Raised when a strict settlement request exceeds the outstanding balance.

    Non-strict requests are capped to the outstanding balance instead.
    """
    pass


class InvalidAmount(SettlementError):
    """Raised when a settlement amount is zero or negative."""
    pass
