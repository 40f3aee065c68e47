"""
Domain-specific exceptions for ledger app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses. Validation
failures from the engine itself (bad splits, over-settlement) are raised as
``apps.ledger.engine.exceptions.LedgerError`` subclasses.
"""


class LedgerServiceError(Exception):
    """Base exception for all ledger service errors."""
    pass


class TransactionNotFoundError(LedgerServiceError):
    """Raised when a transaction does not exist or is not visible to the viewer."""
    pass


class SettlementNotFoundError(LedgerServiceError):
    """Raised when a settlement does not exist or is not visible to the viewer."""
    pass


class ParticipantNotFoundError(LedgerServiceError):
    """Raised when a referenced participant does not exist or is not visible."""
    pass


class NotParticipantError(LedgerServiceError):
    """Raised when the viewer acts on a transaction, settlement or group they're not part of."""
    pass
