"""
Domain-specific exceptions for subscriptions app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class SubscriptionsServiceError(Exception):
    """Base exception for all subscription service errors."""
    pass


class SubscriptionNotFoundError(SubscriptionsServiceError):
    """Raised when a subscription or payment does not exist."""
    pass


class SubscriptionNotSharedError(SubscriptionsServiceError):
    """Raised when a member balance is requested for a personal subscription."""
    pass


class NotSubscriberError(SubscriptionsServiceError):
    """Raised when a participant acts on a subscription they don't share."""
    pass


class InsufficientPermissionsError(SubscriptionsServiceError):
    """Raised when a subscriber lacks required permissions for an action."""
    pass
