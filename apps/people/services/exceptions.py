"""
Domain-specific exceptions for people app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class PeopleServiceError(Exception):
    """Base exception for all people service errors."""
    pass


class ParticipantNotFoundError(PeopleServiceError):
    """Raised when a participant does not exist or is not visible to the viewer."""
    pass


class GroupNotFoundError(PeopleServiceError):
    """Raised when a group does not exist."""
    pass


class NotGroupMemberError(PeopleServiceError):
    """Raised when a participant acts on a group they don't belong to."""
    pass


class InsufficientPermissionsError(PeopleServiceError):
    """Raised when a participant lacks required permissions for an action."""
    pass
