"""
People app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and concurrency protection.
"""

from .exceptions import (
    PeopleServiceError,
    ParticipantNotFoundError,
    GroupNotFoundError,
    NotGroupMemberError,
    InsufficientPermissionsError,
)

from .participant_management import (
    resolve_viewer,
    get_participant,
    get_participants,
    list_participants,
    create_participant,
    update_participant,
    archive_participant,
)

from .group_management import (
    create_group,
    get_group,
    update_group,
    delete_group,
    add_members,
    remove_member,
)


__all__ = [
    # Exceptions
    'PeopleServiceError',
    'ParticipantNotFoundError',
    'GroupNotFoundError',
    'NotGroupMemberError',
    'InsufficientPermissionsError',

    # Participant Management
    'resolve_viewer',
    'get_participant',
    'get_participants',
    'list_participants',
    'create_participant',
    'update_participant',
    'archive_participant',

    # Group Management
    'create_group',
    'get_group',
    'update_group',
    'delete_group',
    'add_members',
    'remove_member',
]
