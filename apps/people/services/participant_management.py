"""
Participant management service.

Resolves the viewer for an authenticated user and manages the viewer's
contacts.
"""

import logging
from typing import Iterable, List, Optional
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction

from apps.people.models import Participant

from .exceptions import InsufficientPermissionsError, ParticipantNotFoundError


logger = logging.getLogger(__name__)


def _display_name_for(user) -> str:
    full_name = user.get_full_name() if hasattr(user, 'get_full_name') else ''
    return full_name or user.get_username()


@transaction.atomic
def resolve_viewer(*, user) -> Participant:
    """
    Return the participant linked to ``user``, creating it on first use.

    Args:
        user: Authenticated Django user

    Returns:
        Participant linked to the user
    """
    participant, created = Participant.objects.get_or_create(
        user=user,
        defaults={'display_name': _display_name_for(user)},
    )
    if created:
        logger.info("Created participant %s for user %s", participant.id, user.pk)
    return participant


def get_participant(*, participant_id: UUID, viewer: Participant) -> Participant:
    """
    Get a participant visible to the viewer.

    Raises:
        ParticipantNotFoundError: If it doesn't exist or isn't visible
    """
    try:
        return Participant.objects.visible_to(viewer).get(id=participant_id)
    except (Participant.DoesNotExist, ValidationError):
        raise ParticipantNotFoundError(f"Participant with ID {participant_id} not found")


def get_participants(*, participant_ids: Iterable[UUID], viewer: Participant) -> List[Participant]:
    """
    Resolve a list of ids to visible participants, preserving none of the input order.

    Raises:
        ParticipantNotFoundError: If any id is unknown or not visible
    """
    wanted = {str(pid) for pid in participant_ids}
    found = list(Participant.objects.visible_to(viewer).filter(id__in=wanted))
    missing = wanted - {str(p.id) for p in found}
    if missing:
        raise ParticipantNotFoundError(f"Participants not found: {', '.join(sorted(missing))}")
    return found


def list_participants(*, viewer: Participant, include_archived: bool = False):
    queryset = Participant.objects.visible_to(viewer)
    if not include_archived:
        queryset = queryset.filter(is_archived=False)
    return queryset.order_by('display_name', 'id')


def create_participant(*, viewer: Participant, display_name: str) -> Participant:
    """Create a contact owned by the viewer."""
    return Participant.objects.create(display_name=display_name, created_by=viewer)


@transaction.atomic
def update_participant(
    *,
    participant_id: UUID,
    viewer: Participant,
    display_name: Optional[str] = None,
    is_archived: Optional[bool] = None
) -> Participant:
    """
    Update a contact (owner or the participant themself only).

    Raises:
        ParticipantNotFoundError: If participant doesn't exist
        InsufficientPermissionsError: If viewer doesn't own the contact
    """
    try:
        participant = Participant.objects.select_for_update().get(id=participant_id)
    except (Participant.DoesNotExist, ValidationError):
        raise ParticipantNotFoundError(f"Participant with ID {participant_id} not found")

    if participant.id != viewer.id and participant.created_by_id != viewer.id:
        raise InsufficientPermissionsError("You can only edit your own contacts")

    update_fields = ['updated_at']

    if display_name is not None:
        participant.display_name = display_name
        update_fields.append('display_name')

    if is_archived is not None:
        if participant.id == viewer.id and is_archived:
            raise InsufficientPermissionsError("You cannot archive yourself")
        participant.is_archived = is_archived
        update_fields.append('is_archived')

    participant.save(update_fields=update_fields)
    return participant


def archive_participant(*, participant_id: UUID, viewer: Participant) -> Participant:
    """
    Archive a contact instead of deleting it.

    Past transactions still reference archived participants, so balances stay
    intact.
    """
    return update_participant(participant_id=participant_id, viewer=viewer, is_archived=True)
