"""
Group management service.

Handles group CRUD and membership with proper transaction safety.
"""

from typing import Iterable, Optional
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction

from apps.people.models import Group, Participant

from .exceptions import (
    GroupNotFoundError,
    InsufficientPermissionsError,
    NotGroupMemberError,
)
from .participant_management import get_participants


@transaction.atomic
def create_group(
    *,
    name: str,
    created_by: Participant,
    description: str = '',
    member_ids: Iterable[UUID] = ()
) -> Group:
    """
    Create a new group with the creator as first member.

    Args:
        name: Group name
        created_by: Viewer creating the group
        description: Optional group description
        member_ids: Additional participants to add

    Returns:
        Created Group instance

    Raises:
        ParticipantNotFoundError: If a member id isn't visible to the creator
    """
    members = get_participants(participant_ids=member_ids, viewer=created_by) if member_ids else []

    group = Group.objects.create(name=name, description=description, created_by=created_by)
    group.members.add(created_by, *members)
    return group


def get_group(*, group_id: UUID, participant: Participant) -> Group:
    """
    Get a group the participant belongs to.

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotGroupMemberError: If participant is not a member
    """
    try:
        group = Group.objects.prefetch_related('members').get(id=group_id)
    except (Group.DoesNotExist, ValidationError):
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    if not group.has_member(participant):
        raise NotGroupMemberError("You are not a member of this group")
    return group


def _locked_group(group_id: UUID) -> Group:
    try:
        return Group.objects.select_for_update().get(id=group_id)
    except (Group.DoesNotExist, ValidationError):
        raise GroupNotFoundError(f"Group with ID {group_id} not found")


@transaction.atomic
def update_group(
    *,
    group_id: UUID,
    participant: Participant,
    name: Optional[str] = None,
    description: Optional[str] = None
) -> Group:
    """
    Update group details (members only).

    Uses select_for_update to prevent concurrent modifications.
    """
    group = _locked_group(group_id)

    if not group.has_member(participant):
        raise NotGroupMemberError("You are not a member of this group")

    update_fields = ['updated_at']

    if name is not None:
        group.name = name
        update_fields.append('name')

    if description is not None:
        group.description = description
        update_fields.append('description')

    group.save(update_fields=update_fields)
    return group


@transaction.atomic
def delete_group(*, group_id: UUID, participant: Participant) -> None:
    """
    Delete a group (creator only).

    Transactions and settlements tagged with the group are kept and become
    ungrouped.
    """
    group = _locked_group(group_id)

    if group.created_by_id != participant.id:
        raise InsufficientPermissionsError("Only the group creator can delete the group")

    group.delete()


@transaction.atomic
def add_members(*, group_id: UUID, participant: Participant, member_ids: Iterable[UUID]) -> Group:
    """Add participants visible to ``participant`` to the group."""
    group = _locked_group(group_id)

    if not group.has_member(participant):
        raise NotGroupMemberError("You are not a member of this group")

    group.members.add(*get_participants(participant_ids=member_ids, viewer=participant))
    return group


@transaction.atomic
def remove_member(*, group_id: UUID, participant: Participant, member_id: UUID) -> Group:
    """
    Remove a member from the group.

    Members may remove themselves; only the creator may remove others.
    """
    group = _locked_group(group_id)

    if not group.has_member(participant):
        raise NotGroupMemberError("You are not a member of this group")

    if str(member_id) != str(participant.id) and group.created_by_id != participant.id:
        raise InsufficientPermissionsError("Only the group creator can remove other members")

    if not group.members.filter(id=member_id).exists():
        raise NotGroupMemberError("Participant is not a member of this group")

    group.members.remove(member_id)
    return group
