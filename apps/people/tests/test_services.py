"""
Service layer unit tests for people app.

Tests cover:
- Viewer resolution
- Contact visibility and ownership rules
- Group membership management
"""

import pytest
from uuid import uuid4

from apps.people.models import Group, Participant
from apps.people.services import (
    add_members,
    archive_participant,
    create_group,
    create_participant,
    delete_group,
    get_group,
    get_participant,
    get_participants,
    list_participants,
    remove_member,
    resolve_viewer,
    update_group,
    update_participant,
)
from apps.people.services.exceptions import (
    GroupNotFoundError,
    InsufficientPermissionsError,
    NotGroupMemberError,
    ParticipantNotFoundError,
)


# =============================================================================
# Participant Management Service Tests
# =============================================================================

@pytest.mark.django_db
class TestResolveViewer:

    def test_creates_participant_on_first_use(self, user):
        viewer = resolve_viewer(user=user)

        assert viewer.user == user
        assert viewer.display_name == 'Alice Smith'

    def test_returns_same_participant(self, user):
        assert resolve_viewer(user=user).id == resolve_viewer(user=user).id
        assert Participant.objects.filter(user=user).count() == 1

    def test_falls_back_to_username(self, other_user):
        assert resolve_viewer(user=other_user).display_name == 'dave'


@pytest.mark.django_db
class TestParticipantManagement:
    """Tests for participant_management.py service functions."""

    def test_create_contact(self, viewer):
        contact = create_participant(viewer=viewer, display_name='Erin')

        assert contact.created_by == viewer
        assert contact.user is None

    def test_visibility(self, viewer, bob, other_viewer):
        """Viewers see themselves and their own contacts only."""
        visible = set(list_participants(viewer=viewer).values_list('id', flat=True))

        assert visible == {viewer.id, bob.id}
        with pytest.raises(ParticipantNotFoundError):
            get_participant(participant_id=bob.id, viewer=other_viewer)

    def test_group_members_become_visible(self, viewer, bob, other_viewer):
        group = create_group(name='Club', created_by=viewer, member_ids=[bob.id])
        group.members.add(other_viewer)

        assert get_participant(participant_id=bob.id, viewer=other_viewer) == bob

    def test_get_participants_reports_missing(self, viewer, bob):
        with pytest.raises(ParticipantNotFoundError):
            get_participants(participant_ids=[bob.id, uuid4()], viewer=viewer)

    def test_invalid_id(self, viewer):
        with pytest.raises(ParticipantNotFoundError):
            get_participant(participant_id='not-a-uuid', viewer=viewer)

    def test_rename_contact(self, viewer, bob):
        updated = update_participant(participant_id=bob.id, viewer=viewer, display_name='Robert')
        assert updated.display_name == 'Robert'

    def test_cannot_edit_someone_elses_contact(self, bob, other_viewer):
        with pytest.raises(InsufficientPermissionsError):
            update_participant(participant_id=bob.id, viewer=other_viewer, display_name='Mine')

    def test_archive_hides_from_default_list(self, viewer, bob):
        archive_participant(participant_id=bob.id, viewer=viewer)

        assert bob.id not in list_participants(viewer=viewer).values_list('id', flat=True)
        assert bob.id in list_participants(viewer=viewer, include_archived=True).values_list('id', flat=True)

    def test_cannot_archive_self(self, viewer):
        with pytest.raises(InsufficientPermissionsError):
            archive_participant(participant_id=viewer.id, viewer=viewer)


# =============================================================================
# Group Management Service Tests
# =============================================================================

@pytest.mark.django_db
class TestGroupManagement:
    """Tests for group_management.py service functions."""

    def test_create_group_adds_creator(self, viewer, bob):
        group = create_group(name='Trip', created_by=viewer, description='Summer', member_ids=[bob.id])

        assert group.created_by == viewer
        assert set(group.members.values_list('id', flat=True)) == {viewer.id, bob.id}

    def test_create_group_with_invisible_member(self, viewer, other_viewer):
        with pytest.raises(ParticipantNotFoundError):
            create_group(name='Trip', created_by=viewer, member_ids=[other_viewer.id])
        assert not Group.objects.exists()

    def test_get_group_requires_membership(self, group, other_viewer):
        with pytest.raises(NotGroupMemberError):
            get_group(group_id=group.id, participant=other_viewer)

    def test_get_unknown_group(self, viewer):
        with pytest.raises(GroupNotFoundError):
            get_group(group_id=uuid4(), participant=viewer)

    def test_update_group(self, group, bob):
        updated = update_group(group_id=group.id, participant=bob, name='Flat 4B')
        assert updated.name == 'Flat 4B'

    def test_only_creator_deletes(self, group, bob, viewer):
        with pytest.raises(InsufficientPermissionsError):
            delete_group(group_id=group.id, participant=bob)

        delete_group(group_id=group.id, participant=viewer)
        assert not Group.objects.filter(id=group.id).exists()

    def test_add_members(self, group, viewer, carol):
        add_members(group_id=group.id, participant=viewer, member_ids=[carol.id])
        assert group.has_member(carol)

    def test_member_can_leave(self, group, bob):
        remove_member(group_id=group.id, participant=bob, member_id=bob.id)
        assert not group.has_member(bob)

    def test_only_creator_removes_others(self, group, viewer, bob, carol):
        add_members(group_id=group.id, participant=viewer, member_ids=[carol.id])

        with pytest.raises(InsufficientPermissionsError):
            remove_member(group_id=group.id, participant=bob, member_id=carol.id)

        remove_member(group_id=group.id, participant=viewer, member_id=carol.id)
        assert not group.has_member(carol)

    def test_remove_non_member(self, group, viewer, carol):
        with pytest.raises(NotGroupMemberError):
            remove_member(group_id=group.id, participant=viewer, member_id=carol.id)
