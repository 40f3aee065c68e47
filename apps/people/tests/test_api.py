import pytest
from decimal import Decimal
from django.urls import reverse
from rest_framework import status

from apps.ledger.services import create_transaction
from apps.people.models import Group, Participant


# =============================================================================
# Participants
# =============================================================================

@pytest.mark.django_db
class TestParticipantEndpoints:
    """Tests for /api/people/participants/"""

    def test_me(self, authenticated_client, user):
        response = authenticated_client.get(reverse('people:participant-me'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['display_name'] == 'Alice Smith'
        assert response.data['is_self'] is True
        assert response.data['is_linked'] is True
        assert response.data['id'] == str(Participant.objects.get(user=user).id)

    def test_create_and_list_contacts(self, authenticated_client, viewer):
        url = reverse('people:participant-list')
        response = authenticated_client.post(url, {'display_name': 'Erin'}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['is_self'] is False

        listing = authenticated_client.get(url)
        names = [p['display_name'] for p in listing.data['results']]
        assert names == ['Alice Smith', 'Erin']

    def test_contacts_hidden_from_others(self, other_client, bob):
        url = reverse('people:participant-detail', kwargs={'pk': bob.id})
        response = other_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_archive_contact(self, authenticated_client, bob):
        url = reverse('people:participant-detail', kwargs={'pk': bob.id})
        response = authenticated_client.delete(url)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        bob.refresh_from_db()
        assert bob.is_archived is True

        listing = authenticated_client.get(reverse('people:participant-list'))
        assert str(bob.id) not in [p['id'] for p in listing.data['results']]

        archived = authenticated_client.get(reverse('people:participant-list'), {'include_archived': 'true'})
        assert str(bob.id) in [p['id'] for p in archived.data['results']]

    def test_rename_other_users_contact_forbidden(self, other_client, other_viewer, bob):
        url = reverse('people:participant-detail', kwargs={'pk': bob.id})
        response = other_client.patch(url, {'display_name': 'Mine'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_balance_and_transactions(self, authenticated_client, viewer, bob):
        txn = create_transaction(
            created_by=viewer, title='Dinner', amount=Decimal('30.00'), participant_ids=[viewer.id, bob.id]
        )

        balance = authenticated_client.get(reverse('people:participant-balance', kwargs={'pk': bob.id}))
        assert balance.status_code == status.HTTP_200_OK
        assert balance.data['balance'] == [{'currency': 'USD', 'amount': '15.00', 'formatted': '$15.00'}]

        shared = authenticated_client.get(reverse('people:participant-transactions', kwargs={'pk': bob.id}))
        assert shared.status_code == status.HTTP_200_OK
        assert [t['id'] for t in shared.data['results']] == [str(txn.id)]

    def test_unauthenticated(self, api_client):
        response = api_client.get(reverse('people:participant-list'))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# Groups
# =============================================================================

@pytest.mark.django_db
class TestGroupEndpoints:
    """Tests for /api/people/groups/"""

    def test_create_group(self, authenticated_client, viewer, bob):
        url = reverse('people:group-list')
        data = {'name': 'Ski Trip', 'members': [str(bob.id)]}
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['member_count'] == 2
        assert Group.objects.get(name='Ski Trip').created_by == viewer

    def test_list_only_member_groups(self, authenticated_client, other_client, group):
        url = reverse('people:group-list')

        assert len(authenticated_client.get(url).data['results']) == 1
        assert other_client.get(url).data['results'] == []

    def test_balances(self, authenticated_client, viewer, bob, group):
        create_transaction(
            created_by=viewer, title='Rent', amount=Decimal('1000.00'),
            participant_ids=[viewer.id, bob.id], group_id=group.id
        )

        url = reverse('people:group-balances', kwargs={'pk': group.id})
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        assert response.data[0]['display_name'] == 'Bob'
        assert response.data[0]['balance'][0]['amount'] == '500.00'
        assert response.data[0]['total_paid'] == []

    def test_balances_for_non_member(self, other_client, group):
        url = reverse('people:group-balances', kwargs={'pk': group.id})
        response = other_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_add_and_remove_member(self, authenticated_client, group, carol):
        add_url = reverse('people:group-add-members', kwargs={'pk': group.id})
        response = authenticated_client.post(add_url, {'members': [str(carol.id)]}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert group.has_member(carol)

        remove_url = reverse('people:group-remove-member', kwargs={'pk': group.id})
        response = authenticated_client.post(remove_url, {'participant': str(carol.id)}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert not group.has_member(carol)

    def test_delete_group(self, authenticated_client, group):
        url = reverse('people:group-detail', kwargs={'pk': group.id})
        response = authenticated_client.delete(url)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Group.objects.filter(id=group.id).exists()


# =============================================================================
# Health
# =============================================================================

@pytest.mark.django_db
class TestHealthCheck:

    def test_plain_http_is_served(self, api_client):
        """Test client requests are not redirected to HTTPS."""
        response = api_client.get(reverse('health-check'))

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {'status': 'ok', 'database': 'ok'}
