import pytest
from decimal import Decimal
from django.urls import reverse
from rest_framework import status

from apps.ledger.models import Settlement, Transaction
from apps.ledger.services import create_transaction


def usd(entries):
    """Pick the USD amount out of a rendered CurrencyBalance."""
    return next((Decimal(e['amount']) for e in entries if e['currency'] == 'USD'), Decimal('0'))


# =============================================================================
# Transactions
# =============================================================================

@pytest.mark.django_db
class TestTransactionCreate:
    """Tests for POST /api/ledger/transactions/"""

    def test_create_equal_split(self, authenticated_client, viewer, bob, carol):
        url = reverse('ledger:transaction-list')
        data = {
            'title': 'Dinner',
            'amount': '100.00',
            'currency': 'USD',
            'participants': [str(viewer.id), str(bob.id), str(carol.id)],
        }
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['title'] == 'Dinner'
        assert response.data['payer']['id'] == str(viewer.id)
        amounts = sorted(Decimal(s['amount']) for s in response.data['splits'])
        assert amounts == [Decimal('33.33'), Decimal('33.33'), Decimal('33.34')]

    def test_create_with_invalid_percentages(self, authenticated_client, viewer, bob):
        url = reverse('ledger:transaction-list')
        data = {
            'title': 'Groceries',
            'amount': '50.00',
            'split_method': 'percentage',
            'participants': [str(viewer.id), str(bob.id)],
            'raw_inputs': {str(viewer.id): '60', str(bob.id): '30'},
        }
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Percentages must add up to 100%'
        assert not Transaction.objects.exists()

    def test_create_with_multiple_payers(self, authenticated_client, viewer, bob):
        url = reverse('ledger:transaction-list')
        data = {
            'title': 'Hotel',
            'amount': '120.00',
            'participants': [str(viewer.id), str(bob.id)],
            'payers': [
                {'participant': str(viewer.id), 'amount': '100.00'},
                {'participant': str(bob.id), 'amount': '20.00'},
            ],
        }
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert len(response.data['payers']) == 2

    def test_create_with_payer_and_payers_rejected(self, authenticated_client, viewer, bob):
        url = reverse('ledger:transaction-list')
        data = {
            'title': 'Hotel',
            'amount': '120.00',
            'participants': [str(viewer.id), str(bob.id)],
            'payer': str(bob.id),
            'payers': [{'participant': str(bob.id), 'amount': '120.00'}],
        }
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_create_with_invisible_participant(self, authenticated_client, viewer, other_viewer):
        url = reverse('ledger:transaction-list')
        data = {
            'title': 'Sneaky',
            'amount': '10.00',
            'participants': [str(viewer.id), str(other_viewer.id)],
        }
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_create_unauthenticated(self, api_client):
        url = reverse('ledger:transaction-list')
        response = api_client.post(url, {'title': 'x'}, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestTransactionReadUpdateDelete:

    @pytest.fixture
    def dinner(self, viewer, bob):
        return create_transaction(
            created_by=viewer, title='Dinner', amount=Decimal('60.00'), participant_ids=[viewer.id, bob.id]
        )

    def test_list(self, authenticated_client, dinner):
        response = authenticated_client.get(reverse('ledger:transaction-list'))

        assert response.status_code == status.HTTP_200_OK
        assert [t['id'] for t in response.data['results']] == [str(dinner.id)]

    def test_list_hidden_from_outsider(self, other_client, dinner):
        response = other_client.get(reverse('ledger:transaction-list'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['results'] == []

    def test_retrieve_hidden_from_outsider(self, other_client, dinner):
        url = reverse('ledger:transaction-detail', kwargs={'pk': dinner.id})
        response = other_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_invalid_date_range(self, authenticated_client, dinner):
        url = reverse('ledger:transaction-list')
        response = authenticated_client.get(url, {'date_from': '2024-02-01', 'date_to': '2024-01-01'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_patch_amount_rescales(self, authenticated_client, dinner):
        url = reverse('ledger:transaction-detail', kwargs={'pk': dinner.id})
        response = authenticated_client.patch(url, {'amount': '80.00'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert [Decimal(s['amount']) for s in response.data['splits']] == [Decimal('40.00'), Decimal('40.00')]

    def test_patch_payer(self, authenticated_client, bob, dinner):
        url = reverse('ledger:transaction-detail', kwargs={'pk': dinner.id})
        response = authenticated_client.patch(url, {'payer': str(bob.id)}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['payer']['display_name'] == 'Bob'

    def test_patch_payer_and_payers_rejected(self, authenticated_client, viewer, bob, dinner):
        url = reverse('ledger:transaction-detail', kwargs={'pk': dinner.id})
        data = {
            'payer': str(bob.id),
            'payers': [{'participant': str(viewer.id), 'amount': '60.00'}],
        }
        response = authenticated_client.patch(url, data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_put_not_allowed(self, authenticated_client, dinner):
        url = reverse('ledger:transaction-detail', kwargs={'pk': dinner.id})
        response = authenticated_client.put(url, {'title': 'x'}, format='json')

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED

    def test_delete(self, authenticated_client, dinner):
        url = reverse('ledger:transaction-detail', kwargs={'pk': dinner.id})
        response = authenticated_client.delete(url)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Transaction.objects.filter(id=dinner.id).exists()

    def test_delete_by_outsider(self, other_client, dinner):
        url = reverse('ledger:transaction-detail', kwargs={'pk': dinner.id})
        response = other_client.delete(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert Transaction.objects.filter(id=dinner.id).exists()


@pytest.mark.django_db
class TestSplitPreview:
    """Tests for POST /api/ledger/splits/preview/"""

    def test_preview(self, authenticated_client):
        url = reverse('ledger:split-preview')
        data = {
            'amount': '100.00',
            'split_method': 'adjustment',
            'participants': [
                '00000000-0000-0000-0000-000000000001',
                '00000000-0000-0000-0000-000000000002',
                '00000000-0000-0000-0000-000000000003',
            ],
            'raw_inputs': {'00000000-0000-0000-0000-000000000001': '10'},
        }
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert [Decimal(s['amount']) for s in response.data] == [
            Decimal('43.34'), Decimal('28.33'), Decimal('28.33'),
        ]
        assert not Transaction.objects.exists()

    def test_preview_invalid(self, authenticated_client):
        url = reverse('ledger:split-preview')
        data = {
            'amount': '10.00',
            'split_method': 'shares',
            'participants': ['00000000-0000-0000-0000-000000000001'],
            'raw_inputs': {'00000000-0000-0000-0000-000000000001': '0'},
        }
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data


# =============================================================================
# Settlements
# =============================================================================

@pytest.mark.django_db
class TestSettlementCreate:
    """Tests for POST /api/ledger/settlements/"""

    @pytest.fixture
    def dinner(self, viewer, bob):
        """Bob owes the viewer 42.50."""
        return create_transaction(
            created_by=viewer, title='Dinner', amount=Decimal('85.00'), participant_ids=[viewer.id, bob.id]
        )

    def test_capped_settlement(self, authenticated_client, bob, dinner):
        url = reverse('ledger:settlement-list')
        response = authenticated_client.post(url, {'counterpart': str(bob.id), 'amount': '100.00'}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert Decimal(response.data['amount']) == Decimal('42.50')
        assert response.data['is_full_settlement'] is True
        assert '$42.50' in response.data['notice']

        repeat = authenticated_client.post(url, {'counterpart': str(bob.id), 'amount': '100.00'}, format='json')
        assert repeat.status_code == status.HTTP_400_BAD_REQUEST
        assert repeat.data['error'] == 'No outstanding balance to settle'

    def test_partial_settlement_has_no_notice(self, authenticated_client, bob, dinner):
        url = reverse('ledger:settlement-list')
        response = authenticated_client.post(url, {'counterpart': str(bob.id), 'amount': '10.00'}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert 'notice' not in response.data

    def test_strict_over_settlement(self, authenticated_client, bob, dinner):
        url = reverse('ledger:settlement-list')
        data = {'counterpart': str(bob.id), 'amount': '100.00', 'strict': True}
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert not Settlement.objects.exists()

    def test_unknown_counterpart(self, authenticated_client, other_viewer):
        url = reverse('ledger:settlement-list')
        response = authenticated_client.post(url, {'counterpart': str(other_viewer.id)}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_list_and_delete(self, authenticated_client, other_client, bob, dinner):
        url = reverse('ledger:settlement-list')
        created = authenticated_client.post(url, {'counterpart': str(bob.id)}, format='json')

        listing = authenticated_client.get(url)
        assert [s['id'] for s in listing.data['results']] == [created.data['id']]

        detail = reverse('ledger:settlement-detail', kwargs={'pk': created.data['id']})
        assert other_client.delete(detail).status_code == status.HTTP_403_FORBIDDEN
        assert authenticated_client.delete(detail).status_code == status.HTTP_204_NO_CONTENT


@pytest.mark.django_db
class TestSettleAllAndSummary:

    @pytest.fixture
    def history(self, viewer, bob, carol):
        create_transaction(
            created_by=viewer, title='Concert', amount=Decimal('40.00'), participant_ids=[viewer.id, bob.id]
        )
        create_transaction(
            created_by=viewer, title='Pizza', amount=Decimal('30.00'),
            participant_ids=[viewer.id, carol.id], payer_id=carol.id
        )

    def test_summary(self, authenticated_client, bob, carol, history):
        response = authenticated_client.get(reverse('ledger:summary'))

        assert response.status_code == status.HTTP_200_OK
        assert usd(response.data['owed_to_you']) == Decimal('20.00')
        assert usd(response.data['you_owe']) == Decimal('15.00')
        people = {p['participant']['display_name']: p for p in response.data['people']}
        assert usd(people['Bob']['balance']) == Decimal('20.00')
        assert usd(people['Carol']['balance']) == Decimal('-15.00')
        assert people['Carol']['balance'][0]['formatted'] == '-$15.00'

    def test_settle_all(self, authenticated_client, history):
        url = reverse('ledger:settlement-settle-all')
        response = authenticated_client.post(url, {}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert len(response.data) == 2

        summary = authenticated_client.get(reverse('ledger:summary'))
        assert summary.data['owed_to_you'] == []
        assert summary.data['you_owe'] == []
        assert all(p['is_settled'] for p in summary.data['people'])


@pytest.mark.django_db
class TestCurrencies:
    """Tests for GET /api/ledger/currencies/"""

    def test_list(self, authenticated_client):
        response = authenticated_client.get(reverse('ledger:currency-list'))

        assert response.status_code == status.HTTP_200_OK
        by_code = {c['code']: c for c in response.data}
        assert by_code['USD']['symbol'] == '$'
        assert by_code['JPY']['decimal_places'] == 0
        assert by_code['CHF']['flag'] == '🇨🇭'
