import pytest
from decimal import Decimal
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.ledger.engine import SplitShare, TransactionRecord
from apps.people.models import Participant
from apps.people.services import create_group, resolve_viewer


User = get_user_model()


# =============================================================================
# Engine helpers
# =============================================================================

def make_record(txn_id, total, payer, splits, currency='USD', payers=(), date=None, group_id=None):
    """Build a TransactionRecord from ``{participant: amount}`` splits."""
    return TransactionRecord(
        id=txn_id,
        total_amount=Decimal(total),
        currency_code=currency,
        payer_id=payer,
        payers=tuple(payers),
        splits=tuple(SplitShare(pid, Decimal(amount)) for pid, amount in splits.items()),
        date=date,
        group_id=group_id,
    )


# =============================================================================
# Users and participants
# =============================================================================

@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Create and return the main test user."""
    return User.objects.create_user(
        username='alice',
        password='TestPass123!',
        first_name='Alice',
    )


@pytest.fixture
def viewer(user):
    """Participant linked to the main test user."""
    return resolve_viewer(user=user)


@pytest.fixture
def bob(viewer):
    """Contact created by the viewer."""
    return Participant.objects.create(display_name='Bob', created_by=viewer)


@pytest.fixture
def carol(viewer):
    """Another contact created by the viewer."""
    return Participant.objects.create(display_name='Carol', created_by=viewer)


@pytest.fixture
def other_user(db):
    """Create and return a user unrelated to the viewer."""
    return User.objects.create_user(
        username='dave',
        password='TestPass123!',
        first_name='Dave',
    )


@pytest.fixture
def other_viewer(other_user):
    return resolve_viewer(user=other_user)


@pytest.fixture
def group(viewer, bob, carol):
    """Group with the viewer, Bob and Carol."""
    return create_group(name='Road Trip', created_by=viewer, member_ids=[bob.id, carol.id])


# =============================================================================
# API clients
# =============================================================================

@pytest.fixture
def authenticated_client(api_client, user):
    """Return API client authenticated as the main test user."""
    refresh = RefreshToken.for_user(user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client


@pytest.fixture
def other_client(other_user):
    """Return API client authenticated as the unrelated user."""
    client = APIClient()
    refresh = RefreshToken.for_user(other_user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client
