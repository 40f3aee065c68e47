import pytest
from decimal import Decimal
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.people.models import Participant
from apps.people.services import resolve_viewer
from apps.subscriptions.services import create_subscription


User = get_user_model()


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Create and return the main test user."""
    return User.objects.create_user(username='alice', password='TestPass123!', first_name='Alice')


@pytest.fixture
def viewer(user):
    """Participant linked to the main test user."""
    return resolve_viewer(user=user)


@pytest.fixture
def bob(viewer):
    return Participant.objects.create(display_name='Bob', created_by=viewer)


@pytest.fixture
def carol(viewer):
    return Participant.objects.create(display_name='Carol', created_by=viewer)


@pytest.fixture
def other_user(db):
    """Create and return a user unrelated to the viewer."""
    return User.objects.create_user(username='dave', password='TestPass123!')


@pytest.fixture
def other_viewer(other_user):
    return resolve_viewer(user=other_user)


@pytest.fixture
def netflix(viewer, bob, carol):
    """Monthly 15.00 USD subscription shared three ways."""
    return create_subscription(
        created_by=viewer,
        name='Netflix',
        amount=Decimal('15.00'),
        currency='USD',
        is_shared=True,
        subscriber_ids=[bob.id, carol.id],
    )


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
