"""
Subscription management service.

Handles subscription CRUD and billing payments with proper transaction
safety.
"""

import logging
from datetime import date as date_type
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from apps.ledger.services import resolve_currency
from apps.people.models import Participant
from apps.people.services import get_participants
from apps.subscriptions.models import BillingCycle, Subscription, SubscriptionPayment

from .exceptions import (
    InsufficientPermissionsError,
    NotSubscriberError,
    SubscriptionNotFoundError,
)


logger = logging.getLogger(__name__)


def list_subscriptions(*, viewer: Participant, include_inactive: bool = True):
    """Subscriptions the viewer created or shares."""
    queryset = (
        Subscription.objects
        .filter(Q(created_by=viewer) | Q(subscribers=viewer))
        .select_related('created_by')
        .prefetch_related('subscribers')
        .distinct()
    )
    if not include_inactive:
        queryset = queryset.filter(is_active=True)
    return queryset


def get_subscription(*, subscription_id: UUID, viewer: Participant) -> Subscription:
    """
    Get a subscription the viewer shares.

    Raises:
        SubscriptionNotFoundError: If subscription doesn't exist
        NotSubscriberError: If the viewer is not a member
    """
    try:
        subscription = (
            Subscription.objects
            .select_related('created_by')
            .prefetch_related('subscribers')
            .get(id=subscription_id)
        )
    except (Subscription.DoesNotExist, ValidationError):
        raise SubscriptionNotFoundError(f"Subscription with ID {subscription_id} not found")

    if viewer.id not in subscription.member_ids():
        raise NotSubscriberError("You are not a subscriber of this subscription")
    return subscription


def _locked_subscription(subscription_id: UUID) -> Subscription:
    try:
        return Subscription.objects.select_for_update().get(id=subscription_id)
    except (Subscription.DoesNotExist, ValidationError):
        raise SubscriptionNotFoundError(f"Subscription with ID {subscription_id} not found")


@transaction.atomic
def create_subscription(
    *,
    created_by: Participant,
    name: str,
    amount: Decimal,
    currency: Optional[str] = None,
    cycle: str = BillingCycle.MONTHLY,
    custom_cycle_days: Optional[int] = None,
    is_shared: bool = False,
    subscriber_ids: Iterable[UUID] = (),
    note: str = ''
) -> Subscription:
    """
    Create a subscription.

    Args:
        created_by: Viewer creating the subscription (always a member)
        name: Display name, e.g. "Netflix"
        amount: Amount per billing cycle
        currency: Currency code; defaults to LEDGER_DEFAULT_CURRENCY
        cycle: Billing cycle
        custom_cycle_days: Cycle length when ``cycle`` is custom
        is_shared: Whether the bill is split with subscribers
        subscriber_ids: Other participants sharing the bill
        note: Optional note

    Returns:
        Created Subscription instance

    Raises:
        ParticipantNotFoundError: If a subscriber isn't visible to the creator
    """
    subscribers = get_participants(participant_ids=subscriber_ids, viewer=created_by) if subscriber_ids else []

    subscription = Subscription.objects.create(
        name=name,
        amount=amount,
        currency=resolve_currency(currency),
        cycle=cycle,
        custom_cycle_days=custom_cycle_days if cycle == BillingCycle.CUSTOM else None,
        is_shared=is_shared,
        created_by=created_by,
        note=note,
    )
    subscription.subscribers.set([s for s in subscribers if s.id != created_by.id])

    logger.info(
        "Created subscription %s (%s %s %s, shared=%s)",
        subscription.id, amount, subscription.currency, cycle, is_shared
    )
    return subscription


@transaction.atomic
def update_subscription(
    *,
    subscription_id: UUID,
    viewer: Participant,
    subscriber_ids: Optional[Iterable[UUID]] = None,
    **fields
) -> Subscription:
    """
    Update subscription details (creator only).

    ``subscriber_ids`` replaces the subscriber set when given. Past payments
    and settlements are kept.

    Raises:
        SubscriptionNotFoundError: If subscription doesn't exist
        InsufficientPermissionsError: If the viewer didn't create it
    """
    subscription = _locked_subscription(subscription_id)

    if subscription.created_by_id != viewer.id:
        raise InsufficientPermissionsError("Only the subscription creator can edit it")

    update_fields = ['updated_at']
    for field_name in ('name', 'amount', 'cycle', 'custom_cycle_days', 'is_shared', 'is_active', 'note'):
        if field_name in fields and fields[field_name] is not None:
            setattr(subscription, field_name, fields[field_name])
            update_fields.append(field_name)

    if fields.get('currency'):
        subscription.currency = resolve_currency(fields['currency'])
        update_fields.append('currency')

    if subscription.cycle != BillingCycle.CUSTOM and subscription.custom_cycle_days is not None:
        subscription.custom_cycle_days = None
        update_fields.append('custom_cycle_days')

    subscription.save(update_fields=list(dict.fromkeys(update_fields)))

    if subscriber_ids is not None:
        subscribers = get_participants(participant_ids=subscriber_ids, viewer=viewer)
        subscription.subscribers.set([s for s in subscribers if s.id != viewer.id])

    return subscription


@transaction.atomic
def delete_subscription(*, subscription_id: UUID, viewer: Participant) -> None:
    """
    Delete a subscription (creator only).

    Its payments and the settlements recorded against it are deleted too.
    """
    subscription = _locked_subscription(subscription_id)

    if subscription.created_by_id != viewer.id:
        raise InsufficientPermissionsError("Only the subscription creator can delete it")

    subscription.delete()
    logger.info("Deleted subscription %s", subscription_id)


# =============================================================================
# Payments
# =============================================================================

@transaction.atomic
def record_payment(
    *,
    subscription_id: UUID,
    viewer: Participant,
    payer_id: Optional[UUID] = None,
    amount: Optional[Decimal] = None,
    currency: Optional[str] = None,
    date: Optional[date_type] = None,
    note: str = ''
) -> SubscriptionPayment:
    """
    Record one billing payment.

    Args:
        subscription_id: Subscription being paid
        viewer: Participant recording the payment
        payer_id: Member who paid; defaults to the viewer
        amount: Amount paid; defaults to the subscription amount
        currency: Defaults to the subscription currency
        date: Payment date; defaults to today
        note: Optional note

    Raises:
        SubscriptionNotFoundError: If subscription doesn't exist
        NotSubscriberError: If the viewer or payer is not a member
    """
    subscription = _locked_subscription(subscription_id)
    members = subscription.member_ids()

    if viewer.id not in members:
        raise NotSubscriberError("You are not a subscriber of this subscription")

    payer_id = payer_id or viewer.id
    if str(payer_id) not in {str(m) for m in members}:
        raise NotSubscriberError("Payer is not a subscriber of this subscription")

    payment = SubscriptionPayment.objects.create(
        subscription=subscription,
        payer_id=payer_id,
        amount=amount or subscription.amount,
        currency=resolve_currency(currency or subscription.currency),
        date=date or timezone.localdate(),
        note=note,
    )
    logger.info(
        "Recorded payment %s for subscription %s: %s %s by %s",
        payment.id, subscription.id, payment.amount, payment.currency, payer_id
    )
    return payment


def list_payments(*, subscription_id: UUID, viewer: Participant):
    subscription = get_subscription(subscription_id=subscription_id, viewer=viewer)
    return subscription.payments.select_related('payer')


@transaction.atomic
def delete_payment(*, subscription_id: UUID, payment_id: UUID, viewer: Participant) -> None:
    """
    Delete a payment (its payer or the subscription creator only).

    Raises:
        SubscriptionNotFoundError: If the payment doesn't exist
        InsufficientPermissionsError: If the viewer may not remove it
    """
    subscription = get_subscription(subscription_id=subscription_id, viewer=viewer)

    try:
        payment = subscription.payments.select_for_update().get(id=payment_id)
    except (SubscriptionPayment.DoesNotExist, ValidationError):
        raise SubscriptionNotFoundError(f"Payment with ID {payment_id} not found")

    if viewer.id not in (payment.payer_id, subscription.created_by_id):
        raise InsufficientPermissionsError("Only the payer or the subscription creator can delete a payment")

    payment.delete()
