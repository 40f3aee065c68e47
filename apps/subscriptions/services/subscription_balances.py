"""
Subscription balance service.

Shared subscriptions keep their own ledger: every payment is split evenly
over the subscribers, and settlements recorded against a subscription only
count here (person balances leave them out).
"""

import logging
from datetime import date as date_type
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from django.db import transaction

from apps.ledger.engine import (
    CurrencyBalance,
    MemberBalanceSummary,
    Participant as ParticipantRecord,
    SettlementDraft,
    SubscriptionPaymentRecord,
    SubscriptionRecord,
    plan_settlement,
    quantize_amount,
    subscription_member_balances,
    subscription_member_share,
    subscription_user_balance,
)
from apps.ledger.models import Settlement
from apps.ledger.services import resolve_currency
from apps.ledger.services.balance_queries import load_settlements
from apps.ledger.services.settlement_management import lock_participants, write_settlement
from apps.people.models import Participant
from apps.subscriptions.models import Subscription, SubscriptionPayment

from .exceptions import NotSubscriberError, SubscriptionNotSharedError
from .subscription_management import get_subscription, list_subscriptions


logger = logging.getLogger(__name__)


# =============================================================================
# Row -> record conversion
# =============================================================================

def to_subscription_record(subscription: Subscription) -> SubscriptionRecord:
    return SubscriptionRecord(
        id=subscription.id,
        name=subscription.name,
        amount=subscription.amount,
        currency_code=resolve_currency(subscription.currency),
        member_ids=tuple(sorted(subscription.member_ids(), key=str)),
        is_shared=subscription.is_shared,
        is_active=subscription.is_active,
    )


def to_payment_record(payment: SubscriptionPayment) -> SubscriptionPaymentRecord:
    return SubscriptionPaymentRecord(
        id=payment.id,
        subscription_id=payment.subscription_id,
        payer_id=payment.payer_id,
        amount=payment.amount,
        currency_code=resolve_currency(payment.currency),
        date=payment.date,
        note=payment.note,
    )


def subscription_history(subscription: Subscription):
    payments = [to_payment_record(p) for p in subscription.payments.all()]
    settlements = load_settlements(Settlement.objects.filter(subscription=subscription))
    return payments, settlements


def _member_records(subscription: Subscription) -> List[ParticipantRecord]:
    members = Participant.objects.filter(id__in=subscription.member_ids())
    return [ParticipantRecord(m.id, m.display_name) for m in members]


# =============================================================================
# Queries
# =============================================================================

def get_member_balances(*, subscription_id: UUID, viewer: Participant) -> List[MemberBalanceSummary]:
    """
    Balance with each other subscriber under the equal-share model.

    Raises:
        SubscriptionNotFoundError: If subscription doesn't exist
        NotSubscriberError: If the viewer is not a member
        SubscriptionNotSharedError: If the subscription is personal
    """
    subscription = get_subscription(subscription_id=subscription_id, viewer=viewer)
    if not subscription.is_shared:
        raise SubscriptionNotSharedError("This subscription is not shared")

    payments, settlements = subscription_history(subscription)
    return subscription_member_balances(
        viewer.id,
        to_subscription_record(subscription),
        _member_records(subscription),
        payments,
        settlements,
    )


def get_user_balance(*, subscription_id: UUID, viewer: Participant) -> CurrencyBalance:
    """The viewer's overall position in a subscription; empty when not shared or inactive."""
    subscription = get_subscription(subscription_id=subscription_id, viewer=viewer)
    payments, settlements = subscription_history(subscription)
    return subscription_user_balance(viewer.id, to_subscription_record(subscription), payments, settlements)


def get_user_share(*, subscription: Subscription, viewer: Participant) -> Decimal:
    """The viewer's share of one billing amount, rounded for display."""
    record = to_subscription_record(subscription)
    return quantize_amount(subscription_member_share(record, viewer.id), record.currency_code)


def get_monthly_totals(*, viewer: Participant) -> Tuple[CurrencyBalance, CurrencyBalance]:
    """
    Monthly cost of the viewer's active subscriptions, per currency.

    Returns:
        Tuple of (full monthly cost, the viewer's own share of it)
    """
    total = CurrencyBalance()
    share = CurrencyBalance()
    for subscription in list_subscriptions(viewer=viewer, include_inactive=False):
        record = to_subscription_record(subscription)
        monthly = subscription.monthly_equivalent
        total.add(monthly, record.currency_code)
        share.add(monthly / record.subscriber_count(viewer.id), record.currency_code)
    return total, share


# =============================================================================
# Settlement
# =============================================================================

@transaction.atomic
def settle_member(
    *,
    subscription_id: UUID,
    viewer: Participant,
    member_id: UUID,
    amount: Optional[Decimal] = None,
    currency: Optional[str] = None,
    note: str = '',
    date: Optional[date_type] = None,
    strict: bool = False
) -> Tuple[Settlement, SettlementDraft]:
    """
    Settle (part of) the subscription balance with one other subscriber.

    Follows the same lock, re-read, validate, write discipline as personal
    settlements. The stored settlement carries the subscription, so it only
    affects this subscription's ledger.

    Raises:
        SubscriptionNotFoundError: If subscription doesn't exist
        NotSubscriberError: If the viewer or member is not a subscriber
        SubscriptionNotSharedError: If the subscription is personal
        NoOutstandingBalance, InvalidAmount, OverSettlement: From the planner
    """
    subscription = get_subscription(subscription_id=subscription_id, viewer=viewer)
    others = {str(m) for m in subscription.member_ids()} - {str(viewer.id)}
    if str(member_id) not in others:
        raise NotSubscriberError("Participant is not another subscriber of this subscription")

    lock_participants([viewer.id, member_id])

    # Re-read under lock
    balances = {
        str(s.participant_id): s.balance
        for s in get_member_balances(subscription_id=subscription.id, viewer=viewer)
    }
    balance = balances.get(str(member_id), CurrencyBalance())
    code = resolve_currency(currency) if currency else balance.primary_currency(resolve_currency(subscription.currency))

    draft = plan_settlement(
        viewer_id=viewer.id,
        other_id=member_id,
        currency_code=code,
        outstanding_balance=balance.get(code),
        requested_amount=amount,
        note=note,
        strict=strict,
        date=date,
        subscription_id=subscription.id,
    )

    if draft.capped:
        logger.info(
            "Capped subscription settlement %s with %s from %s to %s %s",
            subscription.id, member_id, amount, draft.amount, code
        )

    return write_settlement(draft, viewer), draft
