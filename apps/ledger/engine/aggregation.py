"""
Balance Aggregator
==================

Rolls pairwise balances up into person, group, subscription and home-screen
totals. Everything is computed from the viewer's point of view: positive
amounts are owed to the viewer.

Shared subscriptions use a simplified equal-share model instead of stored
splits: every payment is divided evenly over the subscribers.
"""

from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Union

from .money import CurrencyBalance, to_decimal
from .pairwise import aggregate_balance
from .records import (
    HomeSummary,
    MemberBalanceSummary,
    Participant,
    ParticipantId,
    SettlementRecord,
    SubscriptionPaymentRecord,
    SubscriptionRecord,
    TransactionRecord,
)


def _sort_key(summary: MemberBalanceSummary):
    return (summary.display_name.lower(), str(summary.participant_id))


# =============================================================================
# Person
# =============================================================================

def person_balance(
    viewer: ParticipantId,
    person: ParticipantId,
    transactions: Iterable[TransactionRecord],
    settlements: Iterable[SettlementRecord],
) -> CurrencyBalance:
    """
    Balance between the viewer and one person, independent of grouping.

    Settlements recorded against a subscription belong to that
    subscription's ledger and are left out.
    """
    personal = [s for s in settlements if s.subscription_id is None]
    return aggregate_balance(transactions, personal, viewer, person)


# =============================================================================
# Group
# =============================================================================

def group_member_balances(
    viewer: ParticipantId,
    members: Iterable[Participant],
    transactions: Iterable[TransactionRecord],
    settlements: Iterable[SettlementRecord],
    group_id=None,
) -> List[MemberBalanceSummary]:
    """
    Balance with every other member of a group.

    When ``group_id`` is given, only transactions and settlements tagged with
    that group count. Otherwise the caller is expected to pass them
    pre-filtered.

    Returns:
        list[MemberBalanceSummary]: One entry per non-viewer member, sorted
        by display name. ``total_paid`` is what the member contributed to the
        group's transactions.
    """
    transactions = list(transactions)
    settlements = list(settlements)
    if group_id is not None:
        transactions = [t for t in transactions if t.group_id == group_id]
        settlements = [s for s in settlements if s.group_id == group_id]

    summaries = []
    for member in members:
        if member.id == viewer:
            continue
        paid = CurrencyBalance()
        for txn in transactions:
            for payer in txn.effective_payers:
                if payer.participant_id == member.id:
                    paid.add(payer.amount, txn.currency_code)
        summaries.append(MemberBalanceSummary(
            participant_id=member.id,
            balance=aggregate_balance(transactions, settlements, viewer, member.id),
            total_paid=paid,
            display_name=member.display_name,
        ))
    return sorted(summaries, key=_sort_key)


def group_balance(
    viewer: ParticipantId,
    members: Iterable[Participant],
    transactions: Iterable[TransactionRecord],
    settlements: Iterable[SettlementRecord],
    group_id=None,
) -> CurrencyBalance:
    """The viewer's overall position in a group, per currency."""
    total = CurrencyBalance()
    for summary in group_member_balances(viewer, members, transactions, settlements, group_id):
        total.merge(summary.balance)
    return total


def members_who_owe_you(summaries: Iterable[MemberBalanceSummary]) -> List[MemberBalanceSummary]:
    return [s for s in summaries if s.balance.has_positive]


def members_you_owe(summaries: Iterable[MemberBalanceSummary]) -> List[MemberBalanceSummary]:
    return [s for s in summaries if s.balance.has_negative]


# =============================================================================
# Subscription
# =============================================================================

def _per_member(amount, count: int) -> Decimal:
    if count <= 0:
        return Decimal('0')
    return to_decimal(amount) / count


def subscription_member_share(subscription: SubscriptionRecord, viewer: ParticipantId) -> Decimal:
    """The viewer's equal share of one billing amount."""
    return _per_member(subscription.amount, subscription.subscriber_count(viewer))


def _scoped(settlements: Iterable[SettlementRecord], subscription: SubscriptionRecord) -> List[SettlementRecord]:
    return [s for s in settlements if s.subscription_id == subscription.id]


def subscription_member_balances(
    viewer: ParticipantId,
    subscription: SubscriptionRecord,
    members: Iterable[Participant],
    payments: Iterable[SubscriptionPaymentRecord],
    settlements: Iterable[SettlementRecord],
) -> List[MemberBalanceSummary]:
    """
    Balance with each other subscriber under the equal-share model.

    For each payment, ``per = payment.amount / subscriber_count``:
        - the viewer paid: each other member owes the viewer ``per``
        - a member paid: the viewer owes that member ``per``

    Settlements between the viewer and a member apply directly. Inactive or
    non-shared subscriptions have no member balances.
    """
    if not (subscription.is_shared and subscription.is_active):
        return []

    payments = list(payments)
    settlements = _scoped(settlements, subscription)
    count = subscription.subscriber_count(viewer)

    summaries = []
    for member in members:
        if member.id == viewer:
            continue
        balance = CurrencyBalance()
        paid = CurrencyBalance()

        for payment in payments:
            if payment.payer_id is None:
                continue
            per = _per_member(payment.amount, count)
            if payment.payer_id == viewer:
                balance.add(per, payment.currency_code)
            elif payment.payer_id == member.id:
                paid.add(payment.amount, payment.currency_code)
                balance.subtract(per, payment.currency_code)

        for settlement in settlements:
            if settlement.from_participant_id == member.id and settlement.to_participant_id == viewer:
                balance.subtract(settlement.amount, settlement.currency_code)
            elif settlement.from_participant_id == viewer and settlement.to_participant_id == member.id:
                balance.add(settlement.amount, settlement.currency_code)

        summaries.append(MemberBalanceSummary(
            participant_id=member.id,
            balance=balance,
            total_paid=paid,
            display_name=member.display_name,
        ))
    return sorted(summaries, key=_sort_key)


def subscription_user_balance(
    viewer: ParticipantId,
    subscription: SubscriptionRecord,
    payments: Iterable[SubscriptionPaymentRecord],
    settlements: Iterable[SettlementRecord],
) -> CurrencyBalance:
    """
    The viewer's overall position in a shared subscription.

    A payment by the viewer credits ``amount - per`` (their own share
    excluded); any other payment debits ``per``. Payments without a payer
    are skipped. Inactive or non-shared subscriptions are settled.
    """
    balance = CurrencyBalance()
    if not (subscription.is_shared and subscription.is_active):
        return balance

    count = subscription.subscriber_count(viewer)
    for payment in payments:
        if payment.payer_id is None:
            continue
        per = _per_member(payment.amount, count)
        if payment.payer_id == viewer:
            balance.add(to_decimal(payment.amount) - per, payment.currency_code)
        else:
            balance.subtract(per, payment.currency_code)

    for settlement in _scoped(settlements, subscription):
        if settlement.to_participant_id == viewer:
            balance.subtract(settlement.amount, settlement.currency_code)
        elif settlement.from_participant_id == viewer:
            balance.add(settlement.amount, settlement.currency_code)
    return balance


# =============================================================================
# Home
# =============================================================================

def home_summary(
    balances: Union[Mapping[ParticipantId, CurrencyBalance], Iterable[CurrencyBalance]],
    viewer: Optional[ParticipantId] = None,
) -> HomeSummary:
    """
    Split every person's balance into "you owe" and "owed to you" buckets.

    Negative entries go to ``you_owe`` with the sign flipped. Currencies are
    never netted against each other. Use ``sorted_currencies()`` on each
    bucket for largest-first display.
    """
    if isinstance(balances, Mapping):
        balances = [b for pid, b in balances.items() if viewer is None or pid != viewer]

    summary = HomeSummary()
    for balance in balances:
        for code, amount in balance.non_zero.items():
            if amount < 0:
                summary.you_owe.add(-amount, code)
            else:
                summary.owed_to_you.add(amount, code)
    return summary
