"""
Balance query service.

Loads ledger rows, converts them into engine records and asks the engine for
balances. This is the only place rows become records, so the legacy
blank-currency fallback (``settings.LEDGER_DEFAULT_CURRENCY``) is applied
here and nowhere else.
"""

from typing import Dict, Iterable, List, Tuple
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ValidationError

from apps.ledger.engine import (
    CurrencyBalance,
    HomeSummary,
    MemberBalanceSummary,
    Participant as ParticipantRecord,
    PayerContribution,
    SettlementRecord,
    SplitMethod,
    SplitShare,
    TransactionRecord,
    group_member_balances,
    home_summary,
    mutual_transactions,
    person_balance,
)
from apps.ledger.engine.money import DEFAULT_CURRENCY, normalize_code
from apps.ledger.models import Settlement, Transaction
from apps.people.models import Group, Participant

from .exceptions import NotParticipantError, ParticipantNotFoundError


# =============================================================================
# Row -> record conversion
# =============================================================================

def default_currency() -> str:
    return normalize_code(getattr(settings, 'LEDGER_DEFAULT_CURRENCY', DEFAULT_CURRENCY))


def resolve_currency(code) -> str:
    """Concrete currency for a stored code; blank legacy rows get the default."""
    return normalize_code(code) if code else default_currency()


def to_transaction_record(txn: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=txn.id,
        title=txn.title,
        total_amount=txn.amount,
        currency_code=resolve_currency(txn.currency),
        date=txn.date,
        split_method=SplitMethod(txn.split_method),
        payer_id=txn.payer_id,
        group_id=txn.group_id,
        note=txn.note,
        payers=tuple(PayerContribution(p.paid_by_id, p.amount) for p in txn.payers.all()),
        splits=tuple(SplitShare(s.owed_by_id, s.amount, s.raw_amount) for s in txn.splits.all()),
    )


def to_settlement_record(settlement: Settlement) -> SettlementRecord:
    return SettlementRecord(
        id=settlement.id,
        from_participant_id=settlement.from_person_id,
        to_participant_id=settlement.to_person_id,
        amount=settlement.amount,
        currency_code=resolve_currency(settlement.currency),
        date=settlement.date,
        note=settlement.note,
        is_full_settlement=settlement.is_full_settlement,
        group_id=settlement.group_id,
        subscription_id=settlement.subscription_id,
    )


def load_transactions(queryset) -> List[TransactionRecord]:
    return [to_transaction_record(t) for t in queryset.prefetch_related('payers', 'splits')]


def load_settlements(queryset) -> List[SettlementRecord]:
    return [to_settlement_record(s) for s in queryset]


def viewer_history(viewer: Participant) -> Tuple[List[TransactionRecord], List[SettlementRecord]]:
    """Every transaction and settlement the viewer takes part in."""
    transactions = load_transactions(Transaction.objects.involving(viewer))
    settlements = load_settlements(Settlement.objects.involving(viewer))
    return transactions, settlements


def group_history(group: Group) -> Tuple[List[TransactionRecord], List[SettlementRecord]]:
    transactions = load_transactions(Transaction.objects.filter(group=group))
    settlements = load_settlements(Settlement.objects.filter(group=group, subscription__isnull=True))
    return transactions, settlements


# =============================================================================
# Queries
# =============================================================================

def get_counterpart(*, participant_id: UUID, viewer: Participant) -> Participant:
    """
    Get a participant the viewer may hold a balance with.

    Raises:
        ParticipantNotFoundError: If it doesn't exist or isn't visible
    """
    try:
        return Participant.objects.visible_to(viewer).get(id=participant_id)
    except (Participant.DoesNotExist, ValidationError):
        raise ParticipantNotFoundError(f"Participant with ID {participant_id} not found")


def counterpart_ids(
    viewer_id,
    transactions: Iterable[TransactionRecord],
    settlements: Iterable[SettlementRecord],
) -> List:
    """Everyone who shares a transaction or settlement with the viewer."""
    ids = set()
    for txn in transactions:
        ids.update(p.participant_id for p in txn.effective_payers)
        ids.update(s.participant_id for s in txn.splits)
    for settlement in settlements:
        ids.update((settlement.from_participant_id, settlement.to_participant_id))
    ids.discard(viewer_id)
    ids.discard(None)
    return sorted(ids, key=str)


def get_person_balance(*, viewer: Participant, person_id: UUID) -> CurrencyBalance:
    """
    Balance between the viewer and one person across all shared history.

    Positive amounts mean the person owes the viewer.
    """
    person = get_counterpart(participant_id=person_id, viewer=viewer)
    if person.id == viewer.id:
        return CurrencyBalance()

    transactions, settlements = viewer_history(viewer)
    return person_balance(viewer.id, person.id, transactions, settlements)


def get_all_person_balances(*, viewer: Participant) -> Dict:
    """Balance with every counterpart, keyed by participant id."""
    transactions, settlements = viewer_history(viewer)
    return {
        pid: person_balance(viewer.id, pid, transactions, settlements)
        for pid in counterpart_ids(viewer.id, transactions, settlements)
    }


def get_home_summary(*, viewer: Participant) -> Tuple[HomeSummary, Dict]:
    """
    Home screen totals plus the per-person balances they were built from.

    Returns:
        Tuple of (HomeSummary, {participant_id: CurrencyBalance})
    """
    balances = get_all_person_balances(viewer=viewer)
    return home_summary(balances, viewer=viewer.id), balances


def get_mutual_transactions(*, viewer: Participant, person_id: UUID) -> List[Transaction]:
    """Transactions shared by the viewer and a person, newest first."""
    person = get_counterpart(participant_id=person_id, viewer=viewer)

    rows = {t.id: t for t in Transaction.objects.involving(viewer).prefetch_related('payers', 'splits')}
    records = [to_transaction_record(t) for t in rows.values()]
    return [rows[r.id] for r in mutual_transactions(records, viewer.id, person.id)]


def get_group_member_balances(*, viewer: Participant, group: Group) -> List[MemberBalanceSummary]:
    """
    Balance with each other member, restricted to the group's own history.

    Raises:
        NotParticipantError: If the viewer is not a group member
    """
    if not group.has_member(viewer):
        raise NotParticipantError("You are not a member of this group")

    members = [ParticipantRecord(m.id, m.display_name) for m in group.members.all()]
    transactions, settlements = group_history(group)
    return group_member_balances(viewer.id, members, transactions, settlements, group_id=group.id)
