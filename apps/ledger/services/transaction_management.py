"""
Transaction management service.

Creates, edits and deletes shared expenses. Splits are computed once, at
write time, by the engine's split calculator and stored; balances are always
derived from the stored splits.

Example:
    Splitting a dinner three ways, paid by one person::

        txn = create_transaction(
            created_by=viewer,
            title='Dinner',
            amount=Decimal('100.00'),
            currency='USD',
            participant_ids=[viewer.id, alex.id, sam.id],
        )
        # Stored splits: 33.34, 33.33, 33.33 (remainder by ascending id)
"""

import logging
from datetime import date as date_type
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.ledger.engine import (
    PayerContribution,
    SplitMethod,
    SplitShare,
    compute_splits,
    rescale_splits,
    validate_payers,
)
from apps.ledger.models import Transaction, TransactionPayer, TransactionSplit
from apps.people.models import Group, Participant

from .balance_queries import resolve_currency
from .exceptions import NotParticipantError, ParticipantNotFoundError, TransactionNotFoundError


logger = logging.getLogger(__name__)


def _visible_participants(ids: Iterable[UUID], viewer: Participant) -> Dict[str, Participant]:
    wanted = {str(pid) for pid in ids}
    found = {str(p.id): p for p in Participant.objects.visible_to(viewer).filter(id__in=wanted)}
    missing = wanted - set(found)
    if missing:
        raise ParticipantNotFoundError(f"Participants not found: {', '.join(sorted(missing))}")
    return found


def _resolve_group(group_id: Optional[UUID], viewer: Participant) -> Optional[Group]:
    if group_id is None:
        return None
    try:
        group = Group.objects.get(id=group_id)
    except (Group.DoesNotExist, ValidationError):
        raise NotParticipantError(f"Group with ID {group_id} not found")
    if not group.has_member(viewer):
        raise NotParticipantError("You are not a member of this group")
    return group


def _write_splits(txn: Transaction, shares: Sequence[SplitShare]) -> None:
    TransactionSplit.objects.bulk_create([
        TransactionSplit(
            transaction=txn,
            owed_by_id=share.participant_id,
            amount=share.amount,
            raw_amount=share.raw_input,
        )
        for share in shares
    ])


def _write_payers(txn: Transaction, payers: Sequence[PayerContribution]) -> None:
    TransactionPayer.objects.bulk_create([
        TransactionPayer(transaction=txn, paid_by_id=p.participant_id, amount=p.amount)
        for p in payers
    ])


def _contributions(
    amount: Decimal,
    payer_id: Optional[UUID],
    payers: Optional[Sequence[Tuple[UUID, Decimal]]],
    default_payer: Participant
) -> List[PayerContribution]:
    if payers:
        return validate_payers(amount, [PayerContribution(str(pid), Decimal(a)) for pid, a in payers])
    return [PayerContribution(str(payer_id or default_payer.id), Decimal(amount))]


def _main_payer(contributions: Sequence[PayerContribution]) -> PayerContribution:
    # Largest contributor doubles as the display payer
    return max(contributions, key=lambda c: (c.amount, c.participant_id))


def _log_clamped(txn: Transaction, shares: Sequence[SplitShare]) -> None:
    clamped = [str(s.participant_id) for s in shares if s.clamped]
    if clamped:
        logger.warning(
            "Adjustment split for transaction %s clamped negative shares to zero for %s",
            txn.id, ', '.join(clamped)
        )


def preview_splits(
    *,
    amount: Decimal,
    split_method: str,
    participant_ids: Sequence,
    raw_inputs: Optional[Dict] = None,
    currency: Optional[str] = None
) -> List[SplitShare]:
    """Compute splits without saving anything (live preview while editing)."""
    return compute_splits(
        amount,
        split_method,
        participant_ids,
        _keyed(raw_inputs),
        resolve_currency(currency),
    )


def _keyed(raw_inputs: Optional[Dict]) -> Dict[str, Decimal]:
    return {str(k): v for k, v in (raw_inputs or {}).items()}


@transaction.atomic
def create_transaction(
    *,
    created_by: Participant,
    title: str,
    amount: Decimal,
    participant_ids: Sequence[UUID],
    currency: Optional[str] = None,
    date: Optional[date_type] = None,
    split_method: str = SplitMethod.EQUAL.value,
    raw_inputs: Optional[Dict] = None,
    payer_id: Optional[UUID] = None,
    payers: Optional[Sequence[Tuple[UUID, Decimal]]] = None,
    group_id: Optional[UUID] = None,
    note: str = ''
) -> Transaction:
    """
    Create a transaction and store its computed splits.

    Args:
        created_by: Viewer recording the expense
        title: Short description
        amount: Total amount
        participant_ids: Participants owing a share
        currency: Currency code; defaults to LEDGER_DEFAULT_CURRENCY
        date: Expense date; defaults to today
        split_method: One of equal, amount, percentage, shares, adjustment
        raw_inputs: Method-specific input per participant id
        payer_id: Single payer (defaults to ``created_by``)
        payers: ``(participant_id, amount)`` pairs for multi-payer expenses
        group_id: Optional group the expense belongs to
        note: Optional note

    Returns:
        Created Transaction instance

    Raises:
        InvalidSplitInput: If split inputs don't reconcile to the amount
        InvalidPayerInput: If payer amounts don't add up to the amount
        ParticipantNotFoundError: If a participant isn't visible to the creator
        NotParticipantError: If the creator isn't a member of the group

    Note:
        Runs in a database transaction. If any step fails, nothing is stored.
    """
    currency = resolve_currency(currency)
    group = _resolve_group(group_id, created_by)

    contributions = _contributions(amount, payer_id, payers, created_by)

    people = _visible_participants(
        list(participant_ids) + [c.participant_id for c in contributions],
        created_by
    )

    shares = compute_splits(
        amount,
        split_method,
        [str(pid) for pid in participant_ids],
        _keyed(raw_inputs),
        currency,
    )

    main_payer = _main_payer(contributions)

    txn = Transaction.objects.create(
        title=title,
        amount=amount,
        currency=currency,
        split_method=SplitMethod(split_method).value,
        payer=people[main_payer.participant_id],
        created_by=created_by,
        group=group,
        date=date or timezone.localdate(),
        note=note,
    )

    if len(contributions) > 1:
        _write_payers(txn, contributions)
    _write_splits(txn, shares)
    _log_clamped(txn, shares)

    logger.info("Created transaction %s (%s %s, %d splits)", txn.id, amount, currency, len(shares))
    return txn


def get_transaction(*, transaction_id: UUID, viewer: Participant) -> Transaction:
    """
    Get a transaction the viewer takes part in.

    Raises:
        TransactionNotFoundError: If it doesn't exist or the viewer isn't involved
    """
    try:
        return (
            Transaction.objects
            .involving(viewer)
            .select_related('payer', 'created_by', 'group')
            .prefetch_related('payers__paid_by', 'splits__owed_by')
            .get(id=transaction_id)
        )
    except (Transaction.DoesNotExist, ValidationError):
        raise TransactionNotFoundError(f"Transaction with ID {transaction_id} not found")


def _locked_transaction(transaction_id: UUID, viewer: Participant) -> Transaction:
    try:
        txn = Transaction.objects.select_for_update().get(id=transaction_id)
    except (Transaction.DoesNotExist, ValidationError):
        raise TransactionNotFoundError(f"Transaction with ID {transaction_id} not found")

    if not Transaction.objects.involving(viewer).filter(id=txn.id).exists():
        raise NotParticipantError("You are not part of this transaction")
    return txn


@transaction.atomic
def update_transaction(
    *,
    transaction_id: UUID,
    viewer: Participant,
    title: Optional[str] = None,
    amount: Optional[Decimal] = None,
    date: Optional[date_type] = None,
    note: Optional[str] = None,
    payer_id: Optional[UUID] = None,
    payers: Optional[Sequence[Tuple[UUID, Decimal]]] = None
) -> Transaction:
    """
    Edit a transaction.

    A changed amount rescales the stored splits (and multi-payer
    contributions) proportionally so both still sum exactly to the new total.
    A new ``payer_id`` or ``payers`` list replaces the stored contributions;
    multi-payer amounts must add up to the (new) total.

    Raises:
        TransactionNotFoundError: If transaction doesn't exist
        NotParticipantError: If the viewer isn't involved
        ParticipantNotFoundError: If a new payer isn't visible to the viewer
        InvalidSplitInput: If the new amount is not valid
        InvalidPayerInput: If payer amounts don't add up to the total
    """
    txn = _locked_transaction(transaction_id, viewer)
    update_fields = ['updated_at']

    new_amount = Decimal(amount) if amount is not None else txn.amount
    payer_change = bool(payer_id or payers)

    contributions = None
    if payer_change:
        contributions = _contributions(new_amount, payer_id, payers, viewer)
        people = _visible_participants([c.participant_id for c in contributions], viewer)

    if new_amount != txn.amount:
        _rescale(txn, new_amount, include_payers=not payer_change)
        txn.amount = new_amount
        update_fields.append('amount')

    if contributions is not None:
        txn.payers.all().delete()
        if len(contributions) > 1:
            _write_payers(txn, contributions)
        txn.payer = people[_main_payer(contributions).participant_id]
        update_fields.append('payer')
        logger.info("Replaced payers of transaction %s (%d contributions)", txn.id, len(contributions))

    if title is not None:
        txn.title = title
        update_fields.append('title')

    if date is not None:
        txn.date = date
        update_fields.append('date')

    if note is not None:
        txn.note = note
        update_fields.append('note')

    txn.save(update_fields=update_fields)
    return txn


def _rescale(txn: Transaction, new_amount: Decimal, include_payers: bool = True) -> None:
    currency = resolve_currency(txn.currency)

    split_rows = {str(s.owed_by_id): s for s in txn.splits.all()}
    shares = [SplitShare(pid, row.amount, row.raw_amount) for pid, row in split_rows.items()]
    for share in rescale_splits(shares, new_amount, currency, txn.split_method):
        row = split_rows[share.participant_id]
        row.amount = share.amount
        row.raw_amount = share.raw_input
    TransactionSplit.objects.bulk_update(split_rows.values(), ['amount', 'raw_amount'])

    payer_rows = {str(p.paid_by_id): p for p in txn.payers.all()} if include_payers else {}
    if payer_rows:
        contributions = [SplitShare(pid, row.amount) for pid, row in payer_rows.items()]
        for share in rescale_splits(contributions, new_amount, currency):
            payer_rows[share.participant_id].amount = share.amount
        TransactionPayer.objects.bulk_update(payer_rows.values(), ['amount'])

    logger.info("Rescaled transaction %s from %s to %s", txn.id, txn.amount, new_amount)


@transaction.atomic
def delete_transaction(*, transaction_id: UUID, viewer: Participant) -> None:
    """
    Delete a transaction.

    Cascading deletes remove its payer contributions and splits.
    """
    txn = _locked_transaction(transaction_id, viewer)
    txn.delete()
    logger.info("Deleted transaction %s", transaction_id)
