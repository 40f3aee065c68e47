"""
Settlement management service.

Records payments that pay down balances. Every write follows the same
discipline inside one database transaction:

    1. Lock the participant rows involved (``select_for_update``, id order)
    2. Re-read transactions and settlements
    3. Recompute the outstanding balance
    4. Validate with the engine's settlement planner
    5. Write

so two concurrent settlements can never both pay the same debt.
"""

import logging
from datetime import date as date_type
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.ledger.engine import (
    CurrencyBalance,
    SettlementDraft,
    person_balance,
    plan_settle_all,
    plan_settlement,
)
from apps.ledger.models import Settlement
from apps.people.models import Group, Participant

from .balance_queries import (
    counterpart_ids,
    default_currency,
    get_counterpart,
    get_group_member_balances,
    group_history,
    resolve_currency,
    viewer_history,
)
from .exceptions import NotParticipantError, SettlementNotFoundError


logger = logging.getLogger(__name__)


def lock_participants(ids: Iterable) -> List[Participant]:
    """Lock participant rows in a stable order to avoid deadlocks."""
    return list(
        Participant.objects
        .select_for_update()
        .filter(id__in=set(ids))
        .order_by('id')
    )


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


def _outstanding(viewer: Participant, other: Participant, group: Optional[Group]) -> CurrencyBalance:
    if group is None:
        transactions, settlements = viewer_history(viewer)
    else:
        if not group.has_member(other):
            raise NotParticipantError("Participant is not a member of this group")
        transactions, settlements = group_history(group)
    return person_balance(viewer.id, other.id, transactions, settlements)


def write_settlement(draft: SettlementDraft, recorded_by: Participant) -> Settlement:
    """Persist a validated draft. Callers hold the participant locks."""
    settlement = Settlement.objects.create(
        from_person_id=draft.from_participant_id,
        to_person_id=draft.to_participant_id,
        amount=draft.amount,
        currency=draft.currency_code,
        date=draft.date or timezone.localdate(),
        note=draft.note,
        is_full_settlement=draft.is_full_settlement,
        group_id=draft.group_id,
        subscription_id=draft.subscription_id,
        created_by=recorded_by,
    )
    logger.info(
        "Recorded settlement %s: %s -> %s %s %s%s",
        settlement.id, draft.from_participant_id, draft.to_participant_id,
        draft.amount, draft.currency_code, ' (full)' if draft.is_full_settlement else ''
    )
    return settlement


@transaction.atomic
def create_settlement(
    *,
    viewer: Participant,
    other_id: UUID,
    amount: Optional[Decimal] = None,
    currency: Optional[str] = None,
    note: str = '',
    date: Optional[date_type] = None,
    group_id: Optional[UUID] = None,
    strict: bool = False
) -> Tuple[Settlement, SettlementDraft]:
    """
    Settle (part of) the balance between the viewer and another participant.

    Args:
        viewer: Participant recording the settlement
        other_id: Counterpart
        amount: Amount to settle; None settles the full balance
        currency: Currency to settle; defaults to the largest outstanding one
        note: Optional note
        date: Settlement date; defaults to today
        group_id: Settle only the balance within this group
        strict: Reject amounts above the balance instead of capping them

    Returns:
        Tuple of (Settlement, SettlementDraft). ``draft.capped`` tells the
        caller the requested amount was reduced to the outstanding balance.

    Raises:
        ParticipantNotFoundError: If the counterpart isn't visible
        NotParticipantError: If settling with yourself or outside your group
        NoOutstandingBalance: If nothing is owed in that currency
        InvalidAmount: If the amount is zero or negative
        OverSettlement: If ``strict`` and the amount exceeds the balance
    """
    other = get_counterpart(participant_id=other_id, viewer=viewer)
    if other.id == viewer.id:
        raise NotParticipantError("You cannot settle with yourself")

    lock_participants([viewer.id, other.id])
    group = _resolve_group(group_id, viewer)

    balance = _outstanding(viewer, other, group)
    code = resolve_currency(currency) if currency else balance.primary_currency(default_currency())

    draft = plan_settlement(
        viewer_id=viewer.id,
        other_id=other.id,
        currency_code=code,
        outstanding_balance=balance.get(code),
        requested_amount=amount,
        note=note,
        strict=strict,
        date=date,
        group_id=group.id if group else None,
    )

    if draft.capped:
        logger.info(
            "Capped settlement between %s and %s from %s to %s %s",
            viewer.id, other.id, amount, draft.amount, code
        )

    return write_settlement(draft, viewer), draft


@transaction.atomic
def settle_all(
    *,
    viewer: Participant,
    group_id: Optional[UUID] = None,
    note: str = '',
    date: Optional[date_type] = None
) -> List[Settlement]:
    """
    Fully settle every outstanding balance of the viewer.

    Writes one settlement per counterpart and currency. Either every
    settlement is stored or none is.

    Args:
        viewer: Participant settling up
        group_id: Limit to balances within this group
        note: Note stored on each settlement
        date: Settlement date; defaults to today

    Returns:
        List of created Settlement instances (empty when nothing is owed)
    """
    group = _resolve_group(group_id, viewer)

    if group is None:
        transactions, settlements = viewer_history(viewer)
        others = counterpart_ids(viewer.id, transactions, settlements)
    else:
        others = [m.id for m in group.members.all() if m.id != viewer.id]

    lock_participants([viewer.id, *others])

    # Re-read under lock
    if group is None:
        transactions, settlements = viewer_history(viewer)
        balances = {
            pid: person_balance(viewer.id, pid, transactions, settlements)
            for pid in counterpart_ids(viewer.id, transactions, settlements)
        }
    else:
        balances = {
            s.participant_id: s.balance
            for s in get_group_member_balances(viewer=viewer, group=group)
        }

    drafts = plan_settle_all(
        viewer_id=viewer.id,
        balances=balances,
        note=note,
        date=date,
        group_id=group.id if group else None,
    )

    skipped = sum(len(b.as_dict()) for b in balances.values()) - len(drafts)
    if skipped:
        logger.debug("Settle-all for %s skipped %d settled or negligible entries", viewer.id, skipped)

    created = [write_settlement(draft, viewer) for draft in drafts]
    logger.info("Settle-all for %s recorded %d settlements", viewer.id, len(created))
    return created


def list_settlements(
    *,
    viewer: Participant,
    person_id: Optional[UUID] = None,
    group_id: Optional[UUID] = None
):
    """Settlements the viewer is a party to, optionally narrowed to a person or group."""
    queryset = Settlement.objects.involving(viewer).select_related('from_person', 'to_person', 'group')
    if person_id:
        queryset = queryset.filter(from_person_id__in=[viewer.id, person_id], to_person_id__in=[viewer.id, person_id])
    if group_id:
        queryset = queryset.filter(group_id=group_id)
    return queryset


def get_settlement(*, settlement_id: UUID, viewer: Participant) -> Settlement:
    try:
        return Settlement.objects.involving(viewer).select_related('from_person', 'to_person').get(id=settlement_id)
    except (Settlement.DoesNotExist, ValidationError):
        raise SettlementNotFoundError(f"Settlement with ID {settlement_id} not found")


@transaction.atomic
def delete_settlement(*, settlement_id: UUID, viewer: Participant) -> None:
    """
    Delete a settlement, reinstating the balance it paid down.

    Raises:
        SettlementNotFoundError: If settlement doesn't exist
        NotParticipantError: If the viewer is not a party to it
    """
    try:
        settlement = Settlement.objects.select_for_update().get(id=settlement_id)
    except (Settlement.DoesNotExist, ValidationError):
        raise SettlementNotFoundError(f"Settlement with ID {settlement_id} not found")

    if viewer.id not in (settlement.from_person_id, settlement.to_person_id):
        raise NotParticipantError("You are not a party to this settlement")

    settlement.delete()
    logger.info("Deleted settlement %s", settlement_id)
