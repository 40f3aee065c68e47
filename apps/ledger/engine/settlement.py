"""
Settlement Processor
====================

Validates a payment that reduces an outstanding balance and turns it into a
draft ready to be persisted. Drafts are plain values; writing them (under row
locks) is the service layer's job.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_type
from decimal import Decimal, InvalidOperation
from typing import Hashable, List, Mapping, Optional

from .exceptions import InvalidAmount, NoOutstandingBalance, OverSettlement
from .money import ZERO_TOLERANCE, CurrencyBalance, format_amount, quantize_amount, to_decimal
from .records import ParticipantId


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementDraft:
    from_participant_id: ParticipantId
    to_participant_id: ParticipantId
    amount: Decimal
    currency_code: str
    outstanding: Decimal
    note: str = ''
    date: Optional[date_type] = None
    is_full_settlement: bool = False
    capped: bool = False
    group_id: Optional[Hashable] = None
    subscription_id: Optional[Hashable] = None


def plan_settlement(
    *,
    viewer_id: ParticipantId,
    other_id: ParticipantId,
    currency_code: str,
    outstanding_balance,
    requested_amount=None,
    note: str = '',
    strict: bool = False,
    date: Optional[date_type] = None,
    group_id=None,
    subscription_id=None,
) -> SettlementDraft:
    """
    Validate a settlement against the current outstanding balance.

    Args:
        viewer_id: The participant recording the settlement.
        other_id: The counterpart.
        currency_code: Currency being settled.
        outstanding_balance: Signed balance in that currency, positive when
            ``other`` owes the viewer.
        requested_amount: Amount to settle, or None for the full balance.
        strict: Reject over-settlement instead of capping it.

    Returns:
        SettlementDraft: Direction follows the sign of the outstanding
        balance. ``capped`` is set when the request was reduced.

    Raises:
        NoOutstandingBalance: If ``|outstanding| <= 0.01``.
        InvalidAmount: If the requested amount is zero or negative.
        OverSettlement: If ``strict`` and the request exceeds the balance.

    Example:
        draft = plan_settlement(
            viewer_id=me, other_id=alex, currency_code='USD',
            outstanding_balance=Decimal('42.50'),
            requested_amount=Decimal('100.00'),
        )
        # draft.amount == Decimal('42.50'), draft.capped is True
    """
    if viewer_id == other_id:
        raise ValueError("A settlement needs two different participants")

    outstanding = to_decimal(outstanding_balance)
    if abs(outstanding) <= ZERO_TOLERANCE:
        raise NoOutstandingBalance("No outstanding balance to settle")

    owed = quantize_amount(abs(outstanding), currency_code)
    capped = False

    if requested_amount is None:
        amount = owed
    else:
        try:
            requested = to_decimal(requested_amount)
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidAmount("Settlement amount must be greater than zero")
        if not requested.is_finite() or requested <= 0:
            raise InvalidAmount("Settlement amount must be greater than zero")

        amount = quantize_amount(requested, currency_code)
        if amount > owed:
            if strict:
                raise OverSettlement(
                    f"Settlement amount cannot exceed {format_amount(owed, currency_code)}"
                )
            amount = owed
            capped = True

    if amount <= 0:
        raise InvalidAmount("Settlement amount must be greater than zero")

    if outstanding > 0:
        from_id, to_id = other_id, viewer_id
    else:
        from_id, to_id = viewer_id, other_id

    return SettlementDraft(
        from_participant_id=from_id,
        to_participant_id=to_id,
        amount=amount,
        currency_code=currency_code,
        outstanding=outstanding,
        note=note,
        date=date,
        is_full_settlement=amount == owed,
        capped=capped,
        group_id=group_id,
        subscription_id=subscription_id,
    )


def plan_settle_all(
    *,
    viewer_id: ParticipantId,
    balances: Mapping[ParticipantId, CurrencyBalance],
    note: str = '',
    date: Optional[date_type] = None,
    group_id=None,
    subscription_id=None,
) -> List[SettlementDraft]:
    """
    One full-settlement draft per counterpart and currency.

    Counterparts are visited in ascending id order and currencies in code
    order. Entries that round to nothing are skipped.
    """
    drafts = []
    for other_id in sorted(balances, key=str):
        if other_id == viewer_id:
            continue
        for code, amount in sorted(balances[other_id].items()):
            try:
                drafts.append(plan_settlement(
                    viewer_id=viewer_id,
                    other_id=other_id,
                    currency_code=code,
                    outstanding_balance=amount,
                    note=note,
                    date=date,
                    group_id=group_id,
                    subscription_id=subscription_id,
                ))
            except NoOutstandingBalance:
                if amount:
                    logger.debug("Skipping settle-all entry %s %s for %s", amount, code, other_id)
    return drafts
