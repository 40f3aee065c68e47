"""
Plain records consumed and produced by the ledger engine.

Records are immutable snapshots keyed by opaque ids. They carry no ORM state:
the Django services build them from database rows and the engine never reads
anything else.
"""

from dataclasses import dataclass, field
from datetime import date as date_type
from decimal import Decimal
from enum import Enum
from typing import Hashable, List, Optional, Tuple

from .money import CurrencyBalance


ParticipantId = Hashable


class SplitMethod(str, Enum):
    EQUAL = 'equal'
    AMOUNT = 'amount'
    PERCENTAGE = 'percentage'
    SHARES = 'shares'
    ADJUSTMENT = 'adjustment'

    @property
    def display_name(self) -> str:
        return {
            SplitMethod.EQUAL: 'Equally',
            SplitMethod.AMOUNT: 'By Amount',
            SplitMethod.PERCENTAGE: 'By Percent',
            SplitMethod.SHARES: 'By Shares',
            SplitMethod.ADJUSTMENT: 'Adjustments',
        }[self]


@dataclass(frozen=True)
class Participant:
    id: ParticipantId
    display_name: str = ''


@dataclass(frozen=True)
class PayerContribution:
    participant_id: ParticipantId
    amount: Decimal


@dataclass(frozen=True)
class SplitShare:
    """A participant's owed share of a transaction."""
    participant_id: ParticipantId
    amount: Decimal
    raw_input: Optional[Decimal] = None
    clamped: bool = False  # adjustment would have driven the share below zero


@dataclass(frozen=True)
class TransactionRecord:
    """
    Snapshot of a financial transaction.

    ``payers`` may be empty for legacy single-payer transactions; in that case
    ``payer_id`` paid the entire ``total_amount``.
    """
    id: Hashable
    total_amount: Decimal
    currency_code: str
    splits: Tuple[SplitShare, ...] = ()
    payers: Tuple[PayerContribution, ...] = ()
    payer_id: Optional[ParticipantId] = None
    title: str = ''
    date: Optional[date_type] = None
    split_method: SplitMethod = SplitMethod.EQUAL
    group_id: Optional[Hashable] = None
    note: str = ''

    @property
    def effective_payers(self) -> Tuple[PayerContribution, ...]:
        if self.payers:
            return self.payers
        return (PayerContribution(self.payer_id, self.total_amount),)

    @property
    def is_multi_payer(self) -> bool:
        return len(self.payers) > 1


@dataclass(frozen=True)
class SettlementRecord:
    """Money that physically moved from one participant to another."""
    id: Hashable
    from_participant_id: ParticipantId
    to_participant_id: ParticipantId
    amount: Decimal
    currency_code: str
    date: Optional[date_type] = None
    note: str = ''
    is_full_settlement: bool = False
    group_id: Optional[Hashable] = None
    subscription_id: Optional[Hashable] = None


@dataclass(frozen=True)
class SubscriptionRecord:
    id: Hashable
    amount: Decimal
    currency_code: str
    member_ids: Tuple[ParticipantId, ...] = ()
    name: str = ''
    is_shared: bool = True
    is_active: bool = True

    def other_member_ids(self, viewer_id: ParticipantId) -> List[ParticipantId]:
        return [m for m in self.member_ids if m != viewer_id]

    def subscriber_count(self, viewer_id: ParticipantId) -> int:
        """Everyone sharing the subscription, the viewer included; at least 1."""
        if not self.is_shared:
            return 1
        return max(len(self.other_member_ids(viewer_id)) + 1, 1)


@dataclass(frozen=True)
class SubscriptionPaymentRecord:
    id: Hashable
    subscription_id: Hashable
    payer_id: Optional[ParticipantId]
    amount: Decimal
    currency_code: str
    date: Optional[date_type] = None
    note: str = ''


@dataclass
class MemberBalanceSummary:
    """Per-member balance with the viewer, computed for display."""
    participant_id: ParticipantId
    balance: CurrencyBalance = field(default_factory=CurrencyBalance)
    total_paid: CurrencyBalance = field(default_factory=CurrencyBalance)
    display_name: str = ''


@dataclass
class HomeSummary:
    you_owe: CurrencyBalance = field(default_factory=CurrencyBalance)
    owed_to_you: CurrencyBalance = field(default_factory=CurrencyBalance)
