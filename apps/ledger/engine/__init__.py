"""
Pure ledger engine: split calculation, pairwise netting, balance aggregation
and settlement planning. No Django imports; everything works on the plain
records in ``records``.
"""

from .aggregation import (
    group_balance,
    group_member_balances,
    home_summary,
    members_who_owe_you,
    members_you_owe,
    person_balance,
    subscription_member_balances,
    subscription_member_share,
    subscription_user_balance,
)
from .exceptions import (
    InvalidAmount,
    InvalidPayerInput,
    InvalidSplitInput,
    LedgerError,
    NoOutstandingBalance,
    OverSettlement,
    SettlementError,
)
from .money import CURRENCIES, Currency, CurrencyBalance, get_currency, quantize_amount
from .pairwise import aggregate_balance, involves, mutual_transactions, net_positions, pairwise_balance
from .records import (
    HomeSummary,
    MemberBalanceSummary,
    Participant,
    PayerContribution,
    SettlementRecord,
    SplitMethod,
    SplitShare,
    SubscriptionPaymentRecord,
    SubscriptionRecord,
    TransactionRecord,
)
from .settlement import SettlementDraft, plan_settle_all, plan_settlement
from .splits import compute_splits, default_raw_inputs, rescale_splits, validate_payers

__all__ = [
    'CURRENCIES', 'Currency', 'CurrencyBalance', 'get_currency', 'quantize_amount',
    'HomeSummary', 'MemberBalanceSummary', 'Participant', 'PayerContribution',
    'SettlementRecord', 'SplitMethod', 'SplitShare', 'SubscriptionPaymentRecord',
    'SubscriptionRecord', 'TransactionRecord',
    'compute_splits', 'default_raw_inputs', 'rescale_splits', 'validate_payers',
    'aggregate_balance', 'involves', 'mutual_transactions', 'net_positions', 'pairwise_balance',
    'group_balance', 'group_member_balances', 'home_summary', 'members_who_owe_you',
    'members_you_owe', 'person_balance', 'subscription_member_balances',
    'subscription_member_share', 'subscription_user_balance',
    'SettlementDraft', 'plan_settle_all', 'plan_settlement',
    'LedgerError', 'InvalidSplitInput', 'InvalidPayerInput', 'SettlementError',
    'NoOutstandingBalance', 'OverSettlement', 'InvalidAmount',
]
