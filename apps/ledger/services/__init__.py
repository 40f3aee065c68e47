"""
Ledger app services layer.

Services load rows, call the pure engine in ``apps.ledger.engine`` and
persist its results. All state-changing operations use transactions and
concurrency protection.
"""

from .exceptions import (
    LedgerServiceError,
    TransactionNotFoundError,
    SettlementNotFoundError,
    ParticipantNotFoundError,
    NotParticipantError,
)

from .balance_queries import (
    get_person_balance,
    get_all_person_balances,
    get_home_summary,
    get_mutual_transactions,
    get_group_member_balances,
    resolve_currency,
)

from .transaction_management import (
    preview_splits,
    create_transaction,
    get_transaction,
    update_transaction,
    delete_transaction,
)

from .settlement_management import (
    create_settlement,
    settle_all,
    list_settlements,
    get_settlement,
    delete_settlement,
)


__all__ = [
    # Exceptions
    'LedgerServiceError',
    'TransactionNotFoundError',
    'SettlementNotFoundError',
    'ParticipantNotFoundError',
    'NotParticipantError',

    # Balance Queries
    'get_person_balance',
    'get_all_person_balances',
    'get_home_summary',
    'get_mutual_transactions',
    'get_group_member_balances',
    'resolve_currency',

    # Transaction Management
    'preview_splits',
    'create_transaction',
    'get_transaction',
    'update_transaction',
    'delete_transaction',

    # Settlement Management
    'create_settlement',
    'settle_all',
    'list_settlements',
    'get_settlement',
    'delete_settlement',
]
