"""
Subscriptions app services layer.

Services contain business logic and orchestrate operations across models.
Balances are computed by the ledger engine's equal-share model.
"""

from .exceptions import (
    SubscriptionsServiceError,
    SubscriptionNotFoundError,
    SubscriptionNotSharedError,
    NotSubscriberError,
    InsufficientPermissionsError,
)

from .subscription_management import (
    list_subscriptions,
    get_subscription,
    create_subscription,
    update_subscription,
    delete_subscription,
    record_payment,
    list_payments,
    delete_payment,
)

from .subscription_balances import (
    to_subscription_record,
    get_member_balances,
    get_user_balance,
    get_user_share,
    get_monthly_totals,
    settle_member,
)

from .subscription_export import (
    EXPORT_HEADER,
    export_payment_history,
)


__all__ = [
    # Exceptions
    'SubscriptionsServiceError',
    'SubscriptionNotFoundError',
    'SubscriptionNotSharedError',
    'NotSubscriberError',
    'InsufficientPermissionsError',

    # Subscription Management
    'list_subscriptions',
    'get_subscription',
    'create_subscription',
    'update_subscription',
    'delete_subscription',
    'record_payment',
    'list_payments',
    'delete_payment',

    # Balances
    'to_subscription_record',
    'get_member_balances',
    'get_user_balance',
    'get_user_share',
    'get_monthly_totals',
    'settle_member',

    # Export
    'EXPORT_HEADER',
    'export_payment_history',
]
