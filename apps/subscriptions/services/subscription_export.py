"""
Payment history export.

Writes a subscription's payments as CSV, newest first::

    Date,Amount,Paid By,Split Amount,Notes
    "Mar 1, 2024",15.00,You,5.00,
"""

import csv
import io
from uuid import UUID

from apps.ledger.engine import quantize_amount
from apps.ledger.services import resolve_currency
from apps.people.models import Participant

from .subscription_management import get_subscription


EXPORT_HEADER = ['Date', 'Amount', 'Paid By', 'Split Amount', 'Notes']


def _format_date(value) -> str:
    if value is None:
        return ''
    return f"{value:%b} {value.day}, {value.year}"


def _payer_name(payment, viewer: Participant) -> str:
    if payment.payer_id is None:
        return 'Unknown'
    if payment.payer_id == viewer.id:
        return 'You'
    return payment.payer.display_name


def export_payment_history(*, subscription_id: UUID, viewer: Participant) -> str:
    """
    Export a subscription's payment history as CSV text.

    The split amount is each member's equal share, left blank for personal
    subscriptions or when nobody else shares the bill.

    Raises:
        SubscriptionNotFoundError: If subscription doesn't exist
        NotSubscriberError: If the viewer is not a member
    """
    subscription = get_subscription(subscription_id=subscription_id, viewer=viewer)
    payments = subscription.payments.select_related('payer').order_by('-date', '-created_at')
    member_count = len(subscription.member_ids())
    split = subscription.is_shared and member_count > 1

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_HEADER)

    for payment in payments:
        currency = resolve_currency(payment.currency)
        writer.writerow([
            _format_date(payment.date),
            quantize_amount(payment.amount, currency),
            _payer_name(payment, viewer),
            quantize_amount(payment.amount / member_count, currency) if split else '',
            payment.note,
        ])

    return buffer.getvalue()
