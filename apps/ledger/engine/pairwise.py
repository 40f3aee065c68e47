"""
Pairwise Ledger Engine
======================

Computes what one participant owes another from transaction history.

For each transaction a net position is built per participant
(``paid - owed``). Each debtor's debt is then spread across the creditors in
proportion to how much each creditor is owed::

    B owes A = |net[B]| * net[A] / total_credit

This is proportional allocation, not a minimal-transfer settlement plan.
It is stable and order-independent, so every pair can be computed on its own.
"""

from decimal import Decimal
from typing import Dict, Iterable, List

from .money import CurrencyBalance, to_decimal
from .records import ParticipantId, SettlementRecord, TransactionRecord


EPSILON = Decimal('0.001')


def net_positions(transaction: TransactionRecord) -> Dict[ParticipantId, Decimal]:
    """Map each participant to ``sum(paid) - sum(owed)`` for one transaction."""
    net: Dict[ParticipantId, Decimal] = {}
    for payer in transaction.effective_payers:
        if payer.participant_id is None:
            continue
        net[payer.participant_id] = net.get(payer.participant_id, Decimal('0')) + to_decimal(payer.amount)
    for split in transaction.splits:
        net[split.participant_id] = net.get(split.participant_id, Decimal('0')) - to_decimal(split.amount)
    return net


def involves(transaction: TransactionRecord, participant_id: ParticipantId) -> bool:
    if any(p.participant_id == participant_id for p in transaction.effective_payers):
        return True
    return any(s.participant_id == participant_id for s in transaction.splits)


def _owed(net: Dict[ParticipantId, Decimal], total_credit: Decimal, creditor, debtor) -> Decimal:
    return abs(net[debtor]) * (net[creditor] / total_credit)


def pairwise_balance(
    transaction: TransactionRecord,
    person_a: ParticipantId,
    person_b: ParticipantId,
) -> Decimal:
    """
    Signed amount B owes A from a single transaction.

    Positive means B owes A, negative means A owes B. Both creditors, both
    debtors, or a transaction with no meaningful credit all give zero.

    Raises:
        ValueError: If ``person_a`` and ``person_b`` are the same participant.
    """
    if person_a == person_b:
        raise ValueError("Pairwise balance needs two different participants")

    net = net_positions(transaction)
    net_a = net.get(person_a, Decimal('0'))
    net_b = net.get(person_b, Decimal('0'))

    total_credit = sum((v for v in net.values() if v > EPSILON), Decimal('0'))
    if total_credit <= EPSILON:
        return Decimal('0')

    if net_a > EPSILON and net_b < -EPSILON:
        return _owed(net, total_credit, creditor=person_a, debtor=person_b)
    if net_b > EPSILON and net_a < -EPSILON:
        return -_owed(net, total_credit, creditor=person_b, debtor=person_a)
    return Decimal('0')


def _settlement_effect(settlement: SettlementRecord, viewer: ParticipantId, other: ParticipantId) -> Decimal:
    amount = to_decimal(settlement.amount)
    if settlement.from_participant_id == other and settlement.to_participant_id == viewer:
        return -amount
    if settlement.from_participant_id == viewer and settlement.to_participant_id == other:
        return amount
    return Decimal('0')


def aggregate_balance(
    transactions: Iterable[TransactionRecord],
    settlements: Iterable[SettlementRecord],
    viewer: ParticipantId,
    other: ParticipantId,
) -> CurrencyBalance:
    """
    Net balance between ``viewer`` and ``other`` across history, per currency.

    Positive amounts mean ``other`` owes ``viewer``. A settlement from
    ``other`` to ``viewer`` reduces that; one from ``viewer`` to ``other``
    reduces what the viewer owes.
    """
    if viewer == other:
        raise ValueError("Pairwise balance needs two different participants")

    balance = CurrencyBalance()
    for txn in transactions:
        if not (involves(txn, viewer) and involves(txn, other)):
            continue
        amount = pairwise_balance(txn, viewer, other)
        if amount:
            balance.add(amount, txn.currency_code)

    for settlement in settlements:
        effect = _settlement_effect(settlement, viewer, other)
        if effect:
            balance.add(effect, settlement.currency_code)

    return balance


def mutual_transactions(
    transactions: Iterable[TransactionRecord],
    person_a: ParticipantId,
    person_b: ParticipantId,
) -> List[TransactionRecord]:
    """Transactions involving both participants, newest first."""
    shared = [t for t in transactions if involves(t, person_a) and involves(t, person_b)]
    return sorted(shared, key=lambda t: (t.date is not None, t.date), reverse=True)
