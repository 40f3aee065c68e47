"""
Unit tests for pairwise netting and balance aggregation over history.
"""

import pytest
from datetime import date
from decimal import Decimal

from apps.ledger.engine import (
    CurrencyBalance,
    PayerContribution,
    SettlementRecord,
    aggregate_balance,
    mutual_transactions,
    net_positions,
    pairwise_balance,
)
from apps.ledger.tests.conftest import make_record


def dinner():
    """A paid 90.00, split equally between A, B and C."""
    return make_record('t1', '90.00', 'A', {'A': '30.00', 'B': '30.00', 'C': '30.00'})


def multi_payer():
    """A paid 60, B paid 40; four people owe 25 each."""
    return make_record(
        't2', '100.00', 'A',
        {'A': '25.00', 'B': '25.00', 'C': '25.00', 'D': '25.00'},
        payers=[PayerContribution('A', Decimal('60.00')), PayerContribution('B', Decimal('40.00'))],
    )


def settlement(sid, payer, payee, amount, currency='USD', subscription_id=None):
    return SettlementRecord(
        id=sid,
        from_participant_id=payer,
        to_participant_id=payee,
        amount=Decimal(amount),
        currency_code=currency,
        subscription_id=subscription_id,
    )


class TestNetPositions:

    def test_single_payer(self):
        assert net_positions(dinner()) == {
            'A': Decimal('60.00'),
            'B': Decimal('-30.00'),
            'C': Decimal('-30.00'),
        }

    def test_multi_payer(self):
        net = net_positions(multi_payer())
        assert net['A'] == Decimal('35.00')
        assert net['B'] == Decimal('15.00')
        assert net['C'] == Decimal('-25.00')


class TestPairwiseBalance:
    """Tests for the per-transaction pairwise amount."""

    def test_debtor_owes_single_payer_their_share(self):
        txn = dinner()
        assert pairwise_balance(txn, 'A', 'B') == Decimal('30.00')
        assert pairwise_balance(txn, 'B', 'A') == Decimal('-30.00')

    def test_two_debtors_owe_each_other_nothing(self):
        assert pairwise_balance(dinner(), 'B', 'C') == 0

    def test_debt_spread_over_creditors_proportionally(self):
        """C owes 25, split 35:15 between creditors A and B."""
        txn = multi_payer()
        assert pairwise_balance(txn, 'A', 'C') == Decimal('17.5')
        assert pairwise_balance(txn, 'B', 'C') == Decimal('7.5')
        assert pairwise_balance(txn, 'A', 'B') == 0

    @pytest.mark.parametrize('a,b', [('A', 'C'), ('B', 'D'), ('A', 'B'), ('C', 'D')])
    def test_antisymmetric(self, a, b):
        txn = multi_payer()
        assert pairwise_balance(txn, a, b) == -pairwise_balance(txn, b, a)

    def test_non_participant_is_zero(self):
        assert pairwise_balance(dinner(), 'A', 'Z') == 0

    def test_same_participant_raises(self):
        with pytest.raises(ValueError):
            pairwise_balance(dinner(), 'A', 'A')

    def test_payer_not_in_splits_is_owed_everything(self):
        txn = make_record('t3', '50.00', 'A', {'B': '50.00'})
        assert pairwise_balance(txn, 'A', 'B') == Decimal('50.00')


class TestAggregateBalance:
    """Tests for summing pairwise balances and settlements over history."""

    def test_transactions_and_settlements(self):
        settlements = [settlement('s1', 'B', 'A', '10.00')]
        balance = aggregate_balance([dinner()], settlements, 'A', 'B')

        assert balance.get('USD') == Decimal('20.00')

    def test_symmetry_across_history(self):
        transactions = [dinner(), multi_payer()]
        settlements = [settlement('s1', 'C', 'A', '5.00'), settlement('s2', 'A', 'C', '1.00')]

        ac = aggregate_balance(transactions, settlements, 'A', 'C')
        ca = aggregate_balance(transactions, settlements, 'C', 'A')
        assert ac.get('USD') == -ca.get('USD')

    def test_currencies_are_never_netted(self):
        usd = make_record('t1', '20.00', 'A', {'A': '10.00', 'B': '10.00'}, currency='USD')
        eur = make_record('t2', '30.00', 'B', {'A': '15.00', 'B': '15.00'}, currency='EUR')

        balance = aggregate_balance([usd, eur], [], 'A', 'B')

        assert balance.get('USD') == Decimal('10.00')
        assert balance.get('EUR') == Decimal('-15.00')
        assert balance.currency_count == 2

    def test_settlement_in_other_currency_leaves_balance_alone(self):
        balance = aggregate_balance([dinner()], [settlement('s1', 'B', 'A', '30.00', 'EUR')], 'A', 'B')

        assert balance.get('USD') == Decimal('30.00')
        assert balance.get('EUR') == Decimal('-30.00')

    def test_unrelated_transactions_and_settlements_ignored(self):
        other = make_record('t9', '40.00', 'C', {'C': '20.00', 'D': '20.00'})
        balance = aggregate_balance([other], [settlement('s1', 'C', 'D', '20.00')], 'A', 'B')

        assert balance.is_settled
        assert balance == CurrencyBalance()

    def test_same_participant_raises(self):
        with pytest.raises(ValueError):
            aggregate_balance([dinner()], [], 'A', 'A')


class TestMutualTransactions:

    def test_newest_first(self):
        old = make_record('old', '10.00', 'A', {'B': '10.00'}, date=date(2024, 1, 1))
        new = make_record('new', '10.00', 'B', {'A': '10.00'}, date=date(2024, 6, 1))
        unrelated = make_record('x', '10.00', 'C', {'D': '10.00'}, date=date(2024, 3, 1))

        result = mutual_transactions([old, unrelated, new], 'A', 'B')

        assert [t.id for t in result] == ['new', 'old']
