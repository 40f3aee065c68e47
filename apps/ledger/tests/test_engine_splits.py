"""
Unit tests for the split calculator.

Tests cover:
- Every split method
- Exact-sum guarantee and remainder distribution
- Validation errors
- Rescaling on amount edits and payer validation
"""

import pytest
from decimal import Decimal

from apps.ledger.engine import (
    InvalidPayerInput,
    InvalidSplitInput,
    PayerContribution,
    SplitMethod,
    SplitShare,
    compute_splits,
    default_raw_inputs,
    rescale_splits,
    validate_payers,
)
from apps.ledger.engine.splits import allocate_units


def amounts(shares):
    return [share.amount for share in shares]


# =============================================================================
# Allocation
# =============================================================================

class TestAllocateUnits:
    """Tests for largest-remainder allocation."""

    def test_leftover_goes_to_earliest_on_ties(self):
        """Equal remainders favour the earlier index."""
        assert allocate_units(10, [Decimal(1)] * 3) == [4, 3, 3]

    def test_leftover_goes_to_largest_remainder(self):
        assert allocate_units(10, [Decimal(1), Decimal(2)]) == [3, 7]

    def test_zero_weight_gets_nothing(self):
        assert allocate_units(100, [Decimal(0), Decimal(1)]) == [0, 100]

    def test_rejects_zero_weight_sum(self):
        with pytest.raises(ValueError):
            allocate_units(100, [Decimal(0), Decimal(0)])


# =============================================================================
# Equal
# =============================================================================

class TestEqualSplit:
    """Tests for the equal split method."""

    def test_hundred_three_ways(self):
        """100.00 / 3 gives the extra cent to the lowest id."""
        shares = compute_splits(Decimal('100.00'), SplitMethod.EQUAL, ['c', 'a', 'b'])

        assert [s.participant_id for s in shares] == ['a', 'b', 'c']
        assert amounts(shares) == [Decimal('33.34'), Decimal('33.33'), Decimal('33.33')]

    @pytest.mark.parametrize('total,count', [
        ('0.01', 3),
        ('10.00', 7),
        ('999.99', 13),
        ('1234.57', 6),
    ])
    def test_splits_sum_exactly_to_total(self, total, count):
        participants = [f'p{i:02d}' for i in range(count)]
        shares = compute_splits(Decimal(total), 'equal', participants)

        assert sum(amounts(shares)) == Decimal(total)
        assert max(amounts(shares)) - min(amounts(shares)) <= Decimal('0.01')

    def test_single_participant_owes_everything(self):
        shares = compute_splits(Decimal('42.50'), SplitMethod.EQUAL, ['a'])
        assert amounts(shares) == [Decimal('42.50')]

    def test_zero_decimal_currency(self):
        """Yen totals are split in whole yen."""
        shares = compute_splits(Decimal('1000'), SplitMethod.EQUAL, ['a', 'b', 'c'], currency_code='JPY')
        assert amounts(shares) == [Decimal('334'), Decimal('333'), Decimal('333')]

    def test_raw_inputs_are_ignored(self):
        shares = compute_splits(Decimal('10.00'), SplitMethod.EQUAL, ['a', 'b'], {'a': Decimal('9')})
        assert amounts(shares) == [Decimal('5.00'), Decimal('5.00')]


# =============================================================================
# Amount / Percentage / Shares
# =============================================================================

class TestAmountSplit:

    def test_exact_amounts(self):
        shares = compute_splits(
            Decimal('100.00'), SplitMethod.AMOUNT, ['a', 'b'],
            {'a': Decimal('60.00'), 'b': Decimal('40.00')}
        )
        assert amounts(shares) == [Decimal('60.00'), Decimal('40.00')]
        assert shares[0].raw_input == Decimal('60.00')

    def test_amounts_must_match_total(self):
        """Amounts off by a cent or more are rejected."""
        with pytest.raises(InvalidSplitInput, match="Amounts must equal the total"):
            compute_splits(
                Decimal('100.00'), SplitMethod.AMOUNT, ['a', 'b'],
                {'a': Decimal('60.00'), 'b': Decimal('39.99')}
            )

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidSplitInput):
            compute_splits(
                Decimal('10.00'), SplitMethod.AMOUNT, ['a', 'b'],
                {'a': Decimal('-5.00'), 'b': Decimal('15.00')}
            )


class TestPercentageSplit:

    def test_percentages(self):
        shares = compute_splits(
            Decimal('200.00'), SplitMethod.PERCENTAGE, ['a', 'b', 'c'],
            {'a': Decimal('50'), 'b': Decimal('25'), 'c': Decimal('25')}
        )
        assert amounts(shares) == [Decimal('100.00'), Decimal('50.00'), Decimal('50.00')]

    def test_round_percentages_exact(self):
        shares = compute_splits(
            Decimal('100.00'), SplitMethod.PERCENTAGE, ['a', 'b', 'c'],
            {'a': Decimal('50'), 'b': Decimal('30'), 'c': Decimal('20')}
        )
        assert amounts(shares) == [Decimal('50.00'), Decimal('30.00'), Decimal('20.00')]

    def test_fractional_percentages_sum_exactly(self):
        shares = compute_splits(
            Decimal('10.00'), SplitMethod.PERCENTAGE, ['a', 'b', 'c'],
            {'a': Decimal('33.33'), 'b': Decimal('33.33'), 'c': Decimal('33.34')}
        )
        assert sum(amounts(shares)) == Decimal('10.00')
        assert amounts(shares) == [Decimal('3.33'), Decimal('3.33'), Decimal('3.34')]

    def test_sum_within_tolerance_accepted(self):
        """33.33 x 3 is 99.99, close enough to 100."""
        shares = compute_splits(
            Decimal('100.00'), SplitMethod.PERCENTAGE, ['a', 'b', 'c'],
            {'a': Decimal('33.33'), 'b': Decimal('33.33'), 'c': Decimal('33.33')}
        )
        assert sum(amounts(shares)) == Decimal('100.00')

    def test_sum_outside_tolerance_rejected(self):
        with pytest.raises(InvalidSplitInput, match="Percentages must add up to 100%"):
            compute_splits(
                Decimal('100.00'), SplitMethod.PERCENTAGE, ['a', 'b'],
                {'a': Decimal('50'), 'b': Decimal('49')}
            )

    def test_percentage_above_hundred_rejected(self):
        with pytest.raises(InvalidSplitInput):
            compute_splits(
                Decimal('100.00'), SplitMethod.PERCENTAGE, ['a', 'b'],
                {'a': Decimal('120'), 'b': Decimal('-20')}
            )


class TestSharesSplit:

    def test_shares(self):
        shares = compute_splits(
            Decimal('90.00'), SplitMethod.SHARES, ['a', 'b'],
            {'a': Decimal('2'), 'b': Decimal('1')}
        )
        assert amounts(shares) == [Decimal('60.00'), Decimal('30.00')]

    def test_missing_share_defaults_to_one(self):
        shares = compute_splits(Decimal('30.00'), SplitMethod.SHARES, ['a', 'b'], {'a': Decimal('2')})
        assert amounts(shares) == [Decimal('20.00'), Decimal('10.00')]

    def test_zero_share_owes_nothing(self):
        shares = compute_splits(
            Decimal('30.00'), SplitMethod.SHARES, ['a', 'b'],
            {'a': Decimal('0'), 'b': Decimal('3')}
        )
        assert amounts(shares) == [Decimal('0.00'), Decimal('30.00')]

    def test_all_zero_shares_rejected(self):
        with pytest.raises(InvalidSplitInput, match="Enter shares for at least one person"):
            compute_splits(
                Decimal('30.00'), SplitMethod.SHARES, ['a', 'b'],
                {'a': Decimal('0'), 'b': Decimal('0')}
            )

    def test_fractional_shares_rejected(self):
        with pytest.raises(InvalidSplitInput):
            compute_splits(Decimal('30.00'), SplitMethod.SHARES, ['a', 'b'], {'a': Decimal('1.5')})


# =============================================================================
# Adjustment
# =============================================================================

class TestAdjustmentSplit:

    def test_positive_adjustment_taken_from_others(self):
        """A +10 adjustment is paid for by the unadjusted participants."""
        shares = compute_splits(
            Decimal('100.00'), SplitMethod.ADJUSTMENT, ['a', 'b', 'c'],
            {'a': Decimal('10')}
        )
        assert amounts(shares) == [Decimal('43.34'), Decimal('28.33'), Decimal('28.33')]
        assert not any(s.clamped for s in shares)

    def test_negative_adjustment_given_to_others(self):
        shares = compute_splits(
            Decimal('30.00'), SplitMethod.ADJUSTMENT, ['a', 'b', 'c'],
            {'a': Decimal('-5')}
        )
        assert amounts(shares) == [Decimal('5.00'), Decimal('12.50'), Decimal('12.50')]

    def test_no_adjustments_is_equal_split(self):
        shares = compute_splits(Decimal('100.00'), SplitMethod.ADJUSTMENT, ['a', 'b', 'c'])
        assert amounts(shares) == [Decimal('33.34'), Decimal('33.33'), Decimal('33.33')]

    def test_shares_clamped_at_zero(self):
        """Shares that would go negative are clamped and flagged."""
        shares = compute_splits(
            Decimal('10.00'), SplitMethod.ADJUSTMENT, ['a', 'b', 'c'],
            {'a': Decimal('9')}
        )
        assert amounts(shares) == [Decimal('10.00'), Decimal('0.00'), Decimal('0.00')]
        assert [s.clamped for s in shares] == [False, True, True]
        assert sum(amounts(shares)) == Decimal('10.00')

    def test_adjustments_exceeding_total_rejected(self):
        with pytest.raises(InvalidSplitInput, match="Adjustments cannot exceed the total amount"):
            compute_splits(
                Decimal('100.00'), SplitMethod.ADJUSTMENT, ['a', 'b'],
                {'a': Decimal('150')}
            )


# =============================================================================
# Validation
# =============================================================================

class TestSplitValidation:

    @pytest.mark.parametrize('total', ['0', '-5.00'])
    def test_total_must_be_positive(self, total):
        with pytest.raises(InvalidSplitInput, match="Amount must be greater than zero"):
            compute_splits(Decimal(total), SplitMethod.EQUAL, ['a'])

    def test_total_above_maximum(self):
        with pytest.raises(InvalidSplitInput, match="Amount exceeds maximum allowed"):
            compute_splits(Decimal('1000000000.00'), SplitMethod.EQUAL, ['a'])

    def test_total_with_too_many_decimals(self):
        with pytest.raises(InvalidSplitInput):
            compute_splits(Decimal('10.001'), SplitMethod.EQUAL, ['a'])

    def test_no_participants(self):
        with pytest.raises(InvalidSplitInput):
            compute_splits(Decimal('10.00'), SplitMethod.EQUAL, [])

    def test_duplicate_participants(self):
        with pytest.raises(InvalidSplitInput):
            compute_splits(Decimal('10.00'), SplitMethod.EQUAL, ['a', 'a'])

    def test_unknown_method(self):
        with pytest.raises(InvalidSplitInput):
            compute_splits(Decimal('10.00'), 'itemized', ['a'])

    def test_malformed_raw_input(self):
        with pytest.raises(InvalidSplitInput):
            compute_splits(Decimal('10.00'), SplitMethod.AMOUNT, ['a'], {'a': 'ten'})


# =============================================================================
# Defaults, rescaling and payers
# =============================================================================

class TestDefaultRawInputs:

    def test_percentage_defaults(self):
        assert default_raw_inputs(SplitMethod.PERCENTAGE, ['a', 'b', 'c']) == {
            'a': Decimal('33.3'), 'b': Decimal('33.3'), 'c': Decimal('33.3'),
        }

    def test_amount_defaults(self):
        assert default_raw_inputs('amount', ['a', 'b'], Decimal('25.00')) == {
            'a': Decimal('12.50'), 'b': Decimal('12.50'),
        }

    def test_equal_has_no_inputs(self):
        assert default_raw_inputs(SplitMethod.EQUAL, ['a']) == {}


class TestRescaleSplits:

    def test_rescale_keeps_proportions_and_sum(self):
        shares = compute_splits(Decimal('100.00'), SplitMethod.EQUAL, ['a', 'b', 'c'])
        rescaled = rescale_splits(shares, Decimal('50.00'))

        assert sum(amounts(rescaled)) == Decimal('50.00')
        assert amounts(rescaled) == [Decimal('16.67'), Decimal('16.67'), Decimal('16.66')]

    def test_rescale_amount_method_updates_raw_input(self):
        shares = [SplitShare('a', Decimal('75.00'), Decimal('75.00')), SplitShare('b', Decimal('25.00'), Decimal('25.00'))]
        rescaled = rescale_splits(shares, Decimal('200.00'), method=SplitMethod.AMOUNT)

        assert amounts(rescaled) == [Decimal('150.00'), Decimal('50.00')]
        assert [s.raw_input for s in rescaled] == [Decimal('150.00'), Decimal('50.00')]

    def test_rescale_percentage_keeps_raw_input(self):
        shares = [SplitShare('a', Decimal('75.00'), Decimal('75')), SplitShare('b', Decimal('25.00'), Decimal('25'))]
        rescaled = rescale_splits(shares, Decimal('40.00'), method=SplitMethod.PERCENTAGE)

        assert amounts(rescaled) == [Decimal('30.00'), Decimal('10.00')]
        assert [s.raw_input for s in rescaled] == [Decimal('75'), Decimal('25')]


class TestValidatePayers:

    def test_valid_payers(self):
        payers = [PayerContribution('a', Decimal('60.00')), PayerContribution('b', Decimal('40.00'))]
        assert validate_payers(Decimal('100.00'), payers) == payers

    def test_payers_must_sum_to_total(self):
        payers = [PayerContribution('a', Decimal('60.00')), PayerContribution('b', Decimal('30.00'))]
        with pytest.raises(InvalidPayerInput, match="Paid-by amounts must equal the total"):
            validate_payers(Decimal('100.00'), payers)

    def test_duplicate_payer(self):
        payers = [PayerContribution('a', Decimal('50.00')), PayerContribution('a', Decimal('50.00'))]
        with pytest.raises(InvalidPayerInput):
            validate_payers(Decimal('100.00'), payers)

    def test_no_payers(self):
        with pytest.raises(InvalidPayerInput, match="Select who paid"):
            validate_payers(Decimal('100.00'), [])
