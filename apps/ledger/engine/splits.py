"""
Split Calculator
================

Turns a total, a split method and per-participant raw inputs into owed
amounts that add up exactly to the total.

The algorithm works in integer minor units (cents for most currencies) and
uses largest-remainder allocation:
    1. Convert the total to minor units: ``total_units = total * 100``
    2. Give each participant the floor of their exact share
    3. Hand the leftover units, one each, to the largest fractional remainders
    4. Break ties by ascending participant id
    5. Convert back: ``amount = units / 100``

Example:
    100.00 split equally among three participants::

        >>> shares = compute_splits(Decimal('100.00'), SplitMethod.EQUAL, ['a', 'b', 'c'])
        >>> [share.amount for share in shares]
        [Decimal('33.34'), Decimal('33.33'), Decimal('33.33')]
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Union

from .exceptions import InvalidPayerInput, InvalidSplitInput
from .money import (
    Number,
    from_minor_units,
    quantize_amount,
    to_decimal,
    to_minor_units,
)
from .records import PayerContribution, SplitMethod, SplitShare


MAX_AMOUNT = Decimal('999999999.99')
AMOUNT_TOLERANCE = Decimal('0.01')
PERCENTAGE_TOLERANCE = Decimal('0.1')


def stable_order(participants: Iterable[Hashable]) -> List[Hashable]:
    """Deterministic participant order used for remainder distribution."""
    return sorted(participants, key=str)


def allocate_units(total_units: int, weights: Sequence[Decimal]) -> List[int]:
    """
    Split ``total_units`` proportionally to ``weights`` using largest remainder.

    Weights must be non-negative with a positive sum. The result always sums
    to ``total_units``; ties go to the earlier index.
    """
    weight_sum = sum(weights, Decimal('0'))
    if total_units < 0 or weight_sum <= 0:
        raise ValueError("Allocation needs a non-negative total and positive weights")

    exact = [Decimal(total_units) * Decimal(w) / weight_sum for w in weights]
    units = [math.floor(e) for e in exact]
    leftover = total_units - sum(units)

    by_remainder = sorted(range(len(weights)), key=lambda i: (-(exact[i] - units[i]), i))
    for i in by_remainder[:leftover]:
        units[i] += 1
    return units


def _parse(value, participant_id, label: str) -> Decimal:
    try:
        number = to_decimal(value if value not in (None, '') else 0)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidSplitInput(f"Invalid {label} for participant {participant_id}")
    if not number.is_finite():
        raise InvalidSplitInput(f"Invalid {label} for participant {participant_id}")
    return number


def _validate_total(total: Number, currency_code: Optional[str]) -> Decimal:
    try:
        total = to_decimal(total)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidSplitInput("Amount must be a number")
    if not total.is_finite() or total <= 0:
        raise InvalidSplitInput("Amount must be greater than zero")
    if total > MAX_AMOUNT:
        raise InvalidSplitInput("Amount exceeds maximum allowed")
    if quantize_amount(total, currency_code) != total:
        raise InvalidSplitInput("Amount has more decimal places than the currency allows")
    return total


def _validate_participants(participants: Iterable[Hashable]) -> List[Hashable]:
    participants = list(participants)
    if not participants:
        raise InvalidSplitInput("Select at least one person to split with")
    if len(set(participants)) != len(participants):
        raise InvalidSplitInput("Each participant may only appear once")
    return stable_order(participants)


def compute_splits(
    total: Number,
    method: Union[SplitMethod, str],
    participants: Iterable[Hashable],
    raw_inputs: Optional[Mapping[Hashable, Number]] = None,
    currency_code: Optional[str] = None,
) -> List[SplitShare]:
    """
    Compute each participant's owed share of ``total``.

    Args:
        total: Transaction total, positive, representable in the currency.
        method: One of the SplitMethod values (or its string value).
        participants: Participant ids to split among.
        raw_inputs: Method-specific input per participant: exact amount,
            percentage (0-100), share count, or signed adjustment.
            Ignored for the equal method.
        currency_code: Currency of the total; decides the minor unit.

    Returns:
        list[SplitShare]: One share per participant in ascending id order.
        Amounts sum exactly to ``total``. For the adjustment method a share
        flagged ``clamped`` was raised to zero from a negative value.

    Raises:
        InvalidSplitInput: If the inputs don't reconcile for the method
            (wrong percentage sum, wrong exact-amount sum, zero total shares,
            adjustments larger than the total, malformed values).
    """
    try:
        method = SplitMethod(method)
    except ValueError:
        raise InvalidSplitInput(f"Unknown split method: {method}")

    total = _validate_total(total, currency_code)
    ordered = _validate_participants(participants)
    raw_inputs = raw_inputs or {}
    total_units = to_minor_units(total, currency_code)

    calculator = _CALCULATORS[method]
    units, raw, clamped = calculator(total, total_units, ordered, raw_inputs, currency_code)

    shares = [
        SplitShare(
            participant_id=pid,
            amount=from_minor_units(units[i], currency_code),
            raw_input=raw[i],
            clamped=i in clamped,
        )
        for i, pid in enumerate(ordered)
    ]

    # Safety check
    check = sum((share.amount for share in shares), Decimal('0'))
    if check != total:
        raise InvalidSplitInput(f"Split calculation error: {check} != {total}")

    return shares


def _equal(total, total_units, ordered, raw_inputs, currency_code):
    units = allocate_units(total_units, [Decimal(1)] * len(ordered))
    return units, [None] * len(ordered), set()


def _amount(total, total_units, ordered, raw_inputs, currency_code):
    amounts = [_parse(raw_inputs.get(pid), pid, 'amount') for pid in ordered]
    if any(a < 0 for a in amounts):
        raise InvalidSplitInput("Amounts cannot be negative")
    if abs(sum(amounts, Decimal('0')) - total) >= AMOUNT_TOLERANCE:
        raise InvalidSplitInput("Amounts must equal the total")
    return allocate_units(total_units, amounts), amounts, set()


def _percentage(total, total_units, ordered, raw_inputs, currency_code):
    percentages = [_parse(raw_inputs.get(pid), pid, 'percentage') for pid in ordered]
    if any(p < 0 or p > 100 for p in percentages):
        raise InvalidSplitInput("Each percentage must be between 0 and 100")
    if abs(sum(percentages, Decimal('0')) - 100) > PERCENTAGE_TOLERANCE:
        raise InvalidSplitInput("Percentages must add up to 100%")
    return allocate_units(total_units, percentages), percentages, set()


def _shares(total, total_units, ordered, raw_inputs, currency_code):
    counts = [_parse(raw_inputs.get(pid, 1), pid, 'share count') for pid in ordered]
    if any(c < 0 or c != c.to_integral_value() for c in counts):
        raise InvalidSplitInput("Shares must be whole, non-negative numbers")
    if sum(counts) == 0:
        raise InvalidSplitInput("Enter shares for at least one person")
    return allocate_units(total_units, counts), counts, set()


def _adjustment(total, total_units, ordered, raw_inputs, currency_code):
    adjustments = [
        quantize_amount(_parse(raw_inputs.get(pid), pid, 'adjustment'), currency_code)
        for pid in ordered
    ]
    if sum(adjustments, Decimal('0')) > total:
        raise InvalidSplitInput("Adjustments cannot exceed the total amount")

    adj_units = [to_minor_units(a, currency_code) for a in adjustments]
    n = len(ordered)
    net_adjustment = sum(adj_units)
    unadjusted = [i for i, a in enumerate(adj_units) if a == 0]

    if len(unadjusted) in (0, n):
        # Nobody (or everybody) adjusted: spread the net adjustment over all.
        base = allocate_units(total_units - net_adjustment, [Decimal(1)] * n)
        units = [b + a for b, a in zip(base, adj_units)]
    else:
        base = allocate_units(total_units, [Decimal(1)] * n)
        units = [base[i] + adj_units[i] for i in range(n)]
        pool = sum(base[i] for i in unadjusted) - net_adjustment
        ones = [Decimal(1)] * len(unadjusted)
        if pool >= 0:
            pieces = allocate_units(pool, ones)
        else:
            pieces = [-p for p in allocate_units(-pool, ones)]
        for i, piece in zip(unadjusted, pieces):
            units[i] = piece

    clamped = {i for i, u in enumerate(units) if u < 0}
    if clamped:
        weights = [Decimal(0) if i in clamped else Decimal(max(u, 0)) for i, u in enumerate(units)]
        units = allocate_units(total_units, weights)

    return units, adjustments, clamped


_CALCULATORS = {
    SplitMethod.EQUAL: _equal,
    SplitMethod.AMOUNT: _amount,
    SplitMethod.PERCENTAGE: _percentage,
    SplitMethod.SHARES: _shares,
    SplitMethod.ADJUSTMENT: _adjustment,
}


def default_raw_inputs(
    method: Union[SplitMethod, str],
    participants: Iterable[Hashable],
    total: Number = 0,
    currency_code: Optional[str] = None,
) -> Dict[Hashable, Decimal]:
    """Sensible starting inputs when switching split methods."""
    method = SplitMethod(method)
    participants = list(participants)
    count = max(1, len(participants))

    if method == SplitMethod.PERCENTAGE:
        value = (Decimal(100) / count).quantize(Decimal('0.1'))
    elif method == SplitMethod.SHARES:
        value = Decimal(1)
    elif method == SplitMethod.AMOUNT:
        value = quantize_amount(to_decimal(total) / count, currency_code)
    elif method == SplitMethod.ADJUSTMENT:
        value = Decimal(0)
    else:
        return {}
    return {pid: value for pid in participants}


def rescale_splits(
    splits: Sequence[SplitShare],
    new_total: Number,
    currency_code: Optional[str] = None,
    method: Union[SplitMethod, str, None] = None,
) -> List[SplitShare]:
    """
    Recompute existing splits proportionally for an edited total.

    Used when a transaction's amount is edited: each participant keeps the
    same proportion of the total, and the result sums exactly to
    ``new_total``. Raw inputs are kept, except for the amount method whose
    raw input is the amount itself.
    """
    new_total = _validate_total(new_total, currency_code)
    if not splits:
        raise InvalidSplitInput("Select at least one person to split with")

    ordered = sorted(splits, key=lambda s: str(s.participant_id))
    weights = [max(to_decimal(s.amount), Decimal(0)) for s in ordered]
    if sum(weights) <= 0:
        weights = [Decimal(1)] * len(ordered)

    units = allocate_units(to_minor_units(new_total, currency_code), weights)
    is_amount = method is not None and SplitMethod(method) == SplitMethod.AMOUNT

    rescaled = []
    for share, u in zip(ordered, units):
        amount = from_minor_units(u, currency_code)
        rescaled.append(SplitShare(
            participant_id=share.participant_id,
            amount=amount,
            raw_input=amount if is_amount else share.raw_input,
        ))
    return rescaled


def validate_payers(total: Number, payers: Iterable[PayerContribution]) -> List[PayerContribution]:
    """
    Check that payer contributions add up to the total.

    Raises:
        InvalidPayerInput: If a contribution is not positive, a payer is
            listed twice, or the sum differs from the total by 0.01 or more.
    """
    payers = list(payers)
    if not payers:
        raise InvalidPayerInput("Select who paid")
    ids = [p.participant_id for p in payers]
    if len(set(ids)) != len(ids):
        raise InvalidPayerInput("Each payer may only appear once")
    if any(to_decimal(p.amount) <= 0 for p in payers):
        raise InvalidPayerInput("Paid-by amounts must be greater than zero")
    paid = sum((to_decimal(p.amount) for p in payers), Decimal('0'))
    if abs(paid - to_decimal(total)) >= AMOUNT_TOLERANCE:
        raise InvalidPayerInput("Paid-by amounts must equal the total")
    return payers
