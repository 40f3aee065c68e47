"""
Currency metadata, minor-unit arithmetic and multi-currency balances.

All money in the ledger is ``Decimal``. Amounts are converted to integer
minor units (cents, or whole yen) whenever they have to be divided, so that
splits always add up exactly to the total.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple, Union


Number = Union[Decimal, int, float, str]

DEFAULT_CURRENCY = 'USD'

# Balances smaller than this are displayed and treated as settled.
ZERO_TOLERANCE = Decimal('0.01')


@dataclass(frozen=True)
class Currency:
    """Supported currency with display information."""
    code: str
    symbol: str
    name: str
    flag: str
    decimal_places: int = 2


CURRENCIES: Tuple[Currency, ...] = (
    Currency('USD', '$', 'US Dollar', '🇺🇸'),
    Currency('EUR', '€', 'Euro', '🇪🇺'),
    Currency('GBP', '£', 'British Pound', '🇬🇧'),
    Currency('INR', '₹', 'Indian Rupee', '🇮🇳'),
    Currency('CNY', '¥', 'Chinese Yuan', '🇨🇳'),
    Currency('JPY', '¥', 'Japanese Yen', '🇯🇵', decimal_places=0),
    Currency('CHF', 'CHF', 'Swiss Franc', '🇨🇭'),
    Currency('CAD', 'CA$', 'Canadian Dollar', '🇨🇦'),
    Currency('AUD', 'A$', 'Australian Dollar', '🇦🇺'),
    Currency('KRW', '₩', 'South Korean Won', '🇰🇷', decimal_places=0),
    Currency('SGD', 'S$', 'Singapore Dollar', '🇸🇬'),
    Currency('AED', 'د.إ', 'UAE Dirham', '🇦🇪'),
    Currency('BRL', 'R$', 'Brazilian Real', '🇧🇷'),
    Currency('MXN', 'MX$', 'Mexican Peso', '🇲🇽'),
    Currency('SEK', 'kr', 'Swedish Krona', '🇸🇪'),
)

_BY_CODE: Dict[str, Currency] = {c.code: c for c in CURRENCIES}

CURRENCY_CHOICES = [(c.code, f'{c.code} - {c.name}') for c in CURRENCIES]


def normalize_code(code: Optional[str]) -> str:
    """Upper-case a currency code, falling back to the default for blanks."""
    code = (code or '').strip().upper()
    return code or DEFAULT_CURRENCY


def get_currency(code: Optional[str]) -> Currency:
    """Return the Currency for ``code``, or USD for unknown codes."""
    return _BY_CODE.get(normalize_code(code), _BY_CODE[DEFAULT_CURRENCY])


def is_supported(code: Optional[str]) -> bool:
    return normalize_code(code) in _BY_CODE


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without going through binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def minor_unit(code: Optional[str] = None) -> Decimal:
    """Smallest representable amount for the currency (0.01 or 1)."""
    places = get_currency(code).decimal_places
    return Decimal(1).scaleb(-places)


def quantize_amount(amount: Number, code: Optional[str] = None) -> Decimal:
    """Round half-up to the currency's minor unit."""
    return to_decimal(amount).quantize(minor_unit(code), rounding=ROUND_HALF_UP)


def to_minor_units(amount: Number, code: Optional[str] = None) -> int:
    """Convert an amount to an integer count of minor units (e.g. cents)."""
    places = get_currency(code).decimal_places
    return int(quantize_amount(amount, code).scaleb(places))


def from_minor_units(units: int, code: Optional[str] = None) -> Decimal:
    places = get_currency(code).decimal_places
    return (Decimal(units).scaleb(-places)).quantize(minor_unit(code))


def is_zero(amount: Number) -> bool:
    """True when ``|amount|`` is below the display tolerance."""
    return abs(to_decimal(amount)) < ZERO_TOLERANCE


# =============================================================================
# Formatting
# =============================================================================

def _with_symbol(currency: Currency, number: str) -> str:
    if currency.symbol.isalpha():
        return f'{currency.symbol} {number}'
    return f'{currency.symbol}{number}'


def format_compact(amount: Number, code: Optional[str] = None) -> str:
    """Format without currency symbol, e.g. ``1,234.50``."""
    currency = get_currency(code)
    value = quantize_amount(amount, currency.code)
    return f'{value:,.{currency.decimal_places}f}'


def format_amount(amount: Number, code: Optional[str] = None) -> str:
    """
    Format an amount with its currency symbol.

    Example:
        >>> format_amount(Decimal('-1234.5'), 'USD')
        '-$1,234.50'
        >>> format_amount(Decimal('29.99'), 'CHF')
        'CHF 29.99'
    """
    currency = get_currency(code)
    value = quantize_amount(amount, currency.code)
    text = _with_symbol(currency, format_compact(abs(value), currency.code))
    return f'-{text}' if value < 0 else text


def format_absolute(amount: Number, code: Optional[str] = None) -> str:
    return format_amount(abs(to_decimal(amount)), code)


def format_with_sign(amount: Number, code: Optional[str] = None) -> str:
    """Format with an explicit ``+``/``-`` for balances beyond the tolerance."""
    value = to_decimal(amount)
    text = format_absolute(value, code)
    if value > ZERO_TOLERANCE:
        return f'+{text}'
    if value < -ZERO_TOLERANCE:
        return f'-{text}'
    return text


# =============================================================================
# Multi-currency balance
# =============================================================================

class CurrencyBalance:
    """
    Signed amounts keyed by currency code.

    Positive amounts are owed to the viewer, negative amounts are owed by the
    viewer. Amounts are kept at full precision; ``non_zero`` and ``rounded``
    give the display view.

    Example:
        balance = CurrencyBalance()
        balance.add(Decimal('12.50'), 'usd')
        balance.subtract(Decimal('5'), 'EUR')
        balance.sorted_currencies()
        # [('USD', Decimal('12.50')), ('EUR', Decimal('-5'))]
    """

    def __init__(self, balances: Optional[Dict[str, Number]] = None):
        self._balances: Dict[str, Decimal] = {}
        for code, amount in (balances or {}).items():
            self.add(amount, code)

    def add(self, amount: Number, currency: Optional[str]) -> None:
        code = normalize_code(currency)
        self._balances[code] = self._balances.get(code, Decimal('0')) + to_decimal(amount)

    def subtract(self, amount: Number, currency: Optional[str]) -> None:
        self.add(-to_decimal(amount), currency)

    def merge(self, other: 'CurrencyBalance') -> None:
        for code, amount in other.items():
            self.add(amount, code)

    def get(self, currency: Optional[str]) -> Decimal:
        return self._balances.get(normalize_code(currency), Decimal('0'))

    def items(self) -> Iterable[Tuple[str, Decimal]]:
        return self._balances.items()

    def as_dict(self) -> Dict[str, Decimal]:
        return dict(self._balances)

    @property
    def non_zero(self) -> Dict[str, Decimal]:
        """Entries with ``|amount| >= 0.01``."""
        return {code: amount for code, amount in self._balances.items() if not is_zero(amount)}

    def sorted_currencies(self) -> List[Tuple[str, Decimal]]:
        """Non-zero entries, largest magnitude first."""
        return sorted(self.non_zero.items(), key=lambda item: (-abs(item[1]), item[0]))

    def rounded(self) -> Dict[str, Decimal]:
        """Non-zero entries quantized to each currency's minor unit."""
        return {code: quantize_amount(amount, code) for code, amount in self.sorted_currencies()}

    @property
    def is_settled(self) -> bool:
        return not self.non_zero

    @property
    def single_currency(self) -> Optional[str]:
        non_zero = self.non_zero
        return next(iter(non_zero)) if len(non_zero) == 1 else None

    @property
    def has_positive(self) -> bool:
        return any(amount > ZERO_TOLERANCE for amount in self.non_zero.values())

    @property
    def has_negative(self) -> bool:
        return any(amount < -ZERO_TOLERANCE for amount in self.non_zero.values())

    @property
    def primary_amount(self) -> Decimal:
        ordered = self.sorted_currencies()
        return ordered[0][1] if ordered else Decimal('0')

    def primary_currency(self, default: str = DEFAULT_CURRENCY) -> str:
        ordered = self.sorted_currencies()
        return ordered[0][0] if ordered else normalize_code(default)

    @property
    def currency_count(self) -> int:
        return len(self.non_zero)

    def __eq__(self, other):
        if not isinstance(other, CurrencyBalance):
            return NotImplemented
        return self.rounded() == other.rounded()

    def __repr__(self):
        return f'CurrencyBalance({self._balances!r})'
