"""
Money Module

Fixed-point money value with two decimal places and half-up rounding
applied after every arithmetic result. NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from dataclasses import dataclass
from typing import Union
import re

from .errors import InvalidAmountError

# Set global decimal context for financial precision
getcontext().prec = 28  # High precision for financial calculations

SCALE = 2
CENTS = Decimal('0.01')

AmountLike = Union['Money', Decimal, int, float, str]


def to_decimal(value) -> Decimal:
    """Coerce a supported input into a finite Decimal"""
    if isinstance(value, Money):
        return value.amount
    if isinstance(value, bool):
        raise ValueError("Booleans are not monetary amounts")
    if isinstance(value, float):
        # Go through str() so 0.1 stays 0.1
        value = str(value)
    try:
        result = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Cannot convert {value!r} to a monetary amount")
    if not result.is_finite():
        raise ValueError(f"Monetary amount must be finite, got {value!r}")
    return result


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation with fixed 2-digit precision.
    All monetary values MUST use this class.
    """
    amount: Decimal

    def __post_init__(self):
        # Round to 2 decimal places, half-up
        rounded = to_decimal(self.amount).quantize(CENTS, rounding=ROUND_HALF_UP)
        object.__setattr__(self, 'amount', rounded)

    @classmethod
    def of(cls, value: AmountLike) -> 'Money':
        """Build Money from any supported amount representation"""
        if isinstance(value, Money):
            return value
        return cls(to_decimal(value))

    @classmethod
    def zero(cls) -> 'Money':
        return cls(Decimal('0'))

    def add(self, other: AmountLike) -> 'Money':
        return Money(self.amount + Money.of(other).amount)

    def subtract(self, other: AmountLike) -> 'Money':
        return Money(self.amount - Money.of(other).amount)

    def compare(self, other: AmountLike) -> int:
        """Return -1, 0 or 1 as self is less than, equal to or greater than other"""
        other_amount = Money.of(other).amount
        if self.amount < other_amount:
            return -1
        if self.amount > other_amount:
            return 1
        return 0

    def __add__(self, other: 'Money') -> 'Money':
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: 'Money') -> 'Money':
        if not isinstance(other, Money):
            return NotImplemented
        return self.subtract(other)

    def __mul__(self, multiplier: Decimal) -> 'Money':
        return Money(self.amount * to_decimal(multiplier))

    def __neg__(self) -> 'Money':
        return Money(-self.amount)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Money):
            return False
        return self.amount == other.amount

    def __hash__(self) -> int:
        return hash(self.amount)

    def __lt__(self, other: 'Money') -> bool:
        return self.compare(other) < 0

    def __le__(self, other: 'Money') -> bool:
        return self.compare(other) <= 0

    def __gt__(self, other: 'Money') -> bool:
        return self.compare(other) > 0

    def __ge__(self, other: 'Money') -> bool:
        return self.compare(other) >= 0

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == Decimal('0')

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > Decimal('0')

    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.amount < Decimal('0')

    def require_positive(self) -> 'Money':
        """Guard used at every deposit/withdraw/transfer boundary"""
        if not self.is_positive():
            raise InvalidAmountError(f"Amount must be positive, got {self.to_string()}")
        return self

    def require_non_negative(self) -> 'Money':
        """Guard for values used as balances"""
        if self.is_negative():
            raise InvalidAmountError(f"Balance cannot be negative, got {self.to_string()}")
        return self

    def to_string(self) -> str:
        """Format for display"""
        return f"₹{self.amount:,.{SCALE}f}"

    def __str__(self) -> str:
        return self.to_string()


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert user-entered text to Decimal, handling common formats

    Args:
        value: String representation of number, e.g. "1,250.50" or "₹ 300"

    Returns:
        Decimal value

    Raises:
        ValueError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    # Remove currency symbols and whitespace
    clean_value = re.sub(r'[^\d.,\-+]', '', value.strip())

    if ',' in clean_value and '.' in clean_value:
        # Both comma and dot - comma is the thousands separator
        clean_value = clean_value.replace(',', '')
    elif ',' in clean_value and clean_value.count(',') == 1:
        parts = clean_value.split(',')
        if len(parts[1]) <= 2:  # Decimal separator
            clean_value = clean_value.replace(',', '.')
        else:  # Thousands separator
            clean_value = clean_value.replace(',', '')
    else:
        clean_value = clean_value.replace(',', '')

    try:
        result = Decimal(clean_value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")
    if not result.is_finite():
        raise ValueError(f"Cannot convert '{value}' to Decimal")
    return result
