"""
money.py - Money value type and integer rounding utilities

================================================================================
DESIGN PRINCIPLES
================================================================================

1. INTERNAL REPRESENTATION
   Integers in minor units (cents for EUR, øre for NOK, ...).
   Never floating point, not even transiently.

2. RATIONAL ARITHMETIC
   Every ratio is expressed as an integer numerator/denominator pair and
   resolved with divmod(). The fractional part of a division is kept as an
   integer remainder so that it can be compared exactly (largest-remainder
   apportionment depends on this).

3. IMMUTABILITY
   Frozen dataclass. Every operation returns a new instance.
   No side effects, safe for concurrent use.

4. EXPLICIT ROUNDING
   No implicit rounding. When a quotient must become an integer, the caller
   picks the strategy.

5. VERIFIABLE INVARIANTS
   distribute(n) guarantees sum(parts) == original.

================================================================================
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


# ==============================================================================
# CURRENCY DEFINITIONS (ISO 4217)
# ==============================================================================

class Currency(Enum):
    """
    Supported currencies with their precision (decimals of the minor unit).

    The engine itself never converts between currencies; the currency only
    decides how minor units are rendered in explanation text.
    """
    NOK = ("NOK", 2)   # Norwegian krone: 1 NOK = 100 øre
    SEK = ("SEK", 2)   # Swedish krona: 1 SEK = 100 öre
    DKK = ("DKK", 2)   # Danish krone: 1 DKK = 100 øre
    EUR = ("EUR", 2)   # Euro: 1 EUR = 100 cents
    USD = ("USD", 2)   # US Dollar: 1 USD = 100 cents
    GBP = ("GBP", 2)   # British Pound: 1 GBP = 100 pence
    JPY = ("JPY", 0)   # Japanese Yen: no minor unit
    KWD = ("KWD", 3)   # Kuwaiti Dinar: 1 KWD = 1000 fils

    def __init__(self, code: str, decimals: int):
        self._code = code
        self._decimals = decimals

    @property
    def code(self) -> str:
        return self._code

    @property
    def decimals(self) -> int:
        return self._decimals

    @property
    def multiplier(self) -> int:
        """Conversion factor major -> minor unit."""
        return 10 ** self._decimals


# ==============================================================================
# ROUNDING STRATEGIES
# ==============================================================================

class RoundingMode(Enum):
    """
    Rounding strategies for integer division.

    - HALF_UP: commercial rounding, ties away from zero (0.5 -> 1)
    - HALF_EVEN: banker's rounding, minimizes statistical bias
    - DOWN: always towards zero (truncation)
    - UP: always away from zero
    - HALF_DOWN: ties towards zero (0.5 -> 0)
    - FLOOR: always towards negative infinity
    """
    HALF_UP = "half_up"
    HALF_EVEN = "half_even"
    DOWN = "down"
    UP = "up"
    HALF_DOWN = "half_down"
    FLOOR = "floor"


def divide_rounded(numerator: int, denominator: int, mode: RoundingMode) -> int:
    """
    Divide two integers and round the exact rational result to an integer.

    No float is ever produced: the quotient is split by divmod() and the
    remainder is compared against half the denominator.

    Raises:
        TypeError: if either operand is not an int
        ZeroDivisionError: if denominator is 0
    """
    if not isinstance(numerator, int) or not isinstance(denominator, int):
        raise TypeError(
            f"divide_rounded requires int operands, got "
            f"{type(numerator).__name__} / {type(denominator).__name__}"
        )
    if denominator == 0:
        raise ZeroDivisionError("division by zero")
    if denominator < 0:
        numerator, denominator = -numerator, -denominator

    quotient, remainder = divmod(numerator, denominator)
    if remainder == 0:
        return quotient

    # quotient is the floor; the exact value lies strictly between
    # quotient and quotient + 1.
    negative = numerator < 0
    twice = 2 * remainder

    if mode is RoundingMode.FLOOR:
        return quotient
    if mode is RoundingMode.DOWN:
        return quotient + 1 if negative else quotient
    if mode is RoundingMode.UP:
        return quotient if negative else quotient + 1
    if twice > denominator:
        return quotient + 1
    if twice < denominator:
        return quotient
    # exact tie
    if mode is RoundingMode.HALF_UP:
        return quotient if negative else quotient + 1
    if mode is RoundingMode.HALF_DOWN:
        return quotient + 1 if negative else quotient
    if mode is RoundingMode.HALF_EVEN:
        return quotient if quotient % 2 == 0 else quotient + 1

    raise ValueError(f"Unknown rounding mode: {mode}")


def format_basis_points(basis_points: int) -> str:
    """Render basis points as a percentage with two decimals: 3929 -> '39.29%'."""
    sign = "-" if basis_points < 0 else ""
    whole, hundredths = divmod(abs(basis_points), 100)
    return f"{sign}{whole}.{hundredths:02d}%"


# ==============================================================================
# MONEY CLASS
# ==============================================================================

@dataclass(frozen=True, slots=True, order=False)
class Money:
    """
    Value type for monetary amounts.

    INVARIANTS:
    1. _minor_units is always int (no floating point)
    2. _currency is always Currency
    3. Operations between different currencies raise TypeError
    4. distribute(n) guarantees sum(parts) == self

    SERIALIZATION:
        Use to_dict() / from_dict().
        Format: {"minor_units": int, "currency": str}
        NEVER serialize as float.
    """
    _minor_units: int
    _currency: Currency

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def of(cls, major_units: int, currency: Currency) -> Money:
        """Build from whole major units (kroner, euros, ...)."""
        if not isinstance(major_units, int):
            raise TypeError(f"major_units must be int, got {type(major_units).__name__}")
        return cls(
            _minor_units=major_units * currency.multiplier,
            _currency=currency
        )

    @classmethod
    def of_minor(cls, minor_units: int, currency: Currency) -> Money:
        """Build from minor units. No conversion, full precision."""
        if not isinstance(minor_units, int):
            raise TypeError(f"minor_units must be int, got {type(minor_units).__name__}")
        return cls(_minor_units=minor_units, _currency=currency)

    @classmethod
    def zero(cls, currency: Currency) -> Money:
        """Zero for a currency. Useful as the start value for sum()."""
        return cls(_minor_units=0, _currency=currency)

    # -------------------------------------------------------------------------
    # Distribution
    # -------------------------------------------------------------------------

    # Maximum parts for distribution
    MAX_DISTRIBUTION_PARTS: ClassVar[int] = 10_000

    def distribute(self, n: int) -> list[Money]:
        """
        Split the amount into n parts whose sum is EXACTLY self.

        The first (self % n) parts receive one extra minor unit; callers that
        need a particular recipient order sort their recipients first.

        Raises:
            ValueError: if n <= 0 or n > MAX_DISTRIBUTION_PARTS
        """
        if n <= 0:
            raise ValueError(f"n must be > 0, got: {n}")
        if n > self.MAX_DISTRIBUTION_PARTS:
            raise ValueError(f"n exceeds the limit of {self.MAX_DISTRIBUTION_PARTS}")

        base, remainder = divmod(self._minor_units, n)

        return [
            Money.of_minor(base + (1 if i < remainder else 0), self._currency)
            for i in range(n)
        ]

    # -------------------------------------------------------------------------
    # Arithmetic (type-safe)
    # -------------------------------------------------------------------------

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            raise TypeError(
                f"Operation not allowed: Money + {type(other).__name__}. "
                f"Use Money.of_minor() to convert."
            )
        if self._currency != other._currency:
            raise TypeError(
                f"Different currencies: {self._currency.code} + {other._currency.code}."
            )
        return Money.of_minor(
            self._minor_units + other._minor_units,
            self._currency
        )

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            raise TypeError(
                f"Operation not allowed: Money - {type(other).__name__}."
            )
        if self._currency != other._currency:
            raise TypeError(
                f"Different currencies: {self._currency.code} - {other._currency.code}."
            )
        return Money.of_minor(
            self._minor_units - other._minor_units,
            self._currency
        )

    def __neg__(self) -> Money:
        return Money.of_minor(-self._minor_units, self._currency)

    def __abs__(self) -> Money:
        return Money.of_minor(abs(self._minor_units), self._currency)

    # -------------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Money):
            return (
                self._minor_units == other._minor_units
                and self._currency == other._currency
            )
        return NotImplemented

    def __lt__(self, other: Money) -> bool:
        self._check_same_currency(other)
        return self._minor_units < other._minor_units

    def __le__(self, other: Money) -> bool:
        self._check_same_currency(other)
        return self._minor_units <= other._minor_units

    def __gt__(self, other: Money) -> bool:
        self._check_same_currency(other)
        return self._minor_units > other._minor_units

    def __ge__(self, other: Money) -> bool:
        self._check_same_currency(other)
        return self._minor_units >= other._minor_units

    def _check_same_currency(self, other: Money) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot compare Money with {type(other).__name__}")
        if self._currency != other._currency:
            raise TypeError(
                f"Cannot compare different currencies: "
                f"{self._currency.code} vs {other._currency.code}"
            )

    # -------------------------------------------------------------------------
    # Properties and output
    # -------------------------------------------------------------------------

    @property
    def minor_units(self) -> int:
        return self._minor_units

    @property
    def currency(self) -> Currency:
        return self._currency

    def is_positive(self) -> bool:
        return self._minor_units > 0

    def is_negative(self) -> bool:
        return self._minor_units < 0

    def is_zero(self) -> bool:
        return self._minor_units == 0

    def __repr__(self) -> str:
        sign = "-" if self._minor_units < 0 else ""
        abs_minor = abs(self._minor_units)
        decimals = self._currency.decimals

        if decimals == 0:
            return f"{sign}{abs_minor} {self._currency.code}"

        major, minor = divmod(abs_minor, self._currency.multiplier)

        return f"{sign}{major}.{minor:0{decimals}d} {self._currency.code}"

    def __str__(self) -> str:
        return self.__repr__()

    def __hash__(self) -> int:
        return hash((self._minor_units, self._currency))

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "minor_units": self._minor_units,
            "currency": self._currency.code
        }

    @classmethod
    def from_dict(cls, data: dict) -> Money:
        currency = Currency[data["currency"]]
        return cls.of_minor(data["minor_units"], currency)


def format_amount(minor_units: int, currency: Currency) -> str:
    """Render an integer amount in minor units, e.g. 122500 -> '1225.00 NOK'."""
    return str(Money.of_minor(minor_units, currency))
