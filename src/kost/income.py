"""
income.py - Normalize reported incomes to monthly gross minor units.

Income-proportional splits compare incomes on a common basis. Net incomes
are grossed up assuming net is 70% of gross; annual incomes are divided by
12. Every conversion is an integer rational rounded half up.
"""

from __future__ import annotations
from typing import Union

from .errors import InvalidAmountError, UnsupportedPolicyError
from .models import IncomeParticipant, IncomeType
from .money import RoundingMode, divide_rounded

MONTHS_PER_YEAR = 12

# net = 7/10 of gross
NET_TO_GROSS = (10, 7)

# (numerator, denominator) turning the reported amount into monthly gross
_FACTORS = {
    IncomeType.MONTHLY_GROSS: (1, 1),
    IncomeType.MONTHLY_NET: NET_TO_GROSS,
    IncomeType.ANNUAL_GROSS: (1, MONTHS_PER_YEAR),
    IncomeType.ANNUAL_NET: (NET_TO_GROSS[0], NET_TO_GROSS[1] * MONTHS_PER_YEAR),
}


def normalize_income(income_type: Union[IncomeType, str], amount: int) -> int:
    """
    Convert a reported income to monthly gross minor units.

    Raises:
        InvalidAmountError: amount is negative or not an int
        UnsupportedPolicyError: unknown income type
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(
            f"Income must be an integer amount of minor units, got {type(amount).__name__}"
        )
    if amount < 0:
        raise InvalidAmountError(f"Income must not be negative, got {amount}")

    try:
        resolved = IncomeType(income_type)
    except ValueError:
        raise UnsupportedPolicyError(f"Unsupported income type: {income_type!r}") from None

    numerator, denominator = _FACTORS[resolved]
    return divide_rounded(amount * numerator, denominator, RoundingMode.HALF_UP)


def income_participant(
    participant_id: str,
    income_type: Union[IncomeType, str],
    amount: int,
) -> IncomeParticipant:
    """Build an IncomeParticipant from a reported (not yet normalized) income."""
    return IncomeParticipant(participant_id, normalize_income(income_type, amount))
