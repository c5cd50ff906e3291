"""
test_income.py - Tests for income normalization
"""

from fractions import Fraction

import pytest
from hypothesis import given
from hypothesis import strategies as st

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from kost import (
    IncomeParticipant,
    IncomeType,
    InvalidAmountError,
    UnsupportedPolicyError,
    income_participant,
    normalize_income,
)


class TestNormalizeIncome:

    def test_monthly_gross_is_unchanged(self):
        assert normalize_income(IncomeType.MONTHLY_GROSS, 5_500_000) == 5_500_000

    def test_monthly_net_is_grossed_up(self):
        assert normalize_income(IncomeType.MONTHLY_NET, 700_000) == 1_000_000

    def test_annual_gross_is_divided_by_twelve(self):
        assert normalize_income(IncomeType.ANNUAL_GROSS, 6_600_000) == 550_000

    def test_annual_net(self):
        assert normalize_income(IncomeType.ANNUAL_NET, 8_400_000) == 1_000_000

    def test_rounds_half_up(self):
        # 6 / 12 = 0.5
        assert normalize_income(IncomeType.ANNUAL_GROSS, 6) == 1
        # 10 / 7 = 1.43, 20 / 7 = 2.86
        assert normalize_income(IncomeType.MONTHLY_NET, 1) == 1
        assert normalize_income(IncomeType.MONTHLY_NET, 2) == 3

    def test_accepts_string_tag(self):
        assert normalize_income("ANNUAL_GROSS", 1200) == 100

    def test_zero_income(self):
        assert normalize_income(IncomeType.ANNUAL_NET, 0) == 0

    def test_negative_income_raises(self):
        with pytest.raises(InvalidAmountError):
            normalize_income(IncomeType.MONTHLY_GROSS, -1)

    def test_float_income_raises(self):
        with pytest.raises(InvalidAmountError):
            normalize_income(IncomeType.MONTHLY_GROSS, 100.0)

    def test_unknown_type_raises(self):
        with pytest.raises(UnsupportedPolicyError):
            normalize_income("WEEKLY_GROSS", 100)

    def test_income_participant(self):
        assert income_participant("A", IncomeType.ANNUAL_GROSS, 66_000_00) == IncomeParticipant("A", 550_000)

    @given(
        income_type=st.sampled_from(list(IncomeType)),
        amount=st.integers(min_value=0, max_value=10**12),
    )
    def test_within_half_unit_of_exact(self, income_type, amount):
        factors = {
            IncomeType.MONTHLY_GROSS: Fraction(1),
            IncomeType.MONTHLY_NET: Fraction(10, 7),
            IncomeType.ANNUAL_GROSS: Fraction(1, 12),
            IncomeType.ANNUAL_NET: Fraction(10, 84),
        }
        exact = amount * factors[income_type]
        assert abs(normalize_income(income_type, amount) - exact) <= Fraction(1, 2)
