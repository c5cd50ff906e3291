"""
test_allocation.py - Tests for the allocation engine

================================================================================
TEST STRUCTURE
================================================================================

1. UNIT TESTS
   Concrete splits for each policy, explanation text, validation errors.

2. PROPERTY-BASED TESTS (Hypothesis)
   For any valid input:
   - sum(shares) == total, exactly
   - no share is negative
   - repeated calls give identical output
   - percent shares stay within one unit of the exact quotient

================================================================================
"""

from fractions import Fraction

import pytest
from hypothesis import given, settings, HealthCheck
from hypothesis import strategies as st

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from kost import (
    AllocationShare,
    Currency,
    DistributionPolicy,
    EngineSettings,
    FixedExceedsTotalError,
    FixedRule,
    IncomeParticipant,
    InvalidAmountError,
    InvalidRuleError,
    NoEligibleParticipantsError,
    PercentRule,
    RemainderPolicy,
    UnsupportedPolicyError,
    allocate,
    fingerprint_shares,
    split_by_income,
    split_by_percent,
    split_equal,
    split_fixed,
    validate_sum_equals,
)


def amounts(shares):
    return {s.participant_id: s.share_amount for s in shares}


HOUSEHOLD = [
    IncomeParticipant("A", 5_500_000),
    IncomeParticipant("B", 4_500_000),
    IncomeParticipant("C", 4_000_000),
]


# ==============================================================================
# HYPOTHESIS STRATEGIES
# ==============================================================================

@st.composite
def percent_table(draw, max_rules=8):
    """Random basis-point table summing to 10000, one rule per participant."""
    n = draw(st.integers(min_value=1, max_value=max_rules))
    cuts = sorted(draw(st.lists(st.integers(min_value=0, max_value=10_000), min_size=n - 1, max_size=n - 1)))
    bounds = [0] + cuts + [10_000]
    ids = draw(st.permutations([f"p{i}" for i in range(n)]))
    return [PercentRule(ids[i], bounds[i + 1] - bounds[i]) for i in range(n)]


@st.composite
def household(draw, max_size=6):
    """
    Participants ordered by descending income.

    The income split puts its whole basis-point correction on the first
    eligible participant; leading with the largest income keeps that
    participant's basis points non-negative.
    """
    incomes = draw(st.lists(st.integers(min_value=-1_000, max_value=20_000_000), min_size=1, max_size=max_size))
    incomes.sort(reverse=True)
    return [IncomeParticipant(f"u{i}", income) for i, income in enumerate(incomes)]


totals = st.integers(min_value=0, max_value=10**9)


# ==============================================================================
# UNIT TESTS: split_by_percent
# ==============================================================================

class TestSplitByPercent:

    def test_exact_fifty_thirty_twenty(self):
        shares = split_by_percent(245000, [
            PercentRule("A", 5000),
            PercentRule("B", 3000),
            PercentRule("C", 2000),
        ])

        assert [s.share_amount for s in shares] == [122500, 73500, 49000]
        assert validate_sum_equals(shares, 245000)

    def test_leftover_unit_goes_to_largest_fraction(self):
        # 33.33 / 33.33 / 33.34 -> C has the largest fractional part
        shares = split_by_percent(100, [
            PercentRule("A", 3333),
            PercentRule("B", 3333),
            PercentRule("C", 3334),
        ])

        assert amounts(shares) == {"A": 33, "B": 33, "C": 34}

    def test_equal_fractions_break_ties_by_participant_id(self):
        shares = split_by_percent(10, [
            PercentRule("Y", 2500),
            PercentRule("W", 2500),
            PercentRule("Z", 2500),
            PercentRule("X", 2500),
        ])

        assert amounts(shares) == {"W": 3, "X": 3, "Y": 2, "Z": 2}

    def test_tie_break_is_case_sensitive(self):
        # "B" < "a" in code-point order
        shares = split_by_percent(1, [PercentRule("a", 5000), PercentRule("B", 5000)])
        assert amounts(shares) == {"a": 0, "B": 1}

    def test_output_follows_rule_order(self):
        shares = split_by_percent(1, [PercentRule("B", 5000), PercentRule("A", 5000)])
        assert [(s.participant_id, s.share_amount) for s in shares] == [("B", 0), ("A", 1)]

    def test_zero_total(self):
        shares = split_by_percent(0, [PercentRule("A", 10000)])
        assert amounts(shares) == {"A": 0}

    def test_explanation(self):
        shares = split_by_percent(245000, [
            PercentRule("A", 5000),
            PercentRule("B", 5000),
        ])
        assert shares[0].explanation == "Your share is 1225.00 NOK (50.00% of 2450.00 NOK)"

    def test_explanation_uses_configured_currency(self):
        shares = split_by_percent(
            100, [PercentRule("A", 10000)], EngineSettings(currency=Currency.EUR)
        )
        assert shares[0].explanation == "Your share is 1.00 EUR (100.00% of 1.00 EUR)"

    def test_rules_not_summing_to_10000_raise(self):
        with pytest.raises(InvalidRuleError, match="sum to 10000"):
            split_by_percent(100, [PercentRule("A", 5000), PercentRule("B", 4000)])

    def test_negative_percentage_raises(self):
        with pytest.raises(InvalidRuleError, match="Negative percentage"):
            split_by_percent(100, [PercentRule("A", -100), PercentRule("B", 10100)])

    def test_float_basis_points_raise(self):
        with pytest.raises(InvalidRuleError):
            split_by_percent(100, [PercentRule("A", 5000.0), PercentRule("B", 5000)])

    def test_duplicate_participant_raises(self):
        with pytest.raises(InvalidRuleError, match="Duplicate"):
            split_by_percent(100, [PercentRule("A", 5000), PercentRule("A", 5000)])

    def test_empty_rules_raise(self):
        with pytest.raises(InvalidRuleError):
            split_by_percent(100, [])

    def test_negative_total_raises(self):
        with pytest.raises(InvalidAmountError):
            split_by_percent(-1, [PercentRule("A", 10000)])

    def test_too_many_rules_raise(self):
        rules = [PercentRule("A", 5000), PercentRule("B", 5000)]
        with pytest.raises(InvalidRuleError, match="Too many"):
            split_by_percent(100, rules, EngineSettings(max_participants=1))

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            split_by_percent(100, [PercentRule("A", 1)])


# ==============================================================================
# UNIT TESTS: split_by_income
# ==============================================================================

class TestSplitByIncome:

    def test_proportional_to_income(self):
        # basis points 3929 / 3214 / 2857
        shares = split_by_income(69900, HOUSEHOLD)

        assert amounts(shares) == {"A": 27464, "B": 22466, "C": 19970}
        assert validate_sum_equals(shares, 69900)

    def test_explanation_cites_income(self):
        shares = split_by_income(69900, HOUSEHOLD)
        assert shares[0].explanation == (
            "Your share is 274.64 NOK (39.29% based on income of "
            "55000.00 NOK / 140000.00 NOK total)"
        )

    def test_participants_without_income_are_excluded(self):
        shares = split_by_income(1000, [
            IncomeParticipant("A", 300_000),
            IncomeParticipant("B", 0),
            IncomeParticipant("C", -5),
            IncomeParticipant("D", 100_000),
        ])

        assert amounts(shares) == {"A": 750, "D": 250}

    def test_rounding_correction_lands_on_first_participant(self):
        equal = [IncomeParticipant(pid, 1) for pid in ("A", "B", "C")]

        # 3333 each -> 9999, correction +1 on A -> 3334
        assert amounts(split_by_income(100, equal)) == {"A": 34, "B": 33, "C": 33}
        assert amounts(split_by_income(100, list(reversed(equal)))) == {"A": 33, "B": 33, "C": 34}

    def test_negative_correction_on_small_first_participant_raises(self):
        # basis points 0 / 3334 / 3334 / 3333 -> 10001, first is corrected to -1
        participants = [
            IncomeParticipant("A", 1),
            IncomeParticipant("B", 13334),
            IncomeParticipant("C", 13334),
            IncomeParticipant("D", 13331),
        ]
        with pytest.raises(InvalidRuleError, match="Negative percentage"):
            split_by_income(100, participants)

    def test_no_income_raises(self):
        with pytest.raises(NoEligibleParticipantsError):
            split_by_income(100, [IncomeParticipant("A", 0), IncomeParticipant("B", -1)])

    def test_empty_participants_raise(self):
        with pytest.raises(NoEligibleParticipantsError):
            split_by_income(100, [])

    def test_float_income_raises(self):
        with pytest.raises(InvalidAmountError):
            split_by_income(100, [IncomeParticipant("A", 1000.5)])


# ==============================================================================
# UNIT TESTS: split_fixed / split_equal
# ==============================================================================

class TestSplitFixed:

    def test_fixed_plus_income_remainder(self):
        shares = split_fixed(
            350000,
            [FixedRule("A", 100000), FixedRule("B", 50000)],
            RemainderPolicy.BY_INCOME,
            HOUSEHOLD,
        )

        # remainder 200000 at 3929 / 3214 / 2857 basis points
        assert amounts(shares) == {"A": 178580, "B": 114280, "C": 57140}
        assert validate_sum_equals(shares, 350000)

    def test_explanations_distinguish_cases(self):
        shares = split_fixed(
            350000,
            [FixedRule("A", 100000), FixedRule("B", 50000)],
            RemainderPolicy.BY_INCOME,
            HOUSEHOLD,
        )
        by_id = {s.participant_id: s.explanation for s in shares}

        assert by_id["A"] == (
            "Your share is 1785.80 NOK (1000.00 NOK fixed + 785.80 NOK "
            "from remainder based on income)"
        )
        assert by_id["C"] == "Your share is 571.40 NOK (remainder based on income, no fixed amount)"

    def test_equal_remainder_covers_all_participants(self):
        participants = [IncomeParticipant("C"), IncomeParticipant("A"), IncomeParticipant("B")]

        shares = split_fixed(1000, [FixedRule("A", 500)], RemainderPolicy.EQUAL, participants)

        # 500 / 3 = 166 r 2 -> A and B get the extra units
        assert [(s.participant_id, s.share_amount) for s in shares] == [
            ("C", 166), ("A", 667), ("B", 167),
        ]
        assert shares[1].explanation == (
            "Your share is 6.67 NOK (5.00 NOK fixed + 1.67 NOK from remainder based on equal split)"
        )

    def test_fixed_only_and_zero_share(self):
        participants = [IncomeParticipant("A"), IncomeParticipant("B"), IncomeParticipant("C")]

        shares = split_fixed(
            1000, [FixedRule("A", 600), FixedRule("B", 400)], RemainderPolicy.EQUAL, participants
        )
        by_id = {s.participant_id: s for s in shares}

        assert by_id["A"].explanation == "Your share is 6.00 NOK (fixed amount)"
        assert by_id["C"].share_amount == 0
        assert by_id["C"].explanation == "Your share is 0.00 NOK (no fixed amount or remainder allocation)"

    def test_income_remainder_skips_participant_without_income(self):
        participants = [
            IncomeParticipant("A", 1),
            IncomeParticipant("B", 1),
            IncomeParticipant("C", 0),
        ]

        shares = split_fixed(1000, [FixedRule("C", 100)], "BY_INCOME", participants)

        assert amounts(shares) == {"A": 450, "B": 450, "C": 100}

    def test_fixed_exceeding_total_raises(self):
        with pytest.raises(FixedExceedsTotalError) as excinfo:
            split_fixed(100, [FixedRule("A", 80), FixedRule("B", 30)], RemainderPolicy.EQUAL,
                        [IncomeParticipant("A"), IncomeParticipant("B")])

        assert excinfo.value.fixed_sum == 110
        assert excinfo.value.total == 100

    def test_fixed_rule_for_unknown_participant_raises(self):
        with pytest.raises(InvalidRuleError, match="unknown participant"):
            split_fixed(100, [FixedRule("Z", 10)], RemainderPolicy.EQUAL, [IncomeParticipant("A")])

    def test_negative_fixed_amount_raises(self):
        with pytest.raises(InvalidRuleError):
            split_fixed(100, [FixedRule("A", -10)], RemainderPolicy.EQUAL, [IncomeParticipant("A")])

    def test_unknown_remainder_policy_raises(self):
        with pytest.raises(UnsupportedPolicyError):
            split_fixed(100, [], "LOTTERY", [IncomeParticipant("A")])

    def test_equal_remainder_without_participants_raises(self):
        with pytest.raises(NoEligibleParticipantsError):
            split_fixed(100, [], RemainderPolicy.EQUAL, [])

    def test_income_remainder_without_income_raises(self):
        with pytest.raises(NoEligibleParticipantsError):
            split_fixed(100, [FixedRule("A", 50)], RemainderPolicy.BY_INCOME, [IncomeParticipant("A")])


class TestSplitEqual:

    def test_leftover_units_go_to_lowest_ids(self):
        shares = split_equal(100, [IncomeParticipant("B"), IncomeParticipant("A"), IncomeParticipant("C")])

        assert [(s.participant_id, s.share_amount) for s in shares] == [("B", 33), ("A", 34), ("C", 33)]
        assert shares[0].explanation == "Your share is 0.33 NOK (equal split among 3 participants)"

    def test_empty_raises(self):
        with pytest.raises(NoEligibleParticipantsError):
            split_equal(100, [])


# ==============================================================================
# UNIT TESTS: allocate
# ==============================================================================

class TestAllocate:

    def test_dispatch_by_percent(self):
        shares = allocate(100, DistributionPolicy.BY_PERCENT, percent_rules=[PercentRule("A", 10000)])
        assert amounts(shares) == {"A": 100}

    def test_policy_accepts_string_tag(self):
        shares = allocate(69900, "BY_INCOME", participants=HOUSEHOLD)
        assert amounts(shares) == amounts(split_by_income(69900, HOUSEHOLD))

    def test_fixed_with_rules(self):
        shares = allocate(
            350000,
            DistributionPolicy.FIXED,
            participants=HOUSEHOLD,
            fixed_rules=[FixedRule("A", 100000), FixedRule("B", 50000)],
            remainder_policy=RemainderPolicy.BY_INCOME,
        )
        assert amounts(shares) == {"A": 178580, "B": 114280, "C": 57140}

    def test_fixed_without_rules_is_equal_split(self):
        shares = allocate(100, DistributionPolicy.FIXED, participants=HOUSEHOLD)
        assert amounts(shares) == {"A": 34, "B": 33, "C": 33}

    def test_fixed_rules_without_remainder_policy_raise(self):
        with pytest.raises(UnsupportedPolicyError, match="Remainder policy"):
            allocate(100, DistributionPolicy.FIXED, participants=HOUSEHOLD,
                     fixed_rules=[FixedRule("A", 10)])

    def test_percent_without_rules_raises(self):
        with pytest.raises(UnsupportedPolicyError, match="Percent rules required"):
            allocate(100, DistributionPolicy.BY_PERCENT)

    def test_unknown_policy_raises(self):
        with pytest.raises(UnsupportedPolicyError):
            allocate(100, "ROUND_ROBIN", participants=HOUSEHOLD)

    def test_validate_sum_equals_detects_mismatch(self):
        shares = [AllocationShare("A", 60, ""), AllocationShare("B", 39, "")]
        assert not validate_sum_equals(shares, 100)


# ==============================================================================
# PROPERTY-BASED TESTS (Hypothesis)
# ==============================================================================

class TestAllocationProperties:

    @given(total=totals, rules=percent_table())
    @settings(max_examples=500, suppress_health_check=[HealthCheck.too_slow])
    def test_percent_sum_and_bounds(self, total, rules):
        shares = split_by_percent(total, rules)

        assert sum(s.share_amount for s in shares) == total
        for share, rule in zip(shares, rules):
            assert share.share_amount >= 0
            assert abs(share.share_amount - Fraction(total * rule.basis_points, 10_000)) < 1

    @given(total=totals, rules=percent_table())
    def test_percent_is_deterministic(self, total, rules):
        first = split_by_percent(total, rules)
        second = split_by_percent(total, list(rules))

        assert first == second
        assert fingerprint_shares(first) == fingerprint_shares(second)

    @given(total=totals, participants=household())
    @settings(max_examples=300, suppress_health_check=[HealthCheck.too_slow])
    def test_income_sum_and_non_negative(self, total, participants):
        if not any(p.normalized_monthly_income > 0 for p in participants):
            with pytest.raises(NoEligibleParticipantsError):
                split_by_income(total, participants)
            return

        shares = split_by_income(total, participants)

        assert sum(s.share_amount for s in shares) == total
        assert all(s.share_amount >= 0 for s in shares)
        assert shares == split_by_income(total, participants)

    @given(data=st.data(), total=totals, participants=household())
    @settings(max_examples=300, suppress_health_check=[HealthCheck.too_slow])
    def test_fixed_sum_and_coverage(self, data, total, participants):
        budget = total
        rules = []
        for p in participants:
            if data.draw(st.booleans()):
                amount = data.draw(st.integers(min_value=0, max_value=budget))
                budget -= amount
                rules.append(FixedRule(p.participant_id, amount))
        policy = data.draw(st.sampled_from(list(RemainderPolicy)))

        has_income = any(p.normalized_monthly_income > 0 for p in participants)
        if policy is RemainderPolicy.BY_INCOME and budget > 0 and not has_income:
            with pytest.raises(NoEligibleParticipantsError):
                split_fixed(total, rules, policy, participants)
            return

        shares = split_fixed(total, rules, policy, participants)

        assert sum(s.share_amount for s in shares) == total
        assert [s.participant_id for s in shares] == [p.participant_id for p in participants]
        assert all(s.share_amount >= 0 for s in shares)
