"""
allocation.py - Split an integer total among participants.

================================================================================
POLICIES
================================================================================

BY_PERCENT   split_by_percent()   basis-point table, largest-remainder rounding
BY_INCOME    split_by_income()    income -> basis points -> split_by_percent()
FIXED        split_fixed()        fixed amounts + remainder (EQUAL or BY_INCOME)
             split_equal()        FIXED without any fixed rule

allocate() dispatches on a DistributionPolicy tag.

================================================================================
INVARIANTS
================================================================================

1. sum(share.share_amount) == total, exactly, for every policy
2. no share is negative
3. identical inputs (including their order) give identical outputs,
   down to which participant receives each leftover minor unit

All ratios are computed as integer quotient/remainder pairs; no float is
involved anywhere.

================================================================================
"""

from __future__ import annotations
from dataclasses import replace
from typing import Iterable, Optional, Sequence, Union
import logging

from .config import DEFAULT_SETTINGS, EngineSettings
from .errors import (
    FixedExceedsTotalError,
    InvalidAmountError,
    InvalidRuleError,
    NoEligibleParticipantsError,
    UnsupportedPolicyError,
)
from .models import (
    AllocationShare,
    DistributionPolicy,
    FixedRule,
    IncomeParticipant,
    PercentRule,
    RemainderPolicy,
)
from .money import Money, RoundingMode, divide_rounded, format_amount, format_basis_points

logger = logging.getLogger(__name__)

BASIS_POINTS_TOTAL = 10_000


# ==============================================================================
# VALIDATION HELPERS
# ==============================================================================

def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_total(total: int) -> None:
    if not _is_int(total):
        raise InvalidAmountError(
            f"Total must be an integer amount of minor units, got {type(total).__name__}"
        )
    if total < 0:
        raise InvalidAmountError(f"Total must not be negative, got {total}")


def _check_size(items: Sequence, settings: EngineSettings, what: str) -> None:
    if len(items) > settings.max_participants:
        raise InvalidRuleError(
            f"Too many {what}: {len(items)} (limit {settings.max_participants})"
        )


def _check_unique(participant_ids: Iterable[str], what: str) -> None:
    seen = set()
    for participant_id in participant_ids:
        if participant_id in seen:
            raise InvalidRuleError(f"Duplicate participant in {what}: {participant_id!r}")
        seen.add(participant_id)


def _coerce_remainder_policy(policy: Union[RemainderPolicy, str, None]) -> RemainderPolicy:
    if isinstance(policy, RemainderPolicy):
        return policy
    if policy is None:
        raise UnsupportedPolicyError("Remainder policy required for FIXED distribution")
    try:
        return RemainderPolicy(policy)
    except ValueError:
        raise UnsupportedPolicyError(f"Unsupported remainder policy: {policy!r}") from None


def _coerce_distribution_policy(policy: Union[DistributionPolicy, str]) -> DistributionPolicy:
    if isinstance(policy, DistributionPolicy):
        return policy
    try:
        return DistributionPolicy(policy)
    except ValueError:
        raise UnsupportedPolicyError(f"Unsupported distribution method: {policy!r}") from None


# ==============================================================================
# ROUNDING CORE
# ==============================================================================

def _largest_remainder(total: int, rules: Sequence[PercentRule]) -> dict[str, int]:
    """
    Apportion total by basis points (Hare-Niemeyer).

    Each share is floored; the leftover units go one each to the rules with
    the largest fractional part, ties by ascending participant id.
    Requires sum(basis_points) == BASIS_POINTS_TOTAL, which bounds the
    leftover to fewer units than there are rules.
    """
    shares: dict[str, int] = {}
    fractions: list[tuple[int, str]] = []

    for rule in rules:
        floored, fraction = divmod(total * rule.basis_points, BASIS_POINTS_TOTAL)
        shares[rule.participant_id] = floored
        fractions.append((fraction, rule.participant_id))

    leftover = total - sum(shares.values())
    ranked = sorted(fractions, key=lambda item: (-item[0], item[1]))

    for _, participant_id in ranked[:leftover]:
        shares[participant_id] += 1

    logger.debug(
        f"Largest remainder: total={total}, rules={len(rules)}, leftover units={leftover}"
    )
    return shares


def _split_evenly(amount: int, participant_ids: Sequence[str], settings: EngineSettings) -> dict[str, int]:
    """Equal split; leftover units go to the lowest participant ids."""
    ordered = sorted(participant_ids)
    parts = Money.of_minor(amount, settings.currency).distribute(len(ordered))
    return {pid: part.minor_units for pid, part in zip(ordered, parts)}


# ==============================================================================
# POLICIES
# ==============================================================================

def split_by_percent(
    total: int,
    percent_rules: Sequence[PercentRule],
    settings: Optional[EngineSettings] = None,
) -> list[AllocationShare]:
    """
    Split total by a basis-point table.

    Args:
        total: amount in minor units (>= 0)
        percent_rules: one rule per participant, summing to 10000

    Returns:
        One AllocationShare per rule, in rule order.

    Raises:
        InvalidRuleError: empty table, duplicate participant, non-integer or
            negative basis points, or a sum other than 10000
        InvalidAmountError: negative total
    """
    settings = settings or DEFAULT_SETTINGS
    rules = list(percent_rules)

    _check_total(total)
    if not rules:
        raise InvalidRuleError("At least one percent rule is required")
    _check_size(rules, settings, "percent rules")
    _check_unique((r.participant_id for r in rules), "percent rules")

    for rule in rules:
        if not _is_int(rule.basis_points):
            raise InvalidRuleError(
                f"Basis points must be an integer, got {rule.basis_points!r} "
                f"for {rule.participant_id!r}"
            )
        if rule.basis_points < 0:
            raise InvalidRuleError(
                f"Negative percentage not allowed: {rule.basis_points} "
                f"for {rule.participant_id!r}"
            )

    bp_sum = sum(r.basis_points for r in rules)
    if bp_sum != BASIS_POINTS_TOTAL:
        raise InvalidRuleError(
            f"Percent rules must sum to {BASIS_POINTS_TOTAL} basis points (100%), got {bp_sum}"
        )

    shares = _largest_remainder(total, rules)
    total_text = format_amount(total, settings.currency)

    return [
        AllocationShare(
            participant_id=rule.participant_id,
            share_amount=shares[rule.participant_id],
            explanation=(
                f"Your share is {format_amount(shares[rule.participant_id], settings.currency)} "
                f"({format_basis_points(rule.basis_points)} of {total_text})"
            ),
        )
        for rule in rules
    ]


def split_by_income(
    total: int,
    income_participants: Sequence[IncomeParticipant],
    settings: Optional[EngineSettings] = None,
) -> list[AllocationShare]:
    """
    Split total in proportion to normalized monthly income.

    Participants with income <= 0 are left out. Each remaining income is
    converted to basis points (rounded half up); the whole rounding
    correction is then applied to the first remaining participant so that
    the table sums to 10000, and split_by_percent() does the apportionment.

    Returns:
        One AllocationShare per participant with positive income, in input order.

    Raises:
        NoEligibleParticipantsError: nobody has a positive income
    """
    settings = settings or DEFAULT_SETTINGS
    participants = list(income_participants)

    _check_total(total)
    _check_size(participants, settings, "participants")
    _check_unique((p.participant_id for p in participants), "participants")
    for p in participants:
        if not _is_int(p.normalized_monthly_income):
            raise InvalidAmountError(
                f"Income must be an integer amount of minor units, got "
                f"{p.normalized_monthly_income!r} for {p.participant_id!r}"
            )

    eligible = [p for p in participants if p.normalized_monthly_income > 0]
    if not eligible:
        raise NoEligibleParticipantsError(
            "No participants with income found for BY_INCOME distribution"
        )

    total_income = sum(p.normalized_monthly_income for p in eligible)
    income_bp = {
        p.participant_id: divide_rounded(
            p.normalized_monthly_income * BASIS_POINTS_TOTAL, total_income, RoundingMode.HALF_UP
        )
        for p in eligible
    }

    rules = [PercentRule(p.participant_id, income_bp[p.participant_id]) for p in eligible]
    correction = BASIS_POINTS_TOTAL - sum(r.basis_points for r in rules)
    if correction:
        first = rules[0]
        rules[0] = PercentRule(first.participant_id, first.basis_points + correction)
        logger.debug(
            f"Income basis points off by {correction}; corrected on {first.participant_id!r}"
        )

    shares = split_by_percent(total, rules, settings)

    incomes = {p.participant_id: p.normalized_monthly_income for p in eligible}
    total_income_text = format_amount(total_income, settings.currency)

    return [
        replace(
            share,
            explanation=(
                f"Your share is {format_amount(share.share_amount, settings.currency)} "
                f"({format_basis_points(income_bp[share.participant_id])} based on income of "
                f"{format_amount(incomes[share.participant_id], settings.currency)} / "
                f"{total_income_text} total)"
            ),
        )
        for share in shares
    ]


def split_equal(
    total: int,
    participants: Sequence[IncomeParticipant],
    settings: Optional[EngineSettings] = None,
) -> list[AllocationShare]:
    """Equal split; leftover units go one each to the lowest participant ids."""
    settings = settings or DEFAULT_SETTINGS
    members = list(participants)

    _check_total(total)
    if not members:
        raise NoEligibleParticipantsError(
            "No participants for equal split. Select at least one participant."
        )
    _check_size(members, settings, "participants")
    _check_unique((p.participant_id for p in members), "participants")

    amounts = _split_evenly(total, [p.participant_id for p in members], settings)

    return [
        AllocationShare(
            participant_id=p.participant_id,
            share_amount=amounts[p.participant_id],
            explanation=(
                f"Your share is {format_amount(amounts[p.participant_id], settings.currency)} "
                f"(equal split among {len(members)} participants)"
            ),
        )
        for p in members
    ]


def split_fixed(
    total: int,
    fixed_rules: Sequence[FixedRule],
    remainder_policy: Union[RemainderPolicy, str],
    all_participants: Sequence[IncomeParticipant],
    settings: Optional[EngineSettings] = None,
) -> list[AllocationShare]:
    """
    Deduct fixed amounts, then split what is left.

    EQUAL spreads the remainder over ALL participants (not only those with a
    fixed rule); BY_INCOME delegates to split_by_income() on the remainder.

    Returns:
        Exactly one AllocationShare per participant, in input order,
        zero shares included.

    Raises:
        FixedExceedsTotalError: fixed amounts add up to more than total
        InvalidRuleError: negative/duplicate fixed rule, or a rule for a
            participant that is not in all_participants
        UnsupportedPolicyError: unknown remainder policy
        NoEligibleParticipantsError: a remainder exists but nobody can take it
    """
    settings = settings or DEFAULT_SETTINGS
    rules = list(fixed_rules)
    participants = list(all_participants)
    policy = _coerce_remainder_policy(remainder_policy)

    _check_total(total)
    _check_size(participants, settings, "participants")
    _check_size(rules, settings, "fixed rules")
    _check_unique((p.participant_id for p in participants), "participants")
    _check_unique((r.participant_id for r in rules), "fixed rules")

    known = {p.participant_id for p in participants}
    for rule in rules:
        if not _is_int(rule.fixed_amount) or rule.fixed_amount < 0:
            raise InvalidRuleError(
                f"Fixed amount must be a non-negative integer, got {rule.fixed_amount!r} "
                f"for {rule.participant_id!r}"
            )
        if rule.participant_id not in known:
            raise InvalidRuleError(
                f"Fixed rule for unknown participant: {rule.participant_id!r}"
            )

    fixed_sum = sum(r.fixed_amount for r in rules)
    if fixed_sum > total:
        raise FixedExceedsTotalError(fixed_sum, total)

    fixed = {r.participant_id: r.fixed_amount for r in rules}
    remainder = total - fixed_sum
    remainder_shares: dict[str, int] = {}

    if remainder > 0:
        if policy is RemainderPolicy.EQUAL:
            if not participants:
                raise NoEligibleParticipantsError(
                    "No participants to receive the remainder of a FIXED distribution"
                )
            remainder_shares = _split_evenly(
                remainder, [p.participant_id for p in participants], settings
            )
        else:
            remainder_shares = {
                s.participant_id: s.share_amount
                for s in split_by_income(remainder, participants, settings)
            }

    logger.debug(
        f"Fixed split: total={total}, fixed={fixed_sum}, remainder={remainder}, "
        f"policy={policy.value}"
    )

    method = "equal split" if policy is RemainderPolicy.EQUAL else "income"
    result = []
    for p in participants:
        fixed_part = fixed.get(p.participant_id, 0)
        remainder_part = remainder_shares.get(p.participant_id, 0)
        share_amount = fixed_part + remainder_part

        if fixed_part > 0 and remainder_part > 0:
            explanation = (
                f"Your share is {format_amount(share_amount, settings.currency)} "
                f"({format_amount(fixed_part, settings.currency)} fixed + "
                f"{format_amount(remainder_part, settings.currency)} from remainder "
                f"based on {method})"
            )
        elif fixed_part > 0:
            explanation = (
                f"Your share is {format_amount(fixed_part, settings.currency)} (fixed amount)"
            )
        elif remainder_part > 0:
            explanation = (
                f"Your share is {format_amount(remainder_part, settings.currency)} "
                f"(remainder based on {method}, no fixed amount)"
            )
        else:
            explanation = (
                f"Your share is {format_amount(0, settings.currency)} "
                f"(no fixed amount or remainder allocation)"
            )

        result.append(AllocationShare(p.participant_id, share_amount, explanation))

    return result


# ==============================================================================
# DISPATCH
# ==============================================================================

def _allocate_by_percent(total, percent_rules, participants, fixed_rules, remainder_policy, settings):
    if not percent_rules:
        raise UnsupportedPolicyError("Percent rules required for BY_PERCENT distribution")
    return split_by_percent(total, percent_rules, settings)


def _allocate_by_income(total, percent_rules, participants, fixed_rules, remainder_policy, settings):
    return split_by_income(total, participants, settings)


def _allocate_fixed(total, percent_rules, participants, fixed_rules, remainder_policy, settings):
    if not fixed_rules:
        return split_equal(total, participants, settings)
    if remainder_policy is None:
        raise UnsupportedPolicyError(
            "Remainder policy required for FIXED distribution with fixed rules"
        )
    return split_fixed(total, fixed_rules, remainder_policy, participants, settings)


_POLICIES = {
    DistributionPolicy.BY_PERCENT: _allocate_by_percent,
    DistributionPolicy.BY_INCOME: _allocate_by_income,
    DistributionPolicy.FIXED: _allocate_fixed,
}


def allocate(
    total: int,
    policy: Union[DistributionPolicy, str],
    *,
    percent_rules: Optional[Sequence[PercentRule]] = None,
    participants: Sequence[IncomeParticipant] = (),
    fixed_rules: Optional[Sequence[FixedRule]] = None,
    remainder_policy: Union[RemainderPolicy, str, None] = None,
    settings: Optional[EngineSettings] = None,
) -> list[AllocationShare]:
    """
    Split total under the given distribution policy.

    BY_PERCENT needs percent_rules. BY_INCOME uses participants' incomes.
    FIXED with fixed_rules needs a remainder_policy; FIXED without any
    fixed rule is an equal split over participants.

    Raises:
        UnsupportedPolicyError: unknown policy, or a required rule set is missing
    """
    resolved = _coerce_distribution_policy(policy)
    logger.debug(f"Allocating {total} with policy {resolved.value}")
    handler = _POLICIES[resolved]
    return handler(
        total,
        list(percent_rules or ()),
        list(participants),
        list(fixed_rules or ()),
        remainder_policy,
        settings or DEFAULT_SETTINGS,
    )


def validate_sum_equals(shares: Iterable[AllocationShare], expected_total: int) -> bool:
    """True when the shares add up to expected_total exactly."""
    return sum(s.share_amount for s in shares) == expected_total
