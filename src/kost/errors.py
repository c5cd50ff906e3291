"""
errors.py - Validation errors raised by the allocation and settlement engines.

Every error is a synchronous, caller-correctable input problem. The engines
never return partial output: an error aborts the whole call.
"""

from __future__ import annotations


class EngineError(ValueError):
    """Base class. ``reason`` holds the human-readable cause."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidRuleError(EngineError):
    """Percentage or fixed rules are malformed (bad sum, negative, duplicate, unknown participant)."""


class FixedExceedsTotalError(EngineError):
    """Fixed allocations add up to more than the total being split."""

    def __init__(self, fixed_sum: int, total: int):
        super().__init__(
            f"Sum of fixed amounts ({fixed_sum}) exceeds total ({total})"
        )
        self.fixed_sum = fixed_sum
        self.total = total


class NoEligibleParticipantsError(EngineError):
    """No participant can receive a share (no positive income, or an empty set)."""


class UnsupportedPolicyError(EngineError):
    """Distribution policy not recognized, or a rule set it requires is missing."""


class InvalidAmountError(EngineError):
    """A monetary input is negative or not an integer number of minor units."""


class InvalidBalanceError(EngineError):
    """Settlement input is malformed (duplicate participant, too many participants)."""
