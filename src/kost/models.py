"""
models.py - Input and output records of the engines.

All records are frozen dataclasses holding integer minor units. They are
built by the caller right before a call and discarded afterwards; the
engines keep no state between calls.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


# ==============================================================================
# POLICY TAGS
# ==============================================================================

class DistributionPolicy(Enum):
    """How an invoice total is split among participants."""
    BY_PERCENT = "BY_PERCENT"
    BY_INCOME = "BY_INCOME"
    FIXED = "FIXED"


class RemainderPolicy(Enum):
    """How the amount left after fixed deductions is split (FIXED policy only)."""
    EQUAL = "EQUAL"
    BY_INCOME = "BY_INCOME"


class IncomeType(Enum):
    """Period and basis of a reported income, before normalization."""
    MONTHLY_GROSS = "MONTHLY_GROSS"
    MONTHLY_NET = "MONTHLY_NET"
    ANNUAL_GROSS = "ANNUAL_GROSS"
    ANNUAL_NET = "ANNUAL_NET"


# ==============================================================================
# ALLOCATION INPUTS / OUTPUTS
# ==============================================================================

@dataclass(frozen=True)
class PercentRule:
    """Share of a total in basis points (10000 = 100%)."""
    participant_id: str
    basis_points: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "participant_id": self.participant_id,
            "basis_points": self.basis_points,
        }


@dataclass(frozen=True)
class FixedRule:
    """Fixed amount deducted for one participant before the remainder is split."""
    participant_id: str
    fixed_amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "participant_id": self.participant_id,
            "fixed_amount": self.fixed_amount,
        }


@dataclass(frozen=True)
class IncomeParticipant:
    """
    A participant with income already normalized to monthly gross.

    Participants whose income is <= 0 take no part in income-proportional
    splits but still appear in FIXED/EQUAL splits.
    """
    participant_id: str
    normalized_monthly_income: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "participant_id": self.participant_id,
            "normalized_monthly_income": self.normalized_monthly_income,
        }


@dataclass(frozen=True)
class AllocationShare:
    participant_id: str
    share_amount: int
    explanation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "participant_id": self.participant_id,
            "share_amount": self.share_amount,
            "explanation": self.explanation,
        }


# ==============================================================================
# SETTLEMENT INPUTS / OUTPUTS
# ==============================================================================

@dataclass(frozen=True)
class Balance:
    """
    What a participant owes and has paid over a period.

    net > 0: creditor (is owed money)
    net < 0: debtor (owes money)
    """
    participant_id: str
    total_owed: int = 0
    total_paid: int = 0

    @property
    def net(self) -> int:
        return self.total_paid - self.total_owed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "participant_id": self.participant_id,
            "total_owed": self.total_owed,
            "total_paid": self.total_paid,
            "net": self.net,
        }


@dataclass(frozen=True)
class Transfer:
    from_participant_id: str
    to_participant_id: str
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_participant_id": self.from_participant_id,
            "to_participant_id": self.to_participant_id,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class Payment:
    """A payment recorded against an invoice."""
    participant_id: str
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "participant_id": self.participant_id,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class Invoice:
    """Snapshot of one invoice of a period: its total, allocated shares and payments."""
    total: int
    shares: tuple[AllocationShare, ...] = field(default_factory=tuple)
    payments: tuple[Payment, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "shares": [s.to_dict() for s in self.shares],
            "payments": [p.to_dict() for p in self.payments],
        }
