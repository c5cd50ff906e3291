"""
kost - Deterministic allocation and settlement engine for shared expenses

Splits invoice totals among household members and, at period close, turns
what everybody owed and paid into a short list of transfers. All amounts are
integers in minor units; identical inputs always give identical outputs.

================================================================================
QUICK START
================================================================================

Allocation:

    from kost import PercentRule, split_by_percent

    shares = split_by_percent(245000, [
        PercentRule("anna", 5000),
        PercentRule("bjorn", 3000),
        PercentRule("carl", 2000),
    ])
    # sum(s.share_amount for s in shares) == 245000, always

Income-proportional split with normalization:

    from kost import IncomeType, income_participant, split_by_income

    people = [
        income_participant("anna", IncomeType.ANNUAL_GROSS, 66_000_00),
        income_participant("bjorn", IncomeType.MONTHLY_GROSS, 4_500_00),
    ]
    shares = split_by_income(69900, people)

Settlement:

    from kost import Balance, compute_settlements

    transfers = compute_settlements([
        Balance("anna", total_owed=15000),
        Balance("bjorn", total_paid=8000),
        Balance("carl", total_paid=7000),
    ])
    # anna -> bjorn 8000, anna -> carl 7000

================================================================================
"""

import logging

from .money import (
    Money,
    Currency,
    RoundingMode,
    divide_rounded,
    format_amount,
    format_basis_points,
)
from .models import (
    AllocationShare,
    Balance,
    DistributionPolicy,
    FixedRule,
    IncomeParticipant,
    IncomeType,
    Invoice,
    Payment,
    PercentRule,
    RemainderPolicy,
    Transfer,
)
from .errors import (
    EngineError,
    FixedExceedsTotalError,
    InvalidAmountError,
    InvalidBalanceError,
    InvalidRuleError,
    NoEligibleParticipantsError,
    UnsupportedPolicyError,
)
from .config import EngineSettings, DEFAULT_SETTINGS
from .allocation import (
    BASIS_POINTS_TOTAL,
    allocate,
    split_by_income,
    split_by_percent,
    split_equal,
    split_fixed,
    validate_sum_equals,
)
from .income import income_participant, normalize_income
from .settlement import (
    SETTLEMENT_TOLERANCE,
    SettlementReport,
    compute_balances,
    compute_settlements,
    settle_period,
)
from .audit import (
    canonical_json,
    fingerprint,
    fingerprint_shares,
    fingerprint_transfers,
    verify_fingerprint,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    # Money
    "Money",
    "Currency",
    "RoundingMode",
    "divide_rounded",
    "format_amount",
    "format_basis_points",
    # Models
    "AllocationShare",
    "Balance",
    "DistributionPolicy",
    "FixedRule",
    "IncomeParticipant",
    "IncomeType",
    "Invoice",
    "Payment",
    "PercentRule",
    "RemainderPolicy",
    "Transfer",
    # Errors
    "EngineError",
    "FixedExceedsTotalError",
    "InvalidAmountError",
    "InvalidBalanceError",
    "InvalidRuleError",
    "NoEligibleParticipantsError",
    "UnsupportedPolicyError",
    # Config
    "EngineSettings",
    "DEFAULT_SETTINGS",
    # Allocation
    "BASIS_POINTS_TOTAL",
    "allocate",
    "split_by_income",
    "split_by_percent",
    "split_equal",
    "split_fixed",
    "validate_sum_equals",
    # Income
    "income_participant",
    "normalize_income",
    # Settlement
    "SETTLEMENT_TOLERANCE",
    "SettlementReport",
    "compute_balances",
    "compute_settlements",
    "settle_period",
    # Audit
    "canonical_json",
    "fingerprint",
    "fingerprint_shares",
    "fingerprint_transfers",
    "verify_fingerprint",
]
