"""
settlement.py - Turn period balances into peer-to-peer transfers.

================================================================================
ALGORITHM
================================================================================

Greedy matching, repeated until one side is empty:

    debtor   = most negative balance outside tolerance
    creditor = most positive balance outside tolerance
    amount   = min(|debtor|, creditor)
    debtor  += amount ; creditor -= amount

Balances within SETTLEMENT_TOLERANCE (1 minor unit) of zero count as
settled; the slack absorbs rounding upstream in allocation. Equal extreme
balances are resolved by ascending participant id.

PROPERTIES:
- every iteration zeroes at least one participant -> at most N-1 transfers
- every transfer amount is > 0
- the input is never modified

Not guaranteed to reach the minimum possible number of transfers; the
bound that holds is N-1.

================================================================================
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Sequence
import logging

from . import audit
from .config import DEFAULT_SETTINGS, EngineSettings
from .errors import InvalidBalanceError
from .models import Balance, Invoice, Transfer

logger = logging.getLogger(__name__)

SETTLEMENT_TOLERANCE = 1


def _check_balances(balances: Sequence[Balance], settings: EngineSettings) -> None:
    if len(balances) > settings.max_participants:
        raise InvalidBalanceError(
            f"Too many balances: {len(balances)} (limit {settings.max_participants})"
        )
    seen = set()
    for balance in balances:
        if balance.participant_id in seen:
            raise InvalidBalanceError(
                f"Duplicate participant in balances: {balance.participant_id!r}"
            )
        seen.add(balance.participant_id)
        for name in ("total_owed", "total_paid"):
            value = getattr(balance, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidBalanceError(
                    f"{name} must be an integer amount of minor units, got "
                    f"{value!r} for {balance.participant_id!r}"
                )


def compute_settlements(
    balances: Sequence[Balance],
    settings: Optional[EngineSettings] = None,
) -> list[Transfer]:
    """
    Compute transfers that bring every net balance to within tolerance of zero.

    Args:
        balances: one Balance per participant

    Returns:
        Transfers in the order they were generated.

    Raises:
        InvalidBalanceError: duplicate participant or non-integer amounts
    """
    settings = settings or DEFAULT_SETTINGS
    entries = list(balances)
    _check_balances(entries, settings)

    remaining = {b.participant_id: b.net for b in entries}
    transfers: list[Transfer] = []

    while True:
        debtors = [pid for pid, net in remaining.items() if net < -SETTLEMENT_TOLERANCE]
        creditors = [pid for pid, net in remaining.items() if net > SETTLEMENT_TOLERANCE]
        if not debtors or not creditors:
            break

        debtor = min(debtors, key=lambda pid: (remaining[pid], pid))
        creditor = min(creditors, key=lambda pid: (-remaining[pid], pid))
        amount = min(-remaining[debtor], remaining[creditor])

        transfers.append(Transfer(debtor, creditor, amount))
        remaining[debtor] += amount
        remaining[creditor] -= amount

        logger.debug(f"Transfer {debtor!r} -> {creditor!r}: {amount}")

    leftover = {pid: net for pid, net in remaining.items() if net}
    if leftover:
        logger.debug(f"Settled within tolerance, residual balances: {leftover}")

    return transfers


def compute_balances(
    participant_ids: Sequence[str],
    invoices: Iterable[Invoice],
) -> list[Balance]:
    """
    Sum a period's shares (owed) and payments (paid) per participant.

    Only ids listed in participant_ids are tracked; shares or payments for
    anyone else are skipped with a warning.

    Returns:
        One Balance per participant id, in the given order.
    """
    participant_ids = list(participant_ids)
    if len(set(participant_ids)) != len(participant_ids):
        raise InvalidBalanceError("Duplicate participant ids in period")

    owed = {pid: 0 for pid in participant_ids}
    paid = {pid: 0 for pid in participant_ids}

    for invoice in invoices:
        for share in invoice.shares:
            if share.participant_id not in owed:
                logger.warning(
                    f"Ignoring share for untracked participant {share.participant_id!r}"
                )
                continue
            owed[share.participant_id] += share.share_amount
        for payment in invoice.payments:
            if payment.participant_id not in paid:
                logger.warning(
                    f"Ignoring payment by untracked participant {payment.participant_id!r}"
                )
                continue
            paid[payment.participant_id] += payment.amount

    return [Balance(pid, owed[pid], paid[pid]) for pid in owed]


# ==============================================================================
# PERIOD CLOSE
# ==============================================================================

@dataclass(frozen=True)
class SettlementReport:
    """Outcome of closing a period: invoice total, per-participant balances, transfers."""
    total_invoices: int
    balances: tuple[Balance, ...] = field(default_factory=tuple)
    transfers: tuple[Transfer, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_invoices": self.total_invoices,
            "balances": [b.to_dict() for b in self.balances],
            "transfers": [t.to_dict() for t in self.transfers],
        }

    def fingerprint(self) -> str:
        """SHA-256 of the canonical JSON form; identical reports hash identically."""
        return audit.fingerprint(self.to_dict())


def settle_period(
    participant_ids: Sequence[str],
    invoices: Sequence[Invoice],
    settings: Optional[EngineSettings] = None,
) -> SettlementReport:
    """
    Close a period: aggregate balances from its invoices and compute transfers.

    The caller must pass every invoice of the period; partial data gives a
    wrong (but not failing) settlement.
    """
    invoices = list(invoices)
    balances = compute_balances(participant_ids, invoices)
    transfers = compute_settlements(balances, settings)

    report = SettlementReport(
        total_invoices=sum(inv.total for inv in invoices),
        balances=tuple(balances),
        transfers=tuple(transfers),
    )
    logger.info(
        f"Period settled: {len(invoices)} invoices, {len(balances)} participants, "
        f"{len(transfers)} transfers"
    )
    return report
