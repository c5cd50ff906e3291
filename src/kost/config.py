"""
config.py - Engine settings.

Settings only affect presentation and input limits. The arithmetic constants
(10000 basis points, the 1-unit settlement tolerance) are fixed in the
engine modules and are not configurable.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .money import Currency, Money


@dataclass(frozen=True)
class EngineSettings:
    """
    Settings shared by the allocation and settlement engines.

    currency:
        Used to render amounts in explanation text. Amounts themselves are
        always plain integers in minor units.
    max_participants:
        Upper bound on the size of any rule/participant/balance collection.
    """
    currency: Currency = field(default=Currency.NOK)
    max_participants: int = 10_000

    def __post_init__(self):
        if not isinstance(self.currency, Currency):
            raise TypeError(
                f"currency must be a Currency, got {type(self.currency).__name__}"
            )
        if not 0 < self.max_participants <= Money.MAX_DISTRIBUTION_PARTS:
            raise ValueError(
                f"max_participants must be in 1..{Money.MAX_DISTRIBUTION_PARTS}, "
                f"got {self.max_participants}"
            )

    def to_dict(self) -> dict:
        return {
            "currency": self.currency.code,
            "max_participants": self.max_participants,
        }


DEFAULT_SETTINGS = EngineSettings()
