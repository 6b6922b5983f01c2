"""
Data models for storage layer.

Defines tip events and the derived aggregate structures built from them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Tuple

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def round_money(value: Decimal) -> Decimal:
    """Round a monetary value to 2 decimal places for presentation."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class TipEvent:
    """Immutable record of one logged tip.

    The store assigns ``id`` and ``timestamp`` when the tip is persisted.
    Once written, these records are never modified.
    """
    id: str
    user_id: str
    amount: Decimal
    timestamp: datetime

    def __post_init__(self):
        """Validate amount is a positive decimal and timestamp is aware."""
        if not isinstance(self.amount, Decimal):
            raise ValueError("amount must be a Decimal")
        if not self.amount.is_finite() or self.amount <= 0:
            raise ValueError("amount must be > 0")
        if not isinstance(self.timestamp, datetime):
            raise ValueError("timestamp must be a datetime")
        if self.timestamp.tzinfo is None or self.timestamp.utcoffset() is None:
            raise ValueError("timestamp must be timezone-aware")


@dataclass(frozen=True)
class Bucket:
    """Aggregation cell keyed by a temporal classifier."""
    total: Decimal = ZERO
    count: int = 0

    def add(self, amount: Decimal) -> "Bucket":
        return Bucket(total=self.total + amount, count=self.count + 1)

    @property
    def rounded_total(self) -> Decimal:
        return round_money(self.total)


@dataclass(frozen=True)
class TodayMetrics:
    """Metrics for tips logged on the current local calendar day."""
    total: Decimal
    count: int
    average: Decimal
    events: Tuple[TipEvent, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AllTimeMetrics:
    """Metrics over every known tip."""
    total: Decimal
    count: int
    average: Decimal
    best_tip: Decimal


@dataclass(frozen=True)
class SeriesPoint:
    """Labelled, rounded total ready for charting or tabular display.

    ``count`` is the number of tips behind the total; a bucket of sub-cent
    tips can have a rounded total of zero and still be non-empty.
    """
    label: str
    total: Decimal
    count: int = 0
