"""
Derived metrics over the current tip snapshot.

"Now" and the local time zone are always passed in; nothing here reads the
clock. Every call recomputes from the events it is given.
"""

from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Iterable, List, Sequence

from tip_tracker.storage.models import ZERO, AllTimeMetrics, TipEvent, TodayMetrics

from .bucketing import local_datetime


def _average(total: Decimal, count: int) -> Decimal:
    return total / count if count else ZERO


def is_today(event: TipEvent, now: datetime, tz: tzinfo) -> bool:
    """True iff the event falls on the same local calendar date as ``now``."""
    return local_datetime(event, tz).date() == now.astimezone(tz).date()


def today_tips(events: Iterable[TipEvent], now: datetime, tz: tzinfo) -> List[TipEvent]:
    """Tips logged on the local calendar day of ``now``, newest first."""
    todays = [event for event in events if is_today(event, now, tz)]
    return sorted(todays, key=lambda e: (e.timestamp, e.id), reverse=True)


def compute_today_metrics(events: Iterable[TipEvent], now: datetime, tz: tzinfo) -> TodayMetrics:
    """Total, count and average of today's tips.

    Args:
        events: Current snapshot
        now: Current instant (timezone-aware)
        tz: Local time zone that defines "today"

    Returns:
        TodayMetrics; all zero when nothing was logged today
    """
    todays = today_tips(events, now, tz)
    total = sum((event.amount for event in todays), ZERO)
    return TodayMetrics(
        total=total,
        count=len(todays),
        average=_average(total, len(todays)),
        events=tuple(todays)
    )


def compute_all_time_metrics(events: Sequence[TipEvent]) -> AllTimeMetrics:
    """Total, average and best tip over every known tip."""
    total = sum((event.amount for event in events), ZERO)
    best_tip = max((event.amount for event in events), default=ZERO)
    return AllTimeMetrics(
        total=total,
        count=len(events),
        average=_average(total, len(events)),
        best_tip=best_tip
    )
