"""
Temporal bucketing of tip events.

Classifies each tip into day-of-week, hour-of-day and week buckets using the
local calendar of an explicitly supplied time zone.

Guarantees:
1. Deterministic - the same events in any order give identical buckets
2. Exact - totals are unrounded Decimal sums; rounding is presentation only
3. Fixed cardinality - day and hour buckets are always emitted, even at zero
4. Weeks start on Monday; only weeks with at least one tip are emitted
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, Iterable, List, Sequence, Tuple

from tip_tracker.storage.models import Bucket, SeriesPoint, TipEvent

DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
DAYS_PER_WEEK = 7
HOURS_PER_DAY = 24

WeekBucket = Tuple[date, Bucket]


@dataclass(frozen=True)
class BucketSet:
    """All three groupings computed from one snapshot."""
    by_day: Tuple[Bucket, ...]
    by_hour: Tuple[Bucket, ...]
    by_week: Tuple[WeekBucket, ...]


def local_datetime(event: TipEvent, tz: tzinfo) -> datetime:
    """Convert an event's instant to wall-clock time in ``tz``."""
    return event.timestamp.astimezone(tz)


def day_of_week_index(value: date) -> int:
    """Day index with Sunday as 0 and Saturday as 6."""
    return (value.weekday() + 1) % DAYS_PER_WEEK


def start_of_week(value: date) -> date:
    """Monday of the week containing ``value``.

    Sunday belongs to the week that started six days earlier.
    """
    day = day_of_week_index(value)
    if day == 0:
        return value - timedelta(days=6)
    return value - timedelta(days=day - 1)


def bucket_by_day_of_week(events: Iterable[TipEvent], tz: tzinfo) -> List[Bucket]:
    """Group tips into 7 buckets indexed 0 (Sunday) to 6 (Saturday)."""
    buckets = [Bucket() for _ in range(DAYS_PER_WEEK)]
    for event in events:
        index = day_of_week_index(local_datetime(event, tz).date())
        buckets[index] = buckets[index].add(event.amount)
    return buckets


def bucket_by_hour(events: Iterable[TipEvent], tz: tzinfo) -> List[Bucket]:
    """Group tips into 24 buckets by local hour, across all dates."""
    buckets = [Bucket() for _ in range(HOURS_PER_DAY)]
    for event in events:
        hour = local_datetime(event, tz).hour
        buckets[hour] = buckets[hour].add(event.amount)
    return buckets


def bucket_by_week(events: Iterable[TipEvent], tz: tzinfo) -> List[WeekBucket]:
    """Group tips by the Monday their local week starts on.

    Returns:
        (week start, bucket) pairs sorted ascending by week start
    """
    weeks: Dict[date, Bucket] = {}
    for event in events:
        week_start = start_of_week(local_datetime(event, tz).date())
        weeks[week_start] = weeks.get(week_start, Bucket()).add(event.amount)
    return sorted(weeks.items())


def aggregate(events: Iterable[TipEvent], tz: tzinfo) -> BucketSet:
    """Compute day, hour and week buckets from one snapshot."""
    snapshot = tuple(events)
    return BucketSet(
        by_day=tuple(bucket_by_day_of_week(snapshot, tz)),
        by_hour=tuple(bucket_by_hour(snapshot, tz)),
        by_week=tuple(bucket_by_week(snapshot, tz))
    )


def day_of_week_series(by_day: Sequence[Bucket]) -> List[SeriesPoint]:
    """Label day buckets Sun..Sat with totals rounded for display."""
    return [
        SeriesPoint(label=DAY_NAMES[index], total=bucket.rounded_total, count=bucket.count)
        for index, bucket in enumerate(by_day)
    ]


def hour_of_day_series(by_hour: Sequence[Bucket]) -> List[SeriesPoint]:
    """Label hour buckets 0:00..23:00 with totals rounded for display."""
    return [
        SeriesPoint(label=f"{hour}:00", total=bucket.rounded_total, count=bucket.count)
        for hour, bucket in enumerate(by_hour)
    ]


def weekly_series(by_week: Sequence[WeekBucket]) -> List[SeriesPoint]:
    """Label week buckets with their ISO start date, ascending."""
    return [
        SeriesPoint(label=week_start.isoformat(), total=bucket.rounded_total, count=bucket.count)
        for week_start, bucket in by_week
    ]
