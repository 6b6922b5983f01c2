"""
Tip tracker facade.

Everything a presentation layer consumes: today's and all-time metrics,
the three chart series, logging a tip, and coaching text. Every read
recomputes from the current buffer snapshot.

Actions that wait on a collaborator allow only one call in flight at a time;
a second call while the first is pending raises ActionInProgress.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterator, List, Optional, Set, Tuple, Union

from tip_tracker.storage.models import CENTS, AllTimeMetrics, SeriesPoint, TipEvent, TodayMetrics

from .buffer import EventBuffer
from .bucketing import (
    BucketSet,
    aggregate,
    day_of_week_series,
    hour_of_day_series,
    weekly_series
)
from .errors import InsufficientData, SyncError, TipTrackerError
from .insights import build_pep_talk_prompt, build_weekly_insight_prompt
from .metrics import compute_all_time_metrics, compute_today_metrics

logger = logging.getLogger("tip_tracker.tracker")

ACTION_LOG_TIP = "log_tip"
ACTION_PEP_TALK = "pep_talk"
ACTION_WEEKLY_INSIGHT = "weekly_insight"


class ActionInProgress(TipTrackerError):
    """The same action is already waiting on a collaborator."""


def parse_amount(value: Union[str, Decimal, int]) -> Decimal:
    """Parse user input into a positive amount in whole cents.

    Raises:
        ValueError: If the value is not a finite number greater than zero
    """
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite():
            raise ValueError(f"Not a valid amount: {value!r}")
        amount = amount.quantize(CENTS)
    except InvalidOperation:
        raise ValueError(f"Not a valid amount: {value!r}")
    if amount <= 0:
        raise ValueError("Tip amount must be greater than zero")
    return amount


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TipTracker:
    """Presentation-facing view over one user's tips."""

    def __init__(
        self,
        store,
        buffer: EventBuffer,
        user_id: str,
        generator=None,
        tz: tzinfo = timezone.utc,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """Initialize the tracker.

        Args:
            store: Event store adapter used for writes
            buffer: Buffer kept current by a BufferSync
            user_id: Authenticated user id
            generator: Text generator for coaching text (optional)
            tz: Local time zone for all calendar bucketing
            clock: Source of "now" (defaults to UTC now)
        """
        self.store = store
        self.buffer = buffer
        self.user_id = user_id
        self.generator = generator
        self.tz = tz
        self.clock = clock or _utc_now
        self._in_flight: Set[str] = set()

    @property
    def sync_error(self) -> Optional[SyncError]:
        """Last sync failure, reported alongside the stale snapshot."""
        return self.buffer.error

    @property
    def is_submitting(self) -> bool:
        return ACTION_LOG_TIP in self._in_flight

    @property
    def is_generating(self) -> bool:
        return bool(self._in_flight & {ACTION_PEP_TALK, ACTION_WEEKLY_INSIGHT})

    @contextmanager
    def _exclusive(self, action: str) -> Iterator[None]:
        if action in self._in_flight:
            raise ActionInProgress(f"{action} is already in progress")
        self._in_flight.add(action)
        try:
            yield
        finally:
            self._in_flight.discard(action)

    def _events(self) -> Tuple[TipEvent, ...]:
        return self.buffer.events()

    def buckets(self) -> BucketSet:
        return aggregate(self._events(), self.tz)

    def get_today_metrics(self) -> TodayMetrics:
        return compute_today_metrics(self._events(), self.clock(), self.tz)

    def get_all_time_metrics(self) -> AllTimeMetrics:
        return compute_all_time_metrics(self._events())

    def get_day_of_week_series(self) -> List[SeriesPoint]:
        return day_of_week_series(self.buckets().by_day)

    def get_hour_of_day_series(self) -> List[SeriesPoint]:
        return hour_of_day_series(self.buckets().by_hour)

    def get_weekly_series(self) -> List[SeriesPoint]:
        return weekly_series(self.buckets().by_week)

    async def log_tip(self, amount: Union[str, Decimal]) -> TipEvent:
        """Persist one tip.

        The buffer is not touched; the new tip shows up with the next
        snapshot from the store.

        Raises:
            ActionInProgress: If a previous submission is still pending
            ValueError: If the amount is invalid
            WriteError: If the store rejects the write
        """
        parsed = parse_amount(amount)
        with self._exclusive(ACTION_LOG_TIP):
            event = await self.store.create(self.user_id, parsed)
        logger.info("Logged tip %s of %s", event.id, event.amount)
        return event

    async def pep_talk(self) -> str:
        """Daily pep talk, or the insufficient-data message."""
        with self._exclusive(ACTION_PEP_TALK):
            prompt = build_pep_talk_prompt(self.get_today_metrics())
            return await self._respond(prompt)

    async def weekly_insight(self) -> str:
        """Coaching analysis of the latest week, or the insufficient-data message."""
        with self._exclusive(ACTION_WEEKLY_INSIGHT):
            buckets = self.buckets()
            prompt = build_weekly_insight_prompt(
                weekly=weekly_series(buckets.by_week),
                by_day=day_of_week_series(buckets.by_day),
                by_hour=hour_of_day_series(buckets.by_hour)
            )
            return await self._respond(prompt)

    async def _respond(self, prompt: Union[str, InsufficientData]) -> str:
        if isinstance(prompt, InsufficientData):
            return prompt.message
        if self.generator is None:
            raise TipTrackerError("No text generator configured")
        return await self.generator.respond(prompt)
