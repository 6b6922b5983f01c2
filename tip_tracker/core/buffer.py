"""
In-memory tip snapshot for the signed-in user.

The buffer only ever holds a complete snapshot delivered by the store. It is
replaced as a whole, never mutated in place, so readers never observe a
partial update.

Sync error policy: a failed fetch keeps the last good snapshot and records
the error next to it. Only when no snapshot has ever arrived does reading
the buffer raise.
"""

import asyncio
import logging
from typing import Iterable, List, Optional, Tuple

from tip_tracker.storage.models import TipEvent

from .errors import SyncError

logger = logging.getLogger("tip_tracker.buffer")


class EventBuffer:
    """Last known-good snapshot of a user's tips plus sync error state."""

    def __init__(self):
        self._snapshot: Tuple[TipEvent, ...] = ()
        self._error: Optional[SyncError] = None
        self._has_snapshot = False
        self._version = 0
        self._waiters: List[asyncio.Future] = []

    @property
    def snapshot(self) -> Tuple[TipEvent, ...]:
        return self._snapshot

    @property
    def error(self) -> Optional[SyncError]:
        return self._error

    @property
    def has_snapshot(self) -> bool:
        return self._has_snapshot

    @property
    def version(self) -> int:
        """Incremented on every delivered snapshot or error."""
        return self._version

    def replace(self, events: Iterable[TipEvent]) -> None:
        """Swap in a new complete snapshot and clear any sync error."""
        self._snapshot = tuple(events)
        self._has_snapshot = True
        self._error = None
        self._bump()

    def fail(self, error: SyncError) -> None:
        """Record a sync failure, keeping the last good snapshot."""
        self._error = error
        self._bump()

    def events(self) -> Tuple[TipEvent, ...]:
        """Return the snapshot to aggregate over.

        Raises:
            SyncError: If syncing failed before any snapshot arrived
        """
        if self._error is not None and not self._has_snapshot:
            raise self._error
        return self._snapshot

    def _bump(self) -> None:
        self._version += 1
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(self._version)

    async def wait_for_version(self, version: int, timeout: Optional[float] = None) -> int:
        """Wait until the buffer has moved past ``version``.

        Raises:
            asyncio.TimeoutError: If nothing arrives within ``timeout``
        """
        if self._version > version:
            return self._version
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return await asyncio.wait_for(waiter, timeout=timeout)


class BufferSync:
    """Feeds a store subscription into an EventBuffer.

    Snapshots are consumed sequentially in a background task; the store
    never calls back into buffer readers.
    """

    def __init__(self, store, buffer: EventBuffer, user_id: str):
        self.store = store
        self.buffer = buffer
        self.user_id = user_id
        self._subscription = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Subscribe and begin consuming snapshots."""
        if self.running:
            return
        self._subscription = self.store.subscribe(self.user_id)
        self._task = asyncio.get_running_loop().create_task(self._consume())

    async def _consume(self) -> None:
        async for item in self._subscription:
            if isinstance(item, SyncError):
                logger.warning("Keeping last snapshot after sync error: %s", item)
                self.buffer.fail(item)
            else:
                self.buffer.replace(item)
                logger.debug("Buffer replaced with %d tips", len(item))

    async def close(self) -> None:
        """Release the subscription and stop the consumer."""
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
