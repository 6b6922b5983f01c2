"""
Async event store adapter.

Translates the SQLite tip ledger into a stream of full snapshots for one user.
Snapshots are re-fetched whenever the ledger changes: immediately after a tip
is created through this adapter, or on the next poll when another writer
changed it.
"""

import asyncio
import logging
import sqlite3
from decimal import Decimal
from typing import Dict, Optional, Set, Tuple, Union

from tip_tracker.config.loader import StoreConfig
from tip_tracker.core.errors import AuthenticationError, ConfigurationError, SyncError, WriteError

from .models import TipEvent
from .repository import TipRepository

logger = logging.getLogger("tip_tracker.adapter")

Snapshot = Tuple[TipEvent, ...]
SnapshotOrError = Union[Snapshot, SyncError]

_CLOSED = object()

# Storage failures plus rows another writer left in a shape TipEvent rejects.
_READ_ERRORS = (sqlite3.Error, ValueError, ArithmeticError)


def _require_user(user_id: Optional[str]) -> str:
    if not user_id or not str(user_id).strip():
        raise AuthenticationError("A user identity is required before using the tip store")
    return user_id


def validate_amount(amount: Decimal) -> Decimal:
    """Reject amounts that could never be stored."""
    if not isinstance(amount, Decimal):
        raise ValueError("amount must be a Decimal")
    if not amount.is_finite() or amount <= 0:
        raise ValueError("amount must be > 0")
    return amount


class Subscription:
    """Live feed of full tip snapshots for one user.

    Iterate with ``async for``; each item is either a snapshot tuple or a
    SyncError. Closing stops background delivery and ends iteration.
    """

    def __init__(self, store: "SqliteTipStore", user_id: str):
        self.user_id = user_id
        self._store = store
        self._queue: asyncio.Queue = asyncio.Queue()
        self._wake = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._run())

    def _notify(self) -> None:
        self._wake.set()

    async def _run(self) -> None:
        repository = self._store.repository
        last_token = None
        failing = False
        while not self._closed:
            try:
                token = await asyncio.to_thread(repository.change_token, self.user_id)
                if token != last_token:
                    events = await asyncio.to_thread(repository.fetch_tips, self.user_id)
                    last_token = token
                    failing = False
                    self._queue.put_nowait(tuple(events))
            except _READ_ERRORS as e:
                last_token = None
                if not failing:
                    logger.warning("Tip sync failed for user %s: %s", self.user_id, e)
                    self._queue.put_nowait(SyncError(f"Failed to load tips: {e}"))
                failing = True

            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._store.config.poll_interval)
            except asyncio.TimeoutError:
                pass
            self._wake.clear()

    async def close(self) -> None:
        """Stop delivery and release the subscription."""
        if self._closed:
            return
        self._closed = True
        self._store._unregister(self)
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Tip subscription for user %s stopped unexpectedly", self.user_id)
        self._queue.put_nowait(_CLOSED)
        logger.debug("Closed tip subscription for user %s", self.user_id)

    def __aiter__(self):
        return self

    async def __anext__(self) -> SnapshotOrError:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class SqliteTipStore:
    """Event store adapter backed by the SQLite tip ledger."""

    def __init__(self, config: StoreConfig, repository: Optional[TipRepository] = None):
        """Initialize the store.

        Args:
            config: Store location and polling settings
            repository: Repository override (defaults to one at config.path)
        """
        self.config = config
        self.repository = repository or TipRepository(config.path)
        self._subscriptions: Dict[str, Set[Subscription]] = {}

    async def initialize(self) -> None:
        """Create the schema, failing fast if the store cannot be opened.

        Raises:
            ConfigurationError: If the database path is unusable
        """
        try:
            await asyncio.to_thread(self.repository.initialize_schema)
        except sqlite3.Error as e:
            raise ConfigurationError(f"Cannot open tip store at {self.config.path}: {e}") from e

    def subscribe(self, user_id: str) -> Subscription:
        """Begin delivering the user's full tip collection on change.

        Must be called from a running event loop.

        Raises:
            AuthenticationError: If no user id is available
        """
        _require_user(user_id)
        subscription = Subscription(self, user_id)
        self._subscriptions.setdefault(user_id, set()).add(subscription)
        subscription._start()
        logger.debug("Opened tip subscription for user %s", user_id)
        return subscription

    async def create(self, user_id: str, amount: Decimal) -> TipEvent:
        """Persist one new tip; the store assigns id and timestamp.

        Raises:
            AuthenticationError: If no user id is available
            ValueError: If amount is not a positive decimal
            WriteError: If the store rejects the write
        """
        _require_user(user_id)
        validate_amount(amount)
        try:
            event = await asyncio.to_thread(self.repository.insert_tip, user_id, amount)
        except sqlite3.Error as e:
            logger.warning("Failed to store tip for user %s: %s", user_id, e)
            raise WriteError(f"Error adding tip: {e}") from e

        for subscription in list(self._subscriptions.get(user_id, ())):
            subscription._notify()
        return event

    def _unregister(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.user_id)
        if subscriptions is not None:
            subscriptions.discard(subscription)
            if not subscriptions:
                del self._subscriptions[subscription.user_id]
