"""
Shared helpers for the Tip Tracker test suite.

Provides tip factories and in-memory stand-ins for the event store so
buffer and tracker tests run without a database.
"""

import asyncio
import itertools
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import pytest

from tip_tracker.core.errors import WriteError
from tip_tracker.storage.models import TipEvent

_ids = itertools.count(1)


def make_tip(amount: str, timestamp: datetime, user_id: str = "driver-1",
             tip_id: Optional[str] = None) -> TipEvent:
    """Create a tip with an exact decimal amount."""
    return TipEvent(
        id=tip_id or f"tip-{next(_ids)}",
        user_id=user_id,
        amount=Decimal(amount),
        timestamp=timestamp
    )


class FakeSubscription:
    """Subscription whose snapshots are pushed by the test."""

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def push(self, item) -> None:
        self.queue.put_nowait(item)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.queue.get()
        if item is None:
            raise StopAsyncIteration
        return item

    async def close(self) -> None:
        self.closed = True
        self.queue.put_nowait(None)


class FakeStore:
    """In-memory event store adapter."""

    def __init__(self, clock=None):
        self.subscriptions: List[FakeSubscription] = []
        self.created: List[TipEvent] = []
        self.fail_writes = False
        self.gate: Optional[asyncio.Event] = None
        self.clock = clock

    async def initialize(self) -> None:
        pass

    def subscribe(self, user_id: str) -> FakeSubscription:
        subscription = FakeSubscription()
        self.subscriptions.append(subscription)
        return subscription

    async def create(self, user_id: str, amount: Decimal) -> TipEvent:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_writes:
            raise WriteError("Error adding tip: store unavailable")
        event = make_tip(str(amount), self.clock(), user_id=user_id)
        self.created.append(event)
        return event


@pytest.fixture
def fake_store():
    return FakeStore(clock=lambda: datetime.fromisoformat("2024-01-15T12:00:00+00:00"))
