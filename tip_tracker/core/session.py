"""
Session wiring.

Resolves the user, opens the store subscription, and hands out a TipTracker
whose buffer stays current until the session closes.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Optional

from tip_tracker.config.loader import TrackerConfig
from tip_tracker.sdk.generation import InsightGenerator
from tip_tracker.storage.adapter import SqliteTipStore

from .buffer import BufferSync, EventBuffer
from .identity import IdentityProvider, LocalAnonymousIdentity, StaticIdentity, identity_path_for
from .tracker import TipTracker

logger = logging.getLogger("tip_tracker.session")

FIRST_SNAPSHOT_TIMEOUT = 10.0


def default_identity(config: TrackerConfig) -> IdentityProvider:
    """Configured user id if present, otherwise a local anonymous identity."""
    if config.user_id:
        return StaticIdentity(config.user_id)
    return LocalAnonymousIdentity(identity_path_for(config.store.path))


@asynccontextmanager
async def open_session(
    config: TrackerConfig,
    identity: Optional[IdentityProvider] = None,
    store: Optional[SqliteTipStore] = None,
    generator: Optional[InsightGenerator] = None,
    clock: Optional[Callable[[], datetime]] = None,
    first_snapshot_timeout: float = FIRST_SNAPSHOT_TIMEOUT
) -> AsyncIterator[TipTracker]:
    """Open a tracking session for the configured user.

    Waits for the first snapshot (or sync error) before yielding. The store
    subscription is always released on exit.

    Raises:
        AuthenticationError: If no user identity can be established
        ConfigurationError: If the store cannot be opened
    """
    user_id = (identity or default_identity(config)).current_user_id()
    store = store or SqliteTipStore(config.store)
    await store.initialize()

    buffer = EventBuffer()
    sync = BufferSync(store, buffer, user_id)
    sync.start()
    try:
        try:
            await buffer.wait_for_version(0, timeout=first_snapshot_timeout)
        except asyncio.TimeoutError:
            logger.warning("No tip snapshot after %.1fs; starting empty", first_snapshot_timeout)

        yield TipTracker(
            store=store,
            buffer=buffer,
            user_id=user_id,
            generator=generator or InsightGenerator(config.generation),
            tz=config.tz,
            clock=clock
        )
    finally:
        await sync.close()
        logger.debug("Session for user %s closed", user_id)
