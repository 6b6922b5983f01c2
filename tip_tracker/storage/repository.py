"""
Repository pattern for data access.

Handles the tip ledger table. The repository is the authoritative source of
``id`` and ``timestamp`` for every tip it stores.
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from .db import DEFAULT_DB_PATH, get_connection
from .models import TipEvent

logger = logging.getLogger("tip_tracker.repository")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TipRepository:
    """Repository for the append-only tip ledger.

    All methods are blocking; the async adapter runs them off the event loop.
    """

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
            clock: Source of the persistence timestamp (defaults to UTC now)
        """
        self.db_path = db_path
        self.clock = clock or utc_now

    def initialize_schema(self) -> None:
        """Create the tip table and its user index if they don't exist.

        Amounts are stored as TEXT so the exact decimal value survives
        the round trip.
        """
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tip (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    user_id TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tip_user_created
                ON tip (user_id, created_at)
            """)
            conn.commit()
        finally:
            conn.close()

    def insert_tip(self, user_id: str, amount: Decimal) -> TipEvent:
        """Persist one new tip and return it as stored.

        Args:
            user_id: Owner of the tip
            amount: Positive tip amount

        Returns:
            The stored TipEvent with its assigned id and timestamp

        Raises:
            ValueError: If amount is not a positive decimal
            sqlite3.Error: If the write fails
        """
        timestamp = self.clock()
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        event = TipEvent(
            id=uuid.uuid4().hex,
            user_id=user_id,
            amount=amount,
            timestamp=timestamp.astimezone(timezone.utc)
        )

        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                INSERT INTO tip (id, user_id, amount, created_at)
                VALUES (?, ?, ?, ?)
            """, (
                event.id,
                event.user_id,
                str(event.amount),
                event.timestamp.isoformat(timespec="microseconds")
            ))
            conn.commit()
        finally:
            conn.close()

        logger.debug("Stored tip %s for user %s", event.id, user_id)
        return event

    def fetch_tips(self, user_id: str) -> List[TipEvent]:
        """Fetch every tip owned by a user.

        Args:
            user_id: Owner of the tips

        Returns:
            List of tips ordered by timestamp (newest first)
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                SELECT id, user_id, amount, created_at
                FROM tip
                WHERE user_id = ?
                ORDER BY created_at DESC, seq DESC
            """, (user_id,))
            return [
                TipEvent(
                    id=row[0],
                    user_id=row[1],
                    amount=Decimal(row[2]),
                    timestamp=datetime.fromisoformat(row[3])
                )
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    def change_token(self, user_id: str) -> Tuple[int, int]:
        """Return a cheap signature that changes whenever the user's tips change.

        Args:
            user_id: Owner of the tips

        Returns:
            Tuple of (row count, highest sequence number)
        """
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT COUNT(*), COALESCE(MAX(seq), 0) FROM tip WHERE user_id = ?",
                (user_id,)
            ).fetchone()
            return (row[0], row[1])
        finally:
            conn.close()
