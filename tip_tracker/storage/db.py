"""
Database connection management.

Every repository call opens its own short-lived SQLite connection, so
polling subscribers and writers can share one tip database file.
"""

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = "tip_tracker.db"


def get_connection(db_path: str = DEFAULT_DB_PATH, timeout: float = 5.0) -> sqlite3.Connection:
    """Open a connection to the tip database.

    The parent directory must already exist; SQLite creates the file itself.
    WAL journaling lets change polling read while a tip is being written.

    Args:
        db_path: Path to SQLite database file
        timeout: Seconds to wait on a locked database before failing

    Returns:
        SQLite connection in WAL mode
    """
    conn = sqlite3.connect(str(Path(db_path)), timeout=timeout)
    conn.execute("PRAGMA journal_mode = WAL")
    return conn
