"""Cadence check for scheduled syncs."""

import sqlite3
from datetime import UTC, datetime

from vosdroits_archive.core.sync.sync_log import last_completed_sync


def is_sync_due(
    conn: sqlite3.Connection, interval: int, *, now: datetime | None = None
) -> bool:
    """Check if a sync should run based on the last completed one.

    Args:
        conn: SQLite connection with the sync_log table.
        interval: Minimum seconds between completed syncs.
        now: Current time (UTC), for tests.

    Returns:
        True if no sync ever completed or the last one is older than ``interval``.
    """
    last = last_completed_sync(conn)
    if last is None or last.completed_at is None:
        return True
    completed = datetime.strptime(last.completed_at, "%Y-%m-%d %H:%M:%S").replace(tzinfo=UTC)
    current = now or datetime.now(tz=UTC)
    return (current - completed).total_seconds() >= interval
