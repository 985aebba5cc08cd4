"""Audit rows for sync runs."""

import sqlite3

from vosdroits_archive.models.document import SyncLogEntry

MAX_ERROR_LENGTH = 500

_SELECT = "SELECT id, started_at, completed_at, document_count, status FROM sync_log "


def _row_to_entry(row: tuple) -> SyncLogEntry:
    return SyncLogEntry(
        id=row[0], started_at=row[1], completed_at=row[2], document_count=row[3], status=row[4]
    )


def create_sync_log(conn: sqlite3.Connection) -> int:
    """Open a run in the 'running' state and return its id."""
    cursor = conn.execute(
        "INSERT INTO sync_log (started_at, status) VALUES (datetime('now'), 'running')"
    )
    conn.commit()
    assert cursor.lastrowid is not None
    return cursor.lastrowid


def complete_sync_log(conn: sqlite3.Connection, log_id: int, document_count: int) -> None:
    conn.execute(
        "UPDATE sync_log SET completed_at = datetime('now'), document_count = ?, status = ? "
        "WHERE id = ?",
        (document_count, "completed", log_id),
    )
    conn.commit()


def fail_sync_log(conn: sqlite3.Connection, log_id: int, error: str) -> None:
    """Close a run as failed; the message is truncated to MAX_ERROR_LENGTH."""
    conn.execute(
        "UPDATE sync_log SET completed_at = datetime('now'), status = ? WHERE id = ?",
        (f"error: {error[:MAX_ERROR_LENGTH]}", log_id),
    )
    conn.commit()


def get_sync_log(conn: sqlite3.Connection, log_id: int) -> SyncLogEntry | None:
    row = conn.execute(_SELECT + "WHERE id = ?", (log_id,)).fetchone()
    return _row_to_entry(row) if row else None


def recent_sync_logs(conn: sqlite3.Connection, limit: int = 10) -> list[SyncLogEntry]:
    rows = conn.execute(_SELECT + "ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
    return [_row_to_entry(r) for r in rows]


def last_completed_sync(conn: sqlite3.Connection) -> SyncLogEntry | None:
    row = conn.execute(
        _SELECT + "WHERE status = 'completed' ORDER BY id DESC LIMIT 1"
    ).fetchone()
    return _row_to_entry(row) if row else None
