"""Advisory lock so that only one sync run writes at a time."""

import sqlite3
import time
import uuid

from loguru import logger

from vosdroits_archive.config import SYNC_LOCK_TTL

LOCK_KEY = "sync_lock"


class SyncAlreadyRunningError(RuntimeError):
    """Another sync run holds the lock."""


def _lock_age(value: str, now: int) -> int | None:
    _token, _, acquired = value.partition(":")
    try:
        return now - int(acquired)
    except ValueError:
        return None


def acquire_sync_lock(conn: sqlite3.Connection, *, ttl: int = SYNC_LOCK_TTL) -> str:
    """Take the lock and return its token.

    A lock older than ``ttl`` seconds is assumed abandoned and taken over.
    """
    token = uuid.uuid4().hex
    now = int(time.time())
    conn.commit()
    conn.execute("BEGIN IMMEDIATE")
    try:
        row = conn.execute("SELECT value FROM metadata WHERE key = ?", (LOCK_KEY,)).fetchone()
        if row is not None:
            age = _lock_age(row[0], now)
            if age is not None and age < ttl:
                msg = f"A sync run has held the lock for {age}s"
                raise SyncAlreadyRunningError(msg)
            logger.warning("Taking over an abandoned sync lock ({})", row[0])
        conn.execute(
            "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
            (LOCK_KEY, f"{token}:{now}"),
        )
    except BaseException:
        conn.rollback()
        raise
    conn.commit()
    return token


def release_sync_lock(conn: sqlite3.Connection, token: str) -> None:
    """Release the lock if ``token`` still owns it."""
    conn.execute(
        "DELETE FROM metadata WHERE key = ? AND value LIKE ?",
        (LOCK_KEY, f"{token}:%"),
    )
    conn.commit()
