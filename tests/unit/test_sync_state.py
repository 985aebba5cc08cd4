"""Tests for the sync lock, audit log and schedule."""

import sqlite3
from datetime import UTC, datetime, timedelta

import pytest

from vosdroits_archive.core.database.schema import get_metadata
from vosdroits_archive.core.sync.lock import (
    LOCK_KEY,
    SyncAlreadyRunningError,
    acquire_sync_lock,
    release_sync_lock,
)
from vosdroits_archive.core.sync.schedule import is_sync_due
from vosdroits_archive.core.sync.sync_log import (
    MAX_ERROR_LENGTH,
    complete_sync_log,
    create_sync_log,
    fail_sync_log,
    get_sync_log,
    last_completed_sync,
)


def test_lock_is_exclusive_until_released(db: sqlite3.Connection) -> None:
    token = acquire_sync_lock(db)
    with pytest.raises(SyncAlreadyRunningError):
        acquire_sync_lock(db)
    release_sync_lock(db, token)
    assert get_metadata(db, LOCK_KEY) is None
    acquire_sync_lock(db)


def test_release_with_foreign_token_keeps_lock(db: sqlite3.Connection) -> None:
    acquire_sync_lock(db)
    release_sync_lock(db, "someone-else")
    assert get_metadata(db, LOCK_KEY) is not None


def test_expired_lock_is_taken_over(db: sqlite3.Connection) -> None:
    acquire_sync_lock(db)
    token = acquire_sync_lock(db, ttl=-1)
    assert get_metadata(db, LOCK_KEY).startswith(f"{token}:")  # type: ignore[union-attr]


def test_sync_log_lifecycle(db: sqlite3.Connection) -> None:
    log_id = create_sync_log(db)
    complete_sync_log(db, log_id, 42)

    entry = get_sync_log(db, log_id)
    assert entry is not None
    assert entry.status == "completed"
    assert entry.document_count == 42
    assert last_completed_sync(db) == entry


def test_failed_sync_message_is_truncated(db: sqlite3.Connection) -> None:
    log_id = create_sync_log(db)
    fail_sync_log(db, log_id, "x" * 2000)
    entry = get_sync_log(db, log_id)
    assert entry is not None
    assert entry.status == "error: " + "x" * MAX_ERROR_LENGTH
    assert last_completed_sync(db) is None


def test_sync_is_due_without_history(db: sqlite3.Connection) -> None:
    assert is_sync_due(db, 3600)


def test_sync_due_after_interval(db: sqlite3.Connection) -> None:
    complete_sync_log(db, create_sync_log(db), 1)
    now = datetime.now(tz=UTC)
    assert not is_sync_due(db, 3600, now=now)
    assert is_sync_due(db, 3600, now=now + timedelta(hours=2))
