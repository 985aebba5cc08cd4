"""Drive a sync run: read the archive, parse entries, flush batches, keep the audit log."""

import sqlite3
import time
from dataclasses import dataclass

from loguru import logger

from vosdroits_archive.config import FLUSH_THRESHOLD
from vosdroits_archive.core.parser.document_parser import parse_document
from vosdroits_archive.core.parser.hierarchy_parser import parse_hierarchy
from vosdroits_archive.core.sync.lock import acquire_sync_lock, release_sync_lock
from vosdroits_archive.core.sync.sync_log import (
    complete_sync_log,
    create_sync_log,
    fail_sync_log,
    get_sync_log,
)
from vosdroits_archive.core.writer.batch_writer import (
    SqliteBatchStore,
    upsert_documents,
    upsert_themes,
)
from vosdroits_archive.models.document import EntryRoute, NormalizedDocument
from vosdroits_archive.protocols import ArchiveReaderProtocol, BatchStore


class SyncResumeError(ValueError):
    """A resumed slice does not point at a run that is still open."""


@dataclass(frozen=True)
class SyncResult:
    """Summary of a sync run (or of one slice of a resumable run)."""

    documents_written: int
    documents_parsed: int
    themes_count: int
    parse_errors: int
    entry_errors: int
    write_calls: int
    duration_ms: int
    next_offset: int | None
    done: bool
    log_id: int | None


def _check_resumable(conn: sqlite3.Connection, log_id: int | None) -> None:
    if log_id is None:
        msg = "Resuming a sync (offset > 0) requires the log_id of its first slice"
        raise SyncResumeError(msg)
    entry = get_sync_log(conn, log_id)
    if entry is None:
        msg = f"No sync run with id {log_id}"
        raise SyncResumeError(msg)
    if entry.status != "running":
        msg = f"Sync run {log_id} is closed ({entry.status}); start a new one"
        raise SyncResumeError(msg)


def run_sync(
    conn: sqlite3.Connection,
    reader: ArchiveReaderProtocol,
    *,
    store: BatchStore | None = None,
    flush_threshold: int | None = FLUSH_THRESHOLD,
    offset: int = 0,
    max_documents: int | None = None,
    log_id: int | None = None,
    use_lock: bool = True,
) -> SyncResult:
    """Run one sync.

    Parsed documents are buffered and flushed whenever ``flush_threshold``
    of them are waiting, so peak memory does not depend on the archive size.
    With ``flush_threshold`` set to None or 0 everything is collected first
    and written in chunks at the end.

    Passing ``max_documents`` makes the run resumable: the first ``offset``
    parsed documents are skipped, at most ``max_documents`` are written, and
    the result carries ``next_offset`` until ``done``. Later slices pass the
    ``log_id`` of the first one, which must still be running. The theme
    hierarchy is written, and the audit row closed, only by the slice that
    finishes.

    Args:
        conn: Archive database (schema must already exist).
        reader: Source of archive entries.
        store: Write target; defaults to the same database.
        flush_threshold: Buffered documents before a flush.
        offset: Parsed documents to skip (resumable mode).
        max_documents: Max documents written by this call (resumable mode).
        log_id: Audit row opened by the first slice (required when offset > 0).
        use_lock: Take the advisory sync lock for the duration of the run.

    Raises:
        ValueError: ``offset`` is negative or ``max_documents`` is below 1.
        SyncResumeError: A resumed slice has no open audit row to attach to.
        SyncAlreadyRunningError: Another run holds the lock.
    """
    if offset < 0:
        msg = f"offset must be >= 0, got {offset}"
        raise ValueError(msg)
    if max_documents is not None and max_documents < 1:
        msg = f"max_documents must be >= 1, got {max_documents}"
        raise ValueError(msg)
    if offset > 0:
        _check_resumable(conn, log_id)
    elif log_id is not None:
        msg = "log_id is only accepted when resuming (offset > 0)"
        raise SyncResumeError(msg)

    start = time.monotonic()
    store = store if store is not None else SqliteBatchStore(conn)
    token = acquire_sync_lock(conn) if use_lock else None

    buffer: list[NormalizedDocument] = []
    hierarchy: bytes | None = None
    parsed = 0
    written = 0
    write_calls = 0
    parse_errors = 0
    themes_count = 0
    next_offset: int | None = None

    def flush() -> None:
        nonlocal written, write_calls
        if not buffer:
            return
        write_calls += upsert_documents(store, buffer)
        written += len(buffer)
        logger.debug("Flushed {} documents ({} written so far)", len(buffer), written)
        buffer.clear()

    try:
        if log_id is None:
            log_id = create_sync_log(conn)
        for entry in reader.iter_entries():
            if entry.route is EntryRoute.HIERARCHY:
                hierarchy = entry.data
                continue
            if entry.route is not EntryRoute.DOCUMENT:
                continue

            try:
                doc = parse_document(entry.data, entry.basename)
            except Exception:
                logger.exception("Unexpected failure parsing {}", entry.name)
                parse_errors += 1
                continue
            if doc is None:
                parse_errors += 1
                logger.warning("Skipping unparseable document {}", entry.name)
                continue

            index = parsed
            parsed += 1
            if index < offset:
                continue
            if max_documents is not None and written + len(buffer) >= max_documents:
                next_offset = offset + max_documents
                break

            buffer.append(doc)
            if flush_threshold and len(buffer) >= flush_threshold:
                flush()

        flush()

        done = next_offset is None
        if done and hierarchy is not None:
            themes = parse_hierarchy(hierarchy)
            if themes is None:
                parse_errors += 1
            else:
                write_calls += upsert_themes(store, themes)
                themes_count = len(themes)

        total = min(offset, parsed) + written
        if done and log_id is not None:
            complete_sync_log(conn, log_id, total)

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Sync {}: {} documents written ({} total), {} themes, {} parse errors, "
            "{} entry errors in {}ms",
            "done" if done else f"paused at {next_offset}",
            written, total, themes_count, parse_errors, reader.entry_errors, duration_ms,
        )
        return SyncResult(
            documents_written=written,
            documents_parsed=parsed,
            themes_count=themes_count,
            parse_errors=parse_errors,
            entry_errors=reader.entry_errors,
            write_calls=write_calls,
            duration_ms=duration_ms,
            next_offset=next_offset,
            done=done,
            log_id=log_id,
        )
    except Exception as exc:
        duration_ms = int((time.monotonic() - start) * 1000)
        if log_id is not None:
            fail_sync_log(conn, log_id, str(exc) or type(exc).__name__)
        logger.error(
            "Sync failed at offset {} after {}ms ({} documents written): {}",
            offset, duration_ms, written, exc,
        )
        raise
    finally:
        if token is not None:
            release_sync_lock(conn, token)
