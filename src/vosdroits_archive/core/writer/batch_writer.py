"""Chunked upserts of documents and theme nodes."""

import json
import sqlite3
from collections.abc import Iterator, Sequence
from dataclasses import asdict, is_dataclass
from typing import Any, TypeVar

from loguru import logger

from vosdroits_archive.config import BATCH_LIMIT
from vosdroits_archive.models.document import NormalizedDocument, ThemeNode
from vosdroits_archive.protocols import BatchStore

T = TypeVar("T")

UPSERT_DOCUMENT_SQL = """\
INSERT INTO documents
    (id, kind, title, description, subject, audience, url, theme_id, theme_title,
     subtheme, folder_id, folder_title, full_text, legal_references,
     online_services, internal_links, last_modified, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, datetime('now'))
ON CONFLICT(id) DO UPDATE SET
    kind = excluded.kind,
    title = excluded.title,
    description = excluded.description,
    subject = excluded.subject,
    audience = excluded.audience,
    url = excluded.url,
    theme_id = excluded.theme_id,
    theme_title = excluded.theme_title,
    subtheme = excluded.subtheme,
    folder_id = excluded.folder_id,
    folder_title = excluded.folder_title,
    full_text = excluded.full_text,
    legal_references = excluded.legal_references,
    online_services = excluded.online_services,
    internal_links = excluded.internal_links,
    last_modified = excluded.last_modified,
    updated_at = excluded.updated_at
"""

UPSERT_THEME_SQL = """\
INSERT INTO themes (id, kind, title, parent_id)
VALUES (?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    kind = excluded.kind,
    title = excluded.title,
    parent_id = excluded.parent_id
"""


class BatchLimitError(ValueError):
    """A write call carried more statements than the store accepts."""


class SqliteBatchStore:
    """BatchStore over a SQLite connection: one transaction per write call."""

    def __init__(self, conn: sqlite3.Connection, *, batch_limit: int = BATCH_LIMIT) -> None:
        self.conn = conn
        self.batch_limit = batch_limit

    def write_batch(self, sql: str, rows: Sequence[Sequence[Any]]) -> None:
        if len(rows) > self.batch_limit:
            msg = f"Batch of {len(rows)} statements exceeds the limit of {self.batch_limit}"
            raise BatchLimitError(msg)
        with self.conn:
            self.conn.executemany(sql, rows)


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most ``size`` items."""
    if size < 1:
        msg = f"Chunk size must be positive, got {size}"
        raise ValueError(msg)
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _json_list(values: Sequence[Any]) -> str:
    return json.dumps(
        [asdict(v) if is_dataclass(v) else v for v in values],
        ensure_ascii=False,
    )


def document_row(doc: NormalizedDocument) -> tuple[Any, ...]:
    return (
        doc.id, doc.kind.value, doc.title, doc.description, doc.subject, doc.audience,
        doc.url, doc.theme_id, doc.theme_title, doc.subtheme, doc.folder_id,
        doc.folder_title, doc.full_text, _json_list(doc.legal_references),
        _json_list(doc.online_services), _json_list(doc.internal_links),
        doc.last_modified,
    )


def theme_row(theme: ThemeNode) -> tuple[Any, ...]:
    return (theme.id, theme.kind.value, theme.title, theme.parent_id)


def _write_chunked(store: BatchStore, sql: str, rows: list[tuple[Any, ...]]) -> int:
    calls = 0
    for chunk in chunked(rows, store.batch_limit):
        store.write_batch(sql, chunk)
        calls += 1
    return calls


def upsert_documents(store: BatchStore, documents: Sequence[NormalizedDocument]) -> int:
    """Upsert documents, one write call per chunk. Returns the number of calls."""
    if not documents:
        return 0
    calls = _write_chunked(store, UPSERT_DOCUMENT_SQL, [document_row(d) for d in documents])
    logger.debug("Upserted {} documents in {} write calls", len(documents), calls)
    return calls


def upsert_themes(store: BatchStore, themes: Sequence[ThemeNode]) -> int:
    """Upsert theme nodes, one write call per chunk. Returns the number of calls."""
    if not themes:
        return 0
    calls = _write_chunked(store, UPSERT_THEME_SQL, [theme_row(t) for t in themes])
    logger.debug("Upserted {} theme nodes in {} write calls", len(themes), calls)
    return calls
