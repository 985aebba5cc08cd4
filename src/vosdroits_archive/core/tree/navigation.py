"""Read-side lookups: documents by id, theme browsing, breadcrumbs."""

import json
import sqlite3

from vosdroits_archive.models.document import (
    DocumentKind,
    DocumentSummary,
    LegalReference,
    NormalizedDocument,
    OnlineService,
    ThemeKind,
    ThemeNode,
)

_DOCUMENT_COLUMNS = (
    "id, kind, title, url, full_text, description, subject, audience, theme_id, "
    "theme_title, subtheme, folder_id, folder_title, legal_references, "
    "online_services, internal_links, last_modified, updated_at"
)


def _row_to_document(row: tuple) -> NormalizedDocument:
    return NormalizedDocument(
        id=row[0],
        kind=DocumentKind(row[1]),
        title=row[2],
        url=row[3],
        full_text=row[4],
        description=row[5],
        subject=row[6],
        audience=row[7],
        theme_id=row[8],
        theme_title=row[9],
        subtheme=row[10],
        folder_id=row[11],
        folder_title=row[12],
        legal_references=tuple(LegalReference(**r) for r in json.loads(row[13])),
        online_services=tuple(OnlineService(**s) for s in json.loads(row[14])),
        internal_links=tuple(json.loads(row[15])),
        last_modified=row[16],
        updated_at=row[17],
    )


def _row_to_theme(row: tuple) -> ThemeNode:
    return ThemeNode(id=row[0], kind=ThemeKind(row[1]), title=row[2], parent_id=row[3])


def get_document(conn: sqlite3.Connection, document_id: str) -> NormalizedDocument | None:
    row = conn.execute(
        f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?", (document_id,)
    ).fetchone()
    return _row_to_document(row) if row else None


def get_theme(conn: sqlite3.Connection, theme_id: str) -> ThemeNode | None:
    row = conn.execute(
        "SELECT id, kind, title, parent_id FROM themes WHERE id = ?", (theme_id,)
    ).fetchone()
    return _row_to_theme(row) if row else None


def get_root_themes(conn: sqlite3.Connection) -> tuple[ThemeNode, ...]:
    """Top-level themes, by title."""
    rows = conn.execute(
        "SELECT id, kind, title, parent_id FROM themes WHERE parent_id IS NULL ORDER BY title"
    ).fetchall()
    return tuple(_row_to_theme(r) for r in rows)


def get_child_themes(conn: sqlite3.Connection, parent_id: str) -> tuple[ThemeNode, ...]:
    rows = conn.execute(
        "SELECT id, kind, title, parent_id FROM themes WHERE parent_id = ? ORDER BY title",
        (parent_id,),
    ).fetchall()
    return tuple(_row_to_theme(r) for r in rows)


def get_theme_documents(
    conn: sqlite3.Connection,
    theme_id: str,
    *,
    limit: int = 50,
) -> tuple[DocumentSummary, ...]:
    """Documents filed directly under a theme or a folder, by title."""
    rows = conn.execute(
        "SELECT id, kind, title, url, description FROM documents "
        "WHERE theme_id = ? OR folder_id = ? ORDER BY title LIMIT ?",
        (theme_id, theme_id, limit),
    ).fetchall()
    return tuple(
        DocumentSummary(id=r[0], kind=DocumentKind(r[1]), title=r[2], url=r[3], description=r[4])
        for r in rows
    )


def get_theme_breadcrumbs(conn: sqlite3.Connection, theme_id: str) -> tuple[ThemeNode, ...]:
    """Ancestors of a theme node, root first (excludes the node itself).

    The hierarchy is written as received, so a parent chain may loop or point
    at a missing node; the walk stops at either.
    """
    start = get_theme(conn, theme_id)
    if start is None:
        return ()

    chain: list[ThemeNode] = []
    visited = {start.id}
    parent_id = start.parent_id
    while parent_id is not None and parent_id not in visited:
        visited.add(parent_id)
        parent = get_theme(conn, parent_id)
        if parent is None:
            break
        chain.append(parent)
        parent_id = parent.parent_id
    return tuple(reversed(chain))
