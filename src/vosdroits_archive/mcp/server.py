"""MCP server exposing archive search, reading and theme browsing tools."""

import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from vosdroits_archive.config import DATABASE_FILENAME, resolve_data_directory
from vosdroits_archive.core.database.schema import connect, get_metadata
from vosdroits_archive.core.search.searcher import search_documents
from vosdroits_archive.core.sync.lock import LOCK_KEY
from vosdroits_archive.core.sync.sync_log import last_completed_sync, recent_sync_logs
from vosdroits_archive.core.tree.markdown import render_document_as_markdown
from vosdroits_archive.core.tree.navigation import (
    get_child_themes,
    get_document,
    get_root_themes,
    get_theme,
    get_theme_breadcrumbs,
    get_theme_documents,
)
from vosdroits_archive.models.document import ThemeNode

MAX_SEARCH_LIMIT = 50


def _theme_dict(theme: ThemeNode) -> dict[str, Any]:
    return {"id": theme.id, "kind": theme.kind.value, "title": theme.title}


# --- Core functions (testable without MCP context) ---


def vosdroits_search(
    conn: sqlite3.Connection,
    *,
    query: str = "",
    theme: str | None = None,
    audience: str | None = None,
    limit: int = 10,
) -> dict[str, Any]:
    """Search archived documents using full-text search.

    Words are ANDed; accents and case are ignored. When nothing matches in
    the full text, titles and descriptions are searched by substring.

    Args:
        query: Search text.
        theme: Theme id, or part of a theme title.
        audience: Audience filter (e.g. "Particuliers", "Professionnels").
        limit: Max results (1-50, default 10).
    """
    if not query.strip():
        return {"error": "No search query provided.", "results": [], "count": 0}

    limit = max(1, min(limit, MAX_SEARCH_LIMIT))
    results = search_documents(conn, query=query, theme=theme, audience=audience, limit=limit)
    if results.no_terms:
        return {
            "error": f"Nothing searchable in '{query}'. Use plain words.",
            "results": [],
            "count": 0,
        }

    serialized = [
        {
            "id": h.id,
            "title": h.title,
            "url": h.url,
            "snippet": h.snippet,
            "description": h.description,
            "audience": h.audience,
            "theme": h.theme_title,
            "folder": h.folder_title,
        }
        for h in results.hits
    ]
    return {
        "query": results.sanitized_query,
        "method": results.method,
        "results": serialized,
        "count": len(serialized),
    }


def vosdroits_read_document(
    conn: sqlite3.Connection,
    *,
    document_id: str,
    max_chars: int | None = None,
    output_format: str = "markdown",
) -> dict[str, Any]:
    """Read one document as markdown or structured JSON.

    Args:
        document_id: Document id (e.g. "F1234").
        max_chars: Truncate the body text (markdown only).
        output_format: "markdown" or "json".
    """
    document = get_document(conn, document_id)
    if document is None:
        return {"error": f"Document '{document_id}' not found."}

    breadcrumbs = [t for t in (document.theme_title, document.subtheme, document.folder_title) if t]
    if output_format == "json":
        data = asdict(document)
        data["kind"] = document.kind.value
        data["breadcrumbs"] = breadcrumbs
        return data
    return {
        "id": document.id,
        "title": document.title,
        "url": document.url,
        "breadcrumbs": " > ".join(breadcrumbs),
        "markdown": render_document_as_markdown(document, max_chars=max_chars),
    }


def vosdroits_browse_themes(
    conn: sqlite3.Connection,
    *,
    theme_id: str | None = None,
    limit: int = 50,
) -> dict[str, Any]:
    """List top-level themes, or open one theme.

    Args:
        theme_id: Theme to open (None = list the top-level themes).
        limit: Max documents listed for an opened theme.
    """
    if theme_id is None:
        roots = get_root_themes(conn)
        return {"themes": [_theme_dict(t) for t in roots], "count": len(roots)}

    theme = get_theme(conn, theme_id)
    if theme is None:
        return {"error": f"Theme '{theme_id}' not found."}

    documents = get_theme_documents(conn, theme_id, limit=limit)
    return {
        "theme": _theme_dict(theme),
        "breadcrumbs": [_theme_dict(t) for t in get_theme_breadcrumbs(conn, theme_id)],
        "children": [_theme_dict(t) for t in get_child_themes(conn, theme_id)],
        "documents": [
            {"id": d.id, "kind": d.kind.value, "title": d.title, "url": d.url}
            for d in documents
        ],
    }


def vosdroits_sync_status(conn: sqlite3.Connection) -> dict[str, Any]:
    """Archive size, freshness and recent sync runs."""
    last = last_completed_sync(conn)
    return {
        "documents": conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0],
        "themes": conn.execute("SELECT COUNT(*) FROM themes").fetchone()[0],
        "sync_running": get_metadata(conn, LOCK_KEY) is not None,
        "last_completed_at": last.completed_at if last else None,
        "recent_syncs": [asdict(entry) for entry in recent_sync_logs(conn, limit=5)],
    }


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    conn: sqlite3.Connection
    archive_dir: Path


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open database on startup, close on shutdown."""
    archive_dir = resolve_data_directory()
    conn = connect(archive_dir / DATABASE_FILENAME)
    try:
        yield ServerContext(conn=conn, archive_dir=archive_dir)
    finally:
        conn.close()


mcp_server = FastMCP(
    "vosdroits-archive",
    instructions="""\
An archive of French public administrative guidance pages (rights,
procedures, forms), refreshed daily by `vosdroits-archive sync`.

1. Search with vosdroits_search_tool. Search results carry a snippet only.
2. Read the full page with vosdroits_read_document_tool using its id.
3. Use vosdroits_browse_themes_tool to explore by subject when a search is
   too broad.

Always cite the `url` of the pages you rely on.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def vosdroits_search_tool(
    ctx: Context,
    query: str = "",
    theme: str | None = None,
    audience: str | None = None,
    limit: int = 10,
) -> dict[str, Any]:
    """Search archived administrative documents.

    Words are ANDed; accents and case are ignored. Call
    vosdroits_read_document_tool on a result's id to get the full text.

    Args:
        query: Search text (plain words, in French).
        theme: Theme id, or part of a theme title.
        audience: Audience filter (e.g. "Particuliers").
        limit: Max results (1-50, default 10).
    """
    return vosdroits_search(
        _ctx(ctx).conn, query=query, theme=theme, audience=audience, limit=limit
    )


@mcp_server.tool()
async def vosdroits_read_document_tool(
    ctx: Context,
    document_id: str,
    max_chars: int | None = None,
    output_format: str = "markdown",
) -> dict[str, Any]:
    """Read a document with its legal references and online services.

    Args:
        document_id: Document id from search results (e.g. "F1234").
        max_chars: Truncate the body text.
        output_format: "markdown" (human-readable) or "json" (structured).
    """
    return vosdroits_read_document(
        _ctx(ctx).conn,
        document_id=document_id,
        max_chars=max_chars,
        output_format=output_format,
    )


@mcp_server.tool()
async def vosdroits_browse_themes_tool(
    ctx: Context,
    theme_id: str | None = None,
    limit: int = 50,
) -> dict[str, Any]:
    """Browse the subject hierarchy.

    Without theme_id, lists the top-level themes. With a theme_id, returns its
    ancestors, sub-themes and the documents filed under it.

    Args:
        theme_id: Theme to open.
        limit: Max documents listed.
    """
    return vosdroits_browse_themes(_ctx(ctx).conn, theme_id=theme_id, limit=limit)


@mcp_server.tool()
async def vosdroits_sync_status_tool(ctx: Context) -> dict[str, Any]:
    """Report archive size and when it was last refreshed."""
    return vosdroits_sync_status(_ctx(ctx).conn)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from vosdroits_archive.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")
