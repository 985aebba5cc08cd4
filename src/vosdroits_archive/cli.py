"""CLI for the administrative documents archive (sync, search, browse, MCP server)."""

import json
import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from vosdroits_archive.config import (
    ARCHIVE_URL,
    DATABASE_FILENAME,
    DOWNLOAD_TIMEOUT,
    FLUSH_THRESHOLD,
    SYNC_INTERVAL,
    resolve_data_directory,
)
from vosdroits_archive.core.archive.reader import (
    ArchiveDownloadError,
    ArchiveFormatError,
    ArchiveStreamReader,
)
from vosdroits_archive.core.database.schema import connect, get_metadata
from vosdroits_archive.core.search.searcher import search_documents
from vosdroits_archive.core.sync.lock import LOCK_KEY, SyncAlreadyRunningError
from vosdroits_archive.core.sync.orchestrator import SyncResumeError, run_sync
from vosdroits_archive.core.sync.schedule import is_sync_due
from vosdroits_archive.core.sync.sync_log import recent_sync_logs
from vosdroits_archive.core.tree.markdown import render_document_as_markdown
from vosdroits_archive.core.tree.navigation import (
    get_child_themes,
    get_document,
    get_root_themes,
    get_theme,
    get_theme_breadcrumbs,
    get_theme_documents,
)
from vosdroits_archive.logging_config import configure_logging

app = typer.Typer(help="Archive of public administrative documents: sync, search and browse.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Archive database directory"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    log_file: Annotated[
        Path | None,
        typer.Option("--log-file", help="Also log to this file (rotated)"),
    ] = None,
) -> None:
    configure_logging(verbose=verbose, log_file=log_file)


def _db_path(data_dir: Path | None) -> Path:
    return (data_dir or resolve_data_directory()) / DATABASE_FILENAME


def _open_db(data_dir: Path | None) -> sqlite3.Connection:
    """Open the archive database, raising if it doesn't exist."""
    db_path = _db_path(data_dir)
    if not db_path.exists():
        logger.error("Archive database not found: {}. Run 'sync' first.", db_path)
        raise typer.Exit(1)
    return connect(db_path)


@app.command()
def sync(
    url: str = typer.Option(ARCHIVE_URL, "--url", "-u", help="Archive URL"),
    data_dir: DataDirOption = None,
    flush_threshold: int = typer.Option(
        FLUSH_THRESHOLD,
        "--flush-threshold",
        help="Buffered documents before a write (0 = collect everything first)",
    ),
    offset: int = typer.Option(0, "--offset", min=0, help="Parsed documents to skip (resume)"),
    max_documents: Annotated[
        int | None,
        typer.Option(
            "--max-documents", min=1, help="Write at most this many, then stop (resumable)"
        ),
    ] = None,
    log_id: Annotated[
        int | None,
        typer.Option("--log-id", help="Sync run to resume (printed by the paused slice)"),
    ] = None,
    timeout: float = typer.Option(
        DOWNLOAD_TIMEOUT, "--timeout", help="Download budget in seconds"
    ),
    if_due: bool = typer.Option(
        False, "--if-due", help="Only sync if the last completed sync is older than a day"
    ),
) -> None:
    """Download the archive and upsert its documents and theme hierarchy."""
    conn = connect(_db_path(data_dir))
    try:
        if if_due and not is_sync_due(conn, SYNC_INTERVAL):
            typer.echo("Last sync is recent, nothing to do.")
            return

        reader = ArchiveStreamReader(url, timeout=timeout)
        try:
            result = run_sync(
                conn,
                reader,
                flush_threshold=flush_threshold,
                offset=offset,
                max_documents=max_documents,
                log_id=log_id,
            )
        except (SyncAlreadyRunningError, SyncResumeError) as e:
            logger.error("{}", e)
            raise typer.Exit(1) from e
        except (ArchiveDownloadError, ArchiveFormatError) as e:
            logger.error("Sync aborted: {}", e)
            raise typer.Exit(1) from e

        typer.echo(
            f"Wrote {result.documents_written} documents and {result.themes_count} themes "
            f"in {result.write_calls} write calls "
            f"({result.parse_errors} parse errors, {result.entry_errors} entry errors, "
            f"{result.duration_ms / 1000:.1f}s)"
        )
        if not result.done:
            typer.echo(
                f"Paused; resume with --offset {result.next_offset} --log-id {result.log_id}"
            )
    finally:
        conn.close()


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    theme: Annotated[
        str | None,
        typer.Option("--theme", "-t", help="Theme id or part of a theme title"),
    ] = None,
    audience: Annotated[
        str | None,
        typer.Option("--audience", "-a", help="Audience (e.g. Particuliers)"),
    ] = None,
    limit: int = typer.Option(10, "--limit", "-n", help="Max results"),
    data_dir: DataDirOption = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Search documents matching a query."""
    conn = _open_db(data_dir)
    try:
        results = search_documents(
            conn, query=query, theme=theme, audience=audience, limit=limit
        )

        if results.no_terms:
            if output_json:
                error = {"query": query, "error": "No searchable terms in query.", "results": []}
                typer.echo(json.dumps(error, indent=2, ensure_ascii=False))
            else:
                typer.echo("Nothing searchable in this query.")
            raise typer.Exit(1)

        if output_json:
            data = {
                "query": results.sanitized_query,
                "method": results.method,
                "results": [
                    {
                        "id": h.id,
                        "title": h.title,
                        "url": h.url,
                        "snippet": h.snippet,
                        "description": h.description,
                        "theme": h.theme_title,
                    }
                    for h in results.hits
                ],
            }
            typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
            return

        if not results.hits:
            typer.echo(f"No results for '{results.sanitized_query}'.")
            return

        typer.echo(f"{len(results.hits)} results ({results.method}):\n")
        for h in results.hits:
            typer.echo(f"  {h.title}  [{h.id}]")
            if h.snippet:
                typer.echo(f"    {h.snippet}")
            elif h.description:
                typer.echo(f"    {h.description[:100]}")
            typer.echo(f"    {h.url}")
            typer.echo()
    finally:
        conn.close()


@app.command()
def read(
    document_id: str = typer.Argument(..., help="Document id (e.g. F1234)"),
    max_chars: Annotated[
        int | None,
        typer.Option("--max-chars", "-m", help="Truncate the body text"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Read a document as markdown."""
    conn = _open_db(data_dir)
    try:
        document = get_document(conn, document_id)
        if document is None:
            typer.echo(f"Document '{document_id}' not found.")
            raise typer.Exit(1)
        typer.echo(render_document_as_markdown(document, max_chars=max_chars))
    finally:
        conn.close()


@app.command()
def themes(
    theme_id: Annotated[
        str | None,
        typer.Argument(help="Theme to open (omit for the top-level themes)"),
    ] = None,
    limit: int = typer.Option(50, "--limit", "-n", help="Max documents listed"),
    data_dir: DataDirOption = None,
) -> None:
    """Browse the theme hierarchy."""
    conn = _open_db(data_dir)
    try:
        if theme_id is None:
            roots = get_root_themes(conn)
            typer.echo(f"{len(roots)} themes:\n")
            for t in roots:
                typer.echo(f"  {t.title}  [{t.id}]")
            return

        theme = get_theme(conn, theme_id)
        if theme is None:
            typer.echo(f"Theme '{theme_id}' not found.")
            raise typer.Exit(1)

        trail = [c.title for c in get_theme_breadcrumbs(conn, theme_id)]
        typer.echo(" > ".join([*trail, theme.title]) + f"  ({theme.kind})\n")
        for child in get_child_themes(conn, theme_id):
            typer.echo(f"  + {child.title}  [{child.id}]")
        for doc in get_theme_documents(conn, theme_id, limit=limit):
            typer.echo(f"  - {doc.title}  [{doc.id}]")
    finally:
        conn.close()


@app.command()
def status(data_dir: DataDirOption = None) -> None:
    """Show archive size and recent sync runs."""
    conn = _open_db(data_dir)
    try:
        doc_count = conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]
        theme_count = conn.execute("SELECT COUNT(*) FROM themes").fetchone()[0]
        typer.echo(f"{doc_count} documents, {theme_count} theme nodes")
        if get_metadata(conn, LOCK_KEY) is not None:
            typer.echo("A sync is currently running.")

        logs = recent_sync_logs(conn, limit=5)
        if not logs:
            typer.echo("No sync has run yet.")
            return
        typer.echo("\nRecent syncs:")
        for entry in logs:
            count = "-" if entry.document_count is None else entry.document_count
            typer.echo(f"  #{entry.id}  {entry.started_at}  {entry.status}  documents={count}")
    finally:
        conn.close()


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from vosdroits_archive.mcp.server import run_mcp_server

    run_mcp_server()
