"""Tests for MCP tool core functions."""

import sqlite3

from vosdroits_archive.core.sync.sync_log import complete_sync_log, create_sync_log
from vosdroits_archive.mcp.server import (
    vosdroits_browse_themes,
    vosdroits_read_document,
    vosdroits_search,
    vosdroits_sync_status,
)


def test_vosdroits_search_returns_results_with_metadata(
    populated_db: sqlite3.Connection,
) -> None:
    result = vosdroits_search(populated_db, query="passeport")
    assert result["count"] >= 1
    assert result["method"] == "fts"
    first = result["results"][0]
    assert first["id"] == "F1234"
    assert first["url"].endswith("/F1234")
    assert first["theme"] == "Papiers - Citoyenneté"
    assert first["snippet"]


def test_vosdroits_search_empty_query_is_an_error(populated_db: sqlite3.Connection) -> None:
    assert "error" in vosdroits_search(populated_db, query="  ")
    assert "error" in vosdroits_search(populated_db, query="AND ()")


def test_vosdroits_search_clamps_limit(populated_db: sqlite3.Connection) -> None:
    result = vosdroits_search(populated_db, query="declaration", limit=0)
    assert result["count"] == 1


def test_vosdroits_read_document_markdown(populated_db: sqlite3.Connection) -> None:
    result = vosdroits_read_document(populated_db, document_id="F1234")
    assert "error" not in result
    assert result["breadcrumbs"] == "Papiers - Citoyenneté > Identité > Passeport"
    assert "# Passeport" in result["markdown"]


def test_vosdroits_read_document_json(populated_db: sqlite3.Connection) -> None:
    result = vosdroits_read_document(populated_db, document_id="F1234", output_format="json")
    assert result["kind"] == "procedure"
    assert result["internal_links"] == ("F5678", "F9999")
    assert result["legal_references"][0]["title"].startswith("Décret")


def test_vosdroits_read_document_unknown(populated_db: sqlite3.Connection) -> None:
    assert "error" in vosdroits_read_document(populated_db, document_id="F0")


def test_vosdroits_browse_themes(populated_db: sqlite3.Connection) -> None:
    roots = vosdroits_browse_themes(populated_db)
    assert roots["count"] == 2

    opened = vosdroits_browse_themes(populated_db, theme_id="N360")
    assert opened["theme"]["title"] == "Identité"
    assert [c["id"] for c in opened["breadcrumbs"]] == ["N19810"]
    assert [c["id"] for c in opened["children"]] == ["N359", "N358"]

    assert "error" in vosdroits_browse_themes(populated_db, theme_id="nope")


def test_vosdroits_sync_status(populated_db: sqlite3.Connection) -> None:
    complete_sync_log(populated_db, create_sync_log(populated_db), 3)
    status = vosdroits_sync_status(populated_db)
    assert status["documents"] == 3
    assert status["themes"] == 5
    assert status["sync_running"] is False
    assert status["last_completed_at"] is not None
    assert status["recent_syncs"][0]["status"] == "completed"
