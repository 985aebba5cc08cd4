"""SQLite schema creation and migration for the documents archive."""

import sqlite3
from pathlib import Path

SCHEMA_VERSION = 1

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    subject TEXT,
    audience TEXT,
    url TEXT NOT NULL,
    theme_id TEXT,
    theme_title TEXT,
    subtheme TEXT,
    folder_id TEXT,
    folder_title TEXT,
    full_text TEXT NOT NULL DEFAULT '',
    legal_references TEXT NOT NULL DEFAULT '[]',
    online_services TEXT NOT NULL DEFAULT '[]',
    internal_links TEXT NOT NULL DEFAULT '[]',
    last_modified TEXT,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_documents_theme ON documents(theme_id);
CREATE INDEX IF NOT EXISTS idx_documents_folder ON documents(folder_id);

CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts USING fts5(
    id, title, description, full_text,
    content='documents',
    content_rowid='rowid',
    tokenize='unicode61 remove_diacritics 2'
);

CREATE TABLE IF NOT EXISTS themes (
    id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    title TEXT NOT NULL,
    parent_id TEXT,
    FOREIGN KEY (parent_id) REFERENCES themes(id)
);

CREATE INDEX IF NOT EXISTS idx_themes_parent ON themes(parent_id);

CREATE TABLE IF NOT EXISTS sync_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    started_at TEXT NOT NULL,
    completed_at TEXT,
    document_count INTEGER,
    status TEXT NOT NULL DEFAULT 'running'
);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

# Writers must upsert with ON CONFLICT DO UPDATE: REPLACE skips the delete trigger.
_FTS_TRIGGERS_SQL = """\
CREATE TRIGGER IF NOT EXISTS documents_ai AFTER INSERT ON documents BEGIN
    INSERT INTO documents_fts(rowid, id, title, description, full_text)
    VALUES (new.rowid, new.id, new.title, new.description, new.full_text);
END;

CREATE TRIGGER IF NOT EXISTS documents_ad AFTER DELETE ON documents BEGIN
    INSERT INTO documents_fts(documents_fts, rowid, id, title, description, full_text)
    VALUES ('delete', old.rowid, old.id, old.title, old.description, old.full_text);
END;

CREATE TRIGGER IF NOT EXISTS documents_au AFTER UPDATE ON documents BEGIN
    INSERT INTO documents_fts(documents_fts, rowid, id, title, description, full_text)
    VALUES ('delete', old.rowid, old.id, old.title, old.description, old.full_text);
    INSERT INTO documents_fts(rowid, id, title, description, full_text)
    VALUES (new.rowid, new.id, new.title, new.description, new.full_text);
END;
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables, indexes, and triggers."""
    conn.executescript(_SCHEMA_SQL)
    conn.executescript(_FTS_TRIGGERS_SQL)
    conn.execute(
        "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
        ("schema_version", str(SCHEMA_VERSION)),
    )
    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Return the current schema version, or None if metadata table doesn't exist."""
    try:
        row = conn.execute(
            "SELECT value FROM metadata WHERE key = 'schema_version'"
        ).fetchone()
    except sqlite3.OperationalError:
        return None
    return int(row[0]) if row else None


def migrate_schema(conn: sqlite3.Connection) -> None:
    """Create or migrate the database schema to the latest version."""
    version = get_schema_version(conn)
    if version is None:
        create_schema(conn)


def get_metadata(conn: sqlite3.Connection, key: str) -> str | None:
    row = conn.execute("SELECT value FROM metadata WHERE key = ?", (key,)).fetchone()
    return row[0] if row else None


def set_metadata(conn: sqlite3.Connection, key: str, value: str) -> None:
    conn.execute(
        "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
        (key, value),
    )
    conn.commit()


def connect(db_path: Path) -> sqlite3.Connection:
    """Open (creating if needed) the archive database and migrate its schema."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    migrate_schema(conn)
    return conn
