"""Shared test fixtures."""

import sqlite3

import pytest

from tests.unit.samples import MENU_XML, SAMPLE_DOCUMENTS
from vosdroits_archive.core.database.schema import create_schema
from vosdroits_archive.core.parser.document_parser import parse_document
from vosdroits_archive.core.parser.hierarchy_parser import parse_hierarchy
from vosdroits_archive.core.writer.batch_writer import (
    SqliteBatchStore,
    upsert_documents,
    upsert_themes,
)


@pytest.fixture
def db() -> sqlite3.Connection:
    """Empty in-memory archive database."""
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    return conn


@pytest.fixture
def populated_db(db: sqlite3.Connection) -> sqlite3.Connection:
    """In-memory DB with the sample documents and theme menu."""
    documents = [parse_document(data, name) for name, data in SAMPLE_DOCUMENTS.items()]
    themes = parse_hierarchy(MENU_XML)
    assert themes is not None
    store = SqliteBatchStore(db)
    upsert_documents(store, [d for d in documents if d is not None])
    upsert_themes(store, themes)
    return db
