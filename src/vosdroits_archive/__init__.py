"""Sync, index and search an archive of public administrative documents."""

from vosdroits_archive.core.archive.reader import ArchiveStreamReader
from vosdroits_archive.core.search.searcher import search_documents
from vosdroits_archive.core.sync.orchestrator import run_sync
from vosdroits_archive.protocols import ArchiveReaderProtocol, BatchStore

__all__ = [
    "ArchiveReaderProtocol",
    "ArchiveStreamReader",
    "BatchStore",
    "run_sync",
    "search_documents",
]
