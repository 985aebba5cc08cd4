"""Protocols for dependency injection in the sync pipeline."""

from collections.abc import Iterator, Sequence
from typing import Any, Protocol, runtime_checkable

from vosdroits_archive.models.document import ArchiveEntry


@runtime_checkable
class ArchiveReaderProtocol(Protocol):
    """Protocol for sources of archive entries."""

    entry_errors: int

    def iter_entries(self) -> Iterator[ArchiveEntry]:
        """Yield routed entries as soon as each one is decompressed."""
        ...


@runtime_checkable
class BatchStore(Protocol):
    """Protocol for stores accepting a bounded number of statements per call."""

    batch_limit: int

    def write_batch(self, sql: str, rows: Sequence[Sequence[Any]]) -> None:
        """Execute ``sql`` once per row, as a single write call."""
        ...
