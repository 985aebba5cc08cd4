"""Domain models for the administrative documents archive."""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import PurePosixPath


class DocumentKind(StrEnum):
    """Kind of document, encoded by the first letter of its id."""

    PROCEDURE = "procedure"
    RESOURCE = "resource"
    NODE = "node"
    OTHER = "other"

    @classmethod
    def from_id(cls, document_id: str) -> "DocumentKind":
        return _KIND_BY_PREFIX.get(document_id[:1], cls.OTHER)


_KIND_BY_PREFIX: dict[str, DocumentKind] = {
    "F": DocumentKind.PROCEDURE,
    "R": DocumentKind.RESOURCE,
    "N": DocumentKind.NODE,
}


class ThemeKind(StrEnum):
    """Level of a node in the browsing hierarchy."""

    THEME = "theme"
    SUBTHEME = "subtheme"
    FOLDER = "folder"
    SUBFOLDER = "subfolder"


class EntryRoute(StrEnum):
    """Where an archive entry goes."""

    DOCUMENT = "document"
    HIERARCHY = "hierarchy"
    IGNORED = "ignored"


@dataclass(frozen=True)
class ArchiveEntry:
    """One decompressed file from the archive."""

    name: str
    data: bytes
    route: EntryRoute

    @property
    def basename(self) -> str:
        return PurePosixPath(self.name).name


@dataclass(frozen=True)
class LegalReference:
    """A law or decree cited by a document."""

    title: str
    url: str | None = None
    legifrance_id: str | None = None
    text_number: str | None = None


@dataclass(frozen=True)
class OnlineService:
    """An online procedure or form linked from a document."""

    id: str
    title: str
    type: str = ""
    url: str | None = None


@dataclass(frozen=True)
class NormalizedDocument:
    """Canonical record for one source document."""

    id: str
    kind: DocumentKind
    title: str
    url: str
    full_text: str
    description: str | None = None
    subject: str | None = None
    audience: str | None = None
    theme_id: str | None = None
    theme_title: str | None = None
    subtheme: str | None = None
    folder_id: str | None = None
    folder_title: str | None = None
    legal_references: tuple[LegalReference, ...] = ()
    online_services: tuple[OnlineService, ...] = ()
    internal_links: tuple[str, ...] = ()
    last_modified: str | None = None
    updated_at: str | None = field(default=None, compare=False)


@dataclass(frozen=True)
class ThemeNode:
    """A node in the subject-matter browsing hierarchy."""

    id: str
    kind: ThemeKind
    title: str
    parent_id: str | None = None


@dataclass(frozen=True)
class SyncLogEntry:
    """Audit row for one sync run."""

    id: int
    started_at: str
    status: str
    completed_at: str | None = None
    document_count: int | None = None


@dataclass(frozen=True)
class SearchHit:
    """A search hit, ranked (with snippet) or from the substring fallback."""

    id: str
    title: str
    url: str
    snippet: str | None = None
    description: str | None = None
    subject: str | None = None
    audience: str | None = None
    theme_title: str | None = None
    folder_title: str | None = None


@dataclass(frozen=True)
class DocumentSummary:
    """Listing row for a document filed under a theme."""

    id: str
    kind: DocumentKind
    title: str
    url: str
    description: str | None = None
