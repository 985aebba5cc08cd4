"""Parse document XML entries into NormalizedDocument records.

Documents come in several root shapes (procedure pages, online service
pages, "how to" pages, navigation nodes, resources). The parser locates the
semantic root by trying known container names in priority order, then pulls
metadata, breadcrumbs and repeatable elements from wherever they appear.
"""

import re
from pathlib import PurePosixPath

from loguru import logger
from lxml import etree

from vosdroits_archive.config import DOCUMENT_BASE_URL
from vosdroits_archive.core.parser.xml_utils import (
    MAX_DEPTH,
    XML_PARSER,
    attr,
    child,
    child_text,
    clean,
    element_text,
    find_all,
    fold,
    local_name,
)
from vosdroits_archive.models.document import (
    DocumentKind,
    LegalReference,
    NormalizedDocument,
    OnlineService,
)

# Root containers in priority order.
ROOT_TAGS: tuple[str, ...] = (
    "Publication",
    "ServiceEnLigne",
    "CommentFaireSi",
    "Noeud",
    "Ressource",
)

_WHITESPACE = re.compile(r"\s+")

BreadcrumbLevel = tuple[str, str | None, str | None]


def extract_full_text(element: etree._Element, depth: int = 0) -> str:
    """Concatenate every text node below ``element``, attributes excluded."""
    if depth > MAX_DEPTH:
        return ""
    parts: list[str] = []
    if element.text:
        parts.append(element.text)
    for node in element:
        if local_name(node) is not None:
            parts.append(extract_full_text(node, depth + 1))
        if node.tail:
            parts.append(node.tail)
    return _WHITESPACE.sub(" ", " ".join(parts)).strip()


def find_root(tree_root: etree._Element) -> etree._Element | None:
    """Pick the semantic root of a parsed document.

    Known containers are tried in priority order against the document element
    and its direct children; otherwise the document element itself is used.
    """
    if local_name(tree_root) is None:
        return None
    candidates = [tree_root, *(c for c in tree_root if local_name(c) is not None)]
    for tag in ROOT_TAGS:
        for candidate in candidates:
            if local_name(candidate) == tag:
                return candidate
    return tree_root


def build_url(document_id: str) -> str:
    """Public page of a document."""
    return f"{DOCUMENT_BASE_URL}{document_id}"


def _breadcrumb_levels(root: etree._Element) -> list[BreadcrumbLevel]:
    """(folded type, ID, title) for each level of the breadcrumb, in order."""
    trail = child(root, "FilDAriane")
    if trail is None:
        matches = find_all(root, "FilDAriane")
        trail = matches[0] if matches else None
    if trail is None:
        return []
    levels: list[BreadcrumbLevel] = []
    for level in trail:
        if local_name(level) != "Niveau":
            continue
        title = child_text(level, "Titre") or element_text(level)
        levels.append((fold(level.get("type", "")), attr(level, "ID"), title))
    return levels


def _first_level(levels: list[BreadcrumbLevel], level_type: str) -> tuple[str | None, str | None]:
    for folded_type, level_id, title in levels:
        if folded_type == level_type:
            return level_id, title
    return None, None


def _extract_references(root: etree._Element) -> tuple[LegalReference, ...]:
    return tuple(
        LegalReference(
            title=child_text(node, "Titre") or clean(node.text) or "",
            url=attr(node, "URL"),
            legifrance_id=attr(node, "ID"),
            text_number=attr(node, "numeroTexte"),
        )
        for node in find_all(root, "Reference")
    )


def _extract_services(root: etree._Element) -> tuple[OnlineService, ...]:
    return tuple(
        OnlineService(
            id=attr(node, "ID") or "",
            title=child_text(node, "Titre") or clean(node.text) or "",
            type=attr(node, "type") or "",
            url=attr(node, "URL"),
        )
        for node in find_all(root, "ServiceEnLigne")
    )


def _extract_internal_links(root: etree._Element) -> tuple[str, ...]:
    ids = (attr(node, "LienPublication", "ID") for node in find_all(root, "LienInterne"))
    return tuple(dict.fromkeys(i for i in ids if i))


def parse_document(content: bytes, filename: str) -> NormalizedDocument | None:
    """Parse one document entry.

    Args:
        content: Raw XML bytes of the entry.
        filename: Entry name; its basename without extension is the document id.

    Returns:
        The normalized document, or None when the content cannot be parsed.
    """
    document_id = PurePosixPath(filename).stem
    try:
        tree_root = etree.fromstring(content, parser=XML_PARSER)
    except (etree.LxmlError, ValueError) as exc:
        logger.debug("Cannot parse {}: {}", filename, exc)
        return None
    if tree_root is None:
        logger.debug("Cannot parse {}: empty document", filename)
        return None

    root = find_root(tree_root)
    if root is None:
        return None

    levels = _breadcrumb_levels(root)
    theme_id, theme_title = _first_level(levels, "theme")
    if theme_id is None and levels:
        theme_id = levels[0][1]
    _subtheme_id, subtheme = _first_level(levels, "sous-theme")
    folder_id, folder_title = _first_level(levels, "dossier")

    return NormalizedDocument(
        id=document_id,
        kind=DocumentKind.from_id(document_id),
        title=child_text(root, "title", "Titre") or document_id,
        description=child_text(root, "description"),
        subject=child_text(root, "subject"),
        audience=attr(root, "audience") or child_text(root, "audience", "Audience"),
        url=build_url(document_id),
        theme_id=theme_id,
        theme_title=theme_title,
        subtheme=subtheme,
        folder_id=folder_id,
        folder_title=folder_title,
        full_text=extract_full_text(root),
        legal_references=_extract_references(root),
        online_services=_extract_services(root),
        internal_links=_extract_internal_links(root),
        last_modified=child_text(root, "date")
        or attr(root, "datePublication", "dateDerniereModification"),
    )
