"""Flatten the theme menu entry into parent-linked ThemeNode rows.

The menu nests ``ItemMenu`` elements under a ``Menu`` root:
theme > sub-theme > folder > sub-folder.
"""

from loguru import logger
from lxml import etree

from vosdroits_archive.core.parser.xml_utils import (
    XML_PARSER,
    attr,
    child_text,
    clean,
    fold,
    local_name,
)
from vosdroits_archive.models.document import ThemeKind, ThemeNode

MAX_LEVELS = 4

_KIND_BY_LEVEL: tuple[ThemeKind, ...] = (
    ThemeKind.THEME,
    ThemeKind.SUBTHEME,
    ThemeKind.FOLDER,
    ThemeKind.SUBFOLDER,
)

_KIND_BY_TYPE: dict[str, ThemeKind] = {
    "theme": ThemeKind.THEME,
    "sous-theme": ThemeKind.SUBTHEME,
    "dossier": ThemeKind.FOLDER,
    "sous-dossier": ThemeKind.SUBFOLDER,
}


def _items(element: etree._Element) -> list[etree._Element]:
    return [node for node in element if local_name(node) == "ItemMenu"]


def _kind(item: etree._Element, level: int) -> ThemeKind:
    return _KIND_BY_TYPE.get(fold(item.get("type", "")), _KIND_BY_LEVEL[level])


def parse_hierarchy(content: bytes) -> list[ThemeNode] | None:
    """Parse the menu into a flat, depth-first list of ThemeNode.

    Items without an ID are skipped together with their subtree. Returns None
    when the content is not parseable.
    """
    try:
        root = etree.fromstring(content, parser=XML_PARSER)
    except (etree.LxmlError, ValueError) as exc:
        logger.warning("Cannot parse theme menu: {}", exc)
        return None
    if root is None or local_name(root) != "Menu":
        logger.warning("Theme menu has no Menu root")
        return None

    themes: list[ThemeNode] = []
    todo: list[tuple[etree._Element, str | None, int]] = [
        (item, None, 0) for item in reversed(_items(root))
    ]
    while todo:
        item, parent_id, level = todo.pop()
        item_id = attr(item, "ID")
        if not item_id:
            continue
        title = child_text(item, "Titre") or clean(item.text) or item_id
        themes.append(
            ThemeNode(id=item_id, kind=_kind(item, level), title=title, parent_id=parent_id)
        )
        if level + 1 < MAX_LEVELS:
            todo.extend((sub, item_id, level + 1) for sub in reversed(_items(item)))

    logger.debug("Parsed {} theme nodes", len(themes))
    return themes
