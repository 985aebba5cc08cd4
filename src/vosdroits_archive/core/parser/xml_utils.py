"""Small lxml helpers shared by the document and menu parsers."""

import re
import unicodedata

from lxml import etree

MAX_DEPTH = 20

XML_PARSER = etree.XMLParser(
    recover=True,
    resolve_entities=False,
    no_network=True,
    huge_tree=True,
    remove_comments=True,
)

_WHITESPACE = re.compile(r"\s+")


def local_name(element: etree._Element) -> str | None:
    """Tag without namespace or prefix; None for comments and PIs."""
    tag = element.tag
    if not isinstance(tag, str):
        return None
    return tag.rsplit("}", 1)[-1].rsplit(":", 1)[-1]


def clean(text: str | None) -> str | None:
    if text is None:
        return None
    text = _WHITESPACE.sub(" ", text).strip()
    return text or None


def fold(value: str) -> str:
    """Lowercase and strip accents ("Sous-thème" -> "sous-theme")."""
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).lower().strip()


def element_text(element: etree._Element | None) -> str | None:
    """All text below an element, whitespace-collapsed."""
    if element is None:
        return None
    return clean("".join(element.itertext()))


def child(element: etree._Element, name: str) -> etree._Element | None:
    for node in element:
        if local_name(node) == name:
            return node
    return None


def child_text(element: etree._Element, *names: str) -> str | None:
    for name in names:
        text = element_text(child(element, name))
        if text:
            return text
    return None


def attr(element: etree._Element, *names: str) -> str | None:
    for name in names:
        value = clean(element.get(name))
        if value:
            return value
    return None


def find_all(
    element: etree._Element, tag: str, *, max_depth: int = MAX_DEPTH
) -> list[etree._Element]:
    """Find descendants with local name ``tag``, in document order.

    Matched elements are not descended into. Elements deeper than
    ``max_depth`` below ``element`` are not visited.
    """
    found: list[etree._Element] = []
    stack: list[tuple[etree._Element, int]] = [(node, 1) for node in reversed(element)]
    while stack:
        node, depth = stack.pop()
        name = local_name(node)
        if name is None:
            continue
        if name == tag:
            found.append(node)
            continue
        if depth < max_depth:
            stack.extend((sub, depth + 1) for sub in reversed(node))
    return found
