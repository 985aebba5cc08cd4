"""Render stored documents as markdown."""

import io

from vosdroits_archive.models.document import NormalizedDocument


def _link(title: str, url: str | None) -> str:
    return f"[{title}]({url})" if url else title


def render_document_as_markdown(
    document: NormalizedDocument,
    *,
    max_chars: int | None = None,
) -> str:
    """Render a document with its metadata, text and links.

    Args:
        document: The document to render.
        max_chars: Truncate the body text to this many characters (None = unlimited).

    Returns:
        Markdown string.
    """
    out = io.StringIO()
    out.write(f"# {document.title}\n\n")

    facts = [document.kind.value]
    if document.audience:
        facts.append(document.audience)
    trail = [t for t in (document.theme_title, document.subtheme, document.folder_title) if t]
    if trail:
        facts.append(" > ".join(trail))
    out.write(f"*{' | '.join(facts)}*\n\n")
    out.write(f"Source: {document.url} (id={document.id})\n")
    if document.last_modified:
        out.write(f"Last modified: {document.last_modified}\n")
    out.write("\n")

    if document.description:
        out.write(f"> {document.description}\n\n")

    body = document.full_text
    if max_chars is not None and len(body) > max_chars:
        body = body[:max_chars].rstrip() + f"\n\n... (truncated, {len(document.full_text)} chars)"
    if body:
        out.write(f"{body}\n\n")

    if document.legal_references:
        out.write("## Legal references\n\n")
        for ref in document.legal_references:
            out.write(f"- {_link(ref.title, ref.url)}\n")
        out.write("\n")

    if document.online_services:
        out.write("## Online services\n\n")
        for service in document.online_services:
            kind = f" ({service.type})" if service.type else ""
            out.write(f"- {_link(service.title, service.url)}{kind}\n")
        out.write("\n")

    if document.internal_links:
        out.write("## See also\n\n")
        out.write(", ".join(document.internal_links))
        out.write("\n")

    return out.getvalue().rstrip() + "\n"
