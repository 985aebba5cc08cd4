"""FTS5 search over archived documents, with a substring fallback."""

import re
import sqlite3
from dataclasses import dataclass
from enum import StrEnum

from loguru import logger

from vosdroits_archive.models.document import SearchHit

_RESERVED_CHARS = re.compile(r'["()]')
_COLUMN_SCOPE = re.compile(r":")
_OPERATORS = re.compile(r"\b(AND|OR|NOT|NEAR)\b", flags=re.IGNORECASE)
_LEADING_MARKERS = re.compile(r"(^|\s)[*\-]+")
_TRAILING_WILDCARDS = re.compile(r"\*+(\s|$)")
_WHITESPACE = re.compile(r"\s+")
_ALPHA_WORD = re.compile(r"[a-zA-ZÀ-ſ]{2,}")
_OPERATOR_WORD = re.compile(r"^(AND|OR|NOT|NEAR)$", flags=re.IGNORECASE)

MIN_FALLBACK_WORD = 2


class SearchMethod(StrEnum):
    RANKED = "fts"
    FALLBACK = "like"


@dataclass(frozen=True)
class SearchResults:
    """Outcome of a search: hits plus how they were found."""

    query: str
    sanitized_query: str
    hits: tuple[SearchHit, ...] = ()
    method: SearchMethod | None = None

    @property
    def no_terms(self) -> bool:
        """The query had nothing searchable; the store was not queried."""
        return not self.sanitized_query


def sanitize_fts_query(query: str) -> str:
    """Strip FTS5 syntax from a user query.

    Removes quotes, parentheses and column-scope colons, whole-word boolean
    operators (AND, OR, NOT, NEAR, any case), leading ``-``/``*`` runs and
    trailing ``*`` runs, then collapses whitespace. When nothing is left, the
    first alphabetic word (2+ letters) of the original query that is not an
    operator is returned instead, or "" when there is none.
    """
    cleaned = _RESERVED_CHARS.sub("", query)
    cleaned = _COLUMN_SCOPE.sub("", cleaned)
    cleaned = _OPERATORS.sub("", cleaned)
    cleaned = _LEADING_MARKERS.sub(r"\1", cleaned)
    cleaned = _TRAILING_WILDCARDS.sub(r"\1", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    if cleaned:
        return cleaned

    for word in _ALPHA_WORD.findall(query):
        if not _OPERATOR_WORD.match(word):
            return word
    return ""


def _match_expression(sanitized: str) -> str:
    """Quote each term so the MATCH grammar never sees operators."""
    terms = [t for t in sanitized.split() if any(c.isalnum() for c in t)]
    return " ".join(f'"{t}"' for t in terms)


def _like_pattern(word: str) -> str:
    escaped = word.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _filter_sql(
    theme: str | None, audience: str | None
) -> tuple[list[str], list[str]]:
    clauses: list[str] = []
    params: list[str] = []
    if theme:
        clauses.append("(d.theme_id = ? OR d.theme_title LIKE ? ESCAPE '\\')")
        params.extend([theme, _like_pattern(theme)])
    if audience:
        clauses.append("d.audience = ?")
        params.append(audience)
    return clauses, params


def _row_to_hit(row: tuple) -> SearchHit:
    return SearchHit(
        id=row[0],
        title=row[1],
        url=row[2],
        snippet=row[3],
        description=row[4],
        subject=row[5],
        audience=row[6],
        theme_title=row[7],
        folder_title=row[8],
    )


def ranked_search(
    conn: sqlite3.Connection,
    sanitized: str,
    *,
    theme: str | None = None,
    audience: str | None = None,
    limit: int = 10,
) -> list[SearchHit]:
    """Relevance-ranked FTS5 search with snippets."""
    expression = _match_expression(sanitized)
    if not expression:
        return []

    where = ["documents_fts MATCH ?"]
    params: list[str | int] = [expression]
    filter_clauses, filter_params = _filter_sql(theme, audience)
    where.extend(filter_clauses)
    params.extend(filter_params)
    params.append(limit)

    sql = f"""
        SELECT d.id, d.title, d.url,
               snippet(documents_fts, -1, '**', '**', '...', 30) AS snippet,
               d.description, d.subject, d.audience, d.theme_title, d.folder_title
        FROM documents_fts
        JOIN documents d ON d.rowid = documents_fts.rowid
        WHERE {" AND ".join(where)}
        ORDER BY rank
        LIMIT ?
    """
    return [_row_to_hit(row) for row in conn.execute(sql, params).fetchall()]


def fallback_search(
    conn: sqlite3.Connection,
    sanitized: str,
    *,
    theme: str | None = None,
    audience: str | None = None,
    limit: int = 10,
) -> list[SearchHit]:
    """Every word (2+ chars) must appear in the title or the description."""
    words = [w for w in sanitized.split(" ") if len(w) >= MIN_FALLBACK_WORD]
    if not words:
        return []

    where: list[str] = []
    params: list[str | int] = []
    for word in words:
        where.append("(d.title LIKE ? ESCAPE '\\' OR d.description LIKE ? ESCAPE '\\')")
        pattern = _like_pattern(word)
        params.extend([pattern, pattern])
    filter_clauses, filter_params = _filter_sql(theme, audience)
    where.extend(filter_clauses)
    params.extend(filter_params)
    params.append(limit)

    sql = f"""
        SELECT d.id, d.title, d.url, NULL AS snippet,
               d.description, d.subject, d.audience, d.theme_title, d.folder_title
        FROM documents d
        WHERE {" AND ".join(where)}
        ORDER BY d.title
        LIMIT ?
    """
    return [_row_to_hit(row) for row in conn.execute(sql, params).fetchall()]


def search_documents(
    conn: sqlite3.Connection,
    *,
    query: str,
    theme: str | None = None,
    audience: str | None = None,
    limit: int = 10,
) -> SearchResults:
    """Search documents: ranked first, substring fallback on zero hits.

    Args:
        conn: Database connection.
        query: Raw user query; sanitized here.
        theme: Theme id, or part of a theme title.
        audience: Exact audience (e.g. "Particuliers").
        limit: Max hits to return.

    Returns:
        SearchResults; ``no_terms`` is set when nothing was searchable, and
        ``hits`` is empty when both strategies found nothing. Database errors
        propagate.
    """
    sanitized = sanitize_fts_query(query)
    if not sanitized:
        return SearchResults(query=query, sanitized_query="")

    hits = ranked_search(conn, sanitized, theme=theme, audience=audience, limit=limit)
    if hits:
        return SearchResults(query, sanitized, tuple(hits), SearchMethod.RANKED)

    logger.debug("No ranked hits for {!r}, trying substring match", sanitized)
    hits = fallback_search(conn, sanitized, theme=theme, audience=audience, limit=limit)
    if hits:
        return SearchResults(query, sanitized, tuple(hits), SearchMethod.FALLBACK)
    return SearchResults(query, sanitized)
