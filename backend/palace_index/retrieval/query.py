"""Translation of free-text and identifier queries into FTS5 expressions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

QueryKind = Literal["code", "text", "phrase", "empty"]

_CODE_MARKERS = (".", "_", "::", "->", "(", ")", "[", "]", "{", "}")
MIN_TERM_LENGTH = 2


@dataclass(slots=True, frozen=True)
class PreparedQuery:
    raw: str
    kind: QueryKind
    expression: str

    @property
    def is_empty(self) -> bool:
        return self.kind == "empty"


def is_code_like(query: str) -> bool:
    return any(marker in query for marker in _CODE_MARKERS)


def quote(term: str) -> str:
    """Wrap a term as an FTS5 string, doubling embedded quotes."""
    return '"' + term.replace('"', '""') + '"'


def prepare_query(query: str) -> PreparedQuery:
    """Classify ``query`` and build its ``MATCH`` expression.

    Identifiers and qualified names are searched as one exact phrase. Prose is
    split on whitespace and every word of two or more characters becomes a
    prefix term; the terms are OR-ed together.
    """
    trimmed = query.strip()
    if not trimmed:
        return PreparedQuery(raw=query, kind="empty", expression="")
    if is_code_like(trimmed):
        return PreparedQuery(raw=query, kind="code", expression=quote(trimmed))
    terms = [f"{quote(word)}*" for word in trimmed.split() if len(word) >= MIN_TERM_LENGTH]
    if not terms:
        return PreparedQuery(raw=query, kind="phrase", expression=quote(trimmed))
    return PreparedQuery(raw=query, kind="text", expression=" OR ".join(terms))


__all__ = ["PreparedQuery", "QueryKind", "is_code_like", "prepare_query", "quote"]
