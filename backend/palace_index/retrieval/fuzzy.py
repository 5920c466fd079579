"""Typo-tolerant matching of identifiers and search terms."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from rapidfuzz.distance import Levenshtein

COMMON_PROGRAMMING_TERMS: tuple[str, ...] = (
    # keywords
    "function", "method", "class", "interface", "struct", "type",
    "const", "constant", "variable", "var", "let", "public", "private",
    "protected", "static", "async", "await", "return", "import", "export",
    # concepts
    "handler", "service", "controller", "model", "view", "component",
    "provider", "factory", "builder", "manager", "helper", "util", "utils",
    "config", "configuration", "settings", "options", "params", "args",
    "request", "response", "client", "server", "connection", "socket",
    "database", "query", "result", "record", "entity", "schema",
    "error", "exception", "message", "event", "callback", "promise",
    "user", "auth", "authentication", "authorization", "session", "token",
    "file", "path", "directory", "buffer", "stream", "reader", "writer",
    "parse", "parser", "format", "formatter", "encode", "decode", "serialize",
    "cache", "store", "storage", "memory", "state", "context",
    "test", "spec", "mock", "stub", "fixture", "assert", "expect",
    "logger", "logging", "debug", "info", "warn",
    "create", "read", "update", "delete", "get", "set", "add", "remove",
    "init", "initialize", "start", "stop", "run", "execute", "process",
    "validate", "check", "verify", "compare", "match", "filter", "search",
    # abbreviations
    "http", "https", "api", "url", "uri", "json", "xml", "html", "css",
    "sql", "db", "id", "uuid", "guid", "ref", "ptr", "fn", "cb",
)


@dataclass(slots=True, frozen=True)
class FuzzyResult:
    term: str
    distance: int
    score: float


def edit_distance(a: str, b: str) -> int:
    """Case-insensitive Levenshtein distance over code points."""
    return Levenshtein.distance(a.lower(), b.lower())


def fuzzy_score(a: str, b: str) -> float:
    """Similarity in ``[0, 1]``; identical strings score 1.0."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    score = 1.0 - edit_distance(a, b) / longest
    return min(1.0, max(0.0, score))


def fuzzy_match(a: str, b: str, max_distance: int) -> bool:
    return edit_distance(a, b) <= max_distance


def max_fuzzy_distance(length: int) -> int:
    """Typos tolerated for a word of ``length`` characters."""
    if length <= 3:
        return 0
    if length <= 5:
        return 1
    if length <= 8:
        return 2
    return 3


def suggest_matches(term: str, candidates: Iterable[str], max_distance: int) -> list[FuzzyResult]:
    """Candidates within ``max_distance`` of ``term``, closest first.

    Ties on distance are broken by higher score; remaining ties keep their
    input order.
    """
    results: list[FuzzyResult] = []
    for candidate in candidates:
        distance = edit_distance(term, candidate)
        if distance <= max_distance:
            results.append(FuzzyResult(term=candidate, distance=distance, score=fuzzy_score(term, candidate)))
    _insertion_sort(results)
    return results


def _insertion_sort(results: list[FuzzyResult]) -> None:
    for i in range(1, len(results)):
        j = i
        while j > 0 and _precedes(results[j], results[j - 1]):
            results[j], results[j - 1] = results[j - 1], results[j]
            j -= 1


def _precedes(left: FuzzyResult, right: FuzzyResult) -> bool:
    if left.distance != right.distance:
        return left.distance < right.distance
    return left.score > right.score


def expand_with_fuzzy_variants(term: str, vocabulary: Sequence[str] = COMMON_PROGRAMMING_TERMS) -> list[str]:
    """The term followed by vocabulary words close enough to be a typo of it."""
    max_distance = max_fuzzy_distance(len(term))
    if max_distance == 0:
        return [term]
    variants = [term]
    for match in suggest_matches(term, vocabulary, max_distance):
        if match.term != term and match.term not in variants:
            variants.append(match.term)
    return variants


def normalize_for_fuzzy(value: str) -> str:
    """Lower-case letters and digits only."""
    return "".join(char.lower() for char in value if char.isalnum())


__all__ = [
    "COMMON_PROGRAMMING_TERMS",
    "FuzzyResult",
    "edit_distance",
    "expand_with_fuzzy_variants",
    "fuzzy_match",
    "fuzzy_score",
    "max_fuzzy_distance",
    "normalize_for_fuzzy",
    "suggest_matches",
]
