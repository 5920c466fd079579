"""Identifier splitting for the full-text sub-word column."""

from __future__ import annotations

import re

IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")
CAMEL_PART_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z0-9]+|[A-Z]+[0-9]*")
SEPARATOR_RE = re.compile(r"[_-]+")


def split_identifier(name: str) -> list[str]:
    """Split a snake_case, kebab-case, camelCase or PascalCase identifier.

    Parts are lower-cased. The original identifier is appended when it splits
    into more than one part, e.g. ``parseJSON`` -> ``["parse", "json", "parseJSON"]``.
    """
    if not name:
        return []
    if SEPARATOR_RE.search(name):
        parts = [part.lower() for part in SEPARATOR_RE.split(name) if part]
    else:
        parts = [part.lower() for part in CAMEL_PART_RE.findall(name)]
    if len(parts) > 1:
        parts.append(name)
    return _dedupe(parts)


def identifier_subwords(text: str) -> str:
    """Space-joined sub-words of every compound identifier in ``text``."""
    words: list[str] = []
    for match in IDENTIFIER_RE.finditer(text):
        identifier = match.group(0)
        parts = split_identifier(identifier)
        words.extend(part for part in parts if part.lower() != identifier.lower())
    return " ".join(_dedupe(words))


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for item in items:
        key = item.lower()
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique


__all__ = ["identifier_subwords", "split_identifier"]
