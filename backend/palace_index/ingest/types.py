"""Common scan pipeline data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from palace_index.models.entities import Chunk


@dataclass(slots=True)
class Symbol:
    """Programming construct reported by an analyzer."""

    name: str
    kind: str
    line_start: int
    line_end: int
    signature: str = ""
    doc_comment: str = ""
    exported: bool = False
    children: list["Symbol"] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class Relationship:
    """Link from a location in the analyzed file to a target symbol."""

    target_symbol: str
    kind: str
    line: int
    column: int = 0
    target_file: str | None = None


@dataclass(slots=True)
class FileAnalysis:
    path: str
    language: str
    symbols: list[Symbol] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)


@dataclass(slots=True)
class FileRecord:
    """A hashed and chunked file, ready to be written by a scan."""

    path: str
    content_hash: str
    size: int
    mod_time: int
    chunks: Sequence[Chunk]
    language: str = ""
    analysis: FileAnalysis | None = None


__all__ = [
    "Symbol",
    "Relationship",
    "FileAnalysis",
    "FileRecord",
]
