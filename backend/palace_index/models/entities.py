"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True, frozen=True)
class FileMetadata:
    """Subset of a file entry used by staleness detection."""

    content_hash: str
    size: int
    mod_time: int


@dataclass(slots=True, frozen=True)
class Chunk:
    """Line-aligned slice of a file. Line numbers are 1-based and inclusive."""

    index: int
    start_line: int
    end_line: int
    content: str


@dataclass(slots=True, frozen=True)
class ChunkHit:
    path: str
    chunk_index: int
    start_line: int
    end_line: int
    content: str


@dataclass(slots=True)
class ScanSummary:
    id: int
    root: str
    scan_hash: str
    file_count: int
    chunk_count: int
    started_at: datetime
    completed_at: datetime
    symbol_count: int = 0
    relationship_count: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "root": self.root,
            "scan_hash": self.scan_hash,
            "file_count": self.file_count,
            "chunk_count": self.chunk_count,
            "symbol_count": self.symbol_count,
            "relationship_count": self.relationship_count,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class CallSite:
    file_path: str
    line: int
    callee_symbol: str
    caller_symbol: str = ""


@dataclass(slots=True)
class CallGraph:
    scope: str
    incoming_calls: list[CallSite]
    outgoing_calls: list[CallSite]


__all__ = [
    "FileMetadata",
    "Chunk",
    "ChunkHit",
    "ScanSummary",
    "CallSite",
    "CallGraph",
]
