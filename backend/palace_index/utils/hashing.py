"""Hashing utilities."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable


def sha256_bytes(data: bytes) -> str:
    """Return hex digest for bytes input."""
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Path) -> str:
    """Return hex digest for file contents."""
    h = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def scan_digest(pairs: Iterable[tuple[str, str]]) -> str:
    """Digest an ordered sequence of ``(path, content_hash)`` pairs."""
    h = hashlib.sha256()
    for path, content_hash in pairs:
        h.update(path.encode("utf-8"))
        h.update(content_hash.encode("utf-8"))
    return h.hexdigest()
