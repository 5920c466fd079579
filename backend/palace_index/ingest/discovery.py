"""Workspace file discovery and guardrail matching."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable

import pathspec

from palace_index.core.workspace import Guardrails
from palace_index.utils.time import normalize_mtime


@dataclass(slots=True, frozen=True)
class FileStat:
    size: int
    mod_time: int


def to_slash(path: str) -> str:
    """Return a workspace-relative path with forward slashes and no leading ``./``."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


def _expand_braces(pattern: str) -> list[str]:
    """Expand one ``{a,b}`` group, e.g. ``src/*.{ts,tsx}``."""
    start = pattern.find("{")
    end = pattern.find("}", start + 1)
    if start == -1 or end == -1:
        return [pattern]
    prefix, suffix = pattern[:start], pattern[end + 1 :]
    expanded: list[str] = []
    for option in pattern[start + 1 : end].split(","):
        expanded.extend(_expand_braces(f"{prefix}{option}{suffix}"))
    return expanded


@lru_cache(maxsize=512)
def _compile_spec(patterns: tuple[str, ...]) -> pathspec.PathSpec:
    """Compile guardrail globs with gitignore wildmatch rules.

    A pattern without a slash matches at any depth. A leading ``/`` anchors
    it to the workspace root.
    """
    lines = [expanded for pattern in patterns if pattern for expanded in _expand_braces(pattern)]
    return pathspec.PathSpec.from_lines("gitwildmatch", lines)


def matches_guardrail(path: str, guardrails: Guardrails) -> bool:
    """True when ``path`` is excluded by either guardrail tier.

    Directories are passed with a trailing ``/`` so ``vendor/**`` prunes ``vendor``.
    """
    normalized = to_slash(path)
    if not normalized:
        return False
    return _compile_spec(tuple(guardrails.patterns())).match_file(normalized)


def list_files(root: Path, guardrails: Guardrails) -> list[str]:
    """Enumerate indexable files under ``root`` as sorted slash paths.

    Excluded directories are pruned without being descended into. Walk errors
    propagate to the caller.
    """

    def _raise(error: OSError) -> None:
        raise error

    files: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        prefix = "" if rel_dir == "." else f"{rel_dir}/"
        dirnames[:] = sorted(d for d in dirnames if not matches_guardrail(f"{prefix}{d}/", guardrails))
        for name in filenames:
            rel = prefix + name
            if matches_guardrail(rel, guardrails):
                continue
            if not os.path.isfile(os.path.join(dirpath, name)):
                continue
            files.append(rel)
    files.sort()
    return files


def filter_paths(paths: Iterable[str], guardrails: Guardrails) -> list[str]:
    """Normalize, drop excluded or empty paths, deduplicate and sort."""
    kept = {to_slash(path) for path in paths}
    return sorted(path for path in kept if path and not matches_guardrail(path, guardrails))


def stat_file(path: Path) -> FileStat:
    """Return size and second-truncated modification time. Raises ``OSError``."""
    info = path.stat()
    return FileStat(size=info.st_size, mod_time=normalize_mtime(info.st_mtime))


__all__ = [
    "FileStat",
    "filter_paths",
    "list_files",
    "matches_guardrail",
    "stat_file",
    "to_slash",
]
