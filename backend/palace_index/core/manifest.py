"""Decoding of curated workspace manifests (JSONC, JSON and YAML)."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Callable

import orjson
import yaml

from palace_index.core.errors import ManifestError

ManifestDecoder = Callable[[Path], Any]

MANIFEST_SUFFIXES = (".jsonc", ".json", ".yaml", ".yml")

_COMMENT_RE = re.compile(r'("(?:\\.|[^"\\])*")|//[^\n]*|/\*.*?\*/', re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r'("(?:\\.|[^"\\])*")|,(?=\s*[}\]])', re.DOTALL)


def _keep_strings(match: re.Match[str]) -> str:
    return match.group(1) or ""


def clean_jsonc(text: str) -> str:
    """Strip comments and trailing commas, leaving string literals intact."""
    if not text:
        return ""
    without_comments = _COMMENT_RE.sub(_keep_strings, text)
    return _TRAILING_COMMA_RE.sub(_keep_strings, without_comments)


def decode_manifest(path: Path) -> Any:
    """Decode a manifest file based on its suffix."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(str(path), str(exc)) from exc
    suffix = path.suffix.lower()
    try:
        if suffix in (".yaml", ".yml"):
            return yaml.safe_load(raw) or {}
        return orjson.loads(clean_jsonc(raw) or "{}")
    except (orjson.JSONDecodeError, yaml.YAMLError) as exc:
        raise ManifestError(str(path), str(exc)) from exc


__all__ = ["ManifestDecoder", "MANIFEST_SUFFIXES", "clean_jsonc", "decode_manifest"]
