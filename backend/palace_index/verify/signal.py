"""Change signals: the set of paths touched by a diff range."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Literal, Protocol

import orjson
from pydantic import BaseModel, Field, ValidationError

from palace_index.core.errors import ScopeResolutionError
from palace_index.core.logging import get_logger
from palace_index.core.workspace import Guardrails, ensure_layout, load_guardrails, outputs_dir, write_artifact
from palace_index.ingest.discovery import matches_guardrail, to_slash
from palace_index.utils.hashing import sha256_file
from palace_index.utils.time import isoformat, utc_now

logger = get_logger(__name__)

SIGNAL_ARTIFACT = "change-signal.json"
SIGNAL_KIND = "palace/change-signal"

ChangeStatus = Literal["added", "modified", "deleted"]


class Change(BaseModel):
    path: str
    status: ChangeStatus
    hash: str | None = None


class Provenance(BaseModel):
    created_by: str = Field(default="palace signal", alias="createdBy")
    created_at: str = Field(default="", alias="createdAt")

    model_config = {"populate_by_name": True}


class ChangeSignal(BaseModel):
    """Persisted form of ``.palace/outputs/change-signal.json``."""

    schema_version: str = Field(default="1.0.0", alias="schemaVersion")
    kind: str = SIGNAL_KIND
    diff_range: str = Field(alias="diffRange")
    generated_at: str = Field(default="", alias="generatedAt")
    changes: list[Change] = Field(default_factory=list)
    provenance: Provenance = Field(default_factory=Provenance)

    model_config = {"populate_by_name": True, "extra": "ignore"}


class DiffProvider(Protocol):
    """Returns raw ``--name-status -z`` output for a diff range."""

    def name_status(self, root: Path, diff_range: str) -> bytes:
        ...


class GitDiffProvider:
    def __init__(self, binary: str = "git") -> None:
        self.binary = binary

    def name_status(self, root: Path, diff_range: str) -> bytes:
        command = [self.binary, "diff", "--name-status", "-z", diff_range]
        try:
            completed = subprocess.run(command, cwd=root, capture_output=True, check=False)
        except OSError as exc:
            raise ScopeResolutionError(diff_range, f"cannot run {self.binary}: {exc}") from exc
        if completed.returncode != 0:
            detail = completed.stderr.decode("utf-8", errors="replace").strip()
            raise ScopeResolutionError(diff_range, f"git diff failed: {detail or completed.returncode}")
        return completed.stdout


def parse_status(token: str) -> ChangeStatus:
    if token == "A":
        return "added"
    if token == "D":
        return "deleted"
    return "modified"


def parse_name_status(output: bytes) -> list[tuple[str, str]]:
    """Turn NUL separated name-status output into ``(status, path)`` pairs.

    Renames and copies carry two paths; the destination is kept.
    """
    fields = output.decode("utf-8", errors="surrogateescape").split("\0")
    pairs: list[tuple[str, str]] = []
    i = 0
    while i < len(fields):
        token = fields[i].strip()
        if not token:
            i += 1
            continue
        if token[0] in ("R", "C"):
            if i + 2 >= len(fields):
                break
            pairs.append((token, fields[i + 2]))
            i += 3
            continue
        if i + 1 >= len(fields):
            break
        pairs.append((token, fields[i + 1]))
        i += 2
    return pairs


def diff_changes(
    root: Path,
    diff_range: str,
    guardrails: Guardrails,
    provider: DiffProvider,
) -> list[Change]:
    """Changed, non-excluded paths of a diff range, sorted by path.

    Non-deleted paths are hashed; a path that cannot be hashed makes the whole
    diff unresolvable.
    """
    by_path: dict[str, Change] = {}
    for token, raw_path in parse_name_status(provider.name_status(root, diff_range)):
        path = to_slash(raw_path)
        if not path or matches_guardrail(path, guardrails):
            continue
        status = parse_status(token)
        content_hash = None
        if status != "deleted":
            try:
                content_hash = sha256_file(root / path)
            except OSError as exc:
                raise ScopeResolutionError(diff_range, f"hash {path}: {exc}") from exc
        by_path[path] = Change(path=path, status=status, hash=content_hash)
    return [by_path[path] for path in sorted(by_path)]


def generate_change_signal(
    root: Path,
    diff_range: str,
    provider: DiffProvider | None = None,
    guardrails: Guardrails | None = None,
) -> ChangeSignal:
    """Compute the changes of ``diff_range`` and persist them as an artifact."""
    if not diff_range.strip():
        raise ScopeResolutionError(diff_range, "a diff range is required")
    root = root.expanduser().resolve()
    ensure_layout(root)
    guardrails = guardrails or load_guardrails(root)
    changes = diff_changes(root, diff_range, guardrails, provider or GitDiffProvider())
    now = isoformat(utc_now())
    signal = ChangeSignal(
        diff_range=diff_range,
        generated_at=now,
        changes=changes,
        provenance=Provenance(created_by="palace signal", created_at=now),
    )
    write_artifact(root, SIGNAL_ARTIFACT, signal.model_dump(by_alias=True, exclude_none=True))
    logger.info("Wrote change signal for %s with %s changes", diff_range, len(changes))
    return signal


def load_change_signal(root: Path, diff_range: str = "") -> ChangeSignal | None:
    """Read the persisted change signal. Returns ``None`` when there is none.

    A signal that exists but cannot be read or validated raises
    :class:`ScopeResolutionError` rather than being ignored.
    """
    path = outputs_dir(root) / SIGNAL_ARTIFACT
    if not path.exists():
        return None
    try:
        return ChangeSignal.model_validate(orjson.loads(path.read_bytes()))
    except (OSError, orjson.JSONDecodeError, ValidationError) as exc:
        raise ScopeResolutionError(diff_range, f"invalid change signal {path}: {exc}") from exc


__all__ = [
    "Change",
    "ChangeSignal",
    "DiffProvider",
    "GitDiffProvider",
    "SIGNAL_ARTIFACT",
    "diff_changes",
    "generate_change_signal",
    "load_change_signal",
    "parse_name_status",
    "parse_status",
]
