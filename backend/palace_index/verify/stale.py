"""Staleness detection between the stored index and the working tree."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Literal, Mapping

from palace_index.core.logging import get_logger, log_context
from palace_index.core.metrics import STALE_ENTRIES
from palace_index.core.workspace import Guardrails, load_guardrails
from palace_index.db.store import ContentStore
from palace_index.ingest.discovery import matches_guardrail, stat_file, to_slash
from palace_index.models.entities import FileMetadata
from palace_index.utils.hashing import sha256_file
from palace_index.verify.scope import ScopeKind, ScopeSource, resolve_scope
from palace_index.verify.signal import DiffProvider

logger = get_logger(__name__)

VerifyMode = Literal["fast", "strict"]


@dataclass(slots=True)
class VerifyReport:
    stale: list[str]
    scope_kind: ScopeKind
    scope_source: ScopeSource
    candidate_count: int
    mode: VerifyMode = "fast"
    diff_range: str = ""

    @property
    def ok(self) -> bool:
        return not self.stale


def detect_stale(
    root: Path,
    candidates: Iterable[str],
    stored: Mapping[str, FileMetadata],
    guardrails: Guardrails,
    mode: VerifyMode = "fast",
    include_missing: bool = False,
) -> list[str]:
    """List every way the stored index disagrees with the candidates on disk.

    In fast mode a file whose size and truncated modification time both match
    the stored entry is accepted without hashing. An edit that keeps the size
    and lands within the same second is therefore not reported; strict mode
    hashes every stored candidate and catches it.
    """
    findings: set[str] = set()
    seen: set[str] = set()
    for raw in candidates:
        rel = to_slash(raw)
        if not rel or matches_guardrail(rel, guardrails):
            continue
        seen.add(rel)
        full_path = root / rel
        meta = stored.get(rel)
        try:
            info = stat_file(full_path)
        except FileNotFoundError:
            if meta is not None:
                findings.add(f"missing file {rel}")
            continue
        except OSError as exc:
            findings.add(f"error reading {rel}: {exc}")
            continue
        if meta is None:
            findings.add(f"new file {rel}")
            continue
        if mode == "fast" and info.size == meta.size and info.mod_time == meta.mod_time:
            continue
        try:
            digest = sha256_file(full_path)
        except OSError as exc:
            findings.add(f"error reading {rel}: {exc}")
            continue
        if digest != meta.content_hash:
            findings.add(f"changed file {rel}")

    if include_missing:
        for rel in stored:
            if rel in seen or matches_guardrail(rel, guardrails):
                continue
            findings.add(f"missing file {rel}")

    return sorted(findings)


def verify(
    root: Path,
    store: ContentStore,
    diff_range: str | None = None,
    mode: VerifyMode = "fast",
    provider: DiffProvider | None = None,
) -> VerifyReport:
    """Check the index against the working tree for the resolved scope.

    Stored files outside the candidate set are only reported missing for a
    full scope.
    """
    root = root.expanduser().resolve()
    with log_context(operation="verify", root=str(root), mode=mode, diff_range=diff_range):
        guardrails = load_guardrails(root)
        scope = resolve_scope(root, diff_range, guardrails=guardrails, provider=provider)
        stored = store.load_file_metadata()
        stale = detect_stale(
            root,
            scope.candidates,
            stored,
            guardrails,
            mode=mode,
            include_missing=scope.kind == "full",
        )
        STALE_ENTRIES.labels(scope=scope.kind).set(len(stale))
        logger.info(
            "Verified %s candidates (%s scope): %s stale",
            len(scope.candidates),
            scope.kind,
            len(stale),
            extra={"ctx_scope_source": scope.source},
        )
    return VerifyReport(
        stale=stale,
        scope_kind=scope.kind,
        scope_source=scope.source,
        candidate_count=len(scope.candidates),
        mode=mode,
        diff_range=scope.diff_range,
    )


__all__ = ["VerifyMode", "VerifyReport", "detect_stale", "verify"]
