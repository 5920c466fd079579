"""Resolution of the set of paths a verification or collection applies to."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from palace_index.core.errors import ScopeResolutionError
from palace_index.core.workspace import Guardrails, load_guardrails
from palace_index.ingest.discovery import filter_paths, list_files, to_slash
from palace_index.verify.signal import Change, DiffProvider, GitDiffProvider, diff_changes, load_change_signal

ScopeKind = Literal["full", "diff"]
ScopeSource = Literal["full-scan", "change-signal", "git-diff"]


@dataclass(slots=True)
class ScopeResult:
    candidates: list[str]
    kind: ScopeKind
    source: ScopeSource
    diff_range: str = ""
    changes: list[Change] = field(default_factory=list)


def resolve_scope(
    root: Path,
    diff_range: str | None,
    guardrails: Guardrails | None = None,
    provider: DiffProvider | None = None,
) -> ScopeResult:
    """Return the candidate paths for ``diff_range``, or the whole workspace.

    A requested diff is never widened to a full scope: when its changes cannot
    be computed :class:`ScopeResolutionError` is raised. An empty diff is a
    valid scope with no candidates.
    """
    root = root.expanduser().resolve()
    guardrails = guardrails or load_guardrails(root)
    requested = (diff_range or "").strip()

    if not requested:
        try:
            candidates = list_files(root, guardrails)
        except OSError as exc:
            raise ScopeResolutionError("", f"cannot list workspace files: {exc}") from exc
        return ScopeResult(candidates=candidates, kind="full", source="full-scan")

    signal = load_change_signal(root, requested)
    if signal is not None and signal.diff_range.strip() == requested:
        changes = [
            change.model_copy(update={"path": to_slash(change.path)})
            for change in signal.changes
            if change.path.strip()
        ]
        source: ScopeSource = "change-signal"
    else:
        changes = diff_changes(root, requested, guardrails, provider or GitDiffProvider())
        source = "git-diff"

    candidates = filter_paths((change.path for change in changes), guardrails)
    kept = set(candidates)
    return ScopeResult(
        candidates=candidates,
        kind="diff",
        source=source,
        diff_range=requested,
        changes=[change for change in changes if change.path in kept],
    )


__all__ = ["ScopeResult", "ScopeKind", "ScopeSource", "resolve_scope"]
