"""Context pack assembly, gated on a fresh index."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

from pydantic import BaseModel, Field

from palace_index.core.config import Settings, get_settings
from palace_index.core.errors import IndexNotFoundError, ManifestError, SearchQueryError, StaleIndexError
from palace_index.core.logging import get_logger
from palace_index.core.manifest import ManifestDecoder, decode_manifest
from palace_index.core.workspace import ensure_layout, load_guardrails, load_palace_config, load_rooms, write_artifact
from palace_index.db.store import ContentStore
from palace_index.models.entities import ChunkHit
from palace_index.retrieval.query import prepare_query
from palace_index.utils.time import isoformat, utc_now
from palace_index.verify.scope import resolve_scope
from palace_index.verify.signal import DiffProvider
from palace_index.verify.stale import detect_stale

logger = get_logger(__name__)

CONTEXT_PACK_ARTIFACT = "context-pack.json"
MAX_FINDINGS = 5
FINDING_SEARCH_LIMIT = 20

_CAMEL = {"populate_by_name": True}


class ScopeInfo(BaseModel):
    mode: str
    source: str
    file_count: int = Field(alias="fileCount")
    diff_range: str = Field(default="", alias="diffRange")

    model_config = _CAMEL


class Finding(BaseModel):
    summary: str
    detail: str = ""
    severity: str = "info"
    file: str = ""


class PackProvenance(BaseModel):
    created_by: str = Field(default="palace collect", alias="createdBy")
    created_at: str = Field(default="", alias="createdAt")

    model_config = _CAMEL


class ContextPack(BaseModel):
    schema_version: str = Field(default="1.0.0", alias="schemaVersion")
    kind: str = "palace/context-pack"
    goal: str
    scan_id: str = Field(alias="scanId")
    scan_hash: str = Field(alias="scanHash")
    scan_time: str = Field(alias="scanTime")
    scope: ScopeInfo
    rooms_visited: list[str] = Field(default_factory=list, alias="roomsVisited")
    files_referenced: list[str] = Field(default_factory=list, alias="filesReferenced")
    findings: list[Finding] = Field(default_factory=list)
    provenance: PackProvenance = Field(default_factory=PackProvenance)

    model_config = _CAMEL


def collect(
    root: Path,
    store: ContentStore,
    goal: str,
    diff_range: str | None = None,
    allow_stale: bool = False,
    settings: Settings | None = None,
    provider: DiffProvider | None = None,
    manifest_decoder: ManifestDecoder = decode_manifest,
) -> ContextPack:
    """Build and persist a context pack for ``goal``.

    Requires a completed scan. Unless ``allow_stale`` is set, any staleness in
    the resolved scope raises :class:`StaleIndexError`.
    """
    settings = settings or get_settings()
    root = root.expanduser().resolve()
    ensure_layout(root)
    summary = store.latest_scan()
    if summary is None:
        raise IndexNotFoundError("no scan records found; run palace scan")

    guardrails = load_guardrails(root, manifest_decoder)
    scope = resolve_scope(root, diff_range, guardrails=guardrails, provider=provider)
    stored = store.load_file_metadata()
    if not allow_stale:
        stale = detect_stale(
            root,
            scope.candidates,
            stored,
            guardrails,
            mode="fast",
            include_missing=scope.kind == "full",
        )
        if stale:
            raise StaleIndexError(stale, preview_limit=settings.stale_preview_limit)

    try:
        config = load_palace_config(root, manifest_decoder)
    except ManifestError as exc:
        logger.warning("Ignoring invalid workspace config: %s", exc)
        config = None
    default_room = config.default_room if config else ""
    room_entries: list[str] = []
    if default_room:
        room = load_rooms(root, manifest_decoder).get(default_room)
        if room is not None:
            room_entries = [entry for entry in room.entry_points if entry in stored]

    changed = scope.candidates if scope.kind == "diff" else []
    goal = goal.strip() or "unspecified"
    now = isoformat(utc_now())
    pack = ContextPack(
        goal=goal,
        scan_id=f"scan-{summary.id}",
        scan_hash=summary.scan_hash,
        scan_time=isoformat(summary.completed_at),
        scope=ScopeInfo(
            mode=scope.kind,
            source=scope.source,
            file_count=len(scope.candidates),
            diff_range=scope.diff_range,
        ),
        rooms_visited=[default_room] if default_room else [],
        files_referenced=merge_unique(changed, room_entries),
        findings=_findings(store, goal, changed),
        provenance=PackProvenance(created_by="palace collect", created_at=now),
    )
    write_artifact(root, CONTEXT_PACK_ARTIFACT, pack.model_dump(by_alias=True))
    logger.info("Collected context pack with %s findings", len(pack.findings))
    return pack


def merge_unique(*lists: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    merged: list[str] = []
    for values in lists:
        for value in values:
            if value and value not in seen:
                seen.add(value)
                merged.append(value)
    return merged


def prioritize_hits(hits: Sequence[ChunkHit], changed: Sequence[str]) -> list[ChunkHit]:
    if not changed:
        return list(hits)
    wanted = set(changed)
    first = [hit for hit in hits if hit.path in wanted]
    rest = [hit for hit in hits if hit.path not in wanted]
    return first + rest


def _findings(store: ContentStore, goal: str, changed: Sequence[str]) -> list[Finding]:
    prepared = prepare_query(goal)
    if prepared.is_empty:
        return []
    try:
        hits = [hit for hit, _ in store.search_chunks(prepared.expression, FINDING_SEARCH_LIMIT)]
    except SearchQueryError as exc:
        logger.warning("Skipping findings: %s", exc)
        return []
    return [
        Finding(
            summary=f"content match for goal in {hit.path}",
            detail=f"lines {hit.start_line}-{hit.end_line}",
            file=hit.path,
        )
        for hit in prioritize_hits(hits, changed)[:MAX_FINDINGS]
    ]


__all__ = ["ContextPack", "Finding", "ScopeInfo", "collect", "merge_unique", "prioritize_hits"]
