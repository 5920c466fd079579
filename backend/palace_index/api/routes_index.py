"""Scan and verification routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from palace_index.api.dependencies import get_app_settings, get_scanner, get_store, get_workspace_root
from palace_index.api.errors import to_http_exception
from palace_index.core.config import Settings
from palace_index.core.errors import IndexNotFoundError, PalaceError
from palace_index.db.store import ContentStore
from palace_index.ingest.pipeline import Scanner
from palace_index.models.dto import ScanResponse, VerifyRequest, VerifyResponse
from palace_index.models.entities import ScanSummary
from palace_index.verify.signal import GitDiffProvider
from palace_index.verify.stale import verify

router = APIRouter()


@router.post("/scan", response_model=ScanResponse, summary="Rebuild the index for the workspace")
async def run_scan(scanner: Scanner = Depends(get_scanner)) -> ScanResponse:
    try:
        summary = scanner.scan()
    except PalaceError as exc:
        raise to_http_exception(exc) from exc
    return _summary_to_response(summary)


@router.post("/verify", response_model=VerifyResponse, summary="Check the index against the working tree")
async def run_verify(
    request: VerifyRequest,
    store: ContentStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> VerifyResponse:
    try:
        report = verify(
            get_workspace_root(),
            store,
            diff_range=request.diff_range,
            mode=request.mode or settings.verify_mode,
            provider=GitDiffProvider(settings.git_binary),
        )
    except PalaceError as exc:
        raise to_http_exception(exc) from exc
    return VerifyResponse(
        ok=report.ok,
        stale=report.stale,
        scope_kind=report.scope_kind,
        scope_source=report.scope_source,
        candidate_count=report.candidate_count,
        mode=report.mode,
        diff_range=report.diff_range,
    )


@router.get("/scans/latest", response_model=ScanResponse, summary="Return the most recent completed scan")
async def latest_scan(store: ContentStore = Depends(get_store)) -> ScanResponse:
    summary = store.latest_scan()
    if summary is None:
        raise to_http_exception(IndexNotFoundError("no scan records found; run palace scan"))
    return _summary_to_response(summary)


def _summary_to_response(summary: ScanSummary) -> ScanResponse:
    return ScanResponse(
        scan_id=summary.id,
        files_indexed=summary.file_count,
        chunks_indexed=summary.chunk_count,
        symbols_indexed=summary.symbol_count,
        relationships_indexed=summary.relationship_count,
        scan_hash=summary.scan_hash,
        started_at=summary.started_at,
        completed_at=summary.completed_at,
    )


__all__ = ["router"]
