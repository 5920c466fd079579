"""Scan pipeline orchestration."""

from __future__ import annotations

import os
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from palace_index.core.config import Settings
from palace_index.core.errors import AnalysisError, ScanError
from palace_index.core.logging import bind_context, get_logger, log_context
from palace_index.core.metrics import INDEX_CHUNKS, INDEX_FILES, SCAN_DURATION
from palace_index.core.workspace import (
    Guardrails,
    ensure_layout,
    load_guardrails,
    require_workspace,
    write_artifact,
)
from palace_index.db.store import ContentStore
from palace_index.ingest.analyzers import AnalyzerRegistry, default_registry, detect_language
from palace_index.ingest.chunker import chunk_content
from palace_index.ingest.discovery import list_files
from palace_index.ingest.types import FileRecord
from palace_index.models.entities import ScanSummary
from palace_index.utils.hashing import sha256_bytes
from palace_index.utils.time import isoformat, normalize_mtime, utc_now

logger = get_logger(__name__)

MAX_SCAN_WORKERS = 8
SCAN_ARTIFACT = "scan.json"


class Scanner:
    """Rebuild the whole index for a workspace in one transaction."""

    def __init__(
        self,
        root: Path,
        store: ContentStore,
        settings: Settings,
        registry: AnalyzerRegistry | None = None,
    ) -> None:
        self.root = root.expanduser().resolve()
        self.store = store
        self.settings = settings
        self.registry = registry if registry is not None else default_registry()

    def scan(self, guardrails: Guardrails | None = None) -> ScanSummary:
        with log_context(operation="scan", root=str(self.root)):
            return self._scan(guardrails)

    def _scan(self, guardrails: Guardrails | None) -> ScanSummary:
        started_at = utc_now()
        start_time = time.perf_counter()
        require_workspace(self.root, "walk")
        ensure_layout(self.root)
        guardrails = guardrails or load_guardrails(self.root)
        try:
            paths = list_files(self.root, guardrails)
        except OSError as exc:
            raise ScanError(str(self.root), "walk", exc) from exc

        logger.info("Scanning %s files", len(paths))
        with ThreadPoolExecutor(max_workers=self.worker_count()) as pool:
            records = list(pool.map(bind_context(self.process_file), paths))

        summary = self.store.write_scan(str(self.root), records, started_at)
        duration = time.perf_counter() - start_time
        SCAN_DURATION.observe(duration)
        INDEX_FILES.set(summary.file_count)
        INDEX_CHUNKS.set(summary.chunk_count)
        self._write_artifact(summary, duration)
        logger.info(
            "Indexed %s files in %.2fs",
            summary.file_count,
            duration,
            extra={"ctx_scan_hash": summary.scan_hash},
        )
        return summary

    def worker_count(self) -> int:
        configured = self.settings.scan_workers
        if configured > 0:
            return configured
        return max(1, min(MAX_SCAN_WORKERS, os.cpu_count() or 1))

    def process_file(self, rel_path: str) -> FileRecord:
        full_path = self.root / rel_path
        try:
            info = full_path.stat()
        except OSError as exc:
            raise ScanError(rel_path, "stat", exc) from exc
        try:
            raw = full_path.read_bytes()
        except OSError as exc:
            raise ScanError(rel_path, "read", exc) from exc

        content = raw.decode("utf-8", errors="replace")
        chunks = chunk_content(content, self.settings.chunk_max_lines, self.settings.chunk_max_bytes)
        language = detect_language(rel_path)
        analysis = None
        analyzer = self.registry.for_language(language) if language else None
        if analyzer is not None:
            try:
                analysis = analyzer.analyze(raw, rel_path)
            except AnalysisError as exc:
                logger.warning("Indexing %s without symbols: %s", rel_path, exc)
        return FileRecord(
            path=rel_path,
            content_hash=sha256_bytes(raw),
            size=info.st_size,
            mod_time=normalize_mtime(info.st_mtime),
            chunks=chunks,
            language=language,
            analysis=analysis,
        )

    def _write_artifact(self, summary: ScanSummary, duration: float) -> None:
        write_artifact(
            self.root,
            SCAN_ARTIFACT,
            {
                "schemaVersion": "1.0.0",
                "kind": "palace/scan",
                "scanId": summary.id,
                "scanHash": summary.scan_hash,
                "root": summary.root,
                "fileCount": summary.file_count,
                "chunkCount": summary.chunk_count,
                "symbolCount": summary.symbol_count,
                "relationshipCount": summary.relationship_count,
                "startedAt": isoformat(summary.started_at),
                "completedAt": isoformat(summary.completed_at),
                "durationSeconds": round(duration, 3),
            },
        )


__all__ = ["Scanner", "SCAN_ARTIFACT", "MAX_SCAN_WORKERS"]
