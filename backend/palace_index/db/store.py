"""Persistent content store: files, chunks, full-text rows, symbols and scans."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Sequence

from palace_index.core.errors import ScanError, SearchQueryError
from palace_index.core.logging import get_logger
from palace_index.db.sqlite import SQLiteDatabase
from palace_index.ingest.tokens import identifier_subwords
from palace_index.ingest.types import FileRecord, Symbol
from palace_index.models.entities import Chunk, ChunkHit, FileMetadata, ScanSummary
from palace_index.utils.hashing import scan_digest
from palace_index.utils.time import isoformat, parse_isoformat, utc_now

logger = get_logger(__name__)


class ContentStore:
    """All reads and writes against the index database.

    The only mutation is :meth:`write_scan`, which replaces the whole snapshot
    inside a single transaction.
    """

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db
        self.db.ensure_schema()

    # Writes -----------------------------------------------------------

    def write_scan(self, root: str, records: Sequence[FileRecord], started_at: datetime) -> ScanSummary:
        """Replace the indexed snapshot with ``records`` and record the scan.

        Any SQLite failure rolls the transaction back, leaving the previous
        snapshot in place, and surfaces as :class:`ScanError`.
        """
        ordered = sorted(records, key=lambda record: record.path)
        scan_hash = scan_digest((record.path, record.content_hash) for record in ordered)
        try:
            with self.db.transaction() as cur:
                chunk_count, symbol_count, relationship_count = _replace_snapshot(cur, ordered)
                completed_at = utc_now()
                cur.execute(
                    """
                    INSERT INTO scans (
                      root, scan_hash, file_count, chunk_count, symbol_count, relationship_count,
                      started_at, completed_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        root,
                        scan_hash,
                        len(ordered),
                        chunk_count,
                        symbol_count,
                        relationship_count,
                        isoformat(started_at),
                        isoformat(completed_at),
                    ],
                )
                scan_id = cur.lastrowid
        except sqlite3.Error as exc:
            raise ScanError(str(self.db.db_path), "write", exc) from exc

        logger.info(
            "Committed scan %s with %s files and %s chunks",
            scan_id,
            len(ordered),
            chunk_count,
            extra={"ctx_scan_hash": scan_hash},
        )
        return ScanSummary(
            id=int(scan_id),
            root=root,
            scan_hash=scan_hash,
            file_count=len(ordered),
            chunk_count=chunk_count,
            started_at=parse_isoformat(isoformat(started_at)),
            completed_at=parse_isoformat(isoformat(completed_at)),
            symbol_count=symbol_count,
            relationship_count=relationship_count,
        )

    # Reads ------------------------------------------------------------

    def latest_scan(self) -> ScanSummary | None:
        row = self.db.query_one("SELECT * FROM scans ORDER BY id DESC LIMIT 1")
        if row is None:
            return None
        return ScanSummary(
            id=row["id"],
            root=row["root"],
            scan_hash=row["scan_hash"],
            file_count=row["file_count"],
            chunk_count=row["chunk_count"],
            started_at=parse_isoformat(row["started_at"]),
            completed_at=parse_isoformat(row["completed_at"]),
            symbol_count=row["symbol_count"],
            relationship_count=row["relationship_count"],
        )

    def load_file_metadata(self) -> dict[str, FileMetadata]:
        rows = self.db.query("SELECT path, hash, size, mod_time FROM files")
        return {
            row["path"]: FileMetadata(content_hash=row["hash"], size=row["size"], mod_time=row["mod_time"])
            for row in rows
        }

    def has_file(self, path: str) -> bool:
        return self.db.query_one("SELECT 1 FROM files WHERE path = ?", [path]) is not None

    def get_chunks_for_file(self, path: str) -> list[Chunk]:
        rows = self.db.query(
            """
            SELECT chunk_index, start_line, end_line, content
            FROM chunks WHERE path = ? ORDER BY chunk_index
            """,
            [path],
        )
        return [
            Chunk(
                index=row["chunk_index"],
                start_line=row["start_line"],
                end_line=row["end_line"],
                content=row["content"],
            )
            for row in rows
        ]

    def search_chunks(self, match_expression: str, limit: int) -> list[tuple[ChunkHit, float]]:
        """Run an FTS5 ``MATCH`` and return hits with ``-bm25`` scores, best first."""
        try:
            rows = self.db.query(
                """
                SELECT c.path, c.chunk_index, c.start_line, c.end_line, c.content,
                       bm25(chunks_fts) AS rank
                FROM chunks_fts
                JOIN chunks c ON c.id = chunks_fts.rowid
                WHERE chunks_fts MATCH ?
                ORDER BY rank
                LIMIT ?
                """,
                [match_expression, limit],
            )
        except sqlite3.OperationalError as exc:
            raise SearchQueryError(f"full-text query failed for {match_expression!r}: {exc}") from exc
        return [
            (
                ChunkHit(
                    path=row["path"],
                    chunk_index=row["chunk_index"],
                    start_line=row["start_line"],
                    end_line=row["end_line"],
                    content=row["content"],
                ),
                -float(row["rank"]),
            )
            for row in rows
        ]

    def symbol_names(self) -> list[str]:
        rows = self.db.query("SELECT DISTINCT name FROM symbols ORDER BY name")
        return [row["name"] for row in rows]


def _replace_snapshot(cur: sqlite3.Cursor, records: Sequence[FileRecord]) -> tuple[int, int, int]:
    indexed_at = isoformat(utc_now())
    chunk_count = 0
    symbol_count = 0
    relationship_count = 0
    for table in ("relationships", "symbols", "chunks_fts", "chunks", "files"):
        cur.execute(f"DELETE FROM {table}")
    for record in records:
        cur.execute(
            "INSERT INTO files (path, hash, size, mod_time, indexed_at, language) VALUES (?, ?, ?, ?, ?, ?)",
            [record.path, record.content_hash, record.size, record.mod_time, indexed_at, record.language],
        )
        for chunk in record.chunks:
            cur.execute(
                """
                INSERT INTO chunks (path, chunk_index, start_line, end_line, content)
                VALUES (?, ?, ?, ?, ?)
                """,
                [record.path, chunk.index, chunk.start_line, chunk.end_line, chunk.content],
            )
            cur.execute(
                "INSERT INTO chunks_fts (rowid, path, content, subwords) VALUES (?, ?, ?, ?)",
                [cur.lastrowid, record.path, chunk.content, identifier_subwords(chunk.content)],
            )
            chunk_count += 1
        if record.analysis is not None:
            symbol_count += _insert_symbols(cur, record.path, record.analysis.symbols, None)
            cur.executemany(
                """
                INSERT INTO relationships (source_file, target_file, target_symbol, kind, line, column)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (record.path, rel.target_file, rel.target_symbol, rel.kind, rel.line, rel.column)
                    for rel in record.analysis.relationships
                ],
            )
            relationship_count += len(record.analysis.relationships)
    return chunk_count, symbol_count, relationship_count


def _insert_symbols(cur: sqlite3.Cursor, path: str, symbols: Sequence[Symbol], parent_id: int | None) -> int:
    inserted = 0
    for symbol in symbols:
        cur.execute(
            """
            INSERT INTO symbols (
              file_path, name, kind, line_start, line_end, signature, doc_comment, parent_id, exported
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                path,
                symbol.name,
                symbol.kind,
                symbol.line_start,
                symbol.line_end,
                symbol.signature,
                symbol.doc_comment,
                parent_id,
                1 if symbol.exported else 0,
            ],
        )
        inserted += 1
        if symbol.children:
            inserted += _insert_symbols(cur, path, symbol.children, cur.lastrowid)
    return inserted


__all__ = ["ContentStore"]
