"""Call-graph queries over analyzer relationships."""

from __future__ import annotations

from palace_index.core.errors import SymbolNotFoundError
from palace_index.db.store import ContentStore
from palace_index.models.entities import CallGraph, CallSite

_CALLABLE_KINDS = ("function", "method")
_CALLABLE_PLACEHOLDERS = ", ".join("?" for _ in _CALLABLE_KINDS)

_TARGET_MATCH = "(target_symbol = ? OR substr(target_symbol, -?) = ? OR substr(target_symbol, -?) = ?)"


def _target_params(symbol: str) -> list[object]:
    dotted = f".{symbol}"
    scoped = f"::{symbol}"
    return [symbol, len(dotted), dotted, len(scoped), scoped]


class CallGraphQuery:
    """Who calls a symbol, what a symbol calls, and per-file call graphs."""

    def __init__(self, store: ContentStore) -> None:
        self.db = store.db

    def incoming_calls(self, symbol: str) -> list[CallSite]:
        """Call sites whose target is ``symbol`` or a name qualified with it.

        ``parse`` matches calls to ``parse``, ``config.parse`` and
        ``Config::parse``. Each site is attributed to the narrowest function
        or method enclosing the call line.
        """
        rows = self.db.query(
            f"""
            SELECT source_file, line, target_symbol
            FROM relationships
            WHERE kind = 'call' AND {_TARGET_MATCH}
            ORDER BY source_file, line
            """,
            _target_params(symbol),
        )
        return [
            CallSite(
                file_path=row["source_file"],
                line=row["line"],
                callee_symbol=row["target_symbol"],
                caller_symbol=self.enclosing_symbol(row["source_file"], row["line"]),
            )
            for row in rows
        ]

    def outgoing_calls(self, symbol: str, file_path: str | None = None) -> list[CallSite]:
        """Calls made inside the body of ``symbol``.

        Without ``file_path`` the first symbol with that name is used.
        """
        definition = self.db.query_one(
            """
            SELECT file_path, line_start, line_end
            FROM symbols
            WHERE name = ? AND (? = '' OR file_path = ?)
            ORDER BY id
            LIMIT 1
            """,
            [symbol, file_path or "", file_path or ""],
        )
        if definition is None:
            raise SymbolNotFoundError(symbol)
        rows = self.db.query(
            """
            SELECT source_file, line, target_symbol
            FROM relationships
            WHERE kind = 'call' AND source_file = ? AND line >= ? AND line <= ?
            ORDER BY line, id
            """,
            [definition["file_path"], definition["line_start"], definition["line_end"]],
        )
        return [
            CallSite(
                file_path=row["source_file"],
                line=row["line"],
                callee_symbol=row["target_symbol"],
                caller_symbol=symbol,
            )
            for row in rows
        ]

    def call_graph(self, file_path: str) -> CallGraph:
        """Outgoing calls from a file plus incoming calls from other files."""
        rows = self.db.query(
            """
            SELECT source_file, line, target_symbol
            FROM relationships
            WHERE kind = 'call' AND source_file = ?
            ORDER BY line, id
            """,
            [file_path],
        )
        outgoing = [
            CallSite(
                file_path=row["source_file"],
                line=row["line"],
                callee_symbol=row["target_symbol"],
                caller_symbol=self.enclosing_symbol(row["source_file"], row["line"]),
            )
            for row in rows
        ]
        names = self.db.query(
            """
            SELECT name FROM symbols WHERE file_path = ?
            GROUP BY name ORDER BY MIN(line_start), name
            """,
            [file_path],
        )
        incoming: list[CallSite] = []
        for row in names:
            incoming.extend(call for call in self.incoming_calls(row["name"]) if call.file_path != file_path)
        return CallGraph(scope=file_path, incoming_calls=incoming, outgoing_calls=outgoing)

    def enclosing_symbol(self, file_path: str, line: int) -> str:
        row = self.db.query_one(
            f"""
            SELECT name FROM symbols
            WHERE file_path = ? AND line_start <= ? AND line_end >= ?
              AND kind IN ({_CALLABLE_PLACEHOLDERS})
            ORDER BY (line_end - line_start) ASC, id
            LIMIT 1
            """,
            [file_path, line, line, *_CALLABLE_KINDS],
        )
        return row["name"] if row else ""

    def callers_count(self, symbol: str) -> int:
        row = self.db.query_one(
            f"SELECT COUNT(*) AS total FROM relationships WHERE kind = 'call' AND {_TARGET_MATCH}",
            _target_params(symbol),
        )
        return int(row["total"]) if row else 0

    def most_called_symbols(self, limit: int = 20) -> list[tuple[str, int]]:
        if limit <= 0:
            limit = 20
        rows = self.db.query(
            """
            SELECT target_symbol, COUNT(*) AS call_count
            FROM relationships
            WHERE kind = 'call'
            GROUP BY target_symbol
            ORDER BY call_count DESC, target_symbol
            LIMIT ?
            """,
            [limit],
        )
        return [(row["target_symbol"], int(row["call_count"])) for row in rows]


__all__ = ["CallGraphQuery"]
