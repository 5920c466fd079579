"""Exception hierarchy shared by the scan, verify and search layers."""

from __future__ import annotations

from typing import Sequence


class PalaceError(Exception):
    """Base class for every error raised by the palace index."""


class ManifestError(PalaceError):
    """A workspace config or room manifest could not be decoded."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"invalid manifest {path}: {detail}")
        self.path = path
        self.detail = detail


class ScanError(PalaceError):
    """An I/O failure aborted a scan. The previous index is left untouched."""

    def __init__(self, path: str, operation: str, cause: BaseException | str) -> None:
        super().__init__(f"{operation} {path}: {cause}")
        self.path = path
        self.operation = operation


class ScopeResolutionError(PalaceError):
    """A diff range was requested but its changed paths could not be computed."""

    def __init__(self, diff_range: str, detail: str) -> None:
        super().__init__(f"diff unavailable for {diff_range!r}: {detail}")
        self.diff_range = diff_range
        self.detail = detail


class IndexNotFoundError(PalaceError):
    """No completed scan exists for the workspace."""


class StaleIndexError(PalaceError):
    """The index no longer reflects the working tree."""

    def __init__(self, stale: Sequence[str], preview_limit: int = 20) -> None:
        preview = list(stale[:preview_limit])
        lines = "\n- ".join(preview)
        super().__init__(
            "index is stale; run palace scan\n"
            f"stale artifacts detected (showing {len(preview)}/{len(stale)}):\n- {lines}"
        )
        self.stale = list(stale)


class AnalysisError(PalaceError):
    """A language analyzer could not parse a file."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"cannot analyze {path}: {detail}")
        self.path = path


class SearchQueryError(PalaceError):
    """The full-text engine rejected a query."""


class RoomNotFoundError(PalaceError, LookupError):
    def __init__(self, name: str, suggestions: Sequence[str] = ()) -> None:
        message = f"room not found: {name}"
        if suggestions:
            message += f" (did you mean: {', '.join(suggestions)})"
        super().__init__(message)
        self.name = name
        self.suggestions = list(suggestions)


class FileNotIndexedError(PalaceError, LookupError):
    def __init__(self, path: str) -> None:
        super().__init__(f"file not found in index: {path}")
        self.path = path


class SymbolNotFoundError(PalaceError, LookupError):
    """A call-graph lookup referenced an unknown symbol."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"symbol not found: {symbol}")
        self.symbol = symbol


__all__ = [
    "PalaceError",
    "ManifestError",
    "ScanError",
    "ScopeResolutionError",
    "IndexNotFoundError",
    "StaleIndexError",
    "AnalysisError",
    "SearchQueryError",
    "RoomNotFoundError",
    "FileNotIndexedError",
    "SymbolNotFoundError",
]
