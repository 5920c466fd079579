"""Translation of domain errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException

from palace_index.core.errors import (
    IndexNotFoundError,
    ManifestError,
    PalaceError,
    ScanError,
    ScopeResolutionError,
    SearchQueryError,
    StaleIndexError,
)


def to_http_exception(exc: PalaceError) -> HTTPException:
    if isinstance(exc, (LookupError, IndexNotFoundError)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, StaleIndexError):
        return HTTPException(status_code=409, detail={"message": "index is stale", "stale": exc.stale})
    if isinstance(exc, (SearchQueryError, ScopeResolutionError, ManifestError)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, ScanError):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


__all__ = ["to_http_exception"]
