"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ScanResponse(BaseModel):
    scan_id: int
    files_indexed: int
    chunks_indexed: int
    symbols_indexed: int
    relationships_indexed: int
    scan_hash: str
    started_at: datetime
    completed_at: datetime


class VerifyRequest(BaseModel):
    diff_range: str | None = Field(default=None, description="Git diff range such as HEAD~1..HEAD")
    mode: Literal["fast", "strict"] | None = None


class VerifyResponse(BaseModel):
    ok: bool
    stale: list[str]
    scope_kind: Literal["full", "diff"]
    scope_source: str
    candidate_count: int
    mode: Literal["fast", "strict"]
    diff_range: str = ""


class SearchRequest(BaseModel):
    query: str
    limit: int | None = Field(default=None, ge=1, description="Clamped to the configured maximum")
    room: str | None = None
    explain: bool = Field(default=False, description="Include per-boost factors in each result")


class SearchResultModel(BaseModel):
    path: str
    chunk_index: int
    start_line: int
    end_line: int
    snippet: str
    score: float
    room: str = ""
    is_entry: bool = False
    boosts: dict[str, float] | None = None


class GroupedResultsModel(BaseModel):
    room: str
    summary: str = ""
    results: list[SearchResultModel]


class SearchResponse(BaseModel):
    query: str
    groups: list[GroupedResultsModel]
    suggestions: list[str] = Field(default_factory=list)


class CallSiteModel(BaseModel):
    file_path: str
    line: int
    callee_symbol: str
    caller_symbol: str = ""


class CallSitesResponse(BaseModel):
    symbol: str
    calls: list[CallSiteModel]


class CallGraphResponse(BaseModel):
    scope: str
    incoming_calls: list[CallSiteModel]
    outgoing_calls: list[CallSiteModel]


class CallCountResponse(BaseModel):
    symbol: str
    count: int


class SymbolCallCount(BaseModel):
    symbol: str
    callers: int


class TopCalledResponse(BaseModel):
    symbols: list[SymbolCallCount]


class SuggestionModel(BaseModel):
    term: str
    distance: int
    score: float


class SuggestResponse(BaseModel):
    term: str
    suggestions: list[SuggestionModel]


class FileContentResponse(BaseModel):
    path: str
    content: str


class RoomModel(BaseModel):
    name: str
    summary: str = ""
    entry_points: list[str] = Field(default_factory=list)
    capabilities: list[str] = Field(default_factory=list)


__all__ = [
    "ScanResponse",
    "VerifyRequest",
    "VerifyResponse",
    "SearchRequest",
    "SearchResultModel",
    "GroupedResultsModel",
    "SearchResponse",
    "CallSiteModel",
    "CallSitesResponse",
    "CallGraphResponse",
    "CallCountResponse",
    "SymbolCallCount",
    "TopCalledResponse",
    "RoomModel",
    "SuggestionModel",
    "SuggestResponse",
    "FileContentResponse",
]
