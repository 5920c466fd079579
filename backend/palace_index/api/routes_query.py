"""Search and call-graph routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from palace_index.api.dependencies import get_butler, get_callgraph
from palace_index.api.errors import to_http_exception
from palace_index.core.errors import PalaceError
from palace_index.models.dto import (
    CallCountResponse,
    CallGraphResponse,
    CallSiteModel,
    CallSitesResponse,
    FileContentResponse,
    GroupedResultsModel,
    SearchRequest,
    SearchResponse,
    SearchResultModel,
    SuggestResponse,
    SuggestionModel,
    SymbolCallCount,
    TopCalledResponse,
)
from palace_index.models.entities import CallSite
from palace_index.retrieval import Butler, CallGraphQuery

router = APIRouter()


@router.post("/search", response_model=SearchResponse, summary="Ranked full-text search grouped by room")
async def run_search(request: SearchRequest, butler: Butler = Depends(get_butler)) -> SearchResponse:
    try:
        groups = butler.search(request.query, limit=request.limit, room=request.room)
    except PalaceError as exc:
        raise to_http_exception(exc) from exc
    suggestions = [] if groups else butler.suggest_for_query(request.query)
    return SearchResponse(
        query=request.query,
        groups=[
            GroupedResultsModel(
                room=group.room,
                summary=group.summary,
                results=[
                    SearchResultModel(
                        path=result.path,
                        chunk_index=result.chunk_index,
                        start_line=result.start_line,
                        end_line=result.end_line,
                        snippet=result.snippet,
                        score=result.score,
                        room=result.room,
                        is_entry=result.is_entry,
                        boosts=result.boosts if request.explain else None,
                    )
                    for result in group.results
                ],
            )
            for group in groups
        ],
        suggestions=suggestions,
    )


@router.get("/calls/incoming", response_model=CallSitesResponse, summary="Call sites targeting a symbol")
async def incoming_calls(
    symbol: str = Query(..., min_length=1),
    graph: CallGraphQuery = Depends(get_callgraph),
) -> CallSitesResponse:
    return CallSitesResponse(symbol=symbol, calls=_sites(graph.incoming_calls(symbol)))


@router.get("/calls/outgoing", response_model=CallSitesResponse, summary="Calls made inside a symbol")
async def outgoing_calls(
    symbol: str = Query(..., min_length=1),
    file: str | None = Query(default=None, description="Restrict the definition to this file"),
    graph: CallGraphQuery = Depends(get_callgraph),
) -> CallSitesResponse:
    try:
        calls = graph.outgoing_calls(symbol, file_path=file)
    except PalaceError as exc:
        raise to_http_exception(exc) from exc
    return CallSitesResponse(symbol=symbol, calls=_sites(calls))


@router.get("/calls/count", response_model=CallCountResponse, summary="Number of call sites targeting a symbol")
async def call_count(
    symbol: str = Query(..., min_length=1),
    graph: CallGraphQuery = Depends(get_callgraph),
) -> CallCountResponse:
    return CallCountResponse(symbol=symbol, count=graph.callers_count(symbol))


@router.get("/calls/top", response_model=TopCalledResponse, summary="Most frequently called symbols")
async def top_called(
    limit: int = Query(default=20, ge=1, le=200),
    graph: CallGraphQuery = Depends(get_callgraph),
) -> TopCalledResponse:
    return TopCalledResponse(
        symbols=[SymbolCallCount(symbol=name, callers=count) for name, count in graph.most_called_symbols(limit)]
    )


@router.get("/calls/graph", response_model=CallGraphResponse, summary="Incoming and outgoing calls of a file")
async def file_call_graph(
    file: str = Query(..., min_length=1),
    graph: CallGraphQuery = Depends(get_callgraph),
) -> CallGraphResponse:
    result = graph.call_graph(file)
    return CallGraphResponse(
        scope=result.scope,
        incoming_calls=_sites(result.incoming_calls),
        outgoing_calls=_sites(result.outgoing_calls),
    )


@router.get("/suggest", response_model=SuggestResponse, summary="Symbols and common terms close to a word")
async def suggest_terms(
    term: str = Query(..., min_length=1),
    limit: int = Query(default=10, ge=1, le=50),
    butler: Butler = Depends(get_butler),
) -> SuggestResponse:
    return SuggestResponse(
        term=term,
        suggestions=[
            SuggestionModel(term=match.term, distance=match.distance, score=match.score)
            for match in butler.suggest(term, limit=limit)
        ],
    )


@router.get("/files", response_model=FileContentResponse, summary="Indexed content of one file")
async def read_file(
    path: str = Query(..., min_length=1),
    butler: Butler = Depends(get_butler),
) -> FileContentResponse:
    try:
        content = butler.read_file(path)
    except PalaceError as exc:
        raise to_http_exception(exc) from exc
    return FileContentResponse(path=path, content=content)


def _sites(calls: list[CallSite]) -> list[CallSiteModel]:
    return [
        CallSiteModel(
            file_path=call.file_path,
            line=call.line,
            callee_symbol=call.callee_symbol,
            caller_symbol=call.caller_symbol,
        )
        for call in calls
    ]


__all__ = ["router"]
