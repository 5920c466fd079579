"""Search and call-graph retrieval package exports."""

from .butler import Butler, GroupedResults, SearchResult
from .callgraph import CallGraphQuery
from .fuzzy import FuzzyResult, suggest_matches
from .query import PreparedQuery, prepare_query

__all__ = [
    "Butler",
    "CallGraphQuery",
    "FuzzyResult",
    "GroupedResults",
    "PreparedQuery",
    "SearchResult",
    "prepare_query",
    "suggest_matches",
]
