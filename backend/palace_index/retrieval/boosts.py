"""Multiplicative re-ranking boosts applied on top of the BM25 score."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Sequence

ENTRY_POINT_FACTOR = 3.0
PATH_QUERY_FACTOR = 2.5
PATH_WORD_FACTOR = 1.5
CODE_FILE_FACTOR = 1.2

CODE_EXTENSIONS = frozenset(
    {".go", ".ts", ".tsx", ".js", ".jsx", ".py", ".rs", ".java", ".c", ".cpp", ".rb", ".swift", ".kt"}
)


@dataclass(slots=True, frozen=True)
class BoostContext:
    path: str
    query: str
    is_entry: bool


@dataclass(slots=True, frozen=True)
class Boost:
    name: str
    factor: Callable[[BoostContext], float]


def entry_point_factor(ctx: BoostContext) -> float:
    return ENTRY_POINT_FACTOR if ctx.is_entry else 1.0


def path_match_factor(ctx: BoostContext) -> float:
    path = ctx.path.lower()
    if ctx.query.lower() in path:
        return PATH_QUERY_FACTOR
    for word in ctx.query.split():
        if len(word) > 2 and word.lower() in path:
            return PATH_WORD_FACTOR
    return 1.0


def code_file_factor(ctx: BoostContext) -> float:
    return CODE_FILE_FACTOR if PurePosixPath(ctx.path).suffix.lower() in CODE_EXTENSIONS else 1.0


DEFAULT_BOOSTS: tuple[Boost, ...] = (
    Boost("entry_point", entry_point_factor),
    Boost("path_match", path_match_factor),
    Boost("code_file", code_file_factor),
)


def apply_boosts(base_score: float, ctx: BoostContext, boosts: Sequence[Boost] = DEFAULT_BOOSTS) -> float:
    """Multiply ``base_score`` by every boost factor, in order."""
    score = base_score
    for boost in boosts:
        score *= boost.factor(ctx)
    return score


def explain_boosts(ctx: BoostContext, boosts: Sequence[Boost] = DEFAULT_BOOSTS) -> dict[str, float]:
    return {boost.name: boost.factor(ctx) for boost in boosts}


__all__ = [
    "Boost",
    "BoostContext",
    "CODE_EXTENSIONS",
    "DEFAULT_BOOSTS",
    "apply_boosts",
    "code_file_factor",
    "entry_point_factor",
    "explain_boosts",
    "path_match_factor",
]
