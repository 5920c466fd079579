"""Ranked search over the content store, grouped by room."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from palace_index.core.config import Settings, get_settings
from palace_index.core.errors import FileNotIndexedError, ManifestError, RoomNotFoundError
from palace_index.core.logging import get_logger
from palace_index.core.manifest import ManifestDecoder, decode_manifest
from palace_index.core.metrics import SEARCH_QUERIES
from palace_index.core.workspace import Room, load_palace_config, load_rooms
from palace_index.db.store import ContentStore
from palace_index.retrieval.boosts import DEFAULT_BOOSTS, Boost, BoostContext, apply_boosts, explain_boosts
from palace_index.retrieval.fuzzy import (
    COMMON_PROGRAMMING_TERMS,
    FuzzyResult,
    expand_with_fuzzy_variants,
    fuzzy_match,
    max_fuzzy_distance,
    normalize_for_fuzzy,
    suggest_matches,
)
from palace_index.retrieval.query import prepare_query

logger = get_logger(__name__)

UNGROUPED_ROOM = "_ungrouped"


@dataclass(slots=True)
class SearchResult:
    path: str
    chunk_index: int
    start_line: int
    end_line: int
    snippet: str
    score: float
    room: str = ""
    is_entry: bool = False
    boosts: dict[str, float] = field(default_factory=dict)


@dataclass(slots=True)
class GroupedResults:
    room: str
    summary: str = ""
    results: list[SearchResult] = field(default_factory=list)


class Butler:
    """Search engine for a single workspace.

    Room manifests and the workspace config are read once, at construction,
    through ``manifest_decoder``; call :meth:`reload` after editing them.
    """

    def __init__(
        self,
        store: ContentStore,
        root: Path,
        manifest_decoder: ManifestDecoder = decode_manifest,
        settings: Settings | None = None,
        boosts: Sequence[Boost] = DEFAULT_BOOSTS,
    ) -> None:
        self.store = store
        self.root = root.expanduser().resolve()
        self.decoder = manifest_decoder
        self.settings = settings or get_settings()
        self.boosts = tuple(boosts)
        self.rooms: dict[str, Room] = {}
        self.entry_points: dict[str, str] = {}
        self.default_room = ""
        self.reload()

    def reload(self) -> None:
        try:
            config = load_palace_config(self.root, self.decoder)
        except ManifestError as exc:
            logger.warning("Ignoring invalid workspace config: %s", exc)
            config = None
        self.default_room = config.default_room if config else ""
        self.rooms = load_rooms(self.root, self.decoder)
        self.entry_points = {}
        for name in sorted(self.rooms):
            for entry in self.rooms[name].entry_points:
                self.entry_points.setdefault(entry, name)

    # Search -----------------------------------------------------------

    def search(self, query: str, limit: int | None = None, room: str | None = None) -> list[GroupedResults]:
        prepared = prepare_query(query)
        if prepared.is_empty:
            return []
        limit = self.settings.clamp_limit(limit)
        SEARCH_QUERIES.labels(kind=prepared.kind).inc()
        trimmed = query.strip()

        hits = self.store.search_chunks(prepared.expression, limit * self.settings.search_overfetch)
        results: list[SearchResult] = []
        for hit, base_score in hits:
            entry_room = self.entry_points.get(hit.path)
            result_room = entry_room or self.infer_room(hit.path)
            if room and result_room != room:
                continue
            ctx = BoostContext(path=hit.path, query=trimmed, is_entry=entry_room is not None)
            results.append(
                SearchResult(
                    path=hit.path,
                    chunk_index=hit.chunk_index,
                    start_line=hit.start_line,
                    end_line=hit.end_line,
                    snippet=hit.content,
                    score=apply_boosts(base_score, ctx, self.boosts),
                    room=result_room,
                    is_entry=entry_room is not None,
                    boosts=explain_boosts(ctx, self.boosts),
                )
            )

        results.sort(key=lambda result: result.score, reverse=True)
        return self.group_by_room(results[:limit])

    def infer_room(self, path: str) -> str:
        """Room whose entry-point directory contains ``path``, else the default room."""
        for name in sorted(self.rooms):
            for entry in self.rooms[name].entry_points:
                entry_dir = posixpath.dirname(entry)
                if entry_dir in ("", ".", "/"):
                    continue
                if path == entry_dir or path.startswith(entry_dir + "/"):
                    return name
        return self.default_room

    def group_by_room(self, results: Sequence[SearchResult]) -> list[GroupedResults]:
        groups: dict[str, GroupedResults] = {}
        for result in results:
            name = result.room or UNGROUPED_ROOM
            group = groups.get(name)
            if group is None:
                room = self.rooms.get(name)
                group = GroupedResults(room=name, summary=room.summary if room else "")
                groups[name] = group
            group.results.append(result)
        return list(groups.values())

    # Suggestions ------------------------------------------------------

    def vocabulary(self) -> list[str]:
        return list(dict.fromkeys([*self.store.symbol_names(), *COMMON_PROGRAMMING_TERMS]))

    def suggest(self, term: str, limit: int = 10) -> list[FuzzyResult]:
        """Symbols and common programming words that look like a typo of ``term``."""
        term = term.strip()
        if not term:
            return []
        return suggest_matches(term, self.vocabulary(), max_fuzzy_distance(len(term)))[:limit]

    def suggest_for_query(self, query: str, limit: int = 10) -> list[str]:
        """Did-you-mean words for every query word, closest first."""
        vocabulary = self.vocabulary()
        suggestions: list[str] = []
        for word in query.split():
            normalized = normalize_for_fuzzy(word)
            for variant in expand_with_fuzzy_variants(word, vocabulary)[1:]:
                if normalize_for_fuzzy(variant) != normalized and variant not in suggestions:
                    suggestions.append(variant)
        return suggestions[:limit]

    # Rooms and files --------------------------------------------------

    def list_rooms(self) -> list[Room]:
        return [self.rooms[name] for name in sorted(self.rooms)]

    def read_room(self, name: str) -> Room:
        try:
            return self.rooms[name]
        except KeyError:
            max_distance = max(1, max_fuzzy_distance(len(name)))
            close = [room for room in sorted(self.rooms) if fuzzy_match(name, room, max_distance)]
            raise RoomNotFoundError(name, close) from None

    def read_file(self, path: str) -> str:
        """Reassemble an indexed file from its chunks."""
        chunks = self.store.get_chunks_for_file(path)
        if not chunks and not self.store.has_file(path):
            raise FileNotIndexedError(path)
        return "\n".join(chunk.content for chunk in chunks)


__all__ = ["Butler", "GroupedResults", "SearchResult", "UNGROUPED_ROOM"]
