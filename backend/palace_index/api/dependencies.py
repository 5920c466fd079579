"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from palace_index.core.config import Settings, get_settings
from palace_index.core.workspace import require_workspace
from palace_index.db.sqlite import SQLiteDatabase
from palace_index.db.store import ContentStore
from palace_index.ingest.pipeline import Scanner
from palace_index.retrieval import Butler, CallGraphQuery

_DB: SQLiteDatabase | None = None
_STORE: ContentStore | None = None
_SCANNER: Scanner | None = None
_BUTLER: Butler | None = None
_CALLGRAPH: CallGraphQuery | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_workspace_root() -> Path:
    return get_app_settings().workspace_root.expanduser().resolve()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        settings = get_app_settings()
        root = require_workspace(get_workspace_root())
        _DB = SQLiteDatabase(settings.database_path(root))
    return _DB


def get_store() -> ContentStore:
    global _STORE
    if _STORE is None:
        _STORE = ContentStore(get_database())
    return _STORE


def get_scanner() -> Scanner:
    global _SCANNER
    if _SCANNER is None:
        _SCANNER = Scanner(get_workspace_root(), get_store(), get_app_settings())
    return _SCANNER


def get_butler() -> Butler:
    global _BUTLER
    if _BUTLER is None:
        _BUTLER = Butler(get_store(), get_workspace_root(), settings=get_app_settings())
    return _BUTLER


def get_callgraph() -> CallGraphQuery:
    global _CALLGRAPH
    if _CALLGRAPH is None:
        _CALLGRAPH = CallGraphQuery(get_store())
    return _CALLGRAPH


def reset_dependencies() -> None:
    """Drop cached singletons, closing the database connection."""
    global _DB, _STORE, _SCANNER, _BUTLER, _CALLGRAPH
    if _DB is not None:
        _DB.close()
    _DB = None
    _STORE = None
    _SCANNER = None
    _BUTLER = None
    _CALLGRAPH = None
    get_app_settings.cache_clear()
    get_settings.cache_clear()


__all__ = [
    "get_app_settings",
    "get_butler",
    "get_callgraph",
    "get_database",
    "get_scanner",
    "get_store",
    "get_workspace_root",
    "reset_dependencies",
]
