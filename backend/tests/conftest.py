"""Test fixtures for the palace index."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Iterator

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from palace_index.api import dependencies as deps  # noqa: E402
from palace_index.core.config import Settings  # noqa: E402
from palace_index.db.sqlite import SQLiteDatabase  # noqa: E402
from palace_index.db.store import ContentStore  # noqa: E402
from palace_index.ingest.pipeline import Scanner  # noqa: E402

WriteFile = Callable[[str, str], Path]


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    root.mkdir()
    return root.resolve()


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, workspace: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("PALACE_WORKSPACE_ROOT", str(workspace))
    monkeypatch.setenv("PALACE_CONFIG", str(tmp_path / "missing-config.yaml"))
    monkeypatch.delenv("PALACE_DB_PATH", raising=False)
    deps.reset_dependencies()
    yield
    deps.reset_dependencies()
    logging.getLogger().handlers = []


@pytest.fixture
def write_file(workspace: Path) -> WriteFile:
    def _write(rel_path: str, content: str) -> Path:
        target = workspace / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    return _write


@pytest.fixture
def settings(workspace: Path) -> Settings:
    return Settings(workspace_root=workspace, scan_workers=2)


@pytest.fixture
def store(workspace: Path, settings: Settings) -> Iterator[ContentStore]:
    content_store = ContentStore(SQLiteDatabase(settings.database_path(workspace)))
    yield content_store
    content_store.db.close()


@pytest.fixture
def scanner(workspace: Path, store: ContentStore, settings: Settings) -> Scanner:
    return Scanner(workspace, store, settings)


LOGIN_GO = "package auth\n\nfunc ValidatePassword(pw string) bool {\n\treturn len(pw) >= 8\n}\n"


@pytest.fixture
def login_workspace(write_file: WriteFile) -> None:
    """A Go login handler plus a long README that mentions passwords once."""
    write_file("auth/login.go", LOGIN_GO)
    filler = "\n".join(f"Line {i} describes general project setup and tooling." for i in range(60))
    write_file("README.md", f"# Project\n\n{filler}\nChoose a strong password.\n")
    write_file("src/util.py", "def add(a, b):\n    return a + b\n")
    write_file("docs/setup.md", "Install the toolchain and run the build.\n")
