"""Tests for ranked search."""

from __future__ import annotations

from pathlib import Path

import pytest

from palace_index.core.config import Settings
from palace_index.core.errors import FileNotIndexedError, RoomNotFoundError
from palace_index.db.store import ContentStore
from palace_index.ingest.pipeline import Scanner
from palace_index.retrieval.butler import UNGROUPED_ROOM, Butler
from palace_index.verify.stale import verify

AUTH_ROOM = """{
  "name": "auth",
  "summary": "Authentication",
  "entryPoints": ["./auth/login.go"],
  "capabilities": ["login"]
}"""


def _flatten(groups):
    return [result for group in groups for result in group.results]


@pytest.mark.usefixtures("login_workspace")
def test_login_handler_ranks_above_readme(workspace: Path, scanner: Scanner, store: ContentStore, settings: Settings) -> None:
    scanner.scan()
    butler = Butler(store, workspace, settings=settings)

    groups = butler.search("password validation")
    results = _flatten(groups)

    assert [group.room for group in groups] == [UNGROUPED_ROOM]
    assert [result.path for result in results] == ["auth/login.go", "README.md"]
    assert results[0].score > results[1].score > 0
    assert "ValidatePassword" in results[0].snippet


def test_two_file_workspace_ranks_code_above_prose(
    workspace: Path, write_file, scanner: Scanner, store: ContentStore, settings: Settings
) -> None:
    write_file("auth/login.go", "package auth\n\nfunc ValidatePassword(pw string) bool {\n\treturn len(pw) >= 8\n}\n")
    write_file("README.md", "# Project\n\nChoose a strong password.\n")
    scanner.scan()

    results = _flatten(Butler(store, workspace, settings=settings).search("password validation"))

    assert [result.path for result in results] == ["auth/login.go", "README.md"]
    assert results[0].score > results[1].score
    assert verify(workspace, store).stale == []


@pytest.mark.usefixtures("login_workspace")
def test_results_grouped_by_room(workspace: Path, write_file, scanner: Scanner, store: ContentStore, settings: Settings) -> None:
    write_file(".palace/rooms/auth.jsonc", AUTH_ROOM)
    scanner.scan()
    butler = Butler(store, workspace, settings=settings)

    groups = butler.search("password")

    assert [group.room for group in groups] == ["auth", UNGROUPED_ROOM]
    assert groups[0].summary == "Authentication"
    assert groups[0].results[0].is_entry
    assert [r.path for r in butler.search("password", room="auth")[0].results] == ["auth/login.go"]
    assert butler.search("password", room="billing") == []


def test_infer_room_uses_entry_point_directories(workspace: Path, write_file, store: ContentStore, settings: Settings) -> None:
    write_file(".palace/rooms/auth.jsonc", AUTH_ROOM)
    write_file(".palace/palace.jsonc", '{"defaultRoom": "core"}')
    butler = Butler(store, workspace, settings=settings)

    assert butler.infer_room("auth/helpers.go") == "auth"
    assert butler.infer_room("authz/policy.go") == "core"
    assert butler.infer_room("main.go") == "core"


def test_first_room_by_name_owns_shared_entry_point(workspace: Path, write_file, store: ContentStore, settings: Settings) -> None:
    write_file(".palace/rooms/beta.json", '{"name": "beta", "entryPoints": ["shared/x.go"]}')
    write_file(".palace/rooms/alpha.yaml", "name: alpha\nentryPoints:\n  - shared/x.go\n")
    butler = Butler(store, workspace, settings=settings)

    assert butler.entry_points == {"shared/x.go": "alpha"}
    assert [room.name for room in butler.list_rooms()] == ["alpha", "beta"]


def test_limit_is_clamped(workspace: Path, write_file, scanner: Scanner, store: ContentStore, settings: Settings) -> None:
    for i in range(6):
        write_file(f"notes/n{i}.txt", f"token number {i}")
    scanner.scan()
    settings.search_default_limit = 3
    settings.search_max_limit = 4
    butler = Butler(store, workspace, settings=settings)

    assert len(_flatten(butler.search("token"))) == 3
    assert len(_flatten(butler.search("token", limit=50))) == 4
    assert len(_flatten(butler.search("token", limit=0))) == 3


def test_blank_query_returns_nothing(workspace: Path, store: ContentStore, settings: Settings) -> None:
    assert Butler(store, workspace, settings=settings).search("   ") == []


def test_injected_manifest_decoder(workspace: Path, write_file, store: ContentStore, settings: Settings) -> None:
    write_file(".palace/rooms/custom.yaml", "not read by the default decoder")
    decoded: list[Path] = []

    def decoder(path: Path):
        decoded.append(path)
        return {"name": "custom", "entryPoints": ["app/main.go"]}

    butler = Butler(store, workspace, manifest_decoder=decoder, settings=settings)
    assert butler.read_room("custom").entry_points == ["app/main.go"]
    assert [path.name for path in decoded] == ["custom.yaml"]


def test_suggestions_include_indexed_symbols(workspace: Path, write_file, scanner: Scanner, store: ContentStore, settings: Settings) -> None:
    write_file("auth.py", "def validate_password(value):\n    return len(value) > 8\n")
    scanner.scan()
    butler = Butler(store, workspace, settings=settings)

    assert butler.suggest("validate_pasword")[0].term == "validate_password"
    assert "function" in butler.suggest_for_query("fucntion")
    assert butler.suggest("  ") == []


@pytest.mark.usefixtures("login_workspace")
def test_read_file_and_room_lookups(workspace: Path, write_file, scanner: Scanner, store: ContentStore, settings: Settings) -> None:
    write_file("empty.txt", "")
    scanner.scan()
    butler = Butler(store, workspace, settings=settings)

    assert butler.read_file("auth/login.go") == (workspace / "auth/login.go").read_text(encoding="utf-8")
    assert butler.read_file("empty.txt") == ""
    with pytest.raises(FileNotIndexedError):
        butler.read_file("nope.go")
    with pytest.raises(RoomNotFoundError) as excinfo:
        butler.read_room("nope")
    assert excinfo.value.suggestions == []


def test_unknown_room_suggests_close_names(workspace: Path, write_file, store: ContentStore, settings: Settings) -> None:
    write_file(".palace/rooms/auth.jsonc", AUTH_ROOM)
    write_file(".palace/rooms/billing.jsonc", '{"name": "billing"}')
    butler = Butler(store, workspace, settings=settings)

    with pytest.raises(RoomNotFoundError) as excinfo:
        butler.read_room("autho")
    assert excinfo.value.suggestions == ["auth"]
    assert "did you mean: auth" in str(excinfo.value)
