"""CLI tests using typer's runner."""

from __future__ import annotations

from pathlib import Path

import orjson
import pytest
from typer.testing import CliRunner

from palace_index.cli.main import app

runner = CliRunner()


def _json(output: str):
    return orjson.loads(output[output.index("{") : output.rindex("}") + 1])


@pytest.fixture
def scanned(workspace: Path, login_workspace) -> Path:
    result = runner.invoke(app, ["scan", "--root", str(workspace)])
    assert result.exit_code == 0, result.output
    return workspace


def test_scan_prints_summary(scanned: Path) -> None:
    result = runner.invoke(app, ["scan", "--root", str(scanned)])
    assert result.exit_code == 0
    data = _json(result.output)
    assert data["file_count"] == 4
    assert len(data["scan_hash"]) == 64


def test_verify_exit_codes(scanned: Path) -> None:
    assert runner.invoke(app, ["verify", "--root", str(scanned)]).exit_code == 0

    (scanned / "auth" / "login.go").write_text("package auth\n", encoding="utf-8")
    result = runner.invoke(app, ["verify", "--root", str(scanned), "--mode", "strict"])
    assert result.exit_code == 1
    assert "changed file auth/login.go" in result.output

    assert runner.invoke(app, ["verify", "--root", str(scanned), "--mode", "slow"]).exit_code == 2


def test_search_command(scanned: Path) -> None:
    result = runner.invoke(app, ["search", "password validation", "--root", str(scanned), "-n", "1"])
    assert result.exit_code == 0
    data = _json(result.output)
    assert [r["path"] for g in data["groups"] for r in g["results"]] == ["auth/login.go"]


def test_call_commands(scanned: Path) -> None:
    result = runner.invoke(app, ["callers", "add", "--root", str(scanned)])
    assert result.exit_code == 0
    assert _json(result.output)["calls"] == []

    missing = runner.invoke(app, ["callees", "nope", "--root", str(scanned)])
    assert missing.exit_code == 1
    assert "symbol not found: nope" in missing.output

    graph = runner.invoke(app, ["graph", "src/util.py", "--root", str(scanned)])
    assert graph.exit_code == 0
    assert _json(graph.output)["scope"] == "src/util.py"


def test_collect_needs_scan(workspace: Path, write_file) -> None:
    write_file("a.txt", "alpha")
    result = runner.invoke(app, ["collect", "goal", "--root", str(workspace)])
    assert result.exit_code == 1
    assert "no scan records found" in result.output


def test_collect_and_rooms(scanned: Path) -> None:
    result = runner.invoke(app, ["collect", "password", "--root", str(scanned)])
    assert result.exit_code == 0
    assert _json(result.output)["kind"] == "palace/context-pack"

    rooms = runner.invoke(app, ["rooms", "--root", str(scanned)])
    assert rooms.exit_code == 0
    assert rooms.output.strip() == "[]"


def test_signal_without_git_fails(workspace: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PALACE_GIT_BINARY", "palace-no-such-git")
    result = runner.invoke(app, ["signal", "HEAD~1..HEAD", "--root", str(workspace)])
    assert result.exit_code == 1
    assert "diff unavailable" in result.output


def test_missing_root_is_not_created(workspace: Path) -> None:
    missing = workspace / "typo"
    for command in (["scan"], ["verify"], ["search", "anything"]):
        result = runner.invoke(app, [*command, "--root", str(missing)])
        assert result.exit_code == 1
        assert "workspace root is not a directory" in result.output
    assert not missing.exists()


def test_call_counts_and_top(workspace: Path, write_file) -> None:
    write_file("util.py", "def add(a, b):\n    return a + b\n")
    write_file("app.py", "from util import add\n\n\ndef total():\n    return add(1, add(2, 3))\n")
    assert runner.invoke(app, ["scan", "--root", str(workspace)]).exit_code == 0

    counted = runner.invoke(app, ["callers", "add", "--count", "--root", str(workspace)])
    assert counted.exit_code == 0
    assert _json(counted.output) == {"symbol": "add", "count": 2}

    ranked = runner.invoke(app, ["top", "--root", str(workspace), "-n", "1"])
    assert ranked.exit_code == 0
    assert _json(ranked.output) == {"symbols": [{"symbol": "add", "callers": 2}]}


def test_search_explain(scanned: Path) -> None:
    result = runner.invoke(app, ["search", "password validation", "--root", str(scanned), "--explain"])
    assert result.exit_code == 0
    first = _json(result.output)["groups"][0]["results"][0]
    assert first["path"] == "auth/login.go"
    assert first["boosts"]["code_file"] == 1.2


def test_suggest_and_show(scanned: Path) -> None:
    result = runner.invoke(app, ["suggest", "handlr", "--root", str(scanned), "-n", "1"])
    assert result.exit_code == 0, result.output
    assert [s["term"] for s in _json(result.output)["suggestions"]] == ["handler"]

    shown = runner.invoke(app, ["show", "auth/login.go", "--root", str(scanned)])
    assert shown.exit_code == 0
    assert "func ValidatePassword" in shown.output

    missing = runner.invoke(app, ["show", "nope.go", "--root", str(scanned)])
    assert missing.exit_code == 1
