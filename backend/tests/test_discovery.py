"""Tests for file discovery and guardrails."""

from __future__ import annotations

from pathlib import Path

import pytest

from palace_index.core.workspace import DEFAULT_DO_NOT_TOUCH, Guardrails, load_guardrails, merge_globs
from palace_index.ingest.discovery import filter_paths, list_files, matches_guardrail, to_slash


@pytest.mark.parametrize(
    ("pattern", "path", "expected"),
    [
        ("**/*.lock", "yarn.lock", True),
        ("**/*.lock", "a/b/c.lock", True),
        ("vendor/**", "vendor/", True),
        ("vendor/**", "vendor", False),
        ("vendor/**", "vendor/x/y.go", True),
        ("vendor/**", "myvendor/x.go", False),
        ("*.go", "a/b.go", True),
        ("/*.go", "a/b.go", False),
        ("/*.go", "b.go", True),
        ("src/*.{ts,tsx}", "src/a.tsx", True),
        ("src/*.{ts,tsx}", "src/a.js", False),
        ("file?.txt", "file1.txt", True),
        ("[ab].py", "a.py", True),
        ("[!ab].py", "a.py", False),
        ("**/__pycache__/**", "pkg/__pycache__/m.pyc", True),
        ("**/*.min.*", "static/app.min.js", True),
    ],
)
def test_guardrail_globs_follow_gitignore_rules(pattern: str, path: str, expected: bool) -> None:
    assert matches_guardrail(path, Guardrails(do_not_touch=[pattern])) is expected


def test_to_slash_normalizes_separators() -> None:
    assert to_slash(".\\src\\main.py") == "src/main.py"
    assert to_slash("./a/b") == "a/b"
    assert to_slash("/abs") == "abs"


def test_list_files_prunes_default_guardrails(workspace: Path, write_file) -> None:
    write_file(".git/config", "[core]")
    write_file("node_modules/pkg/index.js", "module.exports = 1")
    write_file(".palace/index/palace.db", "")
    write_file("yarn.lock", "")
    write_file("src/main.py", "print('hi')")
    write_file("README.md", "# hi")

    assert list_files(workspace, load_guardrails(workspace)) == ["README.md", "src/main.py"]


def test_user_guardrails_extend_defaults(workspace: Path, write_file) -> None:
    write_file(
        ".palace/palace.jsonc",
        """{
          // curated config
          "guardrails": {
            "doNotTouchGlobs": ["secret.txt", "vendor/**"],
            "readOnlyGlobs": ["docs/**",],
          },
        }""",
    )
    write_file("secret.txt", "s3cr3t")
    write_file("vendor/lib/dep.go", "package lib")
    write_file("docs/guide.md", "guide")
    write_file("app.py", "pass")

    guardrails = load_guardrails(workspace)
    assert guardrails.do_not_touch[: len(DEFAULT_DO_NOT_TOUCH)] == list(DEFAULT_DO_NOT_TOUCH)
    assert guardrails.do_not_touch.count("vendor/**") == 1
    assert "docs/**" in guardrails.read_only
    assert list_files(workspace, guardrails) == ["app.py"]


def test_invalid_config_falls_back_to_defaults(workspace: Path, write_file) -> None:
    write_file(".palace/palace.jsonc", "{ not json")
    guardrails = load_guardrails(workspace)
    assert guardrails.do_not_touch == list(DEFAULT_DO_NOT_TOUCH)
    assert guardrails.read_only == []


def test_matches_guardrail_checks_both_tiers() -> None:
    guardrails = Guardrails(do_not_touch=["build/**"], read_only=["**/*.pb.go"])
    assert matches_guardrail("build/out.bin", guardrails)
    assert matches_guardrail("api/v1/service.pb.go", guardrails)
    assert not matches_guardrail("api/v1/service.go", guardrails)


def test_filter_paths_normalizes_and_deduplicates() -> None:
    guardrails = Guardrails(do_not_touch=[".git/**"])
    assert filter_paths(["./b.txt", "a\\c.txt", "b.txt", "", ".git/HEAD"], guardrails) == ["a/c.txt", "b.txt"]


def test_merge_globs_keeps_order_and_normalizes() -> None:
    assert merge_globs(["a/**", "b//c"], ["b/c", " d ", ""]) == ["a/**", "b/c", "d"]
