"""Tests for scope resolution."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from palace_index.core.errors import ScopeResolutionError
from palace_index.db.store import ContentStore
from palace_index.ingest.pipeline import Scanner
from palace_index.verify.scope import resolve_scope
from palace_index.verify.signal import GitDiffProvider, generate_change_signal
from palace_index.verify.stale import verify


class FakeDiff:
    def __init__(self, output: bytes) -> None:
        self.output = output

    def name_status(self, root: Path, diff_range: str) -> bytes:
        return self.output


class BrokenDiff:
    def name_status(self, root: Path, diff_range: str) -> bytes:
        raise ScopeResolutionError(diff_range, "not a git repository")


def test_no_range_is_full_scope(workspace: Path, write_file) -> None:
    write_file("a.txt", "a")
    write_file(".git/HEAD", "ref")
    scope = resolve_scope(workspace, None, provider=BrokenDiff())
    assert scope.kind == "full"
    assert scope.source == "full-scan"
    assert scope.candidates == ["a.txt"]


def test_diff_range_uses_provider(workspace: Path, write_file) -> None:
    write_file("src/a.py", "x = 1\n")
    write_file("y.txt", "renamed")
    provider = FakeDiff(b"M\0src/a.py\0D\0old.txt\0R100\0x.txt\0y.txt\0M\0.palace/palace.jsonc\0")

    scope = resolve_scope(workspace, "HEAD~1..HEAD", provider=provider)

    assert scope.kind == "diff"
    assert scope.source == "git-diff"
    assert scope.diff_range == "HEAD~1..HEAD"
    assert scope.candidates == ["old.txt", "src/a.py", "y.txt"]


def test_empty_diff_is_not_widened(workspace: Path, write_file) -> None:
    write_file("a.txt", "a")
    scope = resolve_scope(workspace, "HEAD..HEAD", provider=FakeDiff(b""))
    assert scope.kind == "diff"
    assert scope.candidates == []


def test_unresolvable_diff_raises(workspace: Path) -> None:
    with pytest.raises(ScopeResolutionError):
        resolve_scope(workspace, "HEAD~1..HEAD", provider=BrokenDiff())


def test_matching_change_signal_replaces_git(workspace: Path, write_file) -> None:
    write_file("a.txt", "a")
    generate_change_signal(workspace, "main..topic", provider=FakeDiff(b"M\0a.txt\0"))

    scope = resolve_scope(workspace, "main..topic", provider=BrokenDiff())
    assert scope.source == "change-signal"
    assert scope.candidates == ["a.txt"]

    with pytest.raises(ScopeResolutionError):
        resolve_scope(workspace, "main..other", provider=BrokenDiff())


def test_diff_scope_ignores_files_outside_range(workspace: Path, write_file, scanner: Scanner, store: ContentStore) -> None:
    write_file("a.txt", "a")
    write_file("b.txt", "b")
    scanner.scan()
    write_file("b.txt", "b was edited")

    report = verify(workspace, store, diff_range="HEAD~1..HEAD", provider=FakeDiff(b"M\0a.txt\0"))
    assert report.ok
    assert report.scope_kind == "diff"
    assert report.candidate_count == 1


def _git(root: Path, *args: str) -> None:
    subprocess.run(
        ["git", "-c", "user.name=Palace", "-c", "user.email=palace@example.com", *args],
        cwd=root,
        check=True,
        capture_output=True,
    )


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
def test_git_diff_provider_against_real_repository(workspace: Path, write_file) -> None:
    _git(workspace, "init", "-q")
    write_file("a.txt", "one")
    write_file("b.txt", "two")
    _git(workspace, "add", "a.txt", "b.txt")
    _git(workspace, "commit", "-q", "-m", "first")
    write_file("a.txt", "one changed")
    (workspace / "b.txt").unlink()
    write_file("c.txt", "three")
    _git(workspace, "add", "-A", "a.txt", "b.txt", "c.txt")
    _git(workspace, "commit", "-q", "-m", "second")

    scope = resolve_scope(workspace, "HEAD~1..HEAD", provider=GitDiffProvider())
    assert scope.candidates == ["a.txt", "b.txt", "c.txt"]
    assert {change.path: change.status for change in scope.changes} == {
        "a.txt": "modified",
        "b.txt": "deleted",
        "c.txt": "added",
    }


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
def test_git_diff_provider_reports_bad_range(workspace: Path) -> None:
    _git(workspace, "init", "-q")
    with pytest.raises(ScopeResolutionError):
        GitDiffProvider().name_status(workspace, "no-such-ref..HEAD")
