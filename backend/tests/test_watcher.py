"""Tests for the filesystem watcher."""

from __future__ import annotations

import threading
import time
from pathlib import Path

from watchdog.events import DirModifiedEvent, FileModifiedEvent, FileMovedEvent

from palace_index.core.workspace import load_guardrails
from palace_index.ingest.watcher import DebouncedRescan, WorkspaceEventHandler


class CountingDebouncer:
    def __init__(self) -> None:
        self.triggers = 0

    def trigger(self) -> None:
        self.triggers += 1


def test_debounce_collapses_bursts() -> None:
    fired = threading.Event()
    calls: list[int] = []

    def callback() -> None:
        calls.append(1)
        fired.set()

    debouncer = DebouncedRescan(callback, delay=0.05)
    for _ in range(5):
        debouncer.trigger()
    assert debouncer.pending
    assert fired.wait(2)
    time.sleep(0.1)
    assert calls == [1]
    assert not debouncer.pending


def test_cancel_drops_pending_rescan() -> None:
    calls: list[int] = []
    debouncer = DebouncedRescan(lambda: calls.append(1), delay=0.05)
    debouncer.trigger()
    debouncer.cancel()
    time.sleep(0.15)
    assert calls == []


def test_failing_rescan_is_logged_not_raised(caplog) -> None:
    fired = threading.Event()

    def callback() -> None:
        fired.set()
        raise RuntimeError("boom")

    debouncer = DebouncedRescan(callback, delay=0.01)
    debouncer.trigger()
    assert fired.wait(2)
    time.sleep(0.2)
    assert not debouncer.pending
    assert "Rescan after filesystem change failed" in caplog.text


def test_rescans_never_overlap() -> None:
    started = threading.Event()
    lock = threading.Lock()
    active = [0]
    peak = [0]
    calls: list[int] = []

    def callback() -> None:
        with lock:
            active[0] += 1
            peak[0] = max(peak[0], active[0])
        started.set()
        time.sleep(0.3)
        with lock:
            active[0] -= 1
        calls.append(1)

    debouncer = DebouncedRescan(callback, delay=0.01)
    debouncer.trigger()
    assert started.wait(2)
    debouncer.trigger()
    time.sleep(0.1)
    assert debouncer.running
    assert debouncer.pending

    deadline = time.monotonic() + 3
    while (debouncer.running or debouncer.pending) and time.monotonic() < deadline:
        time.sleep(0.02)
    assert calls == [1, 1]
    assert peak[0] == 1


def test_handler_ignores_excluded_paths(workspace: Path) -> None:
    debouncer = CountingDebouncer()
    handler = WorkspaceEventHandler(workspace, load_guardrails(workspace), debouncer)

    handler.on_any_event(FileModifiedEvent(str(workspace / ".git" / "index")))
    handler.on_any_event(FileModifiedEvent(str(workspace / ".palace" / "index" / "palace.db")))
    handler.on_any_event(DirModifiedEvent(str(workspace / "src")))
    handler.on_any_event(FileModifiedEvent(str(workspace.parent / "outside.txt")))
    assert debouncer.triggers == 0

    handler.on_any_event(FileModifiedEvent(str(workspace / "src" / "main.py")))
    handler.on_any_event(FileMovedEvent(str(workspace / "node_modules" / "a.js"), str(workspace / "b.js")))
    assert debouncer.triggers == 2
