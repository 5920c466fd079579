"""Filesystem watcher that triggers debounced full rescans."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from palace_index.core.logging import get_logger, log_context
from palace_index.core.workspace import Guardrails
from palace_index.ingest.discovery import matches_guardrail

logger = get_logger(__name__)

RescanCallback = Callable[[], None]


class DebouncedRescan:
    """Collapse bursts of ``trigger()`` calls into one callback after a quiet period.

    Only one callback runs at a time. A timer that fires while a rescan is in
    progress schedules exactly one follow-up run after it finishes.
    """

    def __init__(self, callback: RescanCallback, delay: float) -> None:
        self.callback = callback
        self.delay = delay
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._running = False
        self._rerun = False

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._rerun = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None or self._rerun

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
            if self._running:
                self._rerun = True
                return
            self._running = True
        while True:
            self._run_once()
            with self._lock:
                if not self._rerun:
                    self._running = False
                    return
                self._rerun = False

    def _run_once(self) -> None:
        with log_context(trigger="watch"):
            try:
                self.callback()
            except Exception:
                logger.exception("Rescan after filesystem change failed")


class WorkspaceEventHandler(FileSystemEventHandler):
    """Forward changes to non-excluded workspace files to the debouncer."""

    def __init__(self, root: Path, guardrails: Guardrails, debouncer: DebouncedRescan) -> None:
        super().__init__()
        self.root = root
        self.guardrails = guardrails
        self.debouncer = debouncer

    def relevant(self, path: str) -> bool:
        try:
            rel = Path(path).resolve().relative_to(self.root).as_posix()
        except ValueError:
            return False
        return rel != "." and not matches_guardrail(rel, self.guardrails)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type in ("opened", "closed", "closed_no_write"):
            return
        paths = [event.src_path, getattr(event, "dest_path", "")]
        if any(path and self.relevant(str(path)) for path in paths):
            logger.debug("Change detected: %s %s", event.event_type, event.src_path)
            self.debouncer.trigger()


class Watcher:
    """High-level wrapper around a watchdog observer for one workspace."""

    def __init__(self, root: Path, guardrails: Guardrails, rescan: RescanCallback, debounce_seconds: float = 1.0) -> None:
        self.root = root.expanduser().resolve()
        self.debouncer = DebouncedRescan(rescan, debounce_seconds)
        self.handler = WorkspaceEventHandler(self.root, guardrails, self.debouncer)
        self._observer: BaseObserver = Observer()
        self._lock = threading.Lock()
        self._started = False

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            self._observer.schedule(self.handler, str(self.root), recursive=True)
            self._observer.start()
            self._started = True
            logger.info("Watching %s", self.root)

    def stop(self) -> None:
        with self._lock:
            if not self._started:
                return
            self.debouncer.cancel()
            self._observer.stop()
            self._observer.join(timeout=5)
            self._started = False


__all__ = ["DebouncedRescan", "RescanCallback", "Watcher", "WorkspaceEventHandler"]
