"""File system watcher for a single chart document.

Watchdog delivers events on its own thread. The handler only records that
the document changed; the main thread polls :meth:`DocumentEventHandler.take_pending`
and runs the sync pipeline itself, so rendering stays single-threaded.
Editor save cycles (truncate, write, rename) are coalesced by a short
debounce window.
"""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver


class DocumentEventHandler(FileSystemEventHandler):
    """Tracks modifications of one file inside a watched directory."""

    DEBOUNCE_SECONDS = 0.3

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path.resolve()
        self._lock = threading.Lock()
        self._changed_at: float | None = None

    def _touch(self, raw_path: str | bytes) -> None:
        if Path(os.fsdecode(raw_path)).resolve() != self.path:
            return
        with self._lock:
            self._changed_at = time.monotonic()

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._touch(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._touch(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._touch(event.dest_path)

    def take_pending(self, now: float | None = None) -> bool:
        """Return True once per settled burst of changes."""
        now = time.monotonic() if now is None else now
        with self._lock:
            if self._changed_at is None or now - self._changed_at < self.DEBOUNCE_SECONDS:
                return False
            self._changed_at = None
            return True


def watch_document(path: Path) -> tuple[BaseObserver, DocumentEventHandler]:
    """Start watching *path*. The caller must ``stop()`` and ``join()`` the observer."""
    handler = DocumentEventHandler(path)
    observer = Observer()
    observer.schedule(handler, str(handler.path.parent), recursive=False)
    observer.start()
    return observer, handler


def run_watch_loop(
    path: Path,
    on_change: Callable[[], None],
    *,
    poll_interval: float = 0.25,
    stop: threading.Event | None = None,
) -> None:
    """Block, calling *on_change* after each settled change, until interrupted."""
    observer, handler = watch_document(path)
    stop = stop or threading.Event()
    try:
        while not stop.wait(poll_interval):
            if handler.take_pending():
                on_change()
    except KeyboardInterrupt:
        pass
    finally:
        observer.stop()
        observer.join()
