"""
Inbox watcher: run the pipeline when a scanned PDF lands or changes.

Editors and sync clients often deliver several events for one save. The
handler collapses them in memory (a path is only handed on once it has been
quiet for SETTLE_SECONDS); the on-disk debounce markers cover duplicates
that still get through, including ones from other processes.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path

from watchdog.events import (
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .pipeline import is_supported

logger = logging.getLogger(__name__)


class InboxEventHandler(FileSystemEventHandler):
    """Collects PDF create/modify/move-in events and flushes them once settled."""

    SETTLE_SECONDS = 1.0

    def __init__(
        self,
        on_document: Callable[[Path], None],
        settle_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__()
        self.on_document = on_document
        self.settle_seconds = self.SETTLE_SECONDS if settle_seconds is None else settle_seconds
        self.clock = clock
        # path -> time of the latest event; guarded by _lock, since observer
        # callbacks run on their own thread
        self.pending: dict[str, float] = {}
        self._lock = threading.Lock()

    def _is_relevant(self, path: str) -> bool:
        # Hidden files (sync-client partials) are ignored by is_supported.
        return is_supported(Path(path))

    def _touch(self, path: str) -> None:
        with self._lock:
            self.pending[path] = self.clock()

    def on_created(self, event: FileCreatedEvent) -> None:
        if event.is_directory or not self._is_relevant(event.src_path):
            return
        self._touch(event.src_path)

    def on_modified(self, event: FileModifiedEvent) -> None:
        if event.is_directory or not self._is_relevant(event.src_path):
            return
        self._touch(event.src_path)

    def on_moved(self, event: FileMovedEvent) -> None:
        if event.is_directory:
            return
        with self._lock:
            self.pending.pop(event.src_path, None)
        if self._is_relevant(event.dest_path):
            self._touch(event.dest_path)

    def flush_pending(self) -> list[Path]:
        """Hand settled paths to the callback. Returns the paths flushed."""
        now = self.clock()
        with self._lock:
            ready = [p for p, ts in list(self.pending.items()) if now - ts >= self.settle_seconds]
            for path_str in ready:
                del self.pending[path_str]

        # The callback runs unlocked; events arriving meanwhile stay pending.
        flushed = []
        for path_str in ready:
            path = Path(path_str)
            if not path.exists():
                logger.debug("Skipping %s: gone before it settled", path)
                continue
            self.on_document(path)
            flushed.append(path)
        return flushed


def watch_inbox(
    inbox: Path,
    on_document: Callable[[Path], None],
    recursive: bool = False,
) -> tuple[Observer, InboxEventHandler]:
    """
    Start watching `inbox`.

    Returns:
        Tuple of (observer, handler) - caller should call observer.stop() to stop watching
    """
    handler = InboxEventHandler(on_document)
    observer = Observer()
    observer.schedule(handler, str(inbox), recursive=recursive)
    observer.start()
    return observer, handler


def run_watch_loop(
    inbox: Path,
    on_document: Callable[[Path], None],
    recursive: bool = False,
) -> None:
    """Block, flushing settled events every half second, until interrupted."""
    observer, handler = watch_inbox(inbox, on_document, recursive=recursive)
    try:
        while True:
            time.sleep(0.5)
            handler.flush_pending()
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
