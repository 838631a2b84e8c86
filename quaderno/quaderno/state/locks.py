"""
Lock markers shared by concurrent invocations on one host.

Two mechanisms live here:
- the global run lock, a mutex with staleness-based takeover, which
  serialises whole invocations;
- per-document debounce markers, which suppress reprocessing the same
  document within a short window and are never released, only aged out.

Markers are small JSON files holding their creation time and the owning
pid. The creation time is the staleness clock; a marker that cannot be read
falls back to its file mtime.

Every check-then-act on the run lock (age check, stale removal, creation,
release) happens while holding an flock on a sibling guard file, so two
runs can never both decide the same stale marker is theirs to replace.
"""

from __future__ import annotations

import fcntl
import hashlib
import json
import logging
import os
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path

from ..fsutil import write_atomic
from .stale import canonicalize

logger = logging.getLogger(__name__)

RUN_LOCK_NAME = "run.lock"
GUARD_NAME = "run.lock.guard"
DEBOUNCE_PREFIX = "debounce-"


class DebounceResult(str, Enum):
    PROCEED = "proceed"
    SKIP = "skip"


def debounce_key(path: str | Path) -> str:
    """Stable key for a document: sha256 of its canonical path, first 16 chars."""
    return hashlib.sha256(canonicalize(path).encode("utf-8")).hexdigest()[:16]


class LockCoordinator:
    """Global run lock and per-document debounce markers under `lock_dir`."""

    def __init__(
        self,
        lock_dir: Path,
        *,
        stale_after: float,
        debounce_window: float,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            lock_dir: Directory holding the marker files
            stale_after: Seconds after which a run lock is considered abandoned
            debounce_window: Seconds during which a document is not reprocessed
            clock: Source of the current time (epoch seconds)
        """
        self.lock_dir = lock_dir
        self.stale_after = stale_after
        self.debounce_window = debounce_window
        self.clock = clock
        # Token written into the run lock we hold; None when not holding it.
        self._run_token: str | None = None

    @property
    def run_lock_path(self) -> Path:
        return self.lock_dir / RUN_LOCK_NAME

    @property
    def holds_run_lock(self) -> bool:
        return self._run_token is not None

    def debounce_path(self, path: str | Path) -> Path:
        return self.lock_dir / f"{DEBOUNCE_PREFIX}{debounce_key(path)}.lock"

    def _ensure_dir(self) -> None:
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    def _marker_payload(self, **extra: str) -> str:
        return json.dumps({"created_at": self.clock(), "pid": os.getpid(), **extra})

    def _read_marker(self, marker: Path) -> dict | None:
        try:
            data = json.loads(marker.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        return data if isinstance(data, dict) else None

    def marker_age(self, marker: Path) -> float | None:
        """Seconds since `marker` was created, or None if it does not exist."""
        data = self._read_marker(marker)
        try:
            created_at = float(data["created_at"])
        except (KeyError, TypeError, ValueError):
            try:
                created_at = marker.stat().st_mtime
            except FileNotFoundError:
                return None
        return self.clock() - created_at

    @contextmanager
    def _guarded(self) -> Iterator[None]:
        """Exclusive flock on the guard file for the duration of the block."""
        self._ensure_dir()
        with open(self.lock_dir / GUARD_NAME, "a+") as guard:
            fcntl.flock(guard.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(guard.fileno(), fcntl.LOCK_UN)

    # --- Global run lock ---

    def acquire_global(self) -> bool:
        """
        Try to take the run lock.

        Returns False if another run holds a fresh lock. A lock older than
        `stale_after` is removed and acquisition proceeds.
        """
        marker = self.run_lock_path
        with self._guarded():
            age = self.marker_age(marker)
            if age is not None:
                if age < self.stale_after:
                    logger.info("Run lock %s held (age %.0fs); another run is active", marker, age)
                    return False
                logger.warning("Reclaiming stale run lock %s (age %.0fs)", marker, age)
                marker.unlink(missing_ok=True)

            try:
                fd = os.open(marker, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                logger.info("Run lock %s appeared during acquisition", marker)
                return False

            token = uuid.uuid4().hex
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(self._marker_payload(token=token))
            self._run_token = token
            logger.debug("Run lock acquired: %s", marker)
            return True

    def release_global(self) -> None:
        """Remove the run lock if this coordinator still holds it.

        A marker that another run reclaimed after ours went stale is left
        in place.
        """
        if self._run_token is None:
            return
        marker = self.run_lock_path
        with self._guarded():
            data = self._read_marker(marker)
            if data is not None and data.get("token") == self._run_token:
                marker.unlink(missing_ok=True)
                logger.debug("Run lock released: %s", marker)
            else:
                logger.warning("Run lock %s was taken over by another run; leaving it", marker)
        self._run_token = None

    @contextmanager
    def run_lock(self) -> Iterator[bool]:
        """Scoped run lock. Yields whether it was acquired; always releases."""
        acquired = self.acquire_global()
        try:
            yield acquired
        finally:
            if acquired:
                self.release_global()

    # --- Per-document debounce ---

    def try_debounce(self, path: str | Path) -> DebounceResult:
        """
        SKIP if `path` was seen within the debounce window, otherwise
        refresh its marker and PROCEED.
        """
        marker = self.debounce_path(path)
        age = self.marker_age(marker)
        if age is not None and age < self.debounce_window:
            logger.info("Debounced %s (seen %.1fs ago)", path, age)
            return DebounceResult.SKIP

        write_atomic(marker, self._marker_payload(path=canonicalize(path)))
        return DebounceResult.PROCEED

    def prune_debounce_markers(self) -> int:
        """Delete debounce markers older than the window. Returns the count removed."""
        if not self.lock_dir.is_dir():
            return 0
        removed = 0
        for marker in self.lock_dir.glob(f"{DEBOUNCE_PREFIX}*.lock"):
            age = self.marker_age(marker)
            if age is not None and age >= self.debounce_window:
                marker.unlink(missing_ok=True)
                removed += 1
        return removed
