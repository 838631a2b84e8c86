"""Decide whether a document changed since it was last processed."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path


def canonicalize(path: str | Path) -> str:
    """Absolute, symlink-resolved form used as the index key."""
    return str(Path(path).expanduser().resolve())


def modification_time(path: str | Path) -> datetime:
    """File mtime as an aware UTC datetime."""
    return datetime.fromtimestamp(Path(path).stat().st_mtime, tz=timezone.utc)


def needs_processing(
    path: str | Path,
    index: Mapping[str, datetime],
    *,
    grace_seconds: float,
) -> bool:
    """
    True if `path` was never processed, or was modified more than
    `grace_seconds` after it was last processed.

    The grace window absorbs clock skew and the time a writer takes to
    finish the file; an mtime within it counts as "not newer".
    """
    last_processed = index.get(canonicalize(path))
    if last_processed is None:
        return True

    delta = (modification_time(path) - last_processed).total_seconds()
    return delta > grace_seconds
