"""
Processing index: when was each document last processed.

Storage format: a single JSON object mapping absolute document paths to
ISO-8601 UTC timestamps, pretty-printed with sorted keys so it diffs well.
The file is read fully and rewritten fully on each update.

The index never aborts a run because of its own state: a missing or
malformed file is reset to an empty object on load. Read-only callers
use read(), which never writes.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from ..fsutil import write_atomic
from .stale import canonicalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexEntry:
    """One processed document."""

    path: str
    last_processed: datetime


def format_timestamp(ts: datetime) -> str:
    """Serialize a timestamp as ISO-8601 in UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat()


def parse_timestamp(raw: str) -> datetime:
    """Parse a stored timestamp; naive values are taken as UTC."""
    ts = datetime.fromisoformat(raw)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class IndexCorrupt(ValueError):
    """The stored index failed structural validation."""


def _validate(payload: object) -> dict[str, datetime]:
    if not isinstance(payload, dict):
        raise IndexCorrupt(f"expected a JSON object, got {type(payload).__name__}")

    result: dict[str, datetime] = {}
    for key, value in payload.items():
        if not isinstance(key, str) or not os.path.isabs(key):
            raise IndexCorrupt(f"not an absolute path: {key!r}")
        if not isinstance(value, str):
            raise IndexCorrupt(f"timestamp for {key} is not a string")
        try:
            result[key] = parse_timestamp(value)
        except ValueError as e:
            raise IndexCorrupt(f"bad timestamp for {key}: {value!r}") from e
    return result


class ProcessingIndex:
    """JSON-backed map of canonical document path -> last processed time.

    Writes are not synchronised between processes; callers must hold the
    global run lock (see LockCoordinator) while calling upsert().
    """

    def __init__(self, index_path: Path):
        self.index_path = index_path

    def _write(self, mapping: dict[str, datetime]) -> None:
        serialized = json.dumps(
            {path: format_timestamp(ts) for path, ts in mapping.items()},
            indent=2,
            sort_keys=True,
        )
        write_atomic(self.index_path, serialized + "\n")

    def reset(self) -> None:
        """Rewrite the store as an empty, valid index."""
        self._write({})

    def _read(self) -> dict[str, datetime] | None:
        """Parsed store; None when it is missing or malformed."""
        try:
            raw = self.index_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No index at %s", self.index_path)
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Index %s unreadable (%s)", self.index_path, e)
            return None

        try:
            return _validate(json.loads(raw))
        except (json.JSONDecodeError, IndexCorrupt) as e:
            logger.warning("Index %s is corrupt (%s)", self.index_path, e)
            return None

    def read(self) -> dict[str, datetime]:
        """Current entries, without touching the store. Missing or malformed reads as empty."""
        mapping = self._read()
        return {} if mapping is None else mapping

    def load(self) -> dict[str, datetime]:
        """Read the index, resetting it to empty if it is missing or malformed.

        Call with the global run lock held; the reset is a write.
        """
        mapping = self._read()
        if mapping is None:
            self._reset_quietly()
            return {}
        return mapping

    def _reset_quietly(self) -> None:
        # Recovery must not turn into a failure of its own.
        try:
            self.reset()
        except OSError as e:
            logger.warning("Could not reset index %s: %s", self.index_path, e)

    def upsert(self, path: str | Path, timestamp: datetime) -> IndexEntry:
        """Set the entry for `path` (canonicalized), overwriting any previous one."""
        key = canonicalize(path)
        mapping = self.load()
        mapping[key] = timestamp
        self._write(mapping)
        logger.debug("Index updated: %s -> %s", key, format_timestamp(timestamp))
        return IndexEntry(path=key, last_processed=timestamp)

    def entries(self) -> list[IndexEntry]:
        """All entries, sorted by path. Read-only."""
        return [IndexEntry(path=p, last_processed=ts) for p, ts in sorted(self.read().items())]
