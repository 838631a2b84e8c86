"""Processing index, staleness check and lock coordination."""

from .index import IndexEntry, ProcessingIndex
from .locks import DebounceResult, LockCoordinator, debounce_key
from .stale import canonicalize, needs_processing

__all__ = [
    "IndexEntry",
    "ProcessingIndex",
    "DebounceResult",
    "LockCoordinator",
    "debounce_key",
    "canonicalize",
    "needs_processing",
]
