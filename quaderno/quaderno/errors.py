"""Exception types.

Setup errors stop an invocation before any document is touched. Document
errors stay local to one document; the pipeline records them and moves on.
Lock contention and index corruption are not exceptions at all.
"""

from __future__ import annotations


class QuadernoError(Exception):
    """Base class for quaderno errors."""


class SetupError(QuadernoError):
    """Missing tool, credential, directory or unusable configuration."""


class ConfigError(SetupError):
    """Configuration file could not be parsed or holds invalid values."""


class DocumentError(QuadernoError):
    """Processing of a single document failed."""


class RasterizeError(DocumentError):
    """The document could not be converted into page images."""


class TranscriptionError(DocumentError):
    """A page could not be transcribed."""

    def __init__(self, page_number: int, reason: str):
        super().__init__(f"page {page_number}: {reason}")
        self.page_number = page_number
        self.reason = reason
