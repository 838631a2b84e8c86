"""
Secret references.

The API key is configured as a reference (e.g., "env:OPENAI_API_KEY"), not a
raw value, so config files and log lines only ever carry the reference.
"""

from __future__ import annotations

import os

ENV_PREFIX = "env:"


def resolve_secret(ref: str) -> str | None:
    """
    Resolve an "env:VAR_NAME" reference to the variable's value.

    Returns None for an unset or empty variable, and for any reference
    without the env: prefix.
    """
    if not ref.startswith(ENV_PREFIX):
        return None
    # An exported-but-empty variable is as good as unset.
    return os.environ.get(ref[len(ENV_PREFIX) :]) or None
