"""Markdown parsing utilities for [[page references]]."""

import re

# Innermost [[target]] only; a reference never contains bracket characters.
REFERENCE_PATTERN = re.compile(r"\[\[([^\[\]]+)\]\]")

OPEN_MARKER = "[["
CLOSE_MARKER = "]]"


def extract_references(content: str) -> list[str]:
    """Extract all [[reference]] targets from content.

    Targets keep their original text (no case folding); duplicates are
    dropped while preserving first-seen order.
    """
    seen = set()
    result = []
    for match in REFERENCE_PATTERN.findall(content):
        if match not in seen:
            seen.add(match)
            result.append(match)
    return result


def marked_spans(content: str) -> list[tuple[int, int]]:
    """Half-open (start, end) spans of every outermost [[...]] in `content`.

    Markers are matched as balanced pairs, so "[[a [[b]] c]]" is one span.
    An opening marker that is never closed does not protect anything.
    """
    closed: list[tuple[int, int]] = []
    stack: list[int] = []
    i = 0
    n = len(content)
    while i < n - 1:
        pair = content[i : i + 2]
        if pair == OPEN_MARKER:
            stack.append(i)
            i += 2
        elif pair == CLOSE_MARKER and stack:
            closed.append((stack.pop(), i + 2))
            i += 2
        else:
            i += 1

    # Closed pairs are either nested or disjoint; keep the outermost ones.
    spans: list[tuple[int, int]] = []
    for start, end in sorted(closed, key=lambda s: (s[0], -s[1])):
        if not spans or start >= spans[-1][1]:
            spans.append((start, end))
    return spans
