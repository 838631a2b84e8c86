"""
Automatic [[reference]] linking.

The linker walks the candidates in the order given (longest first, as
build_catalog returns them) and claims every case-insensitive, whole-word
occurrence that does not overlap an interval already taken. Existing
[[...]] spans are taken before the first candidate is tried, so text that
is already linked is never wrapped again.

Only marker characters are inserted; nothing in the input is removed or
re-cased.
"""

from __future__ import annotations

import re
from bisect import bisect_right
from collections.abc import Sequence
from dataclasses import dataclass

from .catalog import Candidate
from .parser import CLOSE_MARKER, OPEN_MARKER, marked_spans


@dataclass(frozen=True)
class LinkSpan:
    """An occurrence claimed by a candidate (half-open [start, end))."""

    start: int
    end: int
    text: str
    candidate: str


class _IntervalSet:
    """Disjoint half-open intervals kept sorted by start."""

    def __init__(self, intervals: Sequence[tuple[int, int]] = ()):
        self._starts: list[int] = []
        self._ends: list[int] = []
        for start, end in intervals:
            self.add(start, end)

    def overlaps(self, start: int, end: int) -> bool:
        i = bisect_right(self._starts, start)
        if i > 0 and self._ends[i - 1] > start:
            return True
        return i < len(self._starts) and self._starts[i] < end

    def add(self, start: int, end: int) -> None:
        i = bisect_right(self._starts, start)
        self._starts.insert(i, start)
        self._ends.insert(i, end)


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _is_whole_word(text: str, start: int, end: int) -> bool:
    if start > 0 and _is_word_char(text[start - 1]):
        return False
    if end < len(text) and _is_word_char(text[end]):
        return False
    return True


def _candidate_text(candidate: Candidate | str) -> str:
    return candidate.text if isinstance(candidate, Candidate) else candidate


def find_links(text: str, candidates: Sequence[Candidate | str]) -> list[LinkSpan]:
    """
    Occurrences a single pass over `text` would wrap, in text order.

    Args:
        text: Markdown to scan
        candidates: Names to link, longest first

    Returns:
        Claimed spans; none of them overlaps another or an existing [[...]]
    """
    taken = _IntervalSet(marked_spans(text))
    links: list[LinkSpan] = []

    for candidate in candidates:
        needle = _candidate_text(candidate)
        if not needle.strip():
            continue
        # Literal match: metacharacters in page names mean nothing here.
        pattern = re.compile(re.escape(needle), re.IGNORECASE)

        pos = 0
        while True:
            match = pattern.search(text, pos)
            if match is None:
                break
            start, end = match.span()
            if _is_whole_word(text, start, end) and not taken.overlaps(start, end):
                taken.add(start, end)
                links.append(LinkSpan(start, end, match.group(0), needle))
                pos = end
            else:
                pos = start + 1

    links.sort(key=lambda span: span.start)
    return links


def _apply(text: str, links: Sequence[LinkSpan]) -> str:
    parts: list[str] = []
    last = 0
    for span in links:
        parts.append(text[last : span.start])
        parts.append(f"{OPEN_MARKER}{text[span.start : span.end]}{CLOSE_MARKER}")
        last = span.end
    parts.append(text[last:])
    return "".join(parts)


def link_text(text: str, candidates: Sequence[Candidate | str]) -> str:
    """
    Wrap bare occurrences of `candidates` in [[...]].

    Passes repeat until one changes nothing. Inserted brackets can turn a
    neighbouring occurrence into a whole word ("Mr.Rome" -> "Mr.[[Rome]]"),
    and the output must already be what a second call would produce.
    """
    while True:
        links = find_links(text, candidates)
        if not links:
            return text
        text = _apply(text, links)
