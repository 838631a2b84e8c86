"""Writing processed documents as Logseq pages."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path

import frontmatter

from .fsutil import write_atomic

HEADING_PATTERN = re.compile(r"^#[ \t]+(.+)$", re.MULTILINE)
_TITLE_DISALLOWED = re.compile(r"[^a-zA-Z0-9 -]")
_WHITESPACE_RUN = re.compile(r"\s+")

NOTE_STYLES = ("logseq", "frontmatter")


def extract_title(markdown: str) -> str | None:
    """Title from the first level-1 heading, made filename-safe.

    Only letters, digits, spaces and hyphens survive; whitespace runs become
    a single hyphen. Returns None when there is no usable heading.
    """
    match = HEADING_PATTERN.search(markdown)
    if not match:
        return None
    title = _TITLE_DISALLOWED.sub("", match.group(1).strip())
    title = _WHITESPACE_RUN.sub("-", title.strip())
    return title or None


@dataclass(frozen=True)
class NoteRequest:
    """Everything the writer needs for one output page."""

    title: str
    source: Path
    date: date
    body: str


class NoteWriter:
    """Write `<pages_dir>/<title>.md`, replacing any existing page of that title."""

    def __init__(self, pages_dir: Path, *, tag: str = "QuadernoNote", style: str = "logseq"):
        if style not in NOTE_STYLES:
            raise ValueError(f"Unknown note style: {style}")
        self.pages_dir = pages_dir
        self.tag = tag
        self.style = style

    def note_path(self, title: str) -> Path:
        return self.pages_dir / f"{title}.md"

    def render(self, request: NoteRequest) -> str:
        source_link = f"![{request.title}]({request.source})"
        if self.style == "frontmatter":
            post = frontmatter.Post(
                f"#{self.tag}\n\n## extracted text:\n{request.body}",
                title=request.title,
                source=source_link,
                date=request.date.isoformat(),
            )
            return frontmatter.dumps(post) + "\n"

        return "\n".join(
            [
                f"title:: {request.title}",
                f"source:: {source_link}",
                f"date:: {request.date.isoformat()}",
                "",
                f"#{self.tag}",
                "",
                "## extracted text:",
                request.body,
                "",
            ]
        )

    def write(self, request: NoteRequest) -> Path:
        path = self.note_path(request.title)
        write_atomic(path, self.render(request))
        return path
