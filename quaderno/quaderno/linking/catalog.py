"""
Reference catalog: the names the linker may turn into [[references]].

Candidates come from two places:
- existing pages (file stem of every pages/*.md),
- virtual references ([[name]] occurrences in pages/ and journals/, whether
  or not a page exists for them).

The catalog is ordered longest-first. The linker relies on that order so a
longer name ("Project Apollo") is claimed before any of its substrings
("Apollo").
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .parser import extract_references

logger = logging.getLogger(__name__)


class CandidateOrigin(str, Enum):
    EXISTING_PAGE = "existing_page"
    VIRTUAL_REFERENCE = "virtual_reference"


@dataclass(frozen=True)
class Candidate:
    """A linkable topic name."""

    text: str
    origin: CandidateOrigin

    def to_dict(self) -> dict[str, str]:
        return {"text": self.text, "origin": self.origin.value}


@dataclass(frozen=True)
class CatalogRules:
    """Which names are never linkable."""

    excluded_names: tuple[str, ...] = ()
    reserved_sigil: str = "@"
    highlights_marker: str = "(highlights)"

    def is_excluded(self, name: str) -> bool:
        """True for reserved keywords, highlights pages and sigil-prefixed names."""
        lowered = name.lower()
        if any(lowered == keyword.lower() for keyword in self.excluded_names):
            return True
        if self.highlights_marker and self.highlights_marker in name:
            return True
        if self.reserved_sigil and name.startswith(self.reserved_sigil):
            return True
        return False


def _is_linkable_text(name: str) -> bool:
    return bool(name.strip()) and "[" not in name and "]" not in name


def iter_markdown_files(directory: Path) -> Iterator[Path]:
    """Markdown files directly inside `directory`, sorted by name."""
    if not directory.is_dir():
        logger.debug("Corpus directory %s missing; skipping", directory)
        return
    for path in sorted(directory.glob("*.md")):
        if path.is_file():
            yield path


def page_names(pages_dir: Path) -> list[str]:
    """Display names of existing pages (filename without extension)."""
    return [p.stem for p in iter_markdown_files(pages_dir)]


def corpus_references(directories: Iterable[Path]) -> list[str]:
    """Every [[reference]] across the corpus. Unreadable files are skipped."""
    refs: list[str] = []
    for directory in directories:
        for path in iter_markdown_files(directory):
            try:
                content = path.read_text(encoding="utf-8")
            except (UnicodeDecodeError, OSError) as e:
                logger.warning("Could not read %s: %s", path, e)
                continue
            refs.extend(extract_references(content))
    return refs


def rank_candidates(candidates: Iterable[Candidate]) -> list[Candidate]:
    """
    De-duplicate by exact text and order longest-first (ties by text).

    When a name is both an existing page and a virtual reference, the page
    wins.
    """
    by_text: dict[str, Candidate] = {}
    for candidate in candidates:
        current = by_text.get(candidate.text)
        if current is None or (
            current.origin is CandidateOrigin.VIRTUAL_REFERENCE
            and candidate.origin is CandidateOrigin.EXISTING_PAGE
        ):
            by_text[candidate.text] = candidate
    return sorted(by_text.values(), key=lambda c: (-len(c.text), c.text))


def build_catalog(pages_dir: Path, journals_dir: Path, rules: CatalogRules) -> list[Candidate]:
    """
    Build the ordered candidate list for a Logseq graph.

    Args:
        pages_dir: Directory of topic pages
        journals_dir: Directory of dated journal pages
        rules: Exclusion rules applied to names from both sources

    Returns:
        Unique candidates sorted by descending text length
    """
    raw: list[Candidate] = []
    for name in page_names(pages_dir):
        raw.append(Candidate(name, CandidateOrigin.EXISTING_PAGE))
    for name in corpus_references([pages_dir, journals_dir]):
        raw.append(Candidate(name, CandidateOrigin.VIRTUAL_REFERENCE))

    kept = [c for c in raw if _is_linkable_text(c.text) and not rules.is_excluded(c.text)]
    catalog = rank_candidates(kept)
    logger.debug(
        "Catalog built: %d candidates (%d names seen, %d excluded)",
        len(catalog),
        len(raw),
        len(raw) - len(kept),
    )
    return catalog
