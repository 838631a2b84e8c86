"""Catalog and link commands - inspect and apply automatic [[reference]] linking."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import Settings
from ..fsutil import write_atomic
from ..linking import CandidateOrigin, build_catalog, find_links, link_text
from ..pipeline import catalog_rules


def run_catalog(settings: Settings, *, output_json: bool = False, limit: int | None = None) -> int:
    """Show the candidate list in the order the linker applies it."""
    console = Console()
    candidates = build_catalog(settings.pages_dir, settings.journals_dir, catalog_rules(settings))
    shown = candidates[:limit] if limit is not None else candidates

    if output_json:
        print(json.dumps([c.to_dict() for c in shown], indent=2))
        return len(candidates)

    if not candidates:
        console.print("[dim]No linkable pages found.[/dim]")
        return 0

    table = Table(title=f"Reference catalog ({len(candidates)} candidates)")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Origin")
    for i, candidate in enumerate(shown, start=1):
        origin = "page" if candidate.origin is CandidateOrigin.EXISTING_PAGE else "[dim]reference[/dim]"
        table.add_row(str(i), escape(candidate.text), origin)
    console.print(table)
    return len(candidates)


def run_link(
    settings: Settings,
    file: Path,
    *,
    in_place: bool = False,
    dry_run: bool = False,
) -> int:
    """
    Link a Markdown file against the catalog.

    Prints the linked text to stdout, rewrites the file with --in-place, or
    lists the occurrences that would be linked with --dry-run. Returns the
    number of links added by the first pass.
    """
    console = Console(stderr=True)
    text = file.read_text(encoding="utf-8")
    candidates = build_catalog(settings.pages_dir, settings.journals_dir, catalog_rules(settings))
    spans = find_links(text, candidates)

    if dry_run:
        for span in spans:
            line = text.count("\n", 0, span.start) + 1
            console.print(escape(f"{file.name}:{line}: {span.text!r} -> [[{span.text}]]"), highlight=False)
        console.print(f"[bold]{len(spans)}[/bold] links would be added")
        return len(spans)

    linked = link_text(text, candidates)
    if in_place:
        if linked != text:
            write_atomic(file, linked)
        console.print(f"[bold]{len(spans)}[/bold] links added to {file}")
    else:
        print(linked, end="")
    return len(spans)
