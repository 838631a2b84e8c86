"""Status command - show the processing index."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..config import Settings
from ..state import ProcessingIndex, needs_processing
from ..state.index import format_timestamp


def entry_state(path: Path, index: dict, grace_seconds: float) -> str:
    if not path.exists():
        return "missing"
    return "stale" if needs_processing(path, index, grace_seconds=grace_seconds) else "fresh"


def run_status(settings: Settings, *, output_json: bool = False) -> int:
    """
    List every indexed document with its last-processed time and whether it
    would be processed again.

    Returns the number of entries shown.
    """
    console = Console()
    # Runs without the run lock; entries() never writes the store.
    entries = ProcessingIndex(settings.index_path).entries()
    mapping = {entry.path: entry.last_processed for entry in entries}
    grace = settings.thresholds.grace_seconds

    rows = []
    for entry in entries:
        rows.append(
            {
                "path": entry.path,
                "last_processed": format_timestamp(entry.last_processed),
                "state": entry_state(Path(entry.path), mapping, grace),
            }
        )

    if output_json:
        print(json.dumps(rows, indent=2))
        return len(rows)

    if not rows:
        console.print("[dim]No documents processed yet.[/dim]")
        return 0

    table = Table(title=f"Processing index ({settings.index_path})")
    table.add_column("Document")
    table.add_column("Last processed")
    table.add_column("State")

    style = {"fresh": "green", "stale": "yellow", "missing": "red"}
    for row in rows:
        table.add_row(
            row["path"],
            row["last_processed"][:19].replace("T", " "),
            f"[{style[row['state']]}]{row['state']}[/{style[row['state']]}]",
        )

    console.print(table)
    return len(rows)
