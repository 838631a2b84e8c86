"""Run and watch commands - process scanned documents into Logseq pages."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..config import Settings
from ..ocr import Transcriber
from ..pipeline import Pipeline, RunReport, check_setup
from ..raster import Rasterizer
from ..watcher import run_watch_loop


def print_report(console: Console, report: RunReport) -> None:
    if report.locked:
        console.print("[dim]Another run is in progress; skipping.[/dim]")
        return

    for document, note in report.processed:
        console.print(f"[green]✓[/green] {escape(document.name)} -> {escape(str(note))}")
    for document in report.skipped_debounced:
        console.print(f"[dim]~ {escape(document.name)} (duplicate trigger, skipped)[/dim]")
    for failure in report.failed:
        console.print(f"[red]✗[/red] {escape(failure.path.name)}: {escape(failure.error)}", highlight=False)

    if report.nothing_to_do:
        console.print("[dim]Nothing to do.[/dim]")
    else:
        console.print(f"[bold]Done.[/bold] {report.summary()}")


def run_process(
    settings: Settings,
    target: Path,
    *,
    force: bool = False,
    transcriber: Transcriber | None = None,
    rasterizer: Rasterizer | None = None,
) -> int:
    """
    Process the documents at `target` (a PDF or a directory of PDFs).

    Lock contention, up-to-date documents and per-document failures all
    end with exit code 0; setup problems raise SetupError before any
    document is touched.
    """
    console = Console(stderr=True)

    # Injected collaborators replace the external tools, so skip their checks.
    check_setup(settings, require_ocr=transcriber is None or rasterizer is None)
    pipeline = Pipeline.from_settings(settings, transcriber=transcriber, rasterizer=rasterizer)

    report = pipeline.run(target, force=force)
    print_report(console, report)
    return 0


def run_watch(settings: Settings, inbox: Path, *, force: bool = False) -> None:
    """
    Watch `inbox` and process each PDF as it settles.

    This is a blocking command that runs until interrupted (Ctrl+C).
    """
    console = Console(stderr=True)

    check_setup(settings)
    pipeline = Pipeline.from_settings(settings)

    console.print(f"[bold]Watching[/bold] {inbox}")
    console.print(f"  Notes go to: {settings.pages_dir}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    processed = 0

    def on_document(path: Path) -> None:
        nonlocal processed
        timestamp = datetime.now().strftime("%H:%M:%S")
        console.print(f"[dim]{timestamp}[/dim] {escape(path.name)}")
        report = pipeline.run(path, force=force)
        processed += len(report.processed)
        print_report(console, report)

    run_watch_loop(inbox, on_document)
    console.print()
    console.print(f"[bold]Stopped.[/bold] Processed {processed} documents.")
