"""CLI entrypoint for quaderno."""

import logging
import signal
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import Settings, load_settings
from .errors import SetupError


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _settings(ctx: click.Context) -> Settings:
    """Load settings on first use, so --help works without a configured graph."""
    if "settings" not in ctx.obj:
        try:
            ctx.obj["settings"] = load_settings(ctx.obj["config_path"], graph=ctx.obj["graph"])
        except SetupError as e:
            raise click.ClickException(str(e)) from e
    return ctx.obj["settings"]


def _exit_on_sigterm() -> None:
    """Turn SIGTERM into SystemExit so scoped locks are released on the way out."""

    def handler(signum, frame):
        sys.exit(128 + signum)

    signal.signal(signal.SIGTERM, handler)


@click.group()
@click.version_option(__version__, prog_name="quaderno")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="Config file (defaults to $QUADERNO_CONFIG or ~/.config/quaderno/config.toml)",
)
@click.option(
    "--graph",
    "-g",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Path to the Logseq graph (overrides config and $QUADERNO_GRAPH)",
)
@click.option("--verbose", "-V", count=True, help="Log more (-V info, -VV debug)")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, graph: Path | None, verbose: int) -> None:
    """quaderno - Scanned notebook pages to linked Logseq notes.

    Transcribes PDF scans page by page, links known pages as [[references]],
    and writes one Logseq page per document.
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["graph"] = graph


@cli.command()
@click.argument(
    "path",
    required=False,
    type=click.Path(exists=False, path_type=Path),
)
@click.option(
    "--force",
    is_flag=True,
    help="Process every document in scope, even if unchanged since the last run",
)
@click.pass_context
def run(ctx: click.Context, path: Path | None, force: bool) -> None:
    """Process a PDF, or every PDF in a directory.

    PATH defaults to the configured inbox, then the current directory.

    Examples:

        quaderno run ~/Scans/meeting.pdf

        quaderno run ~/Scans --force
    """
    from .commands.run_cmd import run_process

    settings = _settings(ctx)
    target = path or settings.inbox or Path.cwd()

    _exit_on_sigterm()
    try:
        exit_code = run_process(settings, target, force=force)
    except SetupError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


@cli.command()
@click.argument(
    "inbox",
    required=False,
    type=click.Path(exists=False, file_okay=False, path_type=Path),
)
@click.option("--force", is_flag=True, help="Reprocess documents even if the index says they are fresh")
@click.pass_context
def watch(ctx: click.Context, inbox: Path | None, force: bool) -> None:
    """Watch a directory and process PDFs as they arrive.

    Runs until interrupted (Ctrl+C).
    """
    from .commands.run_cmd import run_watch

    settings = _settings(ctx)
    inbox = inbox or settings.inbox or Path.cwd()
    if not inbox.is_dir():
        raise click.BadParameter(f"Directory '{inbox}' does not exist.", param_hint="INBOX")

    _exit_on_sigterm()
    try:
        run_watch(settings, inbox, force=force)
    except SetupError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def status(ctx: click.Context, output_json: bool) -> None:
    """Show processed documents and whether they changed since."""
    from .commands.status_cmd import run_status

    run_status(_settings(ctx), output_json=output_json)


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.option("--limit", type=int, default=None, help="Show only the first N candidates")
@click.pass_context
def catalog(ctx: click.Context, output_json: bool, limit: int | None) -> None:
    """List the page names that will be linked, longest first."""
    from .commands.link_cmd import run_catalog

    run_catalog(_settings(ctx), output_json=output_json, limit=limit)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--in-place", is_flag=True, help="Rewrite FILE instead of printing the result")
@click.option("--dry-run", is_flag=True, help="List the occurrences that would be linked")
@click.pass_context
def link(ctx: click.Context, file: Path, in_place: bool, dry_run: bool) -> None:
    """Add [[references]] to an existing Markdown file.

    Examples:

        quaderno link pages/Meeting-notes.md --dry-run

        quaderno link pages/Meeting-notes.md --in-place
    """
    from .commands.link_cmd import run_link

    if in_place and dry_run:
        raise click.UsageError("--in-place and --dry-run are mutually exclusive")
    run_link(_settings(ctx), file, in_place=in_place, dry_run=dry_run)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
