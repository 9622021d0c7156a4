"""CLI commands for medialib.

This module implements the user-facing commands:
- ``scan`` walks a path into the persistent index and reports what happened.
- ``query`` filters the index by type mask and per-key constraints.
- ``keys`` lists the metadata key space; ``version`` prints the version.

Design:
- Typer app and Console are instantiated at module level for reuse across
  commands.
- Annotated is used for argument/option definitions.
- Settings resolve through ``medialib.utils.config`` so flags override the
  environment and the config file.
"""

import json
import logging
import sys
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Annotated, List, Optional, Tuple

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.traceback import install as install_traceback

from medialib.cli.renderer import render_items, render_keys, render_scan_summary
from medialib.core.library import MediaLibrary
from medialib.core.scanner import ScanOptions
from medialib.errors import MediaLibError, PathError
from medialib.fs.store import SqliteStore, dump_item
from medialib.models.events import MediaEvent
from medialib.models.keys import KeyKind, MetadataKey, parse_key
from medialib.models.query import MediaQuery
from medialib.models.types import MediaEventType, parse_media_type
from medialib.utils.config import LibrarySettings, load_settings
from medialib.utils.debug import debug, setup_logger

install_traceback(show_locals=False)

app = typer.Typer(
    name="medialib",
    help="Index media files and query them by type and metadata.",
    add_completion=False,
)
console = Console()

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


class ExitCode(int, Enum):
    """Exit codes for CLI commands."""

    SUCCESS = 0
    ERROR = 1
    PARTIAL = 2


DB_PATH = Annotated[
    Optional[Path],
    typer.Option("--db", help="Index database file (default: ~/.medialib/index.db)"),
]

JSON_OUTPUT = Annotated[
    bool,
    typer.Option("--json", help="Output results in JSON format"),
]


@app.callback()
def callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log debug output to stderr."
    ),
) -> None:
    """Top-level callback adding global options."""
    if verbose:
        setup_logger(logging.DEBUG)
    else:
        logging.getLogger("medialib").setLevel(logging.WARNING)


def _open_library(settings: LibrarySettings) -> MediaLibrary:
    debug(f"Opening index {settings.db_path}")
    library = MediaLibrary(
        store=SqliteStore(settings.db_path),
        options=ScanOptions(
            recursive=settings.recursive, include_hidden=settings.include_hidden
        ),
        event_buffer=settings.event_buffer_size,
    )
    library.load()
    return library


@app.command()
def scan(  # noqa: PLR0913
    path: Annotated[Path, typer.Argument(help="Directory or file to index")],
    db: DB_PATH = None,
    prune: Annotated[
        bool,
        typer.Option("--prune", help="Drop indexed files under PATH that are gone"),
    ] = False,
    include_hidden: Annotated[
        Optional[bool],
        typer.Option(
            "--include-hidden/--exclude-hidden",
            help="Include dot-prefixed files and directories",
        ),
    ] = None,
    recursive: Annotated[
        Optional[bool],
        typer.Option("--recursive/--no-recursive", help="Descend into subdirectories"),
    ] = None,
    json_output: JSON_OUTPUT = False,
) -> None:
    """Scan a directory (or single file) into the media index."""
    settings = load_settings(
        db_path=db, include_hidden=include_hidden, recursive=recursive
    )
    errors: List[MediaEvent] = []
    try:
        with _open_library(settings) as library:
            subscription = library.subscribe()
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
                disable=json_output,
            ) as progress:
                task = progress.add_task(f"Scanning {path}...", total=None)
                future = library.start_scan(path, prune=prune)
                while True:
                    event = subscription.get(timeout=0.1)
                    if event is None:
                        if future.done():
                            break
                        continue
                    if event.type is MediaEventType.FILE_ADDED and event.item:
                        progress.update(task, description=f"Indexed {event.item.title()}")
                    elif event.type is MediaEventType.ERROR:
                        errors.append(event)
                    elif event.type is MediaEventType.SCAN_END:
                        break
                summary = future.result()
    except PathError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(ExitCode.ERROR)
    except Exception as e:
        console.print(f"[red]Error: An unexpected error occurred: {e}[/red]")
        raise typer.Exit(ExitCode.ERROR)

    if json_output:
        sys.stdout.write(json.dumps(asdict(summary), indent=2) + "\n")
    else:
        render_scan_summary(summary, errors, console=console)

    if summary.errors or summary.cancelled:
        raise typer.Exit(ExitCode.PARTIAL)


def _split_assignment(text: str) -> Tuple[MetadataKey, str]:
    key_text, sep, value = text.partition("=")
    if not sep:
        raise typer.BadParameter(f"Expected KEY=VALUE, got {text!r}")
    try:
        return parse_key(key_text), value.strip()
    except KeyError as e:
        raise typer.BadParameter(str(e.args[0])) from e


def _parse_bool(value: str) -> bool:
    word = value.lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise typer.BadParameter(f"Expected a boolean, got {value!r}")


def _parse_uint(value: str) -> int:
    if not value.isdigit():
        raise typer.BadParameter(f"Expected a non-negative integer, got {value!r}")
    return int(value)


def build_query(
    media_type: str = "",
    where: Optional[List[str]] = None,
    year: Optional[List[str]] = None,
    limit: int = 0,
    offset: int = 0,
) -> MediaQuery:
    """Translate command-line filters into a MediaQuery.

    ``--where`` values are coerced by the key's kind; date keys compare as
    ISO strings. ``--year`` matches the year part of date or uint keys.

    Raises:
        typer.BadParameter: If a key, value or type name cannot be parsed.
    """
    try:
        query = MediaQuery(type=parse_media_type(media_type), limit=limit, offset=offset)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    for assignment in where or []:
        key, value = _split_assignment(assignment)
        kind = key.kind
        if kind is KeyKind.BOOL:
            query.where_bool(key, _parse_bool(value))
        elif kind is KeyKind.UINT:
            query.where_uint(key, _parse_uint(value))
        else:
            query.where_string(key, value)

    for assignment in year or []:
        key, value = _split_assignment(assignment)
        query.where_year(key, _parse_uint(value))
    return query


@app.command()
def query(  # noqa: PLR0913
    db: DB_PATH = None,
    media_type: Annotated[
        str,
        typer.Option(
            "--type", "-t", help="Flags every result must carry, e.g. 'music|album'"
        ),
    ] = "",
    where: Annotated[
        Optional[List[str]],
        typer.Option("--where", "-w", help="KEY=VALUE equality constraint"),
    ] = None,
    year: Annotated[
        Optional[List[str]],
        typer.Option("--year", help="KEY=YYYY year constraint on a date key"),
    ] = None,
    limit: Annotated[
        int, typer.Option("--limit", min=0, help="Maximum results (0 = all)")
    ] = 0,
    offset: Annotated[int, typer.Option("--offset", min=0, help="Results to skip")] = 0,
    json_output: JSON_OUTPUT = False,
) -> None:
    """Query the media index."""
    try:
        media_query = build_query(media_type, where, year, limit, offset)
    except typer.BadParameter as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(ExitCode.ERROR)

    if not media_query.is_well_formed():
        console.print(
            "[yellow]TVSEASON and TVEPISODE require TVSHOW; nothing matches.[/yellow]"
        )

    settings = load_settings(db_path=db)
    try:
        with _open_library(settings) as library:
            results = library.query(media_query)
            total = library.count(media_query)
    except MediaLibError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(ExitCode.ERROR)

    if json_output:
        payload = [json.loads(dump_item(item)) for item in results]
        sys.stdout.write(json.dumps(payload, indent=2) + "\n")
    else:
        render_items(results, total, console=console)


@app.command()
def keys() -> None:
    """List the metadata keys with their tags and value kinds."""
    render_keys(console=console)


@app.command()
def version() -> None:
    """Show the version of medialib."""
    from medialib.__about__ import __version__

    console.print(f"medialib version: [bold]{__version__}[/bold]")


def main() -> None:
    """Main entry point for the CLI."""
    app()
