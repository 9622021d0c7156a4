"""Rich renderers for CLI output.

This module renders scan summaries, query results and the metadata key table
as rich tables. Commands choose between these and plain JSON on stdout.
"""

from typing import Sequence

from rich.console import Console
from rich.table import Table

from medialib.core.library import ScanSummary
from medialib.models.core import MediaFile, MediaItem
from medialib.models.events import MediaEvent
from medialib.models.keys import KEY_KINDS, key_fourcc, key_name
from medialib.models.types import media_type_name


def _location(item: MediaItem) -> str:
    if isinstance(item, MediaFile):
        return str(item.filename)
    return item.id


def render_items(
    items: Sequence[MediaItem], total: int, console: Console | None = None
) -> None:
    """Render query results as a table followed by a count line.

    Args:
        items: The page of results to show.
        total: Number of matches before pagination.
        console: Optional Console instance to use for rendering.
    """
    console = console or Console()

    table = Table(title="Media")
    table.add_column("Title", style="bold")
    table.add_column("Type", style="cyan")
    table.add_column("Location", style="green")
    for item in items:
        table.add_row(item.title(), media_type_name(item.type), _location(item))

    console.print(table)
    console.print(f"Showing: {len(items)} | Total: {total}")


def render_scan_summary(
    summary: ScanSummary,
    errors: Sequence[MediaEvent] = (),
    console: Console | None = None,
) -> None:
    """Render the outcome of a scan, listing each ERROR event."""
    console = console or Console()

    if errors:
        table = Table(title="Errors")
        table.add_column("Path", style="cyan")
        table.add_column("Error", style="red")
        for event in errors:
            table.add_row(event.path, str(event.error))
        console.print(table)

    style = "yellow bold" if summary.errors or summary.cancelled else "green bold"
    console.print(
        f"Added: {summary.added} | Errors: {summary.errors} | "
        f"Removed: {summary.removed}",
        style=style,
    )
    if summary.cancelled:
        console.print("Scan was cancelled before completion.", style="yellow")


def render_keys(console: Console | None = None) -> None:
    """Render every named metadata key with its tag and value kind."""
    console = console or Console()

    table = Table(title="Metadata keys")
    table.add_column("Name", style="bold")
    table.add_column("FourCC", style="cyan")
    table.add_column("Kind", style="green")
    for key, kind in KEY_KINDS.items():
        table.add_row(key_name(key), key_fourcc(key), kind.value)
    console.print(table)
