"""Directory walker for media scans.

This module enumerates candidate media files below a scan root. It does not
read file contents; classification is the probe's job.
- Hidden files and directories (dot-prefixed) are skipped unless requested.
- Sidecar and metadata files that are never media are skipped up front.
- Entries are visited in sorted order so scans are reproducible.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Iterator, Optional, Set

from pydantic import BaseModel, Field

from medialib.errors import PathError

logger = logging.getLogger(__name__)

# IGNORED_EXTENSIONS covers sidecar and metadata files that should never be
# treated as media.
IGNORED_EXTENSIONS = {
    ".nfo",
    ".txt",
    ".idx",
    ".db",
    ".ini",
    ".log",
    ".ds_store",
    ".part",
    ".!qb",
    ".aria2",
    ".xml",
    ".tmp",
    ".bak",
    ".url",
    ".cue",
    ".m3u",
    ".m3u8",
}


class ScanOptions(BaseModel):
    """Options for walking a scan root."""

    recursive: bool = True
    """Whether to descend into subdirectories."""

    include_hidden: bool = False
    """Whether to include dot-prefixed files and directories."""

    extensions: Set[str] = Field(default_factory=set)
    """Lower-case extensions (with dot) to include; empty means all."""

    follow_symlinks: bool = False
    """Whether to descend into symlinked directories."""


def is_hidden(path: Path) -> bool:
    """Check if a path component is hidden (starts with a dot)."""
    return path.name.startswith(".")


def check_scan_root(root: Path) -> Path:
    """Validate that *root* can be scanned.

    A root may be a directory (walked) or a single file.

    Returns:
        The absolute root path.

    Raises:
        PathError: If the root does not exist or cannot be listed.
    """
    if not root.exists():
        raise PathError(root, "Path does not exist")
    root = root.absolute()
    if root.is_dir():
        try:
            with os.scandir(root):
                pass
        except OSError as e:
            raise PathError(root, f"Cannot list directory ({e.strerror or e})") from e
    elif not root.is_file():
        raise PathError(root, "Path is neither a file nor a directory")
    return root


def _wanted(path: Path, options: ScanOptions) -> bool:
    ext = path.suffix.lower()
    if ext in IGNORED_EXTENSIONS or path.name.lower() == ".ds_store":
        return False
    if options.extensions and ext not in options.extensions:
        return False
    return True


def iter_media_files(
    root: Path,
    options: Optional[ScanOptions] = None,
    *,
    on_error: Optional[Callable[[Path, OSError], None]] = None,
) -> Iterator[Path]:
    """Yield candidate media files under *root* in sorted order.

    Args:
        root: Scan root; a single file yields just itself.
        options: Walk options; defaults apply when omitted.
        on_error: Called with (path, error) for subdirectories that cannot be
            listed. The walk continues past them.
    """
    options = options or ScanOptions()
    if root.is_file():
        if _wanted(root, options):
            yield root
        return

    try:
        entries = sorted(os.scandir(root), key=lambda entry: entry.name)
    except OSError as e:
        logger.warning(f"Error accessing directory {root}: {e}")
        if on_error is not None:
            on_error(root, e)
        return

    for entry in entries:
        path = Path(entry.path)
        if is_hidden(path) and not options.include_hidden:
            continue
        try:
            if entry.is_dir(follow_symlinks=options.follow_symlinks):
                if options.recursive:
                    yield from iter_media_files(path, options, on_error=on_error)
            elif entry.is_file() and _wanted(path, options):
                yield path
        except OSError as e:
            logger.warning(f"Error accessing {path}: {e}")
            if on_error is not None:
                on_error(path, e)
