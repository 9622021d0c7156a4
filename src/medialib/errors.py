"""Exception hierarchy for medialib.

- Path errors are raised synchronously by ``MediaLibrary.add_path``.
- Probe errors never escape a scan; the library turns them into ERROR events.
- Queries never raise; a malformed query simply matches nothing.
"""

from pathlib import Path
from typing import Union


class MediaLibError(Exception):
    """Base class for all medialib errors."""


class PathError(MediaLibError, OSError):
    """A scan root does not exist or cannot be enumerated."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{reason}: {self.path}")


class ProbeError(MediaLibError):
    """Metadata extraction failed for a single file."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to probe {self.path}: {reason}")


class ScanCancelledError(MediaLibError):
    """A scan was interrupted before the walk completed."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = str(path)
        super().__init__(f"Scan cancelled: {self.path}")


class InvalidMediaTypeError(MediaLibError, ValueError):
    """An integer carries bits outside the legal MediaType range."""

    def __init__(self, value: int) -> None:
        self.value = value
        super().__init__(f"Invalid media type value: {value:#x}")
