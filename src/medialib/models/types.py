"""Media type taxonomy and event kinds.

A ``MediaType`` value is a union of independent classification flags: an album
track is ``FILE | AUDIO | MUSIC | ALBUM``, a TV episode file is
``FILE | VIDEO | TVSHOW | TVEPISODE``. The bitmask carries no implications
between flags; rules such as "TVSEASON requires TVSHOW" are enforced by the
query evaluator, not by the representation.

Raw integers from misconfigured input may carry bits outside the legal range.
``validate_media_type`` rejects those and ``media_type_name`` marks them.
"""

import re
from enum import Enum, IntFlag
from typing import Iterator, List

from medialib.errors import InvalidMediaTypeError

TYPE_PREFIX = "MEDIA_TYPE_"
NONE_NAME = TYPE_PREFIX + "NONE"
INVALID_TYPE_NAME = "[?? Invalid MediaType value]"
SEPARATOR = "|"


class MediaType(IntFlag):
    """Classification flags for media items and streams."""

    NONE = 0
    FILE = 1 << 0
    AUDIO = 1 << 1
    VIDEO = 1 << 2
    IMAGE = 1 << 3
    SUBTITLE = 1 << 4
    DATA = 1 << 5
    ATTACHMENT = 1 << 6
    MUSIC = 1 << 7
    ALBUM = 1 << 8
    COMPILATION = 1 << 9
    TVSHOW = 1 << 10
    TVSEASON = 1 << 11
    TVEPISODE = 1 << 12
    AUDIOBOOK = 1 << 13
    MUSICVIDEO = 1 << 14
    MOVIE = 1 << 15
    BOOKLET = 1 << 16
    RINGTONE = 1 << 17
    ARTWORK = 1 << 18
    CAPTIONS = 1 << 19

    def __str__(self) -> str:
        return media_type_name(self)

    __format__ = object.__format__


MEDIA_TYPE_MIN = MediaType.FILE
MEDIA_TYPE_MAX = MediaType.CAPTIONS

# Flags in ascending bit order; the order of stringification.
FLAGS: tuple = tuple(
    MediaType(1 << bit)
    for bit in range(MEDIA_TYPE_MIN.bit_length() - 1, MEDIA_TYPE_MAX.bit_length())
)

MEDIA_TYPE_ALL = MediaType(sum(int(flag) for flag in FLAGS))

_LEGAL_MASK = int(MEDIA_TYPE_ALL)


def iter_flags(value: int) -> Iterator[MediaType]:
    """Yield the legal flags set in *value* in ascending bit order."""
    for flag in FLAGS:
        if int(value) & flag:
            yield flag


def media_type_name(value: int) -> str:
    """Stringify a media type value.

    Set flags are joined with ``|`` in ascending bit order, each prefixed with
    ``MEDIA_TYPE_``. ``NONE`` yields the ``"MEDIA_TYPE_NONE"`` sentinel; bits
    outside the legal range add the invalid marker.
    """
    value = int(value)
    if value == 0:
        return NONE_NAME
    parts: List[str] = [TYPE_PREFIX + (flag.name or "") for flag in iter_flags(value)]
    if value & ~_LEGAL_MASK:
        parts.append(INVALID_TYPE_NAME)
    return SEPARATOR.join(parts)


def is_valid_media_type(value: int) -> bool:
    """Return True if *value* only carries bits in the legal flag range."""
    return int(value) >= 0 and not int(value) & ~_LEGAL_MASK


def validate_media_type(value: int) -> MediaType:
    """Convert a raw integer to a MediaType.

    Raises:
        InvalidMediaTypeError: If bits outside ``[MIN, MAX]`` are set.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidMediaTypeError(-1)
    if not is_valid_media_type(value):
        raise InvalidMediaTypeError(value)
    return MediaType(value)


def parse_media_type(text: str) -> MediaType:
    """Build a MediaType from flag names such as ``"music|album"``.

    Names are case-insensitive and separated by ``|`` or ``,``. An empty
    string or ``NONE`` yields ``MediaType.NONE``.

    Raises:
        ValueError: If a name is not a known flag.
    """
    result = MediaType.NONE
    for raw in re.split(r"[|,]", text):
        name = raw.strip().upper()
        if name.startswith(TYPE_PREFIX):
            name = name[len(TYPE_PREFIX):]
        if not name or name == "NONE":
            continue
        if name not in MediaType.__members__:
            raise ValueError(f"Unknown media type: {raw.strip()!r}")
        result |= MediaType[name]
    return result


def has_all(value: int, mask: int) -> bool:
    """Superset match: every bit in *mask* is set in *value*.

    ``NONE`` as a mask matches everything. This is the query filter semantic.
    """
    return int(value) & int(mask) == int(mask)


def is_exactly(value: int, classification: int) -> bool:
    """Exact classification: *value* carries precisely the given flags."""
    return int(value) == int(classification)


class MediaEventType(str, Enum):
    """Lifecycle events published by a media library."""

    FILE_ADDED = "file_added"
    FILE_REMOVED = "file_removed"
    SCAN_START = "scan_start"
    SCAN_END = "scan_end"
    ERROR = "error"

    def __str__(self) -> str:
        return f"MEDIA_EVENT_{self.name}"
