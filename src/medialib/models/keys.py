"""Metadata key space for medialib.

Every piece of metadata attached to a media item is addressed by a 32-bit key
built from four ASCII bytes (a FourCC-style tag such as ``titx`` for the title).
- The tag keeps otherwise opaque integers human-decodable in logs and stores.
- Each named key carries an implicit value kind (string, uint, bool or date).
  The kind is not stored with the value; producers (probes) and consumers
  (queries, accessors) agree on it through ``KEY_KINDS``.

Design:
- ``MetadataKey`` is an IntEnum so keys compare and hash as plain integers and
  survive JSON round-trips as numbers.
- All registries below are built once at import time and never mutated.
"""

from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union

INVALID_KEY_NAME = "[?? Invalid MetadataKey]"

_KEY_PREFIX = "METADATA_KEY_"

ByteLike = Union[str, int]


def _as_byte(value: ByteLike) -> int:
    if isinstance(value, str):
        if len(value) != 1:
            raise ValueError(f"Expected a single character, got {value!r}")
        value = ord(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected a byte value, got {value!r}")
    if not 0 <= value <= 0xFF:
        raise ValueError(f"Byte value out of range: {value}")
    return value


def metadata_key(a: ByteLike, b: ByteLike, c: ByteLike, d: ByteLike) -> int:
    """Pack four bytes into a 32-bit metadata key.

    Args:
        a, b, c, d: Single characters or integers in the range 0..255, most
            significant first.

    Returns:
        ``a << 24 | b << 16 | c << 8 | d``

    Raises:
        ValueError: If any argument is not a single byte.
    """
    return (
        _as_byte(a) << 24 | _as_byte(b) << 16 | _as_byte(c) << 8 | _as_byte(d)
    )


class KeyKind(str, Enum):
    """Value kind associated with a metadata key."""

    STRING = "string"
    UINT = "uint"
    BOOL = "bool"
    DATE = "date"


class MetadataKey(IntEnum):
    """Named metadata keys.

    ``NONE`` is reserved and never a valid metadata entry.
    """

    NONE = metadata_key(0, 0, 0, 0)

    # File attributes
    FILENAME = metadata_key("f", "n", "a", "m")
    EXTENSION = metadata_key("f", "e", "x", "t")
    FILESIZE = metadata_key("f", "s", "i", "z")

    # Other strings
    TITLE = metadata_key("t", "i", "t", "x")
    TITLE_SORT = metadata_key("s", "i", "t", "x")
    COMMENT = metadata_key("c", "m", "t", "x")
    DESCRIPTION = metadata_key("d", "e", "t", "x")
    SYNOPSIS = metadata_key("s", "y", "t", "x")
    GROUPING = metadata_key("g", "r", "t", "x")
    COPYRIGHT = metadata_key("c", "p", "t", "x")
    LANGUAGE = metadata_key("l", "a", "t", "x")
    VERSION_MINOR = metadata_key("m", "i", "v", "e")
    VERSION_MAJOR = metadata_key("m", "a", "v", "e")
    ACCOUNT_ID = metadata_key("u", "s", "t", "x")

    # Dates
    CREATED = metadata_key("c", "t", "i", "m")
    MODIFIED = metadata_key("m", "t", "i", "m")
    YEAR = metadata_key("y", "t", "i", "m")
    PURCHASED = metadata_key("p", "t", "i", "m")

    # Type strings
    BRAND_MAJOR = metadata_key("m", "a", "b", "r")
    BRAND_COMPATIBLE = metadata_key("m", "i", "b", "r")
    MEDIA_TYPE = metadata_key("t", "y", "p", "e")

    # Encoding strings
    ENCODER = metadata_key("c", "o", "t", "x")
    ENCODED_BY = metadata_key("e", "n", "t", "x")

    # Track, disc
    TRACK = metadata_key("t", "i", "n", "t")
    DISC = metadata_key("d", "i", "n", "t")

    # Music
    ALBUM = metadata_key("a", "l", "t", "x")
    ALBUM_SORT = metadata_key("s", "l", "t", "x")
    ALBUM_ARTIST = metadata_key("a", "a", "t", "x")
    ARTIST = metadata_key("a", "r", "t", "x")
    ARTIST_SORT = metadata_key("s", "r", "t", "x")
    COMPOSER = metadata_key("c", "m", "p", "x")
    PERFORMER = metadata_key("p", "e", "t", "x")
    PUBLISHER = metadata_key("p", "u", "t", "x")
    GENRE = metadata_key("g", "e", "t", "x")
    COMPILATION = metadata_key("c", "b", "o", "l")
    GAPLESS_PLAYBACK = metadata_key("g", "b", "o", "l")

    # TV
    SHOW = metadata_key("s", "h", "t", "x")
    SEASON = metadata_key("s", "i", "n", "t")
    EPISODE_ID = metadata_key("e", "i", "n", "t")
    EPISODE_SORT = metadata_key("f", "i", "n", "t")

    # Broadcasting
    SERVICE_NAME = metadata_key("s", "n", "t", "x")
    SERVICE_PROVIDER = metadata_key("s", "p", "t", "x")

    def __str__(self) -> str:
        return key_name(self)

    @property
    def kind(self) -> Optional[KeyKind]:
        """Value kind for this key, or None for NONE."""
        return key_kind(self)

    @property
    def fourcc(self) -> str:
        """Four-character tag for this key."""
        return key_fourcc(self)


_UINT_KEYS = {
    MetadataKey.FILESIZE,
    MetadataKey.VERSION_MINOR,
    MetadataKey.VERSION_MAJOR,
    MetadataKey.MEDIA_TYPE,
    MetadataKey.TRACK,
    MetadataKey.DISC,
    MetadataKey.SEASON,
    MetadataKey.EPISODE_ID,
    MetadataKey.EPISODE_SORT,
}
_BOOL_KEYS = {MetadataKey.COMPILATION, MetadataKey.GAPLESS_PLAYBACK}
_DATE_KEYS = {
    MetadataKey.CREATED,
    MetadataKey.MODIFIED,
    MetadataKey.YEAR,
    MetadataKey.PURCHASED,
}


def _kind_for(key: MetadataKey) -> KeyKind:
    if key in _UINT_KEYS:
        return KeyKind.UINT
    if key in _BOOL_KEYS:
        return KeyKind.BOOL
    if key in _DATE_KEYS:
        return KeyKind.DATE
    return KeyKind.STRING


KEY_KINDS: Mapping[MetadataKey, KeyKind] = MappingProxyType(
    {key: _kind_for(key) for key in MetadataKey if key is not MetadataKey.NONE}
)

_KEY_NAMES: Mapping[int, str] = MappingProxyType(
    {int(key): _KEY_PREFIX + key.name for key in MetadataKey}
)


def key_name(key: int) -> str:
    """Return the canonical name of a key, or the invalid-key marker.

    Undefined 32-bit values never map onto an existing name.
    """
    return _KEY_NAMES.get(int(key), INVALID_KEY_NAME)


def key_kind(key: int) -> Optional[KeyKind]:
    """Return the value kind of a defined key, or None."""
    try:
        return KEY_KINDS.get(MetadataKey(int(key)))
    except ValueError:
        return None


def is_defined_key(key: int) -> bool:
    """Return True if *key* is one of the named keys other than NONE."""
    return int(key) in _KEY_NAMES and int(key) != MetadataKey.NONE


def key_bytes(key: int) -> Tuple[int, int, int, int]:
    """Decode the four bytes embedded in a key, most significant first."""
    value = int(key) & 0xFFFFFFFF
    return (value >> 24) & 0xFF, (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF


def key_fourcc(key: int) -> str:
    """Render a key as a four-character tag; non-printable bytes become '.'."""
    return "".join(chr(b) if 0x20 <= b < 0x7F else "." for b in key_bytes(key))


def parse_key(text: str) -> MetadataKey:
    """Resolve a key from its canonical name, short name or FourCC tag.

    Examples: ``"METADATA_KEY_ARTIST"``, ``"artist"``, ``"artx"``.

    Raises:
        KeyError: If the text does not name a defined key.
    """
    candidate = text.strip()
    name = candidate.upper()
    if name.startswith(_KEY_PREFIX):
        name = name[len(_KEY_PREFIX):]
    if name in MetadataKey.__members__ and name != "NONE":
        return MetadataKey[name]
    if len(candidate) == 4:
        try:
            value = metadata_key(*candidate)
        except ValueError:
            value = MetadataKey.NONE
        if is_defined_key(value):
            return MetadataKey(value)
    raise KeyError(f"Unknown metadata key: {text!r}")
