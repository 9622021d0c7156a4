"""Core domain models for medialib.

This module defines the read-only views the library hands out for indexed
media.
- ``MediaItem`` is the plain variant: identity, type and a key/value metadata
  map. ``MediaFile`` is the file-backed variant adding filename, elementary
  streams and artwork.
- The two variants form a closed union tagged by ``kind`` so stores can
  round-trip either through one JSON schema.
- All models are frozen: the library builds them once per successful probe and
  replaces (never mutates) them on rescan.

Design:
- Metadata values are stored as ``str``, ``int`` or ``bool`` according to the
  key's implicit kind (see ``medialib.models.keys``). Dates are ISO 8601
  strings. Construction rejects values of the wrong kind, so accessors can stay
  total and never raise.
"""

import re
from datetime import date, datetime
from pathlib import Path, PurePath
from types import MappingProxyType
from typing import Annotated, Any, Dict, Literal, Mapping, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    PlainValidator,
    StrictBool,
    StrictInt,
    StrictStr,
    TypeAdapter,
    field_serializer,
    field_validator,
    model_validator,
)

from medialib.models.keys import KeyKind, MetadataKey, is_defined_key, key_kind, key_name
from medialib.models.types import MediaType, validate_media_type

MetadataValue = Union[StrictBool, StrictInt, StrictStr]

_YEAR_PATTERN = re.compile(r"^\s*(\d{4})")

DEFAULT_ARTWORK_MIMETYPE = "application/octet-stream"

# Magic byte prefixes for the artwork formats found in common containers.
_ARTWORK_SIGNATURES: Tuple[Tuple[bytes, str], ...] = (
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
)


def _coerce_media_type(value: Any) -> MediaType:
    if isinstance(value, str):
        value = int(value)
    return validate_media_type(value)


MediaTypeField = Annotated[
    MediaType,
    PlainValidator(_coerce_media_type),
    PlainSerializer(int, return_type=int),
]
"""MediaType accepted from raw ints and serialized as a plain integer."""


def detect_artwork_mimetype(data: bytes) -> str:
    """Guess the mimetype of artwork bytes from their signature."""
    for signature, mimetype in _ARTWORK_SIGNATURES:
        if data.startswith(signature):
            return mimetype
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return DEFAULT_ARTWORK_MIMETYPE


def year_from_iso(value: str) -> Optional[int]:
    """Return the year of an ISO date/time string such as ``2019-05-01``."""
    match = _YEAR_PATTERN.match(value)
    return int(match.group(1)) if match else None


def _as_key(key: int) -> int:
    return MetadataKey(int(key)) if is_defined_key(key) else int(key)


def _check_value(key: int, value: MetadataValue) -> None:
    kind = key_kind(key) or KeyKind.STRING
    label = key_name(key) if is_defined_key(key) else f"{int(key):#010x}"
    if kind is KeyKind.BOOL:
        ok = isinstance(value, bool)
    elif kind is KeyKind.UINT:
        ok = isinstance(value, int) and not isinstance(value, bool) and value >= 0
    elif kind is KeyKind.DATE:
        ok = isinstance(value, str) and year_from_iso(value) is not None
    else:
        ok = isinstance(value, str)
    if not ok:
        raise ValueError(f"{label} expects a {kind.value} value, got {value!r}")


class MediaStream(BaseModel):
    """One elementary stream inside a container file.

    The stream type is independent of the containing file's type: a movie file
    typically carries a VIDEO stream, one or more AUDIO streams and SUBTITLE
    streams.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(0, ge=0)
    """Position of the stream in the container."""

    type: MediaTypeField = MediaType.NONE
    """Classification of this stream (audio, video, subtitle, ...)."""


class Artwork(BaseModel):
    """Embedded artwork: raw bytes plus the detected mimetype."""

    model_config = ConfigDict(
        frozen=True, ser_json_bytes="base64", val_json_bytes="base64"
    )

    data: bytes
    mimetype: str = ""

    @model_validator(mode="before")
    @classmethod
    def _fill_mimetype(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("mimetype"):
            raw = data.get("data")
            if isinstance(raw, (bytes, bytearray)):
                data = {**data, "mimetype": detect_artwork_mimetype(bytes(raw))}
        return data


class MediaItem(BaseModel):
    """Read-only metadata view of an indexed media item."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["item"] = "item"

    id: str
    """Identity in the library index (the filename for file-backed items)."""

    type: MediaTypeField = MediaType.NONE
    """Union of classification flags for this item."""

    metadata: Dict[int, MetadataValue] = Field(default_factory=dict)
    """Metadata values keyed by MetadataKey, held as a read-only mapping."""

    @field_validator("metadata", mode="before")
    @classmethod
    def _normalize_dates(cls, value: Any) -> Any:
        if not isinstance(value, Mapping):
            return value
        normalized = {}
        for key, item in value.items():
            if isinstance(item, (datetime, date)):
                item = item.isoformat()
            normalized[key] = item
        return normalized

    @field_validator("metadata", mode="after")
    @classmethod
    def _check_kinds(cls, value: Dict[int, MetadataValue]) -> Mapping[int, MetadataValue]:
        checked: Dict[int, MetadataValue] = {}
        for key, item in value.items():
            if int(key) == MetadataKey.NONE:
                raise ValueError("METADATA_KEY_NONE is not a valid metadata key")
            if not 0 < int(key) <= 0xFFFFFFFF:
                raise ValueError(f"Metadata key out of range: {key}")
            _check_value(key, item)
            checked[_as_key(key)] = item
        return MappingProxyType(checked)

    @field_serializer("metadata")
    def _serialize_metadata(
        self, value: Mapping[int, MetadataValue]
    ) -> Dict[int, MetadataValue]:
        return {int(key): item for key, item in value.items()}

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    def _title_source(self) -> str:
        filename = self.metadata.get(MetadataKey.FILENAME)
        return filename if isinstance(filename, str) and filename else self.id

    def title(self) -> str:
        """Return the TITLE metadata, falling back to the filename stem."""
        value = self.metadata.get(MetadataKey.TITLE)
        if isinstance(value, str) and value.strip():
            return value
        return PurePath(self._title_source()).stem or self.id

    def keys(self) -> Tuple[int, ...]:
        """Return the keys present on this item, in ascending numeric order."""
        return tuple(sorted(self.metadata))

    def has_key(self, key: int) -> bool:
        return int(key) in self.metadata

    def value_for_key(self, key: int) -> Optional[MetadataValue]:
        return self.metadata.get(int(key))

    def string_for_key(self, key: int) -> Optional[str]:
        """Return the value for *key* rendered as a string, or None if absent.

        Numbers render as decimal and booleans as ``"true"``/``"false"``.
        """
        value = self.metadata.get(int(key))
        if value is None:
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def uint_for_key(self, key: int) -> Optional[int]:
        value = self.metadata.get(int(key))
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    def bool_for_key(self, key: int) -> Optional[bool]:
        value = self.metadata.get(int(key))
        return value if isinstance(value, bool) else None

    def date_for_key(self, key: int) -> Optional[str]:
        """Return the ISO date string for a date-kind key, or None."""
        if key_kind(key) is not KeyKind.DATE:
            return None
        value = self.metadata.get(int(key))
        return value if isinstance(value, str) else None

    def year_for_key(self, key: int) -> Optional[int]:
        """Return the year held by a date-kind or uint-kind key, or None."""
        date_value = self.date_for_key(key)
        if date_value is not None:
            return year_from_iso(date_value)
        if key_kind(key) is KeyKind.UINT:
            return self.uint_for_key(key)
        return None


class MediaFile(MediaItem):
    """A media item backed by a file on disk."""

    kind: Literal["file"] = "file"  # type: ignore[assignment]

    filename: Path
    """Absolute path to the file; also the item's identity."""

    streams: Tuple[MediaStream, ...] = ()
    """Elementary streams detected by the probe, in container order."""

    artwork: Optional[Artwork] = None
    """Embedded artwork, when the probe extracted any."""

    @model_validator(mode="before")
    @classmethod
    def _default_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id") and data.get("filename"):
            data = {**data, "id": str(data["filename"])}
        return data

    @model_validator(mode="after")
    def validate_path(self) -> "MediaFile":
        """Ensure the filename is absolute.

        Raises:
            ValueError: If the filename is relative.
        """
        if not self.filename.is_absolute():
            raise ValueError(f"Path must be absolute: {self.filename}")
        return self

    def _title_source(self) -> str:
        return str(self.filename)

    def artwork_data(self) -> Tuple[Optional[bytes], str]:
        """Return artwork bytes and mimetype, or ``(None, "")`` when absent."""
        if self.artwork is None:
            return None, ""
        return self.artwork.data, self.artwork.mimetype


IndexedItem = Annotated[Union[MediaFile, MediaItem], Field(discriminator="kind")]
"""Closed union of the item variants held by a library index."""

INDEXED_ITEM_ADAPTER: TypeAdapter = TypeAdapter(IndexedItem)
