"""Domain models for the medialib package."""

from medialib.models.core import (
    Artwork,
    IndexedItem,
    MediaFile,
    MediaItem,
    MediaStream,
)
from medialib.models.events import MediaEvent
from medialib.models.keys import KeyKind, MetadataKey, metadata_key
from medialib.models.query import MediaQuery
from medialib.models.types import MediaEventType, MediaType

__all__ = [
    "Artwork",
    "IndexedItem",
    "KeyKind",
    "MediaEvent",
    "MediaEventType",
    "MediaFile",
    "MediaItem",
    "MediaQuery",
    "MediaStream",
    "MediaType",
    "MetadataKey",
    "metadata_key",
]
