"""Events published by a media library during scans and index changes."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from medialib.models.core import MediaItem
from medialib.models.types import MediaEventType


class MediaEvent(BaseModel):
    """An immutable lifecycle record.

    ``item`` is only set for FILE_ADDED and FILE_REMOVED, ``error`` only for
    ERROR events.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type: MediaEventType
    path: str
    item: Optional[MediaItem] = None
    error: Optional[Exception] = None
    timestamp: datetime = Field(default_factory=datetime.now)

    @classmethod
    def file_added(cls, item: MediaItem, path: str) -> "MediaEvent":
        return cls(type=MediaEventType.FILE_ADDED, item=item, path=path)

    @classmethod
    def file_removed(cls, item: MediaItem, path: str) -> "MediaEvent":
        return cls(type=MediaEventType.FILE_REMOVED, item=item, path=path)

    @classmethod
    def scan_start(cls, path: str) -> "MediaEvent":
        return cls(type=MediaEventType.SCAN_START, path=path)

    @classmethod
    def scan_end(cls, path: str) -> "MediaEvent":
        return cls(type=MediaEventType.SCAN_END, path=path)

    @classmethod
    def error_event(cls, path: str, error: Exception) -> "MediaEvent":
        return cls(type=MediaEventType.ERROR, path=path, error=error)

    def __str__(self) -> str:
        detail = ""
        if self.item is not None:
            detail = f" item={self.item.title()!r}"
        elif self.error is not None:
            detail = f" error={self.error}"
        return f"<{self.type} path={self.path!r}{detail}>"
