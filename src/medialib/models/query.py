"""Query objects for the media library.

A ``MediaQuery`` is a mutable predicate builder: a target type mask,
pagination, and a conjunction of per-key equality constraints.

- ``MediaType.ALBUM`` returns all albums, ``MediaType.MUSIC`` all songs.
- ``MediaType.TVSHOW`` returns all TV shows. ``TVSEASON`` and ``TVEPISODE`` are
  only meaningful together with ``TVSHOW``; a query asking for them without it
  is malformed and matches nothing.
- ``MediaType.MOVIE`` returns all movies.

Matching is a pure conjunction; adding a constraint can only narrow the
result set. A constraint on a key the item does not carry, or carries with a
different value kind, fails.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Sequence, TypeVar, Union

from medialib.models.core import MediaItem
from medialib.models.keys import key_name
from medialib.models.types import (
    MediaType,
    has_all,
    is_valid_media_type,
    media_type_name,
)

T = TypeVar("T")


class ConstraintKind(str, Enum):
    STRING = "string"
    BOOL = "bool"
    UINT = "uint"
    YEAR = "year"


@dataclass(frozen=True)
class Constraint:
    """A single equality constraint on one metadata key."""

    kind: ConstraintKind
    key: int
    value: Union[str, bool, int]

    def holds(self, item: MediaItem) -> bool:
        if self.kind is ConstraintKind.STRING:
            value = item.value_for_key(self.key)
            return isinstance(value, str) and value == self.value
        if self.kind is ConstraintKind.BOOL:
            return item.bool_for_key(self.key) == self.value
        if self.kind is ConstraintKind.UINT:
            return item.uint_for_key(self.key) == self.value
        return item.year_for_key(self.key) == self.value

    def __str__(self) -> str:
        return f"{key_name(self.key)} == {self.value!r} ({self.kind.value})"


def _check_uint(value: int, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{what} must be a non-negative integer, got {value!r}")
    return value


def _check_bool(value: bool, what: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{what} must be a bool, got {value!r}")
    return value


@dataclass
class MediaQuery:
    """Predicate evaluated by ``MediaLibrary.query``."""

    type: MediaType = MediaType.NONE
    limit: int = 0
    """Maximum number of results; 0 means unlimited."""
    offset: int = 0
    constraints: List[Constraint] = field(default_factory=list)

    def __post_init__(self) -> None:
        _check_uint(self.limit, "limit")
        _check_uint(self.offset, "offset")

    # ------------------------------------------------------------------
    # Builder
    # ------------------------------------------------------------------
    def where_string(self, key: int, value: str) -> "MediaQuery":
        self.constraints.append(Constraint(ConstraintKind.STRING, int(key), value))
        return self

    def where_bool(self, key: int, value: bool) -> "MediaQuery":
        _check_bool(value, "value")
        self.constraints.append(Constraint(ConstraintKind.BOOL, int(key), value))
        return self

    def where_uint(self, key: int, value: int) -> "MediaQuery":
        _check_uint(value, "value")
        self.constraints.append(Constraint(ConstraintKind.UINT, int(key), value))
        return self

    def where_year(self, key: int, year: int) -> "MediaQuery":
        _check_uint(year, "year")
        self.constraints.append(Constraint(ConstraintKind.YEAR, int(key), year))
        return self

    def set_type(self, media_type: int) -> "MediaQuery":
        self.type = MediaType(int(media_type))
        return self

    def set_limit(self, limit: int) -> "MediaQuery":
        self.limit = _check_uint(limit, "limit")
        return self

    def set_offset(self, offset: int) -> "MediaQuery":
        self.offset = _check_uint(offset, "offset")
        return self

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------
    def is_well_formed(self) -> bool:
        """Return False for masks the library refuses to evaluate.

        That is any mask with bits outside the legal range, and TVSEASON or
        TVEPISODE requested without TVSHOW.
        """
        mask = int(self.type)
        if not is_valid_media_type(mask):
            return False
        if mask & (MediaType.TVSEASON | MediaType.TVEPISODE):
            return bool(mask & MediaType.TVSHOW)
        return True

    def matches(self, item: MediaItem) -> bool:
        """Return True if *item* satisfies the type mask and every constraint."""
        if self.type != MediaType.NONE and not has_all(item.type, self.type):
            return False
        return all(constraint.holds(item) for constraint in self.constraints)

    def filter(self, items: Iterable[MediaItem]) -> List[MediaItem]:
        return [item for item in items if self.matches(item)]

    def paginate(self, items: Sequence[T]) -> List[T]:
        """Slice ``[offset, offset + limit)``; an offset past the end is empty."""
        if self.offset >= len(items):
            return []
        end = self.offset + self.limit if self.limit else len(items)
        return list(items[self.offset:end])

    def __str__(self) -> str:
        parts = [f"type={media_type_name(self.type)}"]
        parts.extend(str(c) for c in self.constraints)
        if self.limit:
            parts.append(f"limit={self.limit}")
        if self.offset:
            parts.append(f"offset={self.offset}")
        return "MediaQuery(" + ", ".join(parts) + ")"
