"""Probes that turn a file on disk into metadata.

The library treats a probe as a black box: given a filename it returns a
``ProbeResult`` (type, key/value metadata, elementary streams, optional
artwork) or raises ``ProbeError``.

Two probes ship with medialib:
- ``PathProbe`` classifies purely from the path: extension tables, TV episode
  patterns (S01E02, 1x02), the movie year convention "Title (1999)" and parent
  directory hints. It never opens the file.
- ``MutagenProbe`` layers embedded tags (ID3, Vorbis comments, MP4 atoms) read
  with mutagen on top of the path classification.
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from mutagen import File as MutagenFile
from mutagen import MutagenError
from pydantic import BaseModel, Field

from medialib.errors import ProbeError
from medialib.models.core import (
    Artwork,
    MediaFile,
    MediaStream,
    MediaTypeField,
    year_from_iso,
)
from medialib.models.keys import MetadataKey
from medialib.models.types import MediaType

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = {
    ".mp3", ".flac", ".m4a", ".m4b", ".wav", ".ogg", ".oga", ".opus",
    ".aac", ".wma", ".alac", ".aiff", ".aif",
}
VIDEO_EXTENSIONS = {".mp4", ".mkv", ".avi", ".mov", ".wmv", ".m4v", ".ts", ".webm"}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp"}
SUBTITLE_EXTENSIONS = {".srt", ".sub", ".ass", ".ssa", ".vtt"}
AUDIOBOOK_EXTENSIONS = {".m4b"}

SUPPORTED_EXTENSIONS = (
    AUDIO_EXTENSIONS | VIDEO_EXTENSIONS | IMAGE_EXTENSIONS | SUBTITLE_EXTENSIONS
)

_BASE_TYPES = (
    (AUDIO_EXTENSIONS, MediaType.AUDIO),
    (VIDEO_EXTENSIONS, MediaType.VIDEO),
    (IMAGE_EXTENSIONS, MediaType.IMAGE),
    (SUBTITLE_EXTENSIONS, MediaType.SUBTITLE),
)

# Episode patterns capture (show, season, episode).
TV_PATTERNS = [
    re.compile(r"^(?P<show>.*?)[\s._-]*s(?P<season>\d{1,2})\s*e(?P<episode>\d{1,3})", re.I),
    re.compile(r"^(?P<show>.*?)[\s._-]*\b(?P<season>\d{1,2})x(?P<episode>\d{1,3})\b", re.I),
    re.compile(
        r"^(?P<show>.*?)[\s._-]*\bseason\s*(?P<season>\d+)\b.*?\bepisode\s*(?P<episode>\d+)\b",
        re.I,
    ),
]
MOVIE_PATTERN = re.compile(r"^(?P<title>.*?)\s*\((?P<year>\d{4})\)")

DIRECTORY_HINTS = {
    MediaType.TVSHOW: {"tv", "shows", "series", "tv shows", "television"},
    MediaType.MOVIE: {"movies", "film", "films", "cinema"},
    MediaType.MUSIC: {"music", "audio", "songs", "albums", "mp3"},
    MediaType.AUDIOBOOK: {"audiobooks", "audio books"},
}

ARTWORK_NAMES = {"cover", "folder", "front", "album", "albumart", "poster", "fanart"}


class ProbeResult(BaseModel):
    """What a probe extracted from one file."""

    type: MediaTypeField = MediaType.NONE
    metadata: Dict[int, Any] = Field(default_factory=dict)
    streams: List[MediaStream] = Field(default_factory=list)
    artwork: Optional[bytes] = None
    artwork_mimetype: Optional[str] = None


class Probe(ABC):
    """Interface for metadata probes.

    Implementations must be safe to call from the library's scan thread and
    must raise ``ProbeError`` (never return partial garbage) on failure.
    """

    @abstractmethod
    def probe(self, path: Path) -> ProbeResult:
        """Extract metadata from *path*.

        Raises:
            ProbeError: If the file cannot be read or classified.
        """
        raise NotImplementedError

    def supports(self, path: Path) -> bool:
        """Return True if this probe is worth calling for *path*.

        Every discovered file is probed by default; a probe that only
        understands some formats narrows this.
        """
        return True


def _clean_name(text: str) -> str:
    return re.sub(r"[\s._-]+", " ", text).strip()


def _directory_hint(path: Path) -> Optional[MediaType]:
    for parent in path.parents:
        name = parent.name.lower()
        for media_type, hints in DIRECTORY_HINTS.items():
            if name in hints:
                return media_type
    return None


class PathProbe(Probe):
    """Classify a file from its path and filesystem attributes alone."""

    def supports(self, path: Path) -> bool:
        return path.suffix.lower() in SUPPORTED_EXTENSIONS

    def probe(self, path: Path) -> ProbeResult:
        ext = path.suffix.lower()
        base = next((flag for exts, flag in _BASE_TYPES if ext in exts), None)
        if base is None:
            raise ProbeError(path, f"unsupported file type {ext or '(none)'}")
        try:
            stat = path.stat()
        except OSError as e:
            raise ProbeError(path, str(e)) from e

        metadata: Dict[int, Any] = {
            MetadataKey.FILENAME: path.name,
            MetadataKey.EXTENSION: ext.lstrip("."),
            MetadataKey.FILESIZE: stat.st_size,
            MetadataKey.MODIFIED: datetime.fromtimestamp(stat.st_mtime).isoformat(),
        }
        media_type = MediaType.FILE | base
        if base is MediaType.AUDIO:
            media_type |= self._classify_audio(path)
        elif base is MediaType.VIDEO:
            media_type |= self._classify_video(path, metadata)
        elif base is MediaType.IMAGE and path.stem.lower() in ARTWORK_NAMES:
            media_type |= MediaType.ARTWORK
        elif base is MediaType.SUBTITLE:
            media_type |= MediaType.CAPTIONS

        return ProbeResult(
            type=media_type,
            metadata=metadata,
            streams=[MediaStream(index=0, type=base)],
        )

    def _classify_audio(self, path: Path) -> MediaType:
        if path.suffix.lower() in AUDIOBOOK_EXTENSIONS:
            return MediaType.AUDIOBOOK
        hint = _directory_hint(path)
        if hint is MediaType.AUDIOBOOK:
            return MediaType.AUDIOBOOK
        return MediaType.MUSIC

    def _classify_video(self, path: Path, metadata: Dict[int, Any]) -> MediaType:
        stem = path.stem
        for pattern in TV_PATTERNS:
            match = pattern.search(stem)
            if match:
                show = _clean_name(match.group("show")) or _clean_name(path.parent.name)
                if show:
                    metadata[MetadataKey.SHOW] = show
                metadata[MetadataKey.SEASON] = int(match.group("season"))
                metadata[MetadataKey.EPISODE_ID] = int(match.group("episode"))
                return MediaType.TVSHOW | MediaType.TVEPISODE

        match = MOVIE_PATTERN.search(stem)
        if match:
            title = _clean_name(match.group("title"))
            if title:
                metadata[MetadataKey.TITLE] = title
            metadata[MetadataKey.YEAR] = match.group("year")
            return MediaType.MOVIE

        hint = _directory_hint(path)
        if hint is MediaType.TVSHOW:
            return MediaType.TVSHOW
        if hint is MediaType.MOVIE:
            return MediaType.MOVIE
        if hint is MediaType.MUSIC:
            return MediaType.MUSICVIDEO
        return MediaType.NONE


# ---------------------------------------------------------------------------
# Mutagen
# ---------------------------------------------------------------------------

# Tag names per key, in lookup order: ID3 frame, Vorbis comment, MP4 atom.
STRING_TAGS: Dict[MetadataKey, List[str]] = {
    MetadataKey.TITLE: ["TIT2", "title", "\xa9nam"],
    MetadataKey.TITLE_SORT: ["TSOT", "titlesort", "sonm"],
    MetadataKey.ARTIST: ["TPE1", "artist", "\xa9ART"],
    MetadataKey.ARTIST_SORT: ["TSOP", "artistsort", "soar"],
    MetadataKey.ALBUM: ["TALB", "album", "\xa9alb"],
    MetadataKey.ALBUM_SORT: ["TSOA", "albumsort", "soal"],
    MetadataKey.ALBUM_ARTIST: ["TPE2", "albumartist", "aART"],
    MetadataKey.COMPOSER: ["TCOM", "composer", "\xa9wrt"],
    MetadataKey.PERFORMER: ["TPE3", "performer"],
    MetadataKey.PUBLISHER: ["TPUB", "organization", "publisher"],
    MetadataKey.GENRE: ["TCON", "genre", "\xa9gen"],
    MetadataKey.COMMENT: ["COMM", "comment", "\xa9cmt"],
    MetadataKey.GROUPING: ["GRP1", "TIT1", "grouping", "\xa9grp"],
    MetadataKey.COPYRIGHT: ["TCOP", "copyright", "cprt"],
    MetadataKey.LANGUAGE: ["TLAN", "language"],
    MetadataKey.ENCODER: ["TSSE", "encoder", "\xa9too"],
    MetadataKey.ENCODED_BY: ["TENC", "encodedby", "\xa9enc"],
    MetadataKey.DESCRIPTION: ["description", "desc"],
    MetadataKey.SYNOPSIS: ["ldes"],
    MetadataKey.SHOW: ["tvsh"],
    MetadataKey.SERVICE_NAME: ["tvnn"],
}
UINT_TAGS: Dict[MetadataKey, List[str]] = {
    MetadataKey.TRACK: ["TRCK", "tracknumber", "trkn"],
    MetadataKey.DISC: ["TPOS", "discnumber", "disk"],
    MetadataKey.SEASON: ["tvsn"],
    MetadataKey.EPISODE_ID: ["tves"],
}
BOOL_TAGS: Dict[MetadataKey, List[str]] = {
    MetadataKey.COMPILATION: ["TCMP", "compilation", "cpil"],
    MetadataKey.GAPLESS_PLAYBACK: ["pgap"],
}
DATE_TAGS: Dict[MetadataKey, List[str]] = {
    MetadataKey.YEAR: ["TDRC", "TYER", "date", "year", "\xa9day"],
    MetadataKey.PURCHASED: ["purd"],
}

# iTunes media kind atom ("stik") to classification flags.
STIK_TYPES = {
    1: MediaType.MUSIC,
    2: MediaType.AUDIOBOOK,
    6: MediaType.MUSICVIDEO,
    9: MediaType.MOVIE,
    10: MediaType.TVSHOW | MediaType.TVEPISODE,
    11: MediaType.BOOKLET,
    14: MediaType.RINGTONE,
}


def _first(value: Any) -> Any:
    """Unwrap mutagen's frame/list containers to the first scalar."""
    if hasattr(value, "text"):
        value = value.text
    if isinstance(value, (list, tuple)) and not isinstance(value, bytes):
        return value[0] if value else None
    return value


def _present(value: Any) -> bool:
    if value is None:
        return False
    return not (isinstance(value, str) and not value.strip())


def _lookup(tags: Any, names: Iterable[str]) -> Any:
    keys: List[str] = list(tags.keys())
    for name in names:
        if name in tags:
            value = _first(tags[name])
            if _present(value):
                return value
        # ID3 frames with descriptors are keyed "COMM::eng", "TXXX:foo".
        if len(name) == 4 and name.isupper():
            for key in keys:
                if key.startswith(name + ":"):
                    value = _first(tags[key])
                    if _present(value):
                        return value
    return None


def _as_uint(value: Any) -> Optional[int]:
    if isinstance(value, tuple):
        value = value[0] if value else None
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    text = str(value).split("/")[0].strip()
    return int(text) if text.isdigit() else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    text = str(value).strip().lower()
    if text in ("1", "true", "yes"):
        return True
    if text in ("0", "false", "no"):
        return False
    return None


def extract_tags(tags: Any) -> Dict[int, Any]:
    """Map a mutagen tag container onto the metadata key space."""
    metadata: Dict[int, Any] = {}
    for key, names in STRING_TAGS.items():
        value = _lookup(tags, names)
        if value is not None and str(value).strip():
            metadata[key] = str(value).strip()
    for key, names in UINT_TAGS.items():
        number = _as_uint(_lookup(tags, names))
        if number is not None:
            metadata[key] = number
    for key, names in BOOL_TAGS.items():
        flag = _as_bool(_lookup(tags, names))
        if flag is not None:
            metadata[key] = flag
    for key, names in DATE_TAGS.items():
        value = _lookup(tags, names)
        if value is not None and year_from_iso(str(value)) is not None:
            metadata[key] = str(value).strip()
    stik = _as_uint(_lookup(tags, ["stik"]))
    if stik is not None:
        metadata[MetadataKey.MEDIA_TYPE] = stik
    return metadata


def extract_artwork(audio: Any) -> Optional[bytes]:
    """Return the first embedded picture, if any."""
    pictures = getattr(audio, "pictures", None)
    if pictures:
        return bytes(pictures[0].data)
    tags = getattr(audio, "tags", None)
    if not tags:
        return None
    for key in tags.keys():
        if key.startswith("APIC"):
            return bytes(tags[key].data)
    if "covr" in tags and tags["covr"]:
        return bytes(tags["covr"][0])
    return None


class MutagenProbe(Probe):
    """Read embedded tags with mutagen on top of ``PathProbe`` classification."""

    def __init__(self, fallback: Optional[PathProbe] = None) -> None:
        self._fallback = fallback or PathProbe()

    def supports(self, path: Path) -> bool:
        return self._fallback.supports(path)

    def probe(self, path: Path) -> ProbeResult:
        result = self._fallback.probe(path)
        try:
            audio = MutagenFile(str(path))
        except (MutagenError, OSError) as e:
            raise ProbeError(path, str(e)) from e
        if audio is None:
            logger.debug(f"mutagen does not recognise {path}; using path metadata")
            return result

        metadata = dict(result.metadata)
        if audio.tags is not None:
            metadata.update(extract_tags(audio.tags))

        media_type = result.type | self._classify(metadata)
        artwork = extract_artwork(audio)
        return ProbeResult(
            type=media_type,
            metadata=metadata,
            streams=result.streams,
            artwork=artwork,
        )

    def _classify(self, metadata: Dict[int, Any]) -> MediaType:
        flags = MediaType.NONE
        stik = metadata.get(MetadataKey.MEDIA_TYPE)
        if isinstance(stik, int):
            flags |= STIK_TYPES.get(stik, MediaType.NONE)
        if MetadataKey.ALBUM in metadata:
            flags |= MediaType.ALBUM
        if metadata.get(MetadataKey.COMPILATION) is True:
            flags |= MediaType.COMPILATION
        if MetadataKey.SHOW in metadata:
            flags |= MediaType.TVSHOW
            if MetadataKey.EPISODE_ID in metadata:
                flags |= MediaType.TVEPISODE
        return flags


def open_media_file(path: Union[str, Path], probe: Probe) -> MediaFile:
    """Probe *path* and build the read-only ``MediaFile`` view.

    Raises:
        ProbeError: If the probe fails.
        pydantic.ValidationError: If the probe returned an illegal type mask or
            metadata of the wrong kind.
    """
    path = Path(path).absolute()
    result = probe.probe(path)
    metadata = dict(result.metadata)
    metadata.setdefault(MetadataKey.FILENAME, path.name)
    if path.suffix:
        metadata.setdefault(MetadataKey.EXTENSION, path.suffix.lower().lstrip("."))
    artwork = None
    if result.artwork:
        artwork = Artwork(data=result.artwork, mimetype=result.artwork_mimetype or "")
    return MediaFile(
        id=str(path),
        filename=path,
        type=int(result.type) | MediaType.FILE,
        metadata=metadata,
        streams=tuple(result.streams),
        artwork=artwork,
    )
