"""Tests for the MediaType flag set and event kinds."""

import pytest

from medialib.errors import InvalidMediaTypeError
from medialib.models.types import (
    FLAGS,
    INVALID_TYPE_NAME,
    MEDIA_TYPE_ALL,
    MEDIA_TYPE_MAX,
    MEDIA_TYPE_MIN,
    MediaEventType,
    MediaType,
    has_all,
    is_exactly,
    is_valid_media_type,
    iter_flags,
    media_type_name,
    parse_media_type,
    validate_media_type,
)

SONG = MediaType.FILE | MediaType.AUDIO | MediaType.MUSIC


class TestMediaTypeName:
    """Tests for stringification of media type values."""

    def test_none_sentinel(self) -> None:
        assert media_type_name(MediaType.NONE) == "MEDIA_TYPE_NONE"
        assert str(MediaType.NONE) == "MEDIA_TYPE_NONE"

    def test_single_flag(self) -> None:
        assert str(MediaType.MUSIC) == "MEDIA_TYPE_MUSIC"
        assert f"{MediaType.MOVIE}" == "MEDIA_TYPE_MOVIE"

    def test_flags_joined_in_bit_order(self) -> None:
        assert media_type_name(SONG) == "MEDIA_TYPE_FILE|MEDIA_TYPE_AUDIO|MEDIA_TYPE_MUSIC"
        assert str(MediaType.MUSIC | MediaType.FILE) == "MEDIA_TYPE_FILE|MEDIA_TYPE_MUSIC"

    def test_invalid_bits_marked(self) -> None:
        assert media_type_name(1 << 25) == INVALID_TYPE_NAME
        mixed = int(MediaType.FILE) | 1 << 25
        assert media_type_name(mixed) == f"MEDIA_TYPE_FILE|{INVALID_TYPE_NAME}"


class TestValidation:
    """Tests for validate_media_type and is_valid_media_type."""

    def test_range(self) -> None:
        assert MEDIA_TYPE_MIN is MediaType.FILE
        assert MEDIA_TYPE_MAX is MediaType.CAPTIONS
        assert len(FLAGS) == 20
        assert int(MEDIA_TYPE_ALL) == (1 << 20) - 1

    def test_valid_values(self) -> None:
        assert validate_media_type(0) is MediaType.NONE
        assert validate_media_type(int(SONG)) == SONG
        assert validate_media_type(int(MEDIA_TYPE_ALL)) == MEDIA_TYPE_ALL

    @pytest.mark.parametrize("value", [1 << 20, 1 << 31, -1])
    def test_invalid_values(self, value: int) -> None:
        assert not is_valid_media_type(value)
        with pytest.raises(InvalidMediaTypeError):
            validate_media_type(value)

    def test_invalid_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            validate_media_type(1 << 21)

    def test_iter_flags(self) -> None:
        assert list(iter_flags(SONG)) == [MediaType.FILE, MediaType.AUDIO, MediaType.MUSIC]
        assert list(iter_flags(0)) == []


class TestParseMediaType:
    """Tests for parse_media_type."""

    def test_pipe_separated(self) -> None:
        assert parse_media_type("music|album") == MediaType.MUSIC | MediaType.ALBUM

    def test_comma_and_prefix(self) -> None:
        assert (
            parse_media_type("MEDIA_TYPE_TVSHOW, tvepisode")
            == MediaType.TVSHOW | MediaType.TVEPISODE
        )

    def test_empty_and_none(self) -> None:
        assert parse_media_type("") is MediaType.NONE
        assert parse_media_type("none") is MediaType.NONE
        assert parse_media_type("MEDIA_TYPE_NONE") is MediaType.NONE

    def test_parses_its_own_names(self) -> None:
        assert parse_media_type(media_type_name(SONG)) == SONG
        assert parse_media_type(str(MediaType.TVSHOW | MediaType.TVSEASON)) == (
            MediaType.TVSHOW | MediaType.TVSEASON
        )

    def test_unknown(self) -> None:
        with pytest.raises(ValueError, match="bogus"):
            parse_media_type("music|bogus")


class TestMatching:
    """Tests for superset and exact matching."""

    def test_union_is_idempotent(self) -> None:
        assert SONG | SONG == SONG
        assert MediaType.MUSIC | MediaType.MUSIC == MediaType.MUSIC

    def test_has_all(self) -> None:
        assert has_all(SONG, MediaType.MUSIC)
        assert has_all(SONG, MediaType.AUDIO | MediaType.MUSIC)
        assert not has_all(SONG, MediaType.MUSIC | MediaType.ALBUM)
        assert has_all(SONG, MediaType.NONE)

    def test_is_exactly(self) -> None:
        assert is_exactly(SONG, SONG)
        assert not is_exactly(SONG, MediaType.MUSIC)


def test_event_type_names() -> None:
    assert str(MediaEventType.FILE_ADDED) == "MEDIA_EVENT_FILE_ADDED"
    assert str(MediaEventType.SCAN_END) == "MEDIA_EVENT_SCAN_END"
    assert str(MediaEventType.ERROR) == "MEDIA_EVENT_ERROR"
