"""Tests for MediaQuery construction and evaluation."""

import pytest

from medialib.models.core import MediaItem
from medialib.models.keys import MetadataKey
from medialib.models.query import ConstraintKind, MediaQuery
from medialib.models.types import MediaType

SONG = MediaType.FILE | MediaType.AUDIO | MediaType.MUSIC


def _item(identity: str, media_type: MediaType = SONG, **metadata) -> MediaItem:
    return MediaItem(
        id=identity,
        type=media_type,
        metadata={MetadataKey[name.upper()]: value for name, value in metadata.items()},
    )


@pytest.fixture
def items():
    return [
        _item("a", artist="X", track=1, year="2001-02-03"),
        _item("b", SONG | MediaType.ALBUM, artist="X", track=2, compilation=True),
        _item("c", artist="Y", track=2, compilation=False),
        _item("d", MediaType.FILE | MediaType.VIDEO | MediaType.MOVIE, title="Film"),
    ]


def _ids(results):
    return [item.id for item in results]


class TestBuilder:
    """Tests for the builder methods."""

    def test_builders_chain(self) -> None:
        query = (
            MediaQuery()
            .set_type(MediaType.MUSIC)
            .where_string(MetadataKey.ARTIST, "X")
            .where_uint(MetadataKey.TRACK, 2)
            .set_limit(5)
            .set_offset(1)
        )
        assert query.type == MediaType.MUSIC
        assert [c.kind for c in query.constraints] == [
            ConstraintKind.STRING,
            ConstraintKind.UINT,
        ]
        assert (query.limit, query.offset) == (5, 1)

    @pytest.mark.parametrize("kwargs", [{"limit": -1}, {"offset": -3}])
    def test_negative_pagination_rejected(self, kwargs) -> None:
        with pytest.raises(ValueError):
            MediaQuery(**kwargs)

    def test_negative_uint_rejected(self) -> None:
        with pytest.raises(ValueError):
            MediaQuery().where_uint(MetadataKey.TRACK, -1)

    @pytest.mark.parametrize("value", ["false", 0, 1, None])
    def test_non_bool_flag_rejected(self, value) -> None:
        query = MediaQuery()
        with pytest.raises(ValueError):
            query.where_bool(MetadataKey.COMPILATION, value)
        assert query.constraints == []

    def test_str(self) -> None:
        query = MediaQuery(type=MediaType.MOVIE).where_year(MetadataKey.YEAR, 1999)
        text = str(query)
        assert "type=MEDIA_TYPE_MOVIE" in text
        assert "METADATA_KEY_YEAR" in text


class TestMatching:
    """Tests for conjunctive filtering."""

    def test_empty_query_matches_everything(self, items) -> None:
        assert _ids(MediaQuery().filter(items)) == ["a", "b", "c", "d"]

    def test_type_is_superset_match(self, items) -> None:
        assert _ids(MediaQuery(type=MediaType.MUSIC).filter(items)) == ["a", "b", "c"]
        assert _ids(MediaQuery(type=MediaType.ALBUM).filter(items)) == ["b"]
        assert _ids(MediaQuery(type=MediaType.MOVIE).filter(items)) == ["d"]

    def test_constraints_narrow_monotonically(self, items) -> None:
        query = MediaQuery().where_string(MetadataKey.ARTIST, "X")
        first = _ids(query.filter(items))
        query.where_uint(MetadataKey.TRACK, 2)
        second = _ids(query.filter(items))
        assert first == ["a", "b"]
        assert second == ["b"]
        assert set(second) <= set(first)

    def test_bool_constraint(self, items) -> None:
        assert _ids(MediaQuery().where_bool(MetadataKey.COMPILATION, True).filter(items)) == ["b"]
        assert _ids(MediaQuery().where_bool(MetadataKey.COMPILATION, False).filter(items)) == ["c"]

    def test_year_constraint(self, items) -> None:
        assert _ids(MediaQuery().where_year(MetadataKey.YEAR, 2001).filter(items)) == ["a"]
        assert MediaQuery().where_year(MetadataKey.YEAR, 2002).filter(items) == []

    def test_absent_key_fails(self, items) -> None:
        assert MediaQuery().where_string(MetadataKey.GENRE, "Rock").filter(items) == []

    def test_kind_mismatch_fails(self, items) -> None:
        assert MediaQuery().where_string(MetadataKey.TRACK, "2").filter(items) == []


class TestWellFormed:
    """Tests for is_well_formed."""

    @pytest.mark.parametrize(
        "media_type",
        [MediaType.TVSEASON, MediaType.TVEPISODE, MediaType.TVSEASON | MediaType.TVEPISODE],
    )
    def test_tv_flags_need_tvshow(self, media_type) -> None:
        assert not MediaQuery(type=media_type).is_well_formed()
        assert MediaQuery(type=media_type | MediaType.TVSHOW).is_well_formed()

    def test_plain_types_are_well_formed(self) -> None:
        assert MediaQuery().is_well_formed()
        assert MediaQuery(type=MediaType.MUSIC | MediaType.ALBUM).is_well_formed()

    def test_illegal_bits(self) -> None:
        assert not MediaQuery().set_type(1 << 25).is_well_formed()


class TestPagination:
    """Tests for paginate."""

    def test_limit_and_offset(self) -> None:
        assert MediaQuery(limit=2, offset=1).paginate(["A", "B", "C", "D"]) == ["B", "C"]

    def test_offset_past_end(self) -> None:
        assert MediaQuery(offset=10).paginate(["A", "B", "C", "D"]) == []

    def test_zero_limit_is_unlimited(self) -> None:
        assert MediaQuery(offset=1).paginate(["A", "B", "C"]) == ["B", "C"]

    def test_limit_past_end(self) -> None:
        assert MediaQuery(limit=10, offset=2).paginate(["A", "B", "C"]) == ["C"]
