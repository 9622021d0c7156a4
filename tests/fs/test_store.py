"""Tests for index stores.

Both stores must round-trip either item variant and iterate in
first-insertion order, with replacements keeping their position.
"""

from pathlib import Path

import pytest

from medialib.fs.store import IndexStore, MemoryStore, SqliteStore, dump_item, load_item
from medialib.models.core import Artwork, MediaFile, MediaItem
from medialib.models.keys import MetadataKey
from medialib.models.types import MediaType


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path: Path):
    if request.param == "memory":
        instance: IndexStore = MemoryStore()
    else:
        instance = SqliteStore(tmp_path / "db" / "index.db")
    yield instance
    instance.close()


def _file(tmp_path: Path, name: str, title: str = "") -> MediaFile:
    metadata = {MetadataKey.TITLE: title} if title else {}
    return MediaFile(
        filename=tmp_path / name,
        type=MediaType.FILE | MediaType.AUDIO,
        metadata=metadata,
    )


def test_put_get_delete(store: IndexStore, tmp_path: Path) -> None:
    item = _file(tmp_path, "a.mp3", "A")
    store.put(item)
    loaded = store.get(item.id)
    assert isinstance(loaded, MediaFile)
    assert loaded.title() == "A"
    assert store.delete(item.id)
    assert not store.delete(item.id)
    assert store.get(item.id) is None


def test_iterate_in_insertion_order(store: IndexStore, tmp_path: Path) -> None:
    for name in ("c.mp3", "a.mp3", "b.mp3"):
        store.put(_file(tmp_path, name))
    store.put(_file(tmp_path, "a.mp3", "replaced"))
    names = [item.filename.name for item in store.iterate()]
    assert names == ["c.mp3", "a.mp3", "b.mp3"]
    assert [item.title() for item in store.iterate()][1] == "replaced"


def test_both_variants(store: IndexStore, tmp_path: Path) -> None:
    store.put(MediaItem(id="album:1", type=MediaType.ALBUM))
    store.put(_file(tmp_path, "a.mp3"))
    kinds = [type(item) for item in store.iterate()]
    assert kinds == [MediaItem, MediaFile]


def test_sqlite_survives_reopen(tmp_path: Path) -> None:
    db_path = tmp_path / "index.db"
    with SqliteStore(db_path) as first:
        first.put(_file(tmp_path, "a.mp3", "A"))
        first.put(_file(tmp_path, "b.mp3", "B"))
    with SqliteStore(db_path) as second:
        assert len(second) == 2
        assert [item.title() for item in second.iterate()] == ["A", "B"]


def test_dump_and_load_artwork(tmp_path: Path) -> None:
    item = MediaFile(
        filename=tmp_path / "a.m4a",
        artwork=Artwork(data=b"\xff\xd8\xff\xe0jpeg"),
    )
    loaded = load_item(dump_item(item))
    assert isinstance(loaded, MediaFile)
    assert loaded.artwork_data() == (b"\xff\xd8\xff\xe0jpeg", "image/jpeg")
