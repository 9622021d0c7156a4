"""Key-value persistence for the library index.

A store maps an item identity (the filename for file-backed items) to a
serialized ``IndexedItem``. The library only needs get/put/delete/iterate;
iteration yields items in first-insertion order so a reloaded library keeps
its query order.
"""

import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from medialib.models.core import INDEXED_ITEM_ADAPTER, MediaItem

CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS items (
        identity TEXT PRIMARY KEY,
        seq INTEGER NOT NULL,
        json_blob TEXT NOT NULL
    );
    """


def dump_item(item: MediaItem) -> str:
    """Serialize an item (either variant) to a JSON blob."""
    return item.model_dump_json()


def load_item(blob: Union[str, bytes]) -> MediaItem:
    """Deserialize a JSON blob produced by ``dump_item``."""
    return INDEXED_ITEM_ADAPTER.validate_json(blob)


class IndexStore(ABC):
    """Persistence collaborator for a media library index."""

    @abstractmethod
    def get(self, identity: str) -> Optional[MediaItem]:
        raise NotImplementedError

    @abstractmethod
    def put(self, item: MediaItem) -> None:
        """Insert or replace *item* under ``item.id``."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, identity: str) -> bool:
        """Remove an entry; return False if it was not present."""
        raise NotImplementedError

    @abstractmethod
    def iterate(self) -> Iterator[MediaItem]:
        """Yield every stored item in first-insertion order."""
        raise NotImplementedError

    def close(self) -> None:
        """Release any resources held by the store."""

    def __enter__(self) -> "IndexStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # type: ignore[no-untyped-def]
        self.close()
        return False


class MemoryStore(IndexStore):
    """In-process store holding JSON blobs, mainly for tests."""

    def __init__(self) -> None:
        self._blobs: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, identity: str) -> Optional[MediaItem]:
        with self._lock:
            blob = self._blobs.get(identity)
        return load_item(blob) if blob is not None else None

    def put(self, item: MediaItem) -> None:
        blob = dump_item(item)
        with self._lock:
            self._blobs[item.id] = blob

    def delete(self, identity: str) -> bool:
        with self._lock:
            return self._blobs.pop(identity, None) is not None

    def iterate(self) -> Iterator[MediaItem]:
        with self._lock:
            blobs = list(self._blobs.values())
        for blob in blobs:
            yield load_item(blob)

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)


class SqliteStore(IndexStore):
    """SQLite-backed store: one row per item, JSON blob per row."""

    def __init__(self, db_path: Union[str, Path] = ":memory:") -> None:
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        # The scan thread and callers share one connection behind a lock.
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._lock = threading.Lock()
        with self._lock:
            self._conn.execute(CREATE_TABLE_SQL)
            self._conn.commit()

    def get(self, identity: str) -> Optional[MediaItem]:
        with self._lock:
            row = self._conn.execute(
                "SELECT json_blob FROM items WHERE identity=?", (identity,)
            ).fetchone()
        return load_item(row[0]) if row else None

    def put(self, item: MediaItem) -> None:
        blob = dump_item(item)
        with self._lock:
            self._conn.execute(
                "INSERT INTO items (identity, seq, json_blob) "
                "VALUES (?, (SELECT COALESCE(MAX(seq), 0) + 1 FROM items), ?) "
                "ON CONFLICT(identity) DO UPDATE SET json_blob=excluded.json_blob",
                (item.id, blob),
            )
            self._conn.commit()

    def delete(self, identity: str) -> bool:
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM items WHERE identity=?", (identity,)
            )
            self._conn.commit()
        return cursor.rowcount > 0

    def iterate(self) -> Iterator[MediaItem]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT json_blob FROM items ORDER BY seq"
            ).fetchall()
        for (blob,) in rows:
            yield load_item(blob)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __len__(self) -> int:
        with self._lock:
            (count,) = self._conn.execute("SELECT COUNT(*) FROM items").fetchone()
        return int(count)
