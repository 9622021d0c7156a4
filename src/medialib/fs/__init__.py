"""Index persistence for medialib."""

from medialib.fs.store import IndexStore, MemoryStore, SqliteStore

__all__ = [
    "IndexStore",
    "MemoryStore",
    "SqliteStore",
]
