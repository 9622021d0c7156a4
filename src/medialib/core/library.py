"""Media library: index ownership, scan protocol and query evaluation.

This module ties the pieces together:
- ``add_path`` walks a root, probes each candidate file, inserts the resulting
  ``MediaFile`` into the index and publishes lifecycle events.
- ``query`` filters the current index with a ``MediaQuery``.

Scan protocol, per call (Idle -> Scanning -> Idle):
1. Validate the root. A missing or unlistable root raises ``PathError`` before
   anything is published.
2. Publish SCAN_START.
3. For each file: on success insert/replace and publish FILE_ADDED; on probe
   failure publish ERROR and leave any previous entry untouched.
4. Optionally prune entries under the root that were not seen.
5. Publish SCAN_END, even when the scan was cancelled or crashed.

Concurrency:
- Scans are serialized by a scan lock; a second ``add_path`` waits for the
  first to finish. ``start_scan`` runs scans on a single worker thread.
- The index sits behind a readers/writer lock. Queries take the read side only
  long enough to copy the item list, then filter without holding it. The unit
  of atomicity is one insert/replace/remove.
- Query order is first-insertion order; replacing an item keeps its position.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Union

from medialib.core.events import EventBus, Subscription
from medialib.core.probe import MutagenProbe, Probe, open_media_file
from medialib.core.scanner import ScanOptions, check_scan_root, iter_media_files
from medialib.errors import ProbeError, ScanCancelledError
from medialib.fs.store import IndexStore
from medialib.models.core import MediaItem
from medialib.models.events import MediaEvent
from medialib.models.query import MediaQuery
from medialib.models.types import media_type_name
from medialib.utils.locks import ReadWriteLock

logger = logging.getLogger(__name__)


@dataclass
class ScanSummary:
    """Outcome of one ``add_path`` call."""

    path: str
    added: int = 0
    errors: int = 0
    removed: int = 0
    cancelled: bool = False
    error_paths: List[str] = field(default_factory=list)


def _is_under(filename: str, root: Path) -> bool:
    candidate = Path(filename)
    return candidate == root or root in candidate.parents


class MediaLibrary:
    """Owns a media index, runs scans and answers queries."""

    def __init__(
        self,
        probe: Optional[Probe] = None,
        store: Optional[IndexStore] = None,
        options: Optional[ScanOptions] = None,
        event_buffer: int = 0,
    ) -> None:
        self.probe = probe or MutagenProbe()
        self.store = store
        self.options = options or ScanOptions()
        self._events = EventBus(default_maxsize=event_buffer)
        self._index: Dict[str, MediaItem] = {}
        self._index_lock = ReadWriteLock()
        self._scan_lock = threading.Lock()
        self._cancel = threading.Event()
        self._scanning = threading.Event()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closed = False

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def subscribe(self, maxsize: Optional[int] = None) -> Subscription:
        """Return a channel receiving every event published from now on."""
        return self._events.subscribe(maxsize)

    def _publish(self, event: MediaEvent) -> None:
        self._events.publish(event)

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------
    def load(self) -> int:
        """Fill the index from the store, returning the number of items."""
        if self.store is None:
            return 0
        items = list(self.store.iterate())
        with self._index_lock.write():
            for item in items:
                self._index[item.id] = item
        logger.info(f"Loaded {len(items)} items from store")
        return len(items)

    def _insert(self, item: MediaItem) -> None:
        if self.store is not None:
            self.store.put(item)
        with self._index_lock.write():
            self._index[item.id] = item

    def _delete(self, identity: str) -> Optional[MediaItem]:
        with self._index_lock.write():
            item = self._index.pop(identity, None)
        if item is not None and self.store is not None:
            self.store.delete(identity)
        return item

    def _snapshot(self) -> List[MediaItem]:
        with self._index_lock.read():
            return list(self._index.values())

    def get(self, identity: Union[str, Path]) -> Optional[MediaItem]:
        key = str(Path(identity).absolute()) if isinstance(identity, Path) else identity
        with self._index_lock.read():
            return self._index.get(key)

    def items(self) -> List[MediaItem]:
        """Return every indexed item in query order."""
        return self._snapshot()

    def __len__(self) -> int:
        with self._index_lock.read():
            return len(self._index)

    def __contains__(self, identity: object) -> bool:
        if isinstance(identity, Path):
            identity = str(identity.absolute())
        with self._index_lock.read():
            return identity in self._index

    def __iter__(self) -> Iterator[MediaItem]:
        return iter(self._snapshot())

    def remove(self, identity: Union[str, Path]) -> bool:
        """Delete one item and publish FILE_REMOVED; False if it was absent."""
        key = str(Path(identity).absolute()) if isinstance(identity, Path) else identity
        item = self._delete(key)
        if item is None:
            return False
        self._publish(MediaEvent.file_removed(item, key))
        return True

    def remove_path(self, path: Union[str, Path]) -> int:
        """Delete every item at or below *path*; return how many were removed."""
        root = Path(path).absolute()
        doomed = [item.id for item in self._snapshot() if _is_under(item.id, root)]
        return sum(1 for identity in doomed if self.remove(identity))

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------
    @property
    def is_scanning(self) -> bool:
        return self._scanning.is_set()

    def cancel(self) -> None:
        """Interrupt the scan in progress, if any."""
        if self._scanning.is_set():
            logger.info("Cancelling scan")
            self._cancel.set()

    def add_path(self, path: Union[str, Path], *, prune: bool = False) -> ScanSummary:
        """Scan *path* into the index.

        Args:
            path: Directory to walk, or a single file.
            prune: After a complete scan, remove indexed items under *path*
                that the walk did not see.

        Returns:
            Counts of added, failed and removed files.

        Raises:
            PathError: If *path* does not exist or cannot be listed. Nothing is
                published in that case.
        """
        root = check_scan_root(Path(path))
        with self._scan_lock:
            return self._scan(root, prune)

    def start_scan(
        self, path: Union[str, Path], *, prune: bool = False
    ) -> "Future[ScanSummary]":
        """Validate *path* now and scan it on the library's worker thread."""
        if self._closed:
            raise RuntimeError("MediaLibrary is closed")
        root = check_scan_root(Path(path))
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="medialib-scan"
            )
        return self._executor.submit(self.add_path, root, prune=prune)

    def _scan(self, root: Path, prune: bool) -> ScanSummary:
        summary = ScanSummary(path=str(root))
        seen: Set[str] = set()
        self._cancel.clear()
        self._scanning.set()
        logger.info(f"Scan started: {root}")
        self._publish(MediaEvent.scan_start(summary.path))

        def walk_error(failed: Path, error: OSError) -> None:
            summary.errors += 1
            summary.error_paths.append(str(failed))
            self._publish(MediaEvent.error_event(str(failed), error))

        try:
            for file_path in iter_media_files(root, self.options, on_error=walk_error):
                if self._cancel.is_set():
                    summary.cancelled = True
                    break
                if not self.probe.supports(file_path):
                    continue
                self._scan_file(file_path, summary, seen)

            if summary.cancelled:
                logger.warning(f"Scan cancelled: {root}")
                self._publish(MediaEvent.error_event(summary.path, ScanCancelledError(root)))
            elif prune:
                summary.removed = self._prune(root, seen)
        except Exception as e:
            logger.exception(f"Scan aborted: {root}")
            self._publish(MediaEvent.error_event(summary.path, e))
            raise
        finally:
            self._scanning.clear()
            self._cancel.clear()
            self._publish(MediaEvent.scan_end(summary.path))
            logger.info(
                f"Scan finished: {root} (added={summary.added}, "
                f"errors={summary.errors}, removed={summary.removed})"
            )
        return summary

    def _scan_file(self, file_path: Path, summary: ScanSummary, seen: Set[str]) -> None:
        identity = str(file_path.absolute())
        seen.add(identity)
        try:
            item = open_media_file(file_path, self.probe)
        except Exception as e:  # noqa: BLE001 - any probe failure becomes an ERROR event
            error = e if isinstance(e, ProbeError) else ProbeError(file_path, str(e))
            logger.debug(f"Probe failed: {error}")
            summary.errors += 1
            summary.error_paths.append(identity)
            self._publish(MediaEvent.error_event(identity, error))
            return
        self._insert(item)
        summary.added += 1
        logger.debug(f"Indexed {identity} as {media_type_name(item.type)}")
        self._publish(MediaEvent.file_added(item, identity))

    def _prune(self, root: Path, seen: Set[str]) -> int:
        stale = [
            item.id
            for item in self._snapshot()
            if item.id not in seen and _is_under(item.id, root)
        ]
        return sum(1 for identity in stale if self.remove(identity))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def query(self, query: MediaQuery) -> List[MediaItem]:
        """Return the matching items, paginated, in first-insertion order.

        Malformed queries (illegal type bits, TVSEASON/TVEPISODE without
        TVSHOW) return an empty list.
        """
        if not query.is_well_formed():
            logger.debug(f"Ignoring malformed query {query}")
            return []
        matches = query.filter(self._snapshot())
        return query.paginate(matches)

    def count(self, query: MediaQuery) -> int:
        """Return the number of matches before pagination."""
        if not query.is_well_formed():
            return 0
        return len(query.filter(self._snapshot()))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        """Cancel any scan, stop the worker and close subscriptions."""
        if self._closed:
            return
        self._closed = True
        self.cancel()
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)
        self._events.close()
        if self.store is not None:
            self.store.close()

    def __enter__(self) -> "MediaLibrary":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # type: ignore[no-untyped-def]
        self.close()
        return False
