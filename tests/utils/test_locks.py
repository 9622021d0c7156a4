"""Tests for the readers/writer lock."""

import threading
import time

from medialib.utils.locks import ReadWriteLock


def test_readers_share_the_lock() -> None:
    lock = ReadWriteLock()
    with lock.read():
        acquired = threading.Event()

        def reader() -> None:
            with lock.read():
                acquired.set()

        thread = threading.Thread(target=reader)
        thread.start()
        assert acquired.wait(timeout=5)
        thread.join(timeout=5)


def test_writer_excludes_readers() -> None:
    lock = ReadWriteLock()
    order = []

    with lock.write():

        def reader() -> None:
            with lock.read():
                order.append("read")

        thread = threading.Thread(target=reader)
        thread.start()
        time.sleep(0.05)
        order.append("write-done")
    thread.join(timeout=5)
    assert order == ["write-done", "read"]
