import threading
import time

import pytest

from config_vault.locks import ReadWriteLock


def test_readers_share_the_lock():
    rw = ReadWriteLock()
    rw.acquire_read()
    rw.acquire_read()
    assert rw.readers == 2
    rw.release_read()
    rw.release_read()
    assert rw.readers == 0


def test_writer_waits_for_readers():
    rw = ReadWriteLock()
    events = []
    rw.acquire_read()

    def writer():
        with rw.write_locked():
            events.append("write")

    t = threading.Thread(target=writer)
    t.start()
    time.sleep(0.05)
    assert events == []
    events.append("read-done")
    rw.release_read()
    t.join(timeout=2)
    assert events == ["read-done", "write"]


def test_readers_wait_for_writer():
    rw = ReadWriteLock()
    seen = []
    rw.acquire_write()

    def reader():
        with rw.read_locked():
            seen.append("read")

    t = threading.Thread(target=reader)
    t.start()
    time.sleep(0.05)
    assert seen == []
    assert rw.write_held is True
    rw.release_write()
    t.join(timeout=2)
    assert seen == ["read"]


def test_unbalanced_release_raises():
    rw = ReadWriteLock()
    with pytest.raises(RuntimeError):
        rw.release_read()
    with pytest.raises(RuntimeError):
        rw.release_write()
