"""
Process-lifetime cache of per-library statistics.

The cache holds one immutable CacheEntry. Concurrent scrapes may read it at the
same time; a write replaces the entry under an exclusive lock.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from ..models.stats import CacheEntry

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """
    Many readers or one writer.

    Once a writer is waiting, new readers block until it has finished, so a
    steady stream of scrapes cannot starve a cache update.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class GroupStatsCache:
    """
    Last known per-library statistics, keyed by the all-libraries file count.

    The initial entry has ``total_files == -1``, which never matches a real
    count, so the first cycle always misses.
    """

    def __init__(self, initial: Optional[CacheEntry] = None):
        self._lock = ReadWriteLock()
        self._entry = initial if initial is not None else CacheEntry()

    def read(self) -> CacheEntry:
        with self._lock.read_locked():
            return self._entry

    def write(self, entry: CacheEntry) -> None:
        with self._lock.write_locked():
            self._entry = entry
        logger.debug(
            f"Cache updated: total_files={entry.total_files}, groups={len(entry.group_stats)}"
        )
