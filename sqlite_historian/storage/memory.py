"""In-memory sample store."""

from __future__ import annotations

import itertools
import logging
import math
import threading
import time
from collections.abc import Iterator

from sortedcontainers import SortedKeyList

from sqlite_historian.storage.base import SampleStore, clip_bounds
from sqlite_historian.types import Sample

logger = logging.getLogger(__name__)


def _entry_key(entry: tuple[int, int, Sample]) -> tuple[int, int]:
    return entry[0], entry[1]


class MemorySampleStore(SampleStore):
    """
    Sample store kept in process memory.

    Each series is a SortedKeyList of (timestamp, sequence, sample) entries,
    where sequence is a store-wide insertion counter. Nothing is persisted.

    Scans copy the matching slice under the lock and yield from the copy,
    so a scan never observes inserts made after it started.
    """

    def __init__(self) -> None:
        self._series: dict[int, SortedKeyList] = {}
        self._sequence = itertools.count()
        self._lock = threading.Lock()
        logger.info("Opened in-memory sample store")

    def _entries(self, series_id: int) -> SortedKeyList:
        entries = self._series.get(series_id)
        if entries is None:
            entries = self._series[series_id] = SortedKeyList(key=_entry_key)
        return entries

    def insert(self, series_id: int, value: float, timestamp: int | None = None) -> None:
        if timestamp is None:
            timestamp = int(time.time())

        with self._lock:
            sample = Sample(series_id, float(value), timestamp)
            self._entries(series_id).add((timestamp, next(self._sequence), sample))

    def scan_range(
        self,
        series_id: int,
        start: int | None = None,
        end: int | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> Iterator[Sample]:
        bounds = clip_bounds(start, end)
        if bounds is None:
            return
        start, end = bounds

        with self._lock:
            entries = self._series.get(series_id)
            if entries is None:
                return
            matching = entries.irange_key(
                min_key=None if start is None else (start, -1),
                max_key=None if end is None else (end, math.inf),
                reverse=descending,
            )
            snapshot = [entry[2] for entry in itertools.islice(matching, limit)]

        yield from snapshot

    def count(self, series_id: int, start: int, end: int) -> int:
        bounds = clip_bounds(start, end)
        if bounds is None:
            return 0
        start, end = bounds

        with self._lock:
            entries = self._series.get(series_id)
            if entries is None:
                return 0
            lo = 0 if start is None else entries.bisect_key_left((start, -1))
            hi = len(entries) if end is None else entries.bisect_key_right((end, math.inf))
            return max(hi - lo, 0)

    def close(self) -> None:
        with self._lock:
            self._series.clear()
        logger.info("Closed in-memory sample store")
