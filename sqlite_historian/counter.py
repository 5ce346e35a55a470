"""Counting samples in a time range."""

from __future__ import annotations

from sqlite_historian.storage.base import SampleStore


class RangeCounter:
    """Counts samples within an inclusive interval of Unix seconds."""

    def __init__(self, store: SampleStore) -> None:
        self.store = store

    def count(self, series_id: int, start: int, end: int) -> int:
        """Number of samples with start <= timestamp <= end; 0 if start > end."""
        if start > end:
            return 0
        return self.store.count(series_id, start, end)
