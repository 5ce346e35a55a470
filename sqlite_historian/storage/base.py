"""Base class for sample stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import closing

from sqlite_historian.timecodec import MAX_STORE_SECONDS, MIN_STORE_SECONDS
from sqlite_historian.types import Sample


def clip_bounds(
    start: int | None, end: int | None
) -> tuple[int | None, int | None] | None:
    """
    Clip a query interval to the timestamps a store can hold.

    Bounds reaching past the representable range become open (None).
    Returns None when the interval cannot contain any sample.
    """
    if start is not None and start > MAX_STORE_SECONDS:
        return None
    if end is not None and end < MIN_STORE_SECONDS:
        return None
    if start is not None and end is not None and start > end:
        return None

    if start is not None and start <= MIN_STORE_SECONDS:
        start = None
    if end is not None and end >= MAX_STORE_SECONDS:
        end = None
    return start, end


class SampleStore(ABC):
    """
    Abstract base class for sample stores.

    A store keeps (series_id, value, timestamp) rows ordered by timestamp,
    with ties kept in insertion order. All bounds are inclusive Unix seconds.
    """

    @abstractmethod
    def insert(self, series_id: int, value: float, timestamp: int | None = None) -> None:
        """
        Append one sample.

        Args:
            series_id: Series the sample belongs to
            value: Measured value
            timestamp: Unix seconds, or None to stamp with the current time
        """

    @abstractmethod
    def scan_range(
        self,
        series_id: int,
        start: int | None = None,
        end: int | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> Iterator[Sample]:
        """
        Iterate samples with start <= timestamp <= end.

        A bound of None is open. Ascending order is (timestamp, insertion);
        descending is the exact reverse, so samples sharing a timestamp come
        out newest insert first. The iterator is lazy and may be
        abandoned early; calling again starts a new scan.
        """

    @abstractmethod
    def count(self, series_id: int, start: int, end: int) -> int:
        """Number of samples with start <= timestamp <= end."""

    def first_timestamp(self, series_id: int) -> int | None:
        """Smallest stored timestamp, or None if the series is empty."""
        with closing(self.scan_range(series_id, limit=1)) as scan:
            for sample in scan:
                return sample.timestamp
        return None

    def last_timestamp(self, series_id: int) -> int | None:
        """Largest stored timestamp, or None if the series is empty."""
        with closing(self.scan_range(series_id, descending=True, limit=1)) as scan:
            for sample in scan:
                return sample.timestamp
        return None

    def close(self) -> None:
        """Release the underlying resources."""
