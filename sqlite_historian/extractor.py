"""Bounded extraction of historical values."""

from __future__ import annotations

import logging
from contextlib import closing

from sqlite_historian.errors import InvalidInputError
from sqlite_historian.storage.base import SampleStore
from sqlite_historian.timecodec import to_query_time
from sqlite_historian.types import (
    DataValue,
    ExtractResult,
    Sample,
    StatusCode,
    TimestampsToReturn,
)

logger = logging.getLogger(__name__)


def to_data_value(
    sample: Sample, timestamps: TimestampsToReturn = TimestampsToReturn.BOTH
) -> DataValue:
    """Build a new DataValue for a stored sample."""
    ticks = to_query_time(sample.timestamp)
    with_source = timestamps in (TimestampsToReturn.SOURCE, TimestampsToReturn.BOTH)
    with_server = timestamps in (TimestampsToReturn.SERVER, TimestampsToReturn.BOTH)
    return DataValue(
        value=sample.value,
        status=StatusCode.GOOD,
        source_timestamp=ticks if with_source else None,
        server_timestamp=ticks if with_server else None,
    )


class PagedExtractor:
    """
    Copies samples out of a store, at most max_values per call.

    There is no continuation between calls: every call scans from start
    again. To read past a truncated result, call again with start set to the
    last returned timestamp + 1.
    """

    def __init__(self, store: SampleStore) -> None:
        self.store = store

    def extract(
        self,
        series_id: int,
        start: int | None,
        end: int | None,
        reverse: bool = False,
        max_values: int | None = None,
        timestamps: TimestampsToReturn = TimestampsToReturn.BOTH,
    ) -> ExtractResult:
        """
        Read values with start <= timestamp <= end.

        Args:
            series_id: Series to read
            start: First second of the interval (None for unbounded)
            end: Last second of the interval (None for unbounded)
            reverse: Return newest first
            max_values: Cap on returned values; None or 0 means no cap
            timestamps: Which timestamps to fill in on each value

        Returns:
            ExtractResult whose truncated flag is set when the interval
            holds more samples than were returned

        Raises:
            InvalidInputError: if max_values is negative
        """
        if max_values is not None and max_values < 0:
            raise InvalidInputError(f"max_values must not be negative: {max_values}")
        if not max_values:
            max_values = None

        # One extra row tells whether anything was left behind
        limit = None if max_values is None else max_values + 1
        result = ExtractResult()

        scan = self.store.scan_range(
            series_id, start=start, end=end, descending=reverse, limit=limit
        )
        with closing(scan):
            for sample in scan:
                if max_values is not None and len(result.values) == max_values:
                    result.truncated = True
                    break
                result.values.append(to_data_value(sample, timestamps))

        logger.debug(
            "Extracted %d values from series %d [%s, %s]%s",
            len(result.values),
            series_id,
            start,
            end,
            " (truncated)" if result.truncated else "",
        )
        return result
