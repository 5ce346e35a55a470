"""First, last and nearest-match index lookups."""

from __future__ import annotations

import logging
from contextlib import closing

from sqlite_historian.errors import InvalidInputError
from sqlite_historian.storage.base import SampleStore
from sqlite_historian.types import END_OF_DATA, Index, MatchStrategy

logger = logging.getLogger(__name__)


class IndexResolver:
    """
    Resolves indexes against a sample store.

    An index is the timestamp (Unix seconds) of the sample it names;
    END_OF_DATA stands for "no such sample".
    """

    def __init__(self, store: SampleStore) -> None:
        self.store = store

    def first_index(self, series_id: int) -> Index:
        """Oldest timestamp in the series."""
        timestamp = self.store.first_timestamp(series_id)
        return END_OF_DATA if timestamp is None else Index(timestamp)

    def last_index(self, series_id: int) -> Index:
        """Newest timestamp in the series."""
        timestamp = self.store.last_timestamp(series_id)
        return END_OF_DATA if timestamp is None else Index(timestamp)

    def match_index(self, series_id: int, seconds: int, strategy: MatchStrategy) -> Index:
        """
        Find the sample closest to a timestamp under a match strategy.

        Args:
            series_id: Series to search
            seconds: Reference time in Unix seconds
            strategy: How the match relates to the reference time

        Returns:
            Timestamp of the matching sample, or END_OF_DATA

        Raises:
            InvalidInputError: if strategy is not a MatchStrategy
        """
        try:
            strategy = MatchStrategy(strategy)
        except ValueError as e:
            raise InvalidInputError(f"invalid match strategy: {strategy!r}") from e

        # Timestamps are whole seconds, so "> t" is ">= t + 1"
        if strategy == MatchStrategy.EQUAL_OR_AFTER:
            scan = self.store.scan_range(series_id, start=seconds, limit=1)
        elif strategy == MatchStrategy.AFTER:
            scan = self.store.scan_range(series_id, start=seconds + 1, limit=1)
        elif strategy == MatchStrategy.EQUAL_OR_BEFORE:
            scan = self.store.scan_range(series_id, end=seconds, descending=True, limit=1)
        else:
            scan = self.store.scan_range(
                series_id, end=seconds - 1, descending=True, limit=1
            )

        with closing(scan):
            for sample in scan:
                logger.debug(
                    "Matched %s %d -> %d", strategy.name, seconds, sample.timestamp
                )
                return Index(sample.timestamp)

        return END_OF_DATA
