"""History backend: the object a historian server calls into."""

from __future__ import annotations

import logging
import math

from sqlite_historian.config import BackendConfig
from sqlite_historian.counter import RangeCounter
from sqlite_historian.errors import BackendClosedError, InvalidInputError, StoreError
from sqlite_historian.extractor import PagedExtractor
from sqlite_historian.resolver import IndexResolver
from sqlite_historian.storage.base import SampleStore
from sqlite_historian.storage.memory import MemorySampleStore
from sqlite_historian.storage.sqlite import SqliteSampleStore
from sqlite_historian.timecodec import (
    MAX_STORE_SECONDS,
    MIN_STORE_SECONDS,
    to_store_time,
)
from sqlite_historian.types import (
    END_OF_DATA,
    BackendState,
    Capabilities,
    DataValue,
    ExtractResult,
    Index,
    MatchStrategy,
    StatusCode,
    TimestampsToReturn,
)

logger = logging.getLogger(__name__)


def create_store(config: BackendConfig) -> SampleStore:
    """Create the sample store named by the configuration."""
    if config.store == "memory":
        return MemorySampleStore()
    return SqliteSampleStore(config.location, reset_on_start=config.reset_on_start)


class HistoryBackend:
    """
    Historical data backend for a single monitored point.

    Lifecycle: UNINITIALIZED -> READY -> CLOSED. The constructor either
    leaves the backend READY or raises StoreError. Every operation on a
    closed backend raises BackendClosedError.

    Indexes are sample timestamps in Unix seconds, and END_OF_DATA marks
    "no data". Timestamps coming from the caller are DateTime ticks and
    lose their sub-second part on the way in.

    Boundary rules: ingestion reports failures as a StatusCode, index
    lookups answer END_OF_DATA and counts answer 0 when the store fails,
    copy_data_values returns BAD_INTERNAL_ERROR. Invalid arguments
    (unknown match strategy, negative max_values) raise InvalidInputError.
    """

    capabilities = Capabilities()

    def __init__(
        self, config: BackendConfig | None = None, store: SampleStore | None = None
    ) -> None:
        """
        Open the backend.

        Args:
            config: Backend settings (defaults if omitted)
            store: Use this store instead of creating one from config

        Raises:
            StoreError: if the store cannot be opened
        """
        self.config = config or BackendConfig()
        self.series_id = self.config.series_id
        self.state = BackendState.UNINITIALIZED

        self._store = store if store is not None else create_store(self.config)
        self._resolver = IndexResolver(self._store)
        self._counter = RangeCounter(self._store)
        self._extractor = PagedExtractor(self._store)

        self.state = BackendState.READY
        logger.info(
            "History backend ready (store=%s, series=%d)",
            type(self._store).__name__,
            self.series_id,
        )

    def __enter__(self) -> HistoryBackend:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _require_ready(self) -> None:
        if self.state is BackendState.CLOSED:
            raise BackendClosedError("history backend is closed")
        if self.state is not BackendState.READY:
            raise RuntimeError(f"history backend not ready: {self.state.value}")

    def _series(self, series_id: int | None) -> int:
        return self.series_id if series_id is None else series_id

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    @staticmethod
    def validate_sample(
        value: object, quality_good: bool, seconds: int | None = None
    ) -> None:
        """
        Check that a sample may be stored.

        Raises:
            InvalidInputError: for bad quality, a payload that is not a
                double, NaN, or a timestamp the store cannot represent
        """
        if not quality_good:
            raise InvalidInputError("sample quality is not good")
        if isinstance(value, bool) or not isinstance(value, float):
            raise InvalidInputError(
                f"sample payload must be a double, got {type(value).__name__}"
            )
        if math.isnan(value):
            raise InvalidInputError("sample payload is NaN")
        in_range = seconds is None or MIN_STORE_SECONDS <= seconds <= MAX_STORE_SECONDS
        if not in_range:
            raise InvalidInputError(f"sample timestamp out of range: {seconds}")

    def set_sample(
        self,
        value: object,
        timestamp: int | None = None,
        quality_good: bool = True,
        series_id: int | None = None,
    ) -> StatusCode:
        """
        Store one sample.

        Args:
            value: Measured value (must be a float)
            timestamp: Source time in DateTime ticks; None stamps it on insert
            quality_good: Whether the source reported good quality
            series_id: Series to write (configured series if omitted)

        Returns:
            StatusCode.GOOD, or BAD_INTERNAL_ERROR if the sample was rejected
            or could not be written. Nothing is stored on failure.
        """
        self._require_ready()
        series = self._series(series_id)
        seconds = None if timestamp is None else to_store_time(timestamp)

        try:
            self.validate_sample(value, quality_good, seconds)
            self._store.insert(series, value, seconds)
        except InvalidInputError as e:
            logger.warning("Rejected sample for series %d: %s", series, e)
            return StatusCode.BAD_INTERNAL_ERROR
        except StoreError as e:
            logger.error("Failed to store sample for series %d: %s", series, e)
            return StatusCode.BAD_INTERNAL_ERROR

        logger.debug("Stored %r at %s for series %d", value, seconds, series)
        return StatusCode.GOOD

    # -------------------------------------------------------------------------
    # Index queries
    # -------------------------------------------------------------------------

    def get_end(self) -> Index:
        """Index meaning "no data"."""
        self._require_ready()
        return END_OF_DATA

    def first_index(self, series_id: int | None = None) -> Index:
        """Index of the oldest sample, or END_OF_DATA."""
        self._require_ready()
        series = self._series(series_id)
        try:
            return self._resolver.first_index(series)
        except StoreError as e:
            logger.error("first_index failed for series %d: %s", series, e)
            return END_OF_DATA

    def last_index(self, series_id: int | None = None) -> Index:
        """Index of the newest sample, or END_OF_DATA."""
        self._require_ready()
        series = self._series(series_id)
        try:
            return self._resolver.last_index(series)
        except StoreError as e:
            logger.error("last_index failed for series %d: %s", series, e)
            return END_OF_DATA

    def match_index(
        self,
        timestamp: int,
        strategy: MatchStrategy,
        series_id: int | None = None,
    ) -> Index:
        """
        Index of the sample nearest to a DateTime under a match strategy.

        Raises:
            InvalidInputError: if strategy is not a MatchStrategy
        """
        self._require_ready()
        series = self._series(series_id)
        seconds = to_store_time(timestamp)
        try:
            return self._resolver.match_index(series, seconds, strategy)
        except StoreError as e:
            logger.error("match_index failed for series %d: %s", series, e)
            return END_OF_DATA

    # -------------------------------------------------------------------------
    # Range queries
    # -------------------------------------------------------------------------

    def result_size(
        self, start_index: Index, end_index: Index, series_id: int | None = None
    ) -> int:
        """Number of samples between two indexes, both inclusive."""
        self._require_ready()
        if start_index == END_OF_DATA:
            return 0
        if end_index == END_OF_DATA:
            end_index = Index(MAX_STORE_SECONDS)

        series = self._series(series_id)
        try:
            return self._counter.count(series, start_index, end_index)
        except StoreError as e:
            logger.error("result_size failed for series %d: %s", series, e)
            return 0

    def copy_data_values(
        self,
        start_index: Index,
        end_index: Index,
        reverse: bool = False,
        max_values: int | None = None,
        timestamps: TimestampsToReturn = TimestampsToReturn.BOTH,
        series_id: int | None = None,
    ) -> tuple[StatusCode, ExtractResult]:
        """
        Copy up to max_values samples between two indexes.

        A truncated result is still GOOD; check ExtractResult.truncated.

        Raises:
            InvalidInputError: if max_values is negative
        """
        self._require_ready()
        if start_index == END_OF_DATA:
            return StatusCode.GOOD, ExtractResult()

        series = self._series(series_id)
        end = None if end_index == END_OF_DATA else end_index
        try:
            result = self._extractor.extract(
                series, start_index, end, reverse, max_values, timestamps
            )
        except StoreError as e:
            logger.error("copy_data_values failed for series %d: %s", series, e)
            return StatusCode.BAD_INTERNAL_ERROR, ExtractResult()

        return StatusCode.GOOD, result

    def get_data_value(
        self, index: Index, series_id: int | None = None
    ) -> DataValue | None:
        """Random access by index is not supported; always None."""
        self._require_ready()
        return None

    # -------------------------------------------------------------------------
    # Capabilities
    # -------------------------------------------------------------------------

    def bound_supported(self) -> bool:
        """Bounding values outside the stored data are not returned."""
        self._require_ready()
        return self.capabilities.bounds

    def timestamps_to_return_supported(self, mode: TimestampsToReturn) -> bool:
        """Every TimestampsToReturn mode is honoured by copy_data_values."""
        self._require_ready()
        return self.capabilities.timestamps_to_return

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Release the store. Safe to call more than once."""
        if self.state is BackendState.CLOSED:
            return

        self._store.close()
        self.state = BackendState.CLOSED
        logger.info("History backend closed")
