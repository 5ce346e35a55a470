"""Tests for bounded value extraction."""

from __future__ import annotations

import pytest

from sqlite_historian.errors import InvalidInputError
from sqlite_historian.extractor import PagedExtractor, to_data_value
from sqlite_historian.storage.memory import MemorySampleStore
from sqlite_historian.timecodec import to_query_time, to_store_time
from sqlite_historian.types import DataValue, Sample, StatusCode, TimestampsToReturn

SERIES = 1


def pairs(result):
    return [(v.value, v.source_timestamp) for v in result.values]


class RecordingStore(MemorySampleStore):
    """Memory store that remembers scan arguments and rows handed out."""

    def __init__(self):
        super().__init__()
        self.scans = []
        self.yielded = 0

    def scan_range(self, series_id, start=None, end=None, descending=False, limit=None):
        self.scans.append({"start": start, "end": end, "limit": limit})
        for sample in super().scan_range(series_id, start, end, descending, limit):
            self.yielded += 1
            yield sample


def test_forward_truncated(scenario_store):
    result = PagedExtractor(scenario_store).extract(SERIES, 100, 300, max_values=2)
    assert pairs(result) == [(1.0, to_query_time(100)), (2.0, to_query_time(200))]
    assert result.truncated is True


def test_reverse_truncated(scenario_store):
    result = PagedExtractor(scenario_store).extract(
        SERIES, 100, 300, reverse=True, max_values=2
    )
    assert pairs(result) == [(3.0, to_query_time(300)), (2.0, to_query_time(200))]
    assert result.truncated is True


def test_exact_fit_is_not_truncated(scenario_store):
    result = PagedExtractor(scenario_store).extract(SERIES, 100, 300, max_values=3)
    assert [v.value for v in result.values] == [1.0, 2.0, 3.0]
    assert result.truncated is False


@pytest.mark.parametrize("max_values", [None, 0])
def test_unbounded(scenario_store, max_values):
    result = PagedExtractor(scenario_store).extract(
        SERIES, 0, 1000, max_values=max_values
    )
    assert len(result) == 3
    assert result.truncated is False


def test_empty_interval(scenario_store):
    extractor = PagedExtractor(scenario_store)
    assert len(extractor.extract(SERIES, 400, 500, max_values=10)) == 0
    assert len(extractor.extract(SERIES, 300, 100, max_values=10)) == 0


def test_open_end(scenario_store):
    result = PagedExtractor(scenario_store).extract(SERIES, 150, None)
    assert [v.value for v in result.values] == [2.0, 3.0]


def test_negative_max_values(scenario_store):
    with pytest.raises(InvalidInputError):
        PagedExtractor(scenario_store).extract(SERIES, 100, 300, max_values=-1)


def test_repeated_calls_return_same_prefix(scenario_store):
    extractor = PagedExtractor(scenario_store)
    first = extractor.extract(SERIES, 100, 300, max_values=2)
    second = extractor.extract(SERIES, 100, 300, max_values=2)
    assert first == second


def test_resume_after_last_timestamp(scenario_store):
    extractor = PagedExtractor(scenario_store)
    page = extractor.extract(SERIES, 100, 300, max_values=2)
    assert page.truncated

    last = to_store_time(page.values[-1].source_timestamp)
    assert last == 200
    rest = extractor.extract(SERIES, last + 1, 300, max_values=2)
    assert [v.value for v in rest.values] == [3.0]
    assert rest.truncated is False


def test_ties_follow_scan_order(store):
    for value in (1.0, 2.0, 3.0):
        store.insert(SERIES, value, 50)
    extractor = PagedExtractor(store)

    forward = extractor.extract(SERIES, 50, 50, max_values=2)
    backward = extractor.extract(SERIES, 50, 50, reverse=True, max_values=2)
    assert [v.value for v in forward.values] == [1.0, 2.0]
    assert [v.value for v in backward.values] == [3.0, 2.0]
    assert forward.truncated and backward.truncated


def test_scan_stops_after_cap():
    store = RecordingStore()
    for seconds in range(100):
        store.insert(SERIES, float(seconds), seconds)

    result = PagedExtractor(store).extract(SERIES, 0, 99, max_values=5)
    assert len(result) == 5
    assert store.scans == [{"start": 0, "end": 99, "limit": 6}]
    assert store.yielded == 6


def test_values_are_good_and_independent(scenario_store):
    extractor = PagedExtractor(scenario_store)
    first = extractor.extract(SERIES, 100, 100)
    second = extractor.extract(SERIES, 100, 100)

    assert first.values[0].status == StatusCode.GOOD
    assert first.values[0] == second.values[0]
    assert first.values[0] is not second.values[0]


@pytest.mark.parametrize(
    "mode, source, server",
    [
        (TimestampsToReturn.BOTH, True, True),
        (TimestampsToReturn.SOURCE, True, False),
        (TimestampsToReturn.SERVER, False, True),
        (TimestampsToReturn.NEITHER, False, False),
    ],
)
def test_timestamps_to_return(mode, source, server):
    value = to_data_value(Sample(SERIES, 4.5, 60), mode)
    ticks = to_query_time(60)
    assert value == DataValue(
        value=4.5,
        status=StatusCode.GOOD,
        source_timestamp=ticks if source else None,
        server_timestamp=ticks if server else None,
    )
