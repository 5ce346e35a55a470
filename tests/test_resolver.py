"""Tests for first, last and nearest-match index lookups."""

from __future__ import annotations

import random

import pytest

from sqlite_historian.errors import InvalidInputError
from sqlite_historian.resolver import IndexResolver
from sqlite_historian.types import END_OF_DATA, MatchStrategy

SERIES = 1


def expected_match(stored, t, strategy):
    """Brute-force answer for a match query."""
    if strategy == MatchStrategy.EQUAL_OR_AFTER:
        candidates = [s for s in stored if s >= t]
        return min(candidates, default=END_OF_DATA)
    if strategy == MatchStrategy.AFTER:
        candidates = [s for s in stored if s > t]
        return min(candidates, default=END_OF_DATA)
    if strategy == MatchStrategy.EQUAL_OR_BEFORE:
        candidates = [s for s in stored if s <= t]
        return max(candidates, default=END_OF_DATA)
    candidates = [s for s in stored if s < t]
    return max(candidates, default=END_OF_DATA)


def test_first_and_last(scenario_store):
    resolver = IndexResolver(scenario_store)
    assert resolver.first_index(SERIES) == 100
    assert resolver.last_index(SERIES) == 300


def test_empty_series(store):
    resolver = IndexResolver(store)
    assert resolver.first_index(SERIES) == END_OF_DATA
    assert resolver.last_index(SERIES) == END_OF_DATA
    for strategy in MatchStrategy:
        assert resolver.match_index(SERIES, 100, strategy) == END_OF_DATA


@pytest.mark.parametrize(
    "t, strategy, expected",
    [
        (150, MatchStrategy.EQUAL_OR_AFTER, 200),
        (200, MatchStrategy.AFTER, 300),
        (200, MatchStrategy.EQUAL_OR_BEFORE, 200),
        (50, MatchStrategy.BEFORE, END_OF_DATA),
        (100, MatchStrategy.EQUAL_OR_AFTER, 100),
        (50, MatchStrategy.EQUAL_OR_AFTER, 100),
        (301, MatchStrategy.EQUAL_OR_AFTER, END_OF_DATA),
        (300, MatchStrategy.AFTER, END_OF_DATA),
        (299, MatchStrategy.AFTER, 300),
        (150, MatchStrategy.EQUAL_OR_BEFORE, 100),
        (1000, MatchStrategy.EQUAL_OR_BEFORE, 300),
        (99, MatchStrategy.EQUAL_OR_BEFORE, END_OF_DATA),
        (100, MatchStrategy.BEFORE, END_OF_DATA),
        (101, MatchStrategy.BEFORE, 100),
        (300, MatchStrategy.BEFORE, 200),
    ],
)
def test_match_index(scenario_store, t, strategy, expected):
    assert IndexResolver(scenario_store).match_index(SERIES, t, strategy) == expected


def test_match_ignores_other_series(scenario_store):
    scenario_store.insert(2, 9.0, 150)
    resolver = IndexResolver(scenario_store)
    assert resolver.match_index(SERIES, 120, MatchStrategy.EQUAL_OR_AFTER) == 200
    assert resolver.match_index(2, 120, MatchStrategy.EQUAL_OR_AFTER) == 150


def test_strategy_given_as_int(scenario_store):
    assert IndexResolver(scenario_store).match_index(SERIES, 200, 1) == 300


@pytest.mark.parametrize("strategy", [4, -1, "after", None])
def test_invalid_strategy(scenario_store, strategy):
    with pytest.raises(InvalidInputError):
        IndexResolver(scenario_store).match_index(SERIES, 200, strategy)


def test_matches_brute_force(store):
    rng = random.Random(1234)
    stored = sorted(rng.sample(range(0, 2000), 60))
    for seconds in rng.sample(stored, len(stored)):
        store.insert(SERIES, float(seconds), seconds)

    resolver = IndexResolver(store)
    assert resolver.first_index(SERIES) == stored[0]
    assert resolver.last_index(SERIES) == stored[-1]

    for t in range(-10, 2011, 7):
        for strategy in MatchStrategy:
            assert resolver.match_index(SERIES, t, strategy) == expected_match(
                stored, t, strategy
            ), (t, strategy)
