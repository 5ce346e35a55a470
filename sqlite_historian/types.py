"""
Core types shared by the historian backend.

Index values, status codes and match strategies follow the numbering used by
the OPC UA history database interface, so values can be passed through to a
host server unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import NewType

# An index is the timestamp (Unix seconds) of the sample it points at.
Index = NewType("Index", int)

END_OF_DATA = Index(2**64 - 1)  # no such index


class MatchStrategy(IntEnum):
    """Nearest-match modes for timestamp lookups."""

    EQUAL_OR_AFTER = 0
    AFTER = 1
    EQUAL_OR_BEFORE = 2
    BEFORE = 3


class StatusCode(IntEnum):
    """Status codes returned across the backend boundary."""

    GOOD = 0x00000000
    BAD_INTERNAL_ERROR = 0x80020000


class TimestampsToReturn(IntEnum):
    """Which timestamps are populated on returned values."""

    SOURCE = 0
    SERVER = 1
    BOTH = 2
    NEITHER = 3


class BackendState(Enum):
    """Lifecycle of a history backend."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


@dataclass(frozen=True)
class Sample:
    """A stored measurement."""

    series_id: int
    value: float
    timestamp: int  # Unix seconds


@dataclass(frozen=True)
class DataValue:
    """
    A historical value as handed back to the caller.

    Timestamps are high-resolution ticks (see timecodec), or None when the
    caller did not ask for them.
    """

    value: float
    status: StatusCode = StatusCode.GOOD
    source_timestamp: int | None = None
    server_timestamp: int | None = None


@dataclass
class ExtractResult:
    """Values produced by one extraction and whether more were left behind."""

    values: list[DataValue] = field(default_factory=list)
    truncated: bool = False

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class Capabilities:
    """Static feature flags reported to the host framework."""

    bounds: bool = False
    timestamps_to_return: bool = True
    delete: bool = False
    aggregate_api: bool = False
