"""
Conversions between caller time and store time.

Callers hand in high-resolution DateTime ticks: 100 ns intervals since
1601-01-01 00:00:00 UTC, as used by OPC UA. The store keeps whole Unix
seconds, written as fixed-width text:

    YYYY-MM-DD HH:MM:SS     (UTC, zero-padded, 19 characters)

Going from ticks to store time is lossy; anything below one second is
dropped. Text sorts in the same order as the seconds it encodes, which is
what lets the SQLite store range-scan on the text column.
"""

from __future__ import annotations

import calendar
import re
from datetime import datetime, timedelta, timezone

from sqlite_historian.errors import InvalidInputError

DATETIME_SEC = 10_000_000  # ticks per second
DATETIME_UNIX_EPOCH = 11_644_473_600 * DATETIME_SEC  # 1970-01-01 in ticks

# Range of seconds that store text can express (years 0001..9999)
MIN_STORE_SECONDS = -62_135_596_800
MAX_STORE_SECONDS = 253_402_300_799

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_STORE_TIME_RE = re.compile(
    r"([0-9]{4})-([0-9]{2})-([0-9]{2}) ([0-9]{2}):([0-9]{2}):([0-9]{2})"
)


def to_store_time(ticks: int) -> int:
    """Convert DateTime ticks to Unix seconds, truncating toward zero."""
    seconds, remainder = divmod(ticks - DATETIME_UNIX_EPOCH, DATETIME_SEC)
    if seconds < 0 and remainder:
        seconds += 1
    return seconds


def to_query_time(seconds: int) -> int:
    """Convert Unix seconds to DateTime ticks."""
    return seconds * DATETIME_SEC + DATETIME_UNIX_EPOCH


def format_store_time(seconds: int) -> str:
    """
    Render Unix seconds as store text.

    Raises:
        InvalidInputError: if the instant falls outside years 0001..9999
    """
    try:
        dt = _UNIX_EPOCH + timedelta(seconds=seconds)
    except OverflowError as e:
        raise InvalidInputError(f"timestamp out of range: {seconds}") from e

    # strftime does not zero-pad years below 1000 on every platform
    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"
    )


def parse_store_time(text: str, strict: bool = False) -> int:
    """
    Parse store text back into Unix seconds.

    Malformed text returns 0 (the Unix epoch) so that a corrupt row never
    aborts a scan. Pass strict=True to get an InvalidInputError instead.
    """
    match = _STORE_TIME_RE.fullmatch(text) if isinstance(text, str) else None
    if match is not None:
        year, month, day, hour, minute, second = (int(g) for g in match.groups())
        try:
            dt = datetime(year, month, day, hour, minute, second)
        except ValueError:
            pass
        else:
            return calendar.timegm(dt.timetuple())

    if strict:
        raise InvalidInputError(f"malformed store time: {text!r}")
    return 0


def from_datetime(dt: datetime) -> int:
    """Convert a datetime to ticks. Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    delta = dt - _UNIX_EPOCH
    seconds = delta.days * 86400 + delta.seconds
    return DATETIME_UNIX_EPOCH + seconds * DATETIME_SEC + delta.microseconds * 10


def to_datetime(ticks: int) -> datetime:
    """Convert ticks to an aware UTC datetime (microsecond resolution)."""
    return _UNIX_EPOCH + timedelta(microseconds=(ticks - DATETIME_UNIX_EPOCH) // 10)


def now() -> int:
    """Current time in ticks."""
    return from_datetime(datetime.now(timezone.utc))
