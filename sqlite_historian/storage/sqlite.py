"""SQLite database sample store."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from pathlib import Path

from sqlite_historian.errors import StoreError
from sqlite_historian.storage.base import SampleStore, clip_bounds
from sqlite_historian.timecodec import format_store_time, parse_store_time
from sqlite_historian.types import Sample

logger = logging.getLogger(__name__)


class SqliteSampleStore(SampleStore):
    """
    SQLite database sample store.

    Schema:
        samples:
            - rowid: INTEGER (implicit, insertion order)
            - series_id: INTEGER
            - value: REAL
            - timestamp: TEXT ("YYYY-MM-DD HH:MM:SS", UTC, defaults to
              CURRENT_TIMESTAMP)

    The connection runs in autocommit mode, so every insert is its own
    transaction. One connection is shared between threads; statements and
    fetches are serialised by a lock, and scans fetch in batches so the lock
    is never held while the consumer runs. A scan may or may not see rows
    inserted after it started.
    """

    SCAN_BATCH_SIZE = 1000

    def __init__(self, location: str | Path, reset_on_start: bool = True) -> None:
        """
        Open the database and create the schema.

        Args:
            location: Path to the database file, or ":memory:"
            reset_on_start: Drop any existing samples table first

        Raises:
            StoreError: if the database cannot be opened or the schema
                cannot be created
        """
        self.location = location
        self._lock = threading.Lock()
        self._closed = False

        try:
            self._conn = sqlite3.connect(
                str(location), isolation_level=None, check_same_thread=False
            )
        except sqlite3.Error as e:
            raise StoreError(f"cannot open {location}: {e}") from e

        try:
            self._create_schema(reset_on_start)
        except StoreError:
            self._conn.close()
            raise

        logger.info("Opened SQLite database: %s", location)

    def _create_schema(self, reset: bool) -> None:
        """Create the samples table and its index."""
        statements = []
        if reset:
            statements.append("DROP TABLE IF EXISTS samples")

        statements.append("""
            CREATE TABLE IF NOT EXISTS samples (
                series_id INTEGER NOT NULL,
                value REAL NOT NULL,
                timestamp TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
        """)
        statements.append("""
            CREATE INDEX IF NOT EXISTS idx_samples_series_timestamp
            ON samples(series_id, timestamp)
        """)

        for sql in statements:
            self._execute(sql)

        if reset:
            logger.debug("Recreated samples table")

    def _execute(self, sql: str, params: tuple | list = ()) -> sqlite3.Cursor:
        """Run one statement, translating engine errors."""
        try:
            with self._lock:
                return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    def _fetch_one(self, sql: str, params: tuple | list = ()) -> tuple | None:
        """Run a single-row query."""
        try:
            with self._lock:
                return self._conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    @staticmethod
    def _where(
        series_id: int, start: int | None, end: int | None
    ) -> tuple[str, list]:
        """Build the WHERE clause and its bound parameters."""
        clauses = ["series_id = ?"]
        params: list = [series_id]
        if start is not None:
            clauses.append("timestamp >= ?")
            params.append(format_store_time(start))
        if end is not None:
            clauses.append("timestamp <= ?")
            params.append(format_store_time(end))
        return " AND ".join(clauses), params

    def insert(self, series_id: int, value: float, timestamp: int | None = None) -> None:
        """Insert one sample."""
        if timestamp is None:
            self._execute(
                "INSERT INTO samples (series_id, value) VALUES (?, ?)",
                (series_id, value),
            )
        else:
            self._execute(
                "INSERT INTO samples (series_id, value, timestamp) VALUES (?, ?, ?)",
                (series_id, value, format_store_time(timestamp)),
            )

    def scan_range(
        self,
        series_id: int,
        start: int | None = None,
        end: int | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> Iterator[Sample]:
        """Yield samples in range, fetching SCAN_BATCH_SIZE rows at a time."""
        bounds = clip_bounds(start, end)
        if bounds is None:
            return

        where, params = self._where(series_id, *bounds)
        order = "DESC" if descending else "ASC"
        sql = (
            f"SELECT timestamp, value FROM samples WHERE {where} "
            f"ORDER BY timestamp {order}, rowid {order}"
        )
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        cursor = self._execute(sql, params)
        try:
            while True:
                try:
                    with self._lock:
                        rows = cursor.fetchmany(self.SCAN_BATCH_SIZE)
                except sqlite3.Error as e:
                    raise StoreError(str(e)) from e

                if not rows:
                    return

                for text, value in rows:
                    yield Sample(series_id, float(value), parse_store_time(text))
        finally:
            with self._lock:
                if not self._closed:
                    cursor.close()

    def count(self, series_id: int, start: int, end: int) -> int:
        """Count samples in range with a single aggregate query."""
        bounds = clip_bounds(start, end)
        if bounds is None:
            return 0

        where, params = self._where(series_id, *bounds)
        row = self._fetch_one(f"SELECT COUNT(*) FROM samples WHERE {where}", params)
        return int(row[0])

    def first_timestamp(self, series_id: int) -> int | None:
        return self._timestamp_aggregate("MIN", series_id)

    def last_timestamp(self, series_id: int) -> int | None:
        return self._timestamp_aggregate("MAX", series_id)

    def _timestamp_aggregate(self, func: str, series_id: int) -> int | None:
        row = self._fetch_one(
            f"SELECT {func}(timestamp) FROM samples WHERE series_id = ?", (series_id,)
        )
        if row is None or row[0] is None:
            return None
        return parse_store_time(row[0])

    def close(self) -> None:
        """Close the database."""
        if self._closed:
            return

        with self._lock:
            self._conn.close()
            self._closed = True

        logger.info("Closed SQLite database: %s", self.location)
