"""Backend configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from sqlite_historian.errors import InvalidInputError

STORE_KINDS = ("sqlite", "memory")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class BackendConfig:
    """
    Settings for one history backend.

    Attributes:
        location: SQLite database file, or ":memory:"
        series_id: Series used when an operation does not name one
        reset_on_start: Drop stored history when the backend opens
        max_response_size: Most values the CLI returns per read
        store: "sqlite" or "memory"
    """

    location: str | Path = "database.sqlite"
    series_id: int = 1
    reset_on_start: bool = True
    max_response_size: int = 100
    store: str = "sqlite"

    def __post_init__(self) -> None:
        if self.store not in STORE_KINDS:
            raise InvalidInputError(f"unknown store kind: {self.store!r}")
        if self.max_response_size < 0:
            raise InvalidInputError("max_response_size must not be negative")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BackendConfig:
        """
        Load configuration from environment variables.

        Variables: HISTORIAN_DB, HISTORIAN_SERIES_ID, HISTORIAN_RESET,
        HISTORIAN_MAX_RESPONSE_SIZE, HISTORIAN_STORE. Unset variables keep
        their defaults.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        try:
            return cls(
                location=env.get("HISTORIAN_DB", defaults.location),
                series_id=int(env.get("HISTORIAN_SERIES_ID", defaults.series_id)),
                reset_on_start=_parse_bool(
                    env.get("HISTORIAN_RESET"), defaults.reset_on_start
                ),
                max_response_size=int(
                    env.get("HISTORIAN_MAX_RESPONSE_SIZE", defaults.max_response_size)
                ),
                store=env.get("HISTORIAN_STORE", defaults.store),
            )
        except ValueError as e:
            raise InvalidInputError(f"configuration error: {e}") from e


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise InvalidInputError(f"not a boolean: {value!r}")
