"""Exceptions raised by the historian backend."""

from __future__ import annotations


class HistorianError(Exception):
    """Base class for all historian errors."""


class InvalidInputError(HistorianError, ValueError):
    """A sample, strategy or argument was rejected before touching the store."""


class StoreError(HistorianError):
    """The storage engine failed to open, execute or scan."""


class BackendClosedError(HistorianError):
    """An operation was attempted on a closed backend."""
