"""Error taxonomy for forecast ingestion and commit.

- ``ParseError`` is fatal for a whole import: the sheet is empty, carries no
  header row, or none of its header dates fall inside the target week.
- ``ValidationError`` carries the per-line messages produced by
  :mod:`cashflow_forecast.validation` when a caller insists on an operation
  those messages forbid.
- ``PersistenceError`` wraps a single failed row insert during commit. The
  commit loop catches it, records it and moves on to the next row.
"""

from __future__ import annotations

from collections.abc import Sequence


class ForecastError(Exception):
    """Base class for errors raised by ``cashflow_forecast``."""


class ParseError(ForecastError):
    """The spreadsheet cannot be turned into forecast lines at all."""


class ValidationError(ForecastError):
    """A line (or an edit to it) violates its required associations."""

    def __init__(self, message: str, errors: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.errors: tuple[str, ...] = tuple(errors)


class PersistenceError(ForecastError):
    """One row could not be written to the store."""


__all__ = ["ForecastError", "ParseError", "ValidationError", "PersistenceError"]
