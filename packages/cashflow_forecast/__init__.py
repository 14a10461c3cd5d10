"""Public interface for the ``cashflow_forecast`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import (
    ImportSession,
    commit,
    commit_history,
    parse_forecast,
    project,
    reconcile,
    validate,
)
from .errors import ForecastError, ParseError, PersistenceError, ValidationError
from .ingest.history import HistoryParse, parse_history
from .models import (
    Area,
    Bank,
    Catalogs,
    CommitResult,
    ComparisonRow,
    DailySeries,
    DatedValue,
    ImportedLine,
    LineKind,
    ParseResult,
    ReconciliationRow,
    RevenueAccount,
    RevenueType,
    WeekWindow,
)
from .reconcile import DeviationConvention, Dimension, compare_balances

__all__ = [
    # API
    "parse_forecast",
    "validate",
    "project",
    "commit",
    "reconcile",
    "compare_balances",
    "parse_history",
    "commit_history",
    "ImportSession",
    # Errors
    "ForecastError",
    "ParseError",
    "ValidationError",
    "PersistenceError",
    # Models
    "Area",
    "Bank",
    "Catalogs",
    "CommitResult",
    "ComparisonRow",
    "DailySeries",
    "DatedValue",
    "HistoryParse",
    "ImportedLine",
    "LineKind",
    "ParseResult",
    "ReconciliationRow",
    "RevenueAccount",
    "RevenueType",
    "WeekWindow",
    "DeviationConvention",
    "Dimension",
]
