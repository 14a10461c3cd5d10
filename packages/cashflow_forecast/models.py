"""Data models for forecast ingestion, projection and reconciliation.

Domain values are plain dataclasses: catalogs and windows are frozen, while
:class:`ImportedLine` stays mutable because users toggle, re-associate and
edit lines between parsing and commit. Rows read back from the store for
reconciliation are validated through a pydantic model since they arrive as
loosely typed mappings.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterator
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .amounts import ZERO, parse_amount
from .text import canonical_title

# Number of per-row error messages surfaced to the user after a commit.
MAX_REPORTED_ERRORS = 10


# ---------------------------------------------------------------------------
# Line kinds and imported lines
# ---------------------------------------------------------------------------


class LineKind(StrEnum):
    """Kind of a forecast line; values double as the stored ``kind`` column."""

    OPENING_BALANCE = "opening_balance"
    EXPENSE = "expense"
    REVENUE = "revenue"
    # Emitted by the projector only, never by the classifier.
    DAILY_BALANCE = "daily_balance"
    ACCUMULATED_BALANCE = "accumulated_balance"

    @property
    def is_derived(self) -> bool:
        return self in (LineKind.DAILY_BALANCE, LineKind.ACCUMULATED_BALANCE)


@dataclass(frozen=True, slots=True)
class DatedValue:
    date: dt.date
    amount: Decimal


@dataclass(slots=True)
class ImportedLine:
    """One classified spreadsheet row with one value per header date.

    ``values`` always has exactly one entry per detected header date, in date
    order. Opening-balance lines only carry a value in the first slot.
    """

    kind: LineKind
    title: str
    values: list[DatedValue]
    selected: bool = True
    area_id: int | None = None
    account_id: int | None = None
    revenue_type_id: int | None = None
    code: str | None = None
    errors: list[str] = field(default_factory=list)
    row_index: int | None = None

    @property
    def dates(self) -> list[dt.date]:
        return [v.date for v in self.values]

    @property
    def total(self) -> Decimal:
        return sum((v.amount for v in self.values), ZERO)

    def amount_on(self, day: dt.date) -> Decimal:
        for v in self.values:
            if v.date == day:
                return v.amount
        return ZERO

    def replace_amount(self, day: dt.date, amount: Decimal) -> None:
        """Overwrite the value stored for ``day``; unknown dates raise ``KeyError``."""

        for i, v in enumerate(self.values):
            if v.date == day:
                self.values[i] = DatedValue(day, amount)
                return
        raise KeyError(f"{day.isoformat()} is not a header date of line {self.title!r}")


# ---------------------------------------------------------------------------
# Canonical entities and catalogs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CanonicalEntity:
    """A reference record free text is matched against.

    ``normalized_key`` is derived from ``display_name`` with the same folding
    and alias rules applied to spreadsheet titles.
    """

    id: int
    display_name: str
    normalized_key: str = field(init=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "normalized_key", canonical_title(self.display_name))


@dataclass(frozen=True, slots=True)
class Area(CanonicalEntity):
    pass


@dataclass(frozen=True, slots=True)
class Bank(CanonicalEntity):
    pass


@dataclass(frozen=True, slots=True)
class RevenueType(CanonicalEntity):
    pass


@dataclass(frozen=True, slots=True)
class RevenueAccount(CanonicalEntity):
    code: str | None = None
    bank_id: int | None = None
    revenue_type_id: int | None = None


@dataclass(frozen=True, slots=True)
class Catalogs:
    """Read-only snapshot of the reference data used during one import."""

    areas: tuple[Area, ...] = ()
    accounts: tuple[RevenueAccount, ...] = ()
    revenue_types: tuple[RevenueType, ...] = ()
    banks: tuple[Bank, ...] = ()

    def __post_init__(self) -> None:
        for name in ("areas", "accounts", "revenue_types", "banks"):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    def area(self, area_id: int | None) -> Area | None:
        return _by_id(self.areas, area_id)

    def account(self, account_id: int | None) -> RevenueAccount | None:
        return _by_id(self.accounts, account_id)

    def revenue_type(self, type_id: int | None) -> RevenueType | None:
        return _by_id(self.revenue_types, type_id)

    def bank(self, bank_id: int | None) -> Bank | None:
        return _by_id(self.banks, bank_id)

    def account_by_code(self, code: str | None) -> RevenueAccount | None:
        if not code:
            return None
        wanted = code.strip()
        for acc in self.accounts:
            if (acc.code or "").strip() == wanted:
                return acc
        return None


def _by_id[E: CanonicalEntity](entities: tuple[E, ...], entity_id: int | None) -> E | None:
    if entity_id is None:
        return None
    for e in entities:
        if e.id == entity_id:
            return e
    return None


# ---------------------------------------------------------------------------
# Week windows, header detection and parse results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class WeekWindow:
    """Monday-to-Friday window of a forecast week."""

    start: dt.date

    def __post_init__(self) -> None:
        if isinstance(self.start, dt.datetime):
            object.__setattr__(self, "start", self.start.date())
        if self.start.weekday() != 0:
            raise ValueError(f"week start must be a Monday, got {self.start.isoformat()}")

    @classmethod
    def containing(cls, day: dt.date) -> WeekWindow:
        """Return the window of the week ``day`` belongs to (weekends map back)."""

        if isinstance(day, dt.datetime):
            day = day.date()
        return cls(day - dt.timedelta(days=day.weekday()))

    @property
    def end(self) -> dt.date:
        return self.start + dt.timedelta(days=4)

    @property
    def dates(self) -> tuple[dt.date, ...]:
        return tuple(self.start + dt.timedelta(days=i) for i in range(5))

    def __contains__(self, day: object) -> bool:
        return isinstance(day, dt.date) and self.start <= day <= self.end

    def is_locked(self, today: dt.date) -> bool:
        """The current week and past weeks are read-only."""

        return self.start <= WeekWindow.containing(today).start


@dataclass(frozen=True, slots=True)
class HeaderDates:
    """Detected header row and its in-window ``(column, date)`` pairs, date-sorted."""

    row_index: int
    columns: tuple[tuple[int, dt.date], ...]

    @property
    def dates(self) -> list[dt.date]:
        return [d for _, d in self.columns]


@dataclass(slots=True)
class ParseResult:
    lines: list[ImportedLine]
    warnings: list[str]
    header: HeaderDates
    window: WeekWindow

    @property
    def dates(self) -> list[dt.date]:
        return self.header.dates

    @property
    def selected_lines(self) -> list[ImportedLine]:
        return [ln for ln in self.lines if ln.selected]


# ---------------------------------------------------------------------------
# Projection, commit and reconciliation outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DailySeries:
    """Per-day revenue/expense/net and accumulated balance of a week."""

    dates: tuple[dt.date, ...]
    opening_balance: Decimal
    revenue: tuple[Decimal, ...]
    expense: tuple[Decimal, ...]
    net: tuple[Decimal, ...]
    accumulated: tuple[Decimal, ...]

    def rows(self) -> Iterator[tuple[dt.date, Decimal, Decimal, Decimal, Decimal]]:
        yield from zip(self.dates, self.revenue, self.expense, self.net, self.accumulated)

    @property
    def closing_balance(self) -> Decimal:
        return self.accumulated[-1] if self.accumulated else self.opening_balance


@dataclass(slots=True)
class CommitResult:
    inserted_count: int = 0
    failed_count: int = 0
    errors: list[str] = field(default_factory=list)

    def record_failure(self, message: str) -> None:
        self.failed_count += 1
        if len(self.errors) < MAX_REPORTED_ERRORS:
            self.errors.append(message)

    @property
    def summary(self) -> str:
        return f"{self.inserted_count} succeeded, {self.failed_count} failed"


@dataclass(frozen=True, slots=True)
class ComparisonRow:
    category_key: str
    label: str
    forecast: Decimal
    realized: Decimal
    deviation: Decimal
    deviation_percent: float | None


class ReconciliationRow(BaseModel):
    """A persisted forecast or realized row as seen by the reconciliation engine.

    Ids of ``0`` or blank names are treated as absent so that rows lacking a
    reference fall back to their display name when grouped.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, str_strip_whitespace=True)

    date: dt.date | None = None
    kind: str | None = None
    amount: Decimal = ZERO
    title: str | None = None
    area_id: int | None = None
    area_name: str | None = None
    bank_id: int | None = None
    bank_name: str | None = None
    account_id: int | None = None
    account_name: str | None = None
    account_code: str | None = None
    revenue_type_id: int | None = None
    revenue_type_name: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, v: Any) -> Decimal:
        return parse_amount(v)

    @field_validator("area_id", "bank_id", "account_id", "revenue_type_id", mode="before")
    @classmethod
    def _zero_id_is_absent(cls, v: Any) -> int | None:
        if v is None or v == "":
            return None
        iv = int(v)
        return iv if iv != 0 else None

    @field_validator(
        "kind",
        "title",
        "area_name",
        "bank_name",
        "account_name",
        "account_code",
        "revenue_type_name",
        mode="before",
    )
    @classmethod
    def _blank_is_absent(cls, v: Any) -> str | None:
        if v is None:
            return None
        s = str(v).strip()
        return s or None


__all__ = [
    "MAX_REPORTED_ERRORS",
    "LineKind",
    "DatedValue",
    "ImportedLine",
    "CanonicalEntity",
    "Area",
    "Bank",
    "RevenueType",
    "RevenueAccount",
    "Catalogs",
    "WeekWindow",
    "HeaderDates",
    "ParseResult",
    "DailySeries",
    "CommitResult",
    "ComparisonRow",
    "ReconciliationRow",
]
