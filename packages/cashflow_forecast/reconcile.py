"""Forecast versus realized comparison per category.

Both sides are aggregated independently into maps keyed by the category of
the chosen :class:`Dimension`; one :class:`ComparisonRow` is produced per key
present on either side. Keys use the entity id when it is present and
non-zero and the normalized display name otherwise, so unnamed buckets from
different sources stay apart.

There is no default :class:`DeviationConvention`: the reports that consume
this module disagree on what a deviation percentage means, so every caller
names the one it displays.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import Any

from .amounts import ZERO
from .matching import CODE_DEPOSITS, CODE_OTHER, CODE_TITLES
from .models import ComparisonRow, ReconciliationRow
from .text import normalize_text

# Forecasts below this magnitude have no meaningful percentage.
PERCENT_EPSILON = Decimal("0.0001")

UNIDENTIFIED_LABEL = "Sem identificação"


class Dimension(StrEnum):
    BANK = "bank"
    AREA = "area"
    REVENUE_TYPE = "revenue_type"
    REVENUE_ACCOUNT = "revenue_account"
    REVENUE_GROUP = "revenue_group"


class DeviationConvention(StrEnum):
    """How ``deviation_percent`` relates realized to forecast.

    - ``PERCENT_OF_PLAN``: realized / forecast x 100 (headline "achieved").
    - ``SHORTFALL``: (forecast - realized) / forecast x 100.
    - ``VARIANCE``: (realized - forecast) / forecast x 100 (daily balance report).
    """

    PERCENT_OF_PLAN = "percent_of_plan"
    SHORTFALL = "shortfall"
    VARIANCE = "variance"

    def percent(self, forecast: Decimal, realized: Decimal) -> float | None:
        if abs(forecast) < PERCENT_EPSILON:
            return None
        if self is DeviationConvention.PERCENT_OF_PLAN:
            ratio = realized / forecast
        elif self is DeviationConvention.SHORTFALL:
            ratio = (forecast - realized) / forecast
        else:
            ratio = (realized - forecast) / forecast
        return float(ratio * 100)


REVENUE_GROUP_LABELS: dict[str, str] = {
    "titulos": "Receitas - Títulos (Boletos)",
    "depositos": "Receitas - Depósitos e PIX",
    "outras": "Receitas - Outras Entradas",
}

_GROUP_BY_CODE_PREFIX: tuple[tuple[str, str], ...] = (
    (CODE_TITLES, "titulos"),
    (CODE_DEPOSITS, "depositos"),
    (CODE_OTHER, "outras"),
)


def revenue_group(code: str | None) -> str:
    """Family of a revenue account code; unknown or missing codes are ``"outras"``."""

    if not code:
        return "outras"
    stripped = code.strip()
    for prefix, group in _GROUP_BY_CODE_PREFIX:
        if stripped.startswith(prefix):
            return group
    return "outras"


def _id_and_name(row: ReconciliationRow, dimension: Dimension) -> tuple[int | None, str | None]:
    if dimension is Dimension.BANK:
        return row.bank_id, row.bank_name
    if dimension is Dimension.AREA:
        return row.area_id, row.area_name
    if dimension is Dimension.REVENUE_TYPE:
        return row.revenue_type_id, row.revenue_type_name
    return row.account_id, row.account_name


def category_of(row: ReconciliationRow, dimension: Dimension) -> tuple[str, str]:
    """Return ``(category_key, label)`` of ``row`` along ``dimension``."""

    if dimension is Dimension.REVENUE_GROUP:
        group = revenue_group(row.account_code)
        return f"{dimension}-{group}", REVENUE_GROUP_LABELS[group]

    entity_id, name = _id_and_name(row, dimension)
    label = name or row.title or UNIDENTIFIED_LABEL
    if entity_id:
        return f"{dimension}-{entity_id}", label
    return f"{dimension}-{normalize_text(name or row.title) or 'sem-identificacao'}", label


def as_rows(rows: Iterable[ReconciliationRow | Mapping[str, Any]]) -> list[ReconciliationRow]:
    return [
        r if isinstance(r, ReconciliationRow) else ReconciliationRow.model_validate(r) for r in rows
    ]


def _in_range(row: ReconciliationRow, start: dt.date | None, end: dt.date | None) -> bool:
    if start is None and end is None:
        return True
    if row.date is None:
        return False
    if start is not None and row.date < start:
        return False
    if end is not None and row.date > end:
        return False
    return True


@dataclass(slots=True)
class _Bucket:
    label: str
    forecast: Decimal = ZERO
    realized: Decimal = ZERO


def _comparison(
    key: str,
    label: str,
    forecast: Decimal,
    realized: Decimal,
    convention: DeviationConvention,
) -> ComparisonRow:
    return ComparisonRow(
        category_key=key,
        label=label,
        forecast=forecast,
        realized=realized,
        deviation=realized - forecast,
        deviation_percent=convention.percent(forecast, realized),
    )


def reconcile(
    forecast_rows: Iterable[ReconciliationRow | Mapping[str, Any]],
    realized_rows: Iterable[ReconciliationRow | Mapping[str, Any]],
    scope: Dimension | str,
    *,
    convention: DeviationConvention,
    start: dt.date | None = None,
    end: dt.date | None = None,
) -> list[ComparisonRow]:
    """Compare forecast and realized amounts per category of ``scope``.

    Parameters
    ----------
    forecast_rows, realized_rows:
        Persisted rows (models or plain mappings validated into
        :class:`ReconciliationRow`).
    scope:
        Category dimension to group by.
    convention:
        Meaning of ``deviation_percent``; required.
    start, end:
        Inclusive date range; rows without a date are excluded once a bound
        is given.

    Returns
    -------
    list[ComparisonRow]
        Rows sorted by normalized label, excluding categories that are zero
        on both sides.
    """

    dimension = Dimension(scope)
    buckets: dict[str, _Bucket] = {}

    for side, rows in (("forecast", forecast_rows), ("realized", realized_rows)):
        for row in as_rows(rows):
            if not _in_range(row, start, end):
                continue
            key, label = category_of(row, dimension)
            bucket = buckets.get(key)
            if bucket is None:
                bucket = buckets[key] = _Bucket(label)
            elif bucket.label == UNIDENTIFIED_LABEL and label != UNIDENTIFIED_LABEL:
                bucket.label = label
            if side == "forecast":
                bucket.forecast += row.amount
            else:
                bucket.realized += row.amount

    out = [
        _comparison(key, b.label, b.forecast, b.realized, convention)
        for key, b in buckets.items()
        if b.forecast != ZERO or b.realized != ZERO
    ]
    out.sort(key=lambda r: (normalize_text(r.label), r.category_key))
    return out


def summarize(
    rows: Iterable[ComparisonRow],
    convention: DeviationConvention,
    *,
    key: str = "total",
    label: str = "Total",
) -> ComparisonRow:
    """Total a list of comparison rows into one row."""

    forecast = ZERO
    realized = ZERO
    for r in rows:
        forecast += r.forecast
        realized += r.realized
    return _comparison(key, label, forecast, realized, convention)


@dataclass(frozen=True, slots=True)
class DayComparison:
    date: dt.date
    rows: tuple[ComparisonRow, ...]
    total: ComparisonRow


def _days(
    rows: list[ReconciliationRow], start: dt.date | None, end: dt.date | None
) -> list[dt.date]:
    if start is not None:
        last = end if end is not None else start
        return [start + dt.timedelta(days=i) for i in range((last - start).days + 1)]
    return sorted({r.date for r in rows if r.date is not None and _in_range(r, start, end)})


def reconcile_by_day(
    forecast_rows: Iterable[ReconciliationRow | Mapping[str, Any]],
    realized_rows: Iterable[ReconciliationRow | Mapping[str, Any]],
    scope: Dimension | str,
    *,
    convention: DeviationConvention,
    start: dt.date | None = None,
    end: dt.date | None = None,
) -> list[DayComparison]:
    """One comparison group per calendar day, with the day's total.

    With ``start`` given every day of the range is reported, including days
    without any row; otherwise only the days present in the data are.
    """

    forecast = as_rows(forecast_rows)
    realized = as_rows(realized_rows)
    out: list[DayComparison] = []
    for day in _days(forecast + realized, start, end):
        rows = reconcile(forecast, realized, scope, convention=convention, start=day, end=day)
        out.append(DayComparison(date=day, rows=tuple(rows), total=summarize(rows, convention)))
    return out


def compare_balances(
    forecast_rows: Iterable[ReconciliationRow | Mapping[str, Any]],
    bank_rows: Iterable[ReconciliationRow | Mapping[str, Any]],
    *,
    convention: DeviationConvention,
    start: dt.date | None = None,
    end: dt.date | None = None,
) -> list[ComparisonRow]:
    """Forecast accumulated balance against the sum of bank balances, per day.

    ``forecast_rows`` are the stored accumulated-balance lines and
    ``bank_rows`` the realized balances of every bank. Rows without a date
    are ignored. Days zero on both sides are left out; the rest are sorted
    by date and keyed by ISO date.
    """

    buckets: dict[dt.date, _Bucket] = {}
    for side, rows in (("forecast", forecast_rows), ("realized", bank_rows)):
        for row in as_rows(rows):
            if row.date is None or not _in_range(row, start, end):
                continue
            bucket = buckets.get(row.date)
            if bucket is None:
                bucket = buckets[row.date] = _Bucket(row.date.strftime("%d/%m/%Y"))
            if side == "forecast":
                bucket.forecast += row.amount
            else:
                bucket.realized += row.amount

    return [
        _comparison(day.isoformat(), b.label, b.forecast, b.realized, convention)
        for day, b in sorted(buckets.items())
        if b.forecast != ZERO or b.realized != ZERO
    ]


__all__ = [
    "PERCENT_EPSILON",
    "UNIDENTIFIED_LABEL",
    "Dimension",
    "DeviationConvention",
    "REVENUE_GROUP_LABELS",
    "revenue_group",
    "category_of",
    "as_rows",
    "reconcile",
    "summarize",
    "DayComparison",
    "reconcile_by_day",
    "compare_balances",
]
