from __future__ import annotations

import datetime as dt
from decimal import Decimal

from cashflow_forecast.api import parse_forecast, project
from cashflow_forecast.models import Catalogs, DatedValue, ImportedLine, LineKind, WeekWindow
from cashflow_forecast.projection import (
    ACCUMULATED_BALANCE_TITLE,
    DAILY_BALANCE_TITLE,
    balance_lines,
    opening_balance,
    project_balances,
)
from tests.helpers.sheets import EXPECTED_ACCUMULATED, EXPECTED_NET, forecast_rows

DAYS = [dt.date(2024, 3, 18), dt.date(2024, 3, 19), dt.date(2024, 3, 20)]


def _line(kind: LineKind, *amounts: str, selected: bool = True) -> ImportedLine:
    return ImportedLine(
        kind=kind,
        title=kind.value,
        values=[DatedValue(d, Decimal(a)) for d, a in zip(DAYS, amounts)],
        selected=selected,
    )


def test_net_and_accumulated_balance() -> None:
    lines = [
        _line(LineKind.OPENING_BALANCE, "1000", "0", "0"),
        _line(LineKind.REVENUE, "500", "0", "100"),
        _line(LineKind.REVENUE, "0", "50", "0"),
        _line(LineKind.EXPENSE, "200", "300", "0"),
    ]

    series = project_balances(lines, DAYS)

    assert series.opening_balance == Decimal("1000")
    assert series.revenue == (Decimal("500"), Decimal("50"), Decimal("100"))
    assert series.expense == (Decimal("200"), Decimal("300"), Decimal("0"))
    assert series.net == (Decimal("300"), Decimal("-250"), Decimal("100"))
    assert series.accumulated == (Decimal("1300"), Decimal("1050"), Decimal("1150"))
    assert series.closing_balance == Decimal("1150")


def test_unselected_lines_do_not_count() -> None:
    lines = [
        _line(LineKind.OPENING_BALANCE, "1000", "0", "0", selected=False),
        _line(LineKind.OPENING_BALANCE, "700", "0", "0"),
        _line(LineKind.EXPENSE, "50", "50", "50", selected=False),
        _line(LineKind.REVENUE, "10", "10", "10"),
    ]

    series = project_balances(lines, DAYS)

    assert opening_balance(lines) == Decimal("700")
    assert series.accumulated == (Decimal("710"), Decimal("720"), Decimal("730"))


def test_no_opening_balance_starts_at_zero() -> None:
    series = project_balances([_line(LineKind.EXPENSE, "5", "5", "5")], DAYS)

    assert series.opening_balance == Decimal("0.00")
    assert series.accumulated[-1] == Decimal("-15")


def test_empty_dates_give_empty_series() -> None:
    series = project_balances([_line(LineKind.REVENUE, "1", "2", "3")], [])

    assert series.net == ()
    assert series.closing_balance == Decimal("0.00")


def test_balance_lines_mirror_the_series() -> None:
    series = project_balances([_line(LineKind.REVENUE, "1", "2", "3")], DAYS)

    daily, accumulated = balance_lines(series)

    assert (daily.kind, daily.title) == (LineKind.DAILY_BALANCE, DAILY_BALANCE_TITLE)
    assert (accumulated.kind, accumulated.title) == (
        LineKind.ACCUMULATED_BALANCE,
        ACCUMULATED_BALANCE_TITLE,
    )
    assert [v.amount for v in daily.values] == list(series.net)
    assert [v.amount for v in accumulated.values] == [Decimal("1"), Decimal("3"), Decimal("6")]


def test_sample_sheet_projection(catalogs: Catalogs, window: WeekWindow) -> None:
    result = parse_forecast(forecast_rows(window), window, catalogs)

    series = project(result.lines, result.dates)

    assert list(series.net) == EXPECTED_NET
    assert list(series.accumulated) == EXPECTED_ACCUMULATED
