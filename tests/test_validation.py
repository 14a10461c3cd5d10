from __future__ import annotations

import datetime as dt
from decimal import Decimal

from cashflow_forecast.models import DatedValue, ImportedLine, LineKind
from cashflow_forecast.validation import (
    MISSING_ACCOUNT,
    MISSING_AREA,
    MISSING_REVENUE_TYPE,
    OPENING_BALANCE_EXTRA_VALUES,
    invalid_selected_lines,
    required_association_errors,
    validate_line,
)

DAYS = [dt.date(2024, 3, 18), dt.date(2024, 3, 19)]


def _line(kind: LineKind, amounts=("10", "0"), **kw) -> ImportedLine:
    values = [DatedValue(d, Decimal(a)) for d, a in zip(DAYS, amounts)]
    return ImportedLine(kind=kind, title="x", values=values, **kw)


def test_expense_requires_area() -> None:
    assert validate_line(_line(LineKind.EXPENSE)) == [MISSING_AREA]
    assert validate_line(_line(LineKind.EXPENSE, area_id=1)) == []


def test_revenue_requires_account_and_type() -> None:
    assert validate_line(_line(LineKind.REVENUE)) == [MISSING_ACCOUNT, MISSING_REVENUE_TYPE]
    assert validate_line(_line(LineKind.REVENUE, account_id=10)) == [MISSING_REVENUE_TYPE]
    assert validate_line(_line(LineKind.REVENUE, account_id=10, revenue_type_id=20)) == []


def test_opening_balance_rejects_values_after_the_first_day() -> None:
    assert validate_line(_line(LineKind.OPENING_BALANCE)) == []
    assert validate_line(_line(LineKind.OPENING_BALANCE, amounts=("10", "5"))) == [
        OPENING_BALANCE_EXTRA_VALUES
    ]


def test_unselected_lines_never_fail_validation() -> None:
    line = _line(LineKind.EXPENSE, selected=False)

    assert validate_line(line) == []
    assert required_association_errors(line) == [MISSING_AREA]


def test_invalid_selected_lines() -> None:
    good = _line(LineKind.EXPENSE, area_id=1)
    bad = _line(LineKind.REVENUE, account_id=10)
    skipped = _line(LineKind.EXPENSE, selected=False)

    assert invalid_selected_lines([good, bad, skipped]) == [(bad, [MISSING_REVENUE_TYPE])]
