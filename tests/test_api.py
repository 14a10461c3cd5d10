from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest
from db.client import session_scope

from cashflow_forecast import (
    Catalogs,
    ImportSession,
    LineKind,
    ValidationError,
    WeekWindow,
    parse_forecast,
    validate,
)
from cashflow_forecast.models import RevenueAccount, RevenueType
from cashflow_forecast.persistence import SqlAlchemyForecastSink, load_forecast_rows
from cashflow_forecast.validation import MISSING_AREA, MISSING_REVENUE_TYPE
from tests.helpers.sheets import EXPECTED_ACCUMULATED, EXPECTED_RECORDS, forecast_rows

# Line indexes of the sample sheet.
OPENING, BOLETOS, DEPOSITS, MATERIAL, RH, MARKETING = range(6)


@pytest.fixture
def review(catalogs: Catalogs, window: WeekWindow) -> ImportSession:
    return ImportSession.from_grid(forecast_rows(window), window.start, catalogs)


def test_session_exposes_the_parse(review: ImportSession, window: WeekWindow) -> None:
    assert review.window == window
    assert review.dates == list(window.dates)
    assert len(review.lines) == 6
    assert review.warnings == []
    assert list(review.project().accumulated) == EXPECTED_ACCUMULATED


def test_selecting_an_invalid_line_is_refused(review: ImportSession) -> None:
    with pytest.raises(ValidationError) as exc:
        review.toggle(MARKETING)

    assert exc.value.errors == (MISSING_AREA,)
    assert not review.line(MARKETING).selected


def test_toggle_flips_and_sets(review: ImportSession) -> None:
    assert review.toggle(RH) is False
    assert review.toggle(RH) is True
    assert review.toggle(RH, selected=False) is False
    assert review.toggle(RH, selected=False) is False
    # Unselecting never needs a valid line.
    assert review.toggle(MARKETING, selected=False) is False


def test_associating_an_area_makes_the_line_selectable(review: ImportSession) -> None:
    line = review.associate_area(MARKETING, 4)

    assert line.area_id == 4
    assert line.errors == []
    assert review.toggle(MARKETING) is True
    assert validate(line) == []
    accumulated = review.project().accumulated
    assert accumulated[0] == EXPECTED_ACCUMULATED[0] - Decimal("100")


def test_clearing_an_association_unselects_the_line(review: ImportSession) -> None:
    line = review.associate_area(RH, None)

    assert line.errors == [MISSING_AREA]
    assert not line.selected


def test_association_errors(review: ImportSession) -> None:
    with pytest.raises(ValidationError, match="not an expense line"):
        review.associate_area(BOLETOS, 1)
    with pytest.raises(ValidationError, match="Unknown area id 99"):
        review.associate_area(RH, 99)
    with pytest.raises(ValidationError, match="not a revenue line"):
        review.associate_revenue(RH, account_id=10)
    with pytest.raises(ValidationError, match="Unknown revenue account id 99"):
        review.associate_revenue(BOLETOS, account_id=99)
    with pytest.raises(ValidationError, match="Unknown revenue type id 99"):
        review.associate_revenue(BOLETOS, revenue_type_id=99)


def test_associate_revenue_updates_account_code(review: ImportSession) -> None:
    line = review.associate_revenue(BOLETOS, account_id=12, revenue_type_id=22)

    assert (line.account_id, line.code, line.revenue_type_id) == (12, "202", 22)
    assert line.selected


def test_revenue_line_fixed_in_review(window: WeekWindow) -> None:
    # No revenue type matches "Boletos": it must be chosen by hand.
    catalogs = Catalogs(
        accounts=[RevenueAccount(id=10, display_name="Títulos", code="200")],
        revenue_types=[RevenueType(id=77, display_name="Cobrança")],
    )
    grid = [["", "18/03/2024", "19/03/2024"], ["Boletos", 10, 20]]
    review = ImportSession.from_grid(grid, window, catalogs)
    assert review.line(0).errors == [MISSING_REVENUE_TYPE]

    review.associate_revenue(0, revenue_type_id=77)

    assert review.line(0).errors == []
    assert review.toggle(0) is True


def test_set_amount(review: ImportSession, window: WeekWindow) -> None:
    tuesday = window.dates[1]

    assert review.set_amount(RH, tuesday, "4.000,00") == Decimal("4000.00")
    assert review.line(RH).amount_on(tuesday) == Decimal("4000.00")
    assert review.project().expense[1] == Decimal("4000.00")


def test_set_amount_errors(review: ImportSession, window: WeekWindow) -> None:
    with pytest.raises(ValidationError, match="not a valid amount"):
        review.set_amount(RH, window.start, "abc")
    with pytest.raises(ValidationError, match="first day"):
        review.set_amount(OPENING, window.dates[2], 10)
    with pytest.raises(ValidationError, match="not a header date"):
        review.set_amount(RH, window.start - dt.timedelta(days=1), 10)

    assert review.set_amount(OPENING, window.start, "12.000") == Decimal("12000.00")
    assert review.project().opening_balance == Decimal("12000.00")


def test_locked_weeks_are_refused(review: ImportSession, window: WeekWindow) -> None:
    sink = _NeverCalledSink()

    with pytest.raises(ValidationError, match="locked"):
        review.commit(sink)
    with pytest.raises(ValidationError, match="locked"):
        review.commit(sink, today=window.start)
    with pytest.raises(ValidationError, match="locked"):
        review.commit(sink, today=window.end + dt.timedelta(days=1))


def test_week_lock_boundaries() -> None:
    week = WeekWindow(dt.date(2024, 3, 18))

    assert week.is_locked(dt.date(2024, 3, 18))
    assert week.is_locked(dt.date(2024, 3, 24))
    assert not week.is_locked(dt.date(2024, 3, 17))
    assert not week.is_locked(dt.date(2024, 3, 10))


def test_commit_future_week_and_reimport(db_url: str, catalogs: Catalogs) -> None:
    window = WeekWindow(dt.date(2024, 3, 18))
    review = ImportSession.from_grid(forecast_rows(window), window, catalogs)
    before = dt.date(2024, 3, 11)

    for _ in range(2):
        with session_scope(database_url=db_url) as session:
            result = review.commit(SqlAlchemyForecastSink(session), today=before)
        assert (result.inserted_count, result.failed_count) == (EXPECTED_RECORDS, 0)

    with session_scope(database_url=db_url) as session:
        rows = load_forecast_rows(session, kinds=[LineKind.ACCUMULATED_BALANCE])
    assert [r.amount for r in rows] == EXPECTED_ACCUMULATED


def test_locked_week_can_be_committed_when_allowed(db_url: str, catalogs: Catalogs) -> None:
    window = WeekWindow(dt.date(2024, 3, 18))
    review = ImportSession.from_grid(forecast_rows(window), window, catalogs)

    with session_scope(database_url=db_url) as session:
        result = review.commit(SqlAlchemyForecastSink(session), allow_locked=True)

    assert result.inserted_count == EXPECTED_RECORDS


def test_parse_is_repeatable(catalogs: Catalogs, window: WeekWindow) -> None:
    grid = forecast_rows(window)

    first = parse_forecast(grid, window, catalogs)
    second = parse_forecast(grid, window, catalogs)

    assert first.lines == second.lines


class _NeverCalledSink:
    def prepare_week(self, window, *, replace):  # pragma: no cover - must not run
        raise AssertionError("prepare_week called")

    def insert(self, record):  # pragma: no cover - must not run
        raise AssertionError("insert called")
