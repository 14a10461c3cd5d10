"""Public operations of the forecast engine.

The functions here compose the pipeline pieces: ``parse_forecast`` turns a
raw grid into classified lines, ``validate`` and ``project`` work on those
lines, ``commit`` writes them through a :class:`ForecastSink`,
``reconcile`` compares stored forecasts with realized rows and
``commit_history`` stores a parsed realized-history sheet.
:class:`ImportSession` keeps a parsed sheet in memory while a user reviews it.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal
from typing import Any

from .amounts import parse_amount
from .classify import classify_rows
from .dates import detect_header
from .errors import ValidationError
from .ingest.history import HistoryParse
from .logging_setup import get_logger
from .matching import Matchers, build_matchers
from .models import (
    Catalogs,
    CommitResult,
    ComparisonRow,
    DailySeries,
    ImportedLine,
    LineKind,
    ParseResult,
    ReconciliationRow,
    WeekWindow,
)
from .persistence import ForecastSink, RealizedSink, records_for_lines, write_records
from .projection import balance_lines, project_balances
from .reconcile import DeviationConvention, Dimension
from .reconcile import reconcile as _reconcile
from .validation import required_association_errors, validate_line

logger = get_logger("cashflow_forecast.api")


def _window(week_start: dt.date | WeekWindow) -> WeekWindow:
    return week_start if isinstance(week_start, WeekWindow) else WeekWindow(week_start)


def parse_forecast(
    grid: Sequence[Sequence[Any]],
    week_start: dt.date | WeekWindow,
    catalogs: Catalogs,
    *,
    matchers: Matchers | None = None,
) -> ParseResult:
    """Parse a raw grid into classified lines for the week starting at ``week_start``.

    Raises
    ------
    ParseError
        Empty sheet, no header row, or no header date inside the week.
    ValueError
        ``week_start`` is not a Monday.
    """

    window = _window(week_start)
    header, warnings = detect_header(grid, window)
    matchers = matchers or build_matchers(catalogs)
    lines, row_warnings = classify_rows(grid, header, catalogs, matchers)
    return ParseResult(lines=lines, warnings=warnings + row_warnings, header=header, window=window)


def validate(line: ImportedLine) -> list[str]:
    return validate_line(line)


def project(lines: Sequence[ImportedLine], dates: Sequence[dt.date]) -> DailySeries:
    return project_balances(lines, dates)


def _line_dates(lines: Iterable[ImportedLine]) -> list[dt.date]:
    return sorted({d for line in lines for d in line.dates})


def commit(
    lines: Iterable[ImportedLine],
    sink: ForecastSink,
    window: WeekWindow,
    *,
    replace: bool = True,
) -> CommitResult:
    """Store the selected lines of ``window`` plus their balance lines.

    Rows already stored for the week are removed first, so importing the same
    week twice leaves one copy; ``replace=False`` appends instead.

    Selected lines failing validation are not written; each counts as one
    failure. The daily and accumulated balance lines are derived from the
    lines actually written. Per-row store failures are tallied in the result
    and never stop the loop.

    Raises
    ------
    PersistenceError
        The sink could not prepare the week at all.
    """

    result = CommitResult()
    valid: list[ImportedLine] = []
    for line in lines:
        if not line.selected or line.kind.is_derived:
            continue
        errors = validate_line(line)
        if errors:
            result.record_failure(f"{line.title}: {'; '.join(errors)}")
            continue
        valid.append(line)

    if not valid:
        logger.info("Nothing to commit for week %s", window.start)
        return result

    series = project_balances(valid, _line_dates(valid) or list(window.dates))
    records = records_for_lines([*valid, *balance_lines(series)], window)

    sink.prepare_week(window, replace=replace)
    logger.info("Committing %d rows for week %s", len(records), window.start)
    return write_records(records, sink, result)


def commit_history(
    parsed: HistoryParse,
    forecast_sink: ForecastSink,
    realized_sink: RealizedSink,
) -> CommitResult:
    """Store the records of a parsed history sheet.

    History rows are appended to what is already stored; no week is cleared.
    Rows the parser rejected count as failures next to the store failures.
    """

    result = CommitResult()
    for message in parsed.errors:
        result.record_failure(message)

    forecast = parsed.forecast_records
    realized = parsed.realized_records
    logger.info(
        "Committing %d forecast and %d realized history rows", len(forecast), len(realized)
    )
    if forecast:
        write_records(forecast, forecast_sink, result)
    if realized:
        write_records(realized, realized_sink, result)
    return result


def reconcile(
    forecast_rows: Iterable[ReconciliationRow | Mapping[str, Any]],
    realized_rows: Iterable[ReconciliationRow | Mapping[str, Any]],
    scope: Dimension | str,
    *,
    convention: DeviationConvention,
    start: dt.date | None = None,
    end: dt.date | None = None,
) -> list[ComparisonRow]:
    return _reconcile(
        forecast_rows, realized_rows, scope, convention=convention, start=start, end=end
    )


class ImportSession:
    """A parsed sheet under review: user edits, re-validation, commit.

    Every edit re-runs the association checks of the edited line. A selected
    line that becomes invalid is unselected; selecting an invalid line raises
    :class:`ValidationError`.
    """

    def __init__(self, catalogs: Catalogs, result: ParseResult) -> None:
        self.catalogs = catalogs
        self.result = result
        self.matchers = build_matchers(catalogs)

    @classmethod
    def from_grid(
        cls,
        grid: Sequence[Sequence[Any]],
        week_start: dt.date | WeekWindow,
        catalogs: Catalogs,
    ) -> ImportSession:
        matchers = build_matchers(catalogs)
        session = cls(catalogs, parse_forecast(grid, week_start, catalogs, matchers=matchers))
        session.matchers = matchers
        return session

    @property
    def window(self) -> WeekWindow:
        return self.result.window

    @property
    def lines(self) -> list[ImportedLine]:
        return self.result.lines

    @property
    def warnings(self) -> list[str]:
        return self.result.warnings

    @property
    def dates(self) -> list[dt.date]:
        return self.result.dates

    def line(self, index: int) -> ImportedLine:
        return self.result.lines[index]

    def _refresh(self, line: ImportedLine) -> list[str]:
        line.errors = required_association_errors(line)
        if line.errors and line.selected:
            line.selected = False
        return line.errors

    def toggle(self, index: int, selected: bool | None = None) -> bool:
        """Flip (or set) the selection of a line and return the new state."""

        line = self.line(index)
        want = (not line.selected) if selected is None else selected
        if want:
            errors = required_association_errors(line)
            if errors:
                line.errors = errors
                raise ValidationError(f"Line {line.title!r} cannot be selected", errors)
        line.selected = want
        return want

    def associate_area(self, index: int, area_id: int | None) -> ImportedLine:
        line = self.line(index)
        if line.kind is not LineKind.EXPENSE:
            raise ValidationError(f"Line {line.title!r} is not an expense line")
        if area_id is not None and self.matchers.areas.by_id(area_id) is None:
            raise ValidationError(f"Unknown area id {area_id}")
        line.area_id = area_id
        self._refresh(line)
        return line

    def associate_revenue(
        self,
        index: int,
        *,
        account_id: int | None = None,
        revenue_type_id: int | None = None,
    ) -> ImportedLine:
        """Set the account or revenue type of a revenue line; ``None`` keeps the current one."""

        line = self.line(index)
        if line.kind is not LineKind.REVENUE:
            raise ValidationError(f"Line {line.title!r} is not a revenue line")
        if account_id is not None:
            account = self.matchers.accounts.by_id(account_id)
            if account is None:
                raise ValidationError(f"Unknown revenue account id {account_id}")
            line.account_id = account.id
            line.code = account.code
        if revenue_type_id is not None:
            if self.matchers.revenue_types.by_id(revenue_type_id) is None:
                raise ValidationError(f"Unknown revenue type id {revenue_type_id}")
            line.revenue_type_id = revenue_type_id
        self._refresh(line)
        return line

    def set_amount(self, index: int, day: dt.date, value: Any) -> Decimal:
        """Replace one cell with a parsed amount and return it."""

        line = self.line(index)
        amount = parse_amount(value, default=None)
        if amount is None:
            raise ValidationError(f"{value!r} is not a valid amount")
        if line.kind is LineKind.OPENING_BALANCE and line.values and day != line.values[0].date:
            raise ValidationError("Opening balance only accepts a value on the first day")
        try:
            line.replace_amount(day, amount)
        except KeyError as exc:
            raise ValidationError(str(exc.args[0])) from exc
        self._refresh(line)
        return amount

    def project(self) -> DailySeries:
        return project_balances(self.lines, self.dates)

    def commit(
        self,
        sink: ForecastSink,
        *,
        replace: bool = True,
        today: dt.date | None = None,
        allow_locked: bool = False,
    ) -> CommitResult:
        """Commit the reviewed lines; the current and past weeks are refused unless allowed."""

        if not allow_locked and self.window.is_locked(today or dt.date.today()):
            start = self.window.start.strftime("%d/%m/%Y")
            raise ValidationError(f"The week starting {start} is locked for editing")
        return commit(self.lines, sink, self.window, replace=replace)


__all__ = [
    "parse_forecast",
    "validate",
    "project",
    "commit",
    "commit_history",
    "reconcile",
    "ImportSession",
]
