# ruff: noqa: I001
"""CLI for the ``cashflow_forecast`` package.

Typer subcommands wrapping the public API:

- ``import-forecast``: load a weekly forecast sheet, classify it against the
  catalogs stored in the database, print the review and commit it;
- ``import-history``: load a realized-history sheet and store its forecast,
  payment, revenue and bank balance rows;
- ``reconcile``: compare stored forecasts with realized rows for a date range;
- ``balances``: compare the forecast accumulated balance with bank balances.

Environment variables (``DATABASE_URL``, ``CASHFLOW_FORECAST_LOG_LEVEL``,
``CASHFLOW_FORECAST_ALLOW_LOCKED_WEEK``) are loaded from a local ``.env`` with
``python-dotenv`` before any command runs, never overriding variables that
are already set.
"""

from __future__ import annotations

import datetime as dt
import os
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .amounts import format_amount
from .errors import ForecastError
from .logging_setup import configure_logging, get_logger
from .models import ComparisonRow, DailySeries, ImportedLine, WeekWindow
from .reconcile import DeviationConvention, Dimension

logger = get_logger("cashflow_forecast.cli")

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_DATE_FORMATS = ["%Y-%m-%d", "%d/%m/%Y"]


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in _TRUTHY


def _fail(message: str) -> typer.Exit:
    print(f"Error: {message}", file=sys.stderr)
    return typer.Exit(1)


def _format_percent(value: float | None) -> str:
    if value is None:
        return "—"
    return f"{value:.1f}%".replace(".", ",")


def _print_lines(lines: list[ImportedLine]) -> None:
    for i, line in enumerate(lines):
        mark = "x" if line.selected else " "
        total = format_amount(line.total)
        print(f"[{mark}] {i:>3} {line.kind.value:<16} {line.title:<40} {total:>14}")
        for err in line.errors:
            print(f"        ! {err}")


def _print_series(series: DailySeries) -> None:
    print(f"Opening balance: {format_amount(series.opening_balance)}")
    for day, rev, exp, net, acc in series.rows():
        print(
            f"{day.strftime('%d/%m/%Y')}  revenue {format_amount(rev):>14}  "
            f"expense {format_amount(exp):>14}  net {format_amount(net):>14}  "
            f"accumulated {format_amount(acc):>14}"
        )


def _print_comparison(rows: list[ComparisonRow], total: ComparisonRow | None = None) -> None:
    for r in rows if total is None else [*rows, total]:
        print(
            f"{r.label:<40} {format_amount(r.forecast):>14} {format_amount(r.realized):>14} "
            f"{format_amount(r.deviation):>14} {_format_percent(r.deviation_percent):>8}"
        )


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import weekly cash-flow forecast spreadsheets and reconcile them with "
        "realized figures. Loads DATABASE_URL from a local .env before running."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
FILE_OPTION: OptionInfo = typer.Option(
    ...,
    "--file",
    help="Forecast spreadsheet (.xlsx, .xlsm or .csv)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports a friendlier error
)
WEEK_START_OPTION: OptionInfo = typer.Option(
    ..., "--week-start", formats=_DATE_FORMATS, help="Monday of the forecast week."
)
START_OPTION: OptionInfo = typer.Option(..., "--start", formats=_DATE_FORMATS, help="First date.")
END_OPTION: OptionInfo = typer.Option(
    None, "--end", formats=_DATE_FORMATS, help="Last date (defaults to --start)."
)
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
)


@app.command("import-forecast")
def import_forecast_cmd(
    file: Annotated[Path, FILE_OPTION],
    week_start: Annotated[dt.datetime, WEEK_START_OPTION],
    *,
    database_url: str | None = DATABASE_URL_OPTION,
    replace: bool = typer.Option(
        True,
        "--replace/--append",
        help="Replace rows already stored for the week, or append to them.",
    ),
    dry_run: bool = typer.Option(False, help="Parse and print the review without committing."),
    allow_locked: bool = typer.Option(
        False, help="Allow committing into the current or a past week."
    ),
) -> None:
    """Parse a forecast sheet, print the review and commit the selected lines."""

    # Deferred imports keep --help fast
    from db.client import session_scope

    from .api import ImportSession
    from .catalogs import load_catalogs_from_db
    from .ingest.workbook import load_grid
    from .persistence import SqlAlchemyForecastSink

    if not file.is_file():
        raise _fail(f"File not found: {file}")

    try:
        window = WeekWindow(week_start.date())
    except ValueError as e:
        raise _fail(str(e)) from e

    allow_locked = allow_locked or _env_flag("CASHFLOW_FORECAST_ALLOW_LOCKED_WEEK")

    try:
        grid = load_grid(file)
        with session_scope(database_url=database_url) as session:
            catalogs = load_catalogs_from_db(session)
            review = ImportSession.from_grid(grid, window, catalogs)

            for w in review.warnings:
                print(f"Warning: {w}")
            _print_lines(review.lines)
            _print_series(review.project())

            if dry_run:
                return
            sink = SqlAlchemyForecastSink(session)
            result = review.commit(sink, replace=replace, allow_locked=allow_locked)
    except ForecastError as e:
        raise _fail(str(e)) from e
    except RuntimeError as e:
        # db.client reports a missing DATABASE_URL this way
        raise _fail(str(e)) from e

    print(result.summary)
    for err in result.errors:
        print(f"  - {err}")


@app.command("import-history")
def import_history_cmd(
    file: Annotated[Path, FILE_OPTION],
    *,
    database_url: str | None = DATABASE_URL_OPTION,
    dry_run: bool = typer.Option(False, help="Parse and print the warnings without committing."),
) -> None:
    """Import a realized-history sheet: forecasts, payments, revenues and bank balances."""

    from db.client import session_scope

    from .api import commit_history
    from .catalogs import load_catalogs_from_db
    from .ingest.history import parse_history
    from .ingest.workbook import load_grid
    from .models import MAX_REPORTED_ERRORS
    from .persistence import SqlAlchemyForecastSink, SqlAlchemyRealizedSink

    if not file.is_file():
        raise _fail(f"File not found: {file}")

    try:
        grid = load_grid(file)
        with session_scope(database_url=database_url) as session:
            parsed = parse_history(grid, load_catalogs_from_db(session))

            for w in parsed.warnings[:MAX_REPORTED_ERRORS]:
                print(f"Warning: {w}")
            if len(parsed.warnings) > MAX_REPORTED_ERRORS:
                print(f"Warning: and {len(parsed.warnings) - MAX_REPORTED_ERRORS} more")
            print(
                f"{parsed.row_count} rows read: {len(parsed.forecast_records)} forecast, "
                f"{len(parsed.realized_records)} realized"
            )

            if dry_run:
                return
            result = commit_history(
                parsed, SqlAlchemyForecastSink(session), SqlAlchemyRealizedSink(session)
            )
    except ForecastError as e:
        raise _fail(str(e)) from e
    except RuntimeError as e:
        raise _fail(str(e)) from e

    print(result.summary)
    for err in result.errors:
        print(f"  - {err}")


@app.command("reconcile")
def reconcile_cmd(
    start: Annotated[dt.datetime, START_OPTION],
    end: dt.datetime | None = END_OPTION,
    *,
    scope: Dimension = typer.Option(Dimension.AREA, help="Category dimension to group by."),
    convention: DeviationConvention = typer.Option(
        ..., help="How the deviation percentage is computed."
    ),
    by_day: bool = typer.Option(False, help="Print one group per day."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Compare stored forecasts with realized figures per category."""

    from db.client import session_scope

    from .models import LineKind
    from .persistence import RealizedSource, load_forecast_rows, load_realized_rows
    from .reconcile import reconcile, reconcile_by_day, summarize

    first = start.date()
    last = end.date() if end is not None else first
    if last < first:
        raise _fail("--end is before --start")

    if scope is Dimension.AREA:
        kinds, source = [LineKind.EXPENSE], RealizedSource.AREA_PAYMENTS
    else:
        kinds, source = [LineKind.REVENUE], RealizedSource.REVENUES

    try:
        with session_scope(database_url=database_url) as session:
            forecast = load_forecast_rows(session, start=first, end=last, kinds=kinds)
            realized = load_realized_rows(session, source, start=first, end=last)
    except RuntimeError as e:
        raise _fail(str(e)) from e

    if by_day:
        for day in reconcile_by_day(
            forecast, realized, scope, convention=convention, start=first, end=last
        ):
            print(day.date.strftime("%d/%m/%Y"))
            _print_comparison(list(day.rows), day.total)
        return

    rows = reconcile(forecast, realized, scope, convention=convention, start=first, end=last)
    _print_comparison(rows, summarize(rows, convention))


@app.command("balances")
def balances_cmd(
    start: Annotated[dt.datetime, START_OPTION],
    end: dt.datetime | None = END_OPTION,
    *,
    convention: DeviationConvention = typer.Option(
        ..., help="How the deviation percentage is computed."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Compare the forecast accumulated balance with the bank balances, per day."""

    from db.client import session_scope

    from .models import LineKind
    from .persistence import RealizedSource, load_forecast_rows, load_realized_rows
    from .reconcile import compare_balances

    first = start.date()
    last = end.date() if end is not None else first
    if last < first:
        raise _fail("--end is before --start")

    try:
        with session_scope(database_url=database_url) as session:
            forecast = load_forecast_rows(
                session, start=first, end=last, kinds=[LineKind.ACCUMULATED_BALANCE]
            )
            banks = load_realized_rows(
                session, RealizedSource.BANK_BALANCES, start=first, end=last
            )
    except RuntimeError as e:
        raise _fail(str(e)) from e

    _print_comparison(
        compare_balances(forecast, banks, convention=convention, start=first, end=last)
    )


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
