"""Date cells and header-row detection.

Forecast sheets put their dates anywhere: the header row is whichever row first
carries at least two parseable dates after the title column. Cells may be
native dates, spreadsheet serial numbers or Brazilian ``D/M[/Y]`` text,
sometimes prefixed by a weekday label (``"Seg 20/03"``).
"""

from __future__ import annotations

import datetime as dt
import re
from collections.abc import Sequence
from typing import Any

from openpyxl.utils.datetime import from_excel

from .errors import ParseError
from .logging_setup import get_logger
from .models import HeaderDates, WeekWindow

logger = get_logger("cashflow_forecast.dates")

# Serial numbers outside this open interval are not dates (9999-12-31 is 2958465).
_MIN_SERIAL = 0
_MAX_SERIAL = 2958466

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$")
_DMY_RE = re.compile(
    r"^(?:[^\W\d_]+(?:-[^\W\d_]+)?\.?[\s,]+)?"  # optional weekday label
    r"(\d{1,2})[/-](\d{1,2})(?:[/-](\d{4}|\d{2}))?$"
)

# A row is the header once it yields this many dates.
MIN_HEADER_DATES = 2


def infer_year(month: int, reference: dt.date) -> int:
    """Pick the year of a year-less ``month`` closest to ``reference``.

    More than six months before the reference month means next year (a
    December sheet mentioning January); more than six months after means the
    previous year.
    """

    delta = month - reference.month
    if delta < -6:
        return reference.year + 1
    if delta > 6:
        return reference.year - 1
    return reference.year


def _expand_two_digit_year(year: int) -> int:
    return 2000 + year if year < 50 else 1900 + year


def _safe_date(year: int, month: int, day: int) -> dt.date | None:
    try:
        return dt.date(year, month, day)
    except ValueError:
        return None


def _from_serial(value: float) -> dt.date | None:
    if not (_MIN_SERIAL < value < _MAX_SERIAL):
        return None
    try:
        converted = from_excel(value)
    except (ValueError, OverflowError):
        return None
    if isinstance(converted, dt.datetime):
        return converted.date()
    if isinstance(converted, dt.date):
        return converted
    return None


def _from_text(text: str, reference: dt.date | None) -> dt.date | None:
    s = text.strip()
    if not s:
        return None
    m = _ISO_RE.match(s)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    m = _DMY_RE.match(s)
    if not m:
        return None
    day, month = int(m.group(1)), int(m.group(2))
    raw_year = m.group(3)
    if raw_year is None:
        if reference is None or not 1 <= month <= 12:
            return None
        return _safe_date(infer_year(month, reference), month, day)
    year = int(raw_year)
    if len(raw_year) == 2:
        year = _expand_two_digit_year(year)
    return _safe_date(year, month, day)


def parse_date_cell(value: Any, reference: dt.date | None = None) -> dt.date | None:
    """Return the calendar date a header cell denotes, or ``None``.

    Parameters
    ----------
    value:
        Raw cell value: ``date``/``datetime``, serial number or text.
    reference:
        Date used to infer the year of ``D/M`` text. Without it such text is
        not a date.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, (int, float)):
        return _from_serial(value)
    if isinstance(value, str):
        return _from_text(value, reference)
    return None


def header_dates_in_row(
    row: Sequence[Any], reference: dt.date | None
) -> list[tuple[int, dt.date]]:
    """Parse every cell after the title column into ``(column, date)`` pairs."""

    found: list[tuple[int, dt.date]] = []
    for col in range(1, len(row)):
        d = parse_date_cell(row[col], reference)
        if d is not None:
            found.append((col, d))
    return found


def is_header_row(row: Sequence[Any], reference: dt.date | None = None) -> bool:
    return len(header_dates_in_row(row, reference)) >= MIN_HEADER_DATES


def _is_blank_row(row: Sequence[Any]) -> bool:
    return all(c is None or (isinstance(c, str) and not c.strip()) for c in row)


def detect_header(
    grid: Sequence[Sequence[Any]], window: WeekWindow
) -> tuple[HeaderDates, list[str]]:
    """Locate the header row of ``grid`` and map its columns to window dates.

    Returns the detected header and the warnings produced for dropped columns
    (dates outside ``window`` or repeating an earlier column's date).

    Raises
    ------
    ParseError
        When the grid is empty, carries no header row or none of the header
        dates fall inside ``window``.
    """

    if not grid or all(_is_blank_row(row) for row in grid):
        raise ParseError("The spreadsheet is empty")

    for row_index, row in enumerate(grid):
        parsed = header_dates_in_row(row, window.start)
        if len(parsed) < MIN_HEADER_DATES:
            continue

        warnings: list[str] = []
        kept: dict[dt.date, int] = {}
        label = _window_label(window)
        for col, d in parsed:
            if d not in window:
                warnings.append(f"Column {col + 1}: {d.isoformat()} is outside the week {label}")
                continue
            if d in kept:
                warnings.append(
                    f"Column {col + 1}: {d.isoformat()} repeats column {kept[d] + 1}; ignored"
                )
                continue
            kept[d] = col

        if not kept:
            raise ParseError(f"No header date falls inside the week {label}")

        columns = tuple(sorted(((col, d) for d, col in kept.items()), key=lambda cd: cd[1]))
        logger.info(
            "Header detected at row %d with %d in-week dates (%d dropped)",
            row_index,
            len(columns),
            len(warnings),
        )
        return HeaderDates(row_index=row_index, columns=columns), warnings

    raise ParseError("No header row with dates was found")


def _window_label(window: WeekWindow) -> str:
    return f"{window.start.strftime('%d/%m/%Y')} - {window.end.strftime('%d/%m/%Y')}"


__all__ = [
    "MIN_HEADER_DATES",
    "infer_year",
    "parse_date_cell",
    "header_dates_in_row",
    "is_header_row",
    "detect_header",
]
