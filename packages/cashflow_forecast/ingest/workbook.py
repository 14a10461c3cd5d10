"""Load the first sheet of a forecast file as a raw grid.

Workbooks (``.xlsx``/``.xlsm``) are read with openpyxl in values-only mode so
formula cells yield their cached results. CSV files use ``;`` when the first
lines contain one and ``,`` otherwise; their cells stay text and are parsed
downstream. Trailing empty cells and trailing empty rows are dropped.
"""

from __future__ import annotations

import csv
import datetime as dt
from pathlib import Path
from typing import Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..errors import ParseError
from ..logging_setup import get_logger

logger = get_logger("cashflow_forecast.ingest.workbook")

type Cell = None | int | float | str | dt.datetime | dt.date
type Grid = list[list[Cell]]

WORKBOOK_SUFFIXES = frozenset({".xlsx", ".xlsm"})
CSV_SUFFIXES = frozenset({".csv", ".txt"})


def _trim_row(row: list[Any]) -> list[Any]:
    end = len(row)
    while end > 0 and row[end - 1] is None:
        end -= 1
    return row[:end]


def _trim_grid(rows: list[list[Any]]) -> Grid:
    trimmed = [_trim_row(r) for r in rows]
    while trimmed and not trimmed[-1]:
        trimmed.pop()
    return trimmed


def _cell(value: Any) -> Cell:
    if isinstance(value, str):
        s = value.strip()
        return s or None
    if isinstance(value, dt.time):
        return None
    return value


def _load_workbook_grid(path: Path) -> Grid:
    try:
        wb = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, OSError, KeyError, ValueError) as exc:
        raise ParseError(f"Could not open workbook {path.name}: {exc}") from exc
    try:
        ws = wb.worksheets[0] if wb.worksheets else None
        if ws is None:
            return []
        rows = [[_cell(v) for v in row] for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()
    return _trim_grid(rows)


def _load_csv_grid(path: Path, encoding: str) -> Grid:
    try:
        text = path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"Could not read {path.name}: {exc}") from exc
    # Brazilian exports use ";" because "," is the decimal separator.
    delimiter = ";" if ";" in text[:4096] else ","
    rows = [[_cell(v) for v in r] for r in csv.reader(text.splitlines(), delimiter=delimiter)]
    return _trim_grid(rows)


def load_grid(path: str | Path, *, encoding: str = "utf-8-sig") -> Grid:
    """Return the cells of the first sheet of ``path`` as a list of rows.

    Raises
    ------
    ParseError
        Unsupported extension or unreadable file.
    """

    p = Path(path)
    suffix = p.suffix.lower()
    if suffix in WORKBOOK_SUFFIXES:
        grid = _load_workbook_grid(p)
    elif suffix in CSV_SUFFIXES:
        grid = _load_csv_grid(p, encoding)
    else:
        raise ParseError(
            f"Unsupported file type {suffix or '(none)'}; expected .xlsx, .xlsm or .csv"
        )
    logger.info("Loaded %d rows from %s", len(grid), p.name)
    return grid


__all__ = ["Cell", "Grid", "load_grid"]
