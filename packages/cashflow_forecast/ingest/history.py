"""Parse a realized-history sheet into forecast and realized records.

The sheet is a flat table with one movement per row. Its header row names the
columns (matched case- and accent-insensitively, ``_`` counting as a space):

- ``Data`` or ``Registro``: date of the movement (required);
- ``Origem``: what the row is (required, see :data:`ORIGIN_MARKERS`);
- ``Area``: area, revenue or bank name the row refers to;
- ``Valor_Previsto`` / ``Valor_Realizado``: forecast and realized amounts;
- ``Mapeamento`` or ``Id`` (optional): catalog id chosen by hand, used instead
  of matching the name.

Only positive amounts are imported. Rows with an unknown origin or a name that
resolves to no catalog entry are reported as warnings; rows without a usable
date are errors.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Any

from ..amounts import ZERO, parse_amount
from ..classify import expense_area_name, resolve_revenue
from ..dates import parse_date_cell
from ..errors import ParseError
from ..logging_setup import get_logger
from ..matching import Matchers, build_matchers
from ..models import Catalogs, LineKind, WeekWindow
from ..persistence import ForecastRecord, RealizedRecord, RealizedSource
from ..text import normalize_text

logger = get_logger("cashflow_forecast.ingest.history")


class HistoryOrigin(StrEnum):
    OPENING_BALANCE = "opening_balance"
    AREA_FORECAST = "area_forecast"
    AREA_PAYMENT = "area_payment"
    REVENUE_FORECAST = "revenue_forecast"
    REVENUE = "revenue"
    BANK_BALANCE = "bank_balance"


# Substrings of the normalized "Origem" cell, checked in order. Both the
# history export labels and the grid import type names are accepted.
ORIGIN_MARKERS: tuple[tuple[str, HistoryOrigin], ...] = (
    ("saldo inicial", HistoryOrigin.OPENING_BALANCE),
    ("ajuste", HistoryOrigin.OPENING_BALANCE),
    ("previsao por area", HistoryOrigin.AREA_FORECAST),
    ("previsao area", HistoryOrigin.AREA_FORECAST),
    ("pagamentos por area", HistoryOrigin.AREA_PAYMENT),
    ("pagamento por area", HistoryOrigin.AREA_PAYMENT),
    ("pagamento area", HistoryOrigin.AREA_PAYMENT),
    ("previsao de receita", HistoryOrigin.REVENUE_FORECAST),
    ("previsao receita", HistoryOrigin.REVENUE_FORECAST),
    ("receitas por tipo", HistoryOrigin.REVENUE),
    ("receita por tipo", HistoryOrigin.REVENUE),
    ("receita tipo", HistoryOrigin.REVENUE),
    ("saldo por banco", HistoryOrigin.BANK_BALANCE),
    ("saldos por banco", HistoryOrigin.BANK_BALANCE),
    ("saldo banco", HistoryOrigin.BANK_BALANCE),
)

COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "date": ("data", "registro"),
    "origin": ("origem",),
    "name": ("area", "nome", "descricao"),
    "forecast": ("valor previsto", "valor prev", "valorprev", "previsto"),
    "realized": ("valor realizado", "valorrealizado", "realizado"),
    "mapping": ("mapeamento", "mapeamento id", "id"),
}

REQUIRED_COLUMNS = ("date", "origin")

type HistoryRecord = ForecastRecord | RealizedRecord


@dataclass(slots=True)
class HistoryParse:
    """Records ready to store plus what was skipped on the way."""

    records: list[HistoryRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    row_count: int = 0

    @property
    def forecast_records(self) -> list[ForecastRecord]:
        return [r for r in self.records if isinstance(r, ForecastRecord)]

    @property
    def realized_records(self) -> list[RealizedRecord]:
        return [r for r in self.records if isinstance(r, RealizedRecord)]


def origin_of(value: Any) -> HistoryOrigin | None:
    key = normalize_text(value)
    if not key:
        return None
    for marker, origin in ORIGIN_MARKERS:
        if marker in key:
            return origin
    return None


def _columns_of(row: Sequence[Any]) -> dict[str, int]:
    found: dict[str, int] = {}
    for index, cell in enumerate(row):
        key = normalize_text(cell)
        for column, aliases in COLUMN_ALIASES.items():
            if column not in found and key in aliases:
                found[column] = index
    return found


def detect_history_header(grid: Sequence[Sequence[Any]]) -> tuple[int, dict[str, int]]:
    """Return the header row index and the column index of each known column."""

    if not any(any(c not in (None, "") for c in row) for row in grid):
        raise ParseError("The spreadsheet is empty")
    for row_index, row in enumerate(grid):
        columns = _columns_of(row)
        if all(c in columns for c in REQUIRED_COLUMNS):
            return row_index, columns
    raise ParseError("No history header row with Data and Origem columns was found")


def _cell(row: Sequence[Any], columns: dict[str, int], column: str) -> Any:
    index = columns.get(column)
    if index is None or index >= len(row):
        return None
    return row[index]


def _mapping_id(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if value else None
    text = str(value).strip()
    return int(text) if text.isdigit() and int(text) else None


class _RowParser:
    """Turns one data row into at most one record, collecting messages."""

    def __init__(self, catalogs: Catalogs, matchers: Matchers, out: HistoryParse) -> None:
        self.catalogs = catalogs
        self.matchers = matchers
        self.out = out

    def warn(self, row_number: int, message: str) -> None:
        self.out.warnings.append(f"Row {row_number}: {message}")

    def area_id(self, name: str, mapping: int | None, row_number: int) -> int | None:
        if mapping is not None:
            area = self.matchers.areas.by_id(mapping)
        else:
            area = self.matchers.areas.match(expense_area_name(name) or name)
        if area is None:
            self.warn(row_number, f"area not found: {name or mapping}")
            return None
        return area.id

    def parse(
        self,
        origin: HistoryOrigin,
        day: dt.date,
        name: str,
        forecast: Decimal,
        realized: Decimal,
        mapping: int | None,
        row_number: int,
    ) -> HistoryRecord | None:
        week_start = WeekWindow.containing(day).start

        if origin is HistoryOrigin.OPENING_BALANCE:
            if realized <= ZERO:
                return None
            return ForecastRecord(
                week_start=week_start,
                date=day,
                kind=LineKind.OPENING_BALANCE,
                title=name or "Saldo Inicial",
                amount=realized,
            )

        if origin in (HistoryOrigin.AREA_FORECAST, HistoryOrigin.AREA_PAYMENT):
            area_id = self.area_id(name, mapping, row_number)
            if area_id is None:
                return None
            if origin is HistoryOrigin.AREA_FORECAST:
                if forecast <= ZERO:
                    return None
                return ForecastRecord(
                    week_start=week_start,
                    date=day,
                    kind=LineKind.EXPENSE,
                    title=name,
                    amount=forecast,
                    area_id=area_id,
                )
            if realized <= ZERO:
                return None
            return RealizedRecord(
                source=RealizedSource.AREA_PAYMENTS,
                date=day,
                amount=realized,
                area_id=area_id,
                description=name or None,
            )

        if origin is HistoryOrigin.REVENUE_FORECAST:
            if forecast <= ZERO:
                return None
            account, rtype, code = resolve_revenue(name, self.catalogs, self.matchers)
            if mapping is not None:
                # Grid imports map forecast revenue rows to a revenue type.
                rtype = self.matchers.revenue_types.by_id(mapping) or rtype
            return ForecastRecord(
                week_start=week_start,
                date=day,
                kind=LineKind.REVENUE,
                title=name,
                amount=forecast,
                account_id=account.id if account else None,
                revenue_type_id=rtype.id if rtype else None,
                code=code,
            )

        if origin is HistoryOrigin.REVENUE:
            if mapping is not None:
                account = self.matchers.accounts.by_id(mapping)
                rtype = self.catalogs.revenue_type(account.revenue_type_id) if account else None
            else:
                account, rtype, _ = resolve_revenue(name, self.catalogs, self.matchers)
            if account is None:
                self.warn(row_number, f"revenue account not found: {name or mapping}")
                return None
            if realized <= ZERO:
                return None
            return RealizedRecord(
                source=RealizedSource.REVENUES,
                date=day,
                amount=realized,
                account_id=account.id,
                revenue_type_id=rtype.id if rtype else None,
                description=name or None,
            )

        if mapping is not None:
            bank = self.matchers.banks.by_id(mapping)
        else:
            bank = self.matchers.banks.match(name)
        if bank is None:
            self.warn(row_number, f"bank not found: {name or mapping}")
            return None
        if realized <= ZERO:
            return None
        return RealizedRecord(
            source=RealizedSource.BANK_BALANCES,
            date=day,
            amount=realized,
            bank_id=bank.id,
            description=name or None,
        )


def parse_history(
    grid: Sequence[Sequence[Any]],
    catalogs: Catalogs,
    *,
    matchers: Matchers | None = None,
) -> HistoryParse:
    """Parse every row below the header of a history sheet.

    Raises
    ------
    ParseError
        Empty sheet or no header row naming the date and origin columns.
    """

    header_index, columns = detect_history_header(grid)
    out = HistoryParse()
    rows = _RowParser(catalogs, matchers or build_matchers(catalogs), out)

    for row_index in range(header_index + 1, len(grid)):
        row = grid[row_index]
        if not any(c not in (None, "") for c in row):
            continue
        out.row_count += 1
        row_number = row_index + 1

        raw_date = _cell(row, columns, "date")
        day = parse_date_cell(raw_date)
        if day is None:
            out.errors.append(f"Row {row_number}: no valid date ({raw_date!r})")
            continue

        raw_origin = _cell(row, columns, "origin")
        origin = origin_of(raw_origin)
        if origin is None:
            rows.warn(row_number, f"unrecognized origin {raw_origin!r}")
            continue

        name = str(_cell(row, columns, "name") or "").strip()
        record = rows.parse(
            origin,
            day,
            name,
            parse_amount(_cell(row, columns, "forecast")) or ZERO,
            parse_amount(_cell(row, columns, "realized")) or ZERO,
            _mapping_id(_cell(row, columns, "mapping")),
            row_number,
        )
        if record is None:
            logger.debug("Row %d (%s) produced no record", row_number, origin)
            continue
        out.records.append(record)

    logger.info(
        "Parsed %d history rows: %d records, %d errors, %d warnings",
        out.row_count,
        len(out.records),
        len(out.errors),
        len(out.warnings),
    )
    return out


__all__ = [
    "HistoryOrigin",
    "ORIGIN_MARKERS",
    "COLUMN_ALIASES",
    "HistoryParse",
    "origin_of",
    "detect_history_header",
    "parse_history",
]
