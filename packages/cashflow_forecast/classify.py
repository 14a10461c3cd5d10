"""Turn the rows below a forecast header into typed :class:`ImportedLine` values.

Classification is table driven. A canonical title is first checked against the
skip rules (section labels, rows the projector computes), then the first
matching entry of :data:`KIND_PREFIXES` decides the kind; anything left is a
revenue line. Association failures never drop a line: it is produced
unselected with its errors so the user can fix it before commit.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from .amounts import ZERO, parse_amount
from .logging_setup import get_logger
from .matching import Matchers, revenue_code
from .models import (
    Catalogs,
    DatedValue,
    HeaderDates,
    ImportedLine,
    LineKind,
    RevenueAccount,
    RevenueType,
)
from .text import canonical_title
from .validation import MISSING_ACCOUNT, required_association_errors

logger = get_logger("cashflow_forecast.classify")

SECTION_LABELS: frozenset[str] = frozenset({"receitas", "despesas", "gastos", "entradas", "saidas"})

# Rows produced by the projector or by sheet formulas. Every "saldo" row other
# than the opening balance is one of them (daily, accumulated, per bank).
COMPUTED_PREFIXES: tuple[str, ...] = ("total", "saldo")
OPENING_BALANCE_PREFIX = "saldo inicial"

KIND_PREFIXES: tuple[tuple[str, LineKind], ...] = (
    (OPENING_BALANCE_PREFIX, LineKind.OPENING_BALANCE),
    ("gastos", LineKind.EXPENSE),
    ("gasto", LineKind.EXPENSE),
)

_EXPENSE_PREFIX_RE = re.compile(r"^\s*gastos?\b[\s:;,.\-–/|]*", re.IGNORECASE)
_CONNECTOR_RE = re.compile(r"^(?:com|de|da|do|das|dos|em|c/)\s+", re.IGNORECASE)

DUPLICATE_OPENING_BALANCE = "Only the first opening balance of the sheet is used"


def _starts_with_words(title: str, prefix: str) -> bool:
    return title == prefix or title.startswith(prefix + " ")


def skip_reason(key: str) -> str | None:
    """Why a canonical title is not a forecast line, or ``None`` when it is."""

    if not key:
        return "empty title"
    if key in SECTION_LABELS:
        return "section label"
    if _starts_with_words(key, OPENING_BALANCE_PREFIX):
        return None
    for prefix in COMPUTED_PREFIXES:
        if _starts_with_words(key, prefix):
            return "computed row"
    return None


def kind_for_title(key: str) -> LineKind:
    for prefix, kind in KIND_PREFIXES:
        if _starts_with_words(key, prefix):
            return kind
    return LineKind.REVENUE


def expense_area_name(raw_title: str) -> str:
    """``"Gasto com Material e Consumo"`` -> ``"Material e Consumo"``."""

    rest = _EXPENSE_PREFIX_RE.sub("", raw_title, count=1).strip()
    return _CONNECTOR_RE.sub("", rest, count=1).strip()


def _title_of(row: Sequence[Any]) -> str:
    if not row or row[0] is None:
        return ""
    return str(row[0]).strip()


def _row_values(row: Sequence[Any], header: HeaderDates) -> list[DatedValue]:
    values: list[DatedValue] = []
    for col, day in header.columns:
        raw = row[col] if col < len(row) else None
        values.append(DatedValue(day, parse_amount(raw) or ZERO))
    return values


def _opening_line(title: str, values: list[DatedValue], row_index: int) -> ImportedLine:
    first = values[0].amount if values else ZERO
    kept = [DatedValue(v.date, first if i == 0 else ZERO) for i, v in enumerate(values)]
    return ImportedLine(
        kind=LineKind.OPENING_BALANCE, title=title, values=kept, row_index=row_index
    )


def _expense_line(
    title: str, values: list[DatedValue], row_index: int, matchers: Matchers
) -> ImportedLine:
    area = matchers.areas.match(expense_area_name(title))
    return ImportedLine(
        kind=LineKind.EXPENSE,
        title=title,
        values=values,
        area_id=area.id if area else None,
        row_index=row_index,
    )


def resolve_revenue(
    title: str, catalogs: Catalogs, matchers: Matchers
) -> tuple[RevenueAccount | None, RevenueType | None, str | None]:
    """Return ``(account, revenue_type, code)`` for a revenue title.

    A code derived from the title decides the account; titles without one fall
    back to matching account names. The revenue type comes from the title and
    otherwise from the account.
    """

    code = revenue_code(title)
    if code is not None:
        account = catalogs.account_by_code(code)
    else:
        account = matchers.accounts.match(title)
        code = account.code if account else None
    rtype = matchers.revenue_types.match(title)
    if rtype is None and account is not None:
        rtype = catalogs.revenue_type(account.revenue_type_id)
    return account, rtype, code


def _revenue_line(
    title: str, values: list[DatedValue], row_index: int, matchers: Matchers, catalogs: Catalogs
) -> tuple[ImportedLine, str | None]:
    """Return the line and, when its code has no catalog account, that code."""

    account, rtype, code = resolve_revenue(title, catalogs, matchers)
    line = ImportedLine(
        kind=LineKind.REVENUE,
        title=title,
        values=values,
        account_id=account.id if account else None,
        revenue_type_id=rtype.id if rtype else None,
        code=code,
        row_index=row_index,
    )
    unknown_code = code if (code is not None and account is None) else None
    return line, unknown_code


def classify_rows(
    grid: Sequence[Sequence[Any]],
    header: HeaderDates,
    catalogs: Catalogs,
    matchers: Matchers,
) -> tuple[list[ImportedLine], list[str]]:
    """Classify every row below ``header`` into imported lines.

    Returns the lines in sheet order and warnings for rows the user should
    look at (currently a repeated opening balance).
    """

    lines: list[ImportedLine] = []
    warnings: list[str] = []
    seen_opening = False

    for row_index in range(header.row_index + 1, len(grid)):
        row = grid[row_index]
        title = _title_of(row)
        key = canonical_title(title)
        reason = skip_reason(key)
        if reason is not None:
            if key:
                logger.debug("Row %d skipped (%s): %r", row_index, reason, title)
            continue

        kind = kind_for_title(key)
        values = _row_values(row, header)

        if kind is LineKind.OPENING_BALANCE:
            line = _opening_line(title, values, row_index)
            line.errors = required_association_errors(line)
            if seen_opening:
                line.errors.append(DUPLICATE_OPENING_BALANCE)
                line.selected = False
                warnings.append(
                    f"Row {row_index + 1}: duplicate opening balance {title!r} was not selected"
                )
            seen_opening = True
            lines.append(line)
            continue

        if all(v.amount == ZERO for v in values):
            logger.debug("Row %d skipped (all zero): %r", row_index, title)
            continue

        if kind is LineKind.EXPENSE:
            line = _expense_line(title, values, row_index, matchers)
            line.errors = required_association_errors(line)
        else:
            line, unknown_code = _revenue_line(title, values, row_index, matchers, catalogs)
            errors = required_association_errors(line)
            if unknown_code is not None:
                missing = f"No revenue account with code {unknown_code} was found"
                errors = [missing if e == MISSING_ACCOUNT else e for e in errors]
            line.errors = errors

        if line.errors:
            line.selected = False
        lines.append(line)

    logger.info(
        "Classified %d lines (%d selected) below header row %d",
        len(lines),
        sum(1 for ln in lines if ln.selected),
        header.row_index,
    )
    return lines, warnings


__all__ = [
    "SECTION_LABELS",
    "COMPUTED_PREFIXES",
    "KIND_PREFIXES",
    "DUPLICATE_OPENING_BALANCE",
    "skip_reason",
    "kind_for_title",
    "expense_area_name",
    "resolve_revenue",
    "classify_rows",
]
