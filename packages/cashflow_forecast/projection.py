"""Running-balance projection over the selected lines of a week."""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Sequence
from decimal import Decimal

from .amounts import ZERO
from .models import DailySeries, DatedValue, ImportedLine, LineKind

DAILY_BALANCE_TITLE = "Saldo diário"
ACCUMULATED_BALANCE_TITLE = "Saldo acumulado"


def opening_balance(lines: Iterable[ImportedLine]) -> Decimal:
    """Slot 0 of the first selected opening-balance line, zero when there is none."""

    for line in lines:
        if line.selected and line.kind is LineKind.OPENING_BALANCE:
            return line.values[0].amount if line.values else ZERO
    return ZERO


def project_balances(lines: Sequence[ImportedLine], dates: Sequence[dt.date]) -> DailySeries:
    """Compute net and accumulated balance per date from the selected lines.

    ``net[d]`` is selected revenue minus selected expense on ``d``;
    ``accumulated`` starts from the opening balance and adds each day's net.
    """

    revenue = [ZERO] * len(dates)
    expense = [ZERO] * len(dates)
    for line in lines:
        if not line.selected or line.kind not in (LineKind.REVENUE, LineKind.EXPENSE):
            continue
        target = revenue if line.kind is LineKind.REVENUE else expense
        for i, day in enumerate(dates):
            target[i] += line.amount_on(day)

    start = opening_balance(lines)
    net: list[Decimal] = []
    accumulated: list[Decimal] = []
    running = start
    for rev, exp in zip(revenue, expense):
        day_net = rev - exp
        running += day_net
        net.append(day_net)
        accumulated.append(running)

    return DailySeries(
        dates=tuple(dates),
        opening_balance=start,
        revenue=tuple(revenue),
        expense=tuple(expense),
        net=tuple(net),
        accumulated=tuple(accumulated),
    )


def balance_lines(series: DailySeries) -> list[ImportedLine]:
    """Synthetic daily and accumulated balance lines stored next to the user lines."""

    return [
        ImportedLine(
            kind=LineKind.DAILY_BALANCE,
            title=DAILY_BALANCE_TITLE,
            values=[DatedValue(d, v) for d, v in zip(series.dates, series.net)],
        ),
        ImportedLine(
            kind=LineKind.ACCUMULATED_BALANCE,
            title=ACCUMULATED_BALANCE_TITLE,
            values=[DatedValue(d, v) for d, v in zip(series.dates, series.accumulated)],
        ),
    ]


__all__ = [
    "DAILY_BALANCE_TITLE",
    "ACCUMULATED_BALANCE_TITLE",
    "opening_balance",
    "project_balances",
    "balance_lines",
]
