# ruff: noqa: I001
"""Persistence integration for cashflow_forecast.

Forecast lines are written to ``pvi_previsao_itens`` (grouped by week in
``pvs_semanas``) and read back, together with realized payments, revenues and
bank balances, as :class:`ReconciliationRow` values. Models live in
``db.models.cashflow``; sessions come from ``db.client``. Realized rows
imported from a history sheet go through :class:`SqlAlchemyRealizedSink`.

Commit is a best-effort sequential batch: one insert per row, each inside its
own SAVEPOINT, so a failing row is rolled back alone and the loop continues.
Nothing is undone when a later row fails.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.cashflow import (
    FORECAST_KINDS,
    CfArea,
    CfAreaPayment,
    CfBank,
    CfBankBalance,
    CfForecastItem,
    CfForecastWeek,
    CfRevenue,
    CfRevenueAccount,
    CfRevenueType,
)
from .amounts import ZERO, format_amount
from .errors import PersistenceError
from .logging_setup import get_logger
from .models import CommitResult, ImportedLine, LineKind, ReconciliationRow, WeekWindow

logger = get_logger("cashflow_forecast.persistence")

# Both sequences list the kinds in the same order.
STORED_KIND: dict[LineKind, str] = dict(zip(LineKind, FORECAST_KINDS, strict=True))
KIND_FROM_STORED: dict[str, LineKind] = {v: k for k, v in STORED_KIND.items()}


@dataclass(frozen=True, slots=True)
class ForecastRecord:
    """One forecast cell ready to be stored."""

    week_start: dt.date
    date: dt.date
    kind: LineKind
    title: str
    amount: Decimal
    area_id: int | None = None
    account_id: int | None = None
    revenue_type_id: int | None = None
    code: str | None = None
    sort_order: int = 0

    @property
    def label(self) -> str:
        return f"{self.title} ({self.date.strftime('%d/%m/%Y')}, {format_amount(self.amount)})"


class RealizedSource(StrEnum):
    """Table a realized row lives in."""

    AREA_PAYMENTS = "area_payments"
    REVENUES = "revenues"
    BANK_BALANCES = "bank_balances"


@dataclass(frozen=True, slots=True)
class RealizedRecord:
    """One realized payment, revenue or bank balance ready to be stored."""

    source: RealizedSource
    date: dt.date
    amount: Decimal
    area_id: int | None = None
    account_id: int | None = None
    revenue_type_id: int | None = None
    bank_id: int | None = None
    description: str | None = None

    @property
    def label(self) -> str:
        title = self.description or self.source.value
        return f"{title} ({self.date.strftime('%d/%m/%Y')}, {format_amount(self.amount)})"


class ForecastSink(Protocol):
    """Destination of committed forecast records."""

    def prepare_week(self, window: WeekWindow, *, replace: bool) -> None:
        """Make the week ready to receive records, dropping old ones when ``replace``."""
        ...

    def insert(self, record: ForecastRecord) -> None:
        """Store one record or raise :class:`PersistenceError`."""
        ...


class RealizedSink(Protocol):
    """Destination of imported realized records."""

    def insert(self, record: RealizedRecord) -> None:
        """Store one record or raise :class:`PersistenceError`."""
        ...


def records_for_lines(lines: Iterable[ImportedLine], window: WeekWindow) -> list[ForecastRecord]:
    """Flatten lines into per-date records.

    User lines contribute their non-zero cells; the opening balance always
    contributes its first slot and derived balance lines contribute every
    date.
    """

    out: list[ForecastRecord] = []
    order = 0
    for line in lines:
        if not line.selected:
            continue
        for i, v in enumerate(line.values):
            if line.kind is LineKind.OPENING_BALANCE:
                if i > 0:
                    continue
            elif not line.kind.is_derived and v.amount == ZERO:
                continue
            out.append(
                ForecastRecord(
                    week_start=window.start,
                    date=v.date,
                    kind=line.kind,
                    title=line.title,
                    amount=v.amount,
                    area_id=line.area_id,
                    account_id=line.account_id,
                    revenue_type_id=line.revenue_type_id,
                    code=line.code,
                    sort_order=order,
                )
            )
        order += 1
    return out


def write_records(
    records: Sequence[ForecastRecord] | Sequence[RealizedRecord],
    sink: ForecastSink | RealizedSink,
    result: CommitResult | None = None,
) -> CommitResult:
    """Insert ``records`` one by one, tallying successes and failures."""

    result = result if result is not None else CommitResult()
    for record in records:
        try:
            sink.insert(record)
        except PersistenceError as exc:
            logger.warning("Failed to store %s: %s", record.label, exc)
            result.record_failure(f"{record.label}: {exc}")
            continue
        result.inserted_count += 1
    logger.info("Commit finished: %s", result.summary)
    return result


class SqlAlchemyForecastSink:
    """Write forecast records through an ORM session.

    The caller owns the outer transaction (typically ``db.client.session_scope``);
    each insert runs in a nested transaction so one failure does not poison
    the session.
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self._week_ids: dict[dt.date, int] = {}
        self._bank_by_account: dict[int, int | None] = {}

    def _week_id(self, window: WeekWindow) -> int:
        cached = self._week_ids.get(window.start)
        if cached is not None:
            return cached
        week = self.session.scalars(
            select(CfForecastWeek).where(CfForecastWeek.week_start == window.start)
        ).first()
        if week is None:
            week = CfForecastWeek(
                week_start=window.start,
                week_end=window.end,
                status="importado",
                note="Created by spreadsheet import",
            )
            self.session.add(week)
            self.session.flush()
        self._week_ids[window.start] = week.id
        return week.id

    def prepare_week(self, window: WeekWindow, *, replace: bool) -> None:
        try:
            week_id = self._week_id(window)
            if replace:
                removed = self.session.execute(
                    delete(CfForecastItem).where(CfForecastItem.week_id == week_id)
                ).rowcount
                logger.info("Removed %s existing forecast rows of week %s", removed, window.start)
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Could not prepare week {window.start.isoformat()}: {exc}"
            ) from exc

    def _bank_id(self, account_id: int | None) -> int | None:
        if account_id is None:
            return None
        if account_id not in self._bank_by_account:
            account = self.session.get(CfRevenueAccount, account_id)
            self._bank_by_account[account_id] = account.bank_id if account else None
        return self._bank_by_account[account_id]

    def insert(self, record: ForecastRecord) -> None:
        try:
            with self.session.begin_nested():
                self.session.add(
                    CfForecastItem(
                        week_id=self._week_id(WeekWindow(record.week_start)),
                        date=record.date,
                        kind=STORED_KIND[record.kind],
                        title=record.title,
                        amount=record.amount,
                        area_id=record.area_id,
                        account_id=record.account_id,
                        revenue_type_id=record.revenue_type_id,
                        bank_id=self._bank_id(record.account_id),
                        code=record.code,
                        sort_order=record.sort_order,
                    )
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc.orig if getattr(exc, "orig", None) else exc)) from exc


class SqlAlchemyRealizedSink:
    """Write realized payments, revenues and bank balances through an ORM session.

    Same transaction contract as :class:`SqlAlchemyForecastSink`: one SAVEPOINT
    per row inside the caller's transaction.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def _row(self, record: RealizedRecord) -> CfAreaPayment | CfRevenue | CfBankBalance:
        if record.source is RealizedSource.AREA_PAYMENTS:
            return CfAreaPayment(
                date=record.date,
                area_id=record.area_id,
                amount=record.amount,
                description=record.description,
            )
        if record.source is RealizedSource.REVENUES:
            return CfRevenue(
                date=record.date,
                account_id=record.account_id,
                revenue_type_id=record.revenue_type_id,
                amount=record.amount,
                description=record.description,
            )
        if record.bank_id is None:
            raise PersistenceError("A bank balance needs a bank")
        return CfBankBalance(date=record.date, bank_id=record.bank_id, balance=record.amount)

    def insert(self, record: RealizedRecord) -> None:
        row = self._row(record)
        try:
            with self.session.begin_nested():
                self.session.add(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc.orig if getattr(exc, "orig", None) else exc)) from exc


# ---------------------------
# Readers
# ---------------------------


def _stored_kinds(kinds: Iterable[LineKind | str] | None) -> list[str] | None:
    if kinds is None:
        return None
    return [STORED_KIND[LineKind(k)] for k in kinds]


def load_forecast_rows(
    session: Session,
    *,
    start: dt.date | None = None,
    end: dt.date | None = None,
    kinds: Iterable[LineKind | str] | None = None,
) -> list[ReconciliationRow]:
    """Read stored forecast rows with the names of their referenced entities."""

    stmt = (
        select(
            CfForecastItem,
            CfArea.name,
            CfRevenueAccount.name,
            CfRevenueAccount.code,
            CfRevenueType.name,
            CfBank.name,
        )
        .outerjoin(CfArea, CfArea.id == CfForecastItem.area_id)
        .outerjoin(CfRevenueAccount, CfRevenueAccount.id == CfForecastItem.account_id)
        .outerjoin(CfRevenueType, CfRevenueType.id == CfForecastItem.revenue_type_id)
        .outerjoin(CfBank, CfBank.id == CfForecastItem.bank_id)
        .order_by(CfForecastItem.date, CfForecastItem.sort_order, CfForecastItem.id)
    )
    if start is not None:
        stmt = stmt.where(CfForecastItem.date >= start)
    if end is not None:
        stmt = stmt.where(CfForecastItem.date <= end)
    stored = _stored_kinds(kinds)
    if stored is not None:
        stmt = stmt.where(CfForecastItem.kind.in_(stored))

    rows: list[ReconciliationRow] = []
    for item, area_name, account_name, account_code, type_name, bank_name in session.execute(stmt):
        kind = KIND_FROM_STORED.get(item.kind)
        rows.append(
            ReconciliationRow(
                date=item.date,
                kind=kind.value if kind else item.kind,
                amount=item.amount,
                title=item.title,
                area_id=item.area_id,
                area_name=area_name,
                bank_id=item.bank_id,
                bank_name=bank_name,
                account_id=item.account_id,
                account_name=account_name,
                account_code=item.code or account_code,
                revenue_type_id=item.revenue_type_id,
                revenue_type_name=type_name,
            )
        )
    return rows


def _date_bounds(stmt, column, start: dt.date | None, end: dt.date | None):
    if start is not None:
        stmt = stmt.where(column >= start)
    if end is not None:
        stmt = stmt.where(column <= end)
    return stmt


def load_realized_rows(
    session: Session,
    source: RealizedSource | str,
    *,
    start: dt.date | None = None,
    end: dt.date | None = None,
) -> list[ReconciliationRow]:
    """Read realized rows of one source table as reconciliation rows."""

    source = RealizedSource(source)
    rows: list[ReconciliationRow] = []

    if source is RealizedSource.AREA_PAYMENTS:
        stmt = (
            select(CfAreaPayment, CfArea.name)
            .outerjoin(CfArea, CfArea.id == CfAreaPayment.area_id)
            .order_by(CfAreaPayment.date, CfAreaPayment.id)
        )
        stmt = _date_bounds(stmt, CfAreaPayment.date, start, end)
        for payment, area_name in session.execute(stmt):
            rows.append(
                ReconciliationRow(
                    date=payment.date,
                    kind=LineKind.EXPENSE.value,
                    amount=payment.amount,
                    title=payment.description,
                    area_id=payment.area_id,
                    area_name=area_name,
                )
            )
    elif source is RealizedSource.REVENUES:
        # The row's own revenue type wins over its account's.
        type_id = func.coalesce(CfRevenue.revenue_type_id, CfRevenueAccount.revenue_type_id)
        stmt = (
            select(
                CfRevenue,
                CfRevenueAccount.name,
                CfRevenueAccount.code,
                CfRevenueAccount.bank_id,
                CfBank.name,
                CfRevenueType.id,
                CfRevenueType.name,
            )
            .outerjoin(CfRevenueAccount, CfRevenueAccount.id == CfRevenue.account_id)
            .outerjoin(CfBank, CfBank.id == CfRevenueAccount.bank_id)
            .outerjoin(CfRevenueType, CfRevenueType.id == type_id)
            .order_by(CfRevenue.date, CfRevenue.id)
        )
        stmt = _date_bounds(stmt, CfRevenue.date, start, end)
        for (
            revenue,
            account_name,
            account_code,
            bank_id,
            bank_name,
            rtype_id,
            rtype_name,
        ) in session.execute(stmt):
            rows.append(
                ReconciliationRow(
                    date=revenue.date,
                    kind=LineKind.REVENUE.value,
                    amount=revenue.amount,
                    title=revenue.description,
                    account_id=revenue.account_id,
                    account_name=account_name,
                    account_code=account_code,
                    bank_id=bank_id,
                    bank_name=bank_name,
                    revenue_type_id=rtype_id,
                    revenue_type_name=rtype_name,
                )
            )
    else:
        stmt = (
            select(CfBankBalance, CfBank.name)
            .join(CfBank, CfBank.id == CfBankBalance.bank_id)
            .order_by(CfBankBalance.date, CfBankBalance.id)
        )
        stmt = _date_bounds(stmt, CfBankBalance.date, start, end)
        for balance, bank_name in session.execute(stmt):
            rows.append(
                ReconciliationRow(
                    date=balance.date,
                    kind="bank_balance",
                    amount=balance.balance,
                    bank_id=balance.bank_id,
                    bank_name=bank_name,
                )
            )

    logger.debug("Loaded %d realized rows from %s", len(rows), source)
    return rows


__all__ = [
    "STORED_KIND",
    "KIND_FROM_STORED",
    "ForecastRecord",
    "ForecastSink",
    "RealizedRecord",
    "RealizedSink",
    "SqlAlchemyRealizedSink",
    "records_for_lines",
    "write_records",
    "SqlAlchemyForecastSink",
    "load_forecast_rows",
    "RealizedSource",
    "load_realized_rows",
]
