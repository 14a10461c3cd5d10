from __future__ import annotations

import datetime as dt
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import expression as sa_expr

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
_PK = BigInteger().with_variant(Integer, "sqlite")

# Stored values of ``pvi_previsao_itens.kind``.
FORECAST_KINDS = ("saldo_inicial", "gasto", "receita", "saldo_diario", "saldo_acumulado")


class Base(DeclarativeBase):
    pass


def _created_at() -> Mapped[dt.datetime]:
    return mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------
# Reference data
# ---------------------------


class CfArea(Base):
    __tablename__ = "are_areas"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    code: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=sa_expr.true())
    created_at: Mapped[dt.datetime] = _created_at()


class CfBank(Base):
    __tablename__ = "ban_bancos"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    code: Mapped[str | None] = mapped_column(String, nullable=True)
    agency: Mapped[str | None] = mapped_column(String, nullable=True)
    account_number: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=sa_expr.true())
    created_at: Mapped[dt.datetime] = _created_at()


class CfRevenueAccount(Base):
    __tablename__ = "ctr_contas_receita"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Three-digit code: 200 titles, 201 deposits/PIX, 202 other.
    code: Mapped[str | None] = mapped_column(String(16), nullable=True, unique=True)
    bank_id: Mapped[int | None] = mapped_column(
        _PK, ForeignKey("ban_bancos.id", ondelete="SET NULL"), nullable=True
    )
    # Revenue type realized amounts on this account are reported under.
    revenue_type_id: Mapped[int | None] = mapped_column(
        _PK, ForeignKey("tpr_tipos_receita.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=sa_expr.true())
    created_at: Mapped[dt.datetime] = _created_at()


class CfRevenueType(Base):
    __tablename__ = "tpr_tipos_receita"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    code: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=sa_expr.true())
    created_at: Mapped[dt.datetime] = _created_at()


# ---------------------------
# Forecast: pvs_semanas / pvi_previsao_itens
# ---------------------------


class CfForecastWeek(Base):
    __tablename__ = "pvs_semanas"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    week_start: Mapped[dt.date] = mapped_column(Date, nullable=False, unique=True)
    week_end: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, server_default="importado")
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = _created_at()


class CfForecastItem(Base):
    __tablename__ = "pvi_previsao_itens"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    week_id: Mapped[int] = mapped_column(
        _PK, ForeignKey("pvs_semanas.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    # Title as typed in the sheet.
    title: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    area_id: Mapped[int | None] = mapped_column(_PK, ForeignKey("are_areas.id"), nullable=True)
    account_id: Mapped[int | None] = mapped_column(
        _PK, ForeignKey("ctr_contas_receita.id"), nullable=True
    )
    revenue_type_id: Mapped[int | None] = mapped_column(
        _PK, ForeignKey("tpr_tipos_receita.id"), nullable=True
    )
    bank_id: Mapped[int | None] = mapped_column(_PK, ForeignKey("ban_bancos.id"), nullable=True)
    code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    created_at: Mapped[dt.datetime] = _created_at()

    __table_args__ = (
        CheckConstraint(
            "kind in ({})".format(",".join(f"'{k}'" for k in FORECAST_KINDS)),
            name="ck_pvi_kind",
        ),
    )


# ---------------------------
# Realized: payments, revenues, bank balances
# ---------------------------


class CfAreaPayment(Base):
    __tablename__ = "pag_pagamentos_area"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    area_id: Mapped[int | None] = mapped_column(_PK, ForeignKey("are_areas.id"), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = _created_at()


class CfRevenue(Base):
    __tablename__ = "rec_receitas"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    account_id: Mapped[int | None] = mapped_column(
        _PK, ForeignKey("ctr_contas_receita.id"), nullable=True
    )
    # Overrides the account's revenue type when set.
    revenue_type_id: Mapped[int | None] = mapped_column(
        _PK, ForeignKey("tpr_tipos_receita.id"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = _created_at()


class CfBankBalance(Base):
    __tablename__ = "sdb_saldo_banco"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    bank_id: Mapped[int] = mapped_column(_PK, ForeignKey("ban_bancos.id"), nullable=False)
    balance: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    created_at: Mapped[dt.datetime] = _created_at()

    __table_args__ = (UniqueConstraint("date", "bank_id", name="uq_sdb_date_bank"),)


__all__ = [
    "Base",
    "FORECAST_KINDS",
    "CfArea",
    "CfBank",
    "CfRevenueAccount",
    "CfRevenueType",
    "CfForecastWeek",
    "CfForecastItem",
    "CfAreaPayment",
    "CfRevenue",
    "CfBankBalance",
]
