"""Forecast sheet builders shared by the parser, workbook, API and CLI tests.

The sheet below classifies (against ``tests.helpers.db`` catalogs) into six
lines, five of them selected:

====  ===============================  ==========  =======================
row   title                            kind        outcome
====  ===============================  ==========  =======================
3     Saldo Inicial                    opening     10.000,00 on Monday
5     Boletos                          revenue     account 10, type 20
6     Depósito e PIX                   revenue     account 11, type 21
9     Gasto com Material e Consumo     expense     area 1
10    Gastos RH                        expense     area 2
11    Gasto com Marketing              expense     no area, unselected
====  ===============================  ==========  =======================

Per-day net is ``1550, -700, -700, 800, -2700`` and the accumulated balance
ends at ``8250``. :func:`history_rows` builds a realized-history sheet.
"""

from __future__ import annotations

import csv
import datetime as dt
from decimal import Decimal
from pathlib import Path
from typing import Any

from openpyxl import Workbook

from cashflow_forecast.models import WeekWindow

WEEKDAY_LABELS = ("Seg", "Ter", "Qua", "Qui", "Sex")

EXPECTED_NET = [Decimal(v) for v in ("1550.00", "-700.00", "-700.00", "800.00", "-2700.00")]
EXPECTED_ACCUMULATED = [
    Decimal(v) for v in ("11550.00", "10850.00", "10150.00", "10950.00", "8250.00")
]
# Non-zero cells of the selected lines plus two derived lines of five days each.
EXPECTED_RECORDS = 1 + 3 + 5 + 2 + 2 + 10


def header_labels(window: WeekWindow, *, with_year: bool = False) -> list[str]:
    fmt = "%d/%m/%Y" if with_year else "%d/%m"
    return [f"{label} {d.strftime(fmt)}" for label, d in zip(WEEKDAY_LABELS, window.dates)]


def forecast_rows(window: WeekWindow, *, header: list[Any] | None = None) -> list[list[Any]]:
    """Grid of the sample sheet for ``window`` (cells as people type them)."""

    dates = header if header is not None else header_labels(window)
    return [
        ["Previsão de Fluxo de Caixa", None, None, None, None, None],
        [],
        ["Descrição", *dates],
        ["Saldo Inicial", "10.000,00", None, None, None, None],
        ["Receitas"],
        ["Boletos", "1.500,00", "2.000,00", None, "500", None],
        ["Depósito e PIX", 300, 300, 300, 300, 300],
        ["Cartão Débito Varejo", "0", None, None, None, None],
        ["Despesas"],
        ["Gasto com Material e Consumo", "250,00", None, "1.000,00", None, None],
        ["Gastos RH", None, "3.000,00", None, None, "3.000,00"],
        ["Gasto com Marketing", 100, None, None, None, None],
        ["Total Receitas", 1800, 2300, 300, 800, 300],
        ["Saldo Diário", 1550, -700, -700, 800, -2700],
    ]


HISTORY_HEADER = ["Registro", "Origem", "Area", "Valor_Previsto", "Valor_Realizado"]


def history_rows() -> list[list[Any]]:
    """Realized-history sheet for the week of 18/03/2024.

    Ten data rows below a title and the header: six records (opening balance,
    area forecast, area payment, revenue forecast, revenue, bank balance), a
    row without date (row 11), an unknown area (row 9), an unknown origin
    (row 10) and a zero amount.
    """

    mon, tue, wed = dt.date(2024, 3, 18), dt.date(2024, 3, 19), dt.date(2024, 3, 20)
    return [
        ["Histórico de movimentações"],
        HISTORY_HEADER,
        [mon, "Ajuste Saldo Inicial", None, None, "10.000,00"],
        [mon, "Previsão por Área", "Material e Consumo", "250,00", None],
        [mon, "Pagamentos por Área", "Gastos RH", None, "3.000,00"],
        ["19/03/2024", "Previsão de Receitas", "Boletos", "1.500,00", None],
        [tue, "Receitas por Tipo", "Depósito e PIX", None, "300"],
        [tue, "Saldo por Banco", "Banco do Brasil", None, "8.000,00"],
        [tue, "Pagamentos por Área", "Marketing", None, "50"],
        [tue, "Transferência", "RH", None, "10"],
        ["sem data", "Previsão por Área", "RH", "10", None],
        [wed, "Previsão por Área", "RH", "0", None],
        [],
    ]


def write_xlsx(path: Path, rows: list[list[Any]], *, extra_sheet: bool = False) -> Path:
    wb = Workbook()
    ws = wb.active
    ws.title = "Previsao"
    for row in rows:
        ws.append(row)
    if extra_sheet:
        other = wb.create_sheet("Ignorada")
        other.append(["Saldo Inicial", 999])
    wb.save(path)
    return path


def write_csv(path: Path, rows: list[list[Any]], *, delimiter: str = ";") -> Path:
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, delimiter=delimiter)
        for row in rows:
            writer.writerow(["" if c is None else _csv_cell(c) for c in row])
    return path


def _csv_cell(value: Any) -> str:
    if isinstance(value, dt.date):
        return value.strftime("%d/%m/%Y")
    return str(value)
