from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest
from db.client import session_scope

from cashflow_forecast.api import commit_history
from cashflow_forecast.errors import ParseError
from cashflow_forecast.ingest.history import (
    HistoryOrigin,
    detect_history_header,
    origin_of,
    parse_history,
)
from cashflow_forecast.models import Catalogs, LineKind
from cashflow_forecast.persistence import (
    ForecastRecord,
    RealizedRecord,
    RealizedSource,
    SqlAlchemyForecastSink,
    SqlAlchemyRealizedSink,
    load_forecast_rows,
    load_realized_rows,
    write_records,
)
from tests.helpers.sheets import HISTORY_HEADER, history_rows

MON = dt.date(2024, 3, 18)
TUE = dt.date(2024, 3, 19)


@pytest.mark.parametrize(
    "label,expected",
    [
        ("Ajuste Saldo Inicial", HistoryOrigin.OPENING_BALANCE),
        ("Previsão por Área", HistoryOrigin.AREA_FORECAST),
        ("Pagamentos por Área", HistoryOrigin.AREA_PAYMENT),
        ("Previsão de Receitas", HistoryOrigin.REVENUE_FORECAST),
        ("Receitas por Tipo", HistoryOrigin.REVENUE),
        ("Saldo por Banco", HistoryOrigin.BANK_BALANCE),
        ("previsao_receita", HistoryOrigin.REVENUE_FORECAST),
        ("Transferência", None),
        (None, None),
    ],
)
def test_origin_of(label, expected) -> None:
    assert origin_of(label) is expected


def test_header_is_found_below_a_title_row() -> None:
    index, columns = detect_history_header(history_rows())

    assert index == 1
    assert columns == {"date": 0, "origin": 1, "name": 2, "forecast": 3, "realized": 4}


@pytest.mark.parametrize(
    "grid,message",
    [
        ([], "empty"),
        ([[None, ""], []], "empty"),
        ([["Data", "Area", "Valor"], [MON, "RH", 1]], "Origem"),
    ],
)
def test_unusable_grids_raise(grid, message) -> None:
    with pytest.raises(ParseError, match=message):
        parse_history(grid, Catalogs())


def test_parse_history_routes_rows(catalogs: Catalogs) -> None:
    parsed = parse_history(history_rows(), catalogs)

    assert parsed.row_count == 10
    assert len(parsed.records) == 6
    assert parsed.errors == ["Row 11: no valid date ('sem data')"]
    assert parsed.warnings == [
        "Row 9: area not found: Marketing",
        "Row 10: unrecognized origin 'Transferência'",
    ]

    opening, expense, revenue = parsed.forecast_records
    assert opening == ForecastRecord(
        week_start=MON,
        date=MON,
        kind=LineKind.OPENING_BALANCE,
        title="Saldo Inicial",
        amount=Decimal("10000.00"),
    )
    assert (expense.kind, expense.area_id, expense.amount) == (
        LineKind.EXPENSE,
        1,
        Decimal("250.00"),
    )
    assert (revenue.account_id, revenue.revenue_type_id, revenue.code) == (10, 20, "200")
    assert revenue.week_start == MON and revenue.date == TUE

    payment, received, balance = parsed.realized_records
    assert (payment.source, payment.area_id, payment.amount) == (
        RealizedSource.AREA_PAYMENTS,
        2,
        Decimal("3000.00"),
    )
    assert (received.source, received.account_id, received.revenue_type_id) == (
        RealizedSource.REVENUES,
        11,
        21,
    )
    assert (balance.source, balance.bank_id, balance.amount) == (
        RealizedSource.BANK_BALANCES,
        1,
        Decimal("8000.00"),
    )


def test_mapping_column_overrides_name_matching(catalogs: Catalogs) -> None:
    grid = [
        ["Data", "Origem", "Area", "Valor_Previsto", "Valor_Realizado", "Mapeamento"],
        [MON, "Pagamento Área", "Nome livre", None, 120, 4],
        [MON, "Receita Tipo", "Qualquer", None, 80, "12"],
        [MON, "Saldo Banco", "Conta principal", None, 500, 2],
        [MON, "Previsão Receita", "Boletos", 90, None, 21],
        [MON, "Pagamento Área", "Nome livre", None, 10, 99],
    ]

    parsed = parse_history(grid, catalogs)

    payment, revenue, balance = parsed.realized_records
    assert payment.area_id == 4
    assert (revenue.account_id, revenue.revenue_type_id) == (12, 22)
    assert balance.bank_id == 2
    (forecast,) = parsed.forecast_records
    assert (forecast.account_id, forecast.revenue_type_id) == (10, 21)
    assert parsed.warnings == ["Row 6: area not found: Nome livre"]


def test_non_positive_amounts_are_not_imported(catalogs: Catalogs) -> None:
    grid = [
        HISTORY_HEADER,
        [MON, "Saldo Inicial", None, None, "-5,00"],
        [MON, "Pagamentos por Área", "RH", None, "0"],
        [MON, "Saldo por Banco", "Itaú", None, None],
    ]

    parsed = parse_history(grid, catalogs)

    assert parsed.records == []
    assert parsed.errors == [] and parsed.warnings == []
    assert parsed.row_count == 3


def test_commit_history_stores_both_sides(db_url: str, catalogs: Catalogs) -> None:
    parsed = parse_history(history_rows(), catalogs)

    with session_scope(database_url=db_url) as session:
        result = commit_history(
            parsed, SqlAlchemyForecastSink(session), SqlAlchemyRealizedSink(session)
        )

    assert result.inserted_count == 6
    assert result.failed_count == 1
    assert result.errors == ["Row 11: no valid date ('sem data')"]

    with session_scope(database_url=db_url) as session:
        forecast = load_forecast_rows(session)
        payments = load_realized_rows(session, RealizedSource.AREA_PAYMENTS)
        revenues = load_realized_rows(session, RealizedSource.REVENUES)
        balances = load_realized_rows(session, RealizedSource.BANK_BALANCES)

    assert [(r.kind, r.amount) for r in forecast] == [
        (LineKind.OPENING_BALANCE.value, Decimal("10000.00")),
        (LineKind.EXPENSE.value, Decimal("250.00")),
        (LineKind.REVENUE.value, Decimal("1500.00")),
    ]
    assert [(r.area_name, r.amount) for r in payments] == [("RH", Decimal("3000.00"))]
    assert [(r.account_id, r.revenue_type_name) for r in revenues] == [(11, "Depósitos")]
    assert [(r.bank_name, r.amount) for r in balances] == [
        ("Banco do Brasil", Decimal("8000.00"))
    ]


def test_commit_history_appends_and_reports_duplicate_balances(
    db_url: str, catalogs: Catalogs
) -> None:
    parsed = parse_history(history_rows(), catalogs)

    for _ in range(2):
        with session_scope(database_url=db_url) as session:
            result = commit_history(
                parsed, SqlAlchemyForecastSink(session), SqlAlchemyRealizedSink(session)
            )

    # Second run: the bank balance of the same day and bank is refused.
    assert result.inserted_count == 5
    assert result.failed_count == 2
    assert any(e.startswith("Banco do Brasil (19/03/2024") for e in result.errors)
    with session_scope(database_url=db_url) as session:
        assert len(load_forecast_rows(session)) == 6
        assert len(load_realized_rows(session, RealizedSource.BANK_BALANCES)) == 1


def test_realized_sink_rejects_a_balance_without_bank(db_url: str) -> None:
    record = RealizedRecord(source=RealizedSource.BANK_BALANCES, date=MON, amount=Decimal("1.00"))

    with session_scope(database_url=db_url) as session:
        result = write_records([record], SqlAlchemyRealizedSink(session))

    assert result.inserted_count == 0
    assert result.errors == ["bank_balances (18/03/2024, 1,00): A bank balance needs a bank"]
