from __future__ import annotations

import re

import pytest

from cashflow_forecast.matching import (
    CODE_DEPOSITS,
    CODE_OTHER,
    CODE_TITLES,
    alias_tier,
    build_matchers,
    regex_tier,
    revenue_code,
    substring_tier,
)
from cashflow_forecast.models import Area, Catalogs


@pytest.mark.parametrize(
    "title, code",
    [
        ("Boletos", CODE_TITLES),
        ("Títulos a receber", CODE_TITLES),
        ("Depósito e PIX", CODE_DEPOSITS),
        ("Depósito ePIX", CODE_DEPOSITS),
        ("Recebimento antecipado", CODE_DEPOSITS),
        ("Cartão Débito Varejo", CODE_OTHER),
        ("À vista", CODE_OTHER),
        ("Aluguel recebido", None),
        ("", None),
    ],
)
def test_revenue_code(title: str, code: str | None) -> None:
    assert revenue_code(title) == code


def test_tiers_are_pure_lookups() -> None:
    assert alias_tier({"pix": "201"})("pix") == "201"
    assert alias_tier({"pix": "201"})("ted") is None

    tier = regex_tier([(re.compile(r"\bfolha\b"), "rh")])
    assert tier("folha de pagamento") == "rh"
    assert tier("folhagem") is None


def test_substring_tier_prefers_exact_then_longest_name() -> None:
    areas = [Area(1, "Loja"), Area(2, "Loja de Fábrica")]
    tier = substring_tier(areas)

    assert tier("loja") == "loja"
    assert tier("gasto loja de fabrica centro") == "loja de fabrica"
    assert tier("marketing") is None


def test_area_matcher_tiers(catalogs: Catalogs) -> None:
    areas = build_matchers(catalogs).areas

    assert areas.match("Material e Consumo").id == 1
    assert areas.match("materail e consumo").id == 1
    assert areas.match("Consumo").id == 1
    assert areas.match("Recursos Humanos").id == 2
    assert areas.match("Folha de pagamento").id == 2
    assert areas.match("Logistica e frete").id == 3
    assert areas.match("Loja Fábrica").id == 4
    assert areas.match("Marketing") is None
    assert areas.match(None) is None


def test_area_matcher_ignores_inactive_entities(catalogs: Catalogs) -> None:
    # "Área Antiga" is inactive and therefore not part of the catalogs fixture.
    assert build_matchers(catalogs).areas.match("Área Antiga") is None


def test_account_and_type_matchers(catalogs: Catalogs) -> None:
    m = build_matchers(catalogs)

    assert m.accounts.match("Boletos").id == 10
    assert m.accounts.match("PIX").id == 11
    assert m.accounts.match("Outras Entradas").id == 12
    assert m.revenue_types.match("Boletos").id == 20
    assert m.revenue_types.match("Depósito e PIX").id == 21
    assert m.revenue_types.match("Cartão débito").id == 22
    assert m.revenue_types.match("Aluguel") is None


def test_bank_matcher(catalogs: Catalogs) -> None:
    banks = build_matchers(catalogs).banks

    assert banks.match("BB").id == 1
    assert banks.match("Conta Banco do Brasil").id == 1
    assert banks.match("Itaú Unibanco").id == 2
    assert banks.match("Bradesco") is None


def test_matchers_are_deterministic(catalogs: Catalogs) -> None:
    first = build_matchers(catalogs)
    second = build_matchers(catalogs)
    for title in ("Boletos", "Gastos RH", "Depósito", "Consumo", "PIX"):
        assert first.accounts.match(title) == second.accounts.match(title)
        assert first.areas.match(title) == second.areas.match(title)


def test_by_id_lookup(catalogs: Catalogs) -> None:
    m = build_matchers(catalogs)

    assert m.areas.by_id(3).display_name == "Logística"
    assert m.areas.by_id(99) is None
    assert m.areas.by_id(None) is None
