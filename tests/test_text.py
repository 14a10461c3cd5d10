from __future__ import annotations

from cashflow_forecast.text import canonical_title, contains_words, normalize_text


def test_normalize_text_folds_accents_case_and_punctuation() -> None:
    assert normalize_text("  Depósito & PIX  ") == "deposito pix"
    assert normalize_text("Logística/Frete") == "logistica frete"
    assert normalize_text("ÁREA   Técnica") == "area tecnica"
    assert normalize_text(None) == ""
    assert normalize_text(202) == "202"


def test_canonical_title_repairs_known_misspellings() -> None:
    assert canonical_title("Com materail e consumo") == "material e consumo"
    assert canonical_title("Depósito ePIX") == "deposito e pix"
    assert canonical_title("Gasto logisitca") == "gasto logistica"
    assert canonical_title("Loja Fábrica") == "loja de fabrica"


def test_canonical_title_leaves_regular_titles_alone() -> None:
    assert canonical_title("Gastos RH") == "gastos rh"
    assert canonical_title("") == ""


def test_contains_words_requires_whole_words() -> None:
    assert contains_words("gasto com ti", "ti")
    assert not contains_words("logistica", "ti")
    assert contains_words("loja de fabrica", "loja de fabrica")
    assert not contains_words("", "rh")
    assert not contains_words("rh", "")
