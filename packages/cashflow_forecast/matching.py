"""Tiered resolution of free-text titles to canonical catalog entities.

A matcher is an ordered tuple of tiers. Each tier is a pure function from a
canonical title (see :func:`cashflow_forecast.text.canonical_title`) to an
optional lookup key; the matcher resolves the key against its catalog and
returns the first entity found:

1. alias table: exact lookup of the whole title;
2. regex patterns: first pattern that matches wins;
3. substring fallback: catalog names scanned for whole-word containment in
   either direction.

Tiers never consult state outside their own tables, so a matcher built from
the same catalog always gives the same answer.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from .models import Area, Bank, CanonicalEntity, Catalogs, RevenueAccount, RevenueType
from .text import canonical_title, contains_words

type Tier = Callable[[str], str | None]
type Patterns = Sequence[tuple[re.Pattern[str], str]]

# Revenue account codes.
CODE_TITLES = "200"
CODE_DEPOSITS = "201"
CODE_OTHER = "202"

ACCOUNT_CODE_ALIASES: dict[str, str] = {
    "deposito e pix": CODE_DEPOSITS,
    "deposito pix": CODE_DEPOSITS,
    "depositos e pix": CODE_DEPOSITS,
    "pix": CODE_DEPOSITS,
    "antecipado": CODE_DEPOSITS,
    "boleto": CODE_TITLES,
    "boletos": CODE_TITLES,
    "titulos": CODE_TITLES,
    "cartao debito": CODE_OTHER,
    "cartao debito varejo": CODE_OTHER,
    "a vista": CODE_OTHER,
    "a vista varejo": CODE_OTHER,
}

ACCOUNT_CODE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bdeposito|\bpix\b|\bantecipad"), CODE_DEPOSITS),
    (re.compile(r"\bbolet|\btitulo"), CODE_TITLES),
    (re.compile(r"\bcartao\b.*\bdebito\b|\ba vista\b|\boutras\b"), CODE_OTHER),
]

# Keys are words expected inside the revenue type's name.
REVENUE_TYPE_ALIASES: dict[str, str] = {
    "deposito e pix": "depositos",
    "deposito pix": "depositos",
    "pix": "depositos",
    "antecipado": "depositos",
    "boleto": "titulos",
    "boletos": "titulos",
    "cartao debito": "outras",
    "cartao debito varejo": "outras",
    "a vista": "outras",
    "a vista varejo": "outras",
}

REVENUE_TYPE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bdeposito|\bpix\b|\bantecipad"), "depositos"),
    (re.compile(r"\bbolet|\btitulo"), "titulos"),
    (re.compile(r"\bcartao\b|\ba vista\b|\boutr"), "outras"),
]

AREA_ALIASES: dict[str, str] = {
    "material": "material e consumo",
    "consumo": "material e consumo",
    "recursos humanos": "rh",
    "pessoal": "rh",
    "financeiro": "financeiro e fiscal",
    "fiscal": "financeiro e fiscal",
    "loja": "loja de fabrica",
    "tecnologia": "ti",
    "tecnologia da informacao": "ti",
    "transferencia para aplicacao": "aplicacao",
}

AREA_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bmateria\w*\b.*\bconsumo\b"), "material e consumo"),
    (re.compile(r"\brecursos humanos\b|\bfolha\b"), "rh"),
    (re.compile(r"\bfinanceir\w*\b.*\bfiscal\b"), "financeiro e fiscal"),
    (re.compile(r"\blogist"), "logistica"),
    (re.compile(r"\bloja\b.*\bfabrica\b"), "loja de fabrica"),
    (re.compile(r"\baplicac"), "aplicacao"),
    (re.compile(r"\binvestiment"), "investimento"),
]

BANK_ALIASES: dict[str, str] = {
    "bb": "banco do brasil",
    "cef": "caixa",
    "caixa economica": "caixa",
    "caixa economica federal": "caixa",
    "itau unibanco": "itau",
}

BANK_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bbrasil\b"), "banco do brasil"),
    (re.compile(r"\bcaixa\b"), "caixa"),
    (re.compile(r"\bitau\b"), "itau"),
    (re.compile(r"\bbradesco\b"), "bradesco"),
    (re.compile(r"\bsantander\b"), "santander"),
    (re.compile(r"\bsicoob\b"), "sicoob"),
    (re.compile(r"\bsicredi\b"), "sicredi"),
]


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------


def alias_tier(table: Mapping[str, str]) -> Tier:
    def tier(title: str) -> str | None:
        return table.get(title)

    return tier


def regex_tier(patterns: Patterns) -> Tier:
    def tier(title: str) -> str | None:
        for pattern, key in patterns:
            if pattern.search(title):
                return key
        return None

    return tier


def substring_tier(entities: Sequence[CanonicalEntity]) -> Tier:
    """Exact catalog name first, then whole-word containment either way.

    Longer names are tried first so ``"loja de fabrica"`` wins over a
    hypothetical ``"loja"`` entry.
    """

    ordered = sorted(entities, key=lambda e: (-len(e.normalized_key), e.id))

    def tier(title: str) -> str | None:
        for e in ordered:
            if e.normalized_key == title:
                return e.normalized_key
        for e in ordered:
            if contains_words(title, e.normalized_key) or contains_words(e.normalized_key, title):
                return e.normalized_key
        return None

    return tier


# ---------------------------------------------------------------------------
# Matcher
# ---------------------------------------------------------------------------


def _resolve_by_name[E: CanonicalEntity](entities: Sequence[E], key: str) -> E | None:
    for e in entities:
        if e.normalized_key == key:
            return e
    for e in entities:
        if contains_words(e.normalized_key, key):
            return e
    return None


@dataclass(frozen=True, slots=True)
class CategoryMatcher[E: CanonicalEntity]:
    """Resolve titles to entities of one catalog through ordered tiers."""

    entities: tuple[E, ...]
    tiers: tuple[Tier, ...]
    resolve: Callable[[str], E | None]

    def match(self, title: str | None) -> E | None:
        key = canonical_title(title)
        if not key:
            return None
        for tier in self.tiers:
            candidate = tier(key)
            if candidate is None:
                continue
            entity = self.resolve(candidate)
            if entity is not None:
                return entity
        return None

    def by_id(self, entity_id: int | None) -> E | None:
        """Lookup used when a user picks an entity from a list."""

        if entity_id is None:
            return None
        for e in self.entities:
            if e.id == entity_id:
                return e
        return None


def area_matcher(catalogs: Catalogs) -> CategoryMatcher[Area]:
    areas = catalogs.areas
    return CategoryMatcher(
        entities=areas,
        tiers=(alias_tier(AREA_ALIASES), regex_tier(AREA_PATTERNS), substring_tier(areas)),
        resolve=lambda key: _resolve_by_name(areas, key),
    )


def account_matcher(catalogs: Catalogs) -> CategoryMatcher[RevenueAccount]:
    """Accounts are keyed by code in the alias and regex tiers, by name in the fallback."""

    accounts = catalogs.accounts

    def resolve(key: str) -> RevenueAccount | None:
        if key.isdigit():
            return catalogs.account_by_code(key)
        return _resolve_by_name(accounts, key)

    return CategoryMatcher(
        entities=accounts,
        tiers=(
            alias_tier(ACCOUNT_CODE_ALIASES),
            regex_tier(ACCOUNT_CODE_PATTERNS),
            substring_tier(accounts),
        ),
        resolve=resolve,
    )


def revenue_type_matcher(catalogs: Catalogs) -> CategoryMatcher[RevenueType]:
    types = catalogs.revenue_types

    def resolve(key: str) -> RevenueType | None:
        found = _resolve_by_name(types, key)
        if found is not None:
            return found
        # "deposito" in the type name still satisfies the "depositos" key
        stem = key.rstrip("s")
        for t in types:
            if any(word.rstrip("s") == stem for word in t.normalized_key.split(" ")):
                return t
        return None

    return CategoryMatcher(
        entities=types,
        tiers=(
            alias_tier(REVENUE_TYPE_ALIASES),
            regex_tier(REVENUE_TYPE_PATTERNS),
            substring_tier(types),
        ),
        resolve=resolve,
    )


def bank_matcher(catalogs: Catalogs) -> CategoryMatcher[Bank]:
    banks = catalogs.banks
    return CategoryMatcher(
        entities=banks,
        tiers=(alias_tier(BANK_ALIASES), regex_tier(BANK_PATTERNS), substring_tier(banks)),
        resolve=lambda key: _resolve_by_name(banks, key),
    )


_CODE_TIERS: tuple[Tier, ...] = (
    alias_tier(ACCOUNT_CODE_ALIASES),
    regex_tier(ACCOUNT_CODE_PATTERNS),
)


def revenue_code(title: str | None) -> str | None:
    """Return the account code a revenue title maps to, without consulting a catalog."""

    key = canonical_title(title)
    if not key:
        return None
    for tier in _CODE_TIERS:
        code = tier(key)
        if code is not None:
            return code
    return None


@dataclass(frozen=True, slots=True)
class Matchers:
    areas: CategoryMatcher[Area]
    accounts: CategoryMatcher[RevenueAccount]
    revenue_types: CategoryMatcher[RevenueType]
    banks: CategoryMatcher[Bank]


def build_matchers(catalogs: Catalogs) -> Matchers:
    return Matchers(
        areas=area_matcher(catalogs),
        accounts=account_matcher(catalogs),
        revenue_types=revenue_type_matcher(catalogs),
        banks=bank_matcher(catalogs),
    )


__all__ = [
    "CODE_TITLES",
    "CODE_DEPOSITS",
    "CODE_OTHER",
    "Tier",
    "alias_tier",
    "regex_tier",
    "substring_tier",
    "CategoryMatcher",
    "area_matcher",
    "account_matcher",
    "revenue_type_matcher",
    "bank_matcher",
    "revenue_code",
    "Matchers",
    "build_matchers",
]
