"""Text normalization for spreadsheet titles and catalog names.

``normalize_text`` is the single folding rule used everywhere a free-text label
is compared: accents are stripped, case is folded, anything outside
``[a-z0-9 ]`` becomes a space and whitespace is collapsed. ``canonical_title``
additionally repairs a few titles that show up misspelled in real sheets, so
lookups downstream only ever see the corrected form.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any

_NON_ALNUM_RE = re.compile(r"[^a-z0-9 ]+")
_SPACES_RE = re.compile(r"\s+")

# Whole-title corrections, keyed by the normalized (misspelled) form.
TITLE_ALIASES: dict[str, str] = {
    "com materail e consumo": "material e consumo",
    "materail e consumo": "material e consumo",
    "gasto com materail e consumo": "gasto com material e consumo",
    "financeiro fiscal": "financeiro e fiscal",
    "loja fabrica": "loja de fabrica",
    "deposito epix": "deposito e pix",
}

# Single-word spelling fixes applied after the phrase table.
WORD_ALIASES: dict[str, str] = {
    "materail": "material",
    "logisitca": "logistica",
    "logistca": "logistica",
    "comerical": "comercial",
    "boletso": "boletos",
    "depostio": "deposito",
    "depositio": "deposito",
}


def normalize_text(value: Any) -> str:
    """Return the folded comparison form of ``value`` (``""`` for ``None``)."""

    if value is None:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(value))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    folded = _NON_ALNUM_RE.sub(" ", stripped.casefold())
    return _SPACES_RE.sub(" ", folded).strip()


def canonical_title(value: Any) -> str:
    """Normalize ``value`` and apply the alias corrections."""

    key = normalize_text(value)
    if key in TITLE_ALIASES:
        return TITLE_ALIASES[key]
    if not key:
        return key
    fixed = " ".join(WORD_ALIASES.get(word, word) for word in key.split(" "))
    return TITLE_ALIASES.get(fixed, fixed)


def contains_words(haystack: str, needle: str) -> bool:
    """Whole-word containment on normalized strings (``"ti"`` is not in ``"logistica"``)."""

    if not haystack or not needle:
        return False
    return f" {needle} " in f" {haystack} "


__all__ = [
    "TITLE_ALIASES",
    "WORD_ALIASES",
    "normalize_text",
    "canonical_title",
    "contains_words",
]
