"""Locale-tolerant amount parsing for spreadsheet cells.

Cells arrive either as numbers (already typed by the spreadsheet reader) or as
free text typed by people who mix Brazilian (``1.234,56``) and US
(``1,234.56``) conventions, sometimes in the same sheet. The decimal separator
is resolved per value:

- comma and dot both present: the rightmost one is the decimal separator and
  the other one is a thousands separator;
- only one of them present: it is a decimal separator only when its rightmost
  occurrence is followed by one or two digits (``1,5``, ``12.50``); otherwise
  every occurrence is a thousands separator (``1.234``, ``1.234.567``);
- neither present: the digit run is the integer part.

All results are quantized to cents with ``ROUND_HALF_UP``.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0.00")
_CENTS = Decimal("0.01")

_CURRENCY_RE = re.compile(r"R\$|US\$|[$€£]|\s")
_BODY_RE = re.compile(r"[0-9.,]*[0-9][0-9.,]*")
_SEPARATORS_RE = re.compile(r"[.,]")
_MINUS_VARIANTS = str.maketrans(
    {
        "−": "-",  # minus sign
        "‒": "-",  # figure dash
        "–": "-",  # en dash
        "—": "-",  # em dash
        "﹣": "-",  # small hyphen-minus
        "－": "-",  # fullwidth hyphen-minus
    }
)


def _quantize(d: Decimal) -> Decimal:
    return d.quantize(_CENTS, rounding=ROUND_HALF_UP)


def _to_cents(d: Decimal) -> Decimal | None:
    # Values too wide for the context precision at two decimals cannot be cents.
    try:
        return _quantize(d)
    except InvalidOperation:
        return None


def _strip_markers(text: str) -> tuple[str | None, bool]:
    """Return ``(digit_body, negative)`` with currency, spaces and signs removed."""

    s = _CURRENCY_RE.sub("", text.translate(_MINUS_VARIANTS))
    negative = False
    while s:
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1]
            continue
        if s[0] in "+-":
            negative = negative or s[0] == "-"
            s = s[1:]
            continue
        break
    # Some ledger exports put the sign at the end ("200-").
    if s.endswith("-"):
        negative = True
        s = s[:-1]
    if not s or not _BODY_RE.fullmatch(s):
        return None, negative
    return s, negative


def _decimal_separator_index(body: str) -> int:
    comma = body.rfind(",")
    dot = body.rfind(".")
    if comma < 0 and dot < 0:
        return -1
    idx = max(comma, dot)
    if comma >= 0 and dot >= 0:
        return idx
    tail = body[idx + 1 :]
    if 1 <= len(tail) <= 2 and tail.isdigit():
        return idx
    return -1


def _body_to_decimal(body: str) -> Decimal | None:
    idx = _decimal_separator_index(body)
    if idx < 0:
        integer, fraction = _SEPARATORS_RE.sub("", body), ""
    else:
        integer = _SEPARATORS_RE.sub("", body[:idx])
        fraction = body[idx + 1 :]
    if not integer and not fraction:
        return None
    try:
        return Decimal(f"{integer or '0'}.{fraction or '0'}")
    except InvalidOperation:
        return None


def parse_amount(raw: Any, default: Decimal | None = ZERO) -> Decimal | None:
    """Parse a cell value into a signed ``Decimal`` with two fractional digits.

    Empty, boolean, non-finite, too wide to hold in cents or otherwise
    unparsable input returns ``default``. Callers summing values keep the zero default; callers that
    must tell "blank" from "0" pass ``default=None``.
    """

    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, Decimal):
        value = _to_cents(raw) if raw.is_finite() else None
    elif isinstance(raw, int):
        value = _to_cents(Decimal(raw))
    elif isinstance(raw, float):
        # str() keeps the shortest repr and avoids binary noise (0.1 -> 0.1000..5)
        value = _to_cents(Decimal(str(raw))) if math.isfinite(raw) else None
    else:
        body, negative = _strip_markers(str(raw))
        parsed = _body_to_decimal(body) if body is not None else None
        value = _to_cents(parsed) if parsed is not None else None
        if value is not None and negative and value:
            value = -value
    return default if value is None else value


def format_amount(value: Decimal) -> str:
    """Render ``value`` the way Brazilian reports print it (``-1.234,56``)."""

    q = _quantize(value)
    us = f"{q:,.2f}"
    return us.translate(str.maketrans({",": ".", ".": ","}))


__all__ = ["ZERO", "parse_amount", "format_amount"]
