"""Association checks for imported lines.

The checks are pure: they read a line and return human-readable messages.
Callers decide what a non-empty list means (unselect at parse time, refuse a
selection toggle, skip at commit).
"""

from __future__ import annotations

from collections.abc import Iterable

from .amounts import ZERO
from .models import ImportedLine, LineKind

MISSING_AREA = "Expense line has no area"
MISSING_ACCOUNT = "Revenue line has no revenue account"
MISSING_REVENUE_TYPE = "Revenue line has no revenue type"
OPENING_BALANCE_EXTRA_VALUES = "Opening balance only accepts a value on the first day"


def required_association_errors(line: ImportedLine) -> list[str]:
    """Run every check for ``line`` regardless of its selection."""

    errors: list[str] = []
    if line.kind is LineKind.EXPENSE:
        if line.area_id is None:
            errors.append(MISSING_AREA)
    elif line.kind is LineKind.REVENUE:
        if line.account_id is None:
            errors.append(MISSING_ACCOUNT)
        if line.revenue_type_id is None:
            errors.append(MISSING_REVENUE_TYPE)
    elif line.kind is LineKind.OPENING_BALANCE:
        if any(v.amount != ZERO for v in line.values[1:]):
            errors.append(OPENING_BALANCE_EXTRA_VALUES)
    return errors


def validate_line(line: ImportedLine) -> list[str]:
    """Errors that block ``line`` from being committed; unselected lines have none."""

    if not line.selected:
        return []
    return required_association_errors(line)


def invalid_selected_lines(lines: Iterable[ImportedLine]) -> list[tuple[ImportedLine, list[str]]]:
    """Selected lines that fail validation, paired with their errors."""

    out: list[tuple[ImportedLine, list[str]]] = []
    for line in lines:
        errors = validate_line(line)
        if errors:
            out.append((line, errors))
    return out


__all__ = [
    "MISSING_AREA",
    "MISSING_ACCOUNT",
    "MISSING_REVENUE_TYPE",
    "OPENING_BALANCE_EXTRA_VALUES",
    "required_association_errors",
    "validate_line",
    "invalid_selected_lines",
]
