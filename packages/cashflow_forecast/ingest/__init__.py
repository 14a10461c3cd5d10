"""Spreadsheet file loaders producing raw grids, and the history sheet parser."""

from .history import HistoryParse, parse_history
from .workbook import load_grid

__all__ = ["load_grid", "parse_history", "HistoryParse"]
