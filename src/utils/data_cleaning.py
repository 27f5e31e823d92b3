# -*- coding: utf-8 -*-
"""Cell-level cleaning helpers shared by every spreadsheet parser.

Exported sheets carry quantities as "1,200", stray wrapping quotes and
placeholder cells ("-", "0", blank). These helpers give all parsers one
definition of each.
"""

import logging
import re
from typing import List, Optional

logger = logging.getLogger(__name__)

PLACEHOLDER_VALUES = {"", "-", "0"}

_LEADING_INT = re.compile(r"^[+-]?\d+")
_MULTI_VALUE_SPLIT = re.compile(r"[\n,]+")


def clean_cell(value: Optional[str]) -> str:
    """Trim a cell and drop one pair of wrapping double quotes.

    Args:
        value: Raw cell value (may be None for short rows).

    Returns:
        Cleaned string, empty for None.
    """
    if value is None:
        return ""
    value = str(value).strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1].strip()
    return value


def parse_quantity(value: Optional[str]) -> Optional[int]:
    """Parse a quantity cell to an integer.

    Handles:
    - Thousands separators: "1,200" -> 1200
    - Trailing junk after the digits: "5 pcs" -> 5, "3.0" -> 3
    - Blank or non-numeric cells -> None

    Args:
        value: Raw quantity cell.

    Returns:
        Parsed integer, or None if the cell holds no leading integer.
    """
    cleaned = clean_cell(value).replace(",", "")
    match = _LEADING_INT.match(cleaned)
    if not match:
        return None
    return int(match.group(0))


def is_placeholder(value: Optional[str]) -> bool:
    """Check whether a cell means "nothing here" ("-", "0" or blank)."""
    return clean_cell(value) in PLACEHOLDER_VALUES


def split_multi_value(cell: Optional[str]) -> List[str]:
    """Split a cell holding several values separated by commas or newlines.

    Placeholder pieces are dropped.

    Args:
        cell: Raw cell, e.g. "TH123, TH456\\nTH789".

    Returns:
        List of trimmed, non-placeholder values.
    """
    if is_placeholder(cell):
        return []
    pieces = [p.strip() for p in _MULTI_VALUE_SPLIT.split(clean_cell(cell))]
    return [p for p in pieces if p not in PLACEHOLDER_VALUES]


def slugify_id(*parts: str) -> str:
    """Join id parts with "_" and replace whitespace runs with "_".

    Args:
        parts: Id components, e.g. branch and item name.

    Returns:
        Stable id string such as "Siam_Paragon_Standee_A".
    """
    return re.sub(r"\s+", "_", "_".join(str(p) for p in parts))
