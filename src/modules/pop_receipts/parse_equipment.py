# -*- coding: utf-8 -*-
"""Parse the pivoted Equipment-Order sheet.

Sheet layout (positions are not fixed, hence the header scan):

    ,Shop,,Item group A,Item group B,...      <- header row, col B == "Shop"
    ,,,Quantity Fridge,Quantity Oven,Total    <- item sub-headers
    1,Siam Paragon,...,3,0,3                  <- data rows, col B = branch
    2,Siam Paragon,...,2,1,3

The same (branch, item) pair may appear on several shipment rows, so
quantities are summed per pair.

Raw source: Equipment-Order tab of the POP manifest spreadsheet
Module: pop_receipts
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from src.modules.pop_receipts.branch_resolver import normalize_branch_key
from src.modules.pop_receipts.csv_tokenizer import cell, tokenize_csv
from src.modules.pop_receipts.models import (
    EQUIPMENT_CATEGORY,
    DroppedRecord,
    InventoryLineItem,
)
from src.utils.data_cleaning import parse_quantity, slugify_id

logger = logging.getLogger(__name__)

HEADER_SENTINEL = "Shop"
HEADER_SCAN_LIMIT = 50
BRANCH_COLUMN = 1
FIRST_ITEM_COLUMN = 3

_QUANTITY_PREFIX = re.compile(r"^Quantity\s*", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class EquipmentParseResult:
    """Summed equipment lines plus rows whose branch could not be aligned."""

    items: Tuple[InventoryLineItem, ...] = field(default_factory=tuple)
    dropped: Tuple[DroppedRecord, ...] = field(default_factory=tuple)


def _squash(label: str) -> str:
    return _WHITESPACE.sub("", label).lower()


def align_branch(raw_branch: str, branches: Iterable[str]) -> Optional[str]:
    """Match a sheet branch cell against the ground-truth labels.

    Exact membership first, then a whitespace-stripped, case-insensitive
    comparison ("SiamParagon" == "Siam Paragon").

    Args:
        raw_branch: Trimmed branch cell.
        branches: Ground-truth labels from the matrix tabs.

    Returns:
        Canonical label, or None if unresolvable.
    """
    branches = list(branches)
    if raw_branch in branches:
        return raw_branch

    target = _squash(raw_branch)
    for known in branches:
        if _squash(known) == target:
            return known
    return None


def find_shop_header(rows: List[List[str]]) -> Optional[int]:
    """Find the header row whose second column reads "Shop"."""
    for idx, row in enumerate(rows[:HEADER_SCAN_LIMIT]):
        if cell(row, BRANCH_COLUMN) == HEADER_SENTINEL:
            return idx
    return None


def item_columns(sub_header: List[str]) -> Dict[int, str]:
    """Map column index to item name from the "Quantity <item>" row.

    Empty headers and any "total" column are skipped.
    """
    columns: Dict[int, str] = {}
    for idx in range(FIRST_ITEM_COLUMN, len(sub_header)):
        header = sub_header[idx].strip()
        if not header or "total" in header.lower():
            continue
        item = _QUANTITY_PREFIX.sub("", header).strip()
        if item:
            columns[idx] = item
    return columns


def parse_equipment(
    csv_text: str,
    branches: Iterable[str],
    category: str = EQUIPMENT_CATEGORY,
) -> EquipmentParseResult:
    """Parse the equipment pivot into summed line items.

    Args:
        csv_text: CSV export text (quoted, may contain multi-line cells).
        branches: Ground-truth branch labels.
        category: Category stamped on every item.

    Returns:
        EquipmentParseResult. Empty when the "Shop" header or the item
        sub-header row is missing.
    """
    rows = tokenize_csv(csv_text)
    branches = list(branches)

    header_idx = find_shop_header(rows)
    if header_idx is None:
        logger.warning(f"{category}: no '{HEADER_SENTINEL}' header in first {HEADER_SCAN_LIMIT} rows")
        return EquipmentParseResult()

    sub_header_idx = header_idx + 1
    if sub_header_idx >= len(rows):
        logger.warning(f"{category}: item sub-header row missing after row {header_idx + 1}")
        return EquipmentParseResult()

    columns = item_columns(rows[sub_header_idx])

    totals: Dict[Tuple[str, str], int] = {}
    dropped: List[DroppedRecord] = []

    for row_idx in range(sub_header_idx + 1, len(rows)):
        row = rows[row_idx]
        if len(row) < 2:
            continue

        raw_branch = cell(row, BRANCH_COLUMN)
        if not raw_branch:
            continue

        branch = align_branch(raw_branch, branches)
        if branch is None:
            dropped.append(
                DroppedRecord(
                    source=category,
                    row_index=row_idx,
                    raw_value=raw_branch,
                    reason="unresolved branch",
                )
            )
            continue

        for col, item in columns.items():
            qty = parse_quantity(cell(row, col))
            if qty is None or qty <= 0:
                continue
            key = (branch, item)
            totals[key] = totals.get(key, 0) + qty

    items = tuple(
        InventoryLineItem(
            id=slugify_id("EQ", normalize_branch_key(branch), item),
            branch_key=normalize_branch_key(branch),
            raw_branch_name=branch,
            category=category,
            item=item,
            quantity=qty,
        )
        for (branch, item), qty in totals.items()
    )

    if dropped:
        logger.warning(f"{category}: dropped {len(dropped)} rows with unknown branches")
    logger.info(f"{category}: parsed {len(items)} equipment lines")

    return EquipmentParseResult(items=items, dropped=tuple(dropped))
