# -*- coding: utf-8 -*-
"""Parse "branch-as-column" manifest tabs (RE-Brand, RE-System, Special-POP).

This module:
1. Tokenizes the CSV export (quote-aware)
2. Finds the header row by looking for a known anchor branch name
3. Treats every non-administrative header column as a branch column
4. Emits one line item per (item row, branch column) with quantity > 0

The header row is the authority for branch identity: its labels are
returned as the ground-truth branch set for the whole load cycle.

Raw source: matrix tabs of the POP manifest spreadsheet
Module: pop_receipts
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from src.modules.pop_receipts.branch_resolver import normalize_branch_key
from src.modules.pop_receipts.csv_tokenizer import cell, tokenize_csv
from src.modules.pop_receipts.models import InventoryLineItem
from src.utils.data_cleaning import clean_cell, parse_quantity, slugify_id

logger = logging.getLogger(__name__)

DEFAULT_ANCHOR_BRANCHES = ("Head Office", "Central World", "Siam Paragon")
DEFAULT_EXCLUDED_MARKERS = ("Total", "Tracking", "List", "No.", "Item", "Unit")
ITEM_COLUMN_MARKERS = ("item", "list")


@dataclass(frozen=True)
class MatrixParseResult:
    """Items and branch labels read from one matrix tab."""

    items: Tuple[InventoryLineItem, ...] = field(default_factory=tuple)
    branches: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not self.items and not self.branches


def find_header_row(rows: Sequence[List[str]], anchors: Iterable[str]) -> Optional[int]:
    """Find the first row containing any anchor branch name.

    Args:
        rows: Tokenized CSV rows.
        anchors: Branch names known to appear in the header.

    Returns:
        Row index, or None if no row contains an anchor.
    """
    anchors = list(anchors)
    for idx, row in enumerate(rows):
        if any(anchor in value for value in row for anchor in anchors):
            return idx
    return None


def is_branch_label(label: str, excluded: Iterable[str]) -> bool:
    """Check whether a header label names a branch column."""
    if not label:
        return False
    return not any(marker in label for marker in excluded)


def find_item_column(header: List[str], branch_columns: Dict[int, str]) -> int:
    """Pick the column holding item names.

    Preference: a column labelled Item/List, then the first non-branch
    column, then column 0. Quantities are never read from the chosen
    column, but its header label stays in the branch set.
    """
    for idx, value in enumerate(header):
        label = clean_cell(value).casefold()
        if any(marker in label for marker in ITEM_COLUMN_MARKERS):
            return idx
    for idx in range(len(header)):
        if idx not in branch_columns:
            return idx
    return 0


def _is_skipped_item(name: str) -> bool:
    return not name or name.startswith("Total") or "tracking" in name.casefold()


def parse_matrix(
    csv_text: str,
    category: str,
    anchors: Iterable[str] = DEFAULT_ANCHOR_BRANCHES,
    excluded: Iterable[str] = DEFAULT_EXCLUDED_MARKERS,
) -> MatrixParseResult:
    """Parse one matrix tab into line items and branch labels.

    Args:
        csv_text: CSV export text.
        category: Category label stamped on every item (e.g. "RE-Brand").
        anchors: Branch names used to locate the header row.
        excluded: Header markers of administrative (non-branch) columns.

    Returns:
        MatrixParseResult. Empty when no header row is found.
    """
    rows = tokenize_csv(csv_text)
    excluded = tuple(excluded)

    header_idx = find_header_row(rows, anchors)
    if header_idx is None:
        logger.warning(f"{category}: no header row with an anchor branch found")
        return MatrixParseResult()

    header = rows[header_idx]
    header_branches: Dict[int, str] = {}
    for idx, value in enumerate(header):
        label = clean_cell(value)
        if is_branch_label(label, excluded):
            header_branches[idx] = label

    item_col = find_item_column(header, header_branches)
    branch_columns = {idx: label for idx, label in header_branches.items() if idx != item_col}
    logger.debug(
        f"{category}: header at row {header_idx + 1}, "
        f"{len(branch_columns)} branch columns, item column {item_col}"
    )

    items: List[InventoryLineItem] = []
    for row in rows[header_idx + 1 :]:
        item_name = clean_cell(cell(row, item_col))
        if _is_skipped_item(item_name):
            continue

        for idx, branch in branch_columns.items():
            qty = parse_quantity(cell(row, idx))
            if qty is None or qty <= 0:
                continue
            items.append(
                InventoryLineItem(
                    id=slugify_id(branch, item_name),
                    branch_key=normalize_branch_key(branch),
                    raw_branch_name=branch,
                    category=category,
                    item=item_name,
                    quantity=qty,
                )
            )

    logger.info(f"{category}: parsed {len(items)} items across {len(branch_columns)} branches")
    return MatrixParseResult(items=tuple(items), branches=frozenset(header_branches.values()))


def merge_branch_sets(results: Iterable[MatrixParseResult]) -> FrozenSet[str]:
    """Union the branch labels of several matrix results."""
    branches: set = set()
    for result in results:
        branches |= result.branches
    return frozenset(branches)
