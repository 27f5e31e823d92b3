# -*- coding: utf-8 -*-
"""Join parsed feeds into one inventory and build the operator's view.

The Inventory holds everything one load cycle produced: line items from
every manifest tab (and from the orders feed when it carries its own
items), the ground-truth branch labels, tracking associations and the rows
dropped along the way. The view builder filters it down to one branch,
optionally narrowed by category, tracking number and an item search.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Sequence, Tuple

import pandas as pd

from src.modules.pop_receipts.branch_resolver import normalize_branch_key
from src.modules.pop_receipts.models import (
    ALL_CATEGORIES,
    DroppedRecord,
    InventoryLineItem,
    OrderRecord,
    TrackingAssociation,
)
from src.modules.pop_receipts.parse_tracking import ALL_TRACKINGS

logger = logging.getLogger(__name__)

DEFAULT_ITEMS_PER_PAGE = 50
HIDDEN_BRANCH_MARKERS = ("Total", "POP")


@dataclass(frozen=True)
class Inventory:
    """Result of one load cycle. Replaced wholesale on re-ingest."""

    items: Tuple[InventoryLineItem, ...] = field(default_factory=tuple)
    branches: FrozenSet[str] = field(default_factory=frozenset)
    associations: Tuple[TrackingAssociation, ...] = field(default_factory=tuple)
    orders: Tuple[OrderRecord, ...] = field(default_factory=tuple)
    dropped: Tuple[DroppedRecord, ...] = field(default_factory=tuple)


def display_branches(branches: Sequence[str]) -> List[str]:
    """Branch labels offered for selection.

    Sorted; labels of two characters or fewer and summary columns
    (containing "Total" or "POP") are hidden.
    """
    return sorted(
        b
        for b in set(branches)
        if len(b) > 2 and not any(marker in b for marker in HIDDEN_BRANCH_MARKERS)
    )


def trackings_for_branch(inventory: Inventory, branch: str) -> List[TrackingAssociation]:
    """Tracking associations of one branch, duplicates removed, in feed order."""
    key = normalize_branch_key(branch)
    seen = set()
    result: List[TrackingAssociation] = []
    for assoc in inventory.associations:
        if assoc.branch_key != key:
            continue
        marker = (assoc.tracking_number, assoc.kind)
        if marker in seen:
            continue
        seen.add(marker)
        result.append(assoc)
    return result


def build_view(
    inventory: Inventory,
    branch: Optional[str],
    category: str = ALL_CATEGORIES,
    tracking: Optional[str] = None,
    search: str = "",
) -> List[InventoryLineItem]:
    """Filter the inventory down to what the operator is checking.

    Args:
        inventory: Loaded inventory.
        branch: Selected branch label (any spelling); None gives an empty view.
        category: "all" or one category label.
        tracking: Selected tracking number. Only narrows items that carry a
            tracking number themselves (orders feed); ALL matches every one.
        search: Case-insensitive substring of the item name.

    Returns:
        Items in inventory order.
    """
    if not branch:
        return []

    key = normalize_branch_key(branch)
    view = [item for item in inventory.items if item.branch_key == key]

    if category and category != ALL_CATEGORIES:
        view = [item for item in view if item.category == category]

    if tracking and tracking != ALL_TRACKINGS:
        view = [
            item
            for item in view
            if item.tracking_number is None or item.tracking_number == tracking
        ]

    if search:
        needle = search.casefold()
        view = [item for item in view if needle in item.item.casefold()]

    return view


def total_pages(count: int, per_page: int = DEFAULT_ITEMS_PER_PAGE) -> int:
    """Number of pages for count items (0 for an empty view)."""
    if per_page <= 0:
        raise ValueError(f"per_page must be positive, got {per_page}")
    return math.ceil(count / per_page)


def paginate(
    items: Sequence[InventoryLineItem],
    page: int,
    per_page: int = DEFAULT_ITEMS_PER_PAGE,
) -> List[InventoryLineItem]:
    """Slice one 1-based page out of the view. Out-of-range pages are clamped."""
    pages = total_pages(len(items), per_page)
    if pages == 0:
        return []
    page = min(max(page, 1), pages)
    start = (page - 1) * per_page
    return list(items[start : start + per_page])


def summarize_inventory(items: Sequence[InventoryLineItem]) -> pd.DataFrame:
    """Per-branch, per-category line and quantity totals.

    Args:
        items: Line items to summarize.

    Returns:
        DataFrame with columns branch, category, lines, quantity.
    """
    columns = ["branch", "category", "lines", "quantity"]
    if not items:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(
        [
            {"branch": item.raw_branch_name, "category": item.category, "quantity": item.quantity}
            for item in items
        ]
    )
    summary = (
        df.groupby(["branch", "category"], sort=True)
        .agg(lines=("quantity", "size"), quantity=("quantity", "sum"))
        .reset_index()
    )
    return summary[columns]
