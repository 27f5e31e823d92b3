# -*- coding: utf-8 -*-
"""Parse shipment tracking associations from either supported source shape.

Two shapes carry the same meaning (which tracking numbers belong to which
branch):

1. Legacy tracking sheet (CSV): one row per branch, column B = POP tracking
   value(s), column C = Equipment tracking value(s). A cell may hold several
   numbers separated by commas or newlines.
2. Structured orders feed (JSON from the script endpoint): order records
   with embedded items; a blank or "-" tracking number means PENDING.

Both are exposed through StockSource so reconciliation never needs to know
which one is configured.

Module: pop_receipts
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from src.modules.pop_receipts.branch_resolver import (
    has_equipment_suffix,
    normalize_branch_key,
    resolve_canonical_branch,
)
from src.modules.pop_receipts.csv_tokenizer import cell, tokenize_csv
from src.modules.pop_receipts.errors import ParseError
from src.modules.pop_receipts.models import (
    EQUIPMENT_CATEGORY,
    PENDING,
    DroppedRecord,
    InventoryLineItem,
    OrderRecord,
    TrackingAssociation,
    TrackingKind,
)
from src.pipeline.validation import validate_frame
from src.utils.data_cleaning import clean_cell, slugify_id, split_multi_value

logger = logging.getLogger(__name__)

ALL_TRACKINGS = "ALL"
DEFAULT_ORDER_CATEGORY = "POP"

POP_COLUMN = 1
EQUIPMENT_COLUMN = 2

_TRACKING_PLACEHOLDERS = {"", "-"}


@dataclass(frozen=True)
class TrackingParseResult:
    """Associations read from the tracking sheet plus dropped rows."""

    associations: Tuple[TrackingAssociation, ...] = field(default_factory=tuple)
    dropped: Tuple[DroppedRecord, ...] = field(default_factory=tuple)


# =============================================================================
# Legacy tracking sheet
# =============================================================================


def parse_tracking_sheet(csv_text: str, branches: Iterable[str]) -> TrackingParseResult:
    """Parse the per-branch tracking sheet.

    Args:
        csv_text: CSV export text; the first row is a header.
        branches: Ground-truth branch labels.

    Returns:
        TrackingParseResult. Rows whose branch cannot be resolved are
        dropped; "-", "0" and blank cells produce no association.
    """
    rows = tokenize_csv(csv_text)
    branches = frozenset(branches)

    associations: List[TrackingAssociation] = []
    dropped: List[DroppedRecord] = []

    for row_idx in range(1, len(rows)):
        row = rows[row_idx]
        raw_branch = clean_cell(cell(row, 0))
        if not raw_branch:
            continue

        branch = resolve_canonical_branch(raw_branch, branches)
        if branch is None:
            dropped.append(
                DroppedRecord(
                    source="tracking",
                    row_index=row_idx,
                    raw_value=raw_branch,
                    reason="unresolved branch",
                )
            )
            continue

        branch_key = normalize_branch_key(branch)
        for column, kind in ((POP_COLUMN, TrackingKind.POP), (EQUIPMENT_COLUMN, TrackingKind.EQUIPMENT)):
            for number in split_multi_value(cell(row, column)):
                associations.append(
                    TrackingAssociation(
                        tracking_number=number,
                        kind=kind,
                        branch_key=branch_key,
                        branch=branch,
                    )
                )

    if dropped:
        logger.warning(f"tracking: dropped {len(dropped)} rows with unknown branches")
    logger.info(f"tracking: parsed {len(associations)} tracking associations")

    return TrackingParseResult(associations=tuple(associations), dropped=tuple(dropped))


# =============================================================================
# Structured orders feed
# =============================================================================


def normalize_tracking(value: Any) -> str:
    """Map a missing or placeholder tracking number to PENDING.

    Example:
        >>> normalize_tracking("-")
        'PENDING'
        >>> normalize_tracking(" TH123 ")
        'TH123'
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return PENDING
    text = str(value).strip()
    if text in _TRACKING_PLACEHOLDERS:
        return PENDING
    return text


def line_item_kind(item: InventoryLineItem) -> TrackingKind:
    """Equipment for equipment-category lines, POP otherwise."""
    if item.category == EQUIPMENT_CATEGORY:
        return TrackingKind.EQUIPMENT
    return TrackingKind.POP


def _text(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value).strip()


def _line_item(row: Dict[str, Any], order_no: str, tracking: str) -> Optional[InventoryLineItem]:
    qty = row.get("qty")
    if qty is None or pd.isna(qty) or int(qty) <= 0:
        return None

    branch = _text(row.get("branch"))
    item = _text(row.get("item"))
    category = _text(row.get("category"))
    if has_equipment_suffix(branch):
        category = EQUIPMENT_CATEGORY
    elif not category:
        category = DEFAULT_ORDER_CATEGORY

    branch_key = normalize_branch_key(branch)
    id_parts = [order_no, branch_key, item]
    if category == EQUIPMENT_CATEGORY:
        id_parts.insert(1, "EQ")

    return InventoryLineItem(
        id=slugify_id(*id_parts),
        branch_key=branch_key,
        raw_branch_name=branch,
        category=category,
        item=item,
        quantity=int(qty),
        order_no=order_no,
        tracking_number=tracking,
    )


def _require_mappings(records: Sequence[Any], label: str) -> None:
    for idx, record in enumerate(records):
        if not isinstance(record, dict):
            raise ParseError(f"{label}: record {idx} is {type(record).__name__}, expected an object")


def _orders_from_frame(df: pd.DataFrame, group_cols: List[str], date_col: str) -> List[OrderRecord]:
    orders: List[OrderRecord] = []
    for _, group in df.groupby(group_cols, sort=False, dropna=False):
        first = group.iloc[0]
        order_no = _text(first.get("orderNo"))
        tracking = normalize_tracking(first.get("trackingNo"))
        items = [
            line
            for line in (_line_item(row, order_no, tracking) for row in group.to_dict("records"))
            if line is not None
        ]
        orders.append(
            OrderRecord(
                order_no=order_no,
                order_date=_text(first.get(date_col)),
                tracking_number=tracking,
                items=tuple(items),
            )
        )
    return orders


def parse_orders_feed(records: Sequence[Dict[str, Any]]) -> List[OrderRecord]:
    """Parse getOrders records into OrderRecords.

    Each record is {orderNo, orderDate, trackingNo, items: [{branch, item,
    qty, category?}]}. Items are flattened with pandas and schema-checked
    before any record is built.

    Args:
        records: Decoded JSON array from the script endpoint.

    Returns:
        One OrderRecord per input record with at least one item row.

    Raises:
        ParseError: If a record or item is not an object, or the flattened
            items fail schema validation.
    """
    if not records:
        logger.warning("orders: feed returned no records")
        return []

    _require_mappings(records, "orders")
    for record in records:
        items = record.get("items") or []
        if not isinstance(items, list):
            raise ParseError(f"orders: items of {record.get('orderNo')} is not a list")
        _require_mappings(items, "orders items")

    indexed = [
        {**record, "_order_idx": idx, "items": record.get("items") or []}
        for idx, record in enumerate(records)
    ]
    df = pd.json_normalize(
        indexed,
        record_path="items",
        meta=["_order_idx", "orderNo", "orderDate", "trackingNo"],
        errors="ignore",
    )
    if "qty" in df.columns:
        df["qty"] = pd.to_numeric(df["qty"], errors="coerce")

    if not validate_frame(df, "orders"):
        raise ParseError("Orders feed failed schema validation")

    orders = _orders_from_frame(df, ["_order_idx"], "orderDate")
    logger.info(f"orders: parsed {len(orders)} orders, {len(df)} item rows")
    return orders


def orders_from_shipment_rows(rows: Sequence[Dict[str, Any]]) -> List[OrderRecord]:
    """Build OrderRecords from flat getShipmentItems rows.

    Rows are {orderNo, branch, trackingNo, item, qty, createdAt}; one order
    per (orderNo, branch) since POP and "(Equipment)" lines of the same
    order carry their own tracking number.

    Raises:
        ParseError: If a row is not an object or the rows fail schema
            validation.
    """
    if not rows:
        logger.warning("shipment_items: feed returned no rows")
        return []

    _require_mappings(rows, "shipment_items")
    df = pd.DataFrame(list(rows))
    if "qty" in df.columns:
        df["qty"] = pd.to_numeric(df["qty"], errors="coerce").fillna(0)

    if not validate_frame(df, "shipment_items"):
        raise ParseError("Shipment items feed failed schema validation")

    date_col = "createdAt" if "createdAt" in df.columns else "orderDate"
    orders = _orders_from_frame(df, ["orderNo", "branch"], date_col)
    logger.info(f"shipment_items: built {len(orders)} orders from {len(df)} rows")
    return orders


def associations_from_orders(orders: Iterable[OrderRecord]) -> List[TrackingAssociation]:
    """Derive one association per distinct (tracking, kind, branch)."""
    seen = set()
    associations: List[TrackingAssociation] = []
    for order in orders:
        for item in order.items:
            kind = line_item_kind(item)
            key = (order.tracking_number, kind, item.branch_key)
            if key in seen:
                continue
            seen.add(key)
            associations.append(
                TrackingAssociation(
                    tracking_number=order.tracking_number,
                    kind=kind,
                    branch_key=item.branch_key,
                    branch=item.raw_branch_name,
                )
            )
    return associations


# =============================================================================
# StockSource
# =============================================================================


class StockSource(ABC):
    """Where tracking associations (and optionally line items) come from."""

    @abstractmethod
    def list_associations(self) -> List[TrackingAssociation]:
        """Every known (tracking, kind, branch) association."""

    def list_line_items(self) -> List[InventoryLineItem]:
        """Line items carried by the source itself. None for the legacy sheet."""
        return []

    @property
    def dropped(self) -> Tuple[DroppedRecord, ...]:
        return ()


class TrackingSheetSource(StockSource):
    """Associations from the legacy per-branch tracking sheet."""

    def __init__(self, csv_text: str, branches: Iterable[str]):
        self._result = parse_tracking_sheet(csv_text, branches)

    def list_associations(self) -> List[TrackingAssociation]:
        return list(self._result.associations)

    @property
    def dropped(self) -> Tuple[DroppedRecord, ...]:
        return self._result.dropped


class OrdersFeedSource(StockSource):
    """Associations and line items from the structured orders feed."""

    def __init__(self, orders: Iterable[OrderRecord]):
        self.orders: List[OrderRecord] = list(orders)

    @classmethod
    def from_records(cls, records: Sequence[Dict[str, Any]]) -> "OrdersFeedSource":
        return cls(parse_orders_feed(records))

    @classmethod
    def from_shipment_rows(cls, rows: Sequence[Dict[str, Any]]) -> "OrdersFeedSource":
        return cls(orders_from_shipment_rows(rows))

    def list_associations(self) -> List[TrackingAssociation]:
        return associations_from_orders(self.orders)

    def list_line_items(self) -> List[InventoryLineItem]:
        return [item for order in self.orders for item in order.items]


# =============================================================================
# Grouping and lookup
# =============================================================================


def group_by_tracking(entries: Iterable[Any]) -> Dict[str, List[Any]]:
    """Bucket associations or orders by tracking number.

    Buckets are sorted by tracking number with PENDING last.

    Args:
        entries: Objects with a tracking_number attribute.

    Returns:
        Ordered dict of tracking number -> entries in input order.
    """
    buckets: Dict[str, List[Any]] = {}
    for entry in entries:
        buckets.setdefault(entry.tracking_number, []).append(entry)
    return {key: buckets[key] for key in sorted(buckets, key=lambda t: (t == PENDING, t))}


def find_orders(
    orders: Iterable[OrderRecord],
    branch_key: str,
    kind: TrackingKind,
    tracking: str = ALL_TRACKINGS,
) -> List[OrderRecord]:
    """Query orders by (branch, kind, tracking).

    Orders sharing a tracking number (PENDING included) stay separate
    listings; their quantities are not merged.

    Args:
        orders: Parsed orders.
        branch_key: Normalized branch key.
        kind: POP or Equipment.
        tracking: Tracking number, PENDING, or ALL for every bucket.

    Returns:
        Matching orders, each narrowed to the items of that branch and kind.
    """
    matches: List[OrderRecord] = []
    for order in orders:
        if tracking != ALL_TRACKINGS and order.tracking_number != tracking:
            continue
        items = tuple(
            item
            for item in order.items
            if item.branch_key == branch_key and line_item_kind(item) == kind
        )
        if items:
            matches.append(replace(order, items=items))
    return matches
