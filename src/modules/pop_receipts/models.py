# -*- coding: utf-8 -*-
"""Domain records shared by parsers, reconciliation and submission.

Records are frozen: parsing creates them, re-ingest replaces them, nothing
mutates them in place.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

PENDING = "PENDING"

EQUIPMENT_CATEGORY = "Equipment-Order"
POP_CATEGORIES = ("RE-Brand", "RE-System", "Special-POP")
ALL_CATEGORIES = "all"


class TrackingKind(Enum):
    """Shipment kinds a tracking number can belong to."""

    POP = "POP"
    EQUIPMENT = "Equipment"


class LoadStatus(Enum):
    """Engine load lifecycle."""

    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class InventoryLineItem:
    """One expected (branch, item) line with a positive quantity."""

    id: str
    branch_key: str
    raw_branch_name: str
    category: str
    item: str
    quantity: int
    order_no: Optional[str] = None
    tracking_number: Optional[str] = None

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError(f"Line item {self.id} has non-positive quantity {self.quantity}")


@dataclass(frozen=True)
class TrackingAssociation:
    """Links a canonical branch to one shipment tracking number."""

    tracking_number: str
    kind: TrackingKind
    branch_key: str
    branch: str = ""

    @property
    def is_pending(self) -> bool:
        return self.tracking_number == PENDING


@dataclass(frozen=True)
class OrderRecord:
    """One order from the structured orders feed."""

    order_no: str
    order_date: str
    tracking_number: str
    items: Tuple[InventoryLineItem, ...] = field(default_factory=tuple)

    @property
    def is_pending(self) -> bool:
        return self.tracking_number == PENDING


@dataclass(frozen=True)
class DroppedRecord:
    """A source row discarded during parsing (kept for the audit trail)."""

    source: str
    row_index: int
    raw_value: str
    reason: str


@dataclass(frozen=True)
class ProgressStats:
    """Checked-vs-total counts for the current view."""

    count: int
    total: int
    percent: int
    is_complete: bool
