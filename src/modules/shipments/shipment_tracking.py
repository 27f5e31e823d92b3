# -*- coding: utf-8 -*-
"""Admin view over shipment items: browse by branch and fix tracking numbers.

getShipmentItems returns one row per (order, branch, item). Equipment rows
carry the branch label with an " (Equipment)" suffix; POP rows use the bare
branch label. The admin picks a base branch and a type, then a tracking
bucket (or ALL), and can assign a tracking number to an order.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Sequence

from src.modules.pop_receipts.branch_resolver import EQUIPMENT_SUFFIX
from src.modules.pop_receipts.errors import ValidationError
from src.modules.pop_receipts.models import PENDING, TrackingKind
from src.modules.pop_receipts.parse_tracking import ALL_TRACKINGS, normalize_tracking

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShipmentItem:
    order_no: str
    branch: str
    tracking_number: str
    item: str
    qty: int
    branch_key: str = ""
    created_at: str = ""

    @property
    def tracking_bucket(self) -> str:
        return normalize_tracking(self.tracking_number)

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "ShipmentItem":
        def text(key: str) -> str:
            value = row.get(key)
            return "" if value is None else str(value).strip()

        try:
            qty = int(float(row.get("qty") or 0))
        except (TypeError, ValueError):
            qty = 0
        return cls(
            order_no=text("orderNo"),
            branch=text("branch"),
            tracking_number=text("trackingNo"),
            item=text("item"),
            qty=qty,
            branch_key=text("branchKey"),
            created_at=text("createdAt"),
        )


def base_branch_name(branch: str) -> str:
    """Strip the " (Equipment)" suffix from a ledger branch label."""
    return branch.replace(f" {EQUIPMENT_SUFFIX}", "").strip()


def ledger_branch_name(base_branch: str, kind: TrackingKind) -> str:
    """Label used by the ledger for a base branch and type."""
    if kind is TrackingKind.EQUIPMENT:
        return f"{base_branch} {EQUIPMENT_SUFFIX}"
    return base_branch


def load_shipment_items(client) -> List[ShipmentItem]:
    """Fetch getShipmentItems; a non-list answer counts as no items.

    Raises:
        TransportError: If the query fails.
    """
    data = client.query("getShipmentItems")
    if not isinstance(data, list):
        logger.warning(f"getShipmentItems returned {type(data).__name__}, treating as empty")
        return []
    return [ShipmentItem.from_dict(row) for row in data if isinstance(row, dict)]


def available_branches(items: Sequence[ShipmentItem]) -> List[str]:
    """Sorted base branch names."""
    return sorted({base_branch_name(i.branch) for i in items})


def available_trackings(items: Sequence[ShipmentItem], base_branch: str, kind: TrackingKind) -> List[str]:
    """Tracking buckets for one branch and type, PENDING last."""
    target = ledger_branch_name(base_branch, kind)
    buckets = {i.tracking_bucket for i in items if i.branch == target}
    return sorted(buckets, key=lambda t: (t == PENDING, t))


def filter_items(
    items: Sequence[ShipmentItem],
    base_branch: str,
    kind: TrackingKind,
    tracking: str,
) -> List[ShipmentItem]:
    """Items for branch + type in one tracking bucket (or ALL).

    Nothing is returned until both a branch and a tracking are chosen.
    """
    if not base_branch or not tracking:
        return []
    target = ledger_branch_name(base_branch, kind)
    return [
        i
        for i in items
        if i.branch == target and (tracking == ALL_TRACKINGS or i.tracking_bucket == tracking)
    ]


def update_tracking(
    client,
    items: Sequence[ShipmentItem],
    order_no: str,
    branch: str,
    tracking_number: str,
) -> List[ShipmentItem]:
    """Assign a tracking number to one order and update the local list.

    Args:
        client: ScriptClient.
        items: Current item list.
        order_no: Order to update.
        branch: Full ledger branch label (with the Equipment suffix if any).
        tracking_number: New tracking number.

    Returns:
        New item list with the matching rows updated.

    Raises:
        ValidationError: If tracking_number is blank.
        TransportError: If the update could not be sent; items unchanged.
    """
    tracking_number = (tracking_number or "").strip()
    if not tracking_number:
        raise ValidationError("Please enter a tracking number")

    client.post(
        "updateTracking",
        {"orderNo": order_no, "branch": branch, "trackingNo": tracking_number},
    )
    logger.info(f"Updated tracking for order {order_no} ({branch}) to {tracking_number}")

    return [
        replace(i, tracking_number=tracking_number)
        if i.order_no == order_no and i.branch == branch
        else i
        for i in items
    ]
