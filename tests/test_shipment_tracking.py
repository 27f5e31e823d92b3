# -*- coding: utf-8 -*-
"""Test the shipment items admin helpers."""

from unittest.mock import MagicMock

import pytest

from src.modules.pop_receipts.errors import TransportError, ValidationError
from src.modules.pop_receipts.models import PENDING, TrackingKind
from src.modules.shipments.shipment_tracking import (
    ShipmentItem,
    available_branches,
    available_trackings,
    base_branch_name,
    filter_items,
    ledger_branch_name,
    load_shipment_items,
    update_tracking,
)

ROWS = [
    {"orderNo": "S1", "branch": "Siam Paragon", "trackingNo": "", "item": "Standee", "qty": 2},
    {"orderNo": "S1", "branch": "Siam Paragon (Equipment)", "trackingNo": "EQ77", "item": "Fridge", "qty": "1"},
    {"orderNo": "S2", "branch": "Siam Paragon", "trackingNo": "TH9", "item": "Poster", "qty": 3},
    {"orderNo": "S3", "branch": "Central World", "trackingNo": "-", "item": "Flag", "qty": None},
]


@pytest.fixture
def items():
    return [ShipmentItem.from_dict(row) for row in ROWS]


class TestShipmentItem:
    """Test ShipmentItem parsing."""

    def test_from_dict(self, items):
        """Test field mapping and quantity coercion."""
        assert items[1].qty == 1
        assert items[3].qty == 0
        assert items[0].order_no == "S1"

    def test_tracking_bucket(self, items):
        """Test that blank and "-" tracking numbers fall into PENDING."""
        assert [i.tracking_bucket for i in items] == [PENDING, "EQ77", "TH9", PENDING]


class TestBranchNames:
    """Test ledger branch label helpers."""

    def test_base_branch_name(self):
        """Test stripping of the equipment suffix."""
        assert base_branch_name("Siam Paragon (Equipment)") == "Siam Paragon"
        assert base_branch_name("Siam Paragon") == "Siam Paragon"

    def test_ledger_branch_name(self):
        """Test the ledger label per type."""
        assert ledger_branch_name("Siam Paragon", TrackingKind.EQUIPMENT) == "Siam Paragon (Equipment)"
        assert ledger_branch_name("Siam Paragon", TrackingKind.POP) == "Siam Paragon"


class TestBrowsing:
    """Test branch, tracking and item selection."""

    def test_load_shipment_items(self):
        """Test the getShipmentItems query."""
        client = MagicMock()
        client.query.return_value = ROWS + ["junk"]
        assert len(load_shipment_items(client)) == 4
        client.query.assert_called_once_with("getShipmentItems")

    def test_load_non_list(self):
        """Test that an unexpected payload gives no items."""
        client = MagicMock()
        client.query.return_value = {"error": "x"}
        assert load_shipment_items(client) == []

    def test_available_branches(self, items):
        """Test sorted, de-suffixed branch names."""
        assert available_branches(items) == ["Central World", "Siam Paragon"]

    def test_available_trackings(self, items):
        """Test tracking buckets per type with PENDING last."""
        assert available_trackings(items, "Siam Paragon", TrackingKind.POP) == ["TH9", PENDING]
        assert available_trackings(items, "Siam Paragon", TrackingKind.EQUIPMENT) == ["EQ77"]

    def test_filter_items(self, items):
        """Test filtering by branch, type and bucket."""
        pending = filter_items(items, "Siam Paragon", TrackingKind.POP, PENDING)
        assert [i.item for i in pending] == ["Standee"]
        everything = filter_items(items, "Siam Paragon", TrackingKind.POP, "ALL")
        assert [i.item for i in everything] == ["Standee", "Poster"]

    def test_filter_requires_selection(self, items):
        """Test that nothing is shown until branch and tracking are chosen."""
        assert filter_items(items, "", TrackingKind.POP, "ALL") == []
        assert filter_items(items, "Siam Paragon", TrackingKind.POP, "") == []


class TestUpdateTracking:
    """Test update_tracking()."""

    def test_update(self, items):
        """Test the updateTracking post and the optimistic local update."""
        client = MagicMock()

        updated = update_tracking(client, items, "S1", "Siam Paragon", " TH100 ")

        client.post.assert_called_once_with(
            "updateTracking", {"orderNo": "S1", "branch": "Siam Paragon", "trackingNo": "TH100"}
        )
        assert updated[0].tracking_number == "TH100"
        assert updated[1].tracking_number == "EQ77"
        assert items[0].tracking_number == ""

    def test_blank_tracking(self, items):
        """Test that a blank tracking number is rejected before posting."""
        client = MagicMock()
        with pytest.raises(ValidationError):
            update_tracking(client, items, "S1", "Siam Paragon", "  ")
        client.post.assert_not_called()

    def test_transport_error(self, items):
        """Test that a failed post propagates."""
        client = MagicMock()
        client.post.side_effect = TransportError("offline")
        with pytest.raises(TransportError):
            update_tracking(client, items, "S1", "Siam Paragon", "TH100")
