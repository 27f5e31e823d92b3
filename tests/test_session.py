# -*- coding: utf-8 -*-
"""Test the operator session from branch selection to submission."""

from unittest.mock import MagicMock

import pytest

from src.modules.pop_receipts.checklist import Checklist
from src.modules.pop_receipts.errors import ResolutionError, TransportError, ValidationError
from src.modules.pop_receipts.models import (
    EQUIPMENT_CATEGORY,
    InventoryLineItem,
    TrackingAssociation,
    TrackingKind,
)
from src.modules.pop_receipts.reconcile_inventory import Inventory
from src.modules.pop_receipts.session import ReceiptSession
from src.modules.pop_receipts.submission import (
    RECEIVED_ALL_NOTE,
    MediaBlob,
    ReportMode,
    SignOff,
)
from src.utils.kv_store import InMemoryStore

SIGNED = SignOff(
    signer_name="Somchai",
    signer_role="Branch Staff",
    acknowledged=True,
    signature_image="data:image/png;base64,AAAA",
)


def make_item(branch, item, category, quantity=1):
    return InventoryLineItem(
        id=f"{branch}_{item}".replace(" ", "_"),
        branch_key=branch.lower(),
        raw_branch_name=branch,
        category=category,
        item=item,
        quantity=quantity,
    )


@pytest.fixture
def inventory():
    return Inventory(
        items=(
            make_item("Siam Paragon", "Standee", "RE-Brand", 2),
            make_item("Siam Paragon", "Poster", "RE-System", 3),
            make_item("Siam Paragon", "Fridge", EQUIPMENT_CATEGORY),
            make_item("Central World", "Poster", "RE-System"),
        ),
        branches=frozenset({"Siam Paragon", "Central World", "Head Office"}),
        associations=(
            TrackingAssociation("TH001", TrackingKind.POP, "siam paragon", "Siam Paragon"),
            TrackingAssociation("EQ900", TrackingKind.EQUIPMENT, "siam paragon", "Siam Paragon"),
            TrackingAssociation("TH777", TrackingKind.POP, "central world", "Central World"),
        ),
    )


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def session(inventory, client):
    return ReceiptSession(inventory, Checklist(InMemoryStore()), client, items_per_page=2)


class TestSelection:
    """Test branch, tracking and category selection."""

    def test_branch_options(self, session):
        """Test the sorted branch list."""
        assert session.branch_options == ["Central World", "Head Office", "Siam Paragon"]

    def test_select_branch_any_spelling(self, session):
        """Test resolution of a messy label to the canonical branch."""
        session.select_branch("  siam PARAGON ")
        assert session.branch == "Siam Paragon"
        assert session.tracking is None
        assert [a.tracking_number for a in session.available_trackings] == ["TH001", "EQ900"]

    def test_unknown_branch_raises(self, session):
        """Test that an unknown label is rejected."""
        with pytest.raises(ResolutionError):
            session.select_branch("Terminal 21")

    def test_single_tracking_auto_selected(self, session):
        """Test auto-selection when the branch has one tracking number."""
        session.select_branch("Central World")
        assert session.tracking == "TH777"
        assert session.category == "all"

    def test_equipment_tracking_switches_category(self, session):
        """Test the category follows the kind of the selected tracking."""
        session.select_branch("Siam Paragon")
        session.select_tracking("EQ900")
        assert session.category == EQUIPMENT_CATEGORY
        assert [i.item for i in session.view] == ["Fridge"]

        session.select_tracking("TH001")
        assert session.category == "all"
        assert len(session.view) == 3

    def test_branch_change_resets(self, session):
        """Test that a new branch resets tracking, category and page."""
        session.select_branch("Siam Paragon")
        session.select_tracking("EQ900")
        session.select_branch(None)
        assert session.branch is None
        assert session.tracking is None
        assert session.category == "all"
        assert session.view == []

    def test_search_does_not_narrow_scope(self, session):
        """Test that the search filter only affects the view."""
        session.select_branch("Siam Paragon")
        session.set_search("post")
        assert [i.item for i in session.view] == ["Poster"]
        assert len(session.scope) == 3

    def test_pagination(self, session):
        """Test page count and clamping."""
        session.select_branch("Siam Paragon")
        assert session.total_pages == 2
        session.set_page(5)
        assert session.page == 2
        assert [i.item for i in session.page_items] == ["Fridge"]
        session.select_category("RE-Brand")
        assert session.page == 1


class TestChecklistActions:
    """Test toggling through the session."""

    def test_toggle_requires_date(self, session):
        """Test that items cannot be toggled before a date is set."""
        session.select_branch("Siam Paragon")
        with pytest.raises(ValidationError, match="date"):
            session.toggle("Siam_Paragon_Standee")
        with pytest.raises(ValidationError):
            session.toggle_all()

    def test_toggle_all_over_view(self, session):
        """Test select-all over the visible items and progress."""
        session.select_branch("Siam Paragon")
        session.set_date("2025-01-15")
        assert session.toggle_all() is True
        assert session.progress.is_complete
        assert session.report_mode is ReportMode.COMPLETE

        session.set_defect_mode(True)
        assert session.report_mode is ReportMode.DEFECT


class TestSubmit:
    """Test ReceiptSession.submit()."""

    def test_complete_receipt_flow(self, session, client):
        """Test a full receipt: select, check all, attach, sign, submit."""
        session.select_branch("Siam Paragon ")
        assert session.branch == "Siam Paragon"
        session.select_tracking("TH001")
        session.set_date("2025-01-15")
        session.toggle_all()
        session.attach([MediaBlob(name="box.jpg", size=100, data=b"abc")])
        session.set_sign_off(SIGNED)

        report = session.submit()

        action, payload = client.post.call_args[0]
        assert action == "submitReport"
        assert payload["branch"] == "Siam Paragon"
        assert payload["trackingNo"] == "TH001"
        assert payload["note"] == RECEIVED_ALL_NOTE
        assert payload["missingItems"] == "-"
        assert len(payload["itemsSnapshot"]) == 3
        assert all(s.is_checked for s in report.items_snapshot)

        assert session.checklist.checked_ids == set()
        assert len(session.evidence) == 0
        assert session.tracking is None
        assert session.note == ""
        assert session.sign_off.signer_name == "Somchai"
        assert session.sign_off.signature_image == ""
        assert not session.sign_off.acknowledged

    def test_partial_receipt_lists_missing(self, session, client):
        """Test that unchecked items are reported as missing."""
        session.select_branch("Siam Paragon")
        session.set_date("2025-01-15")
        session.toggle("Siam_Paragon_Standee")
        session.attach([MediaBlob(name="box.jpg", size=100)])
        session.set_sign_off(SIGNED)

        session.submit()

        payload = client.post.call_args[0][1]
        assert payload["missingItems"] == "- Poster (Qty: 3)\n- Fridge (Qty: 1)"
        assert payload["trackingNo"] == "-"

    def test_failed_dispatch_keeps_state(self, session, client):
        """Test that a transport failure keeps checks and evidence."""
        client.post.side_effect = TransportError("offline")
        session.select_branch("Siam Paragon")
        session.set_date("2025-01-15")
        session.toggle_all()
        session.attach([MediaBlob(name="box.jpg", size=100)])
        session.set_sign_off(SIGNED)

        with pytest.raises(TransportError):
            session.submit()
        assert len(session.checklist.checked_ids) == 3
        assert len(session.evidence) == 1

    def test_no_client(self, inventory):
        """Test that a session without a backend cannot submit."""
        session = ReceiptSession(inventory, Checklist(InMemoryStore()))
        with pytest.raises(RuntimeError):
            session.submit()

    def test_attachment_management(self, session):
        """Test attaching and removing evidence."""
        session.attach([MediaBlob(name="a.jpg", size=1), MediaBlob(name="b.jpg", size=2)])
        assert session.remove_attachment(1).name == "b.jpg"
        assert [f.name for f in session.form().evidence] == ["a.jpg"]
