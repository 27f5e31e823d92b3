# -*- coding: utf-8 -*-
"""Test view building, pagination and inventory summaries."""

import pytest

from src.modules.pop_receipts.models import (
    EQUIPMENT_CATEGORY,
    InventoryLineItem,
    TrackingAssociation,
    TrackingKind,
)
from src.modules.pop_receipts.reconcile_inventory import (
    Inventory,
    build_view,
    display_branches,
    paginate,
    summarize_inventory,
    total_pages,
    trackings_for_branch,
)


def make_item(branch, item, category="RE-Brand", quantity=1, tracking=None):
    return InventoryLineItem(
        id=f"{branch}_{item}".replace(" ", "_"),
        branch_key=branch.lower(),
        raw_branch_name=branch,
        category=category,
        item=item,
        quantity=quantity,
        tracking_number=tracking,
    )


@pytest.fixture
def inventory():
    items = (
        make_item("Siam Paragon", "Standee A", quantity=3),
        make_item("Siam Paragon", "Poster Large", category="RE-System", quantity=2),
        make_item("Siam Paragon", "Fridge", category=EQUIPMENT_CATEGORY),
        make_item("Central World", "Standee A", quantity=4),
    )
    associations = (
        TrackingAssociation("TH001", TrackingKind.POP, "siam paragon", "Siam Paragon"),
        TrackingAssociation("EQ900", TrackingKind.EQUIPMENT, "siam paragon", "Siam Paragon"),
        TrackingAssociation("TH001", TrackingKind.POP, "siam paragon", "Siam Paragon"),
        TrackingAssociation("TH777", TrackingKind.POP, "central world", "Central World"),
    )
    return Inventory(
        items=items,
        branches=frozenset({"Siam Paragon", "Central World"}),
        associations=associations,
    )


class TestBuildView:
    """Test build_view()."""

    def test_branch_filter_any_spelling(self, inventory):
        """Test that the view matches on the normalized branch key."""
        view = build_view(inventory, "  SIAM paragon (Equipment)")
        assert [i.item for i in view] == ["Standee A", "Poster Large", "Fridge"]

    def test_no_branch(self, inventory):
        """Test that no selected branch gives an empty view."""
        assert build_view(inventory, None) == []
        assert build_view(inventory, "") == []

    def test_category_filter(self, inventory):
        """Test narrowing by category."""
        view = build_view(inventory, "Siam Paragon", category=EQUIPMENT_CATEGORY)
        assert [i.item for i in view] == ["Fridge"]
        assert len(build_view(inventory, "Siam Paragon", category="all")) == 3

    def test_search_case_insensitive(self, inventory):
        """Test the item name substring search."""
        view = build_view(inventory, "Siam Paragon", search="STANDEE")
        assert [i.item for i in view] == ["Standee A"]

    def test_tracking_ignored_for_untracked_items(self, inventory):
        """Test that manifest items without a tracking number are not narrowed."""
        assert len(build_view(inventory, "Siam Paragon", tracking="TH001")) == 3

    def test_tracking_narrows_tracked_items(self):
        """Test narrowing of orders-feed items by tracking number."""
        inv = Inventory(
            items=(
                make_item("Siam Paragon", "Standee", tracking="TH1"),
                make_item("Siam Paragon", "Poster", tracking="TH2"),
            )
        )
        assert [i.item for i in build_view(inv, "Siam Paragon", tracking="TH2")] == ["Poster"]
        assert len(build_view(inv, "Siam Paragon", tracking="ALL")) == 2


class TestBranchesAndTrackings:
    """Test display_branches() and trackings_for_branch()."""

    def test_display_branches(self):
        """Test sorting and hiding of short and summary labels."""
        labels = ["Siam Paragon", "Total", "Grand Total", "POP Sum", "AB", "Central World", "Siam Paragon"]
        assert display_branches(labels) == ["Central World", "Siam Paragon"]

    def test_trackings_deduplicated(self, inventory):
        """Test per-branch associations without duplicates, in feed order."""
        result = trackings_for_branch(inventory, "siam paragon")
        assert [(a.tracking_number, a.kind) for a in result] == [
            ("TH001", TrackingKind.POP),
            ("EQ900", TrackingKind.EQUIPMENT),
        ]

    def test_trackings_unknown_branch(self, inventory):
        """Test that an unknown branch has no trackings."""
        assert trackings_for_branch(inventory, "Mega Bangna") == []


class TestPagination:
    """Test total_pages() and paginate()."""

    @pytest.mark.parametrize("count,per_page,expected", [(0, 50, 0), (1, 50, 1), (50, 50, 1), (51, 50, 2)])
    def test_total_pages(self, count, per_page, expected):
        """Test page counts."""
        assert total_pages(count, per_page) == expected

    def test_total_pages_rejects_zero(self):
        """Test that a non-positive page size is rejected."""
        with pytest.raises(ValueError):
            total_pages(10, 0)

    def test_paginate(self):
        """Test 1-based slicing and clamping."""
        items = [make_item("Siam Paragon", f"Item {n}") for n in range(5)]
        assert [i.item for i in paginate(items, 2, per_page=2)] == ["Item 2", "Item 3"]
        assert [i.item for i in paginate(items, 99, per_page=2)] == ["Item 4"]
        assert [i.item for i in paginate(items, 0, per_page=2)] == ["Item 0", "Item 1"]
        assert paginate([], 1) == []


class TestSummarizeInventory:
    """Test summarize_inventory()."""

    def test_totals(self, inventory):
        """Test per-branch, per-category line counts and quantities."""
        summary = summarize_inventory(inventory.items)
        rows = {(r.branch, r.category): (r.lines, r.quantity) for r in summary.itertuples()}
        assert rows[("Siam Paragon", "RE-Brand")] == (1, 3)
        assert rows[("Central World", "RE-Brand")] == (1, 4)
        assert len(summary) == 4

    def test_empty(self):
        """Test that no items give an empty frame with the same columns."""
        summary = summarize_inventory([])
        assert summary.empty
        assert list(summary.columns) == ["branch", "category", "lines", "quantity"]
