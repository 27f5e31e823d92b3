# -*- coding: utf-8 -*-
"""Test the persisted checklist and progress statistics."""

import pytest

from src.modules.pop_receipts.checklist import Checklist
from src.modules.pop_receipts.models import InventoryLineItem
from src.modules.pop_receipts.parse_tracking import orders_from_shipment_rows
from src.utils.kv_store import InMemoryStore, JsonFileStore


def make_items(n):
    return [
        InventoryLineItem(
            id=f"Siam_Paragon_Item_{k}",
            branch_key="siam paragon",
            raw_branch_name="Siam Paragon",
            category="RE-Brand",
            item=f"Item {k}",
            quantity=1,
        )
        for k in range(n)
    ]


class TestToggle:
    """Test toggling and sparse persistence."""

    def test_toggle_writes_true(self):
        """Test that checking writes "true" under the prefixed key."""
        store = InMemoryStore()
        checklist = Checklist(store)
        assert checklist.toggle("A_1") is True
        assert store.get("pop_check_A_1") == "true"

    def test_double_toggle_leaves_no_key(self):
        """Test that toggling twice removes the key instead of storing false."""
        store = InMemoryStore()
        checklist = Checklist(store)
        checklist.toggle("A_1")
        assert checklist.toggle("A_1") is False
        assert store.keys_with_prefix("pop_check_") == []
        assert not checklist.is_checked("A_1")

    def test_restore_from_store(self):
        """Test that checked ids survive a restart."""
        store = InMemoryStore({"pop_check_A_1": "true", "other_key": "x"})
        checklist = Checklist(store)
        assert checklist.checked_ids == {"A_1"}

    def test_restore_from_json_file(self, tmp_path):
        """Test a restart against the file-backed store."""
        path = tmp_path / "state" / "checklist.json"
        Checklist(JsonFileStore(path)).toggle("Siam_Paragon_Standee")
        restored = Checklist(JsonFileStore(path))
        assert restored.is_checked("Siam_Paragon_Standee")

    def test_custom_prefix(self):
        """Test that the key prefix is configurable."""
        store = InMemoryStore()
        Checklist(store, key_prefix="eq_").toggle("X")
        assert store.keys_with_prefix("eq_") == ["eq_X"]


class TestBulkOperations:
    """Test toggle_all(), set_all() and clear()."""

    def test_toggle_all_checks_when_partial(self):
        """Test that a partial selection becomes fully checked."""
        checklist = Checklist(InMemoryStore())
        checklist.toggle("a")
        assert checklist.toggle_all(["a", "b", "c"]) is True
        assert checklist.checked_ids == {"a", "b", "c"}

    def test_toggle_all_unchecks_when_full(self):
        """Test that a full selection becomes fully unchecked."""
        store = InMemoryStore()
        checklist = Checklist(store)
        checklist.set_all(["a", "b"], True)
        assert checklist.toggle_all(["a", "b"]) is False
        assert store.keys_with_prefix("pop_check_") == []

    def test_all_checked_empty(self):
        """Test that an empty id list is never all checked."""
        assert not Checklist(InMemoryStore()).all_checked([])

    def test_clear_only_given_ids(self):
        """Test that clear() leaves other entries alone."""
        store = InMemoryStore()
        checklist = Checklist(store)
        checklist.set_all(["a", "b", "other"], True)
        checklist.clear(["a", "b"])
        assert checklist.checked_ids == {"other"}
        assert store.keys_with_prefix("pop_check_") == ["pop_check_other"]


class TestProgress:
    """Test progress()."""

    def test_empty_view(self):
        """Test that an empty view is 0 of 0 and not complete."""
        stats = Checklist(InMemoryStore()).progress([])
        assert (stats.count, stats.total, stats.percent, stats.is_complete) == (0, 0, 0, False)

    @pytest.mark.parametrize(
        "checked,total,percent",
        [(1, 8, 13), (2, 3, 67), (1, 3, 33), (1, 2, 50), (1, 200, 1), (0, 4, 0)],
    )
    def test_percent_rounds_half_up(self, checked, total, percent):
        """Test whole-number percent with halves rounded up."""
        items = make_items(total)
        checklist = Checklist(InMemoryStore())
        checklist.set_all([i.id for i in items[:checked]], True)
        stats = checklist.progress(items)
        assert stats.count == checked
        assert stats.percent == percent
        assert not stats.is_complete

    def test_complete(self):
        """Test completion when every item is checked."""
        items = make_items(3)
        checklist = Checklist(InMemoryStore())
        checklist.set_all([i.id for i in items], True)
        stats = checklist.progress(items)
        assert stats.percent == 100
        assert stats.is_complete

    def test_checked_outside_view_ignored(self):
        """Test that checks on items outside the view do not count."""
        items = make_items(2)
        checklist = Checklist(InMemoryStore())
        checklist.toggle("elsewhere")
        assert checklist.progress(items).count == 0
        assert checklist.unchecked(items) == items


class TestBranchIsolation:
    """Test that checks never leak between branches sharing an order."""

    def test_toggle_one_branch_of_shared_order(self):
        """Test that ticking an item in one branch leaves the other unticked."""
        rows = [
            {"orderNo": "ORD1", "branch": "Siam Paragon", "trackingNo": "TH1", "item": "Standee", "qty": 1},
            {"orderNo": "ORD1", "branch": "Central World", "trackingNo": "TH1", "item": "Standee", "qty": 1},
        ]
        siam, central = [i for o in orders_from_shipment_rows(rows) for i in o.items]
        checklist = Checklist(InMemoryStore())

        checklist.toggle(siam.id)

        assert checklist.is_checked(siam.id)
        assert not checklist.is_checked(central.id)
        checklist.clear([siam.id])
        assert checklist.checked_ids() == set()
