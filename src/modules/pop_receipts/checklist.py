# -*- coding: utf-8 -*-
"""Per-item "received" flags, persisted on every change.

Storage is sparse: a checked item has a "<prefix><itemId>" key holding
"true"; an unchecked item has no key at all. A "false" value is never
written, so restoring state is a single prefix scan.
"""

import logging
import math
from typing import Iterable, List, Sequence, Set

from src.modules.pop_receipts.models import InventoryLineItem, ProgressStats
from src.utils.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "pop_check_"
CHECKED_VALUE = "true"


class Checklist:
    """Checked-item set mirrored to a key-value store.

    Usage:
        checklist = Checklist(JsonFileStore(path))
        checklist.toggle("Siam_Paragon_Standee")
        stats = checklist.progress(view)
    """

    def __init__(self, store: KeyValueStore, key_prefix: str = DEFAULT_KEY_PREFIX):
        """Restore checked ids from the store.

        Args:
            store: Durable store shared with previous sessions.
            key_prefix: Namespace prefix for checklist keys.
        """
        self.store = store
        self.key_prefix = key_prefix
        self._checked: Set[str] = {
            key[len(key_prefix) :] for key in store.keys_with_prefix(key_prefix)
        }
        logger.debug(f"Restored {len(self._checked)} checked items")

    def _key(self, item_id: str) -> str:
        return f"{self.key_prefix}{item_id}"

    def _check(self, item_id: str) -> None:
        self._checked.add(item_id)
        self.store.set(self._key(item_id), CHECKED_VALUE)

    def _uncheck(self, item_id: str) -> None:
        self._checked.discard(item_id)
        self.store.remove(self._key(item_id))

    def is_checked(self, item_id: str) -> bool:
        return item_id in self._checked

    @property
    def checked_ids(self) -> Set[str]:
        return set(self._checked)

    def toggle(self, item_id: str) -> bool:
        """Flip one item and persist it.

        Returns:
            The new checked state.
        """
        if item_id in self._checked:
            self._uncheck(item_id)
            return False
        self._check(item_id)
        return True

    def all_checked(self, item_ids: Sequence[str]) -> bool:
        """True when the id list is non-empty and every id is checked."""
        return bool(item_ids) and all(i in self._checked for i in item_ids)

    def set_all(self, item_ids: Iterable[str], checked: bool) -> None:
        """Check or uncheck every id in one pass."""
        for item_id in item_ids:
            if checked:
                self._check(item_id)
            else:
                self._uncheck(item_id)

    def toggle_all(self, item_ids: Sequence[str]) -> bool:
        """Header "select all": uncheck everything if all are checked, else check all.

        Returns:
            The state applied to every id.
        """
        target = not self.all_checked(item_ids)
        self.set_all(item_ids, target)
        return target

    def clear(self, item_ids: Iterable[str]) -> None:
        """Forget the given ids only; other persisted entries stay."""
        self.set_all(item_ids, False)

    def checked_count(self, items: Sequence[InventoryLineItem]) -> int:
        return sum(1 for item in items if item.id in self._checked)

    def progress(self, items: Sequence[InventoryLineItem]) -> ProgressStats:
        """Checked-vs-total for a view. An empty view is 0/0 and not complete."""
        total = len(items)
        if total == 0:
            return ProgressStats(count=0, total=0, percent=0, is_complete=False)
        count = self.checked_count(items)
        return ProgressStats(
            count=count,
            total=total,
            percent=math.floor(count * 100 / total + 0.5),
            is_complete=count == total,
        )

    def unchecked(self, items: Sequence[InventoryLineItem]) -> List[InventoryLineItem]:
        return [item for item in items if item.id not in self._checked]
