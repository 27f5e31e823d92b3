# -*- coding: utf-8 -*-
"""Branch naming alignment across feeds.

Each feed spells branches its own way ("Siam Paragon ", "SIAM PARAGON",
"Siam Paragon (Equipment)"). Every join in the engine goes through the
normalized branch key, and every label read from a secondary feed is mapped
onto the ground-truth labels collected from the matrix tabs.

Used by: parse_matrix.py, parse_equipment.py, parse_tracking.py,
reconcile_inventory.py
"""

import logging
import re
from typing import Iterable, Optional

from src.modules.pop_receipts.errors import ResolutionError

logger = logging.getLogger(__name__)

EQUIPMENT_SUFFIX = "(Equipment)"

_WHITESPACE = re.compile(r"\s+")
_EQUIPMENT_SUFFIX = re.compile(r"\s*\(equipment\)$")


def normalize_branch_key(raw_label: Optional[str]) -> str:
    """Canonicalize a branch label to its join key.

    Trims, case-folds, collapses whitespace runs, and strips the trailing
    "(Equipment)" marker one source uses for equipment-only ledger rows.

    Args:
        raw_label: Branch label as it appears in a feed.

    Returns:
        Normalized key; "" for None or blank input.

    Example:
        >>> normalize_branch_key("  Siam   Paragon (Equipment) ")
        'siam paragon'
    """
    if not raw_label:
        return ""
    key = _WHITESPACE.sub(" ", str(raw_label).strip().casefold())
    key = _EQUIPMENT_SUFFIX.sub("", key)
    return key.strip()


def has_equipment_suffix(raw_label: Optional[str]) -> bool:
    """Check whether a label carries the "(Equipment)" ledger marker."""
    if not raw_label:
        return False
    return bool(_EQUIPMENT_SUFFIX.search(_WHITESPACE.sub(" ", raw_label.strip().casefold())))


def resolve_canonical_branch(raw_label: Optional[str], branches: Iterable[str]) -> Optional[str]:
    """Map a raw label onto a ground-truth branch label.

    Exact membership first, then a linear scan comparing normalized keys.
    The branch set is tens to low hundreds of labels, so no index is kept.

    Args:
        raw_label: Label read from a feed.
        branches: Ground-truth labels from the matrix tabs.

    Returns:
        The canonical label, or None if nothing matches. Never adds to the set.
    """
    if not raw_label:
        return None

    if not isinstance(branches, (set, frozenset)):
        branches = list(branches)

    if raw_label in branches:
        return raw_label

    target = normalize_branch_key(raw_label)
    if not target:
        return None

    for known in branches:
        if normalize_branch_key(known) == target:
            return known

    return None


def require_canonical_branch(raw_label: Optional[str], branches: Iterable[str]) -> str:
    """Resolve a label, raising when it is unknown.

    Args:
        raw_label: Label to resolve.
        branches: Ground-truth labels.

    Returns:
        The canonical label.

    Raises:
        ResolutionError: If the label matches no known branch.
    """
    resolved = resolve_canonical_branch(raw_label, branches)
    if resolved is None:
        raise ResolutionError(f"Unknown branch: {raw_label!r}")
    return resolved
