# -*- coding: utf-8 -*-
"""Audit trail for feed rows accepted or dropped during a load.

Rows whose branch cannot be aligned to the ground-truth set are dropped
without telling the operator. Every such drop is recorded here (and
optionally saved as CSV) so the data loss stays observable.
"""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from src.modules.pop_receipts.models import DroppedRecord, InventoryLineItem

logger = logging.getLogger(__name__)

LINEAGE_FIELDS = ["source", "source_row", "value", "operation", "status", "timestamp"]


class DataLineage:
    """Track row-level outcomes of one load cycle.

    Each entry records:
    - Source feed and row index
    - The raw value that decided the outcome (e.g. branch label)
    - Operation name
    - Status ("success" or "rejected: <reason>")
    """

    def __init__(self, output_dir: Optional[Path] = None):
        """Initialize lineage tracker.

        Args:
            output_dir: Directory for saved lineage CSVs. None keeps entries
                in memory only.
        """
        self.output_dir = Path(output_dir) if output_dir is not None else None
        self.entries: List[Dict] = []
        self.timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    def track(
        self,
        source: str,
        source_row: int,
        value: str,
        operation: str,
        status: str,
    ) -> None:
        """Track a single row outcome.

        Args:
            source: Feed name (e.g. "tracking", "Equipment-Order").
            source_row: Row index in the feed (0-based).
            value: Raw value the decision was based on.
            operation: Name of operation (e.g. "parse_tracking_sheet").
            status: "success" or "rejected: <reason>".
        """
        self.entries.append(
            {
                "source": source,
                "source_row": source_row,
                "value": value,
                "operation": operation,
                "status": status,
                "timestamp": datetime.now().isoformat(),
            }
        )

    def track_accepted(self, items: Iterable[InventoryLineItem], operation: str) -> int:
        """Record parsed line items as successes.

        source_row is the item's position in the parser output, since one
        feed row can yield several items.

        Returns:
            Number of items tracked.
        """
        count = 0
        for position, item in enumerate(items):
            self.track(
                source=item.category,
                source_row=position,
                value=item.raw_branch_name,
                operation=operation,
                status="success",
            )
            count += 1
        return count

    def track_dropped(self, records: Iterable[DroppedRecord], operation: str) -> int:
        """Record parser drops as rejections.

        Returns:
            Number of records tracked.
        """
        count = 0
        for record in records:
            self.track(
                source=record.source,
                source_row=record.row_index,
                value=record.raw_value,
                operation=operation,
                status=f"rejected: {record.reason}",
            )
            logger.warning(
                f"Dropped {record.source} row {record.row_index}: "
                f"{record.reason} ({record.raw_value!r})"
            )
            count += 1
        return count

    def rejected(self) -> List[Dict]:
        return [e for e in self.entries if e["status"] != "success"]

    def save(self) -> Optional[Path]:
        """Save entries to lineage_<timestamp>.csv.

        Returns:
            Path to the saved file, or None if nothing to save or no
            output directory was configured.
        """
        if not self.entries:
            logger.warning("No lineage entries to save")
            return None
        if self.output_dir is None:
            logger.debug("Lineage output_dir not set, entries kept in memory")
            return None

        self.output_dir.mkdir(parents=True, exist_ok=True)
        lineage_filepath = self.output_dir / f"lineage_{self.timestamp}.csv"

        with open(lineage_filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=LINEAGE_FIELDS)
            writer.writeheader()
            writer.writerows(self.entries)

        logger.info(f"Lineage saved to: {lineage_filepath}")
        return lineage_filepath

    def summary(self) -> Dict:
        """Get summary statistics.

        Returns:
            Dict with keys: total, success, rejected, success_rate
        """
        total = len(self.entries)
        success = sum(1 for entry in self.entries if entry["status"] == "success")
        rejected = total - success

        return {
            "total": total,
            "success": success,
            "rejected": rejected,
            "success_rate": (success / total * 100) if total > 0 else 0,
        }
