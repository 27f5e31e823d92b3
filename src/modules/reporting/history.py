# -*- coding: utf-8 -*-
"""Look up submitted receipt reports for a branch and date."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from src.modules.pop_receipts.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryRecord:
    """One stored report row as the backend returns it."""

    date: str
    branch: str
    tracking_number: str = ""
    signer_name: str = ""
    signer_role: str = ""
    items: str = ""
    missing: str = ""
    note: str = ""
    images: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryRecord":
        def text(key: str) -> str:
            value = data.get(key)
            return "" if value is None else str(value)

        return cls(
            date=text("date"),
            branch=text("branch"),
            tracking_number=text("trackingNo"),
            signer_name=text("signerName"),
            signer_role=text("signerRole"),
            items=text("items"),
            missing=text("missing"),
            note=text("note"),
            images=text("images"),
        )


def fetch_latest_history(client, branch: str, date: str) -> Optional[HistoryRecord]:
    """Fetch reports for branch + date and return the most recent one.

    Args:
        client: ScriptClient.
        branch: Branch label as submitted.
        date: "YYYY-MM-DD".

    Returns:
        The last record returned, or None if there is none.

    Raises:
        ValidationError: If branch or date is missing.
        TransportError: If the query fails.
    """
    if not branch or not date:
        raise ValidationError("Please select branch and date before searching")

    data = client.query("getHistory", branch=branch, date=date)
    if not isinstance(data, list) or not data:
        logger.info(f"No history for {branch} on {date}")
        return None
    return HistoryRecord.from_dict(data[-1])
