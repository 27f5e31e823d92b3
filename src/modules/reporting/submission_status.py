# -*- coding: utf-8 -*-
"""Which branches submitted a receipt report on which day.

The backend's getRangeStatus answers {"YYYY-MM-DD": [branch, ...]} for the
days that had submissions. This module expands it over every calendar day
of the range, works out who did not submit, and summarises the range per
branch. Notification emails are posted back to the backend.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import pandas as pd

from src.modules.pop_receipts.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyStatus:
    date: str
    submitted: Tuple[str, ...]
    not_submitted: Tuple[str, ...]


@dataclass(frozen=True)
class RangeSummary:
    """Branches that never reported (with missed-day counts) and those that did."""

    missing: Tuple[Tuple[str, int], ...]
    reported: Tuple[Tuple[str, int], ...]


def build_range_status(
    submitted_by_date: Dict[str, List[str]],
    branches: Sequence[str],
    start_date: str,
    end_date: str,
) -> List[DailyStatus]:
    """Expand backend results over every day from start_date to end_date.

    Args:
        submitted_by_date: {"YYYY-MM-DD": [branch, ...]} from getRangeStatus.
        branches: Branches expected to report.
        start_date: First day, "YYYY-MM-DD".
        end_date: Last day (inclusive).

    Returns:
        One DailyStatus per calendar day; empty if end_date < start_date.
    """
    days = pd.date_range(start=start_date, end=end_date, freq="D")
    statuses: List[DailyStatus] = []
    for day in days:
        date_str = day.strftime("%Y-%m-%d")
        submitted = list(submitted_by_date.get(date_str) or [])
        statuses.append(
            DailyStatus(
                date=date_str,
                submitted=tuple(submitted),
                not_submitted=tuple(b for b in branches if b not in submitted),
            )
        )
    return statuses


def summarize_range(statuses: Sequence[DailyStatus], branches: Sequence[str]) -> RangeSummary:
    """Count submitted / missed days per branch over the range.

    Returns:
        RangeSummary. missing lists branches with zero submissions, most
        missed days first; reported lists the others, most submissions first.
    """
    if not statuses:
        return RangeSummary(missing=(), reported=())

    submitted = {b: 0 for b in branches}
    missed = {b: 0 for b in branches}
    for day in statuses:
        for b in day.submitted:
            if b in submitted:
                submitted[b] += 1
        for b in day.not_submitted:
            if b in missed:
                missed[b] += 1

    missing = sorted(
        ((b, missed[b]) for b in branches if submitted[b] == 0),
        key=lambda pair: -pair[1],
    )
    reported = sorted(
        ((b, submitted[b]) for b in branches if submitted[b] > 0),
        key=lambda pair: -pair[1],
    )
    return RangeSummary(missing=tuple(missing), reported=tuple(reported))


def fetch_range_status(client, branches: Sequence[str], start_date: str, end_date: str) -> List[DailyStatus]:
    """Query getRangeStatus and expand it.

    Raises:
        ValidationError: If either date is missing.
        TransportError: If the query fails.
    """
    if not start_date or not end_date:
        raise ValidationError("Please select a start and end date")

    data = client.query("getRangeStatus", startDate=start_date, endDate=end_date)
    if not isinstance(data, dict):
        logger.warning(f"getRangeStatus returned {type(data).__name__}, treating as empty")
        data = {}
    return build_range_status(data, branches, start_date, end_date)


def send_daily_email(client, status: DailyStatus) -> None:
    """Post the not-submitted list for one day."""
    client.post(
        "sendEmail",
        {"date": status.date, "notSubmittedList": list(status.not_submitted)},
    )


def send_range_email(client, start_date: str, end_date: str, summary: RangeSummary) -> None:
    """Post the range summary of branches that never reported."""
    client.post(
        "sendRangeEmail",
        {
            "startDate": start_date,
            "endDate": end_date,
            "summary": [{"branch": branch, "dates": []} for branch, _ in summary.missing],
        },
    )
