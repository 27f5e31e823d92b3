# -*- coding: utf-8 -*-
"""Receipt report validation, snapshotting and dispatch.

This module:
1. Holds attached evidence under the file count / size limits
2. Checks submission preconditions in a fixed order (first failure wins)
3. Freezes the scope and checklist state into a SubmissionReport
4. Posts the report and clears the submitted ids from the checklist

A failed precondition raises ValidationError before the backend is
contacted. A transport failure clears nothing.
"""

import base64
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from src.modules.pop_receipts.checklist import Checklist
from src.modules.pop_receipts.errors import ValidationError
from src.modules.pop_receipts.models import ALL_CATEGORIES, InventoryLineItem, ProgressStats

logger = logging.getLogger(__name__)

RECEIVED_ALL_NOTE = "Received All POP Items Successfully."
DEFAULT_SIGNER_ROLES = ("Branch Manager", "Branch Staff")
NO_TRACKING = "-"
NO_MISSING_ITEMS = "-"
MAX_FILES = 10
MAX_FILE_MB = 20


# =============================================================================
# Evidence
# =============================================================================


@dataclass(frozen=True)
class MediaBlob:
    """One attached photo or video."""

    name: str
    size: int
    content_type: str = "image/jpeg"
    data: bytes = b""

    @property
    def is_video(self) -> bool:
        return self.content_type.startswith("video/")


MediaEncoder = Callable[[MediaBlob], str]


def data_url_encoder(blob: MediaBlob) -> str:
    """Encode a blob as a base64 data URL (no resizing)."""
    encoded = base64.b64encode(blob.data).decode("ascii")
    return f"data:{blob.content_type};base64,{encoded}"


class EvidenceSet:
    """Attached evidence files, capped in count and per-file size.

    Files are identified by (name, size); re-attaching the same file is a
    no-op.
    """

    def __init__(self, max_files: int = MAX_FILES, max_file_mb: int = MAX_FILE_MB):
        self.max_files = max_files
        self.max_bytes = max_file_mb * 1024 * 1024
        self._files: List[MediaBlob] = []

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self):
        return iter(self._files)

    @property
    def files(self) -> Tuple[MediaBlob, ...]:
        return tuple(self._files)

    def add(self, blobs: Iterable[MediaBlob]) -> List[MediaBlob]:
        """Attach a batch of files.

        Oversized files are skipped with a warning. If the remaining new
        files would exceed the count limit, the whole batch is rejected.

        Args:
            blobs: Files selected in one pick.

        Returns:
            Files actually added.

        Raises:
            ValidationError: Every file was oversized, or the count limit
                would be exceeded.
        """
        blobs = list(blobs)
        within_size = [b for b in blobs if b.size <= self.max_bytes]
        for blob in blobs:
            if blob.size > self.max_bytes:
                logger.warning(f"Skipping {blob.name}: exceeds {self.max_bytes // (1024 * 1024)}MB")

        if blobs and not within_size:
            names = ", ".join(b.name for b in blobs)
            raise ValidationError(f"Files exceed {self.max_bytes // (1024 * 1024)}MB: {names}")

        existing = {(f.name, f.size) for f in self._files}
        unique: List[MediaBlob] = []
        for blob in within_size:
            key = (blob.name, blob.size)
            if key not in existing:
                existing.add(key)
                unique.append(blob)

        if len(self._files) + len(unique) > self.max_files:
            raise ValidationError(f"Cannot attach more than {self.max_files} files")

        self._files.extend(unique)
        return unique

    def remove(self, index: int) -> MediaBlob:
        """Detach the file at index.

        Raises:
            IndexError: If index is out of range.
        """
        return self._files.pop(index)

    def clear(self) -> None:
        self._files.clear()


# =============================================================================
# Form and report
# =============================================================================


@dataclass(frozen=True)
class SignOff:
    """Signer identity, acknowledgement and drawn signature."""

    signer_name: str = ""
    signer_role: str = ""
    acknowledged: bool = False
    signature_image: str = ""


@dataclass(frozen=True)
class ReceiptForm:
    """Everything the operator entered, captured at submit time."""

    branch: Optional[str]
    date: Optional[str]
    tracking_number: Optional[str] = None
    category: str = ALL_CATEGORIES
    note: str = ""
    defect_mode: bool = False
    evidence: Tuple[MediaBlob, ...] = field(default_factory=tuple)
    sign_off: SignOff = field(default_factory=SignOff)


@dataclass(frozen=True)
class SnapshotItem:
    id: str
    item: str
    qty: int
    category: str
    is_checked: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "item": self.item,
            "qty": self.qty,
            "category": self.category,
            "isChecked": self.is_checked,
        }


@dataclass(frozen=True)
class SubmissionReport:
    """Frozen receipt report; the unit posted to the backend."""

    branch: str
    tracking_number: str
    category: str
    date: str
    note: str
    evidence: Tuple[str, ...]
    missing_items_text: str
    items_snapshot: Tuple[SnapshotItem, ...]
    signer_name: str
    signer_role: str
    signature_image: str
    defect_mode: bool = False

    @property
    def missing_items(self) -> Tuple[SnapshotItem, ...]:
        return tuple(s for s in self.items_snapshot if not s.is_checked)

    @property
    def is_all_missing(self) -> bool:
        return bool(self.items_snapshot) and all(not s.is_checked for s in self.items_snapshot)

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the submitReport action (without the action key)."""
        return {
            "branch": self.branch,
            "trackingNo": self.tracking_number,
            "category": self.category,
            "date": self.date,
            "note": self.note,
            "images": list(self.evidence),
            "missingItems": self.missing_items_text,
            "itemsSnapshot": [s.to_dict() for s in self.items_snapshot],
            "signerName": self.signer_name,
            "signerRole": self.signer_role,
            "signature": self.signature_image,
        }


class ReportMode(Enum):
    """Which kind of report the current state produces."""

    COMPLETE = "complete"
    DEFECT = "defect"
    INCOMPLETE = "incomplete"

    @property
    def title(self) -> str:
        return {
            ReportMode.COMPLETE: "Confirm Complete Receipt",
            ReportMode.DEFECT: "Report Damaged/Defective POP",
            ReportMode.INCOMPLETE: "Report Issue / Missing POP",
        }[self]


def report_mode(progress: ProgressStats, defect_mode: bool) -> ReportMode:
    if defect_mode:
        return ReportMode.DEFECT
    if progress.is_complete:
        return ReportMode.COMPLETE
    return ReportMode.INCOMPLETE


# =============================================================================
# Validation
# =============================================================================


def _validate_sign_off(sign_off: SignOff, signer_roles: Sequence[str]) -> None:
    if not sign_off.signer_name.strip():
        raise ValidationError("Please enter the signer name")
    if sign_off.signer_role not in signer_roles:
        raise ValidationError(f"Please select the signer role ({' / '.join(signer_roles)})")
    if not sign_off.acknowledged:
        raise ValidationError("Please confirm the acknowledgement before submitting")
    if not sign_off.signature_image:
        raise ValidationError("Please sign before submitting")


def validate_submission(
    form: ReceiptForm,
    scope: Sequence[InventoryLineItem],
    checklist: Checklist,
    signer_roles: Sequence[str] = DEFAULT_SIGNER_ROLES,
    received_all_note: str = RECEIVED_ALL_NOTE,
) -> str:
    """Check every submission precondition in order.

    Order:
    1. Branch and date selected
    2. At least one evidence file
    3. Nothing checked and no note
    4. Partially checked with neither note nor evidence
    5. Defect mode needs note and evidence
    6. Everything checked (no defect): blank note becomes the canonical note
    7. Sign-off: name, role, acknowledgement, signature

    Args:
        form: Operator input.
        scope: Items being reported on.
        checklist: Current checked state.
        signer_roles: Accepted signer roles.
        received_all_note: Note used when everything arrived.

    Returns:
        The note to submit.

    Raises:
        ValidationError: On the first failed precondition.
    """
    if not form.branch:
        raise ValidationError("Please select a branch")
    if not form.date:
        raise ValidationError("Please select a date")

    if not form.evidence:
        raise ValidationError("Please attach at least one photo or video")

    note = (form.note or "").strip()
    total = len(scope)
    checked = checklist.checked_count(scope)

    if checked == 0 and not note:
        raise ValidationError(
            "No items are marked as received. "
            "Please specify the reason in the issue details before submitting."
        )
    elif checked < total and not note and not form.evidence:
        raise ValidationError("Missing POP: please provide details or attach images")

    if form.defect_mode:
        if not note:
            raise ValidationError("Reporting defect: please provide details")
        if not form.evidence:
            raise ValidationError("Reporting defect: please attach images")
    elif total > 0 and checked == total and not note:
        note = received_all_note

    _validate_sign_off(form.sign_off, signer_roles)

    return note


# =============================================================================
# Snapshot and dispatch
# =============================================================================


def missing_items_text(items: Iterable[InventoryLineItem]) -> str:
    """Render missing items as "- <item> (Qty: <n>)" lines, or "-" when none."""
    lines = [f"- {item.item} (Qty: {item.quantity})" for item in items]
    return "\n".join(lines) if lines else NO_MISSING_ITEMS


def build_report(
    form: ReceiptForm,
    scope: Sequence[InventoryLineItem],
    checklist: Checklist,
    note: str,
    encoder: MediaEncoder = data_url_encoder,
) -> SubmissionReport:
    """Freeze scope and checklist state into a report."""
    snapshot = tuple(
        SnapshotItem(
            id=item.id,
            item=item.item,
            qty=item.quantity,
            category=item.category,
            is_checked=checklist.is_checked(item.id),
        )
        for item in scope
    )
    sign_off = form.sign_off
    return SubmissionReport(
        branch=form.branch,
        tracking_number=form.tracking_number or NO_TRACKING,
        category=form.category,
        date=form.date,
        note=note,
        evidence=tuple(encoder(blob) for blob in form.evidence),
        missing_items_text=missing_items_text(checklist.unchecked(scope)),
        items_snapshot=snapshot,
        signer_name=sign_off.signer_name.strip(),
        signer_role=sign_off.signer_role,
        signature_image=sign_off.signature_image,
        defect_mode=form.defect_mode,
    )


def submit_report(
    form: ReceiptForm,
    scope: Sequence[InventoryLineItem],
    checklist: Checklist,
    client,
    signer_roles: Sequence[str] = DEFAULT_SIGNER_ROLES,
    received_all_note: str = RECEIVED_ALL_NOTE,
    encoder: MediaEncoder = data_url_encoder,
) -> SubmissionReport:
    """Validate, snapshot and post a receipt report.

    Args:
        form: Operator input.
        scope: Items being reported on.
        checklist: Current checked state; scope ids are cleared on success.
        client: ScriptClient (anything with post(action, payload)).
        signer_roles: Accepted signer roles.
        received_all_note: Note used when everything arrived.
        encoder: Evidence encoder.

    Returns:
        The dispatched report.

    Raises:
        ValidationError: A precondition failed; nothing was sent.
        TransportError: The request could not be dispatched; nothing cleared.
    """
    note = validate_submission(form, scope, checklist, signer_roles, received_all_note)
    report = build_report(form, scope, checklist, note, encoder)

    client.post("submitReport", report.to_payload())
    logger.info(
        f"Submitted report for {report.branch} on {report.date} "
        f"({len(report.missing_items)} missing of {len(report.items_snapshot)})"
    )

    checklist.clear(item.id for item in scope)
    return report


def outcome_message(report: SubmissionReport) -> str:
    """Operator-facing confirmation text for a dispatched report."""
    missing = report.missing_items
    if report.is_all_missing:
        return f"Saved (POP not received yet)\nReason: {report.note}"
    if missing:
        return (
            f"Saved ({len(missing)} POP items missing):\n\n"
            f"{report.missing_items_text}\n\n"
            "================\nThe responsible team has been notified."
        )
    if report.defect_mode:
        return "Saved (defect reported)"
    return "Saved (all POP received)\nThank you"
