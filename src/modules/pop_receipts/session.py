# -*- coding: utf-8 -*-
"""Operator session: selection, checklist interaction and submission.

ReceiptSession holds what one operator has selected and entered between
loading the inventory and submitting a report. Selection rules:

- Selecting a branch resets tracking, category and page; a branch with
  exactly one tracking association gets it selected automatically.
- Selecting an Equipment tracking switches the category to Equipment-Order;
  a POP tracking switches it back to "all".
- Items can only be toggled once a receipt date is set.
"""

import logging
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

from src.modules.pop_receipts.branch_resolver import require_canonical_branch
from src.modules.pop_receipts.checklist import Checklist
from src.modules.pop_receipts.errors import ValidationError
from src.modules.pop_receipts.models import (
    ALL_CATEGORIES,
    EQUIPMENT_CATEGORY,
    InventoryLineItem,
    ProgressStats,
    TrackingAssociation,
    TrackingKind,
)
from src.modules.pop_receipts.reconcile_inventory import (
    DEFAULT_ITEMS_PER_PAGE,
    Inventory,
    build_view,
    display_branches,
    paginate,
    total_pages,
    trackings_for_branch,
)
from src.modules.pop_receipts.submission import (
    DEFAULT_SIGNER_ROLES,
    MAX_FILE_MB,
    MAX_FILES,
    RECEIVED_ALL_NOTE,
    EvidenceSet,
    MediaBlob,
    MediaEncoder,
    ReceiptForm,
    ReportMode,
    SignOff,
    SubmissionReport,
    data_url_encoder,
    report_mode,
    submit_report,
)

logger = logging.getLogger(__name__)


class ReceiptSession:
    """Selection and form state for one operator.

    Usage:
        session = ReceiptSession(inventory, checklist, client)
        session.select_branch("Siam Paragon ")
        session.set_date("2025-01-15")
        session.toggle_all()
        session.attach([MediaBlob("box.jpg", 1024, data=b"...")])
        session.set_sign_off(SignOff("Somchai", "Branch Manager", True, "data:image/png;base64,..."))
        report = session.submit()
    """

    def __init__(
        self,
        inventory: Inventory,
        checklist: Checklist,
        client=None,
        signer_roles: Sequence[str] = DEFAULT_SIGNER_ROLES,
        received_all_note: str = RECEIVED_ALL_NOTE,
        max_files: int = MAX_FILES,
        max_file_mb: int = MAX_FILE_MB,
        items_per_page: int = DEFAULT_ITEMS_PER_PAGE,
        encoder: MediaEncoder = data_url_encoder,
    ):
        self.inventory = inventory
        self.checklist = checklist
        self.client = client
        self.signer_roles = tuple(signer_roles)
        self.received_all_note = received_all_note
        self.items_per_page = items_per_page
        self.encoder = encoder

        self.branch: Optional[str] = None
        self.tracking: Optional[str] = None
        self.category: str = ALL_CATEGORIES
        self.date: Optional[str] = None
        self.search: str = ""
        self.page: int = 1

        self.note: str = ""
        self.defect_mode: bool = False
        self.sign_off = SignOff()
        self.evidence = EvidenceSet(max_files=max_files, max_file_mb=max_file_mb)

    # --- selection ---

    @property
    def branch_options(self) -> List[str]:
        return display_branches(list(self.inventory.branches))

    @property
    def available_trackings(self) -> List[TrackingAssociation]:
        if not self.branch:
            return []
        return trackings_for_branch(self.inventory, self.branch)

    def select_branch(self, label: Optional[str]) -> None:
        """Select a branch by any spelling; None clears the selection.

        Raises:
            ResolutionError: If the label matches no known branch.
        """
        self.branch = require_canonical_branch(label, self.inventory.branches) if label else None
        self.tracking = None
        self.category = ALL_CATEGORIES
        self.page = 1

        trackings = self.available_trackings
        if len(trackings) == 1:
            self.select_tracking(trackings[0].tracking_number)
        logger.debug(f"Selected branch {self.branch!r} ({len(trackings)} trackings)")

    def select_tracking(self, tracking_number: Optional[str]) -> None:
        """Select a tracking number and switch category to match its kind."""
        self.tracking = tracking_number or None
        self.page = 1
        if not self.tracking:
            return

        kinds = {a.kind for a in self.available_trackings if a.tracking_number == self.tracking}
        if TrackingKind.EQUIPMENT in kinds:
            self.category = EQUIPMENT_CATEGORY
        elif TrackingKind.POP in kinds:
            self.category = ALL_CATEGORIES

    def select_category(self, category: str) -> None:
        self.category = category or ALL_CATEGORIES
        self.page = 1

    def set_date(self, date: Optional[str]) -> None:
        self.date = date or None

    def set_search(self, term: str) -> None:
        self.search = term or ""
        self.page = 1

    def set_page(self, page: int) -> None:
        self.page = min(max(page, 1), max(self.total_pages, 1))

    # --- view ---

    @property
    def view(self) -> List[InventoryLineItem]:
        return build_view(self.inventory, self.branch, self.category, self.tracking, self.search)

    @property
    def scope(self) -> List[InventoryLineItem]:
        """Items a submission reports on: the view without the search filter."""
        return build_view(self.inventory, self.branch, self.category, self.tracking)

    @property
    def page_items(self) -> List[InventoryLineItem]:
        return paginate(self.view, self.page, self.items_per_page)

    @property
    def total_pages(self) -> int:
        return total_pages(len(self.view), self.items_per_page)

    @property
    def progress(self) -> ProgressStats:
        return self.checklist.progress(self.view)

    @property
    def report_mode(self) -> ReportMode:
        return report_mode(self.checklist.progress(self.scope), self.defect_mode)

    # --- checklist ---

    def _require_date(self) -> None:
        if not self.date:
            raise ValidationError("Please specify the POP receipt date")

    def toggle(self, item_id: str) -> bool:
        """Toggle one item.

        Raises:
            ValidationError: If no receipt date is set.
        """
        self._require_date()
        return self.checklist.toggle(item_id)

    def toggle_all(self) -> bool:
        """Select-all over the current view.

        Raises:
            ValidationError: If no receipt date is set.
        """
        self._require_date()
        return self.checklist.toggle_all([item.id for item in self.view])

    # --- report form ---

    def attach(self, blobs: Iterable[MediaBlob]) -> List[MediaBlob]:
        return self.evidence.add(blobs)

    def remove_attachment(self, index: int) -> MediaBlob:
        return self.evidence.remove(index)

    def set_note(self, note: str) -> None:
        self.note = note or ""

    def set_defect_mode(self, enabled: bool) -> None:
        self.defect_mode = bool(enabled)

    def set_sign_off(self, sign_off: SignOff) -> None:
        self.sign_off = sign_off

    def form(self) -> ReceiptForm:
        return ReceiptForm(
            branch=self.branch,
            date=self.date,
            tracking_number=self.tracking,
            category=self.category,
            note=self.note,
            defect_mode=self.defect_mode,
            evidence=self.evidence.files,
            sign_off=self.sign_off,
        )

    def submit(self) -> SubmissionReport:
        """Validate and dispatch the report, then reset the form.

        Raises:
            ValidationError: A precondition failed; nothing changes.
            TransportError: Dispatch failed; nothing changes.
        """
        if self.client is None:
            raise RuntimeError("ReceiptSession has no backend client")

        report = submit_report(
            self.form(),
            self.scope,
            self.checklist,
            self.client,
            signer_roles=self.signer_roles,
            received_all_note=self.received_all_note,
            encoder=self.encoder,
        )

        self.note = ""
        self.evidence.clear()
        self.defect_mode = False
        self.tracking = None
        self.sign_off = replace(self.sign_off, signature_image="", acknowledged=False)
        return report
