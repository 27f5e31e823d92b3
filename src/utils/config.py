# -*- coding: utf-8 -*-
"""Centralized configuration for feeds, backend and local state.

Reads pipeline.toml and exposes typed accessors so no module hardcodes
spreadsheet ids, script URLs or storage paths.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.utils import get_workspace_root

logger = logging.getLogger(__name__)

EXPORT_URL_TEMPLATE = (
    "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/export?format=csv&gid={gid}"
)

SOURCE_KINDS = ("matrix", "equipment", "tracking")


def load_pipeline_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load pipeline configuration from pipeline.toml.

    Args:
        config_path: Path to pipeline.toml. If None, uses the workspace root.

    Returns:
        Dict with dirs, backend, sheets, sources and engine sections.

    Raises:
        FileNotFoundError: If pipeline.toml not found.
    """
    if config_path is None:
        config_path = get_workspace_root() / "pipeline.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"pipeline.toml not found at {config_path.resolve()}")

    with open(config_path, "rb") as f:
        return tomllib.load(f)


class ReceiptConfig:
    """Typed view over pipeline.toml.

    Usage:
        config = ReceiptConfig()
        url = config.feed_url("brand")
        roles = config.signer_roles
    """

    def __init__(self, config_path: Optional[Path] = None, data: Optional[Dict] = None):
        """Initialize from a file, or from an already-parsed dict.

        Args:
            config_path: Path to pipeline.toml. If None, uses default location.
            data: Parsed config dict; takes precedence over config_path.

        Raises:
            FileNotFoundError: If config file not found.
            ValueError: If a source declares an unknown kind.
        """
        self._config = data if data is not None else load_pipeline_config(config_path)

        for name, source in self.sources.items():
            kind = source.get("kind")
            if kind not in SOURCE_KINDS:
                raise ValueError(f"Source {name} has unknown kind: {kind}")

    def _section(self, name: str) -> Dict[str, Any]:
        return self._config.get(name, {})

    # --- directories ---

    @property
    def raw_data_dir(self) -> Path:
        return Path(self._section("dirs").get("raw_data", "data/00-raw"))

    @property
    def lineage_dir(self) -> Path:
        return Path(self._section("dirs").get("lineage", "data/lineage"))

    @property
    def checklist_store_path(self) -> Path:
        return Path(self._section("dirs").get("checklist_store", "data/checklist.json"))

    # --- backend ---

    @property
    def script_url(self) -> str:
        return self._section("backend").get("script_url", "")

    @property
    def timeout_seconds(self) -> float:
        return float(self._section("backend").get("timeout_seconds", 30))

    # --- feeds ---

    @property
    def spreadsheet_id(self) -> str:
        return self._section("sheets").get("spreadsheet_id", "")

    @property
    def fetch_mode(self) -> str:
        return self._section("sheets").get("fetch_mode", "export")

    @property
    def sources(self) -> Dict[str, Dict[str, Any]]:
        return self._config.get("sources", {})

    def sources_of_kind(self, kind: str) -> List[str]:
        """Get source names of one kind, in declaration order."""
        return [name for name, src in self.sources.items() if src.get("kind") == kind]

    def feed_url(self, source_name: str) -> str:
        """Build the CSV export URL for a source.

        Args:
            source_name: Key under [sources].

        Returns:
            Google Sheets CSV export URL.

        Raises:
            KeyError: If source_name not found in config.
        """
        source = self.sources[source_name]
        if "url" in source:
            return source["url"]
        return EXPORT_URL_TEMPLATE.format(
            spreadsheet_id=source.get("spreadsheet_id", self.spreadsheet_id),
            gid=source["gid"],
        )

    # --- engine ---

    @property
    def anchor_branches(self) -> List[str]:
        return list(self._section("matrix").get("anchor_branches", []))

    @property
    def excluded_markers(self) -> List[str]:
        return list(self._section("matrix").get("excluded_markers", []))

    @property
    def stock_source(self) -> str:
        return self._section("stock").get("source", "tracking_sheet")

    @property
    def orders_action(self) -> str:
        return self._section("stock").get("orders_action", "getShipmentItems")

    @property
    def checklist_key_prefix(self) -> str:
        return self._section("checklist").get("key_prefix", "pop_check_")

    @property
    def signer_roles(self) -> List[str]:
        roles = list(self._section("submission").get("signer_roles", []))
        if roles and len(roles) != 2:
            logger.warning(f"Expected two signer roles, got {len(roles)}: {roles}")
        return roles

    @property
    def max_files(self) -> int:
        return int(self._section("submission").get("max_files", 10))

    @property
    def max_file_mb(self) -> int:
        return int(self._section("submission").get("max_file_mb", 20))

    @property
    def received_all_note(self) -> str:
        return self._section("submission").get(
            "received_all_note", "Received All POP Items Successfully."
        )

    @property
    def items_per_page(self) -> int:
        return int(self._section("submission").get("items_per_page", 50))
