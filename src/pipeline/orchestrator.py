#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Receipt Engine Orchestrator

Workflow:
1. Fetch: all manifest feeds (and the orders feed when configured), in parallel
2. Parse: matrix tabs first (they define the branch set), then equipment and
   tracking against that set
3. Ready: the Inventory is handed to operator sessions

The load is all-or-nothing. Any failed fetch or empty mandatory feed puts
the engine in the ERROR state; nothing is partially ready.
"""

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from src.modules.ingest import fetch_all_feeds, load_raw_feeds, select_sources
from src.modules.lineage import DataLineage
from src.modules.pop_receipts.checklist import Checklist
from src.modules.pop_receipts.errors import FeedError, ParseError, TransportError
from src.modules.pop_receipts.models import LoadStatus
from src.modules.pop_receipts.parse_equipment import parse_equipment
from src.modules.pop_receipts.parse_matrix import merge_branch_sets, parse_matrix
from src.modules.pop_receipts.parse_tracking import (
    OrdersFeedSource,
    StockSource,
    TrackingSheetSource,
)
from src.modules.pop_receipts.reconcile_inventory import (
    Inventory,
    build_view,
    display_branches,
    summarize_inventory,
    trackings_for_branch,
)
from src.modules.pop_receipts.session import ReceiptSession
from src.modules.script_api import ScriptClient
from src.utils.config import ReceiptConfig
from src.utils.kv_store import JsonFileStore, KeyValueStore

logger = logging.getLogger(__name__)


# === LOADING ===


def _require_feed(feeds: Dict[str, str], name: str) -> str:
    text = feeds.get(name)
    if not text or not text.strip():
        raise ParseError(f"Feed {name} is missing or empty")
    return text


def build_stock_source(
    config: ReceiptConfig,
    feeds: Dict[str, str],
    branches,
    orders_payload: Optional[Any] = None,
) -> StockSource:
    """Pick the configured tracking source.

    Raises:
        ParseError: If the configured source has no usable data.
    """
    if config.stock_source == "orders_feed":
        if not isinstance(orders_payload, list):
            raise ParseError(f"{config.orders_action} did not return a list")
        if config.orders_action == "getShipmentItems":
            return OrdersFeedSource.from_shipment_rows(orders_payload)
        return OrdersFeedSource.from_records(orders_payload)

    tracking_sources = config.sources_of_kind("tracking")
    if not tracking_sources:
        raise ParseError("No tracking source configured")
    return TrackingSheetSource(_require_feed(feeds, tracking_sources[0]), branches)


def load_inventory(
    feeds: Dict[str, str],
    config: ReceiptConfig,
    orders_payload: Optional[Any] = None,
    lineage: Optional[DataLineage] = None,
) -> Inventory:
    """Parse fetched feeds into an Inventory.

    Args:
        feeds: Source name -> CSV text.
        config: Loaded configuration.
        orders_payload: Decoded orders feed (orders_feed stock source only).
        lineage: Audit trail receiving accepted and dropped rows.

    Returns:
        Inventory for one load cycle.

    Raises:
        ParseError: If a mandatory feed is missing or yields nothing.
    """
    lineage = lineage or DataLineage()
    anchors = config.anchor_branches or None
    excluded = config.excluded_markers or None

    logger.info("=" * 70)
    logger.info("PARSING FEEDS")
    logger.info("=" * 70)

    matrix_results = []
    for name in config.sources_of_kind("matrix"):
        category = config.sources[name].get("category", name)
        kwargs = {}
        if anchors:
            kwargs["anchors"] = anchors
        if excluded:
            kwargs["excluded"] = excluded
        result = parse_matrix(_require_feed(feeds, name), category, **kwargs)
        if not result.items:
            raise ParseError(f"Matrix feed {name} yielded no items")
        lineage.track_accepted(result.items, "parse_matrix")
        matrix_results.append(result)

    branches = merge_branch_sets(matrix_results)
    items = [item for result in matrix_results for item in result.items]
    dropped = []

    for name in config.sources_of_kind("equipment"):
        category = config.sources[name].get("category", name)
        result = parse_equipment(_require_feed(feeds, name), branches, category)
        if not result.items:
            raise ParseError(f"Equipment feed {name} yielded no items")
        lineage.track_accepted(result.items, "parse_equipment")
        items.extend(result.items)
        dropped.extend(result.dropped)
        lineage.track_dropped(result.dropped, "parse_equipment")

    stock = build_stock_source(config, feeds, branches, orders_payload)
    associations = stock.list_associations()
    if not associations:
        logger.warning("Stock source yielded no tracking associations")
    stock_items = stock.list_line_items()
    lineage.track_accepted(stock_items, "parse_tracking")
    items.extend(stock_items)
    dropped.extend(stock.dropped)
    lineage.track_dropped(stock.dropped, "parse_tracking")

    orders = stock.orders if isinstance(stock, OrdersFeedSource) else []

    logger.info(
        f"Loaded {len(items)} items, {len(branches)} branches, "
        f"{len(associations)} tracking associations, {len(dropped)} dropped rows"
    )
    return Inventory(
        items=tuple(items),
        branches=branches,
        associations=tuple(associations),
        orders=tuple(orders),
        dropped=tuple(dropped),
    )


# === ENGINE ===


class ReceiptEngine:
    """Owns the load lifecycle and hands out operator sessions.

    Usage:
        engine = ReceiptEngine(ReceiptConfig())
        engine.load()
        session = engine.new_session()
    """

    def __init__(
        self,
        config: ReceiptConfig,
        client: Optional[ScriptClient] = None,
        store: Optional[KeyValueStore] = None,
        http_session: Optional[requests.Session] = None,
        sheets_service=None,
    ):
        self.config = config
        self.http_session = http_session or requests.Session()
        self.client = client or ScriptClient(
            config.script_url, timeout=config.timeout_seconds, session=self.http_session
        )
        self.store = store if store is not None else JsonFileStore(config.checklist_store_path)
        self.sheets_service = sheets_service
        self.lineage = DataLineage(config.lineage_dir)

        self.status = LoadStatus.LOADING
        self.error: Optional[str] = None
        self.inventory = Inventory()

    def _fetch(self) -> tuple:
        wants_orders = self.config.stock_source == "orders_feed"
        with ThreadPoolExecutor(max_workers=2) as ex:
            feeds_fut = ex.submit(
                fetch_all_feeds,
                self.config,
                None,
                self.http_session,
                self.sheets_service,
            )
            orders_fut = ex.submit(self.client.query, self.config.orders_action) if wants_orders else None
            feeds = feeds_fut.result()
            orders_payload = orders_fut.result() if orders_fut else None
        return feeds, orders_payload

    def load(
        self,
        feeds: Optional[Dict[str, str]] = None,
        orders_payload: Optional[Any] = None,
    ) -> Inventory:
        """Fetch (unless feeds are given) and parse everything.

        Raises:
            FeedError, TransportError, ParseError: Load failed; status is ERROR.
                Any other exception also leaves status ERROR before it
                propagates.
        """
        self.status = LoadStatus.LOADING
        self.error = None
        self.lineage = DataLineage(self.config.lineage_dir)
        try:
            if feeds is None:
                feeds, orders_payload = self._fetch()
            elif self.config.stock_source == "orders_feed" and orders_payload is None:
                orders_payload = self.client.query(self.config.orders_action)
            self.inventory = load_inventory(feeds, self.config, orders_payload, self.lineage)
        except (TransportError, ParseError) as e:
            self.status = LoadStatus.ERROR
            self.error = str(e)
            logger.error(f"Load failed: {e}")
            raise
        except Exception as e:
            self.status = LoadStatus.ERROR
            self.error = f"{type(e).__name__}: {e}"
            logger.error(f"Load failed unexpectedly: {self.error}")
            raise

        self.status = LoadStatus.READY
        return self.inventory

    def checklist(self) -> Checklist:
        return Checklist(self.store, self.config.checklist_key_prefix)

    def new_session(self) -> ReceiptSession:
        """Start an operator session over the loaded inventory.

        Raises:
            RuntimeError: If the engine is not READY.
        """
        if self.status is not LoadStatus.READY:
            raise RuntimeError(f"Engine not ready (status: {self.status.value})")
        return ReceiptSession(
            self.inventory,
            self.checklist(),
            self.client,
            signer_roles=self.config.signer_roles or ("Branch Manager", "Branch Staff"),
            received_all_note=self.config.received_all_note,
            max_files=self.config.max_files,
            max_file_mb=self.config.max_file_mb,
            items_per_page=self.config.items_per_page,
        )


# === MAIN ===


def _log_branch_view(engine: ReceiptEngine, branch: str, category: str) -> None:
    inventory = engine.inventory
    view = build_view(inventory, branch, category)
    progress = engine.checklist().progress(view)

    logger.info("=" * 70)
    logger.info(f"{branch}: {len(view)} items ({progress.count}/{progress.total} checked)")
    for assoc in trackings_for_branch(inventory, branch):
        logger.info(f"  tracking {assoc.kind.value}: {assoc.tracking_number}")
    for item in view:
        logger.info(f"  [{item.category}] {item.item} x{item.quantity}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="POP receipt engine: fetch, parse, summarize")
    parser.add_argument("--branch", help="Show the item view for one branch")
    parser.add_argument("--category", default="all", help="Category filter for --branch")
    parser.add_argument(
        "--from-raw",
        action="store_true",
        default=False,
        help="Parse feeds saved by the ingest step instead of fetching",
    )
    parser.add_argument(
        "--save-lineage",
        action="store_true",
        default=False,
        help="Write accepted and dropped rows to dirs.lineage",
    )
    parser.add_argument("--config", type=Path, help="Path to pipeline.toml")
    args = parser.parse_args(argv)

    config = ReceiptConfig(args.config)
    engine = ReceiptEngine(config)

    try:
        feeds = load_raw_feeds(config.raw_data_dir, select_sources(config)) if args.from_raw else None
        engine.load(feeds)
    except (FeedError, TransportError, ParseError) as e:
        logger.error(f"Engine status: {engine.status.value} ({e})")
        return 1

    summary = summarize_inventory(engine.inventory.items)
    logger.info("=" * 70)
    logger.info(f"Branches: {', '.join(display_branches(list(engine.inventory.branches)))}")
    logger.info("\n" + summary.to_string(index=False))

    stats = engine.lineage.summary()
    logger.info(
        f"Lineage: {stats['success']} accepted, {stats['rejected']} dropped "
        f"({stats['success_rate']:.1f}% accepted)"
    )

    if args.branch:
        _log_branch_view(engine, args.branch, args.category)

    if args.save_lineage:
        engine.lineage.save()

    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)-8s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    sys.exit(main())
