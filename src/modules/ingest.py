"""Fetch manifest and tracking feeds as CSV text.

Feeds are the spreadsheet tabs listed under [sources] in pipeline.toml:
1. Matrix tabs: RE-Brand, RE-System, Special-POP
2. Equipment pivot tab: Equipment-Order
3. Legacy tracking tab (skipped when the orders feed is the stock source)

Export mode fetches every tab concurrently from its CSV export URL. Sheets
API mode reads tabs one by one to stay under the API rate limit. Either way
the load is all-or-nothing: one failed feed fails the whole fetch.
"""

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import requests

from src.modules.google_api import connect_to_sheets, read_sheet_as_csv_text
from src.modules.pop_receipts.errors import FeedError
from src.utils import ensure_dir
from src.utils.config import ReceiptConfig

logger = logging.getLogger(__name__)

MAX_WORKERS = 4


def select_sources(
    config: ReceiptConfig,
    only: Optional[Iterable[str]] = None,
    skip: Optional[Iterable[str]] = None,
) -> List[str]:
    """Pick which configured sources to fetch.

    Tracking-kind sources are left out when the orders feed supplies the
    tracking associations.

    Args:
        config: Loaded configuration.
        only: Restrict to these source names.
        skip: Exclude these source names.

    Returns:
        Source names in declaration order.

    Raises:
        ValueError: If only/skip name an unknown source.
    """
    names = list(config.sources)
    requested = set(only or []) | set(skip or [])
    unknown = sorted(requested - set(names))
    if unknown:
        raise ValueError(f"Unknown sources: {unknown}")

    if config.stock_source == "orders_feed":
        names = [n for n in names if config.sources[n].get("kind") != "tracking"]
    if only:
        names = [n for n in names if n in set(only)]
    if skip:
        names = [n for n in names if n not in set(skip)]
    return names


def fetch_feed_text(url: str, session: requests.Session, timeout: float) -> str:
    """Download one CSV export.

    Raises:
        FeedError: On network failure or HTTP error status.
    """
    try:
        response = session.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise FeedError(f"Failed to fetch {url}: {e}") from e
    # Exports are UTF-8 but served without a charset
    response.encoding = "utf-8"
    return response.text


def _fetch_exports(
    config: ReceiptConfig, names: List[str], session: requests.Session
) -> Dict[str, str]:
    feeds: Dict[str, str] = {}
    with ThreadPoolExecutor(max_workers=MAX_WORKERS) as ex:
        futs = {
            ex.submit(fetch_feed_text, config.feed_url(name), session, config.timeout_seconds): name
            for name in names
        }
        for f in as_completed(futs):
            name = futs[f]
            try:
                feeds[name] = f.result()
            except FeedError as e:
                for pending in futs:
                    pending.cancel()
                logger.error(f"Feed {name} failed: {e}")
                raise FeedError(f"Feed {name} failed: {e}") from e
            logger.info(f"Fetched {name} ({len(feeds[name])} chars)")
    return feeds


def _fetch_from_sheets_api(config: ReceiptConfig, names: List[str], sheets_service) -> Dict[str, str]:
    feeds: Dict[str, str] = {}
    for name in names:
        source = config.sources[name]
        spreadsheet_id = source.get("spreadsheet_id", config.spreadsheet_id)
        tab = source.get("tab", name)
        text = read_sheet_as_csv_text(sheets_service, spreadsheet_id, tab)
        if text is None:
            raise FeedError(f"Feed {name} failed: tab {tab!r} returned no data")
        feeds[name] = text
        logger.info(f"Read {name} from tab {tab!r}")
    return feeds


def fetch_all_feeds(
    config: ReceiptConfig,
    sources: Optional[List[str]] = None,
    session: Optional[requests.Session] = None,
    sheets_service=None,
) -> Dict[str, str]:
    """Fetch every selected feed, failing fast.

    Args:
        config: Loaded configuration.
        sources: Source names; defaults to select_sources(config).
        session: requests session for export mode.
        sheets_service: Sheets API service for sheets_api mode; connected
            on demand if None.

    Returns:
        Dict of source name -> CSV text.

    Raises:
        FeedError: If any feed cannot be fetched.
    """
    names = sources if sources is not None else select_sources(config)

    logger.info("=" * 70)
    logger.info(f"Fetching {len(names)} feeds ({config.fetch_mode} mode)")

    if config.fetch_mode == "sheets_api":
        if sheets_service is None:
            sheets_service = connect_to_sheets()
        return _fetch_from_sheets_api(config, names, sheets_service)

    return _fetch_exports(config, names, session or requests.Session())


def save_raw_feeds(feeds: Dict[str, str], raw_dir: Path) -> List[Path]:
    """Write each feed to <raw_dir>/<name>.csv."""
    ensure_dir(raw_dir)
    paths: List[Path] = []
    for name, text in feeds.items():
        path = raw_dir / f"{name}.csv"
        with open(path, "w", newline="", encoding="utf-8") as f:
            f.write(text)
        logger.info(f"Saved {path}")
        paths.append(path)
    return paths


def load_raw_feeds(raw_dir: Path, sources: Iterable[str]) -> Dict[str, str]:
    """Read feeds saved by save_raw_feeds.

    Raises:
        FeedError: If a requested feed file is missing.
    """
    feeds: Dict[str, str] = {}
    for name in sources:
        path = raw_dir / f"{name}.csv"
        if not path.exists():
            raise FeedError(f"Raw feed not found: {path}")
        with open(path, "r", newline="", encoding="utf-8") as f:
            feeds[name] = f.read()
    return feeds


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point: fetch feeds and optionally save them."""
    parser = argparse.ArgumentParser(description="Fetch POP manifest feeds")
    parser.add_argument("--only", nargs="+", help="Fetch only these sources")
    parser.add_argument("--skip", nargs="+", help="Skip these sources")
    parser.add_argument(
        "--save-raw",
        action="store_true",
        default=False,
        help="Write fetched feeds to dirs.raw_data",
    )
    parser.add_argument("--config", type=Path, help="Path to pipeline.toml")
    args = parser.parse_args(argv)

    config = ReceiptConfig(args.config)
    try:
        names = select_sources(config, args.only, args.skip)
        feeds = fetch_all_feeds(config, names)
    except (ValueError, FeedError) as e:
        logger.error(str(e))
        return 1

    if args.save_raw:
        save_raw_feeds(feeds, config.raw_data_dir)

    logger.info("=" * 70)
    logger.info(f"Ingestion complete: {len(feeds)} feeds")
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)-8s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    sys.exit(main())
