# -*- coding: utf-8 -*-
"""Client for the Apps Script web-app backend.

Every call is discriminated by an "action" field:

Queries (GET, JSON response):
- getShipmentItems, getOrders: structured orders feed
- getHistory: submitted reports for branch + date
- getRangeStatus: branches that submitted, per date

Writes (POST, JSON body, no usable response):
- submitReport, updateTracking, sendEmail, sendRangeEmail

Writes are fire-and-forget: a dispatched request counts as success whatever
the backend does with it. Only network-level failures raise.

Usage:
    client = ScriptClient(config.script_url, timeout=config.timeout_seconds)
    rows = client.query("getShipmentItems")
    client.post("updateTracking", {"orderNo": "A1", "branch": "X", "trackingNo": "TH1"})
"""

import logging
import time
from typing import Any, Dict, Optional

import requests

from src.modules.pop_receipts.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class ScriptClient:
    """Thin requests wrapper around the script endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize client.

        Args:
            url: Deployed web-app URL (ends with /exec).
            timeout: Per-request timeout in seconds.
            session: Session to reuse; a new one is created if None.
        """
        if not url:
            raise ValueError("Script URL is required")
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def query(self, action: str, **params: Any) -> Any:
        """Run a GET query action and decode its JSON response.

        A "_t" timestamp parameter defeats intermediate caches.

        Args:
            action: Query action name.
            **params: Extra query-string parameters.

        Returns:
            Decoded JSON (usually a list or dict).

        Raises:
            TransportError: On network failure, HTTP error status or a
                non-JSON body.
        """
        query_params = {"action": action, **params, "_t": int(time.time() * 1000)}
        try:
            response = self.session.get(self.url, params=query_params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"Query {action} failed: {e}")
            raise TransportError(f"Query {action} failed: {e}") from e
        except ValueError as e:
            logger.error(f"Query {action} returned invalid JSON: {e}")
            raise TransportError(f"Query {action} returned invalid JSON") from e

        logger.debug(f"Query {action} returned {type(data).__name__}")
        return data

    def post(self, action: str, payload: Optional[Dict[str, Any]] = None) -> None:
        """Dispatch a write action.

        The HTTP status is not inspected; the backend gives no usable
        acknowledgement.

        Args:
            action: Write action name.
            payload: JSON body fields (the action key is added).

        Raises:
            TransportError: If the request could not be sent.
        """
        body = {"action": action, **(payload or {})}
        try:
            self.session.post(self.url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Post {action} failed: {e}")
            raise TransportError(f"Post {action} failed: {e}") from e

        logger.info(f"Dispatched {action}")
