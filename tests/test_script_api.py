# -*- coding: utf-8 -*-
"""Test the script endpoint client."""

from unittest.mock import MagicMock

import pytest
import requests

from src.modules.pop_receipts.errors import TransportError
from src.modules.script_api import ScriptClient

URL = "https://script.example.com/exec"


def make_client():
    session = MagicMock()
    return ScriptClient(URL, timeout=5, session=session), session


class TestScriptClient:
    """Test ScriptClient."""

    def test_requires_url(self):
        """Test that an empty URL is rejected."""
        with pytest.raises(ValueError):
            ScriptClient("")

    def test_query_sends_action_and_cache_buster(self):
        """Test GET parameters and JSON decoding."""
        client, session = make_client()
        session.get.return_value.json.return_value = [{"orderNo": "A1"}]

        result = client.query("getHistory", branch="Siam Paragon", date="2025-01-15")

        assert result == [{"orderNo": "A1"}]
        args, kwargs = session.get.call_args
        assert args == (URL,)
        assert kwargs["timeout"] == 5
        params = kwargs["params"]
        assert params["action"] == "getHistory"
        assert params["branch"] == "Siam Paragon"
        assert isinstance(params["_t"], int)

    def test_query_http_error(self):
        """Test that an HTTP error status becomes TransportError."""
        client, session = make_client()
        session.get.return_value.raise_for_status.side_effect = requests.HTTPError("500")
        with pytest.raises(TransportError):
            client.query("getShipmentItems")

    def test_query_network_error(self):
        """Test that a connection failure becomes TransportError."""
        client, session = make_client()
        session.get.side_effect = requests.ConnectionError("offline")
        with pytest.raises(TransportError):
            client.query("getShipmentItems")

    def test_query_invalid_json(self):
        """Test that a non-JSON body becomes TransportError."""
        client, session = make_client()
        session.get.return_value.json.side_effect = ValueError("not json")
        with pytest.raises(TransportError, match="invalid JSON"):
            client.query("getShipmentItems")

    def test_post_body(self):
        """Test that the action is merged into the JSON body."""
        client, session = make_client()
        client.post("updateTracking", {"orderNo": "A1", "trackingNo": "TH1"})
        session.post.assert_called_once_with(
            URL,
            json={"action": "updateTracking", "orderNo": "A1", "trackingNo": "TH1"},
            timeout=5,
        )

    def test_post_ignores_status(self):
        """Test that a dispatched write counts as success whatever the status."""
        client, session = make_client()
        session.post.return_value.status_code = 500
        client.post("submitReport", {})
        session.post.return_value.raise_for_status.assert_not_called()

    def test_post_network_error(self):
        """Test that a send failure becomes TransportError."""
        client, session = make_client()
        session.post.side_effect = requests.Timeout("slow")
        with pytest.raises(TransportError):
            client.post("submitReport", {})
