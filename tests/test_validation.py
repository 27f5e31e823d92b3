# -*- coding: utf-8 -*-
"""Tests for src/pipeline/validation.py."""

import pandas as pd
import pytest

from src.pipeline.validation import (
    EXPECTED_SCHEMAS,
    _check_dataframe_not_empty,
    _check_forbidden_values,
    _check_numeric_columns,
    _check_required_columns,
    validate_frame,
)


def make_frame(**overrides):
    data = {
        "orderNo": ["A1", "A1"],
        "branch": ["Siam Paragon", "Central World"],
        "item": ["Standee", "Poster"],
        "qty": [2, 1],
    }
    data.update(overrides)
    return pd.DataFrame(data)


class TestExpectedSchemas:
    """Test expected schema definitions."""

    def test_feeds_defined(self):
        """Both structured feeds have schema definitions."""
        assert set(EXPECTED_SCHEMAS) == {"orders", "shipment_items"}

    def test_required_columns(self):
        """Both feeds require order, branch, item and quantity."""
        for schema in EXPECTED_SCHEMAS.values():
            assert schema["required_columns"] == ["orderNo", "branch", "item", "qty"]


class TestChecks:
    """Test individual validation checks."""

    def test_required_columns_missing(self):
        """Test detection of a missing column."""
        df = make_frame().drop(columns=["item"])
        assert not _check_required_columns(df, "orders", EXPECTED_SCHEMAS["orders"])

    def test_numeric_column_not_numeric(self):
        """Test rejection of a text quantity column."""
        df = make_frame(qty=["two", "one"])
        assert not _check_numeric_columns(df, "orders", EXPECTED_SCHEMAS["orders"])

    def test_numeric_column_all_nan(self):
        """Test rejection of an all-NaN quantity column."""
        df = make_frame(qty=[float("nan"), float("nan")])
        assert not _check_numeric_columns(df, "orders", EXPECTED_SCHEMAS["orders"])

    def test_forbidden_blank_value(self):
        """Test rejection of a blank branch."""
        df = make_frame(branch=["Siam Paragon", ""])
        assert not _check_forbidden_values(df, "orders", EXPECTED_SCHEMAS["orders"])

    def test_forbidden_nan_quantity(self):
        """Test that orders reject a missing quantity, shipment items do not."""
        df = make_frame(qty=[1.0, float("nan")])
        assert not _check_forbidden_values(df, "orders", EXPECTED_SCHEMAS["orders"])
        assert _check_forbidden_values(df, "shipment_items", EXPECTED_SCHEMAS["shipment_items"])

    def test_empty_frame(self):
        """Test rejection of a frame without rows."""
        assert not _check_dataframe_not_empty(pd.DataFrame(), "orders")


class TestValidateFrame:
    """Test validate_frame()."""

    def test_valid(self):
        """Test that a well-formed frame passes."""
        assert validate_frame(make_frame(), "orders")
        assert validate_frame(make_frame(), "shipment_items", label="getShipmentItems")

    def test_invalid(self):
        """Test that one failing check fails validation."""
        assert not validate_frame(make_frame(item=[None, "Poster"]), "orders")

    def test_unknown_schema(self):
        """Test that an unknown schema name raises."""
        with pytest.raises(ValueError):
            validate_frame(make_frame(), "ledger")
