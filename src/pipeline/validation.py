# -*- coding: utf-8 -*-
"""Schema validation for structured feeds from the script endpoint.

Flattened order / shipment-item records are loaded into a DataFrame and
checked against expected schemas (missing columns, non-numeric quantities,
forbidden blank values) before any record is accepted into the inventory.

Usage:
    from src.pipeline.validation import validate_frame

    df = pd.json_normalize(records, record_path="items", meta=["orderNo"])
    if not validate_frame(df, "orders"):
        raise ParseError("Orders feed failed schema validation")
"""

import logging
from typing import Dict

import pandas as pd

logger = logging.getLogger(__name__)


EXPECTED_SCHEMAS = {
    # getOrders: one row per embedded item, order fields carried as meta
    "orders": {
        "required_columns": ["orderNo", "branch", "item", "qty"],
        "optional_columns": ["orderDate", "trackingNo", "category"],
        "numeric_columns": ["qty"],
        "forbidden_values": {
            "branch": [None, ""],
            "item": [None, ""],
            "qty": [None],
        },
    },
    # getShipmentItems: already flat, one row per (order, branch, item)
    "shipment_items": {
        "required_columns": ["orderNo", "branch", "item", "qty"],
        "optional_columns": ["trackingNo", "branchKey", "createdAt", "category"],
        "numeric_columns": ["qty"],
        "forbidden_values": {
            "branch": [None, ""],
            "item": [None, ""],
        },
    },
}


def _check_required_columns(df: pd.DataFrame, label: str, schema: Dict) -> bool:
    """Check that all required columns exist in DataFrame.

    Args:
        df: DataFrame to validate.
        label: Feed label (for error logging).
        schema: Schema definition with 'required_columns' key.

    Returns:
        True if all required columns present, False otherwise.
    """
    required = schema.get("required_columns", [])
    missing = [col for col in required if col not in df.columns]

    if missing:
        logger.error(f"{label} missing required columns: {missing}")
        return False

    return True


def _check_numeric_columns(df: pd.DataFrame, label: str, schema: Dict) -> bool:
    """Check that numeric columns contain valid numeric data."""
    for col in schema.get("numeric_columns", []):
        if col not in df.columns:
            continue

        if df[col].isna().all():
            logger.error(f"{label}: Column {col} has all NaN values")
            return False

        if not pd.api.types.is_numeric_dtype(df[col]):
            logger.error(f"{label}: Column {col} is not numeric")
            return False

    return True


def _check_forbidden_values(df: pd.DataFrame, label: str, schema: Dict) -> bool:
    """Check for forbidden values in columns.

    None in a forbidden list means "no NaN allowed".
    """
    for col, forbidden in schema.get("forbidden_values", {}).items():
        if col not in df.columns or forbidden is None:
            continue

        for val in forbidden:
            if val is None:
                if df[col].isna().any():
                    logger.error(f"{label}: Column {col} contains NaN values")
                    return False
            elif (df[col] == val).any():
                logger.error(f"{label}: Column {col} contains forbidden value {val!r}")
                return False

    return True


def _check_dataframe_not_empty(df: pd.DataFrame, label: str) -> bool:
    if df.empty:
        logger.error(f"{label}: Empty feed (no data rows)")
        return False
    return True


def validate_frame(df: pd.DataFrame, schema_name: str, label: str = "") -> bool:
    """Validate a feed DataFrame against an expected schema.

    Performs, in order:
    - Ensures DataFrame is not empty
    - Checks required columns exist
    - Validates numeric columns
    - Checks for forbidden values (NaN, blank strings)

    Args:
        df: Flattened feed records.
        schema_name: Key of EXPECTED_SCHEMAS ("orders", "shipment_items").
        label: Name used in log messages; defaults to schema_name.

    Returns:
        True if validation passes, False otherwise.

    Raises:
        ValueError: If schema_name is not a recognized schema.
    """
    if schema_name not in EXPECTED_SCHEMAS:
        raise ValueError(f"Unknown schema: {schema_name}")

    schema = EXPECTED_SCHEMAS[schema_name]
    label = label or schema_name

    if not _check_dataframe_not_empty(df, label):
        return False

    if not _check_required_columns(df, label, schema):
        return False

    if not _check_numeric_columns(df, label, schema):
        return False

    if not _check_forbidden_values(df, label, schema):
        return False

    return True
