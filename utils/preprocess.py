from __future__ import annotations

from typing import Any, Iterable

import pandas as pd

from utils.config import REVENUE_TOLERANCE
from utils.logger import get_logger

logger = get_logger(__name__)

_ACCEPTABLE_DATE_COLUMNS = ["date", "dates", "order_date", "transaction_date"]
_ACCEPTABLE_QUANTITY_COLUMNS = ["quantity", "units_sold", "units", "sales_qty"]
_ACCEPTABLE_PRICE_COLUMNS = ["unit_price", "unitprice", "price"]
_ACCEPTABLE_PRODUCT_COLUMNS = ["product_id", "productid", "sku"]

HISTORY_COLUMNS = ["date", "quantity", "unit_price", "revenue"]


def to_timestamp(value: Any, name: str = "date") -> pd.Timestamp:
    """Parse ``value`` into a naive UTC timestamp, raising ValueError when malformed."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"{name} is required")
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid {name}: {value!r}") from e
    if pd.isna(ts):
        raise ValueError(f"Invalid {name}: {value!r}")
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def history_frame(sales_history: Iterable[Any]) -> pd.DataFrame:
    """Build a date-ascending frame from SalesRecords.

    Revenue is always recomputed as quantity * unit_price. A stored revenue that
    disagrees is kept out of the frame and logged as a data-quality issue.
    """
    rows = []
    mismatches = 0
    for r in sales_history:
        revenue = r.computed_revenue
        stored = r.revenue
        if stored is not None and abs(stored - revenue) > REVENUE_TOLERANCE:
            mismatches += 1
        rows.append((r.date, r.quantity, r.unit_price, revenue))
    if mismatches:
        logger.warning(
            "%d sales record(s) have stored revenue differing from quantity * unit_price; using recomputed revenue",
            mismatches,
        )

    df = pd.DataFrame.from_records(rows, columns=HISTORY_COLUMNS)
    if df.empty:
        return df
    # stable sort keeps same-timestamp records in input order
    return df.sort_values("date", kind="mergesort").reset_index(drop=True)


def _resolve(df: pd.DataFrame, candidates: list[str], canonical: str, original_cols: list[str], required: bool = True) -> None:
    col = next((c for c in candidates if c in df.columns), None)
    if not col:
        if required:
            raise ValueError(f"No {canonical} column found. Expected one of {candidates}. Got: {original_cols}")
        return
    if col != canonical:
        df.rename(columns={col: canonical}, inplace=True)


def clean_sales(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize and validate raw sales data.

    Accepts variant column names, normalizes them to canonical:
    date, product_id, quantity, unit_price (and revenue when present).
    Raises ValueError with a clear message instead of triggering a KeyError
    when expected columns are absent.
    """
    if df is None or df.empty:
        raise ValueError("Provided sales data is empty.")

    original_cols = list(df.columns)
    df = df.copy()
    # Normalize column names to lowercase stripped for matching
    lower_map = {c: c.strip().lower() for c in df.columns}
    df.rename(columns=lower_map, inplace=True)

    _resolve(df, _ACCEPTABLE_DATE_COLUMNS, "date", original_cols)
    _resolve(df, _ACCEPTABLE_QUANTITY_COLUMNS, "quantity", original_cols)
    _resolve(df, _ACCEPTABLE_PRODUCT_COLUMNS, "product_id", original_cols)
    _resolve(df, _ACCEPTABLE_PRICE_COLUMNS, "unit_price", original_cols, required=False)
    if "unit_price" not in df.columns:
        df["unit_price"] = 0.0

    # Parse dates; drop rows with invalid date/product
    df["date"] = pd.to_datetime(df["date"], errors="coerce", utc=True).dt.tz_localize(None)
    before = len(df)
    df = df.dropna(subset=["product_id", "date"])
    if len(df) < before:
        logger.warning("Dropped %d sales row(s) with missing product or unparsable date", before - len(df))
    df["product_id"] = df["product_id"].astype(str)

    # Clean numerical columns; rows SalesRecord would reject are dropped, not repaired
    quantity = pd.to_numeric(df["quantity"], errors="coerce")
    unit_price = pd.to_numeric(df["unit_price"], errors="coerce").fillna(0.0)
    bad = quantity.isna() | (quantity < 0) | (quantity != quantity.round()) | (unit_price < 0)
    if bad.any():
        logger.warning("Dropped %d sales row(s) with a negative, fractional or non-numeric quantity or price", int(bad.sum()))
    df = df.loc[~bad].copy()
    df["quantity"] = quantity[~bad].astype(int)
    df["unit_price"] = unit_price[~bad]
    if "revenue" in df.columns:
        df["revenue"] = pd.to_numeric(df["revenue"], errors="coerce")

    # Sort for downstream operations
    df = df.sort_values(["product_id", "date"], kind="mergesort").reset_index(drop=True)
    return df
