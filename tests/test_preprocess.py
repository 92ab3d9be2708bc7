import logging

import pandas as pd
import pytest

from engines.models import SalesRecord
from utils.preprocess import clean_sales, history_frame, to_timestamp


def test_history_frame_sorts_and_recomputes_revenue():
    records = [
        SalesRecord(quantity=2, unit_price=3.0, date="2025-01-03"),
        SalesRecord(quantity=1, unit_price=3.0, date="2025-01-01", revenue=3.0),
    ]
    df = history_frame(records)
    assert list(df["quantity"]) == [1, 2]
    assert list(df["revenue"]) == [3.0, 6.0]


def test_history_frame_logs_revenue_mismatch(caplog):
    records = [SalesRecord(quantity=2, unit_price=3.0, date="2025-01-01", revenue=100.0)]
    with caplog.at_level(logging.WARNING, logger="utils.preprocess"):
        df = history_frame(records)
    assert df["revenue"].iloc[0] == 6.0
    assert "stored revenue" in caplog.text


def test_history_frame_empty():
    assert history_frame([]).empty


def test_to_timestamp_normalizes_timezones():
    ts = to_timestamp("2025-01-01T05:00:00+05:00")
    assert ts == pd.Timestamp("2025-01-01 00:00:00")
    assert ts.tzinfo is None
    with pytest.raises(ValueError):
        to_timestamp(None)
    with pytest.raises(ValueError):
        to_timestamp("yesterday-ish")


def test_clean_sales_accepts_variant_columns():
    raw = pd.DataFrame({
        "SKU": ["B", "A", "A"],
        "Order_Date": ["2025-01-02", "2025-01-02", "not a date"],
        "units_sold": [3, "4", 5],
        "price": [2.5, 1.0, 1.0],
    })
    df = clean_sales(raw)
    assert {"product_id", "date", "quantity", "unit_price"} <= set(df.columns)
    assert len(df) == 2
    assert list(df["product_id"]) == ["A", "B"]
    assert list(df["quantity"]) == [4, 3]


def test_clean_sales_drops_quantities_a_sales_record_would_reject(caplog):
    raw = pd.DataFrame({
        "date": ["2025-01-01"] * 5,
        "product_id": ["A", "B", "C", "D", "E"],
        "quantity": [2, 1.5, -3, "lots", 4],
        "unit_price": [1.0, 1.0, 1.0, 1.0, -2.0],
    })
    with caplog.at_level(logging.WARNING, logger="utils.preprocess"):
        df = clean_sales(raw)
    assert list(df["product_id"]) == ["A"]
    assert list(df["quantity"]) == [2]
    assert "Dropped 4 sales row(s)" in caplog.text


def test_clean_sales_requires_columns():
    with pytest.raises(ValueError):
        clean_sales(pd.DataFrame({"date": ["2025-01-01"], "quantity": [1]}))
    with pytest.raises(ValueError):
        clean_sales(pd.DataFrame())


def test_sales_record_validation():
    with pytest.raises(ValueError):
        SalesRecord(quantity=-1, unit_price=1.0, date="2025-01-01")
    with pytest.raises(ValueError):
        SalesRecord(quantity=1.5, unit_price=1.0, date="2025-01-01")
    record = SalesRecord.from_dict({"quantity": 2, "price": 4.5, "date": "2025-03-01", "productId": 7})
    assert record.unit_price == 4.5
    assert record.product_id == "7"
    assert record.computed_revenue == 9.0
