from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import pandas as pd

from engines.models import ProductSnapshot, SalesRecord
from utils.preprocess import clean_sales

REQUIRED_PRODUCT_COLUMNS = {"product_id", "price"}


def load_sales_csv(path: str | Path) -> pd.DataFrame:
    """Read and normalize a sales CSV (see ``clean_sales`` for accepted columns)."""
    return clean_sales(pd.read_csv(path))


def load_products_csv(path: str | Path) -> List[ProductSnapshot]:
    df = pd.read_csv(path, dtype={"product_id": str})
    df.columns = [c.strip().lower() for c in df.columns]
    missing = REQUIRED_PRODUCT_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"CSV missing required columns: {missing}")
    # NaN -> None so optional cost/expiry stay absent
    df = df.astype(object).where(df.notna(), None)
    return [ProductSnapshot.from_dict(row) for row in df.to_dict(orient="records")]


def records_by_product(sales_df: pd.DataFrame) -> Dict[str, List[SalesRecord]]:
    """Split a cleaned sales frame into SalesRecord lists keyed by product id."""
    out: Dict[str, List[SalesRecord]] = {}
    has_revenue = "revenue" in sales_df.columns
    for pid, grp in sales_df.groupby("product_id", sort=False):
        out[str(pid)] = [
            SalesRecord(
                quantity=int(row.quantity),
                unit_price=float(row.unit_price),
                date=row.date,
                revenue=float(row.revenue) if has_revenue and pd.notna(row.revenue) else None,
                product_id=str(pid),
            )
            for row in grp.itertuples(index=False)
        ]
    return out
