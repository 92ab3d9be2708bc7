import pandas as pd

from engines.models import ProductSnapshot, SalesRecord

NOW = pd.Timestamp("2025-06-15 12:00:00")


def make_sales(quantities, start="2025-01-01", unit_price=10.0, freq="D"):
    dates = pd.date_range(start, periods=len(quantities), freq=freq)
    return [SalesRecord(quantity=q, unit_price=unit_price, date=d) for q, d in zip(quantities, dates)]


def make_product(price=100.0, cost=60.0, stock_level=100, expiry_date=None, product_id="P1", category=None):
    return ProductSnapshot(
        price=price,
        cost=cost,
        stock_level=stock_level,
        expiry_date=expiry_date,
        product_id=product_id,
        category=category,
    )
