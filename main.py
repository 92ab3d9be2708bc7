"""CLI / programmatic batch pipeline (non-HTTP)."""
from __future__ import annotations

from typing import Optional, Tuple

import pandas as pd
from engines import ForecastEngine, PricingEngine
from storage import InMemoryStore, StorageError
from utils.config import FORECAST_HISTORY_DAYS
from utils.data_loader import load_products_csv, load_sales_csv, records_by_product
from utils.logger import get_logger
from utils.preprocess import to_timestamp

logger = get_logger(__name__)


def run_pipeline(sales_csv: str, products_csv: str, as_of: Optional[str] = None) -> Tuple[pd.DataFrame, pd.DataFrame]:
    sales = load_sales_csv(sales_csv)
    products = load_products_csv(products_csv)
    # Historical files: measure "days back" from the end of the data unless told otherwise
    now = to_timestamp(as_of, "as_of") if as_of else sales["date"].max()

    store = InMemoryStore(clock=lambda: now)
    for product_id, records in records_by_product(sales).items():
        store.add_sales(product_id, records)

    forecast_engine = ForecastEngine()
    pricing_engine = PricingEngine()

    predictions = forecast_engine.generate(products, store.get_sales_history_for_product)
    saved = []
    for prediction in predictions:
        record = prediction.to_dict()
        try:
            saved.append(store.save_prediction(record))
        except StorageError as e:
            logger.error("Could not save %s prediction for %s: %s", prediction.prediction_type, prediction.product_id, e)
            saved.append(record)

    pricing_rows = []
    for product in products:
        similar = [p for p in products if p.category == product.category and p.product_id != product.product_id] if product.category else []
        history = store.get_sales_history_for_product(product.product_id, FORECAST_HISTORY_DAYS)
        try:
            result = pricing_engine.calculate(product, history, similar, now=now)
        except ValueError as e:
            logger.error("Failed to calculate pricing for product %s: %s", product.product_id, e)
            continue
        row = result.to_dict()
        metadata = row.pop("metadata")
        row["factors"] = ";".join(row["factors"])
        row.update(metadata)
        pricing_rows.append(row)

    predictions_df = pd.json_normalize(saved) if saved else pd.DataFrame()
    return predictions_df, pd.DataFrame.from_records(pricing_rows)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Run demand forecasts and dynamic pricing over sales and product CSVs")
    parser.add_argument("sales_csv", help="Path to sales CSV (date, product_id, quantity, unit_price[, revenue])")
    parser.add_argument("products_csv", help="Path to products CSV (product_id, price[, cost, stock_level, expiry_date, category])")
    parser.add_argument("--as-of", default=None, help="Reference date (defaults to the latest sale date)")
    parser.add_argument("--out", default="outputs/predictions.csv", help="Predictions CSV path")
    parser.add_argument("--pricing-out", default="outputs/pricing.csv", help="Pricing CSV path")
    args = parser.parse_args()

    predictions_df, pricing_df = run_pipeline(args.sales_csv, args.products_csv, as_of=args.as_of)
    predictions_df.to_csv(args.out, index=False)
    pricing_df.to_csv(args.pricing_out, index=False)
    print(f"Predictions written to {args.out}; pricing written to {args.pricing_out}")
