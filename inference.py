"""Inference helper module for callers that do not run the web server.

Provides the three entry points of the prediction core:

- ``calculate_dynamic_pricing(product, sales_history, similar_products, market_conditions)``
- ``predict_product_demand(product, sales_history, timeframe)``
- ``generate_predictions_for_products(products, store)``

Products and sales records may be given as engine models or as plain dicts
(camelCase or snake_case keys). Results are returned as JSON-ready dicts.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from engines import ForecastEngine, PricingEngine
from engines.models import ProductSnapshot, SalesRecord
from storage.interface import PredictionStore

ProductLike = Union[ProductSnapshot, Mapping[str, Any]]
RecordLike = Union[SalesRecord, Mapping[str, Any]]


def _product(p: ProductLike) -> ProductSnapshot:
    return p if isinstance(p, ProductSnapshot) else ProductSnapshot.from_dict(p)


def _records(records: Sequence[RecordLike]) -> List[SalesRecord]:
    return [r if isinstance(r, SalesRecord) else SalesRecord.from_dict(r) for r in records or []]


def calculate_dynamic_pricing(
    product: ProductLike,
    sales_history: Sequence[RecordLike],
    similar_products: Sequence[ProductLike] = (),
    market_conditions: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    result = PricingEngine().calculate(
        _product(product),
        _records(sales_history),
        [_product(p) for p in similar_products or []],
        market_conditions,
        now=now,
    )
    return result.to_dict()


def predict_product_demand(product: ProductLike, sales_history: Sequence[RecordLike], timeframe: str = "week") -> Dict[str, Any]:
    return ForecastEngine().predict_demand(_product(product), _records(sales_history), timeframe).to_dict()


def generate_predictions_for_products(products: Sequence[ProductLike], store: PredictionStore) -> List[Dict[str, Any]]:
    predictions = ForecastEngine().generate([_product(p) for p in products], store.get_sales_history_for_product)
    return [p.to_dict() for p in predictions]


__all__ = ["calculate_dynamic_pricing", "predict_product_demand", "generate_predictions_for_products"]
