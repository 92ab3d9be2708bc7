from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from .schemas import (
    BulkPricingRequest,
    CleanupResponse,
    DemandRequest,
    DemandResponse,
    GenerateRequest,
    GenerateResponse,
    HistoryResponse,
    PredictionOut,
    PricingRequest,
    PricingResponse,
    ProductIn,
    SalesRecordIn,
)
from .deps import get_forecast_engine, get_pricing_engine, get_store
from engines.forecast_engine import ForecastEngine
from engines.models import ProductSnapshot, SalesRecord
from engines.pricing_engine import PricingEngine
from storage.interface import PredictionStore, StorageError
from utils.config import PREDICTION_HISTORY_LIMIT, PREDICTION_RETENTION_DAYS
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _product(p: ProductIn) -> ProductSnapshot:
    return ProductSnapshot(**p.dict())


def _sales(records: List[SalesRecordIn]) -> List[SalesRecord]:
    return [SalesRecord(**r.dict()) for r in records]


def _save(store: PredictionStore, record: dict) -> tuple[dict, bool]:
    """Persist a computed prediction; the result is returned even if saving fails."""
    try:
        return store.save_prediction(record), True
    except StorageError as e:
        logger.error("Failed to save %s prediction for %s: %s", record.get("predictionType"), record.get("productId"), e)
        return record, False


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/pricing", response_model=PricingResponse)
def dynamic_pricing(
    payload: PricingRequest,
    engine: PricingEngine = Depends(get_pricing_engine),
):
    try:
        result = engine.calculate(
            _product(payload.product),
            _sales(payload.sales),
            [_product(p) for p in payload.similar_products],
            payload.market_conditions,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PricingResponse(**result.to_dict())


@router.post("/pricing/bulk", response_model=List[PricingResponse])
def bulk_dynamic_pricing(
    payload: BulkPricingRequest,
    engine: PricingEngine = Depends(get_pricing_engine),
):
    """Price each item independently; items that fail validation are logged and skipped."""
    results = []
    for item in payload.items[: payload.limit]:
        try:
            result = engine.calculate(_product(item.product), _sales(item.sales))
        except ValueError as e:
            logger.error("Failed to calculate pricing for product %s: %s", item.product.product_id, e)
            continue
        results.append(PricingResponse(**result.to_dict()))
    return results


@router.post("/predictions/demand", response_model=DemandResponse)
def predict_demand(
    payload: DemandRequest,
    engine: ForecastEngine = Depends(get_forecast_engine),
    store: PredictionStore = Depends(get_store),
):
    try:
        forecast = engine.predict_demand(_product(payload.product), _sales(payload.sales), payload.timeframe)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    record, saved = _save(store, forecast.to_dict())
    return DemandResponse(saved=saved, data=PredictionOut(**record))


@router.post("/predictions/generate", response_model=GenerateResponse)
def generate_predictions(
    payload: GenerateRequest,
    engine: ForecastEngine = Depends(get_forecast_engine),
    store: PredictionStore = Depends(get_store),
):
    """Forecast demand and price for every product from the posted sales."""
    try:
        products = [_product(p) for p in payload.products]
        sales = _sales(payload.sales)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if any(r.product_id is None for r in sales):
        raise HTTPException(status_code=400, detail="every sales record needs a product_id")

    by_product: dict[str, List[SalesRecord]] = {}
    for r in sales:
        by_product.setdefault(r.product_id, []).append(r)

    def history(product_id: str, days_back: int) -> List[SalesRecord]:
        # posted sales apply to this request only; other products read the store
        if product_id in by_product:
            return by_product[product_id]
        return store.get_sales_history_for_product(product_id, days_back)

    predictions = engine.generate(products, history)
    rows = []
    saved_count = 0
    for prediction in predictions:
        record, saved = _save(store, prediction.to_dict())
        saved_count += int(saved)
        rows.append(PredictionOut(**record))
    return GenerateResponse(count=len(rows), saved=saved_count, predictions=rows)


@router.get("/predictions/{product_id}/history", response_model=HistoryResponse)
def prediction_history(
    product_id: str,
    limit: int = PREDICTION_HISTORY_LIMIT,
    store: PredictionStore = Depends(get_store),
):
    records = store.get_prediction_history(product_id, limit)
    return HistoryResponse(count=len(records), data=[PredictionOut(**r) for r in records])


@router.delete("/predictions/cleanup", response_model=CleanupResponse)
def cleanup_predictions(
    days: int = PREDICTION_RETENTION_DAYS,
    store: PredictionStore = Depends(get_store),
):
    if days < 0:
        raise HTTPException(status_code=400, detail="days must be >= 0")
    deleted = store.clear_old_predictions(days)
    return CleanupResponse(message=f"Cleaned up predictions older than {days} days", deleted=deleted)
