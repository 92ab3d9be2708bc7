from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, validator

from utils.config import BULK_PRICING_LIMIT


class SalesRecordIn(BaseModel):
    date: str
    quantity: int = Field(ge=0)
    unit_price: float = Field(0.0, ge=0)
    revenue: Optional[float] = None
    product_id: Optional[str] = None


class ProductIn(BaseModel):
    product_id: Optional[str] = None
    price: float = Field(ge=0)
    cost: Optional[float] = Field(None, ge=0)
    stock_level: int = Field(0, ge=0)
    expiry_date: Optional[str] = None
    category: Optional[str] = None


class PricingRequest(BaseModel):
    product: ProductIn
    sales: List[SalesRecordIn] = []
    similar_products: List[ProductIn] = []
    market_conditions: Dict[str, Any] = {}

    @validator("product")
    def _priced(cls, v):  # type: ignore
        if v.price <= 0:
            raise ValueError("product price must be greater than 0")
        return v


class BulkPricingItem(BaseModel):
    product: ProductIn
    sales: List[SalesRecordIn] = []


class BulkPricingRequest(BaseModel):
    items: List[BulkPricingItem]
    limit: int = Field(BULK_PRICING_LIMIT, ge=1)


class DemandRequest(BaseModel):
    product: ProductIn
    sales: List[SalesRecordIn] = []
    timeframe: str = "month"

    @validator("timeframe")
    def _timeframe(cls, v):  # type: ignore
        if v not in {"week", "month", "quarter"}:
            raise ValueError("timeframe must be one of week, month, quarter")
        return v


class GenerateRequest(BaseModel):
    products: List[ProductIn]
    sales: List[SalesRecordIn] = []


class PricingFactorsOut(BaseModel):
    demand_score: float = Field(alias="demandScore")
    expiry_urgency: float = Field(alias="expiryUrgency")
    competition_factor: float = Field(alias="competitionFactor")
    seasonality_factor: float = Field(alias="seasonalityFactor")


class PricingResponse(BaseModel):
    product_id: Optional[str] = Field(None, alias="productId")
    current_price: float = Field(alias="currentPrice")
    recommended_price: float = Field(alias="recommendedPrice")
    price_change: float = Field(alias="priceChange")
    change_percentage: float = Field(alias="changePercentage")
    confidence: float
    strategy: str
    factors: List[str]
    explanation: str
    metadata: PricingFactorsOut


class PredictionOut(BaseModel):
    id: Optional[str] = None
    created_at: Optional[str] = Field(None, alias="createdAt")
    product_id: Optional[str] = Field(None, alias="productId")
    prediction_type: str = Field(alias="predictionType")
    current_value: float = Field(alias="currentValue")
    predicted_value: float = Field(alias="predictedValue")
    confidence: float
    timeframe: str
    trend: Optional[str] = None
    growth_rate: Optional[float] = Field(None, alias="growthRate")
    metadata: Dict[str, Any] = {}


class DemandResponse(BaseModel):
    saved: bool
    data: PredictionOut


class GenerateResponse(BaseModel):
    count: int
    saved: int
    predictions: List[PredictionOut]


class HistoryResponse(BaseModel):
    count: int
    data: List[PredictionOut]


class CleanupResponse(BaseModel):
    message: str
    deleted: int
