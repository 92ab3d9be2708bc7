"""Domain types shared by the demand, pricing and forecast engines.

Inputs (SalesRecord, ProductSnapshot) validate their shape on construction and
raise ValueError for malformed values. Outputs are immutable and serialise to
the camelCase field names consumed by existing clients via ``to_dict``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

import pandas as pd

from utils.preprocess import to_timestamp


class Strategy(str, Enum):
    DEMAND_BASED = "demand_based"
    EXPIRY_BASED = "expiry_based"
    HYBRID = "hybrid"
    COMPETITIVE = "competitive"


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


def _first(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in data and data[k] is not None:
            return data[k]
    return default


def _non_negative(name: str, value: Any) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(v) or v < 0:
        raise ValueError(f"{name} must be >= 0, got {value!r}")
    return v


def _count(name: str, value: Any) -> int:
    v = _non_negative(name, value)
    if v != int(v):
        raise ValueError(f"{name} must be a whole number, got {value!r}")
    return int(v)


@dataclass(frozen=True)
class SalesRecord:
    """One sales transaction. ``revenue`` is the stored figure, if any."""

    quantity: int
    unit_price: float
    date: pd.Timestamp
    revenue: Optional[float] = None
    product_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "quantity", _count("quantity", self.quantity))
        object.__setattr__(self, "unit_price", _non_negative("unit_price", self.unit_price))
        object.__setattr__(self, "date", to_timestamp(self.date, "date"))
        if self.revenue is not None:
            try:
                object.__setattr__(self, "revenue", float(self.revenue))
            except (TypeError, ValueError):
                raise ValueError(f"revenue must be a number, got {self.revenue!r}") from None

    @property
    def computed_revenue(self) -> float:
        return self.quantity * self.unit_price

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SalesRecord":
        pid = _first(data, "product_id", "productId")
        return cls(
            quantity=_first(data, "quantity", "units_sold", default=0),
            unit_price=_first(data, "unit_price", "unitPrice", "price", default=0.0),
            date=_first(data, "date"),
            revenue=_first(data, "revenue"),
            product_id=str(pid) if pid is not None else None,
        )


@dataclass(frozen=True)
class ProductSnapshot:
    price: float
    stock_level: int = 0
    cost: Optional[float] = None
    expiry_date: Optional[pd.Timestamp] = None
    product_id: Optional[str] = None
    category: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "price", _non_negative("price", self.price))
        object.__setattr__(self, "stock_level", _count("stock_level", self.stock_level))
        if self.cost is not None:
            object.__setattr__(self, "cost", _non_negative("cost", self.cost))
        if self.expiry_date is not None:
            object.__setattr__(self, "expiry_date", to_timestamp(self.expiry_date, "expiry_date"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProductSnapshot":
        pid = _first(data, "product_id", "productId", "id", "_id")
        category = _first(data, "category", "category_id", "categoryId")
        return cls(
            price=_first(data, "price", default=0.0),
            stock_level=_first(data, "stock_level", "stockLevel", default=0),
            cost=_first(data, "cost"),
            expiry_date=_first(data, "expiry_date", "expiryDate"),
            product_id=str(pid) if pid is not None else None,
            category=str(category) if category is not None else None,
        )


@dataclass(frozen=True)
class PricingFactors:
    demand_score: float
    expiry_urgency: float
    competition_factor: float
    seasonality_factor: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "demandScore": self.demand_score,
            "expiryUrgency": self.expiry_urgency,
            "competitionFactor": self.competition_factor,
            "seasonalityFactor": self.seasonality_factor,
        }


@dataclass(frozen=True)
class PricingResult:
    current_price: float
    recommended_price: float
    price_change: float
    change_percentage: float
    confidence: float
    strategy: Strategy
    factors: Tuple[str, ...]
    explanation: str
    metadata: PricingFactors
    product_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "currentPrice": self.current_price,
            "recommendedPrice": self.recommended_price,
            "priceChange": self.price_change,
            "changePercentage": self.change_percentage,
            "confidence": self.confidence,
            "strategy": self.strategy.value,
            "factors": list(self.factors),
            "explanation": self.explanation,
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class DemandForecast:
    current_value: float
    predicted_value: float
    confidence: float
    timeframe: str
    trend: Trend = Trend.STABLE
    growth_rate: float = 0.0
    product_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    prediction_type = "demand"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "predictionType": self.prediction_type,
            "currentValue": self.current_value,
            "predictedValue": self.predicted_value,
            "confidence": self.confidence,
            "timeframe": self.timeframe,
            "trend": self.trend.value,
            "growthRate": self.growth_rate,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class PriceOptimization:
    current_value: float
    predicted_value: float
    confidence: float
    timeframe: str
    product_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    prediction_type = "price"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "predictionType": self.prediction_type,
            "currentValue": self.current_value,
            "predictedValue": self.predicted_value,
            "confidence": self.confidence,
            "timeframe": self.timeframe,
            "metadata": dict(self.metadata),
        }
