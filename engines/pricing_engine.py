from __future__ import annotations

import math
from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence

import pandas as pd

from engines.demand_scorer import DemandScorer
from engines.models import PricingFactors, PricingResult, ProductSnapshot, SalesRecord, Strategy
from utils.calculations import band_lookup
from utils.config import (
    APPROACHING_EXPIRY_MULTIPLIER,
    APPROACHING_EXPIRY_THRESHOLD,
    COMPETITION_OVERPRICED,
    COMPETITION_UNDERPRICED,
    COMPETITIVE_TAG_BELOW,
    CONFIDENCE_BASE,
    CONFIDENCE_CAP,
    CONFIDENCE_FACTOR_BONUS,
    CONFIDENCE_HISTORY_BONUS,
    COST_FLOOR_MARKUP,
    EXPIRY_BANDS,
    EXPIRY_DEFAULT_URGENCY,
    HIGH_DEMAND_MULTIPLIER,
    HIGH_DEMAND_THRESHOLD,
    LOW_DEMAND_MULTIPLIER,
    MAX_PRICE_MULTIPLE,
    MEDIUM_DEMAND_MULTIPLIER,
    MEDIUM_DEMAND_THRESHOLD,
    MIN_RECORDS_SEASONAL_FACTOR,
    MODERATE_CHANGE_PCT,
    NEUTRAL_SCORE,
    PREMIUM_TAG_ABOVE,
    SEASONAL_LOW,
    SEASONAL_LOW_TAG_BELOW,
    SEASONAL_PEAK,
    SEASONAL_PEAK_TAG_ABOVE,
    SIGNIFICANT_CHANGE_PCT,
    STRONG_DEMAND_EXPLANATION,
    URGENT_EXPIRY_EXPLANATION,
    URGENT_EXPIRY_MULTIPLIER,
    URGENT_EXPIRY_THRESHOLD,
)
from utils.logger import get_logger
from utils.preprocess import history_frame, to_timestamp

logger = get_logger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60


class PricingEngine:
    """
    Combines demand, expiry urgency, competitive position and seasonality into a
    bounded price recommendation with a strategy label and explanation.

    All time-dependent factors use one ``now`` per call, so identical inputs
    and the same ``now`` always give identical results.
    """

    def __init__(self, demand_scorer: Optional[DemandScorer] = None):
        self.demand_scorer = demand_scorer or DemandScorer()

    def calculate(
        self,
        product: ProductSnapshot,
        sales_history: Sequence[SalesRecord],
        similar_products: Sequence[ProductSnapshot] = (),
        market_conditions: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> PricingResult:
        """
        Args:
            product: product being priced; price must be > 0
            sales_history: sales records in any order
            similar_products: competitor snapshots (zero-priced ones are ignored)
            market_conditions: accepted for interface compatibility, unused
            now: reference time for expiry and seasonality (defaults to current UTC time)
        Returns:
            PricingResult
        """
        if product.price <= 0:
            raise ValueError(f"product price must be > 0 to compute pricing, got {product.price}")
        now_ts = _now(now)
        sales_history = list(sales_history)

        demand_score = self.demand_scorer.score(product, sales_history)
        expiry_urgency = self.expiry_urgency(product, now_ts)
        competition_factor = self.competition_factor(product, similar_products)
        seasonality_factor = self.seasonality_factor(sales_history, now_ts)

        base_price = product.price
        multiplier = 1.0
        strategy = Strategy.DEMAND_BASED
        factors: List[str] = []

        if demand_score > HIGH_DEMAND_THRESHOLD:
            multiplier *= HIGH_DEMAND_MULTIPLIER
            factors.append("high_demand")
        elif demand_score > MEDIUM_DEMAND_THRESHOLD:
            multiplier *= MEDIUM_DEMAND_MULTIPLIER
            factors.append("medium_demand")
        else:
            multiplier *= LOW_DEMAND_MULTIPLIER
            factors.append("low_demand")

        if expiry_urgency > URGENT_EXPIRY_THRESHOLD:
            multiplier *= URGENT_EXPIRY_MULTIPLIER
            factors.append("urgent_expiry")
            strategy = Strategy.EXPIRY_BASED
        elif expiry_urgency > APPROACHING_EXPIRY_THRESHOLD:
            multiplier *= APPROACHING_EXPIRY_MULTIPLIER
            factors.append("approaching_expiry")

        multiplier *= competition_factor
        if competition_factor < COMPETITIVE_TAG_BELOW:
            factors.append("competitive_pricing")
        if competition_factor > PREMIUM_TAG_ABOVE:
            factors.append("premium_positioning")

        multiplier *= seasonality_factor
        if seasonality_factor > SEASONAL_PEAK_TAG_ABOVE:
            factors.append("seasonal_peak")
        if seasonality_factor < SEASONAL_LOW_TAG_BELOW:
            factors.append("seasonal_low")

        recommended = self.bounded_price(base_price, product.cost, base_price * multiplier)
        price_change = recommended - base_price
        change_pct = price_change / base_price * 100

        confidence = self.confidence(
            len(sales_history), demand_score, expiry_urgency, product.expiry_date is not None
        )
        explanation = self.explain(strategy, demand_score, expiry_urgency, change_pct)

        logger.debug(
            "Pricing product %s: multiplier=%.4f recommended=%.2f strategy=%s factors=%s",
            product.product_id, multiplier, recommended, strategy.value, factors,
        )
        return PricingResult(
            product_id=product.product_id,
            current_price=base_price,
            recommended_price=round(recommended, 2),
            price_change=round(price_change, 2),
            change_percentage=round(change_pct, 1),
            confidence=confidence,
            strategy=strategy,
            factors=tuple(dict.fromkeys(factors)),
            explanation=explanation,
            metadata=PricingFactors(
                demand_score=demand_score,
                expiry_urgency=expiry_urgency,
                competition_factor=competition_factor,
                seasonality_factor=seasonality_factor,
            ),
        )

    @staticmethod
    def expiry_urgency(product: ProductSnapshot, now: pd.Timestamp) -> float:
        if product.expiry_date is None:
            return 0.0
        seconds = (product.expiry_date - now).total_seconds()
        days_until_expiry = math.ceil(seconds / _SECONDS_PER_DAY)
        return band_lookup(days_until_expiry, EXPIRY_BANDS, EXPIRY_DEFAULT_URGENCY)

    @staticmethod
    def competition_factor(product: ProductSnapshot, similar_products: Sequence[ProductSnapshot]) -> float:
        prices = [p.price for p in similar_products if p.price > 0]
        if not prices:
            return 1.0
        ratio = product.price / (sum(prices) / len(prices))
        for threshold, factor in COMPETITION_OVERPRICED:
            if ratio > threshold:
                return factor
        for threshold, factor in COMPETITION_UNDERPRICED:
            if ratio < threshold:
                return factor
        return 1.0

    @staticmethod
    def seasonality_factor(sales_history: Sequence[SalesRecord], now: pd.Timestamp) -> float:
        if len(sales_history) < MIN_RECORDS_SEASONAL_FACTOR:
            return 1.0
        history = history_frame(sales_history)
        monthly = history.groupby(history["date"].dt.month)["quantity"].sum()
        yearly_average = float(monthly.sum()) / 12
        if yearly_average == 0:
            return 1.0
        ratio = float(monthly.get(now.month, 0)) / yearly_average
        for threshold, factor in SEASONAL_PEAK:
            if ratio > threshold:
                return factor
        for threshold, factor in SEASONAL_LOW:
            if ratio < threshold:
                return factor
        return 1.0

    @staticmethod
    def bounded_price(base_price: float, cost: Optional[float], candidate: float) -> float:
        """Cap at MAX_PRICE_MULTIPLE x base price; floor at COST_FLOOR_MARKUP x cost when cost is known.

        The cost floor wins if the two bounds cross.
        """
        price = min(base_price * MAX_PRICE_MULTIPLE, candidate)
        if cost is not None:
            price = max(cost * COST_FLOOR_MARKUP, price)
        return price

    @staticmethod
    def confidence(data_points: int, demand_score: float, expiry_urgency: float, has_expiry_date: bool) -> float:
        confidence = CONFIDENCE_BASE
        for min_records, bonus in CONFIDENCE_HISTORY_BONUS:
            if data_points >= min_records:
                confidence += bonus
                break
        if demand_score != NEUTRAL_SCORE:
            confidence += CONFIDENCE_FACTOR_BONUS
        if expiry_urgency > 0:
            confidence += CONFIDENCE_FACTOR_BONUS
        if has_expiry_date:
            confidence += CONFIDENCE_FACTOR_BONUS
        return round(min(CONFIDENCE_CAP, confidence), 2)

    @staticmethod
    def explain(strategy: Strategy, demand_score: float, expiry_urgency: float, change_percentage: float) -> str:
        templates = {
            Strategy.DEMAND_BASED: "Based on {} demand patterns".format(
                "strong" if demand_score > STRONG_DEMAND_EXPLANATION else "moderate"
            ),
            Strategy.EXPIRY_BASED: "Inventory clearance for {} expiring products".format(
                "urgently" if expiry_urgency > URGENT_EXPIRY_EXPLANATION else "approaching"
            ),
            Strategy.HYBRID: "Balanced approach considering both demand patterns and inventory age",
            Strategy.COMPETITIVE: "Market-aligned pricing based on competitor analysis",
        }
        direction = "increase" if change_percentage >= 0 else "decrease"
        size = abs(change_percentage)
        if size > SIGNIFICANT_CHANGE_PCT:
            magnitude = "significant"
        elif size > MODERATE_CHANGE_PCT:
            magnitude = "moderate"
        else:
            magnitude = "slight"
        return f"{templates[strategy]}. Recommended {magnitude} {direction} to optimize revenue."


def _now(now: Optional[datetime]) -> pd.Timestamp:
    if now is None:
        return pd.Timestamp.now(tz="UTC").tz_localize(None)
    return to_timestamp(now, "now")
