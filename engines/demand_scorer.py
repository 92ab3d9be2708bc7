from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd

from engines.models import ProductSnapshot, SalesRecord
from utils.calculations import band_lookup, clamp, coefficient_of_variation, linear_regression
from utils.config import (
    MIN_RECORDS_DEMAND,
    MIN_RECORDS_SEASONALITY,
    MIN_RECORDS_STOCKOUT,
    MIN_RECORDS_TREND,
    MIN_RECORDS_VELOCITY,
    NEUTRAL_SCORE,
    SEASONALITY_WEIGHT,
    STOCKOUT_BANDS,
    STOCKOUT_DEFAULT_RISK,
    STOCKOUT_WEIGHT,
    TREND_WEIGHT,
    VELOCITY_NEW_DEMAND_SCORE,
    VELOCITY_NO_DEMAND_SCORE,
    VELOCITY_WEIGHT,
    VELOCITY_WINDOW,
)
from utils.logger import get_logger
from utils.preprocess import history_frame

logger = get_logger(__name__)


@dataclass
class DemandBreakdown:
    trend: float
    seasonality: float
    velocity: float
    stockout: float
    score: float


class DemandScorer:
    """
    Reduces a product's sales history to a demand score in [0, 1].

    The score is a weighted blend of four sub-scores (trend, seasonality,
    velocity, stock-out risk). Each sub-score falls back to 0.5 when the history
    is too short for it, and the whole score is exactly 0.5 below
    ``min_records`` records or when a computation degenerates.
    """

    def __init__(
        self,
        trend_weight: float = TREND_WEIGHT,
        seasonality_weight: float = SEASONALITY_WEIGHT,
        velocity_weight: float = VELOCITY_WEIGHT,
        stockout_weight: float = STOCKOUT_WEIGHT,
        min_records: int = MIN_RECORDS_DEMAND,
        window: int = VELOCITY_WINDOW,
    ):
        self.trend_weight = trend_weight
        self.seasonality_weight = seasonality_weight
        self.velocity_weight = velocity_weight
        self.stockout_weight = stockout_weight
        self.min_records = min_records
        self.window = window

    def score(self, product: ProductSnapshot, sales_history: Sequence[SalesRecord]) -> float:
        return self.breakdown(product, sales_history).score

    def breakdown(self, product: ProductSnapshot, sales_history: Sequence[SalesRecord]) -> DemandBreakdown:
        neutral = DemandBreakdown(NEUTRAL_SCORE, NEUTRAL_SCORE, NEUTRAL_SCORE, NEUTRAL_SCORE, NEUTRAL_SCORE)
        if len(sales_history) < self.min_records:
            return neutral

        history = history_frame(sales_history)
        try:
            trend = self.trend_score(history)
            seasonality = self.seasonality_score(history)
            velocity = self.velocity_score(history)
            stockout = self.stockout_risk(product, history)
        except (ArithmeticError, ValueError, np.linalg.LinAlgError) as e:
            logger.warning("Demand score fell back to neutral for product %s: %s", product.product_id, e)
            return neutral

        total = (
            trend * self.trend_weight
            + seasonality * self.seasonality_weight
            + velocity * self.velocity_weight
            + stockout * self.stockout_weight
        )
        result = DemandBreakdown(trend, seasonality, velocity, stockout, clamp(total, 0.0, 1.0))
        logger.debug("Demand breakdown for product %s: %s", product.product_id, result)
        return result

    # ---- sub-scores; each expects a date-ascending history frame ----

    def trend_score(self, history: pd.DataFrame) -> float:
        if len(history) < MIN_RECORDS_TREND:
            return NEUTRAL_SCORE
        quantities = history["quantity"].astype(float)
        fit = linear_regression(quantities.tolist())
        max_expected_slope = max(1.0, float(quantities.iloc[-1]) / 10)
        normalized = clamp(fit.slope / max_expected_slope, -1.0, 1.0)
        return (normalized + 1) / 2

    def seasonality_score(self, history: pd.DataFrame) -> float:
        if len(history) < MIN_RECORDS_SEASONALITY:
            return NEUTRAL_SCORE
        daily = history.groupby(history["date"].dt.normalize())["quantity"].sum()
        try:
            cv = coefficient_of_variation(daily.tolist())
        except ZeroDivisionError:
            return NEUTRAL_SCORE
        return clamp(cv * 2, 0.0, 1.0)

    def velocity_score(self, history: pd.DataFrame) -> float:
        if len(history) < MIN_RECORDS_VELOCITY:
            return NEUTRAL_SCORE
        newest_first = history["quantity"].iloc[::-1]
        recent = float(newest_first.iloc[: self.window].sum())
        previous = float(newest_first.iloc[self.window : 2 * self.window].sum())
        if previous == 0:
            return VELOCITY_NEW_DEMAND_SCORE if recent > 0 else VELOCITY_NO_DEMAND_SCORE
        growth = (recent - previous) / previous
        return clamp((growth + 1) / 2, 0.0, 1.0)

    def stockout_risk(self, product: ProductSnapshot, history: pd.DataFrame) -> float:
        if len(history) < MIN_RECORDS_STOCKOUT:
            return NEUTRAL_SCORE
        recent = history["quantity"].iloc[-self.window :]
        avg_daily = float(recent.sum()) / len(recent)
        if avg_daily <= 0:
            # nothing selling: no stock-out pressure
            return STOCKOUT_DEFAULT_RISK
        days_of_supply = product.stock_level / avg_daily
        return band_lookup(days_of_supply, STOCKOUT_BANDS, STOCKOUT_DEFAULT_RISK)
