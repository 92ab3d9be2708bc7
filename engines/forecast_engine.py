from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from engines.models import DemandForecast, PriceOptimization, ProductSnapshot, SalesRecord, Trend
from utils.calculations import LinearFit, clamp, linear_regression
from utils.config import (
    AVERAGE_FALLBACK_CONFIDENCE,
    FORECAST_HISTORY_DAYS,
    FORECAST_HORIZON_DAYS,
    MIN_REGRESSION_POINTS,
    NO_HISTORY_CONFIDENCE,
    PRICE_CONFIDENCE_RATIO,
    PRICE_TIMEFRAME,
    PRICE_TREND_DOWN,
    PRICE_TREND_SLOPE,
    PRICE_TREND_UP,
    REGRESSION_CONFIDENCE_CAP,
    REGRESSION_CONFIDENCE_FLOOR,
    REGRESSION_CONFIDENCE_SPAN,
    TIMEFRAME_HORIZONS,
)
from utils.logger import get_logger
from utils.preprocess import history_frame

logger = get_logger(__name__)

HistoryProvider = Callable[[str, int], Sequence[SalesRecord]]
Prediction = Union[DemandForecast, PriceOptimization]


@dataclass
class DemandEstimate:
    current_total: int
    predicted_total: int
    confidence: float
    algorithm: str
    fit: Optional[LinearFit] = None

    @property
    def slope(self) -> float:
        return self.fit.slope if self.fit is not None else 0.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ForecastEngine:
    """
    Short-horizon demand forecasting agent.

    Fits an OLS line to (record index, quantity) over the trailing history and
    sums the line over the next ``horizon`` positions. With fewer than three
    records it falls back to the average quantity per record; with no records it
    predicts zero. The same slope drives a trend-based price suggestion.
    """

    def __init__(self, horizon: int = FORECAST_HORIZON_DAYS, history_days: int = FORECAST_HISTORY_DAYS):
        self.horizon = horizon
        self.history_days = history_days

    def _trailing(self, sales_history: Sequence[SalesRecord]) -> pd.DataFrame:
        history = history_frame(sales_history)
        if history.empty:
            return history
        cutoff = history["date"].iloc[-1] - pd.Timedelta(days=self.history_days)
        return history[history["date"] >= cutoff].reset_index(drop=True)

    def estimate(self, history: pd.DataFrame, horizon: int) -> DemandEstimate:
        """Estimate total units over ``horizon`` future records from a date-ascending frame."""
        quantities = history["quantity"].astype(float).tolist() if not history.empty else []
        current_total = int(sum(quantities[-horizon:]))
        suffix = f"{horizon}d"

        if len(quantities) >= MIN_REGRESSION_POINTS:
            try:
                fit = linear_regression(quantities)
            except (ValueError, np.linalg.LinAlgError) as e:
                logger.warning("Regression failed, using average fallback: %s", e)
            else:
                last_x = len(quantities) - 1
                total = sum(max(0.0, fit.predict(last_x + d)) for d in range(1, horizon + 1))
                confidence = clamp(
                    REGRESSION_CONFIDENCE_FLOOR + fit.r_squared * REGRESSION_CONFIDENCE_SPAN,
                    REGRESSION_CONFIDENCE_FLOOR,
                    REGRESSION_CONFIDENCE_CAP,
                )
                return DemandEstimate(
                    current_total=current_total,
                    predicted_total=_round_half_up(total),
                    confidence=confidence,
                    algorithm=f"linear_regression_{suffix}_sum",
                    fit=fit,
                )

        if quantities:
            avg = sum(quantities) / len(quantities)
            return DemandEstimate(
                current_total=current_total,
                predicted_total=_round_half_up(avg * horizon),
                confidence=AVERAGE_FALLBACK_CONFIDENCE,
                algorithm=f"average_fallback_{suffix}",
            )

        return DemandEstimate(
            current_total=0,
            predicted_total=0,
            confidence=NO_HISTORY_CONFIDENCE,
            algorithm="no_history_fallback",
        )

    def predict_demand(
        self,
        product: ProductSnapshot,
        sales_history: Sequence[SalesRecord],
        timeframe: str = "week",
    ) -> DemandForecast:
        """Interactive single-product forecast for ``week``, ``month`` or ``quarter`` (or 7d/30d/90d)."""
        horizon = TIMEFRAME_HORIZONS.get(str(timeframe).lower())
        if horizon is None:
            raise ValueError(f"Unknown timeframe {timeframe!r}; expected one of {sorted(TIMEFRAME_HORIZONS)}")
        estimate = self.estimate(self._trailing(sales_history), horizon)
        return self._demand_forecast(product, estimate, str(timeframe).lower())

    def _demand_forecast(self, product: ProductSnapshot, estimate: DemandEstimate, timeframe: str) -> DemandForecast:
        if estimate.fit is None:
            trend = Trend.STABLE
        elif estimate.slope > PRICE_TREND_SLOPE:
            trend = Trend.INCREASING
        elif estimate.slope < -PRICE_TREND_SLOPE:
            trend = Trend.DECREASING
        else:
            trend = Trend.STABLE

        if estimate.current_total > 0:
            growth = (estimate.predicted_total - estimate.current_total) / estimate.current_total * 100
        else:
            growth = 0.0

        metadata = {"algorithm": estimate.algorithm, "factors": ["sales_history"]}
        if estimate.fit is not None:
            metadata["slope"] = round(estimate.fit.slope, 4)
            metadata["rSquared"] = round(estimate.fit.r_squared, 4)
        return DemandForecast(
            product_id=product.product_id,
            current_value=estimate.current_total,
            predicted_value=estimate.predicted_total,
            confidence=round(estimate.confidence, 1),
            timeframe=timeframe,
            trend=trend,
            growth_rate=round(growth, 1),
            metadata=metadata,
        )

    def optimize_price(self, product: ProductSnapshot, estimate: DemandEstimate) -> PriceOptimization:
        if estimate.slope > PRICE_TREND_SLOPE:
            factor = PRICE_TREND_UP
        elif estimate.slope < -PRICE_TREND_SLOPE:
            factor = PRICE_TREND_DOWN
        else:
            factor = 1.0
        return PriceOptimization(
            product_id=product.product_id,
            current_value=product.price,
            predicted_value=round(product.price * factor, 2),
            confidence=_round_half_up(estimate.confidence * PRICE_CONFIDENCE_RATIO),
            timeframe=PRICE_TIMEFRAME,
            metadata={"algorithm": "trend_based_elasticity", "factors": ["demand_trend"]},
        )

    def forecast_product(
        self, product: ProductSnapshot, sales_history: Sequence[SalesRecord]
    ) -> Tuple[DemandForecast, PriceOptimization]:
        estimate = self.estimate(self._trailing(sales_history), self.horizon)
        demand = self._demand_forecast(product, estimate, f"{self.horizon}d")
        return demand, self.optimize_price(product, estimate)

    def generate(self, products: Sequence[ProductSnapshot], get_sales_history: HistoryProvider) -> List[Prediction]:
        """
        Batch forecast. Returns a demand and a price prediction per product.

        Products without an id are skipped. A product whose history cannot be
        fetched or parsed is logged and skipped without stopping the batch.
        """
        predictions: List[Prediction] = []
        for product in products:
            if not product.product_id:
                continue
            try:
                history = get_sales_history(product.product_id, self.history_days)
                demand, price = self.forecast_product(product, history)
            except ValueError as e:
                logger.error("Skipping predictions for product %s: %s", product.product_id, e)
                continue
            predictions.extend([demand, price])
        logger.info("Generated %d predictions for %d products", len(predictions), len(products))
        return predictions
