"""Prediction and pricing engines.

Exposes the demand scorer, dynamic pricing engine and regression forecast engine.
"""

from .demand_scorer import DemandScorer
from .pricing_engine import PricingEngine
from .forecast_engine import ForecastEngine
