from __future__ import annotations
import os
from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()

def _get_float(name: str, default: float) -> float:
	try:
		return float(os.getenv(name, default))
	except Exception:
		return default

def _get_int(name: str, default: int) -> int:
	try:
		return int(float(os.getenv(name, default)))
	except Exception:
		return default

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Demand score: sub-score weights (must sum to 1.0)
TREND_WEIGHT = _get_float("TREND_WEIGHT", 0.40)
SEASONALITY_WEIGHT = _get_float("SEASONALITY_WEIGHT", 0.25)
VELOCITY_WEIGHT = _get_float("VELOCITY_WEIGHT", 0.20)
STOCKOUT_WEIGHT = _get_float("STOCKOUT_WEIGHT", 0.15)

NEUTRAL_SCORE = 0.5

# Minimum number of sales records before a sub-score is computed
MIN_RECORDS_DEMAND = _get_int("MIN_RECORDS_DEMAND", 5)
MIN_RECORDS_TREND = _get_int("MIN_RECORDS_TREND", 3)
MIN_RECORDS_SEASONALITY = _get_int("MIN_RECORDS_SEASONALITY", 30)
MIN_RECORDS_VELOCITY = _get_int("MIN_RECORDS_VELOCITY", 7)
MIN_RECORDS_STOCKOUT = _get_int("MIN_RECORDS_STOCKOUT", 7)
MIN_RECORDS_SEASONAL_FACTOR = _get_int("MIN_RECORDS_SEASONAL_FACTOR", 90)

VELOCITY_WINDOW = _get_int("VELOCITY_WINDOW", 7)
VELOCITY_NEW_DEMAND_SCORE = 0.8
VELOCITY_NO_DEMAND_SCORE = 0.2

# (max days of supply, risk score); anything above the last band scores STOCKOUT_DEFAULT_RISK
STOCKOUT_BANDS = ((3, 0.9), (7, 0.7), (14, 0.5))
STOCKOUT_DEFAULT_RISK = 0.3

# (max days until expiry, urgency); expired products score 1.0
EXPIRY_BANDS = ((0, 1.0), (3, 0.9), (7, 0.7), (14, 0.5), (30, 0.3))
EXPIRY_DEFAULT_URGENCY = 0.1

# Own price / mean competitor price
COMPETITION_OVERPRICED = ((1.2, 0.9), (1.1, 0.95))
COMPETITION_UNDERPRICED = ((0.8, 1.1), (0.9, 1.05))

# Current month sales / yearly monthly average
SEASONAL_PEAK = ((1.5, 1.15), (1.2, 1.08))
SEASONAL_LOW = ((0.7, 0.9), (0.85, 0.95))

# Pricing multipliers
HIGH_DEMAND_THRESHOLD = _get_float("HIGH_DEMAND_THRESHOLD", 0.7)
MEDIUM_DEMAND_THRESHOLD = _get_float("MEDIUM_DEMAND_THRESHOLD", 0.4)
HIGH_DEMAND_MULTIPLIER = _get_float("HIGH_DEMAND_MULTIPLIER", 1.15)
MEDIUM_DEMAND_MULTIPLIER = _get_float("MEDIUM_DEMAND_MULTIPLIER", 1.05)
LOW_DEMAND_MULTIPLIER = _get_float("LOW_DEMAND_MULTIPLIER", 0.95)

URGENT_EXPIRY_THRESHOLD = 0.8
APPROACHING_EXPIRY_THRESHOLD = 0.5
URGENT_EXPIRY_MULTIPLIER = _get_float("URGENT_EXPIRY_MULTIPLIER", 0.7)
APPROACHING_EXPIRY_MULTIPLIER = _get_float("APPROACHING_EXPIRY_MULTIPLIER", 0.85)

COMPETITIVE_TAG_BELOW = 0.95
PREMIUM_TAG_ABOVE = 1.05
SEASONAL_PEAK_TAG_ABOVE = 1.1
SEASONAL_LOW_TAG_BELOW = 0.9

# recommended price bounds
COST_FLOOR_MARKUP = _get_float("COST_FLOOR_MARKUP", 1.1)
MAX_PRICE_MULTIPLE = _get_float("MAX_PRICE_MULTIPLE", 2.0)

# Pricing confidence: (min records, bonus), checked in order
CONFIDENCE_BASE = 0.5
CONFIDENCE_HISTORY_BONUS = ((100, 0.3), (30, 0.2), (10, 0.1))
CONFIDENCE_FACTOR_BONUS = 0.1
CONFIDENCE_CAP = _get_float("CONFIDENCE_CAP", 0.95)

SIGNIFICANT_CHANGE_PCT = 15.0
MODERATE_CHANGE_PCT = 5.0
STRONG_DEMAND_EXPLANATION = 0.6
URGENT_EXPIRY_EXPLANATION = 0.7

# Regression forecast (percent scale confidences)
FORECAST_HISTORY_DAYS = _get_int("FORECAST_HISTORY_DAYS", 90)
FORECAST_HORIZON_DAYS = _get_int("FORECAST_HORIZON_DAYS", 7)
MIN_REGRESSION_POINTS = 3
REGRESSION_CONFIDENCE_FLOOR = 20.0
REGRESSION_CONFIDENCE_SPAN = 75.0
REGRESSION_CONFIDENCE_CAP = 95.0
AVERAGE_FALLBACK_CONFIDENCE = 40.0
NO_HISTORY_CONFIDENCE = 20.0

PRICE_TREND_SLOPE = _get_float("PRICE_TREND_SLOPE", 0.1)
PRICE_TREND_UP = _get_float("PRICE_TREND_UP", 1.05)
PRICE_TREND_DOWN = _get_float("PRICE_TREND_DOWN", 0.97)
PRICE_CONFIDENCE_RATIO = 0.8
PRICE_TIMEFRAME = "30d"

# Interactive timeframe -> horizon (number of future records)
TIMEFRAME_HORIZONS = {"week": 7, "month": 30, "quarter": 90, "7d": 7, "30d": 30, "90d": 90}

# Prediction storage
PREDICTION_HISTORY_LIMIT = _get_int("PREDICTION_HISTORY_LIMIT", 10)
PREDICTION_RETENTION_DAYS = _get_int("PREDICTION_RETENTION_DAYS", 7)
BULK_PRICING_LIMIT = _get_int("BULK_PRICING_LIMIT", 50)

# Revenue reconciliation tolerance (currency units)
REVENUE_TOLERANCE = _get_float("REVENUE_TOLERANCE", 0.01)
