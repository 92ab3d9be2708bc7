from __future__ import annotations

from functools import lru_cache

from engines.forecast_engine import ForecastEngine
from engines.pricing_engine import PricingEngine
from storage.memory import InMemoryStore


def get_pricing_engine():
    return PricingEngine()


def get_forecast_engine():
    return ForecastEngine()


@lru_cache()
def get_store():
    return InMemoryStore()
