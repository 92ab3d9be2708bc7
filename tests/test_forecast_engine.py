import pandas as pd
import pytest

from engines.forecast_engine import DemandEstimate, ForecastEngine
from engines.models import DemandForecast, PriceOptimization, Trend
from storage.memory import InMemoryStore
from helpers import make_product, make_sales


def test_two_records_use_average_fallback():
	demand, price = ForecastEngine().forecast_product(make_product(), make_sales([3, 5]))
	assert demand.predicted_value == 28
	assert demand.confidence == 40
	assert demand.metadata["algorithm"] == "average_fallback_7d"
	assert demand.current_value == 8
	assert demand.timeframe == "7d"
	assert price.predicted_value == 100.0
	assert price.confidence == 32


def test_no_history_is_tagged_fallback():
	demand, price = ForecastEngine().forecast_product(make_product(), [])
	assert demand.predicted_value == 0
	assert demand.confidence == 20
	assert demand.metadata["algorithm"] == "no_history_fallback"
	assert price.confidence == 16
	assert price.timeframe == "30d"
	assert price.metadata["algorithm"] == "trend_based_elasticity"


def test_rising_series_regression():
	demand, price = ForecastEngine().forecast_product(make_product(price=100), make_sales(list(range(1, 11))))
	# y = x + 1 -> next seven values 11..17
	assert demand.predicted_value == 98
	assert demand.current_value == 49
	assert demand.confidence == pytest.approx(95.0)
	assert demand.metadata["algorithm"] == "linear_regression_7d_sum"
	assert demand.trend == Trend.INCREASING
	assert demand.growth_rate == pytest.approx(100.0)
	assert price.predicted_value == pytest.approx(105.0)
	assert price.confidence == 76


def test_falling_series_floors_negative_predictions():
	demand, price = ForecastEngine().forecast_product(make_product(price=100), make_sales(list(range(10, 0, -1))))
	assert demand.predicted_value == 0
	assert demand.trend == Trend.DECREASING
	assert price.predicted_value == pytest.approx(97.0)


def test_flat_series_keeps_price():
	demand, price = ForecastEngine().forecast_product(make_product(price=19.99), make_sales([5] * 10))
	assert demand.predicted_value == 35
	assert demand.trend == Trend.STABLE
	assert demand.confidence == pytest.approx(95.0)
	assert price.predicted_value == pytest.approx(19.99)


def test_noisy_series_confidence_between_bounds():
	demand, _ = ForecastEngine().forecast_product(make_product(), make_sales([5, 1, 9, 2, 8, 3, 7, 4, 6, 5]))
	assert 20 <= demand.confidence <= 95


def test_history_is_trimmed_to_window():
	old = make_sales([100] * 20, start="2024-01-01")
	recent = make_sales(list(range(1, 11)), start="2025-01-01")
	demand, _ = ForecastEngine().forecast_product(make_product(), old + recent)
	assert demand.predicted_value == 98


def test_unsorted_history_is_sorted():
	sales = make_sales(list(range(1, 11)))
	demand, _ = ForecastEngine().forecast_product(make_product(), list(reversed(sales)))
	assert demand.predicted_value == 98


def test_predict_demand_month():
	forecast = ForecastEngine().predict_demand(make_product(), make_sales(list(range(1, 11))), "month")
	# sum of 11..40
	assert forecast.predicted_value == 765
	assert forecast.current_value == 55
	assert forecast.timeframe == "month"
	assert forecast.metadata["algorithm"] == "linear_regression_30d_sum"


def test_predict_demand_rejects_unknown_timeframe():
	with pytest.raises(ValueError):
		ForecastEngine().predict_demand(make_product(), [], "fortnight")


def test_generate_batch():
	now = pd.Timestamp("2025-01-12")
	store = InMemoryStore(clock=lambda: now)
	store.add_sales("A", make_sales(list(range(1, 11))))
	store.add_sales("B", make_sales([4, 4]))
	products = [make_product(product_id="A"), make_product(product_id="B"), make_product(product_id=None)]

	predictions = ForecastEngine().generate(products, store.get_sales_history_for_product)
	assert len(predictions) == 4
	assert [type(p) for p in predictions] == [DemandForecast, PriceOptimization] * 2
	assert predictions[0].predicted_value == 98
	assert predictions[2].metadata["algorithm"] == "average_fallback_7d"


def test_generate_skips_failing_product():
	def history(product_id, days_back):
		if product_id == "bad":
			raise ValueError("corrupt history")
		return make_sales([1, 2, 3])

	predictions = ForecastEngine().generate([make_product(product_id="bad"), make_product(product_id="ok")], history)
	assert [p.product_id for p in predictions] == ["ok", "ok"]


def test_prediction_records_use_external_field_names():
	demand, price = ForecastEngine().forecast_product(make_product(product_id="A"), make_sales([1, 2, 3]))
	d = demand.to_dict()
	assert d["predictionType"] == "demand"
	assert {"currentValue", "predictedValue", "confidence", "timeframe", "metadata", "trend", "growthRate"} <= set(d)
	assert price.to_dict()["predictionType"] == "price"


def test_price_confidence_uses_unrounded_demand_confidence():
	engine = ForecastEngine()
	estimate = DemandEstimate(current_total=10, predicted_total=12, confidence=56.8749, algorithm="linear_regression_7d_sum")
	# 56.8749 * 0.8 = 45.49992, while the displayed 56.9 would give 46
	assert engine.optimize_price(make_product(), estimate).confidence == 45
	assert engine._demand_forecast(make_product(), estimate, "7d").confidence == 56.9
