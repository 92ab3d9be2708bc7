import pandas as pd
import pytest
from fastapi.testclient import TestClient

from api.deps import get_store
from api.server import app
from engines.models import SalesRecord
from storage.interface import StorageError
from storage.memory import InMemoryStore

NOW = pd.Timestamp("2025-03-31")


class BrokenStore(InMemoryStore):
    def save_prediction(self, record):
        raise StorageError("database unavailable")


@pytest.fixture
def store():
    return InMemoryStore(clock=lambda: NOW)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def sales_payload(quantities, product_id=None, start="2025-03-01"):
    dates = pd.date_range(start, periods=len(quantities), freq="D")
    return [
        {"date": d.strftime("%Y-%m-%d"), "quantity": q, "unit_price": 2.0, "product_id": product_id}
        for q, d in zip(quantities, dates)
    ]


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_pricing_without_history(client):
    resp = client.post("/api/pricing", json={"product": {"product_id": "A", "price": 100, "cost": 60}})
    assert resp.status_code == 200
    body = resp.json()
    assert body["productId"] == "A"
    assert body["strategy"] == "demand_based"
    assert 95 <= body["recommendedPrice"] <= 105
    assert body["metadata"]["demandScore"] == 0.5


def test_pricing_rejects_bad_input(client):
    resp = client.post("/api/pricing", json={"product": {"price": 0}})
    assert resp.status_code == 422
    resp = client.post("/api/pricing", json={
        "product": {"price": 10},
        "sales": [{"date": "someday", "quantity": 1}],
    })
    assert resp.status_code == 400


def test_bulk_pricing_skips_invalid_items(client):
    resp = client.post("/api/pricing/bulk", json={"items": [
        {"product": {"product_id": "A", "price": 10}},
        {"product": {"product_id": "B", "price": 0}},
        {"product": {"product_id": "C", "price": 20}},
    ]})
    assert resp.status_code == 200
    assert [r["productId"] for r in resp.json()] == ["A", "C"]


def test_demand_prediction_is_saved(client, store):
    resp = client.post("/api/predictions/demand", json={
        "product": {"product_id": "A", "price": 10},
        "sales": sales_payload([3, 5]),
        "timeframe": "week",
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["saved"] is True
    assert body["data"]["predictedValue"] == 28
    assert body["data"]["confidence"] == 40
    assert body["data"]["id"]
    assert len(store.get_prediction_history("A")) == 1


def test_demand_prediction_survives_storage_failure():
    app.dependency_overrides[get_store] = lambda: BrokenStore()
    try:
        resp = TestClient(app).post("/api/predictions/demand", json={
            "product": {"product_id": "A", "price": 10},
            "sales": sales_payload([1, 2, 3, 4]),
        })
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 200
    body = resp.json()
    assert body["saved"] is False
    assert body["data"]["predictionType"] == "demand"
    assert body["data"]["timeframe"] == "month"


def test_demand_prediction_rejects_unknown_timeframe(client):
    resp = client.post("/api/predictions/demand", json={"product": {"price": 10}, "timeframe": "decade"})
    assert resp.status_code == 422


def test_generate_and_history(client):
    resp = client.post("/api/predictions/generate", json={
        "products": [{"product_id": "A", "price": 10}, {"product_id": "B", "price": 4}],
        "sales": sales_payload(list(range(1, 11)), "A") + sales_payload([2, 2], "B"),
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 4
    assert body["saved"] == 4
    demand_a = body["predictions"][0]
    assert demand_a["metadata"]["algorithm"] == "linear_regression_7d_sum"
    assert demand_a["predictedValue"] == 98

    history = client.get("/api/predictions/A/history", params={"limit": 5}).json()
    assert history["count"] == 2
    assert {h["predictionType"] for h in history["data"]} == {"demand", "price"}


def test_generate_repeated_calls_give_same_predictions(client, store):
    payload = {
        "products": [{"product_id": "A", "price": 10}],
        "sales": sales_payload(list(range(1, 11)), "A"),
    }
    first = client.post("/api/predictions/generate", json=payload).json()
    second = client.post("/api/predictions/generate", json=payload).json()
    def values(body):
        return [(p["currentValue"], p["predictedValue"]) for p in body["predictions"]]

    assert values(first) == values(second)
    assert values(first)[0] == (49, 98)
    assert store.get_sales_history_for_product("A", 90) == []


def test_generate_reads_store_for_products_without_posted_sales(client, store):
    store.add_sales("B", [
        SalesRecord(quantity=q, unit_price=2.0, date=NOW - pd.Timedelta(days=10 - i))
        for i, q in enumerate(range(1, 11))
    ])
    body = client.post("/api/predictions/generate", json={
        "products": [{"product_id": "B", "price": 4}],
        "sales": [],
    }).json()
    assert body["count"] == 2
    assert body["predictions"][0]["predictedValue"] == 98


def test_generate_requires_product_ids_on_sales(client):
    resp = client.post("/api/predictions/generate", json={
        "products": [{"product_id": "A", "price": 10}],
        "sales": sales_payload([1]),
    })
    assert resp.status_code == 400


def test_cleanup(client, store):
    store.save_prediction({"productId": "A", "predictionType": "demand"})
    resp = client.delete("/api/predictions/cleanup", params={"days": 7})
    assert resp.status_code == 200
    assert resp.json()["deleted"] == 0


def test_storage_read_failure_maps_to_503():
    class UnreadableStore(InMemoryStore):
        def get_prediction_history(self, product_id, limit=10):
            raise StorageError("database unavailable")

    app.dependency_overrides[get_store] = lambda: UnreadableStore()
    try:
        resp = TestClient(app).get("/api/predictions/A/history")
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 503
    assert resp.json() == {"detail": "database unavailable"}


def test_index_points_at_docs(client):
    body = client.get("/").json()
    assert body["service"] == "StockWise Pricing API"
    assert body["docs"] == "/docs"
