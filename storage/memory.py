from __future__ import annotations

import threading
import uuid
from collections import defaultdict
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from engines.models import SalesRecord
from storage.interface import PredictionStore, StorageError
from utils.config import PREDICTION_HISTORY_LIMIT, PREDICTION_RETENTION_DAYS
from utils.logger import get_logger

logger = get_logger(__name__)

PREDICTION_TYPES = {"demand", "price", "expiry"}


def _utcnow() -> pd.Timestamp:
    return pd.Timestamp.now(tz="UTC").tz_localize(None)


class InMemoryStore(PredictionStore):
    """Thread-safe in-memory sales history and prediction store.

    ``clock`` supplies "now" for the ``days_back`` and cleanup windows; the CLI
    pins it to the end of the loaded data so historical files stay in range.
    """

    def __init__(self, clock: Optional[Callable[[], pd.Timestamp]] = None):
        self._clock = clock or _utcnow
        self._lock = threading.Lock()
        self._sales: Dict[str, List[SalesRecord]] = defaultdict(list)
        self._predictions: List[Dict[str, Any]] = []
        self._seq = 0

    def add_sales(self, product_id: str, records: Sequence[SalesRecord]) -> int:
        with self._lock:
            self._sales[str(product_id)].extend(records)
        return len(records)

    def get_sales_history_for_product(self, product_id: str, days_back: Optional[int] = None) -> List[SalesRecord]:
        with self._lock:
            records = list(self._sales.get(str(product_id), []))
        if days_back:
            start = self._clock() - pd.Timedelta(days=days_back)
            records = [r for r in records if r.date >= start]
        return sorted(records, key=lambda r: r.date)

    def save_prediction(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        product_id = record.get("productId")
        if not product_id:
            raise StorageError("Failed to save prediction: productId is required")
        if record.get("predictionType") not in PREDICTION_TYPES:
            raise StorageError(f"Failed to save prediction: invalid predictionType {record.get('predictionType')!r}")

        stored = dict(record)
        stored["id"] = uuid.uuid4().hex
        stored["createdAt"] = self._clock().isoformat()
        with self._lock:
            self._seq += 1
            self._predictions.append({"seq": self._seq, "created": self._clock(), "record": stored})
        logger.debug("Saved %s prediction %s for product %s", stored["predictionType"], stored["id"], product_id)
        return dict(stored)

    def get_prediction_history(self, product_id: str, limit: int = PREDICTION_HISTORY_LIMIT) -> List[Dict[str, Any]]:
        with self._lock:
            matching = [p for p in self._predictions if p["record"]["productId"] == str(product_id)]
        matching.sort(key=lambda p: (p["created"], p["seq"]), reverse=True)
        return [dict(p["record"]) for p in matching[: max(0, limit)]]

    def clear_old_predictions(self, days: int = PREDICTION_RETENTION_DAYS) -> int:
        cutoff = self._clock() - pd.Timedelta(days=days)
        with self._lock:
            before = len(self._predictions)
            self._predictions = [p for p in self._predictions if p["created"] >= cutoff]
            removed = before - len(self._predictions)
        logger.info("Cleared %d prediction(s) older than %d day(s)", removed, days)
        return removed
