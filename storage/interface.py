"""Protocol expected by the prediction routes and the batch pipeline."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from engines.models import SalesRecord


class StorageError(RuntimeError):
    """Raised when a storage backend cannot read or persist data."""


class PredictionStore(Protocol):
    """Sales history source and prediction sink.

    Engines never call this directly; callers fetch history, run an engine and
    then persist the returned result.
    """

    def get_sales_history_for_product(self, product_id: str, days_back: Optional[int] = None) -> List[SalesRecord]:
        """Return the product's sales, oldest first, limited to the last ``days_back`` days."""
        ...

    def save_prediction(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        """Persist a prediction record and return it with ``id`` and ``createdAt``."""
        ...

    def get_prediction_history(self, product_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Return saved predictions for the product, most recent first."""
        ...

    def add_sales(self, product_id: str, records: Sequence[SalesRecord]) -> int:
        ...

    def clear_old_predictions(self, days: int = 7) -> int:
        """Delete predictions older than ``days`` days; return how many were removed."""
        ...
