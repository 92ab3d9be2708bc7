from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np
import statsmodels.api as sm


@dataclass(frozen=True)
class LinearFit:
    slope: float
    intercept: float
    r_squared: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def linear_regression(y: Sequence[float], x: Sequence[float] | None = None) -> LinearFit:
    """Ordinary least squares fit of ``y`` against ``x`` (0..n-1 when omitted).

    A series with no variance is fitted exactly by a flat line, so its R² is 1.0.
    Raises ValueError with fewer than two points.
    """
    y_arr = np.asarray(y, dtype=float)
    x_arr = np.arange(len(y_arr), dtype=float) if x is None else np.asarray(x, dtype=float)
    if len(y_arr) < 2 or len(x_arr) != len(y_arr):
        raise ValueError("linear_regression needs at least two (x, y) pairs of equal length")

    res = sm.OLS(y_arr, sm.add_constant(x_arr, has_constant="add")).fit()
    intercept, slope = (float(p) for p in res.params)
    if res.centered_tss <= 0:
        r2 = 1.0
    else:
        r2 = clamp(1.0 - float(res.ssr) / float(res.centered_tss), 0.0, 1.0)
    if not (math.isfinite(slope) and math.isfinite(intercept)):
        raise ValueError("degenerate regression")
    return LinearFit(slope=slope, intercept=intercept, r_squared=r2)


def coefficient_of_variation(values: Iterable[float]) -> float:
    """Population standard deviation over mean. Raises ZeroDivisionError on a zero mean."""
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        raise ValueError("coefficient_of_variation of an empty series")
    mean = float(arr.mean())
    if mean == 0:
        raise ZeroDivisionError("coefficient of variation undefined for zero mean")
    return float(arr.std(ddof=0)) / mean


def band_lookup(value: float, bands: Sequence[Tuple[float, float]], default: float) -> float:
    """First band whose upper bound is >= ``value``; ``default`` past the last one."""
    for upper, score in bands:
        if value <= upper:
            return score
    return default
