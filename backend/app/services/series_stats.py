r"""backend\app\services\series_stats.py

Statistics primitives over an ordered numeric series.

The series is treated positionally: the x-axis is the integer index
``0..n-1`` rather than calendar time, so a missing period simply compresses
the series.  Every helper is pure and returns plain Python floats.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class RegressionFit:
    """Ordinary least squares fit of value against position."""

    slope: float
    intercept: float
    r_squared: float


def _finite(value: float, default: float = 0.0) -> float:
    value = float(value)
    return value if math.isfinite(value) else default


def linear_regression(values: Sequence[float]) -> RegressionFit:
    """Fit ``value = slope * index + intercept`` by ordinary least squares.

    Fewer than two observations yield a flat line through the single value
    (or zero).  A constant series reports ``r_squared == 0`` instead of a
    perfect fit, since the total sum of squares is zero.
    """

    y = np.asarray(values, dtype=float)
    n = y.size
    if n < 2:
        return RegressionFit(slope=0.0, intercept=float(y[0]) if n else 0.0, r_squared=0.0)

    x = np.arange(n, dtype=float)
    x_mean = x.mean()
    y_mean = y.mean()

    denominator = float(np.sum((x - x_mean) ** 2))
    numerator = float(np.sum((x - x_mean) * (y - y_mean)))
    slope = numerator / denominator if denominator != 0 else 0.0
    intercept = float(y_mean - slope * x_mean)

    ss_total = float(np.sum((y - y_mean) ** 2))
    ss_residual = float(np.sum((y - (slope * x + intercept)) ** 2))
    r_squared = 1.0 - ss_residual / ss_total if ss_total != 0 else 0.0

    return RegressionFit(
        slope=_finite(slope),
        intercept=_finite(intercept),
        r_squared=_finite(r_squared),
    )


def moving_average(values: Sequence[float], window: int) -> List[float]:
    """Return the trailing moving average for every position.

    The window grows from one element at the start of the series up to
    ``window`` elements, so the output has the same length as the input.
    """

    if len(values) == 0:
        return []
    window = max(int(window), 1)
    series = pd.Series(values, dtype=float)
    return series.rolling(window=window, min_periods=1).mean().tolist()


def exponential_smoothing(values: Sequence[float], alpha: float = 0.3) -> List[float]:
    """Simple exponential smoothing seeded with the first observation."""

    if len(values) == 0:
        return []
    series = pd.Series(values, dtype=float)
    return series.ewm(alpha=alpha, adjust=False).mean().tolist()


def standard_deviation(values: Sequence[float]) -> float:
    """Sample standard deviation (``ddof=1``); zero for fewer than two values."""

    if len(values) < 2:
        return 0.0
    return _finite(np.std(np.asarray(values, dtype=float), ddof=1))
