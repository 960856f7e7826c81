"""
Moving averages over plain float lists.

Series helpers return the full series (empty when the input is too short);
the point-in-time helpers return only the last value, or 0.0 when there is
not enough data.
"""
from typing import List, Sequence

from safe_math import safe_div


def ema_series(values: Sequence[float], period: int) -> List[float]:
    """EMA seeded with the SMA of the first ``period`` values."""
    if period < 1 or len(values) < period:
        return []
    k = 2 / (period + 1)
    ema = sum(values[:period]) / period
    out = [ema]
    for value in values[period:]:
        ema = (value - ema) * k + ema
        out.append(ema)
    return out


def sma(values: Sequence[float], period: int) -> float:
    if period < 1 or len(values) < period:
        return 0.0
    return sum(values[-period:]) / period


def ema(values: Sequence[float], period: int) -> float:
    series = ema_series(values, period)
    return series[-1] if series else 0.0


def trima_weights(period: int) -> List[int]:
    """Triangular weights: 1, 2, ... rising to the centre, then falling to 1."""
    n = (period + 1) // 2
    return [i + 1 if i < n else period - i for i in range(period)]


def trima(values: Sequence[float], period: int) -> float:
    if period < 1 or len(values) < period:
        return 0.0
    weights = trima_weights(period)
    window = values[-period:]
    return safe_div(sum(v * w for v, w in zip(window, weights)), sum(weights))


def vwma(closes: Sequence[float], volumes: Sequence[float], period: int) -> float:
    """Volume-weighted MA over the last ``period`` candles, 0 on zero volume."""
    if period < 1 or len(closes) < period:
        return 0.0
    c = closes[-period:]
    v = volumes[-period:]
    return safe_div(sum(x * y for x, y in zip(c, v)), sum(v))


def dema(values: Sequence[float], period: int) -> float:
    """2*EMA - EMA(EMA); needs at least 2*period values."""
    if period < 1 or len(values) < 2 * period:
        return 0.0
    ema1 = ema_series(values, period)
    ema2 = ema_series(ema1, period)
    if not ema2:
        return 0.0
    return 2 * ema1[-1] - ema2[-1]


def tema(values: Sequence[float], period: int) -> float:
    """3*EMA - 3*EMA(EMA) + EMA(EMA(EMA)); needs at least 3*period values."""
    if period < 1 or len(values) < 3 * period:
        return 0.0
    ema1 = ema_series(values, period)
    ema2 = ema_series(ema1, period)
    ema3 = ema_series(ema2, period)
    if not ema3:
        return 0.0
    return 3 * ema1[-1] - 3 * ema2[-1] + ema3[-1]
