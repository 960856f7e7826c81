"""
Volatility indicators: True Range, ATR, Bollinger Bands, Keltner Channel.
"""
import math
from typing import List, Sequence

from .moving_averages import ema
from .values import Bands


def true_range_series(highs: Sequence[float], lows: Sequence[float],
                      closes: Sequence[float]) -> List[float]:
    """First bar uses high - low; later bars include the gap from the prior close."""
    out = []
    for i in range(len(closes)):
        if i == 0:
            out.append(highs[0] - lows[0])
            continue
        prev_close = closes[i - 1]
        out.append(max(highs[i] - lows[i],
                       abs(highs[i] - prev_close),
                       abs(lows[i] - prev_close)))
    return out


def true_range(highs, lows, closes) -> float:
    series = true_range_series(highs, lows, closes)
    return series[-1] if series else 0.0


def atr(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float],
        period: int = 14) -> float:
    """Wilder-smoothed ATR."""
    if period < 1 or len(closes) < period:
        return 0.0
    tr = true_range_series(highs, lows, closes)
    value = sum(tr[:period]) / period
    for x in tr[period:]:
        value = (value * (period - 1) + x) / period
    return value


def bollinger(closes: Sequence[float], period: int = 20, std_dev: float = 2.0) -> Bands:
    if period < 1 or len(closes) < period:
        return Bands()
    window = closes[-period:]
    middle = sum(window) / period
    sd = math.sqrt(sum((x - middle) ** 2 for x in window) / period)
    return Bands(middle + std_dev * sd, middle, middle - std_dev * sd)


def keltner(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float],
            period: int = 20, multiplier: float = 2.0) -> Bands:
    """EMA(period) middle line, bands at +/- multiplier * ATR(period)."""
    if period < 1 or len(closes) < period:
        return Bands()
    middle = ema(closes, period)
    width = multiplier * atr(highs, lows, closes, period)
    return Bands(middle + width, middle, middle - width)
