"""
Volume indicators: OBV, MFI, Accumulation/Distribution, CMF, VPT, VWAP.
"""
from typing import Sequence

from safe_math import safe_div


def obv(closes: Sequence[float], volumes: Sequence[float]) -> float:
    value = 0.0
    for i in range(1, len(closes)):
        if closes[i] > closes[i - 1]:
            value += volumes[i]
        elif closes[i] < closes[i - 1]:
            value -= volumes[i]
    return value


def money_flow_multiplier(high: float, low: float, close: float) -> float:
    if high == low:
        return 0.0
    return ((close - low) - (high - close)) / (high - low)


def mfi(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float],
        volumes: Sequence[float], period: int = 14) -> float:
    if period < 1 or len(closes) < period + 1:
        return 0.0
    typical = [(h + l + c) / 3 for h, l, c in zip(highs, lows, closes)]
    positive = negative = 0.0
    for i in range(len(closes) - period, len(closes)):
        flow = typical[i] * volumes[i]
        if typical[i] > typical[i - 1]:
            positive += flow
        elif typical[i] < typical[i - 1]:
            negative += flow
    if negative == 0:
        return 100.0 if positive > 0 else 50.0
    return 100 - 100 / (1 + positive / negative)


def accumulation_distribution(highs, lows, closes, volumes) -> float:
    return sum(money_flow_multiplier(h, l, c) * v
               for h, l, c, v in zip(highs, lows, closes, volumes))


def cmf(highs, lows, closes, volumes, period: int = 20) -> float:
    if period < 1 or len(closes) < period:
        return 0.0
    flow_volume = 0.0
    for h, l, c, v in zip(highs[-period:], lows[-period:], closes[-period:], volumes[-period:]):
        flow_volume += money_flow_multiplier(h, l, c) * v
    return safe_div(flow_volume, sum(volumes[-period:]))


def vpt(closes: Sequence[float], volumes: Sequence[float]) -> float:
    value = 0.0
    for i in range(1, len(closes)):
        value += volumes[i] * safe_div(closes[i] - closes[i - 1], closes[i - 1])
    return value


def vwap(highs, lows, closes, volumes) -> float:
    """Cumulative typical-price VWAP over the whole series."""
    weighted = sum((h + l + c) / 3 * v for h, l, c, v in zip(highs, lows, closes, volumes))
    return safe_div(weighted, sum(volumes))
