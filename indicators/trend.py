"""
Trend indicators: Parabolic SAR, Vortex and Ichimoku Cloud.
"""
from typing import Sequence

from safe_math import safe_div
from .values import IchimokuValue, VortexValue


def psar(highs: Sequence[float], lows: Sequence[float],
         step: float = 0.02, max_step: float = 0.2) -> float:
    """Parabolic SAR, starting long from the first bar's low."""
    n = len(highs)
    if n < 2:
        return 0.0

    rising = True
    sar = lows[0]
    extreme = highs[0]
    af = step

    for i in range(1, n):
        sar = sar + af * (extreme - sar)
        if rising:
            sar = min(sar, lows[i - 1], lows[i - 2] if i >= 2 else lows[i - 1])
            if lows[i] < sar:
                rising = False
                sar = extreme
                extreme = lows[i]
                af = step
            elif highs[i] > extreme:
                extreme = highs[i]
                af = min(af + step, max_step)
        else:
            sar = max(sar, highs[i - 1], highs[i - 2] if i >= 2 else highs[i - 1])
            if highs[i] > sar:
                rising = True
                sar = extreme
                extreme = highs[i]
                af = step
            elif lows[i] < extreme:
                extreme = lows[i]
                af = min(af + step, max_step)
    return sar


def vortex(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float],
           period: int = 14) -> VortexValue:
    """VI+/VI- = sum of |vortex movement| / sum of true range over the window."""
    if period < 1 or len(closes) < period + 1:
        return VortexValue()
    vm_plus = vm_minus = tr_sum = 0.0
    for i in range(len(closes) - period, len(closes)):
        vm_plus += abs(highs[i] - lows[i - 1])
        vm_minus += abs(lows[i] - highs[i - 1])
        tr_sum += max(highs[i] - lows[i],
                      abs(highs[i] - closes[i - 1]),
                      abs(lows[i] - closes[i - 1]))
    return VortexValue(safe_div(vm_plus, tr_sum), safe_div(vm_minus, tr_sum))


def _midpoint(highs: Sequence[float], lows: Sequence[float], period: int) -> float:
    return (max(highs[-period:]) + min(lows[-period:])) / 2


def ichimoku(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float],
             conversion: int = 9, base: int = 26, span_b_period: int = 52,
             displacement: int = 26) -> IchimokuValue:
    if len(closes) < max(span_b_period, base, conversion, displacement):
        return IchimokuValue()
    tenkan = _midpoint(highs, lows, conversion)
    kijun = _midpoint(highs, lows, base)
    span_a = (tenkan + kijun) / 2
    span_b = _midpoint(highs, lows, span_b_period)
    chikou = closes[len(closes) - displacement]
    return IchimokuValue(tenkan, kijun, span_a, span_b, chikou)
