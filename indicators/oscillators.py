"""
Momentum oscillators: RSI, MACD, PPO, Stochastic, Williams %R, ROC,
Awesome Oscillator and CCI.

Every function returns its neutral value when the input is shorter than
its window.
"""
from typing import List, Sequence

from safe_math import safe_div
from .moving_averages import ema_series, sma
from .values import MACDValue, PPOValue, StochasticValue


def rsi(closes: Sequence[float], period: int = 14) -> float:
    """Wilder RSI. 100 when there were no losses, 50 on a flat series."""
    if period < 1 or len(closes) < period + 1:
        return 0.0
    gains = []
    losses = []
    for prev, cur in zip(closes[:-1], closes[1:]):
        diff = cur - prev
        gains.append(max(diff, 0.0))
        losses.append(max(-diff, 0.0))

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return 100 - 100 / (1 + rs)


def _difference_line(closes: Sequence[float], fast: int, slow: int,
                     as_percent: bool) -> List[float]:
    fast_ema = ema_series(closes, fast)
    slow_ema = ema_series(closes, slow)
    if not fast_ema or not slow_ema:
        return []
    # fast series starts (slow - fast) candles earlier
    offset = len(fast_ema) - len(slow_ema)
    line = []
    for f, s in zip(fast_ema[offset:], slow_ema):
        line.append(safe_div(f - s, s) * 100 if as_percent else f - s)
    return line


def macd(closes: Sequence[float], fast: int = 12, slow: int = 26,
         signal: int = 9) -> MACDValue:
    line = _difference_line(closes, fast, slow, as_percent=False)
    signal_line = ema_series(line, signal)
    if not signal_line:
        return MACDValue()
    value = line[-1]
    sig = signal_line[-1]
    return MACDValue(value, sig, value - sig)


def ppo(closes: Sequence[float], fast: int = 12, slow: int = 26,
        signal: int = 9) -> PPOValue:
    """Percentage price oscillator with its own signal EMA."""
    line = _difference_line(closes, fast, slow, as_percent=True)
    signal_line = ema_series(line, signal)
    if not signal_line:
        return PPOValue()
    value = line[-1]
    sig = signal_line[-1]
    return PPOValue(value, sig, value - sig)


def stochastic(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float],
               period: int = 14, signal: int = 3) -> StochasticValue:
    """%K over ``period`` and %D as the SMA of the last ``signal`` %K values."""
    if period < 1 or len(closes) < period:
        return StochasticValue()
    k_values = []
    for end in range(period, len(closes) + 1):
        hh = max(highs[end - period:end])
        ll = min(lows[end - period:end])
        k_values.append(safe_div(closes[end - 1] - ll, hh - ll) * 100)
    window = min(signal, len(k_values))
    d = sum(k_values[-window:]) / window
    return StochasticValue(k_values[-1], d)


def williams_r(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float],
               period: int = 14) -> float:
    if period < 1 or len(closes) < period:
        return 0.0
    hh = max(highs[-period:])
    ll = min(lows[-period:])
    return safe_div(hh - closes[-1], hh - ll) * -100


def roc(closes: Sequence[float], period: int = 12) -> float:
    if period < 1 or len(closes) < period + 1:
        return 0.0
    base = closes[-period - 1]
    return safe_div(closes[-1] - base, base) * 100


def awesome_oscillator(highs: Sequence[float], lows: Sequence[float],
                       fast: int = 5, slow: int = 34) -> float:
    if len(highs) < max(fast, slow):
        return 0.0
    median = [(h + l) / 2 for h, l in zip(highs, lows)]
    return sma(median, fast) - sma(median, slow)


def cci(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float],
        period: int = 20) -> float:
    if period < 1 or len(closes) < period:
        return 0.0
    typical = [(h + l + c) / 3 for h, l, c in zip(highs[-period:], lows[-period:], closes[-period:])]
    mean = sum(typical) / period
    mean_dev = sum(abs(tp - mean) for tp in typical) / period
    return safe_div(typical[-1] - mean, 0.015 * mean_dev)
