"""
Structured indicator values.

NamedTuples keep IndicatorSet immutable and give every structured indicator
a zero-valued neutral default of the same shape.
"""
from typing import NamedTuple


class MACDValue(NamedTuple):
    macd: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0

    @property
    def is_bullish(self) -> bool:
        return self.macd > self.signal and self.histogram > 0


class PPOValue(NamedTuple):
    ppo: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


class StochasticValue(NamedTuple):
    k: float = 0.0
    d: float = 0.0


class Bands(NamedTuple):
    upper: float = 0.0
    middle: float = 0.0
    lower: float = 0.0


class VortexValue(NamedTuple):
    plus: float = 0.0
    minus: float = 0.0


class IchimokuValue(NamedTuple):
    tenkan: float = 0.0
    kijun: float = 0.0
    span_a: float = 0.0
    span_b: float = 0.0
    chikou: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.span_a == 0 and self.span_b == 0
