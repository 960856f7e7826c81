"""
INDICATOR ENGINE MODULE

Pure-python technical indicators over OHLCV candles, grouped in tiers so the
discovery funnel can skip the expensive ones on its first pass.
"""

from .engine import (
    ADVANCED,
    ALL_TIERS,
    BASIC,
    FUNNEL_TIERS,
    INTERMEDIATE,
    VOLUME,
    IndicatorEngine,
    compute_indicators,
    neutral_indicator_set,
    neutral_value,
    with_tiers,
)
from .values import (
    Bands,
    IchimokuValue,
    MACDValue,
    PPOValue,
    StochasticValue,
    VortexValue,
)

__all__ = [
    'ADVANCED',
    'ALL_TIERS',
    'BASIC',
    'FUNNEL_TIERS',
    'INTERMEDIATE',
    'VOLUME',
    'IndicatorEngine',
    'compute_indicators',
    'neutral_indicator_set',
    'neutral_value',
    'with_tiers',
    'Bands',
    'IchimokuValue',
    'MACDValue',
    'PPOValue',
    'StochasticValue',
    'VortexValue',
]
