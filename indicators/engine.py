"""
INDICATOR ENGINE

Computes the full bank of technical indicators for one candle series and
returns an immutable IndicatorSet snapshot.

Tiers:
- basic:        SMA, EMA, TRIMA, RSI, ATR, TrueRange
- intermediate: DEMA, TEMA, VWMA, MACD, Stochastic, Williams %R, ROC, Bollinger (N >= 14)
- advanced:     PSAR, Vortex, CCI, PPO, Awesome Osc., Keltner, Ichimoku (N >= 26)
- volume:       OBV, MFI, A/D, CMF, VPT, VWAP

Every key is always present. A tier that was not requested, or an indicator
whose window is longer than the series, holds its neutral default (0 or a
zero-valued structure), so callers only ever test for degenerate values.
"""
import logging
from typing import Dict, FrozenSet, Iterable, Sequence

from core.models import Candle, IndicatorSet
from . import moving_averages as ma
from . import oscillators as osc
from . import trend
from . import volatility as vol
from . import volume as vlm
from .values import (
    Bands,
    IchimokuValue,
    MACDValue,
    PPOValue,
    StochasticValue,
    VortexValue,
)

logger = logging.getLogger(__name__)

BASIC = 'basic'
INTERMEDIATE = 'intermediate'
ADVANCED = 'advanced'
VOLUME = 'volume'

ALL_TIERS: FrozenSet[str] = frozenset({BASIC, INTERMEDIATE, ADVANCED, VOLUME})
# Discovery skips the advanced tier on the first scoring pass
FUNNEL_TIERS: FrozenSet[str] = frozenset({BASIC, INTERMEDIATE, VOLUME})

TIER_KEYS = {
    BASIC: ('sma', 'ema', 'trima', 'rsi', 'atr', 'true_range'),
    INTERMEDIATE: ('dema', 'tema', 'vwma', 'macd', 'stochastic', 'williams_r', 'roc', 'bollinger'),
    ADVANCED: ('psar', 'vortex', 'cci', 'ppo', 'awesome_oscillator', 'keltner', 'ichimoku'),
    VOLUME: ('obv', 'mfi', 'ad', 'cmf', 'vpt', 'vwap'),
}

NEUTRAL_VALUES = {
    'macd': MACDValue(),
    'stochastic': StochasticValue(),
    'bollinger': Bands(),
    'vortex': VortexValue(),
    'ppo': PPOValue(),
    'keltner': Bands(),
    'ichimoku': IchimokuValue(),
}

DEFAULT_INDICATOR_CONFIG = {
    'max_period': 20,
    'rsi_period': 14,
    'atr_period': 14,
    'macd_fast': 12,
    'macd_slow': 26,
    'macd_signal': 9,
    'stochastic_period': 14,
    'stochastic_signal': 3,
    'williams_period': 14,
    'roc_period': 12,
    'bollinger_std_dev': 2.0,
    'psar_step': 0.02,
    'psar_max': 0.2,
    'vortex_period': 14,
    'ao_fast': 5,
    'ao_slow': 34,
    'keltner_multiplier': 2.0,
    'mfi_period': 14,
    'intermediate_min_candles': 14,
    'advanced_min_candles': 26,
    'macd_min_candles': 26,
    'ichimoku_min_candles': 52,
}


def neutral_value(key: str):
    return NEUTRAL_VALUES.get(key, 0.0)


def neutral_indicator_set() -> IndicatorSet:
    values = {key: neutral_value(key) for keys in TIER_KEYS.values() for key in keys}
    return IndicatorSet(values, frozenset(), 0)


class IndicatorEngine:
    """Tiered indicator computation over an ascending candle series."""

    def __init__(self, config: Dict = None):
        self.config = dict(DEFAULT_INDICATOR_CONFIG)
        self.config.update(config or {})

    def compute(self, candles: Sequence[Candle], tiers: Iterable[str] = ALL_TIERS) -> IndicatorSet:
        tiers = frozenset(tiers)
        unknown = tiers - ALL_TIERS
        if unknown:
            raise ValueError(f"Unknown indicator tiers: {sorted(unknown)}")

        n = len(candles)
        values = {key: neutral_value(key) for keys in TIER_KEYS.values() for key in keys}
        if n == 0:
            return IndicatorSet(values, tiers, 0)

        highs = [c.high for c in candles]
        lows = [c.low for c in candles]
        closes = [c.close for c in candles]
        volumes = [c.volume for c in candles]
        period = min(self.config['max_period'], n)

        if BASIC in tiers:
            values.update(self._basic(highs, lows, closes, period))
        if INTERMEDIATE in tiers and n >= self.config['intermediate_min_candles']:
            values.update(self._intermediate(highs, lows, closes, volumes, period))
        if ADVANCED in tiers and n >= self.config['advanced_min_candles']:
            values.update(self._advanced(highs, lows, closes, period))
        if VOLUME in tiers:
            values.update(self._volume(highs, lows, closes, volumes, period))

        return IndicatorSet(values, tiers, n)

    def _basic(self, highs, lows, closes, period) -> Dict:
        cfg = self.config
        return {
            'sma': ma.sma(closes, period),
            'ema': ma.ema(closes, period),
            'trima': ma.trima(closes, period),
            'rsi': osc.rsi(closes, min(cfg['rsi_period'], period)),
            'atr': vol.atr(highs, lows, closes, min(cfg['atr_period'], period)),
            'true_range': vol.true_range(highs, lows, closes),
        }

    def _intermediate(self, highs, lows, closes, volumes, period) -> Dict:
        cfg = self.config
        out = {
            'dema': ma.dema(closes, period),
            'tema': ma.tema(closes, period),
            'vwma': ma.vwma(closes, volumes, period),
            'stochastic': osc.stochastic(highs, lows, closes,
                                         min(cfg['stochastic_period'], period),
                                         min(cfg['stochastic_signal'], period)),
            'williams_r': osc.williams_r(highs, lows, closes, min(cfg['williams_period'], period)),
            'roc': osc.roc(closes, min(cfg['roc_period'], period)),
            'bollinger': vol.bollinger(closes, period, cfg['bollinger_std_dev']),
        }
        if len(closes) >= cfg['macd_min_candles']:
            out['macd'] = osc.macd(closes,
                                   min(cfg['macd_fast'], period),
                                   min(cfg['macd_slow'], period),
                                   min(cfg['macd_signal'], period))
        return out

    def _advanced(self, highs, lows, closes, period) -> Dict:
        cfg = self.config
        out = {
            'psar': trend.psar(highs, lows, cfg['psar_step'], cfg['psar_max']),
            'vortex': trend.vortex(highs, lows, closes, min(cfg['vortex_period'], period)),
            'cci': osc.cci(highs, lows, closes, period),
            'ppo': osc.ppo(closes,
                           min(cfg['macd_fast'], period),
                           min(cfg['macd_slow'], period),
                           min(cfg['macd_signal'], period)),
            'keltner': vol.keltner(highs, lows, closes, period, cfg['keltner_multiplier']),
        }
        if len(closes) >= cfg['ao_slow']:
            out['awesome_oscillator'] = osc.awesome_oscillator(
                highs, lows, min(cfg['ao_fast'], period), min(cfg['ao_slow'], period))
        if len(closes) >= cfg['ichimoku_min_candles']:
            out['ichimoku'] = trend.ichimoku(highs, lows, closes)
        return out

    def _volume(self, highs, lows, closes, volumes, period) -> Dict:
        return {
            'obv': vlm.obv(closes, volumes),
            'mfi': vlm.mfi(highs, lows, closes, volumes, min(self.config['mfi_period'], period)),
            'ad': vlm.accumulation_distribution(highs, lows, closes, volumes),
            'cmf': vlm.cmf(highs, lows, closes, volumes, period),
            'vpt': vlm.vpt(closes, volumes),
            'vwap': vlm.vwap(highs, lows, closes, volumes),
        }


_default_engine = IndicatorEngine()


def compute_indicators(candles: Sequence[Candle], tiers: Iterable[str] = ALL_TIERS,
                       config: Dict = None) -> IndicatorSet:
    """Module-level shortcut using the default parameters."""
    engine = IndicatorEngine(config) if config else _default_engine
    return engine.compute(candles, tiers)


def with_tiers(indicators: IndicatorSet, candles: Sequence[Candle],
               tiers: Iterable[str] = ALL_TIERS) -> IndicatorSet:
    """Return ``indicators`` if it already covers ``tiers``, otherwise recompute."""
    tiers = frozenset(tiers)
    if indicators is not None and tiers <= indicators.tiers:
        return indicators
    logger.debug("Recomputing indicators for tiers %s", sorted(tiers))
    return compute_indicators(candles, tiers)
