"""
SCORE ENGINE

Composite 0-100 token score from indicators, price momentum, transaction
pressure, volume trend, holder growth, sniper profit and liquidity turnover.

Raw points are additive and unbounded below; the normalized score is
``clamp(raw / score_ceiling * 100, 0, 100)`` with a ceiling of 200 points.
Admission thresholds are expressed on the normalized score, so the ceiling
must stay fixed for thresholds to keep their meaning.

Indicators that are still at their neutral zero value (series too short)
never earn points.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from core.models import CandidateToken, IndicatorSet, Score
from indicators.engine import neutral_indicator_set
from safe_math import buy_fraction, buy_sell_ratio, clamp, safe_div

logger = logging.getLogger(__name__)

DEFAULT_SCORE_CEILING = 200

# Point table
POINTS = {
    'macd_bullish': 10,
    'above_psar': 5,
    'rsi_oversold': 5,
    'stochastic_bullish': 5,
    'awesome_positive': 5,
    'above_bollinger': 5,
    'above_keltner': 5,
    'cmf_positive': 3,
    'mfi_oversold': 3,
    'buy_sell_24h': 15,
    'buy_sell_5m': 10,
    'buy_pressure_rising': 15,
    'volume_spike': 10,
    'volume_acceleration': 15,
    'ichimoku_above_cloud': 10,
    'ichimoku_tk_cross': 5,
    'ichimoku_chikou': 5,
    'negative_5m_penalty': -10,
    'boosted': 10,
}

PRICE_CHANGE_WEIGHTS = {'m5': 0.3, 'h1': 0.3, 'h6': 0.2, 'h24': 0.2}


@dataclass
class ScoreBreakdown:
    raw: float
    normalized: float
    components: Dict[str, float] = field(default_factory=dict)

    def to_score(self) -> Score:
        return Score(raw=self.raw, normalized=self.normalized)


def volume_acceleration(m5: float, h1: float, h6: float) -> float:
    """
    Blend of short and long volume acceleration, as per-minute rates.

    0.6 * (5m rate / 1h rate - 1) + 0.4 * (1h rate / 6h rate - 1).
    A side whose reference rate is zero contributes nothing.
    """
    rate_5m = m5 / 5
    rate_1h = h1 / 60
    rate_6h = h6 / 360
    short = safe_div(rate_5m, rate_1h, default=1.0) - 1
    long = safe_div(rate_1h, rate_6h, default=1.0) - 1
    return 0.6 * short + 0.4 * long


def is_volume_spike(h1: float, h24: float) -> bool:
    """1h volume above twice the average hourly volume of the last 24h."""
    return h24 > 0 and h1 > 2 * (h24 / 24)


class ScoreEngine:
    """
    Scores a CandidateToken.

    Args:
        config: scoring section (score_ceiling, uptrend_weight)
    """

    def __init__(self, config: Dict = None):
        self.config = config or {}
        self.score_ceiling = self.config.get('score_ceiling', DEFAULT_SCORE_CEILING)
        self.uptrend_weight = self.config.get('uptrend_weight', 0.2)

    def normalize(self, raw: float) -> float:
        return clamp(safe_div(raw, self.score_ceiling) * 100, 0, 100)

    def score(self, token: CandidateToken, uptrend: Optional[Score] = None) -> ScoreBreakdown:
        """Compute the composite score. ``uptrend`` defaults to token.uptrend_score."""
        indicators = token.indicators if token.indicators is not None else neutral_indicator_set()
        price = token.price_usd or 0.0
        parts: Dict[str, float] = {}

        self._indicator_points(indicators, price, parts)
        self._transaction_points(token, parts)
        self._volume_points(token, parts)

        uptrend = uptrend if uptrend is not None else token.uptrend_score
        if uptrend is not None:
            parts['uptrend'] = self.uptrend_weight * uptrend.normalized

        self._ichimoku_points(indicators, price, parts)

        blend = sum(w * token.change(h) for h, w in PRICE_CHANGE_WEIGHTS.items())
        parts['price_change_blend'] = blend
        if token.change('m5') < 0:
            parts['negative_5m_penalty'] = POINTS['negative_5m_penalty']
        if token.boosted:
            parts['boosted'] = POINTS['boosted']

        if token.holder_change_pct is not None:
            parts['holder_growth'] = token.holder_change_pct * 0.5
        if token.sniper_profit_usd:
            parts['sniper_profit'] = min(20.0, token.sniper_profit_usd / 1000)
        turnover = safe_div(token.vol('h24'), token.liquidity)
        if turnover:
            parts['volume_liquidity'] = min(10.0, turnover * 2)

        raw = sum(parts.values())
        normalized = self.normalize(raw)
        logger.debug("%s scored raw=%.1f normalized=%.1f", token.symbol, raw, normalized)
        return ScoreBreakdown(raw=raw, normalized=normalized, components=parts)

    def apply(self, token: CandidateToken) -> CandidateToken:
        """Score ``token`` and store the result on it."""
        token.score = self.score(token).to_score()
        return token

    # ================================================================
    # COMPONENTS
    # ================================================================

    def _indicator_points(self, ind: IndicatorSet, price: float, parts: Dict):
        macd = ind['macd']
        if macd.macd > macd.signal and macd.histogram > 0:
            parts['macd_bullish'] = POINTS['macd_bullish']
        if ind['psar'] > 0 and price > ind['psar']:
            parts['above_psar'] = POINTS['above_psar']
        if 0 < ind['rsi'] < 30:
            parts['rsi_oversold'] = POINTS['rsi_oversold']
        stoch = ind['stochastic']
        if stoch.k > stoch.d and stoch.k < 80:
            parts['stochastic_bullish'] = POINTS['stochastic_bullish']
        if ind['awesome_oscillator'] > 0:
            parts['awesome_positive'] = POINTS['awesome_positive']
        if ind['bollinger'].upper > 0 and price > ind['bollinger'].upper:
            parts['above_bollinger'] = POINTS['above_bollinger']
        if ind['keltner'].upper > 0 and price > ind['keltner'].upper:
            parts['above_keltner'] = POINTS['above_keltner']
        if ind['cmf'] > 0:
            parts['cmf_positive'] = POINTS['cmf_positive']
        if 0 < ind['mfi'] < 20:
            parts['mfi_oversold'] = POINTS['mfi_oversold']

    def _transaction_points(self, token: CandidateToken, parts: Dict):
        if not token.txns:
            return
        h24 = token.txn('h24')
        m5 = token.txn('m5')
        h1 = token.txn('h1')
        if h24.total and buy_sell_ratio(h24.buys, h24.sells) > 1.5:
            parts['buy_sell_24h'] = POINTS['buy_sell_24h']
        if m5.total and buy_sell_ratio(m5.buys, m5.sells) > 1:
            parts['buy_sell_5m'] = POINTS['buy_sell_5m']
        pressure_5m = buy_fraction(m5.buys, m5.sells)
        if pressure_5m > 0.6 and pressure_5m > buy_fraction(h1.buys, h1.sells):
            parts['buy_pressure_rising'] = POINTS['buy_pressure_rising']

    def _volume_points(self, token: CandidateToken, parts: Dict):
        if not token.volume:
            return
        if is_volume_spike(token.vol('h1'), token.vol('h24')):
            parts['volume_spike'] = POINTS['volume_spike']
        if volume_acceleration(token.vol('m5'), token.vol('h1'), token.vol('h6')) > 0.5:
            parts['volume_acceleration'] = POINTS['volume_acceleration']

    def _ichimoku_points(self, ind: IndicatorSet, price: float, parts: Dict):
        cloud = ind['ichimoku']
        if cloud.is_empty:
            return
        if price > cloud.span_a and price > cloud.span_b:
            parts['ichimoku_above_cloud'] = POINTS['ichimoku_above_cloud']
        if cloud.tenkan > cloud.kijun:
            parts['ichimoku_tk_cross'] = POINTS['ichimoku_tk_cross']
        if cloud.chikou > price:
            parts['ichimoku_chikou'] = POINTS['ichimoku_chikou']
