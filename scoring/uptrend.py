"""
UPTREND SCORER

Cheap momentum sub-score used by the discovery funnel before any OHLCV is
fetched. Points (max 60):

- momentum blend 0.4*5m + 0.3*1h + 0.2*6h + 0.1*24h, clamped to [-20, 25]
- 5m buy/sell ratio > 1.2: +10 (> 1: +5); 1h ratio > 1.2: +5
- 1h volume spike: +10; volume acceleration > 0.5: +10
- negative 5m change: -10
"""
from typing import Dict

from core.models import CandidateToken, Score
from safe_math import buy_sell_ratio, clamp, safe_div
from .score_engine import is_volume_spike, volume_acceleration

DEFAULT_UPTREND_MAX = 60

MOMENTUM_WEIGHTS = {'m5': 0.4, 'h1': 0.3, 'h6': 0.2, 'h24': 0.1}


class UptrendScorer:
    def __init__(self, config: Dict = None):
        self.config = config or {}
        self.max_score = self.config.get('max_score', DEFAULT_UPTREND_MAX)
        self.min_normalized = self.config.get('min_normalized_score', 50)
        self.min_volume_1h = self.config.get('min_volume_1h', 1000)
        self.min_volume_24h = self.config.get('min_volume_24h', 10000)
        self.min_ratio_5m = self.config.get('min_buy_sell_ratio_5m', 1.0)
        self.min_ratio_1h = self.config.get('min_buy_sell_ratio_1h', 1.2)

    def score(self, token: CandidateToken) -> Score:
        momentum = sum(w * token.change(h) for h, w in MOMENTUM_WEIGHTS.items())
        raw = clamp(momentum, -20, 25)

        m5 = token.txn('m5')
        h1 = token.txn('h1')
        ratio_5m = buy_sell_ratio(m5.buys, m5.sells)
        if ratio_5m > 1.2:
            raw += 10
        elif ratio_5m > 1:
            raw += 5
        if buy_sell_ratio(h1.buys, h1.sells) > 1.2:
            raw += 5

        if is_volume_spike(token.vol('h1'), token.vol('h24')):
            raw += 10
        if volume_acceleration(token.vol('m5'), token.vol('h1'), token.vol('h6')) > 0.5:
            raw += 10

        if token.change('m5') < 0:
            raw -= 10

        normalized = clamp(safe_div(raw, self.max_score) * 100, 0, 100)
        return Score(raw=raw, normalized=normalized)

    def is_quality_uptrend(self, token: CandidateToken) -> bool:
        """Rule-based check: fresh momentum, buyers in control, real volume."""
        if token.change('m5') <= 0:
            return False
        if token.change('h1') <= 0 and token.change('h6') <= 0:
            return False
        m5 = token.txn('m5')
        h1 = token.txn('h1')
        buyers = (buy_sell_ratio(m5.buys, m5.sells) > self.min_ratio_5m
                  or buy_sell_ratio(h1.buys, h1.sells) > self.min_ratio_1h)
        if not buyers:
            return False
        return token.vol('h1') >= self.min_volume_1h and token.vol('h24') >= self.min_volume_24h

    def admits(self, token: CandidateToken) -> bool:
        """Quality predicate OR normalized uptrend score above the threshold."""
        if token.uptrend_score is None:
            token.uptrend_score = self.score(token)
        return self.is_quality_uptrend(token) or token.uptrend_score.normalized > self.min_normalized
