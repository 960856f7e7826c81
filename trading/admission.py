"""
Buy Admission
Decides whether a ranked candidate is good enough to open the position.

Two modes (``buy_criteria.mode``):
- 'all':    every check must pass
- 'points': weighted partial credit per check, summed against min_total_score
"""

import logging
from dataclasses import dataclass, field
from typing import Dict

from core.models import CandidateToken
from indicators.engine import neutral_indicator_set
from safe_math import buy_sell_ratio

logger = logging.getLogger(__name__)


@dataclass
class AdmissionResult:
    eligible: bool
    mode: str
    total: float = 0.0
    details: Dict[str, float] = field(default_factory=dict)


class AdmissionPolicy:
    def __init__(self, config: Dict = None):
        self.config = config or {}
        self.mode = self.config.get('mode', 'all')
        if self.mode not in ('all', 'points'):
            raise ValueError(f"Unknown admission mode: {self.mode}")
        self.min_score = self.config.get('min_score', 60)
        self.min_change_5m = self.config.get('min_price_change_5m', 2)
        self.min_change_1h = self.config.get('min_price_change_1h', 0)
        self.max_rsi = self.config.get('max_rsi', 70)
        self.min_ratio_5m = self.config.get('min_buy_sell_ratio_5m', 1.2)
        self.min_holder_change = self.config.get('min_holder_change_24h', 0)

    def evaluate(self, token: CandidateToken) -> AdmissionResult:
        if self.mode == 'points':
            return self._evaluate_points(token)
        return self._evaluate_all(token)

    def is_eligible(self, token: CandidateToken) -> bool:
        return self.evaluate(token).eligible

    # ================================================================
    # ALL-OF MODE
    # ================================================================

    def _evaluate_all(self, token: CandidateToken) -> AdmissionResult:
        ind = token.indicators if token.indicators is not None else neutral_indicator_set()
        m5 = token.txn('m5')
        checks = {
            'score': token.score.normalized > self.min_score,
            'momentum_5m': token.change('m5') > self.min_change_5m,
            'momentum_1h': token.change('h1') > self.min_change_1h,
            'macd_bullish': ind['macd'].is_bullish,
            'rsi': ind['rsi'] < self.max_rsi,
            'breakout': (token.price_usd > ind['bollinger'].upper > 0
                         or ind['ichimoku'].tenkan > ind['ichimoku'].kijun),
            'buy_sell_ratio': buy_sell_ratio(m5.buys, m5.sells) > self.min_ratio_5m,
            'holder_growth': (token.holder_change_pct is None
                              or token.holder_change_pct >= self.min_holder_change),
        }
        eligible = all(checks.values())
        failed = [name for name, ok in checks.items() if not ok]
        logger.info(f"🔎 Buy check {token.symbol}: {'PASS' if eligible else 'FAIL'}"
                    + (f" (failed: {', '.join(failed)})" if failed else ""))
        return AdmissionResult(eligible, 'all', float(sum(checks.values())),
                               {k: float(v) for k, v in checks.items()})

    # ================================================================
    # POINTS MODE
    # ================================================================

    def _evaluate_points(self, token: CandidateToken) -> AdmissionResult:
        weights = self.config.get('score_weights', {})
        bonus = self.config.get('bonus', {})
        bonus_points = bonus.get('bonus_points', 5)
        ind = token.indicators if token.indicators is not None else neutral_indicator_set()
        details = {}

        # Token score
        w = weights.get('token_score', 20)
        score = token.score.normalized
        details['token_score'] = w if score > self.min_score else score / self.min_score * w

        # Momentum: half for 5m, half for 1h
        w = weights.get('price_momentum', 15)
        m5 = token.change('m5')
        h1 = token.change('h1')
        momentum = 0.0
        if m5 > self.min_change_5m:
            momentum += w / 2
            if m5 > bonus.get('strong_momentum_5m', 5):
                momentum += bonus_points
        elif m5 > 0:
            momentum += m5 / self.min_change_5m * (w / 2)
        if h1 > self.min_change_1h:
            momentum += w / 2
        elif h1 > -2:
            momentum += (h1 + 2) / 2 * (w / 4)
        details['momentum'] = momentum

        # MACD
        w = weights.get('macd', 15)
        macd = ind['macd']
        if macd.is_bullish:
            points = w
            if macd.histogram > self.config.get('strong_histogram', 0.00001):
                points += bonus_points / 2
        elif macd.histogram > 0:
            points = w / 2
        elif macd.macd > macd.signal:
            points = w / 3
        else:
            points = 0.0
        details['macd'] = points

        # RSI
        w = weights.get('rsi', 10)
        rsi = ind['rsi']
        if rsi < self.max_rsi:
            points = w if 40 <= rsi <= 60 else w * 0.8
        elif rsi < self.max_rsi + 10:
            points = w * (1 - (rsi - self.max_rsi) / 10)
        else:
            points = 0.0
        details['rsi'] = points

        # Breakout
        w = weights.get('price_breakout', 15)
        bands = ind['bollinger']
        above_bb = bands.upper > 0 and token.price_usd > bands.upper
        tk_cross = ind['ichimoku'].tenkan > ind['ichimoku'].kijun
        if above_bb and tk_cross:
            points = w + bonus_points / 2
        elif above_bb:
            points = w * 0.8
        elif tk_cross:
            points = w * 0.7
        elif bands.middle > 0 and token.price_usd > bands.middle:
            points = w * 0.4
        else:
            points = 0.0
        details['breakout'] = points

        # Buy/sell ratio
        w = weights.get('buy_sell_ratio', 15)
        txn = token.txn('m5')
        ratio = buy_sell_ratio(txn.buys, txn.sells)
        if ratio > self.min_ratio_5m:
            points = w
            if ratio > bonus.get('high_buy_sell_ratio', 2.0):
                points += bonus_points
        elif ratio > 1.0:
            points = (ratio - 1) / (self.min_ratio_5m - 1) * w
        else:
            points = 0.0
        details['buy_sell_ratio'] = points

        # Holder growth
        w = weights.get('holder_growth', 10)
        change = token.holder_change_pct
        if change is None:
            points = w * 0.5
        elif change >= self.min_holder_change:
            points = w
            if change > self.config.get('strong_holder_growth', 5):
                points += bonus_points / 2
        elif change > -2:
            points = (change + 2) / 2 * w * 0.5
        else:
            points = 0.0
        details['holder_growth'] = points

        details = {k: round(v, 1) for k, v in details.items()}
        total = round(sum(details.values()), 1)
        min_total = self.config.get('min_total_score', 65)
        eligible = total >= min_total
        logger.info(f"🔎 Buy score {token.symbol}: {total}/100 (threshold {min_total}) "
                    f"-> {'PASS' if eligible else 'FAIL'} {details}")
        return AdmissionResult(eligible, 'points', total, details)
