"""
Exit Rules
Evaluates an open position against the exit rules, in priority order:

1. tiered take-profit (highest untriggered tier first, partial sell)
2. full profit target
3. stop loss
4. trailing stop (ATR-based and/or percentage-based)
5. indicator exits (RSI overbought, below Bollinger middle, holders leaving)

The first matching rule wins. Evaluation is pure: tiers are NOT marked
here, the state machine does that when it acts on the decision.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from core.models import IndicatorSet, Position, TickAction, Tier
from indicators.engine import neutral_indicator_set
from safe_math import safe_div

logger = logging.getLogger(__name__)

DEFAULT_ATR_TABLE = [(50, 1.5), (30, 2.0), (15, 2.5)]


@dataclass
class TrailingStop:
    atr_stop: Optional[float]
    percent_stop: float
    active_stop: Optional[float]
    stop_type: str  # 'ATR' | 'percentage' | 'none'
    multiplier: float


@dataclass
class ExitDecision:
    action: TickAction
    reason: str = ""
    rule: str = ""
    tier: Optional[Tier] = None
    sell_fraction_pct: float = 0.0  # of the ORIGINAL size for tiers, of the remainder otherwise
    stop_type: Optional[str] = None
    drop_from_peak_pct: float = 0.0

    @property
    def is_exit(self) -> bool:
        return self.action != TickAction.NONE


def select_atr_multiplier(profit_pct: float, table: Sequence[Tuple[float, float]],
                          default: float) -> float:
    """First entry (from the highest threshold down) whose threshold <= profit."""
    for threshold, multiplier in sorted(table, key=lambda row: row[0], reverse=True):
        if profit_pct >= threshold:
            return multiplier
    return default


def compute_trailing_stop(highest_price: float, atr: float, profit_pct: float,
                          config: Dict = None) -> TrailingStop:
    """
    ATR stop = highest - multiplier(profit) * ATR
    Percent stop = highest * (1 - trail_pct / 100)
    Active stop = max of both when use_max, else the ATR stop alone.

    An ATR of zero (too little history) gives no ATR stop; with use_max the
    percent stop then acts alone, without it there is no trailing stop.
    """
    config = config or {}
    multiplier = select_atr_multiplier(profit_pct,
                                       config.get('atr_multiplier_table', DEFAULT_ATR_TABLE),
                                       config.get('default_atr_multiplier', 3.0))
    atr_stop = highest_price - multiplier * atr if atr > 0 else None
    percent_stop = highest_price * (1 - config.get('trail_pct', 3.0) / 100)

    if config.get('use_max', True):
        if atr_stop is None or percent_stop > atr_stop:
            return TrailingStop(atr_stop, percent_stop, percent_stop, 'percentage', multiplier)
        return TrailingStop(atr_stop, percent_stop, atr_stop, 'ATR', multiplier)
    if atr_stop is None:
        return TrailingStop(None, percent_stop, None, 'none', multiplier)
    return TrailingStop(atr_stop, percent_stop, atr_stop, 'ATR', multiplier)


class ExitRuleEvaluator:
    def __init__(self, config: Dict = None):
        self.config = config or {}
        self.profit_target = self.config.get('profit_target_pct', 100)
        self.stop_loss = abs(self.config.get('stop_loss_pct', 7))
        self.rsi_overbought = self.config.get('rsi_overbought', 80)
        self.min_holder_change = self.config.get('min_holder_change_exit', -5)
        self.trailing_config = self.config.get('trailing_stop', {})

    @staticmethod
    def build_tiers(tier_config: Sequence[Tuple[float, float]]) -> List[Tier]:
        """Fresh tiers for a new position, highest threshold first."""
        tiers = [Tier(float(threshold), float(fraction)) for threshold, fraction in tier_config]
        total = sum(t.position_fraction_pct for t in tiers)
        if total > 100:
            raise ValueError(f"profit tiers sell {total}% of the position (> 100%)")
        return sorted(tiers, key=lambda t: t.profit_threshold_pct, reverse=True)

    def evaluate(self, position: Position, price: float,
                 indicators: Optional[IndicatorSet] = None,
                 holder_change_pct: Optional[float] = None) -> ExitDecision:
        """
        Decide what to do with ``position`` at ``price``.

        ``position.highest_price`` must already include ``price``.
        """
        ind = indicators if indicators is not None else neutral_indicator_set()
        profit = position.profit_pct(price)

        # 1. Tiered take-profit
        for tier in sorted(position.tiers, key=lambda t: t.profit_threshold_pct, reverse=True):
            if not tier.executed and profit >= tier.profit_threshold_pct:
                return ExitDecision(
                    TickAction.PARTIAL_SELL,
                    reason=f"profit tier {tier.profit_threshold_pct:g}% reached ({profit:.2f}%)",
                    rule='tier', tier=tier, sell_fraction_pct=tier.position_fraction_pct)

        # 2. Full profit target
        if profit >= self.profit_target:
            return ExitDecision(TickAction.FULL_SELL,
                                reason=f"profit target {self.profit_target:g}% reached ({profit:.2f}%)",
                                rule='profit_target', sell_fraction_pct=100.0)

        # 3. Stop loss
        if profit <= -self.stop_loss:
            return ExitDecision(TickAction.FULL_SELL,
                                reason=f"stop loss -{self.stop_loss:g}% triggered ({profit:.2f}%)",
                                rule='stop_loss', sell_fraction_pct=100.0)

        # 4. Trailing stop
        highest = position.highest_price
        if highest > position.entry_price:
            stop = compute_trailing_stop(highest, ind['atr'], profit, self.trailing_config)
            if stop.active_stop is not None and price < stop.active_stop:
                drop = safe_div(highest - price, highest) * 100
                return ExitDecision(
                    TickAction.FULL_SELL,
                    reason=(f"trailing stop, {stop.stop_type}-based: price {price:.8f} < "
                            f"stop {stop.active_stop:.8f} ({drop:.2f}% below peak)"),
                    rule='trailing_stop', sell_fraction_pct=100.0,
                    stop_type=stop.stop_type, drop_from_peak_pct=drop)

        # 5. Indicator exits
        if ind['rsi'] > self.rsi_overbought:
            return ExitDecision(TickAction.FULL_SELL,
                                reason=f"RSI overbought ({ind['rsi']:.1f} > {self.rsi_overbought})",
                                rule='rsi', sell_fraction_pct=100.0)
        middle = ind['bollinger'].middle
        if middle > 0 and price < middle:
            return ExitDecision(TickAction.FULL_SELL,
                                reason=f"price below Bollinger middle band ({middle:.8f})",
                                rule='bollinger_middle', sell_fraction_pct=100.0)
        if holder_change_pct is not None and holder_change_pct < self.min_holder_change:
            return ExitDecision(TickAction.FULL_SELL,
                                reason=f"holders leaving ({holder_change_pct:.2f}% < {self.min_holder_change}%)",
                                rule='holder_change', sell_fraction_pct=100.0)

        return ExitDecision(TickAction.NONE, reason="hold")
