"""
Trading State Machine
Manages the single position lifecycle: EMPTY -> OPEN -> PARTIALLY_CLOSED -> CLOSED (-> EMPTY)
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

from core.errors import TradingError
from core.models import (
    CandidateToken, IndicatorSet, Position, PositionStatus, TickAction, TickResult,
)
from .admission import AdmissionPolicy
from .exit_rules import ExitDecision, ExitRuleEvaluator
from .market_snapshot import MarketSnapshotProvider
from .position_store import PositionStore
from .trade_executor import TradeExecutor

logger = logging.getLogger(__name__)

# Remaining amount below this fraction of the original size counts as sold out
DUST_FRACTION = 1e-6


class LifecycleState(Enum):
    EMPTY = "EMPTY"                        # No position
    OPEN = "OPEN"                          # Admitted, tiers pending
    PARTIALLY_CLOSED = "PARTIALLY_CLOSED"  # At least one tier sold
    CLOSED = "CLOSED"                      # Fully sold, about to leave the slot


class TradingStateMachine:
    def __init__(self, config: Dict, executor: TradeExecutor,
                 snapshot_provider: Optional[MarketSnapshotProvider] = None,
                 store: Optional[PositionStore] = None,
                 admission: Optional[AdmissionPolicy] = None,
                 exit_rules: Optional[ExitRuleEvaluator] = None):
        self.config = config or {}
        self.executor = executor
        self.snapshot_provider = snapshot_provider
        self.store = store or PositionStore()
        self.admission = admission or AdmissionPolicy(self.config.get('buy_criteria', {}))
        self.exit_rules = exit_rules or ExitRuleEvaluator(self.config)
        self.rollback_tier_on_failure = self.config.get('rollback_tier_on_failure', True)
        self.closed_positions: List[Dict] = []

    @property
    def state(self) -> LifecycleState:
        position = self.store.position
        if position is None:
            return LifecycleState.EMPTY
        return LifecycleState(position.status.value)

    @property
    def position(self) -> Optional[Position]:
        return self.store.position

    # ================================================================
    # ADMISSION (EMPTY -> OPEN)
    # ================================================================

    async def admit_if_eligible(self, candidates: List[CandidateToken]) -> Optional[Position]:
        """
        Buy the best eligible candidate if the slot is free.

        Candidates are expected ranked best first. Returns the new position,
        or None when nothing was bought.
        """
        if not self.store.is_empty:
            logger.debug(f"Slot busy with {self.store.position.symbol}, no admission")
            return None
        if not self.config.get('enabled', True):
            logger.info("Trading disabled, not admitting")
            return None

        candidate = next((c for c in candidates
                          if c.price_usd > 0 and self.admission.is_eligible(c)), None)
        if candidate is None:
            logger.info("🤷 No candidate met the buy criteria")
            return None

        tiers = self.exit_rules.build_tiers(self.config.get('profit_tiers', []))
        try:
            fill = await self.executor.buy(candidate)
        except TradingError as e:
            logger.error(f"❌ Buy of {candidate.symbol} failed: {e}")
            return None

        position = Position(
            token_address=candidate.address,
            pool_address=candidate.pool_address,
            symbol=candidate.symbol,
            entry_price=candidate.price_usd,
            original_amount=fill.amount,
            amount_remaining=fill.amount,
            tiers=tiers,
            highest_price=candidate.price_usd,
            entry_signature=fill.signature,
        )
        self.store.open(position)
        logger.info(f"🟢 OPEN {position.symbol}: {fill.amount:.4f} tokens @ ${position.entry_price:.8f} "
                    f"(score {candidate.score.normalized:.1f})")
        return position

    # ================================================================
    # MONITORING
    # ================================================================

    async def monitor_tick(self) -> TickResult:
        """
        Fetch a market snapshot and evaluate the open position once.

        Never raises: a failing tick is logged and reported as NONE.
        """
        position = self.store.position
        if position is None:
            return TickResult(TickAction.NONE, "no open position")
        try:
            snapshot = await self.snapshot_provider.snapshot(position)
            if snapshot is None:
                return TickResult(TickAction.NONE, "no price data", position)
            return await self.process_tick(snapshot.price, snapshot.indicators,
                                           snapshot.holder_change_pct)
        except Exception as e:
            logger.error(f"❌ Monitoring tick failed for {position.symbol}: {e}")
            return TickResult(TickAction.NONE, f"tick failed: {e}", position)

    async def process_tick(self, price: float, indicators: Optional[IndicatorSet] = None,
                           holder_change_pct: Optional[float] = None) -> TickResult:
        """Evaluate the open position at ``price`` and act on the first matching exit rule."""
        position = self.store.position
        if position is None:
            return TickResult(TickAction.NONE, "no open position")

        position.update_highest(price)
        profit = position.profit_pct(price)
        decision = self.exit_rules.evaluate(position, price, indicators, holder_change_pct)

        if not decision.is_exit:
            logger.debug(f"🔄 {position.symbol} ${price:.8f} | PnL {profit:+.2f}% | "
                         f"peak ${position.highest_price:.8f}")
            return TickResult(TickAction.NONE, decision.reason, position, price, profit)

        if decision.action == TickAction.PARTIAL_SELL:
            return await self._sell_tier(position, decision, price, profit)
        return await self._sell_all(position, decision, price, profit)

    async def _sell_tier(self, position: Position, decision: ExitDecision,
                         price: float, profit: float) -> TickResult:
        tier = decision.tier
        tier.mark_executed()
        amount = min(position.original_amount * tier.position_fraction_pct / 100,
                     position.amount_remaining)
        logger.info(f"💎 {position.symbol}: {decision.reason} -> selling {tier.position_fraction_pct:g}% "
                    f"of the original size")
        try:
            fill = await self.executor.sell(position, amount, decision.reason, price)
        except Exception as e:
            if self.rollback_tier_on_failure:
                tier.rollback()
                logger.error(f"❌ Tier {tier.profit_threshold_pct:g}% sell failed, tier re-armed: {e}")
            else:
                logger.critical(f"🚨 Tier {tier.profit_threshold_pct:g}% sell failed and the tier stays "
                                f"executed; {amount:.4f} {position.symbol} need manual attention: {e}")
            return TickResult(TickAction.NONE, f"tier sell failed: {e}", position, price, profit)

        position.amount_remaining = max(0.0, position.amount_remaining - fill.amount)
        position.status = PositionStatus.PARTIALLY_CLOSED
        if position.amount_remaining <= position.original_amount * DUST_FRACTION:
            self._close(position, price, decision.reason)
        return TickResult(TickAction.PARTIAL_SELL, decision.reason, position, price, profit,
                          fill.amount, fill.signature)

    async def _sell_all(self, position: Position, decision: ExitDecision,
                        price: float, profit: float) -> TickResult:
        logger.info(f"🛑 {position.symbol}: {decision.reason} -> selling everything")
        try:
            fill = await self.executor.sell(position, position.amount_remaining, decision.reason, price)
        except Exception as e:
            logger.error(f"❌ Exit sell of {position.symbol} failed, will retry next tick: {e}")
            return TickResult(TickAction.NONE, f"exit sell failed: {e}", position, price, profit)

        position.amount_remaining = max(0.0, position.amount_remaining - fill.amount)
        if position.amount_remaining > position.original_amount * DUST_FRACTION:
            logger.warning(f"⚠️ {position.amount_remaining:.4f} {position.symbol} left in the wallet "
                           f"after the exit sell")
        self._close(position, price, decision.reason)
        return TickResult(TickAction.FULL_SELL, decision.reason, position, price, profit,
                          fill.amount, fill.signature)

    def _close(self, position: Position, price: float, reason: str):
        position.status = PositionStatus.CLOSED
        self.store.clear()
        record = position.to_dict()
        record.update({'exit_price': price, 'exit_reason': reason,
                       'profit_pct': position.profit_pct(price),
                       'hold_seconds': position.hold_seconds})
        self.closed_positions.append(record)
        logger.info(f"🏁 CLOSED {position.symbol} @ ${price:.8f} "
                    f"({record['profit_pct']:+.2f}%, held {record['hold_seconds']:.0f}s): {reason}")

    def get_status(self) -> Dict:
        position = self.store.position
        return {
            'state': self.state.value,
            'position': position.to_dict() if position else None,
            'closed_positions': len(self.closed_positions),
        }
