"""
Position lifecycle: admission, exit rules, swap execution and the single-slot state machine.
"""

from .admission import AdmissionPolicy, AdmissionResult
from .exit_rules import ExitDecision, ExitRuleEvaluator, TrailingStop, compute_trailing_stop
from .market_snapshot import MarketSnapshot, MarketSnapshotProvider
from .paper_swap import PaperSwapService
from .position_store import PositionStore
from .retry_policy import ShrinkingRetryPolicy
from .swap_service import SwapService
from .trade_executor import Fill, TradeExecutor
from .trading_state_machine import LifecycleState, TradingStateMachine

__all__ = [
    'AdmissionPolicy',
    'AdmissionResult',
    'ExitDecision',
    'ExitRuleEvaluator',
    'TrailingStop',
    'compute_trailing_stop',
    'MarketSnapshot',
    'MarketSnapshotProvider',
    'PaperSwapService',
    'PositionStore',
    'ShrinkingRetryPolicy',
    'SwapService',
    'Fill',
    'TradeExecutor',
    'LifecycleState',
    'TradingStateMachine',
]
