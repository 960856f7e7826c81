"""
Core entity schemas: candles, indicator snapshots, candidates and positions.
"""

from .errors import (
    ConfirmationTimeoutError,
    InsufficientBalanceError,
    PositionSlotOccupiedError,
    SwapExecutionError,
    TierAlreadyExecutedError,
    TradingError,
)
from .models import (
    HORIZONS,
    Candle,
    CandidateToken,
    IndicatorSet,
    Position,
    PositionStatus,
    Score,
    TickAction,
    TickResult,
    Tier,
    TxnCounts,
    sort_candles,
)

__all__ = [
    'ConfirmationTimeoutError',
    'InsufficientBalanceError',
    'PositionSlotOccupiedError',
    'SwapExecutionError',
    'TierAlreadyExecutedError',
    'TradingError',
    'HORIZONS',
    'Candle',
    'CandidateToken',
    'IndicatorSet',
    'Position',
    'PositionStatus',
    'Score',
    'TickAction',
    'TickResult',
    'Tier',
    'TxnCounts',
    'sort_candles',
]
