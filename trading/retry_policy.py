"""
Retry Policy
Retries a swap with a shrinking amount and a widening slippage tolerance.

Attempt i trades ``amount * amount_factor**i`` with the i-th slippage step
(the last step repeats if there are more attempts than steps).
"""

import logging
from typing import Awaitable, Callable, Dict, List, Tuple, TypeVar

from core.errors import SwapExecutionError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ShrinkingRetryPolicy:
    def __init__(self, config: Dict = None):
        self.config = config or {}
        self.attempts = max(1, self.config.get('attempts', 2))
        self.amount_factor = self.config.get('amount_factor', 0.95)
        self.slippage_steps: List[int] = list(self.config.get('slippage_bps_steps', [500, 1000]))
        if not self.slippage_steps:
            self.slippage_steps = [500]

    def plan(self, amount: float, base_slippage_bps: int = None) -> List[Tuple[float, int]]:
        """(amount, slippage_bps) for every attempt."""
        steps = list(self.slippage_steps)
        if base_slippage_bps is not None:
            steps[0] = base_slippage_bps
        out = []
        for i in range(self.attempts):
            slippage = steps[min(i, len(steps) - 1)]
            out.append((amount * (self.amount_factor ** i), slippage))
        return out

    async def run(self, operation: Callable[[float, int], Awaitable[T]], amount: float,
                  base_slippage_bps: int = None, label: str = "swap") -> T:
        """
        Call ``operation(amount, slippage_bps)`` until it succeeds.

        Raises:
            SwapExecutionError: the last attempt's error once all attempts failed
        """
        last_error = None
        plan = self.plan(amount, base_slippage_bps)
        for attempt, (attempt_amount, slippage) in enumerate(plan, start=1):
            try:
                return await operation(attempt_amount, slippage)
            except SwapExecutionError as e:
                last_error = e
                if attempt < len(plan):
                    logger.warning(f"⚠️ {label} attempt {attempt}/{len(plan)} failed: {e} "
                                   f"-> retrying with {plan[attempt][0]:.6f} @ {plan[attempt][1]} bps")
        logger.error(f"❌ {label} failed after {len(plan)} attempts: {last_error}")
        raise last_error
