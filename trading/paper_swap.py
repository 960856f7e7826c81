"""
Paper Swap Service
Simulated wallet for paper trading: real prices, fake balances.

Buys convert SOL to tokens at the current USD price minus a simulated
slippage; sells do the reverse. Closed round trips feed the win-rate and
hold-time statistics.
"""

import logging
import random
import time
import uuid
from typing import Awaitable, Callable, Dict, Optional

from core.errors import SwapExecutionError
from safe_math import safe_div
from .swap_service import SwapService

logger = logging.getLogger(__name__)

SOL_MINT = "So11111111111111111111111111111111111111112"

PriceLookup = Callable[[str], Awaitable[Optional[float]]]


class PaperSwapService(SwapService):
    """
    Swap service that never touches the chain.

    Args:
        config: starting_sol, simulated_slippage_pct, fail_rate
        price_lookup: async mint -> USD price; falls back to set_price() values
        sol_price_usd: USD price of SOL used for conversions
    """

    def __init__(self, config: Dict = None, price_lookup: Optional[PriceLookup] = None,
                 sol_price_usd: float = 150.0, rng: Optional[random.Random] = None):
        self.config = config or {}
        self.sol_balance = float(self.config.get('starting_sol', 1.0))
        self.slippage_pct = self.config.get('simulated_slippage_pct', 0.5)
        self.fail_rate = self.config.get('fail_rate', 0.0)
        self.price_lookup = price_lookup
        self.sol_price_usd = sol_price_usd
        self._rng = rng or random.Random()

        self.token_balances: Dict[str, float] = {}
        self.prices: Dict[str, float] = {}
        self._cost_basis: Dict[str, float] = {}  # SOL still invested per mint
        self._realized: Dict[str, float] = {}  # SOL PnL of the open round trip
        self._opened_at: Dict[str, float] = {}

        self.stats = {
            'trades': 0,
            'wins': 0,
            'losses': 0,
            'total_pnl_sol': 0.0,
            'hold_times': [],
        }

    def set_price(self, mint: str, price_usd: float):
        self.prices[mint] = price_usd

    async def _price(self, mint: str) -> float:
        price = None
        if self.price_lookup is not None:
            price = await self.price_lookup(mint)
        if not price:
            price = self.prices.get(mint)
        if not price or price <= 0:
            raise SwapExecutionError(f"no price available for {mint}")
        return price

    # ================================================================
    # SWAP CONTRACT
    # ================================================================

    async def execute_swap(self, input_mint: str, output_mint: str, amount: float,
                           opts: Dict = None) -> Dict:
        if amount <= 0:
            raise SwapExecutionError(f"invalid amount {amount}")
        if self.fail_rate and self._rng.random() < self.fail_rate:
            raise SwapExecutionError("simulated swap failure")

        slip = 1 - self.slippage_pct / 100
        if input_mint == SOL_MINT:
            if amount > self.sol_balance:
                raise SwapExecutionError(
                    f"insufficient SOL: need {amount:.6f}, have {self.sol_balance:.6f}")
            price = await self._price(output_mint)
            received = amount * self.sol_price_usd * slip / price
            self.sol_balance -= amount
            self.token_balances[output_mint] = self.token_balances.get(output_mint, 0.0) + received
            self._cost_basis[output_mint] = self._cost_basis.get(output_mint, 0.0) + amount
            self._opened_at.setdefault(output_mint, time.time())
            logger.info(f"🧪 PAPER BUY {received:.4f} tokens for {amount:.6f} SOL @ ${price:.8f}")
        else:
            held = self.token_balances.get(input_mint, 0.0)
            if amount > held + 1e-12:
                raise SwapExecutionError(f"insufficient tokens: need {amount}, have {held}")
            price = await self._price(input_mint)
            sol_out = amount * price * slip / self.sol_price_usd
            cost = self._cost_basis.get(input_mint, 0.0) * safe_div(amount, held)
            self._cost_basis[input_mint] = self._cost_basis.get(input_mint, 0.0) - cost
            self._realized[input_mint] = self._realized.get(input_mint, 0.0) + (sol_out - cost)
            self.token_balances[input_mint] = max(0.0, held - amount)
            self.sol_balance += sol_out
            logger.info(f"🧪 PAPER SELL {amount:.4f} tokens for {sol_out:.6f} SOL @ ${price:.8f}")
            if self.token_balances[input_mint] <= 1e-12:
                self._close_round_trip(input_mint)

        return {'signature': f"paper-{uuid.uuid4().hex}"}

    async def confirm_transaction(self, signature: str, timeout: float) -> bool:
        return True

    async def get_signature_status(self, signature: str) -> Optional[str]:
        return 'finalized'

    async def get_token_balance(self, mint: str) -> float:
        return self.token_balances.get(mint, 0.0)

    async def get_sol_balance(self) -> float:
        return self.sol_balance

    async def get_sol_price_usd(self) -> Optional[float]:
        return self.sol_price_usd

    async def close(self):
        pass

    # ================================================================
    # STATS
    # ================================================================

    def _close_round_trip(self, mint: str):
        pnl = self._realized.pop(mint, 0.0)
        opened = self._opened_at.pop(mint, time.time())
        self._cost_basis.pop(mint, None)
        self.token_balances.pop(mint, None)

        self.stats['trades'] += 1
        self.stats['total_pnl_sol'] += pnl
        if pnl > 0:
            self.stats['wins'] += 1
        else:
            self.stats['losses'] += 1
        self.stats['hold_times'].append(time.time() - opened)
        logger.info(f"🧪 PAPER round trip closed: PnL {pnl:+.6f} SOL")

    def get_stats(self) -> Dict:
        trades = self.stats['trades']
        hold_times = self.stats['hold_times']
        return {
            'trades': trades,
            'wins': self.stats['wins'],
            'losses': self.stats['losses'],
            'win_rate_pct': safe_div(self.stats['wins'], trades) * 100,
            'total_pnl_sol': self.stats['total_pnl_sol'],
            'avg_hold_seconds': safe_div(sum(hold_times), len(hold_times)),
            'sol_balance': self.sol_balance,
            'open_tokens': dict(self.token_balances),
        }
