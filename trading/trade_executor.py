"""
Trade Executor
Orchestrates the swap flow: Balance check -> Swap (with retry) -> Confirm -> Read back fill
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Optional, Tuple
import time

from core.errors import ConfirmationTimeoutError, InsufficientBalanceError, SwapExecutionError
from core.models import CandidateToken, Position
from .retry_policy import ShrinkingRetryPolicy
from .swap_service import SwapService

logger = logging.getLogger(__name__)

CONFIRMED_STATUSES = ('confirmed', 'finalized')


@dataclass
class Fill:
    """What actually happened on chain for one buy or sell."""
    side: str  # 'BUY' | 'SELL'
    mint: str
    amount: float  # tokens received (BUY) or sold (SELL)
    signature: str
    sol_amount: float = 0.0  # SOL spent (BUY)
    price_usd: float = 0.0
    estimated: bool = False  # amount is the price-based fallback estimate
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict:
        return {
            'side': self.side,
            'mint': self.mint,
            'amount': self.amount,
            'signature': self.signature,
            'sol_amount': self.sol_amount,
            'price_usd': self.price_usd,
            'estimated': self.estimated,
            'timestamp': self.timestamp,
        }


class TradeExecutor:
    def __init__(self, swap_service: SwapService, config: Dict = None,
                 retry_policy: Optional[ShrinkingRetryPolicy] = None,
                 sleep: Callable[[float], Awaitable] = asyncio.sleep):
        self.swap = swap_service
        self.config = config or {}
        self.retry = retry_policy or ShrinkingRetryPolicy(self.config.get('retry', {}))
        self._sleep = sleep

        self.sol_mint = self.config.get('sol_mint', 'So11111111111111111111111111111111111111112')
        self.buy_amount_sol = self.config.get('buy_amount_sol', 0.01)
        self.minimum_sol_balance = self.config.get('minimum_sol_balance', 0.001)
        self.slippage_bps = self.config.get('slippage_bps', 500)
        self.confirm_timeout = self.config.get('confirmation_timeout_seconds', 60)
        self.extended_wait = self.config.get('extended_confirmation_wait_seconds', 30)
        self.settle_seconds = self.config.get('balance_settle_seconds', 2)
        self.suspicious_limit = self.config.get('suspicious_amount_limit', 1e9)

        self.last_buy: Optional[Fill] = None
        self.last_sell: Optional[Fill] = None
        self.stats = {'buys': 0, 'sells': 0, 'failed': 0, 'estimated_fills': 0}

    # ================================================================
    # CONFIRMATION
    # ================================================================

    async def _confirm(self, signature: str) -> bool:
        """
        Confirm a signature. A timeout is not a failure yet: wait once more
        and poll the signature status before deciding.
        """
        try:
            return await self.swap.confirm_transaction(signature, self.confirm_timeout)
        except ConfirmationTimeoutError:
            logger.warning(f"⏳ Confirmation timed out for {signature}, "
                           f"re-checking in {self.extended_wait}s")

        await self._sleep(self.extended_wait)
        status = await self.swap.get_signature_status(signature)
        if status in CONFIRMED_STATUSES:
            logger.info(f"✅ {signature} was {status} after the timeout")
            return True
        if status == 'failed':
            return False
        raise ConfirmationTimeoutError(
            f"no definitive status for {signature} (last: {status})", signature=signature)

    async def _submit(self, input_mint: str, output_mint: str, amount: float,
                      slippage_bps: int) -> str:
        result = await self.swap.execute_swap(input_mint, output_mint, amount,
                                              {'slippage_bps': slippage_bps})
        signature = (result or {}).get('signature')
        if not signature:
            raise SwapExecutionError(f"swap returned no signature: {result!r}")
        if not await self._confirm(signature):
            raise SwapExecutionError(f"transaction failed on chain: {signature}")
        return signature

    # ================================================================
    # BUY
    # ================================================================

    async def _buy_size(self) -> float:
        balance = await self.swap.get_sol_balance()
        available = balance - self.minimum_sol_balance
        if available <= 0:
            raise InsufficientBalanceError(
                f"SOL balance {balance:.6f} is below the reserve {self.minimum_sol_balance}")
        if available < self.buy_amount_sol:
            amount = available * 0.95
            logger.warning(f"⚠️ Wallet holds less than {self.buy_amount_sol} SOL, buying with {amount:.6f}")
            return amount
        return self.buy_amount_sol

    async def _estimate_fill(self, sol_amount: float, price_usd: float) -> float:
        """Conservative estimate: 5% off the SOL value, 5% on top of the price."""
        if price_usd <= 0:
            raise SwapExecutionError("cannot estimate fill without a price")
        sol_price = await self.swap.get_sol_price_usd() or self.config.get('sol_price_usd_fallback', 150.0)
        return sol_amount * sol_price * 0.95 / (price_usd * 1.05)

    async def _filled_amount(self, mint: str, pre_balance: float, sol_amount: float,
                             price_usd: float) -> Tuple[float, bool]:
        """
        Tokens received by a buy, read back from the wallet.

        Returns:
            (amount, estimated)
        """
        try:
            post_balance = await self.swap.get_token_balance(mint)
        except Exception as e:
            logger.warning(f"⚠️ Post-swap balance read failed: {e}, estimating fill")
            return await self._estimate_fill(sol_amount, price_usd), True

        received = post_balance - pre_balance
        if 0 < received <= self.suspicious_limit:
            return received, False

        logger.warning(f"⚠️ Suspicious received amount ({received}), using wallet balance")
        if 0 < post_balance <= self.suspicious_limit:
            return post_balance, False

        logger.warning(f"⚠️ Wallet balance unusable ({post_balance}), estimating fill")
        return await self._estimate_fill(sol_amount, price_usd), True

    async def buy(self, candidate: CandidateToken) -> Fill:
        """
        Swap SOL into ``candidate`` and report the realized amount.

        Raises:
            InsufficientBalanceError: the wallet cannot fund the buy
            SwapExecutionError: every attempt failed
        """
        mint = candidate.address
        sol_amount = await self._buy_size()
        pre_balance = await self.swap.get_token_balance(mint)
        spent = {'sol': sol_amount}

        async def attempt(amount: float, slippage_bps: int) -> str:
            spent['sol'] = amount
            return await self._submit(self.sol_mint, mint, amount, slippage_bps)

        logger.info(f"🛒 BUY {candidate.symbol}: {sol_amount:.6f} SOL @ ${candidate.price_usd:.8f}")
        try:
            signature = await self.retry.run(attempt, sol_amount, self.slippage_bps,
                                             label=f"BUY {candidate.symbol}")
        except SwapExecutionError:
            self.stats['failed'] += 1
            raise

        await self._sleep(self.settle_seconds)
        amount, estimated = await self._filled_amount(mint, pre_balance, spent['sol'],
                                                      candidate.price_usd)
        if estimated:
            self.stats['estimated_fills'] += 1

        fill = Fill('BUY', mint, amount, signature, sol_amount=spent['sol'],
                    price_usd=candidate.price_usd, estimated=estimated)
        self.last_buy = fill
        self.stats['buys'] += 1
        logger.info(f"✅ BUY filled: {amount:.4f} {candidate.symbol} ({signature})")
        return fill

    # ================================================================
    # SELL
    # ================================================================

    async def sell(self, position: Position, amount: float, reason: str = "",
                   price_usd: float = 0.0) -> Fill:
        """
        Swap ``amount`` of the position's token back to SOL.

        The amount is capped at what the wallet actually holds.

        Raises:
            SwapExecutionError: nothing to sell, or every attempt failed
        """
        mint = position.token_address
        balance = await self.swap.get_token_balance(mint)
        if balance <= 0:
            raise SwapExecutionError(f"wallet holds no {position.symbol}")
        if amount > balance:
            logger.warning(f"⚠️ Sell amount {amount} exceeds wallet balance {balance}, capping")
            amount = balance

        sold = {'amount': amount}

        async def attempt(attempt_amount: float, slippage_bps: int) -> str:
            sold['amount'] = attempt_amount
            return await self._submit(mint, self.sol_mint, attempt_amount, slippage_bps)

        logger.info(f"💰 SELL {amount:.4f} {position.symbol} ({reason})")
        try:
            signature = await self.retry.run(attempt, amount, self.slippage_bps,
                                             label=f"SELL {position.symbol}")
        except SwapExecutionError:
            self.stats['failed'] += 1
            raise

        fill = Fill('SELL', mint, sold['amount'], signature, price_usd=price_usd)
        self.last_sell = fill
        self.stats['sells'] += 1
        logger.info(f"✅ SELL confirmed: {sold['amount']:.4f} {position.symbol} ({signature})")
        return fill

    def get_stats(self) -> Dict:
        return {
            **self.stats,
            'last_buy': self.last_buy.to_dict() if self.last_buy else None,
            'last_sell': self.last_sell.to_dict() if self.last_sell else None,
        }
