import random
import unittest

from core.errors import ConfirmationTimeoutError, InsufficientBalanceError, SwapExecutionError
from core.models import CandidateToken, Position
from trading.paper_swap import SOL_MINT, PaperSwapService
from trading.retry_policy import ShrinkingRetryPolicy
from trading.swap_service import SwapService
from trading.trade_executor import TradeExecutor
from trading_config import get_trading_config


class ScriptedSwap(SwapService):
    """Swap service whose answers are set per test."""

    def __init__(self, sol=1.0, token_balances=(0.0, 500.0)):
        self.sol = sol
        self.token_balances = list(token_balances)
        self.swap_errors = []
        self.confirm_result = True
        self.status = 'confirmed'
        self.fail_balance_on_call = None
        self.balance_calls = 0
        self.swaps = []

    async def execute_swap(self, input_mint, output_mint, amount, opts=None):
        self.swaps.append((input_mint, output_mint, amount, opts['slippage_bps']))
        if self.swap_errors:
            raise self.swap_errors.pop(0)
        return {'signature': f"sig-{len(self.swaps)}"}

    async def confirm_transaction(self, signature, timeout):
        if isinstance(self.confirm_result, Exception):
            raise self.confirm_result
        return self.confirm_result

    async def get_signature_status(self, signature):
        return self.status

    async def get_token_balance(self, mint):
        self.balance_calls += 1
        if self.balance_calls == self.fail_balance_on_call:
            raise RuntimeError("rpc down")
        if len(self.token_balances) > 1:
            return self.token_balances.pop(0)
        return self.token_balances[0]

    async def get_sol_balance(self):
        return self.sol

    async def get_sol_price_usd(self):
        return 100.0


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def candidate(price=0.01):
    return CandidateToken(address="MINT", pool_address="POOL", symbol="MEME", price_usd=price)


def position(amount=500.0):
    return Position("MINT", "POOL", "MEME", 0.01, amount, amount)


class TestRetryPolicy(unittest.IsolatedAsyncioTestCase):

    def test_plan_shrinks_amount_and_widens_slippage(self):
        policy = ShrinkingRetryPolicy({'attempts': 2, 'amount_factor': 0.95,
                                       'slippage_bps_steps': [500, 1000]})
        plan = policy.plan(1.0)
        self.assertEqual([bps for _, bps in plan], [500, 1000])
        self.assertAlmostEqual(plan[0][0], 1.0)
        self.assertAlmostEqual(plan[1][0], 0.95)

    def test_last_step_repeats(self):
        policy = ShrinkingRetryPolicy({'attempts': 3, 'slippage_bps_steps': [300]})
        self.assertEqual([bps for _, bps in policy.plan(1.0)], [300, 300, 300])

    async def test_run_raises_last_error(self):
        policy = ShrinkingRetryPolicy({'attempts': 2})
        calls = []

        async def always_fails(amount, slippage):
            calls.append(amount)
            raise SwapExecutionError(f"failed at {slippage}")

        with self.assertRaises(SwapExecutionError) as ctx:
            await policy.run(always_fails, 1.0, 500)
        self.assertEqual(len(calls), 2)
        self.assertIn("1000", str(ctx.exception))

    async def test_other_errors_are_not_retried(self):
        policy = ShrinkingRetryPolicy({'attempts': 3})
        calls = []

        async def broken(amount, slippage):
            calls.append(amount)
            raise KeyError("bug")

        with self.assertRaises(KeyError):
            await policy.run(broken, 1.0)
        self.assertEqual(len(calls), 1)


class TestTradeExecutor(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.config = get_trading_config()
        self.swap = ScriptedSwap()
        self.sleep = FakeSleep()
        self.executor = TradeExecutor(self.swap, self.config, sleep=self.sleep)

    async def test_buy_reads_balance_delta(self):
        print("\nTesting buy fill read back from the wallet...")
        fill = await self.executor.buy(candidate())
        self.assertEqual(fill.amount, 500.0)
        self.assertFalse(fill.estimated)
        self.assertEqual(fill.sol_amount, 0.01)
        self.assertEqual(self.swap.swaps[0][:2], (self.config['sol_mint'], "MINT"))
        self.assertIn(self.config['balance_settle_seconds'], self.sleep.calls)

    async def test_buy_retry_spends_shrunk_amount(self):
        self.swap.swap_errors = [SwapExecutionError("slippage exceeded")]
        fill = await self.executor.buy(candidate())
        self.assertEqual(len(self.swap.swaps), 2)
        self.assertEqual(self.swap.swaps[1][3], 1000)
        self.assertAlmostEqual(fill.sol_amount, 0.0095)

    async def test_buy_with_small_wallet_uses_available(self):
        self.swap.sol = 0.006
        fill = await self.executor.buy(candidate())
        self.assertAlmostEqual(fill.sol_amount, (0.006 - 0.001) * 0.95)

    async def test_insufficient_balance(self):
        self.swap.sol = 0.0005
        with self.assertRaises(InsufficientBalanceError):
            await self.executor.buy(candidate())
        self.assertEqual(self.swap.swaps, [])

    async def test_suspicious_delta_falls_back_to_wallet(self):
        self.swap.token_balances = [600.0, 400.0]
        fill = await self.executor.buy(candidate())
        self.assertEqual(fill.amount, 400.0)
        self.assertFalse(fill.estimated)

    async def test_empty_wallet_after_buy_falls_back_to_estimate(self):
        self.swap.token_balances = [0.0]
        fill = await self.executor.buy(candidate(price=0.01))
        # 0.01 SOL * $100 * 0.95 / ($0.01 * 1.05)
        self.assertAlmostEqual(fill.amount, 0.01 * 100 * 0.95 / (0.01 * 1.05))
        self.assertTrue(fill.estimated)
        self.assertEqual(self.executor.get_stats()['estimated_fills'], 1)

    async def test_unreadable_balance_falls_back_to_estimate(self):
        self.swap.fail_balance_on_call = 2
        fill = await self.executor.buy(candidate(price=0.01))
        self.assertTrue(fill.estimated)
        self.assertGreater(fill.amount, 0)

    async def test_ambiguous_confirmation_resolved_by_status(self):
        self.swap.confirm_result = ConfirmationTimeoutError("timed out")
        self.swap.status = 'finalized'
        fill = await self.executor.buy(candidate())
        self.assertEqual(fill.signature, "sig-1")
        self.assertIn(self.config['extended_confirmation_wait_seconds'], self.sleep.calls)

    async def test_ambiguous_confirmation_without_status_raises(self):
        self.swap.confirm_result = ConfirmationTimeoutError("timed out")
        self.swap.status = None
        with self.assertRaises(ConfirmationTimeoutError):
            await self.executor.buy(candidate())
        self.assertEqual(self.executor.get_stats()['failed'], 1)

    async def test_failed_on_chain(self):
        self.swap.confirm_result = False
        with self.assertRaises(SwapExecutionError):
            await self.executor.buy(candidate())

    async def test_sell_capped_at_wallet_balance(self):
        self.swap.token_balances = [300.0]
        fill = await self.executor.sell(position(), 500.0, reason="stop loss")
        self.assertEqual(fill.amount, 300.0)
        self.assertEqual(self.swap.swaps[0][:3], ("MINT", self.config['sol_mint'], 300.0))

    async def test_sell_with_empty_wallet(self):
        self.swap.token_balances = [0.0]
        with self.assertRaises(SwapExecutionError):
            await self.executor.sell(position(), 100.0)
        self.assertEqual(self.swap.swaps, [])

    async def test_sell_retry_reports_sold_amount(self):
        self.swap.token_balances = [500.0]
        self.swap.swap_errors = [SwapExecutionError("route not found")]
        fill = await self.executor.sell(position(), 200.0)
        self.assertAlmostEqual(fill.amount, 190.0)
        self.assertEqual(self.executor.last_sell, fill)


class TestPaperTrading(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.paper = PaperSwapService({'starting_sol': 1.0, 'simulated_slippage_pct': 0.5},
                                      sol_price_usd=150.0, rng=random.Random(7))
        self.executor = TradeExecutor(self.paper, get_trading_config(), sleep=FakeSleep())

    async def test_round_trip_updates_stats(self):
        print("\nTesting paper round trip...")
        self.paper.set_price("MINT", 1.0)
        fill = await self.executor.buy(candidate(price=1.0))
        self.assertAlmostEqual(fill.amount, 0.01 * 150 * 0.995)

        self.paper.set_price("MINT", 2.0)
        await self.executor.sell(position(fill.amount), fill.amount, price_usd=2.0)
        stats = self.paper.get_stats()
        print(f"Paper stats: {stats}")
        self.assertEqual(stats['trades'], 1)
        self.assertEqual(stats['win_rate_pct'], 100.0)
        self.assertGreater(stats['total_pnl_sol'], 0)
        self.assertEqual(stats['open_tokens'], {})

    async def test_losing_trade(self):
        self.paper.set_price("MINT", 1.0)
        fill = await self.executor.buy(candidate(price=1.0))
        self.paper.set_price("MINT", 0.5)
        await self.executor.sell(position(fill.amount), fill.amount)
        stats = self.paper.get_stats()
        self.assertEqual(stats['losses'], 1)
        self.assertLess(stats['total_pnl_sol'], 0)

    async def test_partial_sell_keeps_round_trip_open(self):
        self.paper.set_price("MINT", 1.0)
        fill = await self.executor.buy(candidate(price=1.0))
        await self.executor.sell(position(fill.amount), fill.amount / 4)
        self.assertEqual(self.paper.get_stats()['trades'], 0)
        self.assertAlmostEqual(await self.paper.get_token_balance("MINT"), fill.amount * 0.75)

    async def test_missing_price_fails_swap(self):
        with self.assertRaises(SwapExecutionError):
            await self.paper.execute_swap(SOL_MINT, "UNPRICED", 0.01)

    async def test_simulated_failures(self):
        paper = PaperSwapService({'fail_rate': 1.0}, rng=random.Random(1))
        paper.set_price("MINT", 1.0)
        with self.assertRaises(SwapExecutionError):
            await paper.execute_swap(SOL_MINT, "MINT", 0.01)


if __name__ == '__main__':
    unittest.main()
