import unittest

from core.errors import PositionSlotOccupiedError, SwapExecutionError, TierAlreadyExecutedError
from core.models import Candle, CandidateToken, IndicatorSet, Position, Score, TickAction, TxnCounts
from indicators.engine import ALL_TIERS, BASIC, INTERMEDIATE, compute_indicators, neutral_indicator_set
from indicators.values import Bands, IchimokuValue, MACDValue
from trading.admission import AdmissionPolicy
from trading.exit_rules import ExitRuleEvaluator
from trading.position_store import PositionStore
from trading.trade_executor import Fill
from trading.trading_state_machine import LifecycleState, TradingStateMachine
from trading_config import get_trading_config


class AlwaysEligible:
    def is_eligible(self, token):
        return True


class FakeExecutor:
    def __init__(self, bought=1000.0):
        self.bought = bought
        self.fail_sells = False
        self.fail_buys = False
        self.sell_error = None
        self.buys = []
        self.sells = []

    async def buy(self, candidate):
        if self.fail_buys:
            raise SwapExecutionError("buy rejected")
        self.buys.append(candidate.address)
        return Fill('BUY', candidate.address, self.bought, 'sig-buy')

    async def sell(self, position, amount, reason="", price_usd=0.0):
        if self.fail_sells:
            raise SwapExecutionError("sell rejected")
        if self.sell_error is not None:
            raise self.sell_error
        self.sells.append(amount)
        return Fill('SELL', position.token_address, amount, f'sig-sell-{len(self.sells)}')


class BrokenSnapshots:
    async def snapshot(self, position):
        raise RuntimeError("price API down")


def candidate(address="MINT", price=1.0, **kwargs):
    return CandidateToken(address=address, pool_address=f"pool-{address}", symbol="MEME",
                          price_usd=price, **kwargs)


def rising_candles(n=60, start=1.0, end=1.5):
    candles = []
    for i in range(n):
        c = start + (end - start) * i / (n - 1)
        candles.append(Candle(i * 3600, c, c * 1.01, c * 0.99, c, 1000.0))
    return candles


class TestTradingStateMachine(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.config = get_trading_config()
        self.executor = FakeExecutor()
        self.machine = TradingStateMachine(self.config, self.executor, admission=AlwaysEligible())

    async def open_position(self, price=1.0):
        position = await self.machine.admit_if_eligible([candidate(price=price)])
        self.assertIsNotNone(position)
        return position

    async def test_admission_opens_position(self):
        position = await self.open_position()
        self.assertEqual(self.machine.state, LifecycleState.OPEN)
        self.assertEqual(position.entry_price, 1.0)
        self.assertEqual(position.highest_price, 1.0)
        self.assertEqual(position.original_amount, 1000.0)
        self.assertEqual(position.entry_signature, 'sig-buy')
        self.assertEqual([t.profit_threshold_pct for t in position.tiers], [50, 30, 15])

    async def test_steady_rise_executes_tiers(self):
        print("\nTesting tier execution on a steady 50% rise...")
        self.config['rsi_overbought'] = 101
        machine = TradingStateMachine(self.config, self.executor, admission=AlwaysEligible())
        position = await machine.admit_if_eligible([candidate(price=1.0)])
        candles = rising_candles()

        last = None
        for i in range(1, len(candles)):
            last = compute_indicators(candles[:i + 1], {BASIC, INTERMEDIATE})
            await machine.process_tick(candles[i].close, last)

        executed = {t.profit_threshold_pct for t in position.tiers if t.executed}
        print(f"Executed tiers: {sorted(executed)}, remaining {position.amount_remaining}")
        self.assertIn(15, executed)
        self.assertIn(30, executed)
        self.assertLessEqual(position.executed_fraction_pct, 100)
        self.assertEqual(len(self.executor.sells), len(executed))
        self.assertGreater(last['atr'], 0)
        self.assertEqual(machine.state, LifecycleState.PARTIALLY_CLOSED)

    async def test_tier_fires_once(self):
        position = await self.open_position()
        for _ in range(5):
            await self.machine.process_tick(1.2)
        self.assertEqual(len(self.executor.sells), 1)
        self.assertEqual(position.amount_remaining, 750.0)
        self.assertEqual(self.machine.state, LifecycleState.PARTIALLY_CLOSED)
        with self.assertRaises(TierAlreadyExecutedError):
            position.tiers[-1].mark_executed()

    async def test_tier_amount_uses_original_size(self):
        position = await self.open_position()
        await self.machine.process_tick(1.2)
        await self.machine.process_tick(1.35)
        self.assertEqual(self.executor.sells, [250.0, 250.0])
        self.assertEqual(position.amount_remaining, 500.0)

    async def test_failed_tier_sell_is_rolled_back(self):
        position = await self.open_position()
        self.executor.fail_sells = True
        result = await self.machine.process_tick(1.2)
        self.assertEqual(result.action, TickAction.NONE)
        self.assertFalse(any(t.executed for t in position.tiers))
        self.assertEqual(position.amount_remaining, 1000.0)

        self.executor.fail_sells = False
        result = await self.machine.process_tick(1.2)
        self.assertEqual(result.action, TickAction.PARTIAL_SELL)
        self.assertEqual(result.sold_amount, 250.0)

    async def test_wallet_read_error_rearms_tier(self):
        position = await self.open_position()
        self.executor.sell_error = ConnectionError("RPC node unreachable")
        result = await self.machine.process_tick(1.2)
        self.assertEqual(result.action, TickAction.NONE)
        self.assertIn("RPC node unreachable", result.reason)
        self.assertFalse(any(t.executed for t in position.tiers))
        self.assertEqual(position.amount_remaining, 1000.0)

        self.executor.sell_error = None
        result = await self.machine.process_tick(1.2)
        self.assertEqual(result.action, TickAction.PARTIAL_SELL)
        self.assertEqual(result.sold_amount, 250.0)

    async def test_failed_tier_sell_without_rollback(self):
        self.config['rollback_tier_on_failure'] = False
        machine = TradingStateMachine(self.config, self.executor, admission=AlwaysEligible())
        position = await machine.admit_if_eligible([candidate()])
        self.executor.fail_sells = True
        await machine.process_tick(1.2)
        self.assertTrue(position.tiers[-1].executed)
        self.assertEqual(position.amount_remaining, 1000.0)

    async def test_single_slot(self):
        await self.open_position()
        self.assertIsNone(await self.machine.admit_if_eligible([candidate("OTHER")]))
        self.assertEqual(self.executor.buys, ["MINT"])
        with self.assertRaises(PositionSlotOccupiedError):
            self.machine.store.open(Position("X", "P", "X", 1.0, 1.0, 1.0))

    async def test_full_sell_frees_slot(self):
        await self.open_position()
        result = await self.machine.process_tick(0.9)
        self.assertEqual(result.action, TickAction.FULL_SELL)
        self.assertEqual(self.executor.sells, [1000.0])
        self.assertEqual(self.machine.state, LifecycleState.EMPTY)
        self.assertEqual(self.machine.closed_positions[0]['exit_reason'], result.reason)
        self.assertIsNotNone(await self.machine.admit_if_eligible([candidate("NEXT")]))

    async def test_failed_exit_keeps_position(self):
        await self.open_position()
        self.executor.fail_sells = True
        result = await self.machine.process_tick(0.9)
        self.assertEqual(result.action, TickAction.NONE)
        self.assertEqual(self.machine.state, LifecycleState.OPEN)

        self.executor.fail_sells = False
        result = await self.machine.process_tick(0.9)
        self.assertEqual(result.action, TickAction.FULL_SELL)

    async def test_exit_sell_connection_error_keeps_position(self):
        await self.open_position()
        self.executor.sell_error = ConnectionError("RPC node unreachable")
        result = await self.machine.process_tick(0.9)
        self.assertEqual(result.action, TickAction.NONE)
        self.assertEqual(self.machine.state, LifecycleState.OPEN)

    async def test_last_tier_to_zero_closes(self):
        self.config['profit_tiers'] = [(10, 100)]
        machine = TradingStateMachine(self.config, self.executor, admission=AlwaysEligible())
        await machine.admit_if_eligible([candidate()])
        result = await machine.process_tick(1.2)
        self.assertEqual(result.action, TickAction.PARTIAL_SELL)
        self.assertEqual(machine.state, LifecycleState.EMPTY)

    async def test_failed_buy_leaves_slot_empty(self):
        self.executor.fail_buys = True
        self.assertIsNone(await self.machine.admit_if_eligible([candidate()]))
        self.assertEqual(self.machine.state, LifecycleState.EMPTY)

    async def test_disabled_trading_never_buys(self):
        self.config['enabled'] = False
        machine = TradingStateMachine(self.config, self.executor, admission=AlwaysEligible())
        self.assertIsNone(await machine.admit_if_eligible([candidate()]))
        self.assertEqual(self.executor.buys, [])

    async def test_zero_price_candidate_skipped(self):
        position = await self.machine.admit_if_eligible([candidate("FREE", price=0.0),
                                                         candidate("PAID", price=2.0)])
        self.assertEqual(position.token_address, "PAID")

    async def test_monitor_tick_never_raises(self):
        machine = TradingStateMachine(self.config, self.executor,
                                      snapshot_provider=BrokenSnapshots(),
                                      admission=AlwaysEligible())
        self.assertEqual((await machine.monitor_tick()).action, TickAction.NONE)
        await machine.admit_if_eligible([candidate()])
        result = await machine.monitor_tick()
        self.assertEqual(result.action, TickAction.NONE)
        self.assertIn("tick failed", result.reason)
        self.assertEqual(machine.state, LifecycleState.OPEN)

    async def test_status(self):
        await self.open_position()
        status = self.machine.get_status()
        self.assertEqual(status['state'], 'OPEN')
        self.assertEqual(status['position']['token_address'], 'MINT')


def strong_candidate(**kwargs):
    fields = dict(
        address="STRONG", pool_address="POOL", symbol="STRONG", price_usd=1.3,
        price_change={'m5': 6, 'h1': 10},
        txns={'m5': TxnCounts(50, 10)},
        holder_change_pct=8.0,
        score=Score(raw=150, normalized=75),
        indicators=IndicatorSet(
            dict(neutral_indicator_set(),
                 rsi=50.0,
                 macd=MACDValue(0.02, 0.01, 0.01),
                 bollinger=Bands(1.2, 1.0, 0.8),
                 ichimoku=IchimokuValue(1.1, 1.0, 1.0, 1.0)),
            ALL_TIERS, 60),
    )
    fields.update(kwargs)
    return CandidateToken(**fields)


class TestAdmissionPolicy(unittest.TestCase):

    def setUp(self):
        self.criteria = get_trading_config()['buy_criteria']

    def test_all_mode(self):
        policy = AdmissionPolicy(self.criteria)
        self.assertTrue(policy.is_eligible(strong_candidate()))

        hot = strong_candidate()
        hot.indicators = IndicatorSet(dict(hot.indicators, rsi=75.0), ALL_TIERS, 60)
        result = policy.evaluate(hot)
        self.assertFalse(result.eligible)
        self.assertEqual(result.details['rsi'], 0.0)

    def test_all_mode_without_indicators(self):
        self.assertFalse(AdmissionPolicy(self.criteria).is_eligible(strong_candidate(indicators=None)))

    def test_points_mode(self):
        self.criteria['mode'] = 'points'
        policy = AdmissionPolicy(self.criteria)
        strong = policy.evaluate(strong_candidate())
        print(f"\nPoints: {strong.total} {strong.details}")
        self.assertTrue(strong.eligible)
        self.assertGreaterEqual(strong.total, 65)

        weak = policy.evaluate(strong_candidate(
            score=Score(raw=20, normalized=10), price_change={'m5': 0.5, 'h1': -1},
            txns={'m5': TxnCounts(10, 10)}, holder_change_pct=-1.0,
            indicators=neutral_indicator_set()))
        self.assertFalse(weak.eligible)
        self.assertLess(weak.total, 65)

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            AdmissionPolicy({'mode': 'vibes'})


class TestPositionStore(unittest.TestCase):

    def test_open_and_clear(self):
        store = PositionStore()
        self.assertTrue(store.is_empty)
        position = Position("MINT", "POOL", "MEME", 1.0, 10.0, 10.0,
                            tiers=ExitRuleEvaluator.build_tiers([(15, 25)]))
        store.open(position)
        self.assertIs(store.position, position)
        self.assertIs(store.clear(), position)
        self.assertTrue(store.is_empty)
        self.assertIsNone(store.clear())


if __name__ == '__main__':
    unittest.main()
