import unittest

from core.models import CandidateToken, IndicatorSet, Position, Score, TxnCounts
from discovery_config import get_discovery_config
from indicators.engine import ALL_TIERS, neutral_indicator_set
from indicators.values import Bands, IchimokuValue, MACDValue
from bot import TradingBot
from trading.market_snapshot import MarketSnapshotProvider
from trading.paper_swap import PaperSwapService
from trading_config import get_trading_config


def strong_candidate():
    return CandidateToken(
        address="MINT", pool_address="POOL", symbol="MEME", price_usd=1.3,
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


class FakePairs:
    def __init__(self, price=1.3):
        self.price = price

    async def fetch_pair_detail(self, pool_address):
        if self.price is None:
            return None
        return {'price_usd': self.price}


class FakeOHLCV:
    def __init__(self, error=None):
        self.error = error

    async def fetch_ohlcv(self, pool_address, timeframe="hour", aggregate=1):
        if self.error:
            raise self.error
        return []


class FakeHolders:
    enabled = True

    def __init__(self, points):
        self.points = points

    async def fetch_holder_history(self, token_address, from_date=None, to_date=None):
        return {'result': [{'totalHolders': n} for n in self.points]}


class FakeFunnel:
    def __init__(self, candidates):
        self.candidates = candidates
        self.pair_source = FakePairs()
        self.ohlcv_source = FakeOHLCV()
        self.holder_source = None
        self.calls = 0
        self.closed = False

    async def run_discovery_cycle(self):
        self.calls += 1
        return list(self.candidates)

    async def close(self):
        self.closed = True

    def get_stats(self):
        return {'cycles': self.calls}


def bot_config(mode='trading', paper=True):
    trading = get_trading_config()
    trading['balance_settle_seconds'] = 0
    return {
        'bot': {'mode': mode, 'paper_trading': paper},
        'trading': trading,
        'discovery': get_discovery_config(),
    }


class TestTradingBot(unittest.IsolatedAsyncioTestCase):

    async def test_trading_cycle_opens_one_position(self):
        print("\nTesting discovery -> admission -> single slot...")
        funnel = FakeFunnel([strong_candidate()])
        bot = TradingBot(bot_config(), funnel=funnel)
        self.assertIsInstance(bot.swap_service, PaperSwapService)

        candidates = await bot.run_discovery_cycle()
        self.assertEqual(len(candidates), 1)
        self.assertTrue(bot.has_position)
        self.assertEqual(bot.state_machine.position.entry_price, 1.3)

        self.assertEqual(await bot.run_discovery_cycle(), [])
        self.assertEqual(funnel.calls, 1)

        await bot.stop()
        self.assertTrue(bot.has_position)
        self.assertTrue(funnel.closed)
        self.assertEqual(bot.get_stats()['lifecycle']['state'], 'OPEN')

    async def test_monitoring_mode_never_buys(self):
        bot = TradingBot(bot_config(mode='monitoring'), funnel=FakeFunnel([strong_candidate()]))
        candidates = await bot.run_discovery_cycle()
        self.assertEqual(len(candidates), 1)
        self.assertFalse(bot.has_position)
        await bot.stop()

    async def test_run_once(self):
        funnel = FakeFunnel([strong_candidate()])
        bot = TradingBot(bot_config(), funnel=funnel)
        self.assertEqual(len(await bot.run_once()), 1)
        self.assertFalse(bot.has_position)
        await bot.stop()

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            TradingBot(bot_config(mode='yolo'), funnel=FakeFunnel([]))

    def test_live_trading_needs_swap_service(self):
        with self.assertRaises(ValueError):
            TradingBot(bot_config(paper=False), funnel=FakeFunnel([]))


class TestMarketSnapshot(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.position = Position("MINT", "POOL", "MEME", 1.0, 100.0, 100.0)

    async def test_missing_price_skips_tick(self):
        provider = MarketSnapshotProvider(FakePairs(price=None), FakeOHLCV())
        self.assertIsNone(await provider.snapshot(self.position))
        provider = MarketSnapshotProvider(FakePairs(price=0.0), FakeOHLCV())
        self.assertIsNone(await provider.snapshot(self.position))

    async def test_ohlcv_failure_gives_neutral_indicators(self):
        provider = MarketSnapshotProvider(FakePairs(1.1), FakeOHLCV(RuntimeError("429")))
        snapshot = await provider.snapshot(self.position)
        self.assertEqual(snapshot.price, 1.1)
        self.assertEqual(dict(snapshot.indicators), dict(neutral_indicator_set()))
        self.assertIsNone(snapshot.holder_change_pct)

    async def test_holder_change(self):
        provider = MarketSnapshotProvider(FakePairs(1.1), FakeOHLCV(), FakeHolders([100, 90]))
        self.assertEqual((await provider.snapshot(self.position)).holder_change_pct, -10.0)

        provider = MarketSnapshotProvider(FakePairs(1.1), FakeOHLCV(), FakeHolders([100]))
        self.assertIsNone((await provider.snapshot(self.position)).holder_change_pct)


if __name__ == '__main__':
    unittest.main()
