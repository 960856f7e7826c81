import unittest

from core.models import Candle
from indicators import moving_averages as ma
from indicators import oscillators as osc
from indicators import volatility as vol
from indicators import volume as vlm
from indicators.engine import (
    ADVANCED, ALL_TIERS, BASIC, FUNNEL_TIERS, INTERMEDIATE, TIER_KEYS, VOLUME,
    IndicatorEngine, compute_indicators, neutral_indicator_set, with_tiers,
)
from indicators.values import Bands, IchimokuValue, MACDValue


def make_candles(closes, spread=0.01, volume=1000.0):
    return [
        Candle(timestamp=i * 3600, open=c, high=c * (1 + spread), low=c * (1 - spread),
               close=c, volume=volume)
        for i, c in enumerate(closes)
    ]


def rising(n, start=1.0, end=1.5):
    return [start + (end - start) * i / (n - 1) for i in range(n)]


ALL_KEYS = {key for keys in TIER_KEYS.values() for key in keys}


class TestMovingAverages(unittest.TestCase):

    def test_sma_and_ema(self):
        self.assertAlmostEqual(ma.sma([1, 2, 3, 4, 5], 3), 4.0)
        # seeded with SMA(1,2,3)=2, k=0.5 -> 3 -> 4
        self.assertAlmostEqual(ma.ema([1, 2, 3, 4, 5], 3), 4.0)

    def test_trima_weights_are_symmetric(self):
        self.assertEqual(ma.trima_weights(5), [1, 2, 3, 2, 1])
        self.assertEqual(ma.trima_weights(4), [1, 2, 2, 1])

    def test_short_series_is_neutral(self):
        self.assertEqual(ma.sma([1, 2], 3), 0.0)
        self.assertEqual(ma.ema([1, 2], 3), 0.0)
        self.assertEqual(ma.dema([1, 2, 3, 4, 5], 3), 0.0)
        self.assertEqual(ma.tema([1] * 8, 3), 0.0)
        self.assertEqual(ma.vwma([1, 2, 3], [0, 0, 0], 3), 0.0)


class TestOscillators(unittest.TestCase):

    def test_rsi_edges(self):
        self.assertEqual(osc.rsi([1.0] * 5, 14), 0.0)
        self.assertEqual(osc.rsi([1.0] * 20, 14), 50.0)
        self.assertEqual(osc.rsi(rising(20), 14), 100.0)

    def test_rsi_falling_series_is_low(self):
        self.assertLess(osc.rsi(list(reversed(rising(30))), 14), 1.0)

    def test_macd_needs_signal_history(self):
        self.assertEqual(osc.macd(rising(30), 12, 26, 9), MACDValue())
        value = osc.macd(rising(60), 12, 26, 9)
        self.assertGreater(value.macd, 0)


class TestVolatilityAndVolume(unittest.TestCase):

    def test_atr_constant_range(self):
        highs = [11.0] * 20
        lows = [9.0] * 20
        closes = [10.0] * 20
        self.assertAlmostEqual(vol.atr(highs, lows, closes, 14), 2.0)
        self.assertEqual(vol.atr(highs[:5], lows[:5], closes[:5], 14), 0.0)

    def test_bollinger_flat_series_collapses(self):
        bands = vol.bollinger([2.0] * 20, 20)
        self.assertEqual(bands, Bands(2.0, 2.0, 2.0))

    def test_obv(self):
        self.assertEqual(vlm.obv([1, 2, 1, 1], [10, 20, 30, 40]), -10)

    def test_mfi_only_inflows(self):
        closes = rising(20)
        highs = [c * 1.01 for c in closes]
        lows = [c * 0.99 for c in closes]
        self.assertEqual(vlm.mfi(highs, lows, closes, [100.0] * 20, 14), 100.0)


class TestIndicatorEngine(unittest.TestCase):

    def setUp(self):
        self.engine = IndicatorEngine()

    def test_empty_series_is_all_neutral(self):
        ind = self.engine.compute([], ALL_TIERS)
        self.assertEqual(set(ind.keys()), ALL_KEYS)
        self.assertEqual(dict(ind), dict(neutral_indicator_set()))

    def test_every_key_present_for_partial_tiers(self):
        ind = self.engine.compute(make_candles(rising(30)), {BASIC})
        self.assertEqual(set(ind.keys()), ALL_KEYS)
        self.assertTrue(ind.has_tier(BASIC))
        self.assertFalse(ind.has_tier(ADVANCED))
        self.assertGreater(ind['sma'], 0)
        self.assertEqual(ind['bollinger'], Bands())

    def test_short_history_never_raises(self):
        for n in range(0, 60, 3):
            ind = self.engine.compute(make_candles(rising(max(n, 2))[:n]), ALL_TIERS)
            self.assertEqual(len(ind), len(ALL_KEYS))

    def test_intermediate_gated_below_14_candles(self):
        ind = self.engine.compute(make_candles(rising(10)), ALL_TIERS)
        self.assertEqual(ind['macd'], MACDValue())
        self.assertEqual(ind['bollinger'], Bands())
        self.assertGreater(ind['atr'], 0)

    def test_full_series(self):
        closes = [1.0 * 1.03 ** i for i in range(60)]
        ind = self.engine.compute(make_candles(closes), ALL_TIERS)
        self.assertGreater(ind['macd'].macd, 0)
        self.assertNotEqual(ind['ichimoku'], IchimokuValue())
        self.assertGreater(ind['atr'], 0)
        self.assertGreater(ind['obv'], 0)
        self.assertEqual(ind.candle_count, 60)

    def test_unknown_tier(self):
        with self.assertRaises(ValueError):
            self.engine.compute(make_candles(rising(20)), {'exotic'})

    def test_with_tiers_reuses_covering_set(self):
        candles = make_candles(rising(40))
        funnel = compute_indicators(candles, FUNNEL_TIERS)
        self.assertIs(with_tiers(funnel, candles, {BASIC, VOLUME}), funnel)
        full = with_tiers(funnel, candles, ALL_TIERS)
        self.assertTrue(full.has_tier(ADVANCED))
        self.assertTrue(full.has_tier(INTERMEDIATE))


if __name__ == '__main__':
    unittest.main()
