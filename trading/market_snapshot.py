"""
Market Snapshot
Everything one monitoring tick needs about the held token: live price,
indicators for the exit rules and (optionally) the holder trend.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from core.models import IndicatorSet, Position
from discovery.moralis_client import holder_change_pct, history_window
from indicators.engine import BASIC, INTERMEDIATE, IndicatorEngine, neutral_indicator_set

logger = logging.getLogger(__name__)

EXIT_TIERS = (BASIC, INTERMEDIATE)


@dataclass
class MarketSnapshot:
    price: float
    indicators: IndicatorSet
    holder_change_pct: Optional[float] = None


class MarketSnapshotProvider:
    """
    Collaborators:
        pair_source.fetch_pair_detail(pool) -> Optional[Dict] with 'price_usd'
        ohlcv_source.fetch_ohlcv(pool, timeframe, aggregate) -> List[Candle]
        holder_source.fetch_holder_history(token, from_date, to_date) -> Dict (optional)
    """

    def __init__(self, pair_source, ohlcv_source, holder_source=None,
                 indicator_engine: Optional[IndicatorEngine] = None,
                 timeframe: str = 'hour', aggregate: int = 1):
        self.pair_source = pair_source
        self.ohlcv_source = ohlcv_source
        self.holder_source = holder_source
        self.indicator_engine = indicator_engine or IndicatorEngine()
        self.timeframe = timeframe
        self.aggregate = aggregate

    async def get_price(self, position: Position) -> Optional[float]:
        detail = await self.pair_source.fetch_pair_detail(position.pool_address)
        if not detail:
            return None
        price = detail.get('price_usd') or 0.0
        return price if price > 0 else None

    async def snapshot(self, position: Position) -> Optional[MarketSnapshot]:
        """None when no usable price could be fetched."""
        price = await self.get_price(position)
        if price is None:
            logger.warning(f"⚠️ No price for {position.symbol}, skipping tick")
            return None

        try:
            candles = await self.ohlcv_source.fetch_ohlcv(position.pool_address,
                                                          self.timeframe, self.aggregate)
            indicators = self.indicator_engine.compute(candles or [], EXIT_TIERS)
        except Exception as e:
            logger.warning(f"⚠️ OHLCV unavailable for {position.symbol}: {e}")
            indicators = neutral_indicator_set()

        return MarketSnapshot(price, indicators, await self._holder_change(position))

    async def _holder_change(self, position: Position) -> Optional[float]:
        if self.holder_source is None or not getattr(self.holder_source, 'enabled', True):
            return None
        try:
            from_date, to_date = history_window(1)
            history = await self.holder_source.fetch_holder_history(
                position.token_address, from_date, to_date)
        except Exception as e:
            logger.debug(f"Holder history unavailable for {position.symbol}: {e}")
            return None
        points = (history or {}).get('result') or []
        if len(points) < 2:
            return None
        return holder_change_pct(points)
