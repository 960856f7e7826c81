"""
GECKOTERMINAL API CLIENT

Source of the trending-pools list and of OHLCV candles.

API Documentation: https://www.geckoterminal.com/dex-api
Rate Limits: 30 requests per minute on the free tier. We keep one request
in flight and at least 3s between requests.

Endpoints:
- /networks/{network}/trending_pools?duration=1h|6h&page=N
- /networks/{network}/pools/{pool}/ohlcv/{timeframe}?aggregate=&limit=
"""

import logging
from typing import Dict, List, Optional

from core.models import Candle, CandidateToken, sort_candles
from .base_client import BaseAPIClient
from .normalizer import PairNormalizer
from .ohlcv_cache import OHLCVCache, ohlcv_key

logger = logging.getLogger(__name__)


class GeckoTerminalAPI(BaseAPIClient):
    SOURCE = "GECKOTERMINAL"
    DEFAULT_BASE_URL = "https://api.geckoterminal.com/api/v2"

    def __init__(self, config: Dict = None, session=None, network: str = "solana",
                 cache: Optional[OHLCVCache] = None):
        super().__init__(config, session)
        self.network = network
        self.cache = cache if cache is not None else OHLCVCache()
        self.normalizer = PairNormalizer()

        self.trending_durations = self.config.get('trending_durations', ['1h', '6h'])
        self.trending_pages = self.config.get('trending_pages', 1)
        self.ohlcv_limit = self.config.get('ohlcv_limit', 100)

    def _headers(self) -> Dict[str, str]:
        return {'Accept': 'application/json;version=20230302'}

    async def fetch_trending_pools(self) -> List[CandidateToken]:
        """Trending pools for every configured duration and page."""
        candidates = []
        for duration in self.trending_durations:
            for page in range(1, self.trending_pages + 1):
                data = await self._rate_limited_request(
                    f"{self.base_url}/networks/{self.network}/trending_pools",
                    params={'duration': duration, 'page': page})
                if not data or 'data' not in data:
                    continue
                for pool in data['data']:
                    try:
                        candidates.append(self.normalizer.from_gecko_pool(pool))
                    except ValueError as e:
                        logger.debug(f"[{self.SOURCE}] Skipping pool: {e}")
        logger.info(f"[{self.SOURCE}] Got {len(candidates)} trending pools for {self.network}")
        return candidates

    async def fetch_ohlcv(self, pool_address: str, timeframe: str = "hour",
                          aggregate: int = 1, use_cache: bool = True) -> List[Candle]:
        """
        Candles for a pool, ascending by time.

        Returns:
            List of Candle; empty when the pool has no data (not an error)
        """
        key = ohlcv_key(pool_address, timeframe, aggregate)
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        data = await self._rate_limited_request(
            f"{self.base_url}/networks/{self.network}/pools/{pool_address}/ohlcv/{timeframe}",
            params={'aggregate': aggregate, 'limit': self.ohlcv_limit})
        rows = (((data or {}).get('data') or {}).get('attributes') or {}).get('ohlcv_list') or []

        candles = []
        for row in rows:
            try:
                candles.append(Candle.from_row(row))
            except (TypeError, ValueError):
                logger.debug(f"[{self.SOURCE}] Bad OHLCV row for {pool_address}: {row!r}")
        candles = sort_candles(candles)

        if candles:
            self.cache.set(key, candles)
        return candles

    def get_stats(self) -> Dict:
        stats = super().get_stats()
        stats['cache'] = self.cache.get_stats()
        return stats
