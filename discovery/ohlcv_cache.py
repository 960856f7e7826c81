"""
OHLCV CACHE

Short-lived in-memory cache of candle series keyed by pool + timeframe.
The monitoring loop asks for the same pool every few seconds; hourly
candles do not change that fast.

Only one event loop touches the cache, so there is no lock.
"""

import time
from typing import Callable, Dict, List, Optional

from core.models import Candle


def ohlcv_key(pool_address: str, timeframe: str = "hour", aggregate: int = 1) -> str:
    return f"{pool_address}_{timeframe}_{aggregate}"


class OHLCVCache:
    """
    TTL cache with LRU eviction.

    Args:
        config: ttl_seconds (default 60), max_size (default 500)
        clock: monotonic time source, injectable for tests
    """

    def __init__(self, config: Dict = None, clock: Callable[[], float] = time.monotonic):
        self.config = config or {}
        self.ttl_seconds = self.config.get('ttl_seconds', 60)
        self.max_size = self.config.get('max_size', 500)
        self._clock = clock

        self._cache: Dict[str, Dict] = {}

        # Stats
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: str) -> Optional[List[Candle]]:
        entry = self._cache.get(key)
        if entry is None:
            self.misses += 1
            return None
        now = self._clock()
        if now >= entry['expires_at']:
            del self._cache[key]
            self.misses += 1
            return None
        entry['last_accessed'] = now
        self.hits += 1
        return entry['value']

    def set(self, key: str, candles: List[Candle]):
        if key not in self._cache and len(self._cache) >= self.max_size:
            self._evict_lru()
        now = self._clock()
        self._cache[key] = {
            'value': list(candles),
            'last_accessed': now,
            'expires_at': now + self.ttl_seconds,
        }

    def delete(self, key: str):
        self._cache.pop(key, None)

    def clear(self):
        self._cache.clear()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def _evict_lru(self):
        if not self._cache:
            return
        lru_key = min(self._cache, key=lambda k: self._cache[k]['last_accessed'])
        del self._cache[lru_key]
        self.evictions += 1

    def cleanup_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._cache.items() if now >= e['expires_at']]
        for key in expired:
            del self._cache[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._cache)

    def get_stats(self) -> Dict:
        total = self.hits + self.misses
        return {
            'size': len(self._cache),
            'max_size': self.max_size,
            'hits': self.hits,
            'misses': self.misses,
            'hit_rate_pct': (self.hits / total * 100) if total > 0 else 0,
            'evictions': self.evictions,
            'ttl_seconds': self.ttl_seconds,
        }
