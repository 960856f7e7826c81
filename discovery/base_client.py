"""
BASE API CLIENT - shared HTTP plumbing for all market-data sources

Every source (DexScreener, GeckoTerminal, Moralis) gets:
- one aiohttp session, opened lazily
- a single in-flight request at a time (asyncio.Lock)
- a fixed minimum spacing between requests
- bounded retries: exponential backoff on HTTP 429 (capped at 60s),
  linear backoff on other failures, no retry on 404
- graceful degradation: exhausted retries and non-JSON bodies return None,
  never raise
"""

import asyncio
import logging
import time
from abc import ABC
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)

RATE_LIMIT_BASE_DELAY = 2.0
RATE_LIMIT_MAX_DELAY = 60.0
ERROR_DELAY_STEP = 2.5


def rate_limit_backoff(attempt: int, base: float = RATE_LIMIT_BASE_DELAY,
                       cap: float = RATE_LIMIT_MAX_DELAY) -> float:
    """Delay before retrying after HTTP 429 on the given (0-based) attempt."""
    return min(cap, base * (2 ** attempt))


def error_backoff(attempt: int, step: float = ERROR_DELAY_STEP) -> float:
    """Delay before retrying after any other failure."""
    return step * (attempt + 1)


class BaseAPIClient(ABC):
    """
    Abstract base class for rate-limited JSON API clients.

    Subclasses set SOURCE and DEFAULT_BASE_URL and add their endpoints.
    """

    SOURCE = "API"
    DEFAULT_BASE_URL = ""

    def __init__(self, config: Dict = None, session: Optional[aiohttp.ClientSession] = None):
        """
        Args:
            config: base_url, min_request_interval, max_retries, timeout
            session: optional shared session (caller keeps ownership)
        """
        self.config = config or {}
        self.base_url = self.config.get('base_url', self.DEFAULT_BASE_URL).rstrip('/')
        self.min_request_interval = self.config.get('min_request_interval', 1.0)
        self.max_retries = max(1, self.config.get('max_retries', 5))
        self.timeout = self.config.get('timeout', 10)

        self.session = session
        self._owns_session = session is None
        self._lock = asyncio.Lock()
        self.sleep = asyncio.sleep
        self.last_request_time: Optional[float] = None

        # Stats
        self.request_count = 0
        self.error_count = 0
        self.rate_limit_hits = 0

    def _headers(self) -> Dict[str, str]:
        return {'Accept': 'application/json'}

    async def _ensure_session(self):
        """Ensure aiohttp session exists."""
        if self.session is None:
            self.session = aiohttp.ClientSession()
            self._owns_session = True

    async def close(self):
        """Close aiohttp session if we opened it."""
        if self.session and self._owns_session:
            await self.session.close()
        self.session = None

    async def _respect_interval(self):
        if self.last_request_time is None:
            return
        elapsed = time.monotonic() - self.last_request_time
        if elapsed < self.min_request_interval:
            await self.sleep(self.min_request_interval - elapsed)

    async def _rate_limited_request(self, url: str, params: Dict = None) -> Optional[Any]:
        """
        GET ``url`` and return decoded JSON.

        Returns:
            JSON payload, or None on 404 / exhausted retries
        """
        await self._ensure_session()
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        async with self._lock:
            for attempt in range(self.max_retries):
                await self._respect_interval()
                try:
                    async with self.session.get(url, params=params, headers=self._headers(),
                                                timeout=timeout) as response:
                        self.last_request_time = time.monotonic()
                        self.request_count += 1

                        if response.status == 200:
                            return await response.json(content_type=None)
                        if response.status == 404:
                            logger.debug(f"[{self.SOURCE}] 404: {url}")
                            return None
                        if response.status == 429:
                            self.rate_limit_hits += 1
                            if attempt == self.max_retries - 1:
                                logger.warning(f"[{self.SOURCE}] Rate limited (429) on the last attempt")
                                continue
                            delay = rate_limit_backoff(attempt)
                            logger.warning(
                                f"[{self.SOURCE}] Rate limited (429). Waiting {delay:.0f}s "
                                f"before retry {attempt + 1}/{self.max_retries}")
                            await self.sleep(delay)
                            continue
                        logger.warning(f"[{self.SOURCE}] HTTP {response.status}: {url}")

                except asyncio.TimeoutError:
                    self.last_request_time = time.monotonic()
                    logger.warning(f"[{self.SOURCE}] Timeout: {url}")
                except aiohttp.ClientError as e:
                    self.last_request_time = time.monotonic()
                    logger.warning(f"[{self.SOURCE}] Request error: {e}")
                except ValueError as e:
                    self.last_request_time = time.monotonic()
                    logger.warning(f"[{self.SOURCE}] Unreadable JSON body from {url}: {e}")

                self.error_count += 1
                if attempt < self.max_retries - 1:
                    await self.sleep(error_backoff(attempt))

        logger.error(f"[{self.SOURCE}] Giving up after {self.max_retries} attempts: {url}")
        return None

    def get_stats(self) -> Dict:
        """Request statistics for this source."""
        return {
            'source': self.SOURCE,
            'request_count': self.request_count,
            'error_count': self.error_count,
            'rate_limit_hits': self.rate_limit_hits,
        }
