"""
Moralis Solana API client - holder history and sniper activity.

Without an API key the client is disabled and every call raises
ValidationSourceUnavailable, which sends the discovery funnel down its
fallback path.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from .base_client import BaseAPIClient

logger = logging.getLogger(__name__)


class ValidationSourceUnavailable(Exception):
    """Holder / sniper data cannot be fetched at all."""


def holder_change_pct(history: List[Dict]) -> float:
    """Percent change from the first to the last totalHolders point."""
    if not history or len(history) < 2:
        return 0.0
    first = history[0].get('totalHolders') or 0
    last = history[-1].get('totalHolders') or 0
    return (last - first) / (first or 1) * 100


def history_window(days: int = 1, now: Optional[datetime] = None) -> Tuple[str, str]:
    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=days)
    return start.strftime('%Y-%m-%dT%H:%M:%SZ'), now.strftime('%Y-%m-%dT%H:%M:%SZ')


class MoralisClient(BaseAPIClient):
    SOURCE = "MORALIS"
    DEFAULT_BASE_URL = "https://solana-gateway.moralis.io"

    def __init__(self, config: Dict = None, session=None):
        super().__init__(config, session)
        self.api_key = self.config.get('api_key', '')
        self.history_days = self.config.get('history_days', 1)
        self.sniper_blocks = self.config.get('sniper_blocks_after_creation', 1000)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {'accept': 'application/json', 'X-API-Key': self.api_key}

    def _require_enabled(self):
        if not self.enabled:
            raise ValidationSourceUnavailable("MORALIS_API_KEY not configured")

    async def fetch_holder_history(self, token_address: str, from_date: str = None,
                                   to_date: str = None) -> Dict:
        """
        Daily holder counts between two ISO dates.

        Returns:
            {'result': [{'timestamp': ..., 'totalHolders': ...}, ...]}
        """
        self._require_enabled()
        if not from_date or not to_date:
            from_date, to_date = history_window(self.history_days)
        data = await self._rate_limited_request(
            f"{self.base_url}/token/mainnet/holders/{token_address}/historical",
            params={'fromDate': from_date, 'toDate': to_date, 'timeFrame': '1d'})
        if not isinstance(data, dict):
            return {'result': []}
        data.setdefault('result', [])
        return data

    async def fetch_sniper_activity(self, pair_address: str) -> Dict:
        """
        Snipers of a pair.

        Returns:
            {'result': [{'realizedProfitUsd': ...}, ...]}
        """
        self._require_enabled()
        data = await self._rate_limited_request(
            f"{self.base_url}/token/mainnet/pairs/{pair_address}/snipers",
            params={'blocksAfterCreation': self.sniper_blocks})
        if not isinstance(data, dict):
            return {'result': []}
        data.setdefault('result', [])
        return data
