"""
DEXSCREENER API CLIENT

Source of the boosted / promoted token list and of live pair detail.

Endpoints:
- /token-boosts/latest/v1, /token-boosts/top/v1 - boosted tokens (all chains)
- /token-pairs/v1/{chain}/{token}               - pairs of a token
- /latest/dex/pairs/{chain}/{pair}              - single pair detail

Rate limit: 60 requests per minute.
"""

import logging
from typing import Dict, List, Optional

from core.models import CandidateToken
from .base_client import BaseAPIClient
from .normalizer import PairNormalizer

logger = logging.getLogger(__name__)


class DexScreenerAPI(BaseAPIClient):
    SOURCE = "DEXSCREENER"
    DEFAULT_BASE_URL = "https://api.dexscreener.com"

    def __init__(self, config: Dict = None, session=None, chain: str = "solana"):
        super().__init__(config, session)
        self.chain = chain
        self.normalizer = PairNormalizer()

    async def fetch_boosted_tokens(self) -> List[Dict]:
        """Latest + top boosted tokens on our chain, first occurrence wins."""
        boosted = []
        seen = set()
        for path in ("token-boosts/latest/v1", "token-boosts/top/v1"):
            data = await self._rate_limited_request(f"{self.base_url}/{path}")
            if not isinstance(data, list):
                continue
            for entry in data:
                address = entry.get('tokenAddress')
                if entry.get('chainId') != self.chain or not address or address in seen:
                    continue
                seen.add(address)
                boosted.append(entry)
        logger.info(f"[{self.SOURCE}] Found {len(boosted)} unique boosted {self.chain} tokens")
        return boosted

    async def fetch_token_pairs(self, token_address: str) -> List[Dict]:
        data = await self._rate_limited_request(
            f"{self.base_url}/token-pairs/v1/{self.chain}/{token_address}")
        return data if isinstance(data, list) else []

    async def fetch_boosted_candidates(self) -> List[CandidateToken]:
        """Boosted tokens enriched with their primary pair."""
        candidates = []
        for entry in await self.fetch_boosted_tokens():
            address = entry['tokenAddress']
            pairs = await self.fetch_token_pairs(address)
            if not pairs:
                continue
            try:
                candidates.append(self.normalizer.from_dexscreener(pairs[0], boosted=True))
            except ValueError as e:
                logger.warning(f"[{self.SOURCE}] Dropping {address}: {e}")
        return candidates

    async def fetch_pair_detail(self, pair_address: str) -> Optional[Dict]:
        """
        Live pair detail for a pool.

        Returns:
            Normalized detail dict (see PairNormalizer.pair_detail) or None
        """
        data = await self._rate_limited_request(
            f"{self.base_url}/latest/dex/pairs/{self.chain}/{pair_address}")
        if not data:
            return None
        pairs = data.get('pairs') or ([data['pair']] if data.get('pair') else [])
        if not pairs:
            return None
        return self.normalizer.pair_detail(pairs[0])
