"""
PAIR NORMALIZER

Converts raw DexScreener pairs and GeckoTerminal pools into CandidateToken
records, and applies fresh pair detail onto an existing candidate.

This is the ingestion boundary: everything leaving here has passed
CandidateToken.validate().
"""

import time
from datetime import datetime
from typing import Dict, Optional

from core.models import HORIZONS, CandidateToken, TxnCounts
from safe_math import to_float

GECKO_HORIZONS = {'m5': 'm5', 'h1': 'h1', 'h6': 'h6', 'h24': 'h24'}


class PairNormalizer:
    """Normalizes pair data from different sources into CandidateToken."""

    # ================================================================
    # DEXSCREENER
    # ================================================================

    def from_dexscreener(self, raw_pair: Dict, boosted: bool = False,
                         source: str = "dexscreener") -> CandidateToken:
        base_token = raw_pair.get('baseToken') or {}
        detail = self.pair_detail(raw_pair)
        token = CandidateToken(
            address=base_token.get('address', ''),
            pool_address=raw_pair.get('pairAddress', ''),
            symbol=base_token.get('symbol', 'UNKNOWN'),
            name=base_token.get('name', ''),
            boosted=boosted or detail['is_boosted'],
            source=source,
        )
        self.apply_pair_detail(token, detail)
        return token.validate()

    def pair_detail(self, raw_pair: Dict) -> Dict:
        """
        Extract the pair-detail contract from a DexScreener pair.

        Returns:
            Dict with price_usd, price_change, volume, liquidity, market_cap,
            txns, pair_age_seconds, is_boosted
        """
        created_ms = raw_pair.get('pairCreatedAt')
        age_seconds = 0.0
        if created_ms:
            age_seconds = max(0.0, time.time() - to_float(created_ms) / 1000)

        txns = {}
        for horizon in HORIZONS:
            counts = (raw_pair.get('txns') or {}).get(horizon)
            if counts:
                txns[horizon] = TxnCounts(int(counts.get('buys', 0) or 0),
                                          int(counts.get('sells', 0) or 0))

        boosts = raw_pair.get('boosts') or {}
        return {
            'price_usd': to_float(raw_pair.get('priceUsd')),
            'price_change': self._horizon_map(raw_pair.get('priceChange')),
            'volume': self._horizon_map(raw_pair.get('volume')),
            'liquidity': to_float((raw_pair.get('liquidity') or {}).get('usd')),
            'market_cap': to_float(raw_pair.get('marketCap') or raw_pair.get('fdv')),
            'txns': txns,
            'pair_age_seconds': age_seconds,
            'is_boosted': to_float(boosts.get('active')) > 0,
        }

    # ================================================================
    # GECKOTERMINAL
    # ================================================================

    def from_gecko_pool(self, pool: Dict, source: str = "geckoterminal") -> CandidateToken:
        attrs = pool.get('attributes') or {}
        base_id = (((pool.get('relationships') or {}).get('base_token') or {})
                   .get('data') or {}).get('id', '')
        address = base_id.split('_', 1)[1] if '_' in base_id else base_id

        txns = {}
        for horizon, key in GECKO_HORIZONS.items():
            counts = (attrs.get('transactions') or {}).get(key)
            if counts:
                txns[horizon] = TxnCounts(int(counts.get('buys', 0) or 0),
                                          int(counts.get('sells', 0) or 0))

        name = attrs.get('name', '') or ''
        token = CandidateToken(
            address=address,
            pool_address=attrs.get('address', ''),
            symbol=name.split(' / ')[0] if name else 'UNKNOWN',
            name=name,
            price_usd=to_float(attrs.get('base_token_price_usd')),
            volume=self._horizon_map(attrs.get('volume_usd')),
            liquidity=to_float(attrs.get('reserve_in_usd')),
            market_cap=to_float(attrs.get('market_cap_usd') or attrs.get('fdv_usd')),
            price_change=self._horizon_map(attrs.get('price_change_percentage')),
            txns=txns,
            age_days=self._age_days(attrs.get('pool_created_at')),
            boosted=False,
            source=source,
        )
        return token.validate()

    # ================================================================
    # HELPERS
    # ================================================================

    def apply_pair_detail(self, token: CandidateToken, detail: Optional[Dict]) -> CandidateToken:
        """Overwrite market fields on ``token`` with fresher pair detail."""
        if not detail:
            return token
        if detail.get('price_usd'):
            token.price_usd = detail['price_usd']
        if detail.get('price_change'):
            token.price_change = dict(detail['price_change'])
        if detail.get('volume'):
            token.volume = dict(detail['volume'])
        if detail.get('liquidity'):
            token.liquidity = detail['liquidity']
        if detail.get('market_cap'):
            token.market_cap = detail['market_cap']
        if detail.get('txns'):
            token.txns = dict(detail['txns'])
        if detail.get('pair_age_seconds'):
            token.age_days = detail['pair_age_seconds'] / 86400
        token.boosted = token.boosted or bool(detail.get('is_boosted'))
        return token

    @staticmethod
    def _horizon_map(raw: Optional[Dict]) -> Dict[str, float]:
        raw = raw or {}
        return {h: to_float(raw.get(h)) for h in HORIZONS if raw.get(h) is not None}

    @staticmethod
    def _age_days(created_at: Optional[str]) -> float:
        if not created_at:
            return 0.0
        try:
            created = datetime.fromisoformat(str(created_at).replace('Z', '+00:00'))
        except ValueError:
            return 0.0
        return max(0.0, (time.time() - created.timestamp()) / 86400)
