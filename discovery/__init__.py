"""
DISCOVERY MODULE

Finds tradable Solana tokens and ranks them.

Architecture:
  DexScreener (boosted)   GeckoTerminal (trending)
            ↓                      ↓
        STAGE-1 FILTERS  →  DEDUPLICATOR
                    ↓
        UPTREND SUB-SCORE (live pair detail)
                    ↓
        1h OHLCV → INDICATORS → SCORE ENGINE
                    ↓
        ON-CHAIN VALIDATION (Moralis) / FALLBACK
                    ↓
             RANKED CANDIDATES (≤ 5)
"""

from .base_client import BaseAPIClient, error_backoff, rate_limit_backoff
from .blacklist import Blacklist
from .deduplicator import Deduplicator
from .dex_screener import DexScreenerAPI
from .filters import CandidateFilter
from .funnel import DiscoveryFunnel
from .geckoterminal_api import GeckoTerminalAPI
from .moralis_client import MoralisClient, ValidationSourceUnavailable, holder_change_pct
from .normalizer import PairNormalizer
from .ohlcv_cache import OHLCVCache, ohlcv_key

__all__ = [
    'BaseAPIClient',
    'Blacklist',
    'CandidateFilter',
    'Deduplicator',
    'DexScreenerAPI',
    'DiscoveryFunnel',
    'GeckoTerminalAPI',
    'MoralisClient',
    'OHLCVCache',
    'PairNormalizer',
    'ValidationSourceUnavailable',
    'error_backoff',
    'holder_change_pct',
    'ohlcv_key',
    'rate_limit_backoff',
]
