"""
DISCOVERY FUNNEL

Narrows two candidate feeds down to at most five fully scored tokens.

  DexScreener boosted  +  GeckoTerminal trending
          ↓  stage 1: blacklist + liquidity/volume gates (boosted max 50)
          ↓  stage 2: dedupe by token, boosted first (max 30)
          ↓  stage 3: live pair detail + uptrend sub-score (max 15)
          ↓  stage 4: 1h OHLCV, indicators w/o advanced tier, score > 15,
          ↓           rescore with all tiers, sort (max 7)
          ↓  stage 5: holder growth > 0 and snipers < 50 (Moralis)
          ↓           -> if nobody survives: top 3 of stage 4 with neutral holder data
  ranked list (max 5)

Each cycle is stateless. A failure on one candidate is logged and that
candidate is skipped; a failed source yields an empty list.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from core.models import CandidateToken
from indicators.engine import ALL_TIERS, FUNNEL_TIERS, IndicatorEngine, with_tiers
from scoring.score_engine import ScoreEngine
from scoring.uptrend import UptrendScorer
from .blacklist import Blacklist
from .deduplicator import Deduplicator
from .dex_screener import DexScreenerAPI
from .filters import CandidateFilter
from .geckoterminal_api import GeckoTerminalAPI
from .moralis_client import MoralisClient, holder_change_pct, history_window
from .normalizer import PairNormalizer
from .ohlcv_cache import OHLCVCache

logger = logging.getLogger(__name__)


class DiscoveryFunnel:
    """
    Multi-stage candidate discovery.

    Collaborators are injected so tests can run the funnel without network:
        boosted_source.fetch_boosted_candidates() -> List[CandidateToken]
        trending_source.fetch_trending_pools() -> List[CandidateToken]
        pair_source.fetch_pair_detail(pool) -> Optional[Dict]
        ohlcv_source.fetch_ohlcv(pool, timeframe, aggregate) -> List[Candle]
        holder_source.fetch_holder_history(token, from_date, to_date) -> Dict
        holder_source.fetch_sniper_activity(pool) -> Dict
    """

    def __init__(self, config: Dict = None, boosted_source=None, trending_source=None,
                 pair_source=None, ohlcv_source=None, holder_source=None,
                 blacklist: Optional[Blacklist] = None):
        self.config = config or {}
        self.boosted_source = boosted_source
        self.trending_source = trending_source
        self.pair_source = pair_source
        self.ohlcv_source = ohlcv_source
        self.holder_source = holder_source

        self.blacklist = blacklist or Blacklist(self.config.get('blacklist', []))
        self.filter = CandidateFilter(self.config, self.blacklist)
        self.deduplicator = Deduplicator()
        self.normalizer = PairNormalizer()
        self.uptrend = UptrendScorer(self.config.get('uptrend', {}))
        self.indicator_engine = IndicatorEngine(self.config.get('indicators', {}))
        self.score_engine = ScoreEngine(self.config.get('scoring', {}))

        gecko = self.config.get('geckoterminal', {})
        self.ohlcv_timeframe = gecko.get('ohlcv_timeframe', 'hour')
        self.ohlcv_aggregate = gecko.get('ohlcv_aggregate', 1)
        self.history_days = self.config.get('moralis', {}).get('history_days', 1)

        self._semaphore = asyncio.Semaphore(self.config.get('max_concurrent_fetches', 4))
        self.last_cycle_stats: Dict[str, int] = {}

    @classmethod
    def from_config(cls, config: Dict, cache: Optional[OHLCVCache] = None) -> "DiscoveryFunnel":
        """Wire the funnel to the live DexScreener / GeckoTerminal / Moralis clients."""
        network = config.get('network', 'solana')
        dexscreener = DexScreenerAPI(config.get('dexscreener', {}), chain=network)
        gecko = GeckoTerminalAPI(config.get('geckoterminal', {}), network=network,
                                 cache=cache or OHLCVCache(config.get('ohlcv_cache', {})))
        moralis = MoralisClient(config.get('moralis', {}))
        return cls(config, boosted_source=dexscreener, trending_source=gecko,
                   pair_source=dexscreener, ohlcv_source=gecko, holder_source=moralis)

    # ================================================================
    # CYCLE
    # ================================================================

    async def run_discovery_cycle(self) -> List[CandidateToken]:
        """Run all stages once and return the ranked candidates."""
        stats = {}
        boosted, trending = await self._fetch_sources()
        stats['boosted_raw'] = len(boosted)
        stats['trending_raw'] = len(trending)

        boosted, trending = self.filter.apply(boosted, trending)
        unique = self.deduplicator.merge(boosted, trending,
                                         limit=self.config.get('max_unique_candidates', 30))
        stats['unique'] = len(unique)

        uptrending = await self._uptrend_stage(unique)
        stats['uptrend'] = len(uptrending)

        scored = await self._scoring_stage(uptrending)
        stats['scored'] = len(scored)

        validated = await self._validation_stage(scored)
        stats['validated'] = len(validated)
        if not validated and scored:
            validated = self._fallback(scored)
            stats['fallback'] = len(validated)

        results = validated[:self.config.get('max_results', 5)]
        stats['results'] = len(results)
        self.last_cycle_stats = stats
        logger.info(f"[FUNNEL] Cycle done: {stats}")
        return results

    async def _fetch_sources(self):
        async def boosted():
            if self.boosted_source is None:
                return []
            return await self.boosted_source.fetch_boosted_candidates()

        async def trending():
            if self.trending_source is None:
                return []
            return await self.trending_source.fetch_trending_pools()

        results = await asyncio.gather(boosted(), trending(), return_exceptions=True)
        lists = []
        for name, result in zip(("boosted", "trending"), results):
            if isinstance(result, Exception):
                logger.error(f"[FUNNEL] {name} source failed: {result}")
                lists.append([])
            else:
                lists.append(list(result or []))
        return lists[0], lists[1]

    # ================================================================
    # STAGES
    # ================================================================

    async def _uptrend_stage(self, candidates: List[CandidateToken]) -> List[CandidateToken]:
        async def check(token: CandidateToken) -> Optional[CandidateToken]:
            if self.pair_source is not None and token.pool_address:
                detail = await self.pair_source.fetch_pair_detail(token.pool_address)
                self.normalizer.apply_pair_detail(token, detail)
            token.uptrend_score = self.uptrend.score(token)
            return token if self.uptrend.admits(token) else None

        kept = await self._for_each(candidates, check, "uptrend")
        max_count = self.config.get('uptrend', {}).get('max_count', 15)
        return kept[:max_count]

    async def _scoring_stage(self, candidates: List[CandidateToken]) -> List[CandidateToken]:
        min_score = self.config.get('min_normalized_score', 15)

        async def score(token: CandidateToken) -> Optional[CandidateToken]:
            candles = []
            if self.ohlcv_source is not None and token.pool_address:
                candles = await self.ohlcv_source.fetch_ohlcv(
                    token.pool_address, self.ohlcv_timeframe, self.ohlcv_aggregate)
            token.ohlcv = list(candles or [])
            token.indicators = self.indicator_engine.compute(token.ohlcv, FUNNEL_TIERS)
            self.score_engine.apply(token)
            if token.score.normalized <= min_score:
                logger.debug(f"[FUNNEL] {token.symbol} below score floor "
                             f"({token.score.normalized:.1f})")
                return None
            token.indicators = self.indicator_engine.compute(token.ohlcv, ALL_TIERS)
            self.score_engine.apply(token)
            return token

        kept = await self._for_each(candidates, score, "scoring")
        kept.sort(key=lambda t: t.score.normalized, reverse=True)
        return kept[:self.config.get('max_scored_candidates', 7)]

    async def _validation_stage(self, candidates: List[CandidateToken]) -> List[CandidateToken]:
        if not candidates:
            return []
        if not self.config.get('onchain_validation_enabled', True):
            logger.info("[FUNNEL] On-chain validation disabled")
            return []
        if self.holder_source is None or not getattr(self.holder_source, 'enabled', True):
            logger.warning("[FUNNEL] Holder data source unavailable, skipping validation")
            return []

        max_snipers = self.config.get('max_snipers', 50)
        from_date, to_date = history_window(self.history_days)

        async def validate(token: CandidateToken) -> Optional[CandidateToken]:
            history = await self.holder_source.fetch_holder_history(token.address, from_date, to_date)
            change = holder_change_pct((history or {}).get('result') or [])
            try:
                snipers = await self.holder_source.fetch_sniper_activity(token.pool_address)
            except Exception as e:
                logger.warning(f"[FUNNEL] Sniper data failed for {token.symbol}: {e}")
                snipers = {'result': []}
            sniper_list = (snipers or {}).get('result') or []

            if change <= 0 or len(sniper_list) >= max_snipers:
                logger.debug(f"[FUNNEL] {token.symbol} failed validation "
                             f"(holders {change:+.2f}%, snipers {len(sniper_list)})")
                return None
            token.holder_change_pct = change
            token.sniper_count = len(sniper_list)
            token.sniper_profit_usd = sum(s.get('realizedProfitUsd') or 0 for s in sniper_list)
            self.score_engine.apply(token)
            return token

        kept = await self._for_each(candidates, validate, "validation")
        kept.sort(key=lambda t: t.score.normalized, reverse=True)
        return kept

    def _fallback(self, scored: List[CandidateToken]) -> List[CandidateToken]:
        count = self.config.get('fallback_count', 3)
        logger.warning(f"[FUNNEL] No candidate passed validation, falling back to top {count}")
        fallback = []
        for token in scored[:count]:
            token.indicators = with_tiers(token.indicators, token.ohlcv, ALL_TIERS)
            token.holder_change_pct = 0.0
            token.sniper_count = 0
            token.sniper_profit_usd = 0.0
            self.score_engine.apply(token)
            fallback.append(token)
        return fallback

    # ================================================================
    # HELPERS
    # ================================================================

    async def _for_each(self, candidates: List[CandidateToken],
                        fn: Callable[[CandidateToken], Awaitable[Optional[CandidateToken]]],
                        stage: str) -> List[CandidateToken]:
        """Run ``fn`` concurrently per candidate; keep order, isolate failures."""
        async def guarded(token: CandidateToken):
            async with self._semaphore:
                try:
                    return await fn(token)
                except Exception as e:
                    logger.warning(f"[FUNNEL] {stage} failed for {token.symbol} "
                                   f"({token.address[:8]}): {e}")
                    return None

        results = await asyncio.gather(*(guarded(t) for t in candidates))
        return [t for t in results if t is not None]

    async def close(self):
        seen = set()
        for source in (self.boosted_source, self.trending_source, self.pair_source,
                       self.ohlcv_source, self.holder_source):
            if source is None or id(source) in seen:
                continue
            seen.add(id(source))
            close = getattr(source, 'close', None)
            if close is not None:
                await close()

    def get_stats(self) -> Dict:
        return {
            'last_cycle': dict(self.last_cycle_stats),
            'filter': self.filter.get_stats(),
            'deduplicator': self.deduplicator.get_stats(),
        }
