"""
STAGE-1 FILTERS

Hard liquidity / volume / momentum gates applied to the raw candidate lists
before any per-candidate detail is fetched.

Boosted:  24h change > -20%, liquidity >= $20k, 24h volume >= $20k, max 50
Trending: liquidity > $5k, 6h volume > $1k
"""

import logging
from typing import Dict, List, Optional, Tuple

from core.models import CandidateToken
from .blacklist import Blacklist

logger = logging.getLogger(__name__)


class CandidateFilter:
    def __init__(self, config: Dict = None, blacklist: Optional[Blacklist] = None):
        self.config = config or {}
        self.boosted_rules = self.config.get('boosted_filter', {})
        self.trending_rules = self.config.get('trending_filter', {})
        self.blacklist = blacklist or Blacklist()

        # Stats
        self.stats = {
            'evaluated': 0,
            'blacklisted': 0,
            'boosted_rejected': 0,
            'trending_rejected': 0,
            'passed': 0,
        }

    def check_boosted(self, token: CandidateToken) -> Tuple[bool, Optional[str]]:
        rules = self.boosted_rules
        if token.change('h24') <= rules.get('min_price_change_24h', -20):
            return False, f"24h change {token.change('h24'):.1f}%"
        if token.liquidity < rules.get('min_liquidity', 20000):
            return False, f"liquidity ${token.liquidity:,.0f}"
        if token.vol('h24') < rules.get('min_volume_24h', 20000):
            return False, f"24h volume ${token.vol('h24'):,.0f}"
        return True, None

    def check_trending(self, token: CandidateToken) -> Tuple[bool, Optional[str]]:
        rules = self.trending_rules
        if token.liquidity <= rules.get('min_liquidity', 5000):
            return False, f"liquidity ${token.liquidity:,.0f}"
        if token.vol('h6') <= rules.get('min_volume_6h', 1000):
            return False, f"6h volume ${token.vol('h6'):,.0f}"
        return True, None

    def apply(self, boosted: List[CandidateToken],
              trending: List[CandidateToken]) -> Tuple[List[CandidateToken], List[CandidateToken]]:
        """Filter both lists; the boosted list is capped after filtering."""
        kept_boosted = [t for t in boosted if self._keep(t, self.check_boosted, 'boosted_rejected')]
        kept_boosted = kept_boosted[:self.boosted_rules.get('max_count', 50)]
        kept_trending = [t for t in trending if self._keep(t, self.check_trending, 'trending_rejected')]
        logger.info(f"[FILTER] Stage 1: {len(kept_boosted)}/{len(boosted)} boosted, "
                    f"{len(kept_trending)}/{len(trending)} trending")
        return kept_boosted, kept_trending

    def _keep(self, token: CandidateToken, check, reject_key: str) -> bool:
        self.stats['evaluated'] += 1
        if self.blacklist.is_blacklisted(token.address):
            self.stats['blacklisted'] += 1
            logger.debug(f"[FILTER] {token.symbol} blacklisted")
            return False
        passed, reason = check(token)
        if not passed:
            self.stats[reject_key] += 1
            logger.debug(f"[FILTER] drop {token.symbol}: {reason}")
            return False
        self.stats['passed'] += 1
        return True

    def get_stats(self) -> Dict:
        return dict(self.stats)
