"""
DEDUPLICATOR

Merges candidate lists by token address within one discovery cycle.
Earlier lists take precedence, so passing the boosted list first keeps the
boosted record when a token also shows up as trending.
"""

from typing import Dict, List

from core.models import CandidateToken


class Deduplicator:
    def __init__(self):
        self.stats = {'duplicates': 0, 'unique': 0}

    def merge(self, *lists: List[CandidateToken], limit: int = None) -> List[CandidateToken]:
        seen: Dict[str, CandidateToken] = {}
        for candidates in lists:
            for token in candidates:
                if token.address in seen:
                    self.stats['duplicates'] += 1
                    continue
                seen[token.address] = token
        merged = list(seen.values())
        if limit is not None:
            merged = merged[:limit]
        self.stats['unique'] = len(merged)
        return merged

    def get_stats(self) -> Dict:
        return dict(self.stats)
