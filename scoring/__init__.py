"""
SCORING MODULE

Composite token score (0-100) and the cheap uptrend sub-score used to
narrow discovery candidates.
"""

from .score_engine import ScoreBreakdown, ScoreEngine, volume_acceleration
from .uptrend import UptrendScorer

__all__ = ['ScoreBreakdown', 'ScoreEngine', 'UptrendScorer', 'volume_acceleration']
