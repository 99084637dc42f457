"""
Matching Service Package

Provides the compatibility scorer, the discovery candidate filter and the
ranker. All three are pure: no I/O and no shared state.
"""

from matcher.services.matching.scorer import (
    calculate_match_score,
    score_breakdown,
    ScoreBreakdown,
    BUDGET_RANGE_VALUES,
)
from matcher.services.matching.candidate_filter import (
    Candidate,
    DiscoveryFilters,
    filter_candidates,
)
from matcher.services.matching.ranker import RankedCandidate, rank_candidates, paginate

__all__ = [
    # Scorer
    "calculate_match_score",
    "score_breakdown",
    "ScoreBreakdown",
    "BUDGET_RANGE_VALUES",
    # Candidate filter
    "Candidate",
    "DiscoveryFilters",
    "filter_candidates",
    # Ranker
    "RankedCandidate",
    "rank_candidates",
    "paginate",
]
