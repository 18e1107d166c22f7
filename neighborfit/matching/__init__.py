"""Compatibility scoring between users and neighborhoods.

This module provides:
- Pure subscore calculators (lifestyle, demographic, location, budget)
- CompatibilityScorer: aggregates subscores into an overall score and tier
- Match record builders and presentation helpers
"""

from .builder import build_audit, build_match
from .engine import CompatibilityScorer, rank_candidates
from .exceptions import ComputationError, MatchingError, NotFoundError, ValidationError
from .models import MatchResult, ScoreBreakdown, ScoredCandidate, SkippedCandidate
from .subscores import (
    SUBSCORE_CALCULATORS,
    budget_score,
    demographic_score,
    lifestyle_score,
    location_score,
)
from .utils import build_match_payload, format_match_line, summarize_neighborhood, summarize_user

__all__ = [
    "CompatibilityScorer",
    "rank_candidates",
    "build_match",
    "build_audit",
    "MatchResult",
    "ScoreBreakdown",
    "ScoredCandidate",
    "SkippedCandidate",
    "SUBSCORE_CALCULATORS",
    "lifestyle_score",
    "demographic_score",
    "location_score",
    "budget_score",
    "build_match_payload",
    "format_match_line",
    "summarize_user",
    "summarize_neighborhood",
    "MatchingError",
    "ValidationError",
    "NotFoundError",
    "ComputationError",
]
