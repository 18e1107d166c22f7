"""Data models for the matching engine.

This module defines the result of scoring one (user, neighborhood) pair and
the ranked results handed back to callers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from neighborfit.domain.enums import MatchStrength
from neighborfit.domain.models import Match, Neighborhood, User

from .utils import build_match_payload


@dataclass(frozen=True)
class ScoreBreakdown:
    """Subscores, overall score and tier for a single pair.

    Attributes:
        lifestyle: Lifestyle subscore in [0, 1]
        demographic: Demographic subscore in [0, 1]
        location: Location subscore in [0, 1]
        budget: Budget subscore in [0, 1]
        overall: Weighted sum of the subscores in [0, 1]
        match_strength: Tier the overall score falls into
        scoring_version: Version of the ScoringConfig that produced the scores
    """

    lifestyle: float
    demographic: float
    location: float
    budget: float
    overall: float
    match_strength: MatchStrength
    scoring_version: str

    @property
    def subscores(self) -> Dict[str, float]:
        return {
            "lifestyle": self.lifestyle,
            "demographic": self.demographic,
            "location": self.location,
            "budget": self.budget,
        }

    def as_dict(self) -> Dict[str, Any]:
        return {
            **self.subscores,
            "overall": self.overall,
            "match_strength": self.match_strength.value,
            "scoring_version": self.scoring_version,
        }


@dataclass(frozen=True)
class ScoredCandidate:
    """A neighborhood together with its score breakdown for one user."""

    neighborhood: Neighborhood
    breakdown: ScoreBreakdown

    @property
    def sort_key(self) -> tuple:
        # Best score first, lowest neighborhood id breaks ties
        return (-self.breakdown.overall, self.neighborhood.id)


@dataclass(frozen=True)
class SkippedCandidate:
    """A neighborhood that could not be scored, with the reason."""

    neighborhood_id: Optional[int]
    reason: str
    component: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "neighborhood_id": self.neighborhood_id,
            "reason": self.reason,
            "component": self.component,
        }


@dataclass
class MatchResult:
    """A match as returned to callers, with the profiles it pairs.

    ``rank`` is the 1-based position in a ranked listing, or None when the
    result did not come from ranking (e.g. a history query).
    """

    match: Match
    neighborhood: Neighborhood
    user: Optional[User] = None
    rank: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def overall_score(self) -> float:
        return self.match.overall_score

    @property
    def match_strength(self) -> MatchStrength:
        return self.match.match_strength

    def to_dict(self) -> Dict[str, Any]:
        payload = build_match_payload(self.match, self.user, self.neighborhood)
        if self.rank is not None:
            payload["rank"] = self.rank
        payload.update(self.extra)
        return payload
