"""Builds Match records and score audit entries from score breakdowns."""

from datetime import datetime
from typing import Optional

from neighborfit.domain.models import Match, MatchScoreAudit, Neighborhood, User
from neighborfit.utils.timestamps import utc_now

from .models import ScoreBreakdown


def build_match(
    user: User,
    neighborhood: Neighborhood,
    breakdown: ScoreBreakdown,
    existing: Optional[Match] = None,
    scored_at: Optional[datetime] = None,
) -> Match:
    """Build the Match for a scored pair.

    When ``existing`` is given (re-scoring a stored pair) its id, creation time
    and feedback fields are carried over unchanged; only the score fields and
    ``updated_at`` are replaced.

    Args:
        user: Persisted user (must have an id)
        neighborhood: Persisted neighborhood (must have an id)
        breakdown: Result of CompatibilityScorer.evaluate()
        existing: Previously stored match for the same pair, if any
        scored_at: Scoring time (defaults to now, UTC)

    Returns:
        Match ready to be upserted

    Raises:
        ValueError: If either profile is unsaved or ``existing`` is for another pair
    """
    if user.id is None or neighborhood.id is None:
        raise ValueError("Matches can only be built for persisted users and neighborhoods")

    scored_at = scored_at or utc_now()
    scores = {
        "lifestyle_score": breakdown.lifestyle,
        "demographic_score": breakdown.demographic,
        "location_score": breakdown.location,
        "budget_score": breakdown.budget,
        "overall_score": breakdown.overall,
        "match_strength": breakdown.match_strength,
        "scoring_version": breakdown.scoring_version,
    }

    if existing is not None:
        if existing.pair != (user.id, neighborhood.id):
            raise ValueError(
                f"Existing match {existing.id} belongs to pair {existing.pair}, "
                f"not {(user.id, neighborhood.id)}"
            )
        return existing.model_copy(update={**scores, "updated_at": scored_at})

    return Match(
        user_id=user.id,
        neighborhood_id=neighborhood.id,
        created_at=scored_at,
        updated_at=scored_at,
        **scores,
    )


def build_audit(match: Match, scored_at: Optional[datetime] = None) -> MatchScoreAudit:
    """Audit entry recording the scores currently held by ``match``."""
    return MatchScoreAudit(
        user_id=match.user_id,
        neighborhood_id=match.neighborhood_id,
        lifestyle_score=match.lifestyle_score,
        demographic_score=match.demographic_score,
        location_score=match.location_score,
        budget_score=match.budget_score,
        overall_score=match.overall_score,
        match_strength=match.match_strength,
        scoring_version=match.scoring_version,
        scored_at=scored_at or match.updated_at,
    )
