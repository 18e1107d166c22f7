"""Utility functions for preparing match results for downstream consumers.

Everything here returns plain dicts of JSON-friendly values (enums as their
string values, timestamps as ISO-8601 strings).
"""

from typing import Any, Dict, Optional

from neighborfit.domain.models import Match, Neighborhood, User


def _sorted_values(tags) -> list:
    return sorted(tag.value for tag in tags)


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None


def summarize_user(user: User) -> Dict[str, Any]:
    """Compact user description for match listings."""
    return {
        "id": user.id,
        "name": user.name,
        "age": user.age,
        "family_status": user.family_status.value,
        "preferred_location_type": user.preferred_location_type.value,
        "min_budget": user.min_budget,
        "max_budget": user.max_budget,
    }


def summarize_neighborhood(neighborhood: Neighborhood) -> Dict[str, Any]:
    """Compact neighborhood description for match listings."""
    return {
        "id": neighborhood.id,
        "name": neighborhood.name,
        "city": neighborhood.city,
        "state": neighborhood.state,
        "median_home_value": neighborhood.median_home_value,
        "median_rent": neighborhood.median_rent,
        "safety_score": neighborhood.safety_score,
        "walk_score": neighborhood.walk_score,
        "transit_score": neighborhood.transit_score,
        "lifestyle_characteristics": _sorted_values(neighborhood.lifestyle_characteristics),
        "amenities": _sorted_values(neighborhood.amenities),
    }


def build_match_payload(
    match: Match,
    user: Optional[User] = None,
    neighborhood: Optional[Neighborhood] = None,
) -> Dict[str, Any]:
    """Build the presentation dict for a single match.

    Args:
        match: Persisted (or freshly built) match
        user: Optional user to summarize alongside the match
        neighborhood: Optional neighborhood to summarize alongside the match

    Returns:
        Dict with the match id, pair ids, the four subscores, overall score,
        match strength, scoring version, feedback fields, timestamps and, when
        given, ``user`` and ``neighborhood`` summaries.
    """
    payload = {
        "id": match.id,
        "user_id": match.user_id,
        "neighborhood_id": match.neighborhood_id,
        "scores": {
            "lifestyle": match.lifestyle_score,
            "demographic": match.demographic_score,
            "location": match.location_score,
            "budget": match.budget_score,
            "overall": match.overall_score,
        },
        "match_strength": match.match_strength.value,
        "scoring_version": match.scoring_version,
        "liked": match.liked,
        "visited": match.visited,
        "rating": match.rating,
        "feedback": match.feedback,
        "created_at": _isoformat(match.created_at),
        "updated_at": _isoformat(match.updated_at),
    }

    if user is not None:
        payload["user"] = summarize_user(user)
    if neighborhood is not None:
        payload["neighborhood"] = summarize_neighborhood(neighborhood)

    return payload


def format_match_line(payload: Dict[str, Any]) -> str:
    """One-line human readable rendering of a match payload (used by the CLI)."""
    neighborhood = payload.get("neighborhood") or {}
    name = neighborhood.get("name", f"neighborhood #{payload['neighborhood_id']}")
    place = ", ".join(part for part in (neighborhood.get("city"), neighborhood.get("state")) if part)
    scores = payload["scores"]
    location = f" ({place})" if place else ""
    return (
        f"{name}{location}: {scores['overall']:.3f} {payload['match_strength']} "
        f"[lifestyle={scores['lifestyle']:.2f} demographic={scores['demographic']:.2f} "
        f"location={scores['location']:.2f} budget={scores['budget']:.2f}]"
    )
