"""Pure subscore calculators.

Each calculator has the same signature ``(user, neighborhood, scoring_config) -> float``
and returns a value in [0, 1]. They hold no state and perform no I/O, so any
number of them can run concurrently. A term whose input data is missing
contributes ``scoring_config.neutral_score``.
"""

from typing import Callable, Dict, Iterable, Optional, Tuple

from neighborfit.config.models import ScoringConfig
from neighborfit.domain.enums import TransportationOption, TransportationPreference
from neighborfit.domain.models import Neighborhood, User

from .affinity import LOCATION_TYPE_TAGS, household_affinity_tags, wanted_amenities

SubscoreCalculator = Callable[[User, Neighborhood, ScoringConfig], float]

CAR_FRIENDLY_OPTIONS = (TransportationOption.PARKING, TransportationOption.HIGHWAY_ACCESS)


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return max(lower, min(upper, value))


def jaccard(left: Iterable, right: Iterable) -> float:
    """Jaccard similarity of two collections; two empty collections score 0."""
    left, right = set(left), set(right)
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)


def lifestyle_score(user: User, neighborhood: Neighborhood, config: ScoringConfig) -> float:
    """Overlap of lifestyle tags blended with how well amenities cover the user's hobbies."""
    settings = config.lifestyle

    if user.lifestyle_preferences:
        primary = jaccard(user.lifestyle_preferences, neighborhood.lifestyle_characteristics)
    else:
        primary = settings.sparse_profile_baseline

    wanted = wanted_amenities(user.hobbies)
    if wanted:
        secondary = len(wanted & neighborhood.amenities) / len(wanted)
    else:
        secondary = settings.sparse_profile_baseline

    return settings.primary_weight * primary + settings.secondary_weight * secondary


def demographic_score(user: User, neighborhood: Neighborhood, config: ScoringConfig) -> float:
    """Age proximity to the neighborhood median combined with household affinity."""
    settings = config.demographic

    if neighborhood.median_age is None:
        age_term = config.neutral_score
    else:
        age_gap = abs(user.age - neighborhood.median_age)
        age_term = clamp(1.0 - age_gap / settings.age_normalization_years)

    if not neighborhood.lifestyle_characteristics:
        family_term = config.neutral_score
    elif household_affinity_tags(user.family_status, user.marital_status) & (
        neighborhood.lifestyle_characteristics
    ):
        family_term = 1.0
    else:
        family_term = settings.family_mismatch_baseline

    return settings.age_weight * age_term + settings.family_weight * family_term


def _scaled(value: Optional[float], scale: float, neutral: float) -> float:
    if value is None:
        return neutral
    return clamp(value / scale)


def commute_term(user: User, neighborhood: Neighborhood, config: ScoringConfig) -> float:
    commute = neighborhood.commute_time_minutes
    if commute is None:
        return config.neutral_score

    limit = user.max_commute_time_minutes
    if commute <= limit:
        return 1.0
    # Linear decay reaching zero at twice the acceptable commute
    return clamp(1.0 - (commute - limit) / limit)


def mobility_term(user: User, neighborhood: Neighborhood, config: ScoringConfig) -> float:
    preference = user.transportation_preference
    neutral = config.neutral_score

    if preference == TransportationPreference.CAR:
        settings = config.location
        present = sum(
            1 for option in CAR_FRIENDLY_OPTIONS if option in neighborhood.transportation_options
        )
        return clamp(settings.car_base_score + settings.car_option_bonus * present)

    if preference == TransportationPreference.PUBLIC_TRANSIT:
        return _scaled(neighborhood.transit_score, 100.0, neutral)
    if preference == TransportationPreference.WALKING:
        return _scaled(neighborhood.walk_score, 100.0, neutral)
    if preference == TransportationPreference.BIKING:
        return _scaled(neighborhood.bike_score, 100.0, neutral)

    available = [
        score
        for score in (neighborhood.walk_score, neighborhood.bike_score, neighborhood.transit_score)
        if score is not None
    ]
    if not available:
        return neutral
    return clamp(sum(available) / len(available) / 100.0)


def location_type_term(user: User, neighborhood: Neighborhood, config: ScoringConfig) -> float:
    tag = LOCATION_TYPE_TAGS.get(user.preferred_location_type)
    if tag is not None and tag in neighborhood.lifestyle_characteristics:
        return 1.0
    return config.location.location_type_mismatch


def location_terms(
    user: User, neighborhood: Neighborhood, config: ScoringConfig
) -> Dict[str, Tuple[float, float]]:
    """Included location terms as ``name -> (value, weight)``.

    The school term is only included for households with children.
    """
    settings = config.location
    neutral = config.neutral_score

    terms = {
        "commute": (commute_term(user, neighborhood, config), settings.commute_weight),
        "mobility": (mobility_term(user, neighborhood, config), settings.mobility_weight),
        "safety": (_scaled(neighborhood.safety_score, 10.0, neutral), settings.safety_weight),
        "location_type": (
            location_type_term(user, neighborhood, config),
            settings.location_type_weight,
        ),
    }
    if user.has_children:
        terms["school"] = (
            _scaled(neighborhood.school_rating, 10.0, neutral),
            settings.school_weight,
        )
    return terms


def location_score(user: User, neighborhood: Neighborhood, config: ScoringConfig) -> float:
    """Weighted mean of the included location terms (weights renormalized)."""
    terms = location_terms(user, neighborhood, config)
    total_weight = sum(weight for _, weight in terms.values())
    return sum(value * weight for value, weight in terms.values()) / total_weight


def estimated_cost(neighborhood: Neighborhood, config: ScoringConfig) -> Optional[float]:
    """Purchase cost of a neighborhood, estimated from rent when the home value is unknown."""
    if neighborhood.median_home_value is not None:
        return neighborhood.median_home_value
    if neighborhood.median_rent is not None:
        return neighborhood.median_rent * 12 * config.budget.price_to_rent_ratio
    return None


def budget_score(user: User, neighborhood: Neighborhood, config: ScoringConfig) -> float:
    """1.0 inside the user's budget, decaying linearly to 0 across the tolerance band."""
    cost = estimated_cost(neighborhood, config)
    if cost is None:
        return config.neutral_score

    low, high = user.min_budget, user.max_budget
    tolerance = config.budget.tolerance

    if low <= cost <= high:
        return 1.0

    if cost > high:
        span = high * tolerance
        if span <= 0:
            return 0.0
        return max(0.0, 1.0 - (cost - high) / span)

    # cost < low, so low > 0 here
    span = low * tolerance
    return max(0.0, 1.0 - (low - cost) / span)


# Keys match ScoreWeights fields
SUBSCORE_CALCULATORS: Dict[str, SubscoreCalculator] = {
    "lifestyle": lifestyle_score,
    "demographic": demographic_score,
    "location": location_score,
    "budget": budget_score,
}
