"""Compatibility scoring engine.

This module implements the scoring logic that:
1. Runs every subscore calculator for a (user, neighborhood) pair
2. Checks each subscore is finite and inside [0, 1]
3. Aggregates the subscores with the configured weights
4. Classifies the overall score into a match strength tier
"""

import logging
import math
from typing import Dict, Iterable, List, Optional

from neighborfit.config.models import DEFAULT_SCORING_CONFIG, ScoringConfig
from neighborfit.domain.enums import MatchStrength
from neighborfit.domain.models import Neighborhood, User

from .exceptions import ComputationError
from .models import ScoreBreakdown, ScoredCandidate
from .subscores import SUBSCORE_CALCULATORS, SubscoreCalculator, clamp

logger = logging.getLogger(__name__)

# Float round-off allowed in the weighted sum before it is treated as an error
OVERALL_TOLERANCE = 1e-9


class CompatibilityScorer:
    """Scores users against neighborhoods with a fixed, versioned ScoringConfig.

    The scorer holds no mutable state; one instance can be shared by any
    number of worker threads.
    """

    def __init__(
        self,
        scoring_config: Optional[ScoringConfig] = None,
        logger_instance: logging.Logger = None,
        calculators: Optional[Dict[str, SubscoreCalculator]] = None,
    ):
        """Initialize CompatibilityScorer.

        Args:
            scoring_config: Weights and thresholds (defaults to the built-in config)
            logger_instance: Optional logger instance (defaults to module logger)
            calculators: Optional subscore table keyed like ScoreWeights

        Raises:
            ValueError: If the calculator table and the weights name different subscores
        """
        self.scoring_config = scoring_config or DEFAULT_SCORING_CONFIG
        self.logger = logger_instance or logger
        self.calculators = dict(calculators or SUBSCORE_CALCULATORS)

        weight_names = set(self.scoring_config.weights.as_dict())
        if set(self.calculators) != weight_names:
            raise ValueError(
                f"Subscore calculators {sorted(self.calculators)} do not match "
                f"weights {sorted(weight_names)}"
            )

    @property
    def scoring_version(self) -> str:
        return self.scoring_config.version

    def evaluate(self, user: User, neighborhood: Neighborhood) -> ScoreBreakdown:
        """Score a single (user, neighborhood) pair.

        Args:
            user: User profile
            neighborhood: Neighborhood profile

        Returns:
            ScoreBreakdown with subscores, overall score and tier

        Raises:
            ComputationError: If a subscore fails, is non-finite or falls outside [0, 1]
        """
        subscores = {}
        for name, calculator in self.calculators.items():
            try:
                value = calculator(user, neighborhood, self.scoring_config)
            except (ArithmeticError, AttributeError, LookupError, TypeError, ValueError) as e:
                raise ComputationError(
                    f"{name} subscore failed: {e}",
                    user_id=user.id,
                    neighborhood_id=neighborhood.id,
                    component=name,
                ) from e
            subscores[name] = self._check_score(name, value, user, neighborhood)

        weights = self.scoring_config.weights.as_dict()
        overall = sum(weights[name] * subscores[name] for name in weights)
        overall = self._check_score("overall", overall, user, neighborhood, OVERALL_TOLERANCE)

        breakdown = ScoreBreakdown(
            lifestyle=subscores["lifestyle"],
            demographic=subscores["demographic"],
            location=subscores["location"],
            budget=subscores["budget"],
            overall=overall,
            match_strength=self.classify(overall),
            scoring_version=self.scoring_version,
        )

        self.logger.debug(
            f"Scored neighborhood {neighborhood.id} for user {user.id}",
            extra={
                "event": "matching.pair.scored",
                "user_id": user.id,
                "neighborhood_id": neighborhood.id,
                "overall_score": breakdown.overall,
                "match_strength": breakdown.match_strength.value,
            },
        )

        return breakdown

    def classify(self, overall: float) -> MatchStrength:
        """Map an overall score onto its match strength tier."""
        thresholds = self.scoring_config.thresholds
        if overall >= thresholds.excellent:
            return MatchStrength.EXCELLENT
        if overall >= thresholds.good:
            return MatchStrength.GOOD
        if overall >= thresholds.fair:
            return MatchStrength.FAIR
        return MatchStrength.POOR

    def score_candidates(
        self, user: User, neighborhoods: Iterable[Neighborhood]
    ) -> List[ScoredCandidate]:
        """Score every neighborhood, propagating the first ComputationError."""
        return [
            ScoredCandidate(neighborhood=neighborhood, breakdown=self.evaluate(user, neighborhood))
            for neighborhood in neighborhoods
        ]

    @staticmethod
    def _check_score(
        name: str,
        value: float,
        user: User,
        neighborhood: Neighborhood,
        tolerance: float = 0.0,
    ) -> float:
        """Validate a score and return it as a float in [0, 1].

        Values within ``tolerance`` of the bounds are clamped onto them.
        """
        try:
            value = float(value)
        except (TypeError, ValueError) as e:
            raise ComputationError(
                f"{name} score is not numeric: {value!r}",
                user_id=user.id,
                neighborhood_id=neighborhood.id,
                component=name,
            ) from e

        if not math.isfinite(value) or value < -tolerance or value > 1.0 + tolerance:
            raise ComputationError(
                f"{name} score out of range: {value}",
                user_id=user.id,
                neighborhood_id=neighborhood.id,
                component=name,
            )

        return clamp(value)


def rank_candidates(
    candidates: Iterable[ScoredCandidate], limit: Optional[int] = None
) -> List[ScoredCandidate]:
    """Order by overall score (desc) then neighborhood id (asc), keeping the first ``limit``."""
    ranked = sorted(candidates, key=lambda candidate: candidate.sort_key)
    if limit is not None:
        ranked = ranked[:limit]
    return ranked
