"""Configuration schema models using Pydantic.

``ScoringConfig`` is the single, versioned home of every weight and threshold
used by the matching engine. It is frozen: changing scoring behaviour means
building a new config (and bumping ``version``), never mutating one in place.
"""

import math
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

WEIGHT_SUM_TOLERANCE = 1e-9


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


def _check_sums_to_one(label: str, weights: Dict[str, float]) -> None:
    total = sum(weights.values())
    if not math.isclose(total, 1.0, abs_tol=WEIGHT_SUM_TOLERANCE):
        parts = ", ".join(f"{name}={value}" for name, value in weights.items())
        raise ValueError(f"{label} must sum to 1.0, got {total:.6f} ({parts})")


class ScoreWeights(BaseModel):
    """Weights of the four subscores in the overall score (must sum to 1.0)."""

    model_config = ConfigDict(frozen=True)

    lifestyle: float = Field(0.30, ge=0, le=1)
    demographic: float = Field(0.20, ge=0, le=1)
    location: float = Field(0.30, ge=0, le=1)
    budget: float = Field(0.20, ge=0, le=1)

    @model_validator(mode="after")
    def check_sum(self):
        _check_sums_to_one("Score weights", self.as_dict())
        return self

    def as_dict(self) -> Dict[str, float]:
        return {
            "lifestyle": self.lifestyle,
            "demographic": self.demographic,
            "location": self.location,
            "budget": self.budget,
        }


class TierThresholds(BaseModel):
    """Lower bounds (inclusive) of the EXCELLENT, GOOD and FAIR bands; below FAIR is POOR."""

    model_config = ConfigDict(frozen=True)

    excellent: float = Field(0.85, gt=0, le=1)
    good: float = Field(0.65, gt=0, le=1)
    fair: float = Field(0.45, gt=0, le=1)

    @model_validator(mode="after")
    def check_order(self):
        if not (self.excellent > self.good > self.fair):
            raise ValueError(
                "Tier thresholds must be strictly decreasing: "
                f"excellent={self.excellent}, good={self.good}, fair={self.fair}"
            )
        return self


class LifestyleSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary_weight: float = Field(0.7, ge=0, le=1, description="Weight of lifestyle tag overlap")
    secondary_weight: float = Field(0.3, ge=0, le=1, description="Weight of hobby/amenity coverage")
    sparse_profile_baseline: float = Field(
        0.5, ge=0, le=1, description="Term value when the user supplied no tags or hobbies"
    )

    @model_validator(mode="after")
    def check_sum(self):
        _check_sums_to_one(
            "Lifestyle weights",
            {"primary_weight": self.primary_weight, "secondary_weight": self.secondary_weight},
        )
        return self


class DemographicSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    age_normalization_years: float = Field(
        30.0, gt=0, description="Age gap at which the age term reaches zero"
    )
    age_weight: float = Field(0.5, ge=0, le=1)
    family_weight: float = Field(0.5, ge=0, le=1)
    family_mismatch_baseline: float = Field(
        0.4, ge=0, le=1, description="Family term when no neighborhood tag fits the household"
    )

    @model_validator(mode="after")
    def check_sum(self):
        _check_sums_to_one(
            "Demographic weights",
            {"age_weight": self.age_weight, "family_weight": self.family_weight},
        )
        return self


class LocationSettings(BaseModel):
    """Relative weights of the location terms.

    The school term only takes part for households with children; the weights
    of the included terms are renormalized, so these need not sum to 1.0.
    """

    model_config = ConfigDict(frozen=True)

    commute_weight: float = Field(0.30, ge=0)
    mobility_weight: float = Field(0.20, ge=0)
    safety_weight: float = Field(0.25, ge=0)
    location_type_weight: float = Field(0.10, ge=0)
    school_weight: float = Field(0.15, ge=0)

    car_base_score: float = Field(0.5, ge=0, le=1)
    car_option_bonus: float = Field(
        0.25, ge=0, le=0.5, description="Added per PARKING / HIGHWAY_ACCESS option present"
    )
    location_type_mismatch: float = Field(0.5, ge=0, le=1)

    @model_validator(mode="after")
    def check_non_zero(self):
        always_included = (
            self.commute_weight
            + self.mobility_weight
            + self.safety_weight
            + self.location_type_weight
        )
        if always_included <= 0:
            raise ValueError("At least one always-included location weight must be positive")
        return self


class BudgetSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    tolerance: float = Field(
        0.25,
        gt=0,
        le=1,
        description="Fraction beyond either budget bound at which the score reaches zero",
    )
    price_to_rent_ratio: float = Field(
        15.0, gt=0, description="Years of rent used to estimate a price when home value is missing"
    )


class ScoringConfig(BaseModel):
    """Versioned weights and thresholds for the matching engine."""

    model_config = ConfigDict(frozen=True)

    version: str = Field("2025.1", min_length=1)
    weights: ScoreWeights = Field(default_factory=ScoreWeights)
    thresholds: TierThresholds = Field(default_factory=TierThresholds)
    lifestyle: LifestyleSettings = Field(default_factory=LifestyleSettings)
    demographic: DemographicSettings = Field(default_factory=DemographicSettings)
    location: LocationSettings = Field(default_factory=LocationSettings)
    budget: BudgetSettings = Field(default_factory=BudgetSettings)
    neutral_score: float = Field(
        0.5, ge=0, le=1, description="Value used for a term whose input data is missing"
    )


class CandidateFilterConfig(BaseModel):
    """Pre-filtering applied before scoring to bound the candidate set."""

    prefilter_by_budget: bool = Field(
        True, description="Skip neighborhoods whose home value is beyond the budget tolerance band"
    )
    min_safety_score: Optional[float] = Field(None, ge=0, le=10)
    max_crime_rate: Optional[float] = Field(None, ge=0)


class MatchingConfig(BaseModel):
    """Runtime settings of the matching orchestrator."""

    default_limit: int = Field(10, ge=1, le=100, description="Page size when no limit is given")
    default_limit_per_user: int = Field(5, ge=1, le=100)
    max_workers: Optional[int] = Field(
        None, ge=1, le=64, description="Batch worker pool size (None = CPU count)"
    )
    candidate_filter: CandidateFilterConfig = Field(default_factory=CandidateFilterConfig)
    refresh_interval_minutes: int = Field(
        60, ge=1, le=1440, description="Interval of scheduled all-user re-matching"
    )
    persistence_timeout_seconds: int = Field(
        30, ge=1, le=300, description="How long a data-layer call may wait on a lock"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(LogFormat.KEY_VALUE, description="Log output format")

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object."""

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


DEFAULT_SCORING_CONFIG = ScoringConfig()
