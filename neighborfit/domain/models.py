"""Core domain models: user and neighborhood profiles, matches and their audit trail.

Profiles are immutable value objects (frozen pydantic models); they carry
attributes only. Scoring lives in ``neighborfit.matching``.
"""

from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from neighborfit.utils.timestamps import ensure_utc

from .enums import (
    Amenity,
    EducationLevel,
    FamilyStatus,
    Gender,
    Hobby,
    IncomeLevel,
    LifestyleTag,
    LocationType,
    MaritalStatus,
    MatchStrength,
    OccupationType,
    PetPreference,
    TransportationOption,
    TransportationPreference,
)

MIN_RATING = 1
MAX_RATING = 5


class User(BaseModel):
    """A person looking for a neighborhood.

    Budgets are purchase prices in whole currency units. ``min_budget`` may not
    exceed ``max_budget``.
    """

    id: Optional[int] = Field(None, description="Database identifier (None until persisted)")
    name: str = Field(..., min_length=1, description="Display name")
    email: EmailStr = Field(..., description="Unique contact address")

    # Demographics
    age: int = Field(..., ge=0, le=130)
    gender: Optional[Gender] = None
    marital_status: MaritalStatus
    education_level: Optional[EducationLevel] = None
    income_level: Optional[IncomeLevel] = None
    occupation_type: Optional[OccupationType] = None

    # Preferences
    lifestyle_preferences: FrozenSet[LifestyleTag] = Field(default_factory=frozenset)
    hobbies: FrozenSet[Hobby] = Field(default_factory=frozenset)
    family_status: FamilyStatus
    pet_preference: Optional[PetPreference] = None
    transportation_preference: TransportationPreference
    preferred_location_type: LocationType

    # Numeric constraints
    max_commute_time_minutes: int = Field(..., gt=0)
    max_distance_miles: int = Field(..., gt=0)
    min_budget: int = Field(..., ge=0)
    max_budget: int = Field(..., ge=0)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("name cannot be empty or whitespace-only")
        return stripped

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_budget_range(self):
        if self.min_budget > self.max_budget:
            raise ValueError(
                f"min_budget ({self.min_budget}) cannot exceed max_budget ({self.max_budget})"
            )
        return self

    @property
    def has_children(self) -> bool:
        return self.family_status == FamilyStatus.WITH_CHILDREN

    model_config = ConfigDict(frozen=True, json_schema_extra={"example": {
        "name": "Sarah Johnson",
        "email": "sarah.johnson@email.com",
        "age": 28,
        "marital_status": "SINGLE",
        "lifestyle_preferences": ["URBAN", "YOUNG_PROFESSIONAL"],
        "hobbies": ["FITNESS", "TRAVEL", "MUSIC"],
        "family_status": "SINGLE",
        "transportation_preference": "PUBLIC_TRANSIT",
        "preferred_location_type": "CITY_CENTER",
        "max_commute_time_minutes": 30,
        "max_distance_miles": 25,
        "min_budget": 300000,
        "max_budget": 600000,
    }})


class Neighborhood(BaseModel):
    """Aggregate profile of a neighborhood.

    Every statistic is optional; scoring treats a missing value as neutral for
    the term that needs it. Safety and school ratings use a 0-10 scale, the
    walk/bike/transit scores a 0-100 scale.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    name: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    # Population and demographics
    total_population: Optional[int] = Field(None, ge=0)
    median_age: Optional[float] = Field(None, ge=0)
    median_income: Optional[float] = Field(None, ge=0)
    home_ownership_rate: Optional[float] = Field(None, ge=0, le=1)
    college_graduate_rate: Optional[float] = Field(None, ge=0, le=1)

    # Housing
    median_home_value: Optional[float] = Field(None, ge=0)
    median_rent: Optional[float] = Field(None, ge=0)
    vacancy_rate: Optional[float] = Field(None, ge=0, le=1)

    # Categorical sets
    lifestyle_characteristics: FrozenSet[LifestyleTag] = Field(default_factory=frozenset)
    amenities: FrozenSet[Amenity] = Field(default_factory=frozenset)
    transportation_options: FrozenSet[TransportationOption] = Field(default_factory=frozenset)

    # Safety and education
    crime_rate: Optional[float] = Field(None, ge=0)
    safety_score: Optional[float] = Field(None, ge=0, le=10)
    school_rating: Optional[float] = Field(None, ge=0, le=10)
    number_of_schools: Optional[int] = Field(None, ge=0)

    # Economy and environment
    unemployment_rate: Optional[float] = Field(None, ge=0, le=1)
    commute_time_minutes: Optional[float] = Field(None, ge=0)
    air_quality_index: Optional[float] = Field(None, ge=0)

    # Mobility
    walk_score: Optional[float] = Field(None, ge=0, le=100)
    bike_score: Optional[float] = Field(None, ge=0, le=100)
    transit_score: Optional[float] = Field(None, ge=0, le=100)

    diversity_index: Optional[float] = Field(None, ge=0, le=1)
    number_of_restaurants: Optional[int] = Field(None, ge=0)
    number_of_parks: Optional[int] = Field(None, ge=0)
    number_of_libraries: Optional[int] = Field(None, ge=0)

    @field_validator("name", "city", "state")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped


class Match(BaseModel):
    """Scored pairing of one user with one neighborhood.

    Score fields are owned by the matching engine. The feedback fields
    (liked, visited, rating, feedback) are owned by the user and only change
    through an explicit feedback update.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    user_id: int
    neighborhood_id: int

    lifestyle_score: float = Field(..., ge=0, le=1)
    demographic_score: float = Field(..., ge=0, le=1)
    location_score: float = Field(..., ge=0, le=1)
    budget_score: float = Field(..., ge=0, le=1)
    overall_score: float = Field(..., ge=0, le=1)
    match_strength: MatchStrength
    scoring_version: str

    created_at: datetime
    updated_at: datetime

    liked: Optional[bool] = None
    visited: Optional[bool] = None
    rating: Optional[int] = Field(None, ge=MIN_RATING, le=MAX_RATING)
    feedback: Optional[str] = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def pair(self) -> tuple:
        return (self.user_id, self.neighborhood_id)

    def feedback_fields(self) -> Dict[str, Any]:
        return {
            "liked": self.liked,
            "visited": self.visited,
            "rating": self.rating,
            "feedback": self.feedback,
        }

    def score_fields(self) -> Dict[str, Any]:
        return {
            "lifestyle_score": self.lifestyle_score,
            "demographic_score": self.demographic_score,
            "location_score": self.location_score,
            "budget_score": self.budget_score,
            "overall_score": self.overall_score,
            "match_strength": self.match_strength,
            "scoring_version": self.scoring_version,
        }


class MatchFeedbackUpdate(BaseModel):
    """Partial update of a match's feedback fields.

    Only fields that were explicitly supplied are part of the patch, so
    "leave unchanged", "set False" and "set True" stay distinguishable.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    liked: Optional[bool] = None
    visited: Optional[bool] = None
    rating: Optional[int] = Field(None, ge=MIN_RATING, le=MAX_RATING)
    feedback: Optional[str] = None

    @classmethod
    def from_optional(cls, **values) -> "MatchFeedbackUpdate":
        """Build a patch from keyword arguments, treating None as "not supplied"."""
        return cls(**{key: value for key, value in values.items() if value is not None})

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)

    def is_empty(self) -> bool:
        return not self.model_fields_set

    def apply_to(self, match: Match) -> Match:
        return match.model_copy(update=self.changes())


class MatchScoreAudit(BaseModel):
    """Append-only record of a single scoring of a (user, neighborhood) pair."""

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    user_id: int
    neighborhood_id: int
    lifestyle_score: float
    demographic_score: float
    location_score: float
    budget_score: float
    overall_score: float
    match_strength: MatchStrength
    scoring_version: str
    scored_at: datetime

    @field_validator("scored_at")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)
