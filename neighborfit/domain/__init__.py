"""Domain models and closed enumerations for NeighborFit."""

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
from .models import (
    MAX_RATING,
    MIN_RATING,
    Match,
    MatchFeedbackUpdate,
    MatchScoreAudit,
    Neighborhood,
    User,
)

__all__ = [
    # Models
    "User",
    "Neighborhood",
    "Match",
    "MatchFeedbackUpdate",
    "MatchScoreAudit",
    "MIN_RATING",
    "MAX_RATING",
    # Enumerations
    "Amenity",
    "EducationLevel",
    "FamilyStatus",
    "Gender",
    "Hobby",
    "IncomeLevel",
    "LifestyleTag",
    "LocationType",
    "MaritalStatus",
    "MatchStrength",
    "OccupationType",
    "PetPreference",
    "TransportationOption",
    "TransportationPreference",
]
