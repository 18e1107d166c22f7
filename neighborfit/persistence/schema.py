"""Database schema definition and ORM models.

This module defines SQLAlchemy ORM models for the database schema and provides
conversion methods between ORM models and domain models.

Timestamps are stored as ISO 8601 strings; tag sets are stored as sorted JSON
lists of enum values.
"""

import logging
from typing import Iterable, List, Optional, Type

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    inspect,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from neighborfit.domain.enums import (
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
from neighborfit.domain.models import Match, MatchScoreAudit, Neighborhood, User
from neighborfit.utils.timestamps import format_for_storage, parse_from_storage

logger = logging.getLogger(__name__)

Base = declarative_base()


def _dump_tags(tags: Iterable) -> List[str]:
    return sorted(tag.value for tag in tags)


def _load_tags(enum_cls: Type, values: Optional[List[str]]) -> frozenset:
    return frozenset(enum_cls(value) for value in (values or []))


def _enum_value(member) -> Optional[str]:
    return member.value if member is not None else None


def _to_enum(enum_cls: Type, value: Optional[str]):
    return enum_cls(value) if value is not None else None


class UserModel(Base):
    """ORM model for users table."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(320), nullable=False, unique=True)

    age = Column(Integer, nullable=False)
    gender = Column(String(32), nullable=True)
    marital_status = Column(String(32), nullable=False)
    education_level = Column(String(32), nullable=True)
    income_level = Column(String(32), nullable=True)
    occupation_type = Column(String(32), nullable=True)

    lifestyle_preferences = Column(JSON, nullable=False, default=list)
    hobbies = Column(JSON, nullable=False, default=list)
    family_status = Column(String(32), nullable=False)
    pet_preference = Column(String(32), nullable=True)
    transportation_preference = Column(String(32), nullable=False)
    preferred_location_type = Column(String(32), nullable=False)

    max_commute_time_minutes = Column(Integer, nullable=False)
    max_distance_miles = Column(Integer, nullable=False)
    min_budget = Column(Integer, nullable=False)
    max_budget = Column(Integer, nullable=False)

    created_at = Column(String(50), nullable=True)
    updated_at = Column(String(50), nullable=True)

    def to_domain(self) -> User:
        return User(
            id=self.id,
            name=self.name,
            email=self.email,
            age=self.age,
            gender=_to_enum(Gender, self.gender),
            marital_status=MaritalStatus(self.marital_status),
            education_level=_to_enum(EducationLevel, self.education_level),
            income_level=_to_enum(IncomeLevel, self.income_level),
            occupation_type=_to_enum(OccupationType, self.occupation_type),
            lifestyle_preferences=_load_tags(LifestyleTag, self.lifestyle_preferences),
            hobbies=_load_tags(Hobby, self.hobbies),
            family_status=FamilyStatus(self.family_status),
            pet_preference=_to_enum(PetPreference, self.pet_preference),
            transportation_preference=TransportationPreference(self.transportation_preference),
            preferred_location_type=LocationType(self.preferred_location_type),
            max_commute_time_minutes=self.max_commute_time_minutes,
            max_distance_miles=self.max_distance_miles,
            min_budget=self.min_budget,
            max_budget=self.max_budget,
            created_at=parse_from_storage(self.created_at),
            updated_at=parse_from_storage(self.updated_at),
        )

    def apply_domain(self, user: User) -> None:
        """Copy every profile attribute of ``user`` (except id) onto this row."""
        self.name = user.name
        self.email = user.email
        self.age = user.age
        self.gender = _enum_value(user.gender)
        self.marital_status = user.marital_status.value
        self.education_level = _enum_value(user.education_level)
        self.income_level = _enum_value(user.income_level)
        self.occupation_type = _enum_value(user.occupation_type)
        self.lifestyle_preferences = _dump_tags(user.lifestyle_preferences)
        self.hobbies = _dump_tags(user.hobbies)
        self.family_status = user.family_status.value
        self.pet_preference = _enum_value(user.pet_preference)
        self.transportation_preference = user.transportation_preference.value
        self.preferred_location_type = user.preferred_location_type.value
        self.max_commute_time_minutes = user.max_commute_time_minutes
        self.max_distance_miles = user.max_distance_miles
        self.min_budget = user.min_budget
        self.max_budget = user.max_budget
        self.created_at = format_for_storage(user.created_at)
        self.updated_at = format_for_storage(user.updated_at)

    @classmethod
    def from_domain(cls, user: User) -> "UserModel":
        model = cls(id=user.id)
        model.apply_domain(user)
        return model


class NeighborhoodModel(Base):
    """ORM model for neighborhoods table."""

    __tablename__ = "neighborhoods"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    city = Column(String(255), nullable=False)
    state = Column(String(64), nullable=False)
    zip_code = Column(String(16), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    total_population = Column(Integer, nullable=True)
    median_age = Column(Float, nullable=True)
    median_income = Column(Float, nullable=True)
    home_ownership_rate = Column(Float, nullable=True)
    college_graduate_rate = Column(Float, nullable=True)

    median_home_value = Column(Float, nullable=True)
    median_rent = Column(Float, nullable=True)
    vacancy_rate = Column(Float, nullable=True)

    lifestyle_characteristics = Column(JSON, nullable=False, default=list)
    amenities = Column(JSON, nullable=False, default=list)
    transportation_options = Column(JSON, nullable=False, default=list)

    crime_rate = Column(Float, nullable=True)
    safety_score = Column(Float, nullable=True)
    school_rating = Column(Float, nullable=True)
    number_of_schools = Column(Integer, nullable=True)

    unemployment_rate = Column(Float, nullable=True)
    commute_time_minutes = Column(Float, nullable=True)
    air_quality_index = Column(Float, nullable=True)

    walk_score = Column(Float, nullable=True)
    bike_score = Column(Float, nullable=True)
    transit_score = Column(Float, nullable=True)

    diversity_index = Column(Float, nullable=True)
    number_of_restaurants = Column(Integer, nullable=True)
    number_of_parks = Column(Integer, nullable=True)
    number_of_libraries = Column(Integer, nullable=True)

    __table_args__ = (
        Index("idx_neighborhoods_home_value", "median_home_value"),
        Index("idx_neighborhoods_location", "latitude", "longitude"),
    )

    # Plain scalar columns shared one-to-one with the domain model
    _SCALAR_FIELDS = (
        "name",
        "city",
        "state",
        "zip_code",
        "latitude",
        "longitude",
        "total_population",
        "median_age",
        "median_income",
        "home_ownership_rate",
        "college_graduate_rate",
        "median_home_value",
        "median_rent",
        "vacancy_rate",
        "crime_rate",
        "safety_score",
        "school_rating",
        "number_of_schools",
        "unemployment_rate",
        "commute_time_minutes",
        "air_quality_index",
        "walk_score",
        "bike_score",
        "transit_score",
        "diversity_index",
        "number_of_restaurants",
        "number_of_parks",
        "number_of_libraries",
    )

    def to_domain(self) -> Neighborhood:
        return Neighborhood(
            id=self.id,
            lifestyle_characteristics=_load_tags(LifestyleTag, self.lifestyle_characteristics),
            amenities=_load_tags(Amenity, self.amenities),
            transportation_options=_load_tags(TransportationOption, self.transportation_options),
            **{name: getattr(self, name) for name in self._SCALAR_FIELDS},
        )

    @classmethod
    def from_domain(cls, neighborhood: Neighborhood) -> "NeighborhoodModel":
        return cls(
            id=neighborhood.id,
            lifestyle_characteristics=_dump_tags(neighborhood.lifestyle_characteristics),
            amenities=_dump_tags(neighborhood.amenities),
            transportation_options=_dump_tags(neighborhood.transportation_options),
            **{name: getattr(neighborhood, name) for name in cls._SCALAR_FIELDS},
        )


class MatchModel(Base):
    """ORM model for matches table.

    Exactly one row per (user, neighborhood) pair. Rows are removed together
    with their user or neighborhood.
    """

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    neighborhood_id = Column(
        Integer, ForeignKey("neighborhoods.id", ondelete="CASCADE"), nullable=False
    )

    lifestyle_score = Column(Float, nullable=False)
    demographic_score = Column(Float, nullable=False)
    location_score = Column(Float, nullable=False)
    budget_score = Column(Float, nullable=False)
    overall_score = Column(Float, nullable=False)
    match_strength = Column(String(16), nullable=False)
    scoring_version = Column(String(64), nullable=False)

    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)

    liked = Column(Boolean, nullable=True)
    visited = Column(Boolean, nullable=True)
    rating = Column(Integer, nullable=True)
    feedback = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "neighborhood_id", name="uq_matches_pair"),
        Index("idx_matches_user_score", "user_id", "overall_score"),
        Index("idx_matches_strength", "match_strength"),
        Index("idx_matches_created_at", "created_at"),
    )

    def to_domain(self) -> Match:
        return Match(
            id=self.id,
            user_id=self.user_id,
            neighborhood_id=self.neighborhood_id,
            lifestyle_score=self.lifestyle_score,
            demographic_score=self.demographic_score,
            location_score=self.location_score,
            budget_score=self.budget_score,
            overall_score=self.overall_score,
            match_strength=MatchStrength(self.match_strength),
            scoring_version=self.scoring_version,
            created_at=parse_from_storage(self.created_at),
            updated_at=parse_from_storage(self.updated_at),
            liked=self.liked,
            visited=self.visited,
            rating=self.rating,
            feedback=self.feedback,
        )

    def apply_scores(self, match: Match) -> None:
        """Overwrite the score fields and updated_at; feedback and created_at are left alone."""
        self.lifestyle_score = match.lifestyle_score
        self.demographic_score = match.demographic_score
        self.location_score = match.location_score
        self.budget_score = match.budget_score
        self.overall_score = match.overall_score
        self.match_strength = match.match_strength.value
        self.scoring_version = match.scoring_version
        self.updated_at = format_for_storage(match.updated_at)

    @classmethod
    def from_domain(cls, match: Match) -> "MatchModel":
        model = cls(
            id=match.id,
            user_id=match.user_id,
            neighborhood_id=match.neighborhood_id,
            created_at=format_for_storage(match.created_at),
            liked=match.liked,
            visited=match.visited,
            rating=match.rating,
            feedback=match.feedback,
        )
        model.apply_scores(match)
        return model


class MatchScoreAuditModel(Base):
    """ORM model for match_score_audit table (append-only score history)."""

    __tablename__ = "match_score_audit"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    neighborhood_id = Column(
        Integer, ForeignKey("neighborhoods.id", ondelete="CASCADE"), nullable=False
    )

    lifestyle_score = Column(Float, nullable=False)
    demographic_score = Column(Float, nullable=False)
    location_score = Column(Float, nullable=False)
    budget_score = Column(Float, nullable=False)
    overall_score = Column(Float, nullable=False)
    match_strength = Column(String(16), nullable=False)
    scoring_version = Column(String(64), nullable=False)
    scored_at = Column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_match_audit_user", "user_id", "scored_at"),
    )

    def to_domain(self) -> MatchScoreAudit:
        return MatchScoreAudit(
            id=self.id,
            user_id=self.user_id,
            neighborhood_id=self.neighborhood_id,
            lifestyle_score=self.lifestyle_score,
            demographic_score=self.demographic_score,
            location_score=self.location_score,
            budget_score=self.budget_score,
            overall_score=self.overall_score,
            match_strength=MatchStrength(self.match_strength),
            scoring_version=self.scoring_version,
            scored_at=parse_from_storage(self.scored_at),
        )

    @classmethod
    def from_domain(cls, audit: MatchScoreAudit) -> "MatchScoreAuditModel":
        return cls(
            id=audit.id,
            user_id=audit.user_id,
            neighborhood_id=audit.neighborhood_id,
            lifestyle_score=audit.lifestyle_score,
            demographic_score=audit.demographic_score,
            location_score=audit.location_score,
            budget_score=audit.budget_score,
            overall_score=audit.overall_score,
            match_strength=audit.match_strength.value,
            scoring_version=audit.scoring_version,
            scored_at=format_for_storage(audit.scored_at),
        )


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent).

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)

        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")

    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
