"""Data access layer (repositories) for persistence operations.

This module provides repository classes for users, neighborhoods and matches.
Repositories encapsulate database operations and return domain models rather
than ORM models.
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy import and_, case, delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from neighborfit.domain.enums import LifestyleTag, MatchStrength
from neighborfit.domain.models import (
    Match,
    MatchFeedbackUpdate,
    MatchScoreAudit,
    Neighborhood,
    User,
)
from neighborfit.utils.timestamps import utc_now

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import MatchModel, MatchScoreAuditModel, NeighborhoodModel, UserModel

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user-related database operations."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Retrieve a user by id, or None if absent.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            user_model = self.session.get(UserModel, user_id)
            return user_model.to_domain() if user_model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user: {e}") from e

    def get_by_email(self, email: str) -> Optional[User]:
        try:
            stmt = select(UserModel).where(UserModel.email == email)
            user_model = self.session.execute(stmt).scalar_one_or_none()
            return user_model.to_domain() if user_model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user by email: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user: {e}") from e

    def list_all(self) -> List[User]:
        try:
            stmt = select(UserModel).order_by(UserModel.id)
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing users: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list users: {e}") from e

    def list_ids(self) -> List[int]:
        try:
            stmt = select(UserModel.id).order_by(UserModel.id)
            return list(self.session.execute(stmt).scalars())
        except SQLAlchemyError as e:
            logger.error(f"Error listing user ids: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list user ids: {e}") from e

    def count(self) -> int:
        try:
            return self.session.execute(select(func.count(UserModel.id))).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting users: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count users: {e}") from e

    def add(self, user: User) -> User:
        """Insert a new user and return it with its assigned id.

        Raises:
            DataIntegrityError: If the email is already registered
            PersistenceError: If database error occurs
        """
        now = utc_now()
        user = user.model_copy(
            update={"created_at": user.created_at or now, "updated_at": user.updated_at or now}
        )
        try:
            user_model = UserModel.from_domain(user)
            self.session.add(user_model)
            self.session.flush()
            return user_model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error adding user {user.email}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add user due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding user {user.email}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add user: {e}") from e

    def update(self, user: User) -> User:
        """Replace the stored profile of an existing user.

        Raises:
            RecordNotFoundError: If the user does not exist
            DataIntegrityError: If the new email is taken
            PersistenceError: If database error occurs
        """
        try:
            user_model = self.session.get(UserModel, user.id) if user.id is not None else None
            if user_model is None:
                raise RecordNotFoundError(f"User {user.id} not found")

            created_at = user_model.created_at
            user_model.apply_domain(user.model_copy(update={"updated_at": utc_now()}))
            user_model.created_at = created_at
            self.session.flush()
            return user_model.to_domain()
        except RecordNotFoundError:
            raise
        except IntegrityError as e:
            logger.error(f"Integrity error updating user {user.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to update user due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error updating user {user.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update user: {e}") from e

    def delete(self, user_id: int) -> None:
        """Delete a user; its matches and score audit rows are removed with it.

        Raises:
            RecordNotFoundError: If the user does not exist
            PersistenceError: If database error occurs
        """
        try:
            result = self.session.execute(delete(UserModel).where(UserModel.id == user_id))
            self.session.flush()
            if result.rowcount == 0:
                raise RecordNotFoundError(f"User {user_id} not found")
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error deleting user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete user: {e}") from e


@dataclass(frozen=True)
class CandidateFilter:
    """Optional bounds narrowing the neighborhoods considered for a user.

    Numeric bounds are inclusive and exclude neighborhoods without the value,
    except for home value: with ``include_missing_home_value`` neighborhoods
    without a home value pass the home-value bounds. A non-empty
    ``lifestyle_characteristics`` keeps neighborhoods carrying any of the tags.
    """

    min_income: Optional[float] = None
    max_income: Optional[float] = None
    min_home_value: Optional[float] = None
    max_home_value: Optional[float] = None
    include_missing_home_value: bool = True
    min_rent: Optional[float] = None
    max_rent: Optional[float] = None
    max_crime_rate: Optional[float] = None
    min_safety_score: Optional[float] = None
    min_walk_score: Optional[float] = None
    min_transit_score: Optional[float] = None
    lifestyle_characteristics: FrozenSet[LifestyleTag] = frozenset()
    min_latitude: Optional[float] = None
    max_latitude: Optional[float] = None
    min_longitude: Optional[float] = None
    max_longitude: Optional[float] = None


@dataclass(frozen=True)
class RejectedRow:
    """A stored neighborhood row that could not be turned into a domain model."""

    neighborhood_id: int
    reason: str


def _range_conditions(column, lower, upper, include_missing: bool = False) -> list:
    conditions = []
    if lower is not None:
        conditions.append(column >= lower)
    if upper is not None:
        conditions.append(column <= upper)
    if conditions and include_missing:
        return [or_(column.is_(None), and_(*conditions))]
    return conditions


SUBSCORE_COLUMNS = {
    "lifestyle": MatchModel.lifestyle_score,
    "demographic": MatchModel.demographic_score,
    "location": MatchModel.location_score,
    "budget": MatchModel.budget_score,
}


def _count_true(column):
    return func.coalesce(func.sum(case((column.is_(True), 1), else_=0)), 0)


class NeighborhoodRepository:
    """Repository for neighborhood-related database operations."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, neighborhood_id: int) -> Optional[Neighborhood]:
        try:
            model = self.session.get(NeighborhoodModel, neighborhood_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving neighborhood {neighborhood_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve neighborhood: {e}") from e

    def get_many(self, neighborhood_ids) -> Dict[int, Neighborhood]:
        """Retrieve several neighborhoods at once, keyed by id (missing ids are omitted)."""
        ids = set(neighborhood_ids)
        if not ids:
            return {}
        try:
            stmt = select(NeighborhoodModel).where(NeighborhoodModel.id.in_(ids))
            return {model.id: model.to_domain() for model in self.session.execute(stmt).scalars()}
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving neighborhoods: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve neighborhoods: {e}") from e

    def list_all(self) -> List[Neighborhood]:
        try:
            stmt = select(NeighborhoodModel).order_by(NeighborhoodModel.id)
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing neighborhoods: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list neighborhoods: {e}") from e

    def count(self) -> int:
        try:
            return self.session.execute(select(func.count(NeighborhoodModel.id))).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting neighborhoods: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count neighborhoods: {e}") from e

    def add(self, neighborhood: Neighborhood) -> Neighborhood:
        try:
            model = NeighborhoodModel.from_domain(neighborhood)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error adding neighborhood {neighborhood.name}: {e}", exc_info=True)
            raise DataIntegrityError(
                f"Failed to add neighborhood due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding neighborhood {neighborhood.name}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add neighborhood: {e}") from e

    def delete(self, neighborhood_id: int) -> None:
        """Delete a neighborhood together with its matches.

        Raises:
            RecordNotFoundError: If the neighborhood does not exist
        """
        try:
            result = self.session.execute(
                delete(NeighborhoodModel).where(NeighborhoodModel.id == neighborhood_id)
            )
            self.session.flush()
            if result.rowcount == 0:
                raise RecordNotFoundError(f"Neighborhood {neighborhood_id} not found")
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error deleting neighborhood {neighborhood_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete neighborhood: {e}") from e

    def find_candidates(self, candidate_filter: Optional[CandidateFilter] = None) -> List[Neighborhood]:
        """Neighborhoods passing every bound of ``candidate_filter``, ordered by id.

        Rows that fail domain validation are logged and left out; use
        find_candidates_checked() to learn which ones.

        Raises:
            PersistenceError: If database error occurs
        """
        neighborhoods, _ = self.find_candidates_checked(candidate_filter)
        return neighborhoods

    def find_candidates_checked(
        self, candidate_filter: Optional[CandidateFilter] = None
    ) -> Tuple[List[Neighborhood], List[RejectedRow]]:
        """Like find_candidates(), also returning the rows that could not be loaded.

        A stored row can be invalid for the domain model (a safety score
        outside 0-10, an unknown tag in a JSON column). One bad row never
        hides the others.

        Args:
            candidate_filter: Bounds to apply (None returns every neighborhood)

        Returns:
            (neighborhoods, rejected rows), both ordered by id

        Raises:
            PersistenceError: If database error occurs
        """
        f = candidate_filter or CandidateFilter()
        model = NeighborhoodModel

        conditions = []
        conditions += _range_conditions(model.median_income, f.min_income, f.max_income)
        conditions += _range_conditions(
            model.median_home_value,
            f.min_home_value,
            f.max_home_value,
            include_missing=f.include_missing_home_value,
        )
        conditions += _range_conditions(model.median_rent, f.min_rent, f.max_rent)
        conditions += _range_conditions(model.crime_rate, None, f.max_crime_rate)
        conditions += _range_conditions(model.safety_score, f.min_safety_score, None)
        conditions += _range_conditions(model.walk_score, f.min_walk_score, None)
        conditions += _range_conditions(model.transit_score, f.min_transit_score, None)
        conditions += _range_conditions(model.latitude, f.min_latitude, f.max_latitude)
        conditions += _range_conditions(model.longitude, f.min_longitude, f.max_longitude)

        try:
            stmt = select(model).where(*conditions).order_by(model.id)
            rows = list(self.session.execute(stmt).scalars())
        except SQLAlchemyError as e:
            logger.error(f"Error finding candidate neighborhoods: {e}", exc_info=True)
            raise PersistenceError(f"Failed to find candidate neighborhoods: {e}") from e

        neighborhoods = []
        rejected = []
        for row in rows:
            try:
                neighborhoods.append(row.to_domain())
            except ValueError as e:
                reason = f"invalid stored profile: {e}"
                logger.warning(
                    f"Skipping neighborhood {row.id}: {reason}",
                    extra={"event": "neighborhood.row.invalid", "neighborhood_id": row.id},
                )
                rejected.append(RejectedRow(neighborhood_id=row.id, reason=reason))

        # Tag sets live in JSON columns; filter them here
        if f.lifestyle_characteristics:
            neighborhoods = [
                n for n in neighborhoods if n.lifestyle_characteristics & f.lifestyle_characteristics
            ]

        return neighborhoods, rejected


class MatchRepository:
    """Repository for matches and their score audit trail."""

    def __init__(self, session: Session):
        self.session = session

    def _list(self, stmt, description: str) -> List[Match]:
        try:
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing {description}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list {description}: {e}") from e

    def _scalar(self, stmt, description: str):
        try:
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error computing {description}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to compute {description}: {e}") from e

    @staticmethod
    def _ranked(stmt):
        return stmt.order_by(MatchModel.overall_score.desc(), MatchModel.neighborhood_id, MatchModel.id)

    def get_by_id(self, match_id: int) -> Optional[Match]:
        try:
            model = self.session.get(MatchModel, match_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving match {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve match: {e}") from e

    def _get_model_by_pair(self, user_id: int, neighborhood_id: int) -> Optional[MatchModel]:
        stmt = select(MatchModel).where(
            MatchModel.user_id == user_id,
            MatchModel.neighborhood_id == neighborhood_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def get_by_pair(self, user_id: int, neighborhood_id: int) -> Optional[Match]:
        try:
            model = self._get_model_by_pair(user_id, neighborhood_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(
                f"Error retrieving match for pair ({user_id}, {neighborhood_id}): {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to retrieve match: {e}") from e

    def upsert(self, match: Match) -> Match:
        """Insert the match for its pair, or refresh the scores of the stored one.

        An existing row keeps its id, created_at and feedback fields; only the
        score fields and updated_at are overwritten.

        Raises:
            DataIntegrityError: If the user or neighborhood does not exist
            PersistenceError: If database error occurs
        """
        try:
            existing = self._get_model_by_pair(match.user_id, match.neighborhood_id)

            if existing:
                existing.apply_scores(match)
                self.session.flush()
                return existing.to_domain()

            model = MatchModel.from_domain(match.model_copy(update={"id": None}))
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error upserting match {match.pair}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to upsert match due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting match {match.pair}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert match: {e}") from e

    def add_audit(self, audit: MatchScoreAudit) -> MatchScoreAudit:
        try:
            model = MatchScoreAuditModel.from_domain(audit)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error recording score audit: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to record score audit: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error recording score audit: {e}", exc_info=True)
            raise PersistenceError(f"Failed to record score audit: {e}") from e

    def update_feedback(self, match_id: int, update: MatchFeedbackUpdate) -> Match:
        """Apply the supplied feedback fields to a match; scores are untouched.

        Raises:
            RecordNotFoundError: If the match does not exist
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(MatchModel, match_id)
            if model is None:
                raise RecordNotFoundError(f"Match {match_id} not found")

            for field_name, value in update.changes().items():
                setattr(model, field_name, value)
            self.session.flush()
            return model.to_domain()
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating feedback for match {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update match feedback: {e}") from e

    def list_for_user(self, user_id: int) -> List[Match]:
        stmt = self._ranked(select(MatchModel).where(MatchModel.user_id == user_id))
        return self._list(stmt, f"matches for user {user_id}")

    def top_for_user(self, user_id: int, limit: int) -> List[Match]:
        stmt = self._ranked(select(MatchModel).where(MatchModel.user_id == user_id)).limit(limit)
        return self._list(stmt, f"top matches for user {user_id}")

    def list_for_neighborhood(self, neighborhood_id: int) -> List[Match]:
        stmt = select(MatchModel).where(MatchModel.neighborhood_id == neighborhood_id).order_by(
            MatchModel.overall_score.desc(), MatchModel.user_id, MatchModel.id
        )
        return self._list(stmt, f"matches for neighborhood {neighborhood_id}")

    def list_by_strength(self, strength: MatchStrength) -> List[Match]:
        stmt = self._ranked(select(MatchModel).where(MatchModel.match_strength == strength.value))
        return self._list(stmt, f"{strength.value} matches")

    def list_by_score_range(self, min_score: float, max_score: float) -> List[Match]:
        stmt = self._ranked(
            select(MatchModel).where(
                MatchModel.overall_score >= min_score,
                MatchModel.overall_score <= max_score,
            )
        )
        return self._list(stmt, "matches by score range")

    def list_for_user_min_score(self, user_id: int, min_score: float) -> List[Match]:
        stmt = self._ranked(
            select(MatchModel).where(
                MatchModel.user_id == user_id,
                MatchModel.overall_score >= min_score,
            )
        )
        return self._list(stmt, f"matches for user {user_id} above {min_score}")

    def list_by_min_subscore(self, component: str, min_score: float) -> List[Match]:
        """Matches whose ``component`` subscore is at least ``min_score``, best overall first.

        Raises:
            ValueError: If component is not a subscore name
        """
        column = SUBSCORE_COLUMNS.get(component)
        if column is None:
            raise ValueError(
                f"Unknown subscore {component!r}; expected one of {', '.join(SUBSCORE_COLUMNS)}"
            )
        stmt = self._ranked(select(MatchModel).where(column >= min_score))
        return self._list(stmt, f"matches by minimum {component} score")

    def list_with_reaction_for_user(self, user_id: int) -> List[Match]:
        """A user's matches they have liked or disliked."""
        stmt = self._ranked(
            select(MatchModel).where(MatchModel.user_id == user_id, MatchModel.liked.is_not(None))
        )
        return self._list(stmt, f"reacted matches for user {user_id}")

    def list_rated(self) -> List[Match]:
        stmt = self._ranked(select(MatchModel).where(MatchModel.rating.is_not(None)))
        return self._list(stmt, "rated matches")

    def list_recent(self, limit: int) -> List[Match]:
        stmt = (
            select(MatchModel)
            .order_by(MatchModel.created_at.desc(), MatchModel.id.desc())
            .limit(limit)
        )
        return self._list(stmt, "recent matches")

    def average_score_for_user(self, user_id: int) -> Optional[float]:
        stmt = select(func.avg(MatchModel.overall_score)).where(MatchModel.user_id == user_id)
        return self._scalar(stmt, f"average score for user {user_id}")

    def average_score_for_neighborhood(self, neighborhood_id: int) -> Optional[float]:
        stmt = select(func.avg(MatchModel.overall_score)).where(
            MatchModel.neighborhood_id == neighborhood_id
        )
        return self._scalar(stmt, f"average score for neighborhood {neighborhood_id}")

    def average_score(self) -> Optional[float]:
        return self._scalar(select(func.avg(MatchModel.overall_score)), "average score")

    def count(self) -> int:
        return self._scalar(select(func.count(MatchModel.id)), "match count")

    def count_by_strength(self) -> Dict[MatchStrength, int]:
        """Number of matches per tier; every tier is present, zero when empty."""
        counts = {strength: 0 for strength in MatchStrength}
        try:
            stmt = select(MatchModel.match_strength, func.count(MatchModel.id)).group_by(
                MatchModel.match_strength
            )
            for strength, total in self.session.execute(stmt):
                counts[MatchStrength(strength)] = total
        except SQLAlchemyError as e:
            logger.error(f"Error counting matches by strength: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count matches by strength: {e}") from e
        return counts

    def feedback_summary(self) -> Dict[str, Optional[float]]:
        """Counts of liked, visited and rated matches plus the mean rating."""
        try:
            stmt = select(
                _count_true(MatchModel.liked),
                _count_true(MatchModel.visited),
                func.count(MatchModel.rating),
                func.avg(MatchModel.rating),
            )
            liked, visited, rated, mean_rating = self.session.execute(stmt).one()
        except SQLAlchemyError as e:
            logger.error(f"Error summarizing match feedback: {e}", exc_info=True)
            raise PersistenceError(f"Failed to summarize match feedback: {e}") from e

        return {
            "liked": liked,
            "visited": visited,
            "rated": rated,
            "mean_rating": float(mean_rating) if mean_rating is not None else None,
        }

    def audit_for_user(self, user_id: int) -> List[MatchScoreAudit]:
        """Score history of a user, oldest first."""
        try:
            stmt = (
                select(MatchScoreAuditModel)
                .where(MatchScoreAuditModel.user_id == user_id)
                .order_by(MatchScoreAuditModel.scored_at, MatchScoreAuditModel.id)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving score audit for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve score audit: {e}") from e
