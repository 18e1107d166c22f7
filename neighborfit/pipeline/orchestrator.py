"""Matching orchestration: candidate retrieval, scoring, ranking and persistence."""

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Tuple, Union
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from neighborfit.config.models import AppConfig
from neighborfit.config.validators import validate_scoring_config
from neighborfit.domain.enums import MatchStrength
from neighborfit.domain.models import Match, MatchFeedbackUpdate, MatchScoreAudit, User
from neighborfit.logging import get_logger
from neighborfit.logging.context import log_context
from neighborfit.matching.builder import build_audit, build_match
from neighborfit.matching.engine import CompatibilityScorer, rank_candidates
from neighborfit.matching.exceptions import ComputationError, NotFoundError, ValidationError
from neighborfit.matching.models import MatchResult, ScoredCandidate, SkippedCandidate
from neighborfit.persistence.database import get_session
from neighborfit.persistence.exceptions import RecordNotFoundError
from neighborfit.persistence.locks import PairLockRegistry
from neighborfit.persistence.repositories import (
    CandidateFilter,
    MatchRepository,
    NeighborhoodRepository,
    SUBSCORE_COLUMNS,
    UserRepository,
)
from neighborfit.utils.timestamps import utc_now

from .models import BatchRunResult, MatchAnalytics, RunStatus, UserMatchRun, UserRunStats

logger = get_logger(__name__, component="orchestrator")


def validate_user_for_matching(user: User) -> List[str]:
    """
    List the reasons a profile will match poorly or not meaningfully.

    An empty list means the profile is complete enough to match. Problems are
    advisory: matching still runs, sparse terms fall back to neutral values.
    """
    problems = []

    if user.min_budget > user.max_budget:
        problems.append(
            f"min_budget ({user.min_budget}) exceeds max_budget ({user.max_budget})"
        )
    if user.max_budget <= 0:
        problems.append("max_budget must be positive")
    if user.max_commute_time_minutes <= 0:
        problems.append("max_commute_time_minutes must be positive")
    if not user.lifestyle_preferences and not user.hobbies:
        problems.append("at least one lifestyle preference or hobby is needed")

    return problems


class MatchingOrchestrator:
    """
    Coordinates matching for one user or for every user.

    Reads happen in one session, scoring happens outside any session, and the
    resulting matches for a user are written in a single transaction while the
    pair locks for those matches are held.
    """

    def __init__(
        self,
        app_config: Optional[AppConfig] = None,
        scorer: Optional[CompatibilityScorer] = None,
        lock_registry: Optional[PairLockRegistry] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            app_config: Application configuration (defaults to built-in settings)
            scorer: Scorer to use (defaults to one built from app_config.scoring)
            lock_registry: Pair locks shared with other orchestrators in this process

        Raises:
            ConfigurationError: If the scoring weights or thresholds are invalid
        """
        self.app_config = app_config or AppConfig()
        self.matching_config = self.app_config.matching

        validate_scoring_config(self.app_config.scoring)

        self.scorer = scorer or CompatibilityScorer(self.app_config.scoring)
        self.lock_registry = lock_registry or PairLockRegistry()
        self._batch_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def find_matches_for_user(self, user_id: int, limit: Optional[int] = None) -> UserMatchRun:
        """
        Score, rank and store the best neighborhoods for one user.

        Args:
            user_id: User to match
            limit: Maximum number of matches to keep (defaults to matching.default_limit)

        Returns:
            UserMatchRun with ranked MatchResults and any skipped candidates

        Raises:
            ValidationError: If limit is not a positive integer
            NotFoundError: If the user does not exist (nothing is written)
            PersistenceError: If reading or writing the database fails
        """
        limit = self._resolve_limit(limit, self.matching_config.default_limit)

        with log_context(user_id=user_id):
            started = time.time()

            with get_session() as session:
                user = UserRepository(session).get_by_id(user_id)
                candidates = []
                rejected = []
                if user is not None:
                    candidates, rejected = NeighborhoodRepository(session).find_candidates_checked(
                        self.candidate_filter_for(user)
                    )

            if user is None:
                raise NotFoundError("User", user_id)

            problems = validate_user_for_matching(user)
            if problems:
                logger.warning(
                    f"User {user_id} profile is incomplete: {'; '.join(problems)}",
                    extra={"event": "matching.user.incomplete_profile", "problems": problems},
                )

            scored, skipped = self._score_candidates(user, candidates)
            # Unreadable rows count as candidates that could not be scored
            skipped = [
                SkippedCandidate(
                    neighborhood_id=row.neighborhood_id, reason=row.reason, component="profile"
                )
                for row in rejected
            ] + skipped
            candidate_count = len(candidates) + len(rejected)
            ranked = rank_candidates(scored, limit)
            matches = self._persist(user, ranked)

            results = [
                MatchResult(match=match, neighborhood=candidate.neighborhood, user=user, rank=rank)
                for rank, (match, candidate) in enumerate(zip(matches, ranked), start=1)
            ]

            logger.info(
                f"Matched user {user_id}: {len(results)} matches from {candidate_count} candidates",
                extra={
                    "event": "matching.user.completed",
                    "candidate_count": candidate_count,
                    "scored_count": len(scored),
                    "skipped_count": len(skipped),
                    "persisted_count": len(results),
                    "top_score": results[0].overall_score if results else None,
                    "duration_ms": int((time.time() - started) * 1000),
                },
            )

            return UserMatchRun(
                user_id=user_id,
                results=results,
                skipped=skipped,
                candidate_count=candidate_count,
                scoring_version=self.scorer.scoring_version,
            )

    def find_matches_for_all_users(
        self,
        limit_per_user: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchRunResult:
        """
        Match every user, in parallel across a bounded worker pool.

        A failure for one user is recorded in its UserRunStats and does not
        affect the others. Once ``cancel_event`` is set no further users are
        started; users already being matched finish their single write
        transaction, the rest are reported as cancelled.

        Args:
            limit_per_user: Matches kept per user (defaults to matching.default_limit_per_user)
            cancel_event: Optional event that stops dispatching new users

        Returns:
            BatchRunResult with per-user stats and all results

        Raises:
            ValidationError: If limit_per_user is not a positive integer
            PersistenceError: If the user list cannot be read
        """
        limit = self._resolve_limit(limit_per_user, self.matching_config.default_limit_per_user)
        run_started_at = utc_now()
        run_id = uuid4().hex

        if not self._batch_lock.acquire(blocking=False):
            with log_context(run_id=run_id):
                logger.warning(
                    "Batch run skipped: previous run still in progress",
                    extra={"event": "matching.batch.skipped", "reason": "lock_held"},
                )
            return BatchRunResult(
                run_id=run_id,
                run_started_at=run_started_at,
                run_finished_at=utc_now(),
                skipped=True,
            )

        try:
            with log_context(run_id=run_id):
                with get_session() as session:
                    user_ids = UserRepository(session).list_ids()

                max_workers = self.matching_config.max_workers or os.cpu_count() or 1
                logger.info(
                    f"Batch run started for {len(user_ids)} users",
                    extra={
                        "event": "matching.batch.started",
                        "user_count": len(user_ids),
                        "limit_per_user": limit,
                        "max_workers": max_workers,
                        "scoring_version": self.scorer.scoring_version,
                    },
                )

                user_stats: List[UserRunStats] = []
                results: Dict[int, List[MatchResult]] = {}

                with ThreadPoolExecutor(
                    max_workers=max_workers, thread_name_prefix="neighborfit-match"
                ) as executor:
                    future_to_user = {}
                    for user_id in user_ids:
                        if cancel_event is not None and cancel_event.is_set():
                            user_stats.append(
                                UserRunStats(user_id=user_id, status=RunStatus.CANCELLED)
                            )
                            continue
                        future = executor.submit(
                            self._run_user, user_id, limit, run_id, cancel_event
                        )
                        future_to_user[future] = user_id

                    for future in as_completed(future_to_user):
                        stats, user_results = future.result()
                        user_stats.append(stats)
                        if stats.status == RunStatus.COMPLETED:
                            results[stats.user_id] = user_results

                result = BatchRunResult(
                    run_id=run_id,
                    run_started_at=run_started_at,
                    run_finished_at=utc_now(),
                    user_stats=user_stats,
                    results=results,
                    cancelled=cancel_event is not None and cancel_event.is_set(),
                )

                logger.info(
                    "Batch run completed",
                    extra={
                        "event": "matching.batch.completed",
                        "duration_ms": int(result.total_duration_seconds * 1000),
                        "total_users": result.total_users,
                        "completed_users": result.completed_users,
                        "failed_users": result.failed_users,
                        "cancelled_users": result.cancelled_users,
                        "total_matches": result.total_matches,
                        "had_errors": result.had_errors,
                    },
                )

                return result

        finally:
            self._batch_lock.release()

    def _run_user(
        self,
        user_id: int,
        limit: int,
        run_id: str,
        cancel_event: Optional[threading.Event],
    ) -> Tuple[UserRunStats, List[MatchResult]]:
        """Match one user inside a batch; never raises."""
        started = time.time()
        stats = UserRunStats(user_id=user_id)

        # Worker threads do not inherit the caller's context
        with log_context(run_id=run_id, user_id=user_id):
            if cancel_event is not None and cancel_event.is_set():
                stats.status = RunStatus.CANCELLED
                logger.info(
                    f"User {user_id} not matched: batch cancelled",
                    extra={"event": "matching.user.cancelled"},
                )
                return stats, []

            try:
                run = self.find_matches_for_user(user_id, limit)
                stats.candidate_count = run.candidate_count
                stats.scored_count = run.scored_count
                stats.skipped_count = len(run.skipped)
                stats.persisted_count = len(run.results)
                stats.had_errors = bool(run.skipped)
                return stats, run.results

            except Exception as e:
                stats.status = RunStatus.FAILED
                stats.had_errors = True
                stats.error_message = str(e)
                logger.error(
                    f"Matching failed for user {user_id}: {e}",
                    extra={
                        "event": "matching.user.failed",
                        "error_type": type(e).__name__,
                        "error": str(e),
                    },
                    exc_info=True,
                )
                return stats, []

            finally:
                stats.duration_seconds = time.time() - started

    def candidate_filter_for(self, user: User) -> CandidateFilter:
        """Candidate bounds for a user: the budget widened by the tolerance band plus configured limits."""
        filter_config = self.matching_config.candidate_filter
        tolerance = self.app_config.scoring.budget.tolerance

        min_home_value = max_home_value = None
        if filter_config.prefilter_by_budget:
            min_home_value = user.min_budget * (1 - tolerance)
            max_home_value = user.max_budget * (1 + tolerance)

        return CandidateFilter(
            min_home_value=min_home_value,
            max_home_value=max_home_value,
            include_missing_home_value=True,
            max_crime_rate=filter_config.max_crime_rate,
            min_safety_score=filter_config.min_safety_score,
        )

    def _score_candidates(self, user: User, candidates) -> Tuple[List[ScoredCandidate], List[SkippedCandidate]]:
        scored = []
        skipped = []
        for neighborhood in candidates:
            try:
                breakdown = self.scorer.evaluate(user, neighborhood)
            except ComputationError as e:
                skipped.append(
                    SkippedCandidate(
                        neighborhood_id=neighborhood.id, reason=str(e), component=e.component
                    )
                )
                logger.warning(
                    f"Skipping neighborhood {neighborhood.id} for user {user.id}: {e}",
                    extra={
                        "event": "matching.candidate.skipped",
                        "neighborhood_id": neighborhood.id,
                        "component": e.component,
                    },
                )
                continue
            scored.append(ScoredCandidate(neighborhood=neighborhood, breakdown=breakdown))
        return scored, skipped

    def _persist(self, user: User, ranked: List[ScoredCandidate]) -> List[Match]:
        """Upsert the ranked matches and their audit rows in one transaction."""
        if not ranked:
            return []

        scored_at = utc_now()
        pairs = [(user.id, candidate.neighborhood.id) for candidate in ranked]
        stored = []

        with self.lock_registry.hold(pairs):
            with get_session() as session:
                repo = MatchRepository(session)
                for candidate in ranked:
                    existing = repo.get_by_pair(user.id, candidate.neighborhood.id)
                    match = build_match(
                        user,
                        candidate.neighborhood,
                        candidate.breakdown,
                        existing=existing,
                        scored_at=scored_at,
                    )
                    match = repo.upsert(match)
                    repo.add_audit(build_audit(match, scored_at))
                    stored.append(match)

        return stored

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_match_history_for_user(self, user_id: int) -> List[MatchResult]:
        """All stored matches of a user, best first.

        Raises:
            NotFoundError: If the user does not exist
        """
        with get_session() as session:
            user = UserRepository(session).get_by_id(user_id)
            matches = MatchRepository(session).list_for_user(user_id) if user else []
            results = self._to_results(session, matches, user)

        if user is None:
            raise NotFoundError("User", user_id)
        return results

    def get_top_matches_for_user(self, user_id: int, limit: Optional[int] = None) -> List[MatchResult]:
        """Best stored matches of a user (defaults to matching.default_limit_per_user).

        Raises:
            ValidationError: If limit is not a positive integer
            NotFoundError: If the user does not exist
        """
        limit = self._resolve_limit(limit, self.matching_config.default_limit_per_user)
        with get_session() as session:
            user = UserRepository(session).get_by_id(user_id)
            matches = MatchRepository(session).top_for_user(user_id, limit) if user else []
            results = self._to_results(session, matches, user, ranked=True)

        if user is None:
            raise NotFoundError("User", user_id)
        return results

    def get_matches_by_strength(self, strength: Union[MatchStrength, str]) -> List[MatchResult]:
        """Stored matches of one tier, best first.

        Raises:
            ValidationError: If strength is not a known tier
        """
        try:
            strength = MatchStrength(strength)
        except ValueError as e:
            valid = ", ".join(s.value for s in MatchStrength)
            raise ValidationError(
                f"Unknown match strength {strength!r}; expected one of {valid}", field="strength"
            ) from e

        with get_session() as session:
            matches = MatchRepository(session).list_by_strength(strength)
            return self._to_results(session, matches)

    def get_recent_matches(self, limit: Optional[int] = None) -> List[MatchResult]:
        """Most recently created matches (defaults to matching.default_limit)."""
        limit = self._resolve_limit(limit, self.matching_config.default_limit)
        with get_session() as session:
            matches = MatchRepository(session).list_recent(limit)
            return self._to_results(session, matches)

    def get_matches_by_score_range(self, min_score: float, max_score: float) -> List[MatchResult]:
        """Stored matches with min_score <= overall_score <= max_score, best first.

        Raises:
            ValidationError: If the bounds are outside [0, 1] or reversed
        """
        if not (0.0 <= min_score <= max_score <= 1.0):
            raise ValidationError(
                f"Score range must satisfy 0 <= min <= max <= 1, got [{min_score}, {max_score}]",
                field="min_score",
            )
        with get_session() as session:
            matches = MatchRepository(session).list_by_score_range(min_score, max_score)
            return self._to_results(session, matches)

    def get_matches_for_user_min_score(self, user_id: int, min_score: float) -> List[MatchResult]:
        """A user's stored matches with overall_score >= min_score, best first.

        Raises:
            ValidationError: If min_score is outside [0, 1]
            NotFoundError: If the user does not exist
        """
        self._check_min_score(min_score)
        with get_session() as session:
            user = UserRepository(session).get_by_id(user_id)
            matches = (
                MatchRepository(session).list_for_user_min_score(user_id, min_score) if user else []
            )
            results = self._to_results(session, matches, user)

        if user is None:
            raise NotFoundError("User", user_id)
        return results

    def get_matches_by_min_subscore(self, component: str, min_score: float) -> List[MatchResult]:
        """Stored matches whose lifestyle/demographic/location/budget subscore is at least min_score.

        Raises:
            ValidationError: If component is unknown or min_score is outside [0, 1]
        """
        if component not in SUBSCORE_COLUMNS:
            raise ValidationError(
                f"Unknown subscore {component!r}; expected one of {', '.join(SUBSCORE_COLUMNS)}",
                field="component",
            )
        self._check_min_score(min_score)
        with get_session() as session:
            matches = MatchRepository(session).list_by_min_subscore(component, min_score)
            return self._to_results(session, matches)

    def get_reacted_matches_for_user(self, user_id: int) -> List[MatchResult]:
        """A user's stored matches carrying a like or dislike, best first.

        Raises:
            NotFoundError: If the user does not exist
        """
        with get_session() as session:
            user = UserRepository(session).get_by_id(user_id)
            matches = MatchRepository(session).list_with_reaction_for_user(user_id) if user else []
            results = self._to_results(session, matches, user)

        if user is None:
            raise NotFoundError("User", user_id)
        return results

    def get_rated_matches(self) -> List[MatchResult]:
        """Stored matches that have a rating, best first."""
        with get_session() as session:
            matches = MatchRepository(session).list_rated()
            return self._to_results(session, matches)

    def get_matches_for_neighborhood(self, neighborhood_id: int) -> List[MatchResult]:
        """Stored matches for a neighborhood, best first.

        Raises:
            NotFoundError: If the neighborhood does not exist
        """
        with get_session() as session:
            neighborhood = NeighborhoodRepository(session).get_by_id(neighborhood_id)
            matches = (
                MatchRepository(session).list_for_neighborhood(neighborhood_id)
                if neighborhood
                else []
            )
            results = self._to_results(session, matches)

        if neighborhood is None:
            raise NotFoundError("Neighborhood", neighborhood_id)
        return results

    def get_average_score_for_user(self, user_id: int) -> Optional[float]:
        """Mean overall score of a user's matches, None when the user has none.

        Raises:
            NotFoundError: If the user does not exist
        """
        with get_session() as session:
            user = UserRepository(session).get_by_id(user_id)
            average = MatchRepository(session).average_score_for_user(user_id) if user else None

        if user is None:
            raise NotFoundError("User", user_id)
        return average

    def get_average_score_for_neighborhood(self, neighborhood_id: int) -> Optional[float]:
        """Mean overall score of a neighborhood's matches, None when it has none.

        Raises:
            NotFoundError: If the neighborhood does not exist
        """
        with get_session() as session:
            neighborhood = NeighborhoodRepository(session).get_by_id(neighborhood_id)
            average = (
                MatchRepository(session).average_score_for_neighborhood(neighborhood_id)
                if neighborhood
                else None
            )

        if neighborhood is None:
            raise NotFoundError("Neighborhood", neighborhood_id)
        return average

    def get_score_history_for_user(self, user_id: int) -> List[MatchScoreAudit]:
        """Every scoring of the user's pairs, oldest first.

        Raises:
            NotFoundError: If the user does not exist
        """
        with get_session() as session:
            user = UserRepository(session).get_by_id(user_id)
            history = MatchRepository(session).audit_for_user(user_id) if user else []

        if user is None:
            raise NotFoundError("User", user_id)
        return history

    def get_match_analytics(self) -> MatchAnalytics:
        """Tier counts (every tier present), totals and feedback statistics."""
        with get_session() as session:
            repo = MatchRepository(session)
            counts = repo.count_by_strength()
            average = repo.average_score()
            feedback = repo.feedback_summary()

        return MatchAnalytics(
            total_matches=sum(counts.values()),
            counts_by_strength=counts,
            average_score=float(average) if average is not None else None,
            liked_count=feedback["liked"],
            visited_count=feedback["visited"],
            rated_count=feedback["rated"],
            average_rating=feedback["mean_rating"],
        )

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def update_match_feedback(
        self,
        match_id: int,
        liked: Optional[bool] = None,
        visited: Optional[bool] = None,
        rating: Optional[int] = None,
        feedback: Optional[str] = None,
    ) -> Match:
        """
        Update the supplied feedback fields of a match; None leaves a field unchanged.

        Scores are never touched.

        Raises:
            ValidationError: If rating is outside 1-5 (the match is left unchanged)
            NotFoundError: If the match does not exist
        """
        try:
            update = MatchFeedbackUpdate.from_optional(
                liked=liked, visited=visited, rating=rating, feedback=feedback
            )
        except PydanticValidationError as e:
            first = e.errors()[0]
            field_name = ".".join(str(loc) for loc in first["loc"]) or None
            raise ValidationError(
                f"Invalid feedback for match {match_id}: {field_name}: {first['msg']}",
                field=field_name,
            ) from e

        try:
            with get_session() as session:
                match = MatchRepository(session).update_feedback(match_id, update)
        except RecordNotFoundError as e:
            raise NotFoundError("Match", match_id) from e

        logger.info(
            f"Feedback updated for match {match_id}",
            extra={
                "event": "matching.feedback.updated",
                "match_id": match_id,
                "fields": sorted(update.changes()),
            },
        )
        return match

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve_limit(limit: Optional[int], default: int) -> int:
        if limit is None:
            return default
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError(f"limit must be a positive integer, got {limit!r}", field="limit")
        return limit

    @staticmethod
    def _check_min_score(min_score: float) -> None:
        if isinstance(min_score, bool) or not isinstance(min_score, (int, float)) or not (
            0.0 <= min_score <= 1.0
        ):
            raise ValidationError(
                f"min_score must be within [0, 1], got {min_score!r}", field="min_score"
            )

    @staticmethod
    def _to_results(
        session, matches: List[Match], user: Optional[User] = None, ranked: bool = False
    ) -> List[MatchResult]:
        neighborhoods = NeighborhoodRepository(session).get_many(
            match.neighborhood_id for match in matches
        )
        users = {user.id: user} if user is not None else {}
        missing_users = {match.user_id for match in matches} - set(users)
        if missing_users:
            user_repo = UserRepository(session)
            for user_id in missing_users:
                found = user_repo.get_by_id(user_id)
                if found is not None:
                    users[user_id] = found

        return [
            MatchResult(
                match=match,
                neighborhood=neighborhoods[match.neighborhood_id],
                user=users.get(match.user_id),
                rank=position if ranked else None,
            )
            for position, match in enumerate(matches, start=1)
        ]
