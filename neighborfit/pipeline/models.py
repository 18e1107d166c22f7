"""Data models for matching run tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from neighborfit.domain.enums import MatchStrength
from neighborfit.matching.models import MatchResult, SkippedCandidate


class RunStatus(str, Enum):
    """Outcome of one user's share of a batch run."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class UserMatchRun:
    """
    Ranked results of matching one user.

    Attributes:
        user_id: User that was matched
        results: Ranked, persisted matches (best first)
        skipped: Candidates that could not be scored, with the reason
        candidate_count: Neighborhoods that passed candidate filtering
        scoring_version: Version of the ScoringConfig used
    """

    user_id: int
    results: List[MatchResult] = field(default_factory=list)
    skipped: List[SkippedCandidate] = field(default_factory=list)
    candidate_count: int = 0
    scoring_version: str = ""

    def __iter__(self) -> Iterator[MatchResult]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    @property
    def scored_count(self) -> int:
        return self.candidate_count - len(self.skipped)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "scoring_version": self.scoring_version,
            "candidate_count": self.candidate_count,
            "matches": [result.to_dict() for result in self.results],
            "skipped": [candidate.as_dict() for candidate in self.skipped],
        }


@dataclass
class UserRunStats:
    """
    Statistics for a single user's execution within a batch run.

    Attributes:
        user_id: User processed
        status: completed, failed or cancelled (never dispatched)
        candidate_count: Neighborhoods considered after filtering
        scored_count: Candidates scored successfully
        skipped_count: Candidates skipped because scoring failed
        persisted_count: Match records written
        duration_seconds: Time spent on this user
        had_errors: Whether the user failed or any candidate was skipped
        error_message: Error that failed the user, if any
    """

    user_id: int
    status: RunStatus = RunStatus.COMPLETED
    candidate_count: int = 0
    scored_count: int = 0
    skipped_count: int = 0
    persisted_count: int = 0
    duration_seconds: float = 0.0
    had_errors: bool = False
    error_message: Optional[str] = None


@dataclass
class BatchRunResult:
    """
    Aggregate results of matching every user.

    Attributes:
        run_id: Identifier shared by all log records of the run
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
        total_duration_seconds: Total time for the entire run
        user_stats: Per-user execution statistics, ordered by user id
        results: Ranked results per user id (completed users only)
        total_users: Users known when the run started
        completed_users: Users matched successfully
        failed_users: Users whose matching raised an error
        cancelled_users: Users not processed because the run was cancelled
        total_matches: Match records written across all users
        had_errors: Whether any user failed or skipped a candidate
        cancelled: Whether cancellation was requested during the run
        skipped: Whether the run was skipped (another batch still running)
    """

    run_id: str
    run_started_at: datetime
    run_finished_at: datetime
    total_duration_seconds: float = 0.0
    user_stats: List[UserRunStats] = field(default_factory=list)
    results: Dict[int, List[MatchResult]] = field(default_factory=dict)
    total_users: int = 0
    completed_users: int = 0
    failed_users: int = 0
    cancelled_users: int = 0
    total_matches: int = 0
    had_errors: bool = False
    cancelled: bool = False
    skipped: bool = False

    def __post_init__(self):
        """Compute aggregate statistics from user stats."""
        if self.user_stats:
            self.user_stats.sort(key=lambda stats: stats.user_id)
            self.total_users = len(self.user_stats)
            self.completed_users = sum(
                1 for s in self.user_stats if s.status == RunStatus.COMPLETED
            )
            self.failed_users = sum(1 for s in self.user_stats if s.status == RunStatus.FAILED)
            self.cancelled_users = sum(
                1 for s in self.user_stats if s.status == RunStatus.CANCELLED
            )
            self.total_matches = sum(s.persisted_count for s in self.user_stats)
            self.had_errors = any(s.had_errors for s in self.user_stats)
            self.cancelled = self.cancelled or self.cancelled_users > 0

        if self.total_duration_seconds == 0.0:
            delta = self.run_finished_at - self.run_started_at
            self.total_duration_seconds = delta.total_seconds()

    def stats_for(self, user_id: int) -> Optional[UserRunStats]:
        return next((s for s in self.user_stats if s.user_id == user_id), None)


@dataclass
class MatchAnalytics:
    """Summary statistics over every stored match."""

    total_matches: int
    counts_by_strength: Dict[MatchStrength, int]
    average_score: Optional[float] = None
    liked_count: int = 0
    visited_count: int = 0
    rated_count: int = 0
    average_rating: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_matches": self.total_matches,
            "counts_by_strength": {
                strength.value: count for strength, count in self.counts_by_strength.items()
            },
            "average_score": self.average_score,
            "liked_count": self.liked_count,
            "visited_count": self.visited_count,
            "rated_count": self.rated_count,
            "average_rating": self.average_rating,
        }
