"""Matching orchestration over the persisted users and neighborhoods."""

from .models import BatchRunResult, MatchAnalytics, RunStatus, UserMatchRun, UserRunStats
from .orchestrator import MatchingOrchestrator, validate_user_for_matching

__all__ = [
    "MatchingOrchestrator",
    "validate_user_for_matching",
    "BatchRunResult",
    "MatchAnalytics",
    "RunStatus",
    "UserMatchRun",
    "UserRunStats",
]
