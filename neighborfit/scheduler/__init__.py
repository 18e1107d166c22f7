"""Scheduling module for periodic re-matching of every user."""

from .service import SchedulerService

__all__ = [
    "SchedulerService",
]
