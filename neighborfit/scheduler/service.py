"""Scheduler service for periodic re-matching of every user."""

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from neighborfit.logging import get_logger

logger = get_logger(__name__, component="scheduler")

JOB_ID = "match-refresh"


class SchedulerService:
    """
    Wraps APScheduler to re-run the all-users batch at a fixed interval.

    Uses BackgroundScheduler to run jobs in a separate thread while
    allowing the main thread to handle signals and coordinate shutdown.
    """

    def __init__(
        self,
        batch_callable: Callable[[], object],
        interval_seconds: int,
        shutdown_event: Optional[threading.Event] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scheduler service.

        Args:
            batch_callable: Function to call on each scheduled run
            interval_seconds: Interval between runs in seconds
            shutdown_event: Optional event to set on shutdown for coordination
            cancel_event: Optional event the batch watches; set on shutdown so
                a running batch stops dispatching new users
        """
        self.batch_callable = batch_callable
        self.interval_seconds = interval_seconds
        self.shutdown_event = shutdown_event
        self.cancel_event = cancel_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,  # Prevent overlapping runs
                "coalesce": True,  # If run is delayed, only execute once
                "misfire_grace_time": interval_seconds,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """
        Start the scheduler and register the batch job.

        The first run executes immediately after startup; subsequent runs
        follow the configured interval.
        """
        trigger = IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc)

        next_run = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self.batch_callable,
            trigger=trigger,
            id=JOB_ID,
            name="Neighborhood match refresh",
            replace_existing=True,
            next_run_time=next_run,
        )

        self.scheduler.start()

        logger.info(
            f"Scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "next_run_time": next_run.isoformat(),
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler gracefully.

        Args:
            wait: If True, wait for the running batch to finish before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.cancel_event:
            self.cancel_event.set()

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self):
        """
        Run the batch immediately in the current thread and return its result.
        """
        logger.info("Triggering immediate batch run", extra={"event": "scheduler.trigger_now"})
        return self.batch_callable()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        """
        Get the next scheduled run time.

        Returns:
            Next run time as a datetime, or None if not scheduled
        """
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None
