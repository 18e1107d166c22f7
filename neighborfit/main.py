"""Main entry point for the NeighborFit matching service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import json
import signal
import sys
import threading
import time
from functools import partial
from pathlib import Path
from typing import Optional, Tuple

from neighborfit.config.environment import EnvironmentConfig
from neighborfit.config.exceptions import ConfigurationError
from neighborfit.config.loader import load_config
from neighborfit.config.models import AppConfig
from neighborfit.logging import get_logger
from neighborfit.logging.config import configure_logging
from neighborfit.matching.exceptions import MatchingError
from neighborfit.matching.utils import format_match_line
from neighborfit.persistence.database import close_database, init_database
from neighborfit.pipeline import MatchingOrchestrator
from neighborfit.scheduler import SchedulerService

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level

    return app_config, env_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="NeighborFit - match users with compatible neighborhoods"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then built-in defaults)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--user-id", type=int, help="Match a single user and exit")
    mode.add_argument(
        "--all-users", action="store_true", help="Match every user once and exit"
    )
    mode.add_argument(
        "--analytics", action="store_true", help="Print match analytics as JSON and exit"
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Matches kept per user (default from matching config)",
    )
    return parser


def _run_single_user(orchestrator: MatchingOrchestrator, user_id: int, limit: Optional[int]) -> int:
    run = orchestrator.find_matches_for_user(user_id, limit)
    for result in run.results:
        print(f"{result.rank}. {format_match_line(result.to_dict())}")
    for skipped in run.skipped:
        print(f"skipped neighborhood {skipped.neighborhood_id}: {skipped.reason}", file=sys.stderr)
    return 0


def _run_all_users(orchestrator: MatchingOrchestrator, limit: Optional[int]) -> int:
    result = orchestrator.find_matches_for_all_users(limit_per_user=limit)
    logger.info(
        f"Batch completed: {result.completed_users}/{result.total_users} users, "
        f"{result.total_matches} matches",
        extra={
            "event": "service.batch.completed",
            "duration_seconds": result.total_duration_seconds,
            "failed_users": result.failed_users,
            "had_errors": result.had_errors,
        },
    )
    return 1 if result.failed_users else 0


def _run_daemon(orchestrator: MatchingOrchestrator, app_config: AppConfig) -> int:
    shutdown_event = threading.Event()
    cancel_event = threading.Event()

    scheduler_service = SchedulerService(
        batch_callable=partial(orchestrator.find_matches_for_all_users, cancel_event=cancel_event),
        interval_seconds=app_config.matching.refresh_interval_minutes * 60,
        shutdown_event=shutdown_event,
        cancel_event=cancel_event,
    )

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        scheduler_service.shutdown(wait=False)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    scheduler_service.start()
    logger.info(
        "Scheduler started. Press Ctrl+C to stop",
        extra={"event": "service.daemon_mode.started"},
    )

    try:
        shutdown_event.wait()
    except KeyboardInterrupt:
        logger.info(
            "Keyboard interrupt received, shutting down",
            extra={"event": "service.keyboard_interrupt"},
        )
        scheduler_service.shutdown(wait=False)

    return 0


def main(argv=None) -> int:
    """
    Main entry point for NeighborFit.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "NeighborFit starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "scoring_version": app_config.scoring.version,
            },
        )

        init_database(
            env_config.database_url,
            timeout_seconds=app_config.matching.persistence_timeout_seconds,
        )
        orchestrator = MatchingOrchestrator(app_config)

        try:
            if args.user_id is not None:
                return _run_single_user(orchestrator, args.user_id, args.limit)
            if args.all_users:
                return _run_all_users(orchestrator, args.limit)
            if args.analytics:
                print(json.dumps(orchestrator.get_match_analytics().to_dict(), indent=2))
                return 0
            return _run_daemon(orchestrator, app_config)
        finally:
            close_database()
            logger.info(
                "NeighborFit stopped",
                extra={
                    "event": "service.stopping",
                    "uptime_seconds": round(time.time() - start_time, 2),
                },
            )

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except MatchingError as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.error(
            f"Matching request failed: {e}",
            extra={"event": "service.request.failed", "error_type": type(e).__name__},
        )
        return 2
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            extra={
                "event": "service.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
