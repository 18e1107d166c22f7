#!/usr/bin/env python3
"""Sample matching harness for end-to-end validation.

Seeds the sample users and neighborhoods from a YAML fixture into a fresh
SQLite database, runs one all-users batch and prints a summary. Useful for
eyeballing scores after changing the scoring configuration, without pytest.

Usage:
    # Built-in scoring defaults and the bundled sample profiles
    python scripts/run_sample_matching.py

    # Try a scoring configuration
    python scripts/run_sample_matching.py --config config.yaml

    # Custom database path and fixture file
    python scripts/run_sample_matching.py --database /tmp/sample.db --fixtures my_profiles.yaml
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from neighborfit.config.loader import load_config
from neighborfit.logging.config import configure_logging
from neighborfit.matching.utils import format_match_line
from neighborfit.persistence.database import close_database, init_database
from neighborfit.pipeline import MatchingOrchestrator
from tests.helpers import seed_sample_profiles
from tests.helpers.profile_fixtures import DEFAULT_FIXTURE_PATH


def print_header(title: str):
    """Print a formatted section header."""
    width = 80
    print("\n" + "=" * width)
    print(f" {title}")
    print("=" * width + "\n")


def print_summary_table(result):
    """Print a formatted summary table of batch results."""
    print_header("Batch Run Summary")

    metrics = [
        ("Users", result.total_users),
        ("Users Completed", result.completed_users),
        ("Users Failed", result.failed_users),
        ("Matches Stored", result.total_matches),
        ("Had Errors", "Yes" if result.had_errors else "No"),
        ("Duration (seconds)", f"{result.total_duration_seconds:.2f}"),
    ]

    max_label_width = max(len(label) for label, _ in metrics)

    print("┌" + "─" * (max_label_width + 2) + "┬" + "─" * 22 + "┐")
    print(f"│ {'Metric':<{max_label_width}} │ {'Value':<20} │")
    print("├" + "─" * (max_label_width + 2) + "┼" + "─" * 22 + "┤")

    for label, value in metrics:
        print(f"│ {label:<{max_label_width}} │ {str(value):<20} │")

    print("└" + "─" * (max_label_width + 2) + "┴" + "─" * 22 + "┘")


def print_user_matches(result, users_by_id):
    print_header("Matches Per User")

    for stats in result.user_stats:
        user = users_by_id.get(stats.user_id)
        label = user.name if user else f"user #{stats.user_id}"
        print(f"{label} ({stats.status.value}, {stats.candidate_count} candidates)")
        if stats.error_message:
            print(f"  Error: {stats.error_message}")
        for match_result in result.results.get(stats.user_id, []):
            print(f"  {match_result.rank}. {format_match_line(match_result.to_dict())}")
        print()


def main():
    """Main entry point for the sample matching harness."""
    parser = argparse.ArgumentParser(
        description="Run a sample matching batch for end-to-end validation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: built-in scoring defaults)",
    )
    parser.add_argument(
        "--fixtures",
        type=Path,
        default=DEFAULT_FIXTURE_PATH,
        help="Path to profile fixtures YAML file (default: tests/fixtures/sample_profiles.yaml)",
    )
    parser.add_argument(
        "--database",
        type=Path,
        default=Path("data/sample_matching.db"),
        help="Path to SQLite database (default: data/sample_matching.db)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: WARNING)",
    )

    args = parser.parse_args()

    load_dotenv()

    print_header("NeighborFit - Sample Matching Harness")

    print(f"Configuration file: {args.config or '(built-in defaults)'}")
    print(f"Fixtures: {args.fixtures}")
    print(f"Database: {args.database}")

    if not args.fixtures.exists():
        print(f"\n❌ Error: Fixture file not found: {args.fixtures}")
        return 1

    if args.database.exists():
        print(f"\n❌ Error: Database already exists: {args.database}")
        print("   Remove it or pass --database with a new path so the sample data is seeded once.")
        return 1

    try:
        print("\n📋 Loading configuration...")
        app_config, _ = load_config(args.config)
        configure_logging(
            level=args.log_level,
            format_type=app_config.logging.format,
            environment="validation",
        )
        print(f"✓ Scoring version {app_config.scoring.version}")

        print(f"\n💾 Initializing database: {args.database}")
        args.database.parent.mkdir(parents=True, exist_ok=True)
        init_database(f"sqlite:///{args.database.absolute()}")

        users, neighborhoods = seed_sample_profiles(args.fixtures)
        print(f"✓ Seeded {len(users)} users and {len(neighborhoods)} neighborhoods")

        orchestrator = MatchingOrchestrator(app_config)

        print("\n🚀 Running batch...")
        print(f"   Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        result = orchestrator.find_matches_for_all_users()
        print(f"   Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

        print_summary_table(result)
        print_user_matches(result, {user.id: user for user in users})

        print_header("Output Locations")
        print(f"Database: {args.database.absolute()}")
        print(f"  sqlite3 {args.database.absolute()} 'SELECT * FROM matches;'")
        print(f"  sqlite3 {args.database.absolute()} 'SELECT * FROM match_score_audit;'")
        print("\n" + "-" * 80)
        print(f"To clean up: rm {args.database.absolute()}")
        print("-" * 80 + "\n")

        return 1 if result.had_errors else 0

    except Exception as e:
        print(f"\n❌ Fatal error: {e}")
        import traceback
        traceback.print_exc()
        return 1

    finally:
        close_database()


if __name__ == "__main__":
    sys.exit(main())
