"""Additional validation utilities for configuration."""

import math
import os
import warnings
from typing import Any, Dict, List

from .exceptions import ConfigurationError
from .models import ScoringConfig


def validate_scoring_config(scoring: ScoringConfig) -> None:
    """
    Re-check the scoring invariants that the engine relies on.

    The pydantic models already enforce these at construction; this guards
    configs built with ``model_construct`` or copied with ``model_copy(update=...)``,
    which skip validation.

    Raises:
        ConfigurationError: If weights do not sum to 1.0 or thresholds are out of order
    """
    errors = []

    weights = scoring.weights.as_dict()
    total = sum(weights.values())
    if not math.isclose(total, 1.0, abs_tol=1e-9):
        errors.append(f"scoring -> weights must sum to 1.0, got {total:.6f}")

    for name, value in weights.items():
        if not 0.0 <= value <= 1.0:
            errors.append(f"scoring -> weights -> {name} must be in [0, 1], got {value}")

    thresholds = scoring.thresholds
    if not (1.0 >= thresholds.excellent > thresholds.good > thresholds.fair > 0.0):
        errors.append(
            "scoring -> thresholds must satisfy 1 >= excellent > good > fair > 0, got "
            f"{thresholds.excellent}, {thresholds.good}, {thresholds.fair}"
        )

    if errors:
        raise ConfigurationError(
            f"Invalid scoring configuration (version {scoring.version})",
            errors=errors,
            suggestions=["Bump scoring.version whenever you change weights or thresholds"],
        )


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    matching = config_dict.get("matching", {})
    if isinstance(matching, dict):
        interval = matching.get("refresh_interval_minutes")
        if isinstance(interval, int) and interval < 5:
            warning_messages.append(
                f"Short refresh_interval_minutes ({interval}) re-scores every user very often"
            )

        max_workers = matching.get("max_workers")
        cpu_count = os.cpu_count() or 1
        if isinstance(max_workers, int) and max_workers > cpu_count * 4:
            warning_messages.append(
                f"max_workers ({max_workers}) is far above the CPU count ({cpu_count}); "
                "SQLite writes are serialized, so extra workers mostly wait"
            )

        default_limit = matching.get("default_limit")
        if isinstance(default_limit, int) and default_limit > 50:
            warning_messages.append(
                f"Large default_limit ({default_limit}) returns long result lists"
            )

    scoring = config_dict.get("scoring", {})
    if isinstance(scoring, dict):
        if "weights" in scoring and "version" not in scoring:
            warning_messages.append(
                "Custom scoring weights without an explicit scoring.version; "
                "stored matches will not be distinguishable from default-scored ones"
            )

        thresholds = scoring.get("thresholds", {})
        if isinstance(thresholds, dict):
            excellent = thresholds.get("excellent")
            if isinstance(excellent, (int, float)) and excellent > 0.95:
                warning_messages.append(
                    f"Very high excellent threshold ({excellent}) means almost no EXCELLENT matches"
                )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
