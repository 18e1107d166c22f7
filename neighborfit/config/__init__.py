"""Configuration management module for NeighborFit."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_config, validate_config_file
from .models import (
    DEFAULT_SCORING_CONFIG,
    AppConfig,
    BudgetSettings,
    CandidateFilterConfig,
    DemographicSettings,
    LifestyleSettings,
    LocationSettings,
    LogFormat,
    LoggingConfig,
    LogLevel,
    MatchingConfig,
    ScoreWeights,
    ScoringConfig,
    TierThresholds,
)
from .validators import validate_scoring_config

__all__ = [
    # Main loader functions
    "load_config",
    "parse_config",
    "validate_config_file",
    "validate_scoring_config",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "ScoringConfig",
    "ScoreWeights",
    "TierThresholds",
    "LifestyleSettings",
    "DemographicSettings",
    "LocationSettings",
    "BudgetSettings",
    "MatchingConfig",
    "CandidateFilterConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    "DEFAULT_SCORING_CONFIG",
    # Enums
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
