"""Test helper utilities for NeighborFit tests."""

from .profile_fixtures import (
    load_profile_fixtures,
    load_sample_neighborhoods,
    load_sample_users,
    seed_sample_profiles,
)

__all__ = [
    "load_profile_fixtures",
    "load_sample_neighborhoods",
    "load_sample_users",
    "seed_sample_profiles",
]
