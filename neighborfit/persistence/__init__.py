"""Persistence layer for database operations using SQLite.

Public API:
    # Database initialization and session management
    - init_database(database_url: str, timeout_seconds: int = 30) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes
    - UserRepository: CRUD operations for users
    - NeighborhoodRepository: neighborhood storage and candidate filtering
    - MatchRepository: match upserts, feedback, queries and score audit

    # Concurrency
    - PairLockRegistry: per-(user, neighborhood) write locks

    # Exceptions
    - PersistenceError: Base exception for all persistence errors
    - DatabaseConnectionError: Database connection/initialization failures
    - RecordNotFoundError: Required record not found
    - DataIntegrityError: Constraint violations

Example usage:
    >>> from neighborfit.persistence import init_database, get_session, MatchRepository
    >>>
    >>> init_database("sqlite:///./data/neighborfit.db")
    >>>
    >>> with get_session() as session:
    ...     matches = MatchRepository(session).top_for_user(1, limit=5)
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .locks import PairLockRegistry
from .repositories import (
    CandidateFilter,
    MatchRepository,
    NeighborhoodRepository,
    RejectedRow,
    UserRepository,
)

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "UserRepository",
    "NeighborhoodRepository",
    "MatchRepository",
    "CandidateFilter",
    "RejectedRow",
    "PairLockRegistry",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
