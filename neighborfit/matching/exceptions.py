"""Exceptions raised by the matching engine and orchestrator."""

from typing import Any, Optional


class MatchingError(Exception):
    """Base exception for matching errors."""

    pass


class ValidationError(MatchingError):
    """Raised when caller-supplied input is malformed or out of range."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFoundError(MatchingError):
    """Raised when a referenced user, neighborhood or match does not exist."""

    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")


class ComputationError(MatchingError):
    """Raised when a score cannot be computed for a (user, neighborhood) pair.

    The orchestrator skips the affected candidate and records it in the
    run result; it never aborts the whole run.
    """

    def __init__(
        self,
        message: str,
        user_id: Optional[int] = None,
        neighborhood_id: Optional[int] = None,
        component: Optional[str] = None,
    ):
        self.user_id = user_id
        self.neighborhood_id = neighborhood_id
        self.component = component
        super().__init__(message)
