"""Scoped logging context for matching runs.

Fields pushed here (run_id, user_id, neighborhood_id, ...) are attached to every
log record emitted inside the scope by ``ContextualFilter``. The context lives in
a ContextVar, so each worker thread of a batch run sees only its own fields.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

_log_context: ContextVar[Dict[str, Any]] = ContextVar("neighborfit_log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the fields active in the current scope."""
    return dict(_log_context.get())


def push_log_context(**fields) -> Token:
    """Merge fields into the active context.

    Returns:
        Token to hand back to pop_log_context() to restore the previous fields
    """
    merged = {**_log_context.get(), **fields}
    return _log_context.set(merged)


def pop_log_context(token: Token) -> None:
    """Restore the context that was active before push_log_context()."""
    _log_context.reset(token)


def clear_log_context() -> None:
    """Drop every context field (used by tests)."""
    _log_context.set({})


class log_context:
    """Context manager that scopes logging fields to a block.

    Example:
        >>> with log_context(run_id="c0ffee", user_id=42):
        ...     logger.info("Scoring candidates")
    """

    def __init__(self, **fields):
        self.fields = fields
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
            self.token = None
        return False
