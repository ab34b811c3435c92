"""Scoped logging context.

Fields pushed here (cycle_id, frequency, alert_id, owner_id, ...) are merged
into every log record emitted inside the scope by ``ContextualFilter``.
Storage is a ContextVar, so scopes are isolated per thread and per task.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

LogContextVar: ContextVar[Dict[str, Any]] = ContextVar("job_alerts_log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the fields active in the current scope."""
    return dict(LogContextVar.get())


def push_log_context(**fields) -> Token:
    """Merge ``fields`` into the current context.

    Returns:
        Token to hand back to pop_log_context() to restore the previous state
    """
    return LogContextVar.set({**LogContextVar.get(), **fields})


def pop_log_context(token: Token) -> None:
    """Restore the context captured by push_log_context()."""
    LogContextVar.reset(token)


def clear_log_context() -> None:
    """Drop every context field. Mostly useful in tests."""
    LogContextVar.set({})


class log_context:
    """Context manager form of push/pop.

    Example:
        >>> with log_context(cycle_id="c1", frequency="daily"):
        ...     logger.info("Processing alerts")
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
        return False
