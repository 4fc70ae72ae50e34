"""Carry the authenticated user's ID through a request using contextvars.

The auth middleware sets it after validating the bearer token. PostgresClient
reads it on every connection checkout to scope row-level-security tables
(activity_logs) to that user.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from uuid import UUID

_current_user_id: ContextVar[UUID | None] = ContextVar("current_user_id", default=None)


def get_current_user_id() -> UUID:
    """
    Get current user ID from context.

    Raises RuntimeError if no user context is set: user-scoped code was
    called outside of an authenticated request.
    """
    user_id = _current_user_id.get()
    if user_id is None:
        raise RuntimeError(
            "No user context set. This usually means you're calling "
            "user-scoped code outside of an authenticated request."
        )
    return user_id


def set_current_user_id(user_id: UUID) -> None:
    """Set current user ID. Called by AuthMiddleware."""
    _current_user_id.set(user_id)


def clear_current_user_id() -> None:
    """Clear user context. Must run in a finally block."""
    _current_user_id.set(None)


@contextmanager
def user_context(user_id: UUID):
    """
    Temporarily act as user_id (tests, maintenance scripts).

    Example:
        with user_context(user.id):
            entries = activity_logger.list_for_user()
    """
    previous = _current_user_id.get()
    set_current_user_id(user_id)
    try:
        yield
    finally:
        if previous is None:
            clear_current_user_id()
        else:
            set_current_user_id(previous)
