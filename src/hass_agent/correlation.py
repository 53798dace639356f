"""
Correlation IDs for connector log lines.

The connector opens a scope per connection attempt and a nested one per
inbound message; device tasks started outside those scopes pick up their own
ID with ``ensure_correlation_id``.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

__all__ = [
    "correlation_context",
    "ensure_correlation_id",
    "get_correlation_id",
]

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "hass_agent_correlation_id",
    default=None,
)


def _new_id() -> str:
    return uuid.uuid4().hex


def get_correlation_id() -> str | None:
    return _correlation_id.get()


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    """Scope log lines to one attempt or message; a fresh ID unless one is given."""
    scoped_id = correlation_id or _new_id()
    token = _correlation_id.set(scoped_id)
    try:
        yield scoped_id
    finally:
        _correlation_id.reset(token)


def ensure_correlation_id() -> str:
    """Return the current ID, binding a new one to this task's context if unset."""
    current_id = _correlation_id.get()
    if current_id is None:
        current_id = _new_id()
        _ = _correlation_id.set(current_id)
    return current_id
