"""Per-request correlation ids carried through the asyncio context.

RequestTracker opens a scope around every request, so the send path, the
datagram callback and the awaiting caller all log the same id. Tasks created
inside a scope inherit it.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from uuid_extensions import uuid7

__all__ = ["correlation_context", "get_correlation_id", "new_correlation_id"]

_current_id: ContextVar[str | None] = ContextVar("sinclair_correlation_id", default=None)


def new_correlation_id() -> str:
    """UUIDv7 string; ids sort in the order requests were sent."""
    return str(uuid7())


def get_correlation_id() -> str | None:
    return _current_id.get()


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    """Bind correlation_id (a fresh one when omitted) until the block exits."""
    scoped_id = correlation_id or new_correlation_id()
    token = _current_id.set(scoped_id)
    try:
        yield scoped_id
    finally:
        _current_id.reset(token)
