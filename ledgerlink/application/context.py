"""Per-submission context tracking.

Every call to LedgerConnection.submit() runs inside a submission scope
that holds a fresh submission id in a context variable. The id survives
``await`` boundaries, so log entries emitted by the transport adapter
during the exchange carry the same id as the connection's own entries.

Usage:
    with submission_scope() as submission_id:
        ...

    # In structlog configuration
    processors = [..., submission_id_processor, ...]
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4

# Empty string means "not inside a submission"
_submission_id: ContextVar[str] = ContextVar("submission_id", default="")


def new_submission_id() -> str:
    """Generate a new submission id (UUID4)."""
    return str(uuid4())


def get_submission_id() -> str:
    """Return the current submission id, or "" outside a submission."""
    return _submission_id.get()


@contextmanager
def submission_scope(submission_id: str | None = None) -> Iterator[str]:
    """Bind a submission id for the duration of the block.

    Args:
        submission_id: Id to bind. A new one is generated if omitted.

    Yields:
        The bound submission id.
    """
    value = submission_id or new_submission_id()
    token = _submission_id.set(value)
    try:
        yield value
    finally:
        _submission_id.reset(token)
