"""Correlation and submission ids for structured logs.

Two ids can appear on a log entry:

- ``correlation_id``: set by the embedding application (for example from
  an incoming request header) so ledgerlink's entries join the caller's
  trace.
- ``submission_id``: bound by LedgerConnection.submit() for the duration
  of one submission, including entries emitted by the transport adapter.

Both live in context variables and survive ``await`` boundaries.

Usage:
    set_correlation_id(request.headers.get("X-Correlation-ID") or generate_correlation_id())

    # In structlog configuration
    processors = [..., correlation_id_processor, submission_id_processor, ...]
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4

from ledgerlink.application.context import get_submission_id

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """Generate a new correlation ID (UUID4)."""
    return str(uuid4())


def get_correlation_id() -> str:
    """Get the current correlation ID, or "" if none was set."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID in the current context."""
    _correlation_id.set(correlation_id)


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor adding correlation_id when one is set."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def submission_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor adding submission_id inside a submission.

    An explicitly bound value takes precedence over the context value.
    """
    submission_id = get_submission_id()
    if submission_id:
        event_dict.setdefault("submission_id", submission_id)
    return event_dict
