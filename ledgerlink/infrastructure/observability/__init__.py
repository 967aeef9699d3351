"""Observability infrastructure: structured logging and correlation.

Usage:
    from ledgerlink.infrastructure.observability import (
        configure_structlog,
        set_correlation_id,
    )

    configure_structlog(environment="production")
    set_correlation_id(request_correlation_id)
"""

from ledgerlink.infrastructure.observability.correlation import (
    correlation_id_processor,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
    submission_id_processor,
)
from ledgerlink.infrastructure.observability.logging import (
    configure_structlog,
    redact_sensitive_processor,
)

__all__: list[str] = [
    "configure_structlog",
    "correlation_id_processor",
    "generate_correlation_id",
    "get_correlation_id",
    "redact_sensitive_processor",
    "set_correlation_id",
    "submission_id_processor",
]
