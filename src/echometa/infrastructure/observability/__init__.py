"""Observability infrastructure for structured logging."""

from echometa.infrastructure.observability.log_messages import LogMessages, LogTemplate
from echometa.infrastructure.observability.logger_template import (
    log_operation,
    log_slow_operation,
)
from echometa.infrastructure.observability.logging import (
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "LogMessages",
    "LogTemplate",
    "configure_logging",
    "get_correlation_id",
    "log_operation",
    "log_slow_operation",
    "set_correlation_id",
]
