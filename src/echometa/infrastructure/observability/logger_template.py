"""Shared logger utilities.

USAGE:
    from echometa.infrastructure.observability.logger_template import log_operation

    async with log_operation(logger, "conflict.accept", conflict_id="abc"):
        await service.accept(...)
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any


# Yo, this context manager is GOLD for operation timing! It logs start/end with automatic
# duration tracking. The **context args become extra fields in both logs. On exception it
# logs the failure with exc_info=True and re-raises so the caller still handles it.
# Catches BaseException so a cancelled run shows up as "<op>.failed" too.
@asynccontextmanager
async def log_operation(
    logger: logging.Logger,
    operation: str,
    log_level: int = logging.INFO,
    **context: Any,
) -> AsyncIterator[None]:
    """Context manager for logging operation start/end with automatic timing.

    Logs:
    - {operation}.started with context fields
    - {operation}.completed with context + duration_ms
    - {operation}.failed with context + duration_ms + error details

    Example:
        >>> async with log_operation(logger, "enrichment.run", entity_id="abc123"):
        ...     await run()
    """
    start = time.monotonic()
    logger.log(log_level, f"{operation}.started", extra=context)

    try:
        yield
    except BaseException as e:
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.error(
            f"{operation}.failed",
            extra={
                **context,
                "duration_ms": duration_ms,
                "error": str(e) or type(e).__name__,
                "error_type": type(e).__name__,
            },
            exc_info=isinstance(e, Exception),
        )
        raise

    duration_ms = int((time.monotonic() - start) * 1000)
    logger.log(
        log_level,
        f"{operation}.completed",
        extra={**context, "duration_ms": duration_ms},
    )


def log_slow_operation(
    logger: logging.Logger,
    operation: str,
    duration_ms: int,
    threshold_ms: int = 100,
    **context: Any,
) -> None:
    """Log warning if operation exceeded threshold.

    Example:
        >>> log_slow_operation(logger, "provider.fetch", 6200, threshold_ms=5000,
        ...                    provider="lastfm")
    """
    if duration_ms > threshold_ms:
        logger.warning(
            "operation.slow",
            extra={
                **context,
                "operation": operation,
                "duration_ms": duration_ms,
                "threshold_ms": threshold_ms,
            },
        )
