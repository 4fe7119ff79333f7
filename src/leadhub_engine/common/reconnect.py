"""Retry wrapper for operations that may hit a dropped database connection.

Idle connections to a managed Postgres get cut without notice; the first
query after that fails with a socket-level error. ``with_reconnect`` retries
such failures with a linear backoff and lets every other error through
untouched. Only pass operations that are safe to repeat: reads and upserts.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from leadhub_engine.common.exceptions import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONNECTION_ERROR_PATTERNS: tuple[str, ...] = (
    "econnrefused",
    "econnreset",
    "etimedout",
    "enotfound",
    "epipe",
    "ehostunreach",
    "fetch failed",
    "network error",
    "socket hang up",
    "connection terminated",
    "connection refused",
    "connection reset",
    "connection was closed",
    "server closed the connection",
    "client network socket disconnected",
    "getaddrinfo",
    "name or service not known",
    "timed out",
    "timeout",
)


def is_connection_error(error: BaseException) -> bool:
    """True when the error text or type name matches a known connection failure."""
    text = f"{type(error).__name__}: {error}".lower()
    return any(pattern in text for pattern in CONNECTION_ERROR_PATTERNS)


async def with_reconnect(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: Optional[Callable[[int, BaseException], Any]] = None,
) -> T:
    """Run ``operation``, retrying connection-class failures.

    Makes at most ``max_retries + 1`` calls. Attempt ``n`` that fails with a
    connection error sleeps ``base_delay * n`` seconds before the next call.
    Raises ``RetryExhaustedError`` (chained from the last error) when every
    call failed that way.
    """
    for attempt in range(1, max_retries + 2):
        try:
            return await operation()
        except Exception as exc:
            if not is_connection_error(exc):
                raise

            if attempt > max_retries:
                logger.error(
                    "Database operation failed after %d retries: %s",
                    max_retries, exc,
                )
                raise RetryExhaustedError(exc, attempt) from exc

            delay = base_delay * attempt
            logger.warning(
                "Connection error on attempt %d/%d, retrying in %.2fs: %s",
                attempt, max_retries, delay, exc,
            )

            if on_retry is not None:
                try:
                    result = on_retry(attempt, exc)
                    if asyncio.iscoroutine(result):
                        await result
                except Exception:
                    logger.exception("on_retry callback failed")

            await asyncio.sleep(delay)

    raise AssertionError("unreachable")
