# src/utils/retry.py

"""Async retry with exponential backoff."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from src.services.errors import CircuitOpenError

logger = logging.getLogger("retail_radar.retry")

T = TypeVar("T")


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 2.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await *operation* up to *max_retries* times.

    After failed attempt ``n`` the helper sleeps
    ``base_delay * 2 ** (n - 1)`` seconds. The final attempt's error
    propagates unchanged, as does a :class:`CircuitOpenError` at any
    attempt since the breaker has already refused the call.
    """
    if max_retries < 1:
        msg = "max_retries must be >= 1"
        raise ValueError(msg)

    for attempt in range(1, max_retries + 1):
        try:
            return await operation()
        except CircuitOpenError:
            raise
        except Exception as exc:
            if attempt == max_retries:
                raise
            delay = base_delay * 2 ** (attempt - 1)
            logger.warning(
                "Attempt %d/%d failed, retrying in %.1fs: %s",
                attempt,
                max_retries,
                delay,
                exc,
            )
            await sleep(delay)

    msg = "Max retries exceeded"
    raise RuntimeError(msg)
