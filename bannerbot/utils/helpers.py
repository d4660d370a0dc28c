"""Helper utility functions for the banner bot."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from ..core.logger import log

T = TypeVar('T')


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: tuple = (Exception,),
    *args: Any,
    **kwargs: Any
) -> T:
    """Retry a coroutine function with exponential backoff.

    Args:
        func: Coroutine function to retry.
        max_retries: Maximum number of retry attempts.
        base_delay: Base delay between retries in seconds.
        max_delay: Maximum delay between retries in seconds.
        exponential_base: Base for exponential backoff calculation.
        exceptions: Tuple of exceptions to catch and retry.
        *args: Arguments to pass to the function.
        **kwargs: Keyword arguments to pass to the function.

    Returns:
        Result of the function call.

    Raises:
        Exception: Last exception if all retries fail.
    """
    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)

        except exceptions as e:
            if attempt == max_retries:
                log.error(f"{getattr(func, '__name__', 'call')} failed after {max_retries} retries: {e}")
                raise

            delay = min(base_delay * (exponential_base ** attempt), max_delay)

            log.warning(f"{getattr(func, '__name__', 'call')} failed (attempt {attempt + 1}/{max_retries + 1}): {e}")
            log.info(f"Retrying in {delay:.2f} seconds...")

            await asyncio.sleep(delay)

    raise RuntimeError("unreachable")


async def sleep_ms(milliseconds: float) -> None:
    """Suspend for *milliseconds* without blocking the event loop."""
    await asyncio.sleep(max(0.0, milliseconds) / 1000.0)


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"


def truncate_message(text: str, limit: int = 1900) -> str:
    """Clip a chat reply to *limit* characters."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."
