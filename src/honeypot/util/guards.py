"""Outer guard for gateway event handlers."""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Awaitable, Callable, TypeVar

from honeypot.util.logger import get_logger

logger = get_logger("guards")

Handler = TypeVar("Handler", bound=Callable[..., Awaitable[Any]])


def isolated(tag: str) -> Callable[[Handler], Handler]:
    """Log and swallow any exception escaping an event handler.

    One bad event must never affect the handling of others. Cancellation is
    still propagated.
    """

    def decorator(func: Handler) -> Handler:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("[%s] Unhandled error in %s", tag, func.__name__)
                return None

        return wrapper  # type: ignore[return-value]

    return decorator
