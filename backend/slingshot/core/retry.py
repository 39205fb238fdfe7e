"""
Bounded retries for transient failures.

Usage:
    from slingshot.core.retry import retry_when_not_unique, with_retries

    release = await retry_when_not_unique(lambda: repo.create_release(...))
"""
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from slingshot.core.exceptions import UniquenessConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retries(
    errors: Tuple[Type[BaseException], ...],
    count: int,
    body: Callable[[], Awaitable[T]],
    *,
    predicate: Optional[Callable[[BaseException], bool]] = None,
) -> T:
    """
    Await ``body()``, retrying it on the given errors.

    Args:
        errors: Exception types that may be retried
        count: Number of retries allowed; 0 re-raises on the first failure
        body: Zero-argument coroutine function to run
        predicate: Optional check that must hold for an error to be retried

    Returns:
        The result of the first successful call

    Raises:
        The last error raised by ``body`` once retries are exhausted, or any
        error that is not retryable, unchanged
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")

    while True:
        try:
            return await body()
        except errors as e:
            count -= 1
            if count < 0 or (predicate is not None and not predicate(e)):
                raise
            logger.warning(f"Retrying after {type(e).__name__}: {e} ({count} retries left)")


async def retry_when_not_unique(body: Callable[[], Awaitable[T]]) -> T:
    """Run ``body`` and retry it once if it hits a uniqueness conflict."""
    return await with_retries((UniquenessConflictError,), 1, body)
