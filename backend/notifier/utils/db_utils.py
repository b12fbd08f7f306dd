"""Database utility functions."""
import asyncio
import logging
from typing import Awaitable, Callable, Iterator, List, Sequence, TypeVar

from sqlalchemy.exc import OperationalError, InterfaceError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Keys per IN (...) clause; SQLite caps bound parameters per statement
IN_CLAUSE_CHUNK = 500

TRANSIENT_MESSAGES = (
    "database is locked",
    "connection refused",
    "connection reset",
    "connection closed",
    "server closed",
    "timeout",
    "too many clients",
)


async def retry_on_lock(
    coro_func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 0.1,
) -> T:
    """Retry a database operation on transient errors with exponential backoff.

    Concurrent push workers deactivating tokens can briefly contend for
    SQLite's write lock or exhaust PostgreSQL connections.

    Args:
        coro_func: Async function to call (should be a callable that returns a coroutine)
        max_retries: Maximum number of retry attempts
        base_delay: Base delay in seconds (doubles with each retry)

    Returns:
        The result of the coroutine function

    Raises:
        OperationalError: If all retries fail or error is not transient
    """
    last_exception = None
    for attempt in range(max_retries):
        try:
            return await coro_func()
        except (OperationalError, InterfaceError) as e:
            error_str = str(e).lower()
            if any(msg in error_str for msg in TRANSIENT_MESSAGES):
                last_exception = e
                delay = base_delay * (2 ** attempt)
                logger.warning(f"Database transient error, retrying in {delay}s (attempt {attempt + 1}/{max_retries})")
                await asyncio.sleep(delay)
            else:
                raise
    raise last_exception


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Split items into lists of at most size elements."""
    items = list(items)
    for start in range(0, len(items), size):
        yield items[start:start + size]
