"""All-or-nothing execution of a financial operation against the store.

Each attempt gets a fresh AsyncSession: work(db) runs, then commit. Any
exception rolls the attempt back in full, so a failed attempt leaves nothing
behind and re-running from scratch is always safe.

Only transient store failures are retried (bounded). Domain errors such as
InvalidStateError / InvalidMatchStateError surface on first occurrence: a lost
compare-and-set race is reported to the caller, never retried.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.ws_common.errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected, lock_not_available, query_canceled (statement_timeout)
TRANSIENT_SQLSTATES = frozenset({"40001", "40P01", "55P03", "57014"})


def classify_store_error(exc: BaseException) -> TransientStoreError | None:
    """Map a driver/pool error to TransientStoreError, or None if it is not retryable."""
    if isinstance(exc, TransientStoreError):
        return exc
    if isinstance(exc, PoolTimeoutError):
        return TransientStoreError("Connection pool exhausted")
    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated:
            return TransientStoreError("Store connection lost")
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate in TRANSIENT_SQLSTATES:
            return TransientStoreError(f"Store conflict or timeout (SQLSTATE {sqlstate})")
    return None


async def run_atomic(
    work: Callable[[AsyncSession], Awaitable[T]],
    session_factory: async_sessionmaker[AsyncSession],
    attempts: int | None = None,
    label: str = "operation",
) -> T:
    """Run work(db) as one committed transaction, retrying transient failures only."""
    max_attempts = attempts or settings.TRANSIENT_RETRY_ATTEMPTS
    last_error: TransientStoreError | None = None
    for attempt in range(1, max_attempts + 1):
        async with session_factory() as db:
            try:
                result = await work(db)
                await db.commit()
                return result
            except Exception as exc:
                await db.rollback()
                transient = classify_store_error(exc)
                if transient is None:
                    raise
                last_error = transient
                logger.warning(
                    "%s: transient store failure (attempt %d/%d): %s",
                    label,
                    attempt,
                    max_attempts,
                    transient.message,
                )
        if attempt < max_attempts:
            await asyncio.sleep(settings.TRANSIENT_RETRY_BACKOFF_MS * attempt / 1000)
    assert last_error is not None
    raise last_error
