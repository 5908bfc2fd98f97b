from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Annotated, TypeVar

from fastapi import Depends
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from leave_ledger.config import get_settings
from leave_ledger.exceptions import StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the singleton async engine, creating it on first call."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
            pool_pre_ping=True,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the singleton async session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            expire_on_commit=False,
        )
    return _session_factory


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields an async database session."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome is not None else None
    logger.warning("Transaction attempt %d failed, retrying: %s", retry_state.attempt_number, exc)


async def run_in_transaction(
    session: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int | None = None,
) -> T:
    """Run ``operation`` as one unit of work, retrying it from the top on transient failures.

    ``operation`` is expected to commit on success. Any exception rolls the
    session back so a half-applied transaction is never left behind. Only
    ``OperationalError`` (lock contention, dropped connections) is retried,
    with exponential backoff; the retried call re-reads all state, so it
    never resumes from the middle.
    """
    settings = get_settings()
    max_attempts = max(attempts if attempts is not None else settings.commit_retry_attempts, 1)
    backoff = settings.commit_retry_backoff_seconds

    retrying = AsyncRetrying(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=backoff, min=backoff, max=backoff * 20),
        before_sleep=_log_retry,
        reraise=False,
    )
    try:
        async for attempt in retrying:
            with attempt:
                try:
                    return await operation()
                except Exception:
                    await session.rollback()
                    raise
    except RetryError as exc:
        cause = exc.last_attempt.exception()
        logger.error("Transaction failed after %d attempts", max_attempts, exc_info=cause)
        raise StorageUnavailable("Storage is temporarily unavailable") from cause

    raise StorageUnavailable("Storage is temporarily unavailable")  # pragma: no cover


async def dispose_engine() -> None:
    """Dispose the engine and reset singletons. Call on app shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
