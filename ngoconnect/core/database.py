"""Database connection and session management."""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from ngoconnect.core.config import get_settings
from ngoconnect.core.exceptions import StorageUnavailable
from ngoconnect.core.structured_logging import log_json

settings = get_settings()
logger = logging.getLogger(__name__)

# Failures that mean "the store could not be reached", as opposed to a rejected write
TRANSIENT_ERRORS = (OperationalError, InterfaceError)

MAX_LOGGED_STATEMENT = 2000


def _shorten(statement: object) -> str:
    text = " ".join(str(statement).split())
    if len(text) > MAX_LOGGED_STATEMENT:
        return text[: MAX_LOGGED_STATEMENT - 3] + "..."
    return text


def async_database_url(url: str) -> str:
    """Map a plain driver URL onto its asyncio driver."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def install_slow_query_logging(target: AsyncEngine, threshold_ms: float) -> None:
    """Log statements slower than ``threshold_ms`` as ``slow_query`` events."""
    if threshold_ms <= 0:
        return

    @event.listens_for(target.sync_engine, "before_cursor_execute")
    def _before_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ) -> None:
        context._query_start_time = time.perf_counter()

    @event.listens_for(target.sync_engine, "after_cursor_execute")
    def _after_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ) -> None:
        start = getattr(context, "_query_start_time", None)
        if start is None:
            return

        duration_ms = (time.perf_counter() - start) * 1000
        if duration_ms < threshold_ms:
            return

        log_json(
            logger,
            logging.WARNING,
            "slow_query",
            duration_ms=round(duration_ms, 2),
            statement=_shorten(statement),
            executemany=executemany or None,
        )


engine = create_async_engine(
    async_database_url(settings.database_url),
    echo=False,
    poolclass=NullPool if "test" in settings.database_url else None,
)
install_slow_query_logging(engine, settings.slow_query_ms)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session per request, committed when the handler succeeds.

    Connectivity failures surface as ``StorageUnavailable`` so callers can
    retry; nothing is retried here.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except TRANSIENT_ERRORS as exc:
            await session.rollback()
            log_json(logger, logging.ERROR, "storage_unavailable", error=str(exc.orig or exc))
            raise StorageUnavailable() from exc
        except Exception:
            await session.rollback()
            raise
