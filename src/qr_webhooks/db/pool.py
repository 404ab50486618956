"""Asyncpg connection pool creation."""
from __future__ import annotations

import asyncio

import asyncpg  # type: ignore[import-untyped]
import structlog

logger = structlog.get_logger(__name__)


async def create_pool(
    database_url: str,
    pool_size: int,
    *,
    max_retries: int = 5,
    retry_delay: float = 2.0,
) -> asyncpg.Pool:
    """Create a pool, retrying while the database is still starting up."""
    for attempt in range(max_retries):
        try:
            return await asyncpg.create_pool(dsn=database_url, max_size=pool_size)
        except (OSError, asyncpg.exceptions.CannotConnectNowError) as exc:
            if attempt == max_retries - 1:
                raise
            logger.warning(
                "database connection failed, retrying",
                attempt=attempt + 1,
                max_retries=max_retries,
                error=str(exc),
            )
            await asyncio.sleep(retry_delay)
    raise RuntimeError("max_retries must be positive")
