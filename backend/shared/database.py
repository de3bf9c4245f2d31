"""asyncpg pool lifecycle for the collection API.

The database is Supabase Postgres reached through its pooler. Port 6543
is the transaction pooler (PgBouncer, no prepared statements); anything
else is treated as a session connection.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import asyncpg

logger = logging.getLogger(__name__)

TRANSACTION_POOLER_PORT = ":6543"


@dataclass
class PoolConfig:
    """Pool sizing, timeouts and connect retry policy."""

    min_size: int = 1
    max_size: int = 10
    timeout: float = 5.0
    command_timeout: float = 15.0
    idle_lifetime: float = 30.0
    max_retries: int = 3
    retry_delay: float = 3.0
    ssl: str = "prefer"


class DatabaseManager:
    """Owns the single asyncpg pool shared by repositories and migrations."""

    def __init__(self, database_url: str, config: PoolConfig | None = None):
        self.database_url = database_url
        self.config = config or PoolConfig()
        self._pool: asyncpg.Pool | None = None
        self.transaction_pooler = TRANSACTION_POOLER_PORT in database_url

    def pool_kwargs(self) -> dict[str, Any]:
        """Arguments for asyncpg.create_pool matching the pooler in front of Postgres."""
        cfg = self.config
        kwargs: dict[str, Any] = {
            "dsn": self.database_url,
            "min_size": cfg.min_size,
            "max_size": cfg.max_size,
            "timeout": cfg.timeout,
            "command_timeout": cfg.command_timeout,
            "ssl": cfg.ssl,
            "statement_cache_size": 100,
            "max_inactive_connection_lifetime": cfg.idle_lifetime,
        }
        if self.transaction_pooler:
            # PgBouncer drops prepared statements and idle server connections
            kwargs.update(min_size=0, statement_cache_size=0, max_inactive_connection_lifetime=0)
        return kwargs

    # ==================== Lifecycle ====================

    async def _open_verified_pool(self, kwargs: dict[str, Any]) -> asyncpg.Pool:
        pool = await asyncpg.create_pool(**kwargs)
        try:
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        except BaseException:
            await pool.close()
            raise
        return pool

    async def connect(self) -> None:
        """Create the pool, retrying with exponential backoff."""
        if self._pool is not None:
            logger.warning("Database pool already initialized")
            return

        kwargs = self.pool_kwargs()
        mode = "transaction" if self.transaction_pooler else "session"
        retries = self.config.max_retries

        for attempt in range(1, retries + 1):
            try:
                self._pool = await self._open_verified_pool(kwargs)
            except Exception as e:
                if attempt == retries:
                    logger.error(f"Database connection failed after {retries} attempts: {type(e).__name__}: {e!r}")
                    raise
                delay = self.config.retry_delay * 2 ** (attempt - 1)
                logger.warning(
                    f"Database connection attempt {attempt}/{retries} failed "
                    f"({type(e).__name__}), retrying in {delay}s"
                )
                await asyncio.sleep(delay)
            else:
                logger.info(f"Database pool ready (mode={mode}, max_size={kwargs['max_size']})")
                return

    async def disconnect(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        logger.info("Database pool closed")

    async def check_health(self) -> bool:
        """True when a pooled connection answers ``SELECT 1``."""
        if self._pool is None:
            return False
        try:
            async with self._pool.acquire(timeout=2.0) as conn:
                await conn.fetchval("SELECT 1")
        except Exception as e:
            logger.warning(f"Database health check failed: {type(e).__name__}: {e}")
            return False
        return True

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database pool not initialized. Call connect() first.")
        return self._pool
