"""
Async database access helpers (raw SQL) using asyncpg.

`Database` owns the connection pool. It is created once at startup by
`connect()` and handed to whoever needs it (see `recordserve/main.py`);
there is no module-level pool.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

import asyncpg
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)

from .config import DatabaseConfig, RetryPolicy
from .errors import StartupError

logger = logging.getLogger(__name__)

# Errors worth another connect attempt: server not up yet, network blips,
# server-side refusals while the database is starting.
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS records (
    id SERIAL PRIMARY KEY,
    cid TEXT UNIQUE,
    name TEXT NOT NULL,
    image TEXT
)
"""


class Database:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool: asyncpg.Pool | None = pool

    @property
    def closed(self) -> bool:
        return self._pool is None

    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is closed.")
        return self._pool

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        row = await self.pool().fetchrow(sql, *args)
        return dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        rows = await self.pool().fetch(sql, *args)
        return [dict(r) for r in rows]

    async def fetchval(self, sql: str, *args: Any) -> Any:
        return await self.pool().fetchval(sql, *args)

    async def execute(self, sql: str, *args: Any) -> None:
        """
        Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
        """
        await self.pool().execute(sql, *args)

    async def close(self) -> None:
        if self._pool is None:
            return None
        pool, self._pool = self._pool, None
        await pool.close()


def _wait_strategy(policy: RetryPolicy):
    if policy.backoff == "exponential":
        return wait_exponential(multiplier=policy.interval_s, max=policy.max_interval_s)
    return wait_fixed(policy.interval_s)


def _log_retry(policy: RetryPolicy):
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "db_connect_failed attempt=%s/%s retry_in=%.1fs error=%s",
            retry_state.attempt_number,
            policy.attempts,
            delay,
            exc,
        )

    return before_sleep


async def _open(config: DatabaseConfig) -> Database:
    pool = await asyncpg.create_pool(
        dsn=config.dsn(),
        min_size=config.pool_min_size,
        max_size=max(config.pool_min_size, config.pool_max_size),
        command_timeout=config.command_timeout_s,
    )
    database = Database(pool)
    # Liveness check; a pool that cannot answer is discarded.
    try:
        await database.fetchval("SELECT 1")
    except Exception:
        await database.close()
        raise
    return database


async def connect(
    config: DatabaseConfig,
    policy: RetryPolicy | None = None,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Database:
    """
    Open and verify a pooled connection, retrying transient failures.

    `sleep` is awaited with each computed delay between attempts.

    Raises StartupError once the retry budget is spent (or on a non-transient
    error such as a malformed DSN).
    """
    policy = policy or RetryPolicy()
    database: Database | None = None
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(policy.attempts),
            wait=_wait_strategy(policy),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=_log_retry(policy),
            sleep=sleep,
            reraise=True,
        ):
            with attempt:
                database = await _open(config)
    except Exception as exc:
        raise StartupError(
            f"Unable to connect to the database {config.describe()} "
            f"after {policy.attempts} attempt(s): {exc}"
        ) from exc

    if database is None:
        raise StartupError(f"Unable to connect to the database {config.describe()}.")
    logger.info("db_connected target=%s", config.describe())
    return database


async def ensure_schema(database: Database) -> None:
    """
    Create the `records` table if it does not exist yet.
    """
    try:
        await database.execute(SCHEMA_SQL)
    except Exception as exc:
        raise StartupError(f"Error creating table: {exc}") from exc
    logger.info("db_schema_ready table=records")
