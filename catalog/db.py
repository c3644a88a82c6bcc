"""
Database connection pool and role-scoped connection managers.

All database access goes through admin_conn() or system_conn().
Never use pool.acquire() directly outside this module.

Each `async with` block is one transaction. The relation replacer relies on
that: its delete and its insert are two separate blocks, so they commit
independently.
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from uuid import UUID

import asyncpg

from catalog.config import settings

pool: asyncpg.Pool | None = None


async def init_pool() -> None:
    """
    Initialize the connection pool.
    Called once at application startup.
    """
    global pool
    if not settings.DATABASE_URL:
        raise RuntimeError("DATABASE_URL environment variable is required")
    pool = await asyncpg.create_pool(
        dsn=settings.DATABASE_URL,
        min_size=settings.DB_POOL_MIN_SIZE,
        max_size=settings.DB_POOL_MAX_SIZE,
        command_timeout=settings.DB_COMMAND_TIMEOUT,
        init=init_connection,
    )


async def close_pool() -> None:
    """
    Close the connection pool.
    Called at application shutdown.
    """
    global pool
    if pool is not None:
        await pool.close()
        pool = None


async def init_connection(conn: asyncpg.Connection) -> None:
    """
    Initialize each new connection.
    Sets up type codecs for UUID and JSON handling.
    """
    await conn.set_type_codec(
        "uuid",
        encoder=str,
        decoder=lambda x: UUID(x),
        schema="pg_catalog",
    )
    # JSONB codec - citation_details round-trips as a dict
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )
    await conn.set_type_codec(
        "json",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


@asynccontextmanager
async def admin_conn():
    """
    Acquire a database connection acting as a catalog administrator.

    Write policies on every catalog table check
    current_setting('app.role') = 'admin'. The caller must already have
    verified the admin claim; this only carries it into the session.

    Usage:
        async with admin_conn() as conn:
            await conn.execute("DELETE FROM games_creators WHERE game_id = $1", game_id)

    Yields:
        asyncpg.Connection inside a transaction with the admin role set
    """
    if pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")

    async with pool.acquire() as conn:
        async with conn.transaction():
            await conn.execute("SELECT set_config('app.role', 'admin', true)")
            yield conn


@asynccontextmanager
async def system_conn():
    """
    Acquire a database connection without a role.

    Reads are public, so this is enough for lookups. Writes through this
    connection are rejected by RLS unless the connecting user bypasses it
    (migrations, test fixtures).

    Yields:
        asyncpg.Connection without role scoping
    """
    if pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")

    async with pool.acquire() as conn:
        async with conn.transaction():
            await conn.execute("SELECT set_config('app.role', '', true)")
            yield conn
