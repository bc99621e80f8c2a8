"""Async database connection management.

Provides async database connectivity using aiosqlite. Connections are
configured like the sync ones in app.database: Row factory, declared-type
conversion (datetimes, booleans) and foreign keys on.
"""
import asyncio
import sqlite3
from pathlib import Path
from typing import Optional

import aiosqlite

from ... import database

# Global connection pool reference
_pool: Optional['AsyncConnectionPool'] = None


class AsyncConnectionPool:
    """Small async connection pool for aiosqlite.

    Each acquired connection is exclusive to its holder until released, so a
    transaction on one connection never interleaves with another coroutine's
    statements.
    """

    def __init__(self, db_path: Path, max_connections: int = 10):
        self.db_path = db_path
        self.max_connections = max_connections
        self._idle: list[aiosqlite.Connection] = []
        self._semaphore = asyncio.Semaphore(max_connections)
        self._lock = asyncio.Lock()

    async def _connect(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(
            self.db_path,
            detect_types=sqlite3.PARSE_DECLTYPES,
            timeout=10,
        )
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys = ON")
        return conn

    async def acquire(self) -> aiosqlite.Connection:
        """Acquire a connection from the pool, waiting if all are in use."""
        await self._semaphore.acquire()
        try:
            async with self._lock:
                if self._idle:
                    return self._idle.pop()
            return await self._connect()
        except BaseException:
            self._semaphore.release()
            raise

    async def release(self, conn: aiosqlite.Connection) -> None:
        """Release a connection back to the pool."""
        async with self._lock:
            self._idle.append(conn)
        self._semaphore.release()

    async def close_all(self) -> None:
        """Close all idle connections in the pool."""
        async with self._lock:
            for conn in self._idle:
                await conn.close()
            self._idle.clear()


def _get_pool() -> AsyncConnectionPool:
    global _pool
    if _pool is None:
        _pool = AsyncConnectionPool(database.DATABASE_PATH)
    return _pool


async def get_async_db() -> aiosqlite.Connection:
    """Get async database connection. Pair with release_async_db()."""
    return await _get_pool().acquire()


async def release_async_db(conn: aiosqlite.Connection) -> None:
    """Release async database connection back to pool."""
    if _pool:
        await _pool.release(conn)
    else:
        await conn.close()


async def init_async_db() -> None:
    """Initialize database schema using async connection."""
    conn = await get_async_db()
    try:
        await conn.executescript(database.SCHEMA)
        await conn.commit()
    finally:
        await release_async_db(conn)


async def close_async_db() -> None:
    """Close all async database connections."""
    global _pool
    if _pool:
        await _pool.close_all()
        _pool = None
