"""Base repository protocol and utilities.

This module defines the interface that all repositories must implement.
"""
from contextlib import contextmanager
from typing import Iterator, Protocol
import sqlite3

import aiosqlite


class ConnectionProtocol(Protocol):
    """Protocol for database connection."""

    def execute(self, sql: str, parameters: tuple = ...) -> sqlite3.Cursor: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


class Repository:
    """Base repository class.

    All repositories should inherit from this class.

    Example:
        class ShareRepository(Repository):
            def get_by_id(self, share_id: str) -> dict | None:
                return self._fetchone("SELECT * FROM shares WHERE id = ?", (share_id,))
    """

    def __init__(self, connection: ConnectionProtocol):
        """Initialize repository with database connection.

        Args:
            connection: Database connection (sqlite3.Connection or compatible)
        """
        self._conn = connection

    def _execute(self, sql: str, parameters: tuple = ()) -> sqlite3.Cursor:
        """Execute SQL query with parameters.

        Args:
            sql: SQL query string
            parameters: Query parameters (prevents SQL injection)

        Returns:
            sqlite3.Cursor with results
        """
        return self._conn.execute(sql, parameters)

    def _commit(self) -> None:
        """Commit current transaction."""
        self._conn.commit()

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Run a block of statements as one unit: commit on success, roll back on error."""
        try:
            yield
        except BaseException:
            self._conn.rollback()
            raise
        else:
            self._conn.commit()

    def _row_to_dict(self, row: sqlite3.Row | None) -> dict | None:
        """Convert sqlite3.Row to dictionary."""
        return dict(row) if row else None

    def _fetchone(self, sql: str, parameters: tuple = ()) -> dict | None:
        return self._row_to_dict(self._execute(sql, parameters).fetchone())

    def _fetchall(self, sql: str, parameters: tuple = ()) -> list[dict]:
        return [dict(row) for row in self._execute(sql, parameters).fetchall()]


# =============================================================================
# ASYNC SUPPORT
# =============================================================================

class AsyncConnectionProtocol(Protocol):
    """Protocol for async database connection."""

    async def execute(self, sql: str, parameters: tuple = ...) -> aiosqlite.Cursor: ...
    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...


class AsyncRepository:
    """Async base repository class.

    Provides async database operations using aiosqlite.

    Example:
        class AsyncShareRepository(AsyncRepository):
            async def get_by_id(self, share_id: str) -> dict | None:
                return await self._fetchone("SELECT * FROM shares WHERE id = ?", (share_id,))
    """

    def __init__(self, connection: AsyncConnectionProtocol):
        """Initialize repository with async database connection.

        Args:
            connection: Async database connection (aiosqlite.Connection)
        """
        self._conn = connection

    async def _execute(self, sql: str, parameters: tuple = ()) -> aiosqlite.Cursor:
        """Execute SQL query with parameters asynchronously."""
        return await self._conn.execute(sql, parameters)

    async def _commit(self) -> None:
        """Commit current transaction asynchronously."""
        await self._conn.commit()

    async def _rollback(self) -> None:
        await self._conn.rollback()

    def _row_to_dict(self, row: aiosqlite.Row | None) -> dict | None:
        """Convert aiosqlite.Row to dictionary."""
        return dict(row) if row else None

    async def _fetchone(self, sql: str, parameters: tuple = ()) -> dict | None:
        """Fetch single row and return as dict.

        Args:
            sql: SQL query
            parameters: Query parameters

        Returns:
            Dictionary or None
        """
        cursor = await self._execute(sql, parameters)
        row = await cursor.fetchone()
        return self._row_to_dict(row)

    async def _fetchall(self, sql: str, parameters: tuple = ()) -> list[dict]:
        """Fetch all rows and return as list of dicts."""
        cursor = await self._execute(sql, parameters)
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]
