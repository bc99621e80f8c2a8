"""Share repository - share links, their allow-lists and access logs.

Shares are looked up only by their random short ID. The view counter is
only ever moved by ``count_view``, which refuses to go past ``max_views``
and commits before the access log row is written.
"""
from datetime import datetime, timezone

from .base import Repository, AsyncRepository

SHARE_COLUMNS = """id, share_type, resource_id, owner_id, access_type, password_hash,
                   requires_auth, expires_at, max_views, view_count, enabled, created_at"""

# Columns update_fields() may touch
UPDATABLE_COLUMNS = frozenset({
    "enabled", "max_views", "password_hash", "requires_auth", "expires_at"
})

_INCREMENT_UNDER_QUOTA = """
    UPDATE shares SET view_count = view_count + 1
    WHERE id = ? AND (max_views IS NULL OR view_count < max_views)
"""

# accessed_by falls back to NULL for IDs missing from users
_INSERT_ACCESS_LOG = """
    INSERT INTO share_access_log (share_id, accessed_by, ip_address, user_agent)
    VALUES (?, (SELECT id FROM users WHERE id = ?), ?, ?)
"""


class ShareRepository(Repository):
    """Repository for share link operations.

    Examples:
        >>> repo = ShareRepository(db)
        >>> repo.create("Xq3k9LpZ2aBc", "file", 7, owner_id=1)
        >>> repo.record_access("Xq3k9LpZ2aBc", None, "10.0.0.5", "curl/8.0")
        True
    """

    def create(
        self,
        share_id: str,
        share_type: str,
        resource_id: int,
        owner_id: int,
        access_type: str = "public",
        password_hash: str | None = None,
        requires_auth: bool = False,
        expires_at: datetime | None = None,
        max_views: int | None = None
    ) -> None:
        """Insert a share.

        A plain INSERT: an ID that already exists raises sqlite3.IntegrityError
        instead of replacing the existing share.
        """
        self._execute(
            f"""INSERT INTO shares ({SHARE_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, 1, ?)""",
            (
                share_id, share_type, resource_id, owner_id, access_type,
                password_hash, requires_auth, expires_at, max_views,
                datetime.now(timezone.utc)
            )
        )
        self._commit()

    def get_by_id(self, share_id: str) -> dict | None:
        return self._fetchone(
            f"SELECT {SHARE_COLUMNS} FROM shares WHERE id = ?",
            (share_id,)
        )

    def list_by_owner(self, owner_id: int) -> list[dict]:
        return self._fetchall(
            f"""SELECT {SHARE_COLUMNS} FROM shares
                WHERE owner_id = ?
                ORDER BY created_at DESC""",
            (owner_id,)
        )

    def update_fields(self, share_id: str, fields: dict) -> bool:
        """Update a subset of share columns.

        Raises:
            ValueError: If a column is not updatable
        """
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update share columns: {sorted(unknown)}")
        if not fields:
            return False

        assignments = ", ".join(f"{column} = ?" for column in fields)
        cursor = self._execute(
            f"UPDATE shares SET {assignments} WHERE id = ?",
            (*fields.values(), share_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def delete(self, share_id: str) -> bool:
        """Delete share. Allow-list and access log rows cascade."""
        cursor = self._execute("DELETE FROM shares WHERE id = ?", (share_id,))
        self._commit()
        return cursor.rowcount > 0

    def delete_expired(self, now: datetime) -> int:
        """Delete every share whose deadline is before ``now``.

        Returns:
            Number of shares deleted
        """
        cursor = self._execute(
            "DELETE FROM shares WHERE expires_at IS NOT NULL AND expires_at < ?",
            (now,)
        )
        self._commit()
        return cursor.rowcount

    def count_view(self, share_id: str) -> bool:
        """Count one view unless the share's quota is used up.

        Committed on its own, so a view that was counted stays counted even
        if writing its log row fails afterwards.

        Returns:
            True if the view was counted, False if the share is missing or
            its view quota is already used up
        """
        with self._transaction():
            cursor = self._execute(_INCREMENT_UNDER_QUOTA, (share_id,))
        return cursor.rowcount > 0

    def append_access_log(
        self,
        share_id: str,
        accessed_by: int | None,
        ip_address: str,
        user_agent: str
    ) -> None:
        """Append an access log row. Unknown user IDs are logged as anonymous."""
        with self._transaction():
            self._execute(
                _INSERT_ACCESS_LOG,
                (share_id, accessed_by, ip_address, user_agent)
            )

    def record_access(
        self,
        share_id: str,
        accessed_by: int | None,
        ip_address: str,
        user_agent: str
    ) -> bool:
        """Count one view, then log it.

        Returns:
            True if the view was counted, False if the share is missing or
            its view quota is already used up (nothing is written then)
        """
        if not self.count_view(share_id):
            return False
        self.append_access_log(share_id, accessed_by, ip_address, user_agent)
        return True

    def get_access_log(self, share_id: str, limit: int) -> list[dict]:
        return self._fetchall(
            """SELECT id, share_id, accessed_by, ip_address, user_agent, accessed_at
               FROM share_access_log
               WHERE share_id = ?
               ORDER BY accessed_at DESC, id DESC
               LIMIT ?""",
            (share_id, limit)
        )

    # === Private share allow-list ===

    def grant_permission(self, share_id: str, user_id: int) -> bool:
        cursor = self._execute(
            "INSERT OR IGNORE INTO share_permissions (share_id, user_id) VALUES (?, ?)",
            (share_id, user_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def revoke_permission(self, share_id: str, user_id: int) -> bool:
        cursor = self._execute(
            "DELETE FROM share_permissions WHERE share_id = ? AND user_id = ?",
            (share_id, user_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def has_permission(self, share_id: str, user_id: int) -> bool:
        cursor = self._execute(
            "SELECT 1 FROM share_permissions WHERE share_id = ? AND user_id = ?",
            (share_id, user_id)
        )
        return cursor.fetchone() is not None

    def list_permissions(self, share_id: str) -> list[dict]:
        return self._fetchall(
            """SELECT id, share_id, user_id, granted_at
               FROM share_permissions
               WHERE share_id = ?
               ORDER BY granted_at DESC, id DESC""",
            (share_id,)
        )


class AsyncShareRepository(AsyncRepository):
    """Async share operations for handlers running on the event loop.

    Mirrors the read path and record_access: the view commits before its log row.
    """

    async def get_by_id(self, share_id: str) -> dict | None:
        return await self._fetchone(
            f"SELECT {SHARE_COLUMNS} FROM shares WHERE id = ?",
            (share_id,)
        )

    async def has_permission(self, share_id: str, user_id: int) -> bool:
        row = await self._fetchone(
            "SELECT 1 AS allowed FROM share_permissions WHERE share_id = ? AND user_id = ?",
            (share_id, user_id)
        )
        return row is not None

    async def record_access(
        self,
        share_id: str,
        accessed_by: int | None,
        ip_address: str,
        user_agent: str
    ) -> bool:
        """See ShareRepository.record_access."""
        try:
            cursor = await self._execute(_INCREMENT_UNDER_QUOTA, (share_id,))
            await self._commit()
        except BaseException:
            await self._rollback()
            raise
        if cursor.rowcount == 0:
            return False

        try:
            await self._execute(
                _INSERT_ACCESS_LOG,
                (share_id, accessed_by, ip_address, user_agent)
            )
            await self._commit()
        except BaseException:
            await self._rollback()
            raise
        return True

    async def count_access_log(self, share_id: str) -> int:
        row = await self._fetchone(
            "SELECT COUNT(*) AS count FROM share_access_log WHERE share_id = ?",
            (share_id,)
        )
        return row["count"] if row else 0
