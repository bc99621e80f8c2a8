"""Permission group repository - folder-based access control lists.

A permission group links a set of folders to a set of users, each user
holding one level on the whole group:
- read: can view every file in the group's folders
- write: read, plus can manage the group
"""
from typing import Iterable

from .base import Repository


class PermissionGroupRepository(Repository):
    """Repository for permission groups, their folders and their users.

    Examples:
        >>> repo = PermissionGroupRepository(db)
        >>> group_id = repo.create("Family", "", created_by=1, creator_permission="write")
        >>> repo.add_folder(group_id, folder_id)
        >>> repo.grant(group_id, user_id, "read")
        >>> repo.has_folder_access(user_id, [folder_id], ("read", "write"))
        True
    """

    # === Groups ===

    def create(
        self,
        name: str,
        description: str,
        created_by: int,
        creator_permission: str
    ) -> int:
        """Create a group and grant its creator in the same transaction.

        Returns:
            New group ID
        """
        with self._transaction():
            cursor = self._execute(
                """INSERT INTO permission_groups (name, description, created_by)
                   VALUES (?, ?, ?)""",
                (name, description, created_by)
            )
            group_id = cursor.lastrowid
            self._execute(
                """INSERT INTO permission_group_permissions
                   (permission_group_id, user_id, permission)
                   VALUES (?, ?, ?)""",
                (group_id, created_by, creator_permission)
            )
        return group_id

    def get_by_id(self, group_id: int) -> dict | None:
        return self._fetchone(
            """SELECT id, name, description, created_by, created_at, updated_at
               FROM permission_groups WHERE id = ?""",
            (group_id,)
        )

    def list_all(self) -> list[dict]:
        return self._fetchall(
            """SELECT id, name, description, created_by, created_at, updated_at
               FROM permission_groups
               ORDER BY created_at DESC, id DESC"""
        )

    def list_for_user(self, user_id: int) -> list[dict]:
        """Groups the user holds any permission on, with that permission."""
        return self._fetchall(
            """SELECT pg.id, pg.name, pg.description, pg.created_by,
                      pg.created_at, pg.updated_at, pgp.permission
               FROM permission_groups pg
               JOIN permission_group_permissions pgp ON pg.id = pgp.permission_group_id
               WHERE pgp.user_id = ?
               ORDER BY pg.created_at DESC, pg.id DESC""",
            (user_id,)
        )

    def update(self, group_id: int, name: str, description: str) -> bool:
        cursor = self._execute(
            """UPDATE permission_groups
               SET name = ?, description = ?, updated_at = CURRENT_TIMESTAMP
               WHERE id = ?""",
            (name, description, group_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def delete(self, group_id: int) -> bool:
        """Delete group. Folder links and user permissions cascade."""
        cursor = self._execute(
            "DELETE FROM permission_groups WHERE id = ?",
            (group_id,)
        )
        self._commit()
        return cursor.rowcount > 0

    # === Folders ===

    def add_folder(self, group_id: int, folder_id: int) -> bool:
        """Link folder to group.

        Returns:
            True if a new link was created, False if it already existed
        """
        cursor = self._execute(
            """INSERT OR IGNORE INTO permission_group_folders
               (permission_group_id, folder_id)
               VALUES (?, ?)""",
            (group_id, folder_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def remove_folder(self, group_id: int, folder_id: int) -> bool:
        cursor = self._execute(
            """DELETE FROM permission_group_folders
               WHERE permission_group_id = ? AND folder_id = ?""",
            (group_id, folder_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def list_folders(self, group_id: int) -> list[dict]:
        return self._fetchall(
            """SELECT f.id, f.name, f.absolute_path, f.enabled, f.created_by,
                      f.created_at, pgf.added_at
               FROM folders f
               JOIN permission_group_folders pgf ON f.id = pgf.folder_id
               WHERE pgf.permission_group_id = ?
               ORDER BY f.name""",
            (group_id,)
        )

    def list_for_folder(self, folder_id: int) -> list[dict]:
        """Groups that contain the folder."""
        return self._fetchall(
            """SELECT pg.id, pg.name, pg.description, pg.created_by,
                      pg.created_at, pg.updated_at
               FROM permission_groups pg
               JOIN permission_group_folders pgf ON pg.id = pgf.permission_group_id
               WHERE pgf.folder_id = ?
               ORDER BY pg.created_at DESC, pg.id DESC""",
            (folder_id,)
        )

    # === User permissions ===

    def grant(self, group_id: int, user_id: int, permission: str) -> None:
        """Grant or overwrite a user's level on the group."""
        self._execute(
            """INSERT INTO permission_group_permissions
               (permission_group_id, user_id, permission)
               VALUES (?, ?, ?)
               ON CONFLICT(permission_group_id, user_id)
               DO UPDATE SET
                   permission = excluded.permission,
                   granted_at = CURRENT_TIMESTAMP""",
            (group_id, user_id, permission)
        )
        self._commit()

    def revoke(self, group_id: int, user_id: int) -> bool:
        cursor = self._execute(
            """DELETE FROM permission_group_permissions
               WHERE permission_group_id = ? AND user_id = ?""",
            (group_id, user_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def get_permission(self, group_id: int, user_id: int) -> str | None:
        row = self._fetchone(
            """SELECT permission FROM permission_group_permissions
               WHERE permission_group_id = ? AND user_id = ?""",
            (group_id, user_id)
        )
        return row["permission"] if row else None

    def list_permissions(self, group_id: int) -> list[dict]:
        """Users with access to the group, newest grant first."""
        return self._fetchall(
            """SELECT pgp.user_id, u.username, u.role, pgp.permission, pgp.granted_at
               FROM permission_group_permissions pgp
               JOIN users u ON u.id = pgp.user_id
               WHERE pgp.permission_group_id = ?
               ORDER BY pgp.granted_at DESC, pgp.id DESC""",
            (group_id,)
        )

    # === Access ===

    def has_folder_access(
        self,
        user_id: int,
        folder_ids: Iterable[int],
        levels: Iterable[str]
    ) -> bool:
        """Check whether any group links the user (at one of ``levels``) to any of the folders.

        One indexed join: user -> permission -> group -> folder.
        """
        folder_ids = list(folder_ids)
        levels = list(levels)
        if not folder_ids or not levels:
            return False

        folder_marks = ", ".join("?" for _ in folder_ids)
        level_marks = ", ".join("?" for _ in levels)
        cursor = self._execute(
            f"""SELECT 1
                FROM permission_group_permissions pgp
                JOIN permission_group_folders pgf
                  ON pgf.permission_group_id = pgp.permission_group_id
                WHERE pgp.user_id = ?
                  AND pgf.folder_id IN ({folder_marks})
                  AND pgp.permission IN ({level_marks})
                LIMIT 1""",
            (user_id, *folder_ids, *levels)
        )
        return cursor.fetchone() is not None
