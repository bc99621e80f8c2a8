"""Permission group service - folder-based access control.

Folders are collected into permission groups and users are granted
``read`` or ``write`` on a group. A user may see a file if any folder the
file is mapped into belongs to a group the user holds a permission on.
Admins and the server owner bypass groups entirely.
"""
import logging
import sqlite3

from ...config import PERMISSION_LEVELS
from ...domain.errors import NotFoundError, ValidationError
from ...domain.interfaces import FolderCatalog
from ...infrastructure.repositories import PermissionGroupRepository

logger = logging.getLogger(__name__)


class PermissionGroupService:
    """Service for permission groups and group-based access checks.

    Responsibilities:
    - Group CRUD (creator always keeps ``write``)
    - Idempotent folder links and user grants
    - Folder and file access decisions for non-privileged users
    """

    # Stored levels that satisfy a required level ('write' implies 'read')
    SATISFIED_BY = {
        "read": ("read", "write"),
        "write": ("write",),
    }

    def __init__(
        self,
        permission_group_repository: PermissionGroupRepository,
        folder_catalog: FolderCatalog
    ):
        self.group_repo = permission_group_repository
        self.folder_catalog = folder_catalog

    def _validate_level(self, level: str) -> str:
        if level not in PERMISSION_LEVELS:
            raise ValidationError("Permission must be 'read' or 'write'")
        return level

    # =========================================================================
    # Groups
    # =========================================================================

    def create_group(self, name: str, description: str, creator_id: int) -> dict:
        """Create a group; the creator is granted ``write`` on it.

        Raises:
            ValidationError: If name is empty
            NotFoundError: If the creator does not exist
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required")

        try:
            group_id = self.group_repo.create(
                name, description or "", creator_id, creator_permission="write"
            )
        except sqlite3.IntegrityError:
            raise NotFoundError("User not found") from None

        logger.info("Permission group %s created by user %s", group_id, creator_id)
        return self.get_group(group_id)

    def get_group(self, group_id: int) -> dict:
        group = self.group_repo.get_by_id(group_id)
        if not group:
            raise NotFoundError("Permission group not found")
        return group

    def list_groups(self, user_id: int, is_admin: bool) -> list[dict]:
        """All groups for admins, otherwise the groups the user holds a permission on."""
        if is_admin:
            return self.group_repo.list_all()
        return self.group_repo.list_for_user(user_id)

    def update_group(self, group_id: int, name: str, description: str) -> dict:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required")
        if not self.group_repo.update(group_id, name, description or ""):
            raise NotFoundError("Permission group not found")
        return self.get_group(group_id)

    def delete_group(self, group_id: int) -> None:
        if not self.group_repo.delete(group_id):
            raise NotFoundError("Permission group not found")
        logger.info("Permission group %s deleted", group_id)

    def can_manage_group(self, group_id: int, user_id: int, is_admin: bool) -> bool:
        """Admins manage every group; other users need ``write`` on it."""
        if is_admin:
            return True
        return self.check_group_permission(group_id, user_id, "write")

    # =========================================================================
    # Folders
    # =========================================================================

    def add_folder(self, group_id: int, folder_id: int) -> None:
        """Link folder to group. Adding an existing link is a no-op."""
        try:
            created = self.group_repo.add_folder(group_id, folder_id)
        except sqlite3.IntegrityError:
            raise NotFoundError("Permission group or folder not found") from None
        if created:
            logger.debug("Folder %s added to permission group %s", folder_id, group_id)

    def remove_folder(self, group_id: int, folder_id: int) -> None:
        """Unlink folder from group. Removing a missing link is a no-op."""
        self.group_repo.remove_folder(group_id, folder_id)

    def list_folders(self, group_id: int) -> list[dict]:
        self.get_group(group_id)
        return self.group_repo.list_folders(group_id)

    def groups_for_folder(self, folder_id: int) -> list[dict]:
        return self.group_repo.list_for_folder(folder_id)

    # =========================================================================
    # User permissions
    # =========================================================================

    def grant_permission(self, group_id: int, user_id: int, level: str) -> None:
        """Grant ``level`` to user on group, replacing any previous level."""
        self._validate_level(level)
        try:
            self.group_repo.grant(group_id, user_id, level)
        except sqlite3.IntegrityError:
            raise NotFoundError("Permission group or user not found") from None
        logger.info("Granted %s on permission group %s to user %s", level, group_id, user_id)

    def revoke_permission(self, group_id: int, user_id: int) -> None:
        """Remove user's permission on group. Revoking nothing is a no-op."""
        if self.group_repo.revoke(group_id, user_id):
            logger.info("Revoked permission group %s from user %s", group_id, user_id)

    def list_users_with_access(self, group_id: int) -> list[dict]:
        self.get_group(group_id)
        return self.group_repo.list_permissions(group_id)

    def check_group_permission(self, group_id: int, user_id: int, level: str = "read") -> bool:
        """Check whether user holds at least ``level`` on the group itself."""
        self._validate_level(level)
        current = self.group_repo.get_permission(group_id, user_id)
        return current in self.SATISFIED_BY[level]

    # =========================================================================
    # Access checks
    # =========================================================================

    def check_folder_access(
        self,
        user_id: int | None,
        folder_id: int,
        is_admin: bool,
        level: str = "read"
    ) -> bool:
        """Check whether user may access folder through any permission group.

        Unknown users, folders and groups simply deny.
        """
        if is_admin:
            return True
        self._validate_level(level)
        if user_id is None:
            return False
        return self.group_repo.has_folder_access(
            user_id, [folder_id], self.SATISFIED_BY[level]
        )

    def check_file_access(
        self,
        user_id: int | None,
        file_id: int,
        is_admin: bool,
        level: str = "read"
    ) -> bool:
        """Check whether user may access file.

        The file is accessible if ANY folder it is mapped into is accessible.
        A file the catalog cannot resolve is denied.
        """
        if is_admin:
            return True
        self._validate_level(level)
        if user_id is None:
            return False

        try:
            folder_ids = self.folder_catalog.resolve_folders_for_file(file_id)
        except OSError:
            logger.warning("Could not resolve folders for file %s", file_id, exc_info=True)
            return False

        if not folder_ids:
            return False
        return self.group_repo.has_folder_access(
            user_id, folder_ids, self.SATISFIED_BY[level]
        )
