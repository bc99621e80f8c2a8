# Repository Pattern Implementation
"""
Repositories abstract database operations.
Each entity has its own repository; services receive them by injection:

    db = get_db()
    service = ShareService(ShareRepository(db))
"""
from .base import Repository, AsyncRepository, ConnectionProtocol
from .user_repository import UserRepository
from .album_repository import AlbumRepository
from .folder_repository import FolderRepository
from .permission_group_repository import PermissionGroupRepository
from .share_repository import ShareRepository, AsyncShareRepository

__all__ = [
    "Repository",
    "AsyncRepository",
    "ConnectionProtocol",
    "UserRepository",
    "AlbumRepository",
    "FolderRepository",
    "PermissionGroupRepository",
    "ShareRepository",
    "AsyncShareRepository",
]
