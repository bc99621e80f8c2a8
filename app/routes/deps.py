"""Service factories shared by the API routes."""
from ..application.services import PermissionGroupService, ShareService
from ..database import get_db
from ..infrastructure.repositories import (
    AlbumRepository, FolderRepository, PermissionGroupRepository, ShareRepository
)


def get_permission_group_service() -> PermissionGroupService:
    """Create PermissionGroupService with repositories."""
    db = get_db()
    return PermissionGroupService(
        permission_group_repository=PermissionGroupRepository(db),
        folder_catalog=FolderRepository(db)
    )


def get_share_service() -> ShareService:
    """Create ShareService with repositories."""
    return ShareService(share_repository=ShareRepository(get_db()))


def get_folder_catalog() -> FolderRepository:
    return FolderRepository(get_db())


def get_album_repository() -> AlbumRepository:
    return AlbumRepository(get_db())
