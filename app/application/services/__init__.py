"""Application services - business logic layer."""

from .permission_group_service import PermissionGroupService
from .share_service import ShareService

__all__ = [
    "PermissionGroupService",
    "ShareService",
]
