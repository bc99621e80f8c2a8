"""Application layer - business logic services.

This layer contains application services that orchestrate domain operations.
Services are independent of HTTP/FastAPI and can be tested in isolation.
"""

from .services.permission_group_service import PermissionGroupService
from .services.share_service import ShareService

__all__ = [
    "PermissionGroupService",
    "ShareService",
]
