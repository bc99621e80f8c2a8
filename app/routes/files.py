"""Authenticated file routes - access through permission groups."""
import os

from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import FileResponse

from ..dependencies import require_user
from ..domain.errors import NotFoundError
from .deps import get_folder_catalog, get_permission_group_service

router = APIRouter(prefix="/api/files", tags=["files"])


@router.get("/{file_id}")
def get_file(request: Request, file_id: int):
    """Serve a file the user can reach through any of its folders."""
    user = require_user(request)

    service = get_permission_group_service()
    if not service.check_file_access(user.user_id, file_id, user.is_admin):
        raise HTTPException(status_code=403, detail="Access denied")

    catalog = get_folder_catalog()
    file = catalog.get_file(file_id)
    if not file:
        raise NotFoundError("File not found")

    path = catalog.resolve_absolute_path(file_id)
    if not os.path.isfile(path):
        raise NotFoundError("File not found or deleted")
    return FileResponse(path, filename=file["filename"])
