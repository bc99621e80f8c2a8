"""Public share routes - no login needed.

Opening a share (``/api/s/{id}``) runs the share's gates, counts the view
and hands out an access token. The token then unlocks the shared file
through ``/api/public/files/{id}``.
"""
import os

from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import FileResponse

from ..application.services.share_service import to_public
from ..dependencies import get_current_user, get_client_info
from ..domain.errors import NotFoundError
from .deps import get_folder_catalog, get_share_service

router = APIRouter(prefix="/api", tags=["public"])


@router.get("/s/{share_id}")
def access_share(request: Request, share_id: str, password: str = ""):
    """Open a share link.

    The view is counted only after every gate passed. Running out of views
    between the check and the count is still a denial; failing to write the
    log row after the view was counted is not.
    """
    user = get_current_user(request)
    caller_id = user.user_id if user else None

    service = get_share_service()
    service.validate_access(share_id, password, caller_id)

    ip_address, user_agent = get_client_info(request)
    service.log_access(share_id, caller_id, ip_address, user_agent)

    share = service.get_share(share_id)
    return {
        "share": to_public(share),
        "access_token": service.generate_access_token(share_id),
    }


def _resolve_shared_file(file_id: int, token: str) -> tuple[dict, str]:
    if not token:
        raise HTTPException(status_code=401, detail="Access token required")

    get_share_service().validate_access_token(token, resource_id=file_id)

    catalog = get_folder_catalog()
    file = catalog.get_file(file_id)
    if not file:
        raise NotFoundError("File not found")
    path = catalog.resolve_absolute_path(file_id)
    if not os.path.isfile(path):
        raise NotFoundError("File not found or deleted")
    return file, path


@router.get("/public/files/{file_id}")
def get_public_file(file_id: int, token: str = ""):
    """Metadata of a shared file."""
    file, _ = _resolve_shared_file(file_id, token)
    return {"file": file}


@router.get("/public/files/{file_id}/download")
def download_public_file(file_id: int, token: str = ""):
    file, path = _resolve_shared_file(file_id, token)
    return FileResponse(path, filename=file["filename"])
