"""Share management routes (owner side).

Every route acting on an existing share needs its owner or an admin.
"""
from datetime import datetime, timedelta

from fastapi import APIRouter, Request, HTTPException
from pydantic import BaseModel

from ..application.services import ShareService
from ..application.services.share_service import to_public, utc_now
from ..config import ROOT_PATH
from ..dependencies import require_user, require_admin
from ..domain.roles import Caller
from .deps import get_album_repository, get_permission_group_service, get_share_service

router = APIRouter(prefix="/api/shares", tags=["shares"])


class ShareCreate(BaseModel):
    share_type: str  # 'file' | 'album'
    resource_id: int
    access_type: str = "public"  # 'public' | 'private'
    password: str = ""
    requires_auth: bool = False
    expires_in: int | None = None  # hours
    max_views: int | None = None


class ShareUpdate(BaseModel):
    enabled: bool | None = None
    max_views: int | None = None
    password: str | None = None
    requires_auth: bool | None = None
    expires_at: datetime | None = None


class ShareExtend(BaseModel):
    hours: int


class SharePermissionGrant(BaseModel):
    user_id: int


def _require_owner(service: ShareService, share_id: str, user: Caller) -> dict:
    share = service.get_share(share_id)
    if not service.can_manage_share(share, user.user_id, user.is_admin):
        raise HTTPException(status_code=403, detail="Access denied")
    return share


def _share_url(share_id: str) -> str:
    return f"{ROOT_PATH}/s/{share_id}"


@router.get("")
def list_shares(request: Request):
    """Shares owned by the current user."""
    user = require_user(request)
    service = get_share_service()
    shares = service.list_shares_by_owner(user.user_id)
    return {"shares": [to_public(share) for share in shares]}


@router.post("", status_code=201)
def create_share(request: Request, data: ShareCreate):
    """Create a share link.

    File shares need read access to the file, album shares need the album's
    owner (or an admin).
    """
    user = require_user(request)

    if data.share_type == "file":
        groups = get_permission_group_service()
        if not groups.check_file_access(user.user_id, data.resource_id, user.is_admin):
            raise HTTPException(status_code=403, detail="Access denied")
    elif data.share_type == "album":
        album = get_album_repository().get_by_id(data.resource_id)
        if not album:
            raise HTTPException(status_code=404, detail="Album not found")
        if album["owner_id"] != user.user_id and not user.is_admin:
            raise HTTPException(status_code=403, detail="Access denied")

    expires_at = None
    if data.expires_in is not None and data.expires_in > 0:
        expires_at = utc_now() + timedelta(hours=data.expires_in)

    service = get_share_service()

    share = service.create_share(
        data.share_type,
        data.resource_id,
        user.user_id,
        access_type=data.access_type or "public",
        password=data.password,
        requires_auth=data.requires_auth,
        expires_at=expires_at,
        max_views=data.max_views,
    )
    return {"share": to_public(share), "url": _share_url(share["id"])}


# Registered before /{share_id} so "expired" is not taken for an ID
@router.delete("/expired")
def delete_expired_shares(request: Request):
    require_admin(request)
    service = get_share_service()
    count = service.delete_expired_shares()
    return {"status": "ok", "deleted": count}


@router.get("/{share_id}")
def get_share(request: Request, share_id: str):
    user = require_user(request)
    service = get_share_service()
    share = _require_owner(service, share_id, user)
    return {"share": to_public(share), "url": _share_url(share_id)}


@router.put("/{share_id}")
def update_share(request: Request, share_id: str, data: ShareUpdate):
    """Change share settings.

    Only fields present in the body are changed. An empty password removes
    the password; null max_views / expires_at remove the limit.
    """
    user = require_user(request)
    service = get_share_service()
    _require_owner(service, share_id, user)

    changes = data.model_dump(exclude_unset=True)
    if changes.get("enabled", True) is None or changes.get("requires_auth", True) is None:
        raise HTTPException(status_code=400, detail="enabled and requires_auth cannot be null")

    share = service.update_share(share_id, **changes)
    return {"status": "ok", "share": to_public(share)}


@router.delete("/{share_id}")
def delete_share(request: Request, share_id: str):
    user = require_user(request)
    service = get_share_service()
    _require_owner(service, share_id, user)
    service.delete_share(share_id)
    return {"status": "ok"}


@router.post("/{share_id}/extend")
def extend_share(request: Request, share_id: str, data: ShareExtend):
    user = require_user(request)
    service = get_share_service()
    _require_owner(service, share_id, user)

    if data.hours <= 0:
        raise HTTPException(status_code=400, detail="Hours must be positive")

    share = service.extend_share(share_id, timedelta(hours=data.hours))
    return {"share": to_public(share)}


@router.get("/{share_id}/access-log")
def get_access_log(request: Request, share_id: str, limit: int = 100):
    user = require_user(request)
    service = get_share_service()
    _require_owner(service, share_id, user)
    logs = service.get_access_log(share_id, limit)
    return {"logs": logs, "total": len(logs)}


# === Private share allow-list ===

@router.get("/{share_id}/permissions")
def list_share_permissions(request: Request, share_id: str):
    user = require_user(request)
    service = get_share_service()
    _require_owner(service, share_id, user)
    return {"permissions": service.list_share_permissions(share_id)}


@router.post("/{share_id}/permissions")
def grant_share_permission(request: Request, share_id: str, data: SharePermissionGrant):
    user = require_user(request)
    service = get_share_service()
    _require_owner(service, share_id, user)
    service.grant_share_permission(share_id, data.user_id)
    return {"status": "ok", "permissions": service.list_share_permissions(share_id)}


@router.delete("/{share_id}/permissions/{target_user_id}")
def revoke_share_permission(request: Request, share_id: str, target_user_id: int):
    user = require_user(request)
    service = get_share_service()
    _require_owner(service, share_id, user)
    service.revoke_share_permission(share_id, target_user_id)
    return {"status": "ok", "permissions": service.list_share_permissions(share_id)}
