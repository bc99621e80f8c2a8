"""Permission group routes.

Only admins create groups. Everything else on a group needs admin or
``write`` on that group; reading it needs at least ``read``.
"""
from fastapi import APIRouter, Request, HTTPException
from pydantic import BaseModel

from ..application.services import PermissionGroupService
from ..dependencies import require_user, require_admin
from ..domain.roles import Caller
from .deps import get_permission_group_service

router = APIRouter(prefix="/api/permission-groups", tags=["permission-groups"])


class GroupCreate(BaseModel):
    name: str
    description: str = ""


class GroupUpdate(BaseModel):
    name: str
    description: str = ""


class FolderLink(BaseModel):
    folder_id: int


class PermissionGrant(BaseModel):
    user_id: int
    permission: str  # 'read' | 'write'


def _require_view(service: PermissionGroupService, group_id: int, user: Caller) -> dict:
    group = service.get_group(group_id)
    if not user.is_admin and not service.check_group_permission(group_id, user.user_id, "read"):
        raise HTTPException(status_code=403, detail="Access denied")
    return group


def _require_manage(service: PermissionGroupService, group_id: int, user: Caller) -> dict:
    group = service.get_group(group_id)
    if not service.can_manage_group(group_id, user.user_id, user.is_admin):
        raise HTTPException(status_code=403, detail="Write permission required")
    return group


# === Group CRUD ===

@router.get("")
def list_groups(request: Request):
    """Groups visible to the current user (all of them for admins)."""
    user = require_user(request)
    service = get_permission_group_service()
    return {"groups": service.list_groups(user.user_id, user.is_admin)}


@router.post("", status_code=201)
def create_group(request: Request, data: GroupCreate):
    user = require_admin(request)
    service = get_permission_group_service()
    group = service.create_group(data.name, data.description, user.user_id)
    return {"status": "ok", "group": group}


@router.get("/{group_id}")
def get_group(request: Request, group_id: int):
    user = require_user(request)
    service = get_permission_group_service()
    group = _require_view(service, group_id, user)
    return {
        "group": group,
        "folders": service.list_folders(group_id),
        "permissions": service.list_users_with_access(group_id),
    }


@router.put("/{group_id}")
def update_group(request: Request, group_id: int, data: GroupUpdate):
    user = require_user(request)
    service = get_permission_group_service()
    _require_manage(service, group_id, user)
    group = service.update_group(group_id, data.name, data.description)
    return {"status": "ok", "group": group}


@router.delete("/{group_id}")
def delete_group(request: Request, group_id: int):
    """Delete group. Folder links and grants go with it."""
    user = require_user(request)
    service = get_permission_group_service()
    _require_manage(service, group_id, user)
    service.delete_group(group_id)
    return {"status": "ok"}


# === Folders ===

@router.get("/{group_id}/folders")
def list_group_folders(request: Request, group_id: int):
    user = require_user(request)
    service = get_permission_group_service()
    _require_view(service, group_id, user)
    return {"folders": service.list_folders(group_id)}


@router.post("/{group_id}/folders")
def add_group_folder(request: Request, group_id: int, data: FolderLink):
    user = require_user(request)
    service = get_permission_group_service()
    _require_manage(service, group_id, user)
    service.add_folder(group_id, data.folder_id)
    return {"status": "ok", "folders": service.list_folders(group_id)}


@router.delete("/{group_id}/folders/{folder_id}")
def remove_group_folder(request: Request, group_id: int, folder_id: int):
    user = require_user(request)
    service = get_permission_group_service()
    _require_manage(service, group_id, user)
    service.remove_folder(group_id, folder_id)
    return {"status": "ok", "folders": service.list_folders(group_id)}


# === User permissions ===

@router.get("/{group_id}/permissions")
def list_group_permissions(request: Request, group_id: int):
    user = require_user(request)
    service = get_permission_group_service()
    _require_view(service, group_id, user)
    return {"permissions": service.list_users_with_access(group_id)}


@router.post("/{group_id}/permissions")
def grant_group_permission(request: Request, group_id: int, data: PermissionGrant):
    """Grant or change a user's level on the group."""
    user = require_user(request)
    service = get_permission_group_service()
    _require_manage(service, group_id, user)
    service.grant_permission(group_id, data.user_id, data.permission)
    return {"status": "ok", "permissions": service.list_users_with_access(group_id)}


@router.delete("/{group_id}/permissions/{target_user_id}")
def revoke_group_permission(request: Request, group_id: int, target_user_id: int):
    user = require_user(request)
    service = get_permission_group_service()
    _require_manage(service, group_id, user)
    service.revoke_permission(group_id, target_user_id)
    return {"status": "ok", "permissions": service.list_users_with_access(group_id)}
