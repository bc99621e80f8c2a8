"""Shared FastAPI dependencies."""
from fastapi import Request, HTTPException

from .domain.roles import Caller


def get_current_user(request: Request) -> Caller | None:
    """Get current caller from request state (None for anonymous)."""
    return getattr(request.state, "user", None)


def require_user(request: Request) -> Caller:
    """Require authenticated user, raise 401 if not authenticated."""
    user = get_current_user(request)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_admin(request: Request) -> Caller:
    """Require admin or server owner, raise 403 otherwise."""
    user = require_user(request)
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def get_client_info(request: Request) -> tuple[str, str]:
    """Client IP and user agent, for access logs."""
    ip_address = request.client.host if request.client else ""
    return ip_address, request.headers.get("user-agent", "")
