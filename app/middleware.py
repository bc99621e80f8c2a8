"""Application middleware."""
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from .config import IDENTITY_USER_HEADER, IDENTITY_ROLE_HEADER
from .domain.roles import Caller, Role

logger = logging.getLogger(__name__)


def resolve_caller(user_header: str | None, role_header: str | None) -> Caller | None:
    """Build the caller from identity headers.

    A missing or non-numeric user ID means anonymous. An unknown role
    falls back to a plain user.
    """
    if not user_header:
        return None
    try:
        user_id = int(user_header)
    except ValueError:
        logger.debug("Ignoring malformed identity header %r", user_header)
        return None
    if user_id < 1:
        return None

    try:
        role = Role((role_header or Role.USER.value).strip().lower())
    except ValueError:
        role = Role.USER
    return Caller(user_id=user_id, role=role)


class IdentityMiddleware(BaseHTTPMiddleware):
    """Attach the caller handed over by the upstream auth layer.

    Authentication itself happens before requests reach this service; every
    route decides for itself whether an anonymous caller is acceptable.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.user = resolve_caller(
            request.headers.get(IDENTITY_USER_HEADER),
            request.headers.get(IDENTITY_ROLE_HEADER),
        )
        return await call_next(request)
