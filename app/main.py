"""Shared Gallery access service - FastAPI Entry Point."""
import logging
import sqlite3
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import LOG_LEVEL, SHARE_REAP_ON_STARTUP
from .database import init_db
from .domain.errors import AuthRequiredError, GalleryError, InvalidPasswordError
from .middleware import IdentityMiddleware

# Import routers
from .routes.permission_groups import router as permission_groups_router
from .routes.shares import router as shares_router
from .routes.public import router as public_router
from .routes.files import router as files_router
from .routes.deps import get_share_service

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    init_db()
    if SHARE_REAP_ON_STARTUP:
        get_share_service().delete_expired_shares()
    yield


app = FastAPI(title="Shared Gallery", lifespan=lifespan)

app.add_middleware(IdentityMiddleware)


@app.exception_handler(GalleryError)
async def gallery_error_handler(request: Request, exc: GalleryError):
    content = {"detail": exc.detail, "kind": exc.kind}
    if isinstance(exc, InvalidPasswordError):
        content["requires_password"] = True
    elif isinstance(exc, AuthRequiredError):
        content["requires_auth"] = True

    if exc.status_code >= 500:
        # Never leak store details to the client
        content["detail"] = exc.default_detail
    else:
        logger.debug("%s %s denied: %s", request.method, request.url.path, exc.kind)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(sqlite3.Error)
async def database_error_handler(request: Request, exc: sqlite3.Error):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "kind": "internal_error"}
    )


# Include routers
app.include_router(permission_groups_router)
app.include_router(shares_router)
app.include_router(public_router)
app.include_router(files_router)
