"""Error taxonomy for access decisions.

Every kind except ``InternalError`` is an expected, user-facing outcome and is
never logged as a server error. Each carries the HTTP status the handler layer
answers with and a detail string that is safe to show to the caller.
"""


class GalleryError(Exception):
    """Base exception for all access-control errors."""

    kind = "error"
    status_code = 400
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFoundError(GalleryError):
    kind = "not_found"
    status_code = 404
    default_detail = "Not found"


class ShareDisabledError(GalleryError):
    kind = "disabled"
    status_code = 403
    default_detail = "This share has been disabled"


class ShareExpiredError(GalleryError):
    kind = "expired"
    status_code = 410
    default_detail = "This share has expired"


class QuotaExceededError(GalleryError):
    kind = "quota_exceeded"
    status_code = 403
    default_detail = "Maximum views reached for this share"


class AuthRequiredError(GalleryError):
    kind = "auth_required"
    status_code = 401
    default_detail = "Please login to access this share"


class InvalidPasswordError(GalleryError):
    kind = "invalid_password"
    status_code = 401
    default_detail = "Invalid password"


class ForbiddenError(GalleryError):
    kind = "forbidden"
    status_code = 403
    default_detail = "Access denied"


class ValidationError(GalleryError):
    """Malformed input, e.g. an unparsable access token."""

    kind = "validation_error"
    status_code = 400
    default_detail = "Invalid request"


class InternalError(GalleryError):
    """Opaque persistence failure. The detail never leaves the server."""

    kind = "internal_error"
    status_code = 500
    default_detail = "Internal server error"
