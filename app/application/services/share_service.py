"""Share service - link-based access to single files and albums.

A share is a capability: whoever holds its short random ID may open it,
subject to a fixed sequence of gates (see ``validate_access``). Opening a
share mints a stateless access token the public file endpoints accept in
place of the share itself.
"""
import logging
import secrets
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Callable

import bcrypt

from ... import config
from ...domain.access_token import decode_token, encode_token
from ...domain.errors import (
    AuthRequiredError,
    ForbiddenError,
    InternalError,
    InvalidPasswordError,
    NotFoundError,
    QuotaExceededError,
    ShareDisabledError,
    ShareExpiredError,
    ValidationError,
)
from ...infrastructure.repositories import ShareRepository

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72

# Marks an update_share() argument that was not passed
UNSET = object()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_share_id(nbytes: int | None = None) -> str:
    """Random url-safe share ID (not sequential, not derived from anything)."""
    return secrets.token_urlsafe(nbytes or config.SHARE_ID_BYTES)


def to_public(share: dict) -> dict:
    """Share record safe to hand to clients: no hash, a has_password flag instead."""
    public = {key: value for key, value in share.items() if key != "password_hash"}
    public["has_password"] = bool(share.get("password_hash"))
    return public


class ShareService:
    """Service for share links.

    Responsibilities:
    - Share lifecycle (create, update, extend, delete, reap expired)
    - Ordered access gates and quota-safe view counting
    - Private share allow-lists
    - Access token minting and validation
    """

    VALID_SHARE_TYPES = ("file", "album")
    VALID_ACCESS_TYPES = ("public", "private")

    def __init__(
        self,
        share_repository: ShareRepository,
        clock: Callable[[], datetime] = utc_now
    ):
        self.share_repo = share_repository
        self._clock = clock

    def _now(self) -> datetime:
        return _as_utc(self._clock())

    # =========================================================================
    # Passwords
    # =========================================================================

    def _hash_password(self, password: str) -> str:
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        salt = bcrypt.gensalt(rounds=config.SHARE_PASSWORD_ROUNDS)
        return bcrypt.hashpw(encoded, salt).decode("utf-8")

    def _password_matches(self, password: str, password_hash: str) -> bool:
        if not password:
            return False
        encoded = password.encode("utf-8")
        # Never hashed, so it cannot match
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except ValueError:
            # Stored hash is not a bcrypt hash
            logger.warning("Share has an unreadable password hash")
            return False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def create_share(
        self,
        share_type: str,
        resource_id: int,
        owner_id: int,
        access_type: str = "public",
        password: str = "",
        requires_auth: bool = False,
        expires_at: datetime | None = None,
        max_views: int | None = None
    ) -> dict:
        """Create a share link.

        An empty password means no password gate.

        Raises:
            ValidationError: On invalid type, access type, resource, quota or password
            NotFoundError: If the owner does not exist
            InternalError: If the generated ID collides with an existing share
        """
        if share_type not in self.VALID_SHARE_TYPES:
            raise ValidationError("Share type must be 'file' or 'album'")
        if access_type not in self.VALID_ACCESS_TYPES:
            raise ValidationError("Access type must be 'public' or 'private'")
        if not resource_id or resource_id < 1:
            raise ValidationError("Resource ID is required")
        if max_views is not None and max_views < 1:
            raise ValidationError("max_views must be at least 1")

        share_id = generate_share_id()
        password_hash = self._hash_password(password) if password else None

        try:
            self.share_repo.create(
                share_id,
                share_type,
                resource_id,
                owner_id,
                access_type=access_type,
                password_hash=password_hash,
                requires_auth=bool(requires_auth),
                expires_at=_as_utc(expires_at),
                max_views=max_views,
            )
        except sqlite3.IntegrityError as e:
            if self.share_repo.get_by_id(share_id) is not None:
                logger.error("Share ID collision on %s", share_id)
                raise InternalError("Share ID collision") from e
            raise NotFoundError("User not found") from e

        logger.info("Share %s created for %s %s by user %s",
                    share_id, share_type, resource_id, owner_id)
        return self.get_share(share_id)

    def get_share(self, share_id: str) -> dict:
        share = self.share_repo.get_by_id(share_id)
        if not share:
            raise NotFoundError("Share not found")
        return share

    def list_shares_by_owner(self, owner_id: int) -> list[dict]:
        return self.share_repo.list_by_owner(owner_id)

    def can_manage_share(self, share: dict, user_id: int, is_admin: bool) -> bool:
        return is_admin or share["owner_id"] == user_id

    def update_share(
        self,
        share_id: str,
        enabled=UNSET,
        max_views=UNSET,
        password=UNSET,
        requires_auth=UNSET,
        expires_at=UNSET
    ) -> dict:
        """Change share settings. Only the arguments passed are touched.

        ``password=""`` (or None) removes the password gate;
        ``max_views=None`` and ``expires_at=None`` remove the limit.
        """
        self.get_share(share_id)

        fields = {}
        if enabled is not UNSET:
            fields["enabled"] = bool(enabled)
        if max_views is not UNSET:
            if max_views is not None and max_views < 1:
                raise ValidationError("max_views must be at least 1")
            fields["max_views"] = max_views
        if password is not UNSET:
            fields["password_hash"] = self._hash_password(password) if password else None
        if requires_auth is not UNSET:
            fields["requires_auth"] = bool(requires_auth)
        if expires_at is not UNSET:
            fields["expires_at"] = _as_utc(expires_at)

        if not fields:
            raise ValidationError("No fields to update")

        self.share_repo.update_fields(share_id, fields)
        return self.get_share(share_id)

    def extend_share(self, share_id: str, duration: timedelta) -> dict:
        """Push the share's deadline back by ``duration``.

        Extensions stack on a deadline that is still ahead; a share with no
        deadline, or one already past, gets ``now + duration``.
        """
        if duration <= timedelta(0):
            raise ValidationError("Duration must be positive")

        share = self.get_share(share_id)
        now = self._now()
        current = _as_utc(share["expires_at"])
        base = current if current is not None and current > now else now

        self.share_repo.update_fields(share_id, {"expires_at": base + duration})
        return self.get_share(share_id)

    def delete_share(self, share_id: str) -> None:
        if not self.share_repo.delete(share_id):
            raise NotFoundError("Share not found")
        logger.info("Share %s deleted", share_id)

    def delete_expired_shares(self) -> int:
        """Remove every share whose deadline has passed.

        Returns:
            Number of shares deleted
        """
        count = self.share_repo.delete_expired(self._now())
        if count:
            logger.info("Reaped %d expired shares", count)
        return count

    # =========================================================================
    # Access
    # =========================================================================

    def _check_live(self, share: dict) -> None:
        if not share["enabled"]:
            raise ShareDisabledError()
        expires_at = _as_utc(share["expires_at"])
        if expires_at is not None and expires_at < self._now():
            raise ShareExpiredError()

    def validate_access(
        self,
        share_id: str,
        password: str = "",
        caller_user_id: int | None = None
    ) -> dict:
        """Decide whether the caller may open the share.

        Gates run in this order, first failure wins:
        exists, enabled, not expired, views left, login (requires_auth),
        password, allow-list (private shares).

        Does not count a view; call log_access() once the share is served.
        """
        share = self.share_repo.get_by_id(share_id)
        if not share:
            raise NotFoundError("Share not found")

        self._check_live(share)

        max_views = share["max_views"]
        if max_views is not None and share["view_count"] >= max_views:
            raise QuotaExceededError()

        if share["requires_auth"] and caller_user_id is None:
            raise AuthRequiredError()

        if share["password_hash"]:
            if not self._password_matches(password, share["password_hash"]):
                raise InvalidPasswordError()

        if share["access_type"] == "private":
            if caller_user_id is None:
                raise ForbiddenError()
            if share["owner_id"] != caller_user_id and \
                    not self.share_repo.has_permission(share_id, caller_user_id):
                raise ForbiddenError()

        return share

    def log_access(
        self,
        share_id: str,
        caller_user_id: int | None,
        ip_address: str,
        user_agent: str
    ) -> None:
        """Count one view and record who opened the share.

        The increment only happens while views are left, so concurrent callers
        that all passed validate_access() cannot push view_count past max_views;
        the ones that lose the race get QuotaExceededError here.

        The view is committed before the log row is written. A log write that
        fails afterwards is only reported, the view stays counted.

        Raises:
            QuotaExceededError: If the quota ran out since validation
            NotFoundError: If the share was deleted since validation
            InternalError: If the view could not be counted
        """
        try:
            counted = self.share_repo.count_view(share_id)
        except sqlite3.Error as e:
            logger.exception("Failed to count a view of share %s", share_id)
            raise InternalError("Failed to record share access") from e

        if not counted:
            if self.share_repo.get_by_id(share_id) is None:
                raise NotFoundError("Share not found")
            raise QuotaExceededError()

        try:
            self.share_repo.append_access_log(
                share_id, caller_user_id, ip_address or "", user_agent or ""
            )
        except sqlite3.Error as e:
            logger.warning("View of share %s counted but not logged: %s", share_id, e)

    def get_access_log(self, share_id: str, limit: int | None = None) -> list[dict]:
        self.get_share(share_id)
        limit = limit if limit and limit > 0 else config.ACCESS_LOG_DEFAULT_LIMIT
        return self.share_repo.get_access_log(share_id, limit)

    # =========================================================================
    # Private share allow-list
    # =========================================================================

    def grant_share_permission(self, share_id: str, user_id: int) -> None:
        """Allow user to open a private share. Granting twice is a no-op."""
        self.get_share(share_id)
        try:
            self.share_repo.grant_permission(share_id, user_id)
        except sqlite3.IntegrityError:
            raise NotFoundError("User not found") from None

    def revoke_share_permission(self, share_id: str, user_id: int) -> None:
        self.share_repo.revoke_permission(share_id, user_id)

    def list_share_permissions(self, share_id: str) -> list[dict]:
        self.get_share(share_id)
        return self.share_repo.list_permissions(share_id)

    # =========================================================================
    # Access tokens
    # =========================================================================

    def generate_access_token(self, share_id: str) -> str:
        """Mint ``shareID:resourceID:nonce`` for the share's resource."""
        share = self.get_share(share_id)
        return encode_token(share["id"], share["resource_id"])

    def validate_access_token(
        self,
        token: str,
        resource_id: int | None = None
    ) -> tuple[str, int]:
        """Check a token against the share's current state.

        Re-checks only what keeps the token bound to a live share and its
        resource (exists, enabled, not expired, same resource). Password,
        login and quota were settled when the token was minted.

        Args:
            token: Token from generate_access_token()
            resource_id: Resource about to be served, if the caller has one

        Returns:
            (share_id, resource_id)
        """
        decoded = decode_token(token)

        share = self.share_repo.get_by_id(decoded.share_id)
        if not share:
            raise NotFoundError("Share not found")

        self._check_live(share)

        if share["resource_id"] != decoded.resource_id:
            raise ForbiddenError("Token does not match shared resource")
        if resource_id is not None and int(resource_id) != decoded.resource_id:
            raise ForbiddenError("Requested resource does not match shared resource")

        return decoded.share_id, decoded.resource_id
