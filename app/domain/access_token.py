"""Access token codec.

A token is the string ``shareID:resourceID:nonce``. It is not signed and has
no expiry of its own: whoever validates it must re-check the referenced share
in the store. It is unguessable only as far as the share id and the random
nonce are.
"""
import secrets
from typing import NamedTuple

from .. import config
from .errors import ValidationError

SEPARATOR = ":"


class AccessToken(NamedTuple):
    share_id: str
    resource_id: int
    nonce: str


def new_nonce(nbytes: int | None = None) -> str:
    return secrets.token_urlsafe(nbytes or config.ACCESS_TOKEN_NONCE_BYTES)


def encode_token(share_id: str, resource_id: int, nonce: str | None = None) -> str:
    """Build a token string for ``share_id`` bound to ``resource_id``."""
    if not share_id or SEPARATOR in share_id:
        raise ValidationError("Invalid share id")
    if nonce is None:
        nonce = new_nonce()
    elif not nonce or SEPARATOR in nonce:
        raise ValidationError("Invalid token nonce")
    return SEPARATOR.join((share_id, str(int(resource_id)), nonce))


def decode_token(token: str) -> AccessToken:
    """Parse a token string.

    Raises:
        ValidationError: if the token does not have three non-empty fields
            or the resource id is not an integer
    """
    if not token:
        raise ValidationError("Access token required")

    parts = token.split(SEPARATOR)
    if len(parts) != 3 or not all(parts):
        raise ValidationError("Invalid token format")

    share_id, raw_resource_id, nonce = parts
    try:
        resource_id = int(raw_resource_id)
    except ValueError:
        raise ValidationError("Invalid token format") from None

    return AccessToken(share_id, resource_id, nonce)
