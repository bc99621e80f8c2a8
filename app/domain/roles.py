"""Caller identity and the privilege boundary.

Every access check in the application asks ``Caller.is_admin`` (or
``is_privileged``) instead of comparing role strings, so the set of roles
that bypass permission groups is decided here and nowhere else.
"""
from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SERVER_OWNER = "server_owner"


PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.SERVER_OWNER})


def is_privileged(role: Role | str | None) -> bool:
    """Return True if the role bypasses permission group checks."""
    if role is None:
        return False
    try:
        return Role(role) in PRIVILEGED_ROLES
    except ValueError:
        return False


@dataclass(frozen=True)
class Caller:
    """The authenticated user behind the current request."""

    user_id: int
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return is_privileged(self.role)
