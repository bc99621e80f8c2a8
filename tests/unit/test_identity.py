"""Unit tests for caller roles and identity header parsing."""
import pytest

from app.domain.roles import Caller, Role, is_privileged
from app.middleware import resolve_caller


class TestPrivilege:

    @pytest.mark.parametrize("role,expected", [
        (Role.USER, False),
        (Role.ADMIN, True),
        (Role.SERVER_OWNER, True),
        ("admin", True),
        ("server_owner", True),
        ("user", False),
        ("root", False),
        (None, False),
    ])
    def test_is_privileged(self, role, expected):
        assert is_privileged(role) is expected

    def test_caller_defaults_to_plain_user(self):
        caller = Caller(user_id=3)
        assert caller.role == Role.USER
        assert caller.is_admin is False

    def test_server_owner_caller_is_admin(self):
        assert Caller(user_id=1, role=Role.SERVER_OWNER).is_admin is True


class TestResolveCaller:

    def test_missing_header_is_anonymous(self):
        assert resolve_caller(None, "admin") is None

    @pytest.mark.parametrize("raw", ["abc", "0", "-5", ""])
    def test_malformed_user_id_is_anonymous(self, raw):
        assert resolve_caller(raw, None) is None

    def test_role_defaults_to_user(self):
        assert resolve_caller("7", None) == Caller(7, Role.USER)

    def test_unknown_role_falls_back_to_user(self):
        assert resolve_caller("7", "superuser") == Caller(7, Role.USER)

    def test_role_is_case_insensitive(self):
        assert resolve_caller("7", "Admin").is_admin is True
