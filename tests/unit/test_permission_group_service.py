"""Unit tests for PermissionGroupService.

Repositories and the folder catalog are mocked; these tests cover the
decision logic only.
"""
import sqlite3

import pytest
from unittest.mock import Mock

from app.domain.errors import NotFoundError, ValidationError


class TestPermissionGroupService:

    @pytest.fixture
    def mock_group_repo(self):
        return Mock()

    @pytest.fixture
    def mock_catalog(self):
        return Mock()

    @pytest.fixture
    def service(self, mock_group_repo, mock_catalog):
        from app.application.services import PermissionGroupService
        return PermissionGroupService(
            permission_group_repository=mock_group_repo,
            folder_catalog=mock_catalog
        )

    # === Groups ===

    def test_create_group_grants_write_to_creator(self, service, mock_group_repo):
        mock_group_repo.create.return_value = 5
        mock_group_repo.get_by_id.return_value = {"id": 5, "name": "Family"}

        group = service.create_group("  Family ", "shared photos", creator_id=2)

        assert group["id"] == 5
        mock_group_repo.create.assert_called_once_with(
            "Family", "shared photos", 2, creator_permission="write"
        )

    def test_create_group_requires_name(self, service, mock_group_repo):
        with pytest.raises(ValidationError):
            service.create_group("   ", "", creator_id=2)
        mock_group_repo.create.assert_not_called()

    def test_create_group_for_unknown_creator(self, service, mock_group_repo):
        mock_group_repo.create.side_effect = sqlite3.IntegrityError("FOREIGN KEY constraint failed")
        with pytest.raises(NotFoundError):
            service.create_group("Family", "", creator_id=999)

    def test_list_groups_admin_sees_all(self, service, mock_group_repo):
        mock_group_repo.list_all.return_value = [{"id": 1}, {"id": 2}]
        assert len(service.list_groups(user_id=3, is_admin=True)) == 2
        mock_group_repo.list_for_user.assert_not_called()

    def test_list_groups_user_sees_own(self, service, mock_group_repo):
        mock_group_repo.list_for_user.return_value = [{"id": 2, "permission": "read"}]
        assert service.list_groups(user_id=3, is_admin=False) == [{"id": 2, "permission": "read"}]
        mock_group_repo.list_for_user.assert_called_once_with(3)

    def test_delete_missing_group(self, service, mock_group_repo):
        mock_group_repo.delete.return_value = False
        with pytest.raises(NotFoundError):
            service.delete_group(77)

    # === Levels ===

    def test_grant_rejects_unknown_level(self, service, mock_group_repo):
        with pytest.raises(ValidationError):
            service.grant_permission(1, 2, "admin")
        mock_group_repo.grant.assert_not_called()

    @pytest.mark.parametrize("held,required,expected", [
        ("read", "read", True),
        ("write", "read", True),
        ("read", "write", False),
        ("write", "write", True),
        (None, "read", False),
    ])
    def test_check_group_permission_levels(self, service, mock_group_repo, held, required, expected):
        mock_group_repo.get_permission.return_value = held
        assert service.check_group_permission(1, 2, required) is expected

    def test_can_manage_group_needs_write(self, service, mock_group_repo):
        mock_group_repo.get_permission.return_value = "read"
        assert service.can_manage_group(1, 2, is_admin=False) is False
        assert service.can_manage_group(1, 2, is_admin=True) is True

    # === Access checks ===

    def test_admin_bypasses_groups(self, service, mock_group_repo, mock_catalog):
        assert service.check_file_access(1, 10, is_admin=True) is True
        assert service.check_folder_access(1, 3, is_admin=True, level="write") is True
        mock_group_repo.has_folder_access.assert_not_called()
        mock_catalog.resolve_folders_for_file.assert_not_called()

    def test_anonymous_is_denied(self, service, mock_group_repo):
        assert service.check_file_access(None, 10, is_admin=False) is False
        assert service.check_folder_access(None, 3, is_admin=False) is False
        mock_group_repo.has_folder_access.assert_not_called()

    def test_file_access_checks_all_folders_at_once(self, service, mock_group_repo, mock_catalog):
        mock_catalog.resolve_folders_for_file.return_value = [3, 8]
        mock_group_repo.has_folder_access.return_value = True

        assert service.check_file_access(2, 10, is_admin=False) is True
        mock_group_repo.has_folder_access.assert_called_once_with(2, [3, 8], ("read", "write"))

    def test_write_access_accepts_only_write(self, service, mock_group_repo, mock_catalog):
        mock_catalog.resolve_folders_for_file.return_value = [3]
        mock_group_repo.has_folder_access.return_value = False

        assert service.check_file_access(2, 10, is_admin=False, level="write") is False
        mock_group_repo.has_folder_access.assert_called_once_with(2, [3], ("write",))

    def test_unmapped_file_is_denied(self, service, mock_group_repo, mock_catalog):
        mock_catalog.resolve_folders_for_file.return_value = []
        assert service.check_file_access(2, 10, is_admin=False) is False
        mock_group_repo.has_folder_access.assert_not_called()

    def test_catalog_failure_denies(self, service, mock_group_repo, mock_catalog):
        mock_catalog.resolve_folders_for_file.side_effect = OSError("library offline")
        assert service.check_file_access(2, 10, is_admin=False) is False
        mock_group_repo.has_folder_access.assert_not_called()

    def test_folder_access_uses_single_folder(self, service, mock_group_repo):
        mock_group_repo.has_folder_access.return_value = True
        assert service.check_folder_access(2, 3, is_admin=False) is True
        mock_group_repo.has_folder_access.assert_called_once_with(2, [3], ("read", "write"))
