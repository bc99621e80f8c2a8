"""Test configuration and fixtures for Shared Gallery.

This module provides isolated test environments:
- Temporary database (SQLite)
- Temporary library folders with real files on disk
- Users of every role, and identity headers to act as them
"""
import sys
from pathlib import Path
from typing import Generator, Dict

import pytest
from fastapi.testclient import TestClient

# Ensure app is importable
sys.path.insert(0, str(Path(__file__).parent.parent))


def headers_for(user: Dict | None) -> Dict:
    """Identity headers the upstream auth layer would send for ``user``."""
    if user is None:
        return {}
    return {"X-User-Id": str(user["id"]), "X-User-Role": user["role"]}


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Lowest bcrypt cost; hashing speed is irrelevant to the tests."""
    import app.config as config
    monkeypatch.setattr(config, "SHARE_PASSWORD_ROUNDS", 4)


@pytest.fixture(scope="function")
def isolated_environment(tmp_path: Path) -> Dict:
    """Create completely isolated environment for a single test.

    Returns:
        Dict with paths: db_path, library_dir, base_dir
    """
    env = {
        "db_path": tmp_path / "test.db",
        "library_dir": tmp_path / "library",
        "base_dir": tmp_path
    }
    env["library_dir"].mkdir(parents=True, exist_ok=True)
    return env


@pytest.fixture(scope="function")
def patched_config(isolated_environment: Dict):
    """Monkey-patch app configuration to use the isolated database."""
    import app.config as config
    import app.database as db_module

    originals = {
        "DATABASE_PATH": db_module.DATABASE_PATH,
        "BASE_DIR": config.BASE_DIR,
    }

    config.BASE_DIR = isolated_environment["base_dir"]
    db_module.DATABASE_PATH = isolated_environment["db_path"]

    yield isolated_environment

    config.BASE_DIR = originals["BASE_DIR"]
    db_module.DATABASE_PATH = originals["DATABASE_PATH"]


@pytest.fixture(scope="function")
def fresh_database(patched_config: Dict):
    """Initialize fresh database with schema for each test."""
    from app.database import init_db, close_db

    close_db()
    init_db()

    yield patched_config["db_path"]

    close_db()


@pytest.fixture(scope="function")
def db(fresh_database: Path):
    """This thread's connection to the fresh database."""
    from app.database import get_db
    return get_db()


@pytest.fixture(scope="function")
def client(fresh_database: Path) -> Generator[TestClient, None, None]:
    """Create test client with fresh isolated environment.

    Usage:
        def test_something(client, test_user):
            response = client.get("/api/shares", headers=headers_for(test_user))
            assert response.status_code == 200
    """
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


def _create_user(db, username: str, role: str) -> Dict:
    from app.infrastructure.repositories import UserRepository

    user_id = UserRepository(db).create(username, role)
    return {"id": user_id, "username": username, "role": role}


@pytest.fixture(scope="function")
def test_user(db) -> Dict:
    return _create_user(db, "testuser", "user")


@pytest.fixture(scope="function")
def second_user(db) -> Dict:
    """Create a second user for permission testing."""
    return _create_user(db, "seconduser", "user")


@pytest.fixture(scope="function")
def admin_user(db) -> Dict:
    return _create_user(db, "admin", "admin")


@pytest.fixture(scope="function")
def owner_user(db) -> Dict:
    """The server owner (privileged like an admin)."""
    return _create_user(db, "owner", "server_owner")


@pytest.fixture(scope="function")
def library(db, patched_config: Dict, admin_user: Dict) -> Dict:
    """Two library folders on disk and one file mapped into both.

    Returns:
        Dict with: folder_a, folder_b, file_id, lone_file_id, root
    """
    from app.infrastructure.repositories import FolderRepository

    root = patched_config["library_dir"]
    (root / "a").mkdir()
    (root / "b").mkdir()
    (root / "a" / "beach.jpg").write_bytes(b"\xff\xd8\xff beach")
    (root / "b" / "beach.jpg").write_bytes(b"\xff\xd8\xff beach")
    (root / "b" / "forest.jpg").write_bytes(b"\xff\xd8\xff forest")

    folders = FolderRepository(db)
    folder_a = folders.create("A", str(root / "a"), admin_user["id"])
    folder_b = folders.create("B", str(root / "b"), admin_user["id"])

    file_id = folders.create_file("beach.jpg", size=12)
    folders.add_file_mapping(file_id, folder_a, "beach.jpg")
    folders.add_file_mapping(file_id, folder_b, "beach.jpg")

    lone_file_id = folders.create_file("forest.jpg", size=13)
    folders.add_file_mapping(lone_file_id, folder_b, "forest.jpg")

    return {
        "folder_a": folder_a,
        "folder_b": folder_b,
        "file_id": file_id,
        "lone_file_id": lone_file_id,
        "root": root,
    }
