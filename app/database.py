import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path

from . import config

BASE_DIR = config.BASE_DIR
DATABASE_PATH = config.DATABASE_PATH


# =============================================================================
# Datetime adapters
# =============================================================================
# All timestamps are stored as aware UTC ISO-8601 strings with a fixed width,
# so that string comparison in SQL (expires_at < ?) matches time order.
def _adapt_datetime(dt: datetime) -> str:
    """Adapt datetime to ISO 8601 string for SQLite."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _convert_datetime(val: bytes) -> datetime:
    """Convert ISO 8601 string from SQLite to datetime.

    CURRENT_TIMESTAMP defaults are naive UTC; they come back as aware UTC.
    """
    dt = datetime.fromisoformat(val.decode())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _convert_boolean(val: bytes) -> bool:
    return val not in (b"0", b"")


sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_converter("DATETIME", _convert_datetime)
sqlite3.register_converter("TIMESTAMP", _convert_datetime)
sqlite3.register_converter("BOOLEAN", _convert_boolean)


SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    role TEXT NOT NULL DEFAULT 'user' CHECK(role IN ('user', 'admin', 'server_owner')),
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS folders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    absolute_path TEXT NOT NULL UNIQUE,
    enabled BOOLEAN DEFAULT 1,
    created_by INTEGER NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (created_by) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS files (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filename TEXT NOT NULL,
    file_type TEXT NOT NULL DEFAULT 'image',
    size INTEGER NOT NULL DEFAULT 0,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS file_folder_mappings (
    file_id INTEGER NOT NULL,
    folder_id INTEGER NOT NULL,
    relative_path TEXT NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (file_id, folder_id),
    FOREIGN KEY (file_id) REFERENCES files(id) ON DELETE CASCADE,
    FOREIGN KEY (folder_id) REFERENCES folders(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_file_folder_mappings_folder ON file_folder_mappings(folder_id);

CREATE TABLE IF NOT EXISTS albums (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT,
    owner_id INTEGER NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (owner_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS permission_groups (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT,
    created_by INTEGER NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (created_by) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS permission_group_folders (
    permission_group_id INTEGER NOT NULL,
    folder_id INTEGER NOT NULL,
    added_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (permission_group_id, folder_id),
    FOREIGN KEY (permission_group_id) REFERENCES permission_groups(id) ON DELETE CASCADE,
    FOREIGN KEY (folder_id) REFERENCES folders(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_permission_group_folders_folder
    ON permission_group_folders(folder_id, permission_group_id);

CREATE TABLE IF NOT EXISTS permission_group_permissions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    permission_group_id INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    permission TEXT NOT NULL DEFAULT 'read' CHECK(permission IN ('read', 'write')),
    granted_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (permission_group_id) REFERENCES permission_groups(id) ON DELETE CASCADE,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
    UNIQUE(permission_group_id, user_id)
);

CREATE INDEX IF NOT EXISTS idx_permission_group_perms_user
    ON permission_group_permissions(user_id, permission_group_id);

CREATE TABLE IF NOT EXISTS shares (
    id TEXT PRIMARY KEY,
    share_type TEXT NOT NULL CHECK(share_type IN ('file', 'album')),
    resource_id INTEGER NOT NULL,
    owner_id INTEGER NOT NULL,
    access_type TEXT NOT NULL DEFAULT 'public' CHECK(access_type IN ('public', 'private')),
    password_hash TEXT,
    requires_auth BOOLEAN DEFAULT 0,
    expires_at DATETIME,
    max_views INTEGER,
    view_count INTEGER NOT NULL DEFAULT 0,
    enabled BOOLEAN DEFAULT 1,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (owner_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_shares_owner ON shares(owner_id);
CREATE INDEX IF NOT EXISTS idx_shares_expires ON shares(expires_at);
CREATE INDEX IF NOT EXISTS idx_shares_type_resource ON shares(share_type, resource_id);

CREATE TABLE IF NOT EXISTS share_permissions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    share_id TEXT NOT NULL,
    user_id INTEGER NOT NULL,
    granted_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (share_id) REFERENCES shares(id) ON DELETE CASCADE,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
    UNIQUE(share_id, user_id)
);

CREATE TABLE IF NOT EXISTS share_access_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    share_id TEXT NOT NULL,
    accessed_by INTEGER,
    ip_address TEXT,
    user_agent TEXT,
    accessed_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (share_id) REFERENCES shares(id) ON DELETE CASCADE,
    FOREIGN KEY (accessed_by) REFERENCES users(id) ON DELETE SET NULL
);

CREATE INDEX IF NOT EXISTS idx_share_access_share ON share_access_log(share_id, accessed_at);
"""


# Thread-local storage for database connections
_local = threading.local()


def connect(db_path: Path | str) -> sqlite3.Connection:
    """Open a configured connection (row factory, datetimes, foreign keys)."""
    conn = sqlite3.connect(
        db_path,
        detect_types=sqlite3.PARSE_DECLTYPES,
        timeout=10,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def get_db() -> sqlite3.Connection:
    """Get thread-local database connection"""
    path = str(DATABASE_PATH)
    if getattr(_local, "connection", None) is None or getattr(_local, "path", None) != path:
        close_db()
        _local.connection = connect(path)
        _local.path = path
    return _local.connection


def close_db() -> None:
    """Close this thread's connection, if any."""
    conn = getattr(_local, "connection", None)
    if conn is not None:
        conn.close()
    _local.connection = None
    _local.path = None


def init_db():
    """Initialize database schema"""
    db = get_db()
    db.executescript(SCHEMA)
    db.commit()
