"""Application configuration and constants."""
import os
from pathlib import Path

# Directory paths
BASE_DIR = Path(__file__).resolve().parent.parent
DATABASE_PATH = Path(os.environ.get("GALLERY_DB_PATH", str(BASE_DIR / "gallery.db")))

# Base URL configuration (for running under a subpath like /gallery)
BASE_URL = os.environ.get("GALLERY_BASE_URL", "").strip("/")
ROOT_PATH = f"/{BASE_URL}" if BASE_URL else ""

LOG_LEVEL = os.environ.get("GALLERY_LOG_LEVEL", "INFO").upper()

# Identity is established upstream (reverse proxy / auth gateway) and handed
# over in these headers. Anything missing or malformed means anonymous.
IDENTITY_USER_HEADER = os.environ.get("GALLERY_IDENTITY_USER_HEADER", "X-User-Id")
IDENTITY_ROLE_HEADER = os.environ.get("GALLERY_IDENTITY_ROLE_HEADER", "X-User-Role")

# Share links
SHARE_ID_BYTES = int(os.environ.get("GALLERY_SHARE_ID_BYTES", "9"))  # 12 url-safe chars
ACCESS_TOKEN_NONCE_BYTES = int(os.environ.get("GALLERY_TOKEN_NONCE_BYTES", "32"))
SHARE_PASSWORD_ROUNDS = int(os.environ.get("GALLERY_BCRYPT_ROUNDS", "12"))
SHARE_REAP_ON_STARTUP = os.environ.get("GALLERY_REAP_ON_STARTUP", "1") not in ("0", "false", "no")
ACCESS_LOG_DEFAULT_LIMIT = 100

# Permission group levels ('write' implies 'read')
PERMISSION_LEVELS = ("read", "write")
