#!/usr/bin/env python3
"""
Share and user maintenance CLI for Shared Gallery.

Usage:
    Users:
        python scripts/manage_shares.py add-user <username> [role]   - role: user | admin | server_owner

    Shares:
        python scripts/manage_shares.py list <username>              - list a user's shares
        python scripts/manage_shares.py reap                         - delete expired shares
        python scripts/manage_shares.py disable <share_id>
        python scripts/manage_shares.py enable <share_id>
        python scripts/manage_shares.py extend <share_id> <hours>
        python scripts/manage_shares.py log <share_id> [limit]       - show access log
"""

import logging
import sqlite3
import sys
import os
from datetime import timedelta

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.application.services import ShareService
from app.database import init_db, get_db
from app.domain.errors import GalleryError
from app.domain.roles import Role
from app.infrastructure.repositories import ShareRepository, UserRepository


def print_usage():
    print(__doc__)


def _share_service() -> ShareService:
    return ShareService(ShareRepository(get_db()))


def _format_limit(value) -> str:
    return "-" if value is None else str(value)


def cmd_add_user(args):
    if len(args) < 1:
        print("Error: add-user requires <username>")
        return 1

    username = args[0]
    role = args[1] if len(args) > 1 else Role.USER.value
    if role not in {r.value for r in Role}:
        print(f"Error: Unknown role '{role}'")
        return 1

    users = UserRepository(get_db())
    if users.get_by_username(username):
        print(f"Error: User '{username}' already exists")
        return 1

    user_id = users.create(username, role)
    print(f"User '{username}' created (ID: {user_id}, role: {role})")
    return 0


def cmd_list(args):
    if len(args) < 1:
        print("Error: list requires <username>")
        return 1

    user = UserRepository(get_db()).get_by_username(args[0])
    if not user:
        print(f"Error: User '{args[0]}' not found")
        return 1

    shares = _share_service().list_shares_by_owner(user["id"])
    if not shares:
        print("No shares found.")
        return 0

    print(f"\n{'ID':<14} {'Type':<6} {'Res':<6} {'Access':<8} {'Views':<9} {'On':<4} Expires")
    print("-" * 70)
    for share in shares:
        views = f"{share['view_count']}/{_format_limit(share['max_views'])}"
        expires = share["expires_at"].strftime("%Y-%m-%d %H:%M") if share["expires_at"] else "-"
        print(f"{share['id']:<14} {share['share_type']:<6} {share['resource_id']:<6} "
              f"{share['access_type']:<8} {views:<9} {'yes' if share['enabled'] else 'no':<4} {expires}")
    print(f"\nTotal: {len(shares)} share(s)")
    return 0


def cmd_reap(args):
    count = _share_service().delete_expired_shares()
    print(f"Deleted {count} expired share(s)")
    return 0


def _set_enabled(args, enabled: bool):
    if len(args) < 1:
        print("Error: share ID required")
        return 1
    _share_service().update_share(args[0], enabled=enabled)
    print(f"Share {args[0]} {'enabled' if enabled else 'disabled'}")
    return 0


def cmd_extend(args):
    if len(args) < 2:
        print("Error: extend requires <share_id> <hours>")
        return 1
    try:
        hours = int(args[1])
    except ValueError:
        print("Error: hours must be a number")
        return 1

    share = _share_service().extend_share(args[0], timedelta(hours=hours))
    print(f"Share {args[0]} now expires at {share['expires_at'].strftime('%Y-%m-%d %H:%M %Z')}")
    return 0


def cmd_log(args):
    if len(args) < 1:
        print("Error: log requires <share_id>")
        return 1
    limit = int(args[1]) if len(args) > 1 and args[1].isdigit() else None

    entries = _share_service().get_access_log(args[0], limit)
    if not entries:
        print("No accesses recorded.")
        return 0

    for entry in entries:
        who = entry["accessed_by"] if entry["accessed_by"] is not None else "anonymous"
        print(f"{entry['accessed_at']:%Y-%m-%d %H:%M:%S}  {who!s:<10} "
              f"{entry['ip_address'] or '-':<16} {entry['user_agent'] or ''}")
    return 0


def main():
    if len(sys.argv) < 2:
        print_usage()
        return 1

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    # Initialize database
    init_db()

    command = sys.argv[1].lower()
    args = sys.argv[2:]

    commands = {
        'add-user': cmd_add_user,
        'list': cmd_list,
        'reap': cmd_reap,
        'disable': lambda a: _set_enabled(a, False),
        'enable': lambda a: _set_enabled(a, True),
        'extend': cmd_extend,
        'log': cmd_log,
        # Help
        'help': lambda _: (print_usage(), 0)[1],
    }

    if command not in commands:
        print(f"Unknown command: {command}")
        print_usage()
        return 1

    try:
        return commands[command](args)
    except GalleryError as e:
        print(f"Error: {e.detail}")
        return 1
    except sqlite3.Error as e:
        print(f"Database error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
