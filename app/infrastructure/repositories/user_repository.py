"""User repository - the user records access grants refer to.

Credentials and sessions live with the upstream identity provider; this
table only anchors user IDs and roles.
"""
from ...domain.roles import Role
from .base import Repository


class UserRepository(Repository):
    """Repository for user entity operations.

    Examples:
        >>> repo = UserRepository(db)
        >>> user_id = repo.create("alice", Role.ADMIN)
        >>> repo.get_by_id(user_id)["role"]
        'admin'
    """

    def create(self, username: str, role: Role | str = Role.USER) -> int:
        cursor = self._execute(
            "INSERT INTO users (username, role) VALUES (?, ?)",
            (username.lower().strip(), Role(role).value)
        )
        self._commit()
        return cursor.lastrowid

    def get_by_id(self, user_id: int) -> dict | None:
        return self._fetchone("SELECT * FROM users WHERE id = ?", (user_id,))

    def get_by_username(self, username: str) -> dict | None:
        return self._fetchone(
            "SELECT * FROM users WHERE username = ?",
            (username.lower().strip(),)
        )

    def exists(self, user_id: int) -> bool:
        cursor = self._execute("SELECT 1 FROM users WHERE id = ?", (user_id,))
        return cursor.fetchone() is not None
