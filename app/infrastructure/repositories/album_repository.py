"""Album repository - the albums album shares point at."""
from .base import Repository


class AlbumRepository(Repository):
    """Repository for albums.

    Album contents are managed elsewhere; sharing only needs to know an
    album exists and who owns it.
    """

    def create(self, name: str, owner_id: int, description: str = "") -> int:
        """Create a new album.

        Returns:
            New album ID
        """
        cursor = self._execute(
            "INSERT INTO albums (name, description, owner_id) VALUES (?, ?, ?)",
            (name, description, owner_id)
        )
        self._commit()
        return cursor.lastrowid

    def get_by_id(self, album_id: int) -> dict | None:
        return self._fetchone(
            "SELECT id, name, description, owner_id, created_at FROM albums WHERE id = ?",
            (album_id,)
        )
