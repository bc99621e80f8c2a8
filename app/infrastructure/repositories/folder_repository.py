"""Folder repository - scanned folders and the files mapped into them.

A file can be mapped into several folders (the same photo reached through
overlapping library roots); each mapping stores the path relative to the
folder's absolute path.
"""
import os

from ...domain.errors import NotFoundError
from .base import Repository


class FolderRepository(Repository):
    """Repository for folders and file-folder mappings.

    Also serves as the sqlite-backed ``FolderCatalog`` used by access checks.

    Examples:
        >>> repo = FolderRepository(db)
        >>> folder_id = repo.create("Photos", "/srv/photos", created_by=1)
        >>> file_id = repo.create_file("beach.jpg")
        >>> repo.add_file_mapping(file_id, folder_id, "2024/beach.jpg")
        >>> repo.resolve_absolute_path(file_id)
        '/srv/photos/2024/beach.jpg'
    """

    def create(self, name: str, absolute_path: str, created_by: int) -> int:
        """Register a folder.

        Returns:
            New folder ID
        """
        cursor = self._execute(
            """INSERT INTO folders (name, absolute_path, created_by)
               VALUES (?, ?, ?)""",
            (name.strip(), absolute_path, created_by)
        )
        self._commit()
        return cursor.lastrowid

    def get_by_id(self, folder_id: int) -> dict | None:
        return self._fetchone("SELECT * FROM folders WHERE id = ?", (folder_id,))

    def delete(self, folder_id: int) -> bool:
        """Delete folder. Mappings and permission group links cascade."""
        cursor = self._execute("DELETE FROM folders WHERE id = ?", (folder_id,))
        self._commit()
        return cursor.rowcount > 0

    def create_file(self, filename: str, file_type: str = "image", size: int = 0) -> int:
        cursor = self._execute(
            "INSERT INTO files (filename, file_type, size) VALUES (?, ?, ?)",
            (filename, file_type, size)
        )
        self._commit()
        return cursor.lastrowid

    def get_file(self, file_id: int) -> dict | None:
        return self._fetchone(
            "SELECT id, filename, file_type, size, created_at FROM files WHERE id = ?",
            (file_id,)
        )

    def add_file_mapping(self, file_id: int, folder_id: int, relative_path: str) -> None:
        self._execute(
            """INSERT OR REPLACE INTO file_folder_mappings (file_id, folder_id, relative_path)
               VALUES (?, ?, ?)""",
            (file_id, folder_id, relative_path)
        )
        self._commit()

    def remove_file_mapping(self, file_id: int, folder_id: int) -> bool:
        cursor = self._execute(
            "DELETE FROM file_folder_mappings WHERE file_id = ? AND folder_id = ?",
            (file_id, folder_id)
        )
        self._commit()
        return cursor.rowcount > 0

    # === FolderCatalog ===

    def resolve_folders_for_file(self, file_id: int) -> list[int]:
        """IDs of every folder the file is mapped into."""
        rows = self._fetchall(
            "SELECT folder_id FROM file_folder_mappings WHERE file_id = ?",
            (file_id,)
        )
        return [row["folder_id"] for row in rows]

    def resolve_absolute_path(self, file_id: int) -> str:
        """Absolute path of a file through its first mapping.

        Raises:
            NotFoundError: If the file is not mapped into any folder
        """
        row = self._fetchone(
            """SELECT f.absolute_path, ffm.relative_path
               FROM file_folder_mappings ffm
               JOIN folders f ON ffm.folder_id = f.id
               WHERE ffm.file_id = ?
               ORDER BY ffm.folder_id
               LIMIT 1""",
            (file_id,)
        )
        if row is None:
            raise NotFoundError("File not found in any folder")
        return os.path.join(row["absolute_path"], row["relative_path"])
