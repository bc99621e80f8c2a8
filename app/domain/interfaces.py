"""Contracts for collaborators the access checks depend on."""
from typing import Protocol


class FolderCatalog(Protocol):
    """Resolves files to the folders they are mapped into.

    A file may be mapped into several folders; order is not significant.
    """

    def resolve_folders_for_file(self, file_id: int) -> list[int]: ...

    def resolve_absolute_path(self, file_id: int) -> str: ...
