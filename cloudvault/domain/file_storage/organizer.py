"""
File Organizer

Domain service for the owner-facing file library: renames, moves,
listings and folders. None of these operations touch object keys or the
usage ledger.
"""

from typing import List, Optional

from ..clock import Clock, utcnow
from ..errors import FolderNotFoundError
from .entities import FileRecord, Folder
from .repositories import FileCatalog, FolderRepository
from .services import TransferCoordinator
from .value_objects import FileFilter, sanitize_display_name


class FileOrganizer:
    """Renames, moves and lists files; manages folders by flat reference."""

    def __init__(
        self,
        coordinator: TransferCoordinator,
        catalog: FileCatalog,
        folders: FolderRepository,
        clock: Clock = utcnow,
    ):
        self.coordinator = coordinator
        self.catalog = catalog
        self.folders = folders
        self.clock = clock

    # Files

    def rename_file(self, owner_id: str, file_id: str, new_name: str) -> FileRecord:
        """Change a file's display name. The object key never changes."""
        record = self.coordinator.get_owned_file(owner_id, file_id)
        record.name = sanitize_display_name(new_name)
        return self.catalog.update_file(record)

    def move_file(self, owner_id: str, file_id: str, folder_id: Optional[str]) -> FileRecord:
        """
        Move a file into a folder, or to the root when folder_id is None.

        Raises:
            FolderNotFoundError: If the folder does not exist or is not the owner's
        """
        record = self.coordinator.get_owned_file(owner_id, file_id)
        if folder_id:
            self.get_folder(owner_id, folder_id)
        record.folder_id = folder_id or None
        return self.catalog.update_file(record)

    def list_files(self, owner_id: str, file_filter: Optional[FileFilter] = None) -> List[FileRecord]:
        return self.catalog.list_files(owner_id, file_filter or FileFilter())

    def list_content_types(self, owner_id: str) -> List[str]:
        return self.catalog.list_content_types(owner_id)

    # Folders

    def get_folder(self, owner_id: str, folder_id: str) -> Folder:
        folder = self.folders.get(folder_id)
        if folder is None or folder.owner_id != owner_id:
            raise FolderNotFoundError(f"Folder not found: {folder_id}")
        return folder

    def list_folders(self, owner_id: str) -> List[Folder]:
        return self.folders.list_for_owner(owner_id)

    def create_folder(self, owner_id: str, name: str, parent_id: Optional[str] = None) -> Folder:
        """
        Create a folder, optionally under another of the owner's folders.

        Raises:
            InvalidRequestError: If the name is empty after sanitization
            FolderNotFoundError: If parent_id is not one of the owner's folders
        """
        cleaned = sanitize_display_name(name)
        if parent_id:
            self.get_folder(owner_id, parent_id)
        folder = Folder.create(owner_id, cleaned, self.clock(), parent_id=parent_id or None)
        return self.folders.save(folder)

    def rename_folder(self, owner_id: str, folder_id: str, new_name: str) -> Folder:
        folder = self.get_folder(owner_id, folder_id)
        folder.name = sanitize_display_name(new_name)
        folder.updated_at = self.clock()
        return self.folders.save(folder)

    def delete_folder(self, owner_id: str, folder_id: str) -> None:
        """
        Delete a folder. Its files move to the root and child folders are
        re-parented to the root.
        """
        self.get_folder(owner_id, folder_id)
        if not self.folders.delete_and_detach(owner_id, folder_id):
            raise FolderNotFoundError(f"Folder not found: {folder_id}")
