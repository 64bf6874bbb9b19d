"""
Storage Application Service

Coordinates the owner-facing file use cases: uploads, downloads, deletes,
quota status and the file library.
"""

import logging
from typing import Any, Dict, Optional

from ..domain.file_storage import FileFilter, FileOrganizer, TransferCoordinator
from .service_result import ServiceResult, run_service_call

logger = logging.getLogger(__name__)


class StorageService:
    """
    Application service for file operations.

    Every method returns a ServiceResult; domain errors never escape.
    """

    def __init__(self, coordinator: TransferCoordinator, organizer: FileOrganizer):
        """
        Initialize StorageService.

        Args:
            coordinator: Transfer and quota domain service
            organizer: File library domain service
        """
        self.coordinator = coordinator
        self.organizer = organizer

    # Transfers

    def request_upload(
        self,
        owner_id: str,
        file_name: Optional[str],
        content_type: Optional[str],
        declared_size: Any,
    ) -> ServiceResult:
        def run() -> Dict[str, Any]:
            ticket = self.coordinator.request_upload(owner_id, file_name, content_type, declared_size)
            logger.info(f"Issued upload capability for {owner_id}: {ticket.object_key}")
            return ticket.to_dict()

        return run_service_call(logger, "request_upload", run, status_code=201)

    def confirm_upload(
        self,
        owner_id: str,
        object_key: str,
        actual_size: Any,
        file_name: Optional[str] = None,
        content_type: Optional[str] = None,
        folder_id: Optional[str] = None,
    ) -> ServiceResult:
        def run() -> Dict[str, Any]:
            record = self.coordinator.confirm_upload(
                owner_id,
                object_key,
                actual_size,
                file_name=file_name,
                content_type=content_type,
                folder_id=folder_id,
            )
            return {
                "file": record.to_dict(),
                "usage": self.coordinator.usage_summary(owner_id),
            }

        return run_service_call(logger, "confirm_upload", run)

    def request_download(self, owner_id: str, file_id: str) -> ServiceResult:
        def run() -> Dict[str, Any]:
            return self.coordinator.request_download(owner_id, file_id).to_dict()

        return run_service_call(logger, "request_download", run)

    def delete_file(self, owner_id: str, file_id: str) -> ServiceResult:
        def run() -> Dict[str, Any]:
            self.coordinator.delete_file(owner_id, file_id)
            logger.info(f"Deleted file {file_id} of {owner_id}")
            return {
                "deleted": file_id,
                "usage": self.coordinator.usage_summary(owner_id),
            }

        return run_service_call(logger, "delete_file", run)

    def get_usage(self, owner_id: str) -> ServiceResult:
        return run_service_call(logger, "get_usage", lambda: self.coordinator.usage_summary(owner_id))

    # Library

    def list_files(
        self,
        owner_id: str,
        search: Optional[str] = None,
        content_type: Optional[str] = None,
        folder_id: Optional[str] = None,
        sort_by: Optional[str] = None,
        order: Optional[str] = None,
    ) -> ServiceResult:
        def run() -> Dict[str, Any]:
            file_filter = FileFilter.from_params(search, content_type, folder_id, sort_by, order)
            files = self.organizer.list_files(owner_id, file_filter)
            return {"files": [record.to_dict() for record in files], "count": len(files)}

        return run_service_call(logger, "list_files", run)

    def list_content_types(self, owner_id: str) -> ServiceResult:
        def run() -> Dict[str, Any]:
            return {"content_types": self.organizer.list_content_types(owner_id)}

        return run_service_call(logger, "list_content_types", run)

    def update_file(self, owner_id: str, file_id: str, changes: Dict[str, Any]) -> ServiceResult:
        """
        Rename and/or move a file.

        ``changes`` may hold ``name`` and ``folder_id``; a present
        ``folder_id`` of None moves the file to the root.
        """
        def run() -> Dict[str, Any]:
            record = self.coordinator.get_owned_file(owner_id, file_id)
            if "name" in changes:
                record = self.organizer.rename_file(owner_id, file_id, changes["name"])
            if "folder_id" in changes:
                record = self.organizer.move_file(owner_id, file_id, changes["folder_id"])
            return record.to_dict()

        return run_service_call(logger, "update_file", run)

    # Folders

    def list_folders(self, owner_id: str) -> ServiceResult:
        def run() -> Dict[str, Any]:
            return {"folders": [folder.to_dict() for folder in self.organizer.list_folders(owner_id)]}

        return run_service_call(logger, "list_folders", run)

    def create_folder(self, owner_id: str, name: str, parent_id: Optional[str] = None) -> ServiceResult:
        def run() -> Dict[str, Any]:
            folder = self.organizer.create_folder(owner_id, name, parent_id)
            logger.info(f"Created folder {folder.id} for {owner_id}")
            return folder.to_dict()

        return run_service_call(logger, "create_folder", run, status_code=201)

    def rename_folder(self, owner_id: str, folder_id: str, name: str) -> ServiceResult:
        def run() -> Dict[str, Any]:
            return self.organizer.rename_folder(owner_id, folder_id, name).to_dict()

        return run_service_call(logger, "rename_folder", run)

    def delete_folder(self, owner_id: str, folder_id: str) -> ServiceResult:
        def run() -> Dict[str, Any]:
            self.organizer.delete_folder(owner_id, folder_id)
            logger.info(f"Deleted folder {folder_id} of {owner_id}")
            return {"deleted": folder_id}

        return run_service_call(logger, "delete_folder", run)
