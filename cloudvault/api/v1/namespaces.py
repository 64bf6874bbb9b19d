"""
API Namespaces - Organized endpoint groups
"""

from typing import Any, Dict, Optional, Tuple

import redis
from flask import current_app, request, send_file
from flask_restx import Namespace, Resource
from sqlalchemy import text
from sqlalchemy.engine import Engine

from ...application.service_result import ServiceResult
from ...application.share_service import ShareService
from ...application.storage_service import StorageService
from ...config.redis_config import redis_health_check
from ...domain.errors import ErrorCategory, create_error_response
from ...domain.file_storage.blob_store import IBlobStore
from ...infrastructure.local_blob_store import BlobExistsError, BlobTooLargeError, LocalBlobStore
from ..owner import owner_required
from ..rate_limit_decorator import share_rate_limit
from .models import (
    confirm_request,
    error_response,
    file_update_request,
    folder_request,
    health_response,
    share_extend_request,
    share_model,
    share_request,
    upload_request,
    upload_ticket,
    usage_model,
)


def _respond(result: ServiceResult) -> Tuple[Dict[str, Any], int]:
    return result.to_dict(), result.status_code


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _missing(field: str):
    return create_error_response(
        ErrorCategory.INVALID_REQUEST,
        f"Missing '{field}' in request body",
    )


def _storage() -> StorageService:
    return current_app.container.resolve(StorageService)


def _shares() -> ShareService:
    return current_app.container.resolve(ShareService)


# =============================================================================
# Files Namespace - Transfers and the file library
# =============================================================================

file_ns = Namespace("files", description="File transfer and library operations")


@file_ns.route("")
class FileList(Resource):
    """List the caller's files"""

    @file_ns.doc("list_files", security="owner", params={
        "search": "Case-insensitive name substring",
        "content_type": "Exact content type",
        "folder_id": "Folder id, or 'root' for files outside any folder",
        "sort": "name | created_at | size_bytes | content_type",
        "order": "asc | desc",
    })
    @file_ns.response(400, "Bad Request", error_response)
    @file_ns.response(401, "Authentication Required", error_response)
    @owner_required
    def get(self, owner_id):
        """List files with optional filtering and sorting"""
        args = request.args
        return _respond(_storage().list_files(
            owner_id,
            search=args.get("search"),
            content_type=args.get("content_type"),
            folder_id=args.get("folder_id"),
            sort_by=args.get("sort"),
            order=args.get("order"),
        ))


@file_ns.route("/types")
class FileTypes(Resource):
    """Distinct content types of the caller's files"""

    @file_ns.doc("list_content_types", security="owner")
    @owner_required
    def get(self, owner_id):
        """List distinct content types, sorted"""
        return _respond(_storage().list_content_types(owner_id))


@file_ns.route("/uploads")
class Uploads(Resource):
    """Request an upload capability"""

    @file_ns.doc("request_upload", security="owner")
    @file_ns.expect(upload_request)
    @file_ns.response(201, "Upload capability issued", upload_ticket)
    @file_ns.response(400, "Bad Request", error_response)
    @file_ns.response(413, "File too large or quota exceeded", error_response)
    @file_ns.response(503, "Storage unavailable", error_response)
    @owner_required
    def post(self, owner_id):
        """
        Issue a short-lived upload URL

        The client PUTs the file body straight to the returned URL, then
        confirms the upload. Nothing is counted against the quota until then.
        """
        data = _json_body()
        if "size_bytes" not in data:
            return _missing("size_bytes")
        return _respond(_storage().request_upload(
            owner_id,
            data.get("file_name"),
            data.get("content_type"),
            data["size_bytes"],
        ))


@file_ns.route("/uploads/confirm")
class UploadConfirmation(Resource):
    """Confirm a completed upload"""

    @file_ns.doc("confirm_upload", security="owner")
    @file_ns.expect(confirm_request)
    @file_ns.response(200, "Upload recorded")
    @file_ns.response(400, "Bad Request", error_response)
    @file_ns.response(403, "Forbidden", error_response)
    @file_ns.response(404, "Upload Not Found", error_response)
    @file_ns.response(500, "Metadata write failed", error_response)
    @owner_required
    def post(self, owner_id):
        """
        Record an uploaded object and count it against the quota

        Confirming the same object key twice returns the same file.
        """
        data = _json_body()
        for field in ("object_key", "size_bytes"):
            if data.get(field) is None:
                return _missing(field)
        if not isinstance(data["object_key"], str):
            return create_error_response(ErrorCategory.INVALID_REQUEST, "object_key must be a string")
        return _respond(_storage().confirm_upload(
            owner_id,
            data["object_key"],
            data["size_bytes"],
            file_name=data.get("file_name"),
            content_type=data.get("content_type"),
            folder_id=data.get("folder_id"),
        ))


@file_ns.route("/<string:file_id>")
@file_ns.param("file_id", "The file identifier")
class FileItem(Resource):
    """Rename, move or delete a file"""

    @file_ns.doc("update_file", security="owner")
    @file_ns.expect(file_update_request)
    @file_ns.response(404, "File or folder not found", error_response)
    @owner_required
    def patch(self, file_id, owner_id):
        """Rename and/or move a file; the object key never changes"""
        data = _json_body()
        changes = {key: data[key] for key in ("name", "folder_id") if key in data}
        if "name" in changes and not isinstance(changes["name"], str):
            return create_error_response(ErrorCategory.INVALID_REQUEST, "name must be a string")
        return _respond(_storage().update_file(owner_id, file_id, changes))

    @file_ns.doc("delete_file", security="owner")
    @file_ns.response(200, "File deleted")
    @file_ns.response(404, "File Not Found", error_response)
    @file_ns.response(503, "Storage unavailable", error_response)
    @owner_required
    def delete(self, file_id, owner_id):
        """Delete a file's object and record and release its quota"""
        return _respond(_storage().delete_file(owner_id, file_id))


@file_ns.route("/<string:file_id>/download")
@file_ns.param("file_id", "The file identifier")
class FileDownload(Resource):
    """Request a download capability"""

    @file_ns.doc("request_download", security="owner")
    @file_ns.response(403, "Forbidden", error_response)
    @file_ns.response(404, "File Not Found", error_response)
    @owner_required
    def get(self, file_id, owner_id):
        """Issue a short-lived download URL for one of the caller's files"""
        return _respond(_storage().request_download(owner_id, file_id))


# =============================================================================
# Usage Namespace
# =============================================================================

usage_ns = Namespace("usage", description="Quota status")


@usage_ns.route("")
class Usage(Resource):
    @usage_ns.doc("get_usage", security="owner")
    @usage_ns.response(200, "Quota status", usage_model)
    @owner_required
    def get(self, owner_id):
        """Current usage, limits and tier of the caller"""
        return _respond(_storage().get_usage(owner_id))


# =============================================================================
# Folders Namespace
# =============================================================================

folder_ns = Namespace("folders", description="Folder operations")


@folder_ns.route("")
class FolderList(Resource):
    @folder_ns.doc("list_folders", security="owner")
    @owner_required
    def get(self, owner_id):
        """List the caller's folders"""
        return _respond(_storage().list_folders(owner_id))

    @folder_ns.doc("create_folder", security="owner")
    @folder_ns.expect(folder_request)
    @folder_ns.response(400, "Bad Request", error_response)
    @folder_ns.response(404, "Parent Folder Not Found", error_response)
    @owner_required
    def post(self, owner_id):
        """Create a folder"""
        data = _json_body()
        if not isinstance(data.get("name"), str):
            return _missing("name")
        return _respond(_storage().create_folder(owner_id, data["name"], data.get("parent_id")))


@folder_ns.route("/<string:folder_id>")
@folder_ns.param("folder_id", "The folder identifier")
class FolderItem(Resource):
    @folder_ns.doc("rename_folder", security="owner")
    @folder_ns.expect(folder_request)
    @folder_ns.response(404, "Folder Not Found", error_response)
    @owner_required
    def patch(self, folder_id, owner_id):
        """Rename a folder"""
        data = _json_body()
        if not isinstance(data.get("name"), str):
            return _missing("name")
        return _respond(_storage().rename_folder(owner_id, folder_id, data["name"]))

    @folder_ns.doc("delete_folder", security="owner")
    @folder_ns.response(404, "Folder Not Found", error_response)
    @owner_required
    def delete(self, folder_id, owner_id):
        """Delete a folder; its files and child folders move to the root"""
        return _respond(_storage().delete_folder(owner_id, folder_id))


# =============================================================================
# Shares Namespace - Owner share management
# =============================================================================

share_ns = Namespace("shares", description="Share link management")


@share_ns.route("")
class ShareList(Resource):
    @share_ns.doc("list_shares", security="owner")
    @owner_required
    def get(self, owner_id):
        """List the caller's shares, newest first, with their state"""
        return _respond(_shares().list_shares(owner_id))

    @share_ns.doc("create_share", security="owner")
    @share_ns.expect(share_request)
    @share_ns.response(201, "Share created", share_model)
    @share_ns.response(403, "Forbidden", error_response)
    @share_ns.response(404, "File Not Found", error_response)
    @owner_required
    def post(self, owner_id):
        """Create a public link to one of the caller's files"""
        data = _json_body()
        if not isinstance(data.get("file_id"), str):
            return _missing("file_id")
        return _respond(_shares().create_share(owner_id, data["file_id"], data.get("expires_in", "7d")))


@share_ns.route("/<string:share_id>")
@share_ns.param("share_id", "The share identifier")
class ShareItem(Resource):
    @share_ns.doc("extend_share", security="owner")
    @share_ns.expect(share_extend_request)
    @share_ns.response(200, "Share extended", share_model)
    @share_ns.response(410, "Share expired or revoked", error_response)
    @owner_required
    def patch(self, share_id, owner_id):
        """Replace a share's expiration with a new one counted from now"""
        data = _json_body()
        if data.get("expires_in") is None:
            return _missing("expires_in")
        return _respond(_shares().extend_share(owner_id, share_id, data["expires_in"]))

    @share_ns.doc("revoke_share", security="owner")
    @share_ns.response(200, "Share revoked", share_model)
    @share_ns.response(404, "Share Not Found", error_response)
    @owner_required
    def delete(self, share_id, owner_id):
        """Revoke a share; revoking twice is harmless"""
        return _respond(_shares().revoke_share(owner_id, share_id))


# =============================================================================
# Public Namespace - Anonymous share resolution
# =============================================================================

public_ns = Namespace("public", description="Anonymous share resolution")


@public_ns.route("/shares/<string:token>")
@public_ns.param("token", "The share token")
class PublicShare(Resource):
    @public_ns.doc("resolve_share")
    @public_ns.response(200, "File details and a download URL")
    @public_ns.response(404, "Share Not Found", error_response)
    @public_ns.response(410, "Share expired or revoked", error_response)
    @public_ns.response(429, "Too Many Requests", error_response)
    @share_rate_limit
    def get(self, token):
        """
        Resolve a share token

        Returns the shared file's name, size and type with a short-lived
        download URL. Rate limited per client IP.
        """
        return _respond(_shares().resolve_share(token))


# =============================================================================
# Blobs Namespace - Signed transfers for the local backend
# =============================================================================

blob_ns = Namespace("blobs", description="Signed object transfers (local backend only)")


def _capability_args(method: str) -> Optional[Dict[str, Any]]:
    args = request.args
    if args.get("method", "").upper() != method:
        return None
    try:
        expires = int(args.get("expires", ""))
        max_bytes = int(args["max_bytes"]) if args.get("max_bytes") else None
    except ValueError:
        return None
    return {"expires": expires, "max_bytes": max_bytes, "signature": args.get("signature", "")}


def _local_store() -> Optional[LocalBlobStore]:
    store = current_app.container.resolve(IBlobStore)
    return store if isinstance(store, LocalBlobStore) else None


@blob_ns.route("/<string:namespace>/<path:key>")
@blob_ns.param("namespace", "Owner namespace")
@blob_ns.param("key", "Object key")
class Blob(Resource):
    @blob_ns.doc("put_blob")
    @blob_ns.response(200, "Object stored")
    @blob_ns.response(403, "Invalid or expired capability, or object already stored", error_response)
    @blob_ns.response(413, "Body exceeds the capability's limit", error_response)
    def put(self, namespace, key):
        """Store the request body under a signed upload capability"""
        store = _local_store()
        if store is None:
            return create_error_response(ErrorCategory.FILE_NOT_FOUND, "Local blob backend disabled")

        capability = _capability_args("PUT")
        if capability is None or not store.verify_capability("PUT", namespace, key, **capability):
            current_app.logger.warning(f"Rejected upload capability for {namespace}/{key}")
            return create_error_response(ErrorCategory.FORBIDDEN, "Invalid or expired capability")

        max_bytes = capability["max_bytes"]
        if max_bytes is not None and (request.content_length or 0) > max_bytes:
            return create_error_response(ErrorCategory.FILE_TOO_LARGE, "Body exceeds capability limit")

        try:
            written = store.write_object(namespace, key, request.stream, max_bytes=max_bytes)
        except BlobTooLargeError as e:
            return create_error_response(ErrorCategory.FILE_TOO_LARGE, str(e))
        except BlobExistsError as e:
            current_app.logger.warning(f"Refused overwrite of {namespace}/{key}")
            return create_error_response(ErrorCategory.FORBIDDEN, str(e))
        except ValueError as e:
            return create_error_response(ErrorCategory.INVALID_REQUEST, str(e))
        except Exception as e:
            current_app.logger.exception(f"Failed to store {namespace}/{key}: {e}")
            return create_error_response(ErrorCategory.STORAGE_BACKEND_UNAVAILABLE, str(e))

        return {"object_key": key, "size_bytes": written}, 200

    @blob_ns.doc("get_blob")
    @blob_ns.response(200, "Object content")
    @blob_ns.response(403, "Invalid or expired capability", error_response)
    @blob_ns.response(404, "Object Not Found", error_response)
    def get(self, namespace, key):
        """Stream an object under a signed download capability"""
        store = _local_store()
        if store is None:
            return create_error_response(ErrorCategory.FILE_NOT_FOUND, "Local blob backend disabled")

        capability = _capability_args("GET")
        if capability is None or not store.verify_capability("GET", namespace, key, **capability):
            current_app.logger.warning(f"Rejected download capability for {namespace}/{key}")
            return create_error_response(ErrorCategory.FORBIDDEN, "Invalid or expired capability")

        try:
            stream = store.open_object(namespace, key)
        except ValueError as e:
            return create_error_response(ErrorCategory.INVALID_REQUEST, str(e))
        except Exception as e:
            current_app.logger.exception(f"Failed to read {namespace}/{key}: {e}")
            return create_error_response(ErrorCategory.STORAGE_BACKEND_UNAVAILABLE, str(e))
        if stream is None:
            return create_error_response(ErrorCategory.FILE_NOT_FOUND, f"No object at {key}")

        return send_file(
            stream,
            mimetype="application/octet-stream",
            as_attachment=True,
            download_name=key.rsplit("/", 1)[-1],
        )


# =============================================================================
# System Namespace - Health
# =============================================================================

system_ns = Namespace("system", description="System health")


@system_ns.route("/health")
class Health(Resource):
    @system_ns.doc("health_check")
    @system_ns.response(200, "Healthy", health_response)
    @system_ns.response(503, "Service Degraded", health_response)
    def get(self):
        """
        Check the metadata store, the blob backend and Redis

        Redis only backs rate limiting, which degrades open, so a Redis
        outage is reported without failing the check.
        """
        container = current_app.container
        health_status = {
            "status": "ok",
            "database": "unknown",
            "blob_store": "unknown",
            "redis": "not_configured",
        }

        try:
            with container.resolve(Engine).connect() as connection:
                connection.execute(text("SELECT 1"))
            health_status["database"] = "connected"
        except Exception as e:
            current_app.logger.warning(f"Database health check failed: {e}")
            health_status["database"] = "disconnected"
            health_status["status"] = "degraded"

        store = container.resolve(IBlobStore)
        health_check = getattr(store, "health_check", None)
        if health_check is None:
            health_status["blob_store"] = "available"
        elif health_check():
            health_status["blob_store"] = "connected"
        else:
            health_status["blob_store"] = "disconnected"
            health_status["status"] = "degraded"

        if container.is_registered(redis.Redis):
            connected = redis_health_check(container.resolve(redis.Redis))
            health_status["redis"] = "connected" if connected else "disconnected"

        status_code = 200 if health_status["status"] == "ok" else 503
        return health_status, status_code
