"""
API Models for request/response validation and Swagger documentation
"""

from flask_restx import fields

from . import api

# =============================================================================
# Request Models
# =============================================================================

upload_request = api.model(
    "UploadRequest",
    {
        "file_name": fields.String(required=True, description="Name of the file", example="report.pdf"),
        "content_type": fields.String(description="MIME type", example="application/pdf"),
        "size_bytes": fields.Integer(required=True, description="Size the client will upload", min=0),
    },
)

confirm_request = api.model(
    "ConfirmUploadRequest",
    {
        "object_key": fields.String(required=True, description="Key returned by the upload request"),
        "size_bytes": fields.Integer(required=True, description="Size of the uploaded object", min=0),
        "file_name": fields.String(description="Display name; defaults to the name in the key"),
        "content_type": fields.String(description="MIME type"),
        "folder_id": fields.String(description="Folder to place the file in"),
    },
)

file_update_request = api.model(
    "FileUpdateRequest",
    {
        "name": fields.String(description="New display name"),
        "folder_id": fields.String(description="Target folder; null moves the file to the root"),
    },
)

folder_request = api.model(
    "FolderRequest",
    {
        "name": fields.String(required=True, description="Folder name", example="Invoices"),
        "parent_id": fields.String(description="Parent folder id"),
    },
)

share_request = api.model(
    "ShareRequest",
    {
        "file_id": fields.String(required=True, description="File to share"),
        "expires_in": fields.String(
            description="Share lifetime",
            enum=["1h", "24h", "7d", "30d", "never"],
            default="7d",
        ),
    },
)

share_extend_request = api.model(
    "ShareExtendRequest",
    {
        "expires_in": fields.String(
            required=True,
            description="New lifetime, counted from now",
            enum=["1h", "24h", "7d", "30d", "never"],
        ),
    },
)

# =============================================================================
# Response Models
# =============================================================================

error_response = api.model(
    "ErrorResponse",
    {
        "error": fields.String(description="Error category"),
        "title": fields.String(description="Short error title"),
        "message": fields.String(description="User-facing explanation"),
        "action": fields.String(description="Suggested next step"),
        "retryable": fields.Boolean(description="Whether retrying may succeed"),
    },
)

transfer_handle = api.model(
    "TransferHandle",
    {
        "url": fields.String(description="Signed URL"),
        "method": fields.String(description="HTTP method the URL accepts"),
        "expires_at": fields.DateTime(description="Expiry of the capability"),
        "headers": fields.Raw(description="Headers the client must send"),
    },
)

upload_ticket = api.model(
    "UploadTicket",
    {
        "upload": fields.Nested(transfer_handle),
        "object_key": fields.String(description="Key to confirm after the upload"),
        "expires_at": fields.DateTime(description="Expiry of the capability"),
        "max_bytes": fields.Integer(description="Largest body the capability accepts"),
    },
)

file_model = api.model(
    "File",
    {
        "id": fields.String,
        "owner_id": fields.String,
        "name": fields.String,
        "size_bytes": fields.Integer,
        "content_type": fields.String,
        "object_key": fields.String,
        "folder_id": fields.String,
        "created_at": fields.DateTime,
    },
)

usage_model = api.model(
    "Usage",
    {
        "tier": fields.String(enum=["free", "premium"]),
        "used_bytes": fields.Integer,
        "limit_bytes": fields.Integer,
        "remaining_bytes": fields.Integer,
        "max_file_bytes": fields.Integer,
        "percent_used": fields.Float,
    },
)

share_model = api.model(
    "Share",
    {
        "id": fields.String,
        "file_id": fields.String,
        "owner_id": fields.String,
        "token": fields.String,
        "policy": fields.String,
        "created_at": fields.DateTime,
        "expires_at": fields.DateTime,
        "revoked": fields.Boolean,
        "state": fields.String(enum=["active", "expired", "revoked"]),
    },
)

health_response = api.model(
    "HealthResponse",
    {
        "status": fields.String(description="Overall status", enum=["ok", "degraded"]),
        "database": fields.String(description="Metadata store status"),
        "blob_store": fields.String(description="Blob backend status"),
        "redis": fields.String(description="Rate limit store status"),
    },
)
