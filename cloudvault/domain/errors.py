"""
Error Handling Module

Defines domain exceptions and error categories for the application.
Domain exceptions are pure and have no external dependencies.
Application exceptions can have infrastructure concerns like HTTP status codes.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Error category enumeration for structured error handling."""

    QUOTA_EXCEEDED = "quota_exceeded"
    FILE_TOO_LARGE = "file_too_large"
    PROVISIONING_FAILED = "provisioning_failed"
    UPLOAD_NOT_FOUND = "upload_not_found"
    STORAGE_BACKEND_UNAVAILABLE = "storage_backend_unavailable"
    METADATA_WRITE_FAILED = "metadata_write_failed"
    SHARE_EXPIRED = "share_expired"
    SHARE_REVOKED = "share_revoked"
    SHARE_NOT_FOUND = "share_not_found"
    FORBIDDEN = "forbidden"
    FILE_NOT_FOUND = "file_not_found"
    FOLDER_NOT_FOUND = "folder_not_found"
    INVALID_REQUEST = "invalid_request"
    AUTHENTICATION_REQUIRED = "authentication_required"
    RATE_LIMITED = "rate_limited"
    SYSTEM_ERROR = "system_error"


# User-friendly error messages with actionable guidance
ERROR_MESSAGES: Dict[ErrorCategory, Dict[str, str]] = {
    ErrorCategory.QUOTA_EXCEEDED: {
        "title": "Storage Quota Exceeded",
        "message": "This upload would exceed the storage available on your plan.",
        "action": "Delete some files or upgrade to premium for more storage.",
    },
    ErrorCategory.FILE_TOO_LARGE: {
        "title": "File Too Large",
        "message": "The file exceeds the maximum size allowed for a single file on your plan.",
        "action": "Upload a smaller file or upgrade to premium for larger files.",
    },
    ErrorCategory.PROVISIONING_FAILED: {
        "title": "Storage Not Ready",
        "message": "Your storage space could not be prepared.",
        "action": "Please try again in a few moments.",
    },
    ErrorCategory.UPLOAD_NOT_FOUND: {
        "title": "Upload Not Found",
        "message": "No uploaded content was found for this file.",
        "action": "Upload the file again before confirming it.",
    },
    ErrorCategory.STORAGE_BACKEND_UNAVAILABLE: {
        "title": "Storage Unavailable",
        "message": "The storage service is temporarily unavailable.",
        "action": "Please try again in a few moments.",
    },
    ErrorCategory.METADATA_WRITE_FAILED: {
        "title": "Could Not Save File Details",
        "message": "Your file was uploaded but its details could not be saved.",
        "action": "Confirm the upload again. If the problem persists, contact support.",
    },
    ErrorCategory.SHARE_EXPIRED: {
        "title": "Link Expired",
        "message": "This share link has expired.",
        "action": "Ask the owner of the file for a new link.",
    },
    ErrorCategory.SHARE_REVOKED: {
        "title": "Link Revoked",
        "message": "This share link has been revoked by its owner.",
        "action": "Ask the owner of the file for a new link.",
    },
    ErrorCategory.SHARE_NOT_FOUND: {
        "title": "Link Not Found",
        "message": "This share link does not exist.",
        "action": "Check that the link was copied completely.",
    },
    ErrorCategory.FORBIDDEN: {
        "title": "Access Denied",
        "message": "You do not have access to this resource.",
        "action": "Make sure you are signed in with the account that owns it.",
    },
    ErrorCategory.FILE_NOT_FOUND: {
        "title": "File Not Found",
        "message": "The requested file could not be found or has been deleted.",
        "action": "Refresh your file list and try again.",
    },
    ErrorCategory.FOLDER_NOT_FOUND: {
        "title": "Folder Not Found",
        "message": "The requested folder could not be found or has been deleted.",
        "action": "Refresh your folder list and try again.",
    },
    ErrorCategory.INVALID_REQUEST: {
        "title": "Invalid Request",
        "message": "The request is missing required information or contains invalid data.",
        "action": "Please check your input and try again.",
    },
    ErrorCategory.AUTHENTICATION_REQUIRED: {
        "title": "Sign In Required",
        "message": "This operation requires an authenticated user.",
        "action": "Sign in and try again.",
    },
    ErrorCategory.RATE_LIMITED: {
        "title": "Too Many Requests",
        "message": "You've made too many requests in a short time.",
        "action": "Please wait a moment before trying again.",
    },
    ErrorCategory.SYSTEM_ERROR: {
        "title": "System Error",
        "message": "An unexpected error occurred while processing your request.",
        "action": "Please try again later. If the problem persists, contact support.",
    },
}


HTTP_STATUS_CODES: Dict[ErrorCategory, int] = {
    ErrorCategory.QUOTA_EXCEEDED: 413,
    ErrorCategory.FILE_TOO_LARGE: 413,
    ErrorCategory.PROVISIONING_FAILED: 503,
    ErrorCategory.UPLOAD_NOT_FOUND: 404,
    ErrorCategory.STORAGE_BACKEND_UNAVAILABLE: 503,
    ErrorCategory.METADATA_WRITE_FAILED: 500,
    ErrorCategory.SHARE_EXPIRED: 410,
    ErrorCategory.SHARE_REVOKED: 410,
    ErrorCategory.SHARE_NOT_FOUND: 404,
    ErrorCategory.FORBIDDEN: 403,
    ErrorCategory.FILE_NOT_FOUND: 404,
    ErrorCategory.FOLDER_NOT_FOUND: 404,
    ErrorCategory.INVALID_REQUEST: 400,
    ErrorCategory.AUTHENTICATION_REQUIRED: 401,
    ErrorCategory.RATE_LIMITED: 429,
    ErrorCategory.SYSTEM_ERROR: 500,
}


def status_code_for(category: ErrorCategory) -> int:
    """Return the HTTP status code used for an error category."""
    return HTTP_STATUS_CODES.get(category, 500)


# ============================================================================
# Domain Exceptions (Pure - No External Dependencies)
# ============================================================================

class DomainError(Exception):
    """
    Base exception for all domain errors.

    Every subclass names the ErrorCategory it reports and whether a caller
    may retry the same operation. Domain errors can optionally wrap the
    original error for context.
    """

    category: ErrorCategory = ErrorCategory.SYSTEM_ERROR
    retryable: bool = False

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        """
        Initialize domain error.

        Args:
            message: Error message
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.original_error = original_error


class QuotaExceededError(DomainError):
    """Raised when an upload would take the owner past the tier's total quota."""

    category = ErrorCategory.QUOTA_EXCEEDED


class FileTooLargeError(DomainError):
    """Raised when a declared size is above the tier's per-file cap."""

    category = ErrorCategory.FILE_TOO_LARGE


class ProvisioningFailedError(DomainError):
    """
    Raised when an owner's storage namespace cannot be created.

    Transient: the whole operation may be retried later. No binding is
    written to the catalog when this is raised.
    """

    category = ErrorCategory.PROVISIONING_FAILED
    retryable = True


class UploadNotFoundError(DomainError):
    """Raised when confirm is called for an object key with no stored object."""

    category = ErrorCategory.UPLOAD_NOT_FOUND


class StorageBackendUnavailableError(DomainError):
    """Raised by blob store adapters for transient backend failures."""

    category = ErrorCategory.STORAGE_BACKEND_UNAVAILABLE
    retryable = True


class MetadataWriteFailedError(DomainError):
    """
    Raised when a catalog write fails permanently.

    When raised from confirm_upload the caller may hold an orphaned blob
    that still needs reconciliation.
    """

    category = ErrorCategory.METADATA_WRITE_FAILED


class ShareExpiredError(DomainError):
    """Raised when a share token's expiration time has passed."""

    category = ErrorCategory.SHARE_EXPIRED


class ShareRevokedError(DomainError):
    """Raised when a share token was revoked by its owner."""

    category = ErrorCategory.SHARE_REVOKED


class ShareNotFoundError(DomainError):
    """Raised when no share exists for a token or share id."""

    category = ErrorCategory.SHARE_NOT_FOUND


class ForbiddenError(DomainError):
    """Raised when the caller does not own the resource it is acting on."""

    category = ErrorCategory.FORBIDDEN


class FileNotFoundError(DomainError):
    """Raised when a file record does not exist."""

    category = ErrorCategory.FILE_NOT_FOUND


class FolderNotFoundError(DomainError):
    """Raised when a folder does not exist or belongs to someone else."""

    category = ErrorCategory.FOLDER_NOT_FOUND


class InvalidRequestError(DomainError):
    """Raised for malformed input (negative sizes, empty names, unknown policies)."""

    category = ErrorCategory.INVALID_REQUEST


class DuplicateShareTokenError(DomainError):
    """
    Raised by share repositories when a generated token collides.

    The issuer handles it by generating a new token; it never reaches callers.
    """

    category = ErrorCategory.METADATA_WRITE_FAILED


# ============================================================================
# Application Layer Exceptions (Can have infrastructure concerns)
# ============================================================================

class ApplicationError(Exception):
    """
    Base application error with category and user-friendly messaging.

    This is an application-layer concern that bridges domain errors
    with user-facing error messages and HTTP responses.
    """

    def __init__(
        self,
        category: ErrorCategory,
        technical_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize application error.

        Args:
            category: Error category
            technical_message: Technical error details for logging
            context: Additional context information
        """
        self.category = category
        self.technical_message = technical_message or ""
        self.context = context or {}

        error_info = ERROR_MESSAGES.get(
            category, ERROR_MESSAGES[ErrorCategory.SYSTEM_ERROR]
        )
        self.title = error_info["title"]
        self.message = error_info["message"]
        self.action = error_info["action"]
        self.http_status_code = status_code_for(category)

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for API response.

        Returns:
            Dictionary with error information
        """
        return {
            "error": self.category.value,
            "title": self.title,
            "message": self.message,
            "action": self.action,
        }


class RateLimitExceededError(ApplicationError):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        category: ErrorCategory = ErrorCategory.RATE_LIMITED,
        technical_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(category, technical_message, context)
        self.http_status_code = 429


def create_error_response(
    category: ErrorCategory,
    technical_message: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    status_code: Optional[int] = None,
) -> tuple[Dict[str, Any], int]:
    """
    Create a structured error response for API endpoints.

    Args:
        category: Error category
        technical_message: Technical error details for logging
        context: Additional context information
        status_code: HTTP status code, defaults to the category's status

    Returns:
        Tuple of (error_dict, status_code)
    """
    error = ApplicationError(category, technical_message, context)
    return error.to_dict(), status_code or error.http_status_code
