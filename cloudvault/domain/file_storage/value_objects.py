"""
File Storage Value Objects

Immutable value objects for object keys, namespaces, tiers and transfer
capabilities.
"""

import hashlib
import re
import unicodedata
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional

from ..errors import InvalidRequestError

KEY_ROOT = "users"
MAX_NAME_LENGTH = 200
DEFAULT_FILE_NAME = "file"

_OWNER_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
_NAME_ALLOWED_PUNCTUATION = set(" .-_()")
_WHITESPACE = re.compile(r"\s+")
_NAMESPACE_INVALID = re.compile(r"[^a-z0-9-]+")

MIB = 1024 * 1024
GIB = 1024 * MIB


def sanitize_file_name(name: Optional[str], fallback: str = DEFAULT_FILE_NAME) -> str:
    """
    Reduce a caller supplied file name to a single safe path segment.

    Path separators are treated as boundaries (only the last segment is
    kept), control and format characters are removed rather than replaced,
    leading dots are stripped so the result can never be "." or "..", and
    the name is truncated while keeping its extension.

    Args:
        name: Raw name from the caller
        fallback: Name used when nothing survives sanitization

    Returns:
        Sanitized name, never empty
    """
    if not name:
        return fallback

    normalized = unicodedata.normalize("NFKC", name)
    # Only the last path segment survives, whatever the separator
    segment = re.split(r"[/\\]", normalized)[-1]

    kept = []
    for char in segment:
        if unicodedata.category(char).startswith("C"):
            continue
        if char.isalnum() or char in _NAME_ALLOWED_PUNCTUATION or char.isspace():
            kept.append(char)

    cleaned = _WHITESPACE.sub("_", "".join(kept).strip())
    cleaned = cleaned.lstrip(".")

    if len(cleaned) > MAX_NAME_LENGTH:
        stem, dot, extension = cleaned.rpartition(".")
        if dot and stem and len(extension) <= 16:
            cleaned = stem[: MAX_NAME_LENGTH - len(extension) - 1] + "." + extension
        else:
            cleaned = cleaned[:MAX_NAME_LENGTH]

    return cleaned or fallback


def sanitize_display_name(name: Optional[str]) -> str:
    """
    Sanitize a display name for a file or folder.

    Raises:
        InvalidRequestError: If nothing usable is left
    """
    cleaned = sanitize_file_name(name, fallback="")
    if not cleaned:
        raise InvalidRequestError("Name must contain at least one visible character")
    return cleaned


def owner_segment(owner_id: str) -> str:
    """
    Key segment identifying an owner.

    Simple ids are used as-is; anything else is replaced by a digest so
    owner ids can never introduce separators into object keys.
    """
    if not owner_id:
        raise InvalidRequestError("Owner id is required")
    if _OWNER_SEGMENT_PATTERN.match(owner_id):
        return owner_id
    return "h" + hashlib.sha256(owner_id.encode("utf-8")).hexdigest()[:32]


def _without_reserved(text: str) -> str:
    # Bucket names may not contain "google"
    while "google" in text:
        text = text.replace("google", "ggl")
    return text


def namespace_for(owner_id: str, prefix: str = "cloudvault-user") -> str:
    """
    Derive the deterministic namespace (bucket) name for an owner.

    The same owner always maps to the same name, so retried provisioning
    targets the same namespace. Names follow bucket naming rules:
    lowercase letters, digits and dashes, 3 to 63 characters, never
    containing "google" or starting with "goog". The digest keeps owners
    distinct when their cleaned ids collide.

    Args:
        owner_id: Owner identifier
        prefix: Deployment wide namespace prefix

    Returns:
        Namespace name
    """
    if not owner_id:
        raise InvalidRequestError("Owner id is required")

    digest = hashlib.sha256(owner_id.encode("utf-8")).hexdigest()[:8]
    cleaned_prefix = _without_reserved(_NAMESPACE_INVALID.sub("-", prefix.lower()).strip("-")) or "ns"
    if cleaned_prefix.startswith("goog"):
        cleaned_prefix = "ns-" + cleaned_prefix
    cleaned_owner = _without_reserved(_NAMESPACE_INVALID.sub("-", owner_id.lower()))
    cleaned_owner = cleaned_owner.strip("-")[:24].strip("-")

    parts = [cleaned_prefix[:29].strip("-")]
    if cleaned_owner:
        parts.append(cleaned_owner)
    parts.append(digest)
    return "-".join(parts)[:63]


@dataclass(frozen=True)
class ObjectKey:
    """
    Value object for the key of a stored object.

    Layout: ``users/<owner segment>/<timestamp>-<unique id>-<safe name>``.
    The owner scoped prefix makes ownership checkable from the key alone.
    """

    value: str

    def __post_init__(self):
        if not self.value or not isinstance(self.value, str):
            raise InvalidRequestError("Object key must be a non-empty string")
        parts = self.value.split("/")
        if len(parts) != 3 or parts[0] != KEY_ROOT or not all(parts):
            raise InvalidRequestError(f"Malformed object key: {self.value!r}")
        if any(part in (".", "..") for part in parts):
            raise InvalidRequestError(f"Malformed object key: {self.value!r}")

    @classmethod
    def generate(cls, owner_id: str, file_name: Optional[str], now: datetime) -> "ObjectKey":
        """
        Build a new collision resistant key for an upload.

        Args:
            owner_id: Owner of the upload
            file_name: Caller supplied name (sanitized here)
            now: Current time, used for the sortable prefix of the suffix

        Returns:
            New ObjectKey
        """
        stamp = now.strftime("%Y%m%dT%H%M%S%f")
        suffix = f"{stamp}-{uuid.uuid4().hex}-{sanitize_file_name(file_name)}"
        return cls(f"{KEY_ROOT}/{owner_segment(owner_id)}/{suffix}")

    @property
    def owner_prefix(self) -> str:
        return self.value.split("/")[1]

    @property
    def file_name(self) -> str:
        """Sanitized name embedded in the key."""
        leaf = self.value.split("/")[2]
        parts = leaf.split("-", 2)
        return parts[2] if len(parts) == 3 and parts[2] else leaf

    def belongs_to(self, owner_id: str) -> bool:
        return self.owner_prefix == owner_segment(owner_id)

    def __str__(self) -> str:
        return self.value


class StorageTier(Enum):
    """Subscription tier that determines quota limits."""

    FREE = "free"
    PREMIUM = "premium"


@dataclass(frozen=True)
class QuotaPolicy:
    """
    Limits for one tier.

    Attributes:
        tier: Tier the limits belong to
        max_total_bytes: Total bytes an owner may store
        max_file_bytes: Largest single file allowed
    """

    tier: StorageTier
    max_total_bytes: int
    max_file_bytes: int

    def __post_init__(self):
        if self.max_total_bytes < 0 or self.max_file_bytes < 0:
            raise ValueError("Quota limits must not be negative")

    def remaining(self, used_bytes: int) -> int:
        return max(0, self.max_total_bytes - used_bytes)


DEFAULT_FREE_POLICY = QuotaPolicy(StorageTier.FREE, 250 * MIB, 50 * MIB)
DEFAULT_PREMIUM_POLICY = QuotaPolicy(StorageTier.PREMIUM, 10 * GIB, 5 * GIB)


class QuotaPolicyResolver:
    """Maps an owner to the quota policy of their tier."""

    def __init__(
        self,
        free: QuotaPolicy = DEFAULT_FREE_POLICY,
        premium: QuotaPolicy = DEFAULT_PREMIUM_POLICY,
        premium_owner_ids: Iterable[str] = (),
    ):
        self.free = free
        self.premium = premium
        self.premium_owner_ids: FrozenSet[str] = frozenset(premium_owner_ids)

    def tier_for(self, owner_id: str) -> StorageTier:
        if owner_id in self.premium_owner_ids:
            return StorageTier.PREMIUM
        return StorageTier.FREE

    def policy_for(self, owner_id: str) -> QuotaPolicy:
        if self.tier_for(owner_id) is StorageTier.PREMIUM:
            return self.premium
        return self.free

    def max_file_size_for(self, owner_id: str) -> int:
        return self.policy_for(owner_id).max_file_bytes


@dataclass(frozen=True)
class TransferHandle:
    """
    Signed capability for one operation on one object.

    Attributes:
        url: URL the caller uses directly against the blob backend
        method: HTTP method the capability is valid for
        expires_at: When the backend stops honoring the capability
        headers: Headers the caller must send with the request
    """

    url: str
    method: str
    expires_at: datetime
    headers: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "method": self.method,
            "expires_at": self.expires_at.isoformat(),
            "headers": dict(self.headers),
        }


@dataclass(frozen=True)
class UploadTicket:
    """Result of request_upload."""

    handle: TransferHandle
    object_key: str
    expires_at: datetime
    max_bytes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "upload": self.handle.to_dict(),
            "object_key": self.object_key,
            "expires_at": self.expires_at.isoformat(),
            "max_bytes": self.max_bytes,
        }


@dataclass(frozen=True)
class DownloadTicket:
    """Result of request_download."""

    handle: TransferHandle
    expires_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "download": self.handle.to_dict(),
            "expires_at": self.expires_at.isoformat(),
        }


class SortField(Enum):
    NAME = "name"
    CREATED_AT = "created_at"
    SIZE_BYTES = "size_bytes"
    CONTENT_TYPE = "content_type"


@dataclass(frozen=True)
class FileFilter:
    """
    Listing criteria for an owner's files.

    Attributes:
        search: Case-insensitive substring of the name
        content_type: Exact content type
        folder_id: Restrict to a folder; None means every folder
        root_only: Restrict to files with no folder
        sort_by: Field to order by
        descending: Sort direction
    """

    search: Optional[str] = None
    content_type: Optional[str] = None
    folder_id: Optional[str] = None
    root_only: bool = False
    sort_by: SortField = SortField.CREATED_AT
    descending: bool = True

    @classmethod
    def from_params(
        cls,
        search: Optional[str] = None,
        content_type: Optional[str] = None,
        folder_id: Optional[str] = None,
        sort_by: Optional[str] = None,
        order: Optional[str] = None,
    ) -> "FileFilter":
        """
        Build a filter from raw query parameters.

        ``folder_id="root"`` selects files that are not in any folder.

        Raises:
            InvalidRequestError: For unknown sort fields or directions
        """
        try:
            sort_field = SortField(sort_by) if sort_by else SortField.CREATED_AT
        except ValueError:
            raise InvalidRequestError(f"Unknown sort field: {sort_by}")

        if order not in (None, "", "asc", "desc"):
            raise InvalidRequestError(f"Unknown sort order: {order}")

        root_only = folder_id == "root"
        return cls(
            search=search or None,
            content_type=content_type or None,
            folder_id=None if root_only else (folder_id or None),
            root_only=root_only,
            sort_by=sort_field,
            descending=order != "asc",
        )
