"""
Signed URL Service

HMAC-SHA256 signed capabilities for the local blob backend. A capability
names one method on one object and carries its own expiry, so the API can
verify it without any server-side state.
"""

import hashlib
import hmac
from calendar import timegm
from datetime import datetime
from typing import Optional
from urllib.parse import quote, urlencode

BLOB_ROUTE = "/api/v1/blobs"


class UrlSigner:
    """
    Generates and verifies signed blob URLs.

    URL shape:
        <base>/api/v1/blobs/<namespace>/<key>?method=PUT&expires=<epoch>
            [&max_bytes=<n>]&signature=<hex>
    """

    def __init__(self, secret_key: str, base_url: str = ""):
        """
        Initialize UrlSigner.

        Args:
            secret_key: Secret key for HMAC signing
            base_url: Public origin prepended to generated URLs ("" for relative URLs)
        """
        if not secret_key:
            raise ValueError("secret_key is required for signed URLs")
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")

    @staticmethod
    def epoch(value: datetime) -> int:
        """Seconds since the epoch for a naive UTC datetime."""
        return timegm(value.utctimetuple())

    def _generate_signature(
        self, method: str, namespace: str, key: str, expires: int, max_bytes: Optional[int]
    ) -> str:
        message = "\n".join([
            method.upper(),
            namespace,
            key,
            str(expires),
            "" if max_bytes is None else str(max_bytes),
        ])
        return hmac.new(
            self.secret_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256
        ).hexdigest()

    def generate_signed_url(
        self,
        method: str,
        namespace: str,
        key: str,
        expires_at: datetime,
        max_bytes: Optional[int] = None,
    ) -> str:
        """
        Generate a signed URL for one method on one object.

        Args:
            method: HTTP method the URL is valid for
            namespace: Namespace of the object
            key: Object key
            expires_at: Expiry (naive UTC)
            max_bytes: Largest accepted body, for PUT capabilities

        Returns:
            Signed URL string
        """
        expires = self.epoch(expires_at)
        params = {"method": method.upper(), "expires": expires}
        if max_bytes is not None:
            params["max_bytes"] = max_bytes
        params["signature"] = self._generate_signature(method, namespace, key, expires, max_bytes)
        path = f"{BLOB_ROUTE}/{quote(namespace, safe='')}/{quote(key, safe='/')}"
        return f"{self.base_url}{path}?{urlencode(params)}"

    def validate_signature(
        self,
        method: str,
        namespace: str,
        key: str,
        expires: int,
        signature: str,
        max_bytes: Optional[int] = None,
    ) -> bool:
        """
        Validate a signature; constant-time comparison.

        Expiry is checked separately by the caller.
        """
        expected = self._generate_signature(method, namespace, key, expires, max_bytes)
        return hmac.compare_digest(signature or "", expected)
