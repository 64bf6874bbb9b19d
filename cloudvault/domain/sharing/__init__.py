"""
Sharing Domain

Expiring, revocable public links to single files.
"""

from .entities import ShareLink, ShareState
from .repositories import ShareLinkRepository
from .services import ShareLinkIssuer
from .value_objects import ExpirationPolicy, InvalidShareTokenError, ShareToken

__all__ = [
    "ExpirationPolicy",
    "InvalidShareTokenError",
    "ShareLink",
    "ShareLinkIssuer",
    "ShareLinkRepository",
    "ShareState",
    "ShareToken",
]
