"""
Caller Identity

The upstream gateway authenticates users and forwards their id in the
X-Owner-Id header. Routes decorated with owner_required receive it as the
``owner_id`` keyword argument.
"""

import re
from functools import wraps

from flask import request

from ..domain.errors import ErrorCategory, create_error_response

OWNER_HEADER = "X-Owner-Id"

_OWNER_ID_PATTERN = re.compile(r"^[^\s\x00-\x1f\x7f]{1,128}$")


def owner_required(f):
    """Reject requests without a usable X-Owner-Id header with 401."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        owner_id = (request.headers.get(OWNER_HEADER) or "").strip()
        if not _OWNER_ID_PATTERN.match(owner_id):
            return create_error_response(
                ErrorCategory.AUTHENTICATION_REQUIRED,
                f"Missing or malformed {OWNER_HEADER} header",
            )
        kwargs["owner_id"] = owner_id
        return f(*args, **kwargs)

    return decorated_function
