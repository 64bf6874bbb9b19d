"""
API v1 - CloudVault REST API

Versioned endpoints with OpenAPI/Swagger documentation.
"""

from flask import Blueprint
from flask_restx import Api

api_v1_bp = Blueprint("api_v1", __name__, url_prefix="/api/v1")

api = Api(
    api_v1_bp,
    version="1.0",
    title="CloudVault API",
    description="Per-owner file storage with direct transfers, quotas and share links",
    doc="/docs",
    authorizations={
        "owner": {"type": "apiKey", "in": "header", "name": "X-Owner-Id"},
    },
)

# Import namespaces after api is created to avoid circular imports
from .namespaces import (  # noqa: E402
    blob_ns,
    file_ns,
    folder_ns,
    public_ns,
    share_ns,
    system_ns,
    usage_ns,
)

api.add_namespace(file_ns, path="/files")
api.add_namespace(usage_ns, path="/usage")
api.add_namespace(folder_ns, path="/folders")
api.add_namespace(share_ns, path="/shares")
api.add_namespace(public_ns, path="/public")
api.add_namespace(blob_ns, path="/blobs")
api.add_namespace(system_ns, path="")
