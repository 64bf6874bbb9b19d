"""
Unit tests for the caller identity decorator and client IP extraction.
"""

import pytest
from flask import Flask

from cloudvault.api.owner import OWNER_HEADER, owner_required
from cloudvault.api.rate_limit_decorator import extract_client_ip


@pytest.fixture
def app():
    app = Flask(__name__)

    @app.route("/whoami")
    @owner_required
    def whoami(owner_id):
        return {"owner_id": owner_id}

    return app


class TestOwnerRequired:
    """Test X-Owner-Id handling."""

    def test_owner_is_passed_to_route(self, app):
        response = app.test_client().get("/whoami", headers={OWNER_HEADER: " alice "})

        assert response.status_code == 200
        assert response.get_json() == {"owner_id": "alice"}

    @pytest.mark.parametrize("headers", [
        {},
        {OWNER_HEADER: ""},
        {OWNER_HEADER: "two words"},
        {OWNER_HEADER: "x" * 129},
    ])
    def test_missing_or_malformed_owner(self, app, headers):
        response = app.test_client().get("/whoami", headers=headers)

        assert response.status_code == 401
        assert response.get_json()["error"] == "authentication_required"


class TestExtractClientIP:
    """Test client address resolution behind proxies."""

    def test_first_forwarded_address(self, app):
        with app.test_request_context(headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"}) as ctx:
            assert extract_client_ip(ctx.request) == "203.0.113.9"

    def test_malformed_forwarded_header_falls_back(self, app):
        with app.test_request_context(
            headers={"X-Forwarded-For": "not-an-ip"},
            environ_base={"REMOTE_ADDR": "192.0.2.44"},
        ) as ctx:
            assert extract_client_ip(ctx.request) == "192.0.2.44"

    def test_remote_addr(self, app):
        with app.test_request_context(environ_base={"REMOTE_ADDR": "192.0.2.45"}) as ctx:
            assert extract_client_ip(ctx.request) == "192.0.2.45"
