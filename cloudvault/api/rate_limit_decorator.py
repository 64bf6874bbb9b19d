"""
Rate Limit Decorator

Applies the per-IP share resolution limits to Flask routes and adds
X-RateLimit-* headers to their responses.
"""

import ipaddress
from functools import wraps

from flask import current_app, make_response, request

from ..application.rate_limit_service import RateLimitService
from ..domain.errors import RateLimitExceededError


def share_rate_limit(f):
    """
    Decorator limiting anonymous share resolution per client IP.

    Exceeded limits answer HTTP 429 with Retry-After and X-RateLimit-*
    headers. When the limiter's store is unreachable the repository
    degrades open, so the route still runs.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        rate_limit_service = current_app.container.resolve(RateLimitService)
        client_ip = extract_client_ip(request)

        try:
            entities = rate_limit_service.check_share_resolve_limits(client_ip)
        except RateLimitExceededError as e:
            current_app.logger.info(
                f"Rate limit exceeded for {client_ip}: {e.context.get('limit_type', 'unknown')}"
            )
            headers = {
                'X-RateLimit-Limit': str(e.context.get('limit', '')),
                'X-RateLimit-Remaining': '0',
                'Retry-After': str(e.context.get('retry_after', 1)),
            }
            body = e.to_dict()
            body['limit_type'] = e.context.get('limit_type')
            body['reset_at'] = e.context.get('reset_at')
            return body, e.http_status_code, headers

        response = make_response(f(*args, **kwargs))
        if entities:
            most_restrictive = rate_limit_service.get_most_restrictive_entity(entities)
            response.headers.update(most_restrictive.to_headers())
        return response

    return decorated_function


def extract_client_ip(req) -> str:
    """
    Extract the client IP from a request.

    Uses the first X-Forwarded-For entry when it is a valid address, then
    falls back to remote_addr.
    """
    forwarded_for = req.headers.get('X-Forwarded-For')
    if forwarded_for:
        candidate = forwarded_for.split(',')[0].strip()
        try:
            ipaddress.ip_address(candidate)
            return candidate
        except ValueError:
            current_app.logger.debug(f"Ignoring malformed X-Forwarded-For: {forwarded_for!r}")
    return req.remote_addr or '127.0.0.1'
