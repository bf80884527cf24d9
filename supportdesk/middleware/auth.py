"""
Authentication middleware for SupportDesk.

Resolves the Bearer token on the request to a Caller (identity plus role)
and stores it on flask.g for the route.

Usage:
    @require_auth
    def my_endpoint():
        caller = g.caller      # Caller with id and role
        user_id = g.user_id    # same as g.caller.id
        ...
"""

import logging
from functools import wraps
from typing import Optional

from flask import request, jsonify, g

from supportdesk.errors import AuthenticationError, SupportDeskError, error_response
from supportdesk.service.auth_service import get_auth_service

logger = logging.getLogger(__name__)


def get_bearer_token() -> Optional[str]:
    """Access token from the Authorization header, if any."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        return token or None
    return None


def require_auth(f):
    """
    Decorator that requires a verified caller.

    Sets g.caller, g.user_id and g.access_token for downstream use.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            return jsonify({
                "error": "Authentication required",
                "code": "auth_required",
            }), 401

        try:
            caller = get_auth_service().resolve_caller(token)
        except AuthenticationError as e:
            logger.debug(f"Rejected request to {request.path}: {e.message}")
            body, status = error_response(e)
            return jsonify(body), status
        except SupportDeskError as e:
            logger.error(f"Could not resolve caller for {request.path}: {e.message}")
            body, status = error_response(e)
            return jsonify(body), status

        g.caller = caller
        g.user_id = caller.id
        g.access_token = token
        return f(*args, **kwargs)

    return decorated
