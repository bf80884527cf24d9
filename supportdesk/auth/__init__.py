"""
Auth Module.

Endpoints:
- POST /api/auth/signup - Register and create a profile
- POST /api/auth/signin - Exchange email/password for a session
- POST /api/auth/signout - Revoke the current session
- GET /api/auth/session - The caller behind the current session
"""

from flask import Blueprint

auth_bp = Blueprint('auth', __name__)

from supportdesk.auth import routes

__all__ = ["auth_bp"]
