"""
User directory endpoints.

- GET /api/users/me - Own profile
- PATCH /api/users/me - Update own name / avatar
- GET /api/users/admins - Admins available as assignees (admin only)
- GET /api/users/<id> - A profile (self only)
"""

from flask import Blueprint

users_bp = Blueprint('users', __name__)

from supportdesk.users import routes

__all__ = ["users_bp"]
