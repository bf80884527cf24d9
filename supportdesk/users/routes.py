"""
User directory API Routes.
"""

from flask import request, jsonify, g
import logging

from supportdesk.errors import SupportDeskError, error_response
from supportdesk.middleware.auth import require_auth
from supportdesk.service.user_service import get_user_service
from supportdesk.users import users_bp

logger = logging.getLogger(__name__)


@users_bp.route('/me', methods=['GET'])
@require_auth
def get_me():
    try:
        user = get_user_service().get_profile(g.caller, g.user_id)
        return jsonify({"success": True, "user": user.to_dict()})

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error loading profile {g.user_id}: {e}")
        return jsonify({"error": str(e)}), 500


@users_bp.route('/me', methods=['PATCH'])
@require_auth
def update_me():
    """
    Update the caller's own profile.

    Body (any of):
        - full_name
        - avatar_url
    """
    data = request.get_json(silent=True)

    try:
        user = get_user_service().update_profile(g.caller, g.user_id, data)
        return jsonify({"success": True, "user": user.to_dict()})

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error updating profile {g.user_id}: {e}")
        return jsonify({"error": str(e)}), 500


@users_bp.route('/admins', methods=['GET'])
@require_auth
def list_admins():
    """Admins that tickets can be assigned to (admin only)."""
    try:
        admins = get_user_service().list_admins(g.caller)
        return jsonify({
            "success": True,
            "admins": [admin.summary() for admin in admins],
        })

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error listing admins: {e}")
        return jsonify({"error": str(e)}), 500


@users_bp.route('/<user_id>', methods=['GET'])
@require_auth
def get_user(user_id):
    try:
        user = get_user_service().get_profile(g.caller, user_id)
        return jsonify({"success": True, "user": user.to_dict()})

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error loading profile {user_id}: {e}")
        return jsonify({"error": str(e)}), 500
