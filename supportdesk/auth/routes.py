"""
Auth API Routes.
"""

from flask import jsonify, g
import logging

from supportdesk.auth import auth_bp
from supportdesk.errors import SupportDeskError, error_response
from supportdesk.middleware import get_json_object, require_auth
from supportdesk.service.auth_service import get_auth_service

logger = logging.getLogger(__name__)


@auth_bp.route('/signup', methods=['POST'])
def signup():
    """
    Register a new account.

    Body:
        - email (required)
        - password (required)
        - full_name (required)
    """
    try:
        data = get_json_object()
        caller = get_auth_service().sign_up(
            data.get('email'),
            data.get('password'),
            data.get('full_name'),
        )
        return jsonify({
            "success": True,
            "user": {
                "id": caller.id,
                "email": caller.email,
                "full_name": caller.full_name,
                "role": caller.role,
            },
        }), 201

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error signing up: {e}")
        return jsonify({"error": str(e)}), 500


@auth_bp.route('/signin', methods=['POST'])
def signin():
    """
    Sign in with email and password.

    Returns the access token to send as `Authorization: Bearer <token>`.
    """
    try:
        data = get_json_object()
        session = get_auth_service().sign_in(data.get('email'), data.get('password'))
        return jsonify({"success": True, "session": session.to_dict()})

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error signing in: {e}")
        return jsonify({"error": str(e)}), 500


@auth_bp.route('/signout', methods=['POST'])
@require_auth
def signout():
    try:
        get_auth_service().sign_out(g.access_token)
        return jsonify({"success": True})

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error signing out user {g.user_id}: {e}")
        return jsonify({"error": str(e)}), 500


@auth_bp.route('/session', methods=['GET'])
@require_auth
def current_session():
    """The identity and role of the current session."""
    caller = g.caller
    return jsonify({
        "success": True,
        "user": {
            "id": caller.id,
            "email": caller.email,
            "full_name": caller.full_name,
            "role": caller.role,
            "is_admin": caller.is_admin,
        },
    })
