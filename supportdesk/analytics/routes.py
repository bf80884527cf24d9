"""
Dashboard API Routes.
"""

from flask import jsonify, g
import logging

from supportdesk.analytics import analytics_bp
from supportdesk.analytics.dashboard_service import get_dashboard_service
from supportdesk.errors import SupportDeskError, error_response
from supportdesk.middleware.auth import require_auth

logger = logging.getLogger(__name__)


@analytics_bp.route('', methods=['GET'])
@require_auth
def dashboard():
    """
    Ticket metrics for the caller.

    Admins see metrics over every ticket; other users over the tickets they
    created or are assigned to.
    """
    try:
        stats = get_dashboard_service().get_stats(g.caller)
        return jsonify({"success": True, "stats": stats.to_dict()})

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error computing dashboard for {g.user_id}: {e}")
        return jsonify({"error": str(e)}), 500
