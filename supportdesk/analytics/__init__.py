"""
Analytics Module.

- GET /api/dashboard - Ticket metrics over every ticket the caller can read
"""

from flask import Blueprint

analytics_bp = Blueprint('analytics', __name__)

from supportdesk.analytics.dashboard_service import (
    DashboardService,
    DashboardStats,
    compute_dashboard_stats,
    get_dashboard_service,
)

from supportdesk.analytics import routes

__all__ = [
    "analytics_bp",
    "DashboardService",
    "DashboardStats",
    "compute_dashboard_stats",
    "get_dashboard_service",
]
