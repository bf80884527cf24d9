"""
Ticket Module.

Endpoints:
- GET /api/tickets - Filtered ticket list
- POST /api/tickets - File a ticket
- PATCH /api/tickets/bulk - Update many tickets at once (admin only)
- GET /api/tickets/<id> - Ticket details
- PATCH /api/tickets/<id> - Update a ticket
- DELETE /api/tickets/<id> - Delete a ticket (admin only)
- GET /api/tickets/<id>/comments - Comment thread, oldest first
- POST /api/tickets/<id>/comments - Add a comment
"""

from flask import Blueprint

tickets_bp = Blueprint('tickets', __name__)

from supportdesk.tickets import routes

__all__ = ["tickets_bp"]
