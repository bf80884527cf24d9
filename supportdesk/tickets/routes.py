"""
Ticket API Routes.

All endpoints require `Authorization: Bearer <token>`. Access rules:
- Non-admins list only the tickets they created
- A ticket is readable by its creator, its assignee and admins
- Creators may change status and priority; admins may change everything
- Only admins delete and bulk update
"""

from flask import request, jsonify, g
import logging

from supportdesk.errors import SupportDeskError, ValidationError, error_response
from supportdesk.middleware import get_json_object, require_auth
from supportdesk.models.ticket import NewTicket, TicketUpdate
from supportdesk.service.comment_service import get_comment_service
from supportdesk.service.ticket_filters import TicketFilters
from supportdesk.service.ticket_service import get_ticket_service
from supportdesk.tickets import tickets_bp

logger = logging.getLogger(__name__)


# =============================================================================
# Tickets
# =============================================================================

@tickets_bp.route('', methods=['GET'])
@require_auth
def list_tickets():
    """
    List tickets, newest first.

    Query params:
        - status: open, in_progress, resolved, closed or all
        - priority: low, medium, high, urgent or all
        - assignee: user id or all
        - search: case-insensitive text matched against title or description
    """
    try:
        filters = TicketFilters.from_args(request.args)
        tickets = get_ticket_service().list_tickets(g.caller, filters)

        return jsonify({
            "success": True,
            "tickets": [t.to_dict() for t in tickets],
            "count": len(tickets),
            "filters": filters.to_dict(),
        })

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error listing tickets: {e}")
        return jsonify({"error": str(e)}), 500


@tickets_bp.route('', methods=['POST'])
@require_auth
def create_ticket():
    """
    File a new ticket.

    Body:
        - title (required)
        - description (required)
        - priority: low, medium, high, urgent (default: medium)
        - category (optional)
        - assigned_to: admin user id (admins only)
    """
    data = request.get_json(silent=True)

    try:
        new_ticket = NewTicket.from_payload(data)
        ticket = get_ticket_service().create_ticket(g.caller, new_ticket)
        return jsonify({"success": True, "ticket": ticket.to_dict()}), 201

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error creating ticket: {e}")
        return jsonify({"error": str(e)}), 500


@tickets_bp.route('/bulk', methods=['PATCH'])
@require_auth
def bulk_update_tickets():
    """
    Apply one update to several tickets (admin only).

    Body:
        - ticket_ids: list of ticket ids
        - changes: the same fields accepted by PATCH /api/tickets/<id>
    """
    try:
        data = get_json_object()
        ticket_ids = data.get('ticket_ids')
        if not isinstance(ticket_ids, list) or not all(isinstance(i, str) for i in ticket_ids):
            raise ValidationError("ticket_ids must be a list of ticket ids")

        update = TicketUpdate.from_payload(data.get('changes'))
        tickets = get_ticket_service().bulk_update_tickets(g.caller, ticket_ids, update)

        return jsonify({
            "success": True,
            "tickets": [t.to_dict() for t in tickets],
            "count": len(tickets),
        })

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error bulk updating tickets: {e}")
        return jsonify({"error": str(e)}), 500


@tickets_bp.route('/<ticket_id>', methods=['GET'])
@require_auth
def get_ticket(ticket_id):
    try:
        ticket = get_ticket_service().get_ticket(g.caller, ticket_id)
        return jsonify({"success": True, "ticket": ticket.to_dict()})

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error getting ticket {ticket_id}: {e}")
        return jsonify({"error": str(e)}), 500


@tickets_bp.route('/<ticket_id>', methods=['PATCH'])
@require_auth
def update_ticket(ticket_id):
    """
    Partially update a ticket.

    Body (any of): title, description, priority, status, category, assigned_to.
    id, created_by, created_at, updated_at and resolved_at are rejected.
    """
    data = request.get_json(silent=True)

    try:
        update = TicketUpdate.from_payload(data)
        ticket = get_ticket_service().update_ticket(g.caller, ticket_id, update)
        return jsonify({"success": True, "ticket": ticket.to_dict()})

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error updating ticket {ticket_id}: {e}")
        return jsonify({"error": str(e)}), 500


@tickets_bp.route('/<ticket_id>', methods=['DELETE'])
@require_auth
def delete_ticket(ticket_id):
    try:
        get_ticket_service().delete_ticket(g.caller, ticket_id)
        return jsonify({"success": True, "message": "Ticket deleted"})

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error deleting ticket {ticket_id}: {e}")
        return jsonify({"error": str(e)}), 500


# =============================================================================
# Comments
# =============================================================================

@tickets_bp.route('/<ticket_id>/comments', methods=['GET'])
@require_auth
def list_comments(ticket_id):
    try:
        comments = get_comment_service().list_comments(g.caller, ticket_id)
        return jsonify({
            "success": True,
            "comments": [c.to_dict() for c in comments],
        })

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error listing comments for ticket {ticket_id}: {e}")
        return jsonify({"error": str(e)}), 500


@tickets_bp.route('/<ticket_id>/comments', methods=['POST'])
@require_auth
def add_comment(ticket_id):
    """
    Add a comment to a ticket.

    Body:
        - comment: comment text (required)
    """
    try:
        data = get_json_object()
        comment = get_comment_service().add_comment(g.caller, ticket_id, data.get('comment'))
        return jsonify({"success": True, "comment": comment.to_dict()}), 201

    except SupportDeskError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception as e:
        logger.error(f"Error adding comment to ticket {ticket_id}: {e}")
        return jsonify({"error": str(e)}), 500
