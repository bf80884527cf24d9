"""
Row-level access policy.

One predicate per table and operation, evaluated in the service layer
before every store call. They mirror the RLS policies installed by
database/migrations/001_support_ticket_schema.sql.
"""

import logging
from typing import Iterable, List

from supportdesk.errors import AuthorizationDenied
from supportdesk.models.comment import TicketComment
from supportdesk.models.session import Caller
from supportdesk.models.ticket import Ticket, TicketUpdate

logger = logging.getLogger(__name__)

# Ticket columns a non-admin creator may change on their own ticket
CREATOR_MUTABLE_FIELDS = frozenset({'status', 'priority'})


# =============================================================================
# Users
# =============================================================================

def can_read_user(caller: Caller, user_id: str) -> bool:
    return caller.id == user_id


def can_update_user(caller: Caller, user_id: str) -> bool:
    return caller.id == user_id


# =============================================================================
# Tickets
# =============================================================================

def can_read_ticket(caller: Caller, ticket: Ticket) -> bool:
    return (
        caller.is_admin
        or ticket.created_by == caller.id
        or (ticket.assigned_to is not None and ticket.assigned_to == caller.id)
    )


def can_create_ticket(caller: Caller, ticket: Ticket) -> bool:
    return ticket.created_by == caller.id


def can_update_ticket(caller: Caller, ticket: Ticket) -> bool:
    return caller.is_admin or ticket.created_by == caller.id


def can_delete_ticket(caller: Caller, ticket: Ticket) -> bool:
    return caller.is_admin


def mutable_ticket_fields(caller: Caller, ticket: Ticket) -> frozenset:
    """Columns the caller may change on this ticket (empty if no update access)."""
    if caller.is_admin:
        return frozenset(TicketUpdate.mutable_fields())
    if ticket.created_by == caller.id:
        return CREATOR_MUTABLE_FIELDS
    return frozenset()


def readable_tickets(caller: Caller, tickets: Iterable[Ticket]) -> List[Ticket]:
    """Drop every ticket the caller may not read."""
    visible = []
    for ticket in tickets:
        if can_read_ticket(caller, ticket):
            visible.append(ticket)
        else:
            logger.warning(f"Dropped ticket {ticket.id} not readable by user {caller.id}")
    return visible


# =============================================================================
# Comments
# =============================================================================

def can_read_comment(caller: Caller, parent: Ticket) -> bool:
    return can_read_ticket(caller, parent)


def can_create_comment(caller: Caller, comment: TicketComment, parent: Ticket) -> bool:
    return comment.user_id == caller.id and can_read_ticket(caller, parent)


# =============================================================================
# Enforcement
# =============================================================================

def ensure(allowed: bool, caller: Caller, action: str) -> None:
    """Raise AuthorizationDenied unless allowed."""
    if not allowed:
        logger.warning(f"Denied: user {caller.id} ({caller.role}) may not {action}")
        raise AuthorizationDenied(f"Not permitted to {action}")
