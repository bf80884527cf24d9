"""
List and thread views that re-query after every change.

TicketBoard holds the current filter set and the ticket list it produced;
CommentThread holds one ticket's comments. Neither patches its local copy:
after any successful mutation the whole list is fetched again. A failed
refresh is logged and the previously loaded data stays in place, while a
failed mutation propagates to the caller.
"""

import logging
from typing import List, Optional

from supportdesk.errors import SupportDeskError
from supportdesk.models.comment import TicketComment
from supportdesk.models.session import Caller
from supportdesk.models.ticket import NewTicket, Ticket, TicketUpdate
from supportdesk.service.comment_service import CommentService, get_comment_service
from supportdesk.service.ticket_filters import TicketFilters
from supportdesk.service.ticket_service import TicketService, get_ticket_service

logger = logging.getLogger(__name__)


class TicketBoard:
    def __init__(
        self,
        caller: Caller,
        filters: Optional[TicketFilters] = None,
        ticket_service: Optional[TicketService] = None,
    ):
        self.caller = caller
        self.filters = filters or TicketFilters()
        self.ticket_service = ticket_service or get_ticket_service()
        self.tickets: List[Ticket] = []
        self.loading = False
        self.last_error: Optional[SupportDeskError] = None

    def refresh(self) -> List[Ticket]:
        """Re-fetch the list for the current filters."""
        self.loading = True
        try:
            self.tickets = self.ticket_service.list_tickets(self.caller, self.filters)
            self.last_error = None
        except SupportDeskError as e:
            logger.error(f"Failed to refresh tickets for {self.caller.id}: {e.message}")
            self.last_error = e
        finally:
            self.loading = False
        return self.tickets

    def set_filters(self, filters: TicketFilters) -> List[Ticket]:
        self.filters = filters
        return self.refresh()

    def create(self, new_ticket: NewTicket) -> Ticket:
        ticket = self.ticket_service.create_ticket(self.caller, new_ticket)
        self.refresh()
        return ticket

    def update(self, ticket_id: str, update: TicketUpdate) -> Ticket:
        ticket = self.ticket_service.update_ticket(self.caller, ticket_id, update)
        self.refresh()
        return ticket

    def bulk_update(self, ticket_ids: List[str], update: TicketUpdate) -> List[Ticket]:
        tickets = self.ticket_service.bulk_update_tickets(self.caller, ticket_ids, update)
        self.refresh()
        return tickets

    def delete(self, ticket_id: str) -> None:
        self.ticket_service.delete_ticket(self.caller, ticket_id)
        self.refresh()


class CommentThread:
    def __init__(
        self,
        caller: Caller,
        ticket_id: str,
        comment_service: Optional[CommentService] = None,
    ):
        self.caller = caller
        self.ticket_id = ticket_id
        self.comment_service = comment_service or get_comment_service()
        self.comments: List[TicketComment] = []
        self.loading = False
        self.last_error: Optional[SupportDeskError] = None

    def refresh(self) -> List[TicketComment]:
        self.loading = True
        try:
            self.comments = self.comment_service.list_comments(self.caller, self.ticket_id)
            self.last_error = None
        except SupportDeskError as e:
            logger.error(f"Failed to refresh comments on ticket {self.ticket_id}: {e.message}")
            self.last_error = e
        finally:
            self.loading = False
        return self.comments

    def add(self, body: str) -> TicketComment:
        comment = self.comment_service.add_comment(self.caller, self.ticket_id, body)
        self.refresh()
        return comment
