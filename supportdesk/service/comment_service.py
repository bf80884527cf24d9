from typing import Callable, List, Optional
import logging
import threading
import uuid
from datetime import datetime

from supabase import Client

from supportdesk.database import SupabaseClientSingleton, run_query
from supportdesk.errors import NotFound, ValidationError
from supportdesk.models.comment import TicketComment
from supportdesk.models.session import Caller
from supportdesk.models.ticket import Ticket
from supportdesk.service import access_policy
from supportdesk.service.ticket_lifecycle import utc_now
from supportdesk.service.ticket_service import TicketService, get_ticket_service
from supportdesk.service.user_service import UserService, get_user_service

logger = logging.getLogger(__name__)


class CommentServiceSingleton:
    _instance = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = CommentService()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        with cls._lock:
            cls._instance = None


def get_comment_service() -> "CommentService":
    return CommentServiceSingleton.get_instance()


class CommentService:
    """Append-only comment threads, one per ticket."""

    def __init__(
        self,
        supabase_client: Optional[Client] = None,
        ticket_service: Optional[TicketService] = None,
        user_service: Optional[UserService] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.supabase: Client = supabase_client or SupabaseClientSingleton.get_instance()
        if supabase_client:
            self.user_service = user_service or UserService(supabase_client)
            self.ticket_service = ticket_service or TicketService(supabase_client, self.user_service, clock)
        else:
            self.user_service = user_service or get_user_service()
            self.ticket_service = ticket_service or get_ticket_service()
        self.clock = clock
        self.table_name = "ticket_comments"

    def _parent(self, ticket_id: str) -> Ticket:
        ticket = self.ticket_service.find_ticket(ticket_id)
        if ticket is None:
            raise NotFound("Ticket not found")
        return ticket

    def list_comments(self, caller: Caller, ticket_id: str) -> List[TicketComment]:
        """Comments on a ticket, oldest first, each with its author's name."""
        parent = self._parent(ticket_id)
        access_policy.ensure(access_policy.can_read_comment(caller, parent), caller, "read comments on this ticket")

        rows = run_query(
            self.supabase.table(self.table_name)
            .select("*")
            .eq("ticket_id", ticket_id)
            .order("created_at"),
            "list ticket comments",
        )
        comments = [TicketComment.from_dict(row) for row in rows]

        authors = self.user_service.get_summaries(c.user_id for c in comments)
        for comment in comments:
            author = authors.get(comment.user_id)
            comment.user = {"id": author["id"], "full_name": author["full_name"]} if author else None
        return comments

    def add_comment(self, caller: Caller, ticket_id: str, body: str) -> TicketComment:
        """
        Append a comment as the caller.

        Raises:
            ValidationError: empty body.
            NotFound: the ticket does not exist.
            AuthorizationDenied: the caller cannot read the ticket.
        """
        if not isinstance(body, str) or not body.strip():
            raise ValidationError("Comment is required")

        parent = self._parent(ticket_id)

        comment = TicketComment()
        comment.id = str(uuid.uuid4())
        comment.ticket_id = ticket_id
        comment.user_id = caller.id
        comment.comment = body.strip()
        comment.created_at = self.clock()

        access_policy.ensure(
            access_policy.can_create_comment(caller, comment, parent), caller, "comment on this ticket"
        )

        rows = run_query(
            self.supabase.table(self.table_name).insert(comment.to_row()),
            "add ticket comment",
        )
        created = TicketComment.from_dict(rows[0]) if rows else comment
        created.user = {"id": caller.id, "full_name": caller.full_name}
        logger.info(f"User {caller.id} commented on ticket {ticket_id}")
        return created
