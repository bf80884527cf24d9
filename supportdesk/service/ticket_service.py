from typing import Any, Callable, Dict, Iterable, List, Optional
import logging
import threading
import uuid
from datetime import datetime

from supabase import Client

from supportdesk.database import SupabaseClientSingleton, run_query
from supportdesk.errors import AuthorizationDenied, NotFound, ValidationError
from supportdesk.models.session import Caller
from supportdesk.models.ticket import NewTicket, Ticket, TicketUpdate
from supportdesk.service import access_policy
from supportdesk.service.ticket_filters import TicketFilters
from supportdesk.service.ticket_lifecycle import apply_update_side_effects, utc_now
from supportdesk.service.user_service import UserService, get_user_service

logger = logging.getLogger(__name__)


class TicketServiceSingleton:
    _instance = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = TicketService()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        with cls._lock:
            cls._instance = None


def get_ticket_service() -> "TicketService":
    return TicketServiceSingleton.get_instance()


def _serialize(values: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in values.items()
    }


class TicketService:
    """
    Ticket store operations with the access policy applied in front of
    every read and write.
    """

    def __init__(
        self,
        supabase_client: Optional[Client] = None,
        user_service: Optional[UserService] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.supabase: Client = supabase_client or SupabaseClientSingleton.get_instance()
        self.user_service = user_service or (
            UserService(supabase_client) if supabase_client else get_user_service()
        )
        self.clock = clock
        self.table_name = "tickets"

    # =========================================================================
    # Helpers
    # =========================================================================

    def find_ticket(self, ticket_id: str) -> Optional[Ticket]:
        """Load a ticket row without any policy check."""
        rows = run_query(
            self.supabase.table(self.table_name).select("*").eq("id", ticket_id).limit(1),
            "load ticket",
        )
        return Ticket.from_dict(rows[0]) if rows else None

    def _require_ticket(self, ticket_id: str) -> Ticket:
        ticket = self.find_ticket(ticket_id)
        if ticket is None:
            raise NotFound("Ticket not found")
        return ticket

    def _denormalize(self, tickets: List[Ticket]) -> List[Ticket]:
        """Attach creator and assignee summaries."""
        ids = set()
        for ticket in tickets:
            ids.add(ticket.created_by)
            ids.add(ticket.assigned_to)
        summaries = self.user_service.get_summaries(ids)
        for ticket in tickets:
            ticket.user = summaries.get(ticket.created_by)
            ticket.assignee = summaries.get(ticket.assigned_to) if ticket.assigned_to else None
        return tickets

    def _validate_assignee(self, assignee_id: str) -> None:
        assignee = self.user_service.get_by_id(assignee_id)
        if assignee is None:
            raise NotFound("Assignee not found")
        if not assignee.is_admin:
            raise ValidationError("Assignee must be an admin")

    # =========================================================================
    # Reads
    # =========================================================================

    def list_tickets(self, caller: Caller, filters: Optional[TicketFilters] = None) -> List[Ticket]:
        """
        Ticket list for the list view.

        The role scope goes on first and unconditionally: non-admins only see
        tickets they created, admins see everything. User filters are ANDed
        on top. Rows come back newest first.
        """
        filters = filters or TicketFilters()

        query = self.supabase.table(self.table_name).select("*")
        if not caller.is_admin:
            query = query.eq("created_by", caller.id)
        query = filters.apply(query).order("created_at", desc=True)

        rows = run_query(query, "list tickets")
        tickets = access_policy.readable_tickets(caller, (Ticket.from_dict(r) for r in rows))
        return self._denormalize(tickets)

    def list_visible_tickets(self, caller: Caller) -> List[Ticket]:
        """Every ticket the read policy lets the caller see (creator, assignee or admin)."""
        query = self.supabase.table(self.table_name).select("*")
        if not caller.is_admin:
            query = query.or_(f"created_by.eq.{caller.id},assigned_to.eq.{caller.id}")
        rows = run_query(query.order("created_at", desc=True), "load visible tickets")
        return access_policy.readable_tickets(caller, (Ticket.from_dict(r) for r in rows))

    def get_ticket(self, caller: Caller, ticket_id: str) -> Ticket:
        ticket = self._require_ticket(ticket_id)
        access_policy.ensure(access_policy.can_read_ticket(caller, ticket), caller, "view this ticket")
        return self._denormalize([ticket])[0]

    # =========================================================================
    # Writes
    # =========================================================================

    def create_ticket(self, caller: Caller, new_ticket: NewTicket) -> Ticket:
        """
        File a ticket as the caller.

        The creator is always the caller and the status always starts as
        open. An assignee is only honoured when an admin supplies one.
        """
        assigned_to = new_ticket.assigned_to
        if assigned_to and not caller.is_admin:
            logger.info(f"Ignoring assignee supplied by non-admin user {caller.id}")
            assigned_to = None
        if assigned_to:
            self._validate_assignee(assigned_to)

        now = self.clock()
        ticket = Ticket()
        ticket.id = str(uuid.uuid4())
        ticket.title = new_ticket.title
        ticket.description = new_ticket.description
        ticket.priority = new_ticket.priority
        ticket.category = new_ticket.category
        ticket.status = Ticket.STATUS_OPEN
        ticket.created_by = caller.id
        ticket.assigned_to = assigned_to
        ticket.created_at = now
        ticket.updated_at = now
        ticket.resolved_at = None

        access_policy.ensure(access_policy.can_create_ticket(caller, ticket), caller, "create this ticket")

        rows = run_query(
            self.supabase.table(self.table_name).insert(ticket.to_row()),
            "create ticket",
        )
        created = Ticket.from_dict(rows[0]) if rows else ticket
        logger.info(f"Created ticket {created.id} for user {caller.id}")
        return self._denormalize([created])[0]

    def update_ticket(self, caller: Caller, ticket_id: str, update: TicketUpdate) -> Ticket:
        changes = update.changes()
        if not changes:
            raise ValidationError("No ticket fields to update")

        current = self._require_ticket(ticket_id)
        access_policy.ensure(access_policy.can_update_ticket(caller, current), caller, "update this ticket")

        forbidden = sorted(set(changes) - access_policy.mutable_ticket_fields(caller, current))
        if forbidden:
            logger.warning(f"Denied: user {caller.id} may not change {forbidden} on ticket {ticket_id}")
            raise AuthorizationDenied(f"Not permitted to change: {forbidden}")

        if changes.get('assigned_to'):
            self._validate_assignee(changes['assigned_to'])

        values = apply_update_side_effects(current, changes, self.clock())
        rows = run_query(
            self.supabase.table(self.table_name).update(_serialize(values)).eq("id", ticket_id),
            "update ticket",
        )
        if not rows:
            raise NotFound("Ticket not found")

        updated = Ticket.from_dict(rows[0])
        if 'status' in changes and changes['status'] != current.status:
            logger.info(f"Ticket {ticket_id} status {current.status} -> {updated.status} by {caller.id}")
        else:
            logger.info(f"Ticket {ticket_id} updated ({sorted(changes)}) by {caller.id}")
        return self._denormalize([updated])[0]

    def bulk_update_tickets(self, caller: Caller, ticket_ids: Iterable[str], update: TicketUpdate) -> List[Ticket]:
        """
        Apply one update to many tickets (admin only).

        Each row goes through update_ticket so lifecycle bookkeeping runs per
        ticket. Stops at the first failure; earlier rows stay updated.
        """
        access_policy.ensure(caller.is_admin, caller, "bulk update tickets")

        ids = list(dict.fromkeys(ticket_ids or []))
        if not ids:
            raise ValidationError("ticket_ids is required")
        if not update:
            raise ValidationError("No ticket fields to update")

        updated = [self.update_ticket(caller, ticket_id, update) for ticket_id in ids]
        logger.info(f"Bulk updated {len(updated)} tickets by {caller.id}")
        return updated

    def delete_ticket(self, caller: Caller, ticket_id: str) -> None:
        """Hard-delete a ticket (admin only); comments go with it via ON DELETE CASCADE."""
        current = self._require_ticket(ticket_id)
        access_policy.ensure(access_policy.can_delete_ticket(caller, current), caller, "delete this ticket")

        run_query(
            self.supabase.table(self.table_name).delete().eq("id", ticket_id),
            "delete ticket",
        )
        logger.info(f"Deleted ticket {ticket_id} by {caller.id}")
