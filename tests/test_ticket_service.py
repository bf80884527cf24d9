"""
Tests for TicketService against the in-memory Supabase client.
"""

from datetime import timedelta

import httpx
import pytest

from supportdesk.errors import (
    AuthorizationDenied,
    NotFound,
    TransientBackendError,
    ValidationError,
)
from supportdesk.models import NewTicket, TicketUpdate
from supportdesk.service.ticket_filters import TicketFilters


def file_ticket(service, caller, title="Printer jam", description="Tray 2 keeps jamming", **kwargs):
    return service.create_ticket(caller, NewTicket(title=title, description=description, **kwargs))


# =============================================================================
# Create
# =============================================================================

class TestCreateTicket:
    def test_printer_jam_scenario(self, ticket_service, callers, users, clock):
        ticket = file_ticket(ticket_service, callers.alice, priority="high")

        assert ticket.id
        assert ticket.status == "open"
        assert ticket.priority == "high"
        assert ticket.created_by == users.alice["id"]
        assert ticket.assigned_to is None
        assert ticket.resolved_at is None
        assert ticket.created_at == clock.now
        assert ticket.updated_at == clock.now
        assert ticket.user == {"id": users.alice["id"], "full_name": "Alice User", "email": "alice@example.com"}
        assert ticket.assignee is None

    def test_row_is_persisted(self, ticket_service, callers, fake_supabase):
        ticket = file_ticket(ticket_service, callers.alice, category="Hardware")

        rows = fake_supabase.tables["tickets"]
        assert len(rows) == 1
        assert rows[0]["id"] == ticket.id
        assert rows[0]["category"] == "Hardware"
        assert "user" not in rows[0]

    def test_non_admin_assignee_is_ignored(self, ticket_service, callers, users):
        ticket = file_ticket(ticket_service, callers.alice, assigned_to=users.admin["id"])
        assert ticket.assigned_to is None

    def test_admin_can_assign_on_create(self, ticket_service, callers, users):
        ticket = file_ticket(ticket_service, callers.admin, assigned_to=users.admin["id"])

        assert ticket.assigned_to == users.admin["id"]
        assert ticket.assignee["full_name"] == "Grace Admin"

    def test_assignee_must_be_admin(self, ticket_service, callers, users):
        with pytest.raises(ValidationError, match="Assignee must be an admin"):
            file_ticket(ticket_service, callers.admin, assigned_to=users.bob["id"])

    def test_unknown_assignee(self, ticket_service, callers):
        with pytest.raises(NotFound):
            file_ticket(ticket_service, callers.admin, assigned_to="missing-user")

    def test_backend_failure_is_transient(self, ticket_service, callers, fake_supabase):
        fake_supabase.fail_next("tickets", httpx.ConnectError("connection refused"))
        with pytest.raises(TransientBackendError):
            file_ticket(ticket_service, callers.alice)

    def test_rls_denial_maps_to_authorization_denied(self, ticket_service, callers, fake_supabase, api_error):
        fake_supabase.fail_next("tickets", api_error("42501", "new row violates row-level security policy"))
        with pytest.raises(AuthorizationDenied):
            file_ticket(ticket_service, callers.alice)

    def test_constraint_violation_maps_to_validation_error(self, ticket_service, callers, fake_supabase, api_error):
        fake_supabase.fail_next("tickets", api_error("23514", "violates check constraint"))
        with pytest.raises(ValidationError):
            file_ticket(ticket_service, callers.alice)


# =============================================================================
# Read / list
# =============================================================================

class TestReadTickets:
    def test_non_admin_list_never_includes_foreign_tickets(self, ticket_service, callers, users, clock):
        file_ticket(ticket_service, callers.alice, title="Alice 1")
        clock.advance(minutes=1)
        file_ticket(ticket_service, callers.bob, title="Bob 1")
        clock.advance(minutes=1)
        file_ticket(ticket_service, callers.alice, title="Alice 2")

        alice_list = ticket_service.list_tickets(callers.alice)
        assert [t.title for t in alice_list] == ["Alice 2", "Alice 1"]
        assert all(t.created_by == users.alice["id"] for t in alice_list)

        admin_list = ticket_service.list_tickets(callers.admin)
        assert [t.title for t in admin_list] == ["Alice 2", "Bob 1", "Alice 1"]

    def test_search_is_case_insensitive_over_title_or_description_and_ands_with_status(
        self, ticket_service, callers, clock
    ):
        in_title = file_ticket(ticket_service, callers.alice, title="Printer jam", description="Tray 2")
        clock.advance(minutes=1)
        in_description = file_ticket(ticket_service, callers.alice, title="Office", description="the PRINTER smokes")
        clock.advance(minutes=1)
        file_ticket(ticket_service, callers.alice, title="Login", description="password reset")
        clock.advance(minutes=1)
        ticket_service.update_ticket(callers.alice, in_description.id, TicketUpdate(status="resolved"))

        found = ticket_service.list_tickets(callers.alice, TicketFilters(search="printer"))
        assert {t.id for t in found} == {in_title.id, in_description.id}

        open_only = ticket_service.list_tickets(callers.alice, TicketFilters(search="printer", status="open"))
        assert [t.id for t in open_only] == [in_title.id]

    def test_search_treats_like_wildcards_literally(self, ticket_service, callers, clock):
        literal = file_ticket(ticket_service, callers.alice, title="Disk 100% full")
        clock.advance(minutes=1)
        file_ticket(ticket_service, callers.alice, title="Disk 1000 sectors bad")

        found = ticket_service.list_tickets(callers.alice, TicketFilters(search="100%"))
        assert [t.id for t in found] == [literal.id]

    def test_search_with_reserved_characters(self, ticket_service, callers):
        ticket = file_ticket(ticket_service, callers.alice, title='Error "E42", (again)')

        found = ticket_service.list_tickets(callers.alice, TicketFilters(search='"E42", (again'))
        assert [t.id for t in found] == [ticket.id]

    def test_filter_by_priority_and_assignee(self, ticket_service, callers, users, clock):
        assigned = file_ticket(ticket_service, callers.admin, priority="urgent", assigned_to=users.admin["id"])
        clock.advance(minutes=1)
        file_ticket(ticket_service, callers.admin, priority="urgent")
        clock.advance(minutes=1)
        file_ticket(ticket_service, callers.admin, priority="low", assigned_to=users.admin["id"])

        found = ticket_service.list_tickets(
            callers.admin, TicketFilters(priority="urgent", assignee=users.admin["id"])
        )
        assert [t.id for t in found] == [assigned.id]

    def test_get_ticket_permissions(self, ticket_service, callers, users):
        ticket = file_ticket(ticket_service, callers.admin, assigned_to=users.admin["id"])
        alice_ticket = file_ticket(ticket_service, callers.alice)

        assert ticket_service.get_ticket(callers.alice, alice_ticket.id).id == alice_ticket.id
        assert ticket_service.get_ticket(callers.admin, alice_ticket.id).id == alice_ticket.id
        with pytest.raises(AuthorizationDenied):
            ticket_service.get_ticket(callers.bob, alice_ticket.id)
        with pytest.raises(AuthorizationDenied):
            ticket_service.get_ticket(callers.alice, ticket.id)

    def test_get_missing_ticket(self, ticket_service, callers):
        with pytest.raises(NotFound):
            ticket_service.get_ticket(callers.alice, "missing")

    def test_visible_tickets_include_assigned(self, ticket_service, callers, users):
        alice_ticket = file_ticket(ticket_service, callers.alice)
        # bob was an admin when the ticket was assigned, and has since been demoted
        users.bob["role"] = "admin"
        ticket_service.update_ticket(callers.admin, alice_ticket.id, TicketUpdate(assigned_to=users.bob["id"]))
        users.bob["role"] = "user"

        visible = ticket_service.list_visible_tickets(callers.bob)
        assert [t.id for t in visible] == [alice_ticket.id]
        # the list view stays creator-scoped
        assert ticket_service.list_tickets(callers.bob) == []
        assert ticket_service.get_ticket(callers.bob, alice_ticket.id).id == alice_ticket.id


# =============================================================================
# Update
# =============================================================================

class TestUpdateTicket:
    def test_resolve_then_close_keeps_resolved_at(self, ticket_service, callers, clock):
        ticket = file_ticket(ticket_service, callers.alice)

        resolved_time = clock.advance(hours=3)
        resolved = ticket_service.update_ticket(callers.admin, ticket.id, TicketUpdate(status="resolved"))
        assert resolved.resolved_at == resolved_time

        clock.advance(days=1)
        closed = ticket_service.update_ticket(callers.admin, ticket.id, TicketUpdate(status="closed"))
        assert closed.status == "closed"
        assert closed.resolved_at == resolved_time

    def test_reopen_and_resolve_again_keeps_first_resolution(self, ticket_service, callers, clock):
        ticket = file_ticket(ticket_service, callers.alice)
        first = clock.advance(hours=1)
        ticket_service.update_ticket(callers.alice, ticket.id, TicketUpdate(status="resolved"))
        clock.advance(hours=1)
        ticket_service.update_ticket(callers.alice, ticket.id, TicketUpdate(status="open"))
        clock.advance(hours=1)
        again = ticket_service.update_ticket(callers.alice, ticket.id, TicketUpdate(status="closed"))

        assert again.resolved_at == first

    def test_updated_at_strictly_increases_even_with_a_stalled_clock(self, ticket_service, callers):
        ticket = file_ticket(ticket_service, callers.alice)

        first = ticket_service.update_ticket(callers.alice, ticket.id, TicketUpdate(priority="high"))
        second = ticket_service.update_ticket(callers.alice, ticket.id, TicketUpdate(priority="low"))

        assert ticket.updated_at < first.updated_at < second.updated_at
        assert second.created_at == ticket.created_at

    def test_creator_may_change_status_and_priority_only(self, ticket_service, callers):
        ticket = file_ticket(ticket_service, callers.alice)

        updated = ticket_service.update_ticket(
            callers.alice, ticket.id, TicketUpdate(status="in_progress", priority="urgent")
        )
        assert (updated.status, updated.priority) == ("in_progress", "urgent")

        with pytest.raises(AuthorizationDenied, match="title"):
            ticket_service.update_ticket(callers.alice, ticket.id, TicketUpdate(title="Renamed"))

    def test_other_users_cannot_update(self, ticket_service, callers, fake_supabase):
        ticket = file_ticket(ticket_service, callers.alice)
        before = list(fake_supabase.executed)

        with pytest.raises(AuthorizationDenied):
            ticket_service.update_ticket(callers.bob, ticket.id, TicketUpdate(status="closed"))

        # only the lookup ran; no write reached the store
        assert [op for op in fake_supabase.executed[len(before):] if op[1] == "update"] == []

    def test_admin_may_change_everything(self, ticket_service, callers, users):
        ticket = file_ticket(ticket_service, callers.alice)

        updated = ticket_service.update_ticket(
            callers.admin,
            ticket.id,
            TicketUpdate(title="Printer jam (tray 2)", category="Hardware", assigned_to=users.admin["id"]),
        )
        assert updated.title == "Printer jam (tray 2)"
        assert updated.category == "Hardware"
        assert updated.assignee["id"] == users.admin["id"]

        cleared = ticket_service.update_ticket(callers.admin, ticket.id, TicketUpdate(assigned_to=None))
        assert cleared.assigned_to is None
        assert cleared.assignee is None

    def test_empty_update_rejected(self, ticket_service, callers):
        ticket = file_ticket(ticket_service, callers.alice)
        with pytest.raises(ValidationError):
            ticket_service.update_ticket(callers.alice, ticket.id, TicketUpdate())

    def test_update_missing_ticket(self, ticket_service, callers):
        with pytest.raises(NotFound):
            ticket_service.update_ticket(callers.admin, "missing", TicketUpdate(status="closed"))


class TestBulkUpdate:
    def test_admin_bulk_update_applies_lifecycle_per_row(self, ticket_service, callers, clock):
        first = file_ticket(ticket_service, callers.alice)
        second = file_ticket(ticket_service, callers.bob)
        now = clock.advance(hours=1)

        updated = ticket_service.bulk_update_tickets(
            callers.admin, [first.id, second.id, first.id], TicketUpdate(status="closed")
        )

        assert [t.id for t in updated] == [first.id, second.id]
        assert all(t.resolved_at == now for t in updated)
        assert all(t.updated_at == now for t in updated)

    def test_non_admin_cannot_bulk_update(self, ticket_service, callers):
        ticket = file_ticket(ticket_service, callers.alice)
        with pytest.raises(AuthorizationDenied):
            ticket_service.bulk_update_tickets(callers.alice, [ticket.id], TicketUpdate(status="closed"))

    def test_requires_ids(self, ticket_service, callers):
        with pytest.raises(ValidationError):
            ticket_service.bulk_update_tickets(callers.admin, [], TicketUpdate(status="closed"))


# =============================================================================
# Delete
# =============================================================================

class TestDeleteTicket:
    def test_admin_delete_removes_ticket_and_comments(self, ticket_service, comment_service, callers, fake_supabase):
        ticket = file_ticket(ticket_service, callers.alice)
        comment_service.add_comment(callers.alice, ticket.id, "Still jammed")

        ticket_service.delete_ticket(callers.admin, ticket.id)

        assert fake_supabase.tables["tickets"] == []
        assert fake_supabase.tables["ticket_comments"] == []

    def test_creator_cannot_delete(self, ticket_service, callers, fake_supabase):
        ticket = file_ticket(ticket_service, callers.alice)
        with pytest.raises(AuthorizationDenied):
            ticket_service.delete_ticket(callers.alice, ticket.id)
        assert len(fake_supabase.tables["tickets"]) == 1

    def test_delete_missing_ticket(self, ticket_service, callers):
        with pytest.raises(NotFound):
            ticket_service.delete_ticket(callers.admin, "missing")

    def test_failed_delete_keeps_ticket_and_comments(self, ticket_service, comment_service, callers, fake_supabase, api_error):
        ticket = file_ticket(ticket_service, callers.alice)
        comment_service.add_comment(callers.alice, ticket.id, "Still jammed")

        fake_supabase.fail_next("tickets", api_error("XX000"), operation="delete")
        with pytest.raises(TransientBackendError):
            ticket_service.delete_ticket(callers.admin, ticket.id)

        assert ticket_service.find_ticket(ticket.id) is not None
        assert [c["comment"] for c in fake_supabase.tables["ticket_comments"]] == ["Still jammed"]
        assert ("ticket_comments", "delete") not in fake_supabase.executed
