"""
SupportDesk command-line client.

Signs in with --email/--password (or SUPPORTDESK_EMAIL/SUPPORTDESK_PASSWORD)
and runs one command against the same service layer as the HTTP API.

Examples:
    supportdesk signup --full-name "Ada Lovelace"
    supportdesk list --status open --search printer
    supportdesk create --title "Printer jam" --description "Tray 2" --priority high
    supportdesk update <ticket-id> --status resolved
    supportdesk comment <ticket-id> "Replaced the roller"
    supportdesk dashboard
"""

import argparse
import logging
import os
import sys

from tabulate import tabulate

from supportdesk.analytics.dashboard_service import get_dashboard_service
from supportdesk.config import configure_logging
from supportdesk.errors import SupportDeskError, ValidationError
from supportdesk.models.ticket import NewTicket, TicketUpdate, UNSET
from supportdesk.service.auth_service import get_auth_service
from supportdesk.service.comment_service import get_comment_service
from supportdesk.service.ticket_board import CommentThread, TicketBoard
from supportdesk.service.ticket_filters import TicketFilters
from supportdesk.service.ticket_service import get_ticket_service

logger = logging.getLogger(__name__)


def _short(value, width=40):
    if not value:
        return ""
    return value if len(value) <= width else value[: width - 3] + "..."


def _name(summary):
    return summary.get("full_name") if summary else ""


def _timestamp(value):
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


def sign_in(args):
    """Resolve the caller for this invocation."""
    email = args.email or os.getenv("SUPPORTDESK_EMAIL")
    password = args.password or os.getenv("SUPPORTDESK_PASSWORD")
    if not email or not password:
        raise ValidationError("--email and --password (or SUPPORTDESK_EMAIL/SUPPORTDESK_PASSWORD) are required")

    auth_service = get_auth_service()
    session = auth_service.sign_in(email, password)
    return auth_service.resolve_caller(session.access_token)


# =============================================================================
# Commands
# =============================================================================

def signup(args):
    email = args.email or os.getenv("SUPPORTDESK_EMAIL")
    password = args.password or os.getenv("SUPPORTDESK_PASSWORD")
    caller = get_auth_service().sign_up(email, password, args.full_name)
    print(f"✓ Registered {caller.email} ({caller.id})")


def list_tickets(caller, args):
    filters = TicketFilters(
        status=args.status,
        priority=args.priority,
        assignee=args.assignee,
        search=args.search,
    )
    board = TicketBoard(caller, filters, get_ticket_service())
    board.refresh()
    if board.last_error:
        raise board.last_error

    if not board.tickets:
        print("No tickets found")
        return

    table_data = [
        [
            t.id,
            _short(t.title),
            t.status_display,
            t.priority,
            t.category_display,
            _name(t.user),
            _name(t.assignee),
            _timestamp(t.created_at),
        ]
        for t in board.tickets
    ]
    print(
        tabulate(
            table_data,
            headers=["ID", "Title", "Status", "Priority", "Category", "Created By", "Assignee", "Created"],
            tablefmt="grid",
        )
    )
    print(f"\nTotal tickets: {len(board.tickets)}")


def show_ticket(caller, args):
    ticket = get_ticket_service().get_ticket(caller, args.ticket_id)
    thread = CommentThread(caller, ticket.id, get_comment_service())
    thread.refresh()
    if thread.last_error:
        raise thread.last_error

    print(
        tabulate(
            [
                ["ID", ticket.id],
                ["Title", ticket.title],
                ["Status", ticket.status_display],
                ["Priority", ticket.priority],
                ["Category", ticket.category_display],
                ["Created By", _name(ticket.user)],
                ["Assignee", _name(ticket.assignee) or "Unassigned"],
                ["Created", _timestamp(ticket.created_at)],
                ["Updated", _timestamp(ticket.updated_at)],
                ["Resolved", _timestamp(ticket.resolved_at)],
            ],
            tablefmt="grid",
        )
    )
    print(f"\n{ticket.description}\n")

    if not thread.comments:
        print("No comments")
        return
    print(
        tabulate(
            [[_timestamp(c.created_at), _name(c.user), c.comment] for c in thread.comments],
            headers=["When", "Who", "Comment"],
            tablefmt="grid",
        )
    )


def create_ticket(caller, args):
    new_ticket = NewTicket(
        title=args.title,
        description=args.description,
        priority=args.priority,
        category=args.category,
        assigned_to=args.assign_to,
    )
    ticket = get_ticket_service().create_ticket(caller, new_ticket)
    print(f"✓ Created ticket {ticket.id}")


def update_ticket(caller, args):
    assigned_to = args.assign_to if args.assign_to is not None else UNSET
    if args.unassign:
        assigned_to = None
    update = TicketUpdate(
        title=args.title if args.title is not None else UNSET,
        description=args.description if args.description is not None else UNSET,
        priority=args.priority or UNSET,
        status=args.status or UNSET,
        category=args.category if args.category is not None else UNSET,
        assigned_to=assigned_to,
    )
    ticket = get_ticket_service().update_ticket(caller, args.ticket_id, update)
    print(f"✓ Updated ticket {ticket.id} ({ticket.status_display})")


def delete_ticket(caller, args):
    get_ticket_service().delete_ticket(caller, args.ticket_id)
    print(f"✓ Deleted ticket {args.ticket_id}")


def add_comment(caller, args):
    thread = CommentThread(caller, args.ticket_id, get_comment_service())
    thread.add(args.comment)
    print(f"✓ Comment added ({len(thread.comments)} on ticket)")


def show_dashboard(caller, args):
    stats = get_dashboard_service().get_stats(caller).to_dict()

    print(
        tabulate(
            [
                ["Total", stats["total_tickets"]],
                ["Open", stats["open_tickets"]],
                ["In Progress", stats["in_progress_tickets"]],
                ["Resolved", stats["resolved_tickets"]],
                ["Avg Resolution (days)", stats["avg_resolution_days"]],
                ["Resolution Rate", f"{stats['resolution_rate']}%"],
            ],
            tablefmt="grid",
        )
    )
    for title, counts in (("Priority", stats["tickets_by_priority"]), ("Category", stats["tickets_by_category"])):
        if counts:
            print()
            print(tabulate(sorted(counts.items()), headers=[title, "Tickets"], tablefmt="grid"))


COMMANDS = {
    "list": list_tickets,
    "show": show_ticket,
    "create": create_ticket,
    "update": update_ticket,
    "delete": delete_ticket,
    "comment": add_comment,
    "dashboard": show_dashboard,
}


def build_parser():
    parser = argparse.ArgumentParser(prog="supportdesk", description="SupportDesk ticketing client")
    parser.add_argument("--email", help="Account email (default: $SUPPORTDESK_EMAIL)")
    parser.add_argument("--password", help="Account password (default: $SUPPORTDESK_PASSWORD)")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    signup_parser = subparsers.add_parser("signup", help="Register a new account")
    signup_parser.add_argument("--full-name", required=True, help="Display name")

    list_parser = subparsers.add_parser("list", help="List tickets")
    list_parser.add_argument("--status", help="open, in_progress, resolved, closed or all")
    list_parser.add_argument("--priority", help="low, medium, high, urgent or all")
    list_parser.add_argument("--assignee", help="Assignee user id or all")
    list_parser.add_argument("--search", help="Text to match in title or description")

    show_parser = subparsers.add_parser("show", help="Show a ticket and its comments")
    show_parser.add_argument("ticket_id")

    create_parser = subparsers.add_parser("create", help="File a ticket")
    create_parser.add_argument("--title", required=True)
    create_parser.add_argument("--description", required=True)
    create_parser.add_argument("--priority", default="medium", help="low, medium, high or urgent")
    create_parser.add_argument("--category")
    create_parser.add_argument("--assign-to", help="Admin user id (admins only)")

    update_parser = subparsers.add_parser("update", help="Update a ticket")
    update_parser.add_argument("ticket_id")
    update_parser.add_argument("--title")
    update_parser.add_argument("--description")
    update_parser.add_argument("--priority")
    update_parser.add_argument("--status")
    update_parser.add_argument("--category", help="Empty string clears the category")
    update_parser.add_argument("--assign-to", help="Admin user id")
    update_parser.add_argument("--unassign", action="store_true", help="Clear the assignee")

    delete_parser = subparsers.add_parser("delete", help="Delete a ticket (admin only)")
    delete_parser.add_argument("ticket_id")

    comment_parser = subparsers.add_parser("comment", help="Comment on a ticket")
    comment_parser.add_argument("ticket_id")
    comment_parser.add_argument("comment")

    subparsers.add_parser("dashboard", help="Ticket metrics")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging()

    try:
        if args.command == "signup":
            signup(args)
        else:
            caller = sign_in(args)
            COMMANDS[args.command](caller, args)
    except SupportDeskError as e:
        print(f"✗ {e.message}")
        return 1
    except ValueError as e:
        # Missing Supabase configuration
        print(f"✗ {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main() or 0)
