"""
Dashboard Service - aggregate ticket metrics.

Provides:
- Counts by status bucket (open, in progress, resolved or closed)
- Counts by priority and by category
- Average resolution time in days
- Resolution rate

Always computed from a fresh fetch of every ticket the caller can read.
"""

import logging
import math
from typing import Optional, Dict, Any, Iterable
from dataclasses import dataclass, field, asdict

from supportdesk.models.session import Caller
from supportdesk.models.ticket import Ticket
from supportdesk.service.ticket_service import TicketService, get_ticket_service

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class DashboardStats:
    """Ticket metrics for the dashboard view."""
    total_tickets: int = 0
    open_tickets: int = 0
    in_progress_tickets: int = 0
    resolved_tickets: int = 0  # resolved + closed
    avg_resolution_days: float = 0.0
    resolution_rate: int = 0  # % of all tickets resolved or closed
    tickets_by_priority: Dict[str, int] = field(default_factory=dict)
    tickets_by_category: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["avg_resolution_days"] = round(self.avg_resolution_days, 1)
        return data


def compute_dashboard_stats(tickets: Iterable[Ticket]) -> DashboardStats:
    """
    Aggregate a ticket collection.

    Average resolution only counts tickets with both created_at and
    resolved_at; the rest are left out of the mean entirely. Resolution rate
    is 0 for an empty collection.
    """
    stats = DashboardStats()
    resolution_days = []

    for ticket in tickets:
        stats.total_tickets += 1

        if ticket.status == Ticket.STATUS_OPEN:
            stats.open_tickets += 1
        elif ticket.status == Ticket.STATUS_IN_PROGRESS:
            stats.in_progress_tickets += 1
        elif ticket.is_resolved:
            stats.resolved_tickets += 1

        stats.tickets_by_priority[ticket.priority] = stats.tickets_by_priority.get(ticket.priority, 0) + 1

        category = ticket.category_display
        stats.tickets_by_category[category] = stats.tickets_by_category.get(category, 0) + 1

        days = ticket.resolution_days()
        if days is not None:
            resolution_days.append(days)

    if resolution_days:
        stats.avg_resolution_days = sum(resolution_days) / len(resolution_days)

    if stats.total_tickets:
        stats.resolution_rate = round_half_up(stats.resolved_tickets / stats.total_tickets * 100)

    return stats


class DashboardService:
    def __init__(self, ticket_service: Optional[TicketService] = None):
        self.ticket_service = ticket_service or get_ticket_service()

    def get_stats(self, caller: Caller) -> DashboardStats:
        tickets = self.ticket_service.list_visible_tickets(caller)
        stats = compute_dashboard_stats(tickets)
        logger.debug(f"Dashboard for {caller.id}: {stats.total_tickets} tickets")
        return stats


_dashboard_service_instance: Optional[DashboardService] = None


def get_dashboard_service() -> DashboardService:
    """Get the global dashboard service instance."""
    global _dashboard_service_instance

    if _dashboard_service_instance is None:
        _dashboard_service_instance = DashboardService()

    return _dashboard_service_instance


def reset_dashboard_service() -> None:
    global _dashboard_service_instance
    _dashboard_service_instance = None
