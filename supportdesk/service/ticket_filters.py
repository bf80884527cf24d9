"""
Ticket list filter criteria.

Turns the list view's filter controls into PostgREST query constraints.
Filters combine with AND; the free-text search matches title OR description.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from supportdesk.errors import ValidationError
from supportdesk.models.ticket import Ticket

# Filter value meaning "no constraint"
ALL = 'all'

SEARCH_COLUMNS = ('title', 'description')


def _normalize(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Filter values must be strings")
    value = value.strip()
    if not value or value.lower() == ALL:
        return None
    return value


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def quote_filter_value(value: str) -> str:
    """Double-quote a value for a PostgREST logical filter (commas, parens)."""
    return '"' + value.replace('\\', '\\\\').replace('"', '\\"') + '"'


def search_clause(term: str) -> str:
    """or_ expression for a case-insensitive substring match over title/description."""
    pattern = quote_filter_value(f"%{escape_like(term)}%")
    return ','.join(f"{column}.ilike.{pattern}" for column in SEARCH_COLUMNS)


@dataclass
class TicketFilters:
    status: Optional[str] = None
    priority: Optional[str] = None
    assignee: Optional[str] = None
    search: Optional[str] = None

    def __post_init__(self):
        self.status = _normalize(self.status)
        self.priority = _normalize(self.priority)
        self.assignee = _normalize(self.assignee)
        # search keeps inner whitespace; only blank means "no search"
        if self.search is not None:
            if not isinstance(self.search, str):
                raise ValidationError("Filter values must be strings")
            self.search = self.search if self.search.strip() else None

        if self.status is not None and self.status not in Ticket.STATUSES:
            raise ValidationError(f"Invalid status filter. Must be one of: {list(Ticket.STATUSES)} or 'all'")
        if self.priority is not None and self.priority not in Ticket.PRIORITIES:
            raise ValidationError(f"Invalid priority filter. Must be one of: {list(Ticket.PRIORITIES)} or 'all'")

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "TicketFilters":
        """Build from request query params or CLI options."""
        return cls(
            status=args.get('status'),
            priority=args.get('priority'),
            assignee=args.get('assignee') or args.get('assigned_to'),
            search=args.get('search'),
        )

    def apply(self, query):
        """Add the constraints to a PostgREST select builder and return it."""
        if self.status:
            query = query.eq('status', self.status)
        if self.priority:
            query = query.eq('priority', self.priority)
        if self.assignee:
            query = query.eq('assigned_to', self.assignee)
        if self.search:
            query = query.or_(search_clause(self.search))
        return query

    def to_dict(self) -> dict:
        return {
            'status': self.status or ALL,
            'priority': self.priority or ALL,
            'assignee': self.assignee or ALL,
            'search': self.search or '',
        }
