from typing import Optional, Dict, Any
from dataclasses import dataclass, fields
from datetime import datetime

from supportdesk.errors import ValidationError
from supportdesk.models.base_model import BaseModel


class Ticket(BaseModel):
    """
    Represents a customer support ticket.
    Maps to the tickets table.
    """

    # Status values
    STATUS_OPEN = 'open'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_RESOLVED = 'resolved'
    STATUS_CLOSED = 'closed'
    STATUSES = (STATUS_OPEN, STATUS_IN_PROGRESS, STATUS_RESOLVED, STATUS_CLOSED)

    # Entering one of these sets resolved_at (once)
    RESOLVED_STATUSES = (STATUS_RESOLVED, STATUS_CLOSED)

    # Priority values
    PRIORITY_LOW = 'low'
    PRIORITY_MEDIUM = 'medium'
    PRIORITY_HIGH = 'high'
    PRIORITY_URGENT = 'urgent'
    PRIORITIES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH, PRIORITY_URGENT)

    UNCATEGORIZED = 'Uncategorized'

    RELATED_FIELDS = ('user', 'assignee')

    def __init__(self):
        self.id: str = None
        self.title: str = None
        self.description: str = None
        self.priority: str = self.PRIORITY_MEDIUM
        self.status: str = self.STATUS_OPEN
        self.category: Optional[str] = None
        self.created_by: str = None
        self.assigned_to: Optional[str] = None
        self.created_at: Optional[datetime] = None
        self.updated_at: Optional[datetime] = None
        self.resolved_at: Optional[datetime] = None

        # Related data (populated when needed)
        self.user: Optional[Dict[str, Any]] = None
        self.assignee: Optional[Dict[str, Any]] = None

    @property
    def is_resolved(self) -> bool:
        """Resolved or closed."""
        return self.status in self.RESOLVED_STATUSES

    @property
    def is_urgent(self) -> bool:
        return self.priority == self.PRIORITY_URGENT

    @property
    def status_display(self) -> str:
        status_map = {
            'open': 'Open',
            'in_progress': 'In Progress',
            'resolved': 'Resolved',
            'closed': 'Closed',
        }
        return status_map.get(self.status, self.status)

    @property
    def category_display(self) -> str:
        return self.category or self.UNCATEGORIZED

    def resolution_days(self) -> Optional[float]:
        """Days between creation and first resolution, None if never resolved."""
        if not isinstance(self.created_at, datetime) or not isinstance(self.resolved_at, datetime):
            return None
        return (self.resolved_at - self.created_at).total_seconds() / 86400


class _Unset:
    def __repr__(self) -> str:
        return 'UNSET'

    def __bool__(self) -> bool:
        return False


# Marks a TicketUpdate field that was not supplied (distinct from None)
UNSET = _Unset()


def _clean_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required")
    return value.strip()


def _clean_optional(name: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value.strip() or None


def _clean_choice(name: str, value: Any, choices) -> str:
    if value not in choices:
        raise ValidationError(f"Invalid {name}. Must be one of: {list(choices)}")
    return value


@dataclass
class NewTicket:
    """
    Fields accepted when filing a ticket. Creator and status are never taken from input.

    assigned_to is honoured only for admin callers and must name an existing admin.
    """

    title: str
    description: str
    priority: str = Ticket.PRIORITY_MEDIUM
    category: Optional[str] = None
    assigned_to: Optional[str] = None

    def __post_init__(self):
        self.title = _clean_text('title', self.title)
        self.description = _clean_text('description', self.description)
        self.priority = _clean_choice('priority', self.priority, Ticket.PRIORITIES)
        self.category = _clean_optional('category', self.category)
        self.assigned_to = _clean_optional('assigned_to', self.assigned_to)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "NewTicket":
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        priority = data.get('priority')
        return cls(
            title=data.get('title'),
            description=data.get('description'),
            priority=Ticket.PRIORITY_MEDIUM if priority is None else priority,
            category=data.get('category'),
            assigned_to=data.get('assigned_to'),
        )


@dataclass
class TicketUpdate:
    """
    Partial update of a ticket.

    Only the mutable columns exist here; created_by, created_at, updated_at
    and resolved_at can never be written by a caller. A field left as UNSET
    is not touched; category and assigned_to accept None to clear them.
    assigned_to must name an existing admin; any other user is rejected.
    """

    title: Any = UNSET
    description: Any = UNSET
    priority: Any = UNSET
    status: Any = UNSET
    category: Any = UNSET
    assigned_to: Any = UNSET

    IMMUTABLE_FIELDS = ('id', 'created_by', 'created_at', 'updated_at', 'resolved_at')

    def __post_init__(self):
        if self.title is not UNSET:
            self.title = _clean_text('title', self.title)
        if self.description is not UNSET:
            self.description = _clean_text('description', self.description)
        if self.priority is not UNSET:
            self.priority = _clean_choice('priority', self.priority, Ticket.PRIORITIES)
        if self.status is not UNSET:
            self.status = _clean_choice('status', self.status, Ticket.STATUSES)
        if self.category is not UNSET:
            self.category = _clean_optional('category', self.category)
        if self.assigned_to is not UNSET:
            self.assigned_to = _clean_optional('assigned_to', self.assigned_to)

    @classmethod
    def mutable_fields(cls) -> tuple:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "TicketUpdate":
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")

        immutable = sorted(k for k in data if k in cls.IMMUTABLE_FIELDS)
        if immutable:
            raise ValidationError(f"Fields cannot be changed: {immutable}")

        allowed = cls.mutable_fields()
        unknown = sorted(k for k in data if k not in allowed)
        if unknown:
            raise ValidationError(f"Unknown ticket fields: {unknown}")

        return cls(**data)

    def changes(self) -> Dict[str, Any]:
        """Supplied fields and their values."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def __bool__(self) -> bool:
        return bool(self.changes())
