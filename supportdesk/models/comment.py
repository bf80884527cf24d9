from typing import Optional, Dict, Any
from datetime import datetime

from supportdesk.models.base_model import BaseModel


class TicketComment(BaseModel):
    """
    A comment on a ticket thread.
    Maps to the ticket_comments table. Comments are append-only.
    """

    RELATED_FIELDS = ('user',)

    def __init__(self):
        self.id: str = None
        self.ticket_id: str = None
        self.user_id: str = None
        self.comment: str = None
        self.created_at: Optional[datetime] = None

        # Related data (populated when needed)
        self.user: Optional[Dict[str, Any]] = None
