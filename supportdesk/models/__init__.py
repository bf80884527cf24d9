from supportdesk.models.base_model import BaseModel
from supportdesk.models.user import User
from supportdesk.models.ticket import Ticket, NewTicket, TicketUpdate, UNSET
from supportdesk.models.comment import TicketComment
from supportdesk.models.session import Caller, AuthSession

__all__ = [
    'BaseModel',
    'User',
    'Ticket',
    'NewTicket',
    'TicketUpdate',
    'UNSET',
    'TicketComment',
    'Caller',
    'AuthSession',
]
