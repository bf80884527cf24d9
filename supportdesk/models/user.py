from typing import Optional, Dict, Any
from datetime import datetime

from supportdesk.models.base_model import BaseModel


class User(BaseModel):
    """
    A profile row in the users table.
    The id is the identity issued by Supabase Auth.
    """

    ROLE_USER = 'user'
    ROLE_ADMIN = 'admin'
    ROLES = (ROLE_USER, ROLE_ADMIN)

    # Fields a user may change on their own profile
    EDITABLE_FIELDS = ('full_name', 'avatar_url')

    def __init__(self):
        self.id: str = None
        self.email: str = None
        self.full_name: str = None
        self.role: str = self.ROLE_USER
        self.avatar_url: Optional[str] = None
        self.created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == self.ROLE_ADMIN

    def summary(self, include_email: bool = True) -> Dict[str, Any]:
        """Compact representation embedded in tickets and comments."""
        data = {"id": self.id, "full_name": self.full_name}
        if include_email:
            data["email"] = self.email
        return data
