from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any

from supportdesk.models.user import User


@dataclass(frozen=True)
class Caller:
    """
    The authenticated identity a request runs as.

    Resolved once per request (or CLI session) and passed explicitly into
    every service call.
    """

    id: str
    role: str
    email: Optional[str] = None
    full_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == User.ROLE_ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Caller":
        return cls(id=user.id, role=user.role, email=user.email, full_name=user.full_name)


@dataclass
class AuthSession:
    """Tokens issued by Supabase Auth after sign-in."""

    access_token: str
    refresh_token: Optional[str]
    user_id: str
    email: Optional[str] = None
    expires_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "user_id": self.user_id,
            "email": self.email,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
