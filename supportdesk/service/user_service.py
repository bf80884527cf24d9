from typing import List, Dict, Any, Iterable, Optional
import logging
import threading

from supabase import Client

from supportdesk.database import SupabaseClientSingleton, run_query
from supportdesk.errors import NotFound, ValidationError
from supportdesk.models.session import Caller
from supportdesk.models.user import User
from supportdesk.service import access_policy
from supportdesk.service.ticket_lifecycle import utc_now

logger = logging.getLogger(__name__)


class UserServiceSingleton:
    _instance = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = UserService()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        with cls._lock:
            cls._instance = None


def get_user_service() -> "UserService":
    return UserServiceSingleton.get_instance()


class UserService:
    """User directory: profile rows keyed by the Supabase Auth identity."""

    SUMMARY_COLUMNS = "id, email, full_name"

    def __init__(self, supabase_client: Optional[Client] = None):
        self.supabase: Client = supabase_client or SupabaseClientSingleton.get_instance()
        self.table_name = "users"

    # Internal lookups (no caller; used by other services and auth)

    def get_by_id(self, user_id: str) -> Optional[User]:
        """Get a user by ID"""
        rows = run_query(
            self.supabase.table(self.table_name).select("*").eq("id", user_id).limit(1),
            "load user profile",
        )
        return User.from_dict(rows[0]) if rows else None

    def get_summaries(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Profile summaries for the given ids, keyed by id."""
        ids = sorted({uid for uid in user_ids if uid})
        if not ids:
            return {}
        rows = run_query(
            self.supabase.table(self.table_name).select(self.SUMMARY_COLUMNS).in_("id", ids),
            "load user summaries",
        )
        return {row["id"]: User.from_dict(row).summary() for row in rows}

    def create_profile(self, user_id: str, email: str, full_name: str) -> User:
        """Insert the profile row for a freshly registered identity. Role is always 'user'."""
        if not full_name or not full_name.strip():
            raise ValidationError("full_name is required")

        user = User()
        user.id = user_id
        user.email = email
        user.full_name = full_name.strip()
        user.role = User.ROLE_USER
        user.created_at = utc_now()

        rows = run_query(
            self.supabase.table(self.table_name).insert(user.to_row()),
            "create user profile",
        )
        logger.info(f"Created profile for user {user_id}")
        return User.from_dict(rows[0]) if rows else user

    # Caller-scoped operations

    def get_profile(self, caller: Caller, user_id: str) -> User:
        access_policy.ensure(access_policy.can_read_user(caller, user_id), caller, "read this profile")
        user = self.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def update_profile(self, caller: Caller, user_id: str, changes: Dict[str, Any]) -> User:
        """
        Update the caller's own profile.

        Only full_name and avatar_url are writable; role, email and id are
        rejected rather than ignored.
        """
        access_policy.ensure(access_policy.can_update_user(caller, user_id), caller, "update this profile")

        if not isinstance(changes, dict) or not changes:
            raise ValidationError("No profile fields to update")
        rejected = sorted(k for k in changes if k not in User.EDITABLE_FIELDS)
        if rejected:
            raise ValidationError(f"Fields cannot be changed: {rejected}")

        data = {}
        if 'full_name' in changes:
            full_name = changes['full_name']
            if not isinstance(full_name, str) or not full_name.strip():
                raise ValidationError("full_name cannot be empty")
            data['full_name'] = full_name.strip()
        if 'avatar_url' in changes:
            avatar_url = changes['avatar_url']
            if avatar_url is not None and not isinstance(avatar_url, str):
                raise ValidationError("avatar_url must be a string")
            data['avatar_url'] = avatar_url or None

        rows = run_query(
            self.supabase.table(self.table_name).update(data).eq("id", user_id),
            "update user profile",
        )
        if not rows:
            raise NotFound("User not found")
        logger.info(f"Updated profile fields {sorted(data)} for user {user_id}")
        return User.from_dict(rows[0])

    def list_admins(self, caller: Caller) -> List[User]:
        """Admins available as assignees."""
        access_policy.ensure(caller.is_admin, caller, "list administrators")
        rows = run_query(
            self.supabase.table(self.table_name)
            .select("*")
            .eq("role", User.ROLE_ADMIN)
            .order("full_name"),
            "list administrators",
        )
        return [User.from_dict(row) for row in rows]
