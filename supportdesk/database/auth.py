"""
Supabase authentication client helper.

End-user auth calls (sign up, sign in) run on a short-lived client created
with the project's anon key, so the session they establish never leaks into
the shared service-role client.
"""

from supabase import create_client, Client

from supportdesk.config import get_settings


def get_auth_client() -> Client:
    """Create and return an anon-key Supabase client using environment variables."""
    url, key = get_settings().require_supabase(anon=True)
    return create_client(supabase_url=url, supabase_key=key)
