"""
Database module for SupportDesk.

Provides database client access for all services.
"""

from supportdesk.database.supabase_client import SupabaseClientSingleton
from supportdesk.database.query import run_query, translate_backend_error


def get_supabase_client():
    """
    Get the Supabase client instance.

    Returns:
        Supabase Client instance
    """
    return SupabaseClientSingleton.get_instance()


__all__ = [
    'SupabaseClientSingleton',
    'get_supabase_client',
    'run_query',
    'translate_backend_error',
]
