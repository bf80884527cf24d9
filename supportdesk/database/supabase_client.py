from supabase import create_client, Client
import logging
import threading

from supportdesk.config import get_settings

logger = logging.getLogger(__name__)


class SupabaseClientSingleton:
    """Service-role client shared by the whole process."""

    _instance = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> Client:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    supabase_url, api_key = get_settings().require_supabase()
                    cls._instance = create_client(supabase_url, api_key)
                    logger.info(f"Connected Supabase client for {supabase_url}")

        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        with cls._lock:
            cls._instance = None
