from dotenv import load_dotenv
import logging
import os
import threading

load_dotenv()

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


class Settings:
    def __init__(self) -> None:
        # Supabase project
        self.SUPABASE_URL = os.getenv('SUPABASE_URL')
        self.SUPABASE_SECRET_KEY = os.getenv('SUPABASE_SECRET_KEY') or os.getenv('SUPABASE_SERVICE_ROLE_KEY')
        self.SUPABASE_ANON_KEY = os.getenv('SUPABASE_ANON_KEY') or os.getenv('SUPABASE_KEY')
        # Optional: verify access tokens locally instead of asking Supabase Auth
        self.SUPABASE_JWT_SECRET = os.getenv('SUPABASE_JWT_SECRET')
        # HTTP
        origins = os.getenv('CORS_ALLOWED_ORIGINS')
        self.CORS_ALLOWED_ORIGINS = (
            [o.strip() for o in origins.split(',') if o.strip()] if origins else list(DEFAULT_ALLOWED_ORIGINS)
        )
        self.PORT = int(os.getenv('PORT', '5000'))
        # Logging
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
        self.LOG_FILE = os.getenv('LOG_FILE')

    def get(self, key: str, default=None):
        """Get setting value with optional default (dict-like access)."""
        return getattr(self, key, default)

    def require_supabase(self, *, anon: bool = False) -> tuple:
        """Return (url, key) for a Supabase client, raising if either is missing."""
        key = self.SUPABASE_ANON_KEY if anon else self.SUPABASE_SECRET_KEY
        key_name = 'SUPABASE_ANON_KEY' if anon else 'SUPABASE_SECRET_KEY'
        if not self.SUPABASE_URL or not key:
            raise ValueError(f"SUPABASE_URL and {key_name} must be set in environment variables")
        return self.SUPABASE_URL, key


_settings = None
_lock = threading.Lock()


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        with _lock:
            if _settings is None:
                _settings = Settings()
    return _settings


def reset_settings() -> None:
    global _settings
    with _lock:
        _settings = None


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings = None) -> None:
    """Root logging for the API and CLI: stderr, plus LOG_FILE when set."""
    settings = settings or get_settings()
    handlers = [logging.StreamHandler()]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE))

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )
    # httpx logs every Supabase request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
