from supportdesk.middleware.auth import require_auth, get_bearer_token
from supportdesk.middleware.request_body import get_json_object

__all__ = ["require_auth", "get_bearer_token", "get_json_object"]
