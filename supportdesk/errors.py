"""
Error taxonomy for SupportDesk.

Every error raised by the identity provider, the store boundary or the
access policy derives from SupportDeskError and carries the HTTP status and
machine-readable code the API returns for it.
"""

from typing import Any, Dict, Tuple


class SupportDeskError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code}


class AuthenticationError(SupportDeskError):
    """Bad credentials, missing or expired session."""
    status_code = 401
    code = "auth_required"


class InvalidCredentials(AuthenticationError):
    code = "invalid_credentials"


class AuthorizationDenied(SupportDeskError):
    """An access-policy predicate failed."""
    status_code = 403
    code = "forbidden"


class ValidationError(SupportDeskError):
    """Missing or malformed input."""
    status_code = 400
    code = "validation_error"


class EmailTaken(ValidationError):
    code = "email_taken"


class WeakPassword(ValidationError):
    code = "weak_password"


class NotFound(SupportDeskError):
    status_code = 404
    code = "not_found"


class TransientBackendError(SupportDeskError):
    """Network or service failure talking to Supabase. Never retried."""
    status_code = 503
    code = "backend_unavailable"


def error_response(error: SupportDeskError) -> Tuple[Dict[str, Any], int]:
    """Body and status for a JSON error response."""
    return error.to_dict(), error.status_code
