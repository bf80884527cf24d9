"""
Store boundary helpers.

Every PostgREST call made by the services goes through run_query so that
backend failures surface as SupportDesk errors exactly once, at this layer.
"""

import logging
from typing import Any, Dict, List

import httpx
from postgrest.exceptions import APIError

from supportdesk.errors import (
    AuthorizationDenied,
    NotFound,
    SupportDeskError,
    TransientBackendError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Postgres / PostgREST error codes with a domain meaning
INSUFFICIENT_PRIVILEGE = "42501"
NO_ROWS = "PGRST116"
INVALID_INPUT_CODES = {
    "23502",  # not_null_violation
    "23503",  # foreign_key_violation
    "23505",  # unique_violation
    "23514",  # check_violation
    "22P02",  # invalid_text_representation (e.g. malformed uuid)
}


def translate_backend_error(error: Exception, action: str) -> SupportDeskError:
    """Map a client/transport exception onto the SupportDesk error taxonomy."""
    if isinstance(error, APIError):
        code = str(error.code) if error.code is not None else None
        message = error.message or str(error)
        if code == INSUFFICIENT_PRIVILEGE:
            return AuthorizationDenied(f"Not permitted to {action}")
        if code == NO_ROWS:
            return NotFound(f"Nothing found to {action}")
        if code in INVALID_INPUT_CODES:
            return ValidationError(f"Invalid data while trying to {action}: {message}")
        return TransientBackendError(f"Backend error while trying to {action}: {message}")
    if isinstance(error, httpx.HTTPError):
        return TransientBackendError(f"Could not reach backend to {action}: {error}")
    return TransientBackendError(f"Unexpected backend failure while trying to {action}: {error}")


def run_query(query, action: str) -> List[Dict[str, Any]]:
    """
    Execute a PostgREST request builder and return its rows.

    Args:
        query: A supabase/postgrest request builder, ready to execute.
        action: Short description used in log lines and error messages.

    Returns:
        List of row dicts (empty when the backend returned nothing).
    """
    try:
        result = query.execute()
    except (APIError, httpx.HTTPError) as e:
        logger.error(f"Error trying to {action}: {e}")
        raise translate_backend_error(e, action) from e

    data = result.data
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)
