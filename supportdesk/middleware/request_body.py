"""
Request body helpers shared by the API blueprints.
"""

from typing import Any, Dict

from flask import request

from supportdesk.errors import ValidationError


def get_json_object() -> Dict[str, Any]:
    """
    The request's JSON body as a dict.

    A missing or unparseable body reads as {} so the service reports which
    fields are required. Any other JSON value (array, string, number) is
    rejected.
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
