"""
SciSubmit Review Core
Blueprint helpers shared by the JSON API.
"""

from flask import request

from scisubmit.utils.errors import E, api_error


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def require_fields(data: dict, *names):
    """Return an error response for the first missing field, else None.

    Actor ids (author_id, admin_id, reviewer_id) always come from the body;
    the API keeps no session state.
    """
    for name in names:
        if data.get(name) in (None, ""):
            return api_error(E.VALIDATION_REQUIRED, f"{name} is required")
    return None


def int_arg(name):
    """Optional integer query parameter; None when absent or malformed."""
    raw = request.args.get(name)
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None
