"""Standardised API error responses.

Usage
-----
    from scisubmit.utils.errors import api_error, domain_error_response, E

    return api_error(E.VALIDATION_REQUIRED, "reviewer_id is required")

    try:
        assign_reviewer(...)
    except ReviewCoreError as exc:
        return domain_error_response(exc)
"""

from __future__ import annotations

from flask import jsonify

from scisubmit.core.exceptions import ReviewCoreError


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants.

    Request-shape errors use the ``ERR_`` prefix; domain outcomes reuse the
    exception ``kind`` verbatim so the admin UI can branch on it.
    """

    # Request validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    NOT_FOUND = "ERR_NOT_FOUND"
    INTERNAL = "ERR_INTERNAL"

    # Domain kinds
    INVALID_TRANSITION = "InvalidTransition"
    DEADLINE_NOT_FUTURE = "DeadlineNotFuture"
    SUBMISSION_NOT_FOUND = "SubmissionNotFound"
    INVALID_SUBMISSION_STATUS = "InvalidSubmissionStatus"
    REVIEWER_NOT_ELIGIBLE = "ReviewerNotEligible"
    ALREADY_ASSIGNED = "AlreadyAssigned"
    ASSIGNMENT_NOT_FOUND = "AssignmentNotFound"
    NOT_ELIGIBLE = "NotEligible"
    INCOMPLETE_OR_OUT_OF_RANGE = "IncompleteOrOutOfRange"
    NO_REVIEWS = "NoReviews"
    PERSISTENCE = "PersistenceError"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.NOT_FOUND: 404,
    E.INTERNAL: 500,
    E.SUBMISSION_NOT_FOUND: 404,
    E.ASSIGNMENT_NOT_FOUND: 404,
    E.INVALID_TRANSITION: 409,
    E.INVALID_SUBMISSION_STATUS: 409,
    E.ALREADY_ASSIGNED: 409,
    E.NOT_ELIGIBLE: 409,
    E.NO_REVIEWS: 409,
    E.DEADLINE_NOT_FUTURE: 422,
    E.REVIEWER_NOT_ELIGIBLE: 422,
    E.INCOMPLETE_OR_OUT_OF_RANGE: 422,
    E.PERSISTENCE: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (offending ids, criterion, ...).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def domain_error_response(exc: ReviewCoreError):
    """Render a review-core exception with its ``kind`` as the error code."""
    if exc.kind == E.PERSISTENCE:
        # Storage internals stay in the log, not in the response.
        return api_error(E.PERSISTENCE, "Storage failure, operation rolled back")
    return api_error(exc.kind, str(exc), details=exc.details)
