"""
SciSubmit Review Core
Submission Blueprint: author and admin lifecycle endpoints.

Provides:
    - Draft create / edit / read
    - Abstract submit, approve, reject
    - Full paper upload record
    - Withdrawal
    - Conference plan dates
"""

import logging

from flask import Blueprint, jsonify, request

from scisubmit.blueprints import json_body, require_fields
from scisubmit.core.exceptions import ReviewCoreError
from scisubmit.services import conference_service, submission_lifecycle
from scisubmit.utils.errors import E, api_error, domain_error_response

logger = logging.getLogger(__name__)

submission_bp = Blueprint("submission_bp", __name__, url_prefix="/api/v1")


@submission_bp.errorhandler(ReviewCoreError)
def _handle_domain_error(error: ReviewCoreError):
    return domain_error_response(error)


@submission_bp.errorhandler(ValueError)
def _handle_value_error(error: ValueError):
    return api_error(E.VALIDATION_INVALID, str(error))


# ═══════════════════════════════════════════════════════════════════════════
#  DRAFTS
# ═══════════════════════════════════════════════════════════════════════════


@submission_bp.route("/submissions", methods=["POST"])
def create_submission():
    """Create a draft submission."""
    data = json_body()
    err = require_fields(data, "author_id", "conference_id", "title")
    if err:
        return err

    submission = submission_lifecycle.create_draft(
        author_id=data["author_id"],
        conference_id=data["conference_id"],
        title=data["title"],
        abstract=data.get("abstract", ""),
        keywords=data.get("keyword_ids") or [],
        abstract_file_url=data.get("abstract_file_url"),
    )
    return jsonify(submission.to_dict()), 201


@submission_bp.route("/submissions/<int:sid>", methods=["GET"])
def get_submission(sid):
    """Submission with assignments and final decision."""
    submission = submission_lifecycle.get_submission(sid)
    result = submission.to_dict(include_children=True)
    result["available_actions"] = submission_lifecycle.available_actions(submission.status)
    return jsonify(result)


@submission_bp.route("/submissions/<int:sid>", methods=["PUT"])
def update_submission(sid):
    """Edit a draft (author only)."""
    data = json_body()
    err = require_fields(data, "author_id")
    if err:
        return err

    submission = submission_lifecycle.update_draft(
        sid,
        data["author_id"],
        title=data.get("title"),
        abstract=data.get("abstract"),
        keywords=data.get("keyword_ids"),
        abstract_file_url=data.get("abstract_file_url"),
    )
    return jsonify(submission.to_dict())


@submission_bp.route("/submissions/<int:sid>/transitions", methods=["GET"])
def check_transition(sid):
    """Dry-run: would ``?action=`` be accepted right now?"""
    action = request.args.get("action", "")
    submission = submission_lifecycle.get_submission(sid)
    return jsonify(submission_lifecycle.validate_transition(submission, action))


# ═══════════════════════════════════════════════════════════════════════════
#  ABSTRACT PHASE
# ═══════════════════════════════════════════════════════════════════════════


@submission_bp.route("/submissions/<int:sid>/submit", methods=["POST"])
def submit_abstract(sid):
    data = json_body()
    err = require_fields(data, "author_id")
    if err:
        return err
    submission = submission_lifecycle.submit_abstract(sid, data["author_id"])
    return jsonify(submission.to_dict())


@submission_bp.route("/submissions/<int:sid>/approve-abstract", methods=["POST"])
def approve_abstract(sid):
    data = json_body()
    err = require_fields(data, "admin_id")
    if err:
        return err
    submission = submission_lifecycle.approve_abstract(sid, data["admin_id"])
    return jsonify(submission.to_dict())


@submission_bp.route("/submissions/<int:sid>/reject-abstract", methods=["POST"])
def reject_abstract(sid):
    data = json_body()
    err = require_fields(data, "admin_id", "reason")
    if err:
        return err
    submission = submission_lifecycle.reject_abstract(sid, data["admin_id"], data["reason"])
    return jsonify(submission.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  FULL PAPER / WITHDRAWAL
# ═══════════════════════════════════════════════════════════════════════════


@submission_bp.route("/submissions/<int:sid>/full-paper", methods=["POST"])
def submit_full_paper(sid):
    """Record an uploaded full paper (file storage happens elsewhere)."""
    data = json_body()
    err = require_fields(data, "author_id", "file_url")
    if err:
        return err
    submission = submission_lifecycle.submit_full_paper(
        sid,
        data["author_id"],
        file_url=data["file_url"],
        file_name=data.get("file_name", ""),
        file_size=data.get("file_size"),
    )
    result = submission.to_dict()
    current = submission.current_full_paper()
    result["current_version"] = current.to_dict() if current else None
    return jsonify(result)


@submission_bp.route("/submissions/<int:sid>/withdraw", methods=["POST"])
def withdraw_submission(sid):
    data = json_body()
    err = require_fields(data, "author_id")
    if err:
        return err
    submission = submission_lifecycle.withdraw_submission(sid, data["author_id"], data.get("reason"))
    return jsonify(submission.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  CONFERENCE PLAN
# ═══════════════════════════════════════════════════════════════════════════


@submission_bp.route("/conferences/<int:cid>/plan", methods=["PUT"])
def update_conference_plan(cid):
    """Update timeline dates; ``kind`` is utc | local | unspecified."""
    data = json_body()
    dates = data.get("dates")
    if not isinstance(dates, dict) or not dates:
        return api_error(E.VALIDATION_REQUIRED, "dates is required")
    plan = conference_service.update_conference_plan(cid, dates, kind=data.get("kind"))
    return jsonify(plan.to_dict())
