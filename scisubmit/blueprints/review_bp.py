"""
SciSubmit Review Core
Review Blueprint: reviewer assignment, scorecards and final decisions.

Provides:
    - Candidate reviewer ranking and invitation (admin)
    - Invitation accept / decline and scorecard submission (reviewer)
    - Decision aggregation and the binding final decision (admin)
"""

import logging

from flask import Blueprint, jsonify, request

from scisubmit.blueprints import int_arg, json_body, require_fields
from scisubmit.core.exceptions import ReviewCoreError
from scisubmit.services import assignment_service, decision_service, review_service
from scisubmit.utils.errors import E, api_error, domain_error_response

logger = logging.getLogger(__name__)

review_bp = Blueprint("review_bp", __name__, url_prefix="/api/v1")


@review_bp.errorhandler(ReviewCoreError)
def _handle_domain_error(error: ReviewCoreError):
    return domain_error_response(error)


@review_bp.errorhandler(ValueError)
def _handle_value_error(error: ValueError):
    return api_error(E.VALIDATION_INVALID, str(error))


# ═══════════════════════════════════════════════════════════════════════════
#  ASSIGNMENT (admin)
# ═══════════════════════════════════════════════════════════════════════════


@review_bp.route("/submissions/<int:sid>/available-reviewers", methods=["GET"])
def available_reviewers(sid):
    """Active reviewers ranked by keyword match, then current load."""
    ranked = assignment_service.get_available_reviewers(sid)
    return jsonify({"items": [r.to_dict() for r in ranked], "total": len(ranked)})


@review_bp.route("/submissions/<int:sid>/assignments", methods=["POST"])
def assign_reviewer(sid):
    """Invite a reviewer. ``deadline`` is ISO-8601; no offset means server-local."""
    data = json_body()
    err = require_fields(data, "reviewer_id", "deadline", "admin_id")
    if err:
        return err

    assignment = assignment_service.assign_reviewer(
        sid,
        data["reviewer_id"],
        data["deadline"],
        data["admin_id"],
        deadline_kind=data.get("deadline_kind"),
    )
    return jsonify(assignment.to_dict()), 201


@review_bp.route("/assignments", methods=["GET"])
def list_assignments():
    status = request.args.get("status") or None
    items = assignment_service.list_assignments(
        submission_id=int_arg("submission_id"),
        reviewer_id=int_arg("reviewer_id"),
        status=status,
    )
    return jsonify({"items": [a.to_dict() for a in items], "total": len(items)})


# ═══════════════════════════════════════════════════════════════════════════
#  REVIEWER RESPONSE
# ═══════════════════════════════════════════════════════════════════════════


@review_bp.route("/assignments/<int:aid>/accept", methods=["POST"])
def accept_assignment(aid):
    data = json_body()
    err = require_fields(data, "reviewer_id")
    if err:
        return err
    assignment = assignment_service.accept_assignment(aid, data["reviewer_id"])
    return jsonify(assignment.to_dict())


@review_bp.route("/assignments/<int:aid>/decline", methods=["POST"])
def decline_assignment(aid):
    data = json_body()
    err = require_fields(data, "reviewer_id")
    if err:
        return err
    assignment = assignment_service.decline_assignment(aid, data["reviewer_id"], data.get("reason"))
    return jsonify(assignment.to_dict())


@review_bp.route("/assignments/<int:aid>/review", methods=["POST"])
def submit_review(aid):
    """Submit the scorecard: ``scores`` maps criterion name to an integer."""
    data = json_body()
    err = require_fields(data, "reviewer_id")
    if err:
        return err
    scores = data.get("scores")
    if not isinstance(scores, dict):
        return api_error(E.VALIDATION_INVALID, "scores must be an object of criterion → score")

    review = review_service.submit_review(
        aid,
        data["reviewer_id"],
        scores,
        recommendation=data.get("recommendation"),
        comments_for_author=data.get("comments_for_author"),
        comments_for_admin=data.get("comments_for_admin"),
    )
    return jsonify(review.to_dict()), 201


# ═══════════════════════════════════════════════════════════════════════════
#  FINAL DECISION (admin)
# ═══════════════════════════════════════════════════════════════════════════


@review_bp.route("/submissions/<int:sid>/decision", methods=["GET"])
def decision_summary(sid):
    """Completed reviews, average score and the advisory suggestion."""
    return jsonify(decision_service.aggregate_for_decision(sid).to_dict())


@review_bp.route("/submissions/<int:sid>/decision", methods=["POST"])
def make_decision(sid):
    data = json_body()
    err = require_fields(data, "decision", "admin_id")
    if err:
        return err

    decision = decision_service.make_final_decision(
        sid, data["decision"], data.get("reason"), data["admin_id"],
    )
    return jsonify(decision.to_dict())
