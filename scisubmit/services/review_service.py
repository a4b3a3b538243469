"""
Review Service: reviewer scorecard submission.

A reviewer who accepted an assignment submits one score per active review
criterion of the conference, a recommendation tag and comments. Submitting
completes the assignment.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from scisubmit.core.clock import get_clock
from scisubmit.core.exceptions import AssignmentNotFound, IncompleteOrOutOfRange, NotEligible
from scisubmit.models import db
from scisubmit.models.conference import Conference
from scisubmit.models.notification import NotificationKind
from scisubmit.models.review import (
    AssignmentStatus,
    Review,
    ReviewAssignment,
    ReviewScore,
    normalize_recommendation,
)
from scisubmit.services.helpers.unit_of_work import unit_of_work
from scisubmit.services.notification import NotificationService

logger = logging.getLogger(__name__)

_TWO_PLACES = Decimal("0.01")


def _is_int_score(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_scores(criteria, scores: dict) -> dict[str, int]:
    """Check every active criterion in order; return the accepted scores.

    A key that names no active criterion is rejected once every active
    criterion has passed.
    """
    accepted = {}
    for criterion in criteria:
        if criterion.name not in scores or scores[criterion.name] is None:
            raise IncompleteOrOutOfRange(criterion.name)
        value = scores[criterion.name]
        if not _is_int_score(value) or not 1 <= value <= criterion.max_score:
            raise IncompleteOrOutOfRange(criterion.name, value, criterion.max_score)
        accepted[criterion.name] = value
    for name in scores:
        if name not in accepted:
            raise IncompleteOrOutOfRange(name, scores[name], unknown=True)
    return accepted


def average(values) -> Decimal | None:
    values = list(values)
    if not values:
        return None
    return (Decimal(sum(values)) / Decimal(len(values))).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def submit_review(
    assignment_id,
    reviewer_id,
    scores: dict,
    recommendation=None,
    comments_for_author=None,
    comments_for_admin=None,
    *,
    clock=None,
) -> Review:
    """
    Record a review and complete its assignment.

    Args:
        scores: {criterion name: integer score}.
        recommendation: Accept | MinorRevision | MajorRevision | Reject
            (case-insensitive; Minor / Major accepted).

    Raises:
        AssignmentNotFound: unknown id, or the assignment belongs to someone else.
        NotEligible: assignment is not in status accepted.
        IncompleteOrOutOfRange: first active criterion missing or out of bounds.
    """
    assignment = db.session.get(ReviewAssignment, assignment_id)
    if assignment is None or assignment.reviewer_id != reviewer_id:
        raise AssignmentNotFound(assignment_id)
    db.session.refresh(assignment)

    if assignment.status != AssignmentStatus.ACCEPTED:
        logger.warning("Review rejected: assignment=%s status=%s", assignment.id, assignment.status)
        raise NotEligible(assignment.id, f"assignment status is '{assignment.status}', expected 'accepted'")

    submission = assignment.submission
    conference = db.session.get(Conference, submission.conference_id)
    try:
        accepted = validate_scores(conference.active_criteria(), scores or {})
    except IncompleteOrOutOfRange:
        logger.warning("Review rejected: assignment=%s invalid scorecard", assignment.id)
        raise

    tag = normalize_recommendation(recommendation)
    now = get_clock(clock).now()

    with unit_of_work():
        review = assignment.review
        if review is None:
            review = Review(
                review_assignment_id=assignment.id,
                submission_id=assignment.submission_id,
                reviewer_id=reviewer_id,
            )
            db.session.add(review)
        else:
            review.updated_at = now

        review.average_score = average(accepted.values())
        review.recommendation = tag.value if tag else None
        review.comments_for_author = comments_for_author
        review.comments_for_admin = comments_for_admin
        review.submitted_at = now

        review.scores.clear()
        db.session.flush()
        for name, value in accepted.items():
            review.scores.append(ReviewScore(criteria_name=name, score=value))

        assignment.status = AssignmentStatus.COMPLETED.value
        assignment.completed_at = now

        payload = {
            "submission_id": submission.id,
            "title": submission.title,
            "average_score": float(review.average_score) if review.average_score is not None else None,
            "recommendation": review.recommendation,
        }
        NotificationService.enqueue(
            NotificationKind.REVIEW_COMPLETED,
            to_email=submission.author.email,
            submission_id=submission.id,
            reviewer_id=reviewer_id,
            payload=payload,
        )
        NotificationService.enqueue_for_admins(
            NotificationKind.REVIEW_COMPLETED,
            submission_id=submission.id,
            reviewer_id=reviewer_id,
            payload=payload,
        )

    logger.info("Review submitted: average=%s", review.average_score, extra={
        "assignment_id": assignment.id, "submission_id": submission.id, "reviewer_id": reviewer_id,
    })
    return review


def list_reviews(submission_id, *, completed_only=True):
    """Reviews of a submission, optionally only those whose assignment is completed."""
    q = Review.query.filter_by(submission_id=submission_id)
    if completed_only:
        q = q.join(ReviewAssignment, Review.review_assignment_id == ReviewAssignment.id).filter(
            ReviewAssignment.status == AssignmentStatus.COMPLETED.value,
        )
    return q.order_by(Review.id).all()
