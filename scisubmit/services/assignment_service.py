"""
Reviewer Assignment Service.

Admin-side engine that invites reviewers to submissions and ranks candidate
reviewers by keyword overlap and current workload. Also drives the
assignment's own lifecycle (accept / decline by the invited reviewer).

ReviewAssignment lifecycle:
    pending → accepted → completed
    pending → rejected

Usage:
    from scisubmit.services.assignment_service import assign_reviewer

    assignment = assign_reviewer(
        submission_id=12,
        reviewer_id=7,
        deadline="2026-05-01T17:00",     # server-local wall clock
        admin_id=1,
    )
"""

import logging
from dataclasses import asdict, dataclass, field

from sqlalchemy import func

from scisubmit.core.clock import get_clock
from scisubmit.core.exceptions import (
    AlreadyAssigned,
    AssignmentNotFound,
    DeadlineNotFuture,
    InvalidSubmissionStatus,
    InvalidTransition,
    ReviewerNotEligible,
    SubmissionNotFound,
)
from scisubmit.models import db
from scisubmit.models.identity import User, UserRole
from scisubmit.models.notification import NotificationKind
from scisubmit.models.review import (
    AssignmentStatus,
    ReviewAssignment,
    validate_assignment_transition,
)
from scisubmit.models.submission import ASSIGNABLE_STATUSES, Submission
from scisubmit.services import submission_lifecycle
from scisubmit.services.helpers.unit_of_work import unit_of_work
from scisubmit.services.keyword_matcher import match_score, rank_reviewers
from scisubmit.services.notification import NotificationService
from scisubmit.utils.deadlines import ensure_utc, normalize_input

logger = logging.getLogger(__name__)


@dataclass
class RankedReviewer:
    reviewer_id: int
    full_name: str
    email: str
    affiliation: str | None
    match_score: int
    active_load: int
    already_assigned: bool = False
    matched_keywords: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


# ═════════════════════════════════════════════════════════════════════════════
# Assign
# ═════════════════════════════════════════════════════════════════════════════


def assign_reviewer(submission_id, reviewer_id, deadline, admin_id, *, deadline_kind=None, clock=None):
    """
    Invite a reviewer to a submission.

    Preconditions are checked in a fixed order and the first failure wins:
      1. deadline strictly in the future         → DeadlineNotFuture
      2. submission exists                       → SubmissionNotFound
      3. submission status accepts reviewers     → InvalidSubmissionStatus
      4. reviewer exists / has role / is active  → ReviewerNotEligible
      5. pair not already assigned               → AlreadyAssigned

    Args:
        deadline: datetime or ISO-8601 string; naive values are read in the
            server timezone.
        deadline_kind: Optional DateTimeKind hint overriding inference.

    Returns:
        The new pending ReviewAssignment (committed).

    Raises:
        One of the above, or PersistenceError when storage fails.
    """
    now = get_clock(clock).now()
    deadline_utc = normalize_input(deadline, deadline_kind)

    # 1. Deadline
    if deadline_utc <= now:
        logger.warning("Assignment rejected: deadline %s not after %s (submission=%s reviewer=%s)",
                       deadline_utc.isoformat(), now.isoformat(), submission_id, reviewer_id)
        raise DeadlineNotFuture(deadline_utc, now)

    # 2. Submission
    submission = db.session.get(Submission, submission_id)
    if submission is None:
        logger.warning("Assignment rejected: submission %s not found", submission_id)
        raise SubmissionNotFound(submission_id)
    db.session.refresh(submission)

    # 3. Status
    if submission.status_enum not in ASSIGNABLE_STATUSES:
        logger.warning("Assignment rejected: submission %s in status %s", submission_id, submission.status)
        raise InvalidSubmissionStatus(submission_id, submission.status)

    # 4. Reviewer
    reviewer = db.session.get(User, reviewer_id)
    reason = None
    if reviewer is None:
        reason = "not_found"
    elif reviewer.role != UserRole.REVIEWER:
        reason = "wrong_role"
    elif not reviewer.is_active:
        reason = "inactive"
    if reason:
        logger.warning("Assignment rejected: reviewer %s %s", reviewer_id, reason)
        raise ReviewerNotEligible(reviewer_id, reason)

    # 5. Duplicate
    existing = ReviewAssignment.query.filter_by(submission_id=submission_id, reviewer_id=reviewer_id).first()
    if existing is not None:
        logger.warning("Assignment rejected: reviewer %s already on submission %s", reviewer_id, submission_id)
        raise AlreadyAssigned(submission_id, reviewer_id)

    with unit_of_work(on_integrity_error=lambda: AlreadyAssigned(submission_id, reviewer_id)):
        assignment = ReviewAssignment(
            submission_id=submission.id,
            reviewer_id=reviewer.id,
            status=AssignmentStatus.PENDING.value,
            invited_at=now,
            invited_by=admin_id,
            deadline=deadline_utc,
        )
        db.session.add(assignment)
        submission_lifecycle.start_review(submission)
        NotificationService.enqueue(
            NotificationKind.REVIEW_INVITATION,
            to_email=reviewer.email,
            submission_id=submission.id,
            reviewer_id=reviewer.id,
            payload={
                "submission_id": submission.id,
                "title": submission.title,
                "reviewer_name": reviewer.full_name,
                "deadline": deadline_utc,
            },
        )
        db.session.flush()

    logger.info("Reviewer assigned (submission status %s)", submission.status, extra={
        "assignment_id": assignment.id,
        "submission_id": submission.id,
        "reviewer_id": reviewer.id,
        "admin_id": admin_id,
    })
    return assignment


# ═════════════════════════════════════════════════════════════════════════════
# Candidate ranking
# ═════════════════════════════════════════════════════════════════════════════


def _active_loads() -> dict[int, int]:
    rows = (
        db.session.query(ReviewAssignment.reviewer_id, func.count(ReviewAssignment.id))
        .filter(
            ReviewAssignment.status == AssignmentStatus.ACCEPTED.value,
            ReviewAssignment.completed_at.is_(None),
        )
        .group_by(ReviewAssignment.reviewer_id)
        .all()
    )
    return {reviewer_id: count for reviewer_id, count in rows}


def get_available_reviewers(submission_id) -> list[RankedReviewer]:
    """
    Rank every active reviewer for a submission.

    Only approved keywords count. Reviewers with zero overlap are included
    with score 0. Order: match_score desc, active_load asc, reviewer id asc.
    """
    submission = db.session.get(Submission, submission_id)
    if submission is None:
        raise SubmissionNotFound(submission_id)

    submission_kw = {kw.id: kw.name for kw in submission.keywords if kw.is_approved}
    loads = _active_loads()
    assigned = {
        rid for (rid,) in db.session.query(ReviewAssignment.reviewer_id)
        .filter_by(submission_id=submission_id).all()
    }

    reviewers = (
        User.query.filter_by(role=UserRole.REVIEWER.value, is_active=True)
        .order_by(User.id)
        .all()
    )
    candidates = []
    for reviewer in reviewers:
        reviewer_kw = {kw.id: kw.name for kw in reviewer.keywords if kw.is_approved}
        overlap = sorted(submission_kw[k] for k in submission_kw.keys() & reviewer_kw.keys())
        candidates.append(RankedReviewer(
            reviewer_id=reviewer.id,
            full_name=reviewer.full_name,
            email=reviewer.email,
            affiliation=reviewer.affiliation,
            match_score=match_score(submission_kw.keys(), reviewer_kw.keys()),
            active_load=loads.get(reviewer.id, 0),
            already_assigned=reviewer.id in assigned,
            matched_keywords=overlap,
            keywords=sorted(reviewer_kw.values()),
        ))
    return rank_reviewers(candidates)


# ═════════════════════════════════════════════════════════════════════════════
# Reviewer response
# ═════════════════════════════════════════════════════════════════════════════


def _get_own_assignment(assignment_id, reviewer_id) -> ReviewAssignment:
    assignment = db.session.get(ReviewAssignment, assignment_id)
    if assignment is None or assignment.reviewer_id != reviewer_id:
        raise AssignmentNotFound(assignment_id)
    db.session.refresh(assignment)
    return assignment


def _transition(assignment: ReviewAssignment, action: str, new_status: AssignmentStatus) -> str:
    if not validate_assignment_transition(assignment.status, new_status.value):
        logger.warning("Rejected assignment transition: id=%s action=%s status=%s",
                       assignment.id, action, assignment.status)
        raise InvalidTransition("review_assignment", assignment.id, action, assignment.status)
    previous = assignment.status
    assignment.status = new_status.value
    return previous


def _notify_admins(assignment: ReviewAssignment, kind: NotificationKind, **extra):
    payload = {
        "submission_id": assignment.submission_id,
        "title": assignment.submission.title,
        "reviewer_name": assignment.reviewer.full_name,
    }
    payload.update(extra)
    NotificationService.enqueue_for_admins(
        kind, submission_id=assignment.submission_id, reviewer_id=assignment.reviewer_id, payload=payload,
    )


def accept_assignment(assignment_id, reviewer_id, *, clock=None):
    """pending → accepted. Only the invited reviewer may accept."""
    assignment = _get_own_assignment(assignment_id, reviewer_id)
    now = get_clock(clock).now()

    with unit_of_work():
        _transition(assignment, "accept", AssignmentStatus.ACCEPTED)
        assignment.accepted_at = now
        _notify_admins(assignment, NotificationKind.REVIEW_ACCEPTED)

    logger.info("Assignment accepted", extra={"assignment_id": assignment.id, "reviewer_id": reviewer_id})
    return assignment


def decline_assignment(assignment_id, reviewer_id, reason=None, *, clock=None):
    """pending → rejected, recording the reviewer's reason."""
    assignment = _get_own_assignment(assignment_id, reviewer_id)
    now = get_clock(clock).now()

    with unit_of_work():
        _transition(assignment, "decline", AssignmentStatus.REJECTED)
        assignment.rejected_at = now
        assignment.rejection_reason = (reason or "").strip() or None
        _notify_admins(assignment, NotificationKind.REVIEW_REJECTED, reason=assignment.rejection_reason)

    logger.info("Assignment declined", extra={"assignment_id": assignment.id, "reviewer_id": reviewer_id})
    return assignment


def list_assignments(*, submission_id=None, reviewer_id=None, status=None):
    """Assignments filtered by any combination of submission, reviewer and status."""
    q = ReviewAssignment.query
    if submission_id is not None:
        q = q.filter_by(submission_id=submission_id)
    if reviewer_id is not None:
        q = q.filter_by(reviewer_id=reviewer_id)
    if status is not None:
        q = q.filter_by(status=AssignmentStatus(status).value)
    return q.order_by(ReviewAssignment.invited_at, ReviewAssignment.id).all()


def is_overdue(assignment: ReviewAssignment, *, clock=None) -> bool:
    """Open assignment past its deadline. Informational only; nothing expires."""
    if assignment.status not in (AssignmentStatus.PENDING, AssignmentStatus.ACCEPTED):
        return False
    return ensure_utc(assignment.deadline) < get_clock(clock).now()
