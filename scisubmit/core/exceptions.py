"""
Review-core exception hierarchy.

Every rejected operation raises exactly one of these, so callers (the admin
UI through the JSON API, or other services) can tell each cause apart. They
are expected outcomes, not faults: the API layer renders them as structured
error bodies using ``kind`` as the machine-readable code.

Usage:
    from scisubmit.core.exceptions import AlreadyAssigned, InvalidTransition

    raise AlreadyAssigned(submission_id=7, reviewer_id=3)

    try:
        assign_reviewer(...)
    except ReviewCoreError as exc:
        return api_error(exc.kind, str(exc), details=exc.details)
"""


class ReviewCoreError(Exception):
    """Base class for every expected, recoverable review-core outcome.

    Args:
        message: Human-readable explanation.
        details: Optional structured context (ids, offending field, ...).
    """

    kind = "ReviewCoreError"

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class InvalidTransition(ReviewCoreError):
    """The entity's current status does not allow the requested action."""

    kind = "InvalidTransition"

    def __init__(self, entity: str, entity_id, action: str, current: str, reason: str | None = None) -> None:
        msg = f"Cannot '{action}' {entity} {entity_id} (status={current})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, {"entity": entity, "id": entity_id, "action": action, "current_status": current})
        self.entity = entity
        self.entity_id = entity_id
        self.action = action
        self.current_status = current
        self.reason = reason


class DeadlineNotFuture(ReviewCoreError):
    kind = "DeadlineNotFuture"

    def __init__(self, deadline, now) -> None:
        super().__init__(
            f"Deadline {deadline.isoformat()} is not after {now.isoformat()}",
            {"deadline": deadline.isoformat(), "now": now.isoformat()},
        )


class SubmissionNotFound(ReviewCoreError):
    kind = "SubmissionNotFound"

    def __init__(self, submission_id) -> None:
        super().__init__(f"Submission id={submission_id} not found", {"submission_id": submission_id})
        self.submission_id = submission_id


class InvalidSubmissionStatus(ReviewCoreError):
    """Submission exists but is not in a status that accepts reviewer assignment."""

    kind = "InvalidSubmissionStatus"

    def __init__(self, submission_id, status: str) -> None:
        super().__init__(
            f"Submission id={submission_id} cannot take reviewers in status '{status}'",
            {"submission_id": submission_id, "status": status},
        )
        self.status = status


class ReviewerNotEligible(ReviewCoreError):
    """Reviewer is unknown, does not hold the reviewer role, or is inactive.

    ``reason`` is one of ``not_found``, ``wrong_role``, ``inactive``.
    """

    kind = "ReviewerNotEligible"

    def __init__(self, reviewer_id, reason: str) -> None:
        super().__init__(
            f"User id={reviewer_id} cannot review ({reason})",
            {"reviewer_id": reviewer_id, "reason": reason},
        )
        self.reason = reason


class AlreadyAssigned(ReviewCoreError):
    kind = "AlreadyAssigned"

    def __init__(self, submission_id, reviewer_id) -> None:
        super().__init__(
            f"Reviewer id={reviewer_id} is already assigned to submission id={submission_id}",
            {"submission_id": submission_id, "reviewer_id": reviewer_id},
        )


class AssignmentNotFound(ReviewCoreError):
    kind = "AssignmentNotFound"

    def __init__(self, assignment_id) -> None:
        super().__init__(f"Review assignment id={assignment_id} not found", {"assignment_id": assignment_id})


class NotEligible(ReviewCoreError):
    """The assignment is not in a state that accepts a review submission."""

    kind = "NotEligible"

    def __init__(self, assignment_id, reason: str) -> None:
        super().__init__(
            f"Review assignment id={assignment_id} cannot take a review: {reason}",
            {"assignment_id": assignment_id, "reason": reason},
        )


class IncompleteOrOutOfRange(ReviewCoreError):
    """A required criterion is missing, out of bounds, or not a criterion at all."""

    kind = "IncompleteOrOutOfRange"

    def __init__(self, criterion: str, score=None, max_score: int | None = None, *, unknown=False) -> None:
        if unknown:
            msg = f"Score given for unknown criterion '{criterion}'"
        elif score is None:
            msg = f"Missing score for criterion '{criterion}'"
        else:
            msg = f"Score {score!r} for criterion '{criterion}' is outside 1..{max_score}"
        super().__init__(msg, {"criterion": criterion, "score": score, "max_score": max_score})
        self.criterion = criterion


class NoReviews(ReviewCoreError):
    kind = "NoReviews"

    def __init__(self, submission_id) -> None:
        super().__init__(
            f"Submission id={submission_id} has no completed reviews",
            {"submission_id": submission_id},
        )


class PersistenceError(ReviewCoreError):
    """Opaque storage failure; the unit of work was rolled back."""

    kind = "PersistenceError"
