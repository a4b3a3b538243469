"""
Decision Service: review aggregation and the admin's final decision.

``aggregate_for_decision`` builds an advisory suggestion from the completed
reviews; ``make_final_decision`` records the admin's binding ruling. The
suggestion is never applied on its own.

Suggestion rules (average = mean of completed reviews' averages):
    0 reviews   → Reject
    1 review    → Accept if score ≥ 4.0 and tag Accept
                  MinorRevision if score ≥ 3.5
                  MajorRevision if score ≥ 3.0
                  else Reject
    ≥2 reviews  → Accept if avg ≥ 4.0 and ≥2 Accept tags
                  MinorRevision if avg ≥ 3.5 and ≥1 Accept-or-Minor tag
                  MajorRevision if avg ≥ 3.0 and ≥1 Minor-or-Major tag
                  else Reject
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal

from scisubmit.core.clock import get_clock
from scisubmit.core.exceptions import InvalidTransition, NoReviews, SubmissionNotFound
from scisubmit.models import db
from scisubmit.models.notification import NotificationKind
from scisubmit.models.review import (
    DECISION_STATUS_MAP,
    AssignmentStatus,
    DecisionType,
    FinalDecision,
    Recommendation,
    Review,
    ReviewAssignment,
    normalize_recommendation,
)
from scisubmit.models.submission import Submission, SubmissionStatus
from scisubmit.services import submission_lifecycle
from scisubmit.services.helpers.unit_of_work import unit_of_work
from scisubmit.services.notification import NotificationService

logger = logging.getLogger(__name__)

ACCEPT_THRESHOLD = Decimal("4.0")
MINOR_THRESHOLD = Decimal("3.5")
MAJOR_THRESHOLD = Decimal("3.0")


@dataclass
class ReviewSummary:
    review_id: int
    reviewer_id: int
    reviewer_name: str
    score: float
    recommendation: str | None
    comments_for_author: str | None = None
    submitted_at: datetime | None = None

    def to_dict(self):
        data = asdict(self)
        data["submitted_at"] = self.submitted_at.isoformat() if self.submitted_at else None
        return data


@dataclass
class DecisionSuggestion:
    submission_id: int
    title: str
    status: str
    average_score: float
    suggestion: str
    can_make_decision: bool
    total_reviews: int
    completed_reviews: int
    reviews: list[ReviewSummary] = field(default_factory=list)
    final_decision: dict | None = None

    def to_dict(self):
        data = asdict(self)
        data["reviews"] = [r.to_dict() for r in self.reviews]
        return data


# ── Pure rules ───────────────────────────────────────────────────────────


def _mean(scores) -> Decimal:
    values = [Decimal(0) if s is None else Decimal(str(s)) for s in scores]
    if not values:
        return Decimal(0)
    return sum(values) / len(values)


def average_score(scores) -> float:
    """Mean of review averages rounded to 2 places; a missing average counts as 0.

    For display and the stored decision snapshot only. The suggestion rules
    compare the unrounded mean.
    """
    return float(round(_mean(scores), 2))


def suggest_decision(reviews) -> Recommendation:
    """
    Advisory recommendation from completed reviews.

    Args:
        reviews: sequence of (score, tag) pairs or objects with ``score`` /
            ``recommendation`` attributes.
    """
    pairs = []
    for r in reviews:
        if isinstance(r, tuple):
            score, tag = r
        else:
            score, tag = getattr(r, "score", None), r.recommendation
        pairs.append((Decimal(0) if score is None else Decimal(str(score)), normalize_recommendation(tag)))

    if not pairs:
        return Recommendation.REJECT

    if len(pairs) == 1:
        score, tag = pairs[0]
        if score >= ACCEPT_THRESHOLD and tag is Recommendation.ACCEPT:
            return Recommendation.ACCEPT
        if score >= MINOR_THRESHOLD:
            return Recommendation.MINOR_REVISION
        if score >= MAJOR_THRESHOLD:
            return Recommendation.MAJOR_REVISION
        return Recommendation.REJECT

    avg = _mean(score for score, _ in pairs)
    tags = [tag for _, tag in pairs]
    accepts = tags.count(Recommendation.ACCEPT)
    minors = tags.count(Recommendation.MINOR_REVISION)
    majors = tags.count(Recommendation.MAJOR_REVISION)

    if avg >= ACCEPT_THRESHOLD and accepts >= 2:
        return Recommendation.ACCEPT
    if avg >= MINOR_THRESHOLD and (accepts + minors) >= 1:
        return Recommendation.MINOR_REVISION
    if avg >= MAJOR_THRESHOLD and (minors + majors) >= 1:
        return Recommendation.MAJOR_REVISION
    return Recommendation.REJECT


# ── Queries ──────────────────────────────────────────────────────────────


def _completed_reviews(submission_id) -> list[Review]:
    return (
        Review.query.join(ReviewAssignment, Review.review_assignment_id == ReviewAssignment.id)
        .filter(
            ReviewAssignment.submission_id == submission_id,
            ReviewAssignment.status == AssignmentStatus.COMPLETED.value,
        )
        .order_by(Review.id)
        .all()
    )


def aggregate_for_decision(submission_id) -> DecisionSuggestion:
    """Summarise completed reviews and compute the advisory suggestion."""
    submission = db.session.get(Submission, submission_id)
    if submission is None:
        raise SubmissionNotFound(submission_id)
    db.session.refresh(submission)

    completed = _completed_reviews(submission.id)
    summaries = [
        ReviewSummary(
            review_id=r.id,
            reviewer_id=r.reviewer_id,
            reviewer_name=r.reviewer.full_name if r.reviewer else "",
            score=r.score_value,
            recommendation=r.recommendation,
            comments_for_author=r.comments_for_author,
            submitted_at=r.submitted_at,
        )
        for r in completed
    ]
    total = ReviewAssignment.query.filter_by(submission_id=submission.id).count()

    return DecisionSuggestion(
        submission_id=submission.id,
        title=submission.title,
        status=submission.status,
        average_score=average_score(r.average_score for r in completed),
        suggestion=suggest_decision(summaries).value,
        can_make_decision=bool(completed) and submission.status == SubmissionStatus.UNDER_REVIEW,
        total_reviews=total,
        completed_reviews=len(completed),
        reviews=summaries,
        final_decision=submission.final_decision.to_dict() if submission.final_decision else None,
    )


# ── Command ──────────────────────────────────────────────────────────────


def make_final_decision(submission_id, decision, reason, admin_id, *, clock=None) -> FinalDecision:
    """
    Record the admin's final decision and move the submission accordingly.

    A repeated decision whose outcome status equals the submission's current
    status overwrites the existing row (no duplicate, status unchanged).
    Any other decision outside under_review raises InvalidTransition.

    Raises:
        SubmissionNotFound, NoReviews, InvalidTransition, PersistenceError
    """
    decision = DecisionType(decision)
    target = DECISION_STATUS_MAP[decision]

    submission = db.session.get(Submission, submission_id)
    if submission is None:
        raise SubmissionNotFound(submission_id)
    db.session.refresh(submission)

    completed = _completed_reviews(submission.id)
    if not completed:
        logger.warning("Decision rejected: submission %s has no completed reviews", submission.id)
        raise NoReviews(submission.id)

    existing = FinalDecision.query.filter_by(submission_id=submission.id).first()
    is_repeat = existing is not None and submission.status == target
    if not is_repeat and submission.status != SubmissionStatus.UNDER_REVIEW:
        logger.warning("Decision rejected: submission %s status=%s decision=%s",
                       submission.id, submission.status, decision.value)
        raise InvalidTransition("submission", submission.id, "decide", submission.status,
                                f"cannot record '{decision.value}' from status '{submission.status}'")

    avg = Decimal(str(average_score(r.average_score for r in completed)))
    now = get_clock(clock).now()

    with unit_of_work():
        if existing is None:
            existing = FinalDecision(submission_id=submission.id)
            db.session.add(existing)
        existing.decision = decision.value
        existing.decision_by = admin_id
        existing.decision_reason = reason
        existing.average_score = avg
        existing.decided_at = now

        previous = submission.status
        if not is_repeat:
            submission_lifecycle.apply_decision_status(submission, target)

        NotificationService.enqueue(
            NotificationKind.FINAL_DECISION,
            to_email=submission.author.email,
            submission_id=submission.id,
            payload={
                "submission_id": submission.id,
                "title": submission.title,
                "decision": decision.value,
                "reason": reason,
                "average_score": float(avg),
            },
        )

    logger.info("Final decision %s recorded: %s → %s", decision.value, previous, submission.status,
                extra={"submission_id": submission.id, "admin_id": admin_id})
    return existing
