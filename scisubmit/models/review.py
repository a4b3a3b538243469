"""
SciSubmit Review Core
Review domain models.

Models:
    - ReviewAssignment:  one reviewer invited to review one submission
    - Review:            the reviewer's scorecard (1:1 with a completed assignment)
    - ReviewScore:       one score per active review criterion
    - FinalDecision:     the admin's binding ruling (at most one per submission)

Lifecycle states:
    ReviewAssignment:  pending → accepted → completed  |  pending → rejected
"""

import enum
from datetime import datetime, timezone

from scisubmit.models import db
from scisubmit.models.submission import SubmissionStatus


class AssignmentStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


ASSIGNMENT_TRANSITIONS = {
    "pending": ["accepted", "rejected"],
    "accepted": ["completed"],
    "rejected": [],
    "completed": [],
}


def validate_assignment_transition(old_status, new_status):
    """Return True if ReviewAssignment status transition is valid."""
    return new_status in ASSIGNMENT_TRANSITIONS.get(old_status, [])


class Recommendation(str, enum.Enum):
    """Reviewer's free-text recommendation tag, normalised."""

    ACCEPT = "Accept"
    MINOR_REVISION = "MinorRevision"
    MAJOR_REVISION = "MajorRevision"
    REJECT = "Reject"


_RECOMMENDATION_ALIASES = {
    "accept": Recommendation.ACCEPT,
    "minor": Recommendation.MINOR_REVISION,
    "minorrevision": Recommendation.MINOR_REVISION,
    "minor_revision": Recommendation.MINOR_REVISION,
    "major": Recommendation.MAJOR_REVISION,
    "majorrevision": Recommendation.MAJOR_REVISION,
    "major_revision": Recommendation.MAJOR_REVISION,
    "reject": Recommendation.REJECT,
}


def normalize_recommendation(tag):
    """Map a reviewer tag (case-insensitive, aliases allowed) to a Recommendation.

    Returns None for empty or unknown tags.
    """
    if tag is None:
        return None
    if isinstance(tag, Recommendation):
        return tag
    key = str(tag).strip().lower().replace(" ", "")
    return _RECOMMENDATION_ALIASES.get(key)


class DecisionType(str, enum.Enum):
    ACCEPTED = "Accepted"
    MINOR_REVISION = "MinorRevision"
    MAJOR_REVISION = "MajorRevision"
    REJECTED = "Rejected"


DECISION_STATUS_MAP = {
    DecisionType.ACCEPTED: SubmissionStatus.ACCEPTED,
    DecisionType.MINOR_REVISION: SubmissionStatus.REVISION_REQUIRED,
    DecisionType.MAJOR_REVISION: SubmissionStatus.REVISION_REQUIRED,
    DecisionType.REJECTED: SubmissionStatus.REJECTED,
}


# ═════════════════════════════════════════════════════════════════════════════
# 1. ReviewAssignment
# ═════════════════════════════════════════════════════════════════════════════


class ReviewAssignment(db.Model):
    """
    Invitation of one reviewer to one submission.
    The (submission_id, reviewer_id) pair is unique: the database is the final
    guard against two concurrent invitations for the same pair.
    """

    __tablename__ = "review_assignments"

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(
        db.Integer, db.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    reviewer_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    status = db.Column(
        db.String(20), nullable=False, default=AssignmentStatus.PENDING.value,
        comment="pending | accepted | rejected | completed",
    )

    invited_at = db.Column(db.DateTime(timezone=True), nullable=False)
    invited_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    deadline = db.Column(db.DateTime(timezone=True), nullable=False, comment="Absolute UTC instant")
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("submission_id", "reviewer_id", name="uq_review_assignment_pair"),
        db.CheckConstraint(
            "status IN ('pending','accepted','rejected','completed')",
            name="ck_review_assignment_status",
        ),
    )

    reviewer = db.relationship("User", foreign_keys=[reviewer_id])
    inviter = db.relationship("User", foreign_keys=[invited_by])
    review = db.relationship(
        "Review", backref="assignment", uselist=False, cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "submission_id": self.submission_id,
            "reviewer_id": self.reviewer_id,
            "status": self.status,
            "invited_at": self.invited_at.isoformat() if self.invited_at else None,
            "invited_by": self.invited_by,
            "accepted_at": self.accepted_at.isoformat() if self.accepted_at else None,
            "rejected_at": self.rejected_at.isoformat() if self.rejected_at else None,
            "rejection_reason": self.rejection_reason,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def __repr__(self):
        return f"<ReviewAssignment {self.id}: sub={self.submission_id} rev={self.reviewer_id} [{self.status}]>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. Review + ReviewScore
# ═════════════════════════════════════════════════════════════════════════════


class Review(db.Model):
    __tablename__ = "reviews"

    id = db.Column(db.Integer, primary_key=True)
    review_assignment_id = db.Column(
        db.Integer, db.ForeignKey("review_assignments.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    submission_id = db.Column(
        db.Integer, db.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    reviewer_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )

    average_score = db.Column(db.Numeric(4, 2), nullable=True)
    recommendation = db.Column(
        db.String(50), nullable=True, comment="Accept | MinorRevision | MajorRevision | Reject",
    )
    comments_for_author = db.Column(db.Text, nullable=True)
    comments_for_admin = db.Column(db.Text, nullable=True)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    scores = db.relationship(
        "ReviewScore", backref="review", lazy="selectin",
        cascade="all, delete-orphan", order_by="ReviewScore.id",
    )
    reviewer = db.relationship("User", foreign_keys=[reviewer_id])

    @property
    def score_value(self) -> float:
        """Average as float; a review without an average counts as 0."""
        return float(self.average_score) if self.average_score is not None else 0.0

    def to_dict(self):
        return {
            "id": self.id,
            "review_assignment_id": self.review_assignment_id,
            "submission_id": self.submission_id,
            "reviewer_id": self.reviewer_id,
            "average_score": float(self.average_score) if self.average_score is not None else None,
            "recommendation": self.recommendation,
            "comments_for_author": self.comments_for_author,
            "comments_for_admin": self.comments_for_admin,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "scores": {s.criteria_name: s.score for s in self.scores},
        }


class ReviewScore(db.Model):
    __tablename__ = "review_scores"

    id = db.Column(db.Integer, primary_key=True)
    review_id = db.Column(
        db.Integer, db.ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    criteria_name = db.Column(db.String(255), nullable=False)
    score = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("review_id", "criteria_name", name="uq_review_score_criteria"),
        db.CheckConstraint("score >= 1", name="ck_review_score_min"),
    )


# ═════════════════════════════════════════════════════════════════════════════
# 3. FinalDecision
# ═════════════════════════════════════════════════════════════════════════════


class FinalDecision(db.Model):
    """Admin ruling. One row per submission; a repeated decision overwrites it."""

    __tablename__ = "final_decisions"

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(
        db.Integer, db.ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    decision = db.Column(db.String(20), nullable=False)
    decision_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    decision_reason = db.Column(db.Text, nullable=True)
    average_score = db.Column(db.Numeric(4, 2), nullable=True)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.CheckConstraint(
            "decision IN ('Accepted','MinorRevision','MajorRevision','Rejected')",
            name="ck_final_decision_type",
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "submission_id": self.submission_id,
            "decision": self.decision,
            "decision_by": self.decision_by,
            "decision_reason": self.decision_reason,
            "average_score": float(self.average_score) if self.average_score is not None else None,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
        }
