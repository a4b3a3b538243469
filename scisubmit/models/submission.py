"""
SciSubmit Review Core
Submission domain models.

Models:
    - Submission:        one paper tracked from abstract draft to final decision
    - FullPaperVersion:  uploaded full-paper file versions (one current at a time)

Architecture:
    Conference ──1:N──▶ Submission ──1:N──▶ ReviewAssignment ──1:1──▶ Review
    Submission ──1:N──▶ FullPaperVersion
    Submission ──1:1──▶ FinalDecision
    Submission ──N:M──▶ Keyword  (via SubmissionKeyword)

Lifecycle states:
    draft → pending_abstract_review → abstract_approved → full_paper_submitted
          → under_review → accepted | revision_required | rejected
    pending_abstract_review → abstract_rejected
    (most non-terminal states) → withdrawn
"""

import enum
from datetime import datetime, timezone

from scisubmit.models import db


class SubmissionStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING_ABSTRACT_REVIEW = "pending_abstract_review"
    ABSTRACT_REJECTED = "abstract_rejected"
    ABSTRACT_APPROVED = "abstract_approved"
    FULL_PAPER_SUBMITTED = "full_paper_submitted"
    UNDER_REVIEW = "under_review"
    REVISION_REQUIRED = "revision_required"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


TERMINAL_STATUSES = {
    SubmissionStatus.ABSTRACT_REJECTED,
    SubmissionStatus.ACCEPTED,
    SubmissionStatus.REJECTED,
    SubmissionStatus.WITHDRAWN,
}

# Statuses in which an admin may invite a reviewer. pending_abstract_review is
# allowed for abstract review but never moves the submission to under_review.
ASSIGNABLE_STATUSES = {
    SubmissionStatus.PENDING_ABSTRACT_REVIEW,
    SubmissionStatus.ABSTRACT_APPROVED,
    SubmissionStatus.FULL_PAPER_SUBMITTED,
    SubmissionStatus.UNDER_REVIEW,
}


# ── Lifecycle Transition Guards ──────────────────────────────────────────────
# action → {"from": allowed source statuses, "to": target(s)}
# 'decide' has three targets; the caller picks one via the decision mapping.

SUBMISSION_TRANSITIONS = {
    "submit_abstract": {
        "from": {SubmissionStatus.DRAFT},
        "to": {SubmissionStatus.PENDING_ABSTRACT_REVIEW},
    },
    "approve_abstract": {
        "from": {SubmissionStatus.PENDING_ABSTRACT_REVIEW},
        "to": {SubmissionStatus.ABSTRACT_APPROVED},
    },
    "reject_abstract": {
        "from": {SubmissionStatus.PENDING_ABSTRACT_REVIEW},
        "to": {SubmissionStatus.ABSTRACT_REJECTED},
    },
    "submit_full_paper": {
        "from": {SubmissionStatus.ABSTRACT_APPROVED},
        "to": {SubmissionStatus.FULL_PAPER_SUBMITTED},
    },
    "start_review": {
        "from": {SubmissionStatus.ABSTRACT_APPROVED, SubmissionStatus.FULL_PAPER_SUBMITTED},
        "to": {SubmissionStatus.UNDER_REVIEW},
    },
    "decide": {
        "from": {SubmissionStatus.UNDER_REVIEW},
        "to": {
            SubmissionStatus.ACCEPTED,
            SubmissionStatus.REVISION_REQUIRED,
            SubmissionStatus.REJECTED,
        },
    },
    "withdraw": {
        "from": {
            SubmissionStatus.DRAFT,
            SubmissionStatus.PENDING_ABSTRACT_REVIEW,
            SubmissionStatus.ABSTRACT_APPROVED,
            SubmissionStatus.FULL_PAPER_SUBMITTED,
            SubmissionStatus.UNDER_REVIEW,
            SubmissionStatus.REVISION_REQUIRED,
        },
        "to": {SubmissionStatus.WITHDRAWN},
    },
}


class Submission(db.Model):
    """One paper. ``status`` is the single source of truth for its lifecycle."""

    __tablename__ = "submissions"

    id = db.Column(db.Integer, primary_key=True)
    conference_id = db.Column(
        db.Integer, db.ForeignKey("conferences.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    author_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True,
    )

    title = db.Column(db.String(500), nullable=False, default="")
    abstract = db.Column(db.Text, default="")
    status = db.Column(
        db.String(30), nullable=False, default=SubmissionStatus.DRAFT.value, index=True,
        comment="draft | pending_abstract_review | abstract_rejected | abstract_approved | "
                "full_paper_submitted | under_review | revision_required | accepted | rejected | withdrawn",
    )
    abstract_file_url = db.Column(db.String(500), nullable=True)

    abstract_submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    abstract_reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    full_paper_submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    final_version_submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    abstract_rejection_reason = db.Column(db.Text, nullable=True)
    withdrawal_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('draft','pending_abstract_review','abstract_rejected',"
            "'abstract_approved','full_paper_submitted','under_review',"
            "'revision_required','accepted','rejected','withdrawn')",
            name="ck_submission_status",
        ),
    )

    author = db.relationship("User", foreign_keys=[author_id])
    conference = db.relationship("Conference", backref=db.backref("submissions", lazy="dynamic"))
    keywords = db.relationship(
        "Keyword", secondary="submission_keywords", lazy="selectin", viewonly=True,
    )
    assignments = db.relationship(
        "ReviewAssignment", backref="submission", lazy="dynamic",
        cascade="all, delete-orphan", order_by="ReviewAssignment.invited_at",
    )
    full_paper_versions = db.relationship(
        "FullPaperVersion", backref="submission", lazy="dynamic",
        cascade="all, delete-orphan", order_by="FullPaperVersion.version_number",
    )
    final_decision = db.relationship(
        "FinalDecision", backref="submission", uselist=False, cascade="all, delete-orphan",
    )

    @property
    def status_enum(self) -> SubmissionStatus:
        return SubmissionStatus(self.status)

    def current_full_paper(self):
        return self.full_paper_versions.filter_by(is_current_version=True).first()

    def to_dict(self, include_children=False):
        result = {
            "id": self.id,
            "conference_id": self.conference_id,
            "author_id": self.author_id,
            "title": self.title,
            "abstract": self.abstract,
            "status": self.status,
            "abstract_file_url": self.abstract_file_url,
            "abstract_submitted_at": self.abstract_submitted_at.isoformat() if self.abstract_submitted_at else None,
            "abstract_reviewed_at": self.abstract_reviewed_at.isoformat() if self.abstract_reviewed_at else None,
            "full_paper_submitted_at": (
                self.full_paper_submitted_at.isoformat() if self.full_paper_submitted_at else None
            ),
            "final_version_submitted_at": (
                self.final_version_submitted_at.isoformat() if self.final_version_submitted_at else None
            ),
            "abstract_rejection_reason": self.abstract_rejection_reason,
            "withdrawal_reason": self.withdrawal_reason,
            "keywords": [kw.name for kw in self.keywords],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_children:
            result["assignments"] = [a.to_dict() for a in self.assignments]
            result["final_decision"] = self.final_decision.to_dict() if self.final_decision else None
        return result

    def __repr__(self):
        return f"<Submission {self.id}: {self.title[:40]} [{self.status}]>"


class FullPaperVersion(db.Model):
    __tablename__ = "full_paper_versions"

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(
        db.Integer, db.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    version_number = db.Column(db.Integer, nullable=False, default=1)
    file_url = db.Column(db.String(500), nullable=False)
    file_name = db.Column(db.String(255), nullable=False, default="")
    file_size = db.Column(db.BigInteger, nullable=True)
    uploaded_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    uploaded_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    is_current_version = db.Column(db.Boolean, nullable=False, default=True)

    __table_args__ = (
        db.UniqueConstraint("submission_id", "version_number", name="uq_full_paper_version"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "submission_id": self.submission_id,
            "version_number": self.version_number,
            "file_url": self.file_url,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
            "is_current_version": self.is_current_version,
        }
