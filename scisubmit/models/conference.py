"""
SciSubmit Review Core
Conference domain models: read-only configuration from the core's view.

Models:
    - Conference:      one conference edition
    - ConferencePlan:  submission / review timeline (all instants stored in UTC)
    - ReviewCriteria:  named scoring dimension configured per conference

Architecture:
    Conference ──1:N──▶ ConferencePlan   (latest plan wins)
    Conference ──1:N──▶ ReviewCriteria   (only is_active rows are scored)
    Conference ──1:N──▶ Submission
"""

from datetime import datetime, timezone

from scisubmit.models import db

DEFAULT_MAX_SCORE = 5

PLAN_DATE_FIELDS = (
    "abstract_submission_open_date",
    "abstract_submission_deadline",
    "full_paper_submission_open_date",
    "full_paper_submission_deadline",
    "review_deadline",
    "result_announcement_date",
    "conference_date",
)


class Conference(db.Model):
    __tablename__ = "conferences"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    location = db.Column(db.String(300), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    criteria = db.relationship(
        "ReviewCriteria", backref="conference", lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="ReviewCriteria.order_index",
    )
    plans = db.relationship(
        "ConferencePlan", backref="conference", lazy="dynamic",
        cascade="all, delete-orphan", order_by="ConferencePlan.created_at.desc()",
    )

    def active_criteria(self):
        """Active criteria in display order: the set a scorecard must cover."""
        return (
            ReviewCriteria.query
            .filter_by(conference_id=self.id, is_active=True)
            .order_by(ReviewCriteria.order_index, ReviewCriteria.name)
            .all()
        )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "location": self.location,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<Conference {self.id}: {self.name}>"


class ConferencePlan(db.Model):
    __tablename__ = "conference_plans"

    id = db.Column(db.Integer, primary_key=True)
    conference_id = db.Column(
        db.Integer, db.ForeignKey("conferences.id", ondelete="CASCADE"), nullable=False, index=True,
    )

    abstract_submission_open_date = db.Column(db.DateTime(timezone=True), nullable=True)
    abstract_submission_deadline = db.Column(db.DateTime(timezone=True), nullable=True)
    full_paper_submission_open_date = db.Column(db.DateTime(timezone=True), nullable=True)
    full_paper_submission_deadline = db.Column(db.DateTime(timezone=True), nullable=True)
    review_deadline = db.Column(db.DateTime(timezone=True), nullable=True)
    result_announcement_date = db.Column(db.DateTime(timezone=True), nullable=True)
    conference_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        result = {"id": self.id, "conference_id": self.conference_id}
        for field in PLAN_DATE_FIELDS:
            value = getattr(self, field)
            result[field] = value.isoformat() if value else None
        return result


class ReviewCriteria(db.Model):
    __tablename__ = "review_criteria"

    id = db.Column(db.Integer, primary_key=True)
    conference_id = db.Column(
        db.Integer, db.ForeignKey("conferences.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    max_score = db.Column(db.Integer, nullable=False, default=DEFAULT_MAX_SCORE)
    order_index = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.CheckConstraint("max_score >= 1", name="ck_review_criteria_max_score"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "conference_id": self.conference_id,
            "name": self.name,
            "description": self.description,
            "max_score": self.max_score,
            "order_index": self.order_index,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<ReviewCriteria {self.id}: {self.name} (max {self.max_score})>"
