"""
SciSubmit Review Core
Keyword domain model.

Models:
    - Keyword:            moderated expertise/topic keyword of a conference
    - UserKeyword:        reviewer ↔ keyword (declared expertise)
    - SubmissionKeyword:  submission ↔ keyword

Only keywords in status 'approved' take part in reviewer matching. Keyword
moderation itself is an admin workflow outside this package.
"""

from datetime import datetime, timezone

from scisubmit.models import db


class Keyword(db.Model):
    __tablename__ = "keywords"

    id = db.Column(db.Integer, primary_key=True)
    conference_id = db.Column(
        db.Integer, db.ForeignKey("conferences.id", ondelete="CASCADE"),
        nullable=True, index=True,
    )
    name = db.Column(db.String(100), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="approved")
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("conference_id", "name", name="uq_keyword_conference_name"),
        db.CheckConstraint(
            "status IN ('pending','approved','rejected')", name="ck_keyword_status",
        ),
    )

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"

    def to_dict(self):
        return {
            "id": self.id,
            "conference_id": self.conference_id,
            "name": self.name,
            "status": self.status,
        }

    def __repr__(self):
        return f"<Keyword {self.id}: {self.name}>"


class UserKeyword(db.Model):
    __tablename__ = "user_keywords"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    keyword_id = db.Column(
        db.Integer, db.ForeignKey("keywords.id", ondelete="CASCADE"), nullable=False, index=True,
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "keyword_id", name="uq_user_keyword"),
    )


class SubmissionKeyword(db.Model):
    __tablename__ = "submission_keywords"

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(
        db.Integer, db.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    keyword_id = db.Column(
        db.Integer, db.ForeignKey("keywords.id", ondelete="CASCADE"), nullable=False, index=True,
    )

    __table_args__ = (
        db.UniqueConstraint("submission_id", "keyword_id", name="uq_submission_keyword"),
    )
