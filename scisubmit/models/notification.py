"""
SciSubmit Review Core
Notification outbox model.

Models:
    - EmailNotification: one queued delivery request for the notification
      emitter. Rows are written in the same transaction as the domain change
      that caused them, and delivered later by NotificationService.dispatch_pending.
"""

import enum
from datetime import datetime, timezone

from scisubmit.models import db


class NotificationKind(str, enum.Enum):
    ABSTRACT_SUBMITTED = "AbstractSubmitted"
    ABSTRACT_APPROVED = "AbstractApproved"
    ABSTRACT_REJECTED = "AbstractRejected"
    FULL_PAPER_SUBMITTED = "FullPaperSubmitted"
    REVIEW_INVITATION = "ReviewInvitation"
    REVIEW_ACCEPTED = "ReviewAccepted"
    REVIEW_REJECTED = "ReviewRejected"
    REVIEW_COMPLETED = "ReviewCompleted"
    FINAL_DECISION = "FinalDecision"
    SUBMISSION_WITHDRAWN = "SubmissionWithdrawn"


class EmailNotification(db.Model):
    __tablename__ = "email_notifications"

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(40), nullable=False, index=True)
    to_email = db.Column(db.String(255), nullable=False, index=True)
    subject = db.Column(db.String(500), nullable=False, default="")
    body = db.Column(db.Text, default="")
    payload = db.Column(db.JSON, nullable=True)

    submission_id = db.Column(
        db.Integer, db.ForeignKey("submissions.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    reviewer_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    status = db.Column(db.String(20), nullable=False, default="pending", index=True,
                       comment="pending, sent, failed")
    attempts = db.Column(db.Integer, nullable=False, default=0)
    error_message = db.Column(db.Text, nullable=True)
    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "kind": self.kind,
            "to_email": self.to_email,
            "subject": self.subject,
            "payload": self.payload,
            "submission_id": self.submission_id,
            "reviewer_id": self.reviewer_id,
            "status": self.status,
            "attempts": self.attempts,
            "error_message": self.error_message,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<EmailNotification {self.id}: {self.kind} → {self.to_email} [{self.status}]>"
